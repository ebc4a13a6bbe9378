"""buildpilot: Gradle build orchestration with bounded, classified retries."""

__version__ = "0.1.0"
