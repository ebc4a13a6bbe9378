"""Build telemetry events and sinks.

The orchestrator reports one ``BuildInfoEvent`` per terminal outcome and one
``TimingEvent`` per build run. Sinks are fire-and-forget: ``emit_safely`` is
the only entry point the build code uses, and it never lets a sink failure
escape into the build.
"""

from __future__ import annotations

from typing import Literal, Protocol, Union

import httpx
from pydantic import BaseModel, Field

from .utils import BuildLogger


class BuildInfoEvent(BaseModel):
    """Outcome of a build step, keyed by a label such as ``gradle-network-failure``."""

    kind: Literal["build_info"] = "build_info"
    label: str
    build_type: str = Field(default="gradle")
    settings: str = Field(default="")


class TimingEvent(BaseModel):
    """Wall-clock duration of one build run."""

    kind: Literal["timing"] = "timing"
    workflow: str
    variable: str
    duration_ms: int = Field(default=0, ge=0)


TelemetryEvent = Union[BuildInfoEvent, TimingEvent]


class Telemetry(Protocol):
    async def emit(self, event: TelemetryEvent) -> None: ...


class NullTelemetry:
    """Discards every event."""

    async def emit(self, event: TelemetryEvent) -> None:
        return None


class MemoryTelemetry:
    """Keeps every event in order; useful for reporting and tests."""

    def __init__(self) -> None:
        self.events: list[TelemetryEvent] = []

    async def emit(self, event: TelemetryEvent) -> None:
        self.events.append(event)

    @property
    def labels(self) -> list[str]:
        """Labels of the ``BuildInfoEvent`` entries, in emission order."""
        return [e.label for e in self.events if isinstance(e, BuildInfoEvent)]

    def timing(self, workflow: str, variable: str) -> TimingEvent | None:
        for event in self.events:
            if (
                isinstance(event, TimingEvent)
                and event.workflow == workflow
                and event.variable == variable
            ):
                return event
        return None


class HttpTelemetry:
    """POSTs each event as JSON to a collector endpoint.

    Uses ``httpx.AsyncClient`` with a short timeout. HTTP errors are raised to
    the caller; ``emit_safely`` is responsible for containing them.
    """

    def __init__(self, endpoint: str, timeout: int = 5) -> None:
        self.endpoint = endpoint
        self.timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=httpx.Timeout(self.timeout, connect=2.0))

    async def emit(self, event: TelemetryEvent) -> None:
        async with self._client() as client:
            response = await client.post(self.endpoint, json=event.model_dump())
            response.raise_for_status()


async def emit_safely(
    telemetry: Telemetry,
    event: TelemetryEvent,
    logger: BuildLogger | None = None,
) -> None:
    """Send *event*, tracing and discarding any exception raised by the sink."""
    try:
        await telemetry.emit(event)
    except Exception as exc:  # noqa: BLE001
        if logger is not None:
            logger.trace(f"Telemetry emission failed: {exc}")
