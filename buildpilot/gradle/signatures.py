"""Known Gradle failure signatures and output classification.

A signature pairs a line predicate with a remediation handler. Signatures are
checked in the order the caller registers them and the first one whose
predicate accepts any output line decides what happens to the failed attempt.
"""

from __future__ import annotations

import inspect
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Sequence, Union

from ..utils import BuildLogger
from .models import BuildTarget, RemediationDecision


@dataclass(frozen=True)
class RemediationContext:
    """What a handler may inspect when deciding on a failed attempt."""

    target: BuildTarget
    attempt_index: int
    logger: BuildLogger
    project_dir: Path = Path(".")


# Signature: (matched_line, context) -> decision, sync or async.
RemediationHandler = Callable[
    [str, RemediationContext],
    Union[RemediationDecision, Awaitable[RemediationDecision]],
]


@dataclass(frozen=True)
class ErrorSignature:
    """A recognised failure pattern and what to do about it."""

    matcher: Callable[[str], bool]
    label: str
    handler: RemediationHandler

    @classmethod
    def fixed(
        cls,
        matcher: Callable[[str], bool],
        label: str,
        decision: RemediationDecision,
    ) -> "ErrorSignature":
        """Signature whose handler always returns *decision*."""
        return cls(matcher=matcher, label=label, handler=lambda _line, _ctx: decision)

    async def remediate(self, line: str, context: RemediationContext) -> RemediationDecision:
        """Invoke the handler, awaiting it if it is a coroutine function."""
        decision = self.handler(line, context)
        if inspect.isawaitable(decision):
            decision = await decision
        return RemediationDecision(decision)


def contains_any(*needles: str) -> Callable[[str], bool]:
    """Predicate matching lines that contain any of *needles*."""
    return lambda line: any(needle in line for needle in needles)


def matches_any(*patterns: str) -> Callable[[str], bool]:
    """Predicate matching lines where any of the regular expressions is found."""
    compiled = [re.compile(p) for p in patterns]
    return lambda line: any(p.search(line) for p in compiled)


def classify_output(
    output: Sequence[str],
    signatures: Sequence[ErrorSignature],
) -> tuple[ErrorSignature, str] | None:
    """Find the first registered signature that matches any line of *output*.

    Registration order takes precedence over line order: an earlier signature
    matching a late line wins over a later signature matching an early line.

    Returns:
        ``(signature, matched_line)`` or ``None`` if nothing matched.
    """
    for signature in signatures:
        for line in output:
            if signature.matcher(line):
                return signature, line
    return None


# ---------------------------------------------------------------------------
# Built-in signatures
# ---------------------------------------------------------------------------


def _network_error(line: str, context: RemediationContext) -> RemediationDecision:
    context.logger.error(
        "Gradle threw an error while downloading artifacts from the network."
    )
    return RemediationDecision.RETRY


def _ssl_error(line: str, context: RemediationContext) -> RemediationDecision:
    context.logger.error(
        "Gradle threw an error while downloading artifacts from the network "
        "(the secure connection was interrupted)."
    )
    return RemediationDecision.RETRY


def _permission_denied(line: str, context: RemediationContext) -> RemediationDecision:
    context.logger.status(
        "Gradle does not have execution permission. Make sure the Gradle wrapper "
        "is executable and owned by the current user."
    )
    return RemediationDecision.ABORT


def _license_not_accepted(line: str, context: RemediationContext) -> RemediationDecision:
    context.logger.status(
        "Unable to download needed Android SDK components, as the following "
        "licenses have not been accepted. Run `sdkmanager --licenses` and try again."
    )
    return RemediationDecision.ABORT


NETWORK_ERROR = ErrorSignature(
    matcher=contains_any(
        "java.io.FileNotFoundException: https://downloads.gradle.org",
        "java.io.IOException: Unable to tunnel through proxy",
        "java.lang.RuntimeException: Timeout of",
        "java.util.zip.ZipException: error in opening zip file",
        "javax.net.ssl.SSLHandshakeException: Remote host closed connection during handshake",
        "java.net.SocketException: Connection reset",
        "java.io.FileNotFoundException",
        "Gateway Time-out",
    ),
    label="network",
    handler=_network_error,
)

SSL_ERROR = ErrorSignature(
    matcher=matches_any(r"javax\.net\.ssl\.SSLException: .*(Tag mismatch|Connection reset)"),
    label="ssl-exception",
    handler=_ssl_error,
)

PERMISSION_DENIED = ErrorSignature(
    matcher=contains_any("Permission denied"),
    label="permission-denied",
    handler=_permission_denied,
)

LICENSE_NOT_ACCEPTED = ErrorSignature(
    matcher=contains_any(
        "You have not accepted the license agreements of the following SDK components"
    ),
    label="license-not-accepted",
    handler=_license_not_accepted,
)

DEFAULT_SIGNATURES: tuple[ErrorSignature, ...] = (
    SSL_ERROR,
    NETWORK_ERROR,
    PERMISSION_DENIED,
    LICENSE_NOT_ACCEPTED,
)
