"""Per-mode scheduling for library archive builds."""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Iterable, Optional, Sequence

from ..utils import BuildLogger
from .errors import CallbackFailure
from .models import BuildMode, BuildOutcome, BuildTarget, VariantPlan
from .retry import RetryController
from .signatures import ErrorSignature

# Signature: (project, is_release) -> None, sync or async.
# Release variants must not get debug metadata in the generated tooling.
GenerateTooling = Callable[[Any, bool], Optional[Awaitable[None]]]


def plan_variants(modes: Iterable[BuildMode]) -> list[VariantPlan]:
    """One plan per distinct mode, in the order supplied."""
    plans: list[VariantPlan] = []
    for mode in modes:
        mode = BuildMode(mode)
        if all(p.mode is not mode for p in plans):
            plans.append(VariantPlan.for_mode(mode))
    return plans


class VariantScheduler:
    """Builds each requested mode in turn, failing fast.

    Each variant gets a full retry budget of its own. A failure stops the
    remaining variants; variants that already finished are left in place.
    """

    def __init__(self, controller: RetryController, logger: BuildLogger) -> None:
        self.controller = controller
        self.logger = logger

    async def run(
        self,
        target: BuildTarget,
        modes: Iterable[BuildMode],
        generate_tooling: GenerateTooling,
        project: Any = None,
        signatures: Sequence[ErrorSignature] = (),
        max_retries: int = 0,
    ) -> list[BuildOutcome]:
        """Build every variant and generate tooling after each success.

        Raises:
            CallbackFailure: ``generate_tooling`` raised for a variant.
            BuildError: Any terminal failure from the retry controller.
        """
        plans = plan_variants(modes)
        if not plans:
            raise ValueError("at least one build mode is required")

        outcomes: list[BuildOutcome] = []
        for plan in plans:
            variant = target.with_mode(plan.mode)
            self.logger.status(f"Building {plan.mode.value} variant ({variant.task_name})")
            outcome = await self.controller.run(variant, signatures, max_retries)

            try:
                result = generate_tooling(project, plan.is_release)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:  # noqa: BLE001
                self.logger.error(f"Tooling generation failed for {plan.mode.value}: {exc}")
                raise CallbackFailure(plan.mode, exc) from exc

            outcomes.append(outcome)
        return outcomes
