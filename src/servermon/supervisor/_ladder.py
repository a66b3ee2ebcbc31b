"""Fallback ladders over control-plane calls.

Each step of a ladder is a distinct, classified Attempt. A FATAL step ends the
ladder at once; a TRANSIENT one lets the caller try the next fallback. When
every rung fails, the raised error carries the whole trail.
"""

from collections.abc import Collection
from typing import NoReturn

from structlog.typing import FilteringBoundLogger

from servermon.exceptions import ControlPlaneError

from ._models import Attempt, ControlCondition, ControlResult, FailureKind


def classify(
    result: ControlResult,
    desired: Collection[ControlCondition] = (),
) -> FailureKind:
    """Classify a control-plane result.

    Args:
        result: The call outcome.
        desired: Conditions that mean the goal already holds, such as
            ``not_loaded`` when stopping.

    Returns:
        SUCCESS for a clean result, ALREADY_IN_DESIRED_STATE when the failure
        matches ``desired``, FATAL when the control tool cannot be run at all,
        otherwise TRANSIENT.
    """
    if result.ok:
        return FailureKind.SUCCESS
    if result.condition is not None and result.condition in desired:
        return FailureKind.ALREADY_IN_DESIRED_STATE
    if result.condition is ControlCondition.UNAVAILABLE:
        return FailureKind.FATAL
    return FailureKind.TRANSIENT


class FallbackLadder:
    """Collects the attempts of one lifecycle operation.

    Attributes:
        identifier: Supervisor label the operation targets.
        operation: Lifecycle operation name, for messages and logs.
    """

    def __init__(
        self,
        identifier: str,
        operation: str,
        *,
        logger: FilteringBoundLogger,
        error_class: type[ControlPlaneError] = ControlPlaneError,
    ) -> None:
        self.identifier: str = identifier
        self.operation: str = operation
        self._logger: FilteringBoundLogger = logger
        self._error_class: type[ControlPlaneError] = error_class
        self._attempts: list[Attempt] = []

    @property
    def attempts(self) -> tuple[Attempt, ...]:
        """Return the attempts made so far."""
        return tuple(self._attempts)

    def step(
        self,
        result: ControlResult,
        *,
        desired: Collection[ControlCondition] = (),
    ) -> Attempt:
        """Record and classify one call.

        Raises:
            ControlPlaneError: If the step is FATAL.
        """
        kind = classify(result, desired)
        attempt = Attempt.from_result(result, kind)
        self._attempts.append(attempt)

        log = self._logger.info if attempt.succeeded else self._logger.warning
        log(
            "control_attempt",
            identifier=self.identifier,
            operation=self.operation,
            verb=str(result.verb),
            argv=list(result.argv),
            exit_code=result.exit_code,
            condition=str(result.condition) if result.condition else None,
            kind=str(kind),
        )

        if kind is FailureKind.FATAL:
            self.fail(f"control tool unavailable: {attempt.detail}")
        return attempt

    def fail(self, reason: str) -> NoReturn:
        """Raise the ladder's error with every attempt attached."""
        last_verb = str(self._attempts[-1].verb) if self._attempts else None
        msg = f"Failed to {self.operation} {self.identifier}"
        if last_verb:
            msg += f" (last verb: {last_verb})"
        msg += f": {reason}"
        self._logger.error(
            "control_failed",
            identifier=self.identifier,
            operation=self.operation,
            verb=last_verb,
            attempts=len(self._attempts),
        )
        raise self._error_class(
            msg,
            identifier=self.identifier,
            verb=last_verb,
            attempts=self.attempts,
        )
