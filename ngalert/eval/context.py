"""
Execution context for a single condition evaluation.

Carries the owning alert definition, the caller's identity, and the
cancellation/deadline signal honored by the transform backend call.
"""

from __future__ import annotations

import threading
import time

from pydantic import BaseModel

from ngalert.eval.errors import ExecutionCancelledError


class SignedInUser(BaseModel):
    """Identity of the user on whose behalf a condition is executed."""

    model_config = {"populate_by_name": True}

    user_id: int = 0
    org_id: int = 0
    login: str = ""


class AlertExecCtx:
    """Context provided for executing an alert condition.

    Parameters
    ----------
    alert_definition_id : int
        Identifier of the owning alert definition, passed through untouched.
    signed_in_user : SignedInUser or None
        Caller identity forwarded to the transform backend.
    timeout : float or None
        Seconds from now after which the execution is abandoned. ``None``
        means no deadline.
    """

    def __init__(
        self,
        alert_definition_id: int = 0,
        signed_in_user: SignedInUser | None = None,
        timeout: float | None = None,
    ) -> None:
        self.alert_definition_id = alert_definition_id
        self.signed_in_user = signed_in_user
        self._deadline = None if timeout is None else time.monotonic() + timeout
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Signal cancellation. Safe to call from any thread."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> float | None:
        """Seconds until the deadline (never negative), or None if unbounded."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0.0

    def check(self) -> None:
        """Raise ExecutionCancelledError if cancelled or past the deadline."""
        if self.cancelled:
            raise ExecutionCancelledError(
                f"execution of alert definition {self.alert_definition_id} cancelled"
            )
        if self.expired():
            raise ExecutionCancelledError(
                f"execution of alert definition {self.alert_definition_id} "
                f"exceeded its deadline"
            )
