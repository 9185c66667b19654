"""
Tests for the execution context's cancellation and deadline handling.
"""

from __future__ import annotations

import threading
from unittest.mock import patch

import pytest

from ngalert.eval.context import AlertExecCtx, SignedInUser
from ngalert.eval.errors import ExecutionCancelledError, RemoteExecutionError


class TestAlertExecCtx:
    def test_unbounded(self) -> None:
        ctx = AlertExecCtx(alert_definition_id=4)
        assert ctx.remaining() is None
        assert not ctx.expired()
        assert not ctx.cancelled
        ctx.check()

    def test_cancel(self) -> None:
        ctx = AlertExecCtx(alert_definition_id=4)
        ctx.cancel()
        assert ctx.cancelled
        with pytest.raises(ExecutionCancelledError, match="definition 4 cancelled"):
            ctx.check()

    def test_cancel_from_other_thread(self) -> None:
        ctx = AlertExecCtx()
        t = threading.Thread(target=ctx.cancel)
        t.start()
        t.join()
        assert ctx.cancelled

    def test_deadline(self) -> None:
        with patch("ngalert.eval.context.time.monotonic", return_value=100.0):
            ctx = AlertExecCtx(timeout=5.0)
        with patch("ngalert.eval.context.time.monotonic", return_value=102.0):
            assert ctx.remaining() == pytest.approx(3.0)
            ctx.check()
        with patch("ngalert.eval.context.time.monotonic", return_value=106.0):
            assert ctx.remaining() == 0.0
            assert ctx.expired()
            with pytest.raises(ExecutionCancelledError, match="deadline"):
                ctx.check()

    def test_cancellation_is_remote_tagged(self) -> None:
        assert issubclass(ExecutionCancelledError, RemoteExecutionError)

    def test_signed_in_user(self) -> None:
        user = SignedInUser(user_id=1, org_id=2, login="admin")
        ctx = AlertExecCtx(alert_definition_id=9, signed_in_user=user)
        assert ctx.signed_in_user is user
        assert ctx.alert_definition_id == 9
