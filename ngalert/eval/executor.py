"""
Condition executor: runs a Condition's queries and expressions against the
transform backend and returns the decoded frames for its ref_id.

Processing flow:
    1. Reject invalid conditions before any remote call.
    2. Translate the condition into a ``TransformRequest``.
    3. Send it through the injected ``TransformClient`` (the only blocking
       step; honors the context's cancellation and deadline).
    4. Pick the response for ``condition.ref_id``; all others are ignored.
    5. Decode its frames; zero frames is a ``NoResultsError``.

Every failure is terminal for the attempt and is raised to the caller.
Retry policy belongs to the caller.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Callable

from ngalert.eval.context import AlertExecCtx
from ngalert.eval.decoder import FrameDecoder, JSONFrameDecoder
from ngalert.eval.errors import (
    EvalError,
    NoResultsError,
    RemoteExecutionError,
)
from ngalert.eval.models import (
    Condition,
    DataResponse,
    ExecutionResults,
    PluginContext,
    TransformRequest,
)
from ngalert.eval.transform import TransformClient
from ngalert.eval.translator import translate

logger = logging.getLogger(__name__)

# Signature: emit_metric(metric_name, value, unit, dimensions)
MetricEmitter = Callable[[str, float, str, dict[str, str]], None]

METRIC_EXECUTION_DURATION = "ConditionExecutionDuration"
METRIC_EXECUTION_FAILURE = "ConditionExecutionFailure"


def _default_metric_emitter(
    name: str, value: float, unit: str, dimensions: dict[str, str]
) -> None:
    """Log metrics when no metrics backend is configured."""
    logger.info(
        "Metric: %s=%.3f %s dimensions=%s",
        name,
        value,
        unit,
        dimensions,
    )


def _plugin_context(ctx: AlertExecCtx) -> PluginContext:
    user = ctx.signed_in_user
    return PluginContext(
        org_id=user.org_id if user else 0,
        user_login=user.login if user else "",
        alert_definition_id=ctx.alert_definition_id,
    )


class ConditionExecutor:
    """Executes conditions through a transform backend.

    Holds no per-evaluation state, so one instance may serve concurrent
    evaluations as long as the injected client allows it.

    Parameters
    ----------
    client : TransformClient
        Transform backend port.
    decoder : FrameDecoder or None
        Decoder for raw frames. Defaults to ``JSONFrameDecoder``.
    metric_emitter : MetricEmitter or None
        Callback for execution metrics. Defaults to logging them.
    """

    def __init__(
        self,
        client: TransformClient,
        decoder: FrameDecoder | None = None,
        metric_emitter: MetricEmitter | None = None,
    ) -> None:
        self._client = client
        self._decoder = decoder or JSONFrameDecoder()
        self._metric_emitter = metric_emitter or _default_metric_emitter

    def execute(
        self,
        ctx: AlertExecCtx,
        condition: Condition,
        from_time: datetime,
        to_time: datetime,
    ) -> ExecutionResults:
        """Run the condition and return its unevaluated frames.

        Raises
        ------
        InvalidConditionError
            If the condition has no queries. The backend is not called.
        ExecutionCancelledError
            If ``ctx`` is cancelled or its deadline passes.
        RemoteExecutionError
            If the backend call fails or reports an error for the ref_id.
        FrameDecodeError
            If the returned frames cannot be decoded.
        NoResultsError
            If the ref_id yields no frames.
        """
        started = time.monotonic()
        try:
            results = self._execute(ctx, condition, from_time, to_time)
        except EvalError as exc:
            self._emit(
                METRIC_EXECUTION_FAILURE,
                1.0,
                "Count",
                {"ErrorKind": type(exc).__name__},
            )
            raise

        elapsed_ms = (time.monotonic() - started) * 1000.0
        self._emit(
            METRIC_EXECUTION_DURATION,
            elapsed_ms,
            "Milliseconds",
            {"RefId": condition.ref_id},
        )
        return results

    def _execute(
        self,
        ctx: AlertExecCtx,
        condition: Condition,
        from_time: datetime,
        to_time: datetime,
    ) -> ExecutionResults:
        request = translate(condition, from_time, to_time, _plugin_context(ctx))

        logger.info(
            "Executing condition ref_id=%s for alert definition %d "
            "(%d queries)",
            condition.ref_id,
            ctx.alert_definition_id,
            len(request.queries),
        )

        responses = self._send(ctx, request)

        frames = []
        response = responses.get(condition.ref_id)
        if response is not None:
            if response.error:
                logger.error(
                    "Transform backend reported an error for ref_id=%s: %s",
                    condition.ref_id,
                    response.error,
                )
                raise RemoteExecutionError(
                    f"transform backend error for {condition.ref_id!r}: "
                    f"{response.error}"
                )
            frames = self._decoder.decode(response)

        if not frames:
            logger.warning(
                "No results for ref_id=%s (alert definition %d); "
                "backend returned ref_ids %s",
                condition.ref_id,
                ctx.alert_definition_id,
                sorted(responses),
            )
            raise NoResultsError(f"no results for ref_id {condition.ref_id!r}")

        return ExecutionResults(
            alert_definition_id=ctx.alert_definition_id,
            results=frames,
        )

    def _send(
        self, ctx: AlertExecCtx, request: TransformRequest
    ) -> dict[str, DataResponse]:
        ctx.check()
        try:
            return self._client.send(ctx, request)
        except RemoteExecutionError as exc:
            logger.error("Transform request failed: %s", exc)
            raise
        except Exception as exc:
            logger.exception("Transform client raised unexpectedly")
            raise RemoteExecutionError(f"transform request failed: {exc}") from exc

    def _emit(
        self, name: str, value: float, unit: str, dimensions: dict[str, str]
    ) -> None:
        try:
            self._metric_emitter(name, value, unit, dimensions)
        except Exception as metric_exc:
            # Never let metric emission failure mask the actual outcome
            logger.warning("Failed to emit %s metric: %s", name, metric_exc)
