"""
Core Evaluator: classifies each decoded frame as Normal or Alerting.

Each frame must hold exactly one row, exactly one field, and that field
must be a nullable float64. Its value decides the state:

    - exactly 0            -> Normal
    - non-zero, NaN, null  -> Alerting
    - unreadable (no rows) -> Alerting

Frames must also be uniquely identifiable by their field's labels. The
first frame violating any rule aborts the whole evaluation; no partial
results are returned.
"""

from __future__ import annotations

import logging

from ngalert.eval.errors import (
    DuplicateLabelSetError,
    FieldReadError,
    MultiFieldError,
    MultiRowError,
    ShapeViolationError,
    WrongTypeError,
)
from ngalert.eval.frame import (
    NULLABLE_FLOAT64,
    Frame,
    canonical_labels,
    format_labels,
)
from ngalert.eval.models import EvalResult, ExecutionResults, State

logger = logging.getLogger(__name__)


def _check_shape(frame: Frame) -> None:
    row_len = frame.row_len()
    if row_len > 1:
        raise MultiRowError(frame.name, row_len)

    if len(frame.fields) != 1:
        raise MultiFieldError(frame.name, len(frame.fields))

    ftype = frame.fields[0].type
    if ftype != NULLABLE_FLOAT64:
        raise WrongTypeError(frame.name, ftype)


def _classify(frame: Frame) -> State:
    try:
        val = frame.fields[0].float_at(0)
    except FieldReadError:
        return State.ALERTING
    # NaN compares unequal to 0
    if val != 0:
        return State.ALERTING
    return State.NORMAL


def evaluate_execution_result(results: ExecutionResults) -> list[EvalResult]:
    """Evaluate every frame of an execution result, in order.

    Parameters
    ----------
    results : ExecutionResults
        Decoded frames from ``ConditionExecutor.execute``.

    Returns
    -------
    list[EvalResult]
        One result per frame, in input order.

    Raises
    ------
    ShapeViolationError
        ``MultiRowError``, ``MultiFieldError``, ``WrongTypeError`` or
        ``DuplicateLabelSetError`` for the first offending frame.
    """
    eval_results: list[EvalResult] = []
    seen: set[str] = set()

    for frame in results.results:
        try:
            _check_shape(frame)

            labels = frame.fields[0].labels
            identity = canonical_labels(labels)
            if identity in seen:
                raise DuplicateLabelSetError(frame.name, format_labels(labels))
            seen.add(identity)
        except ShapeViolationError as exc:
            logger.warning(
                "Rejecting execution result of alert definition %d: %s",
                results.alert_definition_id,
                exc,
            )
            raise

        eval_results.append(EvalResult(instance=labels, state=_classify(frame)))

    return eval_results
