"""
Request Translator: Condition -> TransformRequest.

Pure transformation. Durations become whole milliseconds and instants become
whole milliseconds since the Unix epoch, both truncated toward zero.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from ngalert.eval.errors import InvalidConditionError
from ngalert.eval.models import (
    Condition,
    DataQuery,
    EpochTimeRange,
    PluginContext,
    TimeRange,
    TransformQuery,
    TransformRequest,
)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_NANOS_PER_MILLI = 1_000_000


def _trunc_div(n: int, d: int) -> int:
    """Integer division truncating toward zero (``//`` floors)."""
    q = abs(n) // d
    return q if n >= 0 else -q


def unix_nano(t: datetime) -> int:
    """Nanoseconds since the Unix epoch. Naive datetimes are taken as UTC."""
    if t.tzinfo is None:
        t = t.replace(tzinfo=timezone.utc)
    delta = t - _EPOCH
    micros = (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds
    return micros * 1_000


def epoch_ms(t: datetime) -> int:
    return _trunc_div(unix_nano(t), _NANOS_PER_MILLI)


def duration_ms(d: timedelta) -> int:
    micros = (d.days * 86_400 + d.seconds) * 1_000_000 + d.microseconds
    return _trunc_div(micros, 1_000)


def _translate_query(q: DataQuery, window: TimeRange) -> TransformQuery:
    time_range = q.time_range or window
    return TransformQuery(
        ref_id=q.ref_id,
        json_=q.payload,
        interval_ms=duration_ms(q.interval),
        max_data_points=q.max_data_points,
        query_type=q.query_type,
        time_range=EpochTimeRange(
            from_epoch_ms=epoch_ms(time_range.start),
            to_epoch_ms=epoch_ms(time_range.end),
        ),
    )


def translate(
    condition: Condition,
    from_time: datetime,
    to_time: datetime,
    plugin_context: PluginContext | None = None,
) -> TransformRequest:
    """Build the transform backend request for a condition.

    Query order is preserved because expressions may reference earlier
    queries by ref_id. A query without its own time range is given the
    ``from_time``/``to_time`` window.

    Raises
    ------
    InvalidConditionError
        If the condition has no queries.
    """
    if not condition.is_valid():
        raise InvalidConditionError(
            f"invalid condition {condition.ref_id!r}: no queries or expressions"
        )

    window = TimeRange(start=from_time, end=to_time)
    return TransformRequest(
        plugin_context=plugin_context or PluginContext(),
        queries=[_translate_query(q, window) for q in condition.queries],
    )
