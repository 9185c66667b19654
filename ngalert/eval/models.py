"""
Domain models for alert condition evaluation.

Pydantic v2 models for the Condition handed in by the alert rule layer, the
per-series evaluation outcome, and the request/response envelopes exchanged
with the transform backend.

Wire models serialize with camelCase keys (``refId``, ``intervalMs``,
``maxDataPoints``, ...) matching the transform backend's JSON contract.
Dump them with ``model_dump(by_alias=True)``.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from ngalert.eval.frame import Frame


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class State(str, Enum):
    """Evaluation state of an alert instance. The value is the display name."""

    NORMAL = "Normal"
    ALERTING = "Alerting"

    def __str__(self) -> str:
        return self.value


# ---------------------------------------------------------------------------
# Condition
# ---------------------------------------------------------------------------


class TimeRange(BaseModel):
    """A start/end instant pair. Naive datetimes are taken as UTC."""

    model_config = {"populate_by_name": True, "frozen": True}

    start: datetime
    end: datetime


class DataQuery(BaseModel):
    """A single query or expression of a Condition.

    ``payload`` is the opaque query model forwarded to the backend under the
    ``json`` key. Grafana-style camelCase keys are accepted on input.
    """

    model_config = {
        "populate_by_name": True,
        "frozen": True,
        "alias_generator": to_camel,
    }

    ref_id: str
    payload: dict[str, Any] = Field(default_factory=dict, alias="json")
    interval: timedelta = timedelta(0)
    max_data_points: int = 0
    query_type: str = ""
    time_range: TimeRange | None = None


class Condition(BaseModel):
    """Queries and expressions plus the ref_id of the one whose frames are
    evaluated.

    The ref_id is deliberately not checked against ``queries``; an
    expression may produce a ref_id no query declares.
    """

    model_config = {"populate_by_name": True, "frozen": True}

    ref_id: str = Field(alias="refId")
    queries: list[DataQuery] = Field(
        default_factory=list, alias="queriesAndExpressions"
    )

    def is_valid(self) -> bool:
        return len(self.queries) != 0


# ---------------------------------------------------------------------------
# Execution / Evaluation Results
# ---------------------------------------------------------------------------


class ExecutionResults(BaseModel):
    """Unevaluated frames returned for a condition's ref_id.

    Only ever built from a successful execution; failures are raised.
    """

    model_config = {"arbitrary_types_allowed": True}

    alert_definition_id: int = 0
    results: list[Frame] = []


class EvalResult(BaseModel):
    """Evaluated state of one alert instance identified by its labels."""

    model_config = {"populate_by_name": True, "frozen": True}

    instance: dict[str, str] = Field(default_factory=dict, alias="labels")
    state: State


# ---------------------------------------------------------------------------
# Transform Backend Wire Models
# ---------------------------------------------------------------------------


class _WireModel(BaseModel):
    model_config = {"populate_by_name": True, "alias_generator": to_camel}


class EpochTimeRange(_WireModel):
    from_epoch_ms: int
    to_epoch_ms: int


class TransformQuery(_WireModel):
    """One query descriptor of a TransformRequest."""

    ref_id: str
    json_: dict[str, Any] = Field(default_factory=dict, alias="json")
    interval_ms: int = 0
    max_data_points: int = 0
    query_type: str = ""
    time_range: EpochTimeRange


class PluginContext(_WireModel):
    """Caller identity forwarded with every transform request."""

    org_id: int = 0
    user_login: str = ""
    alert_definition_id: int = 0


class TransformRequest(_WireModel):
    """Ordered query descriptors sent to the transform backend."""

    plugin_context: PluginContext = Field(default_factory=PluginContext)
    queries: list[TransformQuery] = []


class DataResponse(_WireModel):
    """Raw result for one ref_id: encoded frames or a backend error string."""

    frames: list[str | bytes | dict[str, Any]] = []
    error: str = ""


class TransformResponse(_WireModel):
    responses: dict[str, DataResponse] = {}
