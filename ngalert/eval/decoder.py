"""
Frame Decoder: raw encoded frames -> in-memory ``Frame`` objects.

``JSONFrameDecoder`` understands the JSON data frame encoding used by the
transform backend::

    {
      "schema": {
        "name": "A",
        "refId": "A",
        "fields": [
          {"name": "Value",
           "typeInfo": {"frame": "float64", "nullable": true},
           "labels": {"instance": "host1"}}
        ]
      },
      "data": {
        "values": [[0.0]],
        "entities": [{"NaN": [], "Inf": [], "NegInf": []}]
      }
    }

``values`` holds one column per schema field. ``entities`` (optional, one
entry or null per column) lists row indexes whose float value is NaN or
infinite, since JSON cannot encode those. ``time.Time`` columns carry epoch
milliseconds. A frame with a schema but no ``data`` has zero rows.
"""

from __future__ import annotations

import json
import logging
import math
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field as PydanticField

from ngalert.eval.errors import FrameDecodeError
from ngalert.eval.frame import Field, Frame, field_type
from ngalert.eval.models import DataResponse

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# JSON Frame Schema
# ---------------------------------------------------------------------------


class _TypeInfo(BaseModel):
    frame: str
    nullable: bool = False


class _FieldSchema(BaseModel):
    name: str = ""
    type_info: _TypeInfo = PydanticField(alias="typeInfo")
    labels: dict[str, str] | None = None


class _FrameSchema(BaseModel):
    name: str = ""
    ref_id: str = PydanticField(default="", alias="refId")
    fields: list[_FieldSchema] = []


class _Entities(BaseModel):
    nan: list[int] = PydanticField(default_factory=list, alias="NaN")
    inf: list[int] = PydanticField(default_factory=list, alias="Inf")
    neg_inf: list[int] = PydanticField(default_factory=list, alias="NegInf")


class _FrameData(BaseModel):
    values: list[list[Any]] = []
    entities: list[_Entities | None] | None = None


class _EncodedFrame(BaseModel):
    frame_schema: _FrameSchema = PydanticField(alias="schema")
    data: _FrameData | None = None


# ---------------------------------------------------------------------------
# Decoder
# ---------------------------------------------------------------------------


class FrameDecoder(ABC):
    """Abstract decoder for a ref_id's raw frame payload."""

    @abstractmethod
    def decode(self, response: DataResponse) -> list[Frame]:
        """Decode every encoded frame in ``response``.

        Raises
        ------
        FrameDecodeError
            If any frame is malformed.
        """
        ...


def _apply_entities(
    column: list[Any], entities: _Entities | None, frame: str
) -> list[Any]:
    if entities is None:
        return column
    if not frame.startswith("float") and (
        entities.nan or entities.inf or entities.neg_inf
    ):
        raise ValueError(f"NaN/Inf entities on a non-float {frame} column")
    column = list(column)
    for indexes, value in (
        (entities.nan, math.nan),
        (entities.inf, math.inf),
        (entities.neg_inf, -math.inf),
    ):
        for idx in indexes:
            if not 0 <= idx < len(column):
                raise ValueError(f"entity index {idx} out of range")
            column[idx] = value
    return column


def _build_frame(encoded: _EncodedFrame) -> Frame:
    schema = encoded.frame_schema
    data = encoded.data or _FrameData()

    columns = data.values
    if not columns:
        columns = [[] for _ in schema.fields]
    if len(columns) != len(schema.fields):
        raise ValueError(
            f"frame {schema.name!r} declares {len(schema.fields)} fields "
            f"but carries {len(columns)} value columns"
        )

    entities = data.entities or [None] * len(columns)
    if len(entities) != len(columns):
        raise ValueError(
            f"frame {schema.name!r} has {len(entities)} entity entries "
            f"for {len(columns)} columns"
        )

    fields = []
    for fs, column, ent in zip(schema.fields, columns, entities):
        ftype = field_type(fs.type_info.frame, fs.type_info.nullable)
        column = _apply_entities(column, ent, ftype.frame)
        fields.append(Field(fs.name, column, ftype, fs.labels))
    return Frame(schema.name, fields, ref_id=schema.ref_id)


class JSONFrameDecoder(FrameDecoder):
    """Decodes JSON encoded data frames (bytes, str or parsed dicts)."""

    def decode_frame(self, raw: str | bytes | dict[str, Any]) -> Frame:
        try:
            obj = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
            return _build_frame(_EncodedFrame.model_validate(obj))
        except (ValueError, TypeError, OverflowError) as exc:
            raise FrameDecodeError(f"failed to decode frame: {exc}") from exc

    def decode(self, response: DataResponse) -> list[Frame]:
        frames = [self.decode_frame(raw) for raw in response.frames]
        logger.debug("Decoded %d frames", len(frames))
        return frames
