"""
Tests for the JSON frame decoder.

Covers accepted input encodings (bytes, str, dict), element types, null and
NaN/Inf entity handling, schema-only frames, and rejection of malformed
payloads with ``FrameDecodeError``.
"""

from __future__ import annotations

import json
import math
from typing import Any

import numpy as np
import pytest

from ngalert.eval.decoder import JSONFrameDecoder
from ngalert.eval.errors import FrameDecodeError
from ngalert.eval.frame import BOOL, NULLABLE_FLOAT64, STRING, TIME
from ngalert.eval.models import DataResponse


def _encoded_frame(
    name: str = "A",
    fields: list[dict[str, Any]] | None = None,
    values: list[list[Any]] | None = None,
    entities: list[Any] | None = None,
) -> dict[str, Any]:
    if fields is None:
        fields = [
            {
                "name": "Value",
                "type": "number",
                "typeInfo": {"frame": "float64", "nullable": True},
                "labels": {"instance": "a"},
            }
        ]
    frame: dict[str, Any] = {"schema": {"name": name, "refId": name, "fields": fields}}
    if values is not None:
        frame["data"] = {"values": values}
        if entities is not None:
            frame["data"]["entities"] = entities
    return frame


@pytest.fixture
def decoder() -> JSONFrameDecoder:
    return JSONFrameDecoder()


class TestDecodeFrame:
    def test_dict_input(self, decoder: JSONFrameDecoder) -> None:
        frame = decoder.decode_frame(_encoded_frame(values=[[0.0]]))
        assert frame.name == "A"
        assert frame.ref_id == "A"
        assert frame.row_len() == 1
        f = frame.fields[0]
        assert f.name == "Value"
        assert f.type == NULLABLE_FLOAT64
        assert f.labels == {"instance": "a"}
        assert f.float_at(0) == 0.0

    def test_str_and_bytes_input(self, decoder: JSONFrameDecoder) -> None:
        encoded = json.dumps(_encoded_frame(values=[[5.0]]))
        assert decoder.decode_frame(encoded).fields[0].float_at(0) == 5.0
        assert decoder.decode_frame(encoded.encode()).fields[0].float_at(0) == 5.0

    def test_null_value(self, decoder: JSONFrameDecoder) -> None:
        frame = decoder.decode_frame(_encoded_frame(values=[[None]]))
        assert frame.fields[0].is_null(0)
        assert math.isnan(frame.fields[0].float_at(0))

    def test_entities(self, decoder: JSONFrameDecoder) -> None:
        frame = decoder.decode_frame(
            _encoded_frame(
                values=[[None, None, None, 1.0]],
                entities=[{"NaN": [0], "Inf": [1], "NegInf": [2]}],
            )
        )
        f = frame.fields[0]
        assert math.isnan(f.float_at(0))
        assert not f.is_null(0)
        assert f.float_at(1) == math.inf
        assert f.float_at(2) == -math.inf
        assert f.float_at(3) == 1.0

    def test_null_entities_entry(self, decoder: JSONFrameDecoder) -> None:
        frame = decoder.decode_frame(_encoded_frame(values=[[2.0]], entities=[None]))
        assert frame.fields[0].float_at(0) == 2.0

    def test_schema_only_frame_has_zero_rows(self, decoder: JSONFrameDecoder) -> None:
        frame = decoder.decode_frame(_encoded_frame())
        assert len(frame.fields) == 1
        assert frame.row_len() == 0

    def test_mixed_types(self, decoder: JSONFrameDecoder) -> None:
        fields = [
            {"name": "time", "typeInfo": {"frame": "time.Time"}},
            {"name": "host", "typeInfo": {"frame": "string"}},
            {"name": "up", "typeInfo": {"frame": "bool"}},
        ]
        frame = decoder.decode_frame(
            _encoded_frame(
                fields=fields,
                values=[[1_770_379_200_000], ["host1"], [True]],
            )
        )
        t, host, up = frame.fields
        assert t.type == TIME
        assert t.values[0] == np.datetime64(1_770_379_200_000, "ms")
        assert host.type == STRING
        assert host.values[0] == "host1"
        assert up.type == BOOL
        assert bool(up.values[0]) is True
        assert t.labels == {}


class TestDecodeErrors:
    @pytest.mark.parametrize(
        "raw",
        [
            b"not json",
            "{",
            b"\xff\xfe",
            "[]",
            {"data": {"values": []}},
        ],
    )
    def test_malformed(self, decoder: JSONFrameDecoder, raw: Any) -> None:
        with pytest.raises(FrameDecodeError, match="failed to decode frame"):
            decoder.decode_frame(raw)

    def test_unknown_element_type(self, decoder: JSONFrameDecoder) -> None:
        fields = [{"name": "v", "typeInfo": {"frame": "complex128"}}]
        with pytest.raises(FrameDecodeError, match="unsupported"):
            decoder.decode_frame(_encoded_frame(fields=fields, values=[[1]]))

    def test_column_count_mismatch(self, decoder: JSONFrameDecoder) -> None:
        with pytest.raises(FrameDecodeError, match="value columns"):
            decoder.decode_frame(_encoded_frame(values=[[1.0], [2.0]]))

    def test_ragged_columns(self, decoder: JSONFrameDecoder) -> None:
        fields = [
            {"name": "a", "typeInfo": {"frame": "float64"}},
            {"name": "b", "typeInfo": {"frame": "float64"}},
        ]
        with pytest.raises(FrameDecodeError, match="differing lengths"):
            decoder.decode_frame(
                _encoded_frame(fields=fields, values=[[1.0], [1.0, 2.0]])
            )

    def test_null_in_non_nullable(self, decoder: JSONFrameDecoder) -> None:
        fields = [{"name": "v", "typeInfo": {"frame": "float64"}}]
        with pytest.raises(FrameDecodeError, match="null value"):
            decoder.decode_frame(_encoded_frame(fields=fields, values=[[None]]))

    @pytest.mark.parametrize("value", ["abc", "0", False, True, [0], {"v": 0}])
    def test_non_numeric_value(self, decoder: JSONFrameDecoder, value: Any) -> None:
        with pytest.raises(FrameDecodeError, match="does not fit|one-dimensional"):
            decoder.decode_frame(_encoded_frame(values=[[value]]))

    def test_float_in_int_column(self, decoder: JSONFrameDecoder) -> None:
        fields = [{"name": "n", "typeInfo": {"frame": "int64"}}]
        with pytest.raises(FrameDecodeError, match="does not fit"):
            decoder.decode_frame(_encoded_frame(fields=fields, values=[[1.5]]))

    @pytest.mark.parametrize(
        "frame,value",
        [("string", "x"), ("bool", True), ("int64", 1), ("time.Time", 0)],
    )
    def test_entities_on_non_float_column(
        self, decoder: JSONFrameDecoder, frame: str, value: Any
    ) -> None:
        fields = [{"name": "v", "typeInfo": {"frame": frame}}]
        with pytest.raises(FrameDecodeError, match="non-float"):
            decoder.decode_frame(
                _encoded_frame(fields=fields, values=[[value]], entities=[{"NaN": [0]}])
            )

    def test_empty_entities_on_string_column(self, decoder: JSONFrameDecoder) -> None:
        fields = [{"name": "host", "typeInfo": {"frame": "string"}}]
        frame = decoder.decode_frame(
            _encoded_frame(fields=fields, values=[["h1"]], entities=[{"NaN": []}])
        )
        assert frame.fields[0].values[0] == "h1"

    def test_entity_index_out_of_range(self, decoder: JSONFrameDecoder) -> None:
        with pytest.raises(FrameDecodeError, match="entity index"):
            decoder.decode_frame(
                _encoded_frame(values=[[1.0]], entities=[{"NaN": [3]}])
            )


class TestDecode:
    def test_decodes_all_frames_in_order(self, decoder: JSONFrameDecoder) -> None:
        response = DataResponse(
            frames=[
                json.dumps(_encoded_frame(name="first", values=[[0.0]])),
                _encoded_frame(name="second", values=[[1.0]]),
            ]
        )
        frames = decoder.decode(response)
        assert [f.name for f in frames] == ["first", "second"]

    def test_empty_response(self, decoder: JSONFrameDecoder) -> None:
        assert decoder.decode(DataResponse()) == []

    def test_one_bad_frame_fails_all(self, decoder: JSONFrameDecoder) -> None:
        response = DataResponse(frames=[_encoded_frame(values=[[0.0]]), "garbage"])
        with pytest.raises(FrameDecodeError):
            decoder.decode(response)
