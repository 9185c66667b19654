"""
In-memory tabular series model.

A ``Frame`` is an ordered collection of equal-length ``Field`` columns, the
same shape the transform backend speaks (Grafana data frames). Field values
are held in numpy arrays; nullable element types use ``numpy.ma`` masked
arrays where a masked entry is a null.
"""

from __future__ import annotations

import json
import math
import numbers
from typing import Any, Iterable, NamedTuple, Sequence

import numpy as np

from ngalert.eval.errors import FieldReadError

# ---------------------------------------------------------------------------
# Field Types
# ---------------------------------------------------------------------------

# Element type name (wire ``typeInfo.frame``) -> numpy dtype
_NUMPY_DTYPES: dict[str, Any] = {
    "int8": np.int8,
    "int16": np.int16,
    "int32": np.int32,
    "int64": np.int64,
    "uint8": np.uint8,
    "uint16": np.uint16,
    "uint32": np.uint32,
    "uint64": np.uint64,
    "float32": np.float32,
    "float64": np.float64,
    "string": object,
    "bool": np.bool_,
    "time.Time": "datetime64[ms]",
}

_NUMERIC_TYPES = frozenset(
    name for name in _NUMPY_DTYPES if name.startswith(("int", "uint", "float"))
)

# Placeholder stored under the mask for null entries
_NULL_FILL: dict[str, Any] = {
    "string": "",
    "bool": False,
    "time.Time": 0,
}


class FieldType(NamedTuple):
    """Element type of a field plus whether it admits nulls."""

    frame: str
    nullable: bool = False

    def __str__(self) -> str:
        return f"[]*{self.frame}" if self.nullable else f"[]{self.frame}"

    @property
    def numeric(self) -> bool:
        return self.frame in _NUMERIC_TYPES


def field_type(frame: str, nullable: bool = False) -> FieldType:
    """Build a FieldType, rejecting element types the model cannot hold."""
    if frame not in _NUMPY_DTYPES:
        raise ValueError(f"unsupported field element type: {frame!r}")
    return FieldType(frame, nullable)


FLOAT64 = FieldType("float64")
NULLABLE_FLOAT64 = FieldType("float64", nullable=True)
STRING = FieldType("string")
NULLABLE_STRING = FieldType("string", nullable=True)
BOOL = FieldType("bool")
TIME = FieldType("time.Time")


# ---------------------------------------------------------------------------
# Labels
# ---------------------------------------------------------------------------


def format_labels(labels: dict[str, str]) -> str:
    """Render labels as ``k=v, k2=v2`` sorted by key, for display."""
    return ", ".join(f"{k}={labels[k]}" for k in sorted(labels))


def canonical_labels(labels: dict[str, str]) -> str:
    """Render labels as a sorted JSON object.

    Unlike ``format_labels`` this form cannot collide when keys or values
    contain ``=`` or ``, ``, so it is used as the identity of a label set.
    """
    return json.dumps(labels, sort_keys=True, separators=(",", ":"))


# ---------------------------------------------------------------------------
# Field / Frame
# ---------------------------------------------------------------------------


def _cell_ok(value: Any, frame: str) -> bool:
    if isinstance(value, (bool, np.bool_)):
        return frame == "bool"
    if frame.startswith("float"):
        return isinstance(value, numbers.Real)
    if frame.startswith(("int", "uint")) or frame == "time.Time":
        return isinstance(value, numbers.Integral)
    if frame == "string":
        return isinstance(value, str)
    return False


def _to_array(values: Sequence[Any], ftype: FieldType) -> np.ndarray:
    dtype = _NUMPY_DTYPES[ftype.frame]
    mask = [v is None for v in values]

    if not ftype.nullable and any(mask):
        raise ValueError(f"null value in non-nullable {ftype} field")
    # numpy would coerce "0", False or [0] into a number
    for i, (v, m) in enumerate(zip(values, mask)):
        if not m and not _cell_ok(v, ftype.frame):
            raise ValueError(f"value {v!r} at index {i} does not fit a {ftype} field")

    fill = _NULL_FILL.get(ftype.frame, 0)
    filled = [fill if m else v for v, m in zip(values, mask)]
    arr = np.array(filled, dtype=dtype)
    if arr.ndim != 1:
        raise ValueError(f"{ftype} field values must be one-dimensional")
    if not ftype.nullable:
        return arr
    return np.ma.masked_array(arr, mask=np.array(mask, dtype=bool))


class Field:
    """A named, labeled column of a Frame.

    Parameters
    ----------
    name : str
        Field name.
    values : sequence
        Column values. ``None`` marks a null and is only accepted when
        ``ftype`` is nullable. A prepared numpy array is used as is.
    ftype : FieldType
        Element type of the column.
    labels : dict[str, str] or None
        Dimensional identity of the series held by this column.
    """

    def __init__(
        self,
        name: str,
        values: Sequence[Any] | np.ndarray,
        ftype: FieldType,
        labels: dict[str, str] | None = None,
    ) -> None:
        self.name = name
        self.type = ftype
        self.labels: dict[str, str] = dict(labels or {})
        if isinstance(values, np.ndarray):
            self.values = values
        else:
            self.values = _to_array(values, ftype)

    def __len__(self) -> int:
        return len(self.values)

    def __repr__(self) -> str:
        return (
            f"Field(name={self.name!r}, type={self.type}, "
            f"labels={{{format_labels(self.labels)}}}, len={len(self)})"
        )

    def is_null(self, idx: int) -> bool:
        if not self.type.nullable:
            return False
        return bool(np.ma.getmaskarray(self.values)[idx])

    def float_at(self, idx: int) -> float:
        """Return the value at ``idx`` as a float.

        Null entries of nullable numeric fields read as NaN.

        Raises
        ------
        FieldReadError
            If the field is not numeric or ``idx`` is out of range.
        """
        if not self.type.numeric:
            raise FieldReadError(
                f"field {self.name!r} of type {self.type} cannot be read as float"
            )
        if not 0 <= idx < len(self):
            raise FieldReadError(
                f"index {idx} out of range for field {self.name!r} "
                f"of length {len(self)}"
            )
        if self.is_null(idx):
            return math.nan
        return float(self.values[idx])


class Frame:
    """An ordered collection of equal-length fields.

    Raises
    ------
    ValueError
        If the fields do not all have the same length.
    """

    def __init__(
        self,
        name: str = "",
        fields: Iterable[Field] = (),
        ref_id: str = "",
    ) -> None:
        self.name = name
        self.ref_id = ref_id
        self.fields: list[Field] = list(fields)

        lengths = {len(f) for f in self.fields}
        if len(lengths) > 1:
            raise ValueError(
                f"frame {name!r} has fields of differing lengths: {sorted(lengths)}"
            )

    def row_len(self) -> int:
        if not self.fields:
            return 0
        return len(self.fields[0])

    def __repr__(self) -> str:
        return (
            f"Frame(name={self.name!r}, fields={len(self.fields)}, "
            f"rows={self.row_len()})"
        )
