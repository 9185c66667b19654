"""
Error taxonomy for alert condition evaluation.

Every failure aborts the evaluation attempt it occurs in. Nothing here is
retried internally and no error is ever downgraded to a ``Normal`` state.

Hierarchy::

    EvalError
    ├── InvalidConditionError      empty query list, raised before any remote call
    ├── RemoteExecutionError       transform backend failed (remote origin)
    │   └── ExecutionCancelledError    caller cancelled or deadline exhausted
    ├── FrameDecodeError           encoded frames could not be decoded
    ├── NoResultsError             requested ref_id yielded zero frames
    ├── FieldReadError             a single value could not be read
    └── ShapeViolationError        decoded frame breaks the evaluation contract
        ├── MultiRowError
        ├── MultiFieldError
        ├── WrongTypeError
        └── DuplicateLabelSetError
"""

from __future__ import annotations


class EvalError(Exception):
    """Base class for all evaluation errors."""

    pass


class InvalidConditionError(EvalError):
    """Raised when a Condition has no queries or expressions."""

    pass


class RemoteExecutionError(EvalError):
    """Raised when the transform backend call fails.

    The original exception raised by the client, if any, is chained as
    ``__cause__``.
    """

    pass


class ExecutionCancelledError(RemoteExecutionError):
    """Raised when the execution context was cancelled or its deadline passed."""

    pass


class FrameDecodeError(EvalError):
    """Raised when a raw encoded frame payload is malformed."""

    pass


class NoResultsError(EvalError):
    """Raised when the condition's ref_id produced no frames."""

    pass


class FieldReadError(EvalError):
    """Raised when a value cannot be read from a field."""

    pass


class ShapeViolationError(EvalError):
    """A decoded frame violates the single-row / single-field /
    nullable-float / unique-label contract.

    Parameters
    ----------
    frame_name : str
        Declared name of the offending frame.
    rule : str
        Human readable description of the broken rule.
    """

    def __init__(self, frame_name: str, rule: str) -> None:
        super().__init__(f"invalid frame {frame_name!r}: {rule}")
        self.frame_name = frame_name
        self.rule = rule


class MultiRowError(ShapeViolationError):
    """Frame has more than one row."""

    def __init__(self, frame_name: str, row_len: int) -> None:
        super().__init__(frame_name, f"row length: {row_len}")
        self.row_len = row_len


class MultiFieldError(ShapeViolationError):
    """Frame does not have exactly one field."""

    def __init__(self, frame_name: str, field_count: int) -> None:
        super().__init__(frame_name, f"field length {field_count}")
        self.field_count = field_count


class WrongTypeError(ShapeViolationError):
    """Frame's field is not a nullable float64 field."""

    def __init__(self, frame_name: str, field_type: object) -> None:
        super().__init__(frame_name, f"field type {field_type}")
        self.field_type = field_type


class DuplicateLabelSetError(ShapeViolationError):
    """Two frames in one execution result share the same label set."""

    def __init__(self, frame_name: str, labels: str) -> None:
        super().__init__(
            frame_name,
            f"frames cannot uniquely be identified by its labels: {labels!r}",
        )
        self.labels = labels
