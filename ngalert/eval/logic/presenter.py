"""
Result Presenter: projects evaluation results into a display frame.

The frame has a single row and one bool column per alert instance, true
when the instance is not Normal. It is for display only; ``EvalResult.state``
remains the source of truth.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from ngalert.eval.frame import BOOL, Field, Frame
from ngalert.eval.models import EvalResult, State


def as_data_frame(results: Sequence[EvalResult]) -> Frame:
    """Build the display frame, one column per result in input order."""
    fields = [
        Field(
            "",
            np.array([r.state != State.NORMAL], dtype=bool),
            BOOL,
            r.instance,
        )
        for r in results
    ]
    return Frame("", fields)
