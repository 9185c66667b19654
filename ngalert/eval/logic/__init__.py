"""
Core evaluation logic.

Public API:
    - ``evaluate_execution_result`` -- Validates decoded frames and derives
      a Normal/Alerting state per uniquely-labeled frame.
    - ``as_data_frame`` -- Projects evaluation results into a display frame.
"""

from ngalert.eval.logic.evaluator import evaluate_execution_result
from ngalert.eval.logic.presenter import as_data_frame

__all__ = [
    "evaluate_execution_result",
    "as_data_frame",
]
