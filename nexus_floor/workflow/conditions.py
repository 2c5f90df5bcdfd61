"""
Condition Evaluator.

Maps (value, operator, threshold[, threshold_max]) to a trigger decision.
Fail-closed: an unknown operator or any evaluation error yields False, so a
bad reading can neither raise a false alert nor crash the tick loop.
"""

import logging
from typing import Callable, Dict, Optional, Union

from nexus_floor.models.workflow import Operator

logger = logging.getLogger(__name__)

EQUALITY_TOLERANCE = 1e-4


def _between(value: float, low: float, high: float) -> bool:
    return low <= value <= high


_COMPARATORS: Dict[str, Callable[[float, float, float], bool]] = {
    Operator.GT.value: lambda v, t, _: v > t,
    Operator.LT.value: lambda v, t, _: v < t,
    Operator.GTE.value: lambda v, t, _: v >= t,
    Operator.LTE.value: lambda v, t, _: v <= t,
    Operator.EQ.value: lambda v, t, _: abs(v - t) < EQUALITY_TOLERANCE,
    Operator.NE.value: lambda v, t, _: abs(v - t) >= EQUALITY_TOLERANCE,
    Operator.BETWEEN.value: lambda v, t, hi: _between(v, t, hi),
    Operator.NOT_BETWEEN.value: lambda v, t, hi: not _between(v, t, hi),
}


def evaluate(
    value: float,
    operator: Union[Operator, str],
    threshold: float,
    threshold_max: Optional[float] = None,
) -> bool:
    """
    Return True when the condition holds (an alert should trigger).

    Range operators are inclusive on both ends; a missing threshold_max
    collapses the range to the single point `threshold`.
    """
    op = operator.value if isinstance(operator, Operator) else operator
    comparator = _COMPARATORS.get(op) if isinstance(op, str) else None
    if comparator is None:
        logger.warning("Unknown operator: %r", operator)
        return False

    upper = threshold if threshold_max is None else threshold_max
    try:
        return bool(comparator(float(value), float(threshold), float(upper)))
    except Exception as e:
        logger.error(
            "Error evaluating condition %r %s %r: %s", value, op, threshold, e
        )
        return False
