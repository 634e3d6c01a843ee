"""TELEMON — Status Engine.

Classifies a current value against its control limits.
"""

from typing import Optional

from telemon.models.snapshot_models import MetricStatus


def classify_status(
    value: Optional[float],
    ucl: float,
    lcl: Optional[float],
    critical_threshold: Optional[float],
) -> MetricStatus:
    """Map a value to unknown / normal / warning / critical.

    The critical rule is checked first: a value that is both outside
    [lcl, ucl] and past the critical rule is critical, not warning.
    """
    if value is None:
        return MetricStatus.UNKNOWN

    if critical_threshold is not None and (
        value > critical_threshold or (lcl is not None and value < lcl / 2)
    ):
        return MetricStatus.CRITICAL

    if value > ucl or (lcl is not None and value < lcl):
        return MetricStatus.WARNING

    return MetricStatus.NORMAL
