"""TELEMON — Trend Engine.

Moving-slope heuristic over the last few points of a series.
Produces one of the Trend labels shown on the dashboard cards.
"""

from typing import Sequence, Union

from telemon.models.snapshot_models import TimeSeriesPoint, Trend

TREND_WINDOW = 5
STEADY_EPSILON = 0.01
MODERATE_RATE = 0.2
RAPID_RATE = 0.5


def _sign(x: float) -> int:
    return (x > 0) - (x < 0)


def _value(point: Union[TimeSeriesPoint, float]) -> float:
    if isinstance(point, TimeSeriesPoint):
        return point.value
    return float(point)


def classify_trend(series: Sequence[Union[TimeSeriesPoint, float]]) -> Trend:
    """Classify the direction of the last five values.

    Fewer than five points is reported as steady, not unknown.
    """
    if len(series) < TREND_WINDOW:
        return Trend.STEADY

    recent = [_value(p) for p in series[-TREND_WINDOW:]]
    differences = [b - a for a, b in zip(recent, recent[1:])]

    # Zero is its own sign and breaks consistency with any nonzero neighbour
    reference = _sign(differences[0])
    if any(_sign(d) != reference for d in differences):
        return Trend.FLUCTUATING

    avg_difference = sum(differences) / len(differences)
    rate = abs(avg_difference)
    if rate < STEADY_EPSILON:
        return Trend.STEADY

    if avg_difference > 0:
        if rate > RAPID_RATE:
            return Trend.RAPIDLY_RISING
        if rate > MODERATE_RATE:
            return Trend.RISING
        return Trend.SLOW_RISING

    if rate > RAPID_RATE:
        return Trend.RAPIDLY_FALLING
    if rate > MODERATE_RATE:
        return Trend.FALLING
    return Trend.SLOW_FALLING
