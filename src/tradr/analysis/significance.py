"""Latest-price-vs-window-mean significance test.

Not a hypothesis test: "significant" means the latest close sits more than
``percent_threshold`` percent or more than ``z_score_threshold`` sample
standard deviations away from the mean of the requested window. Both
comparisons are strict, so exactly 5.0% or exactly z = 1.5 is not
significant with the default thresholds.
"""

import calendar
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from tradr.config import SignificanceSettings
from tradr.logging import get_logger
from tradr.models import DurationUnit, PriceSeries, SignificanceResult

logger = get_logger(__name__)

_ZERO = Decimal("0")
_TWO_DP = Decimal("0.01")
_FOUR_DP = Decimal("0.0001")


def _minus_months(end: date, months: int) -> date:
    """Calendar month subtraction, clamping the day to the target month's length."""
    total = end.year * 12 + (end.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    day = min(end.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def window_start(end: date, duration: int, unit: DurationUnit) -> date:
    """First date of a window of ``duration`` units ending (inclusive) at ``end``.

    The window spans ``duration - 1`` whole units back from ``end``, so a
    duration of 1 always starts on ``end`` itself.
    """
    back = duration - 1
    if unit is DurationUnit.DAY:
        return end - timedelta(days=back)
    if unit is DurationUnit.WEEK:
        return end - timedelta(weeks=back)
    if unit is DurationUnit.MONTH:
        return _minus_months(end, back)
    return _minus_months(end, back * 12)


def _sample_stddev(values: list[Decimal], mean: Decimal) -> Decimal:
    variance = sum(((v - mean) ** 2 for v in values), _ZERO) / Decimal(len(values) - 1)
    return variance.sqrt()


class SignificanceTester:
    """Decides whether the latest close deviates meaningfully from a window mean.

    Args:
        settings: Percent and z-score thresholds.
    """

    def __init__(self, settings: SignificanceSettings | None = None) -> None:
        self._settings = settings or SignificanceSettings()

    def test(
        self,
        series: PriceSeries,
        latest_close: Decimal,
        window_start: date,
        window_end: date,
        duration: int,
        unit: DurationUnit,
    ) -> SignificanceResult:
        """Compare ``latest_close`` to the closes dated within [window_start, window_end].

        ``duration`` and ``unit`` only shape the message; the window bounds
        decide which prices are used.
        """
        prices = series.window(window_start, window_end)

        if len(prices) < 2:
            logger.info(
                "significance_insufficient_data",
                ticker=series.ticker,
                points=len(prices),
                duration=duration,
                unit=unit.value,
            )
            return SignificanceResult(
                is_significant=False,
                message=(
                    "Not enough data for statistical analysis over the specified "
                    f"period ({duration} {unit.value})."
                ),
                data_points=len(prices),
            )

        mean = sum(prices, _ZERO) / Decimal(len(prices))
        std_dev = _sample_stddev(prices, mean)

        percent_change = _ZERO
        if mean != _ZERO:
            fraction = ((latest_close - mean) / mean).quantize(_FOUR_DP, rounding=ROUND_HALF_UP)
            percent_change = (fraction * 100).quantize(_TWO_DP)

        z_score: Decimal | None = None
        if std_dev != _ZERO:
            z_score = ((latest_close - mean) / std_dev).quantize(_TWO_DP, rounding=ROUND_HALF_UP)

        by_percent = abs(percent_change) > self._settings.percent_threshold
        by_z = z_score is not None and abs(z_score) > self._settings.z_score_threshold

        message = (
            f"Latest price (${latest_close:.2f}) vs. mean (${mean:.2f}) over "
            f"{duration} {unit.value}(s): {percent_change:.2f}% change. "
            f"Std Dev: {std_dev:.2f}."
        )
        if len(prices) < duration * unit.approx_days:
            message += (
                f" (Analysis based on {len(prices)} available data points, less than "
                "requested period due to API limits)."
            )

        return SignificanceResult(
            is_significant=by_percent or by_z,
            message=message,
            data_points=len(prices),
            mean=mean,
            std_dev=std_dev,
            percent_change=percent_change,
            z_score=z_score,
            significant_by_percent=by_percent,
            significant_by_z_score=by_z,
        )
