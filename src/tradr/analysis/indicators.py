"""Technical indicators over a daily close series (oldest first).

Every function returns None when the series is too short for the requested
period. Zero is a legitimate indicator value and is never used to mean
"not enough data".

CRITICAL: All computations use Decimal. Never use float.
"""

from decimal import Decimal

from tradr.config import IndicatorSettings
from tradr.logging import get_logger
from tradr.models import IndicatorSet, PriceSeries

logger = get_logger(__name__)

#: Precision limit for smoothed intermediate results (12 decimal places).
_QUANTIZE = Decimal("0.000000000001")

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


def _mean(values: list[Decimal]) -> Decimal:
    return sum(values, _ZERO) / Decimal(len(values))


def _population_stddev(values: list[Decimal]) -> Decimal:
    mean = _mean(values)
    variance = sum(((v - mean) ** 2 for v in values), _ZERO) / Decimal(len(values))
    return variance.sqrt()


def sma(prices: list[Decimal], period: int) -> Decimal | None:
    """Simple moving average of the last ``period`` prices."""
    if period <= 0 or len(prices) < period:
        return None
    return _mean(prices[-period:])


def ema_series(values: list[Decimal], period: int) -> list[Decimal]:
    """Running EMA, seeded with the SMA of the first ``period`` values.

    Uses alpha = 2 / (period + 1). The first element corresponds to
    ``values[period - 1]``; the result is empty when there are fewer than
    ``period`` values.
    """
    if period <= 0 or len(values) < period:
        return []

    alpha = Decimal("2") / (Decimal(period) + Decimal("1"))
    one_minus_alpha = Decimal("1") - alpha

    ema = [_mean(values[:period]).quantize(_QUANTIZE)]
    for v in values[period:]:
        ema.append((alpha * v + one_minus_alpha * ema[-1]).quantize(_QUANTIZE))
    return ema


def ema(prices: list[Decimal], period: int) -> Decimal | None:
    """Latest EMA value, or None with fewer than ``period`` prices."""
    series = ema_series(prices, period)
    return series[-1] if series else None


def rsi(prices: list[Decimal], period: int = 14) -> Decimal | None:
    """Relative Strength Index with Wilder smoothing.

    Averages are seeded with the simple mean of the first ``period``
    changes, then smoothed as ``(current + avg * (period - 1)) / period``.
    Returns 100 when the average loss is zero (including a flat series)
    and 0 when only the average gain is zero. Requires ``period + 1`` prices.
    """
    if period <= 0 or len(prices) < period + 1:
        return None

    changes = [cur - prev for prev, cur in zip(prices, prices[1:])]
    gains = [max(c, _ZERO) for c in changes]
    losses = [max(-c, _ZERO) for c in changes]

    p = Decimal(period)
    avg_gain = _mean(gains[:period])
    avg_loss = _mean(losses[:period])
    for gain, loss in zip(gains[period:], losses[period:]):
        avg_gain = ((gain + avg_gain * (p - 1)) / p).quantize(_QUANTIZE)
        avg_loss = ((loss + avg_loss * (p - 1)) / p).quantize(_QUANTIZE)

    if avg_loss == _ZERO:
        return _HUNDRED
    if avg_gain == _ZERO:
        return _ZERO
    rs = avg_gain / avg_loss
    return _HUNDRED - _HUNDRED / (Decimal("1") + rs)


def macd_series(
    prices: list[Decimal],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> tuple[list[Decimal], list[Decimal]] | None:
    """MACD line and signal line histories, aligned index for index.

    The MACD line is the running difference EMA(fast) - EMA(slow), defined
    from the ``slow``-th price on. The signal line is EMA(signal) of that
    series. Requires ``slow + signal`` prices; the last element of each
    list belongs to the latest price.
    """
    if len(prices) < slow + signal:
        return None

    fast_series = ema_series(prices, fast)
    slow_series = ema_series(prices, slow)
    # Align both series on the price index where the slow EMA starts.
    offset = slow - fast
    line_series = [f - s for f, s in zip(fast_series[offset:], slow_series)]

    signal_series = ema_series(line_series, signal)
    if not signal_series:
        return None
    return line_series[signal - 1 :], signal_series


def macd(
    prices: list[Decimal],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> tuple[Decimal, Decimal, Decimal] | None:
    """MACD line, signal line and histogram for the latest price, or None."""
    history = macd_series(prices, fast, slow, signal)
    if history is None:
        return None
    line, signal_value = history[0][-1], history[1][-1]
    return line, signal_value, line - signal_value


def bollinger(
    prices: list[Decimal], period: int = 20, k: Decimal = Decimal("2")
) -> tuple[Decimal, Decimal, Decimal] | None:
    """Bollinger Bands over the last ``period`` prices (population stddev).

    Returns:
        ``(middle, upper, lower)``, or None.
    """
    if period <= 0 or len(prices) < period:
        return None
    window = prices[-period:]
    middle = _mean(window)
    width = k * _population_stddev(window)
    return middle, middle + width, middle - width


def atr(prices: list[Decimal], period: int = 14) -> Decimal | None:
    """Average True Range approximated from closes only.

    The daily feed carries no high/low, so the true range of day i is taken
    as ``|close[i] - close[i-1]|``. This is NOT the canonical high/low/close
    ATR. Requires ``period + 1`` prices.
    """
    if period <= 0 or len(prices) < period + 1:
        return None
    tail = prices[-(period + 1) :]
    ranges = [abs(cur - prev) for prev, cur in zip(tail, tail[1:])]
    return _mean(ranges)


def realized_volatility(prices: list[Decimal]) -> Decimal | None:
    """Population stddev of day-over-day fractional returns over the full series.

    Returns whose previous close is not positive are skipped.
    """
    if len(prices) < 2:
        return None
    returns = [(cur - prev) / prev for prev, cur in zip(prices, prices[1:]) if prev > _ZERO]
    if not returns:
        return None
    return _population_stddev(returns)


# ──────────────────────────────────────────────────────────────
# Signal labels
# ──────────────────────────────────────────────────────────────


def rsi_signal(value: Decimal | None) -> str | None:
    if value is None:
        return None
    if value > 70:
        return "Overbought"
    if value < 30:
        return "Oversold"
    if 50 <= value <= 70:
        return "Strong Momentum"
    if 30 <= value < 50:
        return "Weak Momentum"
    return "Neutral"


def macd_signal_label(
    line: Decimal | None,
    signal: Decimal | None,
    previous: tuple[Decimal, Decimal] | None = None,
) -> str | None:
    """Classify the MACD state from line vs signal and the zero line.

    ``previous`` is the prior bar's ``(line, signal)``. When the line sits
    on the other side of (or on) the signal there, the latest bar is a
    crossover; otherwise the relationship is an established trend.
    """
    if line is None or signal is None:
        return None
    if line > signal:
        if previous is not None and previous[0] <= previous[1]:
            return "Bullish Crossover"
        return "Bullish Trend"
    if line < signal:
        if previous is not None and previous[0] >= previous[1]:
            return "Bearish Crossover"
        return "Bearish Trend"
    if line > _ZERO and signal > _ZERO:
        return "Bullish Zone"
    if line < _ZERO and signal < _ZERO:
        return "Bearish Zone"
    return "Neutral"


def bollinger_signal(
    price: Decimal, upper: Decimal | None, lower: Decimal | None
) -> str | None:
    if upper is None or lower is None:
        return None
    if price > upper:
        return "Upper Band Breakout (Bullish)"
    if price < lower:
        return "Lower Band Bounce (Bearish)"
    return "Within Bands (Neutral)"


class IndicatorEngine:
    """Computes the full IndicatorSet for one PriceSeries.

    Pure and thread-safe: the orchestrator runs it on a worker thread.

    Args:
        settings: Indicator periods.
    """

    def __init__(self, settings: IndicatorSettings | None = None) -> None:
        self._settings = settings or IndicatorSettings()

    def compute(self, series: PriceSeries) -> IndicatorSet:
        s = self._settings
        closes = series.closes
        latest = closes[-1]

        rsi_value = rsi(closes, s.rsi_period)
        line: Decimal | None = None
        signal: Decimal | None = None
        histogram: Decimal | None = None
        previous: tuple[Decimal, Decimal] | None = None
        history = macd_series(closes, s.macd_fast, s.macd_slow, s.macd_signal)
        if history is not None:
            lines, signals = history
            line, signal = lines[-1], signals[-1]
            histogram = line - signal
            if len(lines) > 1:
                previous = (lines[-2], signals[-2])
        bands = bollinger(closes, s.bollinger_period, s.bollinger_k)
        middle, upper, lower = bands if bands else (None, None, None)

        indicators = IndicatorSet(
            latest_close=latest,
            sma50=sma(closes, s.sma_period),
            ema20=ema(closes, s.ema_period),
            rsi=rsi_value,
            macd_line=line,
            macd_signal=signal,
            macd_histogram=histogram,
            bb_middle=middle,
            bb_upper=upper,
            bb_lower=lower,
            atr=atr(closes, s.atr_period),
            volatility=realized_volatility(closes),
            rsi_signal=rsi_signal(rsi_value),
            macd_signal_label=macd_signal_label(line, signal, previous),
            bollinger_signal=bollinger_signal(latest, upper, lower),
        )

        logger.debug(
            "indicators_computed",
            ticker=series.ticker,
            points=len(closes),
            missing=[
                name
                for name in ("sma50", "ema20", "rsi", "macd_line", "bb_middle", "atr", "volatility")
                if getattr(indicators, name) is None
            ],
        )
        return indicators
