"""Tests for technical indicators and their signal labels.

All test values use Decimal (project convention).
"""

from decimal import Decimal

import pytest

from tradr.analysis.indicators import (
    IndicatorEngine,
    atr,
    bollinger,
    bollinger_signal,
    ema,
    ema_series,
    macd,
    macd_series,
    macd_signal_label,
    realized_volatility,
    rsi,
    rsi_signal,
    sma,
)


def _d(values) -> list[Decimal]:
    return [Decimal(str(v)) for v in values]


class TestMovingAverages:
    """Tests for SMA and EMA."""

    def test_sma_last_n(self) -> None:
        """SMA uses only the last n prices."""
        assert sma(_d([100, 1, 2, 3, 4, 5]), 5) == Decimal("3")

    def test_sma_insufficient(self) -> None:
        assert sma(_d([1, 2]), 3) is None

    def test_ema_seeded_with_sma(self) -> None:
        """EMA(3): seed mean(1,2,3)=2, alpha=0.5 -> 3, 4."""
        result = ema_series(_d([1, 2, 3, 4, 5]), 3)
        assert result == [Decimal("2"), Decimal("3"), Decimal("4")]
        assert all(v.as_tuple().exponent == -12 for v in result)

    def test_ema_insufficient(self) -> None:
        assert ema(_d([1, 2]), 3) is None
        assert ema_series(_d([1, 2]), 3) == []

    def test_constant_series(self) -> None:
        """SMA = EMA = p for a constant series."""
        prices = _d([100] * 60)
        assert sma(prices, 50) == Decimal("100")
        assert ema(prices, 20) == Decimal("100")


class TestRsi:
    """Tests for Wilder RSI."""

    def test_strictly_increasing_is_100(self) -> None:
        assert rsi(_d(range(1, 21)), 14) == Decimal("100")

    def test_strictly_decreasing_is_0(self) -> None:
        assert rsi(_d(range(20, 0, -1)), 14) == Decimal("0")

    def test_requires_period_plus_one(self) -> None:
        """14 prices give 13 changes: not enough for RSI(14)."""
        assert rsi(_d(range(1, 15)), 14) is None
        assert rsi(_d(range(1, 16)), 14) is not None

    def test_known_value(self) -> None:
        """Alternating +2/-1 over the seed window: avgGain/avgLoss = 2 -> RSI = 66.67."""
        prices = [Decimal("100")]
        for i in range(14):
            prices.append(prices[-1] + (Decimal("2") if i % 2 == 0 else Decimal("-1")))
        result = rsi(prices, 14)
        assert result is not None
        assert result.quantize(Decimal("0.01")) == Decimal("66.67")

    def test_bounded(self) -> None:
        """RSI stays within [0, 100] on mixed data."""
        prices = _d([44, 44.3, 44.1, 43.6, 44.3, 44.8, 45.1, 45.4, 45.8, 46.1, 45.9, 46.2, 45.6, 46.3, 46.3, 46.0, 46.4])
        result = rsi(prices, 14)
        assert result is not None
        assert Decimal("0") <= result <= Decimal("100")


class TestMacd:
    """Tests for MACD line, signal and histogram."""

    def test_requires_35_prices(self) -> None:
        assert macd(_d(range(1, 35))) is None
        assert macd(_d(range(1, 36))) is not None

    def test_constant_series_is_flat(self) -> None:
        line, signal, histogram = macd(_d([50] * 40))  # type: ignore[misc]
        assert line == signal == histogram == Decimal("0")

    def test_rising_series_has_positive_line(self) -> None:
        """A steadily rising series keeps the fast EMA above the slow EMA."""
        line, signal, histogram = macd(_d(range(1, 61)))  # type: ignore[misc]
        assert line > 0
        assert signal > 0
        assert histogram == line - signal

    def test_series_aligned_with_latest_values(self) -> None:
        prices = _d(range(1, 61))
        lines, signals = macd_series(prices)  # type: ignore[misc]
        line, signal, _ = macd(prices)  # type: ignore[misc]

        assert len(lines) == len(signals) == 60 - 35 + 1
        assert (lines[-1], signals[-1]) == (line, signal)


# Accelerating moves keep the MACD line on the lagging side of its signal.
ACCELERATING_DECLINE = [Decimal("100") - Decimal("0.02") * i * i for i in range(60)]
ACCELERATING_RISE = [Decimal("30") + Decimal("0.02") * i * i for i in range(60)]


class TestMacdCrossover:
    """MACD labels computed from real series, not hand-picked inputs."""

    def test_accelerating_decline_is_bearish_trend(self, make_series) -> None:
        result = IndicatorEngine().compute(make_series(ACCELERATING_DECLINE))
        assert result.macd_line < result.macd_signal
        assert result.macd_signal_label == "Bearish Trend"

    def test_reversal_on_last_bar_is_bullish_crossover(self, make_series) -> None:
        result = IndicatorEngine().compute(make_series(ACCELERATING_DECLINE + [Decimal("100")]))
        assert result.macd_line > result.macd_signal
        assert result.macd_signal_label == "Bullish Crossover"

    def test_bar_after_crossover_is_bullish_trend(self, make_series) -> None:
        closes = ACCELERATING_DECLINE + [Decimal("100"), Decimal("100")]
        result = IndicatorEngine().compute(make_series(closes))
        assert result.macd_signal_label == "Bullish Trend"

    def test_accelerating_rise_is_bullish_trend(self, make_series) -> None:
        result = IndicatorEngine().compute(make_series(ACCELERATING_RISE))
        assert result.macd_signal_label == "Bullish Trend"

    def test_crash_on_last_bar_is_bearish_crossover(self, make_series) -> None:
        result = IndicatorEngine().compute(make_series(ACCELERATING_RISE + [Decimal("20")]))
        assert result.macd_line < result.macd_signal
        assert result.macd_signal_label == "Bearish Crossover"

    def test_minimum_history_has_no_prior_bar(self, make_series) -> None:
        """With exactly 35 prices there is no previous bar, so no crossover."""
        result = IndicatorEngine().compute(make_series(list(range(1, 36))))
        assert result.macd_signal_label == "Bullish Trend"


class TestBollinger:
    """Tests for Bollinger Bands."""

    def test_constant_series_collapses(self) -> None:
        assert bollinger(_d([100] * 20)) == (Decimal("100"), Decimal("100"), Decimal("100"))

    def test_population_stddev(self) -> None:
        """Window [1,3] has mean 2 and population sd 1; k=2 -> bands 0..4."""
        middle, upper, lower = bollinger(_d([1, 3]), period=2)  # type: ignore[misc]
        assert middle == Decimal("2")
        assert upper == Decimal("4")
        assert lower == Decimal("0")

    def test_insufficient(self) -> None:
        assert bollinger(_d(range(19))) is None


class TestAtrAndVolatility:
    """Tests for close-to-close ATR and realized volatility."""

    def test_atr_mean_abs_change(self) -> None:
        """True ranges |1|, |-2|, |3| -> mean 2."""
        assert atr(_d([10, 11, 9, 12]), 3) == Decimal("2")

    def test_atr_uses_last_period(self) -> None:
        assert atr(_d([1000, 10, 11, 9, 12]), 3) == Decimal("2")

    def test_atr_insufficient(self) -> None:
        assert atr(_d(range(14)), 14) is None

    def test_volatility_population(self) -> None:
        """Returns +0.1 and -0.1 -> population sd 0.1."""
        assert realized_volatility(_d([100, 110, 99])) == Decimal("0.1")

    def test_volatility_repeated_values_is_zero(self) -> None:
        assert realized_volatility(_d([5, 5, 5, 5])) == Decimal("0")

    def test_volatility_skips_non_positive_previous_close(self) -> None:
        assert realized_volatility(_d([0, 10, 11])) == Decimal("0")

    def test_volatility_needs_two_prices(self) -> None:
        assert realized_volatility(_d([5])) is None


class TestLabels:
    """Tests for indicator signal labels."""

    @pytest.mark.parametrize(
        ("value", "label"),
        [
            ("75", "Overbought"),
            ("70", "Strong Momentum"),
            ("50", "Strong Momentum"),
            ("49.9", "Weak Momentum"),
            ("30", "Weak Momentum"),
            ("29.9", "Oversold"),
        ],
    )
    def test_rsi_signal(self, value: str, label: str) -> None:
        assert rsi_signal(Decimal(value)) == label

    @pytest.mark.parametrize(
        ("line", "signal", "previous", "label"),
        [
            ("1", "0.5", ("0.9", "0.4"), "Bullish Trend"),
            ("1", "0.5", ("0.4", "0.6"), "Bullish Crossover"),
            ("1", "0.5", ("0.5", "0.5"), "Bullish Crossover"),
            ("1", "0.5", None, "Bullish Trend"),
            ("-1", "-0.5", ("-0.9", "-0.4"), "Bearish Trend"),
            ("-1", "-0.5", ("-0.4", "-0.6"), "Bearish Crossover"),
            ("-1", "-0.5", None, "Bearish Trend"),
            ("0.5", "0.5", ("0.4", "0.6"), "Bullish Zone"),
            ("-0.5", "-0.5", None, "Bearish Zone"),
            ("0", "0", None, "Neutral"),
        ],
    )
    def test_macd_signal_label(self, line: str, signal: str, previous, label: str) -> None:
        prior = (Decimal(previous[0]), Decimal(previous[1])) if previous else None
        assert macd_signal_label(Decimal(line), Decimal(signal), prior) == label

    def test_bollinger_signal(self) -> None:
        upper, lower = Decimal("110"), Decimal("90")
        assert bollinger_signal(Decimal("111"), upper, lower) == "Upper Band Breakout (Bullish)"
        assert bollinger_signal(Decimal("89"), upper, lower) == "Lower Band Bounce (Bearish)"
        assert bollinger_signal(Decimal("110"), upper, lower) == "Within Bands (Neutral)"

    def test_absent_inputs_give_no_label(self) -> None:
        assert rsi_signal(None) is None
        assert macd_signal_label(None, Decimal("1")) is None
        assert bollinger_signal(Decimal("1"), None, None) is None


class TestIndicatorEngine:
    """Tests for the full IndicatorSet."""

    def test_100_points_populates_everything(self, make_series) -> None:
        closes = [100 + (i % 7) - (i % 3) for i in range(100)]
        result = IndicatorEngine().compute(make_series(closes))

        for name in (
            "sma50", "ema20", "rsi", "macd_line", "macd_signal", "macd_histogram",
            "bb_middle", "bb_upper", "bb_lower", "atr", "volatility",
        ):
            assert getattr(result, name) is not None, name
        assert result.latest_close == Decimal(str(closes[-1]))
        assert result.rsi_signal is not None
        assert result.macd_signal_label is not None
        assert result.bollinger_signal is not None

    def test_10_points_leaves_period_indicators_absent(self, make_series) -> None:
        """Insufficient history is None, never zero."""
        result = IndicatorEngine().compute(make_series([100 + i for i in range(10)]))

        for name in ("sma50", "ema20", "rsi", "macd_line", "bb_middle", "atr"):
            assert getattr(result, name) is None, name
        assert result.volatility is not None
        assert result.rsi_signal is None
        assert result.macd_signal_label is None
        assert result.bollinger_signal is None

    def test_constant_series_bands_collapse(self, make_series) -> None:
        result = IndicatorEngine().compute(make_series([42] * 60))
        assert result.sma50 == result.ema20 == Decimal("42")
        assert result.bb_upper == result.bb_lower == result.bb_middle == Decimal("42")
        assert result.volatility == Decimal("0")
