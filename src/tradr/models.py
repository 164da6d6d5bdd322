"""Shared data models for the stock analysis engine.

All prices, volumes and indicator values use Decimal. Floats appear only in
the feature vector payload sent to the external predictor.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any


class DurationUnit(str, Enum):
    """Unit of the statistical analysis window."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"

    @property
    def approx_days(self) -> int:
        """Calendar days per unit, used to detect short windows."""
        return _APPROX_DAYS[self]


_APPROX_DAYS = {
    DurationUnit.DAY: 1,
    DurationUnit.WEEK: 7,
    DurationUnit.MONTH: 30,
    DurationUnit.YEAR: 365,
}


@dataclass(frozen=True)
class PriceBar:
    """One trading day of the daily series."""

    date: date
    close: Decimal
    volume: Decimal


@dataclass(frozen=True)
class PriceSeries:
    """Ordered daily close/volume series, oldest first.

    Built once per analysis by PriceHistoryStore.normalize(). Dates are
    strictly increasing with no duplicates.
    """

    ticker: str
    bars: tuple[PriceBar, ...]
    volume_window: int = 20

    def __post_init__(self) -> None:
        for prev, cur in zip(self.bars, self.bars[1:]):
            if cur.date <= prev.date:
                raise ValueError(
                    f"PriceSeries dates must be strictly increasing: {prev.date} -> {cur.date}"
                )

    def __len__(self) -> int:
        return len(self.bars)

    @property
    def closes(self) -> list[Decimal]:
        return [b.close for b in self.bars]

    @property
    def dates(self) -> list[date]:
        return [b.date for b in self.bars]

    @property
    def latest(self) -> PriceBar:
        return self.bars[-1]

    @property
    def volumes_20d(self) -> list[Decimal]:
        """Trailing volume window (last ``volume_window`` bars), oldest first."""
        return [b.volume for b in self.bars[-self.volume_window :]]

    def window(self, start: date, end: date) -> list[Decimal]:
        """Closes whose date falls within [start, end], inclusive."""
        return [b.close for b in self.bars if start <= b.date <= end]


@dataclass(frozen=True)
class Fundamentals:
    """Fundamental inputs joined from the upstream fetches.

    Every field except ``sentiment`` is required: the orchestrator never
    builds this object from a partial join.
    """

    market_cap: Decimal
    ttm_eps: Decimal
    shares_outstanding: Decimal
    latest_net_income: Decimal
    sp500_pe_proxy: Decimal
    latest_volume: Decimal
    volumes_20d: tuple[Decimal, ...]
    sentiment: Decimal | None = None


@dataclass(frozen=True)
class IndicatorSet:
    """Technical indicator values and their signal labels.

    None means the series was too short for that indicator.
    """

    latest_close: Decimal
    sma50: Decimal | None = None
    ema20: Decimal | None = None
    rsi: Decimal | None = None
    macd_line: Decimal | None = None
    macd_signal: Decimal | None = None
    macd_histogram: Decimal | None = None
    bb_middle: Decimal | None = None
    bb_upper: Decimal | None = None
    bb_lower: Decimal | None = None
    atr: Decimal | None = None
    volatility: Decimal | None = None
    rsi_signal: str | None = None
    macd_signal_label: str | None = None
    bollinger_signal: str | None = None


@dataclass(frozen=True)
class SignificanceResult:
    """Outcome of the latest-price-vs-window-mean test."""

    is_significant: bool
    message: str
    data_points: int
    mean: Decimal | None = None
    std_dev: Decimal | None = None
    percent_change: Decimal | None = None
    z_score: Decimal | None = None
    significant_by_percent: bool = False
    significant_by_z_score: bool = False

    @property
    def insufficient(self) -> bool:
        return self.mean is None


@dataclass(frozen=True)
class ScoreResult:
    """Score produced by one Scorer implementation.

    ``score`` and ``category`` are None when the selected scorer could not
    run (e.g. the feature vector was unavailable); ``message`` says why.
    """

    scorer: str
    score: int | None
    category: str | None
    raw_score: Decimal | None = None
    probability: float | None = None
    prediction: int | None = None
    contributions: dict[str, Decimal] = field(default_factory=dict)
    message: str | None = None


@dataclass(frozen=True)
class HistoricalPrice:
    """Date/close pair returned to the caller for charting."""

    date: date
    close: Decimal


@dataclass
class AnalysisResult:
    """Terminal artifact of one analysis request. Not persisted."""

    ticker: str
    duration: int
    unit: DurationUnit
    latest_price: Decimal
    indicators: IndicatorSet
    significance: SignificanceResult
    score: ScoreResult
    fundamentals: Fundamentals
    historical_prices: list[HistoricalPrice]
    message: str

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation with the public camelCase field names."""
        ind = self.indicators
        sig = self.significance
        return {
            "receivedTicker": self.ticker,
            "receivedDurationValue": self.duration,
            "receivedDurationUnit": self.unit.value,
            "latestPrice": _num(self.latest_price),
            "message": self.message,
            "isStatisticallySignificant": sig.is_significant,
            "pValue": None,
            "percentageChangeFromMean": _num(sig.percent_change),
            "signalScore": self.score.score,
            "scoreInterpretation": self.score.category,
            "probability": self.score.probability,
            "prediction": self.score.prediction,
            "scorer": self.score.scorer,
            "indicators": {
                "sma50": _num(ind.sma50),
                "ema20": _num(ind.ema20),
                "rsi": _num(ind.rsi),
                "macdLine": _num(ind.macd_line),
                "macdSignal": _num(ind.macd_signal),
                "macdHistogram": _num(ind.macd_histogram),
                "bbMiddle": _num(ind.bb_middle),
                "bbUpper": _num(ind.bb_upper),
                "bbLower": _num(ind.bb_lower),
                "atr": _num(ind.atr),
                "volatility": _num(ind.volatility),
                "rsiSignal": ind.rsi_signal,
                "macdSignalInterpretation": ind.macd_signal_label,
                "bollingerBandSignal": ind.bollinger_signal,
                "latestClosePrice": _num(ind.latest_close),
            },
            "fundamentals": {
                "marketCap": _num(self.fundamentals.market_cap),
                "ttmEps": _num(self.fundamentals.ttm_eps),
                "sharesOutstanding": _num(self.fundamentals.shares_outstanding),
                "latestNetIncome": _num(self.fundamentals.latest_net_income),
                "sp500PeProxy": _num(self.fundamentals.sp500_pe_proxy),
                "latestVolume": _num(self.fundamentals.latest_volume),
                "sentiment": _num(self.fundamentals.sentiment),
            },
            "historicalPrices": [
                {"date": hp.date.isoformat(), "close": _num(hp.close)}
                for hp in self.historical_prices
            ],
        }


def _num(value: Decimal | None) -> float | None:
    """Convert Decimal to float for JSON, preserving None."""
    return float(value) if value is not None else None
