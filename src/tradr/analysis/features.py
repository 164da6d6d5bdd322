"""Model feature vector built from indicators and fundamentals.

The key set and formulas must match what the prediction models were
trained on. Any change to either is a new feature-set version.
"""

from dataclasses import asdict, dataclass
from decimal import Decimal

from tradr.models import Fundamentals, IndicatorSet

FEATURE_SET_VERSION = 1

FEATURE_KEYS: tuple[str, ...] = (
    "price_ema_ratio",
    "rsi_centered",
    "bb_percent_width",
    "atr_price_ratio",
    "volatility",
    "relative_volume",
    "p_i_ratio",
    "log_market_cap",
    "relative_pe_ratio",
)

_ZERO = Decimal("0")


@dataclass(frozen=True)
class FeatureVector:
    """The nine model inputs. Only constructed when every input is defined."""

    price_ema_ratio: Decimal
    rsi_centered: Decimal
    bb_percent_width: Decimal
    atr_price_ratio: Decimal
    volatility: Decimal
    relative_volume: Decimal
    p_i_ratio: Decimal
    log_market_cap: Decimal
    relative_pe_ratio: Decimal

    def to_payload(self) -> dict[str, float]:
        """Flat JSON object of named doubles, exactly FEATURE_KEYS."""
        values = asdict(self)
        return {key: float(values[key]) for key in FEATURE_KEYS}


def relative_volume(volumes: list[Decimal] | tuple[Decimal, ...], shares: Decimal) -> Decimal | None:
    """Mean of the daily volume/shares ratios (not mean volume divided by shares)."""
    if not volumes or shares <= _ZERO:
        return None
    ratios = [v / shares for v in volumes]
    return sum(ratios, _ZERO) / Decimal(len(ratios))


def build_feature_vector(
    indicators: IndicatorSet, fundamentals: Fundamentals
) -> tuple[FeatureVector | None, list[str]]:
    """Compute the feature vector, or report which features are undefined.

    A feature is undefined when an input indicator is absent or a
    denominator is zero. Nothing is coerced to zero.

    Returns:
        ``(vector, [])`` on success, ``(None, missing_feature_names)`` otherwise.
    """
    close = indicators.latest_close
    values: dict[str, Decimal | None] = dict.fromkeys(FEATURE_KEYS)

    if indicators.ema20 is not None and indicators.ema20 != _ZERO:
        values["price_ema_ratio"] = (close - indicators.ema20) / indicators.ema20

    if indicators.rsi is not None:
        values["rsi_centered"] = indicators.rsi - 50

    if (
        indicators.bb_upper is not None
        and indicators.bb_lower is not None
        and indicators.bb_middle is not None
        and indicators.bb_middle != _ZERO
    ):
        values["bb_percent_width"] = (indicators.bb_upper - indicators.bb_lower) / indicators.bb_middle

    if indicators.atr is not None and close != _ZERO:
        values["atr_price_ratio"] = indicators.atr / close

    values["volatility"] = indicators.volatility

    values["relative_volume"] = relative_volume(
        fundamentals.volumes_20d, fundamentals.shares_outstanding
    )

    if fundamentals.ttm_eps != _ZERO:
        p_i_ratio = close / fundamentals.ttm_eps
        values["p_i_ratio"] = p_i_ratio
        if fundamentals.sp500_pe_proxy != _ZERO:
            values["relative_pe_ratio"] = p_i_ratio / fundamentals.sp500_pe_proxy

    if fundamentals.market_cap > _ZERO:
        values["log_market_cap"] = fundamentals.market_cap.ln()

    missing = [key for key in FEATURE_KEYS if values[key] is None]
    if missing:
        return None, missing
    return FeatureVector(**values), []  # type: ignore[arg-type]
