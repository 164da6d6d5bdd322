"""Configuration system using pydantic-settings with environment variable loading."""

from decimal import Decimal
from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class AlphaVantageSettings(BaseSettings):
    """Alpha Vantage connection settings.

    Two independent key pools: ``primary_keys`` serve the ticker's own daily
    series, ``secondary_keys`` serve the SPY benchmark and news sentiment.
    Lists are read from the environment as JSON, e.g.
    ``ALPHAVANTAGE_PRIMARY_KEYS='["key-a", "key-b"]'``.
    """

    model_config = SettingsConfigDict(env_prefix="ALPHAVANTAGE_")

    base_url: str = "https://www.alphavantage.co"
    primary_keys: list[SecretStr] = []
    secondary_keys: list[SecretStr] = []
    benchmark_ticker: str = "SPY"
    output_size: Literal["compact", "full"] = "compact"


class FinnhubSettings(BaseSettings):
    """Finnhub connection settings (market cap and TTM EPS)."""

    model_config = SettingsConfigDict(env_prefix="FINNHUB_")

    base_url: str = "https://finnhub.io/api/v1"
    api_keys: list[SecretStr] = []


class FmpSettings(BaseSettings):
    """Financial Modeling Prep connection settings (shares outstanding)."""

    model_config = SettingsConfigDict(env_prefix="FMP_")

    base_url: str = "https://financialmodelingprep.com/stable"
    api_keys: list[SecretStr] = []


class FxSettings(BaseSettings):
    """Currency conversion endpoint for non-USD market caps."""

    model_config = SettingsConfigDict(env_prefix="FX_")

    base_url: str = "https://api.exchangerate.host"


class UpstreamSettings(BaseSettings):
    """Shared HTTP and retry behavior for all upstream data sources."""

    model_config = SettingsConfigDict(env_prefix="UPSTREAM_")

    timeout_seconds: float = 10.0
    retry_backoff_base: float = 0.0  # 0 keeps rotation immediate
    retry_backoff_factor: float = 2.0
    retry_jitter: float = 0.0


class NetIncomeSettings(BaseSettings):
    """Local SQLite store holding forward-filled SimFin net income."""

    model_config = SettingsConfigDict(env_prefix="NET_INCOME_")

    db_path: str = "data/simfin.db"


class PredictorSettings(BaseSettings):
    """External prediction service settings."""

    model_config = SettingsConfigDict(env_prefix="PREDICTOR_")

    base_url: str = "http://localhost:5000"
    timeout_seconds: float = 10.0
    default_horizon_days: int = 30
    params_path: str = "/get_model_params"
    endpoints: dict[int, str] = {
        7: "/predict/7day",
        30: "/predict/30day",
        60: "/predict/60day",
        180: "/predict/180day",
        365: "/predict/365day",
        730: "/predict/730day",  # 2 years
        1460: "/predict/1460day",  # 4 years
    }


class IndicatorSettings(BaseSettings):
    """Indicator periods."""

    model_config = SettingsConfigDict(env_prefix="INDICATOR_")

    sma_period: int = 50
    ema_period: int = 20
    rsi_period: int = 14
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    bollinger_period: int = 20
    bollinger_k: Decimal = Decimal("2")
    atr_period: int = 14
    volume_window: int = 20


class SignificanceSettings(BaseSettings):
    """Thresholds for the latest-price-vs-mean significance test."""

    model_config = SettingsConfigDict(env_prefix="SIGNIFICANCE_")

    percent_threshold: Decimal = Decimal("5.0")
    z_score_threshold: Decimal = Decimal("1.5")


class ScoringSettings(BaseSettings):
    """Heuristic signal scorer weights and thresholds.

    Defaults are hand-tuned and not derived from any fit. Raw totals span
    [raw_min, raw_min + raw_span] before scaling to 0-100.
    """

    model_config = SettingsConfigDict(env_prefix="SCORING_")

    # RSI
    rsi_momentum_floor: Decimal = Decimal("50")
    rsi_momentum_ceiling: Decimal = Decimal("70")
    rsi_momentum_multiplier: Decimal = Decimal("1.5")
    rsi_momentum_cap: Decimal = Decimal("30")
    rsi_oversold_threshold: Decimal = Decimal("30")
    rsi_oversold_points: Decimal = Decimal("15")

    # MACD
    macd_multiplier: Decimal = Decimal("100")
    macd_cap: Decimal = Decimal("25")

    # Bollinger
    bollinger_upper_penalty: Decimal = Decimal("-20")
    bollinger_lower_reward: Decimal = Decimal("20")

    # Trend / volume
    above_sma_points: Decimal = Decimal("5")
    volume_threshold: Decimal = Decimal("100000000")
    volume_points: Decimal = Decimal("5")

    # ATR
    atr_high_threshold: Decimal = Decimal("2.0")
    atr_high_points: Decimal = Decimal("10")
    atr_moderate_threshold: Decimal = Decimal("1.0")
    atr_moderate_points: Decimal = Decimal("5")

    # Realized volatility
    volatility_threshold: Decimal = Decimal("0.1")
    volatility_points: Decimal = Decimal("5")

    # Sentiment tiers
    sentiment_strong_threshold: Decimal = Decimal("0.35")
    sentiment_strong_points: Decimal = Decimal("10")
    sentiment_mild_threshold: Decimal = Decimal("0.15")
    sentiment_mild_points: Decimal = Decimal("5")

    # Normalization range of the raw total
    raw_min: Decimal = Decimal("-35")
    raw_span: Decimal = Decimal("145")

    # Category bands (lower bounds, inclusive)
    strong_buy_min: int = 80
    buy_min: int = 60
    neutral_min: int = 40
    sell_min: int = 20


class AnalysisSettings(BaseSettings):
    """Orchestration settings for a single analysis request."""

    model_config = SettingsConfigDict(env_prefix="ANALYSIS_")

    scorer_kind: Literal["heuristic", "random_forest", "regression"] = "random_forest"
    sentiment_enabled: bool = False  # sentiment is not a model feature
    worker_threads: int = 4
    max_concurrent_fetches: int = 8
    fetch_timeout_seconds: float | None = 30.0


class ServerSettings(BaseSettings):
    """HTTP server configuration."""

    model_config = SettingsConfigDict(env_prefix="SERVER_")

    host: str = "0.0.0.0"
    port: int = 8080


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    alphavantage: AlphaVantageSettings = AlphaVantageSettings()
    finnhub: FinnhubSettings = FinnhubSettings()
    fmp: FmpSettings = FmpSettings()
    fx: FxSettings = FxSettings()
    upstream: UpstreamSettings = UpstreamSettings()
    net_income: NetIncomeSettings = NetIncomeSettings()
    predictor: PredictorSettings = PredictorSettings()
    indicators: IndicatorSettings = IndicatorSettings()
    significance: SignificanceSettings = SignificanceSettings()
    scoring: ScoringSettings = ScoringSettings()
    analysis: AnalysisSettings = AnalysisSettings()
    server: ServerSettings = ServerSettings()
