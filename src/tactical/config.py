"""Configuration system using pydantic-settings with environment variable loading."""

from dataclasses import dataclass
from decimal import Decimal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DataSourceSettings(BaseSettings):
    """Indicator source endpoints seeding the panel's data-source config.

    An empty endpoint means the source is unconfigured and never requested.
    """

    model_config = SettingsConfigDict(env_prefix="SOURCE_")

    rsi_endpoint: str = ""  # {rsi: {h1, h4, d1}}
    macd_endpoint: str = ""  # {macd: {h1: {hist}, h4: {hist, flattening}, d1: {hist}}}
    perp_endpoint: str = ""  # {funding, oiTrend, nearSupport}
    volume_endpoint: str = ""  # {spot24h, futures24h}
    price_endpoint: str = ""  # {price}
    api_key: SecretStr = SecretStr("")
    timeout_seconds: float = 5.0


class ChecklistSettings(BaseSettings):
    """Thresholds of the tactical entry checklist.

    Defaults reproduce the fixed checklist; all fields configurable via
    CHECKLIST_ environment variable prefix.
    """

    model_config = SettingsConfigDict(env_prefix="CHECKLIST_")

    rsi_band_low: Decimal = Decimal("35")
    rsi_band_high: Decimal = Decimal("45")
    take_profit_rsi: Decimal = Decimal("65")
    spot_futures_ratio: Decimal = Decimal("0.9")  # spot >= 90% of futures volume
    require_support: bool = True  # initial state of the support toggle


class LedgerSettings(BaseSettings):
    """Position ledger and time-to-bounce parameters."""

    model_config = SettingsConfigDict(env_prefix="LEDGER_")

    close_epsilon: Decimal = Decimal("1e-10")  # base units treated as fully closed
    ttb_min_days: int = 5
    ttb_min_excursion_pct: Decimal = Decimal("3")
    tranche_presets: list[Decimal] = [
        Decimal("1000"),
        Decimal("3000"),
        Decimal("5000"),
        Decimal("10000"),
    ]
    exit_fractions: list[Decimal] = [Decimal("0.5"), Decimal("0.3"), Decimal("0.2")]


class StateSettings(BaseSettings):
    """Key/value state persistence location."""

    model_config = SettingsConfigDict(env_prefix="STATE_")

    db_path: str = "data/panel.db"


class DashboardSettings(BaseSettings):
    """Dashboard server configuration."""

    model_config = SettingsConfigDict(env_prefix="DASHBOARD_")

    host: str = "0.0.0.0"
    port: int = 8080
    enabled: bool = True


@dataclass
class DataSourceConfig:
    """User-editable copy of the indicator endpoints, persisted across sessions.

    Seeded from DataSourceSettings when nothing has been stored yet.
    """

    rsi_endpoint: str = ""
    macd_endpoint: str = ""
    perp_endpoint: str = ""
    volume_endpoint: str = ""
    price_endpoint: str = ""
    api_key: str = ""

    @classmethod
    def from_settings(cls, settings: DataSourceSettings) -> "DataSourceConfig":
        return cls(
            rsi_endpoint=settings.rsi_endpoint,
            macd_endpoint=settings.macd_endpoint,
            perp_endpoint=settings.perp_endpoint,
            volume_endpoint=settings.volume_endpoint,
            price_endpoint=settings.price_endpoint,
            api_key=settings.api_key.get_secret_value(),
        )

    def endpoints(self) -> dict[str, str]:
        """Return endpoints keyed by source name, in fetch order."""
        return {
            "rsi": self.rsi_endpoint,
            "macd": self.macd_endpoint,
            "perp": self.perp_endpoint,
            "volume": self.volume_endpoint,
            "price": self.price_endpoint,
        }

    def is_configured(self) -> bool:
        """True if at least one endpoint is set."""
        return any(url.strip() for url in self.endpoints().values())


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: str = "console"  # "console" or "json"
    sources: DataSourceSettings = DataSourceSettings()
    checklist: ChecklistSettings = ChecklistSettings()
    ledger: LedgerSettings = LedgerSettings()
    state: StateSettings = StateSettings()
    dashboard: DashboardSettings = DashboardSettings()
