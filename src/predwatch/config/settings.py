"""TOML config loading and profiles."""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any

# Default config search path (project root or cwd)
_CONFIG_DIR = Path(__file__).resolve().parent.parent.parent.parent / "config"
_CWD_CONFIG = Path.cwd() / "config"


def _load_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base. Override values take precedence."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _find_config_dir(config_dir: Path | None = None) -> Path:
    if config_dir is not None:
        return config_dir
    if _CWD_CONFIG.exists():
        return _CWD_CONFIG
    return _CONFIG_DIR


def load_config(profile: str | None = None, config_dir: Path | None = None) -> dict[str, Any]:
    """Load merged config from default.toml and optional profile overlay."""
    config_dir = _find_config_dir(config_dir)
    default_path = config_dir / "default.toml"
    if not default_path.exists():
        return {}
    base = _load_toml(default_path)
    if profile:
        profile_path = config_dir / f"{profile}.toml"
        if profile_path.exists():
            overlay = _load_toml(profile_path)
            base = _deep_merge(base, overlay)
    return base


def get_settings(profile: str | None = None, config_dir: Path | None = None) -> Settings:
    """Return Settings instance from merged config."""
    raw = load_config(profile, config_dir)
    return Settings.from_dict(raw)


class Settings:
    """Application settings from TOML config."""

    def __init__(
        self,
        *,
        polling: dict[str, Any] | None = None,
        alerts: dict[str, Any] | None = None,
        polymarket: dict[str, Any] | None = None,
        kalshi: dict[str, Any] | None = None,
        http: dict[str, Any] | None = None,
        watchlist: dict[str, Any] | None = None,
        logging: dict[str, Any] | None = None,
    ):
        self.polling = polling or {}
        self.alerts = alerts or {}
        self.polymarket = polymarket or {}
        self.kalshi = kalshi or {}
        self.http = http or {}
        self.watchlist = watchlist or {}
        self.logging = logging or {}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Settings:
        return cls(
            polling=raw.get("polling"),
            alerts=raw.get("alerts"),
            polymarket=raw.get("polymarket"),
            kalshi=raw.get("kalshi"),
            http=raw.get("http"),
            watchlist=raw.get("watchlist"),
            logging=raw.get("logging"),
        )

    # Convenience accessors with defaults
    @property
    def trending_interval_sec(self) -> float:
        return float(self.polling.get("trending_interval_sec", 300))

    @property
    def tracked_interval_sec(self) -> float:
        return float(self.polling.get("tracked_interval_sec", 15))

    @property
    def alert_sweep_interval_sec(self) -> float:
        return float(self.polling.get("alert_sweep_interval_sec", 2))

    @property
    def drop_stale_responses(self) -> bool:
        return bool(self.polling.get("drop_stale_responses", True))

    @property
    def alert_threshold(self) -> float:
        return float(self.alerts.get("threshold", 0.05))

    @property
    def alert_ttl_ms(self) -> int:
        return int(float(self.alerts.get("ttl_sec", 10)) * 1000)

    @property
    def notifier_kind(self) -> str:
        return str(self.alerts.get("notifier", "bell")).lower()

    @property
    def notifier_command(self) -> list[str]:
        return [str(a) for a in self.alerts.get("notifier_command") or []]

    @property
    def gamma_api_base(self) -> str:
        return self.polymarket.get("gamma_api_base", "https://gamma-api.polymarket.com")

    @property
    def polymarket_trending_limit(self) -> int:
        return int(self.polymarket.get("trending_limit", 20))

    @property
    def kalshi_api_base(self) -> str:
        return self.kalshi.get("api_base", "https://api.elections.kalshi.com/trade-api/v2")

    @property
    def kalshi_trending_fetch_limit(self) -> int:
        return int(self.kalshi.get("trending_fetch_limit", 100))

    @property
    def kalshi_trending_limit(self) -> int:
        return int(self.kalshi.get("trending_limit", 20))

    @property
    def http_timeout_sec(self) -> float:
        return float(self.http.get("timeout_sec", 15.0))

    def initial_watchlist(self, venue: str) -> list[str]:
        """Ids to track at startup for a venue (e.g. [watchlist] kalshi = [...])."""
        return [str(i) for i in self.watchlist.get(venue) or []]

    @property
    def logging_level(self) -> str:
        return self.logging.get("level", "INFO").upper()

    @property
    def logging_format(self) -> str:
        return self.logging.get("format", "console")

    @property
    def logging_level_num(self) -> int:
        return getattr(logging, self.logging_level, logging.INFO)


def configure_logging(settings: Settings) -> None:
    """Configure structlog with settings. Call once at application entry."""
    import structlog

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.logging_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(settings.logging_level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
