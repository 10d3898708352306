"""TOML config loading and profiles."""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any

from poolgraph.models.events import ContractKind, normalize_hex

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
        chain: dict[str, Any] | None = None,
        storage: dict[str, Any] | None = None,
        indexer: dict[str, Any] | None = None,
        contracts: dict[str, Any] | None = None,
        calls: dict[str, Any] | None = None,
        lp_manager: dict[str, Any] | None = None,
        logging: dict[str, Any] | None = None,
    ):
        self.chain = chain or {}
        self.storage = storage or {}
        self.indexer = indexer or {}
        self.contracts = contracts or {}
        self.calls = calls or {}
        self.lp_manager = lp_manager or {}
        self.logging = logging or {}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Settings:
        return cls(
            chain=raw.get("chain"),
            storage=raw.get("storage"),
            indexer=raw.get("indexer"),
            contracts=raw.get("contracts"),
            calls=raw.get("calls"),
            lp_manager=raw.get("lp_manager"),
            logging=raw.get("logging"),
        )

    # Convenience accessors with defaults
    @property
    def db_path(self) -> str:
        return self.storage.get("db_path", "data/poolgraph.duckdb")

    @property
    def event_batch_size(self) -> int:
        return int(self.storage.get("event_batch_size", 100))

    @property
    def rpc_url(self) -> str:
        return self.chain.get("rpc_url", "http://localhost:8545")

    @property
    def rpc_timeout_sec(self) -> float:
        return float(self.chain.get("rpc_timeout_sec", 10.0))

    @property
    def blocks_per_call(self) -> int:
        return int(self.chain.get("blocks_per_call", 2000))

    @property
    def confirmations(self) -> int:
        return int(self.chain.get("confirmations", 0))

    @property
    def poll_interval_sec(self) -> float:
        return float(self.chain.get("poll_interval_sec", 5.0))

    @property
    def start_block(self) -> int:
        return int(self.chain.get("start_block", 0))

    @property
    def on_malformed(self) -> str:
        value = str(self.indexer.get("on_malformed", "skip")).lower()
        if value not in ("skip", "fail"):
            raise ValueError(f"indexer.on_malformed must be 'skip' or 'fail', got {value!r}")
        return value

    @property
    def contract_kinds(self) -> dict[str, ContractKind]:
        """Address -> kind for every configured contract."""
        out: dict[str, ContractKind] = {}
        for kind in ContractKind:
            for address in self.contracts.get(kind.value) or []:
                out[normalize_hex(address)] = kind
        return out

    @property
    def call_selectors(self) -> dict[ContractKind, str]:
        """4-byte selectors of factory functions tracked as calls (presale, LG token)."""
        out: dict[ContractKind, str] = {}
        for kind in (ContractKind.PRESALE_FACTORY, ContractKind.LG_TOKEN_FACTORY):
            selector = self.calls.get(kind.value)
            if selector:
                out[kind] = normalize_hex(selector)
        return out

    @property
    def whitelisted_pools(self) -> list[str]:
        return [normalize_hex(a) for a in self.lp_manager.get("whitelisted_pools") or []]

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
