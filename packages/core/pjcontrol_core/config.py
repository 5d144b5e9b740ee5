"""Persistent settings schema and load/save helpers."""

from __future__ import annotations

import json
import os
import platform
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any


CONFIG_VERSION = 1


@dataclass
class LinkConfig:
    port: str = "/dev/ttyAMA0"
    baudrate: int = 38400
    open_retry_s: float = 5.0
    reply_timeout_s: float | None = None


@dataclass
class PollConfig:
    interval_ms: int = 5000


@dataclass
class LoggingConfig:
    debug: bool = False
    keep_files: int = 7


@dataclass
class AppConfig:
    config_version: int = CONFIG_VERSION
    link: LinkConfig = field(default_factory=LinkConfig)
    poll: PollConfig = field(default_factory=PollConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def config_root() -> Path:
    system = platform.system()
    if system == "Windows":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        return base / "PjControl"
    if system == "Darwin":
        return Path.home() / "Library" / "Application Support" / "PjControl"
    return Path.home() / ".config" / "pjcontrol"


def config_path() -> Path:
    override = os.environ.get("PJCONTROL_CONFIG")
    if override:
        return Path(override)
    return config_root() / "config.json"


def _merge(dataclass_type, raw: dict[str, Any]):
    defaults = dataclass_type()  # type: ignore[misc]
    for k, v in raw.items():
        if hasattr(defaults, k):
            setattr(defaults, k, v)
    return defaults


def _normalize_link(cfg: AppConfig) -> None:
    cfg.link.port = str(cfg.link.port or LinkConfig.port)
    cfg.link.baudrate = int(cfg.link.baudrate)
    cfg.link.open_retry_s = float(max(0.1, cfg.link.open_retry_s))
    if cfg.link.reply_timeout_s is not None:
        timeout = float(cfg.link.reply_timeout_s)
        cfg.link.reply_timeout_s = timeout if timeout > 0 else None


def _normalize_poll(cfg: AppConfig) -> None:
    cfg.poll.interval_ms = max(250, min(600_000, int(cfg.poll.interval_ms)))


def _normalize_logging(cfg: AppConfig) -> None:
    cfg.logging.debug = bool(cfg.logging.debug)
    cfg.logging.keep_files = max(2, int(cfg.logging.keep_files))


def load_config(path: Path | None = None) -> AppConfig:
    path = path or config_path()
    if not path.exists():
        return AppConfig()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return AppConfig()

    cfg = AppConfig(
        config_version=int(data.get("config_version", CONFIG_VERSION)),
        link=_merge(LinkConfig, data.get("link", {})),
        poll=_merge(PollConfig, data.get("poll", {})),
        logging=_merge(LoggingConfig, data.get("logging", {})),
    )

    _normalize_link(cfg)
    _normalize_poll(cfg)
    _normalize_logging(cfg)
    return cfg


def save_config(cfg: AppConfig, path: Path | None = None) -> Path:
    cfg.config_version = CONFIG_VERSION
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(cfg), indent=2, sort_keys=True), encoding="utf-8")
    return path
