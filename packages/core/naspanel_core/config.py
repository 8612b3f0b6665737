"""Persistent panel settings schema and load/save helpers."""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from naspanel_display import DEFAULT_TTY, PROFILES, SessionTiming


CONFIG_VERSION = 1
VARIANTS = ("auto",) + tuple(PROFILES)


@dataclass
class DeviceConfig:
    port: str = DEFAULT_TTY
    variant: str = "auto"


@dataclass
class TimingConfig:
    probe_timeout_ms: int = 300
    ack_timeout_ms: int = 40
    write_spacing_ms: int = 10
    write_attempts: int = 10
    queue_size: int = 100

    def to_session_timing(self) -> SessionTiming:
        return SessionTiming(
            probe_timeout_ms=self.probe_timeout_ms,
            ack_timeout_ms=self.ack_timeout_ms,
            write_spacing_ms=self.write_spacing_ms,
            write_attempts=self.write_attempts,
            queue_size=self.queue_size,
        )


@dataclass
class ControllerConfig:
    max_recover_attempts: int = 3
    backoff_base_s: float = 0.25
    backoff_cap_s: float = 4.0


@dataclass
class DiagnosticsConfig:
    keep_log_files: int = 7


@dataclass
class AppConfig:
    config_version: int = CONFIG_VERSION
    device: DeviceConfig = field(default_factory=DeviceConfig)
    timing: TimingConfig = field(default_factory=TimingConfig)
    controller: ControllerConfig = field(default_factory=ControllerConfig)
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)


def config_root() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME")
    return (Path(base) if base else Path.home() / ".config") / "naspanel"


def config_path() -> Path:
    return config_root() / "config.json"


def _merge(dataclass_type, raw: dict[str, Any]):
    defaults = dataclass_type()  # type: ignore[misc]
    for k, v in (raw or {}).items():
        if hasattr(defaults, k):
            setattr(defaults, k, v)
    return defaults


def _normalize_device(cfg: AppConfig) -> None:
    cfg.device.port = str(cfg.device.port or DEFAULT_TTY)
    cfg.device.variant = str(cfg.device.variant).lower()
    if cfg.device.variant not in VARIANTS:
        cfg.device.variant = "auto"


def _normalize_timing(cfg: AppConfig) -> None:
    t = cfg.timing
    t.probe_timeout_ms = max(50, min(5000, int(t.probe_timeout_ms)))
    t.ack_timeout_ms = max(10, min(1000, int(t.ack_timeout_ms)))
    t.write_spacing_ms = max(0, min(500, int(t.write_spacing_ms)))
    t.write_attempts = max(1, min(50, int(t.write_attempts)))
    t.queue_size = max(20, min(1000, int(t.queue_size)))


def _normalize_controller(cfg: AppConfig) -> None:
    c = cfg.controller
    c.max_recover_attempts = max(0, int(c.max_recover_attempts))
    c.backoff_base_s = float(max(0.0, c.backoff_base_s))
    c.backoff_cap_s = float(max(c.backoff_base_s, c.backoff_cap_s))


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
        device=_merge(DeviceConfig, data.get("device", {})),
        timing=_merge(TimingConfig, data.get("timing", {})),
        controller=_merge(ControllerConfig, data.get("controller", {})),
        diagnostics=_merge(DiagnosticsConfig, data.get("diagnostics", {})),
    )

    _normalize_device(cfg)
    _normalize_timing(cfg)
    _normalize_controller(cfg)
    return cfg


def save_config(cfg: AppConfig, path: Path | None = None) -> Path:
    cfg.config_version = CONFIG_VERSION
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(cfg), indent=2, sort_keys=True), encoding="utf-8")
    return path
