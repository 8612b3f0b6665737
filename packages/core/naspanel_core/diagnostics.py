"""Diagnostics export helpers for local support bundles."""

from __future__ import annotations

import json
import platform
import tempfile
import zipfile
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from naspanel_display import DisplayTransport

from .config import AppConfig, config_path
from .logging_setup import log_dir


def _jsonable(value: Any) -> Any:
    if is_dataclass(value):
        return asdict(value)
    if isinstance(value, (Path, bytes)):
        return value.hex() if isinstance(value, bytes) else str(value)
    return value


def build_doctor_payload(cfg: AppConfig) -> dict[str, Any]:
    devices = DisplayTransport.discover()
    return {
        "ts_utc": datetime.now(timezone.utc).isoformat(),
        "platform": platform.platform(),
        "python": platform.python_version(),
        "config": asdict(cfg),
        "configured_port_present": any(d.device == cfg.device.port for d in devices),
        "devices": [
            {
                "device": d.device,
                "description": d.description,
                "hwid": d.hwid,
                "configured": d.device == cfg.device.port,
            }
            for d in devices
        ],
    }


class DiagnosticsExporter:
    def __init__(self, app_name: str = "naspanel") -> None:
        self.app_name = app_name

    def bundle(
        self,
        cfg: AppConfig,
        doctor_payload: dict[str, Any],
        recent_panel_events: list[dict[str, Any]] | None = None,
        output_dir: Path | None = None,
    ) -> Path:
        output_base = output_dir or Path(tempfile.gettempdir())
        output_base.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        zip_path = output_base / f"{self.app_name}-diagnostics-{stamp}.zip"

        logs = sorted(log_dir().glob("*.log*"))

        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            manifest = {
                "app": self.app_name,
                "created_utc": datetime.now(timezone.utc).isoformat(),
                "host": platform.platform(),
                "python": platform.python_version(),
                "config_path": str(config_path()),
                "log_dir": str(log_dir()),
            }
            zf.writestr("manifest.json", json.dumps(manifest, indent=2, sort_keys=True))
            zf.writestr("doctor.json", json.dumps(doctor_payload, indent=2, sort_keys=True, default=_jsonable))
            zf.writestr("config.json", json.dumps(asdict(cfg), indent=2, sort_keys=True))
            zf.writestr(
                "panel_events.json",
                json.dumps(recent_panel_events or [], indent=2, sort_keys=True, default=_jsonable),
            )

            for item in logs:
                zf.write(item, arcname=f"logs/{item.name}")

        return zip_path
