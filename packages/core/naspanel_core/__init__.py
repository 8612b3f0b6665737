"""Core services for panel settings, logging, diagnostics, and the reconnecting controller."""

from .config import AppConfig, load_config, save_config
from .diagnostics import DiagnosticsExporter, build_doctor_payload
from .panel_controller import PanelController, PanelStatus

__all__ = [
    "AppConfig",
    "DiagnosticsExporter",
    "PanelController",
    "PanelStatus",
    "build_doctor_payload",
    "load_config",
    "save_config",
]
