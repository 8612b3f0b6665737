"""Logger adapter that tags every record with the panel it concerns."""

from __future__ import annotations

import logging
from typing import Any

# Record attributes that structured handlers copy into their output.
PANEL_FIELDS = ("event", "profile", "port", "line", "attempt", "frame")


class PanelLogAdapter(logging.LoggerAdapter):
    """Merges the panel's ``profile``/``port`` into each call's ``extra``.

    ``logging.LoggerAdapter`` replaces a call's ``extra`` with its own; here
    the per-call fields (usually ``event``) win over the bound ones.
    """

    def __init__(self, logger: logging.Logger, profile: str, port: str | None = None) -> None:
        super().__init__(logger, {"profile": profile, "port": port})

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs
