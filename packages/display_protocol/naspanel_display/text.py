"""Text layout helpers for the 16 character panel lines."""

from __future__ import annotations

from .codec import LINE_WIDTH

# 0x0A renders as a filled cell on both panel families.
FILLED_CELL = "\n"
EMPTY_CELL = "-"


def prepare_text(text: str) -> str:
    return text[:LINE_WIDTH].ljust(LINE_WIDTH, " ")


def progress(percent: int) -> str:
    percent = max(0, min(100, int(percent)))
    filled = (LINE_WIDTH * percent) // 100
    return FILLED_CELL * filled + EMPTY_CELL * (LINE_WIDTH - filled)
