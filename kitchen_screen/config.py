"""Runtime configuration defaults for the server, display and ticket printer."""

from __future__ import annotations

import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_ids(name: str) -> frozenset[int]:
    ids: set[int] = set()
    for token in os.environ.get(name, "").split(","):
        token = token.strip()
        if token.lstrip("-").isdigit():
            ids.add(int(token))
    return frozenset(ids)


# Empty means every user may compose orders.
MANAGER_IDS = _env_ids("MANAGER_IDS")

PUBLIC_URL = os.environ.get("PUBLIC_URL", "http://localhost:3000").rstrip("/")
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = _env_int("PORT", 3000)

NORMALIZE_INTERVAL_SECONDS = _env_int("NORMALIZE_INTERVAL_SECONDS", 30)
# Abandoned drafts are dropped after this much inactivity.
SESSION_IDLE_TTL_SECONDS = _env_int("SESSION_IDLE_TTL_SECONDS", 6 * 3600)

SCREEN_POLL_SECONDS = 2.0
SCREEN_TICK_SECONDS = 1.0

DEBUG_LOG_PATH = os.environ.get("KITCHEN_DEBUG_LOG", "/tmp/kitchen-screen-debug.log")

PRINTER_ENABLED = os.environ.get("KITCHEN_PRINTER", "").strip().lower() in {"1", "true", "yes"}
PRINTER_USB_VENDOR_ID = 0x28E9
PRINTER_USB_PRODUCT_ID = 0x0289
PRINTER_WIDTH_PX = 384
PRINTER_FONT_SIZE = 40
PRINTER_FONT_PATH = "/System/Library/Fonts/SFNS.ttf"
PRINTER_LEFT_INDENT_PX = 16
PRINTER_SINGLE_ITEM_SPACER_PX = 70
