"""Kitchen ticket printing for newly admitted orders."""

from __future__ import annotations

import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable

from kitchen_screen.broadcast import TransportFailure
from kitchen_screen.config import (
    PRINTER_FONT_PATH,
    PRINTER_FONT_SIZE,
    PRINTER_LEFT_INDENT_PX,
    PRINTER_SINGLE_ITEM_SPACER_PX,
    PRINTER_USB_PRODUCT_ID,
    PRINTER_USB_VENDOR_ID,
    PRINTER_WIDTH_PX,
)
from kitchen_screen.models import Order
from kitchen_screen.store import Snapshot

logger = logging.getLogger(__name__)

_SEPARATOR_HEIGHT_PX = 20
_SEPARATOR_THICKNESS_PX = 4
_HEADER_RIGHT_GUTTER_PX = 8
# Thermal heads clip descenders on tight canvases.
_ITEM_LINE_EXTRA_PX = 30
_FOOTER_LINE_EXTRA_PX = 6
_FONT_OVERRIDE_ENV = "KITCHEN_PRINTER_FONT_PATH"
_LINUX_FONT_FALLBACKS = (
    "/usr/share/fonts/TTF/DejaVuSans.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/noto/NotoSans-Regular.ttf",
    "/usr/share/fonts/liberation/LiberationSans-Regular.ttf",
)


def ticket_lines(order: Order) -> list[str]:
    """Item lines printed under the ticket header."""
    return [f"{item.name} x{item.qty}" for item in order.items]


def resolve_printer_font_path() -> str:
    """Return the first existing font: env override, configured path, then Cyrillic-capable fallbacks."""
    override = os.environ.get(_FONT_OVERRIDE_ENV, "").strip()
    candidates = [override, PRINTER_FONT_PATH, *_LINUX_FONT_FALLBACKS]
    tried = [path for path in dict.fromkeys(candidates) if path]
    for path in tried:
        if Path(path).is_file():
            return path
    raise RuntimeError(f"No printer font found (set {_FONT_OVERRIDE_ENV}). Tried: {', '.join(tried)}")


def check_printer_dependencies() -> tuple[bool, str]:
    """Report whether the ESC/POS driver, Pillow and a usable font are present."""
    try:
        from escpos.printer import Usb  # noqa: F401
        from PIL import ImageFont

        ImageFont.truetype(resolve_printer_font_path(), PRINTER_FONT_SIZE)
    except Exception as exc:
        return (False, f"Printer deps unavailable: {exc}")
    return (True, "Printer ready")


def _text_box(text: str, font: object) -> tuple[int, int, int, int]:
    from PIL import Image, ImageDraw

    return ImageDraw.Draw(Image.new("1", (1, 1), color=1)).textbbox((0, 0), text, font=font)


def _blank(height_px: int) -> object:
    from PIL import Image

    return Image.new("1", (PRINTER_WIDTH_PX, max(1, height_px)), color=1)


def _render_text_line(text: str, font: object, extra_px: int) -> object:
    """One left-indented line, vertically centered on a canvas `extra_px` taller than the glyphs."""
    from PIL import ImageDraw

    max_width = PRINTER_WIDTH_PX - PRINTER_LEFT_INDENT_PX * 2
    while text and _text_box(text, font)[2] > max_width:
        text = text[:-4] + "..." if len(text) > 4 else text[:-1]
    left, top, _right, bottom = _text_box(text, font)
    height = bottom - top + extra_px
    img = _blank(height)
    # Shift by the bbox top so descenders stay on the canvas.
    ImageDraw.Draw(img).text((PRINTER_LEFT_INDENT_PX - left, extra_px // 2 - top), text, font=font, fill=0)
    return img


def _render_separator() -> object:
    from PIL import ImageDraw

    img = _blank(_SEPARATOR_HEIGHT_PX)
    top = (_SEPARATOR_HEIGHT_PX - _SEPARATOR_THICKNESS_PX) // 2
    ImageDraw.Draw(img).rectangle((0, top, PRINTER_WIDTH_PX - 1, top + _SEPARATOR_THICKNESS_PX - 1), fill=0)
    return img


def _render_ticket_header(order: Order, font: object, meta_font: object) -> object:
    """Prep minutes on the left, the order label right-aligned and large."""
    from PIL import ImageDraw

    meta = f"{order.prep_minutes} мин"
    label_box = _text_box(order.label, font)
    meta_box = _text_box(meta, meta_font)
    height = max(label_box[3] - label_box[1], meta_box[3] - meta_box[1]) + 16

    img = _blank(height)
    draw = ImageDraw.Draw(img)
    label_x = PRINTER_WIDTH_PX - _HEADER_RIGHT_GUTTER_PX - (label_box[2] - label_box[0]) - label_box[0]
    draw.text((label_x, 4 - label_box[1]), order.label, font=font, fill=0)
    draw.text((PRINTER_LEFT_INDENT_PX, 4 - meta_box[1]), meta, font=meta_font, fill=0)
    return img


def print_ticket(order: Order) -> None:
    """Print one kitchen ticket and cut it."""
    try:
        from escpos.printer import Usb
        from PIL import ImageFont
    except Exception as exc:
        raise TransportFailure(f"Printer dependencies unavailable: {exc}") from exc

    try:
        printer = Usb(PRINTER_USB_VENDOR_ID, PRINTER_USB_PRODUCT_ID)
        font_path = resolve_printer_font_path()
        font = ImageFont.truetype(font_path, PRINTER_FONT_SIZE)
        header_font = ImageFont.truetype(font_path, PRINTER_FONT_SIZE + 8)
        compact_font = ImageFont.truetype(font_path, max(10, PRINTER_FONT_SIZE // 2))

        printer.image(_render_ticket_header(order, header_font, compact_font))
        printer.image(_render_separator())
        lines = ticket_lines(order)
        for line in lines:
            printer.image(_render_text_line(line, font, _ITEM_LINE_EXTRA_PX))

        ends = datetime.fromtimestamp(order.ends_at / 1000).strftime("%H:%M")
        printer.image(_render_text_line(f"готово к {ends}", compact_font, _FOOTER_LINE_EXTRA_PX))
        # Short tickets get a tail so they can be torn off.
        if len(lines) == 1:
            printer.image(_blank(PRINTER_SINGLE_ITEM_SPACER_PX))
        printer.cut()
    except TransportFailure:
        raise
    except Exception as exc:
        raise TransportFailure(f"Ticket print failed for {order.label!r}: {exc}") from exc


class TicketPrinter:
    """
    Push observer that prints one ticket per newly admitted order.

    The first snapshot only primes the seen set, so restarting the printer
    never reprints orders that are already on the screen.
    """

    def __init__(self, print_fn: Callable[[Order], None] = print_ticket) -> None:
        self.print_fn = print_fn
        self._lock = threading.Lock()
        self._seen: set[str] = set()
        self._primed = False

    def __call__(self, snap: Snapshot) -> None:
        with self._lock:
            fresh = [order for order in snap.orders if order.id not in self._seen]
            # Only ids still on screen can reappear in later snapshots.
            self._seen = {order.id for order in snap.orders}
            if not self._primed:
                self._primed = True
                return

        failures: list[str] = []
        for order in sorted(fresh, key=lambda o: o.created_at):
            try:
                self.print_fn(order)
            except TransportFailure as exc:
                failures.append(str(exc))
                continue
            logger.info("ticket printed id=%s label=%r", order.id, order.label)
        if failures:
            raise TransportFailure("; ".join(failures))
