"""
Printable marker sheets.

Lays out one or more QR markers on a page grid with a caption under each,
so the robot can be tagged with a marker the scanner will recognise.
"""

import argparse
from pathlib import Path
from typing import Iterable, List

import qrcode
from loguru import logger
from PIL import Image
from reportlab.lib.units import cm, mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .config import load_config
from .log import configure_logging
from .presence_tracker import DEFAULT_TARGET_PAYLOAD


def make_marker_image(payload: str, border: int = 4) -> Image.Image:
    """Render payload as a QR image. border is the quiet zone in modules."""
    qr = qrcode.QRCode(
        border=border,
        box_size=10,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
    )
    qr.add_data(payload)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    return img.convert("RGB")


def _draw_image_fit(
    c, image: Image.Image, x: float, y: float, w: float, h: float
) -> None:
    img_w, img_h = image.size
    if img_w == 0 or img_h == 0:
        return
    scale = min(w / img_w, h / img_h)
    draw_w = img_w * scale
    draw_h = img_h * scale
    draw_x = x + (w - draw_w) / 2
    draw_y = y + (h - draw_h) / 2
    c.drawImage(ImageReader(image), draw_x, draw_y, draw_w, draw_h)


def _truncate_text(c, text: str, max_width: float) -> str:
    if c.stringWidth(text) <= max_width:
        return text
    ellipsis = "..."
    trimmed = text
    while trimmed and c.stringWidth(trimmed + ellipsis) > max_width:
        trimmed = trimmed[:-1]
    return trimmed + ellipsis if trimmed else ""


def render_marker_sheet(
    payloads: Iterable[str],
    output_path: str,
    marker_size_cm: float = 8.0,
    page_width_mm: float = 210,
    page_height_mm: float = 297,
) -> int:
    """
    Write a PDF with one captioned marker per grid cell.

    Returns:
        Number of pages written

    Raises:
        ValueError: if no payloads are given or a marker does not fit the page
    """
    payloads = list(payloads)
    if not payloads:
        raise ValueError("At least one payload is required")

    if marker_size_cm <= 0:
        raise ValueError(f"Marker size must be positive, got {marker_size_cm} cm")

    caption_mm = 8.0
    cell_w_mm = marker_size_cm * 10.0
    cell_h_mm = cell_w_mm + caption_mm
    cols = int(page_width_mm // cell_w_mm)
    rows = int(page_height_mm // cell_h_mm)
    if cols <= 0 or rows <= 0:
        raise ValueError("Marker size too large for the page size")

    margin_x_mm = (page_width_mm - cols * cell_w_mm) / 2.0
    margin_y_mm = (page_height_mm - rows * cell_h_mm) / 2.0
    per_page = cols * rows

    c = canvas.Canvas(output_path, pagesize=(page_width_mm * mm, page_height_mm * mm))
    c.setFont("Helvetica", 12)
    pages = 1
    for index, payload in enumerate(payloads):
        if index > 0 and index % per_page == 0:
            c.showPage()
            c.setFont("Helvetica", 12)
            pages += 1

        page_index = index % per_page
        row = page_index // cols
        col = page_index % cols
        cell_x = (margin_x_mm + col * cell_w_mm) * mm
        cell_y = (page_height_mm - margin_y_mm - (row + 1) * cell_h_mm) * mm
        marker_size = cell_w_mm * mm

        _draw_image_fit(
            c,
            make_marker_image(payload),
            cell_x,
            cell_y + caption_mm * mm,
            marker_size,
            marker_size,
        )
        caption = _truncate_text(c, payload, marker_size - 0.5 * cm)
        c.drawCentredString(cell_x + marker_size / 2, cell_y + 3 * mm, caption)

    c.save()
    return pages


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Generate printable marker sheets")
    parser.add_argument("--config", default="config.toml", help="Path to config TOML")
    parser.add_argument(
        "payloads",
        nargs="*",
        help="Marker payloads (default: config marker.target_payload)",
    )
    parser.add_argument("--output", help="Output PDF path (overrides config)")
    parser.add_argument("--size-cm", type=float, help="Marker edge length in cm")
    args = parser.parse_args(argv)

    configure_logging("INFO")
    config = load_config(args.config) if Path(args.config).exists() else {}
    sheet_cfg = config.get("sheet", {})
    default_payload = config.get("marker", {}).get(
        "target_payload", DEFAULT_TARGET_PAYLOAD
    )

    payloads: List[str] = args.payloads or [default_payload]
    output_pdf = args.output or sheet_cfg.get("output_pdf", "markers.pdf")
    size_cm = (
        args.size_cm
        if args.size_cm is not None
        else sheet_cfg.get("marker_size_cm", 8.0)
    )

    try:
        pages = render_marker_sheet(
            payloads,
            output_pdf,
            size_cm,
            sheet_cfg.get("page_width_mm", 210),
            sheet_cfg.get("page_height_mm", 297),
        )
    except ValueError as exc:
        logger.error("Cannot build sheet: {}", exc)
        return 1
    logger.info("Wrote {} ({} markers, {} pages)", output_pdf, len(payloads), pages)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
