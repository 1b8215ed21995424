"""QR image renderer for finished QRIS payloads."""
from __future__ import annotations

import base64
import io
from pathlib import Path
from typing import Any

import qrcode
from PIL import Image, ImageDraw, ImageFont

DEFAULT_SIZE = 256


def generate_qr_image(data: str, size: int = DEFAULT_SIZE, title: str | None = None) -> Image.Image:
    """Generate a ``size`` x ``size`` QR image, optionally framed with a label.

    Payment payloads always use the HIGH error correction level.
    """

    qr = qrcode.QRCode(version=None, error_correction=qrcode.constants.ERROR_CORRECT_H, box_size=10, border=4)
    qr.add_data(data)
    qr.make(fit=True)

    qr_img = qr.make_image(fill_color="black", back_color="white").convert("RGB")
    qr_img = qr_img.resize((size, size), Image.Resampling.NEAREST)
    if not title:
        return qr_img

    label_height = 40
    margin = 20
    canvas_width = size + margin * 2
    canvas_height = size + margin * 2 + label_height

    canvas = Image.new("RGB", (canvas_width, canvas_height), color="#FFFFFF")
    canvas.paste(qr_img, (margin, margin))

    draw = ImageDraw.Draw(canvas)
    font = ImageFont.load_default()
    text = title.upper()
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    text_x = (canvas_width - (right - left)) // 2
    text_y = margin + size + (label_height - (bottom - top)) // 2
    draw.text((text_x, text_y), text, fill="#1F2937", font=font)

    return canvas


def qr_image_to_png_bytes(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def render_qr_payload(payload: str, size: int = DEFAULT_SIZE, title: str | None = None) -> dict[str, Any]:
    """Render payload into PNG bytes and base64 string."""

    image = generate_qr_image(payload, size=size, title=title)
    png_bytes = qr_image_to_png_bytes(image)
    return {
        "png_bytes": png_bytes,
        "png_base64": base64.b64encode(png_bytes).decode("ascii"),
    }


def save_qr_png(payload: str, path: str | Path, size: int = DEFAULT_SIZE) -> Path:
    target = Path(path)
    target.write_bytes(render_qr_payload(payload, size=size)["png_bytes"])
    return target
