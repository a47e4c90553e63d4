"""QR image renderer for KHQR payloads."""
from __future__ import annotations

import base64
import io
from typing import Any

import qrcode
from PIL import Image, ImageDraw, ImageFont

KHQR_RED = "#E1232E"


def generate_qr_image(data: str, title: str = "KHQR") -> Image.Image:
    """Generate QR image inside a KHQR-style header frame."""

    qr = qrcode.QRCode(version=None, error_correction=qrcode.constants.ERROR_CORRECT_M, box_size=10, border=4)
    qr.add_data(data)
    qr.make(fit=True)

    qr_img = qr.make_image(fill_color="black", back_color="white").convert("RGBA")
    width, height = qr_img.size

    header_height = 48
    margin = 24
    canvas_width = width + margin * 2
    canvas_height = height + margin * 2 + header_height

    canvas = Image.new("RGBA", (canvas_width, canvas_height), color="#FFFFFF")
    draw = ImageDraw.Draw(canvas)
    draw.rectangle([(0, 0), (canvas_width, header_height)], fill=KHQR_RED)

    font = ImageFont.load_default()
    text = title.upper()
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    text_x = (canvas_width - (right - left)) // 2
    text_y = (header_height - (bottom - top)) // 2
    draw.text((text_x, text_y), text, fill="#FFFFFF", font=font)

    canvas.paste(qr_img, (margin, header_height + margin))
    return canvas


def qr_image_to_png_bytes(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def render_qr_payload(payload: str, title: str = "KHQR") -> dict[str, Any]:
    """Render payload into PNG bytes and base64 string."""

    image = generate_qr_image(payload, title=title)
    png_bytes = qr_image_to_png_bytes(image)
    return {
        "png_bytes": png_bytes,
        "png_base64": base64.b64encode(png_bytes).decode("ascii"),
    }
