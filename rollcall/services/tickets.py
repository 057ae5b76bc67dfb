"""Check-in codes and the QR tickets that carry them."""
from __future__ import annotations

import secrets
from io import BytesIO
from typing import Optional
from urllib.parse import quote, urljoin

import qrcode

from rollcall.config import get_config

CODE_BYTES = 24


def generate_checkin_code() -> str:
    """Return a fresh, unguessable bearer token for one registration."""
    return secrets.token_urlsafe(CODE_BYTES)


def checkin_url(code: str, *, base_url: Optional[str] = None) -> str:
    base = base_url or get_config().public_base_url
    return urljoin(base.rstrip("/") + "/", f"checkin?code={quote(code, safe='')}")


def build_qr_png(data: str, *, box_size: int = 8, border: int = 2) -> bytes:
    qr = qrcode.QRCode(version=None, box_size=box_size, border=border)
    qr.add_data(data)
    qr.make(fit=True)
    image = qr.make_image(fill_color="black", back_color="white")
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()
