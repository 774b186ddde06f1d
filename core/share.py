import secrets
import string
from io import BytesIO
from typing import Optional
from urllib.parse import urlparse

import qrcode

from core.settings import settings

SHARE_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_code(length: Optional[int] = None) -> str:
    length = length or settings.SHARE_CODE_LENGTH
    return "".join(secrets.choice(SHARE_CODE_ALPHABET) for _ in range(length))


def normalize_code(share_code: str) -> str:
    return share_code.strip().upper()


def is_well_formed_code(share_code: str) -> bool:
    return len(share_code) == settings.SHARE_CODE_LENGTH and all(
        ch in SHARE_CODE_ALPHABET for ch in share_code
    )


def share_url(share_code: str, base_url: Optional[str] = None) -> str:
    base_url = (base_url or settings.APP_BASE_URL).rstrip("/")
    return f"{base_url}/share/{share_code}"


def extract_share_code(url: str) -> Optional[str]:
    parts = urlparse(url).path.split("/")
    if len(parts) == 3 and parts[1] == "share" and parts[2]:
        return parts[2]
    return None


def is_share_url(url: str, base_url: Optional[str] = None) -> bool:
    base = urlparse(base_url or settings.APP_BASE_URL)
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return False
    return (
        (parsed.scheme, parsed.netloc) == (base.scheme, base.netloc)
        and extract_share_code(url) is not None
    )


def qr_png(data: str, box_size: int = 8, border: int = 2) -> bytes:
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
