"""QR rendering for MFA enrollment when the server sends no image."""

import base64
import io
from urllib.parse import quote, urlencode

import qrcode


def build_otpauth_uri(secret: str, account_name: str, issuer: str) -> str:
    """
    Build the key URI understood by authenticator apps.

    otpauth://totp/<issuer> (<account>)?secret=...&issuer=...
    """
    label = quote(f"{issuer} ({account_name})")
    query = urlencode({"secret": secret, "issuer": issuer})
    return f"otpauth://totp/{label}?{query}"


def generate_qr_data_uri(data: str) -> str:
    """Generate a QR code and return it as a base64 encoded PNG data URI."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=8,
        border=4,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    buffer.seek(0)
    img_base64 = base64.b64encode(buffer.getvalue()).decode()

    return f"data:image/png;base64,{img_base64}"
