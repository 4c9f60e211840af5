"""
QR tickets for confirmed entries.

The ticket encodes the public code (team code or participant code) so
volunteers at the venue can scan it and look the entry up.
Uses `segno` — a pure-Python QR encoder (no native libs required).
"""
from __future__ import annotations

import io

import segno


def generate_ticket_png(code: str, scale: int = 10, border: int = 2) -> bytes:
    """
    Render a QR code for the given public code as a PNG image.

    Parameters
    ----------
    code   : e.g. "T23-00001"
    scale  : pixels per module
    border : quiet-zone width in modules
    """
    qr  = segno.make_qr(code, error="M")
    buf = io.BytesIO()
    qr.save(buf, kind="png", scale=scale, border=border)
    return buf.getvalue()
