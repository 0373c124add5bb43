from __future__ import annotations

import base64
import binascii
import re

from .exc import BadData

BASE64_ALPHABET = b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_="

_MAX_UINT64 = 2**64 - 1
_URL_SAFE_BASE64 = re.compile(rb"[A-Za-z0-9_-]*")


def want_bytes(value: str | bytes, encoding: str = "utf-8", errors: str = "strict") -> bytes:
    if isinstance(value, str):
        return value.encode(encoding, errors)
    return bytes(value)


def base64_encode(value: str | bytes) -> bytes:
    """URL-safe base64 without the trailing ``=`` padding."""
    return base64.urlsafe_b64encode(want_bytes(value)).rstrip(b"=")


def base64_decode(value: str | bytes) -> bytes:
    """Reverse :func:`base64_encode`, raising :class:`BadData` on garbage.

    Only the exact output of :func:`base64_encode` is accepted: no padding,
    no ``+`` or ``/`` and no stray bits in the last character. Otherwise a
    signature could be rewritten without changing the decoded bytes.
    """
    data = want_bytes(value)
    if not _URL_SAFE_BASE64.fullmatch(data):
        raise BadData("Invalid base64-encoded data")
    try:
        decoded = base64.urlsafe_b64decode(data + b"=" * (-len(data) % 4))
    except (TypeError, ValueError, binascii.Error) as exc:
        raise BadData("Invalid base64-encoded data") from exc
    if base64_encode(decoded) != data:
        raise BadData("Invalid base64-encoded data")
    return decoded


def int_to_bytes(num: int) -> bytes:
    if num < 0 or num > _MAX_UINT64:
        raise ValueError(f"{num} does not fit in an unsigned 64-bit integer")
    return num.to_bytes(8, "big").lstrip(b"\x00")


def bytes_to_int(data: bytes) -> int:
    if len(data) > 8:
        raise BadData("Integer data is longer than 8 bytes")
    return int.from_bytes(data.rjust(8, b"\x00"), "big")


__all__ = [
    "BASE64_ALPHABET",
    "base64_decode",
    "base64_encode",
    "bytes_to_int",
    "int_to_bytes",
    "want_bytes",
]
