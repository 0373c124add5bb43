"""Exceptions raised when signed data cannot be trusted or decoded."""

from __future__ import annotations

from datetime import datetime
from typing import Any


class BadData(Exception):
    """Raised if bad data of any sort was encountered.

    Every other error in this package derives from it, so callers that only
    care about "is this token usable" can catch this one class.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class BadSignature(BadData):
    """Raised if a signature does not match.

    The unverified payload is kept on :attr:`payload` so it can be inspected
    for debugging. It must never be trusted.
    """

    def __init__(self, message: str, payload: Any | None = None):
        super().__init__(message)
        self.payload = payload


class BadTimeSignature(BadSignature):
    """Raised if a time-based signature is invalid."""

    def __init__(
        self,
        message: str,
        payload: Any | None = None,
        date_signed: datetime | None = None,
    ):
        super().__init__(message, payload)
        #: The time the signature was created, if it could be recovered.
        self.date_signed = date_signed


class SignatureExpired(BadTimeSignature):
    """Raised if a signature timestamp is older than ``max_age`` or lies in
    the future.
    """


class BadPayload(BadData):
    """Raised when a payload cannot be decoded after (or without) checking
    the signature. The underlying error is stored as :attr:`original_error`.
    """

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error


__all__ = [
    "BadData",
    "BadPayload",
    "BadSignature",
    "BadTimeSignature",
    "SignatureExpired",
]
