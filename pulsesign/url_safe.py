from __future__ import annotations

import zlib
from typing import Any

from .encoding import base64_decode, base64_encode
from .exc import BadData, BadPayload
from .serializer import Serializer, compact_json
from .timed import TimedSerializer

COMPRESSED_MARKER = b"."


class URLSafePayloadCodec:
    """zlib-compresses the payload when that makes it shorter and encodes the
    result with URL-safe base64. Compressed payloads are prefixed with a
    ``.``, which is not part of the base64 alphabet.
    """

    def encode(self, payload: bytes) -> bytes:
        is_compressed = False
        compressed = zlib.compress(payload)

        if len(compressed) < (len(payload) - 1):
            payload = compressed
            is_compressed = True

        base64d = base64_encode(payload)

        if is_compressed:
            base64d = COMPRESSED_MARKER + base64d

        return base64d

    def decode(self, payload: bytes) -> bytes:
        decompress = False

        if payload.startswith(COMPRESSED_MARKER):
            payload = payload[len(COMPRESSED_MARKER):]
            decompress = True

        try:
            json = base64_decode(payload)
        except BadData as exc:
            raise BadPayload(
                "Could not base64 decode the payload because of an exception",
                original_error=exc,
            ) from exc

        if decompress:
            try:
                json = zlib.decompress(json)
            except zlib.error as exc:
                raise BadPayload(
                    "Could not zlib decompress the payload before decoding the payload",
                    original_error=exc,
                ) from exc

        return json


url_safe_codec = URLSafePayloadCodec()


class URLSafeSerializer(Serializer):
    """Produces compact, URL-safe tokens using compact JSON and
    :class:`URLSafePayloadCodec`.
    """

    def __init__(self, *args: Any, **kwargs: Any):
        kwargs.setdefault("serializer", compact_json)
        kwargs.setdefault("payload_codec", url_safe_codec)
        super().__init__(*args, **kwargs)


class URLSafeTimedSerializer(TimedSerializer):
    """Like :class:`URLSafeSerializer` but signs with a timestamp."""

    def __init__(self, *args: Any, **kwargs: Any):
        kwargs.setdefault("serializer", compact_json)
        kwargs.setdefault("payload_codec", url_safe_codec)
        super().__init__(*args, **kwargs)


__all__ = [
    "COMPRESSED_MARKER",
    "URLSafePayloadCodec",
    "URLSafeSerializer",
    "URLSafeTimedSerializer",
    "url_safe_codec",
]
