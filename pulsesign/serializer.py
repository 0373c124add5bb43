from __future__ import annotations

import json
import logging
from typing import IO, Any, Callable, Dict, Iterator, List, Optional, Protocol, Sequence, Tuple

from .encoding import want_bytes
from .exc import BadPayload, BadSignature
from .signer import SecretKey, Signer, make_keys_list

logger = logging.getLogger("pulsesign.serializer")


class SerializerModule(Protocol):
    """Anything with ``dumps``/``loads`` such as :mod:`json` or :mod:`pickle`."""

    def dumps(self, obj: Any) -> str | bytes:
        ...

    def loads(self, payload: Any) -> Any:
        ...


class PayloadCodec(Protocol):
    """Transforms serialized bytes before they are signed and after they are
    verified, e.g. to compress them.
    """

    def encode(self, payload: bytes) -> bytes:
        ...

    def decode(self, payload: bytes) -> bytes:
        ...


class _CompactJSON:
    """JSON without whitespace between items."""

    @staticmethod
    def loads(payload: str | bytes) -> Any:
        return json.loads(payload)

    @staticmethod
    def dumps(obj: Any, **kwargs: Any) -> str:
        kwargs.setdefault("ensure_ascii", False)
        kwargs.setdefault("separators", (",", ":"))
        return json.dumps(obj, **kwargs)


compact_json = _CompactJSON()


def is_text_serializer(serializer: SerializerModule) -> bool:
    """Checks whether a serializer generates text or binary."""
    return isinstance(serializer.dumps({}), str)


SignerFactory = Callable[..., Signer]


class Serializer:
    """Signs any value the configured serializer can handle.

    ``signer`` is the signer class (or any callable returning a
    :class:`Signer`) used for every operation, configured with
    ``signer_kwargs``. ``payload_codec`` post-processes the serialized
    bytes, see :mod:`pulsesign.url_safe`.

    ``fallback_signers`` lists extra signer configurations that are tried
    when loading. Each entry is a dict of ``signer_kwargs``, a signer
    factory, or a ``(factory, kwargs)`` pair. Dumping always uses the main
    signer, so old tokens keep loading while new ones move to the new
    configuration.
    """

    default_serializer: SerializerModule = compact_json
    default_signer: SignerFactory = Signer
    default_salt: bytes = b"itsdangerous"

    def __init__(
        self,
        secret_key: SecretKey,
        salt: str | bytes | None = None,
        serializer: SerializerModule | None = None,
        signer: SignerFactory | None = None,
        signer_kwargs: Dict[str, Any] | None = None,
        payload_codec: PayloadCodec | None = None,
        fallback_signers: Sequence[Any] | None = None,
    ):
        self.secret_keys: List[bytes] = make_keys_list(secret_key)
        self.salt: bytes = want_bytes(salt if salt is not None else self.default_salt)
        self.serializer: SerializerModule = serializer or self.default_serializer
        self.is_text_serializer: bool = is_text_serializer(self.serializer)
        self.signer: SignerFactory = signer or self.default_signer
        self.signer_kwargs: Dict[str, Any] = dict(signer_kwargs or {})
        self.payload_codec: PayloadCodec | None = payload_codec
        self.fallback_signers: List[Any] = list(fallback_signers or [])

    @property
    def secret_key(self) -> bytes:
        return self.secret_keys[-1]

    def load_payload(self, payload: bytes, serializer: SerializerModule | None = None) -> Any:
        """Decode a verified (or deliberately unverified) payload.

        Errors from the payload codec or the serializer are raised as
        :class:`BadPayload`.
        """
        if self.payload_codec is not None:
            payload = self.payload_codec.decode(payload)

        if serializer is None:
            serializer = self.serializer
            is_text = self.is_text_serializer
        else:
            is_text = is_text_serializer(serializer)

        try:
            if is_text:
                return serializer.loads(payload.decode("utf-8"))
            return serializer.loads(payload)
        except Exception as exc:
            raise BadPayload(
                "Could not load the payload because an exception occurred"
                " on unserializing the data.",
                original_error=exc,
            ) from exc

    def dump_payload(self, obj: Any) -> bytes:
        payload = want_bytes(self.serializer.dumps(obj))
        if self.payload_codec is not None:
            payload = self.payload_codec.encode(payload)
        return payload

    def make_signer(self, salt: str | bytes | None = None) -> Signer:
        if salt is None:
            salt = self.salt
        return self.signer(self.secret_keys, salt=salt, **self.signer_kwargs)

    def iter_unsigners(self, salt: str | bytes | None = None) -> Iterator[Signer]:
        """Yield the main signer followed by every fallback signer."""
        if salt is None:
            salt = self.salt

        yield self.make_signer(salt)

        for fallback in self.fallback_signers:
            if isinstance(fallback, dict):
                factory, kwargs = self.signer, fallback
            elif isinstance(fallback, tuple):
                factory, kwargs = fallback
            else:
                factory, kwargs = fallback, self.signer_kwargs
            yield factory(self.secret_keys, salt=salt, **kwargs)

    def dumps(self, obj: Any, salt: str | bytes | None = None) -> str | bytes:
        """Serialize and sign ``obj``. The token is text if the serializer
        produces text, bytes otherwise.
        """
        payload = self.dump_payload(obj)
        rv = self.make_signer(salt).sign(payload)
        if self.is_text_serializer:
            return rv.decode("utf-8")
        return rv

    def dump(self, obj: Any, f: IO[Any], salt: str | bytes | None = None) -> None:
        f.write(self.dumps(obj, salt))

    def loads(self, s: str | bytes, salt: str | bytes | None = None) -> Any:
        """Verify and deserialize a token made by :meth:`dumps`.

        :raises BadSignature: if no signer accepts the signature.
        :raises BadPayload: if the verified payload cannot be decoded.
        """
        s = want_bytes(s)
        last_exc: Optional[BadSignature] = None

        for signer in self.iter_unsigners(salt):
            try:
                return self.load_payload(signer.unsign(s))
            except BadSignature as err:
                last_exc = err

        assert last_exc is not None
        raise last_exc

    def load(self, f: IO[Any], salt: str | bytes | None = None) -> Any:
        return self.loads(f.read(), salt)

    def loads_unsafe(self, s: str | bytes, salt: str | bytes | None = None) -> Tuple[bool, Any]:
        """Like :meth:`loads` but never raises for a bad signature or a bad
        payload. Returns ``(True, value)`` on success and ``(False, None)``
        otherwise.

        Only use this with serializers that cannot execute code while
        loading (JSON is fine, pickle is not).
        """
        return self._loads_unsafe_impl(s, salt)

    def _loads_unsafe_impl(
        self,
        s: str | bytes,
        salt: str | bytes | None,
        load_kwargs: Dict[str, Any] | None = None,
    ) -> Tuple[bool, Any]:
        try:
            return True, self.loads(s, salt=salt, **(load_kwargs or {}))
        except (BadSignature, BadPayload) as exc:
            logger.debug("Rejected untrusted token: %s", exc)
            return False, None


__all__ = [
    "PayloadCodec",
    "Serializer",
    "SerializerModule",
    "compact_json",
    "is_text_serializer",
]
