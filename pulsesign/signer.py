from __future__ import annotations

import enum
import hashlib
import hmac
import logging
from typing import Iterable, List, Union

from .encoding import BASE64_ALPHABET, base64_decode, base64_encode, want_bytes
from .exc import BadData, BadSignature

logger = logging.getLogger("pulsesign.signer")

SecretKey = Union[str, bytes, Iterable[Union[str, bytes]]]

# SHA-1 keeps tokens compatible with previously issued ones. New deployments
# should pick sha256 or stronger through ``digest_method``.
DEFAULT_DIGEST_METHOD = "sha1"


def normalize_digest_method(name: str) -> str:
    """Map names such as ``SHA-256`` onto :mod:`hashlib` names."""
    lowered = name.lower()
    for candidate in (lowered, lowered.replace("-", ""), lowered.replace("-", "_")):
        if candidate in hashlib.algorithms_available:
            return candidate
    raise ValueError(f"Unsupported digest method: {name}")


def _hash_digest(digest_method: str, data: bytes) -> bytes:
    return hashlib.new(digest_method, data).digest()


def _hmac_digest(digest_method: str, key: bytes, data: bytes) -> bytes:
    return hmac.new(key, msg=data, digestmod=digest_method).digest()


class SigningAlgorithm:
    """Subclasses must implement :meth:`get_signature` to provide
    signature generation functionality.
    """

    digest_method: str | None = None

    def get_signature(self, key: bytes, value: bytes) -> bytes:
        raise NotImplementedError()

    def verify_signature(self, key: bytes, value: bytes, sig: bytes) -> bool:
        try:
            expected = self.get_signature(key, value)
        except Exception:
            logger.debug("Signature computation failed during verification", exc_info=True)
            return False
        return hmac.compare_digest(sig, expected)


class NoneAlgorithm(SigningAlgorithm):
    """Provides an algorithm that does not perform any signing and
    returns an empty signature.
    """

    def get_signature(self, key: bytes, value: bytes) -> bytes:
        return b""


class HMACAlgorithm(SigningAlgorithm):
    """Provides signature generation using HMACs."""

    default_digest_method = DEFAULT_DIGEST_METHOD

    def __init__(self, digest_method: str | None = None):
        self.digest_method = normalize_digest_method(digest_method or self.default_digest_method)

    def get_signature(self, key: bytes, value: bytes) -> bytes:
        return _hmac_digest(self.digest_method, key, value)


class KeyDerivation(str, enum.Enum):
    CONCAT = "concat"
    DJANGO_CONCAT = "django-concat"
    HMAC = "hmac"
    NONE = "none"


def make_keys_list(secret_key: SecretKey) -> List[bytes]:
    if isinstance(secret_key, (str, bytes)):
        return [want_bytes(secret_key)]
    keys = [want_bytes(key) for key in secret_key]
    if not keys:
        raise ValueError("At least one secret key is required")
    return keys


class Signer:
    """Signs and unsigns byte values.

    The secret key may be a single key or a list ordered oldest to newest.
    New signatures are always made with the newest key while every key is
    accepted during verification, which allows rotating keys without
    invalidating issued tokens.

    The salt namespaces the derived key, so a value signed for one purpose
    (``"activate"``) does not verify for another (``"reset-password"``).
    """

    default_digest_method = DEFAULT_DIGEST_METHOD
    default_key_derivation = KeyDerivation.DJANGO_CONCAT

    def __init__(
        self,
        secret_key: SecretKey,
        salt: str | bytes | None = b"itsdangerous.Signer",
        sep: str | bytes = b".",
        key_derivation: KeyDerivation | str | None = None,
        digest_method: str | None = None,
        algorithm: SigningAlgorithm | None = None,
    ):
        self.secret_keys: List[bytes] = make_keys_list(secret_key)
        self.sep: bytes = want_bytes(sep)

        if not self.sep or any(byte in BASE64_ALPHABET for byte in self.sep):
            raise TypeError(
                "The given separator cannot be used because it may be"
                " contained in the signature itself. ASCII letters,"
                " digits, and '-_=' must not be used."
            )

        self.salt: bytes = want_bytes(salt if salt is not None else b"itsdangerous.Signer")
        self.key_derivation = key_derivation or self.default_key_derivation
        self.digest_method: str = normalize_digest_method(digest_method or self.default_digest_method)
        if algorithm is None:
            algorithm = HMACAlgorithm(self.digest_method)
        self.algorithm: SigningAlgorithm = algorithm

    @property
    def secret_key(self) -> bytes:
        """The newest secret key, used for signing."""
        return self.secret_keys[-1]

    def derive_key(self, secret_key: str | bytes | None = None) -> bytes:
        """Turn a secret key and the salt into the key fed to the algorithm.

        ``secret_key`` defaults to the newest configured key.
        """
        key = self.secret_key if secret_key is None else want_bytes(secret_key)

        try:
            mode = KeyDerivation(self.key_derivation)
        except ValueError:
            raise TypeError(f"Unknown key derivation method: {self.key_derivation!r}") from None

        if mode is KeyDerivation.CONCAT:
            return _hash_digest(self.digest_method, self.salt + key)
        if mode is KeyDerivation.DJANGO_CONCAT:
            return _hash_digest(self.digest_method, self.salt + b"signer" + key)
        if mode is KeyDerivation.HMAC:
            return _hmac_digest(self.digest_method, key, self.salt)
        return key

    def get_signature(self, value: str | bytes) -> bytes:
        key = self.derive_key()
        sig = self.algorithm.get_signature(key, want_bytes(value))
        return base64_encode(sig)

    def sign(self, value: str | bytes) -> bytes:
        value = want_bytes(value)
        return value + self.sep + self.get_signature(value)

    def verify_signature(self, value: str | bytes, sig: str | bytes) -> bool:
        try:
            decoded = base64_decode(sig)
        except BadData:
            return False

        value = want_bytes(value)

        for index, secret_key in enumerate(reversed(self.secret_keys)):
            key = self.derive_key(secret_key)
            if self.algorithm.verify_signature(key, value, decoded):
                if index:
                    logger.debug("Signature matched rotated key %s of %s", index, len(self.secret_keys))
                return True

        return False

    def unsign(self, signed_value: str | bytes) -> bytes:
        signed_value = want_bytes(signed_value)
        index = signed_value.rfind(self.sep)

        if index == -1:
            raise BadSignature(f"No {self.sep.decode('utf-8', 'replace')!r} found in value", payload=signed_value)

        value = signed_value[:index]
        sig = signed_value[index + len(self.sep):]

        if self.verify_signature(value, sig):
            return value

        logger.debug("Signature does not match for value of %s bytes", len(value))
        raise BadSignature(f"Signature {sig!r} does not match", payload=value)

    def validate(self, signed_value: str | bytes) -> bool:
        try:
            self.unsign(signed_value)
            return True
        except BadSignature:
            return False


__all__ = [
    "DEFAULT_DIGEST_METHOD",
    "HMACAlgorithm",
    "KeyDerivation",
    "NoneAlgorithm",
    "SecretKey",
    "Signer",
    "SigningAlgorithm",
    "make_keys_list",
    "normalize_digest_method",
]
