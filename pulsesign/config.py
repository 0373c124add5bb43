from __future__ import annotations

import os
from typing import Any, Dict, List

from pydantic import BaseModel, Field, field_validator

from .signer import KeyDerivation, normalize_digest_method
from .url_safe import URLSafeSerializer, URLSafeTimedSerializer

ENV_PREFIX = "PULSESIGN_"
DEVELOPMENT_ENVIRONMENTS = {"development", "test", "testing"}


class SigningSettings(BaseModel):
    """Signing configuration loaded from ``PULSESIGN_*`` environment variables."""

    secret_keys: List[str] = Field(..., min_length=1, description="Secret keys, oldest first")
    salt: str | None = Field(default=None, description="Overrides the serializer's default salt")
    digest_method: str = "sha1"
    key_derivation: KeyDerivation = KeyDerivation.DJANGO_CONCAT
    max_age: int | None = Field(default=None, ge=0)
    environment: str = "development"
    log_level: str = "WARNING"

    @field_validator("secret_keys", mode="before")
    @classmethod
    def _split_secret_keys(cls, value: object) -> object:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("digest_method")
    @classmethod
    def _check_digest_method(cls, value: str) -> str:
        return normalize_digest_method(value)

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()

    @classmethod
    def load(cls, environ: Dict[str, str] | None = None) -> "SigningSettings":
        env = os.environ if environ is None else environ

        def _get(name: str) -> str | None:
            return env.get(f"{ENV_PREFIX}{name}")

        values: dict[str, object] = {}
        environment = (_get("ENVIRONMENT") or env.get("ENVIRONMENT") or "development").lower()
        values["environment"] = environment

        secret_keys = _get("SECRET_KEYS") or _get("SECRET_KEY")
        if secret_keys:
            values["secret_keys"] = secret_keys
        elif environment in DEVELOPMENT_ENVIRONMENTS:
            values["secret_keys"] = ["dev-signing-key"]
        else:
            raise RuntimeError(f"Missing required signing environment variable: {ENV_PREFIX}SECRET_KEYS")

        salt = _get("SALT")
        if salt:
            values["salt"] = salt
        digest_method = _get("DIGEST_METHOD")
        if digest_method:
            values["digest_method"] = digest_method
        key_derivation = _get("KEY_DERIVATION")
        if key_derivation:
            values["key_derivation"] = key_derivation
        max_age = _get("MAX_AGE")
        if max_age:
            values["max_age"] = max_age
        log_level = _get("LOG_LEVEL")
        if log_level:
            values["log_level"] = log_level
        return cls(**values)

    def signer_kwargs(self) -> Dict[str, Any]:
        return {
            "digest_method": self.digest_method,
            "key_derivation": self.key_derivation,
        }

    def make_serializer(self, **kwargs: Any) -> URLSafeSerializer:
        return URLSafeSerializer(**self._serializer_kwargs(kwargs))

    def make_timed_serializer(self, **kwargs: Any) -> URLSafeTimedSerializer:
        return URLSafeTimedSerializer(**self._serializer_kwargs(kwargs))

    def _serializer_kwargs(self, overrides: Dict[str, Any]) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "secret_key": self.secret_keys,
            "signer_kwargs": self.signer_kwargs(),
        }
        if self.salt is not None:
            kwargs["salt"] = self.salt
        kwargs.update(overrides)
        return kwargs


__all__ = ["SigningSettings", "ENV_PREFIX"]
