from __future__ import annotations

import abc
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterator, Tuple, Union

from .encoding import base64_decode, base64_encode, bytes_to_int, int_to_bytes, want_bytes
from .exc import BadData, BadSignature, BadTimeSignature, SignatureExpired
from .serializer import Serializer, SignerFactory
from .signer import Signer

logger = logging.getLogger("pulsesign.timed")

MaxAge = Union[int, float, timedelta]


class TimestampCapable(abc.ABC):
    """Marks signers whose ``unsign`` understands ``max_age`` and
    ``return_timestamp``. :class:`TimedSerializer` requires it.
    """

    @abc.abstractmethod
    def unsign(
        self,
        signed_value: str | bytes,
        max_age: MaxAge | None = None,
        return_timestamp: bool = False,
    ) -> Any:
        ...


class TimestampSigner(Signer, TimestampCapable):
    """Works like the regular :class:`Signer` but also records the time of
    signing and can be used to expire signatures.

    ``clock`` returns the current time in seconds since the epoch and
    defaults to :func:`time.time`.
    """

    def __init__(self, *args: Any, clock: Callable[[], float] | None = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.clock: Callable[[], float] = clock or time.time

    def get_timestamp(self) -> int:
        return int(self.clock())

    def timestamp_to_datetime(self, ts: int) -> datetime:
        """Convert the timestamp from :meth:`get_timestamp` into an aware
        UTC datetime.
        """
        try:
            return datetime.fromtimestamp(ts, tz=timezone.utc)
        except (ValueError, OverflowError, OSError) as exc:
            raise TypeError(f"Invalid timestamp: {ts}") from exc

    def sign(self, value: str | bytes) -> bytes:
        value = want_bytes(value)
        timestamp = base64_encode(int_to_bytes(self.get_timestamp()))
        value = value + self.sep + timestamp
        return value + self.sep + self.get_signature(value)

    def unsign(
        self,
        signed_value: str | bytes,
        max_age: MaxAge | None = None,
        return_timestamp: bool = False,
    ) -> bytes | Tuple[bytes, datetime]:
        """Verify the signature and optionally the age of ``signed_value``.

        :raises SignatureExpired: if the signature is older than ``max_age``
            or dated in the future while ``max_age`` is checked.
        :raises BadTimeSignature: if the timestamp is missing or malformed,
            or the signature does not match. ``date_signed`` is set when a
            timestamp could be recovered.
        """
        try:
            result = super().unsign(signed_value)
            sig_error = None
        except BadSignature as exc:
            sig_error = exc
            result = exc.payload or b""

        if self.sep not in result:
            if sig_error is not None:
                raise sig_error

            raise BadTimeSignature("Missing timestamp", payload=result)

        value, ts_bytes = result.rsplit(self.sep, 1)
        ts_int: int | None = None
        ts_dt: datetime | None = None

        try:
            ts_int = bytes_to_int(base64_decode(ts_bytes))
        except BadData:
            pass

        if sig_error is not None:
            if ts_int is not None:
                try:
                    ts_dt = self.timestamp_to_datetime(ts_int)
                except TypeError as exc:
                    raise BadTimeSignature("Malformed timestamp", payload=value) from exc

            raise BadTimeSignature(str(sig_error), payload=value, date_signed=ts_dt) from sig_error

        if ts_int is None:
            raise BadTimeSignature("Malformed timestamp", payload=value)

        if max_age is not None or return_timestamp:
            try:
                ts_dt = self.timestamp_to_datetime(ts_int)
            except TypeError as exc:
                raise BadTimeSignature("Malformed timestamp", payload=value) from exc

        if max_age is not None:
            if isinstance(max_age, timedelta):
                max_age = int(max_age.total_seconds())

            age = self.get_timestamp() - ts_int

            if age > max_age:
                logger.debug("Signature expired, age %s > %s", age, max_age)
                raise SignatureExpired(
                    f"Signature age {age} > {max_age} seconds",
                    payload=value,
                    date_signed=ts_dt,
                )

            if age < 0:
                logger.debug("Signature dated %s seconds in the future", -age)
                raise SignatureExpired(
                    f"Signature age {age} < 0 seconds",
                    payload=value,
                    date_signed=ts_dt,
                )

        if return_timestamp:
            assert ts_dt is not None
            return value, ts_dt

        return value

    def validate(self, signed_value: str | bytes, max_age: MaxAge | None = None) -> bool:
        try:
            self.unsign(signed_value, max_age=max_age)
            return True
        except BadSignature:
            return False


class TimedSerializer(Serializer):
    """Uses :class:`TimestampSigner` instead of the default
    :class:`.Signer`. Any other ``signer`` factory must build
    :class:`TimestampCapable` signers.
    """

    def __init__(self, *args: Any, signer: SignerFactory | None = None, **kwargs: Any):
        super().__init__(*args, signer=signer or TimestampSigner, **kwargs)

    def iter_unsigners(self, salt: str | bytes | None = None) -> Iterator[Signer]:
        for signer in super().iter_unsigners(salt):
            if not isinstance(signer, TimestampCapable):
                raise TypeError(f"{type(signer).__name__} cannot verify timestamps")
            yield signer

    def loads(
        self,
        s: str | bytes,
        max_age: MaxAge | None = None,
        return_timestamp: bool = False,
        salt: str | bytes | None = None,
    ) -> Any:
        """Like :meth:`.Serializer.loads` but checks ``max_age`` and can
        return ``(value, date_signed)``.

        :raises SignatureExpired: if the signature is too old.
        :raises BadSignature: if the signature does not match.
        """
        s = want_bytes(s)
        last_exc: BadSignature | None = None

        for signer in self.iter_unsigners(salt):
            try:
                base64d, timestamp = signer.unsign(s, max_age=max_age, return_timestamp=True)
                payload = self.load_payload(base64d)

                if return_timestamp:
                    return payload, timestamp

                return payload
            except SignatureExpired:
                # The signature was valid but is too old, other signers
                # would report the same age.
                raise
            except BadSignature as err:
                last_exc = err

        assert last_exc is not None
        raise last_exc

    def loads_unsafe(
        self,
        s: str | bytes,
        max_age: MaxAge | None = None,
        salt: str | bytes | None = None,
    ) -> Tuple[bool, Any]:
        return self._loads_unsafe_impl(s, salt, load_kwargs={"max_age": max_age})


__all__ = ["TimedSerializer", "TimestampCapable", "TimestampSigner"]
