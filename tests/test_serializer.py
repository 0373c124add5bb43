"""Tests shared by every serializer flavour plus Serializer specifics."""

from __future__ import annotations

import io
import pickle

import pytest

from pulsesign.exc import BadPayload, BadSignature
from pulsesign.serializer import Serializer, compact_json, is_text_serializer
from pulsesign.signer import Signer
from pulsesign.url_safe import URLSafeSerializer, URLSafeTimedSerializer

SERIALIZER_TYPES = [Serializer, URLSafeSerializer, URLSafeTimedSerializer]


@pytest.fixture(params=SERIALIZER_TYPES, ids=lambda cls: cls.__name__)
def serializer(request) -> Serializer:
    return request.param("secret-key")


@pytest.mark.parametrize("value", [None, True, "str", "text", [1, 2, 3], {"id": 42}, {"nested": {"a": [1.5, "ü"]}}])
def test_round_trip(serializer, value) -> None:
    assert serializer.loads(serializer.dumps(value)) == value


@pytest.mark.parametrize(
    "transform",
    [
        lambda s: s.upper(),
        lambda s: s + "a",
        lambda s: "a" + s[1:],
        lambda s: s.replace(".", "", 1),
        lambda s: s + "=",
    ],
    ids=["upper", "append", "replace-first", "drop-separator", "append-padding"],
)
def test_changed_value_is_rejected(serializer, transform) -> None:
    value = {"id": 42}
    signed = serializer.dumps(value)
    assert serializer.loads(signed) == value

    with pytest.raises(BadSignature):
        serializer.loads(transform(signed))


def test_bad_signature_keeps_payload(serializer) -> None:
    value = {"id": 42}
    bad_signed = serializer.dumps(value)[:-1]

    with pytest.raises(BadSignature) as excinfo:
        serializer.loads(bad_signed)
    assert serializer.load_payload(excinfo.value.payload) == value


def test_bad_payload(serializer) -> None:
    original = serializer.dumps({"id": 42})
    payload = original.encode().rsplit(b".", 1)[0]
    bad = serializer.make_signer().sign(payload[:-1])

    with pytest.raises(BadPayload) as excinfo:
        serializer.loads(bad)
    assert excinfo.value.original_error is not None


def test_loads_unsafe(serializer) -> None:
    value = {"id": 42}
    signed = serializer.dumps(value)

    assert serializer.loads_unsafe(signed) == (True, value)
    assert serializer.loads_unsafe(signed[:-1]) == (False, None)

    payload = signed.encode().rsplit(b".", 1)[0]
    bad_payload = serializer.make_signer().sign(payload[:-1])
    assert serializer.loads_unsafe(bad_payload) == (False, None)


def test_alt_salt(serializer) -> None:
    value = {"id": 42}
    signed = serializer.dumps(value, salt="other")

    with pytest.raises(BadSignature):
        serializer.loads(signed)
    assert serializer.loads(signed, salt="other") == value


def test_key_rotation(serializer) -> None:
    cls = type(serializer)
    value = {"id": 42}
    old_token = cls("k1").dumps(value)
    new_token = cls(["k1", "k2"]).dumps(value)

    assert cls(["k1", "k2"]).loads(old_token) == value
    assert cls(["k1", "k2"]).loads(new_token) == value
    assert cls("k2").loads(new_token) == value
    with pytest.raises(BadSignature):
        cls("k2").loads(old_token)


def test_digests() -> None:
    def factory(digest_method=None) -> Serializer:
        kwargs = {"digest_method": digest_method} if digest_method else {}
        return Serializer("dev key", salt="dev salt", signer_kwargs=kwargs)

    default_value = factory().dumps([42])
    sha1_value = factory("sha1").dumps([42])
    sha512_value = factory("sha512").dumps([42])

    assert default_value == sha1_value
    assert sha1_value == "[42].-9cNi0CxsSB3hZPNCe9a2eEs1ZM"
    assert sha512_value == (
        "[42].MKCz_0nXQqv7wKpfHZcRtJRmpT2T5uvs9YQsJEhJimqxc9bCLxG31QzS5uC8OVBI1i6jyOLAFNoKaF5ckO9L5Q"
    )


def test_compact_json_has_no_whitespace() -> None:
    assert compact_json.dumps({"a": [1, 2], "b": "ü"}) == '{"a":[1,2],"b":"ü"}'


def test_is_text_serializer() -> None:
    assert is_text_serializer(compact_json)
    assert not is_text_serializer(pickle)


def test_binary_serializer_produces_bytes() -> None:
    serializer = Serializer("secret-key", serializer=pickle)
    value = {"when": (1, 2), "set": {3}}

    signed = serializer.dumps(value)

    assert isinstance(signed, bytes)
    assert serializer.loads(signed) == value


def test_load_payload_with_other_serializer() -> None:
    serializer = Serializer("secret-key")
    payload = pickle.dumps([1, 2])

    assert serializer.load_payload(payload, serializer=pickle) == [1, 2]
    with pytest.raises(BadPayload):
        serializer.load_payload(payload)


def test_dump_and_load_file() -> None:
    serializer = Serializer("secret-key")
    buffer = io.StringIO()

    serializer.dump({"id": 7}, buffer)
    buffer.seek(0)

    assert serializer.load(buffer) == {"id": 7}


def test_make_signer_uses_signer_kwargs() -> None:
    serializer = Serializer("secret-key", signer_kwargs={"digest_method": "sha256", "sep": "~"})

    signer = serializer.make_signer()

    assert isinstance(signer, Signer)
    assert signer.digest_method == "sha256"
    assert signer.sep == b"~"
    assert signer.salt == b"itsdangerous"
    assert serializer.make_signer("custom").salt == b"custom"


def test_fallback_signers() -> None:
    old = Serializer("secret-key", signer_kwargs={"digest_method": "sha256"})
    token = old.dumps({"id": 1})

    new = Serializer(
        "secret-key",
        signer_kwargs={"digest_method": "sha512"},
        fallback_signers=[{"digest_method": "sha256"}],
    )

    assert new.loads(token) == {"id": 1}
    assert Serializer("secret-key", signer_kwargs={"digest_method": "sha512"}).loads_unsafe(token) == (False, None)
    assert len(new.dumps({"id": 1}).rsplit(".", 1)[1]) == 86


def test_fallback_signer_factory_pairs() -> None:
    token = Serializer("secret-key", signer_kwargs={"key_derivation": "hmac"}).dumps("v")
    serializer = Serializer("secret-key", fallback_signers=[(Signer, {"key_derivation": "hmac"})])

    assert serializer.loads(token) == "v"


def test_loads_unsafe_propagates_other_errors() -> None:
    serializer = Serializer("secret-key", signer_kwargs={"key_derivation": "invalid"})

    with pytest.raises(TypeError):
        serializer.loads_unsafe("value.c2ln")


@pytest.mark.parametrize(
    "transform",
    [
        lambda sig: sig.replace("-", "+"),
        lambda sig: sig.replace("-", "/"),
        lambda sig: sig[:-1] + "h",
        lambda sig: sig + "=",
    ],
    ids=["plus-for-dash", "slash-for-dash", "unused-bits", "padding"],
)
def test_signature_spelled_differently_is_rejected(transform) -> None:
    serializer = URLSafeSerializer("secret key", salt="auth")
    token = serializer.dumps({"id": 5, "name": "itsdangerous"})
    payload, sig = token.rsplit(".", 1)
    assert sig == "6YP6T0BaO67XP--9UzTrmurXSmg"

    with pytest.raises(BadSignature):
        serializer.loads(f"{payload}.{transform(sig)}")
