"""Sign data so it can be handed to untrusted parties and verified later."""

from .encoding import base64_decode, base64_encode, bytes_to_int, int_to_bytes, want_bytes
from .exc import BadData, BadPayload, BadSignature, BadTimeSignature, SignatureExpired
from .serializer import PayloadCodec, Serializer, compact_json, is_text_serializer
from .signer import HMACAlgorithm, KeyDerivation, NoneAlgorithm, Signer, SigningAlgorithm
from .timed import TimedSerializer, TimestampCapable, TimestampSigner
from .url_safe import URLSafePayloadCodec, URLSafeSerializer, URLSafeTimedSerializer

__version__ = "1.0.0"

__all__ = [
    "BadData",
    "BadPayload",
    "BadSignature",
    "BadTimeSignature",
    "HMACAlgorithm",
    "KeyDerivation",
    "NoneAlgorithm",
    "PayloadCodec",
    "Serializer",
    "SignatureExpired",
    "Signer",
    "SigningAlgorithm",
    "TimedSerializer",
    "TimestampCapable",
    "TimestampSigner",
    "URLSafePayloadCodec",
    "URLSafeSerializer",
    "URLSafeTimedSerializer",
    "base64_decode",
    "base64_encode",
    "bytes_to_int",
    "compact_json",
    "int_to_bytes",
    "is_text_serializer",
    "want_bytes",
]
