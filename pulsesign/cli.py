from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Sequence

from .config import SigningSettings
from .exc import BadData
from .signer import Signer
from .timed import TimestampSigner

logger = logging.getLogger("pulsesign.cli")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="pulsesign", description="Sign and verify values with PULSESIGN_* settings")
    p.add_argument("--salt", default=None, help="override the configured salt")
    sub = p.add_subparsers(dest="command", required=True)

    sign = sub.add_parser("sign", help="sign a raw string")
    sign.add_argument("value")
    sign.add_argument("--timed", action="store_true", help="embed a timestamp")

    unsign = sub.add_parser("unsign", help="verify a signed string and print the value")
    unsign.add_argument("signed")
    unsign.add_argument("--timed", action="store_true", help="expect a timestamp")
    unsign.add_argument("--max-age", type=int, default=None)

    dumps = sub.add_parser("dumps", help="serialize a JSON document into a URL-safe token")
    dumps.add_argument("document")
    dumps.add_argument("--timed", action="store_true")

    loads = sub.add_parser("loads", help="verify a URL-safe token and print its JSON document")
    loads.add_argument("token")
    loads.add_argument("--timed", action="store_true")
    loads.add_argument("--max-age", type=int, default=None)
    return p


def _make_signer(settings: SigningSettings, salt: str | None, timed: bool) -> Signer:
    kwargs = settings.signer_kwargs()
    salt = salt if salt is not None else settings.salt
    if salt is not None:
        kwargs["salt"] = salt
    factory = TimestampSigner if timed else Signer
    return factory(settings.secret_keys, **kwargs)


def run(args: argparse.Namespace, settings: SigningSettings) -> str:
    max_age = getattr(args, "max_age", None)
    if max_age is None:
        max_age = settings.max_age

    if args.command == "sign":
        return _make_signer(settings, args.salt, args.timed).sign(args.value).decode("utf-8")

    if args.command == "unsign":
        signer = _make_signer(settings, args.salt, args.timed)
        if isinstance(signer, TimestampSigner):
            return signer.unsign(args.signed, max_age=max_age).decode("utf-8")
        return signer.unsign(args.signed).decode("utf-8")

    overrides = {"salt": args.salt} if args.salt is not None else {}
    if args.timed:
        serializer = settings.make_timed_serializer(**overrides)
    else:
        serializer = settings.make_serializer(**overrides)

    if args.command == "dumps":
        return serializer.dumps(json.loads(args.document))

    if args.timed:
        value = serializer.loads(args.token, max_age=max_age)
    else:
        value = serializer.loads(args.token)
    return json.dumps(value)


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = SigningSettings.load()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    try:
        output = run(args, settings)
    except BadData as exc:
        logger.debug("Command %s rejected input", args.command, exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(output)
    return 0


__all__ = ["main", "run"]
