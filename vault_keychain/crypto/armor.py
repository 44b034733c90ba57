"""
Armor — ASCII transport encoding for keys, messages and signatures.

Format:
    -----BEGIN VAULT <KIND>-----
    <base64, 64 columns per line>
    -----END VAULT <KIND>-----

Armoring is deterministic: the same bytes always produce the same text,
so a signature over armored text survives a base64 round trip.
"""
import base64
import binascii
import re

from ..exceptions import ContentEncodingFailure

PUBLIC_KEY = "PUBLIC KEY"
PRIVATE_KEY = "PRIVATE KEY"
MESSAGE = "MESSAGE"
SIGNATURE = "SIGNATURE"

KINDS = (PUBLIC_KEY, PRIVATE_KEY, MESSAGE, SIGNATURE)

_LINE_WIDTH = 64
_ARMOR_PATTERN = re.compile(
    r"^-----BEGIN VAULT (?P<kind>[A-Z ]+)-----\n"
    r"(?P<body>[A-Za-z0-9+/=\n]*)"
    r"\n?-----END VAULT (?P=kind)-----\n?$"
)


def armor(raw: bytes, kind: str) -> str:
    """Armor raw bytes as ``kind``."""
    if kind not in KINDS:
        raise ContentEncodingFailure(f"Unknown armor kind: {kind}")
    encoded = base64.b64encode(raw).decode("ascii")
    lines = [
        encoded[i:i + _LINE_WIDTH] for i in range(0, len(encoded), _LINE_WIDTH)
    ]
    return (
        f"-----BEGIN VAULT {kind}-----\n"
        + "".join(f"{line}\n" for line in lines)
        + f"-----END VAULT {kind}-----\n"
    )


def kind_of(text: str) -> str:
    """Return the armor kind of ``text``.

    Raises:
        ContentEncodingFailure: If ``text`` is not armored.
    """
    if not isinstance(text, str):
        raise ContentEncodingFailure("Armored data must be text")
    match = _ARMOR_PATTERN.match(text.replace("\r\n", "\n"))
    if match is None:
        raise ContentEncodingFailure("Malformed armored block")
    return match.group("kind")


def unarmor(text: str, kind: str | None = None) -> bytes:
    """Return the raw bytes of an armored block.

    Args:
        text: Armored text.
        kind: Expected armor kind. Any kind is accepted when None.

    Raises:
        ContentEncodingFailure: If the text is not a well-formed block of
            the expected kind.
    """
    if not isinstance(text, str):
        raise ContentEncodingFailure("Armored data must be text")
    match = _ARMOR_PATTERN.match(text.replace("\r\n", "\n"))
    if match is None:
        raise ContentEncodingFailure("Malformed armored block")
    if kind is not None and match.group("kind") != kind:
        raise ContentEncodingFailure(
            f"Expected armored {kind}, got {match.group('kind')}"
        )
    body = match.group("body").replace("\n", "")
    try:
        return base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as err:
        raise ContentEncodingFailure("Armored body is not valid base64") from err


def unarmor_to_base64(text: str) -> str:
    """Strip the armor from ``text`` and return its body as one base64 string."""
    return base64.b64encode(unarmor(text)).decode("ascii")


def armor_base64(data: str, kind: str) -> str:
    """Inverse of ``unarmor_to_base64``."""
    return armor(decode_base64(data), kind)


def decode_base64(data: str) -> bytes:
    """Decode transport base64.

    Raises:
        ContentEncodingFailure: If ``data`` is not valid base64.
    """
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError, TypeError) as err:
        raise ContentEncodingFailure("Value is not valid base64") from err
