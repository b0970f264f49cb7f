"""Override Decoder - classify and decode override payloads.

Override entries carry either plain text or base64 data. The plan format does
not say which, so the type is inferred from the logical path:

    Binary rule: a key is binary when the text after its final ``.`` is
    non-empty (``icons/a.png``, ``options.txt``, ``archive.tar.gz``,
    ``.gitignore``, and also ``config/mod.d/README``, where that text is
    ``d/README``). Anything else (``README``, ``config/LICENSE``, ``notes.``)
    is text.

This mirrors how the manifest producer encodes files, so the rule looks at
the whole key rather than the file name alone.
It is not a content-type detector; a text file with an extension is still
base64-decoded.
"""

import base64
import binascii
import re

import structlog

from ..constants import OVERRIDES_PREFIX
from ..utils.exceptions import DecodeError

logger = structlog.get_logger(__name__)

_DATA_URI_PREFIX = re.compile(r"^data:(.*?);base64,", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


def strip_overrides_prefix(key: str) -> str:
    """Remove a leading ``overrides/`` segment (case-insensitive) from a key."""
    if key[: len(OVERRIDES_PREFIX)].lower() == OVERRIDES_PREFIX:
        return key[len(OVERRIDES_PREFIX) :]
    return key


def is_binary_key(key: str) -> bool:
    """
    Decide whether an override key names a base64-encoded payload.

    Args:
        key: Override key, with or without the ``overrides/`` prefix

    Returns:
        bool: True if the key has a non-empty remainder after its final dot
    """
    _, dot, suffix = key.rpartition(".")
    return bool(dot) and suffix != ""


def decode_base64_payload(key: str, content: str) -> bytes:
    """
    Decode a base64 payload with an optional ``data:<mime>;base64,`` prefix.

    Line breaks and other whitespace inside the payload are ignored.

    Raises:
        DecodeError: If the payload is not valid base64
    """
    payload = _WHITESPACE.sub("", _DATA_URI_PREFIX.sub("", content, count=1))
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(key, f"invalid base64 payload ({e})") from e


class OverrideDecoder:
    """Turn an override entry into a destination path and file bytes."""

    def decode(self, key: str, content: str) -> tuple[str, bytes]:
        """
        Decode one override.

        Args:
            key: Override key from the plan
            content: Raw text or base64 payload

        Returns:
            Tuple of (path relative to the instance root, bytes to write)

        Raises:
            DecodeError: If a binary payload is malformed or text cannot be encoded
        """
        relative_path = strip_overrides_prefix(key)

        if is_binary_key(relative_path):
            data = decode_base64_payload(key, content)
            logger.debug("Decoded binary override", key=key, size=len(data))
        else:
            try:
                data = content.encode("utf-8")
            except UnicodeEncodeError as e:
                raise DecodeError(key, f"text is not encodable as UTF-8 ({e})") from e
            logger.debug("Decoded text override", key=key, size=len(data))

        return relative_path, data
