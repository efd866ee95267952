"""Transport encoding for PTY payloads.

Terminal output is not guaranteed to be valid UTF-8 (control bytes,
split multi-byte sequences), so every payload crossing a text-oriented
boundary is wrapped in standard base64.
"""

from __future__ import annotations

import base64
import binascii

from ptymux.errors import PayloadDecodeError


def encode_payload(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def decode_payload(text: str) -> bytes:
    """Decode a base64 payload into raw PTY bytes.

    Raises:
        PayloadDecodeError: If ``text`` is not valid standard base64.
    """
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise PayloadDecodeError(f"Invalid base64 payload: {e}") from e
