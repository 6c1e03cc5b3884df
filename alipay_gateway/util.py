"""
Utility functions for the Alipay gateway client.

Provides encoding, hashing and masking helpers.
"""

import base64
import hashlib
from typing import Optional, Union


def b64e(b: bytes) -> str:
    """Base64 text of raw bytes."""
    return base64.b64encode(b).decode('ascii')


def b64d(s: Union[str, bytes]) -> bytes:
    """
    Base64 decode to bytes.

    Whitespace is tolerated so keys copied from the merchant console with
    line breaks still decode. Raises binascii.Error on invalid input.
    """
    if isinstance(s, str):
        s = s.encode('ascii')
    return base64.b64decode(b"".join(s.split()), validate=True)


def md5_hex(data: Union[bytes, str]) -> str:
    """Compute MD5 digest and return as lowercase hex string."""
    if isinstance(data, str):
        data = data.encode('utf-8')
    return hashlib.md5(data).hexdigest()


def is_pem(value: str) -> bool:
    """Check whether key or certificate material is PEM armored."""
    return "-----BEGIN" in value


def mask_sensitive(value: Optional[str], visible_chars: int = 4) -> str:
    """Hide all but the last few characters of an identifier before it is logged."""
    if not value:
        return ''
    keep = value[-visible_chars:] if len(value) > visible_chars else ''
    return '*' * (len(value) - len(keep)) + keep
