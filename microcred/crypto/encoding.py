import base64
import binascii
import re
from typing import Union

from microcred.errors import MalformedInputError

_B64URL_CHARS = re.compile(r"[A-Za-z0-9_-]*")

def b64url_encode(data: bytes) -> str:
    """Encode bytes to a URL-safe Base64 string without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b'=').decode('ascii')

def b64url_decode(s: Union[str, bytes]) -> bytes:
    if isinstance(s, bytes):
        s = s.decode("ascii", errors="replace")
    if not isinstance(s, str) or not _B64URL_CHARS.fullmatch(s):
        raise MalformedInputError(f"not valid base64url: {s!r}")

    pad = "=" * ((4 - len(s) % 4) % 4)
    try:
        return base64.urlsafe_b64decode((s + pad).encode("ascii"))
    except binascii.Error as exc:
        raise MalformedInputError(f"not valid base64url: {s!r}") from exc
