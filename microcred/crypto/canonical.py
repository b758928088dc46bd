import json
from typing import Any

from microcred.errors import MalformedInputError

def canonicalize(obj: Any) -> bytes:
    """
        Canonical JSON encoding used for signing and verification.
        -sort_keys = True. fixes key order, so dict insertion order never matters
        -separators = (',', ':') removes whitespace variations
        -ensure_ascii = False keeps UTF-8 stable (then encode to UTF-8)
        -allow_nan = False, NaN/Infinity have no portable JSON form
    """
    text = json.dumps(
        obj,
        sort_keys=True,
        separators=(',', ':'),
        ensure_ascii=False,
        allow_nan=False,
    )
    try:
        return text.encode('utf-8')
    except UnicodeEncodeError as exc:
        # lone surrogates have no UTF-8 form
        raise MalformedInputError(f"content is not encodable as UTF-8: {exc.reason}") from exc
