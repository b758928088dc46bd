from typing import Union

from Crypto.PublicKey import ECC
from Crypto.Signature import eddsa

from microcred.crypto.keys import import_public_key
from microcred.errors import MalformedInputError

SIGNATURE_LENGTH = 64

def ed25519_sign(message: bytes, sk: ECC.EccKey) -> bytes:
    """
    Standard Ed25519 over the raw message bytes (RFC8032).
    DO NOT pre-hash here; the canonical bytes are signed as they are.
    """
    signer = eddsa.new(sk, mode="rfc8032")
    return signer.sign(message)

def ed25519_verify(message: bytes, sig: bytes, pk: Union[bytes, ECC.EccKey]) -> bool:
    """
    Verify standard Ed25519 signature over raw message bytes.

    Raises MalformedInputError for a key or signature that cannot be a valid
    Ed25519 value at all; returns False for a well-formed signature that does
    not match.
    """
    if not isinstance(pk, ECC.EccKey):
        pk = import_public_key(pk)
    if not isinstance(sig, (bytes, bytearray)) or len(sig) != SIGNATURE_LENGTH:
        got = len(sig) if isinstance(sig, (bytes, bytearray)) else type(sig).__name__
        raise MalformedInputError(
            f"signature must be {SIGNATURE_LENGTH} bytes (got {got})"
        )
    try:
        verifier = eddsa.new(pk, mode="rfc8032")
        verifier.verify(message, bytes(sig))
        return True
    except ValueError:
        return False
