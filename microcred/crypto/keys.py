import os
from pathlib import Path
from typing import Tuple

from Crypto.PublicKey import ECC
from Crypto.Signature import eddsa

from microcred.errors import MalformedInputError, RandomnessUnavailableError

PUBLIC_KEY_LENGTH = 32
PRIVATE_KEY_FILENAME = "issuer_sk.pem"

def generate_keypair() -> Tuple[ECC.EccKey, bytes]:
    """
    Fresh Ed25519 key pair from the OS CSPRNG.
    Returns the private key object and the raw 32-byte public key.
    """
    try:
        sk = ECC.generate(curve='Ed25519')
    except (OSError, NotImplementedError) as exc:
        raise RandomnessUnavailableError("OS randomness source unavailable") from exc
    return sk, public_key_bytes(sk)

def public_key_bytes(key: ECC.EccKey) -> bytes:
    pk = key.public_key() if key.has_private() else key
    return pk.export_key(format='raw')

def import_public_key(raw: bytes) -> ECC.EccKey:
    if not isinstance(raw, (bytes, bytearray)):
        raise MalformedInputError("public key must be bytes")
    if len(raw) != PUBLIC_KEY_LENGTH:
        raise MalformedInputError(
            f"public key must be {PUBLIC_KEY_LENGTH} bytes (got {len(raw)})"
        )
    try:
        return eddsa.import_public_key(bytes(raw))
    except ValueError as exc:
        raise MalformedInputError("public key is not a valid Ed25519 point") from exc

def save_private_key(sk: ECC.EccKey, sk_path: Path) -> None:
    sk_path.parent.mkdir(parents=True, exist_ok=True)
    # created owner-only; chmod also tightens a file that already existed
    fd = os.open(sk_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, 'w', encoding='utf-8') as f:
        f.write(sk.export_key(format='PEM'))
    sk_path.chmod(0o600)

def load_private_key(sk_path: Path) -> ECC.EccKey:
    sk_pem = sk_path.read_text(encoding='utf-8')
    try:
        sk = ECC.import_key(sk_pem)
    except ValueError as exc:
        raise MalformedInputError(f"{sk_path} does not hold a readable key") from exc
    if not sk.has_private() or sk.curve != 'Ed25519':
        raise MalformedInputError(f"{sk_path} is not an Ed25519 private key")
    return sk
