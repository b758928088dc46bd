import hashlib

def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()

def fingerprint(data: bytes) -> str:
    """Short hex SHA-256 prefix, safe to put in logs."""
    return sha256(data).hex()[:16]
