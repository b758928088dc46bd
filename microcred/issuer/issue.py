from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Mapping, Optional
from uuid import uuid4

from Crypto.PublicKey import ECC

from microcred.core.config import Settings, load_settings
from microcred.crypto.hashing import fingerprint
from microcred.crypto.keys import (
    PRIVATE_KEY_FILENAME,
    generate_keypair,
    load_private_key,
    public_key_bytes,
    save_private_key,
)
from microcred.crypto.signing import ed25519_sign
from microcred.errors import (
    CredentialValidationError,
    MalformedInputError,
    RandomnessUnavailableError,
)
from microcred.models import (
    Evidence,
    IssuerIdentity,
    Microcredential,
    Skill,
    Subject,
    canonical_bytes,
    utc_now,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _require_utc(dt: datetime, field_name: str) -> datetime:
    if not isinstance(dt, datetime) or dt.utcoffset() is None:
        raise CredentialValidationError(f"{field_name} must be a timezone-aware datetime")
    return dt


def _new_credential_id() -> str:
    try:
        return str(uuid4())
    except (OSError, NotImplementedError) as exc:
        raise RandomnessUnavailableError("OS randomness source unavailable") from exc


class Issuer:
    """Signs microcredentials under one Ed25519 key.

    The private key lives only inside this object. There is no accessor for
    it, ``repr`` leaves it out, and copying or pickling an Issuer is refused;
    use ``from_key_file`` to persist and reload the key separately from the
    public identity. After construction the Issuer is read-only and may be
    shared between threads.
    """

    def __init__(
        self,
        name: str,
        url: str,
        *,
        clock: Optional[Clock] = None,
        settings: Optional[Settings] = None,
        _signing_key: Optional[ECC.EccKey] = None,
    ) -> None:
        if _signing_key is None:
            _signing_key, public_key = generate_keypair()
        else:
            public_key = public_key_bytes(_signing_key)
        self._identity = IssuerIdentity(name=name, url=url, public_key=public_key)
        self.__signing_key = _signing_key
        self._clock: Clock = clock or utc_now
        self._settings = settings or load_settings()
        logger.info(
            "issuer ready: %s (key %s)",
            name,
            fingerprint(public_key),
            extra={"issuer": name, "fingerprint": fingerprint(public_key)},
        )

    @classmethod
    def from_private_key(cls, name: str, url: str, key: ECC.EccKey, **kwargs) -> Issuer:
        if not key.has_private() or key.curve != "Ed25519":
            raise CredentialValidationError("issuer key must be an Ed25519 private key")
        return cls(name, url, _signing_key=key, **kwargs)

    @classmethod
    def from_key_file(
        cls,
        name: str,
        url: str,
        sk_path: Optional[Path] = None,
        **kwargs,
    ) -> Issuer:
        """Load the signing key from a PEM file, generating it on first use."""
        if sk_path is None:
            settings = kwargs.get("settings") or load_settings()
            sk_path = settings.key_dir / PRIVATE_KEY_FILENAME
        if not sk_path.exists():
            sk, _ = generate_keypair()
            save_private_key(sk, sk_path)
            logger.info("generated new issuer key at %s", sk_path)
        return cls.from_private_key(name, url, load_private_key(sk_path), **kwargs)

    def __repr__(self) -> str:
        return f"Issuer(name={self._identity.name!r}, url={self._identity.url!r})"

    def __copy__(self):
        raise TypeError("Issuer holds a private key and cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("Issuer holds a private key and cannot be copied")

    def __reduce__(self):
        raise TypeError("Issuer holds a private key and cannot be pickled")

    @property
    def public_key(self) -> bytes:
        return self._identity.public_key

    def get_issuer_info(self) -> IssuerIdentity:
        # IssuerIdentity is frozen, so handing out the instance is a copy in effect
        return self._identity

    def issue_credential(
        self,
        subject: Subject,
        skill: Skill,
        evidence: Iterable[Evidence],
        expires_at: Optional[datetime] = None,
        metadata: Optional[Mapping[str, str]] = None,
    ) -> Microcredential:
        issued_at = _require_utc(self._clock(), "issued_at")
        if expires_at is not None:
            _require_utc(expires_at, "expires_at")
            if self._settings.strict_expiry and expires_at <= issued_at:
                raise CredentialValidationError(
                    "expires_at must be later than issued_at "
                    f"({expires_at.isoformat()} <= {issued_at.isoformat()})"
                )

        meta = dict(metadata or {})
        for key, value in meta.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise CredentialValidationError(f"metadata entries must be str -> str (got {key!r})")

        credential = Microcredential(
            id=_new_credential_id(),
            issuer=self._identity,
            subject=subject,
            skill=skill,
            evidence=list(evidence),
            issued_at=issued_at,
            expires_at=expires_at,
            metadata=meta,
        )

        try:
            msg = canonical_bytes(credential)
        except MalformedInputError as exc:
            raise CredentialValidationError(str(exc)) from exc
        credential.signature = ed25519_sign(msg, self.__signing_key)

        logger.info(
            "issued credential %s to %s",
            credential.id,
            subject.id,
            extra={
                "credential_id": credential.id,
                "issuer": self._identity.name,
                "fingerprint": fingerprint(msg),
            },
        )
        return credential
