from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from microcred.crypto.signing import ed25519_verify
from microcred.errors import MalformedInputError, VerificationError
from microcred.models import IssuerIdentity, Microcredential, canonical_bytes, utc_now

logger = logging.getLogger(__name__)


class FailureReason(Enum):
    UNTRUSTED_ISSUER = "untrusted_issuer"
    ISSUER_IDENTITY_MISMATCH = "issuer_identity_mismatch"
    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"
    MALFORMED_INPUT = "malformed_input"
    MISSING_SIGNATURE = "missing_signature"


@dataclass(frozen=True)
class VerificationResult:
    valid: bool
    reason: Optional[FailureReason] = None
    detail: str = ""
    credential_id: Optional[str] = None

    def __bool__(self) -> bool:
        return self.valid

    @classmethod
    def ok(cls, credential_id: str) -> VerificationResult:
        return cls(valid=True, credential_id=credential_id)

    @classmethod
    def fail(cls, reason: FailureReason, detail: str, credential_id: Optional[str] = None) -> VerificationResult:
        return cls(valid=False, reason=reason, detail=detail, credential_id=credential_id)

    def raise_for_failure(self) -> None:
        if not self.valid:
            raise VerificationError(self.reason, self.detail)


class Verifier:
    """Checks credentials against a set of trusted issuers.

    Trusted issuers are keyed by their raw public key. The trust map has no
    internal locking: callers that call ``add_trusted_issuer`` or
    ``remove_trusted_issuer`` while other threads verify must synchronise
    those calls themselves.
    """

    def __init__(self, trusted: Iterable[IssuerIdentity] = ()) -> None:
        self._trusted: Dict[bytes, IssuerIdentity] = {}
        for identity in trusted:
            self.add_trusted_issuer(identity)

    def add_trusted_issuer(self, identity: IssuerIdentity) -> None:
        self._trusted[identity.public_key] = identity

    def remove_trusted_issuer(self, public_key: bytes) -> bool:
        return self._trusted.pop(bytes(public_key), None) is not None

    def trusted_issuers(self) -> Tuple[IssuerIdentity, ...]:
        return tuple(self._trusted.values())

    def _resolve_issuer(self, claimed: IssuerIdentity) -> Tuple[Optional[IssuerIdentity], Optional[VerificationResult]]:
        # keyed by public key, so a hit already means the embedded key matches byte-for-byte
        trusted = self._trusted.get(claimed.public_key)
        if trusted is None:
            # a trusted name or url with an unknown key is a spoofing attempt
            for known in self._trusted.values():
                if known.name == claimed.name or known.url == claimed.url:
                    return None, VerificationResult.fail(
                        FailureReason.ISSUER_IDENTITY_MISMATCH,
                        f"issuer {claimed.name!r} presents a key that differs from the trusted one",
                    )
            return None, VerificationResult.fail(
                FailureReason.UNTRUSTED_ISSUER,
                f"issuer {claimed.name!r} is not in the trusted list",
            )
        if trusted.name != claimed.name or trusted.url != claimed.url:
            return None, VerificationResult.fail(
                FailureReason.ISSUER_IDENTITY_MISMATCH,
                f"trusted key is registered to {trusted.name!r}, credential claims {claimed.name!r}",
            )
        return trusted, None

    def _check(self, credential: Microcredential, now: Optional[datetime]) -> VerificationResult:
        trusted, failure = self._resolve_issuer(credential.issuer)
        if failure is not None:
            return failure

        if credential.signature is None:
            return VerificationResult.fail(FailureReason.MISSING_SIGNATURE, "credential is not signed")

        try:
            msg = canonical_bytes(credential)
            # always the key from the trust set, never the embedded one
            ok = ed25519_verify(msg, credential.signature, trusted.public_key)
        except MalformedInputError as exc:
            return VerificationResult.fail(FailureReason.MALFORMED_INPUT, str(exc))
        if not ok:
            return VerificationResult.fail(FailureReason.INVALID_SIGNATURE, "signature does not match content")

        if credential.is_expired(now or utc_now()):
            return VerificationResult.fail(
                FailureReason.EXPIRED,
                f"credential expired at {credential.expires_at.isoformat()}",
            )

        return VerificationResult.ok(credential.id)

    def verify_credential(self, credential: Microcredential, now: Optional[datetime] = None) -> VerificationResult:
        """Run trust, identity, signature and expiry checks in that order.

        Failures come back as a VerificationResult with a FailureReason, so
        that an expired credential can be told apart from a forged one.
        """
        if now is not None and (not isinstance(now, datetime) or now.utcoffset() is None):
            raise MalformedInputError("now must be a timezone-aware datetime")
        result = self._check(credential, now)
        if result.valid:
            logger.debug("credential %s verified", credential.id, extra={"credential_id": credential.id})
            return result

        result = VerificationResult.fail(result.reason, result.detail, credential.id)
        logger.warning(
            "credential %s rejected: %s",
            credential.id,
            result.reason.value,
            extra={
                "credential_id": credential.id,
                "issuer": credential.issuer.name,
                "reason": result.reason.value,
            },
        )
        return result

    def verify_credentials(
        self, credentials: Iterable[Microcredential], now: Optional[datetime] = None
    ) -> List[VerificationResult]:
        at = now or utc_now()
        return [self.verify_credential(c, now=at) for c in credentials]
