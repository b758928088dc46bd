"""microcred error hierarchy.

Verification outcomes are returned as ``VerificationResult`` values, not
raised. The exceptions here cover malformed input, issuance-time validation
and an unavailable randomness source.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from microcred.verifier.verify import FailureReason


class MicrocredError(Exception):
    """Base exception for all microcred errors."""


class MalformedInputError(MicrocredError, ValueError):
    """Key, signature or serialized credential cannot be decoded."""


class RandomnessUnavailableError(MicrocredError, RuntimeError):
    """The OS random source failed while generating keys or identifiers."""


class CredentialValidationError(MicrocredError, ValueError):
    """Issuance input breaks a data-model rule."""


class VerificationError(MicrocredError):
    """A verification failure, raised on request by VerificationResult."""

    def __init__(self, reason: FailureReason, detail: str = "") -> None:
        self.reason = reason
        self.detail = detail
        super().__init__(f"{reason.value}: {detail}" if detail else reason.value)
