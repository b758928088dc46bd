"""Credential data model and its canonical signing payload.

Two serializations exist for a Microcredential:

  canonical_bytes(credential)
      The exact bytes that are signed and verified. Built from
      ``signable_payload()`` (every field except ``signature``) and encoded
      with ``canonicalize``: sorted keys, no whitespace, UTF-8.

  to_json() / from_json()
      Transport form for storage or display. May be indented and carries the
      signature. It is never fed to sign or verify.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import total_ordering
from typing import Any, Dict, List, Optional

from microcred.crypto.canonical import canonicalize
from microcred.crypto.encoding import b64url_decode, b64url_encode
from microcred.crypto.keys import PUBLIC_KEY_LENGTH
from microcred.errors import CredentialValidationError, MalformedInputError

PAYLOAD_FORMAT = "microcred/v1"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """Fixed-width UTC timestamp, always with six fractional digits."""
    if not isinstance(dt, datetime) or dt.utcoffset() is None:
        raise MalformedInputError(f"timestamp must be a timezone-aware datetime (got {dt!r})")
    d = dt.astimezone(timezone.utc)
    return (
        f"{d.year:04d}-{d.month:02d}-{d.day:02d}"
        f"T{d.hour:02d}:{d.minute:02d}:{d.second:02d}.{d.microsecond:06d}Z"
    )


def parse_timestamp(value: str) -> datetime:
    try:
        dt = datetime.strptime(value, "%Y-%m-%dT%H:%M:%S.%fZ")
    except (TypeError, ValueError) as exc:
        raise MalformedInputError(f"bad timestamp {value!r}") from exc
    return dt.replace(tzinfo=timezone.utc)


@total_ordering
class SkillLevel(Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"

    @property
    def rank(self) -> int:
        return list(SkillLevel).index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SkillLevel):
            return NotImplemented
        return self.rank < other.rank


class EvidenceKind(Enum):
    PROJECT = "project"
    ASSESSMENT = "assessment"
    PORTFOLIO = "portfolio"
    CERTIFICATION = "certification"
    OTHER = "other"


@dataclass(frozen=True)
class EvidenceType:
    """Evidence kind; only OTHER carries a free-text label."""

    kind: EvidenceKind
    label: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.kind, EvidenceKind):
            raise CredentialValidationError(f"unknown evidence kind {self.kind!r}")
        if self.kind is EvidenceKind.OTHER:
            if not isinstance(self.label, str) or not self.label:
                raise CredentialValidationError("OTHER evidence requires a non-empty label")
        elif self.label is not None:
            raise CredentialValidationError(f"{self.kind.name} evidence takes no label")

    @classmethod
    def other(cls, label: str) -> EvidenceType:
        return cls(EvidenceKind.OTHER, label)

    def to_payload(self) -> Dict[str, str]:
        if self.kind is EvidenceKind.OTHER:
            return {"kind": self.kind.value, "label": self.label}
        return {"kind": self.kind.value}


@dataclass(frozen=True)
class IssuerIdentity:
    name: str
    url: str
    public_key: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise CredentialValidationError("issuer name must be a non-empty string")
        if not isinstance(self.url, str) or not self.url:
            raise CredentialValidationError("issuer url must be a non-empty string")
        if not isinstance(self.public_key, (bytes, bytearray)):
            raise MalformedInputError("issuer public key must be bytes")
        if len(self.public_key) != PUBLIC_KEY_LENGTH:
            raise MalformedInputError(
                f"issuer public key must be {PUBLIC_KEY_LENGTH} bytes (got {len(self.public_key)})"
            )
        object.__setattr__(self, "public_key", bytes(self.public_key))

    def to_payload(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "url": self.url,
            "public_key": b64url_encode(self.public_key),
        }


@dataclass(frozen=True)
class Subject:
    id: str
    name: str


@dataclass(frozen=True)
class Skill:
    name: str
    level: SkillLevel


@dataclass(frozen=True)
class Evidence:
    type: EvidenceType
    description: str
    url: Optional[str] = None


@dataclass
class Microcredential:
    """A signed skill statement.

    Created by ``Issuer.issue_credential``. Any change to a field after
    signing, ``add_metadata`` included, makes the signature invalid; there is
    no re-signing helper.
    """

    id: str
    issuer: IssuerIdentity
    subject: Subject
    skill: Skill
    evidence: List[Evidence]
    issued_at: datetime
    expires_at: Optional[datetime] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    signature: Optional[bytes] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or utc_now()) >= self.expires_at

    def add_metadata(self, key: str, value: str) -> None:
        self.metadata[key] = value

    def signable_payload(self) -> Dict[str, Any]:
        for key, value in self.metadata.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise MalformedInputError(f"metadata entries must be str -> str (got {key!r})")
        return {
            "format": PAYLOAD_FORMAT,
            "id": self.id,
            "issuer": self.issuer.to_payload(),
            "subject": {"id": self.subject.id, "name": self.subject.name},
            "skill": {"name": self.skill.name, "level": self.skill.level.value},
            "evidence": [
                {"type": e.type.to_payload(), "description": e.description, "url": e.url}
                for e in self.evidence
            ],
            "issued_at": format_timestamp(self.issued_at),
            "expires_at": format_timestamp(self.expires_at) if self.expires_at is not None else None,
            "metadata": dict(self.metadata),
        }

    def to_dict(self) -> Dict[str, Any]:
        data = self.signable_payload()
        data["signature"] = b64url_encode(self.signature) if self.signature is not None else None
        return data

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Microcredential:
        try:
            if data["format"] != PAYLOAD_FORMAT:
                raise MalformedInputError(f"unsupported credential format {data['format']!r}")
            issuer = data["issuer"]
            evidence = [
                Evidence(
                    type=EvidenceType(EvidenceKind(e["type"]["kind"]), e["type"].get("label")),
                    description=e["description"],
                    url=e.get("url"),
                )
                for e in data["evidence"]
            ]
            signature = data.get("signature")
            return cls(
                id=data["id"],
                issuer=IssuerIdentity(
                    name=issuer["name"],
                    url=issuer["url"],
                    public_key=b64url_decode(issuer["public_key"]),
                ),
                subject=Subject(id=data["subject"]["id"], name=data["subject"]["name"]),
                skill=Skill(name=data["skill"]["name"], level=SkillLevel(data["skill"]["level"])),
                evidence=evidence,
                issued_at=parse_timestamp(data["issued_at"]),
                expires_at=parse_timestamp(data["expires_at"]) if data.get("expires_at") is not None else None,
                metadata=dict(data.get("metadata") or {}),
                signature=b64url_decode(signature) if signature is not None else None,
            )
        except MalformedInputError:
            raise
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise MalformedInputError(f"malformed credential: {exc}") from exc

    @classmethod
    def from_json(cls, text: str) -> Microcredential:
        try:
            data = json.loads(text)
        except ValueError as exc:
            raise MalformedInputError(f"credential is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise MalformedInputError("credential JSON must be an object")
        return cls.from_dict(data)


def canonical_bytes(credential: Microcredential) -> bytes:
    """Bytes that the issuer signs; excludes the signature field."""
    return canonicalize(credential.signable_payload())
