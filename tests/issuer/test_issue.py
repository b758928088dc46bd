from __future__ import annotations

import copy
import logging
import pickle
import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from microcred.core.config import Settings
from microcred.crypto.keys import generate_keypair
from microcred.crypto.signing import ed25519_verify
from microcred.errors import CredentialValidationError, RandomnessUnavailableError
from microcred.issuer.issue import Issuer
from microcred.models import Subject, canonical_bytes

from conftest import FIXED_NOW


def test_new_issuer_builds_public_identity(issuer: Issuer) -> None:
    info = issuer.get_issuer_info()
    assert info.name == "Acme University"
    assert info.url == "https://acme.example.edu"
    assert len(info.public_key) == 32
    assert issuer.public_key == info.public_key


def test_new_issuer_rejects_empty_name(settings: Settings) -> None:
    with pytest.raises(CredentialValidationError):
        Issuer("", "https://acme.example.edu", settings=settings)


def test_each_issuer_gets_its_own_key(settings: Settings) -> None:
    a = Issuer("A", "https://a.example", settings=settings)
    b = Issuer("B", "https://b.example", settings=settings)
    assert a.public_key != b.public_key


def test_issue_credential_fills_every_field(settings, fixed_clock, subject, skill, evidence) -> None:
    issuer = Issuer("Acme University", "https://acme.example.edu", clock=fixed_clock, settings=settings)
    cred = issuer.issue_credential(subject, skill, evidence, metadata={"course": "rust-101"})

    assert uuid.UUID(cred.id).version == 4
    assert cred.issuer == issuer.get_issuer_info()
    assert cred.subject == subject
    assert cred.skill == skill
    assert cred.evidence == evidence
    assert cred.issued_at == FIXED_NOW
    assert cred.expires_at is None
    assert cred.metadata == {"course": "rust-101"}
    assert len(cred.signature) == 64


def test_signature_covers_canonical_bytes(issuer, subject, skill, evidence) -> None:
    cred = issuer.issue_credential(subject, skill, evidence)
    assert ed25519_verify(canonical_bytes(cred), cred.signature, issuer.public_key)


def test_credential_ids_are_unique(issuer, subject, skill) -> None:
    ids = {issuer.issue_credential(subject, skill, []).id for _ in range(20)}
    assert len(ids) == 20


def test_issue_copies_evidence_and_metadata(issuer, subject, skill, evidence) -> None:
    meta = {"course": "rust-101"}
    cred = issuer.issue_credential(subject, skill, evidence, metadata=meta)
    evidence.append(replace(evidence[0], description="added later"))
    meta["course"] = "changed"
    assert len(cred.evidence) == 2
    assert cred.metadata == {"course": "rust-101"}


# ---- expiry policy ----


def test_strict_expiry_rejects_expiry_not_after_issuance(settings, fixed_clock, subject, skill) -> None:
    issuer = Issuer("Acme University", "https://acme.example.edu", clock=fixed_clock, settings=settings)
    with pytest.raises(CredentialValidationError, match="expires_at must be later"):
        issuer.issue_credential(subject, skill, [], expires_at=FIXED_NOW)
    with pytest.raises(CredentialValidationError):
        issuer.issue_credential(subject, skill, [], expires_at=FIXED_NOW - timedelta(days=1))


def test_lenient_expiry_issues_already_expired_credential(settings, fixed_clock, subject, skill) -> None:
    lenient = replace(settings, strict_expiry=False)
    issuer = Issuer("Acme University", "https://acme.example.edu", clock=fixed_clock, settings=lenient)
    cred = issuer.issue_credential(subject, skill, [], expires_at=FIXED_NOW - timedelta(days=1))
    assert cred.is_expired(FIXED_NOW)


def test_naive_expiry_is_rejected(issuer, subject, skill) -> None:
    with pytest.raises(CredentialValidationError, match="timezone-aware"):
        issuer.issue_credential(subject, skill, [], expires_at=datetime(2099, 1, 1))


def test_non_string_metadata_is_rejected(issuer, subject, skill) -> None:
    with pytest.raises(CredentialValidationError):
        issuer.issue_credential(subject, skill, [], metadata={"credits": 5})


def test_missing_randomness_is_fatal(issuer, subject, skill, monkeypatch: pytest.MonkeyPatch) -> None:
    from microcred.issuer import issue

    def broken():
        raise OSError("no entropy")

    monkeypatch.setattr(issue, "uuid4", broken)
    with pytest.raises(RandomnessUnavailableError):
        issuer.issue_credential(subject, skill, [])


def test_expiry_keeps_other_timezones_comparable(settings, fixed_clock, subject, skill) -> None:
    issuer = Issuer("Acme University", "https://acme.example.edu", clock=fixed_clock, settings=settings)
    tokyo = timezone(timedelta(hours=9))
    expires = datetime(2026, 3, 2, 9, 0, tzinfo=tokyo)  # 2026-03-02T00:00Z
    cred = issuer.issue_credential(subject, skill, [], expires_at=expires)
    assert cred.expires_at == expires


# ---- private key confinement ----


def test_private_key_is_not_exposed(issuer: Issuer) -> None:
    public_names = [n for n in dir(issuer) if not n.startswith("_")]
    assert public_names == ["from_key_file", "from_private_key", "get_issuer_info", "issue_credential", "public_key"]
    assert "Issuer(" in repr(issuer)
    assert "PRIVATE" not in repr(issuer)


def test_issuer_cannot_be_copied_or_pickled(issuer: Issuer) -> None:
    with pytest.raises(TypeError):
        copy.copy(issuer)
    with pytest.raises(TypeError):
        copy.deepcopy(issuer)
    with pytest.raises(TypeError):
        pickle.dumps(issuer)


def test_from_private_key_reuses_key(settings: Settings) -> None:
    sk, pk = generate_keypair()
    issuer = Issuer.from_private_key("Acme University", "https://acme.example.edu", sk, settings=settings)
    assert issuer.public_key == pk


def test_from_private_key_rejects_public_key(settings: Settings) -> None:
    sk, _ = generate_keypair()
    with pytest.raises(CredentialValidationError):
        Issuer.from_private_key("Acme", "https://acme.example.edu", sk.public_key(), settings=settings)


def test_from_key_file_creates_then_reuses_key(settings: Settings) -> None:
    first = Issuer.from_key_file("Acme University", "https://acme.example.edu", settings=settings)
    key_path = settings.key_dir / "issuer_sk.pem"
    assert key_path.exists()

    second = Issuer.from_key_file("Acme University", "https://acme.example.edu", settings=settings)
    assert second.public_key == first.public_key


def test_issuance_logs_do_not_contain_key_material(
    settings: Settings, subject, skill, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.DEBUG):
        issuer = Issuer.from_key_file("Acme University", "https://acme.example.edu", settings=settings)
        cred = issuer.issue_credential(subject, skill, [])

    pem = (settings.key_dir / "issuer_sk.pem").read_text(encoding="utf-8")
    body = "".join(pem.strip().splitlines()[1:-1])
    all_log_text = " ".join(caplog.messages)
    assert body not in all_log_text
    assert cred.signature.hex() not in all_log_text
    assert cred.id in all_log_text


def test_unencodable_subject_name_is_a_validation_error(issuer, skill) -> None:
    with pytest.raises(CredentialValidationError, match="UTF-8"):
        issuer.issue_credential(Subject(id="S1", name="\udc80"), skill, [])
