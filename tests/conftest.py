from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Ensure repo root is on sys.path so `import microcred` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from microcred.core.config import Settings  # noqa: E402
from microcred.issuer.issue import Issuer  # noqa: E402
from microcred.models import (  # noqa: E402
    Evidence,
    EvidenceKind,
    EvidenceType,
    Skill,
    SkillLevel,
    Subject,
)
from microcred.verifier.verify import Verifier  # noqa: E402

FIXED_NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        log_level="info",
        log_json=False,
        strict_expiry=True,
        key_dir=tmp_path / "issuer_data",
    )


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def issuer(settings: Settings) -> Issuer:
    return Issuer("Acme University", "https://acme.example.edu", settings=settings)


@pytest.fixture
def verifier(issuer: Issuer) -> Verifier:
    v = Verifier()
    v.add_trusted_issuer(issuer.get_issuer_info())
    return v


@pytest.fixture
def subject() -> Subject:
    return Subject(id="S1", name="Alice Developer")


@pytest.fixture
def skill() -> Skill:
    return Skill(name="Rust Programming", level=SkillLevel.ADVANCED)


@pytest.fixture
def evidence() -> list[Evidence]:
    return [
        Evidence(
            type=EvidenceType(EvidenceKind.CERTIFICATION),
            description="Passed the Rust certification exam",
            url="https://acme.example.edu/certs/123",
        ),
        Evidence(
            type=EvidenceType.other("Hackathon"),
            description="Won the spring hackathon",
        ),
    ]
