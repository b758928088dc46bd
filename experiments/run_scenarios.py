from dataclasses import replace
from datetime import timedelta
from pathlib import Path
import argparse
import logging

from experiments.metrics import timed, write_csv
from experiments.scenarios import SCENARIOS
from microcred.core.config import load_settings
from microcred.core.logging import setup_logging
from microcred.issuer.issue import Issuer
from microcred.models import (
    Evidence,
    EvidenceKind,
    EvidenceType,
    Skill,
    SkillLevel,
    Subject,
    canonical_bytes,
    utc_now,
)
from microcred.verifier.verify import Verifier

logger = logging.getLogger(__name__)

OUT = Path("experiments/results")
CSV_PATH = OUT / "scenarios.csv"

ISSUER_NAME = "Scenario University"
ISSUER_URL = "https://scenario.example.edu"

def run_scenario(name, spec, issuer, verifier):
    now = utc_now()
    days = spec.get("expires_in_days", 30)
    expires_at = now + timedelta(days=days) if days is not None else None

    if spec.get("spoof"):
        # same display identity, different key
        issuer = Issuer(ISSUER_NAME, ISSUER_URL)

    credential = issuer.issue_credential(
        subject=Subject(id="scenario-subject", name="Sam Learner"),
        skill=Skill(name="Python Programming", level=SkillLevel.INTERMEDIATE),
        evidence=[Evidence(EvidenceType(EvidenceKind.PROJECT), "Capstone project")],
        expires_at=expires_at,
        metadata={"scenario": name},
    )

    tamper = spec.get("tamper")
    if tamper == "subject":
        credential.subject = replace(credential.subject, name="Mallory")
    elif tamper == "level":
        credential.skill = replace(credential.skill, level=SkillLevel.EXPERT)
    elif tamper == "metadata":
        credential.add_metadata("grade", "A+")

    target = verifier if spec.get("trust", True) else Verifier()
    at = now + timedelta(days=spec.get("verify_after_days", 0))
    result, verify_ms = timed(lambda: target.verify_credential(credential, now=at))
    reason = result.reason.value if result.reason else None
    return {
        "scenario": name,
        "accepted": result.valid,
        "reason": reason,
        "expected": spec["expected"],
        "as_expected": reason == spec["expected"],
        "verify_ms": round(verify_ms, 3),
        "canonical_bytes": len(canonical_bytes(credential)),
    }

def main(n=1, out=CSV_PATH):
    issuer = Issuer(ISSUER_NAME, ISSUER_URL)
    verifier = Verifier([issuer.get_issuer_info()])
    rows = []
    for _ in range(n):
        for name, spec in SCENARIOS.items():
            rows.append(run_scenario(name, spec, issuer, verifier))
    write_csv(rows, out)
    logger.info("wrote %d rows to %s", len(rows), out)
    return rows

if __name__ == "__main__":
    p = argparse.ArgumentParser()
    p.add_argument("--n", type=int, default=20)
    p.add_argument("--out", type=Path, default=CSV_PATH)
    args = p.parse_args()
    settings = load_settings()
    setup_logging(settings.log_level, json_format=settings.log_json)
    main(n=args.n, out=args.out)
