SCENARIOS = {
    "valid": {"expected": None},
    "no_expiry": {"expected": None, "expires_in_days": None},
    "tampered_subject": {"expected": "invalid_signature", "tamper": "subject"},
    "tampered_level": {"expected": "invalid_signature", "tamper": "level"},
    "tampered_metadata": {"expected": "invalid_signature", "tamper": "metadata"},
    "untrusted": {"expected": "untrusted_issuer", "trust": False},
    "spoofed_issuer": {"expected": "issuer_identity_mismatch", "spoof": True},
    "expired": {"expected": "expired", "expires_in_days": 1, "verify_after_days": 2},
}
