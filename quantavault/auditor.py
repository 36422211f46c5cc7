"""
quantavault.auditor

Client-side security audit over a collection of credential records:
- run_security_check(records): weak / reused / stale findings, in that order
- calculate_security_score(records): weighted 0-100 score with a breakdown
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from .evaluator import MEDIUM_THRESHOLD
from .models import (
    CredentialRecord, SecurityFinding, SecurityScore,
    WEAK, REUSED, STALE, utcnow, parse_timestamp,
)

logger = logging.getLogger("quantavault.auditor")

STALE_AFTER_DAYS = 90
FRESH_WITHIN_DAYS = 30
WEAK_HIGH_SEVERITY_COUNT = 3

WEIGHTS = {
    "strength": 0.4,
    "uniqueness": 0.3,
    "age": 0.2,
    "two_factor": 0.1,
}


def _round(x: float) -> int:
    # half-up, so 62.5 -> 63
    return int(math.floor(x + 0.5))


def _plural(n: int, one: str, many: str) -> str:
    return one if n == 1 else many


def group_reused(records: Iterable[CredentialRecord]) -> List[List[CredentialRecord]]:
    """Groups of records sharing the same secret, only groups larger than one."""
    groups: Dict[str, List[CredentialRecord]] = {}
    for r in records:
        groups.setdefault(r.secret, []).append(r)
    return [g for g in groups.values() if len(g) > 1]


def run_security_check(
    records: List[CredentialRecord], now: Optional[datetime] = None
) -> List[SecurityFinding]:
    now = parse_timestamp(now) if now else utcnow()
    findings: List[SecurityFinding] = []

    weak = [r for r in records if r.strength_score < MEDIUM_THRESHOLD]
    if weak:
        n = len(weak)
        findings.append(SecurityFinding(
            kind=WEAK,
            severity="high" if n > WEAK_HIGH_SEVERITY_COUNT else "medium",
            title="Weak Passwords Detected",
            description=f"{n} {_plural(n, 'password has', 'passwords have')} a low strength score.",
            record_ids=tuple(r.id for r in weak),
        ))

    reused_sets = group_reused(records)
    if reused_sets:
        total = sum(len(g) for g in reused_sets)
        findings.append(SecurityFinding(
            kind=REUSED,
            severity="critical",
            title="Password Reuse Detected",
            description=(
                f"{total} passwords are being reused across "
                f"{len(reused_sets)} distinct {_plural(len(reused_sets), 'value', 'values')}."
            ),
            record_ids=tuple(r.id for g in reused_sets for r in g),
        ))

    cutoff = now - timedelta(days=STALE_AFTER_DAYS)
    stale = [r for r in records if parse_timestamp(r.last_updated) < cutoff]
    if stale:
        n = len(stale)
        findings.append(SecurityFinding(
            kind=STALE,
            severity="low",
            title="Passwords Not Recently Updated",
            description=(
                f"{n} {_plural(n, 'password has', 'passwords have')} not been updated "
                f"in over {STALE_AFTER_DAYS} days."
            ),
            record_ids=tuple(r.id for r in stale),
        ))

    logger.debug("audit of %d records produced %d findings", len(records), len(findings))
    return findings


def calculate_security_score(
    records: List[CredentialRecord], two_factor: int = 0, now: Optional[datetime] = None
) -> SecurityScore:
    """
    two_factor is the 0-100 share of accounts protected by a second factor. It
    is not derivable from the records and must come from the caller.
    """
    if not records:
        return SecurityScore()

    now = parse_timestamp(now) if now else utcnow()
    total = len(records)

    strength = sum(r.strength_score for r in records) / total
    uniqueness = len({r.secret for r in records}) / total * 100
    cutoff = now - timedelta(days=FRESH_WITHIN_DAYS)
    recent = sum(1 for r in records if parse_timestamp(r.last_updated) >= cutoff)
    age = recent / total * 100
    two_factor = max(0, min(100, two_factor))

    overall = (
        strength * WEIGHTS["strength"]
        + uniqueness * WEIGHTS["uniqueness"]
        + age * WEIGHTS["age"]
        + two_factor * WEIGHTS["two_factor"]
    )

    return SecurityScore(
        overall=max(0, min(100, _round(overall))),
        strength=_round(strength),
        uniqueness=_round(uniqueness),
        age=_round(age),
        two_factor=_round(two_factor),
    )
