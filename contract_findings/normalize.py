"""Canonicalize scored findings for idempotent storage.

The canonical key only depends on the review run, the contract version, the
finding type and title, and the sorted evidence positions. Title and type are
hashed exactly as given, so a change in casing is a different finding.
"""

import hashlib
import json
from typing import Sequence

from .errors import InvariantViolation
from .models import CanonicalFinding, EvidenceSpan, ScoredFinding


def clamp_confidence(value: float) -> float:
    return max(0.0, min(1.0, value))


def normalize_evidence(evidence: Sequence[EvidenceSpan]) -> tuple[EvidenceSpan, ...]:
    ordered = sorted(evidence, key=lambda ev: ev.start_offset)
    return tuple(
        EvidenceSpan(
            clause_id=ev.clause_id,
            start_offset=ev.start_offset,
            end_offset=ev.end_offset,
            excerpt=ev.excerpt.strip(),
        )
        for ev in ordered
    )


def _sorted_positions(evidence: Sequence[EvidenceSpan]) -> list[list]:
    positions = sorted(
        (ev.position for ev in evidence),
        key=lambda p: (p[1], p[2], p[0] or ""),
    )
    return [list(p) for p in positions]


def build_canonical_key(review_run_id: str, contract_version_id: str, finding: ScoredFinding) -> str:
    """
    SHA-256 of the finding's identity fields as compact, key-sorted JSON.

    The title is hashed as given, before ``normalize_finding`` trims it, so
    titles differing only in surrounding whitespace get different keys.
    """
    payload = {
        "reviewRunId": review_run_id,
        "contractVersionId": contract_version_id,
        "type": finding.type.value,
        "title": finding.title,
        "evidence": _sorted_positions(finding.evidence),
    }
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def normalize_finding(review_run_id: str, contract_version_id: str, finding: ScoredFinding) -> CanonicalFinding:
    if not finding.evidence:
        raise InvariantViolation(f"finding {finding.title!r} reached normalization without evidence")

    redline = finding.suggested_redline.strip() if finding.suggested_redline is not None else None
    return CanonicalFinding(
        canonical_key=build_canonical_key(review_run_id, contract_version_id, finding),
        review_run_id=review_run_id,
        contract_version_id=contract_version_id,
        type=finding.type,
        title=finding.title.strip(),
        description=finding.description.strip(),
        severity=finding.severity,
        confidence=clamp_confidence(finding.confidence),
        severity_score=finding.severity_score,
        status="open",
        suggested_redline=redline,
        source_agents=tuple(finding.source_agents),
        evidence=normalize_evidence(finding.evidence),
    )


def normalize_findings(
    review_run_id: str,
    contract_version_id: str,
    findings: Sequence[ScoredFinding],
) -> list[CanonicalFinding]:
    return [normalize_finding(review_run_id, contract_version_id, f) for f in findings]
