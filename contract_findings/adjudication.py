"""Merge overlapping candidate findings from different agents into adjudicated findings.

Two candidates describe the same issue when they share a finding type and at
least one pair of their evidence spans overlaps enough. Clause ids gate the
comparison: a pair where both ids are set and differ is never a match, while a
pair where one or both are unset is still compared on offsets.

Candidates are processed strongest first (severity, then confidence) and each
is absorbed by the first bucket it overlaps, so the output does not depend on
the order agents happened to finish in.
"""

from typing import Iterable, Sequence

from .config import OVERLAP_THRESHOLD
from .errors import InvariantViolation
from .models import AdjudicatedFinding, EvidenceSpan, Finding, SourcedFinding


def overlap_ratio(start_a: int, end_a: int, start_b: int, end_b: int) -> float:
    """Shared length over the shorter span's length (at least 1)."""
    overlap = max(0, min(end_a, end_b) - max(start_a, start_b))
    if overlap == 0:
        return 0.0
    shorter = max(1, min(end_a - start_a, end_b - start_b))
    return overlap / shorter


def _clauses_compatible(a: EvidenceSpan, b: EvidenceSpan) -> bool:
    # One-sided clause ids stay eligible: agents do not always tag the clause.
    if a.clause_id and b.clause_id and a.clause_id != b.clause_id:
        return False
    return True


def findings_overlap(a: Finding, b: Finding, threshold: float = OVERLAP_THRESHOLD) -> bool:
    if a.type != b.type:
        return False
    for ev_a in a.evidence:
        for ev_b in b.evidence:
            if not _clauses_compatible(ev_a, ev_b):
                continue
            if overlap_ratio(ev_a.start_offset, ev_a.end_offset, ev_b.start_offset, ev_b.end_offset) >= threshold:
                return True
    return False


def dedupe_evidence(evidence: Iterable[EvidenceSpan]) -> tuple[EvidenceSpan, ...]:
    """Drop repeats of the same (clause_id, start, end), keeping the first excerpt seen."""
    seen = set()
    kept = []
    for item in evidence:
        if item.position in seen:
            continue
        seen.add(item.position)
        kept.append(item)
    return tuple(kept)


def _check_candidate(finding: SourcedFinding) -> None:
    if not finding.evidence:
        raise InvariantViolation(f"finding {finding.title!r} from {finding.source_agent} has no evidence")
    for ev in finding.evidence:
        if ev.start_offset < 0 or ev.end_offset < ev.start_offset:
            raise InvariantViolation(
                f"finding {finding.title!r} has invalid evidence span [{ev.start_offset}, {ev.end_offset}]"
            )


def _seed(finding: SourcedFinding) -> AdjudicatedFinding:
    return AdjudicatedFinding(
        type=finding.type,
        title=finding.title,
        description=finding.description,
        severity=finding.severity,
        confidence=finding.confidence,
        suggested_redline=finding.suggested_redline,
        evidence=tuple(finding.evidence),
        source_agents=(finding.source_agent,),
    )


def merge_findings(bucket: AdjudicatedFinding, candidate: SourcedFinding) -> AdjudicatedFinding:
    agents = bucket.source_agents
    if candidate.source_agent not in agents:
        agents = agents + (candidate.source_agent,)

    return AdjudicatedFinding(
        type=bucket.type,
        title=bucket.title if len(bucket.title) >= len(candidate.title) else candidate.title,
        description=(
            bucket.description if len(bucket.description) >= len(candidate.description)
            else candidate.description
        ),
        severity=bucket.severity if bucket.severity.rank >= candidate.severity.rank else candidate.severity,
        confidence=max(bucket.confidence, candidate.confidence),
        suggested_redline=(
            bucket.suggested_redline if bucket.suggested_redline is not None
            else candidate.suggested_redline
        ),
        evidence=dedupe_evidence(bucket.evidence + candidate.evidence),
        source_agents=agents,
    )


def sort_candidates(findings: Sequence[SourcedFinding]) -> list[SourcedFinding]:
    """Severity descending, then confidence descending; stable otherwise."""
    return sorted(findings, key=lambda f: (-f.severity.rank, -f.confidence))


def adjudicate_findings(findings: Sequence[SourcedFinding]) -> list[AdjudicatedFinding]:
    buckets: list[AdjudicatedFinding] = []

    for candidate in sort_candidates(findings):
        _check_candidate(candidate)
        target = next(
            (idx for idx, bucket in enumerate(buckets) if findings_overlap(bucket, candidate)),
            None,
        )
        if target is None:
            buckets.append(_seed(candidate))
        else:
            buckets[target] = merge_findings(buckets[target], candidate)

    return buckets
