import pytest

from contract_findings.adjudication import (
    adjudicate_findings,
    dedupe_evidence,
    findings_overlap,
    overlap_ratio,
)
from contract_findings.errors import InvariantViolation
from contract_findings.models import AgentName, EvidenceSpan, FindingType, Severity, SourcedFinding


def _finding(agent, severity, confidence, evidence, type_=FindingType.RISKY_LANGUAGE,
             title="Unlimited Liability", description="Uncapped exposure.", redline=None):
    return SourcedFinding(
        type=type_,
        title=title,
        description=description,
        severity=severity,
        confidence=confidence,
        suggested_redline=redline,
        evidence=tuple(EvidenceSpan(c, s, e, "excerpt") for c, s, e in evidence),
        source_agent=agent,
    )


def test_overlap_ratio_uses_shorter_span():
    assert overlap_ratio(10, 80, 20, 90) == pytest.approx(60 / 70)
    assert overlap_ratio(0, 10, 10, 20) == 0.0
    assert overlap_ratio(0, 100, 40, 50) == 1.0


def test_overlap_ratio_zero_width_span():
    assert overlap_ratio(0, 0, 0, 0) == 0.0


def test_same_clause_overlapping_findings_merge():
    a = _finding(AgentName.RISK_SCANNER, Severity.MEDIUM, 0.62, [("X", 10, 80)])
    b = _finding(AgentName.COMPLIANCE, Severity.HIGH, 0.91, [("X", 20, 90), ("X", 10, 80)])

    result = adjudicate_findings([a, b])

    assert len(result) == 1
    merged = result[0]
    assert merged.severity == Severity.HIGH
    assert merged.confidence == 0.91
    assert len(merged.evidence) == 2
    assert set(merged.source_agents) == {AgentName.RISK_SCANNER, AgentName.COMPLIANCE}


def test_different_clause_ids_never_merge():
    a = _finding(AgentName.RISK_SCANNER, Severity.MEDIUM, 0.62, [("X", 10, 80)])
    b = _finding(AgentName.COMPLIANCE, Severity.HIGH, 0.91, [("Y", 20, 90), ("Y", 10, 80)])

    assert len(adjudicate_findings([a, b])) == 2


def test_low_overlap_does_not_merge():
    # 20 shared chars over a 100-char shorter span
    a = _finding(AgentName.RISK_SCANNER, Severity.HIGH, 0.8, [("X", 0, 100)])
    b = _finding(AgentName.AMBIGUITY, Severity.HIGH, 0.8, [("X", 80, 200)])

    assert not findings_overlap(a, b)
    assert len(adjudicate_findings([a, b])) == 2


def test_threshold_is_inclusive():
    a = _finding(AgentName.RISK_SCANNER, Severity.HIGH, 0.8, [("X", 0, 10)])
    b = _finding(AgentName.AMBIGUITY, Severity.HIGH, 0.8, [("X", 7, 20)])

    assert overlap_ratio(0, 10, 7, 20) == pytest.approx(0.3)
    assert len(adjudicate_findings([a, b])) == 1


def test_different_types_never_merge():
    a = _finding(AgentName.RISK_SCANNER, Severity.HIGH, 0.8, [("X", 0, 50)])
    b = _finding(AgentName.AMBIGUITY, Severity.HIGH, 0.8, [("X", 0, 50)], type_=FindingType.AMBIGUITY)

    assert len(adjudicate_findings([a, b])) == 2


def test_absent_clause_ids_merge_on_offsets():
    a = _finding(AgentName.MISSING_CLAUSE, Severity.HIGH, 0.86, [(None, 0, 40)], type_=FindingType.MISSING_CLAUSE)
    b = _finding(AgentName.COMPLIANCE, Severity.MEDIUM, 0.5, [(None, 10, 40)], type_=FindingType.MISSING_CLAUSE)

    assert len(adjudicate_findings([a, b])) == 1


def test_one_sided_clause_id_stays_eligible():
    a = _finding(AgentName.RISK_SCANNER, Severity.HIGH, 0.8, [("X", 10, 80)])
    b = _finding(AgentName.COMPLIANCE, Severity.HIGH, 0.7, [(None, 10, 80)])

    assert len(adjudicate_findings([a, b])) == 1


def test_merge_takes_longer_text_and_keeps_bucket_redline():
    a = _finding(AgentName.RISK_SCANNER, Severity.HIGH, 0.9, [("X", 0, 50)],
                 title="Short", description="A much longer description of the issue.", redline="Bucket redline")
    b = _finding(AgentName.COMPLIANCE, Severity.LOW, 0.4, [("X", 0, 50)],
                 title="A considerably longer title", description="Short.", redline="Candidate redline")

    [merged] = adjudicate_findings([b, a])

    assert merged.title == "A considerably longer title"
    assert merged.description == "A much longer description of the issue."
    assert merged.suggested_redline == "Bucket redline"
    assert merged.source_agents == (AgentName.RISK_SCANNER, AgentName.COMPLIANCE)


def test_merge_takes_candidate_redline_when_bucket_has_none():
    a = _finding(AgentName.RISK_SCANNER, Severity.HIGH, 0.9, [("X", 0, 50)])
    b = _finding(AgentName.COMPLIANCE, Severity.LOW, 0.4, [("X", 0, 50)], redline="Candidate redline")

    [merged] = adjudicate_findings([a, b])

    assert merged.suggested_redline == "Candidate redline"


def test_same_agent_listed_once():
    a = _finding(AgentName.RISK_SCANNER, Severity.HIGH, 0.9, [("X", 0, 50)])
    b = _finding(AgentName.RISK_SCANNER, Severity.HIGH, 0.8, [("X", 5, 50)])

    [merged] = adjudicate_findings([a, b])

    assert merged.source_agents == (AgentName.RISK_SCANNER,)
    assert len(merged.evidence) == 2


def test_output_independent_of_input_order():
    findings = [
        _finding(AgentName.RISK_SCANNER, Severity.MEDIUM, 0.62, [("X", 10, 80)]),
        _finding(AgentName.COMPLIANCE, Severity.HIGH, 0.91, [("X", 20, 90)]),
        _finding(AgentName.AMBIGUITY, Severity.LOW, 0.5, [("Y", 0, 30)]),
    ]

    forward = adjudicate_findings(findings)
    backward = adjudicate_findings(list(reversed(findings)))

    assert forward == backward
    assert forward[0].severity == Severity.HIGH


def test_first_matching_bucket_wins():
    # two buckets on different clauses; the candidate has no clause id and overlaps both
    strong = _finding(AgentName.RISK_SCANNER, Severity.CRITICAL, 0.9, [("X", 0, 50)])
    second = _finding(AgentName.COMPLIANCE, Severity.HIGH, 0.9, [("Y", 0, 50)])
    floating = _finding(AgentName.AMBIGUITY, Severity.LOW, 0.3, [(None, 0, 50)])

    buckets = adjudicate_findings([second, floating, strong])

    assert len(buckets) == 2
    assert AgentName.AMBIGUITY in buckets[0].source_agents
    assert AgentName.AMBIGUITY not in buckets[1].source_agents


def test_dedupe_keeps_first_excerpt():
    spans = [EvidenceSpan("X", 0, 5, "first"), EvidenceSpan("X", 0, 5, "second"), EvidenceSpan(None, 0, 5, "third")]

    kept = dedupe_evidence(spans)

    assert [s.excerpt for s in kept] == ["first", "third"]


def test_empty_evidence_is_an_invariant_violation():
    bad = _finding(AgentName.RISK_SCANNER, Severity.HIGH, 0.9, [])

    with pytest.raises(InvariantViolation):
        adjudicate_findings([bad])


def test_no_findings():
    assert adjudicate_findings([]) == []
