"""Severity scoring and ranking of adjudicated findings."""

from typing import Sequence

from .config import (
    CONFIDENCE_WEIGHT,
    POLICY_PRIORITY_CEILING,
    POLICY_WEIGHT_MAX,
    SEVERITY_BASE_SCORE,
)
from .errors import InvariantViolation
from .models import AdjudicatedFinding, PolicyRule, ScoredFinding


def _rule_applies(finding: AdjudicatedFinding, rule: PolicyRule, evidence_text: str) -> bool:
    if rule.clause_selector.lower() in evidence_text:
        return True
    if rule.clause_requirement:
        return any(ev.clause_id for ev in finding.evidence)
    return False


def policy_weight(finding: AdjudicatedFinding, policy_rules: Sequence[PolicyRule]) -> float:
    """Largest single contribution among active rules that apply to the finding's evidence."""
    evidence_text = "\n".join(ev.excerpt for ev in finding.evidence).lower()

    highest = 0.0
    for rule in policy_rules:
        if not rule.active:
            continue
        if not _rule_applies(finding, rule, evidence_text):
            continue
        weight = POLICY_WEIGHT_MAX * max(0, POLICY_PRIORITY_CEILING - rule.priority) / POLICY_PRIORITY_CEILING
        if weight > highest:
            highest = weight
    return highest


def score_finding(finding: AdjudicatedFinding, policy_rules: Sequence[PolicyRule]) -> float:
    try:
        base = SEVERITY_BASE_SCORE[finding.severity.value]
    except (AttributeError, KeyError):
        raise InvariantViolation(f"unknown severity {finding.severity!r}") from None

    confidence = finding.confidence * CONFIDENCE_WEIGHT
    return round(base + confidence + policy_weight(finding, policy_rules), 2)


def score_findings(findings: Sequence[AdjudicatedFinding], policy_rules: Sequence[PolicyRule]) -> list[ScoredFinding]:
    """Attach a score to every finding and rank them, highest first.

    ``sorted`` is stable, so equal scores keep adjudication order.
    """
    scored = [
        ScoredFinding(
            type=f.type,
            title=f.title,
            description=f.description,
            severity=f.severity,
            confidence=f.confidence,
            suggested_redline=f.suggested_redline,
            evidence=f.evidence,
            source_agents=f.source_agents,
            severity_score=score_finding(f, policy_rules),
        )
        for f in findings
    ]
    return sorted(scored, key=lambda f: -f.severity_score)
