"""Fallback redline text for findings that arrive without a suggested remediation."""

from dataclasses import replace
from typing import Sequence

from .models import FindingType, ScoredFinding, Severity

FALLBACK_SAFE_CLAUSE = (
    "Neither party will be liable for indirect, incidental, or consequential damages, and total "
    "aggregate liability is capped at fees paid in the prior twelve months, except for fraud, "
    "willful misconduct, and obligations that cannot be limited by law."
)

REDLINE_TEMPLATES = {
    FindingType.RISKY_LANGUAGE: {
        "high": "Replace broad risk language with explicit caps, carve-outs, and objective obligations tied to contract value.",
        "medium": "Clarify obligations by narrowing scope, adding defined terms, and limiting exposure to direct losses.",
        "low": "Clarify wording to reduce interpretation risk and align terms with the agreed risk allocation.",
    },
    FindingType.MISSING_CLAUSE: {
        "high": "Add a dedicated clause that states scope, obligations, remedies, and governing standard in explicit terms.",
        "medium": "Add missing section language aligned with policy baseline and negotiation fallback positions.",
        "low": "Insert lightweight protective language to cover the missing operational requirement.",
    },
    FindingType.AMBIGUITY: {
        "high": "Replace subjective phrases with measurable standards, firm timelines, and defined acceptance criteria.",
        "medium": "Define vague terms and convert discretionary statements into objective obligations.",
        "low": "Clarify phrasing and align term definitions with the definitions section.",
    },
    FindingType.COMPLIANCE: {
        "high": "Insert policy-required wording verbatim and remove prohibited language that conflicts with compliance controls.",
        "medium": "Align clause text with policy pattern requirements and jurisdiction controls.",
        "low": "Adjust language to satisfy baseline compliance checks with minimal scope change.",
    },
    FindingType.CROSS_CLAUSE_CONFLICT: {
        "high": "Resolve conflicting clauses by selecting one controlling rule and deleting contradictory language.",
        "medium": "Harmonize conflicting obligations and reference a single authoritative section.",
        "low": "Adjust cross-references to ensure consistent interpretation across related sections.",
    },
}

SEVERITY_BUCKETS = ("high", "medium", "low")


def severity_bucket(severity: Severity) -> str:
    if severity in (Severity.CRITICAL, Severity.HIGH):
        return "high"
    if severity == Severity.MEDIUM:
        return "medium"
    return "low"


def generate_suggested_redline(finding: ScoredFinding) -> str:
    if finding.suggested_redline and finding.suggested_redline.strip():
        return finding.suggested_redline

    bucket = severity_bucket(finding.severity)
    template = REDLINE_TEMPLATES[finding.type][bucket]
    if bucket == "high":
        return f"{template} Fallback safe clause: {FALLBACK_SAFE_CLAUSE}"
    return template


def apply_suggested_redlines(findings: Sequence[ScoredFinding]) -> list[ScoredFinding]:
    return [replace(f, suggested_redline=generate_suggested_redline(f)) for f in findings]
