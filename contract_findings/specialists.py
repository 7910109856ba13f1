"""Heuristic specialist agents: one executor per agent name.

Each executor takes a validated ``ReviewInput`` and returns an ``AgentOutput``.
Offsets in evidence are document offsets: clause start plus the match position
inside the clause text.
"""

import re
from dataclasses import dataclass
from typing import Optional

from .models import (
    AgentName,
    AgentOutput,
    AgentUsage,
    Clause,
    EvidenceSpan,
    Finding,
    FindingType,
    ReviewInput,
    Severity,
)


def _excerpt_around(text: str, local_index: int, before: int, after: int) -> str:
    start = max(0, local_index - before)
    end = min(len(text), local_index + after)
    return text[start:end].strip()


def _match_evidence(clause: Clause, match: re.Match, before: int = 60, after: int = 160) -> EvidenceSpan:
    local_start = match.start()
    global_start = clause.start_offset + local_start
    return EvidenceSpan(
        clause_id=clause.id,
        start_offset=global_start,
        end_offset=global_start + len(match.group(0)),
        excerpt=_excerpt_around(clause.text, local_start, before, after),
    )


def _zero_usage() -> AgentUsage:
    return AgentUsage(prompt_tokens=0, completion_tokens=0, total_tokens=0)


# ---------------------------------------------------------------------------
# Risk scanner
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RiskPattern:
    title: str
    description: str
    severity: Severity
    pattern: re.Pattern
    suggested_redline: Optional[str]


RISK_PATTERNS = [
    RiskPattern(
        title="Unlimited Liability",
        description="The clause suggests uncapped liability exposure without explicit monetary limits.",
        severity=Severity.CRITICAL,
        pattern=re.compile(r"\bunlimited\s+liabilit(y|ies)\b|\bliability\s+shall\s+not\s+be\s+limited\b", re.I),
        suggested_redline="Cap total liability to fees paid in the preceding 12 months, excluding intentional misconduct.",
    ),
    RiskPattern(
        title="Broad Indemnity Scope",
        description=(
            "The indemnity obligation appears broad and may include third-party and first-party "
            "losses without carve-outs."
        ),
        severity=Severity.HIGH,
        pattern=re.compile(r"\bindemnif(y|ies|ication)\b.{0,80}\ball\s+loss(es)?\b", re.I),
        suggested_redline=(
            "Limit indemnity to third-party claims caused by proven breach and add exclusions "
            "for customer modifications."
        ),
    ),
    RiskPattern(
        title="Unilateral Termination",
        description="Termination rights appear one-sided and can create execution risk.",
        severity=Severity.MEDIUM,
        pattern=re.compile(r"\bmay\s+terminate\s+at\s+any\s+time\b|\bsole\s+discretion\b", re.I),
        suggested_redline="Require mutual termination rights with cure periods for material breach.",
    ),
    RiskPattern(
        title="Perpetual Confidentiality",
        description="Confidentiality obligations without time limits may be commercially unreasonable.",
        severity=Severity.LOW,
        pattern=re.compile(r"\bconfidentiality\b.{0,80}\bperpetual\b", re.I),
        suggested_redline=(
            "Set confidentiality survival to 3-5 years, except for trade secrets where legally permitted."
        ),
    ),
]


def risk_scanner_agent(review_input: ReviewInput) -> AgentOutput:
    findings = []
    for clause in review_input.clauses:
        for risk in RISK_PATTERNS:
            m = risk.pattern.search(clause.text)
            if not m:
                continue
            findings.append(Finding(
                type=FindingType.RISKY_LANGUAGE,
                title=risk.title,
                description=risk.description,
                severity=risk.severity,
                confidence=0.78,
                suggested_redline=risk.suggested_redline,
                evidence=(_match_evidence(clause, m),),
            ))
    return AgentOutput(findings=tuple(findings), usage=_zero_usage())


# ---------------------------------------------------------------------------
# Missing clause
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RequiredClause:
    name: str
    clause_type: str
    heading_patterns: tuple[re.Pattern, ...]
    severity: Severity


BASE_REQUIRED_CLAUSES = [
    RequiredClause("Term and Termination", "term",
                   (re.compile(r"\bterm\b", re.I), re.compile(r"\btermination\b", re.I)), Severity.HIGH),
    RequiredClause("Liability Cap", "liability",
                   (re.compile(r"\bliability\b", re.I), re.compile(r"\blimitation of liability\b", re.I)),
                   Severity.CRITICAL),
    RequiredClause("Confidentiality", "confidentiality",
                   (re.compile(r"\bconfidential(?:ity)?\b", re.I), re.compile(r"\bnon-disclosure\b", re.I)),
                   Severity.HIGH),
    RequiredClause("Intellectual Property", "ip",
                   (re.compile(r"\bintellectual property\b", re.I), re.compile(r"\bownership\b", re.I)),
                   Severity.HIGH),
    RequiredClause("Governing Law", "governing-law",
                   (re.compile(r"\bgoverning law\b", re.I), re.compile(r"\bjurisdiction\b", re.I)),
                   Severity.MEDIUM),
]

DPA_REQUIRED_CLAUSES = [
    RequiredClause("Data Processing", "privacy",
                   (re.compile(r"\bdata processing\b", re.I), re.compile(r"\bdata protection\b", re.I)),
                   Severity.CRITICAL),
]


def _required_clauses(review_input: ReviewInput) -> list[RequiredClause]:
    contract_type = (review_input.contract_type or "").lower()
    if "dpa" in contract_type or "privacy" in contract_type:
        return BASE_REQUIRED_CLAUSES + DPA_REQUIRED_CLAUSES
    return BASE_REQUIRED_CLAUSES


def _satisfies(clause: Clause, requirement: RequiredClause) -> bool:
    if clause.type.lower() == requirement.clause_type.lower():
        return True
    search_text = f"{clause.heading or ''}\n{clause.text}"
    return any(p.search(search_text) for p in requirement.heading_patterns)


def missing_clause_agent(review_input: ReviewInput) -> AgentOutput:
    findings = []
    for requirement in _required_clauses(review_input):
        if any(_satisfies(c, requirement) for c in review_input.clauses):
            continue
        findings.append(Finding(
            type=FindingType.MISSING_CLAUSE,
            title=f"{requirement.name} clause missing",
            description=f"The contract appears to be missing a required {requirement.name} section.",
            severity=requirement.severity,
            confidence=0.86,
            suggested_redline=f"Add a {requirement.name} section aligned with organizational policy requirements.",
            # Absence marker: no clause to point at, zero-width span at the document start.
            evidence=(EvidenceSpan(
                clause_id=None,
                start_offset=0,
                end_offset=0,
                excerpt=f"No matching clause detected for required section: {requirement.name}.",
            ),),
        ))
    return AgentOutput(findings=tuple(findings), usage=_zero_usage())


# ---------------------------------------------------------------------------
# Ambiguity
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class VaguePattern:
    title: str
    description: str
    pattern: re.Pattern


VAGUE_PATTERNS = [
    VaguePattern(
        "Ambiguous effort standard",
        "The clause uses 'reasonable efforts' without objective criteria or measurable obligations.",
        re.compile(r"\breasonable\s+efforts\b", re.I),
    ),
    VaguePattern(
        "Open-ended obligation",
        "The clause contains open-ended timing language that may be interpreted inconsistently.",
        re.compile(r"\bas\s+needed\b|\bas\s+appropriate\b|\bfrom\s+time\s+to\s+time\b", re.I),
    ),
    VaguePattern(
        "Undefined materiality",
        "The clause references 'material' concepts without defining objective thresholds.",
        re.compile(r"\bmaterial\b(?!\s+breach)", re.I),
    ),
]

_DEFINITION_RE = re.compile(r'"([A-Z][A-Za-z0-9\s-]{1,80})"\s+means|\b([A-Z][A-Za-z0-9\s-]{1,80})\s+means\b')
_QUOTED_TERM_RE = re.compile(r'"([A-Z][A-Za-z0-9\s-]{1,80})"')


def _defined_terms(clauses) -> set[str]:
    terms = set()
    for clause in clauses:
        for m in _DEFINITION_RE.finditer(clause.text):
            term = (m.group(1) or m.group(2) or "").strip()
            if term:
                terms.add(term.lower())
    return terms


def ambiguity_agent(review_input: ReviewInput) -> AgentOutput:
    findings = []
    defined = _defined_terms(review_input.clauses)

    for clause in review_input.clauses:
        for vague in VAGUE_PATTERNS:
            m = vague.pattern.search(clause.text)
            if not m:
                continue
            findings.append(Finding(
                type=FindingType.AMBIGUITY,
                title=vague.title,
                description=vague.description,
                severity=Severity.MEDIUM,
                confidence=0.74,
                suggested_redline="Replace subjective language with objective criteria, timelines, or measurable standards.",
                evidence=(_match_evidence(clause, m, before=50, after=140),),
            ))

        for m in _QUOTED_TERM_RE.finditer(clause.text):
            term = m.group(1).strip()
            if not term or term.lower() in defined:
                continue
            findings.append(Finding(
                type=FindingType.AMBIGUITY,
                title="Undefined reference term",
                description=f'The quoted term "{term}" appears undefined and may cause interpretation risk.',
                severity=Severity.MEDIUM,
                confidence=0.7,
                suggested_redline=(
                    "Define the referenced term in a definitions section or replace it with existing defined language."
                ),
                evidence=(_match_evidence(clause, m, before=50, after=140),),
            ))

    return AgentOutput(findings=tuple(findings), usage=_zero_usage())


# ---------------------------------------------------------------------------
# Compliance (policy rules)
# ---------------------------------------------------------------------------

def _build_regex(pattern: str) -> re.Pattern:
    try:
        return re.compile(pattern, re.I)
    except re.error:
        return re.compile(re.escape(pattern), re.I)


def _selector_matches(clause: Clause, selector: str, requirement: Optional[str]) -> bool:
    if requirement and clause.type.lower() == requirement.lower():
        return True
    return bool(_build_regex(selector).search(f"{clause.heading or ''}\n{clause.text}"))


def compliance_agent(review_input: ReviewInput) -> AgentOutput:
    findings = []

    for rule in review_input.policy_rules:
        if not rule.active:
            continue

        matched = [
            c for c in review_input.clauses
            if _selector_matches(c, rule.clause_selector, rule.clause_requirement)
        ]
        severity = Severity.MEDIUM if rule.allow_exception else Severity.HIGH

        if rule.required_pattern:
            required = _build_regex(rule.required_pattern)
            if not any(required.search(c.text) for c in matched):
                if matched:
                    first = matched[0]
                    evidence = EvidenceSpan(first.id, first.start_offset, first.end_offset, first.text[:160])
                else:
                    evidence = EvidenceSpan(None, 0, 0, f"No clause matched selector {rule.clause_selector}")
                findings.append(Finding(
                    type=FindingType.COMPLIANCE,
                    title="Required compliance language missing",
                    description=f"Policy rule {rule.id} requires pattern: {rule.required_pattern}",
                    severity=severity,
                    confidence=0.82,
                    suggested_redline=f"Add required compliance language matching: {rule.required_pattern}",
                    evidence=(evidence,),
                ))

        if rule.forbidden_pattern:
            forbidden = _build_regex(rule.forbidden_pattern)
            for clause in matched:
                if not forbidden.search(clause.text):
                    continue
                # an empty match cannot anchor a clause span
                m = next((m for m in forbidden.finditer(clause.text) if m.end() > m.start()), None)
                if m:
                    evidence = _match_evidence(clause, m)
                elif clause.end_offset > clause.start_offset:
                    evidence = _whole_clause(clause)
                else:
                    continue
                findings.append(Finding(
                    type=FindingType.COMPLIANCE,
                    title="Forbidden compliance language found",
                    description=f"Policy rule {rule.id} forbids pattern: {rule.forbidden_pattern}",
                    severity=severity,
                    confidence=0.87,
                    suggested_redline="Replace forbidden language with policy-approved clause wording.",
                    evidence=(evidence,),
                ))

    return AgentOutput(findings=tuple(findings), usage=_zero_usage())


# ---------------------------------------------------------------------------
# Cross-clause conflict
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ConflictRule:
    title: str
    description: str
    severity: Severity
    left: re.Pattern
    right: re.Pattern


CONFLICT_RULES = [
    ConflictRule(
        "Termination rights conflict",
        "One clause allows broad unilateral termination while another restricts termination rights.",
        Severity.HIGH,
        re.compile(r"\bterminate\s+at\s+any\s+time\b|\bwithout\s+cause\b", re.I),
        re.compile(r"\bmay\s+not\s+terminate\b|\bnon-?cancell?able\b|\bfixed\s+term\b", re.I),
    ),
    ConflictRule(
        "Liability cap conflict",
        "One clause indicates uncapped liability while another imposes a liability cap.",
        Severity.CRITICAL,
        re.compile(r"\bunlimited\s+liabilit(y|ies)\b|\bliability\s+shall\s+not\s+be\s+limited\b", re.I),
        re.compile(r"\bliability\b.{0,80}\blimited\s+to\b|\bcap\s+on\s+liability\b", re.I),
    ),
    ConflictRule(
        "Assignment rights conflict",
        "Assignment prohibition conflicts with assignment permission language.",
        Severity.MEDIUM,
        re.compile(r"\bshall\s+not\s+assign\b|\bassignment\s+prohibited\b", re.I),
        re.compile(r"\bmay\s+assign\b.{0,40}\bwithout\s+consent\b", re.I),
    ),
]

_GOVERNING_LAW_RE = re.compile(r"governed\s+by\s+the\s+laws\s+of\s+([A-Za-z\s]+?)(?:\.|,|\n|$)", re.I)


def _governing_law(text: str) -> Optional[str]:
    m = _GOVERNING_LAW_RE.search(text)
    if not m or not m.group(1).strip():
        return None
    return m.group(1).strip().lower()


def _whole_clause(clause: Clause) -> EvidenceSpan:
    return EvidenceSpan(clause.id, clause.start_offset, clause.end_offset, clause.text[:180])


def cross_clause_conflict_agent(review_input: ReviewInput) -> AgentOutput:
    findings = []
    clauses = review_input.clauses

    for i, left in enumerate(clauses):
        for right in clauses[i + 1:]:
            for rule in CONFLICT_RULES:
                lm = rule.left.search(left.text)
                rm = rule.right.search(right.text)
                if not lm or not rm:
                    continue
                findings.append(Finding(
                    type=FindingType.CROSS_CLAUSE_CONFLICT,
                    title=rule.title,
                    description=rule.description,
                    severity=rule.severity,
                    confidence=0.76,
                    suggested_redline="Harmonize conflicting obligations and define one authoritative rule for this topic.",
                    evidence=(
                        _match_evidence(left, lm, before=50, after=150),
                        _match_evidence(right, rm, before=50, after=150),
                    ),
                ))

            left_law = _governing_law(left.text)
            right_law = _governing_law(right.text)
            if left_law and right_law and left_law != right_law:
                findings.append(Finding(
                    type=FindingType.CROSS_CLAUSE_CONFLICT,
                    title="Governing law mismatch",
                    description=(
                        "Different clauses specify different governing jurisdictions, creating enforceability risk."
                    ),
                    severity=Severity.HIGH,
                    confidence=0.83,
                    suggested_redline=(
                        "Select one governing law and align all governing-law and dispute-resolution sections."
                    ),
                    evidence=(_whole_clause(left), _whole_clause(right)),
                ))

    return AgentOutput(findings=tuple(findings), usage=_zero_usage())


SPECIALIST_AGENTS = {
    AgentName.RISK_SCANNER: risk_scanner_agent,
    AgentName.MISSING_CLAUSE: missing_clause_agent,
    AgentName.AMBIGUITY: ambiguity_agent,
    AgentName.COMPLIANCE: compliance_agent,
    AgentName.CROSS_CLAUSE_CONFLICT: cross_clause_conflict_agent,
}
