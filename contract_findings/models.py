"""Data classes for the review pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Union


class AgentName(str, Enum):
    RISK_SCANNER = "risk-scanner"
    MISSING_CLAUSE = "missing-clause"
    AMBIGUITY = "ambiguity"
    COMPLIANCE = "compliance"
    CROSS_CLAUSE_CONFLICT = "cross-clause-conflict"


class FindingType(str, Enum):
    RISKY_LANGUAGE = "risky-language"
    MISSING_CLAUSE = "missing-clause"
    AMBIGUITY = "ambiguity"
    COMPLIANCE = "compliance"
    CROSS_CLAUSE_CONFLICT = "cross-clause-conflict"


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.INFO: 0,
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}


@dataclass(frozen=True)
class Clause:
    id: str
    type: str
    text: str
    start_offset: int
    end_offset: int
    heading: Optional[str] = None


@dataclass(frozen=True)
class PolicyRule:
    id: str
    clause_selector: str
    clause_requirement: Optional[str] = None
    required_pattern: Optional[str] = None
    forbidden_pattern: Optional[str] = None
    allow_exception: bool = False
    active: bool = True
    priority: int = 100     # lower = higher precedence


@dataclass(frozen=True)
class ReviewInput:
    contract_id: str
    contract_version_id: str
    review_run_id: str
    language: str
    policy_profile_id: str
    policy_rules: tuple[PolicyRule, ...] = ()
    clauses: tuple[Clause, ...] = ()
    contract_type: Optional[str] = None
    jurisdiction: Optional[str] = None


@dataclass(frozen=True)
class EvidenceSpan:
    clause_id: Optional[str]   # None = not tied to a specific clause
    start_offset: int
    end_offset: int
    excerpt: str

    @property
    def position(self) -> tuple[Optional[str], int, int]:
        return (self.clause_id, self.start_offset, self.end_offset)


@dataclass(frozen=True, kw_only=True)
class Finding:
    type: FindingType
    title: str
    description: str
    severity: Severity
    confidence: float
    evidence: tuple[EvidenceSpan, ...]
    suggested_redline: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class SourcedFinding(Finding):
    source_agent: AgentName


@dataclass(frozen=True, kw_only=True)
class AdjudicatedFinding(Finding):
    source_agents: tuple[AgentName, ...]


@dataclass(frozen=True, kw_only=True)
class ScoredFinding(AdjudicatedFinding):
    severity_score: float


@dataclass(frozen=True, kw_only=True)
class CanonicalFinding(ScoredFinding):
    canonical_key: str
    review_run_id: str
    contract_version_id: str
    status: str = "open"


@dataclass(frozen=True)
class AgentUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass(frozen=True)
class AgentOutput:
    findings: tuple[Finding, ...] = ()
    usage: Optional[AgentUsage] = None


# Executors may return an AgentOutput, a raw mapping, or a bare list of findings;
# the registry validates whichever shape comes back.
AgentExecutor = Callable[[ReviewInput], Union[AgentOutput, dict, list]]


@dataclass(frozen=True)
class AgentRunResult:
    agent: AgentName
    status: str             # "completed" or "failed"
    output: Optional[AgentOutput] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class OrchestrationResult:
    review_run_id: str
    agent_results: list[AgentRunResult] = field(default_factory=list)
    raw_findings: list[SourcedFinding] = field(default_factory=list)
    findings: list[ScoredFinding] = field(default_factory=list)
    canonical_findings: list[CanonicalFinding] = field(default_factory=list)
