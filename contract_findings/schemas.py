"""Boundary contracts for agent input and output.

Everything that crosses into the pipeline from a caller or from an agent
executor is parsed here first. The parse functions never raise; they return a
``Parsed`` result holding either the dataclass value or the list of problems,
and the caller decides how to fail.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    ValidationError,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .config import DEFAULT_RULE_PRIORITY
from .models import (
    AgentOutput,
    AgentUsage,
    Clause,
    EvidenceSpan,
    Finding,
    FindingType,
    PolicyRule,
    ReviewInput,
    Severity,
)

T = TypeVar("T")


class _Contract(BaseModel):
    """Closed structural contract: unknown keys are rejected, camelCase or snake_case accepted."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


# ---------------------------------------------------------------------------
# Review input
# ---------------------------------------------------------------------------

class ClauseSchema(_Contract):
    id: str = Field(min_length=1)
    heading: Optional[str] = None
    type: str
    text: str = Field(min_length=1)
    start_offset: StrictInt = Field(ge=0)
    end_offset: StrictInt = Field(ge=0)

    @model_validator(mode="after")
    def _check_range(self) -> ClauseSchema:
        if self.end_offset < self.start_offset:
            raise ValueError("clause endOffset must not precede startOffset")
        return self


class PolicyRuleSchema(_Contract):
    id: str = Field(min_length=1)
    clause_requirement: Optional[str] = None
    clause_selector: str = Field(min_length=1)
    required_pattern: Optional[str] = None
    forbidden_pattern: Optional[str] = None
    allow_exception: StrictBool = False
    active: StrictBool = True
    priority: StrictInt = Field(default=DEFAULT_RULE_PRIORITY, gt=0)


class ReviewInputSchema(_Contract):
    contract_id: str = Field(min_length=1)
    contract_version_id: str = Field(min_length=1)
    review_run_id: str = Field(min_length=1)
    contract_type: Optional[str] = Field(default=None, min_length=1)
    jurisdiction: Optional[str] = Field(default=None, min_length=1)
    language: str = Field(min_length=2)
    policy_profile_id: str = Field(min_length=1)
    policy_rules: list[PolicyRuleSchema] = Field(default_factory=list)
    clauses: list[ClauseSchema]


# ---------------------------------------------------------------------------
# Agent output
# ---------------------------------------------------------------------------

class EvidenceSchema(_Contract):
    clause_id: Optional[str] = None
    start_offset: StrictInt = Field(ge=0)
    end_offset: StrictInt = Field(ge=0)
    excerpt: str = Field(min_length=1)

    @model_validator(mode="after")
    def _check_range(self) -> EvidenceSchema:
        # Zero-width spans are only allowed as clause-less absence markers.
        if self.end_offset < self.start_offset:
            raise ValueError("evidence endOffset must not precede startOffset")
        if self.clause_id is not None and self.end_offset == self.start_offset:
            raise ValueError("evidence tied to a clause must have startOffset < endOffset")
        return self


class FindingSchema(_Contract):
    type: FindingType
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    severity: Severity
    confidence: StrictFloat = Field(ge=0, le=1)
    suggested_redline: Optional[str] = None
    evidence: list[EvidenceSchema] = Field(min_length=1)


class UsageSchema(_Contract):
    prompt_tokens: StrictInt = Field(ge=0)
    completion_tokens: StrictInt = Field(ge=0)
    total_tokens: StrictInt = Field(ge=0)


class AgentOutputSchema(_Contract):
    findings: list[FindingSchema]
    usage: Optional[UsageSchema] = None


# ---------------------------------------------------------------------------
# Parse results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Parsed(Generic[T]):
    value: Optional[T] = None
    errors: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors


def _format_errors(exc: ValidationError) -> tuple[str, ...]:
    messages = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err["loc"]) or "<root>"
        messages.append(f"{loc}: {err['msg']}")
    return tuple(messages)


def _as_payload(raw: Any) -> Any:
    if dataclasses.is_dataclass(raw) and not isinstance(raw, type):
        return dataclasses.asdict(raw)
    return raw


def _to_review_input(model: ReviewInputSchema) -> ReviewInput:
    return ReviewInput(
        contract_id=model.contract_id,
        contract_version_id=model.contract_version_id,
        review_run_id=model.review_run_id,
        language=model.language,
        policy_profile_id=model.policy_profile_id,
        contract_type=model.contract_type,
        jurisdiction=model.jurisdiction,
        policy_rules=tuple(
            PolicyRule(
                id=r.id,
                clause_selector=r.clause_selector,
                clause_requirement=r.clause_requirement,
                required_pattern=r.required_pattern,
                forbidden_pattern=r.forbidden_pattern,
                allow_exception=r.allow_exception,
                active=r.active,
                priority=r.priority,
            )
            for r in model.policy_rules
        ),
        clauses=tuple(
            Clause(
                id=c.id,
                heading=c.heading,
                type=c.type,
                text=c.text,
                start_offset=c.start_offset,
                end_offset=c.end_offset,
            )
            for c in model.clauses
        ),
    )


def _to_finding(model: FindingSchema) -> Finding:
    return Finding(
        type=model.type,
        title=model.title,
        description=model.description,
        severity=model.severity,
        confidence=model.confidence,
        suggested_redline=model.suggested_redline,
        evidence=tuple(
            EvidenceSpan(
                clause_id=e.clause_id,
                start_offset=e.start_offset,
                end_offset=e.end_offset,
                excerpt=e.excerpt,
            )
            for e in model.evidence
        ),
    )


def parse_review_input(raw: Any) -> Parsed[ReviewInput]:
    """Validate a review input (mapping or ``ReviewInput``) against the input contract."""
    try:
        model = ReviewInputSchema.model_validate(_as_payload(raw))
    except ValidationError as exc:
        return Parsed(errors=_format_errors(exc))
    return Parsed(value=_to_review_input(model))


def parse_agent_output(raw: Any) -> Parsed[AgentOutput]:
    """Validate whatever an executor returned against the finding-list contract.

    A bare list is treated as the ``findings`` array.
    """
    payload = _as_payload(raw)
    if isinstance(payload, (list, tuple)):
        payload = {"findings": [_as_payload(item) for item in payload]}
    try:
        model = AgentOutputSchema.model_validate(payload)
    except ValidationError as exc:
        return Parsed(errors=_format_errors(exc))

    usage = None
    if model.usage is not None:
        usage = AgentUsage(
            prompt_tokens=model.usage.prompt_tokens,
            completion_tokens=model.usage.completion_tokens,
            total_tokens=model.usage.total_tokens,
        )
    return Parsed(
        value=AgentOutput(findings=tuple(_to_finding(f) for f in model.findings), usage=usage)
    )
