"""Fan out specialist agents over one review input and run the post-agent stages."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Mapping, Optional, Sequence, Union

from .adjudication import adjudicate_findings
from .config import AGENT_MAX_WORKERS
from .models import (
    AgentName,
    AgentRunResult,
    FindingType,
    OrchestrationResult,
    SourcedFinding,
)
from .normalize import normalize_findings
from .redline import apply_suggested_redlines
from .registry import AgentRegistry, build_registry, resolve_agent_name
from .schemas import parse_review_input
from .scoring import score_findings

logger = logging.getLogger(__name__)

DEFAULT_AGENT_ORDER = [
    AgentName.RISK_SCANNER,
    AgentName.MISSING_CLAUSE,
    AgentName.AMBIGUITY,
    AgentName.COMPLIANCE,
    AgentName.CROSS_CLAUSE_CONFLICT,
]


def _run_one(registry: AgentRegistry, agent: AgentName, review_input: Any) -> AgentRunResult:
    try:
        output = registry.run(agent, review_input)
    except Exception as e:
        logger.warning("agent %s failed: %s", agent.value, e)
        return AgentRunResult(agent=agent, status="failed", error=str(e) or type(e).__name__)
    logger.debug("agent %s completed with %d findings", agent.value, len(output.findings))
    return AgentRunResult(agent=agent, status="completed", output=output)


def _read_boosts(boosts: Any) -> dict[FindingType, float]:
    if not isinstance(boosts, Mapping):
        if boosts:
            logger.debug("ignoring adaptive type boosts of type %s", type(boosts).__name__)
        return {}
    parsed = {}
    for key, value in boosts.items():
        try:
            parsed[FindingType(key)] = float(value)
        except (TypeError, ValueError):
            logger.debug("ignoring adaptive type boost %r=%r", key, value)
    return parsed


def _identity(raw: Any, field: str, wire_field: str) -> str:
    if isinstance(raw, Mapping):
        value = raw.get(wire_field, raw.get(field))
    else:
        value = getattr(raw, field, None)
    return value if isinstance(value, str) else ""


def collect_raw_findings(agent_results: Sequence[AgentRunResult]) -> list[SourcedFinding]:
    raw = []
    for result in agent_results:
        if result.status != "completed" or result.output is None:
            continue
        for f in result.output.findings:
            raw.append(SourcedFinding(
                type=f.type,
                title=f.title,
                description=f.description,
                severity=f.severity,
                confidence=f.confidence,
                suggested_redline=f.suggested_redline,
                evidence=f.evidence,
                source_agent=result.agent,
            ))
    return raw


def run_agents(
    review_input: Any,
    selected_agents: Optional[Sequence[Union[AgentName, str]]] = None,
    adaptive_type_boosts: Optional[Mapping[Union[FindingType, str], float]] = None,
    *,
    registry: Optional[AgentRegistry] = None,
    max_workers: Optional[int] = None,
) -> OrchestrationResult:
    """
    Run the selected agents concurrently and adjudicate, score, redline and
    normalize whatever they produced.

    Agent failures (bad input, bad output, executor exceptions) are recorded in
    ``agent_results`` and never raised. An agent name outside the known set is a
    configuration error and raises ``AgentNotRegistered`` before anything runs.
    ``adaptive_type_boosts`` is accepted but does not affect scoring; unusable
    entries are logged and ignored.
    """
    if selected_agents is None:
        selected_agents = DEFAULT_AGENT_ORDER
    agents = [resolve_agent_name(a) for a in selected_agents]
    boosts = _read_boosts(adaptive_type_boosts)
    if boosts:
        logger.debug("adaptive type boosts supplied (not applied to scores): %s",
                     {k.value: v for k, v in boosts.items()})
    registry = registry or build_registry()

    agent_results: list[AgentRunResult] = []
    if agents:
        workers = max_workers or AGENT_MAX_WORKERS or len(agents)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="review-agent") as pool:
            futures = [pool.submit(_run_one, registry, agent, review_input) for agent in agents]
            agent_results = [future.result() for future in futures]

    raw_findings = collect_raw_findings(agent_results)

    parsed = parse_review_input(review_input)
    if parsed.ok:
        review_run_id = parsed.value.review_run_id
        contract_version_id = parsed.value.contract_version_id
        policy_rules = parsed.value.policy_rules
    else:
        review_run_id = _identity(review_input, "review_run_id", "reviewRunId")
        contract_version_id = _identity(review_input, "contract_version_id", "contractVersionId")
        policy_rules = ()

    adjudicated = adjudicate_findings(raw_findings)
    scored = score_findings(adjudicated, policy_rules)
    findings = apply_suggested_redlines(scored)
    canonical = normalize_findings(review_run_id, contract_version_id, findings)

    failed = [r.agent.value for r in agent_results if r.status == "failed"]
    logger.info(
        "review run %s: %d agents (%d failed), %d raw findings -> %d adjudicated",
        review_run_id or "<unknown>", len(agent_results), len(failed), len(raw_findings), len(canonical),
    )

    return OrchestrationResult(
        review_run_id=review_run_id,
        agent_results=agent_results,
        raw_findings=raw_findings,
        findings=findings,
        canonical_findings=canonical,
    )
