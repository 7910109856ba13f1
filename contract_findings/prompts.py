"""Centralized prompts for the LLM-backed specialist agents.

All LLM prompts live here so they can be reviewed, versioned, and tuned in one place.
"""

from .models import AgentName, ReviewInput


# ---------------------------------------------------------------------------
# System Prompt: sent as `system` parameter (cacheable by Anthropic API)
# Contains: identity, agent focus, active policy rules, output format
# ---------------------------------------------------------------------------

def build_system_prompt(agent: AgentName, review_input: ReviewInput) -> str:
    """Build the system prompt for one specialist agent."""

    rule_lines = []
    for r in review_input.policy_rules:
        if not r.active:
            continue
        line = f"- [{r.id}] priority {r.priority} | selector: {r.clause_selector}"
        if r.clause_requirement:
            line += f" | clause type: {r.clause_requirement}"
        if r.required_pattern:
            line += f" | must contain: {r.required_pattern}"
        if r.forbidden_pattern:
            line += f" | must not contain: {r.forbidden_pattern}"
        if r.allow_exception:
            line += " | exceptions allowed"
        rule_lines.append(line)
    rules_block = "\n".join(rule_lines) or "(no active policy rules)"

    context = [f"Contract language: {review_input.language}"]
    if review_input.contract_type:
        context.append(f"Contract type: {review_input.contract_type}")
    if review_input.jurisdiction:
        context.append(f"Jurisdiction: {review_input.jurisdiction}")

    return f"""{SYSTEM_IDENTITY}

{AGENT_FOCUS[agent]}

{chr(10).join(context)}

{POLICY_HEADER}
{rules_block}

{RESPONSE_FORMAT.format(finding_type=AGENT_FINDING_TYPE[agent])}"""


# ---------------------------------------------------------------------------
# User Message: the clauses under review
# ---------------------------------------------------------------------------

def build_user_message(review_input: ReviewInput) -> str:
    """Build the user message listing every clause with its id and type."""
    blocks = []
    for c in review_input.clauses:
        heading = f" | {c.heading}" if c.heading else ""
        blocks.append(f"[clause {c.id}] ({c.type}){heading}\n{c.text}")
    clauses_text = "\n\n".join(blocks)

    return f"""{USER_INSTRUCTION}

CLAUSES:
===
{clauses_text}
===

Return the JSON array now."""


# ---------------------------------------------------------------------------
# Prompt Components: edit these to tune behavior
# ---------------------------------------------------------------------------

SYSTEM_IDENTITY = """You are a senior contract reviewer. You examine contract clauses for one specific
class of issue and report each issue you find with exact quotes from the clauses as evidence.
Report only issues of your assigned class; other reviewers cover the rest."""

AGENT_FINDING_TYPE = {
    AgentName.RISK_SCANNER: "risky-language",
    AgentName.MISSING_CLAUSE: "missing-clause",
    AgentName.AMBIGUITY: "ambiguity",
    AgentName.COMPLIANCE: "compliance",
    AgentName.CROSS_CLAUSE_CONFLICT: "cross-clause-conflict",
}

AGENT_FOCUS = {
    AgentName.RISK_SCANNER: """YOUR FOCUS: risky language.
Flag uncapped or unlimited liability, broad indemnities, one-sided termination or discretion,
perpetual obligations, and any wording that shifts disproportionate risk to our side.""",
    AgentName.MISSING_CLAUSE: """YOUR FOCUS: missing clauses.
Flag standard protective sections that are absent: term and termination, limitation of liability,
confidentiality, intellectual property, governing law, and for data processing agreements, data
protection. For a missing section there is no clause to quote; use clause_id null and quote "".""",
    AgentName.AMBIGUITY: """YOUR FOCUS: ambiguity.
Flag subjective effort standards, open-ended timing, undefined materiality thresholds, and quoted
terms that are never defined.""",
    AgentName.COMPLIANCE: """YOUR FOCUS: policy compliance.
Check every active policy rule below. Flag clauses selected by a rule that lack its required
language or contain its forbidden language. Use severity "high" unless the rule allows exceptions.""",
    AgentName.CROSS_CLAUSE_CONFLICT: """YOUR FOCUS: cross-clause conflicts.
Flag pairs of clauses that contradict each other (termination rights, liability caps, assignment,
governing law). Quote both clauses as separate evidence entries.""",
}

POLICY_HEADER = "ACTIVE POLICY RULES:"

RESPONSE_FORMAT = """RESPONSE FORMAT:
Return ONLY a JSON array. No markdown fences, no commentary outside the JSON.
Return [] if you find nothing.

Each object must have:
{{
  "type": "{finding_type}",
  "title": "Short issue title",
  "description": "1-2 sentences on what is wrong and why it matters",
  "severity": "critical|high|medium|low|info",
  "confidence": 0.0-1.0,
  "suggested_redline": "Proposed replacement language, or null",
  "evidence": [
    {{"clause_id": "id of the clause quoted", "quote": "exact text copied from that clause"}}
  ]
}}"""

USER_INSTRUCTION = "Review these clauses for your assigned issue class."
