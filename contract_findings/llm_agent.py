"""LLM-backed specialist agents: one Claude call per agent per review input."""

import json
import logging
from difflib import SequenceMatcher
from typing import Optional

from .config import ANTHROPIC_API_KEY, LLM_MAX_TOKENS, LLM_MODEL
from .models import AgentExecutor, AgentName, Clause, ReviewInput
from .prompts import build_system_prompt, build_user_message

logger = logging.getLogger(__name__)

_llm_client = None


def _get_llm_client():
    global _llm_client
    if _llm_client is None:
        import anthropic
        _llm_client = anthropic.Anthropic(api_key=ANTHROPIC_API_KEY)
    return _llm_client


def _recover_truncated_json(text: str) -> list[dict]:
    """Try to recover complete objects from a truncated JSON array.

    When the LLM response hits max_tokens, the JSON gets cut mid-object.
    This extracts all complete top-level objects before the truncation point.
    """
    results = []
    depth = 0
    obj_start = None
    in_string = False
    escape_next = False

    for i, ch in enumerate(text):
        if escape_next:
            escape_next = False
            continue
        if ch == "\\" and in_string:
            escape_next = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue

        if ch == "{":
            if depth == 0:
                obj_start = i
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0 and obj_start is not None:
                try:
                    results.append(json.loads(text[obj_start:i + 1]))
                except json.JSONDecodeError:
                    pass
                obj_start = None

    return results


def _parse_response(text: str, stop_reason: Optional[str]) -> list:
    text = text.strip()

    # Strip markdown code fences if present
    if text.startswith("```"):
        text = text.split("\n", 1)[1].rsplit("```", 1)[0].strip()

    try:
        results = json.loads(text)
    except json.JSONDecodeError:
        if stop_reason != "max_tokens":
            raise
        results = _recover_truncated_json(text)
        if not results:
            raise ValueError("LLM response was truncated and no complete objects could be recovered.")
        logger.warning("response truncated at max_tokens; recovered %d complete findings", len(results))

    if not isinstance(results, list):
        raise ValueError(f"Expected JSON array from LLM, got {type(results).__name__}")
    return results


# ---------------------------------------------------------------------------
# Evidence anchoring: map quoted text back to document offsets
# ---------------------------------------------------------------------------

def _locate(clause: Clause, quote: str) -> Optional[tuple[int, int]]:
    text_lower = clause.text.lower()
    quote_lower = quote.lower().strip()
    if not quote_lower:
        return None

    idx = text_lower.find(quote_lower)
    if idx >= 0:
        return clause.start_offset + idx, clause.start_offset + idx + len(quote_lower)

    # Fuzzy: longest common block, accepted when it covers most of the quote
    matcher = SequenceMatcher(None, text_lower, quote_lower, autojunk=False)
    block = matcher.find_longest_match(0, len(text_lower), 0, len(quote_lower))
    if block.size >= max(1, len(quote_lower) // 2):
        return clause.start_offset + block.a, clause.start_offset + block.a + block.size
    return None


def anchor_evidence(review_input: ReviewInput, raw_evidence: dict, fallback_excerpt: str) -> dict:
    """Turn an LLM ``{clause_id, quote}`` pair into an offset-anchored evidence payload."""
    clause_id = raw_evidence.get("clause_id") or raw_evidence.get("clauseId")
    quote = (raw_evidence.get("quote") or raw_evidence.get("excerpt") or "").strip()
    by_id = {c.id: c for c in review_input.clauses}

    clause = by_id.get(clause_id) if clause_id else None
    candidates = [clause] if clause else list(review_input.clauses)
    for c in candidates:
        span = _locate(c, quote)
        if span and span[1] > span[0]:
            return {"clause_id": c.id, "start_offset": span[0], "end_offset": span[1], "excerpt": quote}

    if clause is not None and clause.end_offset > clause.start_offset:
        return {
            "clause_id": clause.id,
            "start_offset": clause.start_offset,
            "end_offset": clause.end_offset,
            "excerpt": quote or clause.text[:180],
        }

    return {"clause_id": None, "start_offset": 0, "end_offset": 0, "excerpt": quote or fallback_excerpt}


def _to_finding_payload(review_input: ReviewInput, item: dict) -> dict:
    raw_evidence = item.get("evidence") or []
    if isinstance(raw_evidence, dict):
        raw_evidence = [raw_evidence]
    fallback = item.get("title") or "No specific clause"
    return {
        "type": item.get("type"),
        "title": item.get("title"),
        "description": item.get("description"),
        "severity": str(item.get("severity") or "").lower(),
        "confidence": item.get("confidence"),
        "suggested_redline": item.get("suggested_redline") or item.get("suggestedRedline"),
        "evidence": [
            anchor_evidence(review_input, ev, fallback)
            for ev in raw_evidence
            if isinstance(ev, dict)
        ],
    }


def make_llm_agent(agent: AgentName, client=None, model: str = LLM_MODEL,
                   max_tokens: int = LLM_MAX_TOKENS) -> AgentExecutor:
    """
    Build an executor that asks Claude for this agent's findings.

    The returned payload is raw: the registry still validates it, so a
    malformed model response fails this agent only.
    """

    def executor(review_input: ReviewInput) -> dict:
        llm = client or _get_llm_client()
        system_prompt = build_system_prompt(agent, review_input)
        user_message = build_user_message(review_input)

        text = ""
        with llm.messages.stream(
            model=model,
            max_tokens=max_tokens,
            system=system_prompt,
            messages=[{"role": "user", "content": user_message}],
        ) as stream:
            for chunk in stream.text_stream:
                text += chunk
            response = stream.get_final_message()

        items = _parse_response(text, getattr(response, "stop_reason", None))
        findings = [_to_finding_payload(review_input, item) for item in items if isinstance(item, dict)]

        usage = getattr(response, "usage", None)
        prompt_tokens = int(getattr(usage, "input_tokens", 0) or 0)
        completion_tokens = int(getattr(usage, "output_tokens", 0) or 0)
        logger.debug("%s: %d findings from %s (%d+%d tokens)",
                     agent.value, len(findings), model, prompt_tokens, completion_tokens)

        return {
            "findings": findings,
            "usage": {
                "prompt_tokens": prompt_tokens,
                "completion_tokens": completion_tokens,
                "total_tokens": prompt_tokens + completion_tokens,
            },
        }

    executor.__name__ = f"llm_{agent.value.replace('-', '_')}_agent"
    return executor


def build_llm_agents(client=None, model: str = LLM_MODEL) -> dict[AgentName, AgentExecutor]:
    return {agent: make_llm_agent(agent, client=client, model=model) for agent in AgentName}
