"""Batch pipeline: load a review input, run the agents, write findings.json."""

import json
import logging
import time
from pathlib import Path
from typing import Optional, Sequence

from .config import ANTHROPIC_API_KEY, BASE_DIR, LLM_MODEL, OUTPUT_DIR, OUTPUT_FILENAME
from .extractors import load_policy_rules_xlsx, load_review_input
from .orchestrator import run_agents
from .output import agent_result_to_dict, finding_to_dict, generate_summary, print_rich_summary
from .registry import build_registry

logger = logging.getLogger(__name__)

ANALYSIS_MODES = ("heuristic", "llm")


def _resolve(path_like) -> Path:
    path = Path(path_like)
    if not path.is_absolute() and not path.exists():
        path = BASE_DIR / path
    return path


def run_pipeline(
    input_source: str,
    selected_agents: Optional[Sequence[str]] = None,
    rulebook: Optional[str] = None,
    analysis_mode: str = "heuristic",
    output_dir: Optional[str] = None,
    progress_callback=None,
    llm_client=None,
    show_summary: bool = True,
) -> dict:
    """
    Run one review: load input (+ optional xlsx rulebook), run the selected
    agents, adjudicate/score/redline/normalize, and write findings.json.

    Returns a dict with metadata, summary, agent_results, findings, and
    output_path.
    """

    def progress(step, total, msg):
        if progress_callback:
            progress_callback(step, total, msg)
        else:
            print(msg)

    if analysis_mode not in ANALYSIS_MODES:
        raise ValueError(f"analysis_mode must be one of {ANALYSIS_MODES} (got {analysis_mode!r})")

    # LLM availability check
    if analysis_mode == "llm" and llm_client is None and not ANTHROPIC_API_KEY:
        logger.warning("mode llm requested but ANTHROPIC_API_KEY not set; falling back to heuristic")
        analysis_mode = "heuristic"

    input_path = _resolve(input_source)
    t0 = time.time()

    # Step 1: Load input and rulebook
    progress(1, 4, "[Step 1/4] Loading review input...")
    extra_rules = []
    if rulebook:
        extra_rules = load_policy_rules_xlsx(_resolve(rulebook))
        print(f"  Loaded {len(extra_rules)} rules from {Path(rulebook).name}")
    review_input = load_review_input(input_path, extra_rules=extra_rules)
    print(f"  Clauses: {len(review_input.clauses)}  |  Policy rules: {len(review_input.policy_rules)}")

    # Step 2: Run agents
    progress(2, 4, "[Step 2/4] Running specialist agents...")
    if analysis_mode == "llm":
        from .llm_agent import build_llm_agents
        registry = build_registry(build_llm_agents(client=llm_client))
    else:
        registry = build_registry()
    result = run_agents(review_input, selected_agents, registry=registry)
    for r in result.agent_results:
        detail = f"{len(r.output.findings)} findings" if r.output is not None else r.error
        print(f"  {r.agent.value:22s} {r.status:9s} {detail}")

    # Step 3: Build the report
    progress(3, 4, "[Step 3/4] Building report...")
    findings = [finding_to_dict(f) for f in result.canonical_findings]
    summary = generate_summary(result.canonical_findings, result.agent_results)
    print(f"  {len(result.raw_findings)} raw findings -> {len(findings)} after adjudication")

    metadata = {
        "tool": "Contract Findings Pipeline",
        "input_source": input_path.name,
        "rulebook": Path(rulebook).name if rulebook else None,
        "contract_id": review_input.contract_id,
        "contract_version_id": review_input.contract_version_id,
        "review_run_id": review_input.review_run_id,
        "policy_rules": len(review_input.policy_rules),
        "analysis_mode": analysis_mode,
        "llm_model": LLM_MODEL if analysis_mode == "llm" else None,
        "elapsed_seconds": round(time.time() - t0, 1),
    }
    agent_results = [agent_result_to_dict(r) for r in result.agent_results]

    # Step 4: Write output
    progress(4, 4, "[Step 4/4] Writing findings...")
    out_dir = Path(output_dir) if output_dir else OUTPUT_DIR
    out_dir.mkdir(parents=True, exist_ok=True)
    output_path = out_dir / OUTPUT_FILENAME
    output = {
        "metadata": metadata,
        "summary": summary,
        "agent_results": agent_results,
        "findings": findings,
    }
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(output, f, indent=2, ensure_ascii=False)
    print(f"  {OUTPUT_FILENAME} written to: {output_path}")

    if show_summary:
        print_rich_summary(summary, findings, metadata)

    return {**output, "output_path": str(output_path)}
