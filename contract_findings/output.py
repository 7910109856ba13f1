"""Output generation: finding serialization, summary, rich terminal output."""

from typing import Sequence

from .models import AgentRunResult, CanonicalFinding, EvidenceSpan, Severity


def evidence_to_dict(ev: EvidenceSpan) -> dict:
    return {
        "clauseId": ev.clause_id,
        "startOffset": ev.start_offset,
        "endOffset": ev.end_offset,
        "excerpt": ev.excerpt,
    }


def finding_to_dict(f: CanonicalFinding) -> dict:
    """Serialize a canonical finding with the camelCase keys used on the wire."""
    return {
        "canonicalKey": f.canonical_key,
        "reviewRunId": f.review_run_id,
        "contractVersionId": f.contract_version_id,
        "type": f.type.value,
        "title": f.title,
        "description": f.description,
        "severity": f.severity.value,
        "confidence": f.confidence,
        "severityScore": f.severity_score,
        "status": f.status,
        "suggestedRedline": f.suggested_redline,
        "sourceAgents": [a.value for a in f.source_agents],
        "evidence": [evidence_to_dict(ev) for ev in f.evidence],
    }


def agent_result_to_dict(r: AgentRunResult) -> dict:
    out = {"agent": r.agent.value, "status": r.status}
    if r.output is not None:
        out["findingCount"] = len(r.output.findings)
        if r.output.usage is not None:
            out["usage"] = {
                "promptTokens": r.output.usage.prompt_tokens,
                "completionTokens": r.output.usage.completion_tokens,
                "totalTokens": r.output.usage.total_tokens,
            }
    if r.error:
        out["error"] = r.error
    return out


def generate_summary(findings: Sequence[CanonicalFinding], agent_results: Sequence[AgentRunResult]) -> dict:
    by_severity = {}
    by_type = {}
    for f in findings:
        by_severity[f.severity.value] = by_severity.get(f.severity.value, 0) + 1
        by_type[f.type.value] = by_type.get(f.type.value, 0) + 1

    # findings arrive ranked by severity score
    return {
        "total_findings": len(findings),
        "severity_breakdown": by_severity,
        "type_breakdown": by_type,
        "high_risk_count": sum(1 for f in findings if f.severity in (Severity.CRITICAL, Severity.HIGH)),
        "agents_run": len(agent_results),
        "agents_failed": [r.agent.value for r in agent_results if r.status == "failed"],
        "top_findings": [
            {"canonical_key": f.canonical_key[:12], "type": f.type.value,
             "severity": f.severity.value, "score": f.severity_score,
             "title": f.title[:200], "agents": [a.value for a in f.source_agents]}
            for f in findings[:10]
        ],
    }


def print_rich_summary(summary: dict, findings: list[dict], metadata: dict) -> None:
    try:
        from rich.console import Console
        from rich.table import Table
        from rich.panel import Panel
        from rich import box
    except ImportError:
        return _print_plain_summary(summary)

    console = Console()
    console.print()
    sev = summary.get("severity_breakdown", {})
    failed = summary.get("agents_failed", [])
    summary_text = (
        f"[bold]Findings:[/bold] {summary['total_findings']}\n"
        f"[bold magenta]Critical:[/bold magenta] {sev.get('critical', 0)}  "
        f"[bold red]High:[/bold red] {sev.get('high', 0)}  "
        f"[bold yellow]Medium:[/bold yellow] {sev.get('medium', 0)}  "
        f"[bold green]Low:[/bold green] {sev.get('low', 0)}  "
        f"[bold]Info:[/bold] {sev.get('info', 0)}\n"
        f"[bold]Agents:[/bold] {summary.get('agents_run', 0)} run, "
        f"{len(failed)} failed{(' (' + ', '.join(failed) + ')') if failed else ''}\n"
        f"[bold]Mode:[/bold] {metadata.get('analysis_mode', 'N/A')}  "
        f"[bold]Review run:[/bold] {metadata.get('review_run_id', 'N/A')}"
    )
    console.print(Panel(summary_text, title="Contract Review Findings", border_style="blue", expand=False))

    if not findings:
        console.print()
        return

    table = Table(title="Top Findings", box=box.ROUNDED, show_lines=True)
    table.add_column("Score", style="bold", width=7)
    table.add_column("Severity", width=10)
    table.add_column("Type", width=22)
    table.add_column("Agents", width=24)
    table.add_column("Title", width=60)
    severity_style = {
        "critical": "bold magenta", "high": "bold red", "medium": "bold yellow",
        "low": "bold green", "info": "dim",
    }
    for f in findings[:10]:
        table.add_row(
            f"{f['severityScore']:.2f}",
            f"[{severity_style.get(f['severity'], '')}]{f['severity']}[/]",
            f["type"],
            ", ".join(f["sourceAgents"]),
            f["title"][:80] + "..." if len(f["title"]) > 80 else f["title"],
        )
    console.print(table)
    console.print()


def _print_plain_summary(summary: dict) -> None:
    print(f"\n{'='*60}")
    print("  SUMMARY")
    print(f"{'='*60}")
    print(f"  Findings         : {summary['total_findings']}")
    print(f"  Severity         : {summary['severity_breakdown']}")
    print(f"  Types            : {summary['type_breakdown']}")
    print(f"  High-risk        : {summary['high_risk_count']}")
    print(f"  Failed agents    : {summary['agents_failed'] or 'none'}")
    if summary["top_findings"]:
        print("\n  TOP FINDINGS:")
        for t in summary["top_findings"][:5]:
            print(f"    [{t['severity']:8s}] {t['score']:6.2f} {t['type']}: {t['title'][:60]}")
    print()
