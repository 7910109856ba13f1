import json

import pytest

import main
from contract_findings import pipeline
from contract_findings.models import AgentName
from contract_findings.orchestrator import run_agents
from contract_findings.output import agent_result_to_dict, finding_to_dict, generate_summary, print_rich_summary


def _quiet(*_):
    pass


@pytest.fixture
def review_file(tmp_path, review_payload):
    path = tmp_path / "review.json"
    path.write_text(json.dumps(review_payload), encoding="utf-8")
    return path


def test_run_pipeline_writes_findings(tmp_path, review_file):
    out_dir = tmp_path / "out"

    result = pipeline.run_pipeline(str(review_file), output_dir=str(out_dir),
                                   progress_callback=_quiet, show_summary=False)

    written = json.loads((out_dir / "findings.json").read_text(encoding="utf-8"))
    assert written["findings"] == result["findings"]
    assert written["metadata"]["analysis_mode"] == "heuristic"
    assert written["metadata"]["review_run_id"] == "run-1"
    assert [r["agent"] for r in written["agent_results"]] == [a.value for a in AgentName]
    assert written["summary"]["total_findings"] == len(written["findings"])
    assert result["output_path"] == str(out_dir / "findings.json")


def test_run_pipeline_with_selected_agents(tmp_path, review_file):
    result = pipeline.run_pipeline(str(review_file), selected_agents=["compliance"],
                                   output_dir=str(tmp_path), progress_callback=_quiet, show_summary=False)

    assert [r["agent"] for r in result["agent_results"]] == ["compliance"]
    assert {f["type"] for f in result["findings"]} == {"compliance"}


def test_llm_mode_without_key_falls_back_to_heuristic(tmp_path, review_file, monkeypatch):
    monkeypatch.setattr(pipeline, "ANTHROPIC_API_KEY", "")

    result = pipeline.run_pipeline(str(review_file), analysis_mode="llm", output_dir=str(tmp_path),
                                   progress_callback=_quiet, show_summary=False)

    assert result["metadata"]["analysis_mode"] == "heuristic"


def test_unknown_mode_is_rejected(review_file):
    with pytest.raises(ValueError):
        pipeline.run_pipeline(str(review_file), analysis_mode="hybrid")


def test_finding_and_agent_result_serialization(review_payload):
    result = run_agents(review_payload, ["risk-scanner"])

    finding = finding_to_dict(result.canonical_findings[0])
    assert set(finding) == {
        "canonicalKey", "reviewRunId", "contractVersionId", "type", "title", "description",
        "severity", "confidence", "severityScore", "status", "suggestedRedline", "sourceAgents", "evidence",
    }
    assert finding["sourceAgents"] == ["risk-scanner"]
    assert set(finding["evidence"][0]) == {"clauseId", "startOffset", "endOffset", "excerpt"}

    agent = agent_result_to_dict(result.agent_results[0])
    assert agent["status"] == "completed"
    assert agent["usage"]["totalTokens"] == 0


def test_summary_counts(review_payload):
    result = run_agents(review_payload)

    summary = generate_summary(result.canonical_findings, result.agent_results)

    assert summary["total_findings"] == len(result.canonical_findings)
    assert sum(summary["severity_breakdown"].values()) == summary["total_findings"]
    assert sum(summary["type_breakdown"].values()) == summary["total_findings"]
    assert summary["agents_failed"] == []
    assert summary["top_findings"][0]["score"] == result.canonical_findings[0].severity_score

    print_rich_summary(summary, [finding_to_dict(f) for f in result.canonical_findings],
                       {"analysis_mode": "heuristic", "review_run_id": "run-1"})


def test_cli_success(tmp_path, review_file, capsys):
    code = main.main([str(review_file), "--agents", "risk-scanner,ambiguity", "--out", str(tmp_path / "cli")])

    assert code == 0
    assert (tmp_path / "cli" / "findings.json").exists()


def test_cli_errors(tmp_path, review_file, capsys):
    assert main.main([]) == 0
    assert main.main([str(review_file), "--mode", "hybrid"]) == 1
    assert main.main([str(tmp_path / "absent.json"), "--out", str(tmp_path)]) == 1
    assert main.main([str(review_file), "--agents", "sentiment", "--out", str(tmp_path)]) == 1

    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    assert main.main([str(bad), "--out", str(tmp_path)]) == 1

    out = capsys.readouterr().out
    assert "unknown agent 'sentiment'" in out
