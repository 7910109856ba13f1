from contract_findings.models import AgentOutput, EvidenceSpan, Finding, FindingType, Severity
from contract_findings.schemas import parse_agent_output, parse_review_input

from conftest import make_finding_payload


def test_valid_review_input(review_payload):
    parsed = parse_review_input(review_payload)

    assert parsed.ok
    review_input = parsed.value
    assert review_input.review_run_id == "run-1"
    assert [c.id for c in review_input.clauses] == ["c1", "c2", "c3"]
    assert review_input.clauses[0].heading == "Liability"
    assert review_input.policy_rules[0].priority == 20
    assert review_input.policy_rules[0].clause_requirement is None


def test_snake_case_keys_are_accepted(review_payload):
    snake = {
        "contract_id": "k",
        "contract_version_id": "v",
        "review_run_id": "r",
        "language": "en",
        "policy_profile_id": "p",
        "clauses": [],
    }

    parsed = parse_review_input(snake)

    assert parsed.ok
    assert parsed.value.policy_rules == ()


def test_rule_priority_defaults_to_100(review_payload):
    del review_payload["policyRules"][0]["priority"]

    assert parse_review_input(review_payload).value.policy_rules[0].priority == 100


def test_review_input_dataclass_round_trips(review_payload):
    review_input = parse_review_input(review_payload).value

    assert parse_review_input(review_input).value == review_input


def test_unknown_key_is_rejected(review_payload):
    review_payload["surprise"] = True

    parsed = parse_review_input(review_payload)

    assert not parsed.ok
    assert parsed.value is None
    assert any(err.startswith("surprise:") for err in parsed.errors)


def test_missing_clauses_is_rejected(review_payload):
    del review_payload["clauses"]

    parsed = parse_review_input(review_payload)

    assert any(err.startswith("clauses:") for err in parsed.errors)


def test_bad_priority_and_language(review_payload):
    review_payload["language"] = "e"
    review_payload["policyRules"][0]["priority"] = 0

    parsed = parse_review_input(review_payload)

    assert len(parsed.errors) == 2


def test_string_priority_is_not_coerced(review_payload):
    review_payload["policyRules"][0]["priority"] = "20"

    assert not parse_review_input(review_payload).ok


def test_clause_range_must_not_be_inverted(review_payload):
    review_payload["clauses"][0]["endOffset"] = 0
    review_payload["clauses"][0]["startOffset"] = 10

    assert not parse_review_input(review_payload).ok


def test_non_mapping_input():
    assert not parse_review_input(["not", "a", "mapping"]).ok
    assert not parse_review_input(None).ok


def test_valid_agent_output():
    parsed = parse_agent_output({
        "findings": [make_finding_payload(suggestedRedline="Cap liability.")],
        "usage": {"promptTokens": 10, "completionTokens": 5, "totalTokens": 15},
    })

    assert parsed.ok
    [finding] = parsed.value.findings
    assert finding.type == FindingType.RISKY_LANGUAGE
    assert finding.severity == Severity.CRITICAL
    assert finding.suggested_redline == "Cap liability."
    assert finding.evidence[0] == EvidenceSpan("c1", 13, 32, "unlimited liability")
    assert parsed.value.usage.total_tokens == 15


def test_bare_list_is_wrapped():
    parsed = parse_agent_output([make_finding_payload()])

    assert parsed.ok
    assert len(parsed.value.findings) == 1
    assert parsed.value.usage is None


def test_agent_output_dataclass_is_accepted():
    output = AgentOutput(findings=(Finding(
        type=FindingType.AMBIGUITY,
        title="Ambiguous effort standard",
        description="desc",
        severity=Severity.MEDIUM,
        confidence=0.74,
        evidence=(EvidenceSpan("c2", 100, 117, "reasonable efforts"),),
    ),))

    parsed = parse_agent_output(output)

    assert parsed.ok
    assert parsed.value.findings == output.findings


def test_unknown_finding_type_is_rejected():
    assert not parse_agent_output([make_finding_payload(type="typo")]).ok


def test_confidence_out_of_range_is_rejected():
    assert not parse_agent_output([make_finding_payload(confidence=1.5)]).ok
    assert not parse_agent_output([make_finding_payload(confidence=True)]).ok


def test_empty_evidence_is_rejected():
    assert not parse_agent_output([make_finding_payload(evidence=[])]).ok


def test_clause_bound_evidence_needs_width():
    zero_width = [{"clauseId": "c1", "startOffset": 5, "endOffset": 5, "excerpt": "x"}]

    assert not parse_agent_output([make_finding_payload(evidence=zero_width)]).ok


def test_absence_marker_evidence_is_allowed():
    marker = [{"clauseId": None, "startOffset": 0, "endOffset": 0, "excerpt": "No clause found."}]

    parsed = parse_agent_output([make_finding_payload(type="missing-clause", evidence=marker)])

    assert parsed.ok
    assert parsed.value.findings[0].evidence[0].clause_id is None


def test_findings_key_is_required():
    assert not parse_agent_output({"usage": None}).ok
