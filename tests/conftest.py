import copy

import pytest

LIABILITY_TEXT = "Supplier has unlimited liability for all claims arising under this Agreement."
TERMINATION_TEXT = "Customer may terminate at any time by written notice. The parties will use reasonable efforts to cooperate."
LAW_TEXT = "This Agreement is governed by the laws of England."

REVIEW_PAYLOAD = {
    "contractId": "contract-1",
    "contractVersionId": "version-1",
    "reviewRunId": "run-1",
    "contractType": "MSA",
    "language": "en",
    "policyProfileId": "default",
    "policyRules": [
        {
            "id": "rule-law",
            "clauseSelector": "governed by",
            "requiredPattern": "laws of Delaware",
            "allowException": False,
            "active": True,
            "priority": 20,
        },
    ],
    "clauses": [
        {
            "id": "c1",
            "heading": "Liability",
            "type": "liability",
            "text": LIABILITY_TEXT,
            "startOffset": 0,
            "endOffset": len(LIABILITY_TEXT),
        },
        {
            "id": "c2",
            "heading": "Termination",
            "type": "term",
            "text": TERMINATION_TEXT,
            "startOffset": 100,
            "endOffset": 100 + len(TERMINATION_TEXT),
        },
        {
            "id": "c3",
            "heading": "Governing Law",
            "type": "governing-law",
            "text": LAW_TEXT,
            "startOffset": 300,
            "endOffset": 300 + len(LAW_TEXT),
        },
    ],
}


@pytest.fixture
def review_payload():
    return copy.deepcopy(REVIEW_PAYLOAD)


def make_finding_payload(**overrides):
    payload = {
        "type": "risky-language",
        "title": "Unlimited Liability",
        "description": "The clause suggests uncapped liability exposure.",
        "severity": "critical",
        "confidence": 0.78,
        "evidence": [{"clauseId": "c1", "startOffset": 13, "endOffset": 32, "excerpt": "unlimited liability"}],
    }
    payload.update(overrides)
    return payload
