"""Review input loading: JSON review inputs and policy rulebooks from XLSX."""

import json
import re
from pathlib import Path
from typing import Optional

from .errors import InputValidationError
from .models import ReviewInput
from .schemas import parse_review_input

_TRUE_VALUES = {"true", "yes", "y", "1", "x"}


# ---------------------------------------------------------------------------
# Review Input (JSON)
# ---------------------------------------------------------------------------

def read_review_payload(path: Path) -> dict:
    """Read a review input JSON file without validating it."""
    if not path.exists():
        raise FileNotFoundError(f"Review input not found: {path}")
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise InputValidationError([f"<root>: expected a JSON object, got {type(payload).__name__}"])
    return payload


def load_review_input(path: Path, extra_rules: Optional[list[dict]] = None) -> ReviewInput:
    """
    Load and validate a review input JSON file.

    ``extra_rules`` (e.g. from a rulebook workbook) are appended to the
    file's own ``policyRules`` before validation.
    """
    payload = read_review_payload(path)
    if extra_rules:
        key = "policyRules" if "policyRules" in payload or "policy_rules" not in payload else "policy_rules"
        payload[key] = list(payload.get(key) or []) + list(extra_rules)

    parsed = parse_review_input(payload)
    if not parsed.ok:
        raise InputValidationError(list(parsed.errors))
    return parsed.value


# ---------------------------------------------------------------------------
# Load Policy Rulebook from XLSX
# ---------------------------------------------------------------------------

def load_policy_rules_xlsx(path: Path) -> list[dict]:
    """
    Parse a policy rulebook workbook.

    Every sheet whose header row has a selector column contributes rules.
    Columns are found by keyword: id, selector, clause type / requirement,
    required, forbidden, exception, active, priority. Returns wire-format
    rule dicts; they are validated together with the review input.
    """
    import openpyxl

    if not path.exists():
        raise FileNotFoundError(f"Rulebook not found: {path}")

    wb = openpyxl.load_workbook(str(path), read_only=True)
    rules: list[dict] = []
    rule_idx = 0

    for sheet_name in wb.sheetnames:
        ws = wb[sheet_name]
        rows = list(ws.iter_rows(values_only=True))
        if len(rows) < 2:
            continue

        header = [str(c).lower().strip() if c else "" for c in rows[0]]

        # keywords in priority order; whole words only ("id" must not hit "forbidden")
        def find_col(*keywords):
            for kw in keywords:
                pattern = re.compile(rf"\b{re.escape(kw)}\b")
                for i, h in enumerate(header):
                    if pattern.search(h):
                        return i
            return None

        col_selector = find_col("selector", "trigger")
        if col_selector is None:
            continue
        col_id = find_col("rule id", "id")
        col_requirement = find_col("clause type", "requirement")
        col_required = find_col("required")
        col_forbidden = find_col("forbidden")
        col_exception = find_col("exception")
        col_active = find_col("active")
        col_priority = find_col("priority")

        for row in rows[1:]:
            def cell(idx):
                if idx is None or idx >= len(row) or row[idx] is None:
                    return ""
                return str(row[idx]).strip()

            selector = cell(col_selector)
            if not selector:
                continue

            rule_idx += 1
            priority = cell(col_priority)
            active = cell(col_active)
            rules.append({
                "id": cell(col_id) or f"{sheet_name.lower().replace(' ', '_')}_{rule_idx}",
                "clauseSelector": selector,
                "clauseRequirement": cell(col_requirement) or None,
                "requiredPattern": cell(col_required) or None,
                "forbiddenPattern": cell(col_forbidden) or None,
                "allowException": cell(col_exception).lower() in _TRUE_VALUES,
                "active": active.lower() in _TRUE_VALUES if active else True,
                "priority": int(float(priority)) if priority else 100,
            })

    wb.close()
    return rules
