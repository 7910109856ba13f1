"""Configuration constants, paths, and thresholds."""

import os
from pathlib import Path

# ---------------------------------------------------------------------------
# Load .env if present
# ---------------------------------------------------------------------------
BASE_DIR = Path(__file__).parent.parent
_env_path = BASE_DIR / ".env"
if _env_path.exists():
    for _line in _env_path.read_text().splitlines():
        _line = _line.strip()
        if _line and not _line.startswith("#") and "=" in _line:
            _k, _, _v = _line.partition("=")
            os.environ.setdefault(_k.strip(), _v.strip().strip("\"'"))

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
OUTPUT_DIR = Path(os.environ.get("OUTPUT_DIR", BASE_DIR / "output"))
OUTPUT_FILENAME = "findings.json"

# ---------------------------------------------------------------------------
# Adjudication
# ---------------------------------------------------------------------------
OVERLAP_THRESHOLD = 0.3

# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------
SEVERITY_BASE_SCORE = {
    "critical": 100,
    "high": 75,
    "medium": 50,
    "low": 25,
    "info": 10,
}
CONFIDENCE_WEIGHT = 30
POLICY_WEIGHT_MAX = 20
POLICY_PRIORITY_CEILING = 200
DEFAULT_RULE_PRIORITY = 100

# ---------------------------------------------------------------------------
# Agent execution
# ---------------------------------------------------------------------------
AGENT_MAX_WORKERS = int(os.environ.get("AGENT_MAX_WORKERS", "0")) or None
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

# ---------------------------------------------------------------------------
# LLM Settings
# ---------------------------------------------------------------------------
ANTHROPIC_API_KEY = os.environ.get("ANTHROPIC_API_KEY", "")
LLM_MODEL = os.environ.get("LLM_MODEL", "claude-sonnet-4-20250514")
LLM_MAX_TOKENS = int(os.environ.get("LLM_MAX_TOKENS", "8192"))
