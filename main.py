#!/usr/bin/env python3
"""
Contract Findings Pipeline

Runs the specialist review agents over one contract review input (JSON),
merges overlapping findings, scores and redlines them, and writes a
canonical findings.json.

Usage:
    python main.py <review_input.json> [--agents a,b] [--rulebook rules.xlsx]
                   [--mode heuristic|llm] [--out DIR]

Agent names: risk-scanner, missing-clause, ambiguity, compliance,
cross-clause-conflict. Policy rules from --rulebook are appended to the
input's own policyRules.
"""

import json
import logging
import sys

from contract_findings.config import LOG_LEVEL
from contract_findings.errors import AgentNotRegistered, InputValidationError
from contract_findings.pipeline import ANALYSIS_MODES, run_pipeline


def _setup_logging() -> None:
    try:
        from rich.logging import RichHandler
        handlers = [RichHandler(show_path=False, markup=False)]
        fmt = "%(message)s"
    except ImportError:
        handlers = [logging.StreamHandler()]
        fmt = "%(levelname)s %(name)s: %(message)s"
    logging.basicConfig(level=LOG_LEVEL.upper(), format=fmt, datefmt="[%X]", handlers=handlers)


def main(argv=None) -> int:
    # ---- Parse args ----
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        print("Usage: python main.py <review_input.json> [--agents a,b] [--rulebook rules.xlsx] "
              "[--mode heuristic|llm] [--out DIR]")
        print("\nExamples:")
        print("  python main.py review.json                              # All five heuristic agents")
        print("  python main.py review.json --agents risk-scanner,compliance")
        print("  python main.py review.json --rulebook 'Policy Rules.xlsx' --mode llm")
        return 0

    input_arg = None
    selected_agents = None
    rulebook = None
    output_dir = None
    analysis_mode = "heuristic"
    i = 0
    while i < len(args):
        if args[i] == "--agents" and i + 1 < len(args):
            selected_agents = [a.strip() for a in args[i + 1].split(",") if a.strip()]
            i += 2
        elif args[i] == "--rulebook" and i + 1 < len(args):
            rulebook = args[i + 1]
            i += 2
        elif args[i] == "--out" and i + 1 < len(args):
            output_dir = args[i + 1]
            i += 2
        elif args[i] == "--mode" and i + 1 < len(args):
            analysis_mode = args[i + 1].lower()
            if analysis_mode not in ANALYSIS_MODES:
                print(f"Error: --mode must be heuristic or llm (got '{analysis_mode}')")
                return 1
            i += 2
        else:
            input_arg = args[i]
            i += 1

    if not input_arg:
        print("Error: no review input given.")
        return 1

    _setup_logging()

    print("Contract Findings Pipeline")
    print(f"Analysis mode: {analysis_mode}")
    print(f"Input: {input_arg}")
    print()

    try:
        run_pipeline(
            input_source=input_arg,
            selected_agents=selected_agents,
            rulebook=rulebook,
            analysis_mode=analysis_mode,
            output_dir=output_dir,
        )
    except FileNotFoundError as e:
        print(f"Error: {e}")
        return 1
    except InputValidationError as e:
        print("Error: review input failed validation:")
        for err in e.errors:
            print(f"  - {err}")
        return 1
    except AgentNotRegistered as e:
        print(f"Error: unknown agent '{e.name}'")
        return 1
    except json.JSONDecodeError as e:
        print(f"Error: review input is not valid JSON: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
