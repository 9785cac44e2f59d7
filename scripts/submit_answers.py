#!/usr/bin/env python3
"""
Fill the survey form from a JSON answers file and submit it.

    python scripts/submit_answers.py answers.json --endpoint http://localhost:3000/api/create/survey
    python scripts/submit_answers.py answers.json --dry-run

The answers file maps field names to values (lists for checkbox groups).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT / "src") not in sys.path:
    sys.path.insert(0, str(REPO_ROOT / "src"))

from survey_form.config import FormConfig  # noqa: E402
from survey_form.controller import SubmitOutcome, build_controller  # noqa: E402
from survey_form.storage import MemoryStorage  # noqa: E402


async def _run(args: argparse.Namespace) -> int:
    answers = json.loads(Path(args.answers).read_text(encoding="utf-8"))
    if not isinstance(answers, dict):
        print(f"{args.answers}: expected a JSON object of field -> value")
        return 2

    overrides = {}
    if args.endpoint:
        overrides["api_endpoint"] = args.endpoint
    if args.timeout:
        overrides["request_timeout"] = args.timeout
    config = FormConfig.from_env(**overrides)

    controller = build_controller(config, storage=MemoryStorage(), restore=False)
    try:
        applied = controller.apply_answers(answers)
        print(f"Applied {applied} answers")

        if args.dry_run:
            result = controller.validate_form()
            for issue in result.errors:
                print(f"  - {issue.message}")
            if not result.is_valid:
                return 1
            print(json.dumps(controller.build_payload(controller.collect_form_data()), indent=2, ensure_ascii=False))
            return 0

        outcome = await controller.handle_submit()
    finally:
        await controller.aclose()

    if outcome == SubmitOutcome.SUCCESS:
        print(f"Submitted to {config.api_endpoint}")
        return 0
    for notice in controller.view.notices:
        print(f"[{notice.level.value}] {notice.message}")
    for issue in controller.view.error_summary or []:
        print(f"  - {issue.message}")
    if controller.view.error_text:
        print(controller.view.error_text)
    return 1


def main() -> None:
    parser = argparse.ArgumentParser(description="Submit one survey response from a JSON answers file.")
    parser.add_argument("answers", help="Path to a JSON object of field name -> value.")
    parser.add_argument("--endpoint", help="Override SURVEY_API_ENDPOINT.")
    parser.add_argument("--timeout", type=float, help="Request timeout in seconds.")
    parser.add_argument("--dry-run", action="store_true", help="Validate and print the payload without sending it.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    args = parser.parse_args()

    load_dotenv(REPO_ROOT / ".env", override=False)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
