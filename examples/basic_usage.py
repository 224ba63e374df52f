#!/usr/bin/env python3
"""Programmatic walkthrough of the readiness loop.

This demonstrates using the engine components directly:

* load settings from `.env`
* load a playbook and list its tasks
* generate commands for a task, or show what blocks it
* optionally record the task as done for the domain

The domain is passed as an argument (not read from `.env`).
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence

from bbp_playbook.engine.commands import Blocked
from bbp_playbook.engine.completion_store import CompletionStore, JsonFileBackend
from bbp_playbook.engine.config import PlaybookSettings
from bbp_playbook.engine.logging import configure_logging
from bbp_playbook.engine.render import blocked_message, task_label
from bbp_playbook.engine.service import NotLoaded, PlaybookEngine


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Walk one task through the readiness loop.")
    parser.add_argument("--domain", required=True, help='Target domain, e.g. "example.com"')
    parser.add_argument("--task", required=True, help="Task id")
    parser.add_argument("--mode", default="default", help="Mode name")
    parser.add_argument("--mark-done", action="store_true", help="Record the task as done")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = PlaybookSettings()
    configure_logging(settings.log_level)

    engine = PlaybookEngine(CompletionStore(JsonFileBackend(settings.completion_state_file)))
    engine.load_catalogue(settings.playbook_path)

    for task in engine.list_tasks():
        print(task_label(task))

    params = {"domain": args.domain}
    result = engine.generate_commands(args.task, args.mode, params)
    if isinstance(result, NotLoaded):
        return 1
    if isinstance(result, Blocked):
        print(blocked_message(result.missing))
        return 4

    for command in result.commands:
        print(command)

    if args.mark_done:
        print(engine.mark_task_done(args.task, params))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
