"""CLI entrypoint for the playbook engine.

Generated commands are printed on stdout, one per line; logs go to stderr.
Exit codes are CI-friendly:

- 0: success
- 1: unexpected failure
- 2: configuration or playbook error
- 3: unknown task or mode
- 4: blocked on missing prerequisite artifacts
- 5: mark-done rejected
- 6: completion record not persisted (only with BBP_STRICT_PERSISTENCE)
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from bbp_playbook import __version__
from bbp_playbook.engine.commands import Blocked, SelectionError
from bbp_playbook.engine.completion_store import CompletionStore, Degraded, JsonFileBackend
from bbp_playbook.engine.config import PlaybookSettings
from bbp_playbook.engine.logging import configure_logging
from bbp_playbook.engine.model import PlaybookLoadError
from bbp_playbook.engine.readiness import ReadinessVerdict
from bbp_playbook.engine.recorder import Rejected
from bbp_playbook.engine.render import (
    blocked_message,
    describe_task,
    join_commands,
    mode_label,
    task_label,
)
from bbp_playbook.engine.service import NotLoaded, PlaybookEngine

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2
EXIT_SELECTION = 3
EXIT_BLOCKED = 4
EXIT_REJECTED = 5
EXIT_DEGRADED = 6


def _parse_param(value: str) -> tuple[str, str]:
    name, sep, param_value = value.partition("=")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got '{value}'")
    return name.strip(), param_value


def _add_param_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--domain", default="", help="Target domain (also the default scope)")
    parser.add_argument("--url", default="", help="Target URL")
    parser.add_argument(
        "--param",
        dest="params",
        action="append",
        type=_parse_param,
        default=[],
        metavar="KEY=VALUE",
        help="Extra placeholder value; may be repeated. Blank values keep the playbook default",
    )
    parser.add_argument(
        "--scope",
        default=None,
        help="Completion scope (defaults to the scope parameter you pass, usually --domain)",
    )


def _overrides(args: argparse.Namespace) -> dict[str, str | None]:
    overrides: dict[str, str | None] = dict(args.params)
    if args.domain.strip():
        overrides["domain"] = args.domain
    if args.url.strip():
        overrides["url"] = args.url
    return overrides


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bbp",
        description="Generate playbook commands, gated on recorded prerequisite outputs",
    )
    parser.add_argument("--version", action="version", version=f"bbp-playbook {__version__}")
    parser.add_argument(
        "--playbook",
        default=None,
        help="Path to the YAML playbook (defaults to PLAYBOOK_PATH)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    tasks = subparsers.add_parser("tasks", help="List tasks with their readiness")
    _add_param_arguments(tasks)

    modes = subparsers.add_parser("modes", help="List the modes of a task")
    modes.add_argument("task_id", help="Task id")

    show = subparsers.add_parser("show", help="Show a task's metadata, notes and readiness")
    show.add_argument("task_id", help="Task id")
    _add_param_arguments(show)

    generate = subparsers.add_parser("generate", help="Print the commands for a task mode")
    generate.add_argument("task_id", help="Task id")
    generate.add_argument(
        "--mode",
        default=None,
        help="Mode name (defaults to the task's first mode)",
    )
    _add_param_arguments(generate)

    done = subparsers.add_parser(
        "done", help="Record the task's produced outputs as completed for the scope"
    )
    done.add_argument("task_id", help="Task id")
    _add_param_arguments(done)

    reset = subparsers.add_parser("reset", help="Forget every completed output for the scope")
    reset.add_argument("--domain", default="", help="Target domain (the default scope)")
    reset.add_argument("--scope", default=None, help="Completion scope to reset")

    return parser


def _print_verdict(verdict: ReadinessVerdict) -> None:
    if verdict.ready:
        print("Ready.")
    else:
        print(blocked_message(verdict.missing))


def _run(args: argparse.Namespace, settings: PlaybookSettings, engine: PlaybookEngine) -> int:
    if args.command == "modes":
        for mode in engine.list_modes(args.task_id):
            print(f"{mode}\t{mode_label(mode)}")
        return EXIT_OK

    if args.command == "reset":
        scope = (args.scope or args.domain).strip()
        if not scope:
            print("Enter a domain (or --scope) first.", file=sys.stderr)
            return EXIT_REJECTED
        outcome = engine.reset_scope(scope)
        if isinstance(outcome, Degraded):
            print(f"Warning: reset not persisted ({outcome.reason})", file=sys.stderr)
            return EXIT_DEGRADED if settings.strict_persistence else EXIT_OK
        print(f"Session markers reset for {scope}.")
        return EXIT_OK

    overrides = _overrides(args)

    if args.command == "tasks":
        for task in engine.list_tasks():
            verdict = engine.evaluate_readiness(task.id, overrides, args.scope)
            status = "ready" if isinstance(verdict, ReadinessVerdict) and verdict.ready else "blocked"
            print(f"{task.id}\t{status}\t{task_label(task)}")
        return EXIT_OK

    if args.command == "show":
        task = engine.get_task(args.task_id)
        verdict = engine.evaluate_readiness(task.id, overrides, args.scope)
        assert isinstance(verdict, ReadinessVerdict)
        print(task_label(task))
        print(describe_task(task, engine.resolve_params(overrides), verdict))
        for note in task.notes:
            print(f"- {note}")
        _print_verdict(verdict)
        return EXIT_OK if verdict.ready else EXIT_BLOCKED

    if args.command == "generate":
        mode = args.mode
        if mode is None:
            modes = engine.list_modes(args.task_id)
            if not modes:
                print(f"Task {args.task_id} has no modes.", file=sys.stderr)
                return EXIT_SELECTION
            mode = modes[0]

        result = engine.generate_commands(args.task_id, mode, overrides, args.scope)
        if isinstance(result, Blocked):
            print(blocked_message(result.missing), file=sys.stderr)
            return EXIT_BLOCKED
        assert not isinstance(result, NotLoaded)
        print(join_commands(result.commands))
        return EXIT_OK

    if args.command == "done":
        record = engine.mark_task_done(args.task_id, overrides, args.scope)
        if isinstance(record, Rejected):
            print(f"Not marked done: {record.reason}", file=sys.stderr)
            return EXIT_REJECTED
        print(f"Marked done: {', '.join(record.marked)}")
        if isinstance(record.outcome, Degraded):
            print(f"Warning: completion not persisted ({record.outcome.reason})", file=sys.stderr)
            if settings.strict_persistence:
                return EXIT_DEGRADED
        return EXIT_OK

    logger.error("Unknown command", extra={"command": args.command})
    return EXIT_CONFIG


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = PlaybookSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return EXIT_CONFIG

    configure_logging(settings.log_level)

    store = CompletionStore(JsonFileBackend(settings.completion_state_file))
    engine = PlaybookEngine(store, scope_param=settings.scope_param)

    playbook_path = Path(args.playbook) if args.playbook else settings.playbook_path
    try:
        engine.load_catalogue(playbook_path)
    except PlaybookLoadError as e:
        logger.error("Failed to load playbook", extra={"path": str(playbook_path)})
        print(f"Failed to load playbook: {e}", file=sys.stderr)
        return EXIT_CONFIG

    try:
        return _run(args, settings, engine)

    except SelectionError as e:
        print(str(e), file=sys.stderr)
        return EXIT_SELECTION

    except Exception:
        logger.exception("Command failed")
        return EXIT_FAILURE


if __name__ == "__main__":
    raise SystemExit(main())
