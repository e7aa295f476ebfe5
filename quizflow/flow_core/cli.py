from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from quizflow.core.logging import setup_logging

from .errors import FlowRegistryError, GraphError, ResolutionError
from .graph import render_mermaid
from .ir import FlowDefinition, Step, StepKind
from .question_types import question_type
from .registry import get_registry, load_flow_file
from .session import FlowSession
from .validator import FlowValidator

COMMAND_PREFIX = ":"
QUIT_COMMANDS = {"quit", "exit"}


class PreviewConsole:
    """Terminal I/O for the preview runner."""

    def __init__(self, input_fn: Callable[[str], str] = input) -> None:
        self._input = input_fn

    def print_message(self, text: str) -> None:
        print(text)

    def print_status(self, message: str) -> None:
        print(f"📊 {message}")

    def print_error(self, message: str) -> None:
        print(f"❌ {message}")

    def get_user_input(self, prompt: str = "> ") -> str:
        try:
            return self._input(prompt).strip()
        except (KeyboardInterrupt, EOFError):
            print("\nGoodbye!")
            return f"{COMMAND_PREFIX}quit"


def _select_option(step: Step, token: str) -> str:
    options = step.options or []
    if token.isdigit() and 1 <= int(token) <= len(options):
        return options[int(token) - 1].value
    for option in options:
        if option.value == token:
            return option.value
    msg = f"Unknown option {token!r}"
    raise ValueError(msg)


def parse_answer(step: Step, raw: str) -> Any:
    """Convert terminal input into the value shape the step's kind expects.

    Select options may be given by value or by 1-based position. Empty input
    maps to None so required-ness is reported by the answer validator.
    """
    if raw == "":
        return [] if step.kind is StepKind.MULTI_SELECT else None

    if step.kind is StepKind.NUMBER:
        try:
            return int(raw)
        except ValueError:
            pass
        try:
            return float(raw)
        except ValueError as exc:
            msg = "Please enter a number"
            raise ValueError(msg) from exc

    if step.kind is StepKind.MULTI_SELECT:
        return [_select_option(step, t.strip()) for t in raw.split(",") if t.strip()]

    if question_type(step.kind).requires_options:
        return _select_option(step, raw)

    return raw


def _render_step(console: PreviewConsole, session: FlowSession, step: Step) -> None:
    progress = session.progress
    console.print_message("")
    console.print_status(f"{progress.percentage}% ({progress.current}/{progress.total})")
    console.print_message(f"[{step.kind.value}] {step.question}")
    if step.description:
        console.print_message(f"  {step.description}")
    if step.help_text:
        title = step.help_text.title or "Help"
        console.print_message(f"  ℹ️  {title}: {step.help_text.content}")
    for index, option in enumerate(step.options or [], start=1):
        console.print_message(f"  {index}. {option.label} ({option.value})")
    if session.current_answer is not None:
        console.print_message(f"  Previous answer: {json.dumps(session.current_answer)}")


async def run_preview(flow: FlowDefinition, console: PreviewConsole) -> int:
    """Drive an ephemeral session until an outcome, a stop screen or quit."""
    session = FlowSession(flow)
    console.print_status(f"Flow: {flow.name} v{flow.version}")
    console.print_status(
        f"Commands: {COMMAND_PREFIX}back, {COMMAND_PREFIX}reset, {COMMAND_PREFIX}quit"
    )

    while True:
        if session.is_outcome:
            outcome = session.outcome
            console.print_status(f"🎉 Reached {session.current_step_id}")
            if outcome is not None:
                console.print_message(f"{outcome.kind.value}: {outcome.message or ''}")
            if session.answers:
                console.print_message("\n📋 Final answers:")
                for key, value in session.answers.items():
                    console.print_message(f"  {key}: {json.dumps(value)}")
            return 0

        step = session.current_step
        if step is None:
            console.print_error(f"Step not found: {session.current_step_id}")
            return 1

        _render_step(console, session, step)
        if step.kind is StepKind.STOP:
            console.print_status("Flow stopped")
            return 0

        prompt = "Press Enter to continue " if step.kind is StepKind.INFO else "> "
        raw = console.get_user_input(prompt)

        if raw.startswith(COMMAND_PREFIX):
            command = raw[len(COMMAND_PREFIX):].lower()
            if command in QUIT_COMMANDS:
                console.print_status("Session ended")
                return 0
            if command == "back":
                if not session.can_go_back:
                    console.print_error("Already at the first step")
                session.go_back()
                continue
            if command == "reset":
                session.reset()
                continue
            console.print_error(f"Unknown command {raw!r}")
            continue

        if step.kind is not StepKind.INFO:
            try:
                session.set_current_answer(parse_answer(step, raw))
            except ValueError as e:
                console.print_error(str(e))
                continue

        try:
            result = await session.submit_answer()
        except ResolutionError as e:
            console.print_error(str(e))
            return 1

        if result.kind == "invalid":
            console.print_error(result.error or "Invalid input")
        elif result.kind == "halted":
            console.print_status("No further navigation from this step")
            return 0


def _load_flow(args: argparse.Namespace, console: PreviewConsole) -> FlowDefinition | None:
    if args.file:
        flow = load_flow_file(args.file)
        FlowValidator(strict=args.strict).validate(flow)
        return flow

    registry = get_registry()
    if args.version:
        flow = registry.get_flow_by_version(args.flow_id, args.version)
    else:
        flow = registry.get_flow(args.flow_id)
    if flow is None:
        label = f"{args.flow_id} v{args.version}" if args.version else args.flow_id
        console.print_error(f"Flow not found: {label}")
    return flow


def _check(flow: FlowDefinition, console: PreviewConsole, *, strict: bool) -> int:
    validator = FlowValidator(strict=strict)
    validator.validate(flow)
    for warning in validator.validation_warnings:
        console.print_message(f"⚠️  {warning}")
    console.print_status(
        f"{flow.id} v{flow.version}: OK ({len(validator.validation_warnings)} warnings)"
    )
    return 0


def run_cli(argv: Sequence[str] | None = None, console: PreviewConsole | None = None) -> int:
    parser = argparse.ArgumentParser(description="Preview a questionnaire flow in the terminal")
    parser.add_argument("flow_id", nargs="?", help="Registered flow id")
    parser.add_argument("--version", help="Flow version (default: newest)")
    parser.add_argument("--file", type=Path, help="Load the flow from a JSON definition file")
    parser.add_argument("--graph", action="store_true", help="Print the Mermaid graph and exit")
    parser.add_argument("--check", action="store_true", help="Validate the flow and exit")
    parser.add_argument(
        "--strict", action="store_true", help="Treat structural warnings as errors"
    )
    parser.add_argument("--log-level", default="WARNING", help="Log level (default: WARNING)")

    args = parser.parse_args(argv)
    if not args.flow_id and not args.file:
        parser.error("a flow id or --file is required")

    setup_logging(args.log_level)
    console = console or PreviewConsole()

    try:
        flow = _load_flow(args, console)
        if flow is None:
            return 1
        if args.check:
            return _check(flow, console, strict=args.strict)
        if args.graph:
            console.print_message(render_mermaid(flow))
            return 0
    except (FlowRegistryError, GraphError) as e:
        console.print_error(str(e))
        return 1

    return asyncio.run(run_preview(flow, console))


def main() -> None:
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
