from __future__ import annotations

import json
from pathlib import Path

import pytest

from quizflow.flow_core import cli
from quizflow.flow_core.cli import PreviewConsole, parse_answer, run_cli
from quizflow.flow_core.ir import FlowDefinition
from quizflow.flow_core.registry import FlowRegistry, default_definitions_dir

WEIGHT_LOSS_V1 = default_definitions_dir() / "weight-loss-onboarding" / "v1.0.0.json"
WEIGHT_LOSS_V12 = default_definitions_dir() / "weight-loss-onboarding" / "v1.2.0.json"


@pytest.fixture(autouse=True)
def log_levels(monkeypatch: pytest.MonkeyPatch) -> list[str | None]:
    """Record requested log levels instead of reconfiguring global logging."""
    calls: list[str | None] = []
    monkeypatch.setattr(cli, "setup_logging", calls.append)
    return calls


def scripted(*inputs: str) -> PreviewConsole:
    """Console that replays ``inputs`` and quits once they run out."""
    remaining = iter(inputs)

    def _input(prompt: str) -> str:
        return next(remaining, ":quit")

    return PreviewConsole(input_fn=_input)


@pytest.mark.unit
def test_parse_number(weight_loss_flow: FlowDefinition) -> None:
    age = weight_loss_flow.step_by_id("age")
    assert age is not None
    assert parse_answer(age, "42") == 42
    assert parse_answer(age, "41.5") == 41.5
    assert parse_answer(age, "") is None
    with pytest.raises(ValueError, match="Please enter a number"):
        parse_answer(age, "forty")


@pytest.mark.unit
def test_parse_single_select_by_value_or_position(weight_loss_flow: FlowDefinition) -> None:
    sex = weight_loss_flow.step_by_id("sex")
    assert sex is not None
    assert parse_answer(sex, "2") == "female"
    assert parse_answer(sex, "male") == "male"
    with pytest.raises(ValueError, match="Unknown option"):
        parse_answer(sex, "3")


@pytest.mark.unit
def test_parse_multi_select(weight_loss_flow: FlowDefinition) -> None:
    conditions = weight_loss_flow.step_by_id("medical-conditions")
    assert conditions is not None
    assert parse_answer(conditions, "1, pancreatitis") == ["diabetes_type1", "pancreatitis"]
    assert parse_answer(conditions, "") == []


@pytest.mark.unit
def test_parse_free_text(weight_loss_flow_v12: FlowDefinition) -> None:
    email = weight_loss_flow_v12.step_by_id("email")
    assert email is not None
    assert parse_answer(email, "me@example.com") == "me@example.com"
    assert parse_answer(email, "") is None


@pytest.mark.unit
def test_console_treats_eof_as_quit() -> None:
    def _eof(prompt: str) -> str:
        raise EOFError

    assert PreviewConsole(input_fn=_eof).get_user_input() == ":quit"


@pytest.mark.unit
def test_flow_id_or_file_is_required() -> None:
    with pytest.raises(SystemExit) as exc_info:
        run_cli([], console=scripted())
    assert exc_info.value.code == 2


@pytest.mark.unit
def test_graph_from_file(capsys: pytest.CaptureFixture[str], log_levels: list[str | None]) -> None:
    assert run_cli(["--file", str(WEIGHT_LOSS_V1), "--graph"], console=scripted()) == 0
    out = capsys.readouterr().out
    assert out.startswith("flowchart TD")
    assert "age -.->|default| sex" in out
    assert log_levels == ["WARNING"]


@pytest.mark.unit
def test_check_from_file(capsys: pytest.CaptureFixture[str]) -> None:
    argv = ["--file", str(WEIGHT_LOSS_V12), "--check", "--log-level", "debug"]
    assert run_cli(argv, console=scripted()) == 0
    assert "weight-loss-onboarding v1.2.0: OK (0 warnings)" in capsys.readouterr().out


def _write_flow_with_orphan(tmp_path: Path) -> Path:
    path = tmp_path / "orphan.json"
    path.write_text(
        json.dumps(
            {
                "id": "orphaned",
                "name": "Orphaned",
                "version": "1.0.0",
                "initial_step": "a",
                "steps": [
                    {"id": "a", "kind": "text", "question": "A?", "next": "outcome:done"},
                    {"id": "b", "kind": "text", "question": "B?", "next": "outcome:done"},
                ],
                "outcomes": {"outcome:done": {"kind": "eligible"}},
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.mark.unit
def test_check_reports_warnings(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = _write_flow_with_orphan(tmp_path)
    assert run_cli(["--file", str(path), "--check"], console=scripted()) == 0
    out = capsys.readouterr().out
    assert "Unreachable steps detected: b" in out
    assert "OK (1 warnings)" in out


@pytest.mark.unit
def test_strict_check_fails_on_warnings(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    path = _write_flow_with_orphan(tmp_path)
    assert run_cli(["--file", str(path), "--check", "--strict"], console=scripted()) == 1
    assert "❌" in capsys.readouterr().out


@pytest.mark.unit
def test_unreadable_file_fails(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert run_cli(["--file", str(tmp_path / "missing.json")], console=scripted()) == 1
    assert "Cannot read flow definition" in capsys.readouterr().out


@pytest.mark.unit
def test_registered_flow_lookup(
    monkeypatch: pytest.MonkeyPatch,
    bundled_registry: FlowRegistry,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setattr(cli, "get_registry", lambda: bundled_registry)

    argv = ["weight-loss-onboarding", "--version", "1.0.0", "--graph"]
    assert run_cli(argv, console=scripted()) == 0
    assert "%% Weight Loss Onboarding v1.0.0" in capsys.readouterr().out

    assert run_cli(["nope"], console=scripted()) == 1
    assert "Flow not found: nope" in capsys.readouterr().out

    assert run_cli(["skin-consult", "--version", "0.0.1"], console=scripted()) == 1
    assert "Flow not found: skin-consult v0.0.1" in capsys.readouterr().out


@pytest.mark.unit
def test_preview_reaches_an_outcome(capsys: pytest.CaptureFixture[str]) -> None:
    console = scripted("", "forty", "17")
    assert run_cli(["--file", str(WEIGHT_LOSS_V1)], console=console) == 0

    out = capsys.readouterr().out
    assert "[info] Welcome to your weight loss journey" in out
    assert "Please enter a number" in out
    assert "Reached outcome:ineligible-age" in out
    assert "age: 17" in out


@pytest.mark.unit
def test_preview_navigation_commands(capsys: pytest.CaptureFixture[str]) -> None:
    console = scripted(":back", "", "30", ":back", ":reset", ":bogus", ":quit")
    assert run_cli(["--file", str(WEIGHT_LOSS_V1)], console=console) == 0

    out = capsys.readouterr().out
    assert "Already at the first step" in out
    assert "Previous answer: 30" in out
    assert "This field is required" not in out
    assert "Unknown command ':bogus'" in out
    assert "Session ended" in out


@pytest.mark.unit
def test_preview_reports_validation_errors(capsys: pytest.CaptureFixture[str]) -> None:
    console = scripted("", "200")
    assert run_cli(["--file", str(WEIGHT_LOSS_V1)], console=console) == 0
    assert "Value must be at most 120" in capsys.readouterr().out


@pytest.mark.unit
def test_preview_stops_on_stop_screen(capsys: pytest.CaptureFixture[str]) -> None:
    console = scripted("", "me@example.com", "16")
    assert run_cli(["--file", str(WEIGHT_LOSS_V12)], console=console) == 0

    out = capsys.readouterr().out
    assert "[stop]" in out
    assert "Flow stopped" in out

