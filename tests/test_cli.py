import io
import json
from unittest.mock import patch

import pytest
from rich.console import Console

from appsports import cli
from appsports.core.schemas import PortRecord, TerminationOutcome, TerminationState


@pytest.fixture
def config_path(tmp_path):
    return str(tmp_path / "missing.yaml")


def test_ask_accepts_only_yes(monkeypatch):
    answers = iter(["y", " YES ", "n", "", "yep"])
    monkeypatch.setattr("builtins.input", lambda *args: next(answers))

    assert [cli.ask("? ") for _ in range(5)] == [True, True, False, False, False]


def test_ask_eof_is_no(monkeypatch):
    def closed(*args):
        raise EOFError

    monkeypatch.setattr("builtins.input", closed)
    assert cli.ask("? ") is False


def test_invalid_port_is_rejected(config_path):
    with pytest.raises(SystemExit) as exc:
        cli.main(["-p", "70000", "--config", config_path])
    assert exc.value.code == 2


def test_container_flag_requires_kill(config_path):
    with pytest.raises(SystemExit):
        cli.main(["-p", "8080", "--kill-docker-container", "--config", config_path])


def test_port_query_json(config_path, node_record, capsys):
    with patch('appsports.cli.PortResolver') as MockResolver:
        MockResolver.return_value.find_by_port.return_value = [node_record]
        code = cli.main(["-p", "3000", "--json", "--config", config_path])

    assert code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload[0]["port"] == 3000
    assert payload[0]["pid"] == 12264
    assert payload[0]["container"] is None
    assert payload[0]["access_level"] == "Full"


def test_kill_with_nothing_listening(config_path, capsys):
    with patch('appsports.cli.PortResolver') as MockResolver, \
         patch('appsports.cli.TerminationOrchestrator') as MockOrchestrator:
        MockResolver.return_value.find_by_port.return_value = []
        code = cli.main(["-k", "9999", "--config", config_path])

    assert code == 0
    MockOrchestrator.assert_not_called()
    assert "No process found using port 9999" in capsys.readouterr().out


def test_failed_kill_exit_status(config_path, node_record):
    failed = TerminationOutcome(port=3000, pid=12264, process_name="node",
                                state=TerminationState.FAILED, message="✗ Failed to kill process")

    with patch('appsports.cli.PortResolver') as MockResolver, \
         patch('appsports.cli.TerminationOrchestrator') as MockOrchestrator:
        MockResolver.return_value.find_by_port.return_value = [node_record]
        MockOrchestrator.return_value.terminate_all.return_value = [failed]
        code = cli.main(["-k", "3000", "--config", config_path])

    assert code == 1
    MockOrchestrator.return_value.terminate_all.assert_called_once_with([node_record], False)


def test_list_all_table(config_path, capsys):
    record = PortRecord(port=22, pid=1234, process_name="sshd", command="/usr/sbin/sshd -D")
    with patch('appsports.cli.PortResolver') as MockResolver:
        MockResolver.return_value.list_all.return_value = [record]
        code = cli.main(["-l", "--config", config_path])

    assert code == 0
    assert "sshd" in capsys.readouterr().out


def test_kill_json_keeps_stdout_parseable(config_path, node_record, monkeypatch, capsys):
    """Prompts go to stderr; stdout carries nothing but the outcome array."""
    monkeypatch.setattr("builtins.input", lambda *args: "n")

    with patch('appsports.cli.PortResolver') as MockResolver, \
         patch('psutil.Process') as MockProcess:
        MockResolver.return_value.find_by_port.return_value = [node_record]
        code = cli.main(["-k", "3000", "--json", "--config", config_path])

    captured = capsys.readouterr()
    payload = json.loads(captured.out)
    assert code == 0
    MockProcess.assert_not_called()
    assert [o["state"] for o in payload] == ["Aborted"]
    assert "Kill process node (PID: 12264) on port 3000? [y/N]" in captured.err


def test_kill_json_with_nothing_listening(config_path, capsys):
    with patch('appsports.cli.PortResolver') as MockResolver:
        MockResolver.return_value.find_by_port.return_value = []
        code = cli.main(["-k", "9999", "--json", "--config", config_path])

    assert code == 0
    assert json.loads(capsys.readouterr().out) == []


def test_render_outcomes_colours_by_state():
    console = Console(file=io.StringIO(), force_terminal=True, color_system="standard")
    outcomes = [
        TerminationOutcome(port=80, state=TerminationState.CONTAINER_REMOVED, message="✓ Removed container"),
        TerminationOutcome(port=81, state=TerminationState.FAILED, error="ElevationFailed", message="✗ Failed"),
    ]

    cli.render_outcomes(console, outcomes)

    lines = console.file.getvalue().splitlines()
    assert lines[0].startswith("\x1b[32m")
    assert lines[1].startswith("\x1b[31m")
