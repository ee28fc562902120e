# tests/unit/test_cli.py
import json
import sys

import pytest
from loguru import logger
from typer.testing import CliRunner

from apps.recorder_cli import app

runner = CliRunner()

FAKE = [
    "--engine", "plugins.engines.fake.impl:FakeRecorderEngine",
    "--token-builder", "plugins.tokens.static.impl:StaticTokenBuilder",
]


@pytest.fixture(autouse=True)
def _creds(monkeypatch):
    monkeypatch.setenv("CHANREC_APP_ID", "A")
    monkeypatch.setenv("CHANREC_CERTIFICATE", "C")
    monkeypatch.setenv("CHANREC_STATIC_TOKEN", "tok")
    yield
    # record() points loguru at the runner's captured stderr
    logger.remove()
    logger.add(sys.stderr)


def _record_dirs(root):
    return [p for p in root.glob("*/*") if p.is_dir()]


def test_record_with_fake_engine(tmp_path):
    result = runner.invoke(app, ["record", "-c", "room1", "-o", str(tmp_path), "--duration", "0.1", *FAKE])

    assert result.exit_code == 0, result.output
    assert "[chanrec] JoinChannel ('room1', 'agora-recorder')" in result.output
    assert "Recording channel 'room1'" in result.output

    (record_dir,) = _record_dirs(tmp_path)
    assert record_dir.name.endswith(" room1")
    assert json.loads((record_dir / "cfg.json").read_text(encoding="utf-8")) == {"Recording_Dir": str(record_dir)}
    kinds = [json.loads(line)["kind"] for line in (record_dir / "events.jsonl").read_text(encoding="utf-8").splitlines()]
    assert kinds[0] == "JoinChannel"
    assert kinds[-1] == "LeaveChannel"


def test_record_without_journal(tmp_path):
    result = runner.invoke(
        app, ["record", "-c", "room1", "-o", str(tmp_path), "--duration", "0.1", "--no-journal", *FAKE]
    )
    assert result.exit_code == 0, result.output
    (record_dir,) = _record_dirs(tmp_path)
    assert not (record_dir / "events.jsonl").exists()


def test_invalid_config_exits_2(tmp_path):
    result = runner.invoke(app, ["record", "-c", " ", "-o", str(tmp_path), *FAKE])
    assert result.exit_code == 2
    assert _record_dirs(tmp_path) == []


def test_unknown_engine_plugin_exits_2(tmp_path):
    result = runner.invoke(
        app, ["record", "-c", "room1", "-o", str(tmp_path), "--engine", "nowhere.mod:Engine",
              "--token-builder", "plugins.tokens.static.impl:StaticTokenBuilder"]
    )
    assert result.exit_code == 2
    assert _record_dirs(tmp_path) == []


def test_unknown_engine_log_level(tmp_path):
    result = runner.invoke(app, ["record", "-c", "room1", "-o", str(tmp_path), "--engine-log-level", "loud", *FAKE])
    assert result.exit_code != 0
    assert _record_dirs(tmp_path) == []


def test_paths_prints_without_creating(tmp_path):
    result = runner.invoke(app, ["paths", "-c", "room1", "-o", str(tmp_path)])
    assert result.exit_code == 0
    printed = result.output.strip()
    assert printed.startswith(str(tmp_path))
    assert printed.endswith(" room1")
    assert list(tmp_path.iterdir()) == []


def test_engine_refusing_join_exits_1(tmp_path, monkeypatch):
    from plugins.engines.fake.impl import FakeRecorderEngine

    def refuse(self, *args):
        raise RuntimeError("native join failed")

    monkeypatch.setattr(FakeRecorderEngine, "join_channel", refuse)
    result = runner.invoke(app, ["record", "-c", "room1", "-o", str(tmp_path), "--no-journal", *FAKE])
    assert result.exit_code == 1
    assert "native join failed" in result.output
    assert not isinstance(result.exception, RuntimeError)
