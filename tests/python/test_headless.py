import csv
import json

from convergent.app.headless import _TELEMETRY_HEADER, main, run_headless
from convergent.sim.core.config import load_config


def _read_csv(path):
    with path.open(newline="") as handle:
        return list(csv.reader(handle))


def _config(**overrides):
    raw = {"seed": 5, "agentCount": 3, "maxTurns": 3, "turnDelayMs": 0}
    raw.update(overrides)
    return load_config(raw)


def test_headless_telemetry_csv(tmp_path):
    csv_path = tmp_path / "telemetry.csv"
    run_headless(_config(), telemetry_path=csv_path)
    rows = _read_csv(csv_path)
    assert rows[0] == _TELEMETRY_HEADER
    assert len(rows) == 4
    assert [row[0] for row in rows[1:]] == ["1", "2", "3"]
    for row in rows[1:]:
        assert int(row[1]) >= 2
        assert row[-1] == ""


def test_headless_events_and_summary(tmp_path):
    events_path = tmp_path / "events.jsonl"
    summary_path = tmp_path / "summary.json"
    summary = run_headless(_config(), events_path=events_path, summary_path=summary_path)

    events = [json.loads(line) for line in events_path.read_text().splitlines()]
    assert events[0]["type"] == "start"
    assert events[-1] == {"type": "completed", "turns": 3, "reason": "max_turns"}
    messages = [e for e in events if e["type"] == "agent_message"]
    assert summary["messages"] == len(messages)

    payload = json.loads(summary_path.read_text())
    assert payload["seed"] == 5
    assert payload["turns"] == 3
    assert payload["outcome"] == "max_turns"
    assert payload["state"] == "Completed"
    assert payload["provider"] == "scripted"
    assert payload["error"] is None


def test_headless_runs_are_deterministic(tmp_path):
    first = tmp_path / "a.jsonl"
    second = tmp_path / "b.jsonl"
    run_headless(_config(joinProb=0.5, leaveProb=0.3), events_path=first)
    run_headless(_config(joinProb=0.5, leaveProb=0.3), events_path=second)
    assert first.read_text() == second.read_text()


def test_headless_main_with_yaml_and_preset(tmp_path, capsys):
    config_path = tmp_path / "run.yaml"
    config_path.write_text("seed: 11\nmaxTurns: 2\nflock:\n  talk_radius: 0.5\n")
    summary_path = tmp_path / "summary.json"
    exit_code = main(
        [
            "--config",
            str(config_path),
            "--preset",
            "calm_seminar",
            "--agents",
            "3",
            "--no-delay",
            "--similarity",
            "--summary",
            str(summary_path),
            "--log-level",
            "WARNING",
        ]
    )
    assert exit_code == 0
    payload = json.loads(summary_path.read_text())
    assert payload["seed"] == 11
    assert payload["turns"] == 2
    printed = json.loads(capsys.readouterr().out)
    assert printed["outcome"] == "max_turns"
