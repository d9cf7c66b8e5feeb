import json
from pathlib import Path

from navigation.guidance.main import main


def test_simulated_drive_completes(tmp_path: Path, capsys) -> None:
    code = main(["--log-dir", str(tmp_path), "--every", "10"])

    out = capsys.readouterr().out
    assert code == 0
    assert "Completed: True" in out
    assert (tmp_path / "active_route.json").exists()
    events = [
        json.loads(line)["event"]
        for line in (tmp_path / "nav_session.jsonl").read_text(encoding="utf-8").splitlines()
    ]
    assert events.count("trip_completed") == 1
    assert events.count("destination_reached") == 2


def test_simulated_detour_reroutes(tmp_path: Path, capsys) -> None:
    code = main(["--log-dir", str(tmp_path), "--detour-at", "300", "--every", "10"])

    out = capsys.readouterr().out
    assert code == 0
    assert "Rerouted" in out


def test_invalid_scenario_file(tmp_path: Path, capsys) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("stops: 3\n", encoding="utf-8")

    assert main(["--config", str(path)]) == 2
