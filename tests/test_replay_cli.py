"""Tests del CLI de replay y exportación de esquemas.

Ejecutar:
    pytest tests/test_replay_cli.py -v
"""

import json

import pytest

from jobs.replay_cli import main, read_batches

T0 = 1_706_688_000_000


@pytest.fixture(autouse=True)
def memory_env(monkeypatch, tmp_path):
    monkeypatch.setenv("TWIN_ENV_FILE", str(tmp_path / "missing.env"))
    monkeypatch.setenv("STATE_BACKEND", "memory")
    monkeypatch.setenv("ALERT_SINK", "memory")


def _write_jsonl(path, records):
    path.write_text("\n".join(json.dumps(r) for r in records) + "\n", encoding="utf-8")
    return path


class TestReadBatches:

    def test_groups_by_id_in_file_order(self, tmp_path):
        path = _write_jsonl(
            tmp_path / "in.jsonl",
            [
                {"id": "a", "message": {"n": 1}},
                {"id": "b", "message": {"n": 2}},
                {"id": "a", "message": {"n": 3}},
            ],
        )

        batches = read_batches(path)

        assert list(batches) == ["a", "b"]
        assert batches["a"] == [{"n": 1}, {"n": 3}]

    def test_blank_lines_skipped(self, tmp_path):
        path = tmp_path / "in.jsonl"
        path.write_text('\n{"id": 1, "message": {}}\n\n', encoding="utf-8")

        assert read_batches(path) == {"1": [{}]}

    def test_bad_line_reports_line_number(self, tmp_path):
        path = tmp_path / "in.jsonl"
        path.write_text('{"id": "a", "message": {}}\nnot json\n', encoding="utf-8")

        with pytest.raises(ValueError, match=":2:"):
            read_batches(path)


class TestReplayCommand:

    def test_gas_replay(self, tmp_path, capsys):
        path = _write_jsonl(
            tmp_path / "gas.jsonl",
            [
                {"id": "23", "message": {"ppmReading": 51, "timestamp": T0}},
                {"id": "24", "message": {"ppmReading": 10, "timestamp": T0}},
                {"id": "23", "message": {"ppmReading": 100, "timestamp": T0 + 16 * 60_000}},
            ],
        )

        code = main(["replay", str(path), "--model", "GasSensor", "--now-ms", "99"])

        assert code == 0
        report = json.loads(capsys.readouterr().out)
        assert report["entities"]["23"]["alerts"] == 1
        assert report["entities"]["23"]["state"]["alarm_sounded"] is True
        assert report["entities"]["24"]["alerts"] == 0
        assert report["failures"] == []

    def test_grid_replay(self, tmp_path, capsys):
        path = _write_jsonl(
            tmp_path / "grid.jsonl",
            [
                {"id": "7", "message": {"type": "init", "node_condition": "normal", "node_type": "controller",
                                      "region": "NW", "latitude": 47.5, "longitude": 122.6}},
                {"id": "7", "message": {"type": "status", "node_condition": "moderate"}},
            ],
        )

        code = main(["replay", str(path), "--model", "GridNode"])

        assert code == 0
        report = json.loads(capsys.readouterr().out)
        assert report["entities"]["7"]["state"]["alert_level"] == 12

    def test_invalid_batch_reported(self, tmp_path, capsys):
        path = _write_jsonl(
            tmp_path / "gas.jsonl",
            [
                {"id": "ok", "message": {"ppmReading": 5, "timestamp": T0}},
                {"id": "bad", "message": {"ppmReading": "lots"}},
            ],
        )

        code = main(["replay", str(path), "--model", "GasSensor"])

        assert code == 1
        report = json.loads(capsys.readouterr().out)
        assert [f["id"] for f in report["failures"]] == ["bad"]
        assert "ok" in report["entities"]

    def test_missing_file(self, tmp_path):
        assert main(["replay", str(tmp_path / "nope.jsonl"), "--model", "GasSensor"]) == 2


class TestSchemaCommand:

    def test_exports_one_file_per_model(self, tmp_path, capsys):
        code = main(["schema", "--out", str(tmp_path / "schemas")])

        assert code == 0
        gas = json.loads((tmp_path / "schemas" / "GasSensor.schema.json").read_text(encoding="utf-8"))
        assert gas["model"] == "GasSensor"
        assert "ppmReading" in gas["message"]["properties"]
        assert "alertMessage" in gas["alert"]["properties"]
        grid = json.loads((tmp_path / "schemas" / "GridNode.schema.json").read_text(encoding="utf-8"))
        assert "alert" not in grid
        assert "GridNode.schema.json" in capsys.readouterr().out
