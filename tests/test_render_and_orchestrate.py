import json
from pathlib import Path

import pytest

from monitor_report.main import (
    LoadParams,
    OutputParams,
    _orchestrate,
    load_raw_log,
    parse_and_organize,
    render_charts,
    write_table_csvs,
)
from monitor_report.log_processor import StatusPayloadError

RAW = "\n".join(
    [
        "08:00-09:00;Queue 1;numero;Throughput;10",
        "09:00-10:00;Queue 1;numero;Throughput;20",
        "08:00-09:00;Queue 1;numero;Errors/h;1",
        "08:00-09:00;Queue 1;tabla;Backlog;1;TeamA;5",
        "09:00-10:00;Queue 1;tabla;Backlog;1;TeamB;3",
    ]
)


def test_render_charts_writes_one_file_per_series(tmp_path: Path):
    report = parse_and_organize(RAW)
    paths = render_charts(report, "abcd1234", output_dir=tmp_path, chart_format="png")

    assert [Path(p).name for p in paths] == [
        "chart-abcd1234-Queue_1-Throughput.png",
        "chart-abcd1234-Queue_1-Errors_h.png",
    ]
    for p in paths:
        assert Path(p).exists()
        assert Path(p).stat().st_size > 0


def test_render_charts_rejects_unknown_format(tmp_path: Path):
    with pytest.raises(ValueError):
        render_charts(parse_and_organize(RAW), "h", output_dir=tmp_path, chart_format="gif")


def test_write_table_csvs(tmp_path: Path):
    paths = write_table_csvs(parse_and_organize(RAW), "h", tmp_path)
    names = [Path(p).name for p in paths]

    assert names == ["standard-h-Queue_1.csv", "pivot-h-Queue_1-Backlog.csv"]
    pivot_csv = (tmp_path / "pivot-h-Queue_1-Backlog.csv").read_text(encoding="utf-8")
    assert pivot_csv.splitlines()[0] == "Column 1,Total,08:00-09:00,09:00-10:00"
    assert pivot_csv.splitlines()[1] == "TeamA,5,5,0"


def test_orchestrate_writes_all_artifacts(tmp_path: Path, capsys):
    log_path = tmp_path / "monitor.log"
    log_path.write_text(RAW, encoding="utf-8")

    run_dir = _orchestrate(
        LoadParams(log_path=log_path),
        OutputParams(output_dir=tmp_path / "out", chart_format="svg"),
    )

    assert run_dir.parent == tmp_path / "out"
    manifests = list(run_dir.glob("manifest-*.json"))
    assert len(manifests) == 1
    manifest = json.loads(manifests[0].read_text(encoding="utf-8"))

    assert manifest["decoded_records"] == 5
    assert manifest["item_count"] == 1
    artifacts = [Path(p).name for p in manifest["artifacts"]]
    assert any(a.startswith("report-") and a.endswith(".json") for a in artifacts)
    assert any(a.startswith("report-") and a.endswith(".txt") for a in artifacts)
    assert sum(a.endswith(".svg") for a in artifacts) == 2
    assert sum(a.endswith(".csv") for a in artifacts) == 2
    for p in manifest["artifacts"]:
        assert Path(p).exists()

    assert "[Queue 1]" in capsys.readouterr().out


def test_orchestrate_respects_disabled_outputs(tmp_path: Path):
    log_path = tmp_path / "monitor.log"
    log_path.write_text(RAW, encoding="utf-8")

    run_dir = _orchestrate(
        LoadParams(log_path=log_path),
        OutputParams(
            output_dir=tmp_path / "out",
            render_charts=False,
            write_csv=False,
            write_json=False,
        ),
    )
    assert not list(run_dir.glob("*.svg"))
    assert not list(run_dir.glob("*.csv"))
    assert not list(run_dir.glob("report-*.json"))
    assert list(run_dir.glob("report-*.txt"))


def test_load_raw_log_from_status_json(tmp_path: Path):
    status = tmp_path / "status.json"
    status.write_text(
        json.dumps({"status": "completed", "message": None, "results": {"resumen": RAW}}),
        encoding="utf-8",
    )
    text = load_raw_log(LoadParams(log_path=status, from_status_json=True, end_line=2))
    assert text.splitlines() == RAW.splitlines()[:2]


def test_load_raw_log_from_running_status_raises(tmp_path: Path):
    status = tmp_path / "status.json"
    status.write_text(json.dumps({"status": "running", "message": "..."}), encoding="utf-8")

    with pytest.raises(StatusPayloadError):
        load_raw_log(LoadParams(log_path=status, from_status_json=True))


def test_load_raw_log_requires_path():
    with pytest.raises(ValueError):
        load_raw_log(LoadParams(log_path=None))


COLLIDING = "\n".join(
    [
        "08:00-09:00;Queue 1;numero;Throughput;10",
        "08:00-09:00;Queue_1;numero;Throughput;20",
        "08:00-09:00;a-b;tabla;c;1;k;1",
        "08:00-09:00;a;tabla;b-c;1;k;2",
        "08:00-09:00;a-b;numero;c;3",
        "08:00-09:00;a;numero;b-c;4",
    ]
)


def test_render_charts_keeps_colliding_names_apart(tmp_path: Path):
    paths = render_charts(
        parse_and_organize(COLLIDING), "h", output_dir=tmp_path, chart_format="png"
    )

    assert [Path(p).name for p in paths] == [
        "chart-h-Queue_1-Throughput.png",
        "chart-h-Queue_1-Throughput-2.png",
        "chart-h-a-b-c.png",
        "chart-h-a-b-c-2.png",
    ]
    assert all(Path(p).exists() for p in paths)


def test_write_table_csvs_keeps_colliding_names_apart(tmp_path: Path):
    paths = write_table_csvs(parse_and_organize(COLLIDING), "h", tmp_path)
    names = [Path(p).name for p in paths]

    assert names == [
        "standard-h-a-b.csv",
        "pivot-h-a-b-c.csv",
        "standard-h-a.csv",
        "pivot-h-a-b-c-2.csv",
    ]
    first = (tmp_path / "pivot-h-a-b-c.csv").read_text(encoding="utf-8")
    second = (tmp_path / "pivot-h-a-b-c-2.csv").read_text(encoding="utf-8")
    assert first.splitlines()[1] == "k,1,1"
    assert second.splitlines()[1] == "k,2,2"
