import json
import logging
from pathlib import Path

import pytest

from monitor_report.main import _args_to_params, _build_cli_parser, main


def test_args_to_params_defaults():
    args = _build_cli_parser().parse_args(["--log-path", "monitor.log"])
    load, output = _args_to_params(args)

    assert load.log_path == Path("monitor.log")
    assert load.start_line is None and load.end_line is None
    assert load.from_status_json is False
    assert output.output_dir == Path("output")
    assert output.render_charts and output.write_csv and output.write_json
    assert output.chart_format == "svg"


def test_args_to_params_flags():
    args = _build_cli_parser().parse_args(
        [
            "--log-path",
            "status.json",
            "--from-status-json",
            "--start-line",
            "2",
            "--end-line",
            "5",
            "--chart-format",
            "png",
            "--no-charts",
            "--no-csv",
            "--output-dir",
            "runs",
        ]
    )
    load, output = _args_to_params(args)

    assert load.from_status_json is True
    assert (load.start_line, load.end_line) == (2, 5)
    assert output.chart_format == "png"
    assert output.render_charts is False
    assert output.write_csv is False
    assert output.write_json is True
    assert output.output_dir == Path("runs")


@pytest.mark.parametrize(
    "extra",
    [["--start-line", "0"], ["--end-line", "-1"], ["--start-line", "5", "--end-line", "2"]],
)
def test_args_to_params_rejects_bad_ranges(extra):
    args = _build_cli_parser().parse_args(["--log-path", "x.log", *extra])
    with pytest.raises(ValueError):
        _args_to_params(args)


def test_main_print_defaults(capsys):
    main(["--print-defaults"])
    payload = json.loads(capsys.readouterr().out)

    assert payload["LoadParams"]["log_path"] is None
    assert payload["OutputParams"]["chart_format"] == "svg"


def test_main_missing_file_exits_with_user_error(tmp_path: Path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--log-path", str(tmp_path / "missing.log"), "--output-dir", str(tmp_path)])

    assert excinfo.value.code == 2
    assert "Error:" in capsys.readouterr().err


def test_main_runs_pipeline(tmp_path: Path, capsys):
    log_path = tmp_path / "monitor.txt"
    log_path.write_text("08:00-09:00;Queue1;numero;Throughput;10\n", encoding="utf-8")

    main(
        [
            "--log-path",
            str(log_path),
            "--output-dir",
            str(tmp_path / "out"),
            "--no-charts",
        ]
    )

    assert "[Queue1]" in capsys.readouterr().out
    assert list((tmp_path / "out").glob("*/report-*.json"))


def test_main_debug_flag_lowers_root_logger_level(tmp_path: Path):
    log_path = tmp_path / "monitor.txt"
    log_path.write_text("08:00-09:00;Queue1;numero;Throughput;10\n", encoding="utf-8")
    root = logging.getLogger()
    previous = root.level
    try:
        main(
            [
                "--log-path",
                str(log_path),
                "--output-dir",
                str(tmp_path / "out"),
                "--no-charts",
                "--debug",
            ]
        )
        assert root.level == logging.DEBUG
        assert logging.getLogger("monitor_report.log_processor").isEnabledFor(
            logging.DEBUG
        )
    finally:
        root.setLevel(previous)
