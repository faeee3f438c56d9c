#!/usr/bin/env python3
"""
Monitoring Report builder - organized into pure functional units.

This module exposes the report pipeline:
- decode_records()       raw log text -> typed records
- collect_graphs()       numeric records -> chronologically ordered series
- collect_tables()       table records -> raw rows per item/table
- pivot_table()          raw rows -> cross-tabulated table
- parse_and_organize()   raw log text -> Report (item -> graphs/tables/pivots)

The pipeline takes explicit inputs and returns explicit outputs, avoiding prints and
global state mutation. Malformed log lines are dropped silently; the pipeline never
raises for bad input. Rendering (charts, CSV, JSON) and the CLI sit on top of it.
"""

import logging
import math
import os
import re
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Tuple, Union

# Select a non-interactive Matplotlib backend before importing pyplot so rendering
# works in headless environments.
import matplotlib

matplotlib.use("Agg", force=True)
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

# Support both package and script execution modes
try:
    # When run as a package: python -m monitor_report.main
    from .log_processor import (
        LogProcessingError,
        RawLogReader,
        ReportLoadError,
        StatusPayloadError,
        extract_resumen,
        read_status_file,
        slice_lines,
    )
    from .utils import (
        build_effective_parameters,
        canonical_json_hash,
        ensure_run_dir,
        normalize_abs_posix,
        read_json_document,
        safe_filename,
        unique_filename,
        utc_timestamp_seconds,
        write_json_document,
    )
except ImportError:
    # When run directly: python monitor_report/main.py
    from log_processor import (
        LogProcessingError,
        RawLogReader,
        ReportLoadError,
        StatusPayloadError,
        extract_resumen,
        read_status_file,
        slice_lines,
    )
    from utils import (
        build_effective_parameters,
        canonical_json_hash,
        ensure_run_dir,
        normalize_abs_posix,
        read_json_document,
        safe_filename,
        unique_filename,
        utc_timestamp_seconds,
        write_json_document,
    )

# Configure logging for debugging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

FIELD_SEPARATOR: str = ";"
NUMERIC_MARKER: str = "numero"
TABLE_MARKER: str = "tabla"
MIN_FIELDS: int = 5
NUMERIC_FIELDS: int = 5
MIN_TABLE_FIELDS: int = 6

# Hours before this one belong to the tail of the previous monitoring day.
DAY_START_HOUR: int = 6

TOTAL_HEADER: str = "Total"
CHART_FORMATS: Tuple[str, ...] = ("svg", "png")


class RecordKind(Enum):
    """Discriminates the two record shapes of the monitoring log."""

    NUMERIC = NUMERIC_MARKER
    TABLE = TABLE_MARKER


# -------------------------
# Number parsing / rendering
# -------------------------
# ASCII digits only; other Unicode digits are not numbers in the log format.
_FLOAT_PREFIX = re.compile(
    r"[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)", re.ASCII
)
_INT_PREFIX = re.compile(r"[+-]?\d+", re.ASCII)


def parse_float_prefix(text: str) -> Optional[float]:
    """
    Lenient float parse of the leading numeric prefix of text.

    "10" -> 10.0, " 2.5kg" -> 2.5, "Infinity" -> inf, "abc" / "NaN" / "" -> None.
    """
    match = _FLOAT_PREFIX.match(text.lstrip())
    if match is None:
        return None
    token = match.group(0)
    if token.endswith("Infinity"):
        return -math.inf if token.startswith("-") else math.inf
    return float(token)


def parse_int_prefix(text: str) -> Optional[int]:
    """Lenient integer parse of the leading digits of text ("2x" -> 2, "x2" -> None)."""
    match = _INT_PREFIX.match(text.lstrip())
    return int(match.group(0)) if match else None


def format_number(value: float) -> str:
    """
    Render a number for a table cell: integral values without a fractional part
    ("8", not "8.0"), others in their shortest round-trip form.
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    magnitude = abs(value)
    if value.is_integer() and magnitude < 1e21:
        return str(int(value))
    if 1e-6 <= magnitude < 1e21:
        return np.format_float_positional(value, unique=True, trim="-")
    # repr() is in exponent form outside [1e-4, 1e16)
    mantissa, exponent = repr(value).split("e")
    return f"{mantissa}e{int(exponent):+d}"


# -------------------------
# Time ordering
# -------------------------
def sortable_hour(time_range: str) -> int:
    """
    Sort rank for an "HH:MM-HH:MM" label.

    The monitoring day starts at 06:00, so hours 0-5 rank after 23 (hour + 24).
    Empty labels, and labels without a leading hour, rank 0.
    """
    if not time_range:
        return 0
    hour = parse_int_prefix(time_range.split(":", 1)[0])
    if hour is None:
        return 0
    return hour + 24 if hour < DAY_START_HOUR else hour


# -------------------------
# Records
# -------------------------
@dataclass(frozen=True)
class RawRecord:
    time_range: str
    item_name: str

    kind: ClassVar[RecordKind]


@dataclass(frozen=True)
class NumericRecord(RawRecord):
    series_name: str
    value: float

    kind: ClassVar[RecordKind] = RecordKind.NUMERIC


@dataclass(frozen=True)
class TableRecord(RawRecord):
    table_name: str
    # 1-based index of the pivot grouping column
    key_index: int
    # Last column is always the value column
    columns: Tuple[str, ...]

    kind: ClassVar[RecordKind] = RecordKind.TABLE


# -------------------------
# Report entities
# -------------------------
@dataclass(frozen=True)
class Graph:
    labels: Tuple[str, ...] = ()
    values: Tuple[float, ...] = ()


@dataclass(frozen=True)
class TableRow:
    time_range: str
    columns: Tuple[str, ...]


@dataclass(frozen=True)
class StandardTable:
    rows: Tuple[TableRow, ...] = ()


@dataclass(frozen=True)
class PivotTable:
    headers: Tuple[str, ...]
    rows: Tuple[Tuple[str, ...], ...]


@dataclass(frozen=True)
class ItemData:
    graphs: Dict[str, Graph] = field(default_factory=dict)
    standard_tables: Dict[str, StandardTable] = field(default_factory=dict)
    pivot_tables: Dict[str, PivotTable] = field(default_factory=dict)


# Item name -> ItemData, in first-seen item order
Report = Dict[str, ItemData]


class DecodeResult:
    """Container for report build diagnostics."""

    def __init__(self, label: Optional[str] = None) -> None:
        self.label: Optional[str] = label

        # Line counters
        self.total_lines: int = 0
        self.blank_lines: int = 0
        self.decoded_records: int = 0

        # Diagnostics
        self.items: int = 0
        self.skipped_tables: list[tuple[str, str, str]] = []
        self.events: list[str] = []

        # Timing
        self.started_at: Optional[float] = None
        self.finished_at: Optional[float] = None
        self.elapsed_ms: Optional[float] = None

    def start(self) -> None:
        import time

        self.started_at = time.perf_counter()

    def stop(self) -> None:
        import time

        self.finished_at = time.perf_counter()
        if self.started_at is not None:
            self.elapsed_ms = (self.finished_at - self.started_at) * 1000.0

    def add_event(self, message: str) -> None:
        """Add a debug-level event message."""
        self.events.append(message)
        logger.debug(message)

    def log_skipped_table(self, item_name: str, table_name: str, reason: str) -> None:
        """Record a table that produced no pivot."""
        self.skipped_tables.append((item_name, table_name, reason))
        logger.debug(f"Pivot skipped for {item_name}/{table_name}: {reason}")

    def summarize(self) -> str:
        """Produce a concise summary string for diagnostics."""
        lbl = f"{self.label} " if self.label else ""
        parts = [f"{lbl}result: {self.total_lines} lines → {self.decoded_records} records"]
        if self.blank_lines:
            parts.append(f"blank_lines={self.blank_lines}")
        parts.append(f"items={self.items}")
        if self.skipped_tables:
            parts.append(f"skipped_tables={len(self.skipped_tables)}")
        if self.elapsed_ms is not None:
            parts.append(f"elapsed_ms={self.elapsed_ms:.1f}")
        return " | ".join(parts)


# -------------------------
# Record decoding
# -------------------------
def decode_line(line: str) -> Optional[RawRecord]:
    """Decode one log line; None when the line matches neither record shape."""
    parts = line.split(FIELD_SEPARATOR)
    if len(parts) < MIN_FIELDS:
        return None

    time_range, item_name, data_type = parts[0], parts[1], parts[2]

    if data_type == NUMERIC_MARKER and len(parts) == NUMERIC_FIELDS:
        value = parse_float_prefix(parts[4])
        if value is None:
            return None
        return NumericRecord(time_range, item_name, parts[3], value)

    if data_type == TABLE_MARKER and len(parts) >= MIN_TABLE_FIELDS:
        key_index = parse_int_prefix(parts[4])
        if key_index is None or key_index < 1:
            return None
        return TableRecord(time_range, item_name, parts[3], key_index, tuple(parts[5:]))

    return None


def decode_records(
    raw_text: str, result: Optional[DecodeResult] = None
) -> List[RawRecord]:
    """
    Split raw log text into typed records, silently discarding malformed lines.
    """
    records: List[RawRecord] = []
    for line in raw_text.split("\n"):
        line = line.rstrip("\r")
        if result is not None:
            result.total_lines += 1
        if not line.strip():
            if result is not None:
                result.blank_lines += 1
            continue
        record = decode_line(line)
        if record is not None:
            records.append(record)

    if result is not None:
        result.decoded_records = len(records)
    return records


# -------------------------
# Graph aggregation
# -------------------------
@dataclass
class _SeriesAccumulator:
    points: List[Tuple[str, float]] = field(default_factory=list)

    def add(self, time_range: str, value: float) -> None:
        self.points.append((time_range, value))

    def to_graph(self) -> Graph:
        ordered = sorted(self.points, key=lambda point: sortable_hour(point[0]))
        return Graph(
            labels=tuple(label for label, _ in ordered),
            values=tuple(value for _, value in ordered),
        )


def collect_graphs(records: Sequence[RawRecord]) -> Dict[str, Dict[str, Graph]]:
    """
    Build item -> series -> Graph from the numeric records.

    Points are stable-sorted by sortable_hour(); repeated time ranges are kept as
    separate points.
    """
    accumulators: Dict[str, Dict[str, _SeriesAccumulator]] = {}
    for record in records:
        if record.kind is not RecordKind.NUMERIC:
            continue
        series = accumulators.setdefault(record.item_name, {})
        series.setdefault(record.series_name, _SeriesAccumulator()).add(
            record.time_range, record.value
        )

    return {
        item_name: {name: acc.to_graph() for name, acc in series.items()}
        for item_name, series in accumulators.items()
    }


# -------------------------
# Table collection
# -------------------------
@dataclass
class CollectedTable:
    # Key index declared by the first record seen for the table
    key_index: int
    rows: List[TableRow] = field(default_factory=list)


def collect_tables(
    records: Sequence[RawRecord],
) -> Dict[str, Dict[str, CollectedTable]]:
    """
    Build item -> table -> CollectedTable from the table records, keeping rows in
    encounter order.
    """
    collected: Dict[str, Dict[str, CollectedTable]] = {}
    for record in records:
        if record.kind is not RecordKind.TABLE:
            continue
        tables = collected.setdefault(record.item_name, {})
        if record.table_name not in tables:
            tables[record.table_name] = CollectedTable(key_index=record.key_index)
        tables[record.table_name].rows.append(
            TableRow(record.time_range, record.columns)
        )
    return collected


# -------------------------
# Pivot
# -------------------------
@dataclass
class _PivotAccumulator:
    # Non-key, non-value columns from the first row seen for the key
    other_key_columns: Tuple[str, ...]
    total: float = 0.0
    per_range: Dict[str, float] = field(default_factory=dict)


def _cell(columns: Sequence[str], index: int) -> str:
    return columns[index] if index < len(columns) else ""


def _key_cell(columns: Sequence[str], index: int) -> Optional[str]:
    # None marks a missing key cell; it groups apart from a real "" cell
    return columns[index] if index < len(columns) else None


def pivot_table(rows: Sequence[TableRow], key_index: int) -> Optional[PivotTable]:
    """
    Cross-tabulate table rows: one output row per distinct key-column value, one
    column per time range plus a total.

    The value column is the last column of the first row. Returns None when the
    key column is not strictly before the value column.

    Rules:
      - The value cell is parsed leniently; unparsable values count as 0.
      - Values for the same key and time range are summed.
      - Passthrough columns come from the first row seen for each key.
      - Time range columns are ordered by sortable_hour(); a key with no rows in a
        time range shows 0 there.
    """
    if not rows:
        return None

    grouping_index = key_index - 1
    value_index = len(rows[0].columns) - 1
    if grouping_index >= value_index or grouping_index < 0:
        return None

    aggregated: Dict[Optional[str], _PivotAccumulator] = {}
    seen_ranges: Dict[str, None] = {}

    for row in rows:
        seen_ranges.setdefault(row.time_range, None)
        key = _key_cell(row.columns, grouping_index)
        value = parse_float_prefix(_cell(row.columns, value_index)) or 0.0

        entry = aggregated.get(key)
        if entry is None:
            entry = aggregated[key] = _PivotAccumulator(
                other_key_columns=tuple(
                    col
                    for idx, col in enumerate(row.columns)
                    if idx != grouping_index and idx != value_index
                )
            )
        entry.total += value
        entry.per_range[row.time_range] = entry.per_range.get(row.time_range, 0.0) + value

    time_ranges = sorted(seen_ranges, key=sortable_hour)

    headers = tuple(
        [f"Column {i + 1}" for i in range(value_index)]
        + [TOTAL_HEADER]
        + time_ranges
    )

    pivot_rows: List[Tuple[str, ...]] = []
    for key, entry in aggregated.items():
        text_columns: List[str] = []
        other = iter(entry.other_key_columns)
        for i in range(value_index):
            if i == grouping_index:
                text_columns.append("" if key is None else key)
            else:
                text_columns.append(next(other, ""))

        pivot_rows.append(
            tuple(
                text_columns
                + [format_number(entry.total)]
                + [format_number(entry.per_range.get(tr, 0.0)) for tr in time_ranges]
            )
        )

    return PivotTable(headers=headers, rows=tuple(pivot_rows))


# -------------------------
# Report assembly
# -------------------------
def build_report(raw_text: str) -> Tuple[Report, DecodeResult]:
    """
    Parse raw log text into a Report and return it with its build diagnostics.
    """
    result = DecodeResult(label="build_report")
    result.start()

    records = decode_records(raw_text, result)
    graphs = collect_graphs(records)
    tables = collect_tables(records)

    report: Report = {}
    for item_name in dict.fromkeys(record.item_name for record in records):
        collected = tables.get(item_name, {})

        pivots: Dict[str, PivotTable] = {}
        for table_name, table in collected.items():
            pivot = pivot_table(table.rows, table.key_index)
            if pivot is None:
                result.log_skipped_table(
                    item_name,
                    table_name,
                    f"key column {table.key_index} is not before the value column",
                )
                continue
            pivots[table_name] = pivot

        report[item_name] = ItemData(
            graphs=graphs.get(item_name, {}),
            standard_tables={
                name: StandardTable(rows=tuple(table.rows))
                for name, table in collected.items()
            },
            pivot_tables=pivots,
        )

    result.items = len(report)
    result.stop()
    return report, result


def parse_and_organize(raw_text: str, verbose: bool = False) -> Report:
    """
    Raw log text -> Report mapping item name to its graphs, standard tables and
    pivot tables. Every item named by a decoded record gets an entry.
    """
    report, result = build_report(raw_text)
    if verbose:
        logger.info(result.summarize())
    return report


# -------------------------
# Tabular views
# -------------------------
def cumulative_values(graph: Graph) -> List[float]:
    """Running total of the graph values, in label order."""
    return np.cumsum(np.asarray(graph.values, dtype=float)).tolist()


def graph_frame(graph: Graph) -> pd.DataFrame:
    """Graph as a frame with time_range, value and cumulative columns."""
    return pd.DataFrame(
        {
            "time_range": list(graph.labels),
            "value": np.asarray(graph.values, dtype=float),
            "cumulative": cumulative_values(graph),
        }
    )


def pivot_frame(pivot: PivotTable) -> pd.DataFrame:
    """Pivot table as a frame of string cells, one column per header."""
    return pd.DataFrame([list(row) for row in pivot.rows], columns=list(pivot.headers))


def standard_tables_frame(item: ItemData) -> pd.DataFrame:
    """
    Flatten every standard table of an item into one frame:
    Table, Time Range, Column 1..N, where N is the widest row. Short rows are
    padded with "".
    """
    flat = [
        (table_name, row)
        for table_name, table in item.standard_tables.items()
        for row in table.rows
    ]
    width = max((len(row.columns) for _, row in flat), default=0)
    headers = ["Table", "Time Range"] + [f"Column {i + 1}" for i in range(width)]
    data = [
        [table_name, row.time_range]
        + list(row.columns)
        + [""] * (width - len(row.columns))
        for table_name, row in flat
    ]
    return pd.DataFrame(data, columns=headers)


# -------------------------
# Report (de)serialization
# -------------------------
def _json_number(value: float) -> Union[int, float, None]:
    if not math.isfinite(value):
        return None
    return int(value) if value.is_integer() else value


def report_to_dict(report: Report) -> Dict[str, Any]:
    """
    Report -> plain mapping in the exported wire shape
    {item: {"graphs", "standardTables", "pivotTables"}}.
    """
    return {
        item_name: {
            "graphs": {
                name: {
                    "labels": list(graph.labels),
                    "values": [_json_number(v) for v in graph.values],
                }
                for name, graph in item.graphs.items()
            },
            "standardTables": {
                name: {
                    "rows": [
                        {"timeRange": row.time_range, "columns": list(row.columns)}
                        for row in table.rows
                    ]
                }
                for name, table in item.standard_tables.items()
            },
            "pivotTables": {
                name: {
                    "headers": list(pivot.headers),
                    "rows": [list(row) for row in pivot.rows],
                }
                for name, pivot in item.pivot_tables.items()
            },
        }
        for item_name, item in report.items()
    }


def report_from_dict(data: Dict[str, Any]) -> Report:
    """
    Rebuild a Report from its exported mapping. Missing categories load as empty.

    Raises:
        ReportLoadError: If the mapping does not have the exported shape.
    """
    if not isinstance(data, dict):
        raise ReportLoadError("Invalid or empty JSON file.")

    report: Report = {}
    try:
        for item_name, item in data.items():
            graphs = {
                name: Graph(
                    labels=tuple(str(label) for label in graph["labels"]),
                    values=tuple(
                        math.nan if v is None else float(v) for v in graph["values"]
                    ),
                )
                for name, graph in (item.get("graphs") or {}).items()
            }
            standard_tables = {
                name: StandardTable(
                    rows=tuple(
                        TableRow(str(row["timeRange"]), tuple(map(str, row["columns"])))
                        for row in table["rows"]
                    )
                )
                for name, table in (item.get("standardTables") or {}).items()
            }
            pivot_tables = {
                name: PivotTable(
                    headers=tuple(map(str, pivot["headers"])),
                    rows=tuple(tuple(map(str, row)) for row in pivot["rows"]),
                )
                for name, pivot in (item.get("pivotTables") or {}).items()
            }
            report[item_name] = ItemData(graphs, standard_tables, pivot_tables)
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise ReportLoadError(f"Report has an unexpected structure: {e}") from e
    return report


def load_report_json(path: Union[str, Path]) -> Report:
    """
    Load a report previously written by write_report_json().

    Raises:
        FileNotFoundError: If the file does not exist
        ReportLoadError: If the file is not JSON or not a non-empty object
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Report file not found: {p}")
    try:
        data = read_json_document(p)
    except ValueError as e:
        raise ReportLoadError(f"Failed to load report: {e}") from e
    if not isinstance(data, dict) or not data:
        raise ReportLoadError("Invalid or empty JSON file.")
    return report_from_dict(data)


def write_report_json(path: Union[str, Path], report: Report) -> Path:
    """Write the report in its exported wire shape (UTF-8, indent=2)."""
    return write_json_document(path, report_to_dict(report))


# -------------------------
# Chart rendering
# -------------------------
def render_graph(
    item_name: str, series_name: str, graph: Graph, output_path: Union[str, Path]
) -> str:
    """
    Render one series as two panels: per time range bars and the cumulative line.
    Returns the output path.
    """
    x = np.arange(len(graph.labels))
    cumulative = cumulative_values(graph)

    plt.style.use("dark_background")
    fig, (ax_bar, ax_line) = plt.subplots(1, 2, figsize=(14, 5))

    ax_bar.bar(x, graph.values, color="#EC0000", edgecolor="#7A0000", linewidth=0.5)
    ax_bar.set_title("Per Time Range")

    ax_line.plot(x, cumulative, color="#00FFFF", marker="o", linewidth=1.5)
    ax_line.fill_between(x, cumulative, color="#00FFFF", alpha=0.15)
    ax_line.set_title("Cumulative")

    for ax in (ax_bar, ax_line):
        ax.set_xticks(x)
        ax.set_xticklabels(graph.labels, rotation=45, ha="right", fontsize=8)
        ax.grid(True, alpha=0.2)

    fig.suptitle(f"{item_name} - {series_name}")
    fig.tight_layout()
    fig.savefig(str(output_path))
    plt.close(fig)
    return str(output_path)


def render_charts(
    report: Report,
    short_hash: str,
    output_dir: Union[str, Path, None] = None,
    chart_format: str = "svg",
) -> list[str]:
    """
    Render every graph in the report. Returns artifact paths.

    Filenames: chart-{short_hash}-{item}-{series}.{chart_format}, with a -2, -3, ...
    suffix when two (item, series) pairs sanitize to the same name.
    """
    if chart_format not in CHART_FORMATS:
        raise ValueError(
            f"chart_format must be one of {', '.join(CHART_FORMATS)}, got: {chart_format}"
        )

    artifact_paths: list[str] = []
    used_names: set[str] = set()
    for item_name, item in report.items():
        for series_name, graph in item.graphs.items():
            filename = unique_filename(
                f"chart-{short_hash}-{safe_filename(item_name)}"
                f"-{safe_filename(series_name)}.{chart_format}",
                used_names,
            )
            output_path = Path(output_dir) / filename if output_dir else Path(filename)
            artifact_paths.append(
                render_graph(item_name, series_name, graph, output_path)
            )
    return artifact_paths


def write_table_csvs(
    report: Report, short_hash: str, output_dir: Union[str, Path]
) -> list[str]:
    """
    Write one CSV per item for its standard tables and one per pivot table.
    Returns artifact paths. Names that sanitize to the same file get a -2, -3, ...
    suffix.
    """
    artifact_paths: list[str] = []
    used_names: set[str] = set()
    out = Path(output_dir)
    for item_name, item in report.items():
        item_slug = safe_filename(item_name)
        if item.standard_tables:
            path = out / unique_filename(
                f"standard-{short_hash}-{item_slug}.csv", used_names
            )
            standard_tables_frame(item).to_csv(path, index=False)
            artifact_paths.append(str(path))
        for table_name, pivot in item.pivot_tables.items():
            path = out / unique_filename(
                f"pivot-{short_hash}-{item_slug}-{safe_filename(table_name)}.csv",
                used_names,
            )
            pivot_frame(pivot).to_csv(path, index=False)
            artifact_paths.append(str(path))
    return artifact_paths


# -------------------------
# Parameters
# -------------------------
@dataclass
class LoadParams:
    """
    Parameters used when loading the raw log.

    Attributes:
        log_path: Raw log text file, or a saved monitoring job status document when
            from_status_json is set.
        start_line: 1-based inclusive start line or None to start at the first line.
        end_line: 1-based inclusive end line or None to read to the end.
        from_status_json: Treat log_path as the job's status JSON and read the log
            from results.resumen.
    """

    log_path: Optional[Path]
    start_line: Optional[int] = None
    end_line: Optional[int] = None
    from_status_json: bool = False


@dataclass
class OutputParams:
    output_dir: Path = Path("output")
    render_charts: bool = True
    chart_format: str = "svg"
    write_csv: bool = True
    write_json: bool = True
    verbose: bool = False


def get_default_params() -> tuple[LoadParams, OutputParams]:
    """Default parameter objects used by the CLI."""
    return LoadParams(log_path=None), OutputParams()


def load_raw_log(params: LoadParams) -> str:
    """
    Read the raw log text described by params.

    Raises:
        FileNotFoundError: If the input file does not exist
        StatusPayloadError: If the status document reports an error or has no results yet
        LogProcessingError: For other read/range problems
    """
    if params.log_path is None:
        raise ValueError("log_path is required")

    if params.from_status_json:
        text = extract_resumen(read_status_file(params.log_path))
        if text is None:
            raise StatusPayloadError(
                "Monitoring job has no completed results to process yet."
            )
        return slice_lines(text, params.start_line, params.end_line)

    with RawLogReader(params.log_path) as reader:
        return reader.read_text(params.start_line, params.end_line)


# -------------------------
# Text report / manifest
# -------------------------
def assemble_text_report(report: Report, result: Optional[DecodeResult] = None) -> str:
    """Human-readable summary of the report contents."""
    lines: list[str] = ["Monitoring Report", "=" * 17]
    if result is not None:
        lines.append(result.summarize())
    lines.append(f"Items: {len(report)}")

    for item_name, item in report.items():
        lines.append("")
        lines.append(f"[{item_name}]")
        if not (item.graphs or item.standard_tables or item.pivot_tables):
            lines.append("  (no data)")
        for series_name, graph in item.graphs.items():
            total = format_number(float(sum(graph.values)))
            lines.append(
                f"  graph {series_name}: {len(graph.labels)} points, total {total}"
            )
        for table_name, table in item.standard_tables.items():
            lines.append(f"  table {table_name}: {len(table.rows)} rows")
        for table_name, pivot in item.pivot_tables.items():
            n_ranges = len(pivot.headers) - pivot.headers.index(TOTAL_HEADER) - 1
            lines.append(
                f"  pivot {table_name}: {len(pivot.rows)} keys x {n_ranges} time ranges"
            )

    if result is not None and result.skipped_tables:
        lines.append("")
        lines.append("Skipped pivot tables:")
        for item_name, table_name, reason in result.skipped_tables:
            lines.append(f"  {item_name}/{table_name}: {reason}")

    return "\n".join(lines)


def build_manifest_dict(
    abs_input_posix: str,
    counts: dict,
    effective_params: dict,
    hashes: tuple[str, str],
    artifact_paths: list[str],
) -> dict:
    """Manifest describing a single run."""
    short_hash, full_hash = hashes
    return {
        "version": "1",
        "timestamp_utc": utc_timestamp_seconds(),
        "absolute_input_path": abs_input_posix,
        **counts,
        "effective_parameters": effective_params,
        "hashes": {"short": short_hash, "full": full_hash},
        "artifacts": list(artifact_paths),
    }


def _orchestrate(load: LoadParams, output: OutputParams) -> Path:
    """
    Orchestrate the full run given explicit parameter objects and return the run
    directory. Split from main() so the CLI can remain thin and tests can call this
    directly.
    """
    raw_text = load_raw_log(load)
    report, result = build_report(raw_text)
    if output.verbose:
        logger.info(result.summarize())

    abs_input_posix = normalize_abs_posix(load.log_path)
    effective_params = build_effective_parameters(load, output)
    short_hash, full_hash = canonical_json_hash(
        {"input": abs_input_posix, "params": effective_params}
    )

    run_dir = ensure_run_dir(output.output_dir)

    artifact_paths: list[str] = []
    if output.write_json:
        artifact_paths.append(
            str(write_report_json(run_dir / f"report-{short_hash}.json", report))
        )
    if output.write_csv:
        artifact_paths.extend(write_table_csvs(report, short_hash, run_dir))
    if output.render_charts:
        artifact_paths.extend(
            render_charts(report, short_hash, run_dir, output.chart_format)
        )

    text_report = assemble_text_report(report, result)
    report_path = run_dir / f"report-{short_hash}.txt"
    try:
        report_path.write_text(text_report, encoding="utf-8")
        artifact_paths.append(str(report_path))
    except OSError:
        logger.exception("Failed to write textual report to %s", str(report_path))

    counts = {
        "total_lines": result.total_lines,
        "decoded_records": result.decoded_records,
        "item_count": len(report),
        "skipped_pivot_tables": len(result.skipped_tables),
    }
    manifest = build_manifest_dict(
        abs_input_posix=abs_input_posix,
        counts=counts,
        effective_params=effective_params,
        hashes=(short_hash, full_hash),
        artifact_paths=artifact_paths,
    )
    write_json_document(run_dir / f"manifest-{short_hash}.json", manifest)

    print(text_report)
    return run_dir


# -------------------------
# CLI
# -------------------------
def _build_cli_parser():
    import argparse

    parser = argparse.ArgumentParser(
        prog="monitor-report",
        description="Monitoring report builder (raw log -> graphs, tables, pivots).",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--print-defaults",
        action="store_true",
        help="Print default parameter values and exit.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Show full tracebacks for debugging (also MONITOR_REPORT_DEBUG=1).",
    )

    g_load = parser.add_argument_group("LoadParams")
    g_load.add_argument(
        "--log-path", type=str, required=True, help="Path to the raw log (required)."
    )
    g_load.add_argument("--start-line", type=int, help="1-based inclusive start line.")
    g_load.add_argument("--end-line", type=int, help="1-based inclusive end line.")
    g_load.add_argument(
        "--from-status-json",
        action="store_true",
        help="Treat --log-path as the monitoring job status JSON (results.resumen).",
    )

    g_out = parser.add_argument_group("OutputParams")
    g_out.add_argument(
        "--output-dir", type=str, default="output", help="Base directory for run outputs."
    )
    g_out.add_argument(
        "--chart-format", choices=CHART_FORMATS, default="svg", help="Chart file format."
    )
    g_out.add_argument("--no-charts", action="store_true", help="Skip chart rendering.")
    g_out.add_argument("--no-csv", action="store_true", help="Skip table CSV export.")
    g_out.add_argument("--no-json", action="store_true", help="Skip report JSON export.")
    g_out.add_argument(
        "--verbose", action="store_true", help="Log parsing diagnostics."
    )
    return parser


def _args_to_params(args) -> tuple[LoadParams, OutputParams]:
    """
    Convert parsed CLI args to parameter objects.

    Raises:
        ValueError: For non-positive or inverted line ranges.
    """
    start_line = getattr(args, "start_line", None)
    end_line = getattr(args, "end_line", None)
    if start_line is not None and start_line <= 0:
        raise ValueError(f"--start-line must be a positive integer, got: {start_line}")
    if end_line is not None and end_line <= 0:
        raise ValueError(f"--end-line must be a positive integer, got: {end_line}")
    if start_line is not None and end_line is not None and end_line < start_line:
        raise ValueError(
            f"--end-line ({end_line}) must be greater than or equal to --start-line ({start_line})"
        )

    load = LoadParams(
        log_path=Path(args.log_path),
        start_line=start_line,
        end_line=end_line,
        from_status_json=bool(getattr(args, "from_status_json", False)),
    )
    output = OutputParams(
        output_dir=Path(getattr(args, "output_dir", None) or "output"),
        render_charts=not getattr(args, "no_charts", False),
        chart_format=getattr(args, "chart_format", None) or "svg",
        write_csv=not getattr(args, "no_csv", False),
        write_json=not getattr(args, "no_json", False),
        verbose=bool(getattr(args, "verbose", False)),
    )
    return load, output


def main(argv: Optional[List[str]] = None) -> None:
    """
    CLI entry point. Parses arguments, builds parameter objects, then orchestrates.
    """
    argv = sys.argv[1:] if argv is None else list(argv)

    if "--print-defaults" in argv:
        import json

        d_load, d_out = get_default_params()
        payload = {
            "LoadParams": {
                "log_path": None if d_load.log_path is None else str(d_load.log_path),
                "start_line": d_load.start_line,
                "end_line": d_load.end_line,
                "from_status_json": d_load.from_status_json,
            },
            "OutputParams": {
                "output_dir": str(d_out.output_dir),
                "render_charts": d_out.render_charts,
                "chart_format": d_out.chart_format,
                "write_csv": d_out.write_csv,
                "write_json": d_out.write_json,
                "verbose": d_out.verbose,
            },
        }
        print(json.dumps(payload, indent=2))
        return

    parser = _build_cli_parser()
    args = parser.parse_args(argv)
    debug_mode = bool(
        getattr(args, "debug", False) or os.getenv("MONITOR_REPORT_DEBUG", "") == "1"
    )
    if debug_mode:
        # Root level so DEBUG records from every monitor_report module get through.
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        load, output = _args_to_params(args)
        _orchestrate(load, output)
    except (FileNotFoundError, ValueError, TypeError, LogProcessingError) as e:
        # Concise, user-facing errors for common/user-correctable problems.
        logger.info("User-facing error: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except Exception as e:
        logger.exception("Unhandled exception during execution")
        if debug_mode:
            import traceback

            traceback.print_exc()
        else:
            print(f"Unexpected error: {e}", file=sys.stderr)
            print(
                "Run with --debug or set MONITOR_REPORT_DEBUG=1 to see the full traceback.",
                file=sys.stderr,
            )
        sys.exit(1)


if __name__ == "__main__":
    main()
