import numpy as np

from monitor_report.main import (
    Graph,
    collect_graphs,
    cumulative_values,
    decode_records,
    graph_frame,
    parse_and_organize,
)


def _numeric_log(item, series, time_ranges, values):
    return "\n".join(
        f"{tr};{item};numero;{series};{v}" for tr, v in zip(time_ranges, values)
    )


def test_graph_points_follow_operating_day_order():
    raw = _numeric_log("Q", "S", ["08:00", "07:00", "23:00", "05:00"], [1, 2, 3, 4])
    graph = parse_and_organize(raw)["Q"].graphs["S"]

    assert graph.labels == ("07:00", "08:00", "23:00", "05:00")
    assert graph.values == (2.0, 1.0, 3.0, 4.0)


def test_two_point_example():
    raw = (
        "08:00-09:00;Queue1;numero;Throughput;10\n"
        "09:00-10:00;Queue1;numero;Throughput;20"
    )
    report = parse_and_organize(raw)

    assert list(report) == ["Queue1"]
    graph = report["Queue1"].graphs["Throughput"]
    assert graph.labels == ("08:00-09:00", "09:00-10:00")
    assert graph.values == (10.0, 20.0)


def test_repeated_time_ranges_are_not_merged_and_keep_relative_order():
    raw = _numeric_log(
        "Q", "S", ["09:00", "08:00", "09:00", "08:00"], [1, 2, 3, 4]
    )
    graph = parse_and_organize(raw)["Q"].graphs["S"]

    assert graph.labels == ("08:00", "08:00", "09:00", "09:00")
    assert graph.values == (2.0, 4.0, 1.0, 3.0)
    assert len(graph.labels) == len(graph.values)


def test_malformed_numeric_lines_produce_no_points():
    raw = "\n".join(
        [
            "a;b",
            "a;b;numero;c;NaNtext",
            "10:00;Q;numero;S;5",
        ]
    )
    report = parse_and_organize(raw)

    assert list(report) == ["Q"]
    assert report["Q"].graphs["S"].values == (5.0,)


def test_series_are_grouped_per_item():
    raw = "\n".join(
        [
            "08:00;A;numero;x;1",
            "08:00;B;numero;x;2",
            "09:00;A;numero;y;3",
        ]
    )
    graphs = collect_graphs(decode_records(raw))

    assert set(graphs) == {"A", "B"}
    assert list(graphs["A"]) == ["x", "y"]
    assert graphs["B"]["x"] == Graph(labels=("08:00",), values=(2.0,))


def test_cumulative_values_and_graph_frame():
    graph = Graph(labels=("08:00", "09:00", "10:00"), values=(1.0, 2.5, 3.5))

    assert cumulative_values(graph) == [1.0, 3.5, 7.0]

    df = graph_frame(graph)
    assert list(df.columns) == ["time_range", "value", "cumulative"]
    assert list(df["time_range"]) == ["08:00", "09:00", "10:00"]
    assert np.allclose(df["cumulative"].to_numpy(), [1.0, 3.5, 7.0])


def test_cumulative_values_of_empty_graph():
    assert cumulative_values(Graph()) == []
    assert len(graph_frame(Graph())) == 0
