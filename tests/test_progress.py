import io

import pytest

from ytrans.progress import ProgressWriter


def test_reports_running_total_and_percentage():
    sink = io.BytesIO()
    reports = []
    writer = ProgressWriter(sink, 100, lambda written, pct: reports.append((written, pct)))

    for chunk in (b"a" * 10, b"b" * 40, b"c" * 25, b"d" * 25):
        writer.write(chunk)

    assert sink.getvalue() == b"a" * 10 + b"b" * 40 + b"c" * 25 + b"d" * 25
    assert writer.total_bytes == 100
    assert [written for written, _ in reports] == [10, 50, 75, 100]
    percentages = [pct for _, pct in reports]
    assert percentages == sorted(percentages)
    assert percentages[-1] == 100


def test_counts_without_reporting_when_total_unknown():
    reports = []
    writer = ProgressWriter(io.BytesIO(), None, lambda written, pct: reports.append(pct))

    writer.write(b"abc")

    assert writer.total_bytes == 3
    assert reports == []


class BrokenSink:
    def write(self, data):
        raise BrokenPipeError("closed")


def test_sink_errors_propagate_without_progress():
    reports = []
    writer = ProgressWriter(BrokenSink(), 10, lambda written, pct: reports.append(pct))

    with pytest.raises(BrokenPipeError):
        writer.write(b"abc")

    assert writer.total_bytes == 0
    assert reports == []


def test_negative_length_means_unknown_total():
    reports = []
    writer = ProgressWriter(io.BytesIO(), -1, lambda written, pct: reports.append(pct))

    writer.write(b"abc")

    assert writer.total_bytes == 3
    assert reports == []
