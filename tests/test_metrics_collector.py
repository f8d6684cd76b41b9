"""
CPU sampler: /proc/stat parsing and usage calculation.
"""

import pytest

from zxping.common.exceptions import SamplingError
from zxping.services.system.metrics_collector import (
    CpuSnapshot,
    MetricsCollector,
    calculate_cpu_usage,
    parse_cpu_line,
)


def test_parse_ten_fields():
    snapshot = parse_cpu_line("cpu 1 2 3 4 5 6 7 8 9 10")
    assert snapshot == CpuSnapshot(1, 2, 3, 4, 5, 6, 7, 8, 9, 10)


def test_parse_nine_fields_defaults_guest_nice():
    snapshot = parse_cpu_line("cpu  1 2 3 4 5 6 7 8 9")
    assert snapshot.guest == 9
    assert snapshot.guest_nice == 0


def test_parse_bad_field_counts_as_zero():
    snapshot = parse_cpu_line("cpu 1 x 3 4 5 6 7 8 9 10")
    assert snapshot.nice == 0
    assert snapshot.user == 1
    assert snapshot.total == 55 - 2


def test_parse_rejects_short_line():
    with pytest.raises(SamplingError):
        parse_cpu_line("cpu 1 2 3 4 5 6 7 8")


def test_parse_rejects_per_core_line():
    with pytest.raises(SamplingError):
        parse_cpu_line("cpu0 1 2 3 4 5 6 7 8 9 10")


def test_snapshot_totals():
    snapshot = CpuSnapshot(1, 2, 3, 4, 5, 6, 7, 8, 9, 10)
    assert snapshot.total == 55
    assert snapshot.idle_total == 9
    assert snapshot.active == 46


def test_usage_formula():
    previous = CpuSnapshot(user=100, idle=100)
    current = CpuSnapshot(user=175, idle=125)
    # active delta 75 of total delta 100
    assert calculate_cpu_usage(previous, current) == pytest.approx(75.0)


def test_usage_counts_iowait_as_idle():
    previous = CpuSnapshot()
    current = CpuSnapshot(system=20, idle=40, iowait=40)
    assert calculate_cpu_usage(previous, current) == pytest.approx(20.0)


def test_usage_zero_when_total_does_not_advance():
    snapshot = CpuSnapshot(user=10, idle=10)
    assert calculate_cpu_usage(snapshot, snapshot) == 0.0


def test_usage_zero_on_counter_wrap():
    previous = CpuSnapshot(user=1000, idle=1000)
    current = CpuSnapshot(user=5, idle=5)
    assert calculate_cpu_usage(previous, current) == 0.0


def test_first_sample_against_zero_snapshot():
    current = CpuSnapshot(user=30, idle=70)
    assert calculate_cpu_usage(CpuSnapshot(), current) == pytest.approx(30.0)


def test_read_snapshot_uses_aggregate_line(tmp_path):
    stat = tmp_path / "stat"
    stat.write_text(
        "cpu  10 0 10 80 0 0 0 0 0 0\n"
        "cpu0 5 0 5 40 0 0 0 0 0 0\n"
        "intr 12345\n"
    )
    snapshot = MetricsCollector(stat).read_cpu_snapshot()
    assert snapshot.user == 10
    assert snapshot.idle == 80


def test_read_snapshot_missing_file(tmp_path):
    with pytest.raises(SamplingError):
        MetricsCollector(tmp_path / "missing").read_cpu_snapshot()


def test_read_snapshot_without_cpu_line(tmp_path):
    stat = tmp_path / "stat"
    stat.write_text("intr 1\nctxt 2\n")
    with pytest.raises(SamplingError):
        MetricsCollector(stat).read_cpu_snapshot()
