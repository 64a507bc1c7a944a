"""
Tests for the load simulator and metric helpers
"""

import pytest

from byte_savings.exceptions import MissingArtifactError
from byte_savings.graph import CPUNode, DependencyGraph, NetworkNode
from byte_savings.metrics import (
    ProcessedNavigation,
    first_contentful_paint_graph,
    get_last_long_task_end_time,
    largest_contentful_paint_graph,
    process_navigation,
)
from byte_savings.models import (
    AuditSettings,
    NetworkRecord,
    PageTrace,
    ThrottlingSettings,
    TraceEvent,
)
from byte_savings.simulator import LoadSimulator, build_load_simulator

# 1,000,000 bits per second: 1 byte takes 0.008 ms
THROTTLING = ThrottlingSettings(rtt_ms=0, throughput_kbps=1e6 / 1024, cpu_slowdown_multiplier=1)


def _chain():
    doc = NetworkNode(NetworkRecord(request_id="doc", url="https://example.com/", transfer_size=1250))
    script = NetworkNode(
        NetworkRecord(
            request_id="js", url="https://example.com/app.js", start_time=60, transfer_size=12500
        )
    )
    task = CPUNode("task-0", start_time=250, duration=80)
    script.add_dependency(doc)
    task.add_dependency(script)
    return DependencyGraph(doc), doc, script, task


def test_simulate_chain():
    graph, doc, script, task = _chain()
    result = LoadSimulator(THROTTLING).simulate(graph, label="test")

    assert result.node_timings[doc]["end_time"] == pytest.approx(10)
    assert result.node_timings[script]["start_time"] == pytest.approx(10)
    assert result.node_timings[script]["end_time"] == pytest.approx(110)
    assert result.node_timings[task]["end_time"] == pytest.approx(190)
    assert result.time_in_ms == pytest.approx(190)


def test_rtt_and_cpu_slowdown_apply():
    graph, doc, script, task = _chain()
    throttling = ThrottlingSettings(rtt_ms=50, throughput_kbps=1e6 / 1024, cpu_slowdown_multiplier=2)
    result = LoadSimulator(throttling).simulate(graph)
    assert result.node_timings[doc]["duration"] == pytest.approx(60)
    assert result.node_timings[task]["duration"] == pytest.approx(160)


def test_missing_transfer_size_costs_only_rtt():
    node = NetworkNode(NetworkRecord(request_id="a", url="https://example.com/"))
    throttling = ThrottlingSettings(rtt_ms=40, throughput_kbps=1000)
    result = LoadSimulator(throttling).simulate(DependencyGraph(node))
    assert result.time_in_ms == pytest.approx(40)


def test_simulate_is_deterministic():
    graph, *_ = _chain()
    simulator = LoadSimulator(THROTTLING)
    assert simulator.simulate(graph).time_in_ms == simulator.simulate(graph).time_in_ms


def test_wasted_ms_from_wasted_bytes():
    simulator = LoadSimulator(THROTTLING)
    assert simulator.compute_wasted_ms_from_wasted_bytes(5000) == 40
    assert simulator.compute_wasted_ms_from_wasted_bytes(5600) == 40  # 44.8 -> 40
    assert simulator.compute_wasted_ms_from_wasted_bytes(0) == 0


def test_wasted_ms_keeps_negative_values():
    simulator = LoadSimulator(THROTTLING)
    assert simulator.compute_wasted_ms_from_wasted_bytes(-5000) == -40


def test_wasted_ms_zero_throughput():
    simulator = LoadSimulator(ThrottlingSettings(throughput_kbps=0))
    assert simulator.compute_wasted_ms_from_wasted_bytes(5000) == 0


def test_build_load_simulator_requires_records():
    with pytest.raises(MissingArtifactError):
        build_load_simulator([], AuditSettings())
    records = [NetworkRecord(request_id="a", url="https://example.com/")]
    simulator = build_load_simulator(records, AuditSettings(throttling=THROTTLING))
    assert simulator.throttling == THROTTLING


def test_last_long_task_end_time():
    graph, doc, script, task = _chain()
    result = LoadSimulator(THROTTLING).simulate(graph)
    assert get_last_long_task_end_time(result.node_timings) == pytest.approx(190)
    # 80 ms task is not longer than 100
    assert get_last_long_task_end_time(result.node_timings, duration=100) == 0


def test_last_long_task_ignores_network_nodes():
    node = NetworkNode(NetworkRecord(request_id="a", url="https://example.com/", transfer_size=100000))
    result = LoadSimulator(THROTTLING).simulate(DependencyGraph(node))
    assert get_last_long_task_end_time(result.node_timings) == 0


def test_process_navigation():
    trace = PageTrace(
        events=[
            TraceEvent(name="firstContentfulPaint", ts=220),
            TraceEvent(name="largestContentfulPaint", ts=300),
            TraceEvent(name="largestContentfulPaint", ts=450),
        ]
    )
    navigation = process_navigation(trace)
    assert navigation.first_contentful_paint == 220
    assert navigation.largest_contentful_paint == 450


def test_process_navigation_lcp_defaults_to_fcp():
    trace = PageTrace(events=[TraceEvent(name="firstContentfulPaint", ts=220)])
    assert process_navigation(trace).largest_contentful_paint == 220


def test_process_navigation_requires_fcp():
    with pytest.raises(MissingArtifactError):
        process_navigation(PageTrace(events=[TraceEvent(name="RunTask", ts=1, dur=5)]))


def test_pessimistic_graphs_cut_at_paint():
    graph, doc, script, task = _chain()
    navigation = ProcessedNavigation(first_contentful_paint=50, largest_contentful_paint=300)

    fcp_ids = {node.id for node in first_contentful_paint_graph(graph, navigation).traverse()}
    lcp_ids = {node.id for node in largest_contentful_paint_graph(graph, navigation).traverse()}

    assert fcp_ids == {"doc"}
    assert lcp_ids == {"doc", "js", "task-0"}
