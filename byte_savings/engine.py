"""
Graph simulation engine
Estimates how much faster a page loads once wasted bytes are removed
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Optional
import logging

from byte_savings.estimation import finite_or_zero
from byte_savings.graph import DependencyGraph
from byte_savings.metrics import get_last_long_task_end_time
from byte_savings.models import ResourceWaste
from byte_savings.scoring import round_savings
from byte_savings.simulator import LoadSimulator, SimulationResult

logger = logging.getLogger(__name__)


@dataclass
class GraphSavings:
    """
    Result of a before/after simulation

    Attributes:
        savings: Time saved in ms, never negative, multiple of 10
        simulation_before_changes: Run over the untouched graph
        simulation_after_changes: Run with wasted bytes removed
    """

    savings: float
    simulation_before_changes: SimulationResult
    simulation_after_changes: SimulationResult


def aggregate_wasted_bytes_by_url(results: Iterable[ResourceWaste]) -> Dict[str, float]:
    """Sum wasted bytes per URL"""
    wasted_bytes_by_url: Dict[str, float] = {}
    for item in results:
        wasted_bytes_by_url[item.url] = wasted_bytes_by_url.get(item.url, 0) + item.wasted_bytes
    return wasted_bytes_by_url


def compute_waste_with_graph(
    results: Iterable[ResourceWaste],
    graph: DependencyGraph,
    simulator: LoadSimulator,
    label: str = "",
    provided_wasted_bytes_by_url: Optional[Dict[str, float]] = None,
    audit_id: str = "byte-efficiency",
) -> GraphSavings:
    """
    Simulate the graph before and after removing wasted bytes

    Transfer sizes of affected requests are lowered for the second run and
    restored before returning, even when the simulation raises. The whole
    sequence holds the graph's mutation lock.

    Args:
        results: Wasted bytes per resource
        graph: Dependency graph, borrowed
        simulator: Load simulator
        label: Run name used in simulation labels
        provided_wasted_bytes_by_url: Pre-aggregated waste, used instead of results
        audit_id: Audit name used in simulation labels

    Returns:
        GraphSavings with rounded savings and both simulation runs
    """
    before_label = f"{audit_id}-{label}-before"
    after_label = f"{audit_id}-{label}-after"

    if provided_wasted_bytes_by_url is not None:
        wasted_bytes_by_url = provided_wasted_bytes_by_url
    else:
        wasted_bytes_by_url = aggregate_wasted_bytes_by_url(results)

    with graph.mutation_lock:
        simulation_before_changes = simulator.simulate(graph, label=before_label)

        original_transfer_sizes: Dict[str, Optional[float]] = {}
        try:
            for node in graph.network_nodes():
                wasted_bytes = max(finite_or_zero(wasted_bytes_by_url.get(node.url)), 0)
                if not wasted_bytes:
                    continue
                original = node.record.transfer_size
                original_transfer_sizes[node.request_id] = original
                node.record.transfer_size = max(finite_or_zero(original) - wasted_bytes, 0)

            simulation_after_changes = simulator.simulate(graph, label=after_label)
        finally:
            for node in graph.network_nodes():
                if node.request_id in original_transfer_sizes:
                    node.record.transfer_size = original_transfer_sizes[node.request_id]

    savings = simulation_before_changes.time_in_ms - simulation_after_changes.time_in_ms
    logger.debug(
        f"{audit_id} {label}: {len(original_transfer_sizes)} requests shrunk, "
        f"raw savings {savings:.1f} ms"
    )

    return GraphSavings(
        savings=round_savings(savings),
        simulation_before_changes=simulation_before_changes,
        simulation_after_changes=simulation_after_changes,
    )


def compute_waste_with_critical_path_graph(
    results: Iterable[ResourceWaste],
    graph: DependencyGraph,
    simulator: LoadSimulator,
    include_load: bool = True,
    provided_wasted_bytes_by_url: Optional[Dict[str, float]] = None,
    audit_id: str = "byte-efficiency",
) -> float:
    """
    Savings on the larger of the interactivity and overall-load critical paths

    Interactivity is approximated by the end of the last long CPU task. When
    ``include_load`` is set the overall load savings are considered too; the
    two are not summed.

    Returns:
        Savings in ms, never negative, multiple of 10
    """
    overall = compute_waste_with_graph(
        results,
        graph,
        simulator,
        label="overallLoad",
        provided_wasted_bytes_by_url=provided_wasted_bytes_by_url,
        audit_id=audit_id,
    )

    savings_on_tti = get_last_long_task_end_time(
        overall.simulation_before_changes.node_timings
    ) - get_last_long_task_end_time(overall.simulation_after_changes.node_timings)

    savings = savings_on_tti
    if include_load:
        savings = max(savings, overall.savings)

    return round_savings(savings)
