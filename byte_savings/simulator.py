"""
Load simulator
Estimates when each node of a dependency graph would finish under throttling
"""

from dataclasses import dataclass, field
from typing import Dict, List
import logging

import numpy as np

from byte_savings.constants import SAVINGS_ROUNDING_MS
from byte_savings.estimation import finite_or_zero
from byte_savings.exceptions import MissingArtifactError
from byte_savings.graph import BaseNode, CPUNode, DependencyGraph, NetworkNode
from byte_savings.models import AuditSettings, NetworkRecord, ThrottlingSettings
from byte_savings.types import NodeTimingDict

logger = logging.getLogger(__name__)


@dataclass
class SimulationResult:
    """
    Outcome of one simulation run

    Attributes:
        time_in_ms: End time of the last node
        node_timings: Simulated timing of every node, keyed by node
    """

    time_in_ms: float
    node_timings: Dict[BaseNode, NodeTimingDict] = field(default_factory=dict)


class LoadSimulator:
    """
    Deterministic critical-path simulator

    A node starts once all of its dependencies have finished. Network nodes
    take one round trip plus the time to push their transfer size through the
    throttled connection; CPU nodes take their observed duration scaled by the
    CPU slowdown. Connection reuse and request concurrency limits are not
    modelled.
    """

    def __init__(self, throttling: ThrottlingSettings):
        self.throttling = throttling

    @property
    def bits_per_second(self) -> float:
        return self.throttling.throughput_kbps * 1024

    def _network_duration(self, node: NetworkNode) -> float:
        transfer_size = max(finite_or_zero(node.record.transfer_size), 0)
        if self.bits_per_second <= 0:
            download_ms = 0.0
        else:
            download_ms = transfer_size * 8 / self.bits_per_second * 1000
        return self.throttling.rtt_ms + download_ms

    def _node_duration(self, node: BaseNode) -> float:
        if isinstance(node, NetworkNode):
            return self._network_duration(node)
        if isinstance(node, CPUNode):
            return node.duration * self.throttling.cpu_slowdown_multiplier
        return 0.0

    def simulate(self, graph: DependencyGraph, label: str = "") -> SimulationResult:
        """
        Simulate the graph

        Args:
            graph: Dependency graph to simulate
            label: Name of this run, for logs

        Returns:
            SimulationResult with the overall time and per-node timings
        """
        node_timings: Dict[BaseNode, NodeTimingDict] = {}
        order: List[BaseNode] = graph.topological_order()

        for node in order:
            start_time = max(
                (node_timings[dep]["end_time"] for dep in node.dependencies if dep in node_timings),
                default=0.0,
            )
            duration = self._node_duration(node)
            node_timings[node] = {
                "start_time": start_time,
                "end_time": start_time + duration,
                "duration": duration,
            }

        time_in_ms = max((t["end_time"] for t in node_timings.values()), default=0.0)
        logger.debug(
            f"Simulation '{label}': {len(order)} nodes, {time_in_ms:.1f} ms"
        )
        return SimulationResult(time_in_ms=time_in_ms, node_timings=node_timings)

    def compute_wasted_ms_from_wasted_bytes(self, wasted_bytes: float) -> float:
        """
        Convert bytes straight into download time, rounded to 10 ms

        Negative byte counts give negative time; nothing is clamped here.
        """
        if self.bits_per_second <= 0:
            return 0.0
        wasted_ms = wasted_bytes * 8 / self.bits_per_second * 1000
        return float(np.floor(wasted_ms / SAVINGS_ROUNDING_MS + 0.5) * SAVINGS_ROUNDING_MS)


def build_load_simulator(
    network_records: List[NetworkRecord], settings: AuditSettings
) -> LoadSimulator:
    """
    Create a simulator for the captured network activity

    Raises:
        MissingArtifactError: If there is no network activity to simulate
    """
    if not network_records:
        raise MissingArtifactError(
            "Cannot create a load simulator without network records",
            artifact="network_records",
        )
    return LoadSimulator(settings.throttling)
