"""
Paint and interactivity metric helpers
"""

from dataclasses import dataclass
from typing import Mapping
import logging

from byte_savings.constants import (
    LONG_TASK_THRESHOLD_MS,
    TRACE_EVENT_FCP,
    TRACE_EVENT_LCP,
)
from byte_savings.exceptions import MissingArtifactError
from byte_savings.graph import BaseNode, CPUNode, DependencyGraph, NetworkNode
from byte_savings.models import PageTrace
from byte_savings.types import NodeTimingDict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessedNavigation:
    """Paint timestamps in ms relative to navigation start"""

    first_contentful_paint: float
    largest_contentful_paint: float


def process_navigation(trace: PageTrace) -> ProcessedNavigation:
    """
    Extract paint timestamps from a navigation trace

    The last LCP candidate wins. Without any LCP candidate, LCP equals FCP.

    Raises:
        MissingArtifactError: If the trace has no first contentful paint
    """
    fcp_marks = [e.ts for e in trace.events if e.name == TRACE_EVENT_FCP]
    if not fcp_marks:
        raise MissingArtifactError(
            "No first contentful paint found in trace", artifact="trace"
        )
    fcp = min(fcp_marks)
    lcp_marks = [e.ts for e in trace.events if e.name == TRACE_EVENT_LCP]
    lcp = max(lcp_marks) if lcp_marks else fcp
    logger.debug(f"Processed navigation: FCP={fcp} ms, LCP={lcp} ms")
    return ProcessedNavigation(first_contentful_paint=fcp, largest_contentful_paint=max(lcp, fcp))


def get_last_long_task_end_time(
    node_timings: Mapping[BaseNode, NodeTimingDict],
    duration: float = LONG_TASK_THRESHOLD_MS,
) -> float:
    """End time of the last CPU task longer than ``duration``, 0 if none"""
    return max(
        (
            timing["end_time"]
            for node, timing in node_timings.items()
            if node.type == BaseNode.TYPE_CPU and timing["duration"] > duration
        ),
        default=0.0,
    )


def _pessimistic_graph(graph: DependencyGraph, timestamp: float) -> DependencyGraph:
    def started_before(node: BaseNode) -> bool:
        if isinstance(node, (NetworkNode, CPUNode)):
            return node.start_time < timestamp
        return False

    return graph.filtered(started_before)


def first_contentful_paint_graph(
    graph: DependencyGraph, processed_navigation: ProcessedNavigation
) -> DependencyGraph:
    """Everything that started before first contentful paint"""
    return _pessimistic_graph(graph, processed_navigation.first_contentful_paint)


def largest_contentful_paint_graph(
    graph: DependencyGraph, processed_navigation: ProcessedNavigation
) -> DependencyGraph:
    """Everything that started before largest contentful paint"""
    return _pessimistic_graph(graph, processed_navigation.largest_contentful_paint)
