"""
Page dependency graph
Network requests and CPU tasks linked by what has to finish before what
"""

from typing import Callable, Dict, Iterator, List, Optional, Set
import logging
import threading

from byte_savings.constants import TRACE_EVENT_TASK
from byte_savings.exceptions import CircularDependencyError, MissingArtifactError
from byte_savings.models import NetworkRecord, PageTrace

logger = logging.getLogger(__name__)


class BaseNode:
    """
    A unit of work in the page load

    Attributes:
        id: Unique node identifier
        dependencies: Nodes that must finish before this one starts
        dependents: Nodes waiting on this one
    """

    TYPE_NETWORK = "network"
    TYPE_CPU = "cpu"

    type = ""

    def __init__(self, node_id: str):
        self.id = node_id
        self.dependencies: List["BaseNode"] = []
        self.dependents: List["BaseNode"] = []

    @property
    def start_time(self) -> float:
        raise NotImplementedError

    def add_dependency(self, node: "BaseNode") -> None:
        """Make this node wait on ``node``"""
        if node is self:
            raise ValueError(f"Node {self.id} cannot depend on itself")
        if node in self.dependencies:
            return
        self.dependencies.append(node)
        node.dependents.append(self)

    def clone(self) -> "BaseNode":
        """Copy the node without its relationships"""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"


class NetworkNode(BaseNode):
    """
    A network request

    Clones share the same ``record``; changing its transfer size is visible to
    every graph derived from the same source.
    """

    type = BaseNode.TYPE_NETWORK

    def __init__(self, record: NetworkRecord):
        super().__init__(record.request_id)
        self.record = record

    @property
    def request_id(self) -> str:
        return self.record.request_id

    @property
    def url(self) -> str:
        return self.record.url

    @property
    def start_time(self) -> float:
        return self.record.start_time

    def clone(self) -> "NetworkNode":
        return NetworkNode(self.record)


class CPUNode(BaseNode):
    """A main-thread task observed in the trace"""

    type = BaseNode.TYPE_CPU

    def __init__(self, node_id: str, start_time: float, duration: float):
        super().__init__(node_id)
        self._start_time = start_time
        self.duration = duration

    @property
    def start_time(self) -> float:
        return self._start_time

    def clone(self) -> "CPUNode":
        return CPUNode(self.id, self._start_time, self.duration)


class DependencyGraph:
    """
    A rooted DAG of page-load work

    ``mutation_lock`` guards temporary edits to network records. Graphs derived
    with ``filtered`` share both the records and the lock of their source.
    """

    def __init__(self, root: BaseNode, mutation_lock: Optional[threading.RLock] = None):
        self.root = root
        self.mutation_lock = mutation_lock or threading.RLock()

    def traverse(self) -> Iterator[BaseNode]:
        """Yield every node reachable from the root, breadth-first"""
        seen: Set[int] = {id(self.root)}
        queue: List[BaseNode] = [self.root]
        while queue:
            node = queue.pop(0)
            yield node
            for dependent in node.dependents:
                if id(dependent) not in seen:
                    seen.add(id(dependent))
                    queue.append(dependent)

    @property
    def nodes(self) -> List[BaseNode]:
        return list(self.traverse())

    def network_nodes(self) -> List[NetworkNode]:
        return [node for node in self.traverse() if isinstance(node, NetworkNode)]

    def topological_order(self) -> List[BaseNode]:
        """
        Order nodes so every node follows its dependencies (Kahn's algorithm)

        Raises:
            CircularDependencyError: If the graph contains a cycle
        """
        nodes = self.nodes
        in_degree: Dict[int, int] = {id(node): len(node.dependencies) for node in nodes}
        queue: List[BaseNode] = [node for node in nodes if in_degree[id(node)] == 0]
        result: List[BaseNode] = []

        while queue:
            node = queue.pop(0)
            result.append(node)
            for dependent in node.dependents:
                in_degree[id(dependent)] -= 1
                if in_degree[id(dependent)] == 0:
                    queue.append(dependent)

        if len(result) != len(nodes):
            placed = {id(node) for node in result}
            remaining = sorted(node.id for node in nodes if id(node) not in placed)
            raise CircularDependencyError(
                f"Circular dependency detected involving: {', '.join(remaining)}",
                cycle=remaining,
            )
        return result

    def filtered(self, predicate: Callable[[BaseNode], bool]) -> "DependencyGraph":
        """
        Copy the graph keeping only nodes matching ``predicate``

        Every node on a path between a kept node and the root is kept too, so
        the copy stays rooted. Edges between kept nodes are preserved.
        """
        keep: Set[int] = {id(self.root)}
        for node in self.traverse():
            if not predicate(node):
                continue
            stack = [node]
            while stack:
                current = stack.pop()
                if id(current) in keep and current is not node:
                    continue
                keep.add(id(current))
                stack.extend(current.dependencies)

        clones: Dict[int, BaseNode] = {}
        for node in self.traverse():
            if id(node) in keep:
                clones[id(node)] = node.clone()

        for node in self.traverse():
            if id(node) not in keep:
                continue
            clone = clones[id(node)]
            for dependency in node.dependencies:
                if id(dependency) in clones:
                    clone.add_dependency(clones[id(dependency)])

        return DependencyGraph(clones[id(self.root)], mutation_lock=self.mutation_lock)


def _find_initiator_cycle(
    records_by_id: Dict[str, NetworkRecord], root_id: str
) -> Optional[List[str]]:
    """Follow initiator chains and return the first loop found"""
    for start_id in records_by_id:
        path: List[str] = []
        on_path: Set[str] = set()
        current: Optional[str] = start_id
        while current is not None and current != root_id:
            if current in on_path:
                return path[path.index(current):] + [current]
            on_path.add(current)
            path.append(current)
            record = records_by_id.get(current)
            if record is None:
                break
            initiator = record.initiator_request_id
            current = initiator if initiator in records_by_id else None
    return None


def build_page_dependency_graph(
    trace: Optional[PageTrace],
    network_records: List[NetworkRecord],
    page_url: str,
) -> DependencyGraph:
    """
    Build the dependency graph of a navigation

    The main document is the root. Other requests depend on their initiator,
    or on the root when the initiator is unknown. Each trace task depends on
    the request that finished most recently before it started.

    Records are copied so simulations never touch the caller's artifacts.

    Args:
        trace: Navigation trace (tasks become CPU nodes)
        network_records: Observed requests
        page_url: URL of the main document

    Returns:
        DependencyGraph rooted at the main document

    Raises:
        MissingArtifactError: If there are no network records
        CircularDependencyError: If initiators form a loop
    """
    if not network_records:
        raise MissingArtifactError(
            "Cannot build a dependency graph without network records",
            artifact="network_records",
        )

    records = sorted(
        (record.model_copy() for record in network_records),
        key=lambda record: record.start_time,
    )
    root_record = next((r for r in records if r.url == page_url), records[0])
    records_by_id = {record.request_id: record for record in records}

    cycle = _find_initiator_cycle(records_by_id, root_record.request_id)
    if cycle:
        raise CircularDependencyError(
            f"Circular initiator chain: {' -> '.join(cycle)}", cycle=cycle
        )

    nodes: Dict[str, NetworkNode] = {
        record.request_id: NetworkNode(record) for record in records
    }
    root = nodes[root_record.request_id]

    for record in records:
        if record is root_record:
            continue
        parent = nodes.get(record.initiator_request_id or "", root)
        nodes[record.request_id].add_dependency(parent)

    task_count = 0
    if trace is not None:
        tasks = sorted(
            (e for e in trace.events if e.name == TRACE_EVENT_TASK and e.dur > 0),
            key=lambda e: e.ts,
        )
        for index, event in enumerate(tasks):
            finished = [r for r in records if r.end_time <= event.ts]
            if finished:
                latest = max(finished, key=lambda r: (r.end_time, r.start_time))
                parent = nodes[latest.request_id]
            else:
                parent = root
            task = CPUNode(f"task-{index}", event.ts, event.dur)
            task.add_dependency(parent)
            task_count += 1

    logger.debug(
        f"Built dependency graph: {len(records)} network nodes, {task_count} CPU nodes"
    )
    return DependencyGraph(root)
