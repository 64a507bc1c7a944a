"""
Byte-efficiency audit orchestration
Gathers inputs concurrently, runs the detector and the graph simulations, and
assembles the audit product
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Dict, List, Optional
import logging

from byte_savings.constants import GATHER_MODE_NAVIGATION, GATHER_MODE_TIMESPAN
from byte_savings.detectors import Detector
from byte_savings.engine import compute_waste_with_critical_path_graph, compute_waste_with_graph
from byte_savings.estimation import finite_or_zero, round_half_up
from byte_savings.exceptions import MissingArtifactError
from byte_savings.graph import DependencyGraph, build_page_dependency_graph
from byte_savings.metrics import (
    ProcessedNavigation,
    first_contentful_paint_graph,
    largest_contentful_paint_graph,
    process_navigation,
)
from byte_savings.models import (
    AuditArtifacts,
    AuditProduct,
    AuditSettings,
    DetectorResult,
    Heading,
    MetricSavings,
    OpportunityDetails,
    ResourceWaste,
)
from byte_savings.scoring import score_for_wasted_ms
from byte_savings.simulator import LoadSimulator, build_load_simulator
from byte_savings.utils.cache import ComputedArtifactCache, hash_inputs
from byte_savings.utils.logging_config import reset_audit_id, set_audit_id

logger = logging.getLogger(__name__)

# Digit group separator by language
_GROUP_SEPARATORS = {
    "en": ",",
    "ja": ",",
    "zh": ",",
    "ko": ",",
    "de": ".",
    "es": ".",
    "it": ".",
    "nl": ".",
    "pt": ".",
    "fr": " ",
    "pl": " ",
    "ru": " ",
}


def format_byte_savings(wasted_bytes: float, locale: str) -> str:
    """Format e.g. 'Potential savings of 1,234 KiB' for ``locale``"""
    kib = round_half_up(wasted_bytes / 1024)
    language = locale.split("-")[0].lower()
    separator = _GROUP_SEPARATORS.get(language, ",")
    number = f"{kib:,}".replace(",", separator)
    return f"Potential savings of {number} KiB"


def make_opportunity_details(
    headings: List[Heading],
    items: List[ResourceWaste],
    overall_savings_ms: float,
    overall_savings_bytes: float,
    sorted_by: List[str],
) -> OpportunityDetails:
    return OpportunityDetails(
        headings=headings,
        items=[item.model_dump() for item in items],
        overall_savings_ms=overall_savings_ms,
        overall_savings_bytes=overall_savings_bytes,
        sorted_by=sorted_by,
    )


async def _gather_or_cancel(*coros: Awaitable[Any]) -> List[Any]:
    """Await all coroutines; on the first failure cancel the rest and re-raise"""
    tasks = [asyncio.ensure_future(coro) for coro in coros]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        raise


async def _nothing() -> None:
    return None


async def _run_detector(
    detector: Detector,
    artifacts: AuditArtifacts,
    settings: AuditSettings,
) -> DetectorResult:
    result = detector.detect(artifacts, artifacts.network_records, settings)
    if inspect.isawaitable(result):
        return await result
    return result


async def _compute(
    cache: Optional[ComputedArtifactCache],
    name: str,
    input_hash: str,
    compute: Callable[[], Any],
) -> Any:
    if cache is None:
        return await asyncio.to_thread(compute)
    return await asyncio.to_thread(cache.get_or_compute, name, input_hash, compute)


async def create_audit_product(
    audit_id: str,
    result: DetectorResult,
    graph: Optional[DependencyGraph],
    simulator: LoadSimulator,
    processed_navigation: Optional[ProcessedNavigation],
    settings: AuditSettings,
) -> AuditProduct:
    """
    Turn a detector result into a scored audit product

    In navigation mode the savings come from graph simulations: the overall
    critical-path savings plus FCP and LCP savings on their pessimistic
    graphs, run concurrently. Otherwise the wasted bytes are converted to time
    directly by the simulator.

    Args:
        audit_id: Name of the audit (used in simulation labels)
        result: Detector output
        graph: Page dependency graph (navigation mode only)
        simulator: Load simulator
        processed_navigation: Paint timestamps (navigation mode only)
        settings: Audit settings

    Returns:
        AuditProduct

    Raises:
        MissingArtifactError: If navigation mode lacks the graph or navigation
    """
    results = sorted(result.items, key=lambda item: item.wasted_bytes, reverse=True)
    wasted_bytes = sum(item.wasted_bytes for item in results)

    metric_savings: Dict[str, float] = {"FCP": 0, "LCP": 0}

    if settings.gather_mode == GATHER_MODE_NAVIGATION:
        if graph is None:
            raise MissingArtifactError(
                "Page dependency graph should always be computed in navigation mode",
                artifact="graph",
            )
        if processed_navigation is None:
            raise MissingArtifactError(
                "Processed navigation should always be computed in navigation mode",
                artifact="processed_navigation",
            )

        provided = result.wasted_bytes_by_url
        fcp_graph = first_contentful_paint_graph(graph, processed_navigation)
        lcp_graph = largest_contentful_paint_graph(graph, processed_navigation)

        wasted_ms, fcp, lcp = await _gather_or_cancel(
            asyncio.to_thread(
                compute_waste_with_critical_path_graph,
                results,
                graph,
                simulator,
                provided_wasted_bytes_by_url=provided,
                audit_id=audit_id,
            ),
            asyncio.to_thread(
                compute_waste_with_graph,
                results,
                fcp_graph,
                simulator,
                label="fcp",
                provided_wasted_bytes_by_url=provided,
                audit_id=audit_id,
            ),
            asyncio.to_thread(
                compute_waste_with_graph,
                results,
                lcp_graph,
                simulator,
                label="lcp",
                provided_wasted_bytes_by_url=provided,
                audit_id=audit_id,
            ),
        )
        metric_savings["FCP"] = fcp.savings
        metric_savings["LCP"] = lcp.savings
    else:
        # May be negative when the change would cost time
        wasted_ms = simulator.compute_wasted_ms_from_wasted_bytes(wasted_bytes)

    display_value = result.display_value or ""
    if result.display_value is None and wasted_bytes:
        display_value = format_byte_savings(wasted_bytes, settings.locale)

    sorted_by = result.sorted_by or ["wasted_bytes"]
    details = make_opportunity_details(
        result.headings, results, wasted_ms, wasted_bytes, sorted_by
    )

    logger.info(
        f"{audit_id}: {wasted_bytes:.0f} wasted bytes, {wasted_ms} ms, metric savings {metric_savings}"
    )

    return AuditProduct(
        explanation=result.explanation,
        warnings=result.warnings,
        display_value=display_value,
        numeric_value=wasted_ms,
        numeric_unit="millisecond",
        score=score_for_wasted_ms(wasted_ms),
        details=details,
        metric_savings=MetricSavings(**metric_savings),
    )


async def run_audit(
    detector: Detector,
    artifacts: AuditArtifacts,
    settings: AuditSettings,
    cache: Optional[ComputedArtifactCache] = None,
) -> AuditProduct:
    """
    Run a byte-efficiency audit end to end

    The detector, dependency graph, load simulator and processed navigation
    are computed concurrently and joined before the product is assembled.
    Graph and navigation are only computed in navigation mode. Detector
    failures propagate unchanged.

    Args:
        detector: Resource-specific waste detector
        artifacts: Gathered page artifacts
        settings: Audit settings (gather mode, throttling, locale)
        cache: Optional cache of computed artifacts

    Returns:
        AuditProduct
    """
    token = set_audit_id(detector.id)
    try:
        return await _audit(detector, artifacts, settings, cache)
    finally:
        reset_audit_id(token)


async def _audit(
    detector: Detector,
    artifacts: AuditArtifacts,
    settings: AuditSettings,
    cache: Optional[ComputedArtifactCache],
) -> AuditProduct:
    network_records = artifacts.network_records
    has_contentful_records = any(
        finite_or_zero(record.transfer_size) for record in network_records
    )

    # A timespan may have no network activity; no bytes downloaded, nothing to save
    if not has_contentful_records and settings.gather_mode == GATHER_MODE_TIMESPAN:
        logger.info(f"{detector.id}: no network activity in timespan, not applicable")
        return AuditProduct(score=1, not_applicable=True)

    is_navigation = settings.gather_mode == GATHER_MODE_NAVIGATION
    trace = artifacts.trace
    graph_hash = f"{hash_inputs(trace, *network_records)}:{artifacts.url}"

    def build_graph() -> DependencyGraph:
        return build_page_dependency_graph(trace, network_records, artifacts.url)

    def build_simulator() -> LoadSimulator:
        return build_load_simulator(network_records, settings)

    def build_navigation() -> ProcessedNavigation:
        if trace is None:
            raise MissingArtifactError("Navigation mode requires a trace", artifact="trace")
        return process_navigation(trace)

    result, graph, simulator, processed_navigation = await _gather_or_cancel(
        _run_detector(detector, artifacts, settings),
        _compute(cache, "graph", graph_hash, build_graph) if is_navigation else _nothing(),
        _compute(
            cache,
            "simulator",
            hash_inputs(settings.throttling, *network_records),
            build_simulator,
        ),
        _compute(cache, "navigation", hash_inputs(trace), build_navigation)
        if is_navigation
        else _nothing(),
    )

    return await create_audit_product(
        detector.id, result, graph, simulator, processed_navigation, settings
    )
