"""
Resource waste detectors
Each detector decides which bytes of which resources are wasted; the
orchestrator turns that into time and score.
"""

from typing import Awaitable, Dict, List, Optional, Protocol, Union
import logging

from byte_savings.constants import (
    IGNORE_THRESHOLD_IN_BYTES,
    IGNORE_THRESHOLD_IN_PERCENT,
    TEXT_RESOURCE_TYPES,
    UNUSED_CODE_IGNORE_THRESHOLD_IN_BYTES,
)
from byte_savings.estimation import estimate_transfer_size, finite_or_zero, round_half_up
from byte_savings.exceptions import UnknownAuditError
from byte_savings.models import (
    AuditArtifacts,
    AuditSettings,
    DetectorResult,
    Heading,
    NetworkRecord,
    ResourceWaste,
)

logger = logging.getLogger(__name__)


class Detector(Protocol):
    """Interface for a resource-specific waste detector"""

    id: str
    title: str

    def detect(
        self,
        artifacts: AuditArtifacts,
        network_records: List[NetworkRecord],
        settings: AuditSettings,
    ) -> Union[DetectorResult, Awaitable[DetectorResult]]:
        """Report wasted bytes per resource"""
        ...


def _url_heading() -> Heading:
    return Heading(key="url", value_type="url", label="URL")


class UnusedCodeDetector:
    """
    Flags scripts and stylesheets whose coverage shows unused bytes

    Inline code is charged to its host document using the document's
    compression ratio.
    """

    id = "unused-code"
    title = "Reduce unused JavaScript and CSS"

    def detect(
        self,
        artifacts: AuditArtifacts,
        network_records: List[NetworkRecord],
        settings: AuditSettings,
    ) -> DetectorResult:
        records_by_url: Dict[str, NetworkRecord] = {}
        for record in network_records:
            records_by_url.setdefault(record.url, record)

        items: List[ResourceWaste] = []
        wasted_bytes_by_url: Dict[str, float] = {}

        for entry in artifacts.coverage:
            if entry.unused_bytes <= 0 or entry.total_bytes <= 0:
                continue
            record: Optional[NetworkRecord] = records_by_url.get(entry.url)
            total_transfer = estimate_transfer_size(record, entry.total_bytes, entry.resource_type)
            wasted_ratio = min(entry.unused_bytes / entry.total_bytes, 1.0)
            wasted_bytes = round_half_up(total_transfer * wasted_ratio)

            wasted_bytes_by_url[entry.url] = wasted_bytes_by_url.get(entry.url, 0) + wasted_bytes
            if wasted_bytes < UNUSED_CODE_IGNORE_THRESHOLD_IN_BYTES:
                continue
            items.append(
                ResourceWaste(
                    url=entry.url,
                    wasted_bytes=wasted_bytes,
                    total_bytes=total_transfer,
                    wasted_percent=wasted_ratio * 100,
                    resource_type=entry.resource_type,
                    inline=entry.inline,
                )
            )

        logger.debug(f"{self.id}: {len(items)} of {len(artifacts.coverage)} coverage entries flagged")

        return DetectorResult(
            items=items,
            wasted_bytes_by_url=wasted_bytes_by_url,
            headings=[
                _url_heading(),
                Heading(key="total_bytes", value_type="bytes", label="Transfer Size"),
                Heading(key="wasted_bytes", value_type="bytes", label="Potential Savings"),
            ],
        )


class TextCompressionDetector:
    """Flags text resources served without content encoding"""

    id = "text-compression"
    title = "Enable text compression"

    def detect(
        self,
        artifacts: AuditArtifacts,
        network_records: List[NetworkRecord],
        settings: AuditSettings,
    ) -> DetectorResult:
        items: List[ResourceWaste] = []

        for record in network_records:
            if record.resource_type not in TEXT_RESOURCE_TYPES or record.is_compressed:
                continue
            original_size = finite_or_zero(record.transfer_size)
            resource_size = finite_or_zero(record.resource_size) or original_size
            if original_size <= 0 or resource_size < IGNORE_THRESHOLD_IN_BYTES:
                continue

            compressed_size = estimate_transfer_size(None, resource_size, record.resource_type)
            wasted_bytes = original_size - compressed_size
            if (
                wasted_bytes < IGNORE_THRESHOLD_IN_BYTES
                or wasted_bytes / original_size < IGNORE_THRESHOLD_IN_PERCENT
            ):
                continue

            items.append(
                ResourceWaste(
                    url=record.url,
                    wasted_bytes=wasted_bytes,
                    total_bytes=original_size,
                    wasted_percent=wasted_bytes / original_size * 100,
                )
            )

        return DetectorResult(
            items=items,
            headings=[
                _url_heading(),
                Heading(key="total_bytes", value_type="bytes", label="Transfer Size"),
                Heading(key="wasted_bytes", value_type="bytes", label="Potential Savings"),
            ],
        )


DETECTORS: Dict[str, Detector] = {
    detector.id: detector
    for detector in (UnusedCodeDetector(), TextCompressionDetector())
}


def get_detector(audit_id: str) -> Detector:
    """
    Look up a registered detector

    Raises:
        UnknownAuditError: If no detector has this id
    """
    detector = DETECTORS.get(audit_id)
    if detector is None:
        raise UnknownAuditError(audit_id)
    return detector
