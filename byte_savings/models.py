"""
Pydantic models for the Byte Savings Backend
Defines page artifacts, audit settings, detector output and the audit product
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Dict, Optional, Any

from byte_savings.constants import VALID_GATHER_MODES, GATHER_MODE_NAVIGATION


class NetworkRecord(BaseModel):
    """
    A single observed network request

    Times are milliseconds relative to navigation start. ``transfer_size`` is
    assignable so a graph simulation can temporarily shrink it.

    Attributes:
        request_id: Unique identifier of the request
        url: Requested URL
        resource_type: DevTools resource type ('Script', 'Stylesheet', ...)
        start_time: Time the request was issued
        end_time: Time the response finished
        transfer_size: Bytes sent over the wire (None when unmeasured)
        resource_size: Decoded body size
        initiator_request_id: Request that caused this one, if known
        is_compressed: Whether a content-encoding was applied
    """

    request_id: str
    url: str
    resource_type: Optional[str] = None
    start_time: float = 0.0
    end_time: float = 0.0
    transfer_size: Optional[float] = None
    resource_size: Optional[float] = None
    initiator_request_id: Optional[str] = None
    is_compressed: bool = False


class TraceEvent(BaseModel):
    """A trace mark or task (``ts`` and ``dur`` in ms)"""

    name: str
    ts: float = Field(..., ge=0)
    dur: float = Field(0.0, ge=0)


class PageTrace(BaseModel):
    """Performance trace captured during a navigation"""

    events: List[TraceEvent] = Field(default_factory=list)


class CoverageEntry(BaseModel):
    """
    Code coverage for one script or stylesheet

    Inline entries are embedded in the document at ``url``.
    """

    url: str
    resource_type: str = "Script"
    total_bytes: float = Field(..., ge=0)
    unused_bytes: float = Field(..., ge=0)
    inline: bool = False


class AuditArtifacts(BaseModel):
    """Everything gathered about a page that audits may read"""

    url: str
    network_records: List[NetworkRecord] = Field(default_factory=list)
    trace: Optional[PageTrace] = None
    coverage: List[CoverageEntry] = Field(default_factory=list)


class ThrottlingSettings(BaseModel):
    """Simulated network and CPU conditions"""

    rtt_ms: float = Field(150.0, ge=0)
    throughput_kbps: float = Field(1.6 * 1024, ge=0)
    cpu_slowdown_multiplier: float = Field(4.0, gt=0)


class AuditSettings(BaseModel):
    """
    Explicit per-audit configuration

    Attributes:
        gather_mode: 'navigation', 'timespan' or 'snapshot'
        throttling: Simulator throttling profile
        locale: Locale used for display strings
    """

    gather_mode: str = GATHER_MODE_NAVIGATION
    throttling: ThrottlingSettings = Field(default_factory=ThrottlingSettings)
    locale: str = "en-US"

    @field_validator("gather_mode")
    @classmethod
    def validate_gather_mode(cls, v: str) -> str:
        if v not in VALID_GATHER_MODES:
            raise ValueError(
                f"gather_mode must be one of {sorted(VALID_GATHER_MODES)}"
            )
        return v

    @classmethod
    def from_service_settings(cls, **overrides: Any) -> "AuditSettings":
        """Build audit settings whose defaults come from the service config"""
        from byte_savings.config import get_settings

        settings = get_settings()
        values: Dict[str, Any] = {
            "throttling": ThrottlingSettings(
                rtt_ms=settings.default_rtt_ms,
                throughput_kbps=settings.default_throughput_kbps,
                cpu_slowdown_multiplier=settings.default_cpu_slowdown_multiplier,
            ),
            "locale": settings.default_locale,
        }
        values.update(overrides)
        return cls(**values)


class ResourceWaste(BaseModel):
    """
    One resource judged wasteful by a detector

    Detectors may attach extra fields (e.g. ``total_bytes``); they are kept
    and reported in the opportunity details.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    url: str
    wasted_bytes: float
    total_bytes: Optional[float] = None
    wasted_percent: Optional[float] = None


class Heading(BaseModel):
    """Column description for the opportunity table"""

    key: str
    value_type: str
    label: str


class DetectorResult(BaseModel):
    """Output of a resource-specific waste detector"""

    items: List[ResourceWaste] = Field(default_factory=list)
    wasted_bytes_by_url: Optional[Dict[str, float]] = None
    headings: List[Heading] = Field(default_factory=list)
    display_value: Optional[str] = None
    explanation: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
    sorted_by: Optional[List[str]] = None


class MetricSavings(BaseModel):
    """Per-metric savings in milliseconds"""

    FCP: float = 0
    LCP: float = 0


class OpportunityDetails(BaseModel):
    """Ranked opportunity table"""

    type: str = "opportunity"
    headings: List[Heading] = Field(default_factory=list)
    items: List[Dict[str, Any]] = Field(default_factory=list)
    overall_savings_ms: float = 0
    overall_savings_bytes: float = 0
    sorted_by: List[str] = Field(default_factory=lambda: ["wasted_bytes"])


class AuditProduct(BaseModel):
    """
    Final result of a byte-efficiency audit

    Attributes:
        score: Quality score in [0, 1]
        numeric_value: Estimated savings in milliseconds
        display_value: Human readable magnitude, e.g. 'Potential savings of 12 KiB'
        details: Ranked opportunity table, absent when not applicable
        metric_savings: FCP and LCP savings (navigation mode only)
        not_applicable: True when there was nothing to estimate
    """

    model_config = ConfigDict(frozen=True)

    score: float = Field(..., ge=0, le=1)
    numeric_value: float = 0
    numeric_unit: str = "millisecond"
    display_value: str = ""
    explanation: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
    details: Optional[OpportunityDetails] = None
    metric_savings: MetricSavings = Field(default_factory=MetricSavings)
    not_applicable: bool = False


# ============================================================================
# API request / response models
# ============================================================================


class AuditRequest(BaseModel):
    """Request model for running an audit"""

    artifacts: AuditArtifacts
    settings: Optional[AuditSettings] = None


class AuditResponse(BaseModel):
    """Response model for a completed audit"""

    success: bool
    audit_id: str
    result_id: Optional[str] = None
    product: AuditProduct


class DetectorInfo(BaseModel):
    """Registered detector listing entry"""

    id: str
    title: str


class ScoreRequest(BaseModel):
    """Request model for scoring a wasted-time value"""

    wasted_ms: float


class ScoreResponse(BaseModel):
    wasted_ms: float
    score: float


class TransferSizeRequest(BaseModel):
    """Request model for transfer size estimation"""

    total_bytes: float = Field(..., ge=0)
    resource_type: Optional[str] = None
    network_record: Optional[NetworkRecord] = None


class TransferSizeResponse(BaseModel):
    transfer_size: int
