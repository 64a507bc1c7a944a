"""
Shared constants for the Byte Savings Backend
Centralizes scoring anchors and estimation heuristics so audits and the API agree
"""

# ============================================================================
# Score Curve
# ============================================================================

# Control points of the wasted-ms -> score curve
WASTED_MS_FOR_AVERAGE = 300
WASTED_MS_FOR_POOR = 750
WASTED_MS_FOR_SCORE_OF_ZERO = 5000

SCORE_CONTROL_POINTS = (
    (0, 1.0),
    (WASTED_MS_FOR_AVERAGE, 0.75),
    (WASTED_MS_FOR_POOR, 0.5),
    (WASTED_MS_FOR_SCORE_OF_ZERO, 0.0),
)

# Savings are surfaced in multiples of this many milliseconds
SAVINGS_ROUNDING_MS = 10

# ============================================================================
# Transfer Size Estimation
# ============================================================================

# Typical gzip ratios when no network record was observed.
# See https://discuss.httparchive.org/t/file-size-and-compression-savings/145
COMPRESSION_RATIO_BY_RESOURCE_TYPE = {
    "Stylesheet": 0.2,
    "Script": 0.33,
    "Document": 0.33,
}
DEFAULT_COMPRESSION_RATIO = 0.5

# ============================================================================
# Resource Types
# ============================================================================

TEXT_RESOURCE_TYPES = {"Document", "Script", "Stylesheet"}

# ============================================================================
# Gather Modes
# ============================================================================

GATHER_MODE_NAVIGATION = "navigation"
GATHER_MODE_TIMESPAN = "timespan"
GATHER_MODE_SNAPSHOT = "snapshot"

VALID_GATHER_MODES = {
    GATHER_MODE_NAVIGATION,
    GATHER_MODE_TIMESPAN,
    GATHER_MODE_SNAPSHOT,
}

# ============================================================================
# Trace / Simulation
# ============================================================================

TRACE_EVENT_FCP = "firstContentfulPaint"
TRACE_EVENT_LCP = "largestContentfulPaint"
TRACE_EVENT_TASK = "RunTask"

# CPU tasks longer than this (after slowdown) block interactivity
LONG_TASK_THRESHOLD_MS = 50

# ============================================================================
# Detector Thresholds
# ============================================================================

IGNORE_THRESHOLD_IN_BYTES = 1400
IGNORE_THRESHOLD_IN_PERCENT = 0.1
UNUSED_CODE_IGNORE_THRESHOLD_IN_BYTES = 2048
