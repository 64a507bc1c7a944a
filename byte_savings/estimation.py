"""
Transfer size estimation
Guesses how many bytes a resource used on the network from its decoded size
"""

import math
from typing import Optional

from byte_savings.constants import (
    COMPRESSION_RATIO_BY_RESOURCE_TYPE,
    DEFAULT_COMPRESSION_RATIO,
)
from byte_savings.models import NetworkRecord


def finite_or_zero(value: Optional[float]) -> float:
    """Unmeasured or non-finite sizes count as zero"""
    if value is None or not math.isfinite(value):
        return 0
    return value


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives"""
    if not math.isfinite(value):
        return 0
    return int(math.floor(value + 0.5))


def estimate_transfer_size(
    network_record: Optional[NetworkRecord],
    total_bytes: float,
    resource_type: Optional[str] = None,
) -> float:
    """
    Estimate the bytes a resource would have consumed on the network

    Three cases:

    * no record: apply a typical gzip ratio for the resource type
    * record of the same type: the measured transfer size wins
    * record of another type (e.g. a script inlined in a document): reuse the
      host record's compression ratio for ``total_bytes``

    Args:
        network_record: Observed request, if any
        total_bytes: Uncompressed size of the resource
        resource_type: DevTools resource type of the resource

    Returns:
        Estimated transfer size in bytes, never negative
    """
    total_bytes = max(finite_or_zero(total_bytes), 0)

    if network_record is None:
        ratio = COMPRESSION_RATIO_BY_RESOURCE_TYPE.get(
            resource_type, DEFAULT_COMPRESSION_RATIO
        )
        return round_half_up(total_bytes * ratio)

    if network_record.resource_type == resource_type:
        return max(finite_or_zero(network_record.transfer_size), 0)

    transfer_size = max(finite_or_zero(network_record.transfer_size), 0)
    resource_size = finite_or_zero(network_record.resource_size)
    # Invalid sizes mean we assume no compression
    if resource_size > 0:
        compression_ratio = transfer_size / resource_size
    else:
        compression_ratio = 1.0
    return round_half_up(total_bytes * compression_ratio)
