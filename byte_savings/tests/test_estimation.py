"""
Tests for transfer size estimation
"""

import math

from byte_savings.estimation import estimate_transfer_size, finite_or_zero, round_half_up
from byte_savings.models import NetworkRecord


def _record(**kwargs) -> NetworkRecord:
    defaults = {"request_id": "1", "url": "https://example.com/app.js"}
    defaults.update(kwargs)
    return NetworkRecord(**defaults)


def test_no_record_uses_stylesheet_ratio():
    assert estimate_transfer_size(None, 1000, "Stylesheet") == 200


def test_no_record_uses_script_and_document_ratio():
    assert estimate_transfer_size(None, 1000, "Script") == 330
    assert estimate_transfer_size(None, 1000, "Document") == 330


def test_no_record_falls_back_to_average_ratio():
    assert estimate_transfer_size(None, 1000, None) == 500
    assert estimate_transfer_size(None, 1000, "Image") == 500


def test_no_record_rounds_to_nearest_integer():
    # 3 * 0.5 = 1.5 rounds up
    assert estimate_transfer_size(None, 3, None) == 2
    assert estimate_transfer_size(None, 1, "Stylesheet") == 0


def test_matching_record_uses_measured_transfer_size():
    record = _record(resource_type="Script", transfer_size=4000, resource_size=12000)
    assert estimate_transfer_size(record, 1, "Script") == 4000
    assert estimate_transfer_size(record, 999999, "Script") == 4000


def test_matching_record_keeps_fractional_transfer_size():
    record = _record(resource_type="Script", transfer_size=4000.4)
    assert estimate_transfer_size(record, 1, "Script") == 4000.4


def test_matching_record_without_transfer_size_is_zero():
    record = _record(resource_type="Script", transfer_size=None)
    assert estimate_transfer_size(record, 5000, "Script") == 0


def test_inline_resource_uses_host_compression_ratio():
    document = _record(
        url="https://example.com/",
        resource_type="Document",
        transfer_size=2500,
        resource_size=10000,
    )
    # ratio 0.25
    assert estimate_transfer_size(document, 4000, "Script") == 1000


def test_zero_resource_size_assumes_no_compression():
    record = _record(resource_type="Document", transfer_size=300, resource_size=0)
    assert estimate_transfer_size(record, 500, "Script") == 500


def test_non_finite_resource_size_assumes_no_compression():
    record = _record(
        resource_type="Document", transfer_size=300, resource_size=float("inf")
    )
    assert estimate_transfer_size(record, 500, "Stylesheet") == 500


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(2.4) == 2
    assert round_half_up(0) == 0


def test_non_finite_transfer_size_counts_as_zero():
    for bad in (float("nan"), float("inf")):
        same_type = _record(resource_type="Script", transfer_size=bad)
        assert estimate_transfer_size(same_type, 500, "Script") == 0

        host = _record(resource_type="Document", transfer_size=bad, resource_size=1000)
        assert estimate_transfer_size(host, 500, "Script") == 0


def test_non_finite_total_bytes_counts_as_zero():
    record = _record(resource_type="Document", transfer_size=300, resource_size=600)
    assert estimate_transfer_size(None, float("inf"), "Script") == 0
    assert estimate_transfer_size(None, float("nan"), "Script") == 0
    assert estimate_transfer_size(record, float("inf"), "Script") == 0


def test_estimate_is_never_negative():
    record = _record(resource_type="Script", transfer_size=-10)
    assert estimate_transfer_size(record, 500, "Script") == 0
    assert estimate_transfer_size(None, -1000, "Script") == 0


def test_round_half_up_non_finite():
    assert round_half_up(float("nan")) == 0
    assert round_half_up(float("inf")) == 0


def test_finite_or_zero():
    assert finite_or_zero(None) == 0
    assert finite_or_zero(float("-inf")) == 0
    assert finite_or_zero(12.5) == 12.5
    assert not math.isnan(finite_or_zero(float("nan")))
