"""
Tests for the bundled waste detectors
"""

import pytest

from byte_savings.detectors import (
    DETECTORS,
    TextCompressionDetector,
    UnusedCodeDetector,
    get_detector,
)
from byte_savings.exceptions import UnknownAuditError
from byte_savings.models import AuditArtifacts, AuditSettings, CoverageEntry, NetworkRecord

PAGE_URL = "https://example.com/"


def test_unused_code_covers_all_estimation_paths():
    records = [
        NetworkRecord(
            request_id="1", url=PAGE_URL, resource_type="Document",
            transfer_size=2500, resource_size=10000,
        ),
        NetworkRecord(
            request_id="2", url="https://example.com/app.js", resource_type="Script",
            transfer_size=4000, resource_size=12000,
        ),
    ]
    coverage = [
        # measured script: 4000 * 0.75
        CoverageEntry(url="https://example.com/app.js", total_bytes=12000, unused_bytes=9000),
        # inline in the document: 20000 * 0.25 ratio * 0.8
        CoverageEntry(url=PAGE_URL, total_bytes=20000, unused_bytes=16000, inline=True),
        # never observed: 30000 * 0.33 * 0.5
        CoverageEntry(url="https://cdn.example.com/vendor.js", total_bytes=30000, unused_bytes=15000),
        # below the reporting threshold
        CoverageEntry(
            url="https://example.com/tiny.css", resource_type="Stylesheet",
            total_bytes=1000, unused_bytes=500,
        ),
        CoverageEntry(url="https://example.com/used.js", total_bytes=1000, unused_bytes=0),
    ]
    artifacts = AuditArtifacts(url=PAGE_URL, network_records=records, coverage=coverage)

    result = UnusedCodeDetector().detect(artifacts, records, AuditSettings())

    wasted = {item.url: item.wasted_bytes for item in result.items}
    assert wasted == {
        "https://example.com/app.js": 3000,
        PAGE_URL: 4000,
        "https://cdn.example.com/vendor.js": 4950,
    }
    assert result.wasted_bytes_by_url["https://example.com/tiny.css"] == 100
    assert "https://example.com/used.js" not in result.wasted_bytes_by_url

    inline_item = next(item for item in result.items if item.url == PAGE_URL)
    assert inline_item.total_bytes == 5000
    assert inline_item.wasted_percent == pytest.approx(80)
    assert [h.key for h in result.headings] == ["url", "total_bytes", "wasted_bytes"]


def test_text_compression_flags_uncompressed_text():
    records = [
        NetworkRecord(
            request_id="1", url="https://example.com/big.js", resource_type="Script",
            transfer_size=50000, resource_size=50000,
        ),
        NetworkRecord(
            request_id="2", url="https://example.com/gz.js", resource_type="Script",
            transfer_size=50000, resource_size=50000, is_compressed=True,
        ),
        NetworkRecord(
            request_id="3", url="https://example.com/small.css", resource_type="Stylesheet",
            transfer_size=1000, resource_size=1000,
        ),
        NetworkRecord(
            request_id="4", url="https://example.com/hero.png", resource_type="Image",
            transfer_size=90000, resource_size=90000,
        ),
        # saves 1990 bytes but under 10%
        NetworkRecord(
            request_id="5", url="https://example.com/dense.js", resource_type="Script",
            transfer_size=100000, resource_size=297000,
        ),
    ]
    artifacts = AuditArtifacts(url=PAGE_URL, network_records=records)

    result = TextCompressionDetector().detect(artifacts, records, AuditSettings())

    assert len(result.items) == 1
    item = result.items[0]
    assert item.url == "https://example.com/big.js"
    assert item.wasted_bytes == 33500
    assert item.total_bytes == 50000
    assert result.wasted_bytes_by_url is None


def test_registry():
    assert set(DETECTORS) == {"unused-code", "text-compression"}
    assert isinstance(get_detector("text-compression"), TextCompressionDetector)
    with pytest.raises(UnknownAuditError):
        get_detector("does-not-exist")


def test_non_finite_sizes_are_not_reported():
    records = [
        NetworkRecord(
            request_id="1", url="https://example.com/app.js", resource_type="Script",
            transfer_size=float("nan"), resource_size=50000,
        ),
        NetworkRecord(
            request_id="2", url="https://example.com/site.css", resource_type="Stylesheet",
            transfer_size=20000, resource_size=float("nan"),
        ),
    ]
    coverage = [
        CoverageEntry(url="https://example.com/app.js", total_bytes=50000, unused_bytes=40000),
    ]
    artifacts = AuditArtifacts(url=PAGE_URL, network_records=records, coverage=coverage)

    unused = UnusedCodeDetector().detect(artifacts, records, AuditSettings())
    assert unused.items == []
    assert unused.wasted_bytes_by_url == {"https://example.com/app.js": 0}

    compression = TextCompressionDetector().detect(artifacts, records, AuditSettings())
    # falls back to the transfer size: 20000 -> 4000
    assert [item.wasted_bytes for item in compression.items] == [16000]
