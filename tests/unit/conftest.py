"""Fixtures pointing at the report samples under tests/testdata."""

from pathlib import Path

import pytest

from report_merger.parsers.mobly import MoblyReportInfo

TESTDATA_DIR = Path(__file__).parent.parent / "testdata"


@pytest.fixture
def device_build_fingerprint() -> str:
    """Fingerprint handed to the Mobly parser by the caller."""
    return (
        "google/bramble/bramble:UpsideDownCake/UP1A.220722.002/8859461"
        ":userdebug/dev-keys"
    )


@pytest.fixture
def xml_report() -> Path:
    """XML report with Module1 and Module2."""
    return TESTDATA_DIR / "xml" / "test_result.xml"


@pytest.fixture
def xml_report_2() -> Path:
    """XML report with Module1, Module2 and Module3."""
    return TESTDATA_DIR / "xml" / "test_result_2.xml"


def _mobly_info(tag: str, run_dir: str, fingerprint: str) -> MoblyReportInfo:
    directory = TESTDATA_DIR / "mobly" / run_dir
    return MoblyReportInfo(
        tag=tag,
        summary_file=directory / "test_summary.yaml",
        result_attributes_file=directory / "result_attrs.yaml",
        build_fingerprint=fingerprint,
        build_attributes_file=directory / "build_attrs.yaml",
    )


@pytest.fixture
def mobly_pass_info(device_build_fingerprint: str) -> MoblyReportInfo:
    """Mobly run with one passing, one failing and one skipped test."""
    return _mobly_info("mobly-package-1", "pass", device_build_fingerprint)


@pytest.fixture
def mobly_fail_info(device_build_fingerprint: str) -> MoblyReportInfo:
    """Mobly run with one failing and one erroring test."""
    return _mobly_info("mobly-package-2", "fail", device_build_fingerprint)
