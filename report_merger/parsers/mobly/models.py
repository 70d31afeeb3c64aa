"""Pydantic models for Mobly ``test_summary.yaml`` documents."""

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from report_merger.models.report import TestStatus

ENTRY_TYPE_KEY = "Type"
TYPE_TEST_NAME_LIST = "TestNameList"
TYPE_RECORD = "Record"
TYPE_SUMMARY = "Summary"

# Record names Mobly uses for class-level setup/teardown outcomes
CLASS_LEVEL_TEST_NAMES = frozenset({"setup_class", "teardown_class"})

MOBLY_RESULT_TO_STATUS: Mapping[str, TestStatus] = {
    "PASS": TestStatus.PASS,
    "FAIL": TestStatus.FAIL,
    "ERROR": TestStatus.FAIL,
    "SKIP": TestStatus.SKIP,
}


@dataclass(frozen=True, kw_only=True)
class MoblyReportInfo:
    """Locations of one Mobly run's outputs, tagged by the caller."""

    tag: str
    summary_file: Path
    result_attributes_file: Path
    build_fingerprint: str
    build_attributes_file: Path

    def __str__(self) -> str:
        return f"{self.tag} ({self.summary_file})"


class MoblyRecord(BaseModel):
    """A ``Type: Record`` entry of the summary stream."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    test_class: str = Field(..., alias="Test Class")
    test_name: str = Field(..., alias="Test Name")
    result: str | None = Field(default=None, alias="Result")
    begin_time: int | None = Field(default=None, alias="Begin Time")
    end_time: int | None = Field(default=None, alias="End Time")

    @property
    def is_class_level(self) -> bool:
        return self.test_name in CLASS_LEVEL_TEST_NAMES

    @property
    def status(self) -> TestStatus | str:
        """Canonical result; unknown Mobly results are kept lower-cased."""
        raw = (self.result or "").upper()
        return MOBLY_RESULT_TO_STATUS.get(raw, raw.lower())
