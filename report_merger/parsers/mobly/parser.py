"""Parser for Mobly test summaries and their side-channel attribute files."""

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from report_merger.models.report import (
    REPORT_ATTRIBUTE_KEYS,
    Attribute,
    BuildInfo,
    Module,
    Result,
    Test,
    TestCase,
    TestStatus,
    summarize_modules,
)
from report_merger.parsers.base import ReportParseError
from report_merger.parsers.mobly.attributes import load_attributes
from report_merger.parsers.mobly.models import (
    ENTRY_TYPE_KEY,
    TYPE_RECORD,
    TYPE_SUMMARY,
    TYPE_TEST_NAME_LIST,
    MoblyReportInfo,
    MoblyRecord,
)

log = logging.getLogger(__name__)


@dataclass(kw_only=True)
class _SuiteSegment:
    """One suite run within a summary stream, closed by a Summary entry."""

    begin_time: int | None = None
    end_time: int | None = None
    terminated: bool = False

    def include(self, record: MoblyRecord) -> None:
        if record.begin_time is not None and (
            self.begin_time is None or record.begin_time < self.begin_time
        ):
            self.begin_time = record.begin_time
        if record.end_time is not None and (
            self.end_time is None or record.end_time > self.end_time
        ):
            self.end_time = record.end_time

    @property
    def runtime_millis(self) -> int:
        if self.begin_time is None or self.end_time is None:
            return 0
        return max(self.end_time - self.begin_time, 0)


@dataclass(kw_only=True)
class SummaryScan:
    """Aggregates collected while scanning a summary stream."""

    segments: list[_SuiteSegment] = field(default_factory=list)
    tests_by_class: dict[str, list[Test]] = field(default_factory=dict)
    passed: int = 0
    total_tests: int = 0

    @property
    def terminated(self) -> bool:
        return any(segment.terminated for segment in self.segments)

    @property
    def done(self) -> bool:
        return all(segment.terminated for segment in self.segments)

    @property
    def runtime_millis(self) -> int:
        return sum(segment.runtime_millis for segment in self.segments)

    def start_segment(self) -> _SuiteSegment:
        segment = _SuiteSegment()
        self.segments.append(segment)
        return segment

    def open_segment(self) -> _SuiteSegment:
        """Return the segment still accepting records, starting one if needed."""
        if not self.segments or self.segments[-1].terminated:
            return self.start_segment()
        return self.segments[-1]

    def add_record(self, record: MoblyRecord) -> None:
        self.open_segment().include(record)
        if record.is_class_level:
            return
        status = record.status
        self.tests_by_class.setdefault(record.test_class, []).append(
            Test(
                name=record.test_name,
                result=status,
                skipped=status == TestStatus.SKIP,
            )
        )
        self.total_tests += 1
        if status == TestStatus.PASS:
            self.passed += 1

    def end_segment(self) -> None:
        if self.segments and not self.segments[-1].terminated:
            self.segments[-1].terminated = True
        elif not self.segments:
            self.start_segment().terminated = True


@dataclass(frozen=True, kw_only=True)
class MoblyReportParser:
    """Reads one Mobly run into a canonical report with a single module."""

    async def parse(self, source: MoblyReportInfo) -> Result:
        """Parse the run described by ``source`` in a worker thread."""
        return await asyncio.to_thread(self.parse_info, source)

    def parse_info(self, info: MoblyReportInfo) -> Result:
        """Parse the run described by ``info``.

        The module is named after ``info.tag`` and the build fingerprint comes
        from ``info.build_fingerprint``; attribute files are optional.

        Raises:
            ReportParseError: If the summary is unreadable, malformed or never
                reaches a terminating Summary entry, or if an attribute file
                exists but is malformed

        """
        log.debug("Parsing Mobly report %s", info)
        scan = scan_summary(info.summary_file)
        module = Module(
            name=info.tag,
            done=scan.done,
            total_tests=scan.total_tests,
            passed=scan.passed,
            runtime_millis=scan.runtime_millis,
            test_cases=tuple(
                TestCase(name=test_class, tests=tuple(tests))
                for test_class, tests in scan.tests_by_class.items()
            ),
        )
        return Result(
            attributes=with_report_attributes(
                load_attributes(info.result_attributes_file)
            ),
            build=BuildInfo(
                fingerprint=info.build_fingerprint,
                attributes=tuple(load_attributes(info.build_attributes_file)),
            ),
            summary=summarize_modules([module]),
            modules=(module,),
        )


def with_report_attributes(
    attributes: Sequence[Attribute],
) -> tuple[Attribute, ...]:
    """Append empty run-level attributes for every key ``attributes`` lacks.

    Mobly summaries carry no run-level wall-clock or device metadata, so the
    keys are added empty to match the key set of XML reports.
    """
    present = {attribute.key for attribute in attributes}
    return (
        *attributes,
        *(Attribute(key=key) for key in REPORT_ATTRIBUTE_KEYS if key not in present),
    )


def scan_summary(summary_file: Path) -> SummaryScan:
    """Scan a Mobly summary stream into per-class tests and run aggregates."""
    entries = _load_entries(summary_file)

    scan = SummaryScan()
    for position, entry in enumerate(entries):
        entry_type = entry.get(ENTRY_TYPE_KEY)
        if entry_type == TYPE_TEST_NAME_LIST:
            scan.open_segment()
        elif entry_type == TYPE_RECORD:
            try:
                record = MoblyRecord.model_validate(entry)
            except ValidationError as e:
                raise ReportParseError(
                    summary_file, f"Invalid record at entry {position}: {e}"
                ) from e
            scan.add_record(record)
        elif entry_type == TYPE_SUMMARY:
            scan.end_segment()

    if not scan.terminated:
        raise ReportParseError(
            summary_file, "Summary stream has no terminating Summary entry"
        )
    return scan


def _load_entries(summary_file: Path) -> Sequence[Mapping[str, Any]]:
    try:
        with summary_file.open("rb") as f:
            documents = [doc for doc in yaml.safe_load_all(f) if doc is not None]
    except OSError as e:
        raise ReportParseError(summary_file, f"Cannot read summary: {e}") from e
    except yaml.YAMLError as e:
        raise ReportParseError(summary_file, f"Invalid YAML: {e}") from e

    for position, doc in enumerate(documents):
        if not isinstance(doc, Mapping):
            raise ReportParseError(
                summary_file, f"Entry {position} is not a mapping: {doc!r}"
            )
    return documents
