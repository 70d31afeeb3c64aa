"""Parser for compatibility-suite ``test_result.xml`` documents."""

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from xml.etree import ElementTree

from pydantic import ValidationError

from report_merger.models.report import (
    REPORT_ATTRIBUTE_KEYS,
    Attribute,
    BuildInfo,
    Module,
    Result,
    Run,
    RunHistory,
    Summary,
    Test,
    TestCase,
    TestStatus,
    summarize_modules,
)
from report_merger.parsers.base import ReportParseError

log = logging.getLogger(__name__)

ROOT_TAG = "Result"

BUILD_FINGERPRINT_KEY = "build_fingerprint"

RESULT_CODES: Mapping[str, TestStatus] = {
    status.value: status for status in TestStatus
}


def parse_result_code(code: str) -> TestStatus | str:
    """Map a harness result code, keeping unknown codes as-is."""
    return RESULT_CODES.get(code, code)


@dataclass(frozen=True, kw_only=True)
class XmlReportParser:
    """Reads one suite-result XML document into a canonical report."""

    async def parse(self, source: Path | str) -> Result:
        """Parse the document at ``source`` in a worker thread."""
        return await asyncio.to_thread(self.parse_file, Path(source))

    def parse_file(self, path: Path) -> Result:
        """Parse the document at ``path``.

        Raises:
            ReportParseError: If the file is unreadable, is not well-formed XML,
                has no ``Result`` root or carries invalid counters

        """
        log.debug("Parsing XML report %s", path)
        try:
            root = ElementTree.fromstring(path.read_bytes())
        except OSError as e:
            raise ReportParseError(path, f"Cannot read report: {e}") from e
        except ElementTree.ParseError as e:
            raise ReportParseError(path, f"Invalid XML: {e}") from e

        if root.tag != ROOT_TAG:
            raise ReportParseError(
                path, f"Expected <{ROOT_TAG}> root element, got <{root.tag}>"
            )

        try:
            return _parse_root(root)
        except (ValueError, ValidationError) as e:
            raise ReportParseError(path, f"Invalid report content: {e}") from e


def _parse_root(root: ElementTree.Element) -> Result:
    modules = [_parse_module(element) for element in root.iter("Module")]
    summary_element = root.find("Summary")
    summary = (
        _parse_summary(summary_element)
        if summary_element is not None
        else summarize_modules(modules)
    )
    return Result(
        attributes=tuple(
            Attribute(key=key, value=root.get(key, ""))
            for key in REPORT_ATTRIBUTE_KEYS
        ),
        build=_parse_build(root.find("Build")),
        run_history=RunHistory(
            runs=tuple(
                Run(attributes=_attributes_of(run))
                for run in root.iterfind("RunHistory/Run")
            )
        ),
        summary=summary,
        modules=tuple(modules),
    )


def _attributes_of(element: ElementTree.Element) -> tuple[Attribute, ...]:
    return tuple(Attribute(key=key, value=value) for key, value in element.items())


def _int_attribute(element: ElementTree.Element, key: str) -> int:
    value = element.get(key, "").strip()
    if not value:
        return 0
    try:
        return int(value)
    except ValueError:
        raise ValueError(
            f"<{element.tag}> attribute {key}={value!r} is not an integer"
        ) from None


def _bool_attribute(element: ElementTree.Element, key: str) -> bool:
    return element.get(key, "").strip().lower() == "true"


def _parse_build(element: ElementTree.Element | None) -> BuildInfo:
    if element is None:
        return BuildInfo()
    return BuildInfo(
        fingerprint=element.get(BUILD_FINGERPRINT_KEY, ""),
        attributes=_attributes_of(element),
    )


def _parse_summary(element: ElementTree.Element) -> Summary:
    return Summary(
        passed=_int_attribute(element, "pass"),
        failed=_int_attribute(element, "failed"),
        modules_done=_int_attribute(element, "modules_done"),
        modules_total=_int_attribute(element, "modules_total"),
    )


def _parse_module(element: ElementTree.Element) -> Module:
    return Module(
        name=element.get("name", ""),
        done=_bool_attribute(element, "done"),
        total_tests=_int_attribute(element, "total_tests"),
        passed=_int_attribute(element, "pass"),
        runtime_millis=_int_attribute(element, "runtime"),
        test_cases=tuple(
            TestCase(
                name=test_case.get("name", ""),
                tests=tuple(_parse_test(test) for test in test_case.iter("Test")),
            )
            for test_case in element.iter("TestCase")
        ),
    )


def _parse_test(element: ElementTree.Element) -> Test:
    return Test(
        name=element.get("name", ""),
        result=parse_result_code(element.get("result", "")),
        skipped=_bool_attribute(element, "skipped"),
    )
