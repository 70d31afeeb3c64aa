"""Merge parsed reports into a single consolidated report."""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from report_merger.models.config import DonePolicy, MergeConfig
from report_merger.models.report import (
    DEVICES_KEY,
    END_DISPLAY_KEY,
    END_KEY,
    REPORT_ATTRIBUTE_KEYS,
    START_DISPLAY_KEY,
    START_KEY,
    Attribute,
    BuildInfo,
    Module,
    Result,
    Run,
    RunHistory,
    Test,
    TestCase,
    summarize_modules,
)
from report_merger.models.result import ParseResult
from report_merger.parsers.base import ReportParser, parse_many
from report_merger.parsers.mobly import MoblyReportInfo, MoblyReportParser
from report_merger.parsers.xml_parser import XmlReportParser

log = logging.getLogger(__name__)

type ReportSource = Path | str | MoblyReportInfo

DEVICES_SEPARATOR = ","


@dataclass(frozen=True, kw_only=True)
class FormatDispatchParser:
    """Parses any supported input, choosing the format by the input's shape."""

    xml_parser: ReportParser[Path | str] = field(default_factory=XmlReportParser)
    mobly_parser: ReportParser[MoblyReportInfo] = field(
        default_factory=MoblyReportParser
    )

    async def parse(self, source: ReportSource) -> Result:
        if isinstance(source, MoblyReportInfo):
            return await self.mobly_parser.parse(source)
        return await self.xml_parser.parse(source)


@dataclass(frozen=True, kw_only=True)
class ReportMerger:
    """Parses report inputs and folds the parsed ones into one report."""

    config: MergeConfig = field(default_factory=MergeConfig)
    parser: FormatDispatchParser = field(default_factory=FormatDispatchParser)

    async def parse_reports(
        self, inputs: Sequence[ReportSource]
    ) -> Sequence[ParseResult[ReportSource]]:
        """Parse every input; failures are reported per input."""
        log.info("Parsing %d report(s)...", len(inputs))
        results = await parse_many(
            self.parser, inputs, max_concurrency=self.config.max_concurrency
        )
        log.info(
            "Parsed %d of %d report(s) successfully",
            sum(1 for result in results if result.ok),
            len(results),
        )
        return results

    async def parse_xml_reports(
        self, paths: Sequence[Path | str]
    ) -> Sequence[ParseResult[ReportSource]]:
        return await self.parse_reports(paths)

    async def parse_mobly_reports(
        self, infos: Sequence[MoblyReportInfo]
    ) -> Sequence[ParseResult[ReportSource]]:
        return await self.parse_reports(infos)

    async def merge_reports(self, inputs: Sequence[ReportSource]) -> Result | None:
        """Parse and merge the given inputs.

        Inputs are folded in the given order, which decides every tie-break
        (earliest start, latest end, build fingerprint, attribute order).

        Args:
            inputs: XML report paths and/or Mobly report bundles

        Returns:
            The merged report, or None if no input could be parsed

        """
        return self.merge_parsed(await self.parse_reports(inputs))

    async def merge_xml_reports(self, paths: Sequence[Path | str]) -> Result | None:
        return await self.merge_reports(paths)

    async def merge_mobly_reports(
        self, infos: Sequence[MoblyReportInfo]
    ) -> Result | None:
        return await self.merge_reports(infos)

    def merge_parsed(
        self, parse_results: Sequence[ParseResult[ReportSource]]
    ) -> Result | None:
        """Fold the successfully parsed reports, in input order."""
        reports = [
            result.report
            for result in sorted(parse_results, key=lambda result: result.index)
            if result.report is not None
        ]
        if not reports:
            log.warning("No report could be parsed, nothing to merge")
            return None

        merged = _fold(reports, self.config.done_policy)
        log.info(
            "Merged %d report(s) into %d module(s)",
            len(reports),
            merged.summary.modules_total,
        )
        return merged


def fold_reports(
    reports: Iterable[Result], done_policy: DonePolicy = "all"
) -> Result | None:
    """Left-fold reports into one; None if there is nothing to fold."""
    reports = list(reports)
    if not reports:
        return None
    return _fold(reports, done_policy)


def _fold(reports: Sequence[Result], done_policy: DonePolicy) -> Result:
    fold = _ReportFold(done_policy=done_policy)
    for report in reports:
        fold.add(report)
    return fold.build()


def combine_modules(
    left: Module, right: Module, done_policy: DonePolicy = "all"
) -> Module:
    """Combine two modules sharing a name."""
    done = (
        left.done and right.done if done_policy == "all" else left.done or right.done
    )
    return Module(
        name=left.name,
        done=done,
        total_tests=left.total_tests + right.total_tests,
        passed=left.passed + right.passed,
        runtime_millis=left.runtime_millis + right.runtime_millis,
        test_cases=combine_test_cases(left.test_cases, right.test_cases),
    )


def combine_test_cases(
    left: Iterable[TestCase], right: Iterable[TestCase]
) -> tuple[TestCase, ...]:
    """Concatenate tests of same-named test cases, keeping first-seen order."""
    names: list[str] = []
    tests_by_name: dict[str, list[Test]] = {}
    for test_case in (*left, *right):
        if test_case.name not in tests_by_name:
            names.append(test_case.name)
            tests_by_name[test_case.name] = []
        tests_by_name[test_case.name].extend(test_case.tests)
    return tuple(
        TestCase(name=name, tests=tuple(tests_by_name[name])) for name in names
    )


@dataclass(frozen=True, kw_only=True)
class _Timestamp:
    millis: int
    raw: str
    display: str


def _timestamp(raw: str, display: str) -> _Timestamp | None:
    if not raw.strip():
        return None
    try:
        return _Timestamp(millis=int(raw), raw=raw, display=display)
    except ValueError:
        log.warning("Ignoring non-numeric timestamp %r", raw)
        return None


@dataclass(kw_only=True)
class _AttributeFold:
    """Run-level attribute tie-breaks plus pass-through of everything else."""

    others: list[Attribute] = field(default_factory=list)
    start: _Timestamp | None = None
    end: _Timestamp | None = None
    devices: list[str] = field(default_factory=list)

    def add(self, attributes: Iterable[Attribute]) -> None:
        run_values: dict[str, str] = {}
        for attribute in attributes:
            if attribute.key in REPORT_ATTRIBUTE_KEYS:
                run_values.setdefault(attribute.key, attribute.value)
            else:
                self.others.append(attribute)

        start = _timestamp(
            run_values.get(START_KEY, ""), run_values.get(START_DISPLAY_KEY, "")
        )
        if start is not None and (
            self.start is None or start.millis < self.start.millis
        ):
            self.start = start

        end = _timestamp(
            run_values.get(END_KEY, ""), run_values.get(END_DISPLAY_KEY, "")
        )
        if end is not None and (self.end is None or end.millis > self.end.millis):
            self.end = end

        if devices := run_values.get(DEVICES_KEY, ""):
            self.devices.append(devices)

    def build(self) -> tuple[Attribute, ...]:
        return (
            *self.others,
            Attribute(key=START_KEY, value=self.start.raw if self.start else ""),
            Attribute(key=END_KEY, value=self.end.raw if self.end else ""),
            Attribute(
                key=START_DISPLAY_KEY, value=self.start.display if self.start else ""
            ),
            Attribute(key=END_DISPLAY_KEY, value=self.end.display if self.end else ""),
            Attribute(key=DEVICES_KEY, value=DEVICES_SEPARATOR.join(self.devices)),
        )


@dataclass(kw_only=True)
class _ModuleIndex:
    """Modules keyed by name, kept in first-seen order."""

    done_policy: DonePolicy
    names: list[str] = field(default_factory=list)
    modules: dict[str, Module] = field(default_factory=dict)

    def add(self, module: Module) -> None:
        if (existing := self.modules.get(module.name)) is not None:
            self.modules[module.name] = combine_modules(
                existing, module, self.done_policy
            )
        else:
            self.names.append(module.name)
            self.modules[module.name] = module

    def ordered(self) -> tuple[Module, ...]:
        return tuple(self.modules[name] for name in self.names)


@dataclass(kw_only=True)
class _ReportFold:
    """Accumulator of the merge fold; starts empty."""

    done_policy: DonePolicy
    attributes: _AttributeFold = field(default_factory=_AttributeFold)
    fingerprint: str = ""
    build_attributes: list[Attribute] = field(default_factory=list)
    runs: list[Run] = field(default_factory=list)
    modules: _ModuleIndex = field(init=False)

    def __post_init__(self) -> None:
        self.modules = _ModuleIndex(done_policy=self.done_policy)

    def add(self, report: Result) -> None:
        self.attributes.add(report.attributes)
        if not self.fingerprint and report.build.fingerprint:
            self.fingerprint = report.build.fingerprint
        self.build_attributes.extend(report.build.attributes)
        self.runs.extend(report.run_history.runs)
        for module in report.modules:
            self.modules.add(module)

    def build(self) -> Result:
        modules = self.modules.ordered()
        return Result(
            attributes=self.attributes.build(),
            build=BuildInfo(
                fingerprint=self.fingerprint,
                attributes=tuple(self.build_attributes),
            ),
            run_history=RunHistory(runs=tuple(self.runs)),
            summary=summarize_modules(modules),
            modules=modules,
        )
