"""Canonical report model produced by every parser and consumed by the merger."""

from collections.abc import Iterable
from enum import StrEnum
from typing import Self

from pydantic import Field, NonNegativeInt, model_validator

from report_merger.models.base import Model

START_KEY = "start"
END_KEY = "end"
START_DISPLAY_KEY = "start_display"
END_DISPLAY_KEY = "end_display"
DEVICES_KEY = "devices"

# Run-level attributes every report carries, in canonical order
REPORT_ATTRIBUTE_KEYS: tuple[str, ...] = (
    START_KEY,
    END_KEY,
    START_DISPLAY_KEY,
    END_DISPLAY_KEY,
    DEVICES_KEY,
)


class TestStatus(StrEnum):
    """Result codes understood by the merger."""

    __test__ = False

    PASS = "pass"
    FAIL = "fail"
    SKIP = "skip"


class Attribute(Model):
    """A single key/value pair; keys may repeat within a report."""

    key: str
    value: str = ""


class BuildInfo(Model):
    """Build metadata of the device under test."""

    fingerprint: str = Field(default="", description="Device build fingerprint")
    attributes: tuple[Attribute, ...] = ()


class Run(Model):
    """One opaque run-history entry, attributes kept verbatim."""

    attributes: tuple[Attribute, ...] = ()


class RunHistory(Model):
    """Ordered history of the runs that produced a report."""

    runs: tuple[Run, ...] = ()

    @property
    def run_count(self) -> int:
        return len(self.runs)


class Summary(Model):
    """Report-level counters."""

    passed: NonNegativeInt = 0
    failed: NonNegativeInt = 0
    modules_done: NonNegativeInt = 0
    modules_total: NonNegativeInt = 0

    @model_validator(mode="after")
    def _check_modules_done(self) -> Self:
        if self.modules_done > self.modules_total:
            raise ValueError(
                f"modules_done ({self.modules_done}) exceeds "
                f"modules_total ({self.modules_total})"
            )
        return self


class Test(Model):
    """A single test execution."""

    __test__ = False

    name: str
    result: TestStatus | str = Field(
        default=TestStatus.PASS,
        union_mode="left_to_right",
        description="Known result codes become TestStatus, others stay raw",
    )
    skipped: bool = False


class TestCase(Model):
    """Named group of tests, identified by name within its module."""

    __test__ = False

    name: str
    tests: tuple[Test, ...] = ()


class Module(Model):
    """A test suite/package within a run, identified by name."""

    name: str
    done: bool = False
    total_tests: NonNegativeInt = 0
    passed: NonNegativeInt = 0
    runtime_millis: NonNegativeInt = 0
    test_cases: tuple[TestCase, ...] = ()

    @property
    def failed(self) -> int:
        """Number of contained tests whose result is a failure."""
        return sum(
            1
            for test_case in self.test_cases
            for test in test_case.tests
            if test.result == TestStatus.FAIL
        )


class Result(Model):
    """One full test run, or the outcome of merging several."""

    attributes: tuple[Attribute, ...] = ()
    build: BuildInfo = BuildInfo()
    run_history: RunHistory = RunHistory()
    summary: Summary = Summary()
    modules: tuple[Module, ...] = ()

    def attribute(self, key: str) -> str | None:
        """Return the value of the first attribute named key, if any."""
        for attribute in self.attributes:
            if attribute.key == key:
                return attribute.value
        return None


def summarize_modules(modules: Iterable[Module]) -> Summary:
    """Compute report counters from a set of modules."""
    modules = list(modules)
    return Summary(
        passed=sum(module.passed for module in modules),
        failed=sum(module.failed for module in modules),
        modules_done=sum(1 for module in modules if module.done),
        modules_total=len(modules),
    )
