"""Tests for concurrent batch parsing."""

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field

import pytest

from report_merger.models.report import Result
from report_merger.parsers.base import ReportParseError, parse_many
from report_merger.testing.factories import ResultFactory


@dataclass(frozen=True, kw_only=True)
class FakeParser:
    """Parser returning canned results, optionally after a delay."""

    results: Mapping[str, Result | Exception]
    delays: Mapping[str, float] = field(default_factory=dict)
    active: list[int] = field(default_factory=lambda: [0, 0])

    async def parse(self, source: str) -> Result:
        self.active[0] += 1
        self.active[1] = max(self.active[1], self.active[0])
        try:
            await asyncio.sleep(self.delays.get(source, 0))
            outcome = self.results[source]
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        finally:
            self.active[0] -= 1


async def test_returns_results_in_input_order() -> None:
    """Results follow input order, not completion order."""
    first, second = ResultFactory.build(), ResultFactory.build()
    parser = FakeParser(
        results={"slow": first, "fast": second}, delays={"slow": 0.05}
    )

    results = await parse_many(parser, ["slow", "fast"])

    assert [result.index for result in results] == [0, 1]
    assert [result.source for result in results] == ["slow", "fast"]
    assert results[0].report == first
    assert results[1].report == second


async def test_isolates_failures(caplog: pytest.LogCaptureFixture) -> None:
    """A failing input does not abort its siblings."""
    report = ResultFactory.build()
    error = ReportParseError("bad.xml", "Invalid XML")
    parser = FakeParser(results={"bad.xml": error, "good.xml": report})

    results = await parse_many(parser, ["bad.xml", "good.xml"])

    assert results[0].ok is False
    assert results[0].report is None
    assert results[0].error is error
    assert results[1].ok is True
    assert results[1].report == report
    assert "Failed to parse report #0 (bad.xml)" in caplog.text


async def test_bounds_concurrency() -> None:
    """No more than max_concurrency parses run at once."""
    sources = [f"report-{index}.xml" for index in range(6)]
    parser = FakeParser(
        results={source: ResultFactory.build() for source in sources},
        delays={source: 0.01 for source in sources},
    )

    results = await parse_many(parser, sources, max_concurrency=2)

    assert all(result.ok for result in results)
    assert parser.active[1] == 2


async def test_returns_empty_for_no_sources() -> None:
    """No sources produce no results."""
    assert await parse_many(FakeParser(results={}), []) == []
