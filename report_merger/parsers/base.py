"""Parser protocol and concurrent batch parsing."""

import asyncio
import logging
from collections.abc import Sequence
from typing import Protocol

from report_merger.models.report import Result
from report_merger.models.result import ParseResult

log = logging.getLogger(__name__)


class ReportParseError(Exception):
    """Raised when a single report cannot be parsed."""

    def __init__(self, source: object, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


class ReportParser[SourceT](Protocol):
    """Turns one input descriptor into a canonical report."""

    async def parse(self, source: SourceT) -> Result:
        """Parse a single input.

        Raises:
            ReportParseError: If the input is missing, unreadable or malformed

        """
        ...


async def parse_many[SourceT](
    parser: ReportParser[SourceT],
    sources: Sequence[SourceT],
    max_concurrency: int = 8,
) -> Sequence[ParseResult[SourceT]]:
    """Parse every source, isolating failures per input.

    Args:
        parser: Parser used for every source
        sources: Input descriptors, in caller order
        max_concurrency: Maximum number of parses running at once

    Returns:
        One parse result per source, in the order of ``sources``

    """
    semaphore = asyncio.Semaphore(max_concurrency)

    async def _parse(source: SourceT) -> Result:
        async with semaphore:
            return await parser.parse(source)

    outcomes = await asyncio.gather(
        *(_parse(source) for source in sources), return_exceptions=True
    )
    return [
        _to_parse_result(index, source, outcome)
        for index, (source, outcome) in enumerate(zip(sources, outcomes, strict=True))
    ]


def _to_parse_result[SourceT](
    index: int, source: SourceT, outcome: Result | BaseException
) -> ParseResult[SourceT]:
    if isinstance(outcome, Result):
        return ParseResult(index=index, source=source, report=outcome)
    if isinstance(outcome, Exception):
        log.error(
            "Failed to parse report #%d (%s): %s",
            index,
            source,
            outcome,
            exc_info=outcome,
        )
        return ParseResult(index=index, source=source, error=outcome)
    raise outcome
