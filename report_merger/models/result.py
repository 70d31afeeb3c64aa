"""Per-input parse outcomes."""

from dataclasses import dataclass

from report_merger.models.report import Result


@dataclass(frozen=True, kw_only=True)
class ParseResult[SourceT]:
    """Outcome of parsing one input.

    Holds either the parsed report or the error that prevented it; the caller
    keeps the input list, ``index`` points back into it.
    """

    index: int
    source: SourceT
    report: Result | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.report is not None
