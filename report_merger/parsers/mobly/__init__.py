"""Mobly report parser module."""

from report_merger.parsers.mobly.attributes import load_attributes
from report_merger.parsers.mobly.models import MoblyRecord, MoblyReportInfo
from report_merger.parsers.mobly.parser import MoblyReportParser

__all__ = ["MoblyRecord", "MoblyReportInfo", "MoblyReportParser", "load_attributes"]
