"""Reporting module - JSON run reports."""

from .json_reporter import REPORT_FILENAME, JsonReporter

__all__ = ["REPORT_FILENAME", "JsonReporter"]
