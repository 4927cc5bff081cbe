"""Reporting utilities for backpropnets."""

from .metrics import CsvSink, JsonlSink, MetricsCapture
from .summary import summarize, write_manifest, write_summary

__all__ = ["CsvSink", "JsonlSink", "MetricsCapture", "summarize", "write_manifest", "write_summary"]
