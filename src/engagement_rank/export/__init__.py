"""Export layer — Markdown, CSV, and JSON output of ranked posts."""

from engagement_rank.export.csv_export import CSVExporter
from engagement_rank.export.json_export import JSONExporter
from engagement_rank.export.markdown import MarkdownExporter

__all__ = ["CSVExporter", "JSONExporter", "MarkdownExporter"]
