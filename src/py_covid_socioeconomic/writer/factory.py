"""
Factory module for creating report writer instances.

This module provides a centralized way to instantiate the writers for the
output formats selected in the application's configuration.
"""

from typing import List

from ..config import AppSettings, OutputFormat
from .base import WriterInterface
from .csv_writer import CsvReportWriter
from .markdown_writer import MarkdownReportWriter


def get_writer(output_format: OutputFormat, settings: AppSettings) -> WriterInterface:
    """
    Instantiates and returns the writer for one output format.

    Raises:
        ValueError: If an unsupported format is provided.
    """
    output = settings.output
    if output_format == OutputFormat.CSV:
        return CsvReportWriter(output.directory, output.missing_label)
    elif output_format == OutputFormat.MARKDOWN:
        return MarkdownReportWriter(output.directory, output.missing_label)
    else:
        # This case should ideally not be reachable if pydantic validation is working
        raise ValueError(f"Unsupported output format: {output_format}")


def get_writers(settings: AppSettings) -> List[WriterInterface]:
    """Returns one writer per configured output format, without duplicates."""
    formats = list(dict.fromkeys(settings.output.formats))
    return [get_writer(output_format, settings) for output_format in formats]
