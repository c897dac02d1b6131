"""
Output formatters for kernel module metadata.

This module contains the two rendering strategies for a module report:
the default labelled listing and the filtered listing of bare values.
Lines are produced one at a time so that everything rendered before a
metadata read error still reaches the output stream.
"""

import sys
from typing import Iterator, Optional, TextIO

from .aggregators import ParameterAggregator
from .filters import FieldFilter
from .models import ModuleRecord, RenderConfig

LABEL_WIDTH = 16


def format_label(label: str) -> str:
    """Left-justify a "key:" label to the fixed label column."""
    if len(label) >= LABEL_WIDTH:
        return f"{label} "
    return f"{label:<{LABEL_WIDTH}}"


class BaseFormatter:
    """Base class for all formatters."""

    def __init__(self, config: RenderConfig):
        self.config = config

    def iter_lines(self, record: ModuleRecord,
                   aggregator: Optional[ParameterAggregator] = None) -> Iterator[str]:
        """
        Yield the report lines for one module, each ending in the separator.

        Args:
            record: Resolved module
            aggregator: Parameter table to fill, created if not given

        Returns:
            Iterator[str]: Report lines in output order

        Raises:
            MetadataRetrievalFailure: If the module's records cannot be read
        """
        raise NotImplementedError

    def format(self, record: ModuleRecord) -> str:
        """Render a whole report into a string."""
        return "".join(self.iter_lines(record))

    def write(self, record: ModuleRecord, stream: Optional[TextIO] = None) -> bool:
        """
        Write one module's report to a stream.

        Lines are written as soon as they are produced. If reading the
        module's records fails, the lines already written are flushed and
        the error propagates.

        Args:
            record: Resolved module
            stream: Output stream, sys.stdout if not given

        Returns:
            bool: False if a malformed parameter record was skipped
        """
        if stream is None:
            stream = sys.stdout
        aggregator = ParameterAggregator()
        try:
            for line in self.iter_lines(record, aggregator):
                stream.write(line)
        finally:
            stream.flush()
        return not aggregator.malformed


class FilteredFormatter(BaseFormatter):
    """Formatter printing only the bare values of the configured field."""

    def __init__(self, config: RenderConfig):
        if config.field is None:
            raise ValueError("FilteredFormatter requires a field")
        super().__init__(config)
        self.filter = FieldFilter(config.field)

    def iter_lines(self, record: ModuleRecord,
                   aggregator: Optional[ParameterAggregator] = None) -> Iterator[str]:
        separator = self.config.separator
        if self.filter.is_filename:
            yield f"{record.path}{separator}"
            return

        for value in self.filter.select(record.iter_info()):
            yield f"{value}{separator}"


class DefaultFormatter(BaseFormatter):
    """Formatter for the full labelled listing of a module."""

    def format_pair(self, key: str, value: str) -> str:
        if self.config.null_separated:
            return f"{key}={value}{self.config.separator}"
        return f"{format_label(key + ':')}{value}{self.config.separator}"

    def iter_lines(self, record: ModuleRecord,
                   aggregator: Optional[ParameterAggregator] = None) -> Iterator[str]:
        if aggregator is None:
            aggregator = ParameterAggregator()
        separator = self.config.separator

        yield f"{format_label('filename:')}{record.path}{separator}"

        for pair in record.iter_info():
            if aggregator.is_parameter_key(pair.key):
                aggregator.accept(pair)
                continue
            yield self.format_pair(pair.key, pair.value)

        for entry in aggregator.entries():
            yield f"{format_label('parm:')}{entry}{separator}"


def get_formatter(config: RenderConfig) -> BaseFormatter:
    """Pick the rendering strategy for a configuration."""
    if config.field is not None:
        return FilteredFormatter(config)
    return DefaultFormatter(config)
