"""Base class for streaming record transformers.

A transformer turns one raw source file into a canonical, headered CSV that
the bulk loader can COPY as-is. All transformers:
- Stream row by row (inputs can hold millions of rows)
- Write a header row first
- Use LF line endings and minimal RFC 4180 quoting
- Reject rows with an unexpected shape instead of dropping them
"""

import csv
import logging
from abc import ABC, abstractmethod
from typing import Iterator, Optional, TextIO

from ..errors import MalformedRowError

logger = logging.getLogger(__name__)


def open_reader(source: TextIO) -> "csv.Reader":
    """CSV reader that tolerates loose quoting and leading spaces."""
    return csv.reader(source, skipinitialspace=True, strict=False)


def open_writer(sink: TextIO) -> "csv.Writer":
    """CSV writer producing the canonical output format."""
    return csv.writer(sink, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)


class RecordTransformer(ABC):
    """Base class for all record transformers.

    Subclasses provide the output header and a per-row mapping; this class
    owns reading, writing, blank-line handling and row counting.
    """

    #: Number of header rows in the source to consume before data rows
    source_header_rows: int = 0

    @abstractmethod
    def output_header(self, source_header: Optional[list[str]]) -> list[str]:
        """Get the canonical header.

        Args:
            source_header: Header row read from the source, if it has one

        Returns:
            Column names to write as the first output row
        """

    @abstractmethod
    def transform_row(self, row: list[str], source: str, line: int) -> list[str]:
        """Map one source row to one canonical row.

        Args:
            row: Parsed source fields
            source: Source name for error messages
            line: 1-based line number of the row in the source

        Returns:
            Output fields, aligned with ``output_header``

        Raises:
            TransformError: If the row cannot be mapped
        """

    def transform(self, source: TextIO, sink: TextIO, source_name: Optional[str] = None) -> int:
        """Transform a whole source stream into the sink.

        Args:
            source: Raw text input (opened with ``newline=''``)
            sink: Text output for the canonical CSV
            source_name: Name used in error messages (defaults to ``source.name``)

        Returns:
            Number of data rows written

        Raises:
            MalformedRowError: If a row has the wrong shape, cannot be decoded
                or cannot be parsed as CSV
        """
        name = source_name or getattr(source, "name", "<stream>")
        reader = open_reader(source)
        writer = open_writer(sink)

        try:
            source_header = None
            if self.source_header_rows:
                source_header = next(reader, None)
                if source_header is None:
                    raise MalformedRowError(name, 1, "missing header row")
                source_header = [col.strip() for col in source_header]

            writer.writerow(self.output_header(source_header))

            rows = 0
            for row in reader:
                if not row or (len(row) == 1 and not row[0].strip()):
                    continue
                writer.writerow(self.transform_row(row, name, reader.line_num))
                rows += 1
        except UnicodeDecodeError as e:
            # decoding runs ahead of the parser, so the bad byte is at or after this line
            raise MalformedRowError(
                name, reader.line_num + 1, f"cannot decode as {e.encoding}: {e.reason}"
            ) from e
        except csv.Error as e:
            raise MalformedRowError(name, reader.line_num, f"unparseable CSV: {e}") from e

        logger.info(f"{type(self).__name__}: wrote {rows} rows from {name}")
        return rows
