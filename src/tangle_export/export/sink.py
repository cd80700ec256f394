"""
JSON sink: appends export rows to an output stream.

Each row is written as an indented JSON object followed by a newline.
Write failures are reported as False, never raised. On a seekable stream a
failed row is cut back off the end so no half-written document remains.
"""

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TextIO

from .rows import ExportRow

logger = logging.getLogger(__name__)

RECORD_SEPARATOR = "\n"


class JsonSink:
    """
    Serializes rows onto one previously opened text stream.

    One writer, one stream, sequential appends.
    """

    def __init__(
        self,
        stream: TextIO,
        indent: int = 4,
        include_confirmation_index: bool = True,
    ) -> None:
        """
        Args:
            stream: Open, writable text stream (owned by the caller)
            indent: JSON indentation width
            include_confirmation_index: Emit the ConfirmationIndex field
        """
        self._stream = stream
        self.indent = indent
        self.include_confirmation_index = include_confirmation_index
        self.rows_written = 0
        self.write_failures = 0

    def serialize(self, row: ExportRow) -> str:
        """Render a row as its output document (without separator)."""
        return json.dumps(
            row.to_dict(include_confirmation_index=self.include_confirmation_index),
            indent=self.indent,
            ensure_ascii=False,
            allow_nan=False,
        )

    def write(self, row: ExportRow) -> bool:
        """
        Append one row to the stream.

        Returns:
            True if the row was serialized and written, False otherwise
        """
        try:
            document = self.serialize(row)
        except (TypeError, ValueError) as e:
            logger.warning(f"err marshalling row for tx {row.tx_hash}: {e}")
            self.write_failures += 1
            return False

        start = self._position()
        try:
            self._stream.write(document + RECORD_SEPARATOR)
            self._stream.flush()
        except (OSError, ValueError) as e:
            # ValueError: stream closed underneath us
            logger.warning(f"err writing row for tx {row.tx_hash}: {e}")
            self.write_failures += 1
            self._discard_from(start, row)
            return False

        self.rows_written += 1
        logger.debug(f"{row.tx_hash} done...")
        return True

    def _position(self) -> int | None:
        try:
            return self._stream.tell() if self._stream.seekable() else None
        except (OSError, ValueError):
            return None

    def _discard_from(self, position: int | None, row: ExportRow) -> None:
        """Cut a partially written row off the end of the stream."""
        if position is None:
            logger.warning(f"partial row for tx {row.tx_hash} may remain in output")
            return
        try:
            self._stream.seek(position)
            self._stream.truncate()
        except (OSError, ValueError) as e:
            logger.warning(f"partial row for tx {row.tx_hash} may remain in output: {e}")


@contextmanager
def open_sink(
    output_path: Path | str,
    truncate: bool = False,
    indent: int = 4,
    include_confirmation_index: bool = True,
) -> Iterator[JsonSink]:
    """
    Open the output file once for the whole run.

    Appends by default, so repeated runs accumulate rows; pass truncate=True
    for a clean export. Creates the file (and its parent directory) if missing.

    Raises:
        OSError: if the file cannot be opened (fatal for the run)
    """
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    mode = "w" if truncate else "a"

    with open(path, mode, encoding="utf-8") as stream:
        logger.info(f"Writing export to {path} ({'truncate' if truncate else 'append'} mode)")
        yield JsonSink(
            stream,
            indent=indent,
            include_confirmation_index=include_confirmation_index,
        )
