"""Append-only CSV log of accepted telemetry.

The writer is the only owner of the log file. Appends are queued and written
by a single task, one complete row per write, so rows never interleave and the
ingestion loop never waits on the disk.
"""

import asyncio
import csv
import io
import logging
from datetime import datetime
from pathlib import Path
from typing import IO, Optional, Union

from mycowood.shared.disk_check import require_disk_space
from mycowood.shared.models import TelemetryRecord
from mycowood.shared.reporting import PERSISTENCE, OperationalReporter

logger = logging.getLogger(__name__)

LOG_HEADER = (
    "Timestamp,System Mode,Temperature (C),Humidity (%),Soil Moisture (%),Alarm State"
)

# Same rendering as the dashboard's en-GB locale timestamps
TIMESTAMP_FORMAT = "%d/%m/%Y, %H:%M:%S"


def format_row(record: TelemetryRecord) -> str:
    """Serialize a record as one CSV line, text fields quoted, numbers bare."""
    captured_at = record.captured_at or datetime.now()
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    writer.writerow([
        captured_at.strftime(TIMESTAMP_FORMAT),
        record.mode or "",
        record.temperature,
        record.humidity,
        record.soil_moisture,
        record.alarm_state or "",
    ])
    return buffer.getvalue()


class CsvLogWriter:
    """Single-writer append-only CSV log."""

    def __init__(
        self,
        path: Union[str, Path],
        reporter: OperationalReporter,
        disk_threshold: Optional[float] = None,
    ):
        """Initialize the writer.

        Args:
            path: Location of the CSV file.
            reporter: Receives persistence failures.
            disk_threshold: Refuse appends when the disk is fuller than this
                percentage. None disables the check.
        """
        self.path = Path(path)
        self.reporter = reporter
        self.disk_threshold = disk_threshold
        self._queue: "asyncio.Queue[TelemetryRecord]" = asyncio.Queue()
        self._file: Optional[IO[str]] = None
        self._task: Optional[asyncio.Task] = None
        self._closed = False
        self.rows_written = 0

    def ensure_initialized(self) -> bool:
        """Create the log with its header row if it does not exist yet.

        Safe to call on every start; an existing file is left untouched.

        Returns:
            True if the log exists afterwards, False if it could not be created.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self.reporter.report(PERSISTENCE, f"Could not create log directory {self.path.parent}", e)
            return False
        try:
            with open(self.path, "x", encoding="utf-8", newline="") as f:
                f.write(LOG_HEADER + "\n")
            logger.info(f"Created new log file: {self.path}")
        except FileExistsError:
            pass
        except OSError as e:
            self.reporter.report(PERSISTENCE, f"Could not create log file {self.path}", e)
            return False
        return True

    async def start(self):
        """Open the append handle and start the writer task."""
        if self._task is not None:
            return
        try:
            self._file = await asyncio.to_thread(
                open, self.path, "a", encoding="utf-8", newline=""
            )
        except OSError as e:
            # Rows are still queued; each write retries opening the file
            self.reporter.report(PERSISTENCE, f"Could not open log file {self.path}", e)
        self._task = asyncio.create_task(self._writer_loop(), name="csv-log-writer")

    def append(self, record: TelemetryRecord) -> bool:
        """Queue a record for appending. Never blocks.

        Returns:
            False if the writer has been closed and the record was not queued.
        """
        if self._closed:
            logger.debug("Log writer closed, dropping append")
            return False
        self._queue.put_nowait(record)
        return True

    async def flush(self):
        """Wait until every queued record has been written or reported."""
        await self._queue.join()

    async def read_all(self) -> str:
        """Return the full log as text.

        Raises:
            OSError: If the file cannot be read.
        """
        return await asyncio.to_thread(self.path.read_text, encoding="utf-8")

    async def close(self):
        """Stop accepting appends, finish queued ones and close the file."""
        self._closed = True
        if self._task is not None:
            await self.flush()
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._file is not None:
            await asyncio.to_thread(self._file.close)
            self._file = None
        logger.info(f"Log writer closed after {self.rows_written} rows")

    async def _writer_loop(self):
        while True:
            record = await self._queue.get()
            try:
                await asyncio.to_thread(self._write_row, format_row(record))
                self.rows_written += 1
            except Exception as e:
                self.reporter.report(PERSISTENCE, f"Failed to append to {self.path}", e)
            finally:
                self._queue.task_done()

    def _write_row(self, row: str):
        if self.disk_threshold is not None:
            require_disk_space(self.path.parent, self.disk_threshold)
        if self._file is None or self._file.closed:
            self._file = open(self.path, "a", encoding="utf-8", newline="")
        self._file.write(row)
        self._file.flush()
