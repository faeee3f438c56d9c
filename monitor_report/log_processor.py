#!/usr/bin/env python3
"""
Raw Monitoring Log Reader
Loads the semicolon-delimited monitoring log either from a plain text file or
from the status document published by the remote monitoring job, with optional
line-range slicing and consistent error reporting.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

RAW_LOG_SUFFIXES: Tuple[str, ...] = (".txt", ".log")

# Status values published by the monitoring job
STATUS_RUNNING = "running"
STATUS_COMPLETED = "completed"
STATUS_ERROR = "error"


class LogProcessingError(Exception):
    """Base exception for monitoring log processing errors."""

    pass


class InvalidRangeError(LogProcessingError):
    """Raised when invalid line range is provided."""

    pass


class FileAccessError(LogProcessingError):
    """Raised when file cannot be accessed or read."""

    pass


class StatusPayloadError(LogProcessingError):
    """Raised when the monitoring job status document is unusable or reports a failure."""

    pass


class ReportLoadError(LogProcessingError):
    """Raised when a previously exported report cannot be loaded."""

    pass


def _validate_line_range(
    total_lines: int, start_line: Optional[int], end_line: Optional[int] = None
) -> Tuple[int, int]:
    """
    Validate and normalize line range parameters.

    Args:
        total_lines: Number of lines available
        start_line: Starting line number (1-indexed). If None, starts from first line
        end_line: Ending line number (1-indexed). If None, reads to end

    Returns:
        Tuple[int, int]: Validated (start_line, end_line) tuple

    Raises:
        InvalidRangeError: If the range is invalid
    """
    if start_line is None:
        start_line = 1
    elif not isinstance(start_line, int) or start_line <= 0:
        raise InvalidRangeError(
            f"Start line must be a positive integer or None, got: {start_line}"
        )

    if end_line is None:
        end_line = total_lines
    elif not isinstance(end_line, int) or end_line <= 0:
        raise InvalidRangeError(
            f"End line must be a positive integer or None, got: {end_line}"
        )

    if start_line > total_lines:
        raise InvalidRangeError(
            f"Start line {start_line} exceeds total lines {total_lines}"
        )

    if end_line < start_line:
        raise InvalidRangeError(
            f"End line {end_line} must be greater than or equal to start line {start_line}"
        )

    if end_line > total_lines:
        end_line = total_lines

    return start_line, end_line


def slice_lines(
    text: str, start_line: Optional[int] = None, end_line: Optional[int] = None
) -> str:
    """
    Return the 1-based inclusive line range [start_line, end_line] of text.

    With no range requested the text is returned untouched.
    """
    if start_line is None and end_line is None:
        return text
    lines: List[str] = text.splitlines()
    start_line, end_line = _validate_line_range(len(lines), start_line, end_line)
    return "\n".join(lines[start_line - 1 : end_line])


class RawLogReader:
    """
    Reads a raw monitoring log from disk.

    The log is always consumed as one complete UTF-8 text blob; a line range may
    be requested to process only part of a large capture.
    """

    def __init__(self, file_path: Union[str, Path], encoding: str = "utf-8") -> None:
        """
        Initialize the reader with a file path.

        Raises:
            FileNotFoundError: If the specified file does not exist
            FileAccessError: If the path is not a regular file
        """
        self.file_path = Path(file_path)
        self.encoding = encoding
        if not self.file_path.exists():
            raise FileNotFoundError(f"Log file not found: {self.file_path}")
        if not self.file_path.is_file():
            raise FileAccessError(f"Path is not a file: {self.file_path}")
        if self.file_path.suffix.lower() not in RAW_LOG_SUFFIXES:
            logger.warning(
                "File does not have a %s extension: %s",
                "/".join(RAW_LOG_SUFFIXES),
                self.file_path,
            )

    def _read_all(self) -> str:
        try:
            return self.file_path.read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise FileAccessError(f"Error reading log file: {e}") from e

    def get_total_lines(self) -> int:
        """Number of lines in the file, blank lines included."""
        return len(self._read_all().splitlines())

    def read_text(
        self, start_line: Optional[int] = None, end_line: Optional[int] = None
    ) -> str:
        """
        Read the log, optionally restricted to a 1-based inclusive line range.

        Raises:
            InvalidRangeError: If the range parameters are invalid
            FileAccessError: If the file cannot be read
        """
        text = self._read_all()
        sliced = slice_lines(text, start_line, end_line)
        logger.debug(
            "Read %d characters from %s (lines %s-%s)",
            len(sliced),
            self.file_path,
            start_line or 1,
            end_line or "end",
        )
        return sliced

    def get_file_info(self) -> Dict[str, Any]:
        """
        Get basic information about the log file.

        Returns:
            Dict[str, Any]: path, size in bytes, total and non-blank line counts
        """
        lines = self._read_all().splitlines()
        return {
            "file_path": str(self.file_path),
            "file_size": self.file_path.stat().st_size,
            "total_lines": len(lines),
            "non_blank_lines": sum(1 for line in lines if line.strip()),
        }

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        pass


def extract_resumen(payload: Any) -> Optional[str]:
    """
    Pull the raw log text out of a monitoring job status document.

    Expected shape: {"status": "running" | "completed" | "error",
    "message": str | None, "results": {"resumen": str} | None}.

    Returns:
        The raw log text when the job completed with a textual summary,
        otherwise None (job still running, or completed without usable results).

    Raises:
        StatusPayloadError: If the payload is not an object or the job reported an error.
    """
    if not isinstance(payload, dict):
        raise StatusPayloadError(
            f"Status payload must be a JSON object, got {type(payload).__name__}"
        )

    status = payload.get("status")
    message = payload.get("message")

    if status == STATUS_ERROR:
        raise StatusPayloadError(message or "An unknown error occurred.")

    if status != STATUS_COMPLETED:
        logger.info(
            "Monitoring job status is %r: %s", status, message or "Processing data..."
        )
        return None

    results = payload.get("results")
    resumen = results.get("resumen") if isinstance(results, dict) else None
    if not isinstance(resumen, str):
        logger.warning(
            "Received completed status but results.resumen is not a string: %r",
            results,
        )
        return None
    return resumen


def read_status_file(file_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a monitoring job status document saved as JSON.

    Raises:
        FileNotFoundError: If the file does not exist
        StatusPayloadError: If the document is not valid JSON
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Status file not found: {path}")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise StatusPayloadError(f"Failed to parse server response. Error: {e}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise FileAccessError(f"Error reading status file: {e}") from e
