"""
Report generation for benchmark results.
Supports console tables, delimiter-separated text, raw-sample files and JSON.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Mapping, Optional, TextIO, Union

from rich.console import Console
from rich.table import Table

from .errors import ConfigurationError, ReportIOError
from .statistics import Statistics, TimeScale
from .utils import get_machine_info

logger = logging.getLogger(__name__)

SuiteResult = Mapping[str, Statistics]

CSV_COLUMNS = ["name", "count", "mean", "min", "max", "p50", "p90", "p99"]
DEFAULT_SEPARATOR = "\t"


def validate_separator(separator: str) -> str:
    """
    Check that ``separator`` can delimit report fields.

    Raises:
        ConfigurationError: If the separator is not a single character, or
            is a character used by field values or their escapes
    """
    if not isinstance(separator, str) or len(separator) != 1:
        raise ConfigurationError(f"CSV separator must be a single character (got {separator!r})")
    if separator.isalnum() or separator in "\\\r\n":
        raise ConfigurationError(f"Unusable CSV separator: {separator!r}")
    return separator


def escape_field(value: str, separator: str) -> str:
    """
    Replace ``\\`` and ``separator`` with ``\\xNN`` escapes.

    Backslashes are escaped first, so a literal ``\\x2c`` in a value stays
    distinguishable from an escaped comma.
    """
    value = value.replace("\\", "\\x5c")
    if separator not in value:
        return value
    return value.replace(separator, f"\\x{ord(separator):02x}")


def _fmt(value: Optional[float]) -> str:
    return "-" if value is None else f"{value:.3f}"


class Reporter:
    """
    Render and persist suite results.

    Sanitization and scale only affect what is rendered; raw samples are
    always exported as recorded.

    Example:
        reporter = Reporter(scale=TimeScale.MILLISECONDS, sanitize=True)
        reporter.display(suite.get_result(), sys.stdout)
        reporter.save_data(suite.get_result(), "raw")
    """

    def __init__(
        self,
        scale: TimeScale = TimeScale.MILLISECONDS,
        sanitize: bool = False,
    ):
        self.scale = scale
        self.sanitize = sanitize

    def summaries(self, result: SuiteResult) -> Dict[str, Statistics]:
        """Statistics as displayed: sanitized when enabled."""
        if not self.sanitize:
            return dict(result)
        return {name: stats.sanitized() for name, stats in result.items()}

    def rows(self, result: SuiteResult) -> List[List[str]]:
        """One row of display strings per benchmark, columns as ``CSV_COLUMNS``."""
        rows = []
        for name, stats in self.summaries(result).items():
            scaled = stats.scaled(self.scale)
            rows.append([
                name,
                str(stats.count),
                _fmt(scaled["mean"]),
                _fmt(scaled["min"]),
                _fmt(scaled["max"]),
                _fmt(scaled["p50"]),
                _fmt(scaled["p90"]),
                _fmt(scaled["p99"]),
            ])
        return rows

    def build_table(self, result: SuiteResult) -> Table:
        """Build a rich table for the result."""
        unit = self.scale.suffix
        title = "Benchmark results" + (" (sanitized)" if self.sanitize else "")
        table = Table(title=title)
        table.add_column("Operation", style="cyan")
        table.add_column("Count", justify="right")
        for column in CSV_COLUMNS[2:]:
            table.add_column(f"{column.capitalize()} ({unit})", justify="right")

        for row in self.rows(result):
            table.add_row(*row)
        return table

    def display(self, result: SuiteResult, sink: TextIO) -> None:
        """Render the result as a human-readable table to ``sink``."""
        console = Console(file=sink, width=140, highlight=False)
        console.print(self.build_table(result))

    def display_csv(
        self,
        result: SuiteResult,
        sink: TextIO,
        separator: str = DEFAULT_SEPARATOR,
    ) -> None:
        """
        Render the result as delimiter-separated rows with a header.

        Every field containing the separator is escaped, so splitting any
        row on the separator yields exactly ``len(CSV_COLUMNS)`` fields.
        """
        validate_separator(separator)
        lines = [CSV_COLUMNS] + self.rows(result)
        for line in lines:
            sink.write(separator.join(escape_field(f, separator) for f in line))
            sink.write("\n")

    def save_data(
        self,
        result: SuiteResult,
        directory: Union[str, Path],
        scale: Optional[TimeScale] = None,
    ) -> List[Path]:
        """
        Write raw samples, one file per benchmark, one value per line.

        Failures are logged with the offending path and do not stop the
        remaining files from being written.

        Args:
            result: Suite result to export
            directory: Target directory, created if absent
            scale: Output unit (default: the reporter's scale)

        Returns:
            Paths of the files written

        Raises:
            ReportIOError: If no file at all could be written
        """
        scale = scale or self.scale
        location = Path(directory)

        if not location.exists():
            logger.debug(f"Creating directory {location}")
            try:
                location.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.error(f"Failed to create directory {location}: {e}")
        elif not location.is_dir():
            logger.error(f"{location} should be a directory")

        written: List[Path] = []
        for name, stats in result.items():
            dst = location / name
            try:
                with open(dst, "w", encoding="utf-8") as f:
                    for value in stats.values:
                        f.write(f"{scale.convert(value)}\n")
                written.append(dst)
            except OSError as e:
                logger.error(f"Failed to write {dst} for benchmark '{name}': {e}")

        if result and not written:
            raise ReportIOError(f"Could not write any raw data file under {location}")
        return written

    def save_json(self, result: SuiteResult, path: Union[str, Path]) -> str:
        """
        Write a JSON summary of the result.

        Args:
            result: Suite result to export
            path: Output file path

        Returns:
            Path to generated file
        """
        data = {
            "generated_at": datetime.now().isoformat(),
            "environment": get_machine_info(),
            "scale": self.scale.suffix,
            "sanitized": self.sanitize,
            "benchmarks": {
                name: stats.to_dict(self.scale)
                for name, stats in self.summaries(result).items()
            },
        }
        self.write_report(json.dumps(data, ensure_ascii=False, indent=2), path)
        return str(path)

    @staticmethod
    def write_report(text: str, path: Union[str, Path]) -> None:
        """Persist rendered report text to ``path``."""
        output_path = Path(path)
        try:
            if output_path.parent and not output_path.parent.exists():
                output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(output_path, "w", encoding="utf-8") as f:
                f.write(text)
        except OSError as e:
            logger.error(f"Failed to write report to {output_path}: {e}")
            raise ReportIOError(f"Cannot write report to {output_path}: {e}") from e
