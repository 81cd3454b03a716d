"""MRZ line extraction from raw OCR output.

OCR over the MRZ band usually returns the MRZ lines plus noise: printed
labels above the band, fragments of the card border, blank lines. Two
heuristics pick the MRZ lines out of that text:

* ``equal_length`` trusts the last line and keeps the trailing run of lines
  with exactly its length.
* ``pattern`` keeps lines of MRZ-like length that contain a long run of MRZ
  characters, and returns the last ones. It survives garbled leading lines
  and is the default.

Neither raises: text without MRZ lines gives an empty ``MrzResult``.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass

from mrzscan.utils.config import ExtractionConfig
from mrzscan.utils.logger import get_logger

logger = get_logger(__name__)

MRZ_LINE_COUNTS = (2, 3)


@dataclass(frozen=True)
class MrzResult:
    """Validated MRZ lines in document order."""

    lines: tuple[str, ...] = ()
    strategy: str = ""

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def is_complete(self) -> bool:
        """Whether the result has the line count of a TD1/TD2/TD3 MRZ."""
        return len(self.lines) in MRZ_LINE_COUNTS


def split_lines(raw_text: str) -> list[str]:
    """Split OCR text into trimmed, non-blank lines."""
    return [line.strip() for line in raw_text.splitlines() if line.strip()]


def extract_equal_length(raw_text: str) -> list[str]:
    """Return the trailing run of lines as long as the last line.

    Args:
        raw_text: Raw OCR output.

    Returns:
        Matching lines in original order, empty if there is no text.
    """
    lines = split_lines(raw_text)
    if not lines:
        return []

    expected = len(lines[-1])
    run: list[str] = []
    for line in reversed(lines):
        if len(line) != expected:
            break
        run.append(line)
    return run[::-1]


def extract_pattern_validated(
    raw_text: str,
    min_length: int = 40,
    max_length: int = 45,
    min_run: int = 10,
    max_lines: int = 2,
) -> list[str]:
    """Return lines with MRZ-like length and character content.

    A line qualifies when its trimmed length lies in
    ``[min_length, max_length]`` and it contains at least ``min_run``
    consecutive characters from ``A-Z0-9<``.

    Args:
        raw_text: Raw OCR output.
        min_length: Shortest accepted line.
        max_length: Longest accepted line.
        min_run: Required run of MRZ characters.
        max_lines: Number of trailing qualifying lines to keep.

    Returns:
        Up to ``max_lines`` qualifying lines, in original order.
    """
    run_pattern = re.compile(rf"[A-Z0-9<]{{{min_run},}}")
    candidates = [
        line
        for line in split_lines(raw_text)
        if min_length <= len(line) <= max_length and run_pattern.search(line)
    ]
    return candidates[-max_lines:]


class MrzLineExtractor:
    """Selects MRZ lines from OCR text with a configurable strategy.

    Args:
        config: Extraction configuration. Defaults to the pattern strategy
            with TD3 line bounds.
    """

    def __init__(self, config: ExtractionConfig | None = None) -> None:
        self.config = config or ExtractionConfig()
        self._strategies: dict[str, Callable[[str], list[str]]] = {
            "equal_length": extract_equal_length,
            "pattern": self._pattern,
        }

    @property
    def strategies(self) -> list[str]:
        return sorted(self._strategies)

    def _pattern(self, raw_text: str) -> list[str]:
        return extract_pattern_validated(
            raw_text,
            min_length=self.config.min_line_length,
            max_length=self.config.max_line_length,
            min_run=self.config.min_charset_run,
            max_lines=self.config.max_lines,
        )

    def extract(self, raw_text: str | None, strategy: str | None = None) -> MrzResult:
        """Extract MRZ lines from raw OCR text.

        Args:
            raw_text: Raw OCR output; ``None`` is treated as empty.
            strategy: ``"pattern"`` or ``"equal_length"``. Defaults to the
                configured strategy.

        Returns:
            The extracted lines; empty when none qualify or the strategy is
            unknown.
        """
        name = strategy or self.config.strategy
        method = self._strategies.get(name)
        if method is None:
            logger.warning("Unknown extraction strategy: %s", name)
            return MrzResult(strategy=name)

        lines = method(raw_text or "")
        if lines:
            logger.debug("Extracted %d MRZ line(s) with %s", len(lines), name)
        else:
            logger.debug("No MRZ lines found with %s", name)
        return MrzResult(lines=tuple(lines), strategy=name)
