"""Tests for MRZ line extraction from OCR text."""

import pytest

from mrzscan.extraction.mrz_lines import (
    MrzLineExtractor,
    MrzResult,
    extract_equal_length,
    extract_pattern_validated,
    split_lines,
)
from mrzscan.utils.config import ExtractionConfig

SAMPLE_LINE_1 = "P<UTOERIKSSON<<ANNA<MARIA<<<<<<<<<<<<<<<<"
SAMPLE_LINE_2 = "L898902C<3UTO6908061F9406236ZE184226B<<<<<10"
SAMPLE_TEXT = f"NOISE\n{SAMPLE_LINE_1}\n{SAMPLE_LINE_2}\n"

TD1_LINES = (
    "I<UTOD231458907<<<<<<<<<<<<<<<",
    "7408122F1204159UTO<<<<<<<<<<<6",
    "ERIKSSON<<ANNA<MARIA<<<<<<<<<<",
)


class TestSplitLines:
    """Tests for OCR line splitting."""

    def test_strips_and_drops_blank_lines(self) -> None:
        assert split_lines("  A<B  \n\n \nC\r\n\f") == ["A<B", "C"]

    def test_empty(self) -> None:
        assert split_lines("") == []


class TestEqualLength:
    """Tests for the equal-length heuristic."""

    def test_noisy_text(self, noisy_ocr_text: str, mrz_lines: tuple[str, str]) -> None:
        assert extract_equal_length(noisy_ocr_text) == list(mrz_lines)

    def test_three_line_td1(self) -> None:
        text = "IDENTITY CARD\n" + "\n".join(TD1_LINES)
        assert extract_equal_length(text) == list(TD1_LINES)

    def test_trusts_last_line(self) -> None:
        assert extract_equal_length("ABCDE\nXY\nZW") == ["XY", "ZW"]

    def test_single_line(self) -> None:
        assert extract_equal_length("ONLY<LINE") == ["ONLY<LINE"]

    def test_empty(self) -> None:
        assert extract_equal_length("\n\n") == []


class TestPatternValidated:
    """Tests for the pattern-validated heuristic."""

    def test_sample_text_discards_noise(self) -> None:
        assert extract_pattern_validated(SAMPLE_TEXT) == [SAMPLE_LINE_1, SAMPLE_LINE_2]

    def test_noisy_text(self, noisy_ocr_text: str, mrz_lines: tuple[str, str]) -> None:
        assert extract_pattern_validated(noisy_ocr_text) == list(mrz_lines)

    def test_garbled_trailing_line_ignored(self, mrz_lines: tuple[str, str]) -> None:
        text = "\n".join([*mrz_lines, "~~ ::"])
        assert extract_pattern_validated(text) == list(mrz_lines)

    def test_returns_last_two(self, mrz_lines: tuple[str, str]) -> None:
        extra = "X" * 42
        text = "\n".join([extra, *mrz_lines])
        assert extract_pattern_validated(text) == list(mrz_lines)

    def test_single_survivor(self, mrz_lines: tuple[str, str]) -> None:
        assert extract_pattern_validated(f"junk\n{mrz_lines[0]}") == [mrz_lines[0]]

    def test_length_bounds(self) -> None:
        assert extract_pattern_validated("A" * 39) == []
        assert extract_pattern_validated("A" * 46) == []
        assert extract_pattern_validated("A" * 40) == ["A" * 40]
        assert extract_pattern_validated("A" * 45) == ["A" * 45]

    def test_requires_charset_run(self) -> None:
        # Right length, but no ten consecutive MRZ characters.
        line = "ABCDEFGHI " * 4 + "ABCD"
        assert extract_pattern_validated(line) == []

    def test_lowercase_not_mrz(self) -> None:
        line = "p<utoeriksson<<anna<maria<<<<<<<<<<<<<<<<<<"
        assert extract_pattern_validated(line) == []

    def test_no_qualifying_lines(self) -> None:
        assert extract_pattern_validated("PASSPORT\nREPUBLIC OF UTOPIA") == []

    def test_custom_bounds(self) -> None:
        result = extract_pattern_validated(
            "\n".join(TD1_LINES), min_length=30, max_length=30, max_lines=3
        )
        assert result == list(TD1_LINES)


class TestMrzResult:
    """Tests for the extraction result type."""

    def test_empty(self) -> None:
        result = MrzResult()
        assert result.is_empty
        assert not result.is_complete
        assert result.text == ""

    def test_two_lines_complete(self, mrz_lines: tuple[str, str]) -> None:
        result = MrzResult(lines=mrz_lines, strategy="pattern")
        assert result.is_complete
        assert result.text == "\n".join(mrz_lines)

    def test_one_line_incomplete(self, mrz_lines: tuple[str, str]) -> None:
        assert not MrzResult(lines=mrz_lines[:1]).is_complete

    def test_three_lines_complete(self) -> None:
        assert MrzResult(lines=TD1_LINES).is_complete


class TestMrzLineExtractor:
    """Tests for strategy selection."""

    def test_default_strategy_is_pattern(self) -> None:
        result = MrzLineExtractor().extract(SAMPLE_TEXT)
        assert result.strategy == "pattern"
        assert result.lines == (SAMPLE_LINE_1, SAMPLE_LINE_2)

    def test_strategies(self) -> None:
        assert MrzLineExtractor().strategies == ["equal_length", "pattern"]

    @pytest.mark.parametrize("strategy", ["pattern", "equal_length"])
    def test_both_strategies_agree_on_noisy_text(
        self, strategy: str, noisy_ocr_text: str, mrz_lines: tuple[str, str]
    ) -> None:
        result = MrzLineExtractor().extract(noisy_ocr_text, strategy)
        assert result.lines == mrz_lines
        assert result.strategy == strategy

    def test_configured_strategy(self, noisy_ocr_text: str) -> None:
        extractor = MrzLineExtractor(ExtractionConfig(strategy="equal_length"))
        assert extractor.extract(noisy_ocr_text).strategy == "equal_length"

    def test_configured_td1_bounds(self) -> None:
        config = ExtractionConfig(min_line_length=30, max_line_length=30, max_lines=3)
        result = MrzLineExtractor(config).extract("\n".join(TD1_LINES))
        assert result.lines == TD1_LINES
        assert result.is_complete

    @pytest.mark.parametrize("raw_text", [None, "", "PASSPORT\nNO MRZ HERE"])
    def test_no_mrz_is_empty_result(self, raw_text: str | None) -> None:
        result = MrzLineExtractor().extract(raw_text)
        assert result.is_empty

    def test_unknown_strategy_is_empty_result(self, noisy_ocr_text: str) -> None:
        result = MrzLineExtractor().extract(noisy_ocr_text, "neural")
        assert result.is_empty
        assert result.strategy == "neural"
