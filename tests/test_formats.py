"""Tests for number format rendering."""

from __future__ import annotations

import pytest

from tabular_ingestion.formats import format_date, format_general, format_number, is_date_pattern


class TestFormatGeneral:
    """Tests for General format rendering."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (1.0, "1"),
            (-42.0, "-42"),
            (0.1 + 0.2, "0.3"),
            (1234.5678, "1234.5678"),
            (1e20, "100000000000000000000"),
            (1.5e-7, "0.00000015"),
        ],
    )
    def test_renders_without_exponent(self, value: float, expected: str) -> None:
        assert format_general(value) == expected


class TestFormatNumber:
    """Tests for pattern based number rendering."""

    @pytest.mark.parametrize(
        ("value", "pattern", "expected"),
        [
            (1234.5, "0.00", "1234.50"),
            (1234.5, "#,##0.00", "1,234.50"),
            (1234.0, "#,##0", "1,234"),
            (0.125, "0%", "13%"),
            (0.5, "#.##", ".5"),
            (12345.0, "0.00E+00", "1.23E+04"),
            (1234567.0, "#,##0,", "1,235"),
            (1234.5, '"$"#,##0.00', "$1,234.50"),
            (1234.5, "[$€-407]#,##0.00", "€1,234.50"),
            (1234.5, "[Red]0.0", "1234.5"),
            (7.0, "000", "007"),
            (2.5, "0", "3"),
        ],
    )
    def test_positive_values(self, value: float, pattern: str, expected: str) -> None:
        assert format_number(value, pattern) == expected

    def test_single_section_negative_gets_minus(self) -> None:
        assert format_number(-2.25, "0.0") == "-2.3"

    def test_negative_section(self) -> None:
        assert format_number(-5.0, "0.00;(0.00)") == "(5.00)"

    def test_zero_section(self) -> None:
        assert format_number(0.0, '0;-0;"zero"') == "zero"

    def test_general_pattern(self) -> None:
        assert format_number(3.0, "General") == "3"

    @pytest.mark.parametrize(
        ("value", "pattern", "expected"),
        [
            (42.0, "[$-409]General", "42"),
            (5.0, 'General" units"', "5 units"),
            (-3.0, "General;-General", "-3"),
            (-1.5, "general", "-1.5"),
            (0.25, "General%", "25%"),
        ],
    )
    def test_general_token_inside_section(self, value: float, pattern: str, expected: str) -> None:
        assert format_number(value, pattern) == expected

    def test_fraction_falls_back_to_general(self) -> None:
        assert format_number(1.5, "# ?/?") == "1.5"

    def test_text_pattern_uses_general(self) -> None:
        assert format_number(12.0, "@") == "12"


class TestDates:
    """Tests for date detection and rendering."""

    @pytest.mark.parametrize(
        ("index", "pattern", "expected"),
        [
            (14, None, True),
            (22, None, True),
            (45, None, True),
            (164, "yyyy-mm-dd", True),
            (164, "d/m/yy h:mm", True),
            (2, None, False),
            (164, "0.00", False),
            (0, None, False),
        ],
    )
    def test_is_date_pattern(self, index: int, pattern: str | None, expected: bool) -> None:
        assert is_date_pattern(index, pattern) is expected

    def test_format_date_uses_fixed_layout(self) -> None:
        assert format_date(45000.0) == "03/15/2023"

    def test_format_date_ignores_time_fraction(self) -> None:
        assert format_date(45000.75) == "03/15/2023"

    def test_format_date_1904_system(self) -> None:
        assert format_date(0.0, date1904=True) == "01/01/1904"

    def test_format_date_first_day(self) -> None:
        assert format_date(1.0) == "01/01/1900"

    def test_negative_serial_raises(self) -> None:
        with pytest.raises(ValueError):
            format_date(-1.0)
