"""Spreadsheet number format rendering.

Only what is needed to turn a cached numeric cell value into display text:
date detection (rendered with one fixed pattern) and the decimal part of
Excel number format patterns. Fractions and patterns with literals inside
the digit run fall back to general rendering.
"""

import logging
import math
from decimal import ROUND_HALF_UP, Decimal

from openpyxl.styles.numbers import BUILTIN_FORMATS, is_date_format
from xlrd.xldate import xldate_as_datetime

logger = logging.getLogger(__name__)

DATE_RENDER_PATTERN = "%m/%d/%Y"

# Builtin format ids that are dates even when no pattern text is stored.
BUILTIN_DATE_FORMAT_IDS = frozenset(list(range(14, 23)) + [45, 46, 47])

_DIGIT_PLACEHOLDERS = "0#?"


def builtin_format(index: int) -> str | None:
    """Look up the pattern for a builtin number format id."""
    return BUILTIN_FORMATS.get(index)


def is_date_pattern(index: int, pattern: str | None) -> bool:
    """Decide whether a numeric cell with this format is a date.

    Args:
        index: Number format id
        pattern: Pattern text, or None to use the builtin pattern for the id

    Returns:
        True if the value should be rendered as a date
    """
    if index in BUILTIN_DATE_FORMAT_IDS:
        return True
    if pattern is None:
        pattern = builtin_format(index)
    if not pattern:
        return False
    return is_date_format(pattern)


def format_date(value: float, date1904: bool = False) -> str:
    """Render an Excel serial date with the fixed date pattern.

    Raises:
        ValueError: If the serial cannot be converted to a calendar date
        OverflowError: If the serial is out of range
    """
    if value < 0:
        raise ValueError(f"Negative date serial: {value}")
    return xldate_as_datetime(value, 1 if date1904 else 0).strftime(DATE_RENDER_PATTERN)


def format_general(value: float) -> str:
    """Render a number the way the General format shows it."""
    if value == int(value) and abs(value) < 1e15:
        return str(int(value))
    text = f"{value:.15g}"
    if "e" in text:
        text = format(Decimal(text), "f")
    return text


def format_number(value: float, pattern: str | None) -> str:
    """Render a number with an Excel number format pattern.

    Args:
        value: Finite numeric value
        pattern: Format pattern text

    Returns:
        Display text
    """
    if not pattern or pattern.strip().lower() == "general" or pattern.strip() == "@":
        return format_general(value)

    sections = _split_sections(pattern)
    section, magnitude, negative = _pick_section(sections, value)
    rendered = _render_section(section, magnitude)
    if rendered is None:
        logger.debug(f"Unsupported number format {pattern!r}, using general rendering")
        return format_general(value)
    if negative and any(ch.isdigit() and ch != "0" for ch in rendered):
        return f"-{rendered}"
    return rendered


def _split_sections(pattern: str) -> list[str]:
    sections: list[str] = []
    buf: list[str] = []
    in_quote = False
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == '"':
            in_quote = not in_quote
        elif ch == "\\" and not in_quote and i + 1 < len(pattern):
            buf.append(ch)
            i += 1
            ch = pattern[i]
        elif ch == ";" and not in_quote:
            sections.append("".join(buf))
            buf = []
            i += 1
            continue
        buf.append(ch)
        i += 1
    sections.append("".join(buf))
    return sections


def _pick_section(sections: list[str], value: float) -> tuple[str, float, bool]:
    """Choose the positive, negative or zero section.

    Returns:
        Section text, magnitude to render and whether a minus sign is needed
    """
    if value < 0 and len(sections) > 1:
        return sections[1], -value, False
    if value == 0 and len(sections) > 2:
        return sections[2], value, False
    return sections[0], abs(value), value < 0


def _render_section(section: str, value: float) -> str | None:
    prefix: list[str] = []
    suffix: list[str] = []
    mask: list[str] = []
    percent = 0
    general = False
    # 0 = before digits, 1 = inside the digit run, 2 = after it
    phase = 0

    i = 0
    while i < len(section):
        ch = section[i]
        literal = None
        if ch == '"':
            end = section.find('"', i + 1)
            end = len(section) if end == -1 else end
            literal = section[i + 1:end]
            i = end + 1
        elif ch == "\\":
            literal = section[i + 1:i + 2]
            i += 2
        elif ch == "_":
            literal = " "
            i += 2
        elif ch == "*":
            i += 2
            continue
        elif ch == "[":
            end = section.find("]", i)
            end = len(section) if end == -1 else end
            body = section[i + 1:end]
            i = end + 1
            if not body.startswith("$"):
                continue
            literal = body[1:].split("-", 1)[0]
        elif ch == "/":
            return None
        elif ch == "%":
            percent += 1
            literal = "%"
            i += 1
        elif ch in _DIGIT_PLACEHOLDERS or (ch in ".," and phase < 2 and _has_placeholder(section, i)):
            if phase == 2:
                return None
            phase = 1
            mask.append(ch)
            i += 1
            continue
        elif ch in "Ee" and phase == 1 and section[i + 1:i + 2] in ("+", "-"):
            mask.append("E" + section[i + 1])
            i += 2
            continue
        elif ch == "@":
            i += 1
            continue
        elif section[i:i + 7].lower() == "general":
            if phase != 0:
                return None
            general = True
            phase = 1
            i += 7
            continue
        else:
            literal = ch
            i += 1

        if phase == 0:
            prefix.append(literal)
        else:
            phase = 2
            suffix.append(literal)

    if general:
        # General stands in for the whole digit run
        if mask:
            return None
        digits = format_general(value * (100 ** percent))
    elif not mask:
        return "".join(prefix) + "".join(suffix)
    else:
        digits = _render_digits("".join(mask), value * (100 ** percent))
    return "".join(prefix) + digits + "".join(suffix)


def _has_placeholder(section: str, start: int) -> bool:
    """Whether a '.' or ',' belongs to the digit run rather than to literal text."""
    return any(ch in _DIGIT_PLACEHOLDERS for ch in section[:start]) or any(
        ch in _DIGIT_PLACEHOLDERS for ch in section[start + 1:]
    )


def _render_digits(mask: str, value: float) -> str:
    exponent_mask = None
    exponent_sign = "+"
    mantissa_mask = mask
    for marker in ("E+", "E-"):
        if marker in mask:
            mantissa_mask, exponent_mask = mask.split(marker, 1)
            exponent_sign = marker[1]
            break

    int_mask, _, frac_mask = mantissa_mask.partition(".")
    scale = 0
    while int_mask.endswith(","):
        int_mask = int_mask[:-1]
        scale += 1
    grouping = "," in int_mask
    int_mask = int_mask.replace(",", "")
    frac_mask = frac_mask.replace(",", "")

    value = value / (1000 ** scale)
    max_frac = len(frac_mask)
    min_frac = len(frac_mask.rstrip("#"))
    min_int = sum(1 for ch in int_mask if ch in "0?")

    if exponent_mask is None:
        return _render_fixed(value, max_frac, min_frac, min_int, grouping)

    exponent = 0 if value == 0 else math.floor(math.log10(value))
    mantissa = value / (10 ** exponent) if value else 0.0
    mantissa_text = _render_fixed(mantissa, max_frac, min_frac, max(min_int, 1), False)
    if mantissa_text.startswith("10"):
        exponent += 1
        mantissa_text = _render_fixed(mantissa / 10, max_frac, min_frac, max(min_int, 1), False)
    if exponent < 0:
        sign = "-"
    else:
        sign = "+" if exponent_sign == "+" else ""
    exponent_text = str(abs(exponent)).zfill(exponent_mask.count("0"))
    return f"{mantissa_text}E{sign}{exponent_text}"


def _render_fixed(value: float, max_frac: int, min_frac: int, min_int: int, grouping: bool) -> str:
    quantum = Decimal(1).scaleb(-max_frac)
    rounded = Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    int_part, _, frac_part = format(rounded, "f").partition(".")

    frac_part = frac_part.rstrip("0")
    if len(frac_part) < min_frac:
        frac_part = frac_part.ljust(min_frac, "0")

    if int_part == "0" and min_int == 0:
        int_part = ""
    elif grouping:
        int_part = f"{int(int_part):,}"
    if len(int_part.replace(",", "")) < min_int:
        int_part = int_part.rjust(min_int, "0")

    return f"{int_part}.{frac_part}" if frac_part else int_part
