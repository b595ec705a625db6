"""Delimited text tokenization."""

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from tabular_ingestion.config import TokenizerConfig

logger = logging.getLogger(__name__)

_LEADING_WHITESPACE = (" ", "\t")


@dataclass(frozen=True)
class TokenizeResult:
    """Fields completed on a line plus any unfinished quoted field.

    Attributes:
        fields: Fields completed on this line, in order
        pending: Text of a quoted field still waiting for its closing quote
    """

    fields: list[str]
    pending: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.pending is not None


class FieldTokenizer:
    """Splits raw text lines into fields.

    A quoted field may span several physical lines. When a line ends inside
    quotes the partial field is handed back as ``pending`` and must be passed
    to the call that tokenizes the next physical line.
    """

    def __init__(self, config: TokenizerConfig | None = None):
        """Initialize tokenizer.

        Args:
            config: Separator, quote and escape settings
        """
        self.config = config or TokenizerConfig()
        self.separator = self.config.separator
        self.quotechar = self.config.quotechar
        self.escapechar = self.config.escapechar
        self.strict_quotes = self.config.strict_quotes
        self.ignore_leading_whitespace = self.config.ignore_leading_whitespace

    def tokenize(self, line: str, pending: str | None = None) -> TokenizeResult:
        """Tokenize one physical line.

        Args:
            line: Line content without its line terminator
            pending: Partial quoted field returned by the previous call

        Returns:
            Completed fields and the new pending field, if any
        """
        if pending is None and line == "":
            return TokenizeResult([])

        fields: list[str] = []
        buf: list[str] = []
        in_quotes = False
        # Set once the current field has consumed any character or quote.
        started = False

        if pending is not None:
            buf.append(pending)
            in_quotes = True
            started = True

        i = 0
        length = len(line)
        while i < length:
            c = line[i]
            nxt = line[i + 1] if i + 1 < length else None

            if self._is_escape(c, nxt):
                buf.append(nxt)
                started = True
                i += 2
                continue

            if c == self.quotechar:
                if in_quotes and nxt == self.quotechar:
                    buf.append(c)
                    i += 2
                    continue
                if in_quotes:
                    in_quotes = False
                elif self.strict_quotes:
                    in_quotes = True
                elif not started or self._only_leading_whitespace(buf):
                    buf.clear()
                    in_quotes = True
                else:
                    buf.append(c)
                started = True
                i += 1
                continue

            if c == self.separator and not in_quotes:
                fields.append("".join(buf))
                buf.clear()
                started = False
                i += 1
                continue

            if in_quotes or not self.strict_quotes:
                buf.append(c)
            started = True
            i += 1

        if in_quotes:
            buf.append("\n")
            return TokenizeResult(fields, "".join(buf))

        fields.append("".join(buf))
        return TokenizeResult(fields)

    def flush(self, pending: str | None) -> list[str]:
        """Close a quoted field left open at end of input.

        Args:
            pending: Pending field text from the last tokenize call

        Returns:
            The pending content as a single field, or no fields
        """
        if pending is None:
            return []
        logger.debug("Input ended inside a quoted field; closing it")
        return [pending[:-1] if pending.endswith("\n") else pending]

    def records(self, lines: Iterable[str]) -> Iterator[list[str]]:
        """Lazily group physical lines into logical records.

        Args:
            lines: Physical lines without line terminators

        Yields:
            Field list for each logical record
        """
        line_iter = iter(lines)
        for line in line_iter:
            result = self.tokenize(line)
            fields = list(result.fields)
            pending = result.pending
            while pending is not None:
                more = next(line_iter, None)
                if more is None:
                    fields.extend(self.flush(pending))
                    break
                result = self.tokenize(more, pending)
                fields.extend(result.fields)
                pending = result.pending
            yield fields

    def _is_escape(self, c: str, nxt: str | None) -> bool:
        if not self.escapechar or c != self.escapechar or nxt is None:
            return False
        if self.escapechar == self.quotechar:
            # Doubled quotes are handled by the quote branch.
            return False
        return nxt in (self.quotechar, self.separator, self.escapechar)

    def _only_leading_whitespace(self, buf: list[str]) -> bool:
        if not self.ignore_leading_whitespace:
            return False
        return all(ch in _LEADING_WHITESPACE for part in buf for ch in part)
