"""Tests for the delimited text row source and the shared source lifecycle."""

from __future__ import annotations

import io
from collections.abc import Callable
from pathlib import Path

import pytest

from tabular_ingestion.config import ReaderOptions, TokenizerConfig
from tabular_ingestion.exceptions import (
    ResourceCleanupError,
    RowReadError,
    SourceNotFoundError,
    SourceStateError,
)
from tabular_ingestion.source import IterationState, SourceState
from tabular_ingestion.text_source import TextRowSource


class TestTextRows:
    """Tests for rows produced from CSV text."""

    def test_rows_padded_to_header_width(self, csv_file: Callable[..., Path]) -> None:
        path = csv_file("a,b,c\n1\n1,2,3,4\n")
        with TextRowSource(path) as source:
            assert list(source) == [["a", "b", "c"], ["1", "", ""], ["1", "2", "3", "4"]]

    def test_multiline_field(self, csv_file: Callable[..., Path]) -> None:
        path = csv_file('id,note\n1,"line1\nline2"\n2,x\n')
        with TextRowSource(path) as source:
            assert list(source) == [["id", "note"], ["1", "line1\nline2"], ["2", "x"]]

    def test_crlf_line_endings(self, csv_file: Callable[..., Path]) -> None:
        path = csv_file("a,b\r\n1,2\r\n")
        with TextRowSource(path) as source:
            assert list(source) == [["a", "b"], ["1", "2"]]

    def test_empty_rows_kept_by_default(self, csv_file: Callable[..., Path]) -> None:
        path = csv_file("a,b\n\n , \n1,2\n")
        with TextRowSource(path) as source:
            assert list(source) == [["a", "b"], ["", ""], [" ", " "], ["1", "2"]]

    def test_empty_rows_filtered(self, csv_file: Callable[..., Path]) -> None:
        path = csv_file("a,b\n\n , \n1,2\n")
        with TextRowSource(path, ReaderOptions(read_empty_rows=False)) as source:
            assert list(source) == [["a", "b"], ["1", "2"]]

    def test_skip_lines(self, csv_file: Callable[..., Path]) -> None:
        path = csv_file("title line\ngenerated today\na,b\n1,2\n")
        with TextRowSource(path, ReaderOptions(skip_lines=2)) as source:
            assert list(source) == [["a", "b"], ["1", "2"]]

    def test_skip_more_lines_than_file(self, csv_file: Callable[..., Path]) -> None:
        path = csv_file("a,b\n")
        with TextRowSource(path, ReaderOptions(skip_lines=5)) as source:
            assert list(source) == []

    def test_encoding_and_separator(self, csv_file: Callable[..., Path]) -> None:
        path = csv_file("name;city\nJosé;Zürich\n", encoding="latin-1")
        options = ReaderOptions(encoding="latin-1", tokenizer=TokenizerConfig(separator=";"))
        with TextRowSource(path, options) as source:
            assert list(source) == [["name", "city"], ["José", "Zürich"]]

    def test_byte_stream_is_left_open(self) -> None:
        stream = io.BytesIO(b"a,b\n1,2\n")
        with TextRowSource(stream) as source:
            assert list(source) == [["a", "b"], ["1", "2"]]
        assert not stream.closed

    def test_decode_error_is_row_read_error(self, csv_file: Callable[..., Path]) -> None:
        path = csv_file("a,b\n\xff\xfe,x\n", encoding="latin-1")
        source = TextRowSource(path).open()
        with pytest.raises(RowReadError):
            list(source)
        source.close()


class TestLifecycle:
    """Tests for open, iterate and close."""

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SourceNotFoundError):
            TextRowSource(tmp_path / "missing.csv").open()

    def test_missing_file_is_file_not_found(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            TextRowSource(tmp_path / "missing.csv").open()

    def test_missing_stream(self) -> None:
        with pytest.raises(SourceNotFoundError):
            TextRowSource(None).open()

    def test_next_row_requires_has_next(self, csv_file: Callable[..., Path]) -> None:
        source = TextRowSource(csv_file("a\n")).open()
        with pytest.raises(SourceStateError):
            source.next_row()
        source.close()

    def test_next_row_repeats_current_row(self, csv_file: Callable[..., Path]) -> None:
        source = TextRowSource(csv_file("a\nb\n")).open()
        assert source.has_next()
        assert source.next_row() == ["a"]
        assert source.next_row() == ["a"]
        assert source.has_next()
        assert source.next_row() == ["b"]
        assert not source.has_next()
        assert source.iteration is IterationState.EXHAUSTED
        source.close()

    def test_has_next_before_open(self, csv_file: Callable[..., Path]) -> None:
        with pytest.raises(SourceStateError):
            TextRowSource(csv_file("a\n")).has_next()

    def test_close_mid_iteration(self, csv_file: Callable[..., Path]) -> None:
        source = TextRowSource(csv_file("a\nb\nc\n")).open()
        assert source.has_next()
        source.close()
        assert source.state is SourceState.CLOSED
        assert not source.has_next()
        with pytest.raises(SourceStateError):
            source.next_row()

    def test_second_close_is_noop(self, csv_file: Callable[..., Path]) -> None:
        source = TextRowSource(csv_file("a\n")).open()
        source.close()
        source.close()
        assert source.state is SourceState.CLOSED

    def test_close_without_open(self, csv_file: Callable[..., Path]) -> None:
        with pytest.raises(SourceStateError):
            TextRowSource(csv_file("a\n")).close()

    def test_open_twice(self, csv_file: Callable[..., Path]) -> None:
        source = TextRowSource(csv_file("a\n")).open()
        with pytest.raises(SourceStateError):
            source.open()
        source.close()

    def test_release_failure(self, csv_file: Callable[..., Path], monkeypatch: pytest.MonkeyPatch) -> None:
        source = TextRowSource(csv_file("a\n")).open()

        def failing_release() -> None:
            raise OSError("disk gone")

        monkeypatch.setattr(source, "_release", failing_release)
        with pytest.raises(ResourceCleanupError):
            source.close()
        assert source.state is SourceState.CLOSED
        assert not source.has_next()
