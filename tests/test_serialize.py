"""
Tests for the file serializer: gates, language hints and block format
"""

import logging

import pytest

import fcopy
from fcopy import OutputBuffer, Outcome

MIB = 1024 * 1024


def _serialize(tmp_path, name, content, display=None):
    path = tmp_path / name
    path.write_bytes(content)
    buffer = OutputBuffer()
    result = fcopy.serialize_file(str(path), display or name, buffer)
    return result, buffer.getvalue()


# Size gate

def test_file_of_exactly_one_mib_is_serialized(tmp_path):
    result, out = _serialize(tmp_path, "big.txt", b"a" * MIB)

    assert result.outcome is Outcome.SERIALIZED
    assert out.startswith(b"```text big.txt\n")


def test_file_one_byte_over_one_mib_is_skipped(tmp_path, caplog):
    result, out = _serialize(tmp_path, "big.txt", b"a" * (MIB + 1))

    assert result.outcome is Outcome.SKIPPED
    assert out == b""
    assert "Skipping large file (> 1MB): big.txt" in caplog.text


# Binary gate

@pytest.mark.parametrize("content", [
    b"a\x00b",
    b"\x00abc",
    b"0123456789\x00\x00tail",     # pair outside the first ten bytes
    b"\x00\x00ab\x00\x00",         # only one pair is tolerated
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR",
])
def test_binary_content_is_detected(content):
    assert fcopy.is_binary(content)


@pytest.mark.parametrize("content", [
    b"",
    b"plain text\n",
    b"\x00\x00hello",
    b"abcdefgh\x00\x00rest",
])
def test_text_content_is_not_binary(content):
    assert not fcopy.is_binary(content)


def test_binary_file_is_skipped(tmp_path, caplog):
    result, out = _serialize(tmp_path, "blob.bin", b"a\x00b")

    assert result == fcopy.EntryResult("blob.bin", Outcome.SKIPPED, "binary content")
    assert out == b""
    assert "Skipping likely binary file: blob.bin" in caplog.text


def test_paired_leading_nuls_are_serialized(tmp_path):
    result, out = _serialize(tmp_path, "wide.txt", b"\x00\x00hello")

    assert result.outcome is Outcome.SERIALIZED
    assert out == b"```text wide.txt\n\x00\x00hello\n```\n"


def test_missing_file_is_an_error(tmp_path, caplog):
    buffer = OutputBuffer()

    result = fcopy.serialize_file(str(tmp_path / "nope.go"), "nope.go", buffer)

    assert result.outcome is Outcome.ERRORED
    assert len(buffer) == 0
    assert "Error reading file nope.go" in caplog.text


# Language hints

@pytest.mark.parametrize("path,hint", [
    ("main.go", "go"),
    ("src/App.TSX", "typescript"),
    ("lib.hpp", "cpp"),
    ("README.markdown", "markdown"),
    ("Dockerfile", "dockerfile"),
    ("Containerfile", "dockerfile"),
    ("MAKEFILE", "makefile"),
    ("Caddyfile", "caddyfile"),
    ("service.dockerfile", "dockerfile"),
    ("config.toml", "toml"),
    ("archive.tar.GZ", "gz"),
    (".bashrc", "bashrc"),
    ("LICENSE", ""),
])
def test_language_hint(path, hint):
    assert fcopy.language_hint(path) == hint


def test_language_tables_are_read_only():
    with pytest.raises(TypeError):
        fcopy.LANGUAGE_HINTS[".zig"] = "zig"


# Block format

def test_block_format_with_hint():
    buffer = OutputBuffer()

    fcopy.emit_block(buffer, "cmd/main.go", "go", b"package main\n")

    assert buffer.getvalue() == b"```go cmd/main.go\npackage main\n```\n"


def test_block_format_without_hint():
    buffer = OutputBuffer()

    fcopy.emit_block(buffer, "LICENSE", "", b"MIT\n")

    assert buffer.getvalue() == b"```LICENSE\nMIT\n```\n"


def test_missing_trailing_newline_is_added(tmp_path):
    _, out = _serialize(tmp_path, "notes.txt", b"line one\nline two")

    assert out == b"```text notes.txt\nline one\nline two\n```\n"


def test_empty_file_gets_no_extra_newline(tmp_path):
    _, out = _serialize(tmp_path, "empty.py", b"")

    assert out == b"```python empty.py\n```\n"


def test_blocks_are_separated_by_a_blank_line():
    buffer = OutputBuffer()

    fcopy.emit_block(buffer, "a.py", "python", b"a = 1\n")
    fcopy.emit_block(buffer, "b.py", "python", b"b = 2")

    assert buffer.getvalue() == (
        b"```python a.py\na = 1\n```\n"
        b"\n\n"
        b"```python b.py\nb = 2\n```\n"
    )


def test_content_is_copied_byte_for_byte(tmp_path):
    raw = "café ☃\r\n".encode("utf-8") + b"\xff\xfe"

    _, out = _serialize(tmp_path, "mixed.txt", raw)

    assert out == b"```text mixed.txt\n" + raw + b"\n```\n"


def test_serializer_logs_added_files(tmp_path, caplog):
    caplog.set_level(logging.INFO)

    _serialize(tmp_path, "a.rs", b"fn main() {}\n")

    assert "Adding file: a.rs" in caplog.text
