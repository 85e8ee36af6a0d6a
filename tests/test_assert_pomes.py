"""Unit tests: scalar assertions, file/stream assertions, file content helpers."""

import io
from pathlib import Path

import pytest

from pypomes_openssl import (
    InvalidArgumentError, TypeMismatchError,
    assert_algorithm, assert_bool, assert_file, assert_passphrase, assert_positive_int,
    assert_readable_file, assert_string, assert_writable_file,
    file_has_proto_prefix, file_read_content, file_strip_proto_prefix, file_write_content
)


def test_assert_bool_accepts_bools_and_bits():
    """True/False/1/0 are booleans, None falls back to the default."""
    assert assert_bool(True) is True
    assert assert_bool(0) is False
    assert assert_bool(1) is True
    assert assert_bool(None, def_value=False) is False


def test_assert_bool_rejects_other_values():
    """The message names the argument position and the offending value."""
    with pytest.raises(InvalidArgumentError, match=r"Bool expected \(argument #2\), got 'yes'") as exc_info:
        assert_bool("yes", arg_ix=2)
    assert exc_info.value.arg_ix == 2
    with pytest.raises(InvalidArgumentError):
        assert_bool(2)


def test_assert_positive_int():
    """Ints and digit strings pass, and are returned as int."""
    assert assert_positive_int(7) == 7
    assert assert_positive_int("42") == 42
    assert assert_positive_int(None, def_value=5) == 5


@pytest.mark.parametrize("value", [True, 3.0, -1, "x", "", None, [1]])
def test_assert_positive_int_rejects(value):
    """Values whose text is not made up of decimal digits only are rejected."""
    with pytest.raises(InvalidArgumentError, match="Int expected"):
        assert_positive_int(value)


def test_assert_string():
    """Scalars are returned as text, containers are rejected."""
    assert assert_string("abc") == "abc"
    assert assert_string(1.5) == "1.5"
    assert assert_string(None, def_value="d") == "d"
    with pytest.raises(InvalidArgumentError, match="String expected"):
        assert_string([1])


def test_assert_passphrase():
    """Empty passphrases become None, bytes are decoded."""
    assert assert_passphrase(None) is None
    assert assert_passphrase("") is None
    assert assert_passphrase(b"") is None
    assert assert_passphrase(b"secret") == "secret"


def test_assert_algorithm():
    """Exact match first, then case-insensitive unless strict."""
    assert assert_algorithm(supported=["sha256", "sha1"], alg="sha1") == "sha1"
    assert assert_algorithm(supported=["sha256", "sha1"], alg="SHA256") == "sha256"
    with pytest.raises(InvalidArgumentError, match="Algorithm not supported"):
        assert_algorithm(supported=["sha256"], alg="SHA256", strict=True)
    with pytest.raises(InvalidArgumentError):
        assert_algorithm(supported=["sha256"], alg="md4")


def test_file_proto_prefix():
    """The file:// prefix is detected case-insensitively and stripped."""
    assert file_has_proto_prefix("file:///tmp/x.pem")
    assert file_has_proto_prefix("FILE:///tmp/x.pem")
    assert not file_has_proto_prefix("/tmp/x.pem")
    assert not file_has_proto_prefix(Path("/tmp/x.pem"))
    assert file_strip_proto_prefix("file:///tmp/x.pem") == "/tmp/x.pem"
    assert file_strip_proto_prefix("/tmp/x.pem") == "/tmp/x.pem"


def test_assert_readable_file_paths(tmp_path):
    """Existing files pass, with or without prefix, as str or Path."""
    path = tmp_path / "data.bin"
    path.write_bytes(b"data")
    assert assert_readable_file(path) == path
    assert assert_readable_file(str(path)) == path
    assert assert_readable_file(f"file://{path}") == path


def test_assert_readable_file_failures(tmp_path):
    """Directories and missing files are distinct failures."""
    with pytest.raises(InvalidArgumentError, match="got directory"):
        assert_readable_file(tmp_path, arg_ix=1)
    with pytest.raises(InvalidArgumentError, match=r"not found \(argument #1\)"):
        assert_readable_file(tmp_path / "missing.pem", arg_ix=1)


def test_assert_readable_file_streams():
    """Open readable streams pass; closed streams and non-streams fail."""
    stream = io.BytesIO(b"data")
    assert assert_readable_file(stream) is stream

    stream.close()
    with pytest.raises(InvalidArgumentError, match="closed"):
        assert_readable_file(stream)
    with pytest.raises(TypeMismatchError, match="Resource not stream"):
        assert_readable_file(object())
    with pytest.raises(TypeMismatchError):
        assert_readable_file(42)


def test_assert_writable_file(tmp_path):
    """New files in existing directories are writable; missing directories are not."""
    target = tmp_path / "new.pem"
    assert assert_writable_file(target) == target
    assert assert_file(target) == target
    with pytest.raises(InvalidArgumentError, match="Directory not found"):
        assert_writable_file(tmp_path / "nowhere" / "new.pem")
    with pytest.raises(InvalidArgumentError, match="got directory"):
        assert_writable_file(tmp_path)


def test_file_content_roundtrip(tmp_path):
    """Content written to a path is read back, streams are rewound before reading."""
    path = tmp_path / "content.txt"
    assert file_write_content(file=path, data="hello") == 5
    assert file_read_content(file=f"file://{path}") == b"hello"

    stream = io.BytesIO()
    file_write_content(file=stream, data=b"abc")
    assert file_read_content(file=stream) == b"abc"

    text_stream = io.StringIO()
    assert file_write_content(file=text_stream, data=b"text") == 4
    assert file_read_content(file=text_stream) == b"text"


def test_file_read_content_spans_chunks(tmp_path):
    """Files larger than a read chunk come back whole, missing files fail the assertion first."""
    path = tmp_path / "large.bin"
    data = bytes(range(256)) * 1024
    path.write_bytes(data)
    assert file_read_content(file=path) == data
    empty = tmp_path / "empty.bin"
    empty.touch()
    assert file_read_content(file=empty) == b""
    with pytest.raises(InvalidArgumentError, match=r"not found \(argument #1\)"):
        file_read_content(file=tmp_path / "absent.bin", arg_ix=1)
