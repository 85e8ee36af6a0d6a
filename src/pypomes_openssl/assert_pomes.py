import os
import re
from io import IOBase, TextIOBase
from pathlib import Path
from pypomes_core import file_get_data
from typing import Any, Final

from .crypto_errors import (
    InvalidArgumentError, TypeMismatchError, arg_ix_text
)

FILE_PROTO: Final[str] = "file://"

_DIGITS: Final[re.Pattern] = re.compile(r"[0-9]+")


def file_has_proto_prefix(file_name: Any) -> bool:
    """
    Determine whether *file_name* is a string starting with *file://* (case-insensitive).

    :param file_name: the value to inspect
    :return: *True* if *file_name* carries the file protocol prefix, *False* otherwise
    """
    return isinstance(file_name, str) and file_name[:len(FILE_PROTO)].lower() == FILE_PROTO


def file_strip_proto_prefix(file_name: str) -> str:
    """
    Remove the *file://* prefix from *file_name*, if present.

    :param file_name: the file name
    :return: *file_name* without the file protocol prefix
    """
    return file_name[len(FILE_PROTO):] if file_has_proto_prefix(file_name) else file_name


def assert_bool(value: Any,
                arg_ix: int = None,
                def_value: bool = None) -> bool:
    """
    Assert that *value* is boolean (*True*, *False*, *1* or *0*).

    :param value: the value to assert
    :param arg_ix: the position of the argument, for error reporting
    :param def_value: the value to use if *value* is *None*
    :return: the value as *bool*
    :raises InvalidArgumentError: *value* is not boolean
    """
    if value is None:
        value = def_value
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in [0, 1]:
        return value == 1

    raise InvalidArgumentError(f"Bool expected{arg_ix_text(arg_ix)}, got {value!r}",
                               arg_ix=arg_ix)


def assert_positive_int(value: Any,
                        arg_ix: int = None,
                        def_value: int = None) -> int:
    """
    Assert that *value* is a non-negative integer, or its decimal digits string representation.

    Note that *True*, *3.0* and *-1* are all rejected, as their textual representations
    are not made up exclusively of decimal digits.

    :param value: the value to assert
    :param arg_ix: the position of the argument, for error reporting
    :param def_value: the value to use if *value* is *None*
    :return: the value as *int*
    :raises InvalidArgumentError: *value* is not a non-negative integer
    """
    if value is None:
        value = def_value
    if isinstance(value, int | str) and _DIGITS.fullmatch(str(value)):
        return int(value)

    raise InvalidArgumentError(f"Int expected{arg_ix_text(arg_ix)}, got {value!r}",
                               arg_ix=arg_ix)


def assert_string(value: Any,
                  arg_ix: int = None,
                  def_value: str = None) -> str:
    """
    Assert that *value* is a scalar, and return its string representation.

    :param value: the value to assert
    :param arg_ix: the position of the argument, for error reporting
    :param def_value: the value to use if *value* is *None*
    :return: the value as *str*
    :raises InvalidArgumentError: *value* is not a scalar
    """
    if value is None:
        value = def_value
    if isinstance(value, str):
        return value
    if isinstance(value, bool | int | float):
        return str(value)

    raise InvalidArgumentError(f"String expected{arg_ix_text(arg_ix)}, got {value!r}",
                               arg_ix=arg_ix)


def assert_passphrase(passphrase: Any,
                      arg_ix: int = None) -> str | None:
    """
    Assert a passphrase, mapping an empty one to *None*.

    :param passphrase: the passphrase
    :param arg_ix: the position of the argument, for error reporting
    :return: the passphrase as *str*, or *None* if not given
    :raises InvalidArgumentError: *passphrase* is not a scalar
    """
    if isinstance(passphrase, bytes):
        passphrase = passphrase.decode()
    return None if passphrase in [None, ""] else assert_string(value=passphrase,
                                                                arg_ix=arg_ix)


def assert_algorithm(supported: list[str],
                     alg: Any,
                     arg_ix: int = None,
                     strict: bool = False) -> str:
    """
    Assert that *alg* is one of the algorithms in *supported*.

    An exact match is attempted first. Unless *strict* is set, a case-insensitive match follows.

    :param supported: the names of the supported algorithms
    :param alg: the algorithm name
    :param arg_ix: the position of the argument, for error reporting
    :param strict: whether to require an exact match
    :return: the algorithm name, spelled as in *supported*
    :raises InvalidArgumentError: *alg* is not supported
    """
    alg = assert_string(value=alg,
                        arg_ix=arg_ix)
    if alg in supported:
        return alg
    if not strict:
        for name in supported:
            if name.lower() == alg.lower():
                return name

    raise InvalidArgumentError(f"Algorithm not supported{arg_ix_text(arg_ix)}, got {alg!r}",
                               arg_ix=arg_ix)


def _assert_stream(stream: Any,
                   arg_ix: int,
                   mode: str) -> None:
    # HAZARD: only open streams qualify, as closed ones raise on 'readable()/writable()'
    if not isinstance(stream, IOBase):
        raise TypeMismatchError(f"Resource not stream{arg_ix_text(arg_ix)}, got {type(stream).__name__}",
                                arg_ix=arg_ix)
    if stream.closed:
        raise InvalidArgumentError(f"Stream is closed{arg_ix_text(arg_ix)}",
                                   arg_ix=arg_ix)
    if (mode == "r" and not stream.readable()) or (mode == "w" and not stream.writable()):
        access: str = "readable" if mode == "r" else "writable"
        raise InvalidArgumentError(f"Stream is not {access}{arg_ix_text(arg_ix)}",
                                   arg_ix=arg_ix)


def _file_path(file: Any,
               arg_ix: int) -> Path:
    if isinstance(file, Path):
        return file
    if isinstance(file, str) and file:
        return Path(file_strip_proto_prefix(file))

    raise InvalidArgumentError(f"File expected{arg_ix_text(arg_ix)}, got {file!r}",
                               arg_ix=arg_ix)


def assert_file(file: Path | str,
                arg_ix: int = None) -> Path:
    """
    Assert that *file* names an existing file, or a file in an existing directory.

    :param file: the file name, optionally prefixed with *file://*
    :param arg_ix: the position of the argument, for error reporting
    :return: the file path
    :raises InvalidArgumentError: *file* is a directory, or its directory does not exist
    """
    path: Path = _file_path(file=file,
                            arg_ix=arg_ix)
    if path.is_dir():
        raise InvalidArgumentError(f"File expected{arg_ix_text(arg_ix)}, got directory {str(path)!r}",
                                   arg_ix=arg_ix)
    if not path.is_file() and not path.parent.is_dir():
        raise InvalidArgumentError(f"Directory not found{arg_ix_text(arg_ix)}: {str(path.parent)!r}",
                                   arg_ix=arg_ix)
    return path


def assert_readable_file(file: Path | str | IOBase,
                         arg_ix: int = None) -> Path | IOBase:
    """
    Assert that *file* is a readable file path, or an open readable stream.

    A path may be prefixed with *file://*. Each invocation inspects the file system anew.

    :param file: the file path or stream
    :param arg_ix: the position of the argument, for error reporting
    :return: the file path (with the prefix removed), or the stream
    :raises TypeMismatchError: *file* is a handle other than a stream
    :raises InvalidArgumentError: the file does not exist, is a directory, or is not readable
    """
    if not isinstance(file, Path | str):
        _assert_stream(stream=file,
                       arg_ix=arg_ix,
                       mode="r")
        return file

    path: Path = _file_path(file=file,
                            arg_ix=arg_ix)
    if path.is_dir():
        raise InvalidArgumentError(f"File expected{arg_ix_text(arg_ix)}, got directory {str(path)!r}",
                                   arg_ix=arg_ix)
    if not path.is_file():
        raise InvalidArgumentError(f"File {str(path)!r} not found{arg_ix_text(arg_ix)}",
                                   arg_ix=arg_ix)
    if not os.access(path, os.R_OK):
        raise InvalidArgumentError(f"File {str(path)!r} is not readable{arg_ix_text(arg_ix)}",
                                   arg_ix=arg_ix)
    return path


def assert_writable_file(file: Path | str | IOBase,
                         arg_ix: int = None) -> Path | IOBase:
    """
    Assert that *file* is a writable file path, or an open writable stream.

    A path qualifies if the file is writable, or if it does not exist and its directory is writable.

    :param file: the file path or stream
    :param arg_ix: the position of the argument, for error reporting
    :return: the file path (with the prefix removed), or the stream
    :raises TypeMismatchError: *file* is a handle other than a stream
    :raises InvalidArgumentError: the file is a directory, or is not writable
    """
    if not isinstance(file, Path | str):
        _assert_stream(stream=file,
                       arg_ix=arg_ix,
                       mode="w")
        return file

    path: Path = assert_file(file=file,
                             arg_ix=arg_ix)
    target: Path = path if path.is_file() else path.parent
    if not os.access(target, os.W_OK):
        raise InvalidArgumentError(f"File {str(path)!r} is not writable{arg_ix_text(arg_ix)}",
                                   arg_ix=arg_ix)
    return path


def file_read_content(file: Path | str | IOBase,
                      arg_ix: int = None) -> bytes:
    """
    Read and return the full contents of *file*.

    File paths are asserted readable, and then read by *file_get_data()*.
    Streams are rewound before being read.

    :param file: the file path (optionally prefixed with *file://*) or stream
    :param arg_ix: the position of the argument, for error reporting
    :return: the file contents
    """
    source: Path | IOBase = assert_readable_file(file=file,
                                                 arg_ix=arg_ix)
    if isinstance(source, Path):
        return file_get_data(file_data=source)

    if source.seekable():
        source.seek(0)
    data: bytes | str = source.read()
    return data.encode() if isinstance(data, str) else data


def file_write_content(file: Path | str | IOBase,
                       data: bytes | str,
                       arg_ix: int = None) -> int:
    """
    Write *data* to *file*, replacing any previous contents of a file path.

    :param file: the file path (optionally prefixed with *file://*) or stream
    :param data: the data to write
    :param arg_ix: the position of the argument, for error reporting
    :return: the number of bytes written
    """
    target: Path | IOBase = assert_writable_file(file=file,
                                                 arg_ix=arg_ix)
    if isinstance(data, str):
        data = data.encode()
    if isinstance(target, Path):
        return target.write_bytes(data)

    if isinstance(target, TextIOBase):
        target.write(data.decode())
        return len(data)
    return target.write(data)
