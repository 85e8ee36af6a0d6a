import base64
import binascii
import re
from typing import Final

from .crypto_common import CRYPTO_BASE64_CHUNK_SIZE
from .crypto_errors import InvalidArgumentError

_BASE64: Final[re.Pattern] = re.compile(r"[A-Za-z0-9+/]*={0,2}")
_HEX: Final[re.Pattern] = re.compile(r"[0-9A-Fa-f]{2,}")


def is_base64(data: str | bytes) -> bool:
    """
    Determine whether *data* is a valid, padded, standard-alphabet Base64 string.

    :param data: the data to inspect
    :return: *True* if *data* decodes as Base64, *False* otherwise
    """
    if isinstance(data, bytes):
        data = data.decode(encoding="latin-1")
    return isinstance(data, str) and len(data) % 4 == 0 and _BASE64.fullmatch(data) is not None


def base64_encode(raw: bytes | str) -> str:
    """
    Encode *raw* to standard Base64.

    :param raw: the data to encode (*str* is used as utf8-encoded)
    :return: the Base64-encoded text
    """
    if isinstance(raw, str):
        raw = raw.encode()
    return base64.b64encode(s=raw).decode(encoding="ascii")


def base64_decode(encoded: str | bytes,
                  chunk_size: int = CRYPTO_BASE64_CHUNK_SIZE) -> bytes:
    """
    Decode the standard Base64 text in *encoded*.

    Decoding proceeds in chunks of *chunk_size* characters. As the chunk size is kept
    a multiple of 4, the output is identical to that of an unchunked decoding.

    :param encoded: the Base64 text
    :param chunk_size: the size of each decoding chunk (rounded down to a multiple of 4)
    :return: the decoded data
    :raises InvalidArgumentError: *encoded* is not valid Base64
    """
    if isinstance(encoded, bytes):
        encoded = encoded.decode(encoding="latin-1")
    if not is_base64(encoded):
        raise InvalidArgumentError(f"Base64 encoded string expected, got {encoded[:64]!r}")

    chunk_size = max(4, chunk_size // 4 * 4)
    chunks: list[bytes] = []
    try:
        for pos in range(0, len(encoded), chunk_size):
            chunks.append(base64.b64decode(s=encoded[pos:pos + chunk_size],
                                           validate=True))
    except binascii.Error as e:
        # padding characters in the middle of the text
        raise InvalidArgumentError(f"Invalid Base64 data: {e}") from e

    return b"".join(chunks)


def base64url_encode(raw: bytes | str) -> str:
    """
    Encode *raw* to URL-safe Base64, with the trailing padding removed.

    :param raw: the data to encode (*str* is used as utf8-encoded)
    :return: the Base64url-encoded text
    """
    return base64_encode(raw=raw).translate(str.maketrans("+/", "-_")).rstrip("=")


def base64url_decode(encoded: str | bytes) -> bytes:
    """
    Decode the URL-safe Base64 text in *encoded*, restoring its trailing padding.

    :param encoded: the Base64url text, with or without padding
    :return: the decoded data
    :raises InvalidArgumentError: *encoded* is not valid Base64url
    """
    if isinstance(encoded, bytes):
        encoded = encoded.decode(encoding="latin-1")
    encoded = encoded.rstrip("=")
    padding: int = 3 - (3 + len(encoded)) % 4
    return base64_decode(encoded=encoded.translate(str.maketrans("-_", "+/")) + "=" * padding)


def is_hex(data: str) -> bool:
    """
    Determine whether *data* is an even-length string of at least two hexadecimal digits.

    :param data: the data to inspect
    :return: *True* if *data* is a hexadecimal string, *False* otherwise
    """
    return isinstance(data, str) and len(data) % 2 == 0 and _HEX.fullmatch(data) is not None


def hex_encode(raw: bytes | str) -> str:
    """
    Encode *raw* as upper-case hexadecimal text.

    :param raw: the data to encode (*str* is used as utf8-encoded)
    :return: the hexadecimal text
    """
    if isinstance(raw, str):
        raw = raw.encode()
    return raw.hex().upper()


def hex_decode(encoded: str) -> bytes:
    """
    Decode the hexadecimal text in *encoded*.

    :param encoded: the hexadecimal text (any case)
    :return: the decoded data
    :raises InvalidArgumentError: *encoded* is not a hexadecimal string
    """
    if not is_hex(encoded):
        raise InvalidArgumentError(f"Hex string expected, got {encoded!r}")
    return bytes.fromhex(encoded)


def hex_pack(hex_str: str) -> bytes:
    """
    Pack the hexadecimal digits in *hex_str* into bytes, high nibble first.

    An odd number of digits is completed with a trailing *0* nibble.

    :param hex_str: the hexadecimal digits
    :return: the packed bytes
    :raises InvalidArgumentError: *hex_str* holds a non-hexadecimal character
    """
    if len(hex_str) % 2:
        hex_str += "0"
    try:
        return bytes.fromhex(hex_str)
    except ValueError as e:
        raise InvalidArgumentError(f"Hex digits expected, got {hex_str!r}") from e


def hex_unpack(data: bytes) -> str:
    """
    Unpack *data* into lower-case hexadecimal digits, high nibble first.

    :param data: the data to unpack
    :return: the hexadecimal digits
    """
    return data.hex()
