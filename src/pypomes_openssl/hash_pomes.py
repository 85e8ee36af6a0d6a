import hashlib
import hmac
import time
from io import IOBase
from pathlib import Path
from typing import Any, Final

from .assert_pomes import assert_algorithm, assert_positive_int, assert_readable_file
from .codec_pomes import hex_pack
from .crypto_common import CRYPTO_DEFAULT_HASH_ALGORITHM, CRYPTO_PBKDF2_ITERATIONS, HashAlgorithm
from .crypto_errors import InvalidArgumentError, MissingArgumentError

# digest sizes for the variable-length algorithms
_SHAKE_SIZES: Final[dict[HashAlgorithm, int]] = {
    HashAlgorithm.SHAKE_128: 32,
    HashAlgorithm.SHAKE_256: 64
}

_BUF_SIZE: Final[int] = 128 * 1024


def _assert_hash(alg: Any,
                 arg_ix: int,
                 keyed: bool = False) -> HashAlgorithm:
    result: HashAlgorithm = HashAlgorithm(assert_algorithm(supported=list(HashAlgorithm),
                                                           alg=alg,
                                                           arg_ix=arg_ix))
    if keyed and result in _SHAKE_SIZES:
        raise InvalidArgumentError(f"Hash algorithm not supported for HMAC (argument #{arg_ix}), got '{result}'",
                                   arg_ix=arg_ix)
    return result


def _to_bytes(data: str | bytes) -> bytes:
    return data.encode() if isinstance(data, str) else data


def _digest(hasher: Any,
            alg: HashAlgorithm,
            raw: bool) -> bytes | str:
    if alg in _SHAKE_SIZES:
        return hasher.digest(_SHAKE_SIZES[alg]) if raw else hasher.hexdigest(_SHAKE_SIZES[alg])
    return hasher.digest() if raw else hasher.hexdigest()


def _feed_file(hasher: Any,
               file: Path | str | IOBase) -> None:
    source: Path | IOBase = assert_readable_file(file=file,
                                                 arg_ix=1)
    if isinstance(source, Path):
        with source.open(mode="rb") as f:
            file_bytes: bytes = f.read(_BUF_SIZE)
            while file_bytes:
                hasher.update(file_bytes)
                file_bytes = f.read(_BUF_SIZE)
    else:
        if source.seekable():
            source.seek(0)
        file_bytes: bytes | str = source.read(_BUF_SIZE)
        while file_bytes:
            hasher.update(_to_bytes(file_bytes))
            file_bytes = source.read(_BUF_SIZE)


def hash_digest(msg: str | bytes,
                alg: HashAlgorithm | str = CRYPTO_DEFAULT_HASH_ALGORITHM,
                raw: bool = False) -> str | bytes:
    """
    Compute the hash of *msg*, using the algorithm specified in *alg*.

    Supported algorithms:
      *md5*, *blake2b*, *blake2s*, *sha1*, *sha224*, *sha256*, *sha384*,
      *sha512*, *sha3_224*, *sha3_256*, *sha3_384*, *sha3_512*, *shake_128*, *shake_256*.

    :param msg: the message to calculate the hash for (*str* is used as utf8-encoded)
    :param alg: the algorithm to use (defaults to an environment-defined value, or to 'sha256')
    :param raw: whether to return the raw digest, rather than lower-case hexadecimal digits
    :return: the hash value
    """
    alg = _assert_hash(alg=alg,
                       arg_ix=2)
    # instantiate the hasher (undeclared type is '_Hash')
    hasher = hashlib.new(name=alg)
    hasher.update(_to_bytes(msg))
    return _digest(hasher=hasher,
                   alg=alg,
                   raw=raw)


def hash_file(file: Path | str | IOBase,
              alg: HashAlgorithm | str = CRYPTO_DEFAULT_HASH_ALGORITHM,
              raw: bool = False) -> str | bytes:
    """
    Compute the hash of the contents of *file*, using the algorithm specified in *alg*.

    :param file: the file path (optionally prefixed with *file://*) or stream
    :param alg: the algorithm to use
    :param raw: whether to return the raw digest, rather than lower-case hexadecimal digits
    :return: the hash value
    """
    alg = _assert_hash(alg=alg,
                       arg_ix=2)
    hasher = hashlib.new(name=alg)
    _feed_file(hasher=hasher,
               file=file)
    return _digest(hasher=hasher,
                   alg=alg,
                   raw=raw)


def hash_equals(known: str | bytes,
                candidate: str | bytes) -> bool:
    """
    Compare two hash values in constant time.

    :param known: the known hash value
    :param candidate: the hash value to compare
    :return: *True* if the values are equal, *False* otherwise
    """
    if known in [None, "", b""]:
        raise MissingArgumentError("known hash is required (argument #1)",
                                   arg_ix=1)
    return hmac.compare_digest(_to_bytes(known), _to_bytes(candidate or b""))


def hash_hmac(msg: str | bytes,
              key: str | bytes,
              alg: HashAlgorithm | str = CRYPTO_DEFAULT_HASH_ALGORITHM,
              raw: bool = False) -> str | bytes:
    """
    Compute the keyed hash (*HMAC*) of *msg*.

    :param msg: the message (*str* is used as utf8-encoded)
    :param key: the secret key
    :param alg: the algorithm to use
    :param raw: whether to return the raw digest, rather than lower-case hexadecimal digits
    :return: the keyed hash value
    """
    alg = _assert_hash(alg=alg,
                       arg_ix=3,
                       keyed=True)
    mac: hmac.HMAC = hmac.new(key=_to_bytes(key),
                              msg=_to_bytes(msg),
                              digestmod=alg)
    return mac.digest() if raw else mac.hexdigest()


def hash_hmac_file(file: Path | str | IOBase,
                   key: str | bytes,
                   alg: HashAlgorithm | str = CRYPTO_DEFAULT_HASH_ALGORITHM,
                   raw: bool = False) -> str | bytes:
    """
    Compute the keyed hash (*HMAC*) of the contents of *file*.

    :param file: the file path (optionally prefixed with *file://*) or stream
    :param key: the secret key
    :param alg: the algorithm to use
    :param raw: whether to return the raw digest, rather than lower-case hexadecimal digits
    :return: the keyed hash value
    """
    alg = _assert_hash(alg=alg,
                       arg_ix=3,
                       keyed=True)
    mac: hmac.HMAC = hmac.new(key=_to_bytes(key),
                              digestmod=alg)
    _feed_file(hasher=mac,
               file=file)
    return mac.digest() if raw else mac.hexdigest()


def hash_pbkdf2(password: str | bytes,
                salt: str | bytes,
                alg: HashAlgorithm | str = CRYPTO_DEFAULT_HASH_ALGORITHM,
                iterations: int = CRYPTO_PBKDF2_ITERATIONS,
                length: int = 0,
                raw: bool = False) -> str | bytes:
    """
    Derive a key from *password*, using *PBKDF2*.

    A *length* of *0* yields the full digest size of *alg*. Otherwise, *length* is the number
    of bytes, for raw output, or of hexadecimal digits.

    :param password: the password
    :param salt: the salt
    :param alg: the algorithm to use
    :param iterations: the number of iterations (defaults to an environment-defined value, or to 10000)
    :param length: the size of the derived key
    :param raw: whether to return the raw key, rather than lower-case hexadecimal digits
    :return: the derived key
    """
    if password in [None, "", b""]:
        raise MissingArgumentError("password is required (argument #1)",
                                   arg_ix=1)
    if salt in [None, "", b""]:
        raise MissingArgumentError("salt is required (argument #2)",
                                   arg_ix=2)
    alg = _assert_hash(alg=alg,
                       arg_ix=3,
                       keyed=True)
    iterations = assert_positive_int(value=iterations,
                                     arg_ix=4) or 1
    length = assert_positive_int(value=length,
                                 arg_ix=5)

    key_size: int | None = None
    if length:
        key_size = length if raw else (length + 1) // 2
    result: bytes = hashlib.pbkdf2_hmac(alg,
                                        _to_bytes(password),
                                        _to_bytes(salt),
                                        iterations,
                                        key_size)
    return result if raw else result.hex()[:length or None]


def hash_totp(key: str | bytes,
              when: float = None,
              digits: int = 8,
              alg: HashAlgorithm | str = HashAlgorithm.SHA256,
              time_step: int = 30) -> str:
    """
    Compute the time-based one-time password (*TOTP*) for *key*, as per *RFC 6238*.

    The counter is the number of *time_step* periods elapsed since the epoch, packed as
    8 big-endian bytes. Dynamic truncation picks 4 bytes of the *HMAC* at the offset given
    by its last nibble, and the result is reduced modulo *10^digits*, zero-padded.

    :param key: the shared secret
    :param when: the reference time, in seconds since the epoch (defaults to now)
    :param digits: the number of digits in the password
    :param alg: the algorithm to use
    :param time_step: the length of each period, in seconds
    :return: the one-time password
    """
    digits = assert_positive_int(value=digits,
                                 arg_ix=3)
    time_step = assert_positive_int(value=time_step,
                                    arg_ix=5) or 30
    counter: int = int((time.time() if when is None else when) // time_step)
    mac_hex: str = hash_hmac(msg=hex_pack(f"{counter:016x}"),
                             key=key,
                             alg=alg)
    offset: int = int(mac_hex[-1], 16) * 2
    code: int = int(mac_hex[offset:offset + 8], 16) & 0x7fffffff

    return str(code % 10 ** digits).zfill(digits)
