"""Unit tests: digests, HMAC, PBKDF2 and TOTP, against published vectors."""

import hashlib
import io

import pytest

from pypomes_openssl import (
    InvalidArgumentError, MissingArgumentError,
    hash_digest, hash_equals, hash_file, hash_hmac, hash_hmac_file, hash_pbkdf2, hash_totp
)

SHA256_ABC = "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"

SEED_SHA1 = "12345678901234567890"
SEED_SHA256 = "12345678901234567890123456789012"
SEED_SHA512 = "1234567890123456789012345678901234567890123456789012345678901234"


def test_hash_digest():
    assert hash_digest(msg="abc") == SHA256_ABC
    assert hash_digest(msg=b"abc", alg="SHA256") == SHA256_ABC
    assert hash_digest(msg="abc", alg="md5") == "900150983cd24fb0d6963f7d28e17f72"
    assert hash_digest(msg="abc", raw=True) == bytes.fromhex(SHA256_ABC)


def test_hash_digest_shake_sizes():
    assert len(hash_digest(msg="abc", alg="shake_128", raw=True)) == 32
    assert hash_digest(msg="abc", alg="shake_256") == hashlib.shake_256(b"abc").hexdigest(64)


def test_hash_digest_unsupported():
    with pytest.raises(InvalidArgumentError, match=r"Algorithm not supported \(argument #2\)"):
        hash_digest(msg="abc", alg="sha999")


def test_hash_file(tmp_path):
    """Files are hashed in chunks, streams from their start."""
    data = bytes(range(256)) * 1024
    path = tmp_path / "data.bin"
    path.write_bytes(data)
    expected = hashlib.sha256(data).hexdigest()
    assert hash_file(file=path) == expected
    assert hash_file(file=f"file://{path}") == expected

    stream = io.BytesIO(data)
    stream.read(10)
    assert hash_file(file=stream) == expected


def test_hash_equals():
    assert hash_equals(known=SHA256_ABC, candidate=hash_digest(msg="abc"))
    assert not hash_equals(known=SHA256_ABC, candidate=hash_digest(msg="abd"))
    assert not hash_equals(known=SHA256_ABC, candidate=None)
    with pytest.raises(MissingArgumentError):
        hash_equals(known="", candidate=SHA256_ABC)


def test_hash_hmac_rfc4231():
    expected = "5bdcc146bf60754e6a042426089575c75a003f089d2739839dec58b964ec3843"
    assert hash_hmac(msg="what do ya want for nothing?", key="Jefe") == expected
    assert hash_hmac(msg=b"what do ya want for nothing?", key=b"Jefe", raw=True) == bytes.fromhex(expected)


def test_hash_hmac_rejects_shake():
    with pytest.raises(InvalidArgumentError, match="not supported for HMAC"):
        hash_hmac(msg="m", key="k", alg="shake_128")


def test_hash_hmac_file(tmp_path):
    path = tmp_path / "message.txt"
    path.write_bytes(b"what do ya want for nothing?")
    assert hash_hmac_file(file=path, key="Jefe") == hash_hmac(msg="what do ya want for nothing?", key="Jefe")


def test_hash_pbkdf2_rfc6070():
    assert hash_pbkdf2(password="password", salt="salt", alg="sha1",
                       iterations=1) == "0c60c80f961f0e71f3a9b524af6012062fe037a6"
    assert hash_pbkdf2(password="password", salt="salt", alg="sha1",
                       iterations=2) == "ea6c014dc72d6f8ccd1ed92ace1d41f0d8de8957"


def test_hash_pbkdf2_lengths():
    """Lengths count hex digits for text output, and bytes for raw output."""
    assert hash_pbkdf2(password="password", salt="salt", alg="sha1", iterations=1, length=10) == "0c60c80f96"
    assert hash_pbkdf2(password="password", salt="salt", alg="sha1", iterations=1, length=5,
                       raw=True) == bytes.fromhex("0c60c80f96")


def test_hash_pbkdf2_requires_password_and_salt():
    with pytest.raises(MissingArgumentError, match="password"):
        hash_pbkdf2(password="", salt="salt")
    with pytest.raises(MissingArgumentError, match="salt"):
        hash_pbkdf2(password="password", salt=b"")


@pytest.mark.parametrize("when, alg, seed, expected", [
    (59, "sha1", SEED_SHA1, "94287082"),
    (59, "sha256", SEED_SHA256, "46119246"),
    (59, "sha512", SEED_SHA512, "90693936"),
    (1111111109, "sha1", SEED_SHA1, "07081804"),
    (1111111109, "sha256", SEED_SHA256, "68084774"),
    (1111111109, "sha512", SEED_SHA512, "25091201"),
    (1234567890, "sha1", SEED_SHA1, "89005924"),
    (1234567890, "sha256", SEED_SHA256, "91819424"),
    (1234567890, "sha512", SEED_SHA512, "93441116"),
    (20000000000, "sha1", SEED_SHA1, "65353130"),
])
def test_hash_totp_rfc6238(when, alg, seed, expected):
    assert hash_totp(key=seed, when=when, alg=alg) == expected


def test_hash_totp_digits_and_steps():
    """Shorter passwords keep the low-order digits; times in the same step agree."""
    assert hash_totp(key=SEED_SHA1, when=59, digits=6, alg="sha1") == "287082"
    assert hash_totp(key=SEED_SHA1, when=30, alg="sha1") == hash_totp(key=SEED_SHA1, when=59, alg="sha1")
    assert len(hash_totp(key="secret")) == 8
