from __future__ import annotations
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import dh, dsa, ec, ed25519, ed448, rsa, x25519, x448
from enum import StrEnum, auto
from logging import Logger
from pypomes_core import APP_PREFIX, env_get_enum, env_get_int, env_get_str
from typing import Final

from .crypto_errors import InvalidArgumentError


class SignatureMode(StrEnum):
    """
    Location of signatures with respect to the signed files.
    """
    ATTACHED = auto()
    DETACHED = auto()


class HashAlgorithm(StrEnum):
    """
    Supported hash algorithms.
    """
    MD5 = auto()
    BLAKE2B = auto()
    BLAKE2S = auto()
    SHA1 = auto()
    SHA224 = auto()
    SHA256 = auto()
    SHA384 = auto()
    SHA512 = auto()
    SHA3_224 = auto()
    SHA3_256 = auto()
    SHA3_384 = auto()
    SHA3_512 = auto()
    SHAKE_128 = auto()
    SHAKE_256 = auto()


class PemType(StrEnum):
    """
    Registered PEM envelope labels.
    """
    X509_CERTIFICATE = "X509 CERTIFICATE"
    CERTIFICATE = "CERTIFICATE"
    TRUSTED_CERTIFICATE = "TRUSTED CERTIFICATE"
    NEW_CERTIFICATE_REQUEST = "NEW CERTIFICATE REQUEST"
    CERTIFICATE_REQUEST = "CERTIFICATE REQUEST"
    X509_CRL = "X509 CRL"
    ANY_PRIVATE_KEY = "ANY PRIVATE KEY"
    PUBLIC_KEY = "PUBLIC KEY"
    RSA_PRIVATE_KEY = "RSA PRIVATE KEY"
    RSA_PUBLIC_KEY = "RSA PUBLIC KEY"
    DSA_PRIVATE_KEY = "DSA PRIVATE KEY"
    DSA_PUBLIC_KEY = "DSA PUBLIC KEY"
    PKCS7 = "PKCS7"
    PKCS7_SIGNED_DATA = "PKCS #7 SIGNED DATA"
    ENCRYPTED_PRIVATE_KEY = "ENCRYPTED PRIVATE KEY"
    PRIVATE_KEY = "PRIVATE KEY"
    DH_PARAMETERS = "DH PARAMETERS"
    X942_DH_PARAMETERS = "X9.42 DH PARAMETERS"
    SSL_SESSION_PARAMETERS = "SSL SESSION PARAMETERS"
    DSA_PARAMETERS = "DSA PARAMETERS"
    ECDSA_PUBLIC_KEY = "ECDSA PUBLIC KEY"
    EC_PARAMETERS = "EC PARAMETERS"
    EC_PRIVATE_KEY = "EC PRIVATE KEY"
    PARAMETERS = "PARAMETERS"
    CMS = "CMS"


class PemEol(StrEnum):
    """
    Line terminators for emitted PEM text.
    """
    CRLF = "\r\n"
    LF = "\n"


class ResourceKind(StrEnum):
    """
    Kinds of live objects (handles) created by the crypto engine.
    """
    X509 = "OpenSSL X.509"
    X509_CSR = "OpenSSL X.509 CSR"
    X509_CRL = "OpenSSL X.509 CRL"
    PKEY = "OpenSSL key"


class CipherAlgorithm(StrEnum):
    """
    Supported symmetric ciphers.
    """
    AES_128_CBC = "aes-128-cbc"
    AES_192_CBC = "aes-192-cbc"
    AES_256_CBC = "aes-256-cbc"
    AES_128_CTR = "aes-128-ctr"
    AES_192_CTR = "aes-192-ctr"
    AES_256_CTR = "aes-256-ctr"
    AES_128_ECB = "aes-128-ecb"
    AES_192_ECB = "aes-192-ecb"
    AES_256_ECB = "aes-256-ecb"
    AES_128_GCM = "aes-128-gcm"
    AES_192_GCM = "aes-192-gcm"
    AES_256_GCM = "aes-256-gcm"


class DataFormat(StrEnum):
    """
    Output encodings for binary results.
    """
    RAW = auto()
    BASE64 = auto()
    HEX = auto()


class RsaPadding(StrEnum):
    """
    Paddings for RSA encryption.
    """
    OAEP = auto()
    PKCS1 = auto()


ChpHash = (hashes.SHA1 | hashes.SHA224 | hashes.SHA256 | hashes.SHA384 | hashes.SHA512 |
           hashes.SHA3_224 | hashes.SHA3_256 | hashes.SHA3_384 | hashes.SHA3_512)

ChpPublicKey = (dsa.DSAPublicKey | rsa.RSAPublicKey | ec.EllipticCurvePublicKey | dh.DHPublicKey |
                ed25519.Ed25519PublicKey | ed448.Ed448PublicKey | x25519.X25519PublicKey | x448.X448PublicKey)

ChpPrivateKey = (dsa.DSAPrivateKey | rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey | dh.DHPrivateKey |
                 ed25519.Ed25519PrivateKey | ed448.Ed448PrivateKey | x25519.X25519PrivateKey | x448.X448PrivateKey)

CRYPTO_DEFAULT_HASH_ALGORITHM: Final[HashAlgorithm] = \
    env_get_enum(key=f"{APP_PREFIX}_CRYPTO_DEFAULT_HASH_ALGORITHM",
                 enum_class=HashAlgorithm,
                 def_value=HashAlgorithm.SHA256)

CRYPTO_FINGERPRINT_ALGORITHM: Final[HashAlgorithm] = \
    env_get_enum(key=f"{APP_PREFIX}_CRYPTO_FINGERPRINT_ALGORITHM",
                 enum_class=HashAlgorithm,
                 def_value=HashAlgorithm.SHA1)

CRYPTO_DEFAULT_CIPHER: Final[CipherAlgorithm] = \
    env_get_enum(key=f"{APP_PREFIX}_CRYPTO_DEFAULT_CIPHER",
                 enum_class=CipherAlgorithm,
                 def_value=CipherAlgorithm.AES_256_CTR)

# 'CRLF' or 'LF'
CRYPTO_DEFAULT_PEM_EOL: Final[PemEol] = \
    PemEol[(env_get_str(key=f"{APP_PREFIX}_CRYPTO_DEFAULT_PEM_EOL",
                        def_value="CRLF") or "CRLF").upper()]

# a multiple of 4, so that every chunk decodes independently
CRYPTO_BASE64_CHUNK_SIZE: Final[int] = \
    max(4, (env_get_int(key=f"{APP_PREFIX}_CRYPTO_BASE64_CHUNK_SIZE",
                        def_value=256) or 256) // 4 * 4)

CRYPTO_PBKDF2_ITERATIONS: Final[int] = \
    env_get_int(key=f"{APP_PREFIX}_CRYPTO_PBKDF2_ITERATIONS",
                def_value=10000) or 10000


def _chp_hash(alg: HashAlgorithm | str,
              logger: Logger = None) -> ChpHash:
    """
    Construct the *cryptography* package's hash object corresponding to *alg*.

    The hash object is an instance of *cryptography.hazmat.primitives.hashes.<hash>*

    :param alg: the hash algorithm
    :param logger: optional logger
    :return: the *cryptography* package's hash object
    :raises InvalidArgumentError: the hash algorithm is not supported
    """
    # declare the return variable
    result: ChpHash

    match alg:
        case HashAlgorithm.SHA1:
            result = hashes.SHA1()  # noqa: S303
        case HashAlgorithm.SHA224:
            result = hashes.SHA224()
        case HashAlgorithm.SHA256:
            result = hashes.SHA256()
        case HashAlgorithm.SHA384:
            result = hashes.SHA384()
        case HashAlgorithm.SHA512:
            result = hashes.SHA512()
        case HashAlgorithm.SHA3_224:
            result = hashes.SHA3_224()
        case HashAlgorithm.SHA3_256:
            result = hashes.SHA3_256()
        case HashAlgorithm.SHA3_384:
            result = hashes.SHA3_384()
        case HashAlgorithm.SHA3_512:
            result = hashes.SHA3_512()
        case _:
            msg = f"Hash algorithm not supported: '{alg}'"
            if logger:
                logger.error(msg=msg)
            raise InvalidArgumentError(msg)

    return result
