from __future__ import annotations
import sys
from Crypto.Cipher import AES
from Crypto.Random import get_random_bytes
from Crypto.Util.Padding import pad, unpad
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric import dsa, ec, ed448, ed25519, padding, rsa
from logging import Logger
from pathlib import Path
from pypomes_core import exc_format, file_get_data
from typing import Any, Final

from .assert_pomes import assert_algorithm
from .codec_pomes import base64_decode, base64_encode, hex_decode, hex_encode
from .crypto_common import (
    CRYPTO_DEFAULT_CIPHER, CRYPTO_DEFAULT_HASH_ALGORITHM,
    ChpHash, ChpPrivateKey, ChpPublicKey, CipherAlgorithm, DataFormat, HashAlgorithm, RsaPadding, _chp_hash
)
from .crypto_errors import InvalidArgumentError, MissingArgumentError, TypeMismatchError
from .guard_pomes import guarded_call
from .hash_pomes import hash_digest
from .pkey_pomes import pkey_get_private, pkey_get_public

# size of the authentication tag appended to GCM ciphertexts
GCM_TAG_SIZE: Final[int] = 16


def _assert_cipher(alg: Any,
                   arg_ix: int) -> CipherAlgorithm:
    return CipherAlgorithm(assert_algorithm(supported=list(CipherAlgorithm),
                                            alg=alg,
                                            arg_ix=arg_ix))


def crypto_cipher_key_length(alg: CipherAlgorithm | str) -> int:
    """
    Retrieve the key length, in bytes, of the symmetric cipher *alg*.

    :param alg: the cipher algorithm
    :return: the key length
    """
    alg = _assert_cipher(alg=alg,
                         arg_ix=1)
    return int(alg.split("-")[1]) // 8


def crypto_cipher_iv_length(alg: CipherAlgorithm | str) -> int:
    """
    Retrieve the initialization vector length, in bytes, of the symmetric cipher *alg*.

    :param alg: the cipher algorithm
    :return: the IV length (*0* for *ECB* ciphers)
    """
    alg = _assert_cipher(alg=alg,
                         arg_ix=1)
    # declare the return variable
    result: int

    match alg.split("-")[2]:
        case "ecb":
            result = 0
        case "gcm":
            result = 12
        case _:
            result = AES.block_size

    return result


def _build_cipher(alg: CipherAlgorithm,
                  key: bytes,
                  iv: bytes | None) -> Any:
    if len(key) != crypto_cipher_key_length(alg=alg):
        raise InvalidArgumentError(f"Key of {crypto_cipher_key_length(alg=alg)} bytes expected "
                                   f"(argument #3), got {len(key)} bytes",
                                   arg_ix=3)
    iv_length: int = crypto_cipher_iv_length(alg=alg)
    if len(iv or b"") != iv_length:
        raise InvalidArgumentError(f"IV of {iv_length} bytes expected (argument #4), got {len(iv or b'')} bytes",
                                   arg_ix=4)
    # declare the return variable
    result: Any

    match alg.split("-")[2]:
        case "cbc":
            result = AES.new(key=key,
                             mode=AES.MODE_CBC,
                             iv=iv)
        case "ctr":
            # the IV is the full initial counter block
            result = AES.new(key=key,
                             mode=AES.MODE_CTR,
                             nonce=b"",
                             initial_value=iv)
        case "gcm":
            result = AES.new(key=key,
                             mode=AES.MODE_GCM,
                             nonce=iv)
        case _:
            result = AES.new(key=key,
                             mode=AES.MODE_ECB)

    return result


def crypto_encrypt(plaintext: Path | str | bytes,
                   alg: CipherAlgorithm | str,
                   key: bytes,
                   iv: bytes = None,
                   logger: Logger = None) -> bytes:
    """
    Symmetrically encrypt *plaintext* using the cipher *alg*, the given *key*, and the initialization vector *iv*.

    The nature of *plaintext* depends on its data type:
      - type *bytes*: *plaintext* holds the data (used as is)
      - type *str*: *plaintext* holds the data (used as utf8-encoded)
      - type *Path*: *plaintext* is a path to a file holding the data

    *CBC* and *ECB* ciphers pad the data as per *PKCS#7*. *GCM* ciphers append their 16-byte
    authentication tag to the ciphertext. Note that the *ECB* mode is the weakest mode
    of operation available, and provides no guarantees over the integrity of the message.

    :param plaintext: the message to encrypt
    :param alg: the cipher algorithm
    :param key: the cryptographic key (byte length must match the cipher's key size)
    :param iv: the initialization vector (byte length must be *crypto_cipher_iv_length(alg)*)
    :param logger: optional logger
    :return: the encrypted message
    """
    alg = _assert_cipher(alg=alg,
                         arg_ix=2)
    plaindata: bytes = file_get_data(file_data=plaintext)
    if plaindata is None:
        raise MissingArgumentError("plaintext is required (argument #1)",
                                   arg_ix=1)
    cipher: Any = _build_cipher(alg=alg,
                                key=key,
                                iv=iv)
    # declare the return variable
    result: bytes

    match alg.split("-")[2]:
        case "cbc" | "ecb":
            result = guarded_call("crypto_encrypt",
                                  cipher.encrypt,
                                  pad(data_to_pad=plaindata,
                                      block_size=AES.block_size),
                                  logger=logger)
        case "gcm":
            ciphertext, tag = guarded_call("crypto_encrypt",
                                           cipher.encrypt_and_digest,
                                           plaindata,
                                           logger=logger)
            result = ciphertext + tag
        case _:
            result = guarded_call("crypto_encrypt",
                                  cipher.encrypt,
                                  plaindata,
                                  logger=logger)
    return result


def crypto_decrypt(ciphertext: Path | str | bytes,
                   alg: CipherAlgorithm | str,
                   key: bytes,
                   iv: bytes = None,
                   logger: Logger = None) -> bytes:
    """
    Symmetrically decrypt *ciphertext* using the cipher *alg*, the given *key*, and the initialization vector *iv*.

    The nature of *ciphertext* depends on its data type:
      - type *bytes*: *ciphertext* holds the data (used as is)
      - type *str*: *ciphertext* holds the data (used as utf8-encoded)
      - type *Path*: *ciphertext* is a path to a file holding the data

    The *key* and *iv* must be the same ones used to generate *ciphertext*.
    For *GCM* ciphers, the authentication tag is verified.

    :param ciphertext: the message to decrypt
    :param alg: the cipher algorithm
    :param key: the cryptographic key
    :param iv: the initialization vector
    :param logger: optional logger
    :return: the decrypted message
    :raises NativeOperationFailedError: the data could not be decrypted (bad padding, tag mismatch)
    """
    alg = _assert_cipher(alg=alg,
                         arg_ix=2)
    cipherdata: bytes = file_get_data(file_data=ciphertext)
    if cipherdata is None:
        raise MissingArgumentError("ciphertext is required (argument #1)",
                                   arg_ix=1)
    cipher: Any = _build_cipher(alg=alg,
                                key=key,
                                iv=iv)
    # declare the return variable
    result: bytes

    match alg.split("-")[2]:
        case "cbc" | "ecb":
            # HAZARD: the misnamed parameter ('plaintext') is left unnamed
            plaindata: bytes = guarded_call("crypto_decrypt",
                                            cipher.decrypt,
                                            cipherdata,
                                            logger=logger)
            result = guarded_call("crypto_decrypt",
                                  unpad,
                                  padded_data=plaindata,
                                  block_size=AES.block_size,
                                  logger=logger)
        case "gcm":
            result = guarded_call("crypto_decrypt",
                                  cipher.decrypt_and_verify,
                                  cipherdata[:-GCM_TAG_SIZE],
                                  cipherdata[-GCM_TAG_SIZE:],
                                  logger=logger)
        case _:
            result = guarded_call("crypto_decrypt",
                                  cipher.decrypt,
                                  cipherdata,
                                  logger=logger)
    return result


class CryptoCipher:
    """
    Symmetric encryption with a hashed key and a random initialization vector.

    The cipher key is the digest of the secret given on instantiation, truncated to the cipher's
    key size. On encryption, a fresh random *IV* is generated and prepended to the ciphertext,
    and the result is output in the instance's format (*raw*, *base64*, or *hex*).

    These are the instance attributes:
        - alg: CipherAlgorithm    - the symmetric cipher
        - fmt: DataFormat         - the format of the encrypted data
    """
    # class-level logger
    logger: Logger | None = None

    def __init__(self,
                 key: str | bytes,
                 alg: CipherAlgorithm | str = CRYPTO_DEFAULT_CIPHER,
                 hash_alg: HashAlgorithm | str = HashAlgorithm.SHA256,
                 fmt: DataFormat | str = DataFormat.BASE64) -> None:
        """
        Instantiate the *CryptoCipher* class.

        :param key: the secret the cipher key is derived from
        :param alg: the symmetric cipher (defaults to an environment-defined value, or to 'aes-256-ctr')
        :param hash_alg: the algorithm for hashing the secret
        :param fmt: the format of the encrypted data
        """
        if key in [None, "", b""]:
            raise MissingArgumentError("key is required (argument #1)",
                                       arg_ix=1)
        self.alg: CipherAlgorithm = _assert_cipher(alg=alg,
                                                   arg_ix=2)
        self.fmt: DataFormat = DataFormat(assert_algorithm(supported=list(DataFormat),
                                                           alg=fmt,
                                                           arg_ix=4))
        key_length: int = crypto_cipher_key_length(alg=self.alg)
        digest: bytes = hash_digest(msg=key,
                                    alg=hash_alg,
                                    raw=True)
        if len(digest) < key_length:
            raise InvalidArgumentError(f"Hash algorithm '{hash_alg}' yields less than {key_length} bytes "
                                       f"(argument #3)",
                                       arg_ix=3)
        self.__key: bytes = digest[:key_length]

    def encrypt(self,
                data: str | bytes) -> str | bytes:
        """
        Encrypt *data*, prepending the random initialization vector used.

        :param data: the data to encrypt (*str* is used as utf8-encoded)
        :return: the encrypted data, as per the instance's format
        """
        iv: bytes = get_random_bytes(crypto_cipher_iv_length(alg=self.alg))
        result: bytes = iv + crypto_encrypt(plaintext=data.encode() if isinstance(data, str) else data,
                                            alg=self.alg,
                                            key=self.__key,
                                            iv=iv or None,
                                            logger=CryptoCipher.logger)
        match self.fmt:
            case DataFormat.BASE64:
                return base64_encode(raw=result)
            case DataFormat.HEX:
                return hex_encode(raw=result)
            case _:
                return result

    def decrypt(self,
                data: str | bytes) -> bytes:
        """
        Decrypt *data*, as produced by *encrypt()*.

        :param data: the encrypted data, as per the instance's format
        :return: the decrypted data
        :raises InvalidArgumentError: *data* is not in the instance's format, or is too short
        """
        # declare the raw data
        raw: bytes

        match self.fmt:
            case DataFormat.BASE64:
                raw = base64_decode(encoded=data)
            case DataFormat.HEX:
                raw = hex_decode(encoded=data.decode() if isinstance(data, bytes) else data)
            case _:
                raw = data.encode() if isinstance(data, str) else data

        iv_length: int = crypto_cipher_iv_length(alg=self.alg)
        min_length: int = iv_length + (GCM_TAG_SIZE if self.alg.endswith("gcm") else 0)
        if len(raw) < min_length:
            raise InvalidArgumentError(f"Encrypted data of at least {min_length} bytes expected "
                                       f"(argument #1), got {len(raw)} bytes",
                                       arg_ix=1)
        return crypto_decrypt(ciphertext=raw[iv_length:],
                              alg=self.alg,
                              key=self.__key,
                              iv=raw[:iv_length] or None,
                              logger=CryptoCipher.logger)

    @staticmethod
    def set_logger(logger: Logger) -> None:
        """
        Configure the logger to be used in this class' operations.

        :param logger: the operations logger
        """
        CryptoCipher.logger = logger


def _rsa_padding(rsa_padding: RsaPadding | str,
                 arg_ix: int) -> padding.AsymmetricPadding:
    rsa_padding = RsaPadding(assert_algorithm(supported=list(RsaPadding),
                                              alg=rsa_padding,
                                              arg_ix=arg_ix))
    if rsa_padding == RsaPadding.PKCS1:
        return padding.PKCS1v15()
    return padding.OAEP(mgf=padding.MGF1(algorithm=_chp_hash(alg=HashAlgorithm.SHA256)),
                        algorithm=_chp_hash(alg=HashAlgorithm.SHA256),
                        label=None)


def crypto_sign(data: str | bytes,
                private_key: Any,
                passphrase: str | bytes = None,
                alg: HashAlgorithm | str = CRYPTO_DEFAULT_HASH_ALGORITHM,
                logger: Logger = None) -> bytes:
    """
    Compute the digital signature of *data*, using *private_key*.

    These are the signature schemes used, according to the key type:
      - *RSA*: *PKCS#1 v1.5*
      - *EC*: *ECDSA*
      - *DSA*: *DSA*
      - *Ed25519/Ed448*: *EdDSA* (*alg* is not used)

    :param data: the data to sign (*str* is used as utf8-encoded)
    :param private_key: the private key material, or the pairing *(key, passphrase)*
    :param passphrase: the passphrase protecting the key
    :param alg: the algorithm for hashing
    :param logger: optional logger
    :return: the signature
    """
    key: ChpPrivateKey = pkey_get_private(key=private_key,
                                          passphrase=passphrase,
                                          logger=logger)
    payload: bytes = data.encode() if isinstance(data, str) else data
    # declare the return variable
    result: bytes

    if isinstance(key, ed25519.Ed25519PrivateKey | ed448.Ed448PrivateKey):
        result = guarded_call("crypto_sign",
                              key.sign,
                              payload,
                              logger=logger)
    else:
        chp_hash: ChpHash = _chp_hash(alg=alg,
                                      logger=logger)
        if isinstance(key, rsa.RSAPrivateKey):
            result = guarded_call("crypto_sign",
                                  key.sign,
                                  payload,
                                  padding.PKCS1v15(),
                                  chp_hash,
                                  logger=logger)
        elif isinstance(key, ec.EllipticCurvePrivateKey):
            result = guarded_call("crypto_sign",
                                  key.sign,
                                  payload,
                                  ec.ECDSA(chp_hash),
                                  logger=logger)
        elif isinstance(key, dsa.DSAPrivateKey):
            result = guarded_call("crypto_sign",
                                  key.sign,
                                  payload,
                                  chp_hash,
                                  logger=logger)
        else:
            raise TypeMismatchError(f"Signing key expected (argument #2), got '{type(key).__name__}'",
                                    arg_ix=2)
    return result


def crypto_verify(data: str | bytes,
                  signature: bytes,
                  public_key: Any,
                  alg: HashAlgorithm | str = CRYPTO_DEFAULT_HASH_ALGORITHM,
                  logger: Logger = None) -> bool:
    """
    Verify the digital signature *signature* of *data*, using *public_key*.

    :param data: the signed data (*str* is used as utf8-encoded)
    :param signature: the signature
    :param public_key: the public key material (key, certificate, or certificate request)
    :param alg: the algorithm for hashing
    :param logger: optional logger
    :return: *True* if the signature is valid, *False* otherwise
    """
    key: ChpPublicKey = pkey_get_public(material=public_key,
                                        logger=logger)
    payload: bytes = data.encode() if isinstance(data, str) else data
    # initialize the return variable
    result: bool = False

    try:
        if isinstance(key, ed25519.Ed25519PublicKey | ed448.Ed448PublicKey):
            key.verify(signature, payload)
        elif isinstance(key, rsa.RSAPublicKey):
            key.verify(signature, payload, padding.PKCS1v15(), _chp_hash(alg=alg))
        elif isinstance(key, ec.EllipticCurvePublicKey):
            key.verify(signature, payload, ec.ECDSA(_chp_hash(alg=alg)))
        elif isinstance(key, dsa.DSAPublicKey):
            key.verify(signature, payload, _chp_hash(alg=alg))
        else:
            raise TypeMismatchError(f"Verifying key expected (argument #3), got '{type(key).__name__}'",
                                    arg_ix=3)
        result = True
    except InvalidSignature as e:
        if logger:
            logger.warning(msg=exc_format(exc=e,
                                          exc_info=sys.exc_info()))
    return result


def crypto_public_encrypt(data: str | bytes,
                          public_key: Any,
                          rsa_padding: RsaPadding | str = RsaPadding.OAEP,
                          logger: Logger = None) -> bytes:
    """
    Encrypt *data* with the *RSA* public key in *public_key*.

    :param data: the data to encrypt (*str* is used as utf8-encoded)
    :param public_key: the public key material (key, certificate, or certificate request)
    :param rsa_padding: the padding (*oaep*, with *SHA256*, or *pkcs1*)
    :param logger: optional logger
    :return: the encrypted data
    """
    key: ChpPublicKey = pkey_get_public(material=public_key,
                                        logger=logger)
    if not isinstance(key, rsa.RSAPublicKey):
        raise TypeMismatchError(f"RSA key expected (argument #2), got '{type(key).__name__}'",
                                arg_ix=2)
    return guarded_call("crypto_public_encrypt",
                        key.encrypt,
                        data.encode() if isinstance(data, str) else data,
                        _rsa_padding(rsa_padding=rsa_padding,
                                     arg_ix=3),
                        logger=logger)


def crypto_private_decrypt(data: bytes,
                           private_key: Any,
                           passphrase: str | bytes = None,
                           rsa_padding: RsaPadding | str = RsaPadding.OAEP,
                           logger: Logger = None) -> bytes:
    """
    Decrypt *data* with the *RSA* private key in *private_key*.

    :param data: the encrypted data
    :param private_key: the private key material, or the pairing *(key, passphrase)*
    :param passphrase: the passphrase protecting the key
    :param rsa_padding: the padding used on encryption
    :param logger: optional logger
    :return: the decrypted data
    """
    key: ChpPrivateKey = pkey_get_private(key=private_key,
                                          passphrase=passphrase,
                                          logger=logger)
    if not isinstance(key, rsa.RSAPrivateKey):
        raise TypeMismatchError(f"RSA key expected (argument #2), got '{type(key).__name__}'",
                                arg_ix=2)
    return guarded_call("crypto_private_decrypt",
                        key.decrypt,
                        data,
                        _rsa_padding(rsa_padding=rsa_padding,
                                     arg_ix=4),
                        logger=logger)


def crypto_public_decrypt(data: bytes,
                          public_key: Any,
                          logger: Logger = None) -> bytes:
    """
    Recover the data encrypted with an *RSA* private key, using the matching key in *public_key*.

    The *PKCS#1 v1.5* (block type 1) padding is verified and removed. For data produced
    by *crypto_sign()*, the recovered data is the *DigestInfo* structure wrapping the digest.

    :param data: the data encrypted with the private key
    :param public_key: the public key material (key, certificate, or certificate request)
    :param logger: optional logger
    :return: the recovered data
    :raises NativeOperationFailedError: the data was not encrypted with the matching private key
    """
    key: ChpPublicKey = pkey_get_public(material=public_key,
                                        logger=logger)
    if not isinstance(key, rsa.RSAPublicKey):
        raise TypeMismatchError(f"RSA key expected (argument #2), got '{type(key).__name__}'",
                                arg_ix=2)
    return guarded_call("crypto_public_decrypt",
                        key.recover_data_from_signature,
                        data,
                        padding.PKCS1v15(),
                        None,
                        logger=logger)


def crypto_seal(data: Path | str | bytes,
                public_keys: Any,
                alg: CipherAlgorithm | str = CRYPTO_DEFAULT_CIPHER,
                iv: bytes = None,
                rsa_padding: RsaPadding | str = RsaPadding.PKCS1,
                logger: Logger = None) -> tuple[bytes, list[bytes] | dict[Any, bytes], bytes | None]:
    """
    Seal (encrypt) *data* for one or more recipients, with a randomly generated secret key.

    The data is encrypted with the cipher *alg*, under a key generated for this message only.
    That key is then encrypted with each recipient's *RSA* public key, yielding one envelope key
    per recipient. Each recipient must receive the sealed data, its own envelope key, and the IV.

    The recipients in *public_keys* may be given as a single key, a *list*, or a *dict*.
    The envelope keys are returned in the same shape (a *dict* with the same keys, or a *list*).

    :param data: the data to seal (*bytes* as is, *str* as utf8-encoded, or a *Path* to a file)
    :param public_keys: the recipients' public key material
    :param alg: the cipher algorithm (defaults to an environment-defined value, or to *aes-256-ctr*)
    :param iv: the initialization vector (a random one is generated, if not provided)
    :param rsa_padding: the padding for encrypting the secret key (*pkcs1*, or *oaep* with *SHA256*)
    :param logger: optional logger
    :return: the tuple *(sealed data, envelope keys, iv)*
    """
    alg = _assert_cipher(alg=alg,
                         arg_ix=3)
    recipients: dict[Any, Any] = public_keys if isinstance(public_keys, dict) \
        else dict(enumerate(public_keys if isinstance(public_keys, list | tuple) else [public_keys]))
    if not recipients or any(public_key is None for public_key in recipients.values()):
        raise MissingArgumentError("public keys are required (argument #2)",
                                   arg_ix=2)
    plaindata: bytes = file_get_data(file_data=data.encode() if isinstance(data, str) else data)
    if plaindata is None:
        raise MissingArgumentError("data is required (argument #1)",
                                   arg_ix=1)

    iv_length: int = crypto_cipher_iv_length(alg=alg)
    if iv is None and iv_length:
        iv = get_random_bytes(iv_length)
    secret_key: bytes = get_random_bytes(crypto_cipher_key_length(alg=alg))
    sealed: bytes = crypto_encrypt(plaintext=plaindata,
                                   alg=alg,
                                   key=secret_key,
                                   iv=iv,
                                   logger=logger)

    envelope_keys: dict[Any, bytes] = {}
    for ref, public_key in recipients.items():
        envelope_keys[ref] = crypto_public_encrypt(data=secret_key,
                                                   public_key=public_key,
                                                   rsa_padding=rsa_padding,
                                                   logger=logger)
    if logger:
        logger.debug(msg=f"Sealed {len(plaindata)} bytes for {len(envelope_keys)} recipient(s)")

    return (sealed,
            envelope_keys if isinstance(public_keys, dict) else list(envelope_keys.values()),
            iv)


def crypto_open(data: Path | str | bytes,
                envelope_key: bytes,
                private_key: Any,
                passphrase: str | bytes = None,
                alg: CipherAlgorithm | str = CRYPTO_DEFAULT_CIPHER,
                iv: bytes = None,
                rsa_padding: RsaPadding | str = RsaPadding.PKCS1,
                logger: Logger = None) -> bytes:
    """
    Open (decrypt) the data sealed by *crypto_seal()*, using a recipient's envelope key and private key.

    The *alg*, *iv*, and *rsa_padding* must be the same ones used to seal *data*.

    :param data: the sealed data
    :param envelope_key: the envelope key obtained by this recipient
    :param private_key: the recipient's private key material, or the pairing *(key, passphrase)*
    :param passphrase: the passphrase protecting the key
    :param alg: the cipher algorithm
    :param iv: the initialization vector
    :param rsa_padding: the padding used for encrypting the secret key
    :param logger: optional logger
    :return: the opened data
    :raises NativeOperationFailedError: the envelope key does not belong to the private key, or the data is corrupt
    """
    alg = _assert_cipher(alg=alg,
                         arg_ix=5)
    if not envelope_key:
        raise MissingArgumentError("envelope key is required (argument #2)",
                                   arg_ix=2)
    key: ChpPrivateKey = pkey_get_private(key=private_key,
                                          passphrase=passphrase,
                                          logger=logger)
    if not isinstance(key, rsa.RSAPrivateKey):
        raise TypeMismatchError(f"RSA key expected (argument #3), got '{type(key).__name__}'",
                                arg_ix=3)
    # HAZARD: PKCS#1 v1.5 unwrapping with a foreign key yields a random key, rather than failing
    key_length: int = crypto_cipher_key_length(alg=alg)
    secret_key: bytes = guarded_call("crypto_open",
                                     key.decrypt,
                                     envelope_key,
                                     _rsa_padding(rsa_padding=rsa_padding,
                                                  arg_ix=7),
                                     success=lambda k: len(k) == key_length,
                                     logger=logger)
    return crypto_decrypt(ciphertext=data.encode() if isinstance(data, str) else data,
                          alg=alg,
                          key=secret_key,
                          iv=iv,
                          logger=logger)
