from __future__ import annotations
from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import dsa, ec, ed25519, rsa
from io import IOBase
from logging import Logger
from pathlib import Path
from typing import Any, Literal

from .assert_pomes import assert_algorithm, assert_positive_int, file_write_content
from .codec_pomes import base64_encode
from .crypto_common import ChpPrivateKey, ChpPublicKey, PemType, ResourceKind
from .crypto_errors import InvalidArgumentError, TypeMismatchError, arg_ix_text
from .guard_pomes import guarded_call
from .material_pomes import (
    MaterialReference, material_get_text, material_resolve_key, resource_kind_of
)
from .pem_pomes import pem_split

KEY_TYPES: list[str] = ["rsa", "dsa", "ec", "ed25519"]

EC_CURVES: dict[str, type[ec.EllipticCurve]] = {
    "prime256v1": ec.SECP256R1,
    "secp256r1": ec.SECP256R1,
    "secp384r1": ec.SECP384R1,
    "secp521r1": ec.SECP521R1,
    "secp256k1": ec.SECP256K1
}


def pkey_new(key_type: Literal["rsa", "dsa", "ec", "ed25519"] = "rsa",
             key_bits: int = 2048,
             curve: str = "secp384r1",
             logger: Logger = None) -> ChpPrivateKey:
    """
    Generate a new private key.

    The key size in *key_bits* applies to *RSA* (at least 384 bits) and *DSA* keys,
    and the curve name in *curve* applies to *EC* keys.

    :param key_type: the type of the key
    :param key_bits: the key size, in bits
    :param curve: the name of the elliptic curve (e.g. *secp256r1*, *secp384r1*)
    :param logger: optional logger
    :return: the private key
    :raises InvalidArgumentError: an argument is not acceptable
    :raises NativeOperationFailedError: the key could not be generated
    """
    key_type = assert_algorithm(supported=KEY_TYPES,
                                alg=key_type,
                                arg_ix=1)
    key_bits = assert_positive_int(value=key_bits,
                                   arg_ix=2)
    # declare the return variable
    result: ChpPrivateKey

    match key_type:
        case "rsa":
            if key_bits < 384:
                raise InvalidArgumentError(f"Key size of at least 384 bits expected (argument #2), got {key_bits}",
                                           arg_ix=2)
            result = guarded_call("pkey_new",
                                  rsa.generate_private_key,
                                  public_exponent=65537,
                                  key_size=key_bits,
                                  logger=logger)
        case "dsa":
            result = guarded_call("pkey_new",
                                  dsa.generate_private_key,
                                  key_size=key_bits,
                                  logger=logger)
        case "ec":
            curve_class: type[ec.EllipticCurve] | None = EC_CURVES.get(curve)
            if curve_class is None:
                raise InvalidArgumentError(f"Elliptic curve not supported (argument #3), got {curve!r}",
                                           arg_ix=3)
            result = guarded_call("pkey_new",
                                  ec.generate_private_key,
                                  curve=curve_class(),
                                  logger=logger)
        case _:
            result = guarded_call("pkey_new",
                                  ed25519.Ed25519PrivateKey.generate,
                                  logger=logger)

    return result


def pkey_new_pair(key_type: Literal["rsa", "dsa", "ec", "ed25519"] = "rsa",
                  key_bits: int = 2048,
                  passphrase: str = None,
                  logger: Logger = None) -> tuple[str, str]:
    """
    Generate and return a matching pair of private and public keys, in *PEM* format.

    :param key_type: the type of the key
    :param key_bits: the key size, in bits
    :param passphrase: optional passphrase protecting the private key
    :param logger: optional logger
    :return: a matching key pair *(private, public)* of PEM-encoded keys
    """
    private_key: ChpPrivateKey = pkey_new(key_type=key_type,
                                          key_bits=key_bits,
                                          logger=logger)
    return (pkey_export_private(key=private_key,
                                passphrase=passphrase,
                                logger=logger),
            pkey_export_public(key=private_key,
                               logger=logger))


def _load_private(ref: MaterialReference,
                  arg_ix: int,
                  logger: Logger) -> ChpPrivateKey:
    if ref.is_handle:
        if not isinstance(ref.value, ChpPrivateKey):
            raise TypeMismatchError(f"Private key expected{arg_ix_text(arg_ix)}, got public key",
                                    arg_ix=arg_ix)
        return ref.value

    text: str = material_get_text(ref=ref,
                                  arg_ix=arg_ix)
    password: bytes | None = ref.passphrase.encode() if ref.passphrase else None
    return guarded_call("pkey_get_private",
                        serialization.load_pem_private_key,
                        data=text.encode(),
                        password=password,
                        logger=logger)


def pkey_get_private(key: Any,
                     passphrase: str | bytes = None,
                     logger: Logger = None) -> ChpPrivateKey:
    """
    Obtain the private key held in *key*.

    The nature of *key* depends on its data type:
      - a private key handle (used as is)
      - type *Path*, or *str* with the *file://* prefix or naming an existing file: a *PEM* file
      - type *str* or *bytes*: *PEM* text
      - type *tuple* or *list*: the pairing *(key, passphrase)*

    :param key: the private key material
    :param passphrase: the passphrase protecting the key
    :param logger: optional logger
    :return: the private key
    :raises NativeOperationFailedError: the key could not be loaded (e.g. wrong passphrase)
    """
    ref: MaterialReference = material_resolve_key(value=key,
                                                  passphrase=passphrase,
                                                  arg_ix=1)
    return _load_private(ref=ref,
                         arg_ix=1,
                         logger=logger)


def pkey_get_public(material: Any,
                    logger: Logger = None) -> ChpPublicKey:
    """
    Obtain the public key of *material*.

    The material may be a public or private key, a certificate, or a certificate request,
    either as handles or as *PEM* text/files.

    :param material: the reference material
    :param logger: optional logger
    :return: the public key
    """
    # declare the return variable
    result: ChpPublicKey

    kind: ResourceKind | None = resource_kind_of(material)
    if kind in [ResourceKind.X509, ResourceKind.X509_CSR]:
        result = guarded_call("pkey_get_public",
                              material.public_key,
                              logger=logger)
    elif isinstance(material, ChpPrivateKey):
        result = material.public_key()
    elif kind == ResourceKind.PKEY:
        result = material
    else:
        # textual material: the PEM type selects the loader
        text: str = material_get_text(ref=material_resolve_key(value=material,
                                                               arg_ix=1,
                                                               file_to_text=True),
                                      arg_ix=1)
        match pem_split(pem=text)[0].pem_type:
            case PemType.CERTIFICATE | PemType.X509_CERTIFICATE | PemType.TRUSTED_CERTIFICATE:
                result = guarded_call("pkey_get_public",
                                      x509.load_pem_x509_certificate,
                                      data=text.encode(),
                                      logger=logger).public_key()
            case PemType.CERTIFICATE_REQUEST | PemType.NEW_CERTIFICATE_REQUEST:
                result = guarded_call("pkey_get_public",
                                      x509.load_pem_x509_csr,
                                      data=text.encode(),
                                      logger=logger).public_key()
            case PemType.PUBLIC_KEY | PemType.RSA_PUBLIC_KEY:
                result = guarded_call("pkey_get_public",
                                      serialization.load_pem_public_key,
                                      data=text.encode(),
                                      logger=logger)
            case _:
                result = pkey_get_private(key=material,
                                          logger=logger).public_key()
    return result


def pkey_export_private(key: Any,
                        passphrase: str | bytes = None,
                        fmt: Literal["pem", "der"] = "pem",
                        logger: Logger = None) -> str | bytes:
    """
    Export the private key in *key*, in *PKCS#8* format.

    If *passphrase* is given, the exported key is encrypted with it.

    :param key: the private key material (see *pkey_get_private()*)
    :param passphrase: optional passphrase for the exported key
    :param fmt: the output format (*pem* text, or *der* bytes)
    :param logger: optional logger
    :return: the exported key
    """
    private_key: ChpPrivateKey = pkey_get_private(key=key,
                                                  logger=logger)
    password: bytes = passphrase.encode() if isinstance(passphrase, str) else passphrase
    encryption: serialization.KeySerializationEncryption = \
        serialization.BestAvailableEncryption(password=password) if password else serialization.NoEncryption()
    result: bytes = guarded_call("pkey_export",
                                 private_key.private_bytes,
                                 encoding=serialization.Encoding.DER if fmt == "der" else serialization.Encoding.PEM,
                                 format=serialization.PrivateFormat.PKCS8,
                                 encryption_algorithm=encryption,
                                 logger=logger)
    return result if fmt == "der" else result.decode(encoding="ascii")


def pkey_export_public(key: Any,
                       fmt: Literal["pem", "der"] = "pem",
                       logger: Logger = None) -> str | bytes:
    """
    Export the public key of *key*, in *SubjectPublicKeyInfo* format.

    :param key: the reference material (see *pkey_get_public()*)
    :param fmt: the output format (*pem* text, or *der* bytes)
    :param logger: optional logger
    :return: the exported public key
    """
    public_key: ChpPublicKey = pkey_get_public(material=key,
                                               logger=logger)
    result: bytes = guarded_call("pkey_export_public",
                                 public_key.public_bytes,
                                 encoding=serialization.Encoding.DER if fmt == "der" else serialization.Encoding.PEM,
                                 format=serialization.PublicFormat.SubjectPublicKeyInfo,
                                 logger=logger)
    return result if fmt == "der" else result.decode(encoding="ascii")


def pkey_save_private(key: Any,
                      file_name: Path | str | IOBase,
                      passphrase: str | bytes = None,
                      fmt: Literal["pem", "der"] = "pem",
                      logger: Logger = None) -> int:
    """
    Save the private key in *key* to *file_name*.

    :param key: the private key material (see *pkey_get_private()*)
    :param file_name: the target file path or stream
    :param passphrase: optional passphrase for the saved key
    :param fmt: the output format
    :param logger: optional logger
    :return: the number of bytes written
    """
    return file_write_content(file=file_name,
                              data=pkey_export_private(key=key,
                                                       passphrase=passphrase,
                                                       fmt=fmt,
                                                       logger=logger),
                              arg_ix=2)


def pkey_save_public(key: Any,
                     file_name: Path | str | IOBase,
                     fmt: Literal["pem", "der"] = "pem",
                     logger: Logger = None) -> int:
    """
    Save the public key of *key* to *file_name*.

    :param key: the reference material (see *pkey_get_public()*)
    :param file_name: the target file path or stream
    :param fmt: the output format
    :param logger: optional logger
    :return: the number of bytes written
    """
    return file_write_content(file=file_name,
                              data=pkey_export_public(key=key,
                                                      fmt=fmt,
                                                      logger=logger),
                              arg_ix=2)


def pkey_get_details(key: Any,
                     logger: Logger = None) -> dict[str, Any]:
    """
    Retrieve the details of the public key of *key*.

    These are the attributes returned:
        - *type*: the key type (*rsa*, *dsa*, *ec*, *ed25519*, or the engine's class name)
        - *bits*: the key size, in bits (if applicable)
        - *key*: the *PEM*-encoded public key
        - *rsa* (*RSA* keys only): the Base64-encoded modulus *n* and exponent *e*
        - *ec* (*EC* keys only): the curve name

    :param key: the reference material (see *pkey_get_public()*)
    :param logger: optional logger
    :return: the key details
    """
    public_key: ChpPublicKey = pkey_get_public(material=key,
                                               logger=logger)
    result: dict[str, Any] = {
        "bits": getattr(public_key, "key_size", None),
        "key": pkey_export_public(key=public_key,
                                  logger=logger)
    }
    if isinstance(public_key, rsa.RSAPublicKey):
        numbers: rsa.RSAPublicNumbers = public_key.public_numbers()
        result["type"] = "rsa"
        result["rsa"] = {
            "n": base64_encode(raw=numbers.n.to_bytes(length=(numbers.n.bit_length() + 7) // 8)),
            "e": base64_encode(raw=numbers.e.to_bytes(length=(numbers.e.bit_length() + 7) // 8))
        }
    elif isinstance(public_key, dsa.DSAPublicKey):
        result["type"] = "dsa"
    elif isinstance(public_key, ec.EllipticCurvePublicKey):
        result["type"] = "ec"
        result["ec"] = {"curve_name": public_key.curve.name}
    elif isinstance(public_key, ed25519.Ed25519PublicKey):
        result["type"] = "ed25519"
    else:
        result["type"] = type(public_key).__name__

    return result
