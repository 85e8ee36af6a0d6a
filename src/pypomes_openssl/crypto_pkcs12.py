from __future__ import annotations
from cryptography import x509
from cryptography.hazmat.primitives.serialization import BestAvailableEncryption, NoEncryption, pkcs12
from io import IOBase
from logging import Logger
from pathlib import Path
from typing import Any

from .assert_pomes import assert_passphrase, file_read_content, file_write_content
from .cert_pomes import cert_export, cert_read
from .crypto_common import ChpPrivateKey
from .crypto_errors import MissingArgumentError
from .guard_pomes import guarded_call
from .pkey_pomes import pkey_export_private, pkey_get_private


def pkcs12_export(x509_data: Any,
                  private_key: Any,
                  passphrase: str | bytes = None,
                  friendly_name: str = None,
                  extra_certs: list[Any] = None,
                  key_passphrase: str | bytes = None,
                  logger: Logger = None) -> bytes:
    """
    Export a certificate and its private key as a *PKCS#12* (*.pfx*) structure.

    :param x509_data: the certificate material (see *cert_read()*)
    :param private_key: the private key material, or the pairing *(key, passphrase)*
    :param passphrase: the passphrase protecting the *PKCS#12* structure (none, if not given)
    :param friendly_name: optional friendly name for the certificate and key
    :param extra_certs: optional additional certificates (e.g. the issuing chain)
    :param key_passphrase: the passphrase protecting *private_key*
    :param logger: optional logger
    :return: the *PKCS#12* data, in *DER* format
    """
    cert: x509.Certificate = cert_read(x509_data=x509_data,
                                       logger=logger)
    key: ChpPrivateKey = pkey_get_private(key=private_key,
                                          passphrase=key_passphrase,
                                          logger=logger)
    cas: list[x509.Certificate] = [cert_read(x509_data=extra_cert,
                                             logger=logger) for extra_cert in extra_certs or []]
    password: str | None = assert_passphrase(passphrase=passphrase,
                                             arg_ix=3)
    return guarded_call("pkcs12_export",
                        pkcs12.serialize_key_and_certificates,
                        name=friendly_name.encode() if friendly_name else None,
                        key=key,
                        cert=cert,
                        cas=cas or None,
                        encryption_algorithm=BestAvailableEncryption(password=password.encode())
                        if password else NoEncryption(),
                        logger=logger)


def pkcs12_save(x509_data: Any,
                file_name: Path | str | IOBase,
                private_key: Any,
                passphrase: str | bytes = None,
                friendly_name: str = None,
                extra_certs: list[Any] = None,
                key_passphrase: str | bytes = None,
                logger: Logger = None) -> int:
    """
    Export a certificate and its private key as a *PKCS#12* structure, and save it to *file_name*.

    :param x509_data: the certificate material (see *cert_read()*)
    :param file_name: the target file path or stream
    :param private_key: the private key material, or the pairing *(key, passphrase)*
    :param passphrase: the passphrase protecting the *PKCS#12* structure
    :param friendly_name: optional friendly name for the certificate and key
    :param extra_certs: optional additional certificates
    :param key_passphrase: the passphrase protecting *private_key*
    :param logger: optional logger
    :return: the number of bytes written
    """
    return file_write_content(file=file_name,
                              data=pkcs12_export(x509_data=x509_data,
                                                 private_key=private_key,
                                                 passphrase=passphrase,
                                                 friendly_name=friendly_name,
                                                 extra_certs=extra_certs,
                                                 key_passphrase=key_passphrase,
                                                 logger=logger),
                              arg_ix=2)


def pkcs12_read(pkcs12_data: Path | str | IOBase | bytes,
                passphrase: str | bytes = None,
                logger: Logger = None) -> dict[str, Any]:
    """
    Read the *PKCS#12* structure in *pkcs12_data*.

    The nature of *pkcs12_data* depends on its data type:
      - type *bytes*: holds the *DER* data
      - type *Path*, *str* (optionally prefixed with *file://*), or *IOBase*: the file or stream holding the data

    These are the attributes returned, as *PEM* text:
        - *cert*: the certificate
        - *pkey*: the private key (unencrypted, in *PKCS#8* format)
        - *extracerts*: the list of additional certificates (possibly empty)

    :param pkcs12_data: the *PKCS#12* data
    :param passphrase: the passphrase protecting the structure
    :param logger: optional logger
    :return: the certificate, private key, and additional certificates
    """
    if pkcs12_data in [None, b"", ""]:
        raise MissingArgumentError("PKCS#12 data is required (argument #1)",
                                   arg_ix=1)
    data: bytes = pkcs12_data if isinstance(pkcs12_data, bytes) else file_read_content(file=pkcs12_data,
                                                                                      arg_ix=1)
    password: str | None = assert_passphrase(passphrase=passphrase,
                                             arg_ix=2)
    key, cert, cas = guarded_call("pkcs12_read",
                                  pkcs12.load_key_and_certificates,
                                  data=data,
                                  password=password.encode() if password else None,
                                  logger=logger)
    return {
        "cert": cert_export(x509_data=cert,
                            logger=logger) if cert else None,
        "pkey": pkey_export_private(key=key,
                                    logger=logger) if key else None,
        "extracerts": [cert_export(x509_data=ca,
                                   logger=logger) for ca in cas]
    }
