from __future__ import annotations
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import ed448, ed25519
from cryptography.hazmat.primitives.serialization import Encoding
from datetime import datetime, timedelta, UTC
from io import IOBase
from logging import Logger
from pathlib import Path
from typing import Any, Final, Literal

from .assert_pomes import assert_positive_int, file_write_content
from .cert_pomes import cert_read, x509_name_build, x509_name_to_dict
from .crypto_common import (
    CRYPTO_DEFAULT_HASH_ALGORITHM,
    ChpHash, ChpPrivateKey, ChpPublicKey, HashAlgorithm, PemType, ResourceKind, _chp_hash
)
from .crypto_errors import MalformedMaterialError
from .guard_pomes import guarded_call
from .material_pomes import MaterialReference, material_get_text, material_resolve
from .pem_pomes import PemEnvelope, pem_split
from .pkey_pomes import pkey_get_private

# PEM labels of certificate signing requests
CSR_PEM_TYPES: Final[list[PemType]] = [PemType.CERTIFICATE_REQUEST, PemType.NEW_CERTIFICATE_REQUEST]


def _sign_hash(private_key: ChpPrivateKey,
               hash_alg: HashAlgorithm | str,
               logger: Logger) -> ChpHash | None:
    # EdDSA keys sign without a separate digest
    return None if isinstance(private_key, ed25519.Ed25519PrivateKey | ed448.Ed448PrivateKey) \
        else _chp_hash(alg=hash_alg,
                       logger=logger)


def csr_new(dn: dict[str, str | list[str]],
            private_key: Any,
            passphrase: str | bytes = None,
            hash_alg: HashAlgorithm | str = CRYPTO_DEFAULT_HASH_ALGORITHM,
            logger: Logger = None) -> x509.CertificateSigningRequest:
    """
    Create a certificate signing request for the distinguished name in *dn*, signed with *private_key*.

    The fields in *dn* may be named in short (*CN*) or long (*commonName*) form.

    :param dn: the subject's distinguished name fields
    :param private_key: the private key material, or the pairing *(key, passphrase)*
    :param passphrase: the passphrase protecting the key
    :param hash_alg: the algorithm for hashing
    :param logger: optional logger
    :return: the certificate signing request
    """
    subject: x509.Name = x509_name_build(dn=dn)
    key: ChpPrivateKey = pkey_get_private(key=private_key,
                                          passphrase=passphrase,
                                          logger=logger)
    builder: x509.CertificateSigningRequestBuilder = x509.CertificateSigningRequestBuilder().subject_name(subject)
    return guarded_call("csr_new",
                        builder.sign,
                        private_key=key,
                        algorithm=_sign_hash(private_key=key,
                                             hash_alg=hash_alg,
                                             logger=logger),
                        logger=logger)


def csr_read(csr_data: Any,
             logger: Logger = None) -> x509.CertificateSigningRequest:
    """
    Obtain the certificate signing request held in *csr_data*.

    The nature of *csr_data* depends on its data type:
      - a certificate signing request handle (used as is)
      - type *Path*, or *str* with the *file://* prefix or naming an existing file: a *PEM* file
      - type *str* or *bytes*: *PEM* text

    :param csr_data: the certificate signing request material
    :param logger: optional logger
    :return: the certificate signing request
    :raises MalformedMaterialError: the PEM text does not hold a certificate signing request
    """
    ref: MaterialReference = material_resolve(value=csr_data,
                                              arg_ix=1,
                                              kind=ResourceKind.X509_CSR,
                                              file_to_text=True)
    if ref.is_handle:
        return ref.value

    text: str = material_get_text(ref=ref,
                                  arg_ix=1)
    envelope: PemEnvelope = pem_split(pem=text,
                                      arg_ix=1)[0]
    if envelope.pem_type not in CSR_PEM_TYPES:
        raise MalformedMaterialError(f"Certificate request PEM expected (argument #1), got '{envelope.pem_type}'",
                                     arg_ix=1)
    return guarded_call("csr_read",
                        x509.load_der_x509_csr,
                        data=envelope.der,
                        logger=logger)


def csr_export(csr_data: Any,
               fmt: Literal["pem", "der"] = "pem",
               logger: Logger = None) -> str | bytes:
    """
    Export the certificate signing request in *csr_data*.

    :param csr_data: the certificate signing request material (see *csr_read()*)
    :param fmt: the output format (*pem* text, or *der* bytes)
    :param logger: optional logger
    :return: the exported certificate signing request
    """
    csr: x509.CertificateSigningRequest = csr_read(csr_data=csr_data,
                                                   logger=logger)
    result: bytes = guarded_call("csr_export",
                                 csr.public_bytes,
                                 encoding=Encoding.DER if fmt == "der" else Encoding.PEM,
                                 logger=logger)
    return result if fmt == "der" else result.decode(encoding="ascii")


def csr_save(csr_data: Any,
             file_name: Path | str | IOBase,
             fmt: Literal["pem", "der"] = "pem",
             logger: Logger = None) -> int:
    """
    Save the certificate signing request in *csr_data* to *file_name*.

    :param csr_data: the certificate signing request material (see *csr_read()*)
    :param file_name: the target file path or stream
    :param fmt: the output format
    :param logger: optional logger
    :return: the number of bytes written
    """
    return file_write_content(file=file_name,
                              data=csr_export(csr_data=csr_data,
                                              fmt=fmt,
                                              logger=logger),
                              arg_ix=2)


def csr_get_subject(csr_data: Any,
                    short_names: bool = True,
                    logger: Logger = None) -> dict[str, str | list[str]]:
    """
    Retrieve the subject's distinguished name of the certificate signing request in *csr_data*.

    :param csr_data: the certificate signing request material (see *csr_read()*)
    :param short_names: whether to use short (*CN*) or long (*commonName*) field names
    :param logger: optional logger
    :return: the distinguished name fields
    """
    return x509_name_to_dict(name=csr_read(csr_data=csr_data,
                                           logger=logger).subject,
                             short_names=short_names)


def csr_get_public_key(csr_data: Any,
                       logger: Logger = None) -> ChpPublicKey:
    """
    Retrieve the public key of the certificate signing request in *csr_data*.

    :param csr_data: the certificate signing request material (see *csr_read()*)
    :param logger: optional logger
    :return: the public key
    """
    csr: x509.CertificateSigningRequest = csr_read(csr_data=csr_data,
                                                   logger=logger)
    return guarded_call("csr_get_public_key",
                        csr.public_key,
                        logger=logger)


def csr_sign(csr_data: Any,
             ca_cert: Any,
             ca_key: Any,
             days: int = 365,
             serial: int = None,
             ca_passphrase: str | bytes = None,
             hash_alg: HashAlgorithm | str = CRYPTO_DEFAULT_HASH_ALGORITHM,
             logger: Logger = None) -> x509.Certificate:
    """
    Issue a certificate for the certificate signing request in *csr_data*.

    If *ca_cert* is *None*, the certificate is self-signed, and *ca_key* must be the private key
    of the request. Self-signed certificates are marked as *CA* certificates.
    A random serial number is used if *serial* is not given, or is *0*.

    :param csr_data: the certificate signing request material (see *csr_read()*)
    :param ca_cert: the issuer's certificate material, or *None* for a self-signed certificate
    :param ca_key: the issuer's private key material, or the pairing *(key, passphrase)*
    :param days: the validity period, in days
    :param serial: the serial number
    :param ca_passphrase: the passphrase protecting *ca_key*
    :param hash_alg: the algorithm for hashing
    :param logger: optional logger
    :return: the certificate issued
    """
    csr: x509.CertificateSigningRequest = csr_read(csr_data=csr_data,
                                                   logger=logger)
    days = assert_positive_int(value=days,
                               arg_ix=4,
                               def_value=365)
    serial = assert_positive_int(value=serial,
                                 arg_ix=5,
                                 def_value=0) or x509.random_serial_number()
    key: ChpPrivateKey = pkey_get_private(key=ca_key,
                                          passphrase=ca_passphrase,
                                          logger=logger)
    issuer: x509.Name = csr.subject if ca_cert is None else cert_read(x509_data=ca_cert,
                                                                      logger=logger).subject
    now: datetime = datetime.now(tz=UTC)
    builder: x509.CertificateBuilder = (
        x509.CertificateBuilder()
        .subject_name(csr.subject)
        .issuer_name(issuer)
        .public_key(csr.public_key())
        .serial_number(serial)
        .not_valid_before(now)
        .not_valid_after(now + timedelta(days=days))
        .add_extension(x509.BasicConstraints(ca=ca_cert is None,
                                             path_length=None),
                       critical=True)
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(csr.public_key()),
                       critical=False)
    )
    return guarded_call("csr_sign",
                        builder.sign,
                        private_key=key,
                        algorithm=_sign_hash(private_key=key,
                                             hash_alg=hash_alg,
                                             logger=logger),
                        logger=logger)
