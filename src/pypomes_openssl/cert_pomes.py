from __future__ import annotations
import sys
from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed448, ed25519, padding
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey
from cryptography.hazmat.primitives.serialization import Encoding
from cryptography.x509.oid import NameOID
from io import IOBase
from logging import Logger
from pathlib import Path
from pypomes_core import exc_format
from typing import Any, Final, Literal

from .assert_pomes import file_write_content
from .codec_pomes import hex_unpack
from .crypto_common import (
    CRYPTO_FINGERPRINT_ALGORITHM,
    ChpPrivateKey, ChpPublicKey, HashAlgorithm, PemType, ResourceKind, _chp_hash
)
from .crypto_errors import InvalidArgumentError, MalformedMaterialError
from .guard_pomes import guarded_call
from .material_pomes import MaterialReference, material_get_text, material_resolve
from .pem_pomes import PemEnvelope, pem_split
from .pkey_pomes import pkey_get_private

# PEM labels of certificates
CERT_PEM_TYPES: Final[list[PemType]] = [PemType.CERTIFICATE, PemType.X509_CERTIFICATE, PemType.TRUSTED_CERTIFICATE]

# short name, long name, and OID of the supported distinguished name fields
DN_FIELDS: Final[list[tuple[str, str, x509.ObjectIdentifier]]] = [
    ("C", "countryName", NameOID.COUNTRY_NAME),
    ("ST", "stateOrProvinceName", NameOID.STATE_OR_PROVINCE_NAME),
    ("L", "localityName", NameOID.LOCALITY_NAME),
    ("O", "organizationName", NameOID.ORGANIZATION_NAME),
    ("OU", "organizationalUnitName", NameOID.ORGANIZATIONAL_UNIT_NAME),
    ("CN", "commonName", NameOID.COMMON_NAME),
    ("emailAddress", "emailAddress", NameOID.EMAIL_ADDRESS),
    ("serialNumber", "serialNumber", NameOID.SERIAL_NUMBER),
    ("street", "streetAddress", NameOID.STREET_ADDRESS),
    ("DC", "domainComponent", NameOID.DOMAIN_COMPONENT),
    ("UID", "userId", NameOID.USER_ID)
]


def x509_name_build(dn: dict[str, str | list[str]]) -> x509.Name:
    """
    Build a distinguished name from the field names and values in *dn*.

    Field names may be given in short (*CN*) or long (*commonName*) form.
    A list value yields one attribute per element, in list order.

    :param dn: the distinguished name fields
    :return: the distinguished name
    :raises InvalidArgumentError: a field name is not supported, or a value is empty
    """
    oids: dict[str, x509.ObjectIdentifier] = {}
    for short_name, long_name, oid in DN_FIELDS:
        oids[short_name] = oid
        oids[long_name] = oid

    attrs: list[x509.NameAttribute] = []
    for name, values in (dn or {}).items():
        oid: x509.ObjectIdentifier | None = oids.get(name)
        if oid is None:
            raise InvalidArgumentError(f"Distinguished name field not supported, got {name!r}")
        for value in values if isinstance(values, list) else [values]:
            if value in [None, ""]:
                raise InvalidArgumentError(f"Distinguished name field {name!r} has no value")
            try:
                attrs.append(x509.NameAttribute(oid=oid,
                                                value=str(value)))
            except ValueError as e:
                # e.g. a country name not 2 characters long
                raise InvalidArgumentError(f"Invalid value for distinguished name field {name!r}: {e}") from e
    if not attrs:
        raise InvalidArgumentError("Distinguished name expected (argument #1)",
                                   arg_ix=1)
    return x509.Name(attributes=attrs)


def x509_name_to_dict(name: x509.Name,
                      short_names: bool = True) -> dict[str, str | list[str]]:
    """
    Convert the distinguished name *name* into a dictionary.

    A field occurring more than once is given as the list of its values.
    Unsupported fields are keyed by their dotted OID.

    :param name: the distinguished name
    :param short_names: whether to use short (*CN*) or long (*commonName*) field names
    :return: the distinguished name fields
    """
    names: dict[x509.ObjectIdentifier, str] = {oid: short_name if short_names else long_name
                                               for short_name, long_name, oid in DN_FIELDS}
    result: dict[str, str | list[str]] = {}
    for attr in name:
        key: str = names.get(attr.oid, attr.oid.dotted_string)
        if key in result:
            prev: str | list[str] = result[key]
            result[key] = [*prev, attr.value] if isinstance(prev, list) else [prev, attr.value]
        else:
            result[key] = attr.value

    return result


def cert_read(x509_data: Any,
              logger: Logger = None) -> x509.Certificate:
    """
    Obtain the certificate held in *x509_data*.

    The nature of *x509_data* depends on its data type:
      - a certificate handle (used as is)
      - type *Path*, or *str* with the *file://* prefix or naming an existing file: a *PEM* file
      - type *str* or *bytes*: *PEM* text (the first certificate is used, if more than one)

    :param x509_data: the certificate material
    :param logger: optional logger
    :return: the certificate
    :raises MalformedMaterialError: the PEM text does not hold a certificate
    :raises NativeOperationFailedError: the certificate could not be loaded
    """
    ref: MaterialReference = material_resolve(value=x509_data,
                                              arg_ix=1,
                                              kind=ResourceKind.X509,
                                              file_to_text=True)
    if ref.is_handle:
        return ref.value

    text: str = material_get_text(ref=ref,
                                  arg_ix=1)
    envelope: PemEnvelope = pem_split(pem=text,
                                      arg_ix=1)[0]
    if envelope.pem_type not in CERT_PEM_TYPES:
        raise MalformedMaterialError(f"Certificate PEM expected (argument #1), got '{envelope.pem_type}'",
                                     arg_ix=1)
    return guarded_call("cert_read",
                        x509.load_der_x509_certificate,
                        data=envelope.der,
                        logger=logger)


def cert_export(x509_data: Any,
                fmt: Literal["pem", "der"] = "pem",
                logger: Logger = None) -> str | bytes:
    """
    Export the certificate in *x509_data*.

    :param x509_data: the certificate material (see *cert_read()*)
    :param fmt: the output format (*pem* text, or *der* bytes)
    :param logger: optional logger
    :return: the exported certificate
    """
    cert: x509.Certificate = cert_read(x509_data=x509_data,
                                       logger=logger)
    result: bytes = guarded_call("cert_export",
                                 cert.public_bytes,
                                 encoding=Encoding.DER if fmt == "der" else Encoding.PEM,
                                 logger=logger)
    return result if fmt == "der" else result.decode(encoding="ascii")


def cert_save(x509_data: Any,
              file_name: Path | str | IOBase,
              fmt: Literal["pem", "der"] = "pem",
              logger: Logger = None) -> int:
    """
    Save the certificate in *x509_data* to *file_name*.

    :param x509_data: the certificate material (see *cert_read()*)
    :param file_name: the target file path or stream
    :param fmt: the output format
    :param logger: optional logger
    :return: the number of bytes written
    """
    return file_write_content(file=file_name,
                              data=cert_export(x509_data=x509_data,
                                               fmt=fmt,
                                               logger=logger),
                              arg_ix=2)


def cert_fingerprint(x509_data: Any,
                     alg: HashAlgorithm | str = CRYPTO_FINGERPRINT_ALGORITHM,
                     raw: bool = False,
                     logger: Logger = None) -> str | bytes:
    """
    Compute the fingerprint of the certificate in *x509_data*.

    :param x509_data: the certificate material (see *cert_read()*)
    :param alg: the hash algorithm (defaults to an environment-defined value, or to 'sha1')
    :param raw: whether to return the raw digest, rather than lower-case hexadecimal digits
    :param logger: optional logger
    :return: the fingerprint
    """
    cert: x509.Certificate = cert_read(x509_data=x509_data,
                                       logger=logger)
    result: bytes = guarded_call("cert_fingerprint",
                                 cert.fingerprint,
                                 algorithm=_chp_hash(alg=alg,
                                                     logger=logger),
                                 logger=logger)
    return result if raw else hex_unpack(data=result)


def cert_check_private_key(x509_data: Any,
                           key: Any,
                           passphrase: str | bytes = None,
                           logger: Logger = None) -> bool:
    """
    Determine whether *key* is the private key corresponding to the certificate in *x509_data*.

    :param x509_data: the certificate material (see *cert_read()*)
    :param key: the private key material, or the pairing *(key, passphrase)*
    :param passphrase: the passphrase protecting the key
    :param logger: optional logger
    :return: *True* if the keys correspond, *False* otherwise
    """
    cert: x509.Certificate = cert_read(x509_data=x509_data,
                                       logger=logger)
    private_key: ChpPrivateKey = pkey_get_private(key=key,
                                                  passphrase=passphrase,
                                                  logger=logger)
    spki_format: dict[str, Any] = {"encoding": Encoding.DER,
                                   "format": serialization.PublicFormat.SubjectPublicKeyInfo}
    return cert.public_key().public_bytes(**spki_format) == private_key.public_key().public_bytes(**spki_format)


def cert_get_subject_dn(x509_data: Any,
                        short_names: bool = True,
                        logger: Logger = None) -> dict[str, str | list[str]]:
    """
    Retrieve the subject's distinguished name of the certificate in *x509_data*.

    :param x509_data: the certificate material (see *cert_read()*)
    :param short_names: whether to use short (*CN*) or long (*commonName*) field names
    :param logger: optional logger
    :return: the distinguished name fields
    """
    return x509_name_to_dict(name=cert_read(x509_data=x509_data,
                                            logger=logger).subject,
                             short_names=short_names)


def cert_get_issuer_dn(x509_data: Any,
                       short_names: bool = True,
                       logger: Logger = None) -> dict[str, str | list[str]]:
    """
    Retrieve the issuer's distinguished name of the certificate in *x509_data*.

    :param x509_data: the certificate material (see *cert_read()*)
    :param short_names: whether to use short (*CN*) or long (*commonName*) field names
    :param logger: optional logger
    :return: the distinguished name fields
    """
    return x509_name_to_dict(name=cert_read(x509_data=x509_data,
                                            logger=logger).issuer,
                             short_names=short_names)


def cert_parse(x509_data: Any,
               short_names: bool = True,
               logger: Logger = None) -> dict[str, Any]:
    """
    Retrieve the attributes of the certificate in *x509_data*.

    These are the attributes returned:
        - *name*: the subject, in *RFC 4514* notation
        - *subject*, *issuer*: the distinguished names (see *x509_name_to_dict()*)
        - *version*: the *X.509* version (0-based, as encoded)
        - *serialNumber*, *serialNumberHex*: the serial number, in decimal and in upper-case hexadecimal
        - *validFrom*, *validTo*: the validity period, as aware *datetime* objects
        - *validFrom_time_t*, *validTo_time_t*: the validity period, in seconds since the epoch
        - *signatureAlgorithm*: the dotted OID of the signature algorithm
        - *signatureHash*: the name of the signature's hash algorithm (if any)
        - *extensions*: the extensions, keyed by dotted OID

    :param x509_data: the certificate material (see *cert_read()*)
    :param short_names: whether to use short (*CN*) or long (*commonName*) field names
    :param logger: optional logger
    :return: the certificate attributes
    """
    cert: x509.Certificate = cert_read(x509_data=x509_data,
                                       logger=logger)
    result: dict[str, Any] = {
        "name": cert.subject.rfc4514_string(),
        "subject": x509_name_to_dict(name=cert.subject,
                                     short_names=short_names),
        "issuer": x509_name_to_dict(name=cert.issuer,
                                    short_names=short_names),
        "version": cert.version.value,
        "serialNumber": str(cert.serial_number),
        "serialNumberHex": f"{cert.serial_number:X}",
        "validFrom": cert.not_valid_before_utc,
        "validTo": cert.not_valid_after_utc,
        "validFrom_time_t": int(cert.not_valid_before_utc.timestamp()),
        "validTo_time_t": int(cert.not_valid_after_utc.timestamp()),
        "signatureAlgorithm": cert.signature_algorithm_oid.dotted_string,
        "signatureHash": cert.signature_hash_algorithm.name if cert.signature_hash_algorithm else None,
        "extensions": {ext.oid.dotted_string: {"critical": ext.critical,
                                               "value": str(ext.value)}
                       for ext in cert.extensions}
    }
    return result


def cert_verify_signature(x509_data: Any,
                          issuer: Any,
                          logger: Logger = None) -> bool:
    """
    Verify whether the signature of the certificate in *x509_data* was produced by *issuer*.

    :param x509_data: the certificate material (see *cert_read()*)
    :param issuer: the issuer's certificate material
    :param logger: optional logger
    :return: *True* if the signature is valid, *False* otherwise
    """
    # initialize the return variable
    result: bool = False

    cert: x509.Certificate = cert_read(x509_data=x509_data,
                                       logger=logger)
    issuer_cert: x509.Certificate = cert_read(x509_data=issuer,
                                              logger=logger)
    # retrieve the issuer's public key
    public_key: ChpPublicKey = issuer_cert.public_key()

    # verify the signature
    try:
        if isinstance(public_key, RSAPublicKey):
            # determine the signature padding used
            sig_oid: str = cert.signature_algorithm_oid.dotted_string
            if sig_oid == "1.2.840.113549.1.1.10":  # RSASSA-PSS
                chosen_padding: padding.AsymmetricPadding = padding.PSS(
                    mgf=padding.MGF1(cert.signature_hash_algorithm),
                    salt_length=padding.PSS.MAX_LENGTH
                )
            else:
                chosen_padding: padding.AsymmetricPadding = padding.PKCS1v15()

            public_key.verify(cert.signature,
                              cert.tbs_certificate_bytes,
                              chosen_padding,
                              cert.signature_hash_algorithm)
        elif isinstance(public_key, ec.EllipticCurvePublicKey):
            public_key.verify(cert.signature,
                              cert.tbs_certificate_bytes,
                              ec.ECDSA(cert.signature_hash_algorithm))
        elif isinstance(public_key, ed25519.Ed25519PublicKey | ed448.Ed448PublicKey):
            public_key.verify(cert.signature,
                              cert.tbs_certificate_bytes)
        else:
            public_key.verify(cert.signature,
                              cert.tbs_certificate_bytes,
                              cert.signature_hash_algorithm)
        result = True
    except InvalidSignature as e:
        if logger:
            logger.warning(msg=exc_format(exc=e,
                                          exc_info=sys.exc_info()))
    return result
