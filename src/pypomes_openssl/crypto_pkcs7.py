from __future__ import annotations  # allow forward references
import sys
from asn1crypto import cms, core, tsp, x509 as asn1crypto_x509
from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat, pkcs7, pkcs12
from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from logging import Logger
from pathlib import Path
from pypomes_core import exc_format, file_get_data
from typing import Any, Final, Literal

from .assert_pomes import assert_passphrase, file_write_content
from .cert_pomes import cert_export, cert_read
from .codec_pomes import base64_encode
from .crypto_common import (
    CRYPTO_DEFAULT_HASH_ALGORITHM,
    ChpHash, ChpPrivateKey, HashAlgorithm, PemType, SignatureMode, _chp_hash
)
from .crypto_errors import (
    MalformedMaterialError, MissingArgumentError, TypeMismatchError
)
from .guard_pomes import guarded_call
from .hash_pomes import hash_digest
from .pem_pomes import PEM_BEGIN, der_to_pem, pem_split
from .pkey_pomes import pkey_get_private

PKCS7_PEM_TYPES: Final[list[PemType]] = [PemType.PKCS7, PemType.PKCS7_SIGNED_DATA, PemType.CMS]


def _pkcs7_der(p7_in: BytesIO | Path | str | bytes,
               arg_ix: int = 1) -> bytes:
    # retrieve the PKCS#7 data (if PEM, convert to DER)
    result: bytes = file_get_data(file_data=p7_in)
    if not result:
        raise MissingArgumentError(f"PKCS#7 data is required (argument #{arg_ix})",
                                   arg_ix=arg_ix)
    if result.lstrip().startswith(PEM_BEGIN.encode()):
        envelope = pem_split(pem=result.decode(encoding="latin-1"),
                             arg_ix=arg_ix)[0]
        if envelope.pem_type not in PKCS7_PEM_TYPES:
            raise MalformedMaterialError(f"PKCS#7 PEM expected (argument #{arg_ix}), got '{envelope.pem_type}'",
                                         arg_ix=arg_ix)
        result = envelope.der

    return result


def _signed_attr_values(signed_attrs: cms.CMSAttributes) -> tuple[bytes | None, datetime | None]:
    # the stored payload digest and the signing time, when signed as attributes
    stored_hash: bytes | None = None
    signing_time: datetime | None = None
    for signed_attr in signed_attrs:
        match signed_attr["type"].native:
            case "message_digest":
                stored_hash = signed_attr["values"][0].native
            case "signing_time":
                signing_time = signed_attr["values"][0].native

    return stored_hash, signing_time


def _is_signer(cert: asn1crypto_x509.Certificate,
               signer_id: cms.SignerIdentifier) -> bool:
    # declare the return variable
    result: bool

    match signer_id.name:
        case "issuer_and_serial_number":
            result = (cert.issuer == signer_id.chosen["issuer"] and
                      cert.serial_number == signer_id.chosen["serial_number"].native)
        case "subject_key_identifier":
            result = cert.key_identifier == signer_id.chosen.native
        case _:
            result = False

    return result


def _signer_chain(signed_data: cms.SignedData,
                  signer_id: cms.SignerIdentifier) -> tuple[bytes, list[bytes]]:
    """
    Locate the signer's certificate among the certificates embedded in *signed_data*.

    The signer is identified by issuer and serial number, or by subject key identifier, as
    stated in *signer_id*. If no embedded certificate matches, the first one is taken.

    :param signed_data: the CMS signed data
    :param signer_id: the signer identifier
    :return: the signer's certificate and the embedded certificates, in *DER* format
    :raises MalformedMaterialError: *signed_data* embeds no certificates
    """
    chain: list[bytes] = []
    signer_der: bytes | None = None
    for cert_choice in signed_data["certificates"] or []:
        # HAZARD: 'chosen' is an 'asn1crypto' certificate, not a 'cryptography.x509.Certificate' object
        cert: asn1crypto_x509.Certificate = cert_choice.chosen
        chain.append(cert.dump())
        if signer_der is None and _is_signer(cert=cert,
                                             signer_id=signer_id):
            signer_der = chain[-1]
    if not chain:
        raise MalformedMaterialError("'p7s_in' holds no signer certificate",
                                     arg_ix=1)

    return signer_der or chain[0], chain


def _tsa_data(unsigned_attrs: cms.CMSAttributes,
              logger: Logger = None) -> tuple[datetime | None, str | None, str | None]:
    """
    Extract the time-stamping authority (TSA) data from the unsigned attributes of a signature.

    The timestamp token is itself a CMS signed data structure, whose content is the *TSTInfo*
    record. An unreadable token is logged and yields no TSA data.

    :param unsigned_attrs: the signature's unsigned attributes
    :param logger: optional logger
    :return: the TSA's timestamp, policy, and serial number (hexadecimal), or *None* values
    """
    for unsigned_attr in unsigned_attrs:
        if unsigned_attr["type"].native != "signature_time_stamp_token":
            continue
        try:
            token: cms.ContentInfo = cms.ContentInfo.load(unsigned_attr["values"][0].dump())
            tst_info: tsp.TSTInfo = token["content"]["encap_content_info"]["content"].parsed
            return (tst_info["gen_time"].native,
                    tst_info["policy"].native,
                    hex(tst_info["serial_number"].native))
        except Exception as e:
            if logger:
                logger.warning(msg=exc_format(exc=e,
                                              exc_info=sys.exc_info()))
        break

    return None, None, None


def _verify_prehashed(public_key: Any,
                      signature: bytes,
                      digest: bytes,
                      chp_hash: ChpHash,
                      signature_alg_name: str) -> None:
    # raises 'InvalidSignature' if 'signature' does not match 'digest'
    prehashed: Prehashed = Prehashed(chp_hash)
    if isinstance(public_key, rsa.RSAPublicKey):
        rsa_padding: padding.AsymmetricPadding = \
            padding.PSS(mgf=padding.MGF1(algorithm=chp_hash),
                        salt_length=padding.PSS.AUTO) if "pss" in signature_alg_name else padding.PKCS1v15()
        public_key.verify(signature, digest, rsa_padding, prehashed)
    elif isinstance(public_key, ec.EllipticCurvePublicKey):
        public_key.verify(signature, digest, ec.ECDSA(prehashed))
    else:
        public_key.verify(signature, digest, prehashed)


class CryptoPkcs7:
    """
    Python code to extract crypto data from a PKCS#7 signature file.

    The crypto data is in *Cryptographic Message Syntax* (CMS), a standard for digitally signing, digesting,
    authenticating, and encrypting arbitrary message content.

    These are the instance attributes:
        - p7s_bytes: bytes                 - the PKCS#7-compliant data in *DER* format
        - payload: bytes                   - the common payload (embedded or external)
        - signatures: list[SignatureInfo]  - data for list of signatures
    """
    # class-level logger
    logger: Logger | None = None

    @dataclass(frozen=True)
    class SignatureInfo:
        """
        Data of one signature, as extracted and verified.
        """
        payload_hash: bytes                 # stored digest of the payload (computed, if not stored)
        hash_algorithm: HashAlgorithm       # digest algorithm
        signature: bytes                    # raw signature value
        signature_algorithm: str            # signature algorithm, as named by asn1crypto
        signature_timestamp: datetime       # 'signing_time' attribute, if signed
        valid: bool                         # digest and signature both verified
        public_key: Any                     # signer's public key
        signer_common_name: str             # signer's CN (full subject, if no CN)
        signer_cert: x509.Certificate       # signer's certificate
        cert_serial_number: int             # serial number of the signer's certificate
        cert_chain: list[bytes]             # embedded certificates, in DER format

        # time-stamping authority token, if present
        tsa_timestamp: datetime
        tsa_policy: str
        tsa_serial_number: str              # hexadecimal

    def __init__(self,
                 p7s_in: BytesIO | Path | str | bytes,
                 doc_in: BytesIO | Path | str | bytes = None) -> None:
        """
        Instantiate the *CryptoPkcs7* class, and extract the relevant crypto data.

        The natures of *p7s_in* and *doc_in* depend on their respective data types:
          - type *BytesIO*: is a byte stream
          - type *Path*: is a path to a file holding the data
          - type *str*: holds the data (used as utf8-encoded)
          - type *bytes*: holds the data (used as is)

        The PKCS#7 data provided in *p7s_in* contains the A1 certificate and its corresponding
        public key, the certificate chain, the original payload (if *attached* mode), and the
        digital signature. For each signature, the payload digest and the signature itself are
        verified, and the outcome is recorded in its *valid* attribute.

        :param p7s_in: the PKCS#7 data in *DER* or *PEM* format
        :param doc_in: the original document data (the payload, required in detached mode)
        :raises MalformedMaterialError: *p7s_in* does not hold PKCS#7 signed data
        :raises MissingArgumentError: the payload was not provided, in detached mode
        """
        # declare/initialize the instance variables
        self.signatures: list[CryptoPkcs7.SignatureInfo] = []
        self.payload: bytes | None = None
        self.p7s_bytes: bytes = _pkcs7_der(p7_in=p7s_in)

        # extract the base CMS structure
        signed_data: cms.SignedData | None = None
        try:
            content_info = cms.ContentInfo.load(encoded_data=self.p7s_bytes)
            if content_info["content_type"].native == "signed_data":
                signed_data = content_info["content"]
        except Exception as e:
            msg: str = exc_format(exc=e,
                                  exc_info=sys.exc_info())
            if CryptoPkcs7.logger:
                CryptoPkcs7.logger.error(msg=msg)
            raise MalformedMaterialError(f"'p7s_in' does not hold a valid PKCS#7 file: {msg}",
                                         arg_ix=1) from e
        if signed_data is None:
            raise MalformedMaterialError("'p7s_in' does not hold PKCS#7 signed data",
                                         arg_ix=1)

        # signatures in PKCS#7 are parallel, not chained, so they share the same payload
        encap_content: core.OctetString = signed_data["encap_content_info"]["content"]
        if encap_content:
            # attached mode
            self.payload = encap_content.native
        elif doc_in:
            # detached mode
            self.payload = file_get_data(file_data=doc_in)
        if not self.payload:
            raise MissingArgumentError("For detached mode, a payload file must be provided",
                                       arg_ix=2)

        # traverse the list of signatures
        signer_infos: list[cms.SignerInfo] = signed_data["signer_infos"]
        for signer_info in signer_infos:
            self.signatures.append(self.__build_sig_info(signed_data=signed_data,
                                                         signer_info=signer_info))

    def __build_sig_info(self,
                         signed_data: cms.SignedData,
                         signer_info: cms.SignerInfo) -> CryptoPkcs7.SignatureInfo:
        """
        Extract and verify the data of the signature in *signer_info*.

        The signature is deemed valid if the payload digest matches the stored *message_digest*
        attribute (when there is one), and if the signer's public key verifies the signature.

        :param signed_data: the CMS signed data
        :param signer_info: the signature's CMS signer info
        :return: the signature data
        """
        hash_algorithm: HashAlgorithm = HashAlgorithm(signer_info["digest_algorithm"]["algorithm"].native)
        signature_alg_name: str = signer_info["signature_algorithm"]["algorithm"].native
        signature_bytes: bytes = signer_info["signature"].native
        signed_attrs: cms.CMSAttributes = signer_info["signed_attrs"] or []
        stored_hash, signature_timestamp = _signed_attr_values(signed_attrs=signed_attrs)

        # check the payload against its stored digest
        payload_hash: bytes = hash_digest(msg=self.payload,
                                          alg=hash_algorithm,
                                          raw=True)
        valid: bool = stored_hash in [None, payload_hash]
        if stored_hash is None:
            if CryptoPkcs7.logger:
                CryptoPkcs7.logger.warning(msg="'p7s_in' has no stored payload digest")
        elif not valid and CryptoPkcs7.logger:
            CryptoPkcs7.logger.error(msg="Computed and stored digest values do not match")

        # identify the signer
        signer_der, cert_chain = _signer_chain(signed_data=signed_data,
                                               signer_id=signer_info["sid"])
        signer_cert: x509.Certificate = x509.load_der_x509_certificate(data=signer_der)
        public_key: Any = signer_cert.public_key()
        common_names: list[x509.NameAttribute] = \
            signer_cert.subject.get_attributes_for_oid(x509.NameOID.COMMON_NAME)
        signer_common_name: str = common_names[0].value if common_names else signer_cert.subject.rfc4514_string()

        # the signature covers the signed attributes, if any, or else the payload itself
        signed_hash: bytes = payload_hash
        if signed_attrs:
            # HAZARD:
            #   - the attributes were signed in DER canonical order, but are kept in their insert order
            #   - 'dump()' does not apply the canonical sort, so it is applied here
            sorted_attrs: list[cms.CMSAttribute] = sorted(signed_attrs,
                                                          key=lambda attr: attr.dump())
            signed_hash = hash_digest(msg=cms.CMSAttributes(sorted_attrs).dump(),
                                      alg=hash_algorithm,
                                      raw=True)
        try:
            _verify_prehashed(public_key=public_key,
                              signature=signature_bytes,
                              digest=signed_hash,
                              chp_hash=_chp_hash(alg=hash_algorithm),
                              signature_alg_name=signature_alg_name)
        except (InvalidSignature, TypeError, ValueError) as e:
            valid = False
            if CryptoPkcs7.logger:
                CryptoPkcs7.logger.warning(msg=f"Signature by '{signer_common_name}' not verified: " +
                                               exc_format(exc=e,
                                                          exc_info=sys.exc_info()))

        tsa_timestamp, tsa_policy, tsa_serial_number = _tsa_data(unsigned_attrs=signer_info["unsigned_attrs"] or [],
                                                                 logger=CryptoPkcs7.logger)
        return CryptoPkcs7.SignatureInfo(payload_hash=stored_hash or payload_hash,
                                         hash_algorithm=hash_algorithm,
                                         signature=signature_bytes,
                                         signature_algorithm=signature_alg_name,
                                         signature_timestamp=signature_timestamp,
                                         valid=valid,
                                         public_key=public_key,
                                         signer_common_name=signer_common_name,
                                         signer_cert=signer_cert,
                                         cert_serial_number=signer_cert.serial_number,
                                         cert_chain=cert_chain,
                                         tsa_timestamp=tsa_timestamp,
                                         tsa_policy=tsa_policy,
                                         tsa_serial_number=tsa_serial_number)

    def is_valid(self) -> bool:
        """
        Determine whether all signatures were successfully verified.

        :return: *True* if there is at least one signature and all of them are valid, *False* otherwise
        """
        return len(self.signatures) > 0 and all(sig_info.valid for sig_info in self.signatures)

    def get_digest(self,
                   fmt: Literal["base64", "bytes"],
                   sig_seq: int = 0) -> str | bytes:
        """
        Retrieve the digest associated with a reference signature, as specified in *sig_seq* and *fmt*.

        The natural ordering of the signatures in a *PKCS#7* compliant *.p7s* file is the chronological
        *latest-first* order. The value of *sig_seq* is subtracted from the ordinal position of the last
        signature in the signatures list, to yield the ordinal position of the reference signature.
        It defaults to *0*, indicating the latest signature. If the operation yields a number out of
        the range of available signatures, the latest signature is selected.

        :param fmt: the format to use
        :param sig_seq: the relative ordinal position of the reference signature
        :return: the digest, as per *fmt* (Base64-encoded or raw bytes)
        """
        sig_info: CryptoPkcs7.SignatureInfo = self.__get_sig_info(sig_seq=sig_seq)
        return sig_info.payload_hash if fmt == "bytes" else base64_encode(raw=sig_info.payload_hash)

    def get_signature(self,
                      fmt: Literal["base64", "bytes"],
                      sig_seq: int = 0) -> str | bytes:
        """
        Retrieve the signature associated with a reference signature, as specified in *sig_seq* and *fmt*.

        See *get_digest()* for the meaning of *sig_seq*.

        :param fmt: the format to use
        :param sig_seq: the relative ordinal position of the reference signature
        :return: the signature, as per *fmt* (Base64-encoded or raw bytes)
        """
        sig_info: CryptoPkcs7.SignatureInfo = self.__get_sig_info(sig_seq=sig_seq)
        return sig_info.signature if fmt == "bytes" else base64_encode(raw=sig_info.signature)

    def get_public_key(self,
                       fmt: Literal["base64", "der", "pem"],
                       sig_seq: int = 0) -> str | bytes:
        """
        Retrieve the public key associated with a reference signature, as specified in *sig_seq* and *fmt*.

        These are the supported formats:
            - *der*: the raw binary representation of the key
            - *pem*: the Base64-encoded key with headers and line breaks
            - *base64*: the Base64-encoded DER bytes

        :param fmt: the format to use
        :param sig_seq: the relative ordinal position of the reference signature (see *get_digest()*)
        :return: the public key, as per *fmt* (*str* or *bytes*)
        """
        sig_info: CryptoPkcs7.SignatureInfo = self.__get_sig_info(sig_seq=sig_seq)
        result: bytes = sig_info.public_key.public_bytes(encoding=Encoding.DER,
                                                         format=PublicFormat.SubjectPublicKeyInfo)
        match fmt:
            case "pem":
                return der_to_pem(der=result,
                                  pem_type=PemType.PUBLIC_KEY)
            case "base64":
                return base64_encode(raw=result)
            case _:
                return result

    def get_cert_chain(self,
                       sig_seq: int = 0) -> list[bytes]:
        """
        Retrieve the certificate chain associated with a reference signature, as specified in *sig_seq*.

        :param sig_seq: the relative ordinal position of the reference signature (see *get_digest()*)
        :return: the serialized certificate chain, in *DER* format
        """
        sig_info: CryptoPkcs7.SignatureInfo = self.__get_sig_info(sig_seq=sig_seq)
        return sig_info.cert_chain

    def get_metadata(self,
                     sig_seq: int = 0) -> dict[str, Any]:
        """
        Retrieve the certificate chain metadata associated with a reference signature, as specified in *sig_seq*.

        :param sig_seq: the relative ordinal position of the reference signature (see *get_digest()*)
        :return: the certificate chain metadata associated with the reference signature
        """
        sig_info: CryptoPkcs7.SignatureInfo = self.__get_sig_info(sig_seq=sig_seq)
        cert: x509.Certificate = sig_info.signer_cert

        result: dict[str, Any] = {
            "signer-common-name": sig_info.signer_common_name,
            "hash-algorithm": sig_info.hash_algorithm,
            "signature-algorithm": sig_info.signature_algorithm,
            "signature-timestamp": sig_info.signature_timestamp,
            "signature-valid": sig_info.valid,
            "cert-serial-number": sig_info.cert_serial_number,
            "cert-not-before": cert.not_valid_before_utc,
            "cert-not-after": cert.not_valid_after_utc,
            "cert-subject": cert.subject.rfc4514_string(),
            "cert-issuer": cert.issuer.rfc4514_string(),
            "cert-chain-length": len(sig_info.cert_chain)
        }
        # add the TSA details
        if sig_info.tsa_serial_number:
            result.update({
                "tsa-timestamp": sig_info.tsa_timestamp,
                "tsa-policy": sig_info.tsa_policy,
                "tsa-serial-number": sig_info.tsa_serial_number
            })

        return result

    def __get_sig_info(self,
                       sig_seq: int) -> CryptoPkcs7.SignatureInfo:
        """
        Retrieve the signature metadata of a reference signature, as specified in *sig_seq*.

        :param sig_seq: the relative ordinal position of the reference signature (see *get_digest()*)
        :return: the reference signature's metadata
        """
        sig_ordinal: int = max(-1, len(self.signatures) - sig_seq - 1)
        return self.signatures[sig_ordinal]

    @staticmethod
    def sign(doc_in: BytesIO | Path | str | bytes,
             pfx_in: BytesIO | Path | str | bytes = None,
             pfx_pwd: str | bytes = None,
             x509_data: Any = None,
             private_key: Any = None,
             key_pwd: str | bytes = None,
             p7s_out: BytesIO | Path | str = None,
             embed_attrs: bool = True,
             hash_alg: HashAlgorithm = CRYPTO_DEFAULT_HASH_ALGORITHM,
             sig_mode: SignatureMode = SignatureMode.DETACHED) -> CryptoPkcs7:
        """
        Digitally sign a file in *attached* or *detached* format.

        The signer is given either as *PKCS#12* data in *pfx_in* (an A1 certificate), or as
        the certificate material in *x509_data* along with the private key material in *private_key*.

        The natures of *doc_in* and *pfx_in* depend on their respective data types:
          - type *BytesIO*: is a byte stream
          - type *Path*: is a path to a file holding the data
          - type *str*: holds the data (used as utf8-encoded)
          - type *bytes*: holds the data (used as is)

        The signature is created as a PKCS#7/CMS compliant structure with full certificate chain.
        The parameter *sig_mode* determines whether the payload is to be embedded (*attached*),
        or left aside (*detached*).

        The parameter *embed_attrs* determines whether authenticated attributes should be embedded in the
        PKCS#7 structure (defaults to *True*). These are the attributes grouped under the label "signed_attrs",
        that are cryptographically signed by the signer, meaning that, when they exist, the signature covers
        them, rather than the raw data.

        :param doc_in: the document to sign
        :param pfx_in: the PKCS#12 (*.pfx*) data, containing A1 certificate and private key
        :param pfx_pwd: password for the *.pfx* data (if not provided, *pfx_in* is assumed to be unencrypted)
        :param x509_data: the signer's certificate material, if *pfx_in* is not given
        :param private_key: the signer's private key material, if *pfx_in* is not given
        :param key_pwd: the passphrase protecting *private_key*
        :param p7s_out: path to the output PKCS#7 file (optional, no output if not provided)
        :param embed_attrs: whether to embed the authenticated attributes in the PKCS#7 structure
        :param hash_alg: the algorithm for hashing
        :param sig_mode: whether to handle the payload as "attached" (defaults to "detached")
        :return: the instance of *CryptoPkcs7*
        """
        # retrieve the document raw bytes
        doc_bytes: bytes = file_get_data(file_data=doc_in)
        if not doc_bytes:
            raise MissingArgumentError("document is required (argument #1)",
                                       arg_ix=1)

        # load the certificate and private key
        additional_certs: list[x509.Certificate] = []
        if pfx_in:
            pwd: str | None = assert_passphrase(passphrase=pfx_pwd,
                                                arg_ix=3)
            cert_data: tuple = guarded_call("pkcs7_sign",
                                            pkcs12.load_key_and_certificates,
                                            data=file_get_data(file_data=pfx_in),
                                            password=pwd.encode() if pwd else None,
                                            logger=CryptoPkcs7.logger)
            key: ChpPrivateKey = cert_data[0]
            cert_main: x509.Certificate = cert_data[1]
            additional_certs = cert_data[2] or []
            if not cert_main or not key:
                msg: str = "Failed to load the digital certificate" if not cert_main \
                    else "Failed to load the private key"
                if CryptoPkcs7.logger:
                    CryptoPkcs7.logger.error(msg=msg)
                raise MalformedMaterialError(msg,
                                             arg_ix=2)
        elif x509_data is not None and private_key is not None:
            cert_main = cert_read(x509_data=x509_data,
                                  logger=CryptoPkcs7.logger)
            key = pkey_get_private(key=private_key,
                                   passphrase=key_pwd,
                                   logger=CryptoPkcs7.logger)
        else:
            raise MissingArgumentError("Either PKCS#12 data, or certificate and private key, are required",
                                       arg_ix=2)

        # prepare the PKCS#7 builder
        sig_hasher: ChpHash = _chp_hash(alg=hash_alg,
                                        logger=CryptoPkcs7.logger)
        builder: pkcs7.PKCS7SignatureBuilder = pkcs7.PKCS7SignatureBuilder(data=doc_bytes)
        builder = builder.add_signer(certificate=cert_main,
                                     private_key=key,
                                     hash_algorithm=sig_hasher,
                                     rsa_padding=padding.PKCS1v15() if isinstance(key, rsa.RSAPrivateKey) else None)
        # add full certificate chain to the return data
        for cert in additional_certs:
            builder = builder.add_certificate(cert)

        # define PKCS#7 options:
        #   - Binary: do not translate input data into canonical MIME format
        #   - DetachedSignature: do not embed data in the PKCS7 structure
        #   - NoAttributes: do not embed authenticated attributes (includes NoCapabilities)
        options: list[pkcs7.PKCS7Options] = [pkcs7.PKCS7Options.Binary]
        if sig_mode == SignatureMode.DETACHED:
            options.append(pkcs7.PKCS7Options.DetachedSignature)
        if not embed_attrs:
            options.append(pkcs7.PKCS7Options.NoAttributes)

        # build the PKCS#7 data in DER format
        pkcs7_data: bytes = guarded_call("pkcs7_sign",
                                         builder.sign,
                                         encoding=Encoding.DER,
                                         options=options,
                                         logger=CryptoPkcs7.logger)
        # instantiate the object
        result: CryptoPkcs7 = CryptoPkcs7(p7s_in=pkcs7_data,
                                          doc_in=doc_bytes if sig_mode == SignatureMode.DETACHED else None)
        # output the PKCS#7 file
        if p7s_out:
            file_write_content(file=p7s_out,
                               data=pkcs7_data,
                               arg_ix=7)
        return result

    @staticmethod
    def set_logger(logger: Logger) -> None:
        """
        Configure the logger to be used in this module's operations.

        :param logger: the operations logger
        """
        CryptoPkcs7.logger = logger


def pkcs7_verify(p7s_in: BytesIO | Path | str | bytes,
                 doc_in: BytesIO | Path | str | bytes = None) -> bool:
    """
    Verify the signatures in the PKCS#7 data in *p7s_in*.

    :param p7s_in: the PKCS#7 data in *DER* or *PEM* format
    :param doc_in: the original document data (required in detached mode)
    :return: *True* if all signatures are valid, *False* otherwise
    """
    return CryptoPkcs7(p7s_in=p7s_in,
                       doc_in=doc_in).is_valid()


def pkcs7_read_certs(p7_in: BytesIO | Path | str | bytes,
                     logger: Logger = None) -> list[str]:
    """
    Retrieve the certificates held in the PKCS#7 data in *p7_in*.

    :param p7_in: the PKCS#7 data in *DER* or *PEM* format
    :param logger: optional logger
    :return: the certificates, as *PEM* text
    """
    certs: list[x509.Certificate] = guarded_call("pkcs7_read_certs",
                                                 pkcs7.load_der_pkcs7_certificates,
                                                 _pkcs7_der(p7_in=p7_in),
                                                 logger=logger)
    return [cert_export(x509_data=cert,
                        logger=logger) for cert in certs]


def pkcs7_encrypt(data: BytesIO | Path | str | bytes,
                  recipients: list[Any],
                  fmt: Literal["pem", "der"] = "der",
                  logger: Logger = None) -> str | bytes:
    """
    Encrypt *data* for the holders of the certificates in *recipients*, as PKCS#7 enveloped data.

    Only certificates with *RSA* keys may be used as recipients.

    :param data: the data to encrypt
    :param recipients: the recipients' certificate materials
    :param fmt: the output format (*pem* text, or *der* bytes)
    :param logger: optional logger
    :return: the PKCS#7 enveloped data
    """
    payload: bytes = file_get_data(file_data=data)
    if not payload:
        raise MissingArgumentError("data is required (argument #1)",
                                   arg_ix=1)
    if not recipients:
        raise MissingArgumentError("certificate is required (argument #2)",
                                   arg_ix=2)
    builder: pkcs7.PKCS7EnvelopeBuilder = pkcs7.PKCS7EnvelopeBuilder().set_data(payload)
    for recipient in recipients:
        cert: x509.Certificate = cert_read(x509_data=recipient,
                                           logger=logger)
        if not isinstance(cert.public_key(), rsa.RSAPublicKey):
            raise TypeMismatchError("Certificate with RSA key expected (argument #2)",
                                    arg_ix=2)
        builder = builder.add_recipient(cert)

    result: bytes = guarded_call("pkcs7_encrypt",
                                 builder.encrypt,
                                 encoding=Encoding.DER,
                                 options=[pkcs7.PKCS7Options.Binary],
                                 logger=logger)
    return der_to_pem(der=result,
                      pem_type=PemType.PKCS7) if fmt == "pem" else result


def pkcs7_decrypt(p7_in: BytesIO | Path | str | bytes,
                  x509_data: Any,
                  private_key: Any,
                  passphrase: str | bytes = None,
                  logger: Logger = None) -> bytes:
    """
    Decrypt the PKCS#7 enveloped data in *p7_in*, as a holder of the certificate in *x509_data*.

    :param p7_in: the PKCS#7 enveloped data, in *DER* or *PEM* format
    :param x509_data: the recipient's certificate material
    :param private_key: the recipient's private key material, or the pairing *(key, passphrase)*
    :param passphrase: the passphrase protecting *private_key*
    :param logger: optional logger
    :return: the decrypted data
    """
    der: bytes = _pkcs7_der(p7_in=p7_in)
    cert: x509.Certificate = cert_read(x509_data=x509_data,
                                       logger=logger)
    key: ChpPrivateKey = pkey_get_private(key=private_key,
                                          passphrase=passphrase,
                                          logger=logger)
    if not isinstance(key, rsa.RSAPrivateKey):
        raise TypeMismatchError(f"RSA key expected (argument #3), got '{type(key).__name__}'",
                                arg_ix=3)
    return guarded_call("pkcs7_decrypt",
                        pkcs7.pkcs7_decrypt_der,
                        der,
                        cert,
                        key,
                        [],
                        logger=logger)
