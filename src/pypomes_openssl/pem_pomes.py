from __future__ import annotations
import re
from dataclasses import dataclass
from io import IOBase
from pathlib import Path
from typing import Final

from .assert_pomes import file_read_content, file_write_content
from .codec_pomes import base64_decode, base64_encode, hex_pack, hex_unpack, is_base64
from .crypto_common import CRYPTO_DEFAULT_PEM_EOL, PemEol, PemType
from .crypto_errors import InvalidArgumentError, InvalidPemFormatError, arg_ix_text

# the label class is wider than the registered labels ('#', '.' and digits), registration is checked apart
_PEM_PATTERN: Final[re.Pattern] = re.compile(
    r"-----BEGIN (?P<label>[A-Z0-9 #.]+)-----\s*?"
    r"(?P<body>[A-Za-z0-9+/=\r\n]+?)\s*?"
    r"-----END (?P=label)-----[ \t\r\n]*"
)

PEM_BEGIN: Final[str] = "-----BEGIN "

# PKCS#8 prefix up to the OCTET STRING tag: INTEGER 0, SEQUENCE { rsaEncryption OID, NULL }
ASN1_PKCS8_PREFIX: Final[str] = "020100300d06092a864886f70d010101050004"
ASN1_SEQUENCE_TAG: Final[str] = "30"


@dataclass(frozen=True)
class PemEnvelope:
    """
    A parsed PEM envelope.

    The *body* holds the Base64 text between the markers, with its line breaks removed.
    """
    pem_type: PemType       # the registered label
    body: str               # the Base64 text, always non-empty
    eol: PemEol             # the line terminator found in the envelope

    @property
    def der(self) -> bytes:
        """
        The encapsulated *DER* data.
        """
        return base64_decode(encoded=self.body)


def pem_parse(pem: str,
              arg_ix: int = None) -> PemEnvelope:
    """
    Parse the single PEM envelope in *pem*.

    The envelope must span the whole text (trailing whitespace only), its *BEGIN* and *END*
    labels must match and be registered, and its body must be non-empty, valid Base64.

    :param pem: the PEM text
    :param arg_ix: the position of the argument, for error reporting
    :return: the parsed envelope
    :raises InvalidPemFormatError: *pem* is not a well-formed PEM envelope of a registered type
    """
    if isinstance(pem, bytes):
        pem = pem.decode(encoding="latin-1")
    match: re.Match | None = _PEM_PATTERN.fullmatch(pem) if isinstance(pem, str) else None
    if not match:
        raise InvalidPemFormatError(f"PEM formatted string expected{arg_ix_text(arg_ix)}",
                                    arg_ix=arg_ix)

    label: str = match.group("label")
    if label not in PemType:
        raise InvalidPemFormatError(f"PEM type not registered{arg_ix_text(arg_ix)}, got '{label}'",
                                    arg_ix=arg_ix)

    body: str = match.group("body").replace("\r", "").replace("\n", "")
    if not body or not is_base64(body):
        raise InvalidPemFormatError(f"Invalid PEM body{arg_ix_text(arg_ix)} for type '{label}'",
                                    arg_ix=arg_ix)

    return PemEnvelope(pem_type=PemType(label),
                       body=body,
                       eol=PemEol.CRLF if "\r\n" in pem else PemEol.LF)


def pem_is_valid(pem: str) -> bool:
    """
    Determine whether *pem* is a single, well-formed PEM envelope of a registered type.

    :param pem: the text to inspect
    :return: *True* if *pem* is valid, *False* otherwise
    """
    try:
        pem_parse(pem=pem)
        return True
    except InvalidPemFormatError:
        return False


def pem_assert(pem: str,
               arg_ix: int = None) -> str:
    """
    Assert that *pem* is a valid PEM envelope.

    :param pem: the text to assert
    :param arg_ix: the position of the argument, for error reporting
    :return: *pem*, unchanged
    :raises InvalidPemFormatError: *pem* is not valid
    """
    pem_parse(pem=pem,
              arg_ix=arg_ix)
    return pem


def pem_get_type(pem: str) -> PemType:
    """
    Retrieve the registered type of the PEM envelope in *pem*.

    :param pem: the PEM text
    :return: the envelope's type
    :raises InvalidPemFormatError: *pem* is not valid
    """
    return pem_parse(pem=pem).pem_type


def pem_is_type(pem_type: str) -> bool:
    """
    Determine whether *pem_type* is a registered PEM label.

    :param pem_type: the label to inspect
    :return: *True* if *pem_type* is registered, *False* otherwise
    """
    return pem_type in PemType


def pem_assert_type(pem_type: str,
                    arg_ix: int = None) -> PemType:
    """
    Assert that *pem_type* is a registered PEM label.

    :param pem_type: the label to assert
    :param arg_ix: the position of the argument, for error reporting
    :return: the label as *PemType*
    :raises InvalidArgumentError: *pem_type* is not registered
    """
    if not pem_is_type(pem_type):
        raise InvalidArgumentError(f"Invalid PEM type{arg_ix_text(arg_ix)}, got {pem_type!r}",
                                   arg_ix=arg_ix)
    return PemType(pem_type)


def pem_split(pem: str,
              arg_ix: int = None) -> list[PemEnvelope]:
    """
    Parse the concatenated PEM envelopes in *pem*.

    The text is split at each *-----BEGIN * marker, and every segment must be a valid envelope.

    :param pem: the PEM text, holding one or more envelopes
    :param arg_ix: the position of the argument, for error reporting
    :return: the list of parsed envelopes, in text order
    :raises InvalidPemFormatError: a segment is not a valid envelope
    """
    if not isinstance(pem, str) or not pem.lstrip().startswith(PEM_BEGIN):
        raise InvalidPemFormatError(f"PEM formatted string expected{arg_ix_text(arg_ix)}",
                                    arg_ix=arg_ix)
    return [pem_parse(pem=PEM_BEGIN + segment,
                      arg_ix=arg_ix)
            for segment in pem.lstrip().split(PEM_BEGIN) if segment]


def pem_to_der(pem: str,
               arg_ix: int = None) -> tuple[bytes, PemType]:
    """
    Convert the PEM envelope in *pem* to *DER*.

    :param pem: the PEM text
    :param arg_ix: the position of the argument, for error reporting
    :return: the tuple *(der, pem_type)*
    :raises InvalidPemFormatError: *pem* is not valid
    """
    envelope: PemEnvelope = pem_parse(pem=pem,
                                      arg_ix=arg_ix)
    return envelope.der, envelope.pem_type


def der_to_pem(der: bytes,
               pem_type: PemType | str,
               eol: PemEol | str = CRYPTO_DEFAULT_PEM_EOL) -> str:
    """
    Convert *der* to a PEM envelope of type *pem_type*.

    The Base64 body is broken into lines of 64 characters, and every line,
    including both markers, is terminated by *eol*.

    :param der: the *DER* data
    :param pem_type: the PEM label
    :param eol: the line terminator (defaults to an environment-defined value, or to *CRLF*)
    :return: the PEM text
    :raises InvalidArgumentError: *der* is empty, or *pem_type* is not registered
    """
    if not isinstance(der, bytes) or not der:
        raise InvalidArgumentError("DER data expected (argument #1)",
                                   arg_ix=1)
    pem_type = pem_assert_type(pem_type=pem_type,
                               arg_ix=2)

    body: str = base64_encode(raw=der)
    lines: list[str] = [f"-----BEGIN {pem_type}-----"]
    lines.extend(body[pos:pos + 64] for pos in range(0, len(body), 64))
    lines.append(f"-----END {pem_type}-----")

    return "".join(line + eol for line in lines)


def der_length(data: bytes | int) -> bytes:
    """
    Build the minimal *DER* length field for *data*, or for a content length given as *int*.

    Lengths up to 127 use the short form (one octet). Longer ones use the long form: an octet
    holding *0x80* plus the count of big-endian length octets, followed by those octets.

    :param data: the content, or its length
    :return: the length field
    """
    length: int = data if isinstance(data, int) else len(data)
    if length < 0x80:
        return hex_pack(f"{length:02x}")

    length_hex: str = f"{length:x}"
    if len(length_hex) % 2:
        length_hex = "0" + length_hex
    return hex_pack(f"{0x80 + len(length_hex) // 2:02x}{length_hex}")


def der_length_decode(field: bytes) -> tuple[int, int]:
    """
    Decode the *DER* length field at the start of *field*.

    :param field: the bytes starting with a length field
    :return: the tuple *(length, number of octets consumed)*
    :raises InvalidArgumentError: *field* does not start with a complete definite-form length
    """
    if not field:
        raise InvalidArgumentError("DER length field expected")
    first: int = field[0]
    if first < 0x80:
        return first, 1

    count: int = first - 0x80
    if count == 0 or len(field) < count + 1:
        raise InvalidArgumentError(f"Invalid DER length field: {hex_unpack(data=field[:count + 1])}")
    return int(hex_unpack(data=field[1:count + 1]), 16), count + 1


def pem_to_der_asn1(pem: str,
                    arg_ix: int = None) -> tuple[bytes, PemType]:
    """
    Convert the PEM envelope in *pem* to *DER*, lifting a bare *RSA* key into a *PKCS#8* structure.

    The resulting structure is *SEQUENCE { INTEGER 0, SEQUENCE { rsaEncryption, NULL },
    OCTET STRING { der } }*, with every length field computed by *der_length()*.
    The binary prefix and lengths are composed directly around the decoded key, rather than
    being glued onto the Base64 body and decoded a second time.

    :param pem: the PEM text holding the bare (*PKCS#1*) key
    :param arg_ix: the position of the argument, for error reporting
    :return: the tuple *(wrapped der, pem_type)*
    :raises InvalidPemFormatError: *pem* is not valid
    """
    der, pem_type = pem_to_der(pem=pem,
                               arg_ix=arg_ix)
    inner: bytes = hex_pack(ASN1_PKCS8_PREFIX + hex_unpack(data=der_length(data=der))) + der
    return hex_pack(ASN1_SEQUENCE_TAG + hex_unpack(data=der_length(data=inner))) + inner, pem_type


def pem_file_get_type(pem_file: Path | str | IOBase) -> PemType:
    """
    Retrieve the registered type of the PEM envelope held in *pem_file*.

    :param pem_file: the file path (optionally prefixed with *file://*) or stream
    :return: the envelope's type
    """
    data: bytes = file_read_content(file=pem_file,
                                    arg_ix=1)
    return pem_get_type(pem=data.decode(encoding="latin-1"))


def pem_file_to_der_file(pem_file: Path | str | IOBase,
                         der_file: Path | str | IOBase) -> PemType:
    """
    Convert the PEM envelope held in *pem_file* to *DER*, and save the result to *der_file*.

    :param pem_file: the source file path or stream
    :param der_file: the target file path or stream
    :return: the envelope's type
    """
    data: bytes = file_read_content(file=pem_file,
                                    arg_ix=1)
    der, pem_type = pem_to_der(pem=data.decode(encoding="latin-1"),
                               arg_ix=1)
    file_write_content(file=der_file,
                       data=der,
                       arg_ix=2)
    return pem_type


def der_file_to_pem_file(der_file: Path | str | IOBase,
                         pem_file: Path | str | IOBase,
                         pem_type: PemType | str,
                         eol: PemEol | str = CRYPTO_DEFAULT_PEM_EOL) -> None:
    """
    Convert the *DER* data held in *der_file* to a PEM envelope of type *pem_type*, and save it to *pem_file*.

    :param der_file: the source file path or stream
    :param pem_file: the target file path or stream
    :param pem_type: the PEM label
    :param eol: the line terminator
    """
    der: bytes = file_read_content(file=der_file,
                                   arg_ix=1)
    file_write_content(file=pem_file,
                       data=der_to_pem(der=der,
                                       pem_type=pem_type,
                                       eol=eol),
                       arg_ix=2)
