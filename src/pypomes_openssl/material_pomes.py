from __future__ import annotations
from cryptography import x509
from dataclasses import dataclass
from enum import StrEnum, auto
from pathlib import Path
from typing import Any, Final

from .assert_pomes import (
    FILE_PROTO,
    assert_passphrase, assert_readable_file, file_has_proto_prefix, file_read_content
)
from .crypto_common import ChpPrivateKey, ChpPublicKey, ResourceKind
from .crypto_errors import (
    MalformedMaterialError, MissingArgumentError, TypeMismatchError, arg_ix_text
)
from .pem_pomes import PEM_BEGIN, pem_parse, pem_split

_ROLES: Final[dict[ResourceKind, str]] = {
    ResourceKind.X509: "certificate",
    ResourceKind.X509_CSR: "certificate request",
    ResourceKind.X509_CRL: "revocation list",
    ResourceKind.PKEY: "key"
}


class MaterialForm(StrEnum):
    """
    Forms of resolved key/certificate material.
    """
    HANDLE = auto()     # a live object created by the crypto engine
    FILE = auto()       # a reference to a file holding PEM text
    INLINE = auto()     # PEM text


@dataclass(frozen=True)
class MaterialReference:
    """
    The outcome of resolving a caller-supplied key/certificate argument.

    For *FILE* references, *value* is the file path without the *file://* prefix.
    """
    form: MaterialForm
    value: Any
    passphrase: str | None = None

    @property
    def canonical(self) -> Any:
        """
        The handle, the *file://*-prefixed file reference, or the PEM text.
        """
        return f"{FILE_PROTO}{self.value}" if self.form == MaterialForm.FILE else self.value

    @property
    def is_handle(self) -> bool:
        return self.form == MaterialForm.HANDLE

    @property
    def is_file(self) -> bool:
        return self.form == MaterialForm.FILE

    @property
    def is_inline(self) -> bool:
        return self.form == MaterialForm.INLINE

    def as_tuple(self) -> tuple[Any, str | None]:
        """
        Retrieve the pairing *(canonical material, passphrase)*.

        :return: the material and its passphrase
        """
        return self.canonical, self.passphrase


def resource_kind_of(obj: Any) -> ResourceKind | None:
    """
    Determine the kind of the crypto engine object *obj*.

    :param obj: the object to inspect
    :return: the kind of *obj*, or *None* if *obj* is not an engine handle
    """
    # declare the return variable
    result: ResourceKind | None

    if isinstance(obj, x509.Certificate):
        result = ResourceKind.X509
    elif isinstance(obj, x509.CertificateSigningRequest):
        result = ResourceKind.X509_CSR
    elif isinstance(obj, x509.CertificateRevocationList):
        result = ResourceKind.X509_CRL
    elif isinstance(obj, ChpPrivateKey | ChpPublicKey):
        result = ResourceKind.PKEY
    else:
        result = None

    return result


def _assert_pem_text(text: str,
                     arg_ix: int) -> str:
    # more than one envelope: every segment must validate on its own
    if text.count(PEM_BEGIN) > 1:
        pem_split(pem=text,
                  arg_ix=arg_ix)
    else:
        pem_parse(pem=text,
                  arg_ix=arg_ix)
    return text


def _to_text(data: bytes,
             arg_ix: int) -> str:
    try:
        return data.decode(encoding="ascii")
    except UnicodeDecodeError as e:
        raise MalformedMaterialError(f"PEM formatted string expected{arg_ix_text(arg_ix)}",
                                     arg_ix=arg_ix) from e


def material_resolve(value: Any,
                     arg_ix: int = None,
                     kind: ResourceKind = ResourceKind.PKEY,
                     file_to_text: bool = False) -> MaterialReference:
    """
    Resolve a caller-supplied key/certificate argument into a canonical reference.

    These are the resolution steps, the first applicable one winning:
      1. *value* is an engine handle: its kind must be *kind* (textual validation is skipped)
      2. *value* is a *Path*, or a string prefixed with *file://*: the file must be readable
      3. *value* is a string naming an existing file: as in 2, the reference gaining the prefix
      4. otherwise, *value* is PEM text (*bytes* are decoded as ASCII)
      5. the text must be a single PEM envelope, or a concatenation of PEM envelopes

    For file references, the content is read and validated when *file_to_text* is set.
    Otherwise, a *FILE* reference is returned, and validation is deferred to the eventual read.

    :param value: the material to resolve
    :param arg_ix: the position of the argument, for error reporting
    :param kind: the expected handle kind
    :param file_to_text: whether file content should replace file references
    :return: the resolved material
    :raises MissingArgumentError: *value* is absent or empty
    :raises TypeMismatchError: *value* is a handle of the wrong kind, or of an unsupported type
    :raises InvalidArgumentError: a referenced file is not readable
    :raises MalformedMaterialError: the text is not PEM
    """
    if value is None or (isinstance(value, str | bytes) and not value):
        raise MissingArgumentError(f"{_ROLES[kind]} is required{arg_ix_text(arg_ix)}",
                                   arg_ix=arg_ix)

    # step 1: live object
    handle_kind: ResourceKind | None = resource_kind_of(value)
    if handle_kind:
        if handle_kind != kind:
            raise TypeMismatchError(f"Resource ('{kind}') expected{arg_ix_text(arg_ix)}, got '{handle_kind}'",
                                    arg_ix=arg_ix)
        return MaterialReference(form=MaterialForm.HANDLE,
                                 value=value)

    if isinstance(value, bytes):
        value = _to_text(data=value,
                         arg_ix=arg_ix)
    elif not isinstance(value, str | Path):
        raise TypeMismatchError(f"Resource ('{kind}') expected{arg_ix_text(arg_ix)}, "
                                f"got '{type(value).__name__}'",
                                arg_ix=arg_ix)

    # steps 2 and 3: file reference
    path: Path | None = None
    if isinstance(value, Path) or file_has_proto_prefix(value):
        path = assert_readable_file(file=value,
                                    arg_ix=arg_ix)
    elif _is_file(value):
        path = Path(value)

    if path:
        if not file_to_text:
            return MaterialReference(form=MaterialForm.FILE,
                                     value=str(path))
        value = _to_text(data=file_read_content(file=path,
                                                arg_ix=arg_ix),
                         arg_ix=arg_ix)

    # steps 4 and 5: inline text
    return MaterialReference(form=MaterialForm.INLINE,
                             value=_assert_pem_text(text=value,
                                                    arg_ix=arg_ix))


def _is_file(name: str) -> bool:
    # overlong names and names holding NUL are not file names
    try:
        return Path(name).is_file()
    except (OSError, ValueError):
        return False


def material_resolve_key(value: Any,
                         passphrase: str | bytes = None,
                         arg_ix: int = None,
                         file_to_text: bool = False) -> MaterialReference:
    """
    Resolve a caller-supplied key argument, optionally paired with its passphrase.

    The key may be given as the pairing *(material, passphrase)*, in a *tuple* or *list*,
    in which case the paired passphrase takes precedence over *passphrase*.
    An empty passphrase is taken as no passphrase.

    :param value: the key material, or the pairing *(material, passphrase)*
    :param passphrase: the passphrase, if not paired with the key material
    :param arg_ix: the position of the argument, for error reporting
    :param file_to_text: whether file content should replace file references
    :return: the resolved key material, with its passphrase
    """
    if isinstance(value, tuple | list):
        if len(value) != 2:
            raise TypeMismatchError(f"Pairing (key, passphrase) expected{arg_ix_text(arg_ix)}",
                                    arg_ix=arg_ix)
        value, passphrase = value

    ref: MaterialReference = material_resolve(value=value,
                                              arg_ix=arg_ix,
                                              kind=ResourceKind.PKEY,
                                              file_to_text=file_to_text)
    return MaterialReference(form=ref.form,
                             value=ref.value,
                             passphrase=assert_passphrase(passphrase=passphrase,
                                                          arg_ix=arg_ix))


def material_get_text(ref: MaterialReference,
                      arg_ix: int = None) -> str:
    """
    Retrieve the PEM text of *ref*, reading and validating the file of a *FILE* reference.

    :param ref: the resolved material
    :param arg_ix: the position of the argument, for error reporting
    :return: the PEM text
    :raises TypeMismatchError: *ref* is a handle
    :raises MalformedMaterialError: the file content is not PEM
    """
    # declare the return variable
    result: str

    match ref.form:
        case MaterialForm.FILE:
            text: str = _to_text(data=file_read_content(file=ref.value,
                                                        arg_ix=arg_ix),
                                 arg_ix=arg_ix)
            result = _assert_pem_text(text=text,
                                      arg_ix=arg_ix)
        case MaterialForm.INLINE:
            result = ref.value
        case _:
            raise TypeMismatchError(f"PEM material expected{arg_ix_text(arg_ix)}, got handle",
                                    arg_ix=arg_ix)

    return result
