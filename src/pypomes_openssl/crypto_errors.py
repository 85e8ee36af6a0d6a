from __future__ import annotations
from enum import StrEnum, auto


class FailureKind(StrEnum):
    """
    Categories of failures raised by this package.
    """
    INVALID_ARGUMENT = auto()
    MISSING_ARGUMENT = auto()
    TYPE_MISMATCH = auto()
    MALFORMED_MATERIAL = auto()
    NATIVE_OPERATION_FAILED = auto()
    WARNING = auto()


def arg_ix_text(arg_ix: int | str | None) -> str:
    """
    Build the argument position text to be appended to error messages.

    :param arg_ix: the 1-based position of the argument, if known
    :return: the text *" (argument #<arg_ix>)"*, or an empty string if *arg_ix* was not given
    """
    return "" if arg_ix in [None, ""] else f" (argument #{arg_ix})"


class CryptoToolboxError(Exception):
    """
    Base exception for all failures raised by this package.

    These are the instance attributes:
        - kind: FailureKind          - the failure category
        - op_name: str               - the name of the failing operation (if known)
        - arg_ix: int                - the position of the offending argument (if known)
        - diagnostics: list[str]     - the diagnostic lines reported by the crypto engine
    """
    kind: FailureKind = FailureKind.INVALID_ARGUMENT

    def __init__(self,
                 msg: str,
                 op_name: str = None,
                 arg_ix: int = None,
                 diagnostics: list[str] = None) -> None:
        super().__init__(msg)
        self.op_name: str | None = op_name
        self.arg_ix: int | None = arg_ix
        self.diagnostics: list[str] = list(diagnostics or [])


class InvalidArgumentError(CryptoToolboxError, ValueError):
    """A scalar argument has an unacceptable value."""
    kind = FailureKind.INVALID_ARGUMENT


class MissingArgumentError(CryptoToolboxError, ValueError):
    """A mandatory argument is absent or empty."""
    kind = FailureKind.MISSING_ARGUMENT


class TypeMismatchError(CryptoToolboxError, TypeError):
    """An argument is a resource of the wrong kind, or not a resource at all."""
    kind = FailureKind.TYPE_MISMATCH


class MalformedMaterialError(CryptoToolboxError, ValueError):
    """Textual key/certificate material does not have the expected structure."""
    kind = FailureKind.MALFORMED_MATERIAL


class InvalidPemFormatError(MalformedMaterialError):
    """Text is not a well-formed PEM envelope of a registered type."""


class NativeOperationFailedError(CryptoToolboxError, RuntimeError):
    """The crypto engine reported failure, or raised an error, while performing a primitive."""
    kind = FailureKind.NATIVE_OPERATION_FAILED


class EngineSignal(Exception):
    """
    A warning emitted by the crypto engine while a guarded primitive was running.

    Signals are never raised by the call guard. They are either logged and swallowed,
    or folded into the diagnostics of a *NativeOperationFailedError*.
    """
    kind: FailureKind = FailureKind.WARNING

    def __init__(self,
                 severity: str,
                 msg: str,
                 filename: str = None,
                 lineno: int = 0) -> None:
        super().__init__(msg)
        self.severity: str = severity
        self.msg: str = msg
        self.filename: str = filename or "unknown"
        self.lineno: int = lineno or 0

    def __str__(self) -> str:
        return f"{self.severity}, {self.msg}, {self.filename}:{self.lineno}"
