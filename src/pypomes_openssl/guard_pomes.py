from __future__ import annotations
import logging
import sys
import threading
import warnings
from collections import deque
from collections.abc import Callable
from cryptography.exceptions import InternalError
from logging import Logger
from pypomes_core import exc_format
from types import TracebackType
from typing import Any, Final

from .crypto_errors import CryptoToolboxError, EngineSignal, NativeOperationFailedError

# the diagnostic queue, drained on each guarded call
_ENGINE_ERRORS: Final[deque[str]] = deque()
_ENGINE_ERRORS_LOCK: Final[threading.Lock] = threading.Lock()

# serializes guarded calls, as the warnings machinery and the diagnostic queue are process-wide
_GUARD_LOCK: Final[threading.RLock] = threading.RLock()

# receives the swallowed warnings of guarded calls made without a logger
_GUARD_LOGGER: Final[Logger] = logging.getLogger(__name__)


def engine_errors_clear() -> None:
    """
    Discard all pending diagnostic lines.
    """
    with _ENGINE_ERRORS_LOCK:
        _ENGINE_ERRORS.clear()


def engine_errors_push(*lines: str) -> None:
    """
    Append diagnostic lines to the diagnostic queue.

    :param lines: the diagnostic lines
    """
    with _ENGINE_ERRORS_LOCK:
        _ENGINE_ERRORS.extend(line for line in lines if line)


def engine_errors_get() -> list[str]:
    """
    Drain the diagnostic queue.

    :return: the pending diagnostic lines, in the order they were reported
    """
    with _ENGINE_ERRORS_LOCK:
        result: list[str] = list(_ENGINE_ERRORS)
        _ENGINE_ERRORS.clear()
    return result


def _exc_diagnostics(exc: Exception) -> list[str]:
    # the engine's own error stack comes first, when available
    result: list[str] = []
    if isinstance(exc, InternalError):
        for err_code in exc.err_code or []:
            reason: bytes | str = getattr(err_code, "reason_text", b"")
            result.append(reason.decode(errors="replace") if isinstance(reason, bytes) else str(reason))
    result.append(exc_format(exc=exc,
                             exc_info=sys.exc_info()))
    return result


def _is_success(result: Any) -> bool:
    return result is not None and result is not False


class NativeCallGuard:
    """
    Context manager bracketing the invocation of a crypto engine primitive.

    On entry, the guard serializes itself against other guarded calls, clears the diagnostic queue,
    and installs an interceptor that records the engine's warnings as *EngineSignal* instances.
    On exit, by any path, the warning filters and the previous *warnings.showwarning*
    are restored. Exceptions are never suppressed.

    These are the instance attributes:
        - op_name: str                  - the name of the guarded operation
        - signals: list[EngineSignal]   - the signals intercepted during the call
    """
    def __init__(self,
                 op_name: str,
                 logger: Logger = None) -> None:
        self.op_name: str = op_name
        self.logger: Logger | None = logger
        self.signals: list[EngineSignal] = []
        self.__catcher: warnings.catch_warnings | None = None

    def __enter__(self) -> NativeCallGuard:
        _GUARD_LOCK.acquire()
        try:
            engine_errors_clear()
            self.signals = []
            self.__catcher = warnings.catch_warnings()
            self.__catcher.__enter__()
            warnings.simplefilter(action="always")
            warnings.showwarning = self.__intercept
        except BaseException:
            _GUARD_LOCK.release()
            raise
        if self.logger:
            self.logger.debug(msg=f"Invoking {self.op_name}")
        return self

    def __exit__(self,
                 exc_type: type[BaseException] | None,
                 exc_val: BaseException | None,
                 exc_tb: TracebackType | None) -> bool:
        try:
            self.__catcher.__exit__(exc_type, exc_val, exc_tb)
        finally:
            self.__catcher = None
            _GUARD_LOCK.release()
        return False

    # noinspection PyUnusedLocal
    def __intercept(self,
                    message: Warning | str,
                    category: type[Warning],
                    filename: str,
                    lineno: int,
                    file: Any = None,
                    line: str = None) -> None:
        self.signals.append(EngineSignal(severity=category.__name__,
                                         msg=str(message),
                                         filename=filename,
                                         lineno=lineno))

    def assess(self,
               success: bool) -> None:
        """
        Classify the intercepted signals, given the outcome of the primitive.

        On success, each signal is logged as a warning and swallowed (to this module's logger,
        if the guard has none). Otherwise, the signals are pushed to the diagnostic queue,
        ahead of the engine's own diagnostics.

        :param success: whether the primitive's outcome satisfied its success predicate
        """
        for signal in self.signals:
            if success:
                (self.logger or _GUARD_LOGGER).warning(msg=f"OpenSSL {self.op_name} {signal}")
            else:
                engine_errors_push(str(signal))

    def fail(self,
             exc: Exception = None) -> NativeOperationFailedError:
        """
        Build the failure of the guarded primitive, draining the diagnostic queue into it.

        :param exc: the exception raised by the primitive, if any
        :return: the failure, to be raised by the caller
        """
        if exc is not None:
            engine_errors_push(*_exc_diagnostics(exc=exc))
        diagnostics: list[str] = engine_errors_get()
        msg: str = f"OpenSSL {self.op_name} failed"
        if diagnostics:
            msg += ": " + "; ".join(diagnostics)
        if self.logger:
            self.logger.error(msg=msg)

        return NativeOperationFailedError(msg,
                                          op_name=self.op_name,
                                          diagnostics=diagnostics)


def guarded_call(op_name: str,
                 func: Callable[..., Any],
                 *args: Any,
                 success: Callable[[Any], bool] = None,
                 logger: Logger = None,
                 **kwargs: Any) -> Any:
    """
    Invoke the crypto engine primitive *func*, converting its failures into *NativeOperationFailedError*.

    These are the steps carried out:
      1. the diagnostic queue is cleared
      2. a warning interceptor is installed
      3. *func* is invoked with *args* and *kwargs*
      4. intercepted warnings are logged if the outcome is successful, and otherwise become diagnostics
      5. the previous warning handling is restored, whatever the outcome
      6. if *func* raised, or its result fails *success*, the failure is raised with all diagnostics

    The default success predicate rejects the results *None* and *False*.
    Errors raised by this package from within *func* propagate unchanged.

    :param op_name: the name of the operation, for reporting
    :param func: the primitive to invoke
    :param args: the positional arguments to *func*
    :param success: optional predicate applied to the result of *func*
    :param logger: optional logger
    :param kwargs: the keyword arguments to *func*
    :return: the result of *func*
    :raises NativeOperationFailedError: the primitive failed
    """
    # initialize the return variable
    result: Any = None

    if success is None:
        success = _is_success

    with NativeCallGuard(op_name=op_name,
                         logger=logger) as guard:
        try:
            result = func(*args, **kwargs)
        except CryptoToolboxError:
            raise
        except Exception as e:
            guard.assess(success=False)
            raise guard.fail(exc=e) from e

        succeeded: bool = success(result)
        guard.assess(success=succeeded)
        if not succeeded:
            raise guard.fail()

    if logger:
        logger.debug(msg=f"Invoked {op_name}")

    return result
