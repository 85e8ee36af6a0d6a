"""Unit tests: guarded invocation of engine primitives, warning interception, diagnostics."""

import logging
import threading
import warnings

import pytest

from pypomes_openssl import (
    FailureKind, MissingArgumentError, NativeCallGuard, NativeOperationFailedError,
    engine_errors_clear, engine_errors_get, engine_errors_push, guarded_call
)


def _noisy(result):
    warnings.warn("engine is noisy", UserWarning)
    return result


def _broken():
    raise ValueError("boom")


def test_diagnostic_queue_drains_in_order():
    engine_errors_clear()
    engine_errors_push("first", "", "second")
    engine_errors_push("third")
    assert engine_errors_get() == ["first", "second", "third"]
    assert engine_errors_get() == []


def test_guarded_call_returns_result():
    assert guarded_call("op", lambda x, y=0: x + y, 40, y=2) == 42


def test_warning_swallowed_and_logged_on_success(caplog, logger):
    """A warning from a successful primitive is logged, never raised."""
    with caplog.at_level(logging.WARNING, logger=logger.name):
        assert guarded_call("noisy_op", _noisy, "done", logger=logger) == "done"
    assert "OpenSSL noisy_op UserWarning, engine is noisy" in caplog.text
    assert engine_errors_get() == []


def test_warning_logged_without_logger(caplog):
    """Without a logger, swallowed warnings go to the guard module's own logger."""
    with caplog.at_level(logging.WARNING, logger="pypomes_openssl.guard_pomes"):
        assert guarded_call("quiet_op", _noisy, "done") == "done"
    assert "OpenSSL quiet_op UserWarning, engine is noisy" in caplog.text
    assert caplog.records[-1].name == "pypomes_openssl.guard_pomes"


def test_warning_escalated_on_failure(caplog, logger):
    """When the result fails the predicate, warnings become diagnostics of the failure."""
    with caplog.at_level(logging.ERROR, logger=logger.name):
        with pytest.raises(NativeOperationFailedError, match="OpenSSL fragile_op failed") as exc_info:
            guarded_call("fragile_op", _noisy, False, logger=logger)
    error = exc_info.value
    assert error.kind == FailureKind.NATIVE_OPERATION_FAILED
    assert error.op_name == "fragile_op"
    assert error.diagnostics[0].startswith("UserWarning, engine is noisy, ")
    assert "OpenSSL fragile_op failed" in caplog.text


def test_none_result_is_failure():
    with pytest.raises(NativeOperationFailedError) as exc_info:
        guarded_call("null_op", lambda: None)
    assert exc_info.value.diagnostics == []
    assert str(exc_info.value) == "OpenSSL null_op failed"


def test_custom_success_predicate():
    assert guarded_call("zero_op", lambda: 0, success=lambda r: r == 0) == 0
    with pytest.raises(NativeOperationFailedError):
        guarded_call("count_op", lambda: 0, success=lambda r: r > 0)


def test_exception_becomes_native_failure():
    """The original exception is chained, and formatted into the diagnostics."""
    with pytest.raises(NativeOperationFailedError) as exc_info:
        guarded_call("broken_op", _broken)
    error = exc_info.value
    assert isinstance(error.__cause__, ValueError)
    assert error.diagnostics


def test_stale_diagnostics_are_discarded():
    engine_errors_push("stale")
    with pytest.raises(NativeOperationFailedError) as exc_info:
        guarded_call("fresh_op", _noisy, None)
    assert "stale" not in exc_info.value.diagnostics
    assert len(exc_info.value.diagnostics) == 1


def test_toolbox_errors_propagate_unchanged():
    def _validating():
        raise MissingArgumentError("key is required (argument #1)", arg_ix=1)

    with pytest.raises(MissingArgumentError) as exc_info:
        guarded_call("validating_op", _validating)
    assert not isinstance(exc_info.value, NativeOperationFailedError)


def test_warning_state_restored_on_every_path():
    """Filters and showwarning are restored whether the primitive succeeds or raises."""
    show_before = warnings.showwarning
    filters_before = list(warnings.filters)

    guarded_call("noisy_op", _noisy, 1)
    assert warnings.showwarning is show_before
    assert warnings.filters == filters_before

    with pytest.raises(NativeOperationFailedError):
        guarded_call("broken_op", _broken)
    assert warnings.showwarning is show_before
    assert warnings.filters == filters_before

    with pytest.raises(KeyError):
        with NativeCallGuard(op_name="raw_op"):
            raise KeyError("raw")
    assert warnings.showwarning is show_before
    assert warnings.filters == filters_before


def test_guard_records_signals():
    with NativeCallGuard(op_name="signal_op") as guard:
        warnings.warn("first", UserWarning)
        warnings.warn("first", UserWarning)
        warnings.warn("second", DeprecationWarning)
    assert [signal.severity for signal in guard.signals] == ["UserWarning", "UserWarning", "DeprecationWarning"]
    assert guard.signals[2].msg == "second"
    assert str(guard.signals[0]).startswith("UserWarning, first, ")


def test_guard_lock_released_after_failure():
    """Another thread may run a guarded call once a failing call has returned."""
    with pytest.raises(NativeOperationFailedError):
        guarded_call("broken_op", _broken)

    results = []
    worker = threading.Thread(target=lambda: results.append(guarded_call("thread_op", lambda: "ok")))
    worker.start()
    worker.join(timeout=10)
    assert results == ["ok"]
