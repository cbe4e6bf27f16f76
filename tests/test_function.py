# SPDX-FileCopyrightText: 2013 SAP SE Srdjan Boskovic <srdjan.boskovic@sap.com>
#
# SPDX-License-Identifier: Apache-2.0

import pytest
from conftest import LOGON, sdk_error

from nwrfc import (
    ABAPApplicationError,
    ABAPRuntimeError,
    CallState,
    CommunicationError,
    Connection,
    ConversionError,
    ConversionErrorKind,
    ErrorGroup,
    FieldError,
    InvalidStateError,
    InvokeError,
    InvokeErrorKind,
    ParameterError,
    ParameterErrorKind,
    ParameterState,
    ReturnCode,
    ScalarParameter,
)


def test_stfc_connection(connection):
    with connection.call("STFC_CONNECTION") as call:
        assert call.state is CallState.CREATED
        call["REQUTEXT"] = "Hello SAP!"
        assert call.state is CallState.PARAMETERS_BOUND
        call.invoke()
        assert call.state is CallState.INVOKED
        assert call["ECHOTEXT"] == "Hello SAP!"
        assert call["RESPTEXT"].startswith("SAP R/3 Rel.")
        assert call.state is CallState.RESULTS_READ


def test_unicode_echo(connection):
    with connection.call("STFC_CONNECTION") as call:
        call["REQUTEXT"] = "Hällo SAP! ∑ 你好"
        call.invoke()
        assert call["ECHOTEXT"] == "Hällo SAP! ∑ 你好"


def test_parameter_state(connection):
    with connection.call("STFC_CONNECTION") as call:
        assert call.parameter_state("REQUTEXT") is ParameterState.UNSET
        call.set("REQUTEXT", "x")
        assert call.parameter_state("REQUTEXT") is ParameterState.SET
        call.invoke()
        assert call.parameter_state("ECHOTEXT") is ParameterState.UNSET
        call.get("ECHOTEXT")
        assert call.parameter_state("ECHOTEXT") is ParameterState.READ
        with pytest.raises(ParameterError):
            call.parameter_state("NOPE")


def test_scalar_parameter(connection):
    with connection.call("STFC_CONNECTION") as call:
        requtext = call.parameter("REQUTEXT")
        assert isinstance(requtext, ScalarParameter)
        assert requtext.name == "REQUTEXT"
        requtext.set("via accessor")
        call.invoke()
        assert call.parameter("ECHOTEXT").get() == "via accessor"
        with pytest.raises(ParameterError) as excinfo:
            requtext.get()
        assert excinfo.value.kind is ParameterErrorKind.WRONG_DIRECTION_FOR_READ


def test_unknown_parameter(connection):
    with connection.call("STFC_CONNECTION") as call:
        accesses = (lambda: call["NOPE"], lambda: call.set("NOPE", 1), lambda: call.parameter("NOPE"))
        for access in accesses:
            with pytest.raises(ParameterError) as excinfo:
                access()
            assert excinfo.value.kind is ParameterErrorKind.UNKNOWN_PARAMETER
            assert excinfo.value.parameter == "NOPE"
        assert call.state is CallState.CREATED


def test_direction_checks(connection):
    with connection.call("STFC_CONNECTION") as call:
        with pytest.raises(ParameterError) as excinfo:
            call["ECHOTEXT"] = "x"
        assert excinfo.value.kind is ParameterErrorKind.WRONG_DIRECTION_FOR_WRITE
        with pytest.raises(ParameterError) as excinfo:
            call["REQUTEXT"]
        assert excinfo.value.kind is ParameterErrorKind.WRONG_DIRECTION_FOR_READ
        with pytest.raises(InvalidStateError):
            call["ECHOTEXT"]
        assert call.state is CallState.CREATED


def test_no_write_after_invoke(connection):
    with connection.call("STFC_CONNECTION") as call:
        call.invoke()
        with pytest.raises(InvalidStateError):
            call["REQUTEXT"] = "late"


def test_invoke_once(connection):
    with connection.call("STFC_CONNECTION") as call:
        call.invoke()
        with pytest.raises(InvalidStateError):
            call.invoke()
        assert call.state is CallState.INVOKED


def test_conversion_error_keeps_call_usable(connection):
    with connection.call("STFC_CONNECTION") as call:
        with pytest.raises(ConversionError) as excinfo:
            call["REQUTEXT"] = "x" * 256
        assert excinfo.value.kind is ConversionErrorKind.TRUNCATION
        assert excinfo.value.field == "REQUTEXT"
        assert call.state is CallState.CREATED
        assert call.parameter_state("REQUTEXT") is ParameterState.UNSET
        call["REQUTEXT"] = "x" * 255
        call.invoke()
        assert call["ECHOTEXT"] == "x" * 255


def test_structure_rejected_half_way_fails_call(connection):
    with connection.call("STFC_STRUCTURE") as call:
        with pytest.raises(ConversionError) as excinfo:
            call["IMPORTSTRUCT"] = {"RFCINT4": 7, "RFCCHAR1": "too long"}
        assert excinfo.value.kind is ConversionErrorKind.TRUNCATION
        assert call.state is CallState.FAILED
        with pytest.raises(InvalidStateError):
            call.invoke()


def test_structure_rejected_before_writing_keeps_call_usable(connection):
    with connection.call("STFC_STRUCTURE") as call:
        with pytest.raises(ConversionError):
            call["IMPORTSTRUCT"] = {"RFCCHAR1": "too long", "RFCINT4": 7}
        with pytest.raises(FieldError):
            call["IMPORTSTRUCT"] = {"RFCINT4": 7, "MISSING": 1}
        assert call.state is CallState.CREATED
        assert call.parameter_state("IMPORTSTRUCT") is ParameterState.UNSET
        call["IMPORTSTRUCT"] = {"RFCINT4": 8}
        call.invoke()
        assert call["ECHOSTRUCT"]["RFCINT4"] == 8


def test_table_rejected_half_way_fails_call(connection):
    with connection.call("STFC_STRUCTURE") as call:
        with pytest.raises(ConversionError):
            call["RFCTABLE"] = [{"RFCINT4": 1}, 2]
        assert call.state is CallState.CREATED
        with pytest.raises(ConversionError):
            call["RFCTABLE"] = [{"RFCINT4": 2}, {"RFCCHAR1": "xx"}]
        assert call.state is CallState.FAILED
        with pytest.raises(InvalidStateError):
            call.invoke()
    with connection.call("STFC_STRUCTURE") as call:
        with pytest.raises(ConversionError):
            call.parameter("RFCTABLE").append_row({"RFCCHAR1": "xx"})
        assert call.state is CallState.FAILED


def test_truncate_config(binding):
    with Connection(config={"truncate": True}, binding=binding, **LOGON) as conn:
        with conn.call("STFC_CONNECTION") as call:
            call["REQUTEXT"] = "x" * 300
            call.invoke()
            assert call["ECHOTEXT"] == "x" * 255


def test_sdk_conversion_failure_fails_call(connection, binding):
    with connection.call("STFC_CONNECTION") as call:
        binding.field_failure = sdk_error(
            ReturnCode.RFC_CONVERSION_FAILURE,
            ErrorGroup.EXTERNAL_RUNTIME_FAILURE,
            "Cannot convert value",
        )
        with pytest.raises(ConversionError) as excinfo:
            call["REQUTEXT"] = "x"
        assert excinfo.value.kind is ConversionErrorKind.TYPE_MISMATCH
        assert excinfo.value.code == ReturnCode.RFC_CONVERSION_FAILURE
        assert isinstance(excinfo.value.__cause__, type(binding.field_failure))
        assert call.state is CallState.FAILED
        binding.field_failure = None
        with pytest.raises(InvalidStateError):
            call["REQUTEXT"] = "x"
        with pytest.raises(InvalidStateError):
            call.invoke()


def test_abap_exception(connection):
    with connection.call("Z_RAISE_EXCEPTION") as call:
        call["IV_METHOD"] = "DENY"
        with pytest.raises(ABAPApplicationError) as excinfo:
            call.invoke()
        error = excinfo.value
        assert isinstance(error, InvokeError)
        assert error.kind is InvokeErrorKind.ABAP_EXCEPTION
        assert error.key == "NOT_AUTHORIZED"
        assert error.message == "NOT_AUTHORIZED"
        assert error.group == ErrorGroup.ABAP_APPLICATION_FAILURE
        assert call.state is CallState.FAILED
        with pytest.raises(InvalidStateError):
            call.invoke()


def test_missing_mandatory_import(connection):
    with connection.call("Z_MANDATORY_IMPORT") as call:
        with pytest.raises(ABAPRuntimeError) as excinfo:
            call.invoke()
        assert excinfo.value.kind is InvokeErrorKind.SYSTEM_FAILURE
        assert excinfo.value.key == "CALL_FUNCTION_PARM_MISSING"
    with connection.call("Z_MANDATORY_IMPORT") as call:
        call["IV_VALUE"] = 21
        call.invoke()
        assert call["EV_VALUE"] == 42


def test_communication_failure(connection, binding):
    with connection.call("STFC_CONNECTION") as call:
        binding.sessions[-1].broken = True
        with pytest.raises(CommunicationError) as excinfo:
            call.invoke()
        assert excinfo.value.kind is InvokeErrorKind.COMMUNICATION_FAILURE
        assert call.state is CallState.FAILED


def test_set_active(connection):
    with connection.call("Z_MANDATORY_IMPORT") as call:
        call.set_active("IV_NOTE", False)
        assert call._handle.inactive == {"IV_NOTE"}
        call.set_active("IV_NOTE")
        assert call._handle.inactive == set()
        call["IV_VALUE"] = 1
        call.invoke()
        with pytest.raises(InvalidStateError):
            call.set_active("IV_NOTE", False)


def test_free(connection, binding):
    call = connection.call("STFC_CONNECTION")
    handle = call._handle
    call.free()
    call.free()
    assert binding.destroyed == [handle]
    with pytest.raises(InvalidStateError):
        call["REQUTEXT"] = "x"
    with pytest.raises(InvalidStateError):
        call.invoke()


def test_context_manager_frees(connection, binding):
    with connection.call("STFC_CONNECTION") as call:
        handle = call._handle
    assert binding.destroyed == [handle]


def test_call_invalid_after_close(connection, binding):
    call = connection.call("STFC_CONNECTION")
    call["REQUTEXT"] = "x"
    handle = call._handle
    connection.close()
    assert binding.destroyed == [handle]
    with pytest.raises(InvalidStateError):
        call.invoke()
    with pytest.raises(InvalidStateError):
        call["REQUTEXT"] = "y"


def test_call_invalid_after_reopen(connection):
    call = connection.call("STFC_CONNECTION")
    connection.reopen()
    assert connection.is_open()
    with pytest.raises(InvalidStateError):
        call.invoke()
    with connection.call("STFC_CONNECTION") as fresh:
        fresh.invoke()


def test_calls_are_independent(connection):
    first = connection.call("STFC_CONNECTION")
    second = connection.call("STFC_CONNECTION")
    first["REQUTEXT"] = "one"
    second["REQUTEXT"] = "two"
    first.invoke()
    second.invoke()
    assert first["ECHOTEXT"] == "one"
    assert second["ECHOTEXT"] == "two"
    assert first.description is second.description
    first.free()
    second.free()


def test_results(connection):
    with connection.call("STFC_CONNECTION") as call:
        call["REQUTEXT"] = "abc"
        call.invoke()
        results = call.results()
    assert set(results) == {"ECHOTEXT", "RESPTEXT"}
    assert results["ECHOTEXT"] == "abc"


def test_execute(connection, binding):
    result = connection.execute("STFC_STRUCTURE", IMPORTSTRUCT={"RFCINT4": 7, "RFCCHAR4": "ABC"})
    assert result["ECHOSTRUCT"]["RFCINT4"] == 7
    assert result["ECHOSTRUCT"]["RFCCHAR4"] == "ABC"
    assert [row["RFCINT4"] for row in result["RFCTABLE"]] == [7]
    assert result["RESPTEXT"].startswith("SAP R/3")
    assert "IMPORTSTRUCT" not in result
    assert len(binding.destroyed) == 1


def test_execute_unknown_parameter(connection, binding):
    with pytest.raises(ParameterError):
        connection.execute("STFC_CONNECTION", NOPE="x")
    assert len(binding.destroyed) == 1
