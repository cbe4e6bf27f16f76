# SPDX-FileCopyrightText: 2013 SAP SE Srdjan Boskovic <srdjan.boskovic@sap.com>
#
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Optional


class ReturnCode(IntEnum):
    """Return codes of the SAP NetWeaver RFC library (RFC_RC)."""

    RFC_OK = 0
    RFC_COMMUNICATION_FAILURE = 1
    RFC_LOGON_FAILURE = 2
    RFC_ABAP_RUNTIME_FAILURE = 3
    RFC_ABAP_MESSAGE = 4
    RFC_ABAP_EXCEPTION = 5
    RFC_CLOSED = 6
    RFC_CANCELED = 7
    RFC_TIMEOUT = 8
    RFC_MEMORY_INSUFFICIENT = 9
    RFC_VERSION_MISMATCH = 10
    RFC_INVALID_PROTOCOL = 11
    RFC_SERIALIZATION_FAILURE = 12
    RFC_INVALID_HANDLE = 13
    RFC_RETRY = 14
    RFC_EXTERNAL_FAILURE = 15
    RFC_EXECUTED = 16
    RFC_NOT_FOUND = 17
    RFC_NOT_SUPPORTED = 18
    RFC_ILLEGAL_STATE = 19
    RFC_INVALID_PARAMETER = 20
    RFC_CODEPAGE_CONVERSION_FAILURE = 21
    RFC_CONVERSION_FAILURE = 22
    RFC_BUFFER_TOO_SMALL = 23
    RFC_TABLE_MOVE_BOF = 24
    RFC_TABLE_MOVE_EOF = 25
    RFC_START_SAPGUI_FAILURE = 26
    RFC_ABAP_CLASS_EXCEPTION = 27
    RFC_UNKNOWN_ERROR = 28
    RFC_AUTHORIZATION_FAILURE = 29
    RFC_AUTHENTICATION_FAILURE = 30
    RFC_CRYPTOLIB_FAILURE = 31
    RFC_IO_FAILURE = 32
    RFC_LOCKING_FAILURE = 33


class ErrorGroup(IntEnum):
    """Error groups of the SAP NetWeaver RFC library (RFC_ERROR_GROUP)."""

    OK = 0
    ABAP_APPLICATION_FAILURE = 1
    ABAP_RUNTIME_FAILURE = 2
    LOGON_FAILURE = 3
    COMMUNICATION_FAILURE = 4
    EXTERNAL_RUNTIME_FAILURE = 5
    EXTERNAL_APPLICATION_FAILURE = 6
    EXTERNAL_AUTHORIZATION_FAILURE = 7
    EXTERNAL_AUTHENTICATION_FAILURE = 8
    CRYPTOLIB_FAILURE = 9
    LOCKING_FAILURE = 10


class ConnectionErrorKind(Enum):
    INVALID_PARAMETERS = "InvalidParameters"
    NETWORK_FAILURE = "NetworkFailure"
    AUTHENTICATION_FAILURE = "AuthenticationFailure"
    LOGON_FAILURE = "LogonFailure"


class LookupErrorKind(Enum):
    FUNCTION_NOT_FOUND = "FunctionNotFound"
    COMMUNICATION_FAILURE = "CommunicationFailure"


class InvokeErrorKind(Enum):
    ABAP_EXCEPTION = "AbapException"
    SYSTEM_FAILURE = "SystemFailure"
    COMMUNICATION_FAILURE = "CommunicationFailure"


class ConversionErrorKind(Enum):
    OVERFLOW = "Overflow"
    PRECISION_LOSS = "PrecisionLoss"
    TRUNCATION = "Truncation"
    INVALID_FORMAT = "InvalidFormat"
    TYPE_MISMATCH = "TypeMismatch"


class FieldErrorKind(Enum):
    FIELD_NOT_FOUND = "FieldNotFound"
    INDEX_OUT_OF_BOUNDS = "IndexOutOfBounds"


class ParameterErrorKind(Enum):
    UNKNOWN_PARAMETER = "UnknownParameter"
    WRONG_DIRECTION_FOR_READ = "WrongDirectionForRead"
    WRONG_DIRECTION_FOR_WRITE = "WrongDirectionForWrite"


class RFCError(Exception):
    """Exception base class

    Indicates that there was an error in the Python connector.
    """


class InvalidStateError(RFCError):
    """Invalid state error

    Raised when an operation is not allowed in the current state of a
    connection or function call, e.g. invoking a function call twice or
    using a function call after its connection was closed.
    """


class ParameterError(RFCError):
    """Function parameter error

    Raised for unknown parameter names and for reads or writes against the
    parameter's direction.
    """

    def __init__(self, kind: ParameterErrorKind, message: str, parameter: str = ""):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.parameter = parameter


class RFCLibError(RFCError):
    """RFC library error

    Base class for exceptions carrying the error record of the underlying
    SAP NetWeaver RFC library.
    """

    code2txt = {rc.value: rc.name for rc in ReturnCode}

    def __init__(
        self,
        message: str = "",
        code: int = ReturnCode.RFC_OK,
        key: str = "",
        group: int = ErrorGroup.OK,
        msg_class: str = "",
        msg_type: str = "",
        msg_number: str = "",
        msg_v1: str = "",
        msg_v2: str = "",
        msg_v3: str = "",
        msg_v4: str = "",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.key = key
        self.group = group
        self.msg_class = msg_class
        self.msg_type = msg_type
        self.msg_number = msg_number
        self.msg_v1 = msg_v1
        self.msg_v2 = msg_v2
        self.msg_v3 = msg_v3
        self.msg_v4 = msg_v4

    @classmethod
    def from_error(cls, error: RFCLibError, **kwargs) -> RFCLibError:
        """Build an instance of ``cls`` carrying the record of ``error``."""
        return cls(
            message=error.message,
            code=error.code,
            key=error.key,
            group=error.group,
            msg_class=error.msg_class,
            msg_type=error.msg_type,
            msg_number=error.msg_number,
            msg_v1=error.msg_v1,
            msg_v2=error.msg_v2,
            msg_v3=error.msg_v3,
            msg_v4=error.msg_v4,
            **kwargs,
        )

    def __str__(self) -> str:
        if not self.code:
            return self.message
        text = "{} (rc={}): key={}, message={}".format(
            self.code2txt.get(self.code, "RFC_UNKNOWN_ERROR"),
            int(self.code),
            self.key,
            self.message,
        )
        if self.msg_class or self.msg_number:
            text += " [MSG: class={}, type={}, number={}, v1-4:={}; {}; {}; {}]".format(
                self.msg_class,
                self.msg_type,
                self.msg_number,
                self.msg_v1,
                self.msg_v2,
                self.msg_v3,
                self.msg_v4,
            )
        return text


class RFCConnectionError(RFCLibError):
    """Connection error

    Raised when a connection to the SAP system cannot be opened. ``kind``
    tells invalid parameters, network, authentication and logon failures
    apart.
    """

    def __init__(self, message="", kind=ConnectionErrorKind.INVALID_PARAMETERS, **record):
        super().__init__(message, **record)
        self.kind = kind


class LogonError(RFCConnectionError):
    """Logon error

    This exception is raised if opening a connection returns an RC code
    greater than 0 and the error object has an RFC_ERROR_GROUP value of
    LOGON_FAILURE.
    """

    def __init__(self, message="", kind=ConnectionErrorKind.LOGON_FAILURE, **record):
        super().__init__(message, kind=kind, **record)


class FunctionLookupError(RFCLibError):
    """Function lookup error

    Raised when the description of a function module or structure type
    cannot be retrieved from the SAP system.
    """

    def __init__(self, message="", kind=LookupErrorKind.COMMUNICATION_FAILURE, **record):
        super().__init__(message, **record)
        self.kind = kind


class InvokeError(RFCLibError):
    """Function invocation error

    Raised when invoking a function module fails.
    """

    def __init__(self, message="", kind=InvokeErrorKind.SYSTEM_FAILURE, **record):
        super().__init__(message, **record)
        self.kind = kind


class ABAPApplicationError(InvokeError):
    """ABAP application error

    This exception is raised if a RFC call returns an RC code greater than 0
    and the error object has an RFC_ERROR_GROUP value of
    ABAP_APPLICATION_FAILURE. ``key`` and ``message`` are the ABAP exception
    key and text, unchanged.
    """

    def __init__(self, message="", kind=InvokeErrorKind.ABAP_EXCEPTION, **record):
        super().__init__(message, kind=kind, **record)


class ABAPRuntimeError(InvokeError):
    """ABAP runtime error

    This exception is raised if a RFC call fails on the system side with
    anything other than an ABAP exception or a communication problem, e.g. a
    short dump or a missing mandatory parameter.
    """

    def __init__(self, message="", kind=InvokeErrorKind.SYSTEM_FAILURE, **record):
        super().__init__(message, kind=kind, **record)


class CommunicationError(InvokeError):
    """Communication error

    This exception is raised if a RFC call returns an RC code greater than 0
    and the error object has an RFC_ERROR_GROUP value of
    COMMUNICATION_FAILURE.
    """

    def __init__(self, message="", kind=InvokeErrorKind.COMMUNICATION_FAILURE, **record):
        super().__init__(message, kind=kind, **record)


class ConversionError(RFCLibError):
    """Type conversion error

    Raised when a value cannot be converted to or from its RFC field type
    without loss.
    """

    def __init__(self, message="", kind=ConversionErrorKind.TYPE_MISMATCH, field="", **record):
        super().__init__(message, **record)
        self.kind = kind
        self.field = field


class FieldError(RFCLibError):
    """Field access error

    Raised for unknown structure fields and out-of-range table rows.
    """

    def __init__(self, message="", kind=FieldErrorKind.FIELD_NOT_FOUND, field="", **record):
        super().__init__(message, **record)
        self.kind = kind
        self.field = field


_NETWORK_CODES = (
    ReturnCode.RFC_COMMUNICATION_FAILURE,
    ReturnCode.RFC_CLOSED,
    ReturnCode.RFC_TIMEOUT,
)


def connection_error(error: RFCLibError) -> RFCConnectionError:
    """Map an error raised while opening a connection."""
    if error.code == ReturnCode.RFC_AUTHENTICATION_FAILURE or (
        error.group == ErrorGroup.EXTERNAL_AUTHENTICATION_FAILURE
    ):
        return RFCConnectionError.from_error(
            error, kind=ConnectionErrorKind.AUTHENTICATION_FAILURE
        )
    if error.code == ReturnCode.RFC_LOGON_FAILURE or error.group == ErrorGroup.LOGON_FAILURE:
        return LogonError.from_error(error)
    if error.code in _NETWORK_CODES or error.group == ErrorGroup.COMMUNICATION_FAILURE:
        return RFCConnectionError.from_error(error, kind=ConnectionErrorKind.NETWORK_FAILURE)
    return RFCConnectionError.from_error(error, kind=ConnectionErrorKind.INVALID_PARAMETERS)


def lookup_error(error: RFCLibError) -> FunctionLookupError:
    """Map an error raised while looking up function or type metadata."""
    if error.code == ReturnCode.RFC_NOT_FOUND or error.key in ("FU_NOT_FOUND", "NOT_FOUND"):
        return FunctionLookupError.from_error(error, kind=LookupErrorKind.FUNCTION_NOT_FOUND)
    return FunctionLookupError.from_error(error, kind=LookupErrorKind.COMMUNICATION_FAILURE)


def invoke_error(error: RFCLibError) -> InvokeError:
    """Map an error raised by invoking a function module or pinging."""
    if error.group == ErrorGroup.ABAP_APPLICATION_FAILURE:
        return ABAPApplicationError.from_error(error)
    if error.code in _NETWORK_CODES or error.group == ErrorGroup.COMMUNICATION_FAILURE:
        return CommunicationError.from_error(error)
    return ABAPRuntimeError.from_error(error)


def field_error(error: RFCLibError, field: str) -> RFCLibError:
    """Map an error raised while reading or writing a field of a container."""
    if error.code in (ReturnCode.RFC_NOT_FOUND, ReturnCode.RFC_INVALID_PARAMETER):
        return FieldError.from_error(error, kind=FieldErrorKind.FIELD_NOT_FOUND, field=field)
    if error.code in (
        ReturnCode.RFC_CONVERSION_FAILURE,
        ReturnCode.RFC_CODEPAGE_CONVERSION_FAILURE,
    ):
        return ConversionError.from_error(
            error, kind=ConversionErrorKind.TYPE_MISMATCH, field=field
        )
    if error.code == ReturnCode.RFC_BUFFER_TOO_SMALL:
        return ConversionError.from_error(error, kind=ConversionErrorKind.TRUNCATION, field=field)
    return error


def conversion_error(
    kind: ConversionErrorKind, field: str, message: str, value: Optional[object] = None
) -> ConversionError:
    if value is not None:
        message = "{} (field '{}', value {!r})".format(message, field, value)
    else:
        message = "{} (field '{}')".format(message, field)
    return ConversionError(message, kind=kind, field=field)
