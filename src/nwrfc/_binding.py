# SPDX-FileCopyrightText: 2013 SAP SE Srdjan Boskovic <srdjan.boskovic@sap.com>
#
# SPDX-License-Identifier: Apache-2.0

"""Capability set of the SAP NetWeaver RFC library.

Every call either returns its result or raises :class:`RFCLibError` built
from the library's error record. Handles are opaque to the rest of the
package; a "container" is any handle with named fields: a function call,
a structure or the current row of a table.
"""

from __future__ import annotations

from typing import Any, Mapping, NamedTuple, Tuple


class ParameterInfo(NamedTuple):
    """One entry of a function description (RFC_PARAMETER_DESC)."""

    name: str
    type: int
    direction: int
    nuc_length: int
    uc_length: int
    decimals: int
    type_handle: Any
    default_value: str = ""
    parameter_text: str = ""
    optional: bool = False


class FieldInfo(NamedTuple):
    """One entry of a type description (RFC_FIELD_DESC)."""

    name: str
    type: int
    nuc_length: int
    nuc_offset: int
    uc_length: int
    uc_offset: int
    decimals: int
    type_handle: Any


class ExceptionInfo(NamedTuple):
    """One ABAP exception of a function description (RFC_EXCEPTION_DESC)."""

    key: str
    message: str


class Binding:
    """Interface to the RFC library consumed by :class:`nwrfc.Connection`."""

    def initialize(self) -> None:
        """Process-wide set up, called before the first connection is opened."""

    def shutdown(self) -> None:
        """Process-wide tear down, called after the last connection is closed."""

    def version(self) -> Tuple[int, int, int]:
        raise NotImplementedError

    # connection

    def connect(self, params: Mapping[str, str]) -> Any:
        raise NotImplementedError

    def disconnect(self, handle: Any) -> None:
        raise NotImplementedError

    def ping(self, handle: Any) -> None:
        raise NotImplementedError

    def connection_attributes(self, handle: Any) -> Mapping[str, str]:
        raise NotImplementedError

    # metadata

    def function_lookup(self, handle: Any, name: str) -> Any:
        raise NotImplementedError

    def type_lookup(self, handle: Any, name: str) -> Any:
        raise NotImplementedError

    def parameter_count(self, func_desc: Any) -> int:
        raise NotImplementedError

    def parameter_desc(self, func_desc: Any, index: int) -> ParameterInfo:
        raise NotImplementedError

    def exception_count(self, func_desc: Any) -> int:
        raise NotImplementedError

    def exception_desc(self, func_desc: Any, index: int) -> ExceptionInfo:
        raise NotImplementedError

    def type_name(self, type_desc: Any) -> str:
        raise NotImplementedError

    def type_length(self, type_desc: Any) -> Tuple[int, int]:
        raise NotImplementedError

    def field_count(self, type_desc: Any) -> int:
        raise NotImplementedError

    def field_desc(self, type_desc: Any, index: int) -> FieldInfo:
        raise NotImplementedError

    # function calls

    def function_call_create(self, func_desc: Any) -> Any:
        raise NotImplementedError

    def function_call_destroy(self, call: Any) -> None:
        raise NotImplementedError

    def set_parameter_active(self, call: Any, name: str, active: bool) -> None:
        raise NotImplementedError

    def invoke(self, handle: Any, call: Any) -> None:
        raise NotImplementedError

    # field access

    def get_chars(self, container: Any, name: str, length: int) -> str:
        raise NotImplementedError

    def set_chars(self, container: Any, name: str, value: str) -> None:
        raise NotImplementedError

    def get_num(self, container: Any, name: str, length: int) -> str:
        raise NotImplementedError

    def set_num(self, container: Any, name: str, value: str) -> None:
        raise NotImplementedError

    def get_date(self, container: Any, name: str) -> str:
        raise NotImplementedError

    def set_date(self, container: Any, name: str, value: str) -> None:
        raise NotImplementedError

    def get_time(self, container: Any, name: str) -> str:
        raise NotImplementedError

    def set_time(self, container: Any, name: str, value: str) -> None:
        raise NotImplementedError

    def get_string(self, container: Any, name: str) -> str:
        raise NotImplementedError

    def set_string(self, container: Any, name: str, value: str) -> None:
        raise NotImplementedError

    def get_int(self, container: Any, name: str) -> int:
        raise NotImplementedError

    def set_int(self, container: Any, name: str, value: int) -> None:
        raise NotImplementedError

    def get_int8(self, container: Any, name: str) -> int:
        raise NotImplementedError

    def set_int8(self, container: Any, name: str, value: int) -> None:
        raise NotImplementedError

    def get_float(self, container: Any, name: str) -> float:
        raise NotImplementedError

    def set_float(self, container: Any, name: str, value: float) -> None:
        raise NotImplementedError

    def get_bytes(self, container: Any, name: str, length: int) -> bytes:
        raise NotImplementedError

    def set_bytes(self, container: Any, name: str, value: bytes) -> None:
        raise NotImplementedError

    def get_xstring(self, container: Any, name: str) -> bytes:
        raise NotImplementedError

    def set_xstring(self, container: Any, name: str, value: bytes) -> None:
        raise NotImplementedError

    def get_structure(self, container: Any, name: str) -> Any:
        raise NotImplementedError

    def get_table(self, container: Any, name: str) -> Any:
        raise NotImplementedError

    # tables

    def row_count(self, table: Any) -> int:
        raise NotImplementedError

    def append_row(self, table: Any) -> Any:
        raise NotImplementedError

    def delete_all_rows(self, table: Any) -> None:
        raise NotImplementedError

    def move_to(self, table: Any, index: int) -> None:
        raise NotImplementedError

    def current_row(self, table: Any) -> Any:
        raise NotImplementedError
