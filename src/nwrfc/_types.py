# SPDX-FileCopyrightText: 2013 SAP SE Srdjan Boskovic <srdjan.boskovic@sap.com>
#
# SPDX-License-Identifier: Apache-2.0

"""Function and type metadata as returned by the RFC library."""

from __future__ import annotations

from enum import IntEnum
from typing import Dict, Iterator, NamedTuple, Optional, Sequence, Tuple

from ._exception import (
    FieldError,
    FieldErrorKind,
    ParameterError,
    ParameterErrorKind,
    RFCError,
)


class RfcType(IntEnum):
    """ABAP data types (RFCTYPE) understood by the RFC library."""

    CHAR = 0
    DATE = 1
    BCD = 2
    TIME = 3
    BYTE = 4
    TABLE = 5
    NUM = 6
    FLOAT = 7
    INT = 8
    INT2 = 9
    INT1 = 10
    NULL = 14
    ABAPOBJECT = 16
    STRUCTURE = 17
    DECF16 = 23
    DECF34 = 24
    XMLDATA = 28
    STRING = 29
    XSTRING = 30
    INT8 = 31
    UTCLONG = 32
    UTCSECOND = 33
    UTCMINUTE = 34
    DTDAY = 35
    DTWEEK = 36
    DTMONTH = 37
    TSECOND = 38
    TMINUTE = 39
    CDAY = 40
    BOX = 41
    GENERIC_BOX = 42

    def __str__(self) -> str:
        return "RFCTYPE_" + self.name


class Direction(IntEnum):
    """Direction of a function module parameter (RFC_DIRECTION)."""

    IMPORT = 0x01
    EXPORT = 0x02
    CHANGING = 0x03
    TABLES = 0x07

    def __str__(self) -> str:
        return "RFC_" + self.name

    @property
    def writable(self) -> bool:
        return self is not Direction.EXPORT

    @property
    def readable(self) -> bool:
        return self is not Direction.IMPORT


class TypeField(NamedTuple):
    name: str
    field_type: RfcType
    nuc_length: int
    uc_length: int
    nuc_offset: int = 0
    uc_offset: int = 0
    decimals: int = 0
    type_description: Optional["TypeDescription"] = None

    @property
    def rfc_type(self) -> RfcType:
        return self.field_type


class TypeDescription:
    """Layout of an ABAP structure, also the row type of a table.

    Fields are kept in definition order and indexed by name, so resolving a
    field name is a single dictionary lookup. The registry shares one
    instance between all descriptions using the type and freezes it first.
    """

    def __init__(self, name: str, nuc_length: int = 0, uc_length: int = 0) -> None:
        self.name = name
        self.nuc_length = nuc_length
        self.uc_length = uc_length
        self._fields: Dict[str, TypeField] = {}
        self._frozen = False

    def add_field(
        self,
        name: str,
        field_type: RfcType,
        nuc_length: int,
        uc_length: int,
        nuc_offset: int = 0,
        uc_offset: int = 0,
        decimals: int = 0,
        type_description: Optional[TypeDescription] = None,
    ) -> None:
        if self._frozen:
            raise RFCError("Type description '{}' is read-only".format(self.name))
        if name in self._fields:
            raise RFCError("Field '{}' already defined in type '{}'".format(name, self.name))
        if field_type in (RfcType.STRUCTURE, RfcType.TABLE) and type_description is None:
            raise RFCError(
                "Field '{}' of type {} requires a type description".format(name, field_type)
            )
        self._fields[name] = TypeField(
            name,
            RfcType(field_type),
            nuc_length,
            uc_length,
            nuc_offset,
            uc_offset,
            decimals,
            type_description,
        )

    def freeze(self) -> TypeDescription:
        self._frozen = True
        return self

    @property
    def fields(self) -> Sequence[TypeField]:
        return tuple(self._fields.values())

    def field(self, name: str) -> TypeField:
        try:
            return self._fields[name]
        except KeyError:
            raise FieldError(
                "Field '{}' not found in type '{}'".format(name, self.name),
                kind=FieldErrorKind.FIELD_NOT_FOUND,
                field=name,
            ) from None

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __iter__(self) -> Iterator[TypeField]:
        return iter(self._fields.values())

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return "<TypeDescription '{}' fields={}>".format(self.name, list(self._fields))


class FunctionParameter(NamedTuple):
    name: str
    parameter_type: RfcType
    direction: Direction
    nuc_length: int
    uc_length: int
    decimals: int = 0
    default_value: str = ""
    parameter_text: str = ""
    optional: bool = False
    type_description: Optional[TypeDescription] = None

    @property
    def rfc_type(self) -> RfcType:
        return self.parameter_type


class ExceptionDescription(NamedTuple):
    """An ABAP exception a function module declares (RFC_EXCEPTION_DESC)."""

    key: str
    message: str = ""


class FunctionDescription:
    """Parameter list of a function module.

    Built once per lookup and then shared read-only by every function call
    created from it; ``freeze`` is called by the registry before the
    description is handed out.
    """

    def __init__(self, name: str, handle: object = None) -> None:
        self.name = name
        self.handle = handle
        self._parameters: Dict[str, FunctionParameter] = {}
        self._exceptions: Dict[str, ExceptionDescription] = {}
        self._frozen = False

    def add_parameter(
        self,
        name: str,
        parameter_type: RfcType,
        direction: Direction,
        nuc_length: int,
        uc_length: int,
        decimals: int = 0,
        default_value: str = "",
        parameter_text: str = "",
        optional: bool = False,
        type_description: Optional[TypeDescription] = None,
    ) -> None:
        if self._frozen:
            raise RFCError("Function description '{}' is read-only".format(self.name))
        if name in self._parameters:
            raise RFCError("Parameter '{}' already defined in '{}'".format(name, self.name))
        self._parameters[name] = FunctionParameter(
            name,
            RfcType(parameter_type),
            Direction(direction),
            nuc_length,
            uc_length,
            decimals,
            default_value,
            parameter_text,
            bool(optional),
            type_description,
        )

    def add_exception(self, key: str, message: str = "") -> None:
        if self._frozen:
            raise RFCError("Function description '{}' is read-only".format(self.name))
        if key in self._exceptions:
            raise RFCError("Exception '{}' already defined in '{}'".format(key, self.name))
        self._exceptions[key] = ExceptionDescription(key, message)

    def freeze(self) -> FunctionDescription:
        self._frozen = True
        return self

    @property
    def parameters(self) -> Sequence[FunctionParameter]:
        return tuple(self._parameters.values())

    @property
    def exceptions(self) -> Sequence[ExceptionDescription]:
        return tuple(self._exceptions.values())

    def exception(self, key: str) -> Optional[ExceptionDescription]:
        """The declared exception ``key``, None if the function has no such exception."""
        return self._exceptions.get(key)

    def parameters_by_direction(self, *directions: Direction) -> Tuple[FunctionParameter, ...]:
        return tuple(p for p in self._parameters.values() if p.direction in directions)

    def parameter(self, name: str) -> FunctionParameter:
        try:
            return self._parameters[name]
        except KeyError:
            raise ParameterError(
                ParameterErrorKind.UNKNOWN_PARAMETER,
                "Function '{}' has no parameter '{}'".format(self.name, name),
                name,
            ) from None

    def __contains__(self, name: object) -> bool:
        return name in self._parameters

    def __iter__(self) -> Iterator[FunctionParameter]:
        return iter(self._parameters.values())

    def __len__(self) -> int:
        return len(self._parameters)

    def __repr__(self) -> str:
        return "<FunctionDescription '{}' parameters={}>".format(
            self.name, list(self._parameters)
        )
