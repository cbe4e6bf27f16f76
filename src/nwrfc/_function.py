# SPDX-FileCopyrightText: 2013 SAP SE Srdjan Boskovic <srdjan.boskovic@sap.com>
#
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
from contextlib import contextmanager
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional, Union

from ._convert import from_rfc, to_rfc
from ._exception import (
    ConversionError,
    FieldError,
    InvalidStateError,
    ParameterError,
    ParameterErrorKind,
    RFCLibError,
    field_error,
    invoke_error,
)
from ._types import Direction, FunctionDescription, FunctionParameter, RfcType
from ._views import StructureView, TableView, plain

if TYPE_CHECKING:
    from ._connection import Connection

logger = logging.getLogger(__name__)


class CallState(Enum):
    CREATED = "Created"
    PARAMETERS_BOUND = "ParametersBound"
    INVOKED = "Invoked"
    RESULTS_READ = "ResultsRead"
    FAILED = "Failed"


class ParameterState(Enum):
    UNSET = "unset"
    SET = "set"
    READ = "read"


_AFTER_INVOKE = (CallState.INVOKED, CallState.RESULTS_READ)


class ScalarParameter:
    """Accessor for a parameter of an elementary type."""

    def __init__(self, call: FunctionCall, parameter: FunctionParameter) -> None:
        self._call = call
        self.parameter = parameter

    @property
    def name(self) -> str:
        return self.parameter.name

    def get(self) -> Any:
        return self._call.get(self.parameter.name)

    def set(self, value: Any) -> None:
        self._call.set(self.parameter.name, value)

    def __repr__(self) -> str:
        return "<ScalarParameter {} {}>".format(self.parameter.name, self.parameter.parameter_type)


class FunctionCall:
    """One invocation of a function module.

    Parameters are written into the call container as soon as they are set;
    :meth:`invoke` only sends the container. Import, changing and tables
    parameters can be written until the call is invoked, export, changing
    and tables parameters read afterwards. A call is invoked at most once,
    and a call whose invocation or marshaling failed rejects every further
    access, create a new one to retry.

    The call container is released by :meth:`free`, by leaving a ``with``
    block, or when the owning connection is closed.
    """

    def __init__(self, connection: Connection, description: FunctionDescription, handle: Any):
        self._connection = connection
        self._binding = connection._binding
        self._options = connection._conversion_options
        self._generation = connection._generation
        self._handle = handle
        self._state = CallState.CREATED
        self._writes = 0
        self.description = description
        self._parameter_states: Dict[str, ParameterState] = {
            parameter.name: ParameterState.UNSET for parameter in description
        }

    @property
    def name(self) -> str:
        return self.description.name

    @property
    def state(self) -> CallState:
        return self._state

    def parameter_state(self, name: str) -> ParameterState:
        self.description.parameter(name)
        return self._parameter_states[name]

    def _check_usable(self) -> None:
        if self._state is CallState.FAILED:
            raise InvalidStateError(
                "Function call {} failed, create a new function call".format(self.name)
            )
        if self._handle is None:
            raise InvalidStateError("Function call {} has been freed".format(self.name))
        connection = self._connection
        if connection._generation != self._generation or not connection.is_open():
            raise InvalidStateError(
                "Connection of function call {} has been closed".format(self.name)
            )

    @contextmanager
    def _access(
        self, parameter: FunctionParameter, write: Optional[bool], field: Optional[str] = None
    ) -> Iterator[None]:
        """Guard one access to ``parameter``.

        ``write`` is True for writes, False for reads and None for navigation
        (row counts, row lookup, nested views) which is allowed in either
        direction. A conversion or field error raised after part of a
        multi-field write was done fails the call.
        """
        self._check_usable()
        if write:
            if not parameter.direction.writable:
                raise ParameterError(
                    ParameterErrorKind.WRONG_DIRECTION_FOR_WRITE,
                    "Parameter {} of {} is an export parameter".format(parameter.name, self.name),
                    parameter.name,
                )
            if self._state in _AFTER_INVOKE:
                raise InvalidStateError(
                    "Function call {} has been invoked, parameter {} is read-only".format(
                        self.name, parameter.name
                    )
                )
        elif write is not None:
            if not parameter.direction.readable:
                raise ParameterError(
                    ParameterErrorKind.WRONG_DIRECTION_FOR_READ,
                    "Parameter {} of {} is an import parameter".format(parameter.name, self.name),
                    parameter.name,
                )
            if (
                parameter.direction in (Direction.EXPORT, Direction.CHANGING)
                and self._state not in _AFTER_INVOKE
            ):
                raise InvalidStateError(
                    "Parameter {} of {} is not available before invoke".format(
                        parameter.name, self.name
                    )
                )
        writes = self._writes
        try:
            yield
        except (ConversionError, FieldError):
            # rejected half way through a structure or table
            if self._writes != writes:
                self._state = CallState.FAILED
            raise
        except (ParameterError, InvalidStateError):
            raise
        except RFCLibError as ex:
            self._state = CallState.FAILED
            error = field_error(ex, field or parameter.name)
            if error is ex:
                raise
            raise error from ex
        if write:
            self._writes += 1
            self._parameter_states[parameter.name] = ParameterState.SET
            if self._state is CallState.CREATED:
                self._state = CallState.PARAMETERS_BOUND
        elif write is not None:
            self._parameter_states[parameter.name] = ParameterState.READ
            if self._state is CallState.INVOKED:
                self._state = CallState.RESULTS_READ

    def _view(self, parameter: FunctionParameter) -> Union[StructureView, TableView]:
        binding = self._binding
        if parameter.parameter_type is RfcType.STRUCTURE:
            return StructureView(
                self,
                parameter,
                parameter.type_description,
                lambda: binding.get_structure(self._handle, parameter.name),
            )
        return TableView(
            self,
            parameter,
            parameter.type_description,
            lambda: binding.get_table(self._handle, parameter.name),
        )

    def parameter(self, name: str) -> Union[StructureView, TableView, ScalarParameter]:
        """Accessor for parameter ``name``.

        Structures and tables are returned as views, elementary parameters as
        a :class:`ScalarParameter`. Direction and state are checked on every
        read or write through the accessor.
        """
        parameter = self.description.parameter(name)
        self._check_usable()
        if parameter.parameter_type in (RfcType.STRUCTURE, RfcType.TABLE):
            return self._view(parameter)
        return ScalarParameter(self, parameter)

    def get(self, name: str) -> Any:
        parameter = self.description.parameter(name)
        with self._access(parameter, write=False):
            return from_rfc(
                self._binding, self._handle, parameter, self._options, lambda p: self._view(p)
            )

    def set(self, name: str, value: Any) -> None:
        parameter = self.description.parameter(name)
        with self._access(parameter, write=True):
            to_rfc(
                self._binding,
                self._handle,
                parameter,
                value,
                self._options,
                lambda p: self._view(p),
            )

    def update(self, **params: Any) -> None:
        for name, value in params.items():
            self.set(name, value)

    def set_active(self, name: str, active: bool = True) -> None:
        """Mark an optional parameter active or inactive for the call."""
        parameter = self.description.parameter(name)
        with self._access(parameter, write=None):
            if self._state in _AFTER_INVOKE:
                raise InvalidStateError(
                    "Function call {} has been invoked".format(self.name)
                )
            self._binding.set_parameter_active(self._handle, name, active)

    def invoke(self) -> None:
        self._check_usable()
        if self._state in _AFTER_INVOKE:
            raise InvalidStateError("Function call {} has already been invoked".format(self.name))
        logger.debug("Invoking %s", self.name)
        try:
            self._binding.invoke(self._connection._handle, self._handle)
        except RFCLibError as ex:
            self._state = CallState.FAILED
            error = invoke_error(ex)
            logger.debug("Invoking %s failed: %s", self.name, error)
            raise error from ex
        self._state = CallState.INVOKED

    def results(self) -> Dict[str, Any]:
        """All export, changing and tables parameters as plain Python values."""
        return {
            parameter.name: plain(self.get(parameter.name))
            for parameter in self.description
            if parameter.direction.readable
        }

    def free(self) -> None:
        """Release the call container. Safe to call more than once."""
        handle, self._handle = self._handle, None
        if handle is None:
            return
        self._connection._calls.discard(self)
        self._binding.function_call_destroy(handle)

    def __getitem__(self, name: str) -> Any:
        return self.get(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def __enter__(self) -> FunctionCall:
        return self

    def __exit__(self, type, value, traceback) -> None:
        self.free()

    def __del__(self) -> None:
        if getattr(self, "_handle", None) is None:
            return
        try:
            self.free()
        except RFCLibError as ex:
            logger.debug("Releasing function call %s failed: %s", self.name, ex)

    def __repr__(self) -> str:
        return "<FunctionCall {} {}>".format(self.name, self._state.value)
