# SPDX-FileCopyrightText: 2013 SAP SE Srdjan Boskovic <srdjan.boskovic@sap.com>
#
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
import weakref
from typing import Any, Dict, Mapping, Optional

from . import _environment
from ._binding import Binding
from ._convert import ConversionOptions
from ._exception import (
    InvalidStateError,
    RFCError,
    RFCLibError,
    connection_error,
    invoke_error,
    lookup_error,
)
from ._function import FunctionCall
from ._registry import DescriptionRegistry
from ._types import FunctionDescription, TypeDescription

logger = logging.getLogger(__name__)

ConnectionParameters = Mapping[str, Any]

_CONFIG_DEFAULTS = {"rstrip": True, "dtime": True, "truncate": False}

_SECRET_PARAMS = ("PASSWD", "MYSAPSSO2", "X509CERT")


class Connection:
    """A connection to an SAP system.

    The connection is opened on construction. Connection parameters are
    passed as keyword arguments and handed to the RFC library with upper-case
    names, e.g. ``Connection(ashost="10.0.0.1", sysnr="00", client="100",
    user="me", passwd="secret")``.

    :param config: conversion options, any of

        - ``rstrip`` (default True): strip trailing blanks of CHAR values
        - ``dtime`` (default True): read DATE and TIME as ``datetime``
          objects instead of ``YYYYMMDD`` / ``HHMMSS`` strings
        - ``truncate`` (default False): truncate CHAR values longer than the
          field instead of raising ``ConversionError``

    :param binding: RFC library binding, the ctypes binding of the SAP NW RFC
        SDK by default.

    :raises RFCConnectionError: the connection could not be opened.
    """

    def __init__(
        self,
        config: Optional[Mapping[str, Any]] = None,
        binding: Optional[Binding] = None,
        **params: Any,
    ) -> None:
        self._handle: Any = None
        self._binding: Optional[Binding] = None
        self._environment = False
        self._generation = 0
        options = dict(_CONFIG_DEFAULTS)
        for key, value in (config or {}).items():
            if key not in options:
                raise RFCError("Connection configuration option '{}' is not supported".format(key))
            options[key] = bool(value)
        self._options = options
        self._conversion_options = ConversionOptions(**options)
        self._params = {key.upper(): str(value) for key, value in params.items()}
        if binding is None:
            from ._nwrfclib import default_binding

            binding = default_binding()
        self._binding = binding
        self._registry = DescriptionRegistry(binding)
        self._calls: "weakref.WeakSet[FunctionCall]" = weakref.WeakSet()
        self.open()

    @property
    def options(self) -> Mapping[str, Any]:
        return dict(self._options)

    @property
    def params(self) -> Mapping[str, str]:
        """Connection parameters with credentials masked."""
        return {
            key: "********" if key in _SECRET_PARAMS else value
            for key, value in self._params.items()
        }

    @property
    def version(self) -> Mapping[str, int]:
        major, minor, patch = self._binding.version()
        return {"major": major, "minor": minor, "patchLevel": patch}

    def __enter__(self) -> Connection:
        return self

    def __exit__(self, type, value, traceback) -> None:
        self.close()

    def __del__(self) -> None:
        if getattr(self, "_binding", None) is None:
            return
        try:
            self.close()
        except RFCLibError as ex:
            logger.debug("Closing connection failed: %s", ex)

    def __repr__(self) -> str:
        state = "open" if self.is_open() else "closed"
        return "<Connection {} {}>".format(self._destination(), state)

    def _destination(self) -> str:
        params = self._params
        host = params.get("ASHOST") or params.get("MSHOST") or params.get("DEST", "?")
        return "{}/{}".format(host, params.get("CLIENT", ""))

    def _check_open(self) -> None:
        if self._handle is None:
            raise InvalidStateError("Connection to {} is closed".format(self._destination()))

    def is_open(self) -> bool:
        return self._handle is not None

    def open(self) -> None:
        """Open the connection, if it is not open yet."""
        if self._handle is not None:
            return
        if not self._environment:
            _environment.acquire(self._binding)
            self._environment = True
        try:
            handle = self._binding.connect(self._params)
        except RFCLibError as ex:
            self._environment = False
            _environment.release(self._binding)
            error = connection_error(ex)
            logger.debug("Connection to %s failed: %s", self._destination(), error)
            raise error from ex
        self._handle = handle
        logger.debug("Connection to %s opened", self._destination())

    def reopen(self) -> None:
        """Close and open the connection, keeping the RFC library environment up."""
        _environment.acquire(self._binding)
        try:
            self.close()
            self.open()
        finally:
            _environment.release(self._binding)

    def close(self) -> None:
        """Close the connection.

        Function calls created over this connection are freed and become
        unusable. Closing a closed connection does nothing.
        """
        handle, self._handle = self._handle, None
        try:
            if handle is not None:
                self._generation += 1
                free_error = None
                for call in list(self._calls):
                    try:
                        call.free()
                    except RFCLibError as ex:
                        logger.debug("Releasing function call %s failed: %s", call.name, ex)
                        if free_error is None:
                            free_error = ex
                self._registry.clear()
                self._binding.disconnect(handle)
                logger.debug("Connection to %s closed", self._destination())
                if free_error is not None:
                    raise free_error
        finally:
            if self._environment:
                self._environment = False
                _environment.release(self._binding)

    def ping(self) -> None:
        self._check_open()
        try:
            self._binding.ping(self._handle)
        except RFCLibError as ex:
            raise invoke_error(ex) from ex

    def get_connection_attributes(self) -> Dict[str, str]:
        self._check_open()
        return {
            key: value
            for key, value in self._binding.connection_attributes(self._handle).items()
            if value
        }

    def get_function_description(self, func_name: str) -> FunctionDescription:
        """Description of function module ``func_name``, cached for the session."""
        self._check_open()
        return self._registry.get_or_fetch(self._handle, func_name)

    lookup_function = get_function_description

    def type_desc_get(self, type_name: str) -> TypeDescription:
        self._check_open()
        return self._registry.get_type(self._handle, type_name)

    def func_desc_remove(self, func_name: str) -> bool:
        return self._registry.remove_function(func_name)

    def type_desc_remove(self, type_name: str) -> bool:
        return self._registry.remove_type(type_name)

    def call(self, func_name: str) -> FunctionCall:
        """Create a new, unbound :class:`FunctionCall` of ``func_name``."""
        description = self.get_function_description(func_name)
        try:
            handle = self._binding.function_call_create(description.handle)
        except RFCLibError as ex:
            raise lookup_error(ex) from ex
        function_call = FunctionCall(self, description, handle)
        self._calls.add(function_call)
        return function_call

    def execute(self, func_name: str, **params: Any) -> Dict[str, Any]:
        """Call ``func_name`` with ``params`` and return all its results.

        Structures are returned as dicts and tables as lists of dicts.
        """
        with self.call(func_name) as function_call:
            function_call.update(**params)
            function_call.invoke()
            return function_call.results()
