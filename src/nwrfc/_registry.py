# SPDX-FileCopyrightText: 2013 SAP SE Srdjan Boskovic <srdjan.boskovic@sap.com>
#
# SPDX-License-Identifier: Apache-2.0

"""Per-connection cache of function and type descriptions."""

from __future__ import annotations

import logging
from typing import Any, Dict

from ._binding import Binding
from ._exception import RFCLibError, lookup_error
from ._types import FunctionDescription, RfcType, TypeDescription

logger = logging.getLogger(__name__)

_COMPLEX = (RfcType.STRUCTURE, RfcType.TABLE)


class DescriptionRegistry:
    """Descriptions fetched over one connection, keyed by name.

    Each :class:`Connection` owns its own registry and clears it on close,
    descriptions are never shared between connections.
    """

    def __init__(self, binding: Binding) -> None:
        self._binding = binding
        self._functions: Dict[str, FunctionDescription] = {}
        self._types: Dict[str, TypeDescription] = {}

    def get_or_fetch(self, handle: Any, name: str) -> FunctionDescription:
        description = self._functions.get(name)
        if description is not None:
            return description
        logger.debug("Fetching function description %s", name)
        try:
            func_desc = self._binding.function_lookup(handle, name)
            description = self._build_function(name, func_desc)
        except RFCLibError as ex:
            raise lookup_error(ex) from ex
        self._functions[name] = description
        return description

    def get_type(self, handle: Any, name: str) -> TypeDescription:
        type_description = self._types.get(name)
        if type_description is not None:
            return type_description
        logger.debug("Fetching type description %s", name)
        try:
            return self._build_type(self._binding.type_lookup(handle, name))
        except RFCLibError as ex:
            raise lookup_error(ex) from ex

    def _build_function(self, name: str, func_desc: Any) -> FunctionDescription:
        binding = self._binding
        description = FunctionDescription(name, func_desc)
        for index in range(binding.parameter_count(func_desc)):
            info = binding.parameter_desc(func_desc, index)
            type_description = None
            if info.type in _COMPLEX:
                type_description = self._build_type(info.type_handle)
            description.add_parameter(
                info.name,
                info.type,
                info.direction,
                info.nuc_length,
                info.uc_length,
                info.decimals,
                info.default_value,
                info.parameter_text,
                info.optional,
                type_description,
            )
        for index in range(binding.exception_count(func_desc)):
            info = binding.exception_desc(func_desc, index)
            description.add_exception(info.key, info.message)
        return description.freeze()

    def _build_type(self, type_desc: Any) -> TypeDescription:
        binding = self._binding
        name = binding.type_name(type_desc)
        cached = self._types.get(name)
        if cached is not None:
            return cached
        nuc_length, uc_length = binding.type_length(type_desc)
        type_description = TypeDescription(name, nuc_length, uc_length)
        for index in range(binding.field_count(type_desc)):
            info = binding.field_desc(type_desc, index)
            nested = self._build_type(info.type_handle) if info.type in _COMPLEX else None
            type_description.add_field(
                info.name,
                info.type,
                info.nuc_length,
                info.uc_length,
                info.nuc_offset,
                info.uc_offset,
                info.decimals,
                nested,
            )
        self._types[name] = type_description.freeze()
        return type_description

    def remove_function(self, name: str) -> bool:
        return self._functions.pop(name, None) is not None

    def remove_type(self, name: str) -> bool:
        return self._types.pop(name, None) is not None

    def clear(self) -> None:
        self._functions.clear()
        self._types.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._functions

    def __len__(self) -> int:
        return len(self._functions)
