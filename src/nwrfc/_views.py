# SPDX-FileCopyrightText: 2013 SAP SE Srdjan Boskovic <srdjan.boskovic@sap.com>
#
# SPDX-License-Identifier: Apache-2.0

"""Structure and table views over the data containers of a function call.

Views never keep a raw container handle. Each access resolves the handle
again through the owning function call, which also checks that the call
is still usable, so a view of a freed call or of a closed connection
raises :class:`InvalidStateError` instead of touching released memory.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional

from ._convert import from_rfc, to_rfc
from ._exception import ConversionErrorKind, FieldError, FieldErrorKind, conversion_error
from ._types import FunctionParameter, RfcType, TypeDescription


class StructureView:
    """Named fields of one structure instance or one table row."""

    def __init__(
        self,
        owner: Any,
        parameter: FunctionParameter,
        type_description: TypeDescription,
        resolve: Callable[[], Any],
    ) -> None:
        self._owner = owner
        self._parameter = parameter
        self._type = type_description
        self._resolve = resolve

    @property
    def type_description(self) -> TypeDescription:
        return self._type

    def get(self, name: str) -> Any:
        field = self._type.field(name)
        # nested structures and tables are only navigated here, their
        # fields are checked when accessed
        write = None if field.rfc_type in (RfcType.STRUCTURE, RfcType.TABLE) else False
        with self._owner._access(self._parameter, write=write, field=name):
            return from_rfc(
                self._owner._binding, self._resolve(), field, self._owner._options, self._child
            )

    def set(self, name: str, value: Any) -> None:
        with self._owner._access(self._parameter, write=True, field=name):
            field = self._type.field(name)
            to_rfc(
                self._owner._binding,
                self._resolve(),
                field,
                value,
                self._owner._options,
                self._child,
            )

    def update(self, values: Mapping[str, Any]) -> None:
        """Set several fields at once.

        Unknown field names are rejected before anything is written. A value
        rejected after other fields were written fails the function call.
        """
        for name in values:
            self._type.field(name)
        with self._owner._access(self._parameter, write=True):
            for name, value in values.items():
                self.set(name, value)

    def keys(self) -> List[str]:
        return [field.name for field in self._type]

    def to_dict(self) -> Dict[str, Any]:
        return {name: plain(self.get(name)) for name in self.keys()}

    def _child(self, field):
        binding = self._owner._binding
        parent = self._resolve
        if field.rfc_type is RfcType.STRUCTURE:
            return StructureView(
                self._owner,
                self._parameter,
                field.type_description,
                lambda: binding.get_structure(parent(), field.name),
            )
        return TableView(
            self._owner,
            self._parameter,
            field.type_description,
            lambda: binding.get_table(parent(), field.name),
        )

    def __getitem__(self, name: str) -> Any:
        return self.get(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def __contains__(self, name: object) -> bool:
        return name in self._type

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __len__(self) -> int:
        return len(self._type)

    def __repr__(self) -> str:
        return "<StructureView {} of {}>".format(self._type.name, self._parameter.name)


class TableView:
    """Rows of an internal table, in append order."""

    def __init__(
        self,
        owner: Any,
        parameter: FunctionParameter,
        type_description: TypeDescription,
        resolve: Callable[[], Any],
    ) -> None:
        self._owner = owner
        self._parameter = parameter
        self._type = type_description
        self._resolve = resolve

    @property
    def type_description(self) -> TypeDescription:
        return self._type

    def row_count(self) -> int:
        with self._owner._access(self._parameter, write=None):
            return self._owner._binding.row_count(self._resolve())

    def append_row(self, values: Optional[Mapping[str, Any]] = None) -> StructureView:
        """Append an empty row, fill it from ``values`` and return its view."""
        with self._owner._access(self._parameter, write=True):
            row = self._row_view(self._append())
            if values:
                row.update(values)
        return row

    def _append(self) -> int:
        binding = self._owner._binding
        with self._owner._access(self._parameter, write=True):
            table = self._resolve()
            binding.append_row(table)
            return binding.row_count(table) - 1

    def extend(self, rows: Iterable[Mapping[str, Any]]) -> None:
        rows = list(rows)
        for values in rows:
            if not isinstance(values, Mapping):
                raise conversion_error(
                    ConversionErrorKind.TYPE_MISMATCH,
                    self._parameter.name,
                    "Table rows must be mappings, got {}".format(type(values).__name__),
                )
        for values in rows:
            self.append_row(values)

    def clear(self) -> None:
        with self._owner._access(self._parameter, write=True):
            self._owner._binding.delete_all_rows(self._resolve())

    def row(self, index: int) -> StructureView:
        count = self.row_count()
        if not 0 <= index < count:
            raise FieldError(
                "Row {} out of range, table {} has {} rows".format(
                    index, self._parameter.name, count
                ),
                kind=FieldErrorKind.INDEX_OUT_OF_BOUNDS,
                field=self._parameter.name,
            )
        return self._row_view(index)

    def to_list(self) -> List[Dict[str, Any]]:
        return [row.to_dict() for row in self]

    def _row_view(self, index: int) -> StructureView:
        binding = self._owner._binding
        resolve = self._resolve

        def current_row():
            table = resolve()
            binding.move_to(table, index)
            return binding.current_row(table)

        return StructureView(self._owner, self._parameter, self._type, current_row)

    def __getitem__(self, index: int) -> StructureView:
        return self.row(index)

    def __iter__(self) -> Iterator[StructureView]:
        for index in range(self.row_count()):
            yield self._row_view(index)

    def __len__(self) -> int:
        return self.row_count()

    def __repr__(self) -> str:
        return "<TableView {} of {}>".format(self._type.name, self._parameter.name)


def plain(value: Any) -> Any:
    """Copy views into dicts and lists, leave other values untouched."""
    if isinstance(value, StructureView):
        return value.to_dict()
    if isinstance(value, TableView):
        return value.to_list()
    return value
