# SPDX-FileCopyrightText: 2013 SAP SE Srdjan Boskovic <srdjan.boskovic@sap.com>
#
# SPDX-License-Identifier: Apache-2.0

"""ctypes binding of the SAP NetWeaver RFC SDK shared library.

SAP_UC is UTF-16 on every platform, so all SDK strings are exchanged as
``c_uint16`` arrays instead of ``c_wchar`` (which is 4 bytes wide outside
Windows).
"""

from __future__ import annotations

import ctypes
import ctypes.util
import logging
import os
import sys
import threading
from ctypes import (
    POINTER,
    Structure,
    byref,
    c_double,
    c_int,
    c_int64,
    c_ubyte,
    c_uint,
    c_uint16,
    c_void_p,
)
from typing import Any, Dict, Mapping, Optional, Tuple

from ._binding import Binding, ExceptionInfo, FieldInfo, ParameterInfo
from ._exception import ReturnCode, RFCError, RFCLibError

logger = logging.getLogger(__name__)

SAP_UC = c_uint16


def _uc_array(length: int):
    return SAP_UC * length


class RFC_ERROR_INFO(Structure):
    _fields_ = [
        ("code", c_int),
        ("group", c_int),
        ("key", _uc_array(128)),
        ("message", _uc_array(512)),
        ("abapMsgClass", _uc_array(21)),
        ("abapMsgType", _uc_array(2)),
        ("abapMsgNumber", _uc_array(4)),
        ("abapMsgV1", _uc_array(51)),
        ("abapMsgV2", _uc_array(51)),
        ("abapMsgV3", _uc_array(51)),
        ("abapMsgV4", _uc_array(51)),
    ]


class RFC_CONNECTION_PARAMETER(Structure):
    _fields_ = [("name", POINTER(SAP_UC)), ("value", POINTER(SAP_UC))]


class RFC_PARAMETER_DESC(Structure):
    _fields_ = [
        ("name", _uc_array(31)),
        ("type", c_int),
        ("direction", c_int),
        ("nucLength", c_uint),
        ("ucLength", c_uint),
        ("decimals", c_uint),
        ("typeDescHandle", c_void_p),
        ("defaultValue", _uc_array(31)),
        ("parameterText", _uc_array(80)),
        ("optional", c_ubyte),
        ("extendedDescription", c_void_p),
    ]


class RFC_FIELD_DESC(Structure):
    _fields_ = [
        ("name", _uc_array(31)),
        ("type", c_int),
        ("nucLength", c_uint),
        ("nucOffset", c_uint),
        ("ucLength", c_uint),
        ("ucOffset", c_uint),
        ("decimals", c_uint),
        ("typeDescHandle", c_void_p),
        ("extendedDescription", c_void_p),
    ]


class RFC_EXCEPTION_DESC(Structure):
    _fields_ = [("key", _uc_array(128)), ("message", _uc_array(512))]


class RFC_ATTRIBUTES(Structure):
    _fields_ = [
        ("dest", _uc_array(65)),
        ("host", _uc_array(101)),
        ("partnerHost", _uc_array(101)),
        ("sysNumber", _uc_array(3)),
        ("sysId", _uc_array(9)),
        ("client", _uc_array(4)),
        ("user", _uc_array(13)),
        ("language", _uc_array(3)),
        ("trace", _uc_array(2)),
        ("isoLanguage", _uc_array(3)),
        ("codepage", _uc_array(5)),
        ("partnerCodepage", _uc_array(5)),
        ("rfcRole", _uc_array(2)),
        ("type", _uc_array(2)),
        ("partnerType", _uc_array(2)),
        ("rel", _uc_array(5)),
        ("partnerRel", _uc_array(5)),
        ("kernelRel", _uc_array(5)),
        ("cpicConvId", _uc_array(9)),
        ("progName", _uc_array(129)),
        ("partnerBytesPerChar", _uc_array(2)),
        ("partnerSystemCodepage", _uc_array(5)),
        ("partnerIP", _uc_array(16)),
        ("partnerIPv6", _uc_array(46)),
        ("reserved", _uc_array(17)),
    ]


def to_uc(text: str):
    """Null terminated SAP_UC buffer holding ``text``."""
    encoded = text.encode("utf-16-le")
    buffer = _uc_array(len(encoded) // 2 + 1)()
    ctypes.memmove(buffer, encoded, len(encoded))
    return buffer


def from_uc(buffer, length: Optional[int] = None) -> str:
    """Decode ``length`` characters of a SAP_UC buffer, or up to its terminator."""
    if length is None:
        length = 0
        size = len(buffer)
        while length < size and buffer[length]:
            length += 1
    if not length:
        return ""
    return ctypes.string_at(ctypes.addressof(buffer), length * 2).decode("utf-16-le")


def _from_uc_pointer(address) -> str:
    if not address:
        return ""
    chars = ctypes.cast(address, POINTER(SAP_UC))
    length = 0
    while chars[length]:
        length += 1
    return ctypes.string_at(address, length * 2).decode("utf-16-le")


def check(error_info: RFC_ERROR_INFO) -> None:
    """Raise :class:`RFCLibError` from a filled RFC_ERROR_INFO unless it is RFC_OK."""
    if error_info.code == ReturnCode.RFC_OK:
        return
    raise RFCLibError(
        message=from_uc(error_info.message).rstrip(),
        code=error_info.code,
        key=from_uc(error_info.key).rstrip(),
        group=error_info.group,
        msg_class=from_uc(error_info.abapMsgClass).rstrip(),
        msg_type=from_uc(error_info.abapMsgType).rstrip(),
        msg_number=from_uc(error_info.abapMsgNumber).rstrip(),
        msg_v1=from_uc(error_info.abapMsgV1).rstrip(),
        msg_v2=from_uc(error_info.abapMsgV2).rstrip(),
        msg_v3=from_uc(error_info.abapMsgV3).rstrip(),
        msg_v4=from_uc(error_info.abapMsgV4).rstrip(),
    )


if sys.platform == "win32":
    _LIBRARY_NAME = "sapnwrfc.dll"
    _SEARCH_PATHS = [r"C:\nwrfcsdk\lib", r"C:\Program Files\SAP\nwrfcsdk\lib"]
elif sys.platform == "darwin":
    _LIBRARY_NAME = "libsapnwrfc.dylib"
    _SEARCH_PATHS = ["/usr/local/sap/nwrfcsdk/lib"]
else:
    _LIBRARY_NAME = "libsapnwrfc.so"
    _SEARCH_PATHS = ["/usr/local/sap/nwrfcsdk/lib", "/opt/sap/nwrfcsdk/lib"]


def find_library(sdk_path: Optional[str] = None) -> str:
    """Path of the SDK shared library.

    Looked up in ``sdk_path``, ``$SAPNWRFC_HOME/lib``, the usual install
    directories and finally by the system loader.
    """
    directories = []
    if sdk_path:
        if os.path.isfile(sdk_path):
            return sdk_path
        directories.append(sdk_path)
    if os.environ.get("SAPNWRFC_HOME"):
        directories.append(os.path.join(os.environ["SAPNWRFC_HOME"], "lib"))
    directories.extend(_SEARCH_PATHS)
    for directory in directories:
        candidate = os.path.join(directory, _LIBRARY_NAME)
        if os.path.isfile(candidate):
            return candidate
    found = ctypes.util.find_library("sapnwrfc")
    if found:
        return found
    raise RFCError(
        "SAP NW RFC SDK library {} not found, set SAPNWRFC_HOME to the SDK "
        "root directory".format(_LIBRARY_NAME)
    )


_EI = POINTER(RFC_ERROR_INFO)
_VP = c_void_p
_RC = c_int

_PROTOTYPES = {
    "RfcGetVersion": ([POINTER(c_uint), POINTER(c_uint), POINTER(c_uint)], _VP),
    "RfcOpenConnection": ([POINTER(RFC_CONNECTION_PARAMETER), c_uint, _EI], _VP),
    "RfcCloseConnection": ([_VP, _EI], _RC),
    "RfcPing": ([_VP, _EI], _RC),
    "RfcGetConnectionAttributes": ([_VP, POINTER(RFC_ATTRIBUTES), _EI], _RC),
    "RfcGetFunctionDesc": ([_VP, _VP, _EI], _VP),
    "RfcGetTypeDesc": ([_VP, _VP, _EI], _VP),
    "RfcGetParameterCount": ([_VP, POINTER(c_uint), _EI], _RC),
    "RfcGetParameterDescByIndex": ([_VP, c_uint, POINTER(RFC_PARAMETER_DESC), _EI], _RC),
    "RfcGetExceptionCount": ([_VP, POINTER(c_uint), _EI], _RC),
    "RfcGetExceptionDescByIndex": ([_VP, c_uint, POINTER(RFC_EXCEPTION_DESC), _EI], _RC),
    "RfcGetTypeName": ([_VP, _VP, _EI], _RC),
    "RfcGetTypeLength": ([_VP, POINTER(c_uint), POINTER(c_uint), _EI], _RC),
    "RfcGetFieldCount": ([_VP, POINTER(c_uint), _EI], _RC),
    "RfcGetFieldDescByIndex": ([_VP, c_uint, POINTER(RFC_FIELD_DESC), _EI], _RC),
    "RfcCreateFunction": ([_VP, _EI], _VP),
    "RfcDestroyFunction": ([_VP, _EI], _RC),
    "RfcSetParameterActive": ([_VP, _VP, c_int, _EI], _RC),
    "RfcInvoke": ([_VP, _VP, _EI], _RC),
    "RfcGetChars": ([_VP, _VP, _VP, c_uint, _EI], _RC),
    "RfcSetChars": ([_VP, _VP, _VP, c_uint, _EI], _RC),
    "RfcGetNum": ([_VP, _VP, _VP, c_uint, _EI], _RC),
    "RfcSetNum": ([_VP, _VP, _VP, c_uint, _EI], _RC),
    "RfcGetDate": ([_VP, _VP, _VP, _EI], _RC),
    "RfcSetDate": ([_VP, _VP, _VP, _EI], _RC),
    "RfcGetTime": ([_VP, _VP, _VP, _EI], _RC),
    "RfcSetTime": ([_VP, _VP, _VP, _EI], _RC),
    "RfcGetStringLength": ([_VP, _VP, POINTER(c_uint), _EI], _RC),
    "RfcGetString": ([_VP, _VP, _VP, c_uint, POINTER(c_uint), _EI], _RC),
    "RfcSetString": ([_VP, _VP, _VP, c_uint, _EI], _RC),
    "RfcGetInt": ([_VP, _VP, POINTER(c_int), _EI], _RC),
    "RfcSetInt": ([_VP, _VP, c_int, _EI], _RC),
    "RfcGetInt8": ([_VP, _VP, POINTER(c_int64), _EI], _RC),
    "RfcSetInt8": ([_VP, _VP, c_int64, _EI], _RC),
    "RfcGetFloat": ([_VP, _VP, POINTER(c_double), _EI], _RC),
    "RfcSetFloat": ([_VP, _VP, c_double, _EI], _RC),
    "RfcGetBytes": ([_VP, _VP, _VP, c_uint, _EI], _RC),
    "RfcSetBytes": ([_VP, _VP, _VP, c_uint, _EI], _RC),
    "RfcGetXString": ([_VP, _VP, _VP, c_uint, POINTER(c_uint), _EI], _RC),
    "RfcSetXString": ([_VP, _VP, _VP, c_uint, _EI], _RC),
    "RfcGetStructure": ([_VP, _VP, POINTER(_VP), _EI], _RC),
    "RfcGetTable": ([_VP, _VP, POINTER(_VP), _EI], _RC),
    "RfcGetRowCount": ([_VP, POINTER(c_uint), _EI], _RC),
    "RfcAppendNewRow": ([_VP, _EI], _VP),
    "RfcDeleteAllRows": ([_VP, _EI], _RC),
    "RfcMoveTo": ([_VP, c_uint, _EI], _RC),
    "RfcGetCurrentRow": ([_VP, _EI], _VP),
}


def load_library(path: str):
    if sys.platform == "win32":
        library = ctypes.WinDLL(path)
    else:
        library = ctypes.CDLL(path)
    for name, (argtypes, restype) in _PROTOTYPES.items():
        function = getattr(library, name)
        function.argtypes = argtypes
        function.restype = restype
    logger.info("SAP NW RFC SDK loaded from %s", path)
    return library


class NWRFCLibrary(Binding):
    """:class:`Binding` calling the SAP NW RFC SDK through ctypes.

    The shared library is loaded by :meth:`initialize`, i.e. when the first
    connection using this binding is opened.
    """

    def __init__(self, sdk_path: Optional[str] = None) -> None:
        self._sdk_path = sdk_path
        self._library = None

    def __repr__(self) -> str:
        return "<NWRFCLibrary {}>".format("loaded" if self._library else "not loaded")

    def initialize(self) -> None:
        if self._library is None:
            self._library = load_library(find_library(self._sdk_path))

    def shutdown(self) -> None:
        self._library = None

    @property
    def _sdk(self):
        if self._library is None:
            raise RFCError("SAP NW RFC SDK library is not loaded")
        return self._library

    def _call(self, function: str, *args) -> Any:
        error_info = RFC_ERROR_INFO()
        result = getattr(self._sdk, function)(*args, byref(error_info))
        check(error_info)
        return result

    def _call_handle(self, function: str, *args) -> Any:
        handle = self._call(function, *args)
        if not handle:
            raise RFCLibError(
                "{} returned no handle".format(function), code=ReturnCode.RFC_UNKNOWN_ERROR
            )
        return handle

    def version(self) -> Tuple[int, int, int]:
        major, minor, patch = c_uint(), c_uint(), c_uint()
        self._sdk.RfcGetVersion(byref(major), byref(minor), byref(patch))
        return major.value, minor.value, patch.value

    # connection

    def connect(self, params: Mapping[str, str]) -> Any:
        buffers = []
        parameters = (RFC_CONNECTION_PARAMETER * len(params))()
        for index, (name, value) in enumerate(params.items()):
            name_buffer, value_buffer = to_uc(name), to_uc(value)
            buffers.extend((name_buffer, value_buffer))
            parameters[index].name = ctypes.cast(name_buffer, POINTER(SAP_UC))
            parameters[index].value = ctypes.cast(value_buffer, POINTER(SAP_UC))
        return self._call_handle("RfcOpenConnection", parameters, len(params))

    def disconnect(self, handle: Any) -> None:
        self._call("RfcCloseConnection", handle)

    def ping(self, handle: Any) -> None:
        self._call("RfcPing", handle)

    def connection_attributes(self, handle: Any) -> Dict[str, str]:
        attributes = RFC_ATTRIBUTES()
        self._call("RfcGetConnectionAttributes", handle, byref(attributes))
        return {
            name: from_uc(getattr(attributes, name)).rstrip()
            for name, _ in RFC_ATTRIBUTES._fields_
            if name != "reserved"
        }

    # metadata

    def function_lookup(self, handle: Any, name: str) -> Any:
        return self._call_handle("RfcGetFunctionDesc", handle, to_uc(name))

    def type_lookup(self, handle: Any, name: str) -> Any:
        return self._call_handle("RfcGetTypeDesc", handle, to_uc(name))

    def parameter_count(self, func_desc: Any) -> int:
        count = c_uint()
        self._call("RfcGetParameterCount", func_desc, byref(count))
        return count.value

    def parameter_desc(self, func_desc: Any, index: int) -> ParameterInfo:
        desc = RFC_PARAMETER_DESC()
        self._call("RfcGetParameterDescByIndex", func_desc, index, byref(desc))
        return ParameterInfo(
            from_uc(desc.name),
            desc.type,
            desc.direction,
            desc.nucLength,
            desc.ucLength,
            desc.decimals,
            desc.typeDescHandle,
            from_uc(desc.defaultValue),
            from_uc(desc.parameterText),
            bool(desc.optional),
        )

    def exception_count(self, func_desc: Any) -> int:
        count = c_uint()
        self._call("RfcGetExceptionCount", func_desc, byref(count))
        return count.value

    def exception_desc(self, func_desc: Any, index: int) -> ExceptionInfo:
        desc = RFC_EXCEPTION_DESC()
        self._call("RfcGetExceptionDescByIndex", func_desc, index, byref(desc))
        return ExceptionInfo(from_uc(desc.key), from_uc(desc.message))

    def type_name(self, type_desc: Any) -> str:
        name = _uc_array(31)()
        self._call("RfcGetTypeName", type_desc, name)
        return from_uc(name)

    def type_length(self, type_desc: Any) -> Tuple[int, int]:
        nuc_length, uc_length = c_uint(), c_uint()
        self._call("RfcGetTypeLength", type_desc, byref(nuc_length), byref(uc_length))
        return nuc_length.value, uc_length.value

    def field_count(self, type_desc: Any) -> int:
        count = c_uint()
        self._call("RfcGetFieldCount", type_desc, byref(count))
        return count.value

    def field_desc(self, type_desc: Any, index: int) -> FieldInfo:
        desc = RFC_FIELD_DESC()
        self._call("RfcGetFieldDescByIndex", type_desc, index, byref(desc))
        return FieldInfo(
            from_uc(desc.name),
            desc.type,
            desc.nucLength,
            desc.nucOffset,
            desc.ucLength,
            desc.ucOffset,
            desc.decimals,
            desc.typeDescHandle,
        )

    # function calls

    def function_call_create(self, func_desc: Any) -> Any:
        return self._call_handle("RfcCreateFunction", func_desc)

    def function_call_destroy(self, call: Any) -> None:
        self._call("RfcDestroyFunction", call)

    def set_parameter_active(self, call: Any, name: str, active: bool) -> None:
        self._call("RfcSetParameterActive", call, to_uc(name), int(active))

    def invoke(self, handle: Any, call: Any) -> None:
        self._call("RfcInvoke", handle, call)

    # field access

    def get_chars(self, container: Any, name: str, length: int) -> str:
        buffer = _uc_array(length)()
        self._call("RfcGetChars", container, to_uc(name), buffer, length)
        return from_uc(buffer, length)

    def set_chars(self, container: Any, name: str, value: str) -> None:
        buffer = to_uc(value)
        self._call("RfcSetChars", container, to_uc(name), buffer, len(buffer) - 1)

    def get_num(self, container: Any, name: str, length: int) -> str:
        buffer = _uc_array(length)()
        self._call("RfcGetNum", container, to_uc(name), buffer, length)
        return from_uc(buffer, length)

    def set_num(self, container: Any, name: str, value: str) -> None:
        buffer = to_uc(value)
        self._call("RfcSetNum", container, to_uc(name), buffer, len(buffer) - 1)

    def get_date(self, container: Any, name: str) -> str:
        buffer = _uc_array(8)()
        self._call("RfcGetDate", container, to_uc(name), buffer)
        return from_uc(buffer, 8)

    def set_date(self, container: Any, name: str, value: str) -> None:
        self._call("RfcSetDate", container, to_uc(name), to_uc(value))

    def get_time(self, container: Any, name: str) -> str:
        buffer = _uc_array(6)()
        self._call("RfcGetTime", container, to_uc(name), buffer)
        return from_uc(buffer, 6)

    def set_time(self, container: Any, name: str, value: str) -> None:
        self._call("RfcSetTime", container, to_uc(name), to_uc(value))

    def _string_length(self, container: Any, name) -> int:
        length = c_uint()
        self._call("RfcGetStringLength", container, name, byref(length))
        return length.value

    def get_string(self, container: Any, name: str) -> str:
        uc_name = to_uc(name)
        size = self._string_length(container, uc_name) + 1
        buffer, length = _uc_array(size)(), c_uint()
        self._call("RfcGetString", container, uc_name, buffer, size, byref(length))
        return from_uc(buffer, length.value)

    def set_string(self, container: Any, name: str, value: str) -> None:
        buffer = to_uc(value)
        self._call("RfcSetString", container, to_uc(name), buffer, len(buffer) - 1)

    def get_int(self, container: Any, name: str) -> int:
        value = c_int()
        self._call("RfcGetInt", container, to_uc(name), byref(value))
        return value.value

    def set_int(self, container: Any, name: str, value: int) -> None:
        self._call("RfcSetInt", container, to_uc(name), value)

    def get_int8(self, container: Any, name: str) -> int:
        value = c_int64()
        self._call("RfcGetInt8", container, to_uc(name), byref(value))
        return value.value

    def set_int8(self, container: Any, name: str, value: int) -> None:
        self._call("RfcSetInt8", container, to_uc(name), value)

    def get_float(self, container: Any, name: str) -> float:
        value = c_double()
        self._call("RfcGetFloat", container, to_uc(name), byref(value))
        return value.value

    def set_float(self, container: Any, name: str, value: float) -> None:
        self._call("RfcSetFloat", container, to_uc(name), value)

    def get_bytes(self, container: Any, name: str, length: int) -> bytes:
        buffer = (c_ubyte * length)()
        self._call("RfcGetBytes", container, to_uc(name), buffer, length)
        return bytes(buffer)

    def set_bytes(self, container: Any, name: str, value: bytes) -> None:
        buffer = (c_ubyte * len(value)).from_buffer_copy(value)
        self._call("RfcSetBytes", container, to_uc(name), buffer, len(value))

    def get_xstring(self, container: Any, name: str) -> bytes:
        uc_name = to_uc(name)
        size = self._string_length(container, uc_name)
        buffer, length = (c_ubyte * max(size, 1))(), c_uint()
        self._call("RfcGetXString", container, uc_name, buffer, size, byref(length))
        return bytes(buffer)[: length.value]

    def set_xstring(self, container: Any, name: str, value: bytes) -> None:
        buffer = (c_ubyte * max(len(value), 1)).from_buffer_copy(value.ljust(1, b"\0"))
        self._call("RfcSetXString", container, to_uc(name), buffer, len(value))

    def get_structure(self, container: Any, name: str) -> Any:
        handle = c_void_p()
        self._call("RfcGetStructure", container, to_uc(name), byref(handle))
        return handle.value

    def get_table(self, container: Any, name: str) -> Any:
        handle = c_void_p()
        self._call("RfcGetTable", container, to_uc(name), byref(handle))
        return handle.value

    # tables

    def row_count(self, table: Any) -> int:
        count = c_uint()
        self._call("RfcGetRowCount", table, byref(count))
        return count.value

    def append_row(self, table: Any) -> Any:
        return self._call_handle("RfcAppendNewRow", table)

    def delete_all_rows(self, table: Any) -> None:
        self._call("RfcDeleteAllRows", table)

    def move_to(self, table: Any, index: int) -> None:
        self._call("RfcMoveTo", table, index)

    def current_row(self, table: Any) -> Any:
        return self._call_handle("RfcGetCurrentRow", table)


_default_lock = threading.Lock()
_default: Optional[NWRFCLibrary] = None


def default_binding() -> NWRFCLibrary:
    global _default
    with _default_lock:
        if _default is None:
            _default = NWRFCLibrary()
        return _default
