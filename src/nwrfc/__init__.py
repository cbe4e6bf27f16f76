# SPDX-FileCopyrightText: 2013 SAP SE Srdjan Boskovic <srdjan.boskovic@sap.com>
#
# SPDX-License-Identifier: Apache-2.0

# import from internal modules that they could be directly imported from
# the nwrfc package

# Set DLL path, due to https://docs.python.org/3.8/whatsnew/3.8.html#bpo-36085-whatsnew
import os
import sys

if os.name == "nt" and os.environ.get("SAPNWRFC_HOME"):
    sdk_lib = os.path.join(os.environ["SAPNWRFC_HOME"], "lib")
    if os.path.isdir(sdk_lib):
        os.add_dll_directory(sdk_lib)

from . import _environment
from ._binding import Binding, ExceptionInfo, FieldInfo, ParameterInfo
from ._connection import Connection, ConnectionParameters
from ._exception import (
    ABAPApplicationError,
    ABAPRuntimeError,
    CommunicationError,
    ConnectionErrorKind,
    ConversionError,
    ConversionErrorKind,
    ErrorGroup,
    FieldError,
    FieldErrorKind,
    FunctionLookupError,
    InvalidStateError,
    InvokeError,
    InvokeErrorKind,
    LogonError,
    LookupErrorKind,
    ParameterError,
    ParameterErrorKind,
    RFCConnectionError,
    RFCError,
    RFCLibError,
    ReturnCode,
)
from ._function import CallState, FunctionCall, ParameterState, ScalarParameter
from ._nwrfclib import NWRFCLibrary, default_binding
from ._types import (
    Direction,
    ExceptionDescription,
    FunctionDescription,
    FunctionParameter,
    RfcType,
    TypeDescription,
    TypeField,
)
from ._views import StructureView, TableView

__author__ = """"Srdjan Boskovic"""
__email__ = "srdjan.boskovic@sap.com"
__version__ = "0.1.0"


def get_nwrfclib_version(binding=None):
    """Version of the SAP NW RFC SDK library, loading it if needed."""
    binding = binding or default_binding()
    _environment.acquire(binding)
    try:
        major, minor, patch = binding.version()
    finally:
        _environment.release(binding)
    return {"major": major, "minor": minor, "patchLevel": patch, "platform": sys.platform}
