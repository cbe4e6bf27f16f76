# SPDX-FileCopyrightText: 2013 SAP SE Srdjan Boskovic <srdjan.boskovic@sap.com>
#
# SPDX-License-Identifier: Apache-2.0

"""In-memory stand-in for the SAP NW RFC SDK and an SAP system behind it."""

import pytest

from nwrfc import (
    Binding,
    Connection,
    Direction,
    ErrorGroup,
    ExceptionInfo,
    FieldInfo,
    ParameterInfo,
    ReturnCode,
    RFCLibError,
    RfcType,
)

LOGON = {
    "ashost": "fake.example.com",
    "sysnr": "00",
    "client": "100",
    "user": "ME",
    "passwd": "secret",
}


def sdk_error(code, group, message, key=None, **record):
    return RFCLibError(
        message=message, code=code, key=key or ReturnCode(code).name, group=group, **record
    )


def field(name, rfc_type, length, decimals=0, type_handle=None):
    return FieldInfo(name, rfc_type, length, 0, length * 2, 0, decimals, type_handle)


def parameter(name, rfc_type, direction, length=0, type_handle=None, optional=False):
    return ParameterInfo(
        name, rfc_type, direction, length, length * 2, 0, type_handle, "", "", optional
    )


class FakeTypeDesc:
    def __init__(self, name, fields):
        self.name = name
        self.fields = fields
        self.length = sum(f.nuc_length for f in fields)


class FakeFuncDesc:
    def __init__(self, name, parameters, handler, exceptions=()):
        self.name = name
        self.parameters = parameters
        self.handler = handler
        self.exceptions = list(exceptions)


class FakeContainer:
    """Function call, structure or table row; ``fields`` None accepts any name."""

    def __init__(self, name, fields=None):
        self.name = name
        self.fields = fields
        self.values = {}
        self.children = {}
        self.inactive = set()
        self.handler = None

    @classmethod
    def of_type(cls, type_desc):
        if type_desc is None:
            return cls("")
        return cls(type_desc.name, {f.name: f for f in type_desc.fields})

    def check(self, name):
        if self.fields is not None and name not in self.fields:
            raise sdk_error(
                ReturnCode.RFC_INVALID_PARAMETER,
                ErrorGroup.EXTERNAL_RUNTIME_FAILURE,
                "field '{}' not found".format(name),
            )

    def _child(self, name, factory):
        self.check(name)
        if name not in self.children:
            type_desc = self.fields[name].type_handle if self.fields else None
            self.children[name] = factory(type_desc)
        return self.children[name]

    def structure(self, name):
        return self._child(name, FakeContainer.of_type)

    def table(self, name):
        return self._child(name, FakeTable)


class FakeTable:
    def __init__(self, type_desc):
        self.type_desc = type_desc
        self.rows = []
        self.cursor = -1

    def append(self):
        row = FakeContainer.of_type(self.type_desc)
        self.rows.append(row)
        self.cursor = len(self.rows) - 1
        return row


class FakeSession:
    def __init__(self, params):
        self.params = dict(params)
        self.open = True
        self.broken = False


RFCTEST = FakeTypeDesc(
    "RFCTEST",
    [
        field("RFCFLOAT", RfcType.FLOAT, 8),
        field("RFCCHAR1", RfcType.CHAR, 1),
        field("RFCINT2", RfcType.INT2, 2),
        field("RFCINT1", RfcType.INT1, 1),
        field("RFCCHAR4", RfcType.CHAR, 4),
        field("RFCINT4", RfcType.INT, 4),
        field("RFCHEX3", RfcType.BYTE, 3),
        field("RFCCHAR2", RfcType.CHAR, 2),
        field("RFCTIME", RfcType.TIME, 6),
        field("RFCDATE", RfcType.DATE, 8),
        field("RFCDATA1", RfcType.CHAR, 50),
        field("RFCDATA2", RfcType.CHAR, 50),
    ],
)

ZITEM = FakeTypeDesc(
    "ZITEM",
    [
        field("POSNR", RfcType.NUM, 6),
        field("AMOUNT", RfcType.BCD, 7, decimals=2),
        field("TEXT", RfcType.STRING, 8),
    ],
)

ZDOC = FakeTypeDesc(
    "ZDOC",
    [
        field("ID", RfcType.INT, 4),
        field("HEADER", RfcType.STRUCTURE, ZITEM.length, type_handle=ZITEM),
        field("ITEMS", RfcType.TABLE, 8, type_handle=ZITEM),
    ],
)

RESPTEXT = "SAP R/3 Rel. 753   Sysid: FKE      Date: 20261016   Time: 120000"


def stfc_connection(call):
    call.values["ECHOTEXT"] = call.values.get("REQUTEXT", "")
    call.values["RESPTEXT"] = RESPTEXT


def stfc_structure(call):
    imported = call.structure("IMPORTSTRUCT").values
    call.structure("ECHOSTRUCT").values = dict(imported)
    call.table("RFCTABLE").append().values = dict(imported)
    call.values["RESPTEXT"] = RESPTEXT


def raise_exception(call):
    raise sdk_error(
        ReturnCode.RFC_ABAP_EXCEPTION,
        ErrorGroup.ABAP_APPLICATION_FAILURE,
        "NOT_AUTHORIZED",
        key="NOT_AUTHORIZED",
    )


def mandatory_import(call):
    if "IV_VALUE" not in call.values:
        raise sdk_error(
            ReturnCode.RFC_ABAP_RUNTIME_FAILURE,
            ErrorGroup.ABAP_RUNTIME_FAILURE,
            "Mandatory parameter IV_VALUE is missing",
            key="CALL_FUNCTION_PARM_MISSING",
        )
    call.values["EV_VALUE"] = call.values["IV_VALUE"] * 2


def nested_document(call):
    document = call.structure("CS_DOC")
    document.values["ID"] = document.values.get("ID", 0) + 1
    call.values["EV_COUNT"] = len(document.table("ITEMS").rows)


FUNCTIONS = [
    FakeFuncDesc(
        "STFC_CONNECTION",
        [
            parameter("REQUTEXT", RfcType.CHAR, Direction.IMPORT, 255),
            parameter("ECHOTEXT", RfcType.CHAR, Direction.EXPORT, 255),
            parameter("RESPTEXT", RfcType.CHAR, Direction.EXPORT, 255),
        ],
        stfc_connection,
    ),
    FakeFuncDesc(
        "STFC_STRUCTURE",
        [
            parameter("IMPORTSTRUCT", RfcType.STRUCTURE, Direction.IMPORT, RFCTEST.length, RFCTEST),
            parameter("ECHOSTRUCT", RfcType.STRUCTURE, Direction.EXPORT, RFCTEST.length, RFCTEST),
            parameter("RESPTEXT", RfcType.CHAR, Direction.EXPORT, 255),
            parameter("RFCTABLE", RfcType.TABLE, Direction.TABLES, 8, RFCTEST),
        ],
        stfc_structure,
    ),
    FakeFuncDesc(
        "Z_RAISE_EXCEPTION",
        [parameter("IV_METHOD", RfcType.CHAR, Direction.IMPORT, 10, optional=True)],
        raise_exception,
        [
            ExceptionInfo("NOT_AUTHORIZED", "No authorization for the requested method"),
            ExceptionInfo("NOT_FOUND", "Method not found"),
        ],
    ),
    FakeFuncDesc(
        "Z_MANDATORY_IMPORT",
        [
            parameter("IV_VALUE", RfcType.INT, Direction.IMPORT, 4),
            parameter("IV_NOTE", RfcType.STRING, Direction.IMPORT, 8, optional=True),
            parameter("EV_VALUE", RfcType.INT, Direction.EXPORT, 4),
        ],
        mandatory_import,
    ),
    FakeFuncDesc(
        "Z_NESTED_DOCUMENT",
        [
            parameter("CS_DOC", RfcType.STRUCTURE, Direction.CHANGING, ZDOC.length, ZDOC),
            parameter("EV_COUNT", RfcType.INT, Direction.EXPORT, 4),
        ],
        nested_document,
    ),
]


class FakeBinding(Binding):
    """RFC library simulation, one instance per test."""

    def __init__(self):
        self.functions = {f.name: f for f in FUNCTIONS}
        self.types = {t.name: t for t in (RFCTEST, ZITEM, ZDOC)}
        self.initialized = 0
        self.shutdowns = 0
        self.lookups = []
        self.sessions = []
        self.destroyed = []
        self.field_failure = None

    def initialize(self):
        self.initialized += 1

    def shutdown(self):
        self.shutdowns += 1

    def version(self):
        return 7500, 0, 12

    def _session(self, session):
        if not session.open:
            raise sdk_error(
                ReturnCode.RFC_INVALID_HANDLE,
                ErrorGroup.EXTERNAL_RUNTIME_FAILURE,
                "An invalid handle was passed to the API call",
            )
        if session.broken:
            raise sdk_error(
                ReturnCode.RFC_COMMUNICATION_FAILURE,
                ErrorGroup.COMMUNICATION_FAILURE,
                "connection closed by peer",
            )
        return session

    # connection

    def connect(self, params):
        if params.get("ASHOST") == "unreachable":
            raise sdk_error(
                ReturnCode.RFC_COMMUNICATION_FAILURE,
                ErrorGroup.COMMUNICATION_FAILURE,
                "partner 'unreachable:3300' not reached",
            )
        if params.get("PASSWD") != "secret":
            raise sdk_error(
                ReturnCode.RFC_LOGON_FAILURE,
                ErrorGroup.LOGON_FAILURE,
                "Name or password is incorrect (repeat logon)",
            )
        session = FakeSession(params)
        self.sessions.append(session)
        return session

    def disconnect(self, handle):
        handle.open = False

    def ping(self, handle):
        self._session(handle)

    def connection_attributes(self, handle):
        session = self._session(handle)
        return {
            "dest": "",
            "host": "client.example.com",
            "partnerHost": session.params["ASHOST"],
            "sysNumber": session.params.get("SYSNR", ""),
            "sysId": "FKE",
            "client": session.params.get("CLIENT", ""),
            "user": session.params.get("USER", ""),
            "language": "E",
            "rel": "753",
        }

    # metadata

    def function_lookup(self, handle, name):
        self._session(handle)
        self.lookups.append(name)
        if name not in self.functions:
            raise sdk_error(
                ReturnCode.RFC_ABAP_EXCEPTION,
                ErrorGroup.ABAP_APPLICATION_FAILURE,
                "ID:FL Type:E Number:046 {}".format(name),
                key="FU_NOT_FOUND",
            )
        return self.functions[name]

    def type_lookup(self, handle, name):
        self._session(handle)
        if name not in self.types:
            raise sdk_error(
                ReturnCode.RFC_NOT_FOUND,
                ErrorGroup.EXTERNAL_RUNTIME_FAILURE,
                "Type {} not found".format(name),
            )
        return self.types[name]

    def parameter_count(self, func_desc):
        return len(func_desc.parameters)

    def parameter_desc(self, func_desc, index):
        return func_desc.parameters[index]

    def exception_count(self, func_desc):
        return len(func_desc.exceptions)

    def exception_desc(self, func_desc, index):
        return func_desc.exceptions[index]

    def type_name(self, type_desc):
        return type_desc.name

    def type_length(self, type_desc):
        return type_desc.length, type_desc.length * 2

    def field_count(self, type_desc):
        return len(type_desc.fields)

    def field_desc(self, type_desc, index):
        return type_desc.fields[index]

    # function calls

    def function_call_create(self, func_desc):
        call = FakeContainer(func_desc.name, {p.name: p for p in func_desc.parameters})
        call.handler = func_desc.handler
        return call

    def function_call_destroy(self, call):
        self.destroyed.append(call)

    def set_parameter_active(self, call, name, active):
        call.check(name)
        if active:
            call.inactive.discard(name)
        else:
            call.inactive.add(name)

    def invoke(self, handle, call):
        self._session(handle)
        call.handler(call)

    # field access

    def _get(self, container, name, default):
        if self.field_failure is not None:
            raise self.field_failure
        container.check(name)
        return container.values.get(name, default)

    def _set(self, container, name, value):
        if self.field_failure is not None:
            raise self.field_failure
        container.check(name)
        container.values[name] = value

    def get_chars(self, container, name, length):
        return self._get(container, name, "").ljust(length)[:length]

    def set_chars(self, container, name, value):
        self._set(container, name, value)

    def get_num(self, container, name, length):
        return self._get(container, name, "0" * length)

    def set_num(self, container, name, value):
        self._set(container, name, value)

    def get_date(self, container, name):
        return self._get(container, name, "00000000")

    def set_date(self, container, name, value):
        self._set(container, name, value)

    def get_time(self, container, name):
        return self._get(container, name, "000000")

    def set_time(self, container, name, value):
        self._set(container, name, value)

    def get_string(self, container, name):
        return self._get(container, name, "")

    def set_string(self, container, name, value):
        self._set(container, name, value)

    def get_int(self, container, name):
        return self._get(container, name, 0)

    def set_int(self, container, name, value):
        self._set(container, name, value)

    def get_int8(self, container, name):
        return self._get(container, name, 0)

    def set_int8(self, container, name, value):
        self._set(container, name, value)

    def get_float(self, container, name):
        return self._get(container, name, 0.0)

    def set_float(self, container, name, value):
        self._set(container, name, value)

    def get_bytes(self, container, name, length):
        return self._get(container, name, b"").ljust(length, b"\0")

    def set_bytes(self, container, name, value):
        self._set(container, name, value)

    def get_xstring(self, container, name):
        return self._get(container, name, b"")

    def set_xstring(self, container, name, value):
        self._set(container, name, value)

    def get_structure(self, container, name):
        return container.structure(name)

    def get_table(self, container, name):
        return container.table(name)

    # tables

    def row_count(self, table):
        return len(table.rows)

    def append_row(self, table):
        return table.append()

    def delete_all_rows(self, table):
        table.rows = []
        table.cursor = -1

    def move_to(self, table, index):
        if not 0 <= index < len(table.rows):
            raise sdk_error(
                ReturnCode.RFC_TABLE_MOVE_EOF,
                ErrorGroup.EXTERNAL_RUNTIME_FAILURE,
                "Row {} out of range".format(index),
            )
        table.cursor = index

    def current_row(self, table):
        if table.cursor < 0:
            raise sdk_error(
                ReturnCode.RFC_TABLE_MOVE_BOF,
                ErrorGroup.EXTERNAL_RUNTIME_FAILURE,
                "Table has no current row",
            )
        return table.rows[table.cursor]


@pytest.fixture
def binding():
    return FakeBinding()


@pytest.fixture
def connection(binding):
    conn = Connection(binding=binding, **LOGON)
    yield conn
    conn.close()
