# SPDX-FileCopyrightText: 2013 SAP SE Srdjan Boskovic <srdjan.boskovic@sap.com>
#
# SPDX-License-Identifier: Apache-2.0

"""Conversion between RFC field values and Python values.

Scalars are checked here before anything is written to the RFC library,
every lossy conversion is rejected with its own :class:`ConversionError`
kind. Structures and tables are handed to the view returned by
``make_view``; the converter never looks inside them.

CHAR values longer than the field are rejected with ``TRUNCATION`` unless
the connection was configured with ``truncate=True``. Decimal values are
never rounded: a value needing more decimal places than the field declares
is rejected with ``PRECISION_LOSS`` (trailing zeros do not count).
"""

from __future__ import annotations

import datetime
import decimal
from typing import Any, Callable, Dict, Mapping, NamedTuple, Tuple, Union

from ._binding import Binding
from ._exception import ConversionErrorKind, conversion_error
from ._types import FunctionParameter, RfcType, TypeField

Field = Union[FunctionParameter, TypeField]

INITIAL_DATE = "00000000"
INITIAL_TIME = "000000"

_DECIMAL_CONTEXT = decimal.Context(prec=80)

_INT_RANGES = {
    RfcType.INT1: (0, 2**8 - 1),
    RfcType.INT2: (-(2**15), 2**15 - 1),
    RfcType.INT: (-(2**31), 2**31 - 1),
    RfcType.INT8: (-(2**63), 2**63 - 1),
}

_DECF_DIGITS = {RfcType.DECF16: 16, RfcType.DECF34: 34}


class ConversionOptions(NamedTuple):
    rstrip: bool = True
    dtime: bool = True
    truncate: bool = False


def _mismatch(field: Field, value: Any, expected: str):
    return conversion_error(
        ConversionErrorKind.TYPE_MISMATCH,
        field.name,
        "{} expected for {}, got {}".format(expected, field.rfc_type, type(value).__name__),
    )


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_digits(text: str) -> bool:
    # str.isdigit also accepts non-ASCII digits such as "²"
    return text.isascii() and text.isdigit()


# CHAR, NUM, STRING


def _read_char(binding, container, field, options):
    value = binding.get_chars(container, field.name, field.nuc_length)
    return value.rstrip() if options.rstrip else value


def _write_char(binding, container, field, value, options):
    if not isinstance(value, str):
        raise _mismatch(field, value, "str")
    if len(value) > field.nuc_length:
        if not options.truncate:
            raise conversion_error(
                ConversionErrorKind.TRUNCATION,
                field.name,
                "Value of length {} exceeds CHAR length {}".format(len(value), field.nuc_length),
                value,
            )
        value = value[: field.nuc_length]
    binding.set_chars(container, field.name, value.ljust(field.nuc_length))


def _read_num(binding, container, field, options):
    return binding.get_num(container, field.name, field.nuc_length)


def _write_num(binding, container, field, value, options):
    if _is_integer(value):
        if value < 0:
            raise conversion_error(
                ConversionErrorKind.INVALID_FORMAT, field.name, "NUM values are unsigned", value
            )
        value = str(value)
    elif not isinstance(value, str):
        raise _mismatch(field, value, "int or str of digits")
    value = value.strip()
    if value and not _is_digits(value):
        raise conversion_error(
            ConversionErrorKind.INVALID_FORMAT, field.name, "NUM value is not numeric", value
        )
    if len(value) > field.nuc_length:
        raise conversion_error(
            ConversionErrorKind.OVERFLOW,
            field.name,
            "NUM value exceeds {} digits".format(field.nuc_length),
            value,
        )
    binding.set_num(container, field.name, value.zfill(field.nuc_length))


def _read_string(binding, container, field, options):
    return binding.get_string(container, field.name)


def _write_string(binding, container, field, value, options):
    if not isinstance(value, str):
        raise _mismatch(field, value, "str")
    binding.set_string(container, field.name, value)


# integers and floats


def _read_int(binding, container, field, options):
    if field.rfc_type is RfcType.INT8:
        return binding.get_int8(container, field.name)
    return binding.get_int(container, field.name)


def _write_int(binding, container, field, value, options):
    if not _is_integer(value):
        raise _mismatch(field, value, "int")
    low, high = _INT_RANGES[field.rfc_type]
    if not low <= value <= high:
        raise conversion_error(
            ConversionErrorKind.OVERFLOW,
            field.name,
            "Value out of range [{}, {}] of {}".format(low, high, field.rfc_type),
            value,
        )
    if field.rfc_type is RfcType.INT8:
        binding.set_int8(container, field.name, value)
    else:
        binding.set_int(container, field.name, value)


def _read_float(binding, container, field, options):
    return binding.get_float(container, field.name)


def _write_float(binding, container, field, value, options):
    if isinstance(value, bool) or not isinstance(value, (int, float, decimal.Decimal)):
        raise _mismatch(field, value, "float")
    binding.set_float(container, field.name, float(value))


# decimals


def _to_decimal(field: Field, value: Any) -> decimal.Decimal:
    if isinstance(value, bool):
        raise _mismatch(field, value, "Decimal")
    if isinstance(value, decimal.Decimal):
        result = value
    elif isinstance(value, int):
        result = decimal.Decimal(value)
    elif isinstance(value, float):
        result = decimal.Decimal(repr(value))
    elif isinstance(value, str):
        try:
            result = decimal.Decimal(value.strip())
        except decimal.InvalidOperation:
            raise conversion_error(
                ConversionErrorKind.INVALID_FORMAT, field.name, "Not a decimal number", value
            ) from None
    else:
        raise _mismatch(field, value, "Decimal")
    if not result.is_finite():
        raise conversion_error(
            ConversionErrorKind.INVALID_FORMAT, field.name, "Decimal must be finite", value
        )
    return result


def _significant_scale(value: decimal.Decimal) -> int:
    exponent = value.as_tuple().exponent
    if exponent >= 0 or value.is_zero():
        return 0
    return max(0, -value.normalize(_DECIMAL_CONTEXT).as_tuple().exponent)


def _quantum(decimals: int) -> decimal.Decimal:
    return decimal.Decimal(1).scaleb(-decimals)


def _read_bcd(binding, container, field, options):
    text = binding.get_string(container, field.name).strip() or "0"
    return decimal.Decimal(text).quantize(_quantum(field.decimals), context=_DECIMAL_CONTEXT)


def _write_bcd(binding, container, field, value, options):
    number = _to_decimal(field, value)
    if _significant_scale(number) > field.decimals:
        raise conversion_error(
            ConversionErrorKind.PRECISION_LOSS,
            field.name,
            "Value has more than {} decimal places".format(field.decimals),
            value,
        )
    integer_digits = 2 * field.nuc_length - 1 - field.decimals
    if abs(number) >= decimal.Decimal(10) ** integer_digits:
        raise conversion_error(
            ConversionErrorKind.OVERFLOW,
            field.name,
            "Value exceeds {} integer digits".format(integer_digits),
            value,
        )
    number = number.quantize(_quantum(field.decimals), context=_DECIMAL_CONTEXT)
    binding.set_string(container, field.name, format(number, "f"))


def _read_decfloat(binding, container, field, options):
    return decimal.Decimal(binding.get_string(container, field.name).strip() or "0")


def _write_decfloat(binding, container, field, value, options):
    number = _to_decimal(field, value)
    digits = _DECF_DIGITS[field.rfc_type]
    if len(number.normalize(_DECIMAL_CONTEXT).as_tuple().digits) > digits:
        raise conversion_error(
            ConversionErrorKind.PRECISION_LOSS,
            field.name,
            "Value has more than {} significant digits".format(digits),
            value,
        )
    binding.set_string(container, field.name, str(number))


# date and time


def _parse_date(field: Field, text: str) -> datetime.date:
    if len(text) != 8 or not _is_digits(text):
        raise conversion_error(
            ConversionErrorKind.INVALID_FORMAT, field.name, "Date must be YYYYMMDD", text
        )
    try:
        return datetime.date(int(text[:4]), int(text[4:6]), int(text[6:]))
    except ValueError as ex:
        raise conversion_error(ConversionErrorKind.INVALID_FORMAT, field.name, str(ex), text) from None


def _parse_time(field: Field, text: str) -> datetime.time:
    if len(text) != 6 or not _is_digits(text):
        raise conversion_error(
            ConversionErrorKind.INVALID_FORMAT, field.name, "Time must be HHMMSS", text
        )
    try:
        return datetime.time(int(text[:2]), int(text[2:4]), int(text[4:]))
    except ValueError as ex:
        raise conversion_error(ConversionErrorKind.INVALID_FORMAT, field.name, str(ex), text) from None


def _read_date(binding, container, field, options):
    text = binding.get_date(container, field.name)
    if not options.dtime:
        return text
    if not text.strip() or text == INITIAL_DATE:
        return None
    return _parse_date(field, text)


def _write_date(binding, container, field, value, options):
    if value is None or value == "":
        text = INITIAL_DATE
    elif isinstance(value, datetime.datetime):
        raise _mismatch(field, value, "date")
    elif isinstance(value, datetime.date):
        text = "{:04d}{:02d}{:02d}".format(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value
        if text != INITIAL_DATE:
            _parse_date(field, text)
    else:
        raise _mismatch(field, value, "date or str")
    binding.set_date(container, field.name, text)


def _read_time(binding, container, field, options):
    text = binding.get_time(container, field.name)
    if not options.dtime:
        return text
    return _parse_time(field, text)


def _write_time(binding, container, field, value, options):
    if value is None or value == "":
        text = INITIAL_TIME
    elif isinstance(value, datetime.time):
        if value.microsecond:
            raise conversion_error(
                ConversionErrorKind.PRECISION_LOSS,
                field.name,
                "TIME has a resolution of one second",
                value,
            )
        text = "{:02d}{:02d}{:02d}".format(value.hour, value.minute, value.second)
    elif isinstance(value, str):
        text = value
        _parse_time(field, text)
    else:
        raise _mismatch(field, value, "time or str")
    binding.set_time(container, field.name, text)


# raw data


def _as_bytes(field: Field, value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    raise _mismatch(field, value, "bytes")


def _read_bytes(binding, container, field, options):
    return binding.get_bytes(container, field.name, field.nuc_length)


def _write_bytes(binding, container, field, value, options):
    data = _as_bytes(field, value)
    if len(data) > field.nuc_length:
        raise conversion_error(
            ConversionErrorKind.TRUNCATION,
            field.name,
            "Value of {} bytes exceeds BYTE length {}".format(len(data), field.nuc_length),
        )
    binding.set_bytes(container, field.name, data)


def _read_xstring(binding, container, field, options):
    return binding.get_xstring(container, field.name)


def _write_xstring(binding, container, field, value, options):
    binding.set_xstring(container, field.name, _as_bytes(field, value))


Reader = Callable[[Binding, Any, Field, ConversionOptions], Any]
Writer = Callable[[Binding, Any, Field, Any, ConversionOptions], None]

_CONVERTERS: Dict[RfcType, Tuple[Reader, Writer]] = {
    RfcType.CHAR: (_read_char, _write_char),
    RfcType.NUM: (_read_num, _write_num),
    RfcType.STRING: (_read_string, _write_string),
    RfcType.XMLDATA: (_read_string, _write_string),
    RfcType.UTCLONG: (_read_string, _write_string),
    RfcType.INT1: (_read_int, _write_int),
    RfcType.INT2: (_read_int, _write_int),
    RfcType.INT: (_read_int, _write_int),
    RfcType.INT8: (_read_int, _write_int),
    RfcType.FLOAT: (_read_float, _write_float),
    RfcType.BCD: (_read_bcd, _write_bcd),
    RfcType.DECF16: (_read_decfloat, _write_decfloat),
    RfcType.DECF34: (_read_decfloat, _write_decfloat),
    RfcType.DATE: (_read_date, _write_date),
    RfcType.TIME: (_read_time, _write_time),
    RfcType.BYTE: (_read_bytes, _write_bytes),
    RfcType.XSTRING: (_read_xstring, _write_xstring),
}

_COMPLEX = (RfcType.STRUCTURE, RfcType.TABLE)


def _converter(field: Field) -> Tuple[Reader, Writer]:
    try:
        return _CONVERTERS[field.rfc_type]
    except KeyError:
        raise conversion_error(
            ConversionErrorKind.TYPE_MISMATCH,
            field.name,
            "{} is not supported".format(field.rfc_type),
        ) from None


def from_rfc(
    binding: Binding,
    container: Any,
    field: Field,
    options: ConversionOptions,
    make_view: Callable[[Field], Any],
) -> Any:
    """Read ``field`` of ``container`` as a Python value."""
    if field.rfc_type in _COMPLEX:
        return make_view(field)
    reader, _ = _converter(field)
    return reader(binding, container, field, options)


def to_rfc(
    binding: Binding,
    container: Any,
    field: Field,
    value: Any,
    options: ConversionOptions,
    make_view: Callable[[Field], Any],
) -> None:
    """Write the Python ``value`` into ``field`` of ``container``."""
    if field.rfc_type is RfcType.STRUCTURE:
        if not isinstance(value, Mapping):
            raise _mismatch(field, value, "Mapping")
        make_view(field).update(value)
        return
    if field.rfc_type is RfcType.TABLE:
        if isinstance(value, (str, bytes, Mapping)) or not hasattr(value, "__iter__"):
            raise _mismatch(field, value, "iterable of Mapping")
        rows = list(value)
        if not all(isinstance(row, Mapping) for row in rows):
            raise _mismatch(field, value, "iterable of Mapping")
        table = make_view(field)
        table.clear()
        table.extend(rows)
        return
    _, writer = _converter(field)
    writer(binding, container, field, value, options)
