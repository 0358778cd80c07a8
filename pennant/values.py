r"""
Pennant value adapters.

Every flag is bound to a value object. The parser only relies on a small,
duck-typed capability:

- set(text): parse text and store it; raise ValueSyntaxError ("parse error")
  on malformed text and ValueRangeError ("value out of range") when numeric
  text is well formed but does not fit the target type.
- __str__(): render the current value; set(str(value)) reproduces it.
- get() (optional): the current value in its native Python type.
- is_bool_flag() (optional): when it returns True the flag is switched on by
  its presence alone and never consumes the next token. It is queried on every
  occurrence, so a value may stop being boolean after a few uses.

Adapters
- BoolValue      1 t T TRUE true True / 0 f F FALSE false False
- IntValue       32-bit signed integer
- Int64Value     64-bit signed integer
- UintValue      32-bit unsigned integer
- Uint64Value    64-bit unsigned integer
  Integers accept decimal, 0x/0o/0b prefixes, a leading 0 for octal and "_"
  between digits.
- Float64Value   decimal/exponent notation, hex floats (0x1.8p3), inf, nan;
  rendered with the shortest digits that round-trip (1e+06, 2.718e+31, +Inf).
- StringValue    any text.
- DurationValue  unit-suffixed durations such as 300ms, 1.5h or 2h45m
  (units ns, us, µs, ms, s, m, h); rendered like 1h2m3.5s.
- VersionValue   boolean flag that prints "prog: version" and raises the
  HelpRequested signal when switched on.

Quick example:
    >>> value = DurationValue()
    >>> value.set("1m30s")
    >>> str(value), value.get()
    ('1m30s', datetime.timedelta(seconds=90))
"""
import datetime
import decimal
import math
import os
import re
import sys

from .faults import HelpRequested, ValueRangeError, ValueSyntaxError, console
from .utils import *

_BOOLEANS = {
    "1": True, "t": True, "T": True, "TRUE": True, "true": True, "True": True,
    "0": False, "f": False, "F": False, "FALSE": False, "false": False, "False": False,
}

_INTEGER = re.compile(
    r"(?P<sign>[+-]?)"
    r"(?P<digits>0[xX](?:_?[0-9a-fA-F])+|0[oO](?:_?[0-7])+|0[bB](?:_?[01])+|0(?:_?[0-7])+|[1-9](?:_?[0-9])*|0)"
)

_FLOAT = re.compile(
    r"[+-]?(?:"
    r"(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?"
    r"|0[xX](?:_?[0-9a-fA-F])*(?:\.(?:[0-9a-fA-F](?:_?[0-9a-fA-F])*)?)?[pP][+-]?[0-9]+"
    r"|(?i:inf|infinity)"
    r")|(?i:nan)"
)

_SEGMENT = re.compile(r"([0-9]*)(?:\.([0-9]*))?([^0-9.]*)")

# Nanoseconds per unit.
_UNITS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,  # U+00B5 micro sign
    "μs": 1_000,  # U+03BC greek small letter mu
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60_000_000_000,
    "h": 3_600_000_000_000,
}


def _adapter(metavar, /):
    """
    Class decorator shared by the adapters: derives __typename__, records the
    help metavar and installs a compact __repr__.
    """
    def wrapper(cls):
        cls.__typename__ = re.sub(r"(?<!^)(?=[A-Z])", r"-", cls.__name__).lower()
        cls.__metavar__ = metavar

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({str(self)!r})"
        cls.__repr__ = __repr__
        return cls

    return rename(wrapper, "adapter")


def _parse_bool(text, /):
    try:
        return _BOOLEANS[text]
    except KeyError:
        raise ValueSyntaxError() from None


def _parse_integer(text, /, bits, signed):
    if not (match := _INTEGER.fullmatch(text)):
        raise ValueSyntaxError()
    sign, digits = match["sign"], match["digits"].replace("_", "")
    if sign and not signed:
        raise ValueSyntaxError()

    if digits[:2].lower() in ("0x", "0o", "0b"):
        number = int(digits, 0)
    elif len(digits) > 1:
        number = int(digits, 8 if digits[0] == "0" else 10)
    else:
        number = int(digits)
    if sign == "-":
        number = -number

    if signed:
        low, high = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    else:
        low, high = 0, (1 << bits) - 1
    if not low <= number <= high:
        raise ValueRangeError()
    return number


def _check_integer(cls, value, /, bits, signed):
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{cls.__typename__} 'value' must be an int")
    if signed and not -(1 << (bits - 1)) <= value < (1 << (bits - 1)):
        raise ValueError(f"{cls.__typename__} 'value' must fit in {bits} signed bits")
    if not signed and not 0 <= value < (1 << bits):
        raise ValueError(f"{cls.__typename__} 'value' must fit in {bits} unsigned bits")
    return value


def _parse_float(text, /):
    if not _FLOAT.fullmatch(text):
        raise ValueSyntaxError()
    try:
        if "x" in text.lower():
            number = float.fromhex(text.replace("_", ""))
        else:
            number = float(text)
    except OverflowError:
        raise ValueRangeError() from None
    except ValueError:
        raise ValueSyntaxError() from None
    if math.isinf(number) and "inf" not in text.lower():
        raise ValueRangeError()
    return number


def _format_float(number, /):
    """Shortest round-tripping digits, exponent form below 1e-4 and from 1e+06."""
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "+Inf" if number > 0 else "-Inf"
    if number == 0:
        return "-0" if math.copysign(1.0, number) < 0 else "0"

    sign, digits, exponent = decimal.Decimal(repr(number)).normalize().as_tuple()
    digits = "".join(map(str, digits))
    point = len(digits) + exponent

    if point - 1 < -4 or point - 1 >= 6:
        mantissa = digits[0] + ("." + digits[1:] if len(digits) > 1 else "")
        text = f"{mantissa}e{point - 1:+03d}"
    elif point <= 0:
        text = "0." + "0" * -point + digits
    elif point >= len(digits):
        text = digits + "0" * (point - len(digits))
    else:
        text = digits[:point] + "." + digits[point:]
    return "-" + text if sign else text


def _parse_duration(text, /):
    """Parse a duration into integer nanoseconds."""
    negative = False
    if text[:1] in ("-", "+"):
        negative, text = text[0] == "-", text[1:]
    if text == "0":
        return 0
    if not text:
        raise ValueSyntaxError()

    total, position = 0, 0
    while position < len(text):
        match = _SEGMENT.match(text, position)
        integer, fraction, unit = match.groups()
        if not integer and not fraction:
            raise ValueSyntaxError()
        if unit not in _UNITS:
            raise ValueSyntaxError()
        scale = _UNITS[unit]
        total += int(integer or "0") * scale
        if fraction:
            total += int(fraction) * scale // 10 ** len(fraction)
        position = match.end()

    if total > (1 << 63) or (not negative and total == (1 << 63)):
        raise ValueSyntaxError()
    return -total if negative else total


def _fraction(value, precision, /):
    integer, fraction = divmod(value, 10 ** precision)
    digits = f"{fraction:0{precision}d}".rstrip("0") if precision else ""
    return integer, "." + digits if digits else ""


def _format_duration(nanoseconds, /):
    magnitude = abs(nanoseconds)
    if magnitude == 0:
        return "0s"

    if magnitude < _UNITS["s"]:
        if magnitude < _UNITS["us"]:
            precision, unit = 0, "ns"
        elif magnitude < _UNITS["ms"]:
            precision, unit = 3, "µs"
        else:
            precision, unit = 6, "ms"
        integer, fraction = _fraction(magnitude, precision)
        text = f"{integer}{fraction}{unit}"
    else:
        seconds, fraction = _fraction(magnitude, 9)
        minutes, seconds = divmod(seconds, 60)
        hours, minutes = divmod(minutes, 60)
        text = f"{seconds}{fraction}s"
        if minutes or hours:
            text = f"{minutes}m{text}"
        if hours:
            text = f"{hours}h{text}"

    return "-" + text if nanoseconds < 0 else text


@_adapter("")
class BoolValue:
    def __init__(self, value=False, /):
        if not isinstance(value, bool):
            raise TypeError(f"{type(self).__typename__} 'value' must be a bool")
        self._value = value

    def set(self, text, /):
        self._value = _parse_bool(text)

    def get(self):
        return self._value

    def is_bool_flag(self):
        return True

    def __str__(self):
        return "true" if self._value else "false"


@_adapter("int")
class IntValue:
    """32-bit signed integer."""

    def __init__(self, value=0, /):
        self._value = _check_integer(type(self), value, bits=32, signed=True)

    def set(self, text, /):
        self._value = _parse_integer(text, bits=32, signed=True)

    def get(self):
        return self._value

    def __str__(self):
        return str(self._value)


@_adapter("int")
class Int64Value:
    def __init__(self, value=0, /):
        self._value = _check_integer(type(self), value, bits=64, signed=True)

    def set(self, text, /):
        self._value = _parse_integer(text, bits=64, signed=True)

    def get(self):
        return self._value

    def __str__(self):
        return str(self._value)


@_adapter("uint")
class UintValue:
    """32-bit unsigned integer."""

    def __init__(self, value=0, /):
        self._value = _check_integer(type(self), value, bits=32, signed=False)

    def set(self, text, /):
        self._value = _parse_integer(text, bits=32, signed=False)

    def get(self):
        return self._value

    def __str__(self):
        return str(self._value)


@_adapter("uint")
class Uint64Value:
    def __init__(self, value=0, /):
        self._value = _check_integer(type(self), value, bits=64, signed=False)

    def set(self, text, /):
        self._value = _parse_integer(text, bits=64, signed=False)

    def get(self):
        return self._value

    def __str__(self):
        return str(self._value)


@_adapter("float")
class Float64Value:
    def __init__(self, value=0.0, /):
        if not isinstance(value, int | float) or isinstance(value, bool):
            raise TypeError(f"{type(self).__typename__} 'value' must be a float")
        self._value = float(value)

    def set(self, text, /):
        self._value = _parse_float(text)

    def get(self):
        return self._value

    def __str__(self):
        return _format_float(self._value)


@_adapter("string")
class StringValue:
    def __init__(self, value="", /):
        if not isinstance(value, str):
            raise TypeError(f"{type(self).__typename__} 'value' must be a string")
        self._value = value

    def set(self, text, /):
        self._value = text

    def get(self):
        return self._value

    def __str__(self):
        return self._value


@_adapter("duration")
class DurationValue:
    """
    Duration stored as integer nanoseconds.

    get() returns a datetime.timedelta, which only resolves microseconds;
    the exact count stays available through the nanoseconds property.
    """

    nanoseconds = mirror("nanoseconds")

    def __init__(self, value=datetime.timedelta(), /):
        if not isinstance(value, datetime.timedelta):
            raise TypeError(f"{type(self).__typename__} 'value' must be a timedelta")
        self._nanoseconds = ((value.days * 86_400 + value.seconds) * 1_000_000 + value.microseconds) * 1_000

    def set(self, text, /):
        self._nanoseconds = _parse_duration(text)

    def get(self):
        microseconds = abs(self._nanoseconds) // 1_000
        return datetime.timedelta(microseconds=-microseconds if self._nanoseconds < 0 else microseconds)

    def __str__(self):
        return _format_duration(self._nanoseconds)


@_adapter("")
class VersionValue:
    """
    Boolean flag announcing a version string.

    Switching it on stores True, prints "prog: version" to the output console
    and raises HelpRequested so the program stops the way it does for --help.
    A __prog__ defined in __main__ takes precedence over prog, as it does for
    usage and fault headers.
    """

    version = mirror("version")

    def __init__(self, version, /, prog=Unset, output=Unset):
        if not isinstance(version, str):
            raise TypeError(f"{type(self).__typename__} 'version' must be a string")
        if not isinstance(prog, str | Unset):
            raise TypeError(f"{type(self).__typename__} 'prog' must be a string")
        self._version = version
        self._prog = prog
        self._output = output
        self._value = False

    def set(self, text, /):
        self._value = _parse_bool(text)
        if self._value:
            prog = getattr(__import__("__main__"), "__prog__", coalesce(self._prog, os.path.basename(sys.argv[0])))
            coalesce(self._output, console).print(f"{prog}: {self._version}", markup=False, highlight=False)
            raise HelpRequested.with_traceback(None)

    def get(self):
        return self._value

    def is_bool_flag(self):
        return True

    def __str__(self):
        return "true" if self._value else "false"


__all__ = (
    "BoolValue",
    "IntValue",
    "Int64Value",
    "UintValue",
    "Uint64Value",
    "Float64Value",
    "StringValue",
    "DurationValue",
    "VersionValue",
)
