"""
Pennant faults (parse errors, the help signal) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing fault.
- ErrorHandling: the policy a flag set applies to a terminal parse fault.
- FlagException: base type that carries message + options and knows how to
  render itself in a friendly, lowercased, and actionable way.
- HelpRequested: the distinguished "help was asked for" signal; compare by identity.
- ValueSyntaxError / ValueRangeError: what value adapters raise from set().
- trigger(): central entry point that applies a policy to a fault.
- getdoc(): optional description lookup for a code from the host application.

Integration
- The scanner only raises. The parse driver catches FlagException and calls
  trigger(fault, handling=..., output=..., **rendering) exactly once.
- Under CONTINUE_ON_ERROR the fault is raised and nothing is printed; the other
  two policies render it through rich before exiting or panicking.
"""
import copy
import os
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset, coalesce

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used by the flag parser (stable identifiers).

    grouping
    - token/lookup errors (2110x)
      • BAD_SYNTAX, UNDEFINED_FLAG, MISSING_ARGUMENT
    - value errors (2111x)
      • INVALID_VALUE, OUT_OF_RANGE
    - signals (2210x)
      • HELP_REQUESTED
    """
    FLAG_ERROR       = 21100

    # --- token/lookup errors (2110x) ---
    BAD_SYNTAX       = 21101
    UNDEFINED_FLAG   = 21102
    MISSING_ARGUMENT = 21103

    # --- value errors (2111x) ---
    INVALID_VALUE    = 21111
    OUT_OF_RANGE     = 21112

    # --- signals (22xxx) ---
    HELP_REQUESTED   = 22101

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class ErrorHandling(IntEnum):
    """what parse() does with a terminal fault."""
    CONTINUE_ON_ERROR = 0
    EXIT_ON_ERROR     = 1
    PANIC_ON_ERROR    = 2


class ValueSyntaxError(ValueError):
    def __init__(self, message="parse error", /):
        super().__init__(message)


class ValueRangeError(ValueError):
    def __init__(self, message="value out of range", /):
        super().__init__(message)


class FlagPanic(RuntimeError):
    """Unrecoverable fault raised under PANIC_ON_ERROR; carries the fault it wraps."""

    def __init__(self, error, /):
        super().__init__(str(error))
        self.error = error


class FlagException(Exception):
    __fault__ = FaultCode.FLAG_ERROR
    __title__ = "flag error"
    __hint__ = Unset

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        self.message = coalesce(message, type(self).__title__)
        super().__init__(self.message)
        self.options = MappingProxyType({
            "code": type(self).__fault__,
            "title": type(self).__title__,
            "hint": type(self).__hint__,
            "flag": Unset,
            "token": Unset,
            "prog": Unset,
            "colorful": False,
            "fancy": False,
        } | options)

    @property
    def code(self):
        return self.options["code"]

    @property
    def flag(self):
        return coalesce(self.options["flag"])

    @property
    def token(self):
        return coalesce(self.options["token"])

    def __rich__(self):
        main = __import__("__main__")

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
            "docs": "underline #00E5FF dim",
        } | getattr(main, "__styles__", {}))

        def styler(style):
            return styles[style] if self.options["colorful"] else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not self.options["colorful"]:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        name = getattr(main, "__prog__", coalesce(self.options["prog"], os.path.basename(sys.argv[0])))

        header = Text.assemble(
            "[ ",
            text(name, styler("prog-name")),
            " — ",
            text(self.options["code"].normalize(), styler("code")),
            " | ",
            text(self.options["title"].title(), styler("error-title")),
            " ]"
        )
        renders = [text(self.message, styler("error-message"))]
        if self.options["hint"]:
            renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(self.options["hint"], styler("hint"))))
        if docs := getdoc(self.options["code"]):
            renders.append(text(docs, styler("docs")))

        if self.options["fancy"]:
            return Panel(Group(*renders), title=header, title_align="left")

        return Group(header, *renders)

    def __trigger__(self, /, handling, output):
        match handling:
            case ErrorHandling.CONTINUE_ON_ERROR:
                raise self from self.__cause__
            case ErrorHandling.EXIT_ON_ERROR:
                output.print(self)
                sys.exit(2)
            case ErrorHandling.PANIC_ON_ERROR:
                output.print(self)
                raise FlagPanic(self) from self

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        replica = type(self)(self.message, **{**self.options, **overrides})
        replica.__cause__ = self.__cause__
        return replica


class BadSyntaxError(FlagException):
    __fault__ = FaultCode.BAD_SYNTAX
    __title__ = "bad syntax"
    __hint__ = "flags are written as -f, --flag or --flag=value"


class UndefinedFlagError(FlagException):
    __fault__ = FaultCode.UNDEFINED_FLAG
    __title__ = "undefined flag"
    __hint__ = "run with --help to list the available flags"


class MissingArgumentError(FlagException):
    __fault__ = FaultCode.MISSING_ARGUMENT
    __title__ = "missing argument"
    __hint__ = "pass a value after the flag or attach it with '='"


class InvalidValueError(FlagException):
    __fault__ = FaultCode.INVALID_VALUE
    __title__ = "invalid value"
    __hint__ = "check the expected type of the flag with --help"


class OutOfRangeError(InvalidValueError):
    __fault__ = FaultCode.OUT_OF_RANGE
    __title__ = "out of range"
    __hint__ = "the value does not fit the flag's type"


class HelpRequest(FlagException):
    """
    class of the HelpRequested signal.

    the signal is not a failure: it is never re-rendered, and copy.replace()
    hands back the very same instance so callers can test it by identity.
    the instance is shared by every flag set, so its traceback is dropped
    before it leaves a policy.
    """
    __fault__ = FaultCode.HELP_REQUESTED
    __title__ = "help requested"

    def __trigger__(self, /, handling, output):
        self.__traceback__ = None
        match handling:
            case ErrorHandling.CONTINUE_ON_ERROR:
                raise self from None
            case ErrorHandling.EXIT_ON_ERROR:
                sys.exit(2)
            case ErrorHandling.PANIC_ON_ERROR:
                raise FlagPanic(self) from None

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return self


HelpRequested = HelpRequest("flag: help requested")


def trigger(fault, /, handling=ErrorHandling.CONTINUE_ON_ERROR, output=Unset, **options):
    """
    apply an error-handling policy to a fault.

    contract
    - fault must provide __trigger__ and __replace__ methods (see FlagException).
    - options (prog, colorful, fancy, ...) are merged into the fault via
      copy.replace() before the policy runs.
    - output is the rich console used by EXIT_ON_ERROR and PANIC_ON_ERROR;
      it defaults to the module-level stderr console.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__(handling=ErrorHandling(handling), output=coalesce(output, console))


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ where keys
    are FaultCode instances and values are short documentation strings.
    returns None when nothing is registered.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "FaultCode",
    "ErrorHandling",
    "ValueSyntaxError",
    "ValueRangeError",
    "FlagPanic",
    "FlagException",
    "BadSyntaxError",
    "UndefinedFlagError",
    "MissingArgumentError",
    "InvalidValueError",
    "OutOfRangeError",
    "HelpRequest",
    "HelpRequested",
    "trigger",
    "getdoc",
)
