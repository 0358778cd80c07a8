r"""
Pennant flag sets: definitions, the registry and the parsing engine.

Overview
- Flag: a registered slot binding a long name, an optional one-character
  alias, usage text, a value object (see pennant.values) and an optional
  callback run after every successful assignment.
- Registry: the flags of one flag set, the alias index derived from them and
  the flags assigned during the most recent parse.
- FlagSet: registration helpers, the token scanner and the parse driver that
  applies the configured ErrorHandling policy.
- commandline: the flag set of the running process (EXIT_ON_ERROR).

Accepted syntax
- --name, --name=value, --name value (unless the value is a boolean flag)
- -a, -a=value, -a value and grouped aliases such as -abc; in a group only
  the alias right before '=' receives the attached value.
- "--" ends flag scanning; "-" and tokens without a leading dash are positional.
- --help / -h print the usage and raise HelpRequested unless a flag of that
  name/alias was registered.

Quick example:
    >>> flags = FlagSet("demo")
    >>> verbose = flags.bool("verbose", "v")
    >>> level = flags.int("level", "l", 1)
    >>> flags.parse(["-v", "--level=3", "input.txt"])
    >>> verbose.get(), level.get(), flags.args
    (True, 3, ['input.txt'])
"""
import functools
import operator
import os
import shlex
import sys
from collections import defaultdict
from collections.abc import Iterable

from rich import box
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .faults import *
from .faults import console
from .utils import *
from .values import *


def _is_bool_flag(value, /):
    return hasattr(value, "is_bool_flag") and callable(value.is_bool_flag) and bool(value.is_bool_flag())


def _apply(flag, text, message, /):
    """
    Hand text to the flag's value and translate what set() raises.

    HelpRequested passes through untouched; ValueRangeError becomes
    OutOfRangeError and any other failure becomes InvalidValueError, both
    prefixed with message.
    """
    try:
        flag.value.set(text)
    except HelpRequest:
        raise
    except ValueRangeError as error:
        raise OutOfRangeError(f"{message}: {error}", flag=flag.name, token=text) from error
    except Exception as error:
        raise InvalidValueError(f"{message}: {error}", flag=flag.name, token=text) from error


def _unquote(flag, /):
    """
    Return (metavar, usage) for help output.

    A back-quoted word in the usage text names the metavar; otherwise it is
    taken from the value's type, and boolean flags have none.
    """
    usage = flag.usage
    if (start := usage.find("`")) != -1 and (end := usage.find("`", start + 1)) != -1:
        return usage[start + 1:end], usage[:start] + usage[start + 1:end] + usage[end + 1:]
    if _is_bool_flag(flag.value):
        return "", usage
    return getattr(type(flag.value), "__metavar__", "value"), usage


def _is_zero(flag, /):
    try:
        zero = type(flag.value)()
    except TypeError:
        return flag.default in ("", "0", "false", "0s")
    return flag.default == str(zero)


class Flag:
    """
    A registered flag.

    The name must be non-empty, must not start with '-' and must not contain
    '='. The alias, when given, is a single character other than '-', '=' or
    whitespace. The textual default is captured from the value at
    construction time.
    """
    __introspectable__ = ("name", "alias", "usage", "default")

    name = mirror("name")
    alias = mirror("alias")
    usage = mirror("usage")
    default = mirror("default")
    callback = mirror("callback")

    def __init__(self, value, name, /, alias=Unset, usage="", callback=Unset):
        if not hasattr(value, "set") or not callable(value.set):
            raise TypeError("flag 'value' must provide a set() method")
        if not isinstance(name, str):
            raise TypeError("flag 'name' must be a string")
        if not name or name.startswith("-") or "=" in name:
            raise ValueError(f"flag 'name' must be non-empty, without a leading '-' and without '=': {name!r}")
        if alias is not Unset:
            if not isinstance(alias, str):
                raise TypeError("flag 'alias' must be a string")
            if len(alias) != 1 or alias in ("-", "=") or alias.isspace():
                raise ValueError(f"flag 'alias' must be a single character other than '-' and '=': {alias!r}")
        if not isinstance(usage, str):
            raise TypeError("flag 'usage' must be a string")
        if callback is not Unset and not callable(callback):
            raise TypeError("flag 'callback' must be callable")

        self._value = value
        self._name = name
        self._alias = alias
        self._usage = usage
        self._callback = callback
        self._default = str(value)

    @property
    def value(self):
        return self._value

    def __repr__(self):
        return f"flag({", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))})"

    def __rich_repr__(self):
        for name in type(self).__introspectable__:
            yield name, getattr(self, name)


class Registry:
    """
    Flag definitions of one flag set.

    - formal: name -> Flag, always enumerated in ascending name order.
    - aliases: alias -> name, updated with every definition.
    - actual: name -> Flag for the flags assigned since the last reset.

    Names and aliases are unique; redefining either raises ValueError.
    """

    formal = mirror("formal")
    aliases = mirror("aliases")
    actual = mirror("actual")

    def __init__(self):
        self._formal = {}
        self._aliases = {}
        self._actual = {}

    def define(self, flag, /):
        if not isinstance(flag, Flag):
            raise TypeError("define() argument must be a flag")
        if flag.name in self._formal:
            raise ValueError(f"flag redefined: {flag.name}")
        if flag.alias is not None and flag.alias in self._aliases:
            raise ValueError(f"flag alias redefined: -{flag.alias} (bound to --{self._aliases[flag.alias]})")
        self._formal[flag.name] = flag
        if flag.alias is not None:
            self._aliases[flag.alias] = flag.name
        return flag

    def lookup(self, name, /):
        return self._formal.get(name)

    def resolve(self, alias, /):
        return self._aliases.get(alias)

    def mark(self, flag, /):
        self._actual[flag.name] = flag

    def reset(self):
        self._actual.clear()

    def visit_all(self, visitor, /):
        for name in sorted(self._formal):
            visitor(self._formal[name])

    def visit(self, visitor, /):
        for name in sorted(self._actual):
            visitor(self._actual[name])

    def __iter__(self):
        return (self._formal[name] for name in sorted(self._formal))

    def __len__(self):
        return len(self._formal)

    def __contains__(self, name):
        return name in self._formal


class FlagSet:
    """
    A named set of flags and the parser that fills them.

    Parameters
    - name: shown in usage and fault headers; defaults to basename(sys.argv[0]).
    - handling: ErrorHandling applied to a terminal parse fault.
    - stop: when True, scanning ends at the first positional token and every
      token from there on is left in args untouched.
    - output: rich Console used for usage, version and fault output; defaults
      to the shared stderr console.
    - usage: callable taking the flag set, replacing the default usage render.
    - colorful / fancy: styled output and panel framing for usage and faults.

    Lifecycle
    - register flags with var() or the typed helpers (bool, int, ...);
    - call parse() with the tokens; read values, args and visit() afterwards.
    Each parse() starts from a clean slate for args and the assigned flags.
    """

    name = mirror("name")
    handling = mirror("handling")
    stop = mirror("stop")
    output = mirror("output")
    colorful = mirror("colorful")
    fancy = mirror("fancy")
    parsed = mirror("parsed")
    registry = mirror("registry")
    args = mirror("args")

    def __init__(
            self,
            name=Unset,
            /,
            handling=ErrorHandling.CONTINUE_ON_ERROR,
            stop=False,
            *,
            output=Unset,
            usage=Unset,
            colorful=False,
            fancy=False
    ):
        if not isinstance(name, str | Unset):
            raise TypeError("flag-set 'name' must be a string")
        if output is not Unset and not isinstance(output, Console):
            raise TypeError("flag-set 'output' must be a rich console")
        if usage is not Unset and not callable(usage):
            raise TypeError("flag-set 'usage' must be callable")

        self._name = coalesce(name, os.path.basename(sys.argv[0]))
        self._handling = ErrorHandling(handling)
        self._stop = bool(stop)
        self._output = coalesce(output, console)
        self._usage = usage
        self._colorful = bool(colorful)
        self._fancy = bool(fancy)

        self._registry = Registry()
        self._args = []
        self._index = 0
        self._parsed = False

    @property
    def narg(self):
        return len(self._args)

    @property
    def nflag(self):
        return len(self._registry.actual)

    def arg(self, index, /):
        """Return the index-th remaining positional argument, or "" when there is none."""
        if 0 <= index < len(self._args):
            return self._args[index]
        return ""

    def lookup(self, name, /):
        return self._registry.lookup(name)

    def visit_all(self, visitor, /):
        self._registry.visit_all(visitor)

    def visit(self, visitor, /):
        self._registry.visit(visitor)

    def var(self, value, name, /, alias=Unset, usage="", callback=Unset):
        """
        Register value under name (and alias) and return the new Flag.

        value is any object with set(text) and __str__(); get() and
        is_bool_flag() are picked up when present.
        """
        return self._registry.define(Flag(value, name, alias, usage, callback))

    def bool(self, name, /, alias=Unset, value=False, usage="", callback=Unset):
        return self.var(BoolValue(value), name, alias, usage, callback).value

    def int(self, name, /, alias=Unset, value=0, usage="", callback=Unset):
        return self.var(IntValue(value), name, alias, usage, callback).value

    def int64(self, name, /, alias=Unset, value=0, usage="", callback=Unset):
        return self.var(Int64Value(value), name, alias, usage, callback).value

    def uint(self, name, /, alias=Unset, value=0, usage="", callback=Unset):
        return self.var(UintValue(value), name, alias, usage, callback).value

    def uint64(self, name, /, alias=Unset, value=0, usage="", callback=Unset):
        return self.var(Uint64Value(value), name, alias, usage, callback).value

    def float64(self, name, /, alias=Unset, value=0.0, usage="", callback=Unset):
        return self.var(Float64Value(value), name, alias, usage, callback).value

    def string(self, name, /, alias=Unset, value="", usage="", callback=Unset):
        return self.var(StringValue(value), name, alias, usage, callback).value

    def duration(self, name, /, alias=Unset, value=Unset, usage="", callback=Unset):
        if value is Unset:
            return self.var(DurationValue(), name, alias, usage, callback).value
        return self.var(DurationValue(value), name, alias, usage, callback).value

    def version(self, name, version, /, alias=Unset, usage="", callback=Unset):
        value = VersionValue(version, prog=self._name, output=self._output)
        return self.var(value, name, alias, usage, callback).value

    def set(self, name, text, /):
        """
        Assign text to the flag called name as if it had been parsed.

        Raises UndefinedFlagError for unknown names and InvalidValueError /
        OutOfRangeError when the value rejects the text.
        """
        if (flag := self._registry.lookup(name)) is None:
            raise UndefinedFlagError(f"no such flag --{name}", flag=name)
        _apply(flag, text, f"invalid value {text!r} for flag --{name}")
        self._commit(flag)

    def usage(self):
        if self._usage is Unset:
            self._helper()
        else:
            self._usage(self)

    def _helper(self):
        """
        Render the default usage message to the output console.

        Palette keys
        - usage-label, program-name, table-border, header
        - flag-name, metavar, flag-usage, default

        Customization
        - Define a mapping named __styles__ in __main__ to override any palette entry.
        - When colorful is False, styling is suppressed.
        """
        main = __import__("__main__")

        styles = defaultdict(str, {
            "usage-label": "bold #00E6FF",  # CYAN → signature info color
            "program-name": "bold #FF4D94",  # MAGENTA-PINK → brand pop
            "table-border": "#4B5563",  # Slate border
            "header": "bold #FFFFFF",
            "flag-name": "bold #22C55E",
            "metavar": "bold #FFD600",  # AMBER for parameters
            "flag-usage": "#9CA3AF",  # Muted gray
            "default": "italic #A3A3A3",
        } | getattr(main, "__styles__", {}))

        def styler(style):
            return styles[style] if self._colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not self._colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        title = Text.assemble(
            text("usage of ", styler("usage-label")),
            text(getattr(main, "__prog__", self._name), styler("program-name")),
            ":",
        )
        if not len(self._registry):
            self._output.print(title)
            return

        table = Table(
            "flag", "usage", "default",
            box=box.ROUNDED,
            style=styler("table-border"),
            header_style=styler("header"),
        )
        for flag in self._registry:
            forms = ((f"-{flag.alias}",) if flag.alias is not None else ()) + (f"--{flag.name}",)
            names = Text(", ").join(text(form, styler("flag-name")) for form in forms)
            metavar, usage = _unquote(flag)
            if metavar:
                names.append(" ").append(text(metavar, styler("metavar")))
            default = "" if _is_zero(flag) else flag.default
            table.add_row(names, text(usage, styler("flag-usage")), text(default, styler("default")))

        renderable = Group(title, table)
        if self._fancy:
            renderable = Panel(table, title=title, title_align="left")
        self._output.print(renderable)

    def _commit(self, flag, /):
        self._registry.mark(flag)
        if flag.callback is not None:
            flag.callback(flag)

    def _assign(self, flag, text, explicit, /):
        if _is_bool_flag(flag.value):
            if explicit:
                _apply(flag, text, f"invalid boolean value {text!r} for --{flag.name}")
            else:
                _apply(flag, "true", f"invalid boolean flag {flag.name}")
        elif explicit:
            _apply(flag, text, f"invalid value {text!r} for flag --{flag.name}")
        elif self._index < len(self._args):
            text = self._args.pop(self._index)
            _apply(flag, text, f"invalid value {text!r} for flag --{flag.name}")
        else:
            raise MissingArgumentError(f"flag needs an argument: --{flag.name}", flag=flag.name)
        self._commit(flag)

    def _long(self, body, /):
        name, separator, text = body.partition("=")
        if (flag := self._registry.lookup(name)) is None:
            if name == "help":
                self.usage()
                raise HelpRequested.with_traceback(None)
            raise UndefinedFlagError(f"flag provided but not defined: --{name}", flag=name, token=f"--{body}")
        self._assign(flag, text, bool(separator))

    def _short(self, body, /):
        aliases, separator, text = body.partition("=")
        for index, alias in enumerate(aliases):
            if (name := self._registry.resolve(alias)) is None:
                if alias == "h":
                    self.usage()
                    raise HelpRequested.with_traceback(None)
                raise UndefinedFlagError(f"flag provided but not defined: -{alias}", flag=alias, token=f"-{body}")
            # Only the alias written right before '=' owns the attached value.
            last = index == len(aliases) - 1
            self._assign(self._registry.lookup(name), text if last else "", last and bool(separator))

    def _scan(self):
        """
        Classify the token at the cursor; return whether scanning goes on.

        Flag tokens are removed from args together with any value they
        consume; positional tokens stay and the cursor moves past them.
        """
        if self._index >= len(self._args):
            return False

        token = self._args[self._index]
        if len(token) < 2 or token[0] != "-":
            if self._stop:
                return False
            self._index += 1
            return self._index < len(self._args)

        del self._args[self._index]
        if token == "--":
            return False

        dashes = 2 if token[1] == "-" else 1
        body = token[dashes:]
        if not body or body[0] in ("-", "="):
            raise BadSyntaxError(f"bad flag syntax: {token}", token=token)

        if dashes == 2:
            self._long(body)
        else:
            self._short(body)
        return self._index < len(self._args)

    def parse(self, arguments=Unset, /):
        """
        Parse arguments into the registered flags.

        Parameters
        - arguments:
          • Unset: read tokens from sys.argv[1:].
          • str: shell-like string; will be split via shlex.split.
          • Iterable[str]: pre-tokenized sequence, copied before scanning.

        Outcome
        - Remaining positional tokens are available through args/arg()/narg.
        - A fault is handled according to the flag set's ErrorHandling:
          raised (CONTINUE_ON_ERROR), printed then sys.exit(2)
          (EXIT_ON_ERROR), or printed then FlagPanic (PANIC_ON_ERROR).
          Assignments made before the fault stay in effect.
        """
        if arguments is Unset:
            tokens = sys.argv[1:]
        elif isinstance(arguments, str):
            tokens = shlex.split(arguments)
        elif isinstance(arguments, Iterable):
            tokens = list(arguments)
            if not all(isinstance(token, str) for token in tokens):
                raise TypeError("parse() argument must be a string or an iterable of strings")
        else:
            raise TypeError("parse() argument must be a string or an iterable of strings")

        self._parsed = True
        self._args = tokens
        self._index = 0
        self._registry.reset()

        try:
            while self._scan():
                pass
        except FlagException as fault:
            trigger(
                fault,
                handling=self._handling,
                output=self._output,
                prog=self._name,
                colorful=self._colorful,
                fancy=self._fancy,
            )

    def __repr__(self):
        return f"flag-set({", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))})"

    def __rich_repr__(self):
        yield "name", self._name
        yield "handling", self._handling
        yield "stop", self._stop
        yield "flags", len(self._registry)


commandline = FlagSet(os.path.basename(sys.argv[0]), ErrorHandling.EXIT_ON_ERROR)
"""
The flag set of the running process.

An ordinary FlagSet created at import time with EXIT_ON_ERROR; tests and
libraries should build their own instances instead of sharing this one.
"""


__all__ = (
    "Flag",
    "Registry",
    "FlagSet",
    "commandline",
)
