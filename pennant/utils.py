"""
Small helpers shared by the pennant modules.

- Unset marks a parameter the caller left out. Flag aliases, callbacks,
  flag-set names and consoles all default to it, because None is never the
  right stand-in there and "" is a value the validation has to look at.
- coalesce() turns Unset into a fallback and leaves everything else alone.
- rename() gives generated functions (adapter reprs, mirror getters) a
  readable __name__ for tracebacks and introspection.
- mirror() publishes a private "_x" attribute as a read-only "x" property.
  Lists, dicts and sets come back as copies, so FlagSet.args or
  Registry.formal can be handed out without exposing parser state.

Example:
    >>> class Holder:
    ...     names = mirror("names")
    ...     def __init__(self):
    ...         self._names = ["verbose"]
    >>> holder = Holder()
    >>> holder.names.append("quiet")
    >>> holder.names
    ['verbose']
"""
import builtins
import functools
from collections.abc import Mapping, Sequence, Set
from typing import final


@final
class UnsetType:
    """
    Type of the Unset marker.

    There is exactly one instance, it is falsy and it cannot be subclassed.
    Joining it with a type through "|" yields a union usable with isinstance,
    which is how the constructors check optional string parameters.
    """

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")

    def __or__(self, other, /):
        try:
            return type(self) | other
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"


def coalesce(object, default=None, /):
    """Return default when object is Unset, otherwise object (even if falsy)."""
    if object is Unset:
        return default
    return object


def rename(*parameters):
    """
    rename(function, name) sets __name__ and __qualname__ and returns function;
    rename(name) returns a decorator doing the same.
    """
    if len(parameters) == 1:
        name, = parameters
        if not isinstance(name, str):
            raise TypeError("@rename() argument must be a string")

        def decorator(function):
            if not builtins.callable(function):
                raise TypeError("@rename() must be applied to a callable")
            return rename(function, name)

        return rename(decorator, "rename")

    if len(parameters) != 2:
        raise TypeError(f"rename takes 1 to 2 arguments but {len(parameters)} were given")

    function, name = parameters
    if not builtins.callable(function):
        raise TypeError("rename() first argument must be callable")
    if not isinstance(name, str):
        raise TypeError("rename() second argument must be a string")
    try:
        function.__name__ = function.__qualname__ = name
    except (AttributeError, TypeError):
        raise TypeError("rename() first argument must be a updatable callable") from None
    return function


def _detach(object):
    # Strings are sequences but immutable; Unset surfaces as None.
    if isinstance(object, Mapping):
        return {key: _detach(value) for key, value in object.items()}
    if isinstance(object, Set):
        return {_detach(value) for value in object}
    if isinstance(object, Sequence) and not isinstance(object, str):
        return [_detach(value) for value in object]
    return coalesce(object)


def mirror(name, /):
    """Read-only property returning a detached copy of self._<name>."""
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")
    attribute = "_" + name

    @rename(name)
    def getter(self):
        return _detach(getattr(self, attribute))

    return property(getter, doc=f"Read-only view of {attribute}.")


Unset = UnsetType()
"""The marker for an argument that was not passed."""


__all__ = (
    "coalesce",
    "rename",
    "mirror",
    "UnsetType",
    "Unset",
)
