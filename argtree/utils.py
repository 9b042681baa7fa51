"""
Small helpers shared by the argtree layers.

Contents
- Unset: the "not given" default of keyword parameters, distinct from None.
- coalesce(value, default): swap Unset for a real default.
- rename(...): give generated functions readable names.
- mirror(name): read-only property over "_name", handing out detached copies.
- pluralize(word) / ordinal(position): English fragments for fault messages.
- IntrospectableType: metaclass behind Option, Parameter, Command and the
  evaluations (typename, mirrored fields, repr and rich repr).
- logger: the "argtree" logger. Handlers are configured by the application.
"""
import builtins
import functools
import logging
import re
from collections.abc import Mapping, Sequence, Set
from typing import final

logger = logging.getLogger("argtree")


@final
class UnsetType:
    """
    Type of the Unset marker.

    Unset stands for an argument the caller left out, so that None stays
    available as a real value. It is falsy, prints as "Unset", and there is
    only ever one of it: calling UnsetType() hands back the same object.
    """

    def __or__(self, other, /):
        """
        Allow `str | Unset` unions in annotations and isinstance() checks.
        """
        try:
            return type(self) | other
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("UnsetType cannot be subclassed")


Unset = UnsetType()


def coalesce(object, default=None, /):
    """
    Return `default` when `object` is Unset, `object` otherwise.

    Only Unset is replaced: None, 0, "" and empty containers come back as they are.
    """
    if object is Unset:
        return default
    return object


def rename(*parameters):
    """
    Give a function the __name__ and __qualname__ `name`.

    rename(function, name) updates and returns the function; rename(name)
    returns a decorator doing the same.
    """
    if len(parameters) == 1:
        name, = parameters
        if not isinstance(name, str):
            raise TypeError("@rename() expects a string name")
        return rename(lambda function: rename(function, name), "rename")

    if len(parameters) != 2:
        raise TypeError("rename() takes 1 or 2 arguments (%d given)" % len(parameters))

    function, name = parameters
    if not builtins.callable(function):
        raise TypeError("rename() can only rename callables")
    if not isinstance(name, str):
        raise TypeError("rename() expects a string name")
    try:
        function.__name__ = function.__qualname__ = name
    except (AttributeError, TypeError):
        raise TypeError("rename() cannot rename %r" % function) from None
    return function


def _detach(object):
    # tuples and strings are shared; lists, dicts and sets are copied deeply
    if isinstance(object, str | tuple):
        return object
    if isinstance(object, Sequence):
        return [_detach(item) for item in object]
    if isinstance(object, Mapping):
        return {key: _detach(value) for key, value in object.items()}
    if isinstance(object, Set):
        return {_detach(item) for item in object}
    return object


def mirror(name, /):
    """
    Read-only property returning `self._<name>`; containers come back as copies.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() expects a string name")

    @rename(name)
    def getter(self):
        return _detach(getattr(self, "_" + name))

    return property(getter)


@functools.cache
def pluralize(text, /):
    """
    Plural of the last word of `text`, keeping its casing.

    >>> pluralize("required option"), pluralize("alias"), pluralize("FLAG")
    ('required options', 'aliases', 'FLAGS')
    """
    if not isinstance(text, str):
        raise TypeError("pluralize() expects a string")

    head, word, tail = re.fullmatch(r"(.*?)(\S*)(\s*)", text, re.DOTALL).groups()
    if not word:
        return text

    lowered = word.lower()
    if re.search(r"(s|sh|ch|x|z)$", lowered):
        plural = lowered + "es"
    elif re.search(r"[^aeiou]y$", lowered):
        plural = lowered[:-1] + "ies"
    else:
        plural = lowered + "s"

    if word.isupper():
        plural = plural.upper()
    elif word[0].isupper():
        plural = plural.capitalize()
    return head + plural + tail


_ORDINALS = ("first", "second", "third", "fourth", "fifth", "sixth", "seventh", "eighth", "ninth", "tenth")


@functools.cache
def ordinal(number, /):
    """
    "first" through "tenth" in words, then "11th", "21st", "112th"...
    """
    if 1 <= number <= len(_ORDINALS):
        return _ORDINALS[number - 1]
    if number % 100 in (11, 12, 13):
        return "%dth" % number
    return "%d%s" % (number, {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th"))


class IntrospectableType(type):
    """
    Metaclass of every argtree value object.

    A class using it gets
    - __typename__: the class name in kebab case ("CommandEvaluation" gives
      "command-evaluation"), used as the subject of constructor errors;
    - one mirror() property per name in __introspectable__;
    - __repr__ and __rich_repr__ over __displayable__, or over __introspectable__
      when no __displayable__ is declared.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        fields = {field: mirror(field) for field in namespace.get("__introspectable__", ())}
        typename = "-".join(part.lower() for part in re.findall(r"[A-Z]?[a-z0-9]+|[A-Z]+(?![a-z])", name))
        self = super().__new__(cls, name, bases, {**namespace, "__typename__": typename, **fields}, **options)

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for field in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield field, getattr(self, field)

        @rename("__repr__")
        def __repr__(self):
            return "%s(%s)" % (
                type(self).__typename__,
                ", ".join("%s=%r" % pair for pair in self.__rich_repr__())
            )

        self.__rich_repr__ = __rich_repr__
        self.__repr__ = __repr__
        return self


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",
    "pluralize",
    "ordinal",

    # Types
    "UnsetType",
    "IntrospectableType",

    # Constants
    "Unset",
)
