r"""
Argtree argument specifications.

Overview
- Specs
  • Flag: the (short, long) name pair of an option, bare names without dashes.
  • Option: named switch a command accepts, e.g. -v/--verbose, optionally valued
    (--output=FILE) and optionally required.
  • Parameter: positional argument a command accepts, required or optional.
  • Option.help: the well-known -h/--help sentinel appended to every command.

- Introspection & representation
  • IntrospectableType metaclass provides stable __repr__/__rich_repr__ and exposes
    selected fields via read-only properties declared in __introspectable__.

Metadata (sanitized on construction)
- Shared
  • descr: Unset | str | Text (short help), non-empty when provided.
  • required: bool.
- Option
  • names: one short form "-x" and/or one long form "--long-name".
  • valued: bool, the option expects an attached value (--name=value).
- Parameter
  • name: non-empty string without whitespace (label in help and messages).

Validation highlights
- Short names are a single letter: r"-[^\W\d_]".
- Long names match r"--[^\W\d_][^\W_]*(?:-[^\W_]+)*" (unicode letters allowed, no underscores).
- At most one short and one long name per option, at least one of both.

Quick example:
    >>> from argtree.arguments import Option, Parameter
    >>> verbose = Option("-v", "--verbose", descr="print more")
    >>> output = Option("-o", "--output", descr="write here", valued=True, required=True)
    >>> source = Parameter("source")
    >>> verbose.flag
    Flag(short='v', long='verbose')

Public API
- Classes: Flag, Option, Parameter
"""
import re
from typing import NamedTuple

from rich.text import Text

from .utils import *

_SHORT = r"-(?P<short>[^\W\d_])"
_LONG = r"--(?P<long>[^\W\d_][^\W_]*(?:-[^\W_]+)*)"


class Flag(NamedTuple):
    """
    The name pair of an option: bare names without their dashes.

    Either member may be None, never both.
    """
    short: str | None
    long: str | None

    def __str__(self):
        return ", ".join(
            name for name in (
                self.short and "-" + self.short,
                self.long and "--" + self.long
            ) if name
        )


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: normalize and validate shared argument metadata.

    - descr: optional short description. If omitted (Unset), it becomes None.
      If provided, it must be a non-empty string (or rich Text) after trimming.
    - required: coerced to bool.

    Raises
    - TypeError: if 'descr' is not a string, Text or Unset.
    - ValueError: if 'descr' is a string but empty after trimming.
    """
    if not isinstance(descr := metadata["descr"], str | Text | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")

    metadata["descr"] = coalesce(descr)
    metadata["required"] = bool(metadata["required"])


def _sanitize_named_metadata(cls, metadata, /):
    r"""
    Internal: validate option names and fold them into a Flag.

    Accepted forms
    - short: "-x" (exactly one letter)
    - long: "--long", "--long-name" (letters/digits, single hyphens, no underscores)

    Raises
    - TypeError: when no names are given or a name is not a string.
    - ValueError: when a name is empty, malformed, duplicated, or when two short
      (or two long) forms are given.
    """
    short = long = None
    if not metadata["names"]:
        raise TypeError(f"{cls.__typename__} must specify at least one name")

    for name in metadata["names"]:
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} names must be strings")
        elif not (name := name.strip()):
            raise ValueError(f"{cls.__typename__} names cannot be empty-strings")
        elif match := re.fullmatch(_SHORT, name):
            if short is not None:
                raise ValueError(f"{cls.__typename__} cannot have more than one short name")
            short = match["short"]
        elif match := re.fullmatch(_LONG, name):
            if long is not None:
                raise ValueError(f"{cls.__typename__} cannot have more than one long name")
            long = match["long"]
        else:
            raise ValueError(
                f"{cls.__typename__} names must be '-x' or '--long-name' shell-style option names "
                f"(unicodes are allowed), got {name!r}"
            )

    metadata["flag"] = Flag(short, long)
    del metadata["names"]


class Option(metaclass=IntrospectableType):
    """
    Named option specification.

    Option declares one flag a command accepts. The parser matches tokens such as
    -v, --verbose or --output=path against it through accepts().

    Highlights
    - flag: Flag(short, long), the bare names.
    - valued: when True the option expects an attached value (--name=value);
      when False it is presence-only and must not carry one.
    - required: the option must appear once in an evaluation of its command.
    - descr: one-line help shown in the OPTIONS section.

    Properties
    - The names listed in __introspectable__ are exposed as read-only attributes.
    """

    __introspectable__ = (
        "flag",
        "descr",
        "required",
        "valued",
    )

    def __new__(cls, *names, descr=Unset, required=False, valued=False):
        """
        Construct an Option spec.

        Parameters
        - names: one or two str
          "-x" and/or "--long-name". At least one, at most one of each form.
        - descr: Unset | str | Text
          Short description for help. If Unset, becomes None.
        - required: bool
          The option must be given when its command is evaluated.
        - valued: bool
          The option expects an attached value (--name=value).
        """
        metadata = {
            "names": names,
            "descr": descr,
            "required": required,
            "valued": bool(valued),
        }
        _sanitize_metadata(cls, metadata)
        _sanitize_named_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self

    @property
    def short(self):
        return self._flag.short

    @property
    def long(self):
        return self._flag.long

    @property
    def names(self):
        """
        The dashed spellings of this option, short form first (e.g. ('-v', '--verbose')).
        """
        return tuple(
            name for name in (
                self.short and "-" + self.short,
                self.long and "--" + self.long
            ) if name
        )

    @property
    def help_text(self):
        """
        One OPTIONS line: dashed names (plus '=VALUE' when valued) padded to 30 columns, then descr.
        """
        names = str(self._flag) + ("=VALUE" if self.valued else "")
        descr = self.descr.plain if isinstance(self.descr, Text) else self.descr or ""
        return f"{names:<30}{descr}".rstrip()

    def accepts(self, evaluation, /):
        """
        Tell whether a parsed token (OptionEvaluation) spells this option.

        Short tokens (-x) are compared with the short name, long tokens (--name)
        with the long name.
        """
        if evaluation.form == "short":
            return self.short is not None and evaluation.flag == self.short
        return self.long is not None and evaluation.flag == self.long


Option.help = Option("-h", "--help", descr="Show this help message")
"""
The help sentinel appended to every command's options. Its flag name is "help";
meeting it during evaluation prints the command help and stops evaluation.
"""


class Parameter(metaclass=IntrospectableType):
    """
    Positional argument specification.

    Only the count of parameters matters to the parser: a command accepts at
    least as many positional tokens as it has required parameters, and at most
    as many as it has parameters in total. Values are collected in order as raw
    strings.
    """

    __introspectable__ = (
        "name",
        "descr",
        "required",
    )

    def __new__(cls, name, /, required=True, descr=Unset):
        """
        Construct a Parameter spec.

        Parameters
        - name: str
          Label used in help and messages. Non-empty, no whitespace.
        - required: bool
          Counts towards the command's minimum parameter count.
        - descr: Unset | str | Text
          Short description. If Unset, becomes None.
        """
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} 'name' must be a string")
        elif not (name := name.strip()):
            raise ValueError(f"{cls.__typename__} 'name' cannot be empty")
        elif re.search(r"\s", name):
            raise ValueError(f"{cls.__typename__} 'name' cannot contain whitespaces")

        metadata = {
            "name": name,
            "descr": descr,
            "required": required,
        }
        _sanitize_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self


__all__ = (
    # Public API surface for consumers of argtree.arguments.
    # These names are re-exported from the package __init__.
    "Flag",
    "Option",
    "Parameter",
)
