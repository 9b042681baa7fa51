"""
Argtree faults: what goes wrong while evaluating a command line, and how it is shown.

Layout
- FaultCode: stable numeric identifier of every fault, grouped by the stage that raises it.
- CommandException: message plus a read-only bag of context (code, title, hint,
  and the rendering switches shell/colorful/prog/fancy), renderable with rich.
- ParseError / ValidateError: the two kinds the evaluator raises.
- trigger(fault, **options): merge options into a copy of the fault, then raise
  it, or print it on stderr and exit with status 1 when shell=True.

Faults travel as ordinary exceptions through every recursive evaluation frame;
only invoke() catches them, to hand them to trigger().
"""
import copy
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

_PALETTE = {
    "prog-name": "bold #F2F2F7",
    "code": "bold #3FD7FF",
    "error-title": "bold #FF5C8A",
    "error-message": "#CFCFD8",
    "hint-arrow": "dim #8FE3A1",
    "hint": "italic #8FE3A1",
}


class FaultCode(IntEnum):
    """
    stable fault identifiers.

    - 111xx  token stream (nothing to evaluate, malformed option token)
    - 112xx  command shape (Command.validate)
    - 113xx  evaluation against its command (CommandEvaluation.validate)
      • 1130x positional tokens, 1131x options, 1132x evaluation chain
    """
    NO_ARGUMENTS                = 11101
    MALFORMED_TOKEN             = 11111

    PARAMETERS_AND_SUBCOMMANDS  = 11201
    DUPLICATED_SUBCOMMAND       = 11202
    DUPLICATED_FLAG             = 11203

    UNKNOWN_SUBCOMMAND          = 11301
    MISSING_PARAMETERS          = 11302
    TOO_MANY_PARAMETERS         = 11303

    UNKNOWN_OPTION              = 11311
    DUPLICATED_OPTION           = 11312
    MISSING_VALUE               = 11313
    UNEXPECTED_VALUE            = 11314
    MISSING_REQUIRED_OPTION     = 11315

    FOREIGN_SUBEVALUATION       = 11321

    def normalize(self):
        """
        label shown for this code: the host's `__codes__[code]` when __main__
        defines such a mapping, the number otherwise.
        """
        labels = getattr(__import__("__main__"), "__codes__", {})
        return str(labels.get(self, self.value))


class CommandException(Exception):
    """
    base of every argtree fault.

    - str(fault) and fault.message give the message.
    - fault.options is a read-only mapping of context: code, title, hint, and
      the rendering switches shell, colorful, prog and fancy.
    - copy.replace(fault, **options) builds the same kind of fault with the
      options merged in.
    """

    def __init__(self, message=Unset, /, **options):
        if not isinstance(message, str | Unset):
            raise TypeError("fault message must be a string")
        super().__init__(*([] if message is Unset else [message]))
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return "" if self.message is Unset else self.message

    def _styles(self):
        palette = defaultdict(str, _PALETTE | getattr(__import__("__main__"), "__styles__", {}))
        if self.options.get("colorful", False):
            return palette
        return defaultdict(str)

    def __rich__(self):
        styles = self._styles()

        def piece(fragment, key):
            if isinstance(fragment, Text):
                return fragment.copy() if self.options.get("colorful", False) else Text(fragment.plain)
            return Text(str(fragment), styles[key])

        prog = getattr(__import__("__main__"), "__prog__", self.options.get("prog", "argtree"))
        header = Text("[ ").append_text(piece(prog, "prog-name"))
        if (code := self.options.get("code")) is not None:
            header.append(" | ").append_text(piece(code.normalize(), "code"))
        if title := self.options.get("title"):
            header.append(" | ").append_text(piece(title.title(), "error-title"))
        header.append(" ]")

        body = [piece(str(self), "error-message")]
        if hint := self.options.get("hint"):
            body.append(piece(" → ", "hint-arrow").append_text(piece(hint, "hint")))

        if self.options.get("fancy", False):
            return Panel(Group(*body), title=header, title_align="left")
        return Group(header, *body)

    def __trigger__(self):
        if self.options.get("shell", False):
            Console(stderr=True).print(self)
            sys.exit(1)
        raise self from None

    def __replace__(self, /, **options):
        return type(self)(self.message, **(dict(self.options) | options))


class ParseError(CommandException):
    """
    the token stream cannot be consumed: no token left for a command level,
    or a malformed option token.
    """


class ValidateError(CommandException):
    """
    a command is ill-formed, or an evaluation does not fit the command describing it.
    """


def trigger(fault, /, **options):
    """
    merge `options` into a copy of `fault` and surface it.

    the fault must implement __replace__ (used by copy.replace) and __trigger__;
    with shell=True the copy is printed on stderr and the process exits with 1,
    otherwise the copy is raised.
    """
    if not all(callable(getattr(fault, hook, None)) for hook in ("__replace__", "__trigger__")):
        raise TypeError("trigger() expects a fault implementing __replace__ and __trigger__")
    copy.replace(fault, **options).__trigger__()


__all__ = (
    "FaultCode",
    "CommandException",
    "ParseError",
    "ValidateError",
    "trigger",
)
