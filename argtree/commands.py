"""
Argtree command layer: describe, validate and evaluate command trees.

What this module provides
- Command: a node of the command tree with
  • identity and help metadata (name, overview, usage),
  • options (always ending with Option.help), and either parameters or subcommands,
  • an optional callback run by CommandEvaluation.perform_callbacks(),
  • validate(): the shape invariants of one node,
  • evaluate(arguments): the recursive evaluator producing a CommandEvaluation,
  • name-based subcommand access (command["sub"], command.get("sub"), upserts).
- Factories and helpers:
  • command(...): decorator turning a function into a Command with that callback.
  • invoke(command, prompt): process entry point (argv, callbacks, fault rendering).

Core ideas
- Single left-to-right pass, no backtracking: a token is a subcommand name, an
  option or a positional parameter, tried in that order.
- A matched subcommand receives every remaining token; the parent stops parsing.
- -h/--help prints the help of the current level and ends evaluation (not an error).
- Faults are ParseError/ValidateError; they propagate to the caller untouched.

Quick start
    from argtree import command, invoke, Option, Parameter

    @command(overview="A tiny tool")
    def tool(evaluation): ...

    @tool.command(options=[Option("-f", "--force")], parameters=[Parameter("path")])
    def remove(evaluation):
        print("removing", evaluation.parameters[0], "forced" if "force" in evaluation else "")

    if __name__ == "__main__":
        invoke(tool)  # e.g. `tool remove --force ./build`
"""
import inspect
import re
import shlex
import sys
from collections import Counter, defaultdict, deque
from collections.abc import Iterable

from rich.console import Console
from rich.text import Text

from .arguments import Option, Parameter
from .evaluations import CommandEvaluation, OptionEvaluation
from .faults import *
from .utils import *
from .utils import logger


def _sanitize_strings(cls, metadata, /):
    """
    Internal: validate identity and help scalars.

    - name: non-empty string, no whitespace, must not start with '-' (it would
      read as an option token).
    - overview: Unset | str | Text; trimmed; Unset becomes None.
    - usage: Unset | str | Text; trimmed; Unset keeps the synthesized default.
    """
    if not isinstance(name := metadata["name"], str):
        raise TypeError(f"{cls.__typename__} 'name' must be a string")
    elif not (name := name.strip()):
        raise ValueError(f"{cls.__typename__} 'name' cannot be empty")
    elif re.search(r"\s", name) or name.startswith("-"):
        raise ValueError(f"{cls.__typename__} 'name' must not contain whitespaces nor start with '-'")
    metadata["name"] = name

    for key in ("overview", "usage"):
        if not isinstance(value := metadata[key], str | Text | Unset):
            raise TypeError(f"{cls.__typename__} {key!r} must be a string")
        elif isinstance(value, str) and not (value := value.strip()):
            raise ValueError(f"{cls.__typename__} {key!r} cannot be empty")
        metadata[key] = value

    metadata["overview"] = coalesce(metadata["overview"])


def _sanitize_children(cls, metadata, /):
    """
    Internal: validate the option, parameter and subcommand collections.

    Only element types are checked here. Tree invariants (parameters XOR
    subcommands, unique names, unique flags) belong to Command.validate(), which
    the evaluator runs at every level it enters.
    """
    for key, kind in (("options", Option), ("parameters", Parameter), ("subcommands", Command)):
        if not isinstance(metadata[key], Iterable) or isinstance(metadata[key], str):
            raise TypeError(f"{cls.__typename__} {key!r} must be iterable")
        metadata[key] = list(metadata[key])
        if not all(isinstance(child, kind) for child in metadata[key]):
            raise TypeError(f"{cls.__typename__} {key!r} must only contain {kind.__typename__} items")

    if any(option is Option.help for option in metadata["options"]):
        raise ValueError(f"{cls.__typename__} 'options' cannot contain the help option, it is appended automatically")
    metadata["options"].append(Option.help)

    if metadata["callback"] is not None and not callable(metadata["callback"]):
        raise TypeError(f"{cls.__typename__} 'callback' must be callable")


class Command(metaclass=IntrospectableType):
    """
    A node of the command tree.

    A command owns its options, and either positional parameters or subcommands,
    never both (checked by validate()). Subcommands are owned children, reached by
    name. The callback is stored for CommandEvaluation.perform_callbacks(); the
    evaluator itself never calls it.

    Properties
    - name, overview, options, parameters, subcommands, callback, colorful are
      read-only; collections are returned as copies. Edit the tree through the
      subcommand subscript (command[name] = child, del command[name]).
    """

    __introspectable__ = (
        "name",
        "overview",
        "options",
        "parameters",
        "subcommands",
        "callback",
        "colorful",
    )
    __displayable__ = (
        "name",
        "overview",
        "usage",
        "options",
        "parameters",
        "subcommands",
    )

    def __new__(
            cls,
            name,
            /,
            overview=Unset,
            options=(),
            parameters=(),
            subcommands=(),
            usage=Unset,
            callback=None,
            *,
            colorful=False
    ):
        """
        Construct a Command.

        Parameters
        - name: str
          Identifier, unique among siblings; matched verbatim against tokens.
        - overview: Unset | str | Text
          One-line summary shown in help (OVERVIEW, and in the parent's SUBCOMMANDS).
        - options: Iterable[Option]
          Options this command accepts. Option.help is appended automatically.
        - parameters: Iterable[Parameter]
          Positional parameters; only their count and required-ness matter.
        - subcommands: Iterable[Command]
          Child commands. A command with subcommands cannot take parameters.
        - usage: Unset | str | Text
          Usage line; synthesized from the shape of the command when Unset.
        - callback: Callable[[CommandEvaluation], None] | None
          Run by perform_callbacks() with this command's evaluation.
        - colorful: bool
          Style the help output (palette overridable with __styles__ in __main__).

        Raises
        - TypeError/ValueError on invalid metadata. Tree invariants are not
          checked here (see validate()).
        """
        metadata = {
            "name": name,
            "overview": overview,
            "usage": usage,
            "options": options,
            "parameters": parameters,
            "subcommands": subcommands,
            "callback": callback,
            "colorful": bool(colorful),
        }
        _sanitize_strings(cls, metadata)
        _sanitize_children(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self

    @property
    def usage(self):
        """
        The explicit usage line, or "<name> [options] subcommand" for routing
        commands and "<name> [options] [parameters]" otherwise.
        """
        if self._usage is not Unset:
            return self._usage
        if self._subcommands:
            return f"{self._name} [options] subcommand"
        return f"{self._name} [options] [parameters]"

    @property
    def min_parameter_count(self):
        """
        Number of required parameters.
        """
        return sum(1 for parameter in self._parameters if parameter.required)

    @property
    def max_parameter_count(self):
        """
        Number of parameters.
        """
        return len(self._parameters)

    @property
    def help_text(self):
        """
        Plain help for this level only (not recursive).

        Layout
        - OVERVIEW: <overview>
        - USAGE: <usage>
        - SUBCOMMANDS: one line per child, name padded/truncated to 30 columns, then its overview
        - OPTIONS: one line per option (Option.help_text)
        """
        return self._render().plain

    def _render(self, styler=lambda style: ""):
        """
        Build the help as rich Text; styler maps a palette key to a rich style.
        """
        def plain(fragment):
            return fragment.plain if isinstance(fragment, Text) else fragment or ""

        help = Text()
        help.append("OVERVIEW:", styler("section-label")).append(" ")
        help.append(plain(self._overview), styler("overview")).append("\n\n")
        help.append("USAGE:", styler("section-label")).append(" ")
        help.append(plain(self.usage), styler("usage")).append("\n\n")

        help.append("SUBCOMMANDS:", styler("section-label"))
        for child in self._subcommands:
            help.append("\n   ")
            help.append(child.name.ljust(30)[:30], styler("subcommand-name"))
            help.append(plain(child.overview), styler("description"))
        help.append("\n\n")

        help.append("OPTIONS:", styler("section-label"))
        for option in self._options:
            help.append("\n   ")
            help.append(option.help_text, styler("option"))

        return help

    def _helper(self):
        """
        Print this command's help to standard output.

        Palette keys
        - section-label, overview, usage, subcommand-name, description, option

        Customization
        - Define a mapping named __styles__ in __main__ to override any palette entry.
        - When colorful is False, styling is suppressed.
        """
        styles = defaultdict(str, {
            "section-label": "bold #FFFFFF",  # Pure white headers
            "overview": "italic #A3A3A3",  # Neutral gray
            "usage": "bold #36C5F0",  # SKY-BLUE
            "subcommand-name": "bold #FF4D94",  # MAGENTA-PINK
            "description": "#9CA3AF",  # Muted gray
            "option": "bold #00E6FF",  # CYAN for options
        } | getattr(__import__("__main__"), "__styles__", {}))

        def styler(style):
            return styles[style] if self._colorful else ""

        Console(highlight=False).print(self._render(styler), soft_wrap=True)

    def validate(self):
        """
        Ensure this command's shape is valid (this level only, no recursion).

        Rules
        - parameters and subcommands are not both non-empty;
        - subcommand names are pairwise distinct;
        - option short names are pairwise distinct, and so are long names
          (a duplicate in either set fails).

        Raises
        - ValidateError naming the offending command and names.
        """
        if self._parameters and self._subcommands:
            raise ValidateError(
                "command %r cannot have both subcommands and parameters" % self._name,
                title="parameters and subcommands",
                code=FaultCode.PARAMETERS_AND_SUBCOMMANDS,
                hint="move the parameters into a subcommand, or drop the subcommands",
            )

        if duplicates := [name for name, count in Counter(child.name for child in self._subcommands).items() if count > 1]:
            raise ValidateError(
                "duplicate %s %s for command %r; subcommand names must be unique" % (
                    "subcommand" if len(duplicates) == 1 else pluralize("subcommand"),
                    ", ".join(map(repr, duplicates)),
                    self._name
                ),
                title="duplicated subcommand",
                code=FaultCode.DUPLICATED_SUBCOMMAND,
                hint="rename or remove the repeated subcommands",
            )

        shorts = Counter(option.short for option in self._options if option.short is not None)
        longs = Counter(option.long for option in self._options if option.long is not None)
        duplicates = [
            *("-" + name for name, count in shorts.items() if count > 1),
            *("--" + name for name, count in longs.items() if count > 1),
        ]
        if duplicates:
            raise ValidateError(
                "duplicate option %s %s for command %r; option flags must be unique" % (
                    "flag" if len(duplicates) == 1 else pluralize("flag"),
                    ", ".join(map(repr, duplicates)),
                    self._name
                ),
                title="duplicated flag",
                code=FaultCode.DUPLICATED_FLAG,
                hint="give every option its own short and long names (-h and --help are reserved)",
            )

    def evaluate(self, arguments, /):
        """
        Evaluate a full argument vector (usually sys.argv) against this command tree.

        The first element (the program name) is dropped; the rest is evaluated
        recursively. The returned evaluation holds a sub-evaluation for every
        subcommand matched on the way.

        Raises
        - ParseError when no argument follows the program name (or a subcommand
          name), or when an option token is malformed.
        - ValidateError when a visited command is ill-formed or an evaluation is
          inconsistent with its command.
        """
        if isinstance(arguments, str) or not isinstance(arguments, Iterable):
            raise TypeError("evaluate() argument must be an iterable of strings")
        arguments = list(arguments)
        if not all(isinstance(argument, str) for argument in arguments):
            raise TypeError("evaluate() argument must be an iterable of strings")
        return self._subevaluate(deque(arguments[1:]))

    def _subevaluate(self, tokens, *, index=1):
        """
        Evaluate this level against the remaining tokens.

        phases
        - guard: at least one token must remain (a command always expects something,
          even if only --help).
        - validate this command's shape before consuming anything.
        - walk: pop tokens left to right and classify each one:
          • subcommand name → the child evaluates all remaining tokens; this level
            validates itself and returns at once;
          • option token → the help option prints help and returns the partial
            evaluation unvalidated; any other option is recorded;
          • otherwise → recorded as a positional parameter.
        - on exhaustion, validate and return.

        indexing
        - index is the 1-based position of the next token in the original vector;
          it only phrases messages (“at third position”).
        """
        if not tokens:
            raise ParseError(
                "no arguments given to command %r" % self._name,
                title="no arguments",
                code=FaultCode.NO_ARGUMENTS,
                hint="run '%s --help' to see the expected usage" % self._name,
            )

        self.validate()
        logger.debug("evaluating command %r against %d token(s)", self._name, len(tokens))

        evaluation = CommandEvaluation(self)

        while tokens:
            token = tokens.popleft()

            if (child := self.get(token)) is not None:
                logger.debug("descending from %r into subcommand %r", self._name, child.name)
                evaluation._sub_evaluation = child._subevaluate(tokens, index=index + 1)  # NOQA: Filled by the evaluator only
                evaluation.validate()
                return evaluation

            if (option := OptionEvaluation.parse(token, index=index)) is not None:
                if Option.help.accepts(option):
                    logger.debug("help requested for command %r", self._name)
                    self._helper()
                    evaluation._helped = True  # NOQA: Filled by the evaluator only
                    return evaluation
                evaluation._options.append(option)  # NOQA: Filled by the evaluator only
            else:
                evaluation._parameters.append(token)  # NOQA: Filled by the evaluator only

            index += 1

        evaluation.validate()
        return evaluation

    def get(self, name, default=None, /):
        """
        Return the first subcommand called `name`, or `default`.
        """
        return next((child for child in self._subcommands if child.name == name), default)

    def __getitem__(self, name):
        """
        Return the first subcommand called `name`; raise KeyError when there is none.
        """
        if (child := self.get(name)) is None:
            raise KeyError(name)
        return child

    def __setitem__(self, name, child):
        """
        Upsert a subcommand: replace the first child called `name` in place, or append.

        The child's own name must be `name`; ownership moves to this command.
        """
        if not isinstance(child, Command):
            raise TypeError(f"{type(self).__typename__} subcommands must be commands")
        if child.name != name:
            raise ValueError(f"{type(self).__typename__} subcommand {child.name!r} cannot be stored as {name!r}")
        for position, existing in enumerate(self._subcommands):
            if existing.name == name:
                self._subcommands[position] = child
                return
        self._subcommands.append(child)

    def __delitem__(self, name):
        """
        Remove the first subcommand called `name`; raise KeyError when there is none.
        """
        self._subcommands.remove(self[name])

    def __contains__(self, name):
        return self.get(name) is not None

    def command(self, name=Unset, /, **metadata):
        """
        Decorator creating a subcommand of this command from a callback.

        Same contract as the module-level command(...) factory; the resulting
        Command is upserted under this command (self[child.name] = child).

        Usage
            @tool.command(parameters=[Parameter("path")])
            def remove(evaluation): ...
        """
        if callable(name):
            return self.command(**metadata)(name)

        factory = command(name, **metadata)

        @rename("command")
        def wrapper(callback, /):
            child = factory(callback)
            self[child.name] = child
            return child

        return wrapper


def command(name=Unset, /, **metadata):
    """
    Decorator turning a callback into a Command.

    Invocation modes
    - Bare decorator:
        @command
        def build(evaluation): ...
    - With metadata:
        @command("build", overview="Build things", options=[...])
        def build_things(evaluation): ...

    Defaults
    - name: the function name, underscores turned into hyphens.
    - overview: the function docstring (first paragraph), when not given.

    Parameters
    - name: Unset | str | Callable (bare decorator form)
    - **metadata: forwarded to Command (overview, options, parameters,
      subcommands, usage, colorful).

    Returns
    - Command in bare form, otherwise a decorator producing one.
    """
    if callable(name):
        return command(**metadata)(name)

    @rename("command")
    def wrapper(callback, /):
        if not callable(callback):
            raise TypeError("@command() must be applied to a callable")
        if "callback" in metadata:
            raise TypeError("@command() cannot receive a 'callback', the decorated function is the callback")
        options = dict(metadata)
        overview = options.pop("overview", Unset)
        if overview is Unset and (doc := inspect.getdoc(callback)):
            overview = doc.split("\n\n")[0].replace("\n", " ")
        return Command(
            coalesce(name, getattr(callback, "__name__", "").replace("_", "-")),
            overview,
            callback=callback,
            **options
        )

    return wrapper


def invoke(command, prompt=Unset, /, *, shell=True):
    """
    Process entry point: evaluate, run callbacks, surface faults.

    Parameters
    - command: Command (the root of the tree).
    - prompt:
      • Unset: the full sys.argv (its first element is the program name).
      • str: shell-like string split with shlex.split; the command name is used as program name.
      • Iterable[str]: pre-tokenized arguments; the command name is used as program name.
    - shell: bool (keyword-only)
      When True, faults are rendered on stderr and the process exits with status 1.
      When False, faults propagate as ParseError/ValidateError.

    Returns
    - The root CommandEvaluation (after callbacks ran).
    """
    if not isinstance(command, Command):
        raise TypeError("invoke() first argument must be a command")

    if prompt is Unset:
        arguments = list(sys.argv)
    elif isinstance(prompt, str):
        arguments = [command.name, *shlex.split(prompt)]
    elif isinstance(prompt, Iterable):
        arguments = [command.name, *prompt]
        if not all(isinstance(argument, str) for argument in arguments):
            raise TypeError("invoke() argument must be a string or an iterable of strings")
    else:
        raise TypeError("invoke() argument must be a string or an iterable of strings")

    try:
        evaluation = command.evaluate(arguments)
    except CommandException as fault:
        trigger(fault, shell=shell, colorful=command.colorful, prog=command.name)
        raise

    evaluation.perform_callbacks()
    return evaluation


__all__ = (
    # Public API surface for consumers of argtree.commands.
    # These names are re-exported from the package __init__.
    "Command",
    "command",
    "invoke",
)
