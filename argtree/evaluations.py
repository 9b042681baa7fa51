"""
Argtree evaluations: what the parser made of a raw argument list.

What this module provides
- OptionEvaluation: one option-shaped token parsed into (flag, form, value).
  OptionEvaluation.parse(token) is the tokenizer policy of the whole package:
  it tells option tokens apart from positional ones and rejects malformed switches.
- CommandEvaluation: the result for one command level.
  • options: OptionEvaluation items in argument order.
  • parameters: raw positional strings in argument order.
  • sub_evaluation: the evaluation of the matched subcommand, if any; following
    it yields the chain of commands the user walked through.
  • describer: the Command evaluated against (read-only back-reference).
  • validate(): post-parse consistency checks against the describer.
  • perform_callbacks(): run each matched command's callback with its own evaluation.

Lifecycle
- The evaluator creates an empty CommandEvaluation per command level, fills it
  token by token, validates it once and hands it back. Public properties are
  read-only copies; nothing outside the evaluator mutates an evaluation.
"""
import difflib
import re

from .arguments import _SHORT, _LONG
from .faults import *
from .utils import *
from .utils import logger


class OptionEvaluation(metaclass=IntrospectableType):
    """
    A single option token, parsed.

    Fields
    - flag: the bare name, without dashes ("v", "verbose").
    - form: "short" for -x tokens, "long" for --name tokens.
    - value: the text after the first '=' (possibly empty), or None when no '=' was given.
    - token: the raw token as it appeared in the argument list.
    """

    __introspectable__ = (
        "flag",
        "form",
        "value",
        "token",
    )
    __displayable__ = (
        "flag",
        "value",
    )

    def __new__(cls, flag, form, /, value=None, token=Unset):
        if not isinstance(flag, str) or not flag:
            raise TypeError(f"{cls.__typename__} 'flag' must be a non-empty string")
        if form not in ("short", "long"):
            raise ValueError(f"{cls.__typename__} 'form' must be 'short' or 'long'")
        if not isinstance(value, str | None):
            raise TypeError(f"{cls.__typename__} 'value' must be a string")

        self = super().__new__(cls)
        self._flag = flag
        self._form = form
        self._value = value
        self._token = coalesce(token, ("-" if form == "short" else "--") + flag + ("" if value is None else "=" + value))
        return self

    @classmethod
    def parse(cls, token, /, index=Unset):
        r"""
        Parse one raw token; return None when it is not option-shaped.

        Policy
        - not option-shaped (returns None, the token is a positional parameter):
          • anything not starting with '-'
          • '-' alone (the conventional stdin placeholder)
          • negative numbers such as '-3' or '-0.5'
        - option-shaped:
          • '-x' or '-x=value'            → flag 'x', form 'short'
          • '--name' or '--name=value'    → flag 'name', form 'long'
        - anything else starting with '-' ('--', '-abc', '--bad_name', '---x', '--=v')
          raises ParseError (malformed option).

        Parameters
        - token: str
        - index: int | Unset
          1-based position of the token in the argument vector; only used to
          phrase the message position-first.
        """
        if not isinstance(token, str):
            raise TypeError("parse() argument must be a string")

        if not token.startswith("-") or token == "-" or re.fullmatch(r"-(\d+\.?\d*|\.\d+)", token):
            return None

        match = re.fullmatch(rf"(?:{_SHORT}|{_LONG})(=(?P<value>.*))?", token, re.DOTALL)

        if not match:
            where = "" if index is Unset else " at %s position" % ordinal(index)
            raise ParseError(
                "malformed option %r%s" % (token, where),
                title="malformed option",
                code=FaultCode.MALFORMED_TOKEN,
                hint="short options take a single letter (-x), long options two dashes (--name); "
                     "attach values with '=' (--name=value)",
                token=token,
                index=coalesce(index),
            )

        if match["short"] is not None:
            return cls(match["short"], "short", match["value"], token)
        return cls(match["long"], "long", match["value"], token)


class CommandEvaluation(metaclass=IntrospectableType):
    """
    Parsed result for one command level.

    The describer is the Command this level was evaluated against. It is used for
    validation and callback lookup only; the evaluation does not own it.
    """

    __introspectable__ = (
        "describer",
        "options",
        "parameters",
        "sub_evaluation",
        "helped",
    )
    __displayable__ = (
        "name",
        "options",
        "parameters",
        "sub_evaluation",
        "helped",
    )

    def __new__(cls, describer, /):
        self = super().__new__(cls)
        self._describer = describer
        self._options = []
        self._parameters = []
        self._sub_evaluation = None
        self._helped = False
        return self

    @property
    def name(self):
        """
        Name of the describing command.
        """
        return self._describer.name

    @property
    def chain(self):
        """
        This evaluation followed by every nested sub-evaluation, outermost first.
        """
        chain = [evaluation := self]
        while evaluation._sub_evaluation is not None:
            chain.append(evaluation := evaluation._sub_evaluation)
        return tuple(chain)

    @property
    def leaf(self):
        """
        The innermost evaluation (the command the user finally selected).
        """
        return self.chain[-1]

    def _resolve(self, name):
        # "-o", "--output", "o" or "output" all name the same described option
        for option in self._describer.options:
            if name in option.names or name in (option.short, option.long):
                return option
        return None

    def get(self, name, default=None, /):
        """
        Return the OptionEvaluation given for the option called `name`, else `default`.

        `name` may be dashed ("--output", "-o") or bare ("output", "o").
        """
        if (option := self._resolve(name)) is None:
            return default
        return next((evaluation for evaluation in self._options if option.accepts(evaluation)), default)

    def value(self, name, default=None, /):
        """
        Return the attached value of option `name`, or `default` when the option
        was not given or carries no value.
        """
        if (evaluation := self.get(name)) is None or evaluation.value is None:
            return default
        return evaluation.value

    def __contains__(self, name):
        return self.get(name) is not None

    def validate(self):
        """
        Check this evaluation against its describer; raise ValidateError on the first problem.

        Checks, in order
        - positional tokens given to a command that routes to subcommands (unknown subcommand);
        - parameter arity: min = required parameters, max = all parameters;
        - every option is one the describer declares;
        - no declared option is given twice;
        - valued options carry a non-empty value, presence-only options carry none;
        - every required option is present;
        - the sub-evaluation describes one of the describer's subcommands.
        """
        describer = self._describer
        count = len(self._parameters)

        if describer.subcommands and count:
            input = self._parameters[0]
            suggestions = difflib.get_close_matches(input, [child.name for child in describer.subcommands], 5)
            try:
                hint = "did you mean %r? you can also run '%s --help' to see available subcommands" % (
                    suggestions[0], describer.name
                )
            except IndexError:
                hint = "run '%s --help' to see available subcommands" % describer.name
            raise ValidateError(
                "unknown subcommand %r for command %r" % (input, describer.name),
                title="unknown subcommand",
                code=FaultCode.UNKNOWN_SUBCOMMAND,
                hint=hint,
                input=input,
                suggestions=suggestions,
            )

        if count < (minimum := describer.min_parameter_count):
            raise ValidateError(
                "command %r expects at least %d %s but %d %s given" % (
                    describer.name,
                    minimum,
                    "parameter" if minimum == 1 else pluralize("parameter"),
                    count,
                    "was" if count == 1 else "were",
                ),
                title="missing parameters",
                code=FaultCode.MISSING_PARAMETERS,
                hint="add the missing values (run '%s --help' to see the expected usage)" % describer.name,
                expected=minimum,
                got=count,
            )

        if count > (maximum := describer.max_parameter_count):
            raise ValidateError(
                "command %r expects at most %d %s but %d %s given" % (
                    describer.name,
                    maximum,
                    "parameter" if maximum == 1 else pluralize("parameter"),
                    count,
                    "was" if count == 1 else "were",
                ),
                title="too many parameters",
                code=FaultCode.TOO_MANY_PARAMETERS,
                hint="remove the extra values (run '%s --help' to see the expected usage)" % describer.name,
                expected=maximum,
                got=count,
            )

        seen = set()
        for evaluation in self._options:
            option = next((option for option in describer.options if option.accepts(evaluation)), None)

            if option is None:
                names = [name for option in describer.options for name in option.names]
                input = evaluation.token.partition("=")[0]
                suggestions = difflib.get_close_matches(input, names, 5)
                try:
                    hint = "did you mean %r? you can also run '%s --help' to see all options" % (
                        suggestions[0], describer.name
                    )
                except IndexError:
                    hint = "try '%s --help' to see all available options" % describer.name
                raise ValidateError(
                    "unknown option %r for command %r" % (input, describer.name),
                    title="unknown option",
                    code=FaultCode.UNKNOWN_OPTION,
                    hint=hint,
                    input=input,
                    suggestions=suggestions,
                )

            if option in seen:
                raise ValidateError(
                    "option %r was already provided to command %r" % (evaluation.token.partition("=")[0], describer.name),
                    title="duplicated option",
                    code=FaultCode.DUPLICATED_OPTION,
                    hint="keep a single %s; each option can be specified only once" % str(option.flag),
                )
            seen.add(option)

            if option.valued and not evaluation.value:
                raise ValidateError(
                    "option %r of command %r requires a value" % (evaluation.token.partition("=")[0], describer.name),
                    title="missing value",
                    code=FaultCode.MISSING_VALUE,
                    hint="attach it with '=' (for example: %s=<value>)" % evaluation.token.partition("=")[0],
                )

            if not option.valued and evaluation.value is not None:
                raise ValidateError(
                    "option %r of command %r cannot have a value" % (evaluation.token.partition("=")[0], describer.name),
                    title="unexpected value",
                    code=FaultCode.UNEXPECTED_VALUE,
                    hint="remove everything from '=' (for example: %s)" % evaluation.token.partition("=")[0],
                )

        for option in describer.options:
            if option.required and option not in seen:
                raise ValidateError(
                    "command %r requires option %r" % (describer.name, option.names[-1]),
                    title="missing required option",
                    code=FaultCode.MISSING_REQUIRED_OPTION,
                    hint="add %s (run '%s --help' to see its usage)" % (option.names[-1], describer.name),
                )

        if self._sub_evaluation is not None and not any(
                child is self._sub_evaluation.describer for child in describer.subcommands
        ):
            raise ValidateError(
                "evaluation of %r is not a subcommand evaluation of %r" % (self._sub_evaluation.name, describer.name),
                title="foreign sub-evaluation",
                code=FaultCode.FOREIGN_SUBEVALUATION,
            )

    def perform_callbacks(self):
        """
        Run the callback of every command in the chain, outermost first.

        Each callback receives the evaluation of its own level. When any level
        stopped on the help option nothing runs: the user asked for help, not
        for the command. Exceptions raised by callbacks propagate unchanged.
        """
        chain = self.chain
        if any(evaluation._helped for evaluation in chain):
            logger.debug("help was requested, skipping callbacks of %r", self.name)
            return

        for evaluation in chain:
            if (callback := evaluation._describer.callback) is None:
                continue
            logger.debug("running callback of command %r", evaluation.name)
            callback(evaluation)


__all__ = (
    # Public API surface for consumers of argtree.evaluations.
    "OptionEvaluation",
    "CommandEvaluation",
)
