"""
Keelson faults (build-time errors and run-time command exceptions) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for all user-facing issues.
  Codes are grouped by domain to keep copy consistent and make logs/searches
  predictable.
- BuildError and friends: raised while the command tree is being declared.
  They are programming errors of the application author, never user input
  errors, and always propagate immediately (no partial trees).
- CommandException and friends: raised while resolving end-user tokens. They
  carry a templated message, a title and a hint, and know how to render
  themselves with rich.
- trigger(): central entry point to raise any run-time fault with extra context.
- getdoc(): optional description lookup for a code from the host application.

UX goals
- Position-first messages: run-time messages mention the ordinal position of
  the offending token (“at third position”) so users can learn by trying.
- Soft but technical language: short titles, one-sentence bodies, a single clear hint.
- Lowercased tone with readable styling (configurable via __styles__ in __main__).
"""
import copy
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset


class FaultCode(IntEnum):
    """
    canonical fault codes used by the resolution engine (stable identifiers).

    grouping (by high-level domain)
    - routing (1110x)
      • MISSING_SUBCOMMAND
    - options (1111x)
      • UNKNOWN_OPTION, DUPLICATED_OPTION
    - parameters (1112x)
      • ARGUMENT_WITHOUT_OPTION, MISSING_REQUIRED_PARAMETERS, UNKNOWN_PARAMETER,
        PARAMETER_ALREADY_FILLED, PARAMETER_OUT_OF_BOUND, PARAMETER_LENGTH
    - delegated errors (1113x)
      • DELEGATED_ERROR

    normalize() allows host remapping to custom labels while keeping code-stability.
    """
    # --- routing errors (11xxx) ---
    MISSING_SUBCOMMAND          = 11102

    # --- option errors (11xxx) ---
    UNKNOWN_OPTION              = 11112
    DUPLICATED_OPTION           = 11115

    # --- parameter errors (11xxx) ---
    ARGUMENT_WITHOUT_OPTION     = 11121
    MISSING_REQUIRED_PARAMETERS = 11125
    UNKNOWN_PARAMETER           = 11126
    PARAMETER_ALREADY_FILLED    = 11127
    PARAMETER_OUT_OF_BOUND      = 11128
    PARAMETER_LENGTH            = 11129

    # --- delegated errors (11xxx) ---
    DELEGATED_ERROR             = 11131

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class BuildError(ValueError):
    """
    Base type for every error raised while declaring the command tree.

    The keyword options keep the offending values for diagnostics and are
    exposed read-only through .options.
    """

    def __init__(self, message, /, **options):
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)


class InvalidIdentifierError(BuildError): ...
class InvalidParameterError(BuildError): ...
class InvalidCommandError(BuildError): ...
class ConflictingGroupDefaultError(BuildError): ...


class InvalidOptionError(BuildError):
    """
    Option builder failure; .option names the option being built and the
    underlying error is chained as __cause__.
    """

    @property
    def option(self):
        return self.options.get("option")


class InvalidParameterOrderError(InvalidOptionError): ...


class DuplicateKeyError(ValueError):
    def __init__(self, message, /, *, key):
        super().__init__(message)
        self.key = key


class NotFoundError(KeyError):
    def __init__(self, message, /, *, key):
        super().__init__(message)
        self.message = message
        self.key = key

    def __str__(self):
        return self.message


class CommandException(Exception):
    """
    Base type for run-time faults caused by end-user input.

    Construction
    - CommandException(message=Unset, /, **options)
      when message is Unset it is rendered from the class __template__ using
      the options as format fields (missing fields render as "<none>").
    - code/title/hint default to the class __fault__/__title__/__hint__ and can
      be overridden through options.

    Protocols
    - __rich__: friendly header/message/hint rendering (panel when fancy).
    - __replace__: copy.replace(fault, **context) returns a new fault with the
      merged options; the message is re-rendered when it came from the template.
    - __trigger__: raise the fault.
    """
    __fault__ = Unset
    __title__ = "command error"
    __template__ = "something went wrong"
    __hint__ = ""

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        options = {
            "code": type(self).__fault__,
            "title": type(self).__title__,
        } | options
        fields = defaultdict(lambda: "<none>", options)
        options.setdefault("hint", type(self).__hint__.format_map(fields))
        self.templated = message is Unset
        self.message = type(self).__template__.format_map(fields) if self.templated else message
        self.options = MappingProxyType(options)
        super().__init__(self.message)

    @property
    def code(self):
        return self.options["code"]

    @property
    def title(self):
        return self.options["title"]

    @property
    def hint(self):
        return self.options["hint"]

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
        } | getattr(main, "__styles__", {}))

        colorful = self.options.get("colorful", True)

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        command = self.options.get("command")
        prog = text(getattr(main, "__prog__", command.root.name if command else "keelson"), styler("prog-name"))
        code = self.code.normalize() if isinstance(self.code, FaultCode) else "-"

        header = Text.assemble(
            "[ ",
            prog,
            " — ",
            text(code, styler("code")),
            " | ",
            text(self.title.title(), styler("error-title")),
            " ]"
        )
        message = text(self.message, styler("error-message"))

        if self.hint:
            body = Group(message, Text.assemble(text(" → ", styler("hint-arrow")), text(self.hint, styler("hint"))))
        else:
            body = Group(message)

        if self.options.get("fancy", False):
            return Panel(body, title=header, title_align="left")

        return Group(header, body)

    def __trigger__(self):
        raise self

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        options = {**self.options, **overrides}
        if self.templated:
            if "hint" not in overrides:
                del options["hint"]
            replaced = type(self)(**options)
        else:
            replaced = type(self)(self.message, **options)
        replaced.__cause__ = self.__cause__
        return replaced


class MissingSubcommandError(CommandException):
    __fault__ = FaultCode.MISSING_SUBCOMMAND
    __title__ = "missing subcommand"
    __template__ = "command {route!r} requires a subcommand"
    __hint__ = "run '{route} --help' to see the available subcommands"


class UnknownOptionError(CommandException):
    __fault__ = FaultCode.UNKNOWN_OPTION
    __title__ = "unknown option"
    __template__ = "unknown option {token!r} at {position} position"
    __hint__ = "run '{route} --help' to see all available options"


class DuplicatedOptionError(CommandException):
    __fault__ = FaultCode.DUPLICATED_OPTION
    __title__ = "duplicated option"
    __template__ = "option {option!r} at {position} position was already provided"
    __hint__ = "keep a single {token}; each option can be specified only once"


class ArgumentWithoutOptionError(CommandException):
    __fault__ = FaultCode.ARGUMENT_WITHOUT_OPTION
    __title__ = "argument without option"
    __template__ = "argument {token!r} at {position} position does not follow any option"
    __hint__ = "select an option first (for example: --<option> {token})"


class UnknownParameterError(CommandException):
    __fault__ = FaultCode.UNKNOWN_PARAMETER
    __title__ = "unknown parameter"
    __template__ = "parameter {parameter!r} at {position} position is not declared by option {option!r}"
    __hint__ = "run '{route} --help' to see the parameters of {option!r}"


class ParameterAlreadyFilledError(CommandException):
    __fault__ = FaultCode.PARAMETER_ALREADY_FILLED
    __title__ = "parameter already filled"
    __template__ = "parameter {parameter!r} of option {option!r} at {position} position was already filled"
    __hint__ = "pass each parameter once, either by name or by position"


class ParameterOutOfBoundError(CommandException):
    __fault__ = FaultCode.PARAMETER_OUT_OF_BOUND
    __title__ = "parameter out of bound"
    __template__ = "argument {token!r} at {position} position exceeds the parameters of option {option!r}"
    __hint__ = "remove this extra value or run '{route} --help' to see the expected parameters"


class ParameterLengthError(CommandException):
    __fault__ = FaultCode.PARAMETER_LENGTH
    __title__ = "invalid parameter length"
    __template__ = ("parameter {parameter!r} of option {option!r} at {position} position must have "
                    "between {minimum} and {maximum} chars")
    __hint__ = "check the value passed to {parameter!r}"


class MissingRequiredParametersError(CommandException):
    __fault__ = FaultCode.MISSING_REQUIRED_PARAMETERS
    __title__ = "missing required parameters"
    __template__ = "required parameters [{missing}] are missing for option {option!r} (last value: {last})"
    __hint__ = "run '{route} --help' to see the required parameters of {option!r}"


class DelegatedActionError(CommandException):
    __fault__ = FaultCode.DELEGATED_ERROR
    __title__ = "delegated action error"
    __template__ = "something occurred in the action of command {route!r}"
    __hint__ = "check additional logs for more details"


def trigger(fault, /, **options):
    """
    raise a fault with the given runtime context.

    contract
    - fault must provide __trigger__ and __replace__ methods (see CommandException).
    - options are merged into the fault via copy.replace(fault, **options) before triggering.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ where keys
    are FaultCode instances and values are short documentation strings.
    when not found, returns None (renderers treat docs as optional).
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "FaultCode",
    "BuildError",
    "InvalidIdentifierError",
    "InvalidParameterError",
    "InvalidParameterOrderError",
    "InvalidOptionError",
    "InvalidCommandError",
    "ConflictingGroupDefaultError",
    "DuplicateKeyError",
    "NotFoundError",
    "CommandException",
    "MissingSubcommandError",
    "UnknownOptionError",
    "DuplicatedOptionError",
    "ArgumentWithoutOptionError",
    "UnknownParameterError",
    "ParameterAlreadyFilledError",
    "ParameterOutOfBoundError",
    "ParameterLengthError",
    "MissingRequiredParametersError",
    "DelegatedActionError",
    "trigger",
    "getdoc",
)
