"""
Keelson resolution engine: turn argv-like tokens into a resolved command.

Phases (single pass, left to right)
- normalize
  • empty and whitespace-only tokens are dropped; every other token is kept
    verbatim (values are opaque text) and keeps its argv position for faults.
    Command names and option tokens are matched on their stripped form.
- descent
  • while the next token is exactly the name of a child, descend into it.
    Descent only happens on leading tokens; once an option or a value is
    seen every remaining token belongs to the resolved command, so a command
    name met after an option binds as a parameter value.
- selection and binding
  • '--<id>' selects an option by id, '-<c>' by shortcut.
  • '<parameter>:<value>' binds by parameter id (split on the first colon).
  • any other token binds the next unfilled parameter of the last selected option.
- finalization
  • group policy: the last explicit selection of a group wins; with no explicit
    selection the preselected default stays on.
  • help short-circuits every remaining check.
  • required parameters of every selected option must be bound.
  • a command requiring a subcommand cannot be the resolved command.

The declarative tree is never touched: each resolution builds snapshots of
the options with copy.replace, so one tree resolves any number of times.

Faults
- resolve() raises CommandException subclasses with the ordinal position of the
  offending token and the nearest resolved command in their options.
- execute() never lets a CommandException escape: the view renders the fault,
  then the help of the nearest resolved command.
"""
import copy
import logging
import re
import sys

from .arguments import Model, PATTERN
from .commands import Command
from .faults import *
from .utils import *

logger = logging.getLogger(__name__)

_NAMED = re.compile(rf"(?P<name>{PATTERN}):(?P<value>.*)", re.DOTALL)


class Resolution(Model):
    """
    Outcome of a successful resolution.

    Fields
    - command: the resolved Command (a node of the declarative tree).
    - options: frozen Registry[str, Option] of snapshots for every option of the
      command, with 'selected' and each parameter 'data' populated.
    - help: True when the help option was selected.
    - tokens: the normalized tokens that were resolved.
    """
    __introspectable__ = (
        "command",
        "options",
        "help",
        "tokens",
    )

    @property
    def selected(self):
        """
        Ids of the selected options, in declared order.
        """
        return tuple(id for id, option in self.options.items() if option.selected)

    def __getitem__(self, id, /):
        return self.options[id]


def _normalize(tokens):
    if tokens is Unset:
        tokens = sys.argv[1:]
    if isinstance(tokens, str):
        raise TypeError("tokens must be an iterable of strings, not a string")
    try:
        tokens = list(tokens)
    except TypeError:
        raise TypeError(f"tokens must be an iterable of strings, got {type(tokens).__name__}") from None
    for token in tokens:
        if not isinstance(token, str):
            raise TypeError(f"every token must be a string, got {type(token).__name__}")
    return [(position, token) for position, token in enumerate(tokens, 1) if token.strip()]


class _Resolver:
    """
    Per-call resolution state; discarded once resolve() returns.
    """

    def __init__(self, command):
        self.command = command
        self.values = {id: {} for id in command.options}
        self.last = {}
        self.explicit = {}
        self.current = None

    def fail(self, fault, /, **context):
        trigger(fault, command=self.command, route=self.command.route, **context)

    def feed(self, token, position):
        word = token.strip()
        if word.startswith("--"):
            self.select(self.command.options.get(word[2:], None), word, position)
        elif word.startswith("-"):
            option = next(
                (option for option in self.command.options.values() if len(word) == 2 and option.shortcut == word[1]),
                None,
            )
            self.select(option, word, position)
        else:
            self.bind(token, position)

    def select(self, option, token, position):
        if option is None:
            self.fail(UnknownOptionError(), token=token, position=ordinal(position))
        if option.id in self.explicit:
            self.fail(DuplicatedOptionError(), option=option.id, token=token, position=ordinal(position))
        logger.debug("selected option %r at %s position", option.id, ordinal(position))
        self.explicit[option.id] = position
        self.current = option

    def bind(self, token, position):
        if (option := self.current) is None:
            self.fail(ArgumentWithoutOptionError(), token=token, position=ordinal(position))

        bound = self.values[option.id]
        if match := _NAMED.fullmatch(token):
            name, value = match["name"], match["value"]
            if (parameter := option.parameters.get(name, None)) is None:
                self.fail(UnknownParameterError(), parameter=name, option=option.id, position=ordinal(position))
            if parameter.id in bound:
                self.fail(ParameterAlreadyFilledError(), parameter=name, option=option.id, position=ordinal(position))
        else:
            value = token
            for parameter in option.parameters.values():
                if parameter.id not in bound:
                    break
            else:
                self.fail(ParameterOutOfBoundError(), token=token, option=option.id, position=ordinal(position))

        if not parameter.accepts(value):
            self.fail(
                ParameterLengthError(),
                parameter=parameter.id,
                option=option.id,
                position=ordinal(position),
                minimum=parameter.minimum,
                maximum=parameter.maximum,
            )

        logger.debug("bound %r to parameter %r of option %r", value, parameter.id, option.id)
        bound[parameter.id] = value
        self.last[option.id] = value

    def selection(self):
        """
        Resolve the final selected state of every option of the command.
        """
        command = self.command
        selected = {
            id: option.selected or id in self.explicit
            for id, option in command.options.items()
            if option.group is None
        }
        for membership in command.groups.values():
            # explicit preserves token order: the last member wins
            chosen = [id for id in self.explicit if id in membership.options]
            winner = chosen[-1] if chosen else membership.default
            for id in membership.options:
                selected[id] = id == winner
        return selected

    def finish(self, tokens):
        command = self.command
        selected = self.selection()
        help = selected.get("help", False)

        if not help:
            for id, option in command.options.items():
                if not selected[id]:
                    continue
                missing = [parameter for parameter in option.required if parameter not in self.values[id]]
                if missing:
                    self.fail(
                        MissingRequiredParametersError(),
                        missing=", ".join(missing),
                        option=id,
                        last=self.last.get(id, "<none>"),
                    )
            if command.require_subcommand:
                self.fail(MissingSubcommandError())

        options = Registry(label="option")
        for id, option in command.options.items():
            parameters = Registry(
                ((parameter.id, copy.replace(parameter, data=self.values[id].get(parameter.id)))
                 for parameter in option.parameters.values()),
                label="parameter",
            )
            options.add(id, copy.replace(option, selected=selected[id], parameters=parameters.freeze()))

        return Resolution(command=command, options=options.freeze(), help=help, tokens=tuple(tokens))


class Engine:
    """
    Resolve tokens against a command tree and run the resolved action.

    Construction
    - Engine(root, view=Unset): root must be a built Command without a parent;
      view defaults to a RichView on the standard output.

    Operations
    - resolve(tokens): Resolution or a raised CommandException.
    - execute(tokens=Unset): resolve, then run the action (or render help);
      faults are rendered by the view and None is returned.
    """

    def __init__(self, root, /, view=Unset):
        if not isinstance(root, Command):
            raise TypeError("engine root must be a built command")
        if root.parent is not None:
            raise ValueError(f"command {root.id!r} is not a root command")
        if view is Unset:
            from .views import RichView
            view = RichView()
        self._root = root
        self._view = view

    root = property(lambda self: self._root)
    view = property(lambda self: self._view)

    def resolve(self, tokens, /):
        tokens = _normalize(tokens)

        command, index = self._root, 0
        while index < len(tokens) and (name := tokens[index][1].strip()) in command.children:
            command = command.children[name]
            index += 1
            logger.debug("descended into command %r", command.id)

        resolver = _Resolver(command)
        for position, token in tokens[index:]:
            resolver.feed(token, position)

        resolution = resolver.finish(token for _, token in tokens)
        logger.debug("resolved command %r with options %s", command.id, resolution.selected)
        return resolution

    def execute(self, tokens=Unset, /):
        try:
            resolution = self.resolve(tokens)
        except CommandException as exception:
            logger.debug("resolution failed: %s", exception)
            self._view.print_exception(exception)
            self._view.print_help(exception.options.get("command", self._root))
            return None

        command = resolution.command
        if resolution.help or command.action is None:
            self._view.print_help(command)
            return resolution

        try:
            command.action(resolution.options, self._view)
        except Exception as exception:
            logger.error("action of command %r failed", command.id, exc_info=True)
            fault = DelegatedActionError(command=command, route=command.route, exception=exception)
            fault.__cause__ = exception
            self._view.print_exception(fault)
            return None
        return resolution


def invoke(root, tokens=Unset, /, *, view=Unset):
    """
    Shortcut for Engine(root, view).execute(tokens).
    """
    return Engine(root, view).execute(tokens)


__all__ = (
    "Resolution",
    "Engine",
    "invoke",
)
