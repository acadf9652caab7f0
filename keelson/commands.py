"""
Keelson command layer: declare and compose CLI command trees.

What this module provides
- Command: an immutable node of the invocation tree with:
  • An identity (name, dotted id from the root) and a description.
  • Options (always including the built-in help/-h option) keyed by id.
  • Children (subcommands) keyed by name, with a parent back-reference.
  • Group memberships resolved from its options (mutual exclusion + default).
  • An action callback invoked with (options, view) once resolution succeeds.

- CommandBuilder: a fluent builder that validates the whole node at build():
  • duplicate option ids, colliding shortcuts and duplicate child names,
  • children already attached elsewhere (the tree is a strict hierarchy),
  • more than one preselected member per group (ConflictingGroupDefaultError).

Core ideas
- Build once, resolve many: the tree never changes after build(); the engine
  derives per-invocation snapshots instead of mutating it.
- Fail fast: a failed build() leaves every child untouched (no partial trees).

Quick start
    from keelson import CommandBuilder, OptionBuilder, ParameterBuilder

    deploy = (
        CommandBuilder()
        .id("deploy")
        .description("deploy the current build")
        .option(OptionBuilder().id("target", "t").parameter(
            ParameterBuilder().id("name").range(1, 20).order(0).build()
        ).build())
        .action(lambda options, view: ...)
        .build()
    )
"""
import logging

from .arguments import Model, OptionBuilder, Option, PATTERN
from .faults import *
from .utils import *

logger = logging.getLogger(__name__)

MAX_NAME = 40


class Membership(Model):
    """
    Group membership inside one command: member option ids in declaration
    order and the id of the preselected (default) member, if any.
    """
    __introspectable__ = (
        "id",
        "options",
        "default",
    )


class Command(Model):
    """
    Immutable node of the command tree.

    Fields
    - name: the token that selects this command under its parent.
    - description: help text or None.
    - options: frozen Registry[str, Option]; the 'help' option comes first.
    - children: frozen Registry[str, Command] in declaration order.
    - parent: the parent Command or None for the root (non-owning back-reference).
    - order: 0 for the root, 1-based declaration index under the parent otherwise.
    - action: callable(options, view) or None.
    - groups: frozen Registry[str, Membership].
    - require_subcommand: when True, resolving this very command is an error.
    """
    __introspectable__ = (
        "name",
        "description",
        "options",
        "children",
        "parent",
        "order",
        "action",
        "groups",
        "require_subcommand",
    )

    @property
    def id(self):
        """
        Dotted path from the root (e.g. 'auth.login').
        """
        return ".".join(command.name for command in self.path)

    @property
    def root(self):
        """
        Return the topmost command in the current command hierarchy.
        """
        child, parent = self, self.parent
        while parent:
            child, parent = parent, parent.parent
        return child

    @property
    def path(self):
        """
        Return the full ancestry from root to this command as a tuple.
        """
        path = [command := self]
        while command.parent:
            path.append(command := command.parent)
        return tuple(reversed(path))

    @property
    def route(self):
        """
        Space-separated path, as typed in a shell ('auth login').
        """
        return " ".join(command.name for command in self.path)

    def option(self, id, /):
        """
        Return the option registered as id; NotFoundError when none.
        """
        return self.options.get(id)

    def shortcut(self, letter, /):
        """
        Return the option whose shortcut is letter; NotFoundError when none.
        """
        for option in self.options.values():
            if option.shortcut == letter:
                return option
        raise NotFoundError(f"shortcut {letter!r} is not registered", key=letter)

    def __rich_repr__(self):
        # parent/children would recurse through the whole tree
        yield "id", self.id
        yield "description", self.description
        yield "options", tuple(self.options)
        yield "children", tuple(self.children)
        yield "order", self.order

    def __repr__(self):
        return f"command(id={self.id!r}, options={tuple(self.options)!r}, children={tuple(self.children)!r})"


def _helper():
    """
    Build the help option injected into every command.
    """
    return OptionBuilder().id("help", "h").description("show this help message and exit").build()


def _resolve_options(name, declared):
    """
    Register options and group memberships for a command being built.

    Returns
    - (options, groups): frozen registries ready for the Command constructor.

    Errors
    - InvalidCommandError for duplicate ids or colliding shortcuts.
    - ConflictingGroupDefaultError when two members of a group are preselected.
    """
    options = Registry(label="option")
    shortcuts = {}
    members = {}

    if not any(option.id == "help" for option in declared):
        declared = [_helper(), *declared]

    for option in declared:
        try:
            options.add(option.id, option)
        except DuplicateKeyError as exception:
            raise InvalidCommandError(
                f"command {name!r} option {option.id!r} is already in use", command=name, option=option.id
            ) from exception

        if option.shortcut:
            if (taken := shortcuts.setdefault(option.shortcut, option.id)) != option.id:
                raise InvalidCommandError(
                    f"command {name!r} option {option.id!r} shortcut {option.shortcut!r} is already used by {taken!r}",
                    command=name,
                    option=option.id,
                    shortcut=option.shortcut,
                )

        if option.group is None:
            continue

        membership = members.setdefault(option.group.id, {"options": [], "default": None})
        membership["options"].append(option.id)
        if option.selected:
            if membership["default"] is not None:
                raise ConflictingGroupDefaultError(
                    f"command {name!r} group {option.group.id!r} already defaults to {membership["default"]!r}, "
                    f"option {option.id!r} cannot be a second default",
                    command=name,
                    group=option.group.id,
                    options=(membership["default"], option.id),
                )
            membership["default"] = option.id

    groups = Registry(label="group")
    for id, membership in members.items():
        groups.add(id, Membership(id=id, options=tuple(membership["options"]), default=membership["default"]))

    return options.freeze(), groups.freeze()


class CommandBuilder:
    """
    Fluent builder for Command.

    Operations
    - id(name), description(text), action(callable)
    - option(option): repeatable; uniqueness and shortcut collisions are checked by build()
    - child(command) / subcommand(command): repeatable; sets the parent and the order on build()
    - require_subcommand(flag=True)
    - build() / reset()
    """

    def __init__(self):
        self.reset()

    def reset(self):
        self._draft = {
            "name": Unset,
            "description": None,
            "action": None,
            "options": [],
            "children": [],
            "require_subcommand": False,
        }
        return self

    def id(self, name, /):
        try:
            self._draft["name"] = identify(name, PATTERN, MAX_NAME, kind="command id")
        except InvalidIdentifierError as exception:
            raise InvalidCommandError(f"invalid command id {name!r}", command=name) from exception
        return self

    def description(self, description, /):
        if not isinstance(description, str) or not description.strip():
            raise InvalidCommandError(
                f"command {self._draft["name"]!r} description must be a non-empty string",
                command=coalesce(self._draft["name"]),
            )
        self._draft["description"] = description.strip()
        return self

    def action(self, action, /):
        if action is not None and not callable(action):
            raise InvalidCommandError(
                f"command {self._draft["name"]!r} action must be callable", command=coalesce(self._draft["name"])
            )
        self._draft["action"] = action
        return self

    def option(self, option, /):
        if not isinstance(option, Option):
            raise InvalidCommandError(
                f"command {self._draft["name"]!r} options must be built options", command=coalesce(self._draft["name"])
            )
        self._draft["options"].append(option)
        return self

    def child(self, command, /):
        if not isinstance(command, Command):
            raise InvalidCommandError(
                f"command {self._draft["name"]!r} children must be built commands", command=coalesce(self._draft["name"])
            )
        self._draft["children"].append(command)
        return self

    subcommand = child

    def require_subcommand(self, required=True, /):
        self._draft["require_subcommand"] = bool(required)
        return self

    def build(self):
        draft = self._draft
        if (name := draft["name"]) is Unset:
            raise InvalidCommandError("command must have an id", command=None)

        options, groups = _resolve_options(name, draft["options"])

        children = Registry(label="command")
        for child in draft["children"]:
            if child.parent is not None:
                raise InvalidCommandError(
                    f"command {child.name!r} is already a child of {child.parent.id!r}",
                    command=name,
                    child=child.name,
                )
            if any(child is other for other in children.values()):
                raise InvalidCommandError(f"command {child.name!r} is attached twice", command=name, child=child.name)
            try:
                children.add(child.name, child)
            except DuplicateKeyError as exception:
                raise InvalidCommandError(
                    f"command {name!r} subcommand name {child.name!r} is already in use",
                    command=name,
                    child=child.name,
                ) from exception

        command = Command(
            name=name,
            description=draft["description"],
            options=options,
            children=children.freeze(),
            parent=None,
            order=0,
            action=draft["action"],
            groups=groups,
            require_subcommand=draft["require_subcommand"],
        )

        # attach only once everything validated
        for order, child in enumerate(children.values(), 1):
            child._parent = command
            child._order = order

        logger.debug("built command %r with options %s and children %s", name, tuple(options), tuple(children))
        self.reset()
        return command


__all__ = (
    "Command",
    "Membership",
    "CommandBuilder",
)
