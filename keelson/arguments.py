r"""
Keelson argument models and builders.

Overview
- Models
  • Parameter: a single named, ordered, length-bounded argument slot of an option.
  • Option: a named (and optionally shortcut-named) switch carrying parameters,
    optionally joined to a mutually-exclusive group.
  • Group: a non-owning handle naming a mutually-exclusive set of sibling options.

- Builders
  • ParameterBuilder, OptionBuilder, GroupBuilder: fluent, fail-fast builders.
    Every setter validates immediately and returns the builder; build() returns
    the model and resets the accumulator so the same builder can be reused.

- Introspection & representation
  • ModelType metaclass provides stable __repr__/__rich_repr__ and exposes selected
    fields via read-only properties declared in __introspectable__.
  • Models are immutable in shape; copy.replace(model, **changes) is the only way
    to derive a variant (used by the engine to build resolution snapshots).

Validation highlights
- Ids match r"[a-zA-Z][a-zA-Z0-9_-]*" (no ':' and no leading '-', both are token syntax).
- Shortcuts are a single ASCII letter; 'h' is reserved for the help option.
- Parameters are declared in strictly increasing order and every required
  parameter precedes every optional one.

Quick example:
    >>> from keelson.arguments import ParameterBuilder, OptionBuilder
    >>> parameter = ParameterBuilder().id("path").range(1, 100).order(0).build()
    >>> option = OptionBuilder().id("output", "o").parameter(parameter).build()
"""
import functools
import operator
import re

from .faults import *
from .utils import *

PATTERN = r"[a-zA-Z][a-zA-Z0-9_-]*"
SHORTCUT = r"[a-zA-Z]"

MAX_ID = 32
MAX_DESCRIPTION = 120
MIN_RANGE = 1
MAX_RANGE = 1000


class ModelType(type):
    """
    Metaclass that turns declarative models into immutable, introspectable types.

    Responsibilities
    - Expose every name listed in __introspectable__ as a read-only property
      mirroring the private backing field (self._name).
    - Provide stable, readable __repr__/__rich_repr__ for diagnostics and rich UI.
    - Derive __typename__ from the class name (camel-case split with hyphens).
    """
    __introspectable__ = ()

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        # explicit definitions in the class body win
        if "__repr__" not in namespace:
            @rename("__repr__")
            def __repr__(self):
                return f"{type(self).__typename__}({
                    ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
                })"
            self.__repr__ = __repr__

        if "__rich_repr__" not in namespace:
            @rename("__rich_repr__")
            def __rich_repr__(self):
                for name in type(self).__introspectable__:
                    yield name, getattr(self, name)
            self.__rich_repr__ = __rich_repr__

        return self


class Model(metaclass=ModelType):
    """
    Common plumbing for immutable models.

    Models are created by builders with already-validated metadata; the
    constructor only mirrors it into private fields.
    """

    def __init__(self, **metadata):
        for name in type(self).__introspectable__:
            setattr(self, "_" + name, metadata[name])

    def __replace__(self, **changes):
        unknown = changes.keys() - set(type(self).__introspectable__)
        if unknown:
            raise TypeError(f"{type(self).__typename__} has no fields {", ".join(sorted(unknown))}")
        return type(self)(**{name: getattr(self, "_" + name) for name in type(self).__introspectable__} | changes)


class Parameter(Model):
    """
    A single argument slot of an option.

    Fields
    - id: parameter identifier, used by the 'name:value' token form.
    - order: declaration order; binding by position follows it.
    - minimum/maximum: accepted length range of the bound text.
    - required: whether the option is incomplete without this parameter.
    - data: bound text. Always None on the declarative tree; only resolution
      snapshots carry data.
    """
    __introspectable__ = (
        "id",
        "order",
        "minimum",
        "maximum",
        "required",
        "data",
    )

    @property
    def filled(self):
        return self.data is not None

    def accepts(self, value, /):
        """
        Return True when the length of value is inside [minimum, maximum].
        """
        return self.minimum <= len(value) <= self.maximum

    def __str__(self):
        return f"<{self.id}:{"R" if self.required else "O"}>"


class Group(Model):
    """
    Non-owning handle of a mutually-exclusive option set.

    Membership and default are resolved per command (see Command.groups);
    groups compare and hash by id.
    """
    __introspectable__ = (
        "id",
    )

    def __eq__(self, other):
        if not isinstance(other, Group):
            return NotImplemented
        return self.id == other.id

    def __hash__(self):
        return hash((Group, self.id))

    def __str__(self):
        return self.id


class Option(Model):
    """
    A named switch of a command.

    Fields
    - id: long name, selected with '--<id>'.
    - shortcut: optional one-letter alias, selected with '-<shortcut>'.
    - description: short help text or None.
    - parameters: frozen Registry of Parameter keyed by id, in declared order.
    - group: Group handle or None.
    - selected: on the declarative tree, whether the option is preselected
      (the group default for grouped options); on snapshots, the resolved state.
    """
    __introspectable__ = (
        "id",
        "shortcut",
        "description",
        "parameters",
        "group",
        "selected",
    )

    @property
    def required(self):
        """
        Ids of the required parameters, in declared order.
        """
        return tuple(parameter.id for parameter in self.parameters.values() if parameter.required)

    @property
    def missing(self):
        """
        Ids of the required parameters without bound data, in declared order.
        """
        return tuple(
            parameter.id for parameter in self.parameters.values() if parameter.required and not parameter.filled
        )

    def __str__(self):
        return f"--{self.id}" + (f", -{self.shortcut}" if self.shortcut else "")


def _sanitize_description(description, /):
    if not isinstance(description, str):
        raise TypeError("description must be a string")
    elif not (description := description.strip()):
        raise ValueError("description cannot be empty")
    elif len(description) > MAX_DESCRIPTION:
        raise ValueError(f"description cannot be longer than {MAX_DESCRIPTION} chars")
    return description


class ParameterBuilder:
    """
    Fluent builder for Parameter.

    Operations
    - id(id), range(minimum, maximum), required(flag=True), order(order)
    - build(): validate the accumulator and return the Parameter; resets the builder.
    - reset(): drop the accumulator explicitly.

    Rules
    - id and order are mandatory (no implicit order).
    - range bounds are non-negative ints with minimum <= maximum; defaults to (1, 1000).
    - every failure raises InvalidParameterError (identifier problems are chained).
    """

    def __init__(self):
        self.reset()

    def reset(self):
        self._draft = {
            "id": Unset,
            "order": Unset,
            "minimum": MIN_RANGE,
            "maximum": MAX_RANGE,
            "required": True,
        }
        return self

    def id(self, id, /):
        try:
            self._draft["id"] = identify(id, PATTERN, MAX_ID, kind="parameter id")
        except InvalidIdentifierError as exception:
            raise InvalidParameterError(f"invalid parameter id {id!r}", parameter=id) from exception
        return self

    def range(self, minimum, maximum, /):
        for name, bound in (("minimum", minimum), ("maximum", maximum)):
            if not isinstance(bound, int) or isinstance(bound, bool) or bound < 0:
                raise InvalidParameterError(
                    f"parameter {self._draft["id"]!r} {name} length must be a non-negative integer",
                    parameter=coalesce(self._draft["id"]),
                )
        if minimum > maximum:
            raise InvalidParameterError(
                f"parameter {self._draft["id"]!r} minimum length {minimum} is greater than maximum length {maximum}",
                parameter=coalesce(self._draft["id"]),
            )
        self._draft["minimum"] = minimum
        self._draft["maximum"] = maximum
        return self

    def required(self, required=True, /):
        self._draft["required"] = bool(required)
        return self

    def order(self, order, /):
        if not isinstance(order, int) or isinstance(order, bool) or order < 0:
            raise InvalidParameterError(
                f"parameter {self._draft["id"]!r} order must be a non-negative integer",
                parameter=coalesce(self._draft["id"]),
            )
        self._draft["order"] = order
        return self

    def build(self):
        draft = self._draft
        if draft["id"] is Unset:
            raise InvalidParameterError("parameter must have an id", parameter=None)
        if draft["order"] is Unset:
            raise InvalidParameterError(f"parameter {draft["id"]!r} must have an order", parameter=draft["id"])
        self.reset()
        return Parameter(**draft, data=None)


class OptionBuilder:
    """
    Fluent builder for Option.

    Operations
    - id(id, shortcut=Unset), shortcut(shortcut), description(text)
    - parameter(parameter): repeatable
    - group(group), selected(flag=True)
    - build() / reset()

    Invariants (enforced on each call)
    - shortcut 'h' is reserved for the 'help' option.
    - each parameter's order is strictly greater than the previous one's.
    - no required parameter may follow an optional one.
    - parameter ids are unique within the option.

    Failures are InvalidOptionError carrying the option id with the underlying
    error chained; ordering problems raise InvalidParameterOrderError.
    """

    def __init__(self):
        self.reset()

    def reset(self):
        self._draft = {
            "id": Unset,
            "shortcut": None,
            "description": None,
            "parameters": Registry(label="parameter"),
            "group": None,
            "selected": False,
            # accumulation state of parameter(): last order seen, optional seen
            "last": Unset,
            "optional": False,
        }
        return self

    def _fail(self, message, cause=None, /):
        raise InvalidOptionError(message, option=coalesce(self._draft["id"])) from cause

    def id(self, id, shortcut=Unset, /):
        try:
            self._draft["id"] = identify(id, PATTERN, MAX_ID, kind="option id")
        except InvalidIdentifierError as exception:
            self._fail(f"invalid option id {id!r}", exception)
        if shortcut is not Unset:
            self.shortcut(shortcut)
        return self

    def shortcut(self, shortcut, /):
        if shortcut is None:
            self._draft["shortcut"] = None
            return self
        try:
            identify(shortcut, SHORTCUT, 1, kind="option shortcut")
        except InvalidIdentifierError as exception:
            self._fail(f"invalid shortcut {shortcut!r} for option {self._draft["id"]!r}", exception)
        if shortcut == "h" and self._draft["id"] != "help":
            self._fail(f"shortcut 'h' is reserved to the help option (option {self._draft["id"]!r})")
        self._draft["shortcut"] = shortcut
        return self

    def description(self, description, /):
        try:
            self._draft["description"] = _sanitize_description(description)
        except (TypeError, ValueError) as exception:
            self._fail(f"invalid description for option {self._draft["id"]!r}", exception)
        return self

    def parameter(self, parameter, /):
        draft = self._draft
        if not isinstance(parameter, Parameter):
            self._fail(f"option {draft["id"]!r} parameters must be built parameters")
        if draft["last"] is not Unset and parameter.order <= draft["last"]:
            raise InvalidParameterOrderError(
                f"parameter {parameter.id!r} of option {draft["id"]!r} has order {parameter.order}, "
                f"it must be greater than {draft["last"]}",
                option=coalesce(draft["id"]),
                parameter=parameter.id,
                order=parameter.order,
            )
        if draft["optional"] and parameter.required:
            raise InvalidParameterOrderError(
                f"required parameter {parameter.id!r} of option {draft["id"]!r} cannot follow an optional one",
                option=coalesce(draft["id"]),
                parameter=parameter.id,
                order=parameter.order,
            )
        try:
            draft["parameters"].add(parameter.id, parameter)
        except DuplicateKeyError as exception:
            self._fail(f"option {draft["id"]!r} declares parameter {parameter.id!r} twice", exception)
        draft["last"] = parameter.order
        draft["optional"] |= not parameter.required
        return self

    def group(self, group, /):
        if not isinstance(group, Group | None):
            self._fail(f"option {self._draft["id"]!r} group must be a built group")
        self._draft["group"] = group
        return self

    def selected(self, selected=True, /):
        self._draft["selected"] = bool(selected)
        return self

    def build(self):
        draft = self._draft
        if draft["id"] is Unset:
            self._fail("option must have an id")
        if draft["shortcut"] == "h" and draft["id"] != "help":
            self._fail(f"shortcut 'h' is reserved to the help option (option {draft["id"]!r})")
        self.reset()
        return Option(
            id=draft["id"],
            shortcut=draft["shortcut"],
            description=draft["description"],
            parameters=draft["parameters"].freeze(),
            group=draft["group"],
            selected=draft["selected"],
        )


class GroupBuilder:
    """
    Fluent builder for Group.

    Members join a group by declaring OptionBuilder.group(group); the default
    member is the one marked selected(True). Both are resolved per command.
    """

    def __init__(self):
        self.reset()

    def reset(self):
        self._draft = {"id": Unset}
        return self

    def id(self, id, /):
        self._draft["id"] = identify(id, PATTERN, MAX_ID, kind="group id")
        return self

    def build(self):
        if (id := self._draft["id"]) is Unset:
            raise InvalidIdentifierError("group must have an id", value=None, pattern=PATTERN, maxlength=MAX_ID)
        self.reset()
        return Group(id=id)


__all__ = (
    "Parameter",
    "Option",
    "Group",
    "ParameterBuilder",
    "OptionBuilder",
    "GroupBuilder",
)
