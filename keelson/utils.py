"""
Keelson utilities (internal helpers, carefully exposed)

Scope
- Core building blocks used across the package for consistent semantics and UX.
- Public-but-internal leaning: stable enough for consumers, designed primarily
  to support the builders, the command tree and the resolution engine.

Overview
- UnsetType / Unset
  • Singleton sentinel to represent “value not provided” without conflating with None.
  • Falsey (bool(Unset) is False), printable as "Unset", and non-subclassable.

- coalesce(value, default=None)
  • Replace Unset with a concrete default, but preserve legitimate falsey values like None/0/""/[].

- rename(callable, name) / @rename("name")
  • Assign stable __name__/__qualname__ to generated wrappers for clean tracebacks.

- mirror("attr")
  • Read-only property factory exposing a private backing field (self._attr) as an immutable view.

- identify(value, pattern, maxlength)
  • Identifier validation shared by every named entity (commands, options, parameters, groups).

- Registry
  • Insertion-ordered mapping that rejects duplicate keys; backbone of the command tree.

- ordinal(number)
  • Human-friendly ordinal labels used by position-first fault messages.

Stability and contract
- These utilities are re-exported via __all__; names not in __all__ are internal.

Quick examples
    >>> coalesce(Unset, "fallback")
    'fallback'
    >>> identify("deploy", r"[a-z]+", 10)
    'deploy'
"""
import builtins
import functools
import re
from collections.abc import Mapping, Sequence, Set
from types import MappingProxyType


class UnsetType:
    """
    Internal singleton sentinel representing an "unset" value.

    Behavior
    - truthiness: bool(Unset) is False.
    - identity: Unset is a process-wide singleton (see __new__).
    - display: repr(Unset) -> "Unset".
    - final: subclassing is forbidden to preserve semantics.
    """

    def __or__(self, other, /):
        """
        Support UnsetType | T in isinstance checks (internal convenience only).
        """
        try:
            return type(self) | other
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        """
        Support T | UnsetType in isinstance checks (internal convenience only).
        """
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

    def __copy__(self):
        return self

    def __deepcopy__(self, memo, /):
        return self

    def __init_subclass__(cls, **options):
        """
        Disallow subclassing to preserve sentinel semantics.
        """
        raise TypeError("type 'UnsetType' is not an acceptable base type")


Unset = UnsetType()


def coalesce(object, default=None, /):
    """
    Resolve the Unset sentinel to a concrete default.

    Falsey values like None, 0, "" or [] are preserved as-is; only Unset is replaced.

    Examples
    - coalesce("name", "fallback") -> "name"
    - coalesce(Unset, "fallback")  -> "fallback"
    - coalesce(None, "fallback")   -> None
    """
    return object if object is not Unset else default


def rename(*parameters):
    """
    Set a stable __name__/__qualname__ on a callable, or return a decorator
    that will do so later.

    Forms
    - rename(callable, name) -> callable (renamed in place)
    - @rename(name)          -> decorator
    """
    match len(parameters):
        case 2:
            callable, name = parameters
            if not builtins.callable(callable):
                raise TypeError("rename() first argument must be callable")
            if not isinstance(name, str):
                raise TypeError("rename() second argument must be a string")
            try:
                callable.__qualname__ = name
                callable.__name__ = name
            except (AttributeError, TypeError):
                raise TypeError("rename() first argument must be a updatable callable") from None
            return callable
        case 1:
            name, = parameters
            if not isinstance(name, str):
                raise TypeError("@rename() argument must be a string")

            def wrapper(callable):
                if not builtins.callable(callable):
                    raise TypeError("@rename() must be applied to a callable")
                return rename(callable, name)

            return rename(wrapper, "rename")
        case _:
            raise TypeError("rename takes 1 to 2 arguments but %d were given" % len(parameters))


def mirror(name, /):
    """
    Define a read-only property that mirrors a private backing attribute.

    The property reads "_{name}" on the instance and returns an immutable view:
    - Registry          → returned as-is (models only hold frozen registries)
    - Sequence (non-str) → tuple
    - Mapping           → MappingProxyType
    - Set               → frozenset
    - other types       → returned as-is
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        value = getattr(self, "_" + name)
        if isinstance(value, Registry):
            return value
        if isinstance(value, Sequence) and not isinstance(value, str):
            return tuple(value)
        if isinstance(value, Mapping):
            return MappingProxyType(value)
        if isinstance(value, Set):
            return frozenset(value)
        return value

    return property(getter)


@functools.cache
def _compile(pattern):
    return re.compile(pattern)


def identify(value, pattern=Unset, maxlength=0, /, *, kind="identifier"):
    """
    Validate an identifier and return it unchanged.

    Rules
    - value must be a non-empty string.
    - when maxlength > 0, value cannot be longer than maxlength.
    - when a pattern is given, value must fully match it.

    Errors
    - InvalidIdentifierError, carrying the offending value, the pattern and
      the length limit. The function keeps no state: the same inputs always
      give the same outcome.
    """
    from .faults import InvalidIdentifierError

    if not isinstance(value, str) or not value:
        raise InvalidIdentifierError(
            f"{kind} must be a non-empty string, got {value!r}",
            value=value,
            pattern=coalesce(pattern),
            maxlength=maxlength,
        )
    if maxlength > 0 and len(value) > maxlength:
        raise InvalidIdentifierError(
            f"{kind} {value!r} cannot be longer than {maxlength} chars",
            value=value,
            pattern=coalesce(pattern),
            maxlength=maxlength,
        )
    if pattern is not Unset and not _compile(pattern).fullmatch(value):
        raise InvalidIdentifierError(
            f"{kind} {value!r} must match the pattern {pattern!r}",
            value=value,
            pattern=pattern,
            maxlength=maxlength,
        )
    return value


class Registry(Mapping):
    """
    Insertion-ordered mapping from string key to value that rejects duplicates.

    Lookup is by key, iteration follows declaration order: the first declared
    entry is displayed first, while resolution always goes through the key.

    Contract
    - add(key, value): DuplicateKeyError when the key is already present.
    - get(key) / registry[key]: NotFoundError (a KeyError) when absent.
    - has(key) / key in registry: membership test.
    - freeze(): reject any further add() with TypeError.
    """
    __slots__ = ("_entries", "_frozen", "_label")

    def __init__(self, entries=(), /, *, label="entry"):
        self._entries = {}
        self._frozen = False
        self._label = label
        for key, value in dict(entries).items() if isinstance(entries, Mapping) else entries:
            self.add(key, value)

    def add(self, key, value, /):
        from .faults import DuplicateKeyError

        if self._frozen:
            raise TypeError(f"{self._label} registry is frozen")
        if not isinstance(key, str):
            raise TypeError(f"{self._label} key must be a string")
        if key in self._entries:
            raise DuplicateKeyError(f"{self._label} {key!r} is already registered", key=key)
        self._entries[key] = value
        return value

    def get(self, key, /, default=Unset):
        """
        Return the value for key; NotFoundError when absent and no default is given.
        """
        from .faults import NotFoundError

        try:
            return self._entries[key]
        except (KeyError, TypeError):
            if default is not Unset:
                return default
            raise NotFoundError(f"{self._label} {key!r} is not registered", key=key) from None

    def has(self, key, /):
        return key in self._entries

    def freeze(self):
        self._frozen = True
        return self

    @property
    def frozen(self):
        return self._frozen

    def __getitem__(self, key, /):
        return self.get(key)

    def __contains__(self, key, /):
        return key in self._entries

    def __iter__(self):
        return iter(self._entries)

    def __len__(self):
        return len(self._entries)

    def __copy__(self):
        copy = type(self)(label=self._label)
        copy._entries.update(self._entries)
        return copy

    def __repr__(self):
        return f"registry({", ".join(map(repr, self._entries))})"

    def __rich_repr__(self):
        yield from self._entries.items()


@functools.cache
def ordinal(number, /):
    """
    Return a human-friendly ordinal label for a 1-based position.

    - 1..10 are rendered as words ("first"…"tenth").
    - Other numbers use numeric ordinals with correct English suffixes.
    """
    try:
        return {
            1: "first",
            2: "second",
            3: "third",
            4: "fourth",
            5: "fifth",
            6: "sixth",
            7: "seventh",
            8: "eighth",
            9: "ninth",
            10: "tenth",
        }[number]
    except KeyError:
        pass

    if 10 < number % 100 < 20:
        return f"{number}th"

    return f'{number}%s' % {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")


__all__ = (
    "UnsetType",
    "Unset",
    "coalesce",
    "rename",
    "mirror",
    "identify",
    "Registry",
    "ordinal",
)
