"""
Keelson loader: declare a command tree in a JSON or YAML document.

Document shape (a list of command mappings, dotted ids give the hierarchy)

    - id: cloud
      description: cloud toolbox
      requireSubcommand: true
    - id: cloud.login
      description: open a session
      options:
        - id: user
          shortcut: u
          description: account name
          parameters:
            - id: name
              range: [1, 40]
        - id: json
          group: format
        - id: text
          group: format
          selected: true

Rules
- exactly one command has an undotted id: the root.
- every other id must extend the id of a declared command ('cloud.login'
  under 'cloud'); children keep the order of the document.
- a parameter 'order' defaults to its index in the option.
- actions maps dotted ids to callables.

Shape problems raise LoaderError; builder validation errors propagate unchanged.
"""
import json
import logging
import os
import pathlib
from collections.abc import Mapping

import yaml

from .arguments import GroupBuilder, OptionBuilder, ParameterBuilder
from .commands import CommandBuilder
from .utils import *

logger = logging.getLogger(__name__)


class LoaderError(ValueError):
    """
    Malformed command document.
    """


def _field(mapping, key, type, /, default=Unset, *, where):
    try:
        value = mapping[key]
    except KeyError:
        if default is Unset:
            raise LoaderError(f"{where} is missing the {key!r} key") from None
        return default
    # bool is an int, but never a valid order
    if not isinstance(value, type) or isinstance(value, bool) and type is not bool:
        raise LoaderError(f"{where} key {key!r} must be a {type.__name__}, got {value.__class__.__name__}")
    return value


def _parameter(data, index, /, *, where):
    if not isinstance(data, Mapping):
        raise LoaderError(f"{where} parameters must be mappings")
    where = f"{where} parameter {data.get("id", index)!r}"

    builder = ParameterBuilder().id(_field(data, "id", str, where=where))
    if (bounds := _field(data, "range", list, None, where=where)) is not None:
        if len(bounds) != 2:
            raise LoaderError(f"{where} range must be a [minimum, maximum] pair")
        builder.range(*bounds)
    builder.required(_field(data, "required", bool, True, where=where))
    builder.order(_field(data, "order", int, index, where=where))
    return builder.build()


def _option(data, groups, /, *, where):
    if not isinstance(data, Mapping):
        raise LoaderError(f"{where} options must be mappings")
    where = f"{where} option {data.get("id")!r}"

    builder = OptionBuilder().id(_field(data, "id", str, where=where))
    if (shortcut := _field(data, "shortcut", str, None, where=where)) is not None:
        builder.shortcut(shortcut)
    if (description := _field(data, "description", str, None, where=where)) is not None:
        builder.description(description)
    if (group := _field(data, "group", str, None, where=where)) is not None:
        if group not in groups:
            groups[group] = GroupBuilder().id(group).build()
        builder.group(groups[group])
    builder.selected(_field(data, "selected", bool, False, where=where))
    for index, parameter in enumerate(_field(data, "parameters", list, [], where=where)):
        builder.parameter(_parameter(parameter, index, where=where))
    return builder.build()


def build(data, /, actions=None):
    """
    Build the command tree described by data and return its root.

    Parameters
    - data: list of command mappings (see the module documentation).
    - actions: optional mapping of dotted command id to action callable.
    """
    if not isinstance(data, list):
        raise LoaderError(f"command document must be a list, got {type(data).__name__}")
    actions = dict(actions or {})

    records = {}
    for index, entry in enumerate(data):
        if not isinstance(entry, Mapping):
            raise LoaderError(f"command at index {index} must be a mapping")
        id = _field(entry, "id", str, where=f"command at index {index}")
        if id in records:
            raise LoaderError(f"command {id!r} is declared twice")
        records[id] = entry

    roots = [id for id in records if "." not in id]
    if len(roots) != 1:
        raise LoaderError(f"command document must declare exactly one root command, got {len(roots)}")

    children = {id: [] for id in records}
    for id, entry in records.items():
        parent, _, _ = id.rpartition(".")
        if _field(entry, "root", bool, not parent, where=f"command {id!r}") != (not parent):
            raise LoaderError(f"command {id!r} root flag does not match its id")
        if not parent:
            continue
        if parent not in records:
            raise LoaderError(f"command {id!r} has an unknown parent {parent!r}")
        children[parent].append(id)

    if unknown := actions.keys() - records.keys():
        raise LoaderError(f"actions refer to unknown commands: {", ".join(sorted(unknown))}")

    groups = {}
    built = {}
    # deepest first, so every child exists before its parent
    for id in sorted(records, key=lambda id: id.count("."), reverse=True):
        entry, where = records[id], f"command {id!r}"
        builder = CommandBuilder().id(id.rpartition(".")[2])
        builder.description(_field(entry, "description", str, where=where))
        builder.require_subcommand(_field(entry, "requireSubcommand", bool, False, where=where))
        if id in actions:
            builder.action(actions[id])
        for option in _field(entry, "options", list, [], where=where):
            builder.option(_option(option, groups, where=where))
        for child in children[id]:
            builder.child(built[child])
        built[id] = builder.build()

    logger.debug("loaded %d commands under %r", len(built), roots[0])
    return built[roots[0]]


def load(path, /, actions=None):
    """
    Read a .json, .yaml or .yml document and build its command tree.
    """
    path = pathlib.Path(os.fspath(path))
    match path.suffix.lower():
        case ".json":
            parse, errors = json.loads, json.JSONDecodeError
        case ".yaml" | ".yml":
            parse, errors = yaml.safe_load, yaml.YAMLError
        case _:
            raise LoaderError(f"unsupported command document {path.name!r}, expected .json, .yaml or .yml")

    try:
        data = parse(path.read_text(encoding="utf-8"))
    except errors as exception:
        raise LoaderError(f"cannot parse command document {str(path)!r}") from exception

    logger.debug("parsed command document %s", path)
    return build(data, actions)


__all__ = (
    "LoaderError",
    "build",
    "load",
)
