"""
Keelson views: the user-facing surface handed to command actions.

View is the capability interface the engine depends on (help, faults,
prompts). RichView renders everything with rich on a single Console and
keeps a count of the lines it printed, optionally numbering them.

Palette keys (override any of them with a __styles__ mapping in __main__)
- header, version, usage-label, usage, description
- group-label, option-name, shortcut-name, parameter, required-parameter, argument-description
- children, children-description, group-name, default-name
- alert, error, success, debug, separator, line-number
"""
import abc
import copy
from collections import defaultdict

from rich.console import Console, Group
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table
from rich.text import Text

from .faults import CommandException
from .utils import *


class View(abc.ABC):
    """
    Capabilities an action can rely on.

    - print_help(command): render the help of a command.
    - print_exception(exception): render a fault (or any exception).
    - ask_for(title) / ask_for_sensitive(title): read a line from the user.
    - confirm(question, yes, no): True when the answer matches yes.
    """

    @abc.abstractmethod
    def print_help(self, command, /): ...

    @abc.abstractmethod
    def print_exception(self, exception, /): ...

    @abc.abstractmethod
    def ask_for(self, title, /): ...

    @abc.abstractmethod
    def ask_for_sensitive(self, title, /): ...

    @abc.abstractmethod
    def confirm(self, question="do you agree?", yes="Y", no="n", /): ...


def _palette():
    return defaultdict(str, {
        # === head ===
        "header": "bold #FF4D94",  # magenta brand
        "version": "#9CA3AF",
        "usage-label": "bold #00E6FF",
        "usage": "bold #36C5F0",
        "description": "italic #A3A3A3",

        # === options ===
        "group-label": "bold #FFFFFF",
        "option-name": "bold #00E6FF",
        "shortcut-name": "bold #00E6FF",
        "parameter": "#FFD600",
        "required-parameter": "bold #FFD600",
        "argument-description": "#9CA3AF",

        # === groups / children ===
        "group-name": "bold #22C55E",
        "default-name": "italic #22C55E",
        "children": "bold #36C5F0",
        "children-description": "#9CA3AF",

        # === messages ===
        "alert": "bold #FFD600",
        "error": "bold #EF4444",
        "success": "bold #22C55E",
        "debug": "dim #9CA3AF",
        "separator": "#4B5563",
        "line-number": "dim #737373",
    } | getattr(__import__("__main__"), "__styles__", {}))


class RichView(View):
    """
    View rendering on a rich Console.

    Configuration
    - console: target Console (a fresh stdout Console by default).
    - title/version: shown as the help header and by print_version().
    - colorful: apply the palette; plain text otherwise.
    - fancy: wrap help and faults in panels.
    - numbered: prefix every printed line with its 1-based number.
    - debug: enable print_debug().
    """

    def __init__(
        self,
        console=Unset,
        /,
        *,
        title=None,
        version=None,
        colorful=True,
        fancy=False,
        numbered=False,
        debug=False,
    ):
        if console is not Unset and not isinstance(console, Console):
            raise TypeError("view console must be a rich console")
        self._console = console if console is not Unset else Console()
        self._title = title
        self._version = version
        self._colorful = bool(colorful)
        self._fancy = bool(fancy)
        self._numbered = bool(numbered)
        self._debug = bool(debug)
        self._styles = _palette()
        self._printed = 0

    console = mirror("console")
    title = mirror("title")
    version = mirror("version")
    colorful = mirror("colorful")
    fancy = mirror("fancy")
    numbered = mirror("numbered")
    debug = mirror("debug")
    printed = mirror("printed")

    def _style(self, style):
        return self._styles[style] if self._colorful else ""

    def _text(self, fragment, style=""):
        return Text(str(fragment), self._style(style) if style else "")

    def print(self, text="", /, *, style=""):
        """
        Print one line and count it.
        """
        self._printed += 1
        line = text if isinstance(text, Text) else self._text(text, style)
        if self._numbered:
            line = Text.assemble(self._text(f"{self._printed:>4} ", "line-number"), line)
        self._console.print(line)

    def print_empty(self, count=1, /):
        for _ in range(count):
            self.print()

    def print_alert(self, text, /):
        self.print(text, style="alert")

    def print_error(self, text, /):
        self.print(text, style="error")

    def print_success(self, text, /):
        self.print(text, style="success")

    def print_debug(self, text, /):
        if self._debug:
            self.print(text, style="debug")

    def print_separator(self, character="-", width=Unset, /):
        self.print(character * coalesce(width, self._console.width - 5 * self._numbered), style="separator")

    def print_version(self):
        self.print(Text(" ").join(
            self._text(fragment, style)
            for fragment, style in ((self._title, "header"), (self._version, "version"))
            if fragment
        ))

    def _options(self, command):
        table = Table.grid(padding=(0, 2))
        table.add_column(no_wrap=True)
        table.add_column()
        table.add_column()
        for option in command.options.values():
            names = self._text(f"--{option.id}", "option-name")
            if option.shortcut:
                names = Text.assemble(self._text(f"-{option.shortcut}", "shortcut-name"), ", ", names)
            parameters = Text(" ").join(
                self._text(parameter, "required-parameter" if parameter.required else "parameter")
                for parameter in option.parameters.values()
            )
            table.add_row(names, parameters, self._text(option.description or "", "argument-description"))
        return table

    def _groups(self, command):
        lines = []
        for membership in command.groups.values():
            line = Text.assemble(
                self._text(membership.id, "group-name"),
                ": ",
                Text(" | ").join(self._text(f"--{id}", "option-name") for id in membership.options),
            )
            if membership.default:
                line.append_text(Text.assemble(" (default: ", self._text(membership.default, "default-name"), ")"))
            lines.append(line)
        return lines

    def _children(self, command):
        table = Table.grid(padding=(0, 2))
        table.add_column(no_wrap=True)
        table.add_column()
        for child in command.children.values():
            table.add_row(
                self._text(child.name, "children"),
                self._text(child.description or "", "children-description"),
            )
        return table

    def print_help(self, command, /):
        """
        Render usage, description, options, groups and subcommands of command.
        """
        renders = []

        if self._title:
            renders.append(Text.assemble(
                self._text(self._title, "header"),
                *((" ", self._text(self._version, "version")) if self._version else ()),
            ))

        usage = f"{command.route} [options]" + (" <command>" if command.children else "")
        renders.append(Text.assemble(self._text("usage", "usage-label"), ": ", self._text(usage, "usage")))

        if command.description:
            renders.append(self._text(command.description, "description"))

        renders.append(self._text("options", "group-label").append(":"))
        renders.append(self._options(command))

        if groups := self._groups(command):
            renders.append(self._text("groups", "group-label").append(":"))
            renders.extend(groups)

        if command.children:
            renders.append(self._text("commands" if command.parent is None else "subcommands", "group-label")
                           .append(":"))
            renders.append(self._children(command))

        renderable = Group(*renders)
        if self._fancy:
            renderable = Panel(renderable, title=self._text(f"{command.route} help".upper(), "header"), title_align="left")

        self._printed += 1
        self._console.print(renderable)

    def print_exception(self, exception, /):
        """
        Render a fault; non-fault exceptions are rendered as an error line.
        """
        if isinstance(exception, CommandException):
            self._printed += 1
            self._console.print(copy.replace(exception, colorful=self._colorful, fancy=self._fancy))
        else:
            self.print_error(f"{type(exception).__name__}: {exception}")
        if exception.__cause__ is not None:
            self.print_debug(f"caused by {type(exception.__cause__).__name__}: {exception.__cause__}")

    def ask_for(self, title, /):
        if not isinstance(title, str) or not title.strip():
            raise ValueError("prompt title cannot be blank")
        return Prompt.ask(Text(title.strip()), console=self._console)

    def ask_for_sensitive(self, title, /):
        if not isinstance(title, str) or not title.strip():
            raise ValueError("prompt title cannot be blank")
        return Prompt.ask(Text(title.strip()), console=self._console, password=True)

    def confirm(self, question="do you agree?", yes="Y", no="n", /):
        answer = self.ask_for(f"{question} ({yes}/{no})")
        return answer.strip().lower() == yes.lower()


__all__ = (
    "View",
    "RichView",
)
