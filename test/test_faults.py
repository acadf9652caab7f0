"""
Faults module behavioral tests (templates, replacement, triggering, rendering).

Scope
- Validate templated messages, titles, hints and codes of run-time faults.
- Validate copy.replace() context merging and trigger().
- Validate host overrides read from __main__ (__codes__, __docs__, __prog__).
- Validate rich rendering in plain and fancy modes.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import __main__
import copy
import io
import unittest
from unittest import TestCase, mock

from rich.console import Console
from rich.panel import Panel

from keelson.faults import (
    FaultCode,
    CommandException,
    UnknownOptionError,
    MissingRequiredParametersError,
    DelegatedActionError,
    trigger,
    getdoc,
)


def render(renderable):
    console = Console(file=io.StringIO(), width=120)
    console.print(renderable)
    return console.file.getvalue()


class TestTemplates(TestCase):
    """Message templates and options."""

    def testTemplateRendersOptions(self):
        fault = UnknownOptionError(token="--nope", position="third", route="cloud")
        self.assertEqual(fault.message, "unknown option '--nope' at third position")
        self.assertEqual(str(fault), fault.message)
        self.assertEqual(fault.hint, "run 'cloud --help' to see all available options")
        self.assertEqual(fault.code, FaultCode.UNKNOWN_OPTION)
        self.assertEqual(fault.title, "unknown option")

    def testMissingFieldsRenderAsNone(self):
        fault = MissingRequiredParametersError(missing="path", option="output", route="cloud")
        self.assertIn("(last value: <none>)", fault.message)

    def testExplicitMessageAndOverrides(self):
        fault = CommandException("custom", title="custom title", hint="custom hint")
        self.assertEqual(fault.message, "custom")
        self.assertEqual(fault.title, "custom title")
        self.assertEqual(fault.hint, "custom hint")

    def testOptionsAreReadOnly(self):
        fault = UnknownOptionError(token="--nope")
        with self.assertRaises(TypeError):
            fault.options["token"] = "--other"


class TestReplaceAndTrigger(TestCase):
    """copy.replace() and trigger()."""

    def testReplaceRerendersTemplate(self):
        fault = copy.replace(UnknownOptionError(), token="-x", position="first", route="cloud")
        self.assertEqual(fault.message, "unknown option '-x' at first position")
        self.assertEqual(fault.hint, "run 'cloud --help' to see all available options")

    def testReplaceKeepsExplicitMessage(self):
        fault = copy.replace(CommandException("custom"), extra=1)
        self.assertEqual(fault.message, "custom")
        self.assertEqual(fault.options["extra"], 1)

    def testReplaceKeepsCause(self):
        fault = DelegatedActionError(route="cloud")
        fault.__cause__ = RuntimeError("boom")
        self.assertIsInstance(copy.replace(fault, fancy=True).__cause__, RuntimeError)

    def testTriggerRaisesWithContext(self):
        with self.assertRaises(UnknownOptionError) as context:
            trigger(UnknownOptionError(), token="--nope", position="second")
        self.assertEqual(context.exception.options["position"], "second")

    def testTriggerRejectsPlainObjects(self):
        with self.assertRaises(TypeError):
            trigger(ValueError("plain"))


class TestHostOverrides(TestCase):
    """__main__ hooks."""

    def testNormalizeUsesHostCodes(self):
        self.assertEqual(FaultCode.UNKNOWN_OPTION.normalize(), "11112")
        with mock.patch.object(__main__, "__codes__", {FaultCode.UNKNOWN_OPTION: "E-OPT"}, create=True):
            self.assertEqual(FaultCode.UNKNOWN_OPTION.normalize(), "E-OPT")

    def testGetdoc(self):
        self.assertIsNone(getdoc(FaultCode.PARAMETER_LENGTH))
        with mock.patch.object(__main__, "__docs__", {FaultCode.PARAMETER_LENGTH: "too long"}, create=True):
            self.assertEqual(getdoc(FaultCode.PARAMETER_LENGTH), "too long")
        with self.assertRaises(TypeError):
            getdoc(11129)


class TestRendering(TestCase):
    """rich rendering."""

    def testPlainRendering(self):
        fault = UnknownOptionError(token="--nope", position="first", route="cloud", colorful=False)
        output = render(fault)
        self.assertIn("11112", output)
        self.assertIn("Unknown Option", output)
        self.assertIn("unknown option '--nope' at first position", output)
        self.assertIn("run 'cloud --help'", output)

    def testProgramNameFromHost(self):
        fault = UnknownOptionError(token="--nope", colorful=False)
        with mock.patch.object(__main__, "__prog__", "cloudctl", create=True):
            self.assertIn("cloudctl", render(fault))

    def testFancyRendersPanel(self):
        fault = UnknownOptionError(token="--nope", fancy=True)
        self.assertIsInstance(fault.__rich__(), Panel)


if __name__ == "__main__":
    unittest.main()
