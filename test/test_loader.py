"""
Loader behavioral tests (JSON/YAML documents to command trees).

Scope
- Validate the document shape: dotted ids, root detection, options and parameters.
- Validate file loading for .json, .yaml and .yml documents.
- Validate LoaderError for malformed documents and propagation of builder errors.

Conventions
- Test method names follow CamelCase per project convention.
- Files are written to a temporary directory per test.
"""

from __future__ import annotations

import json
import pathlib
import tempfile
import unittest
from unittest import TestCase, mock

from keelson import Engine, View, LoaderError, build, load
from keelson.faults import InvalidOptionError, InvalidCommandError

DOCUMENT = [
    {
        "id": "cloud",
        "description": "cloud toolbox",
        "requireSubcommand": True,
        "options": [
            {"id": "json", "group": "format"},
            {"id": "text", "group": "format", "selected": True},
        ],
    },
    {
        "id": "cloud.login",
        "description": "open a session",
        "options": [
            {
                "id": "user",
                "shortcut": "u",
                "description": "account name",
                "parameters": [
                    {"id": "name", "range": [2, 10]},
                    {"id": "realm", "required": False},
                ],
            },
        ],
    },
    {"id": "cloud.logout", "description": "close the session"},
]

YAML = """\
- id: cloud
  description: cloud toolbox
  root: true
- id: cloud.login
  description: open a session
  options:
    - id: user
      shortcut: u
      parameters:
        - id: name
          range: [2, 10]
"""


def document(**changes):
    return [dict(entry) for entry in DOCUMENT[:1]] + [entry | changes for entry in DOCUMENT[1:2]]


class TestBuild(TestCase):
    """Behavioral tests for build()."""

    def testTreeShape(self):
        root = build(DOCUMENT)
        self.assertEqual(root.id, "cloud")
        self.assertTrue(root.require_subcommand)
        self.assertEqual(list(root.children), ["login", "logout"])
        self.assertEqual(root.children["logout"].order, 2)
        self.assertEqual(root.children["login"].id, "cloud.login")

    def testOptionsParametersAndGroups(self):
        root = build(DOCUMENT)
        user = root.children["login"].option("user")
        self.assertEqual(user.shortcut, "u")
        self.assertEqual(user.description, "account name")
        self.assertEqual([parameter.order for parameter in user.parameters.values()], [0, 1])
        self.assertEqual((user.parameters["name"].minimum, user.parameters["name"].maximum), (2, 10))
        self.assertFalse(user.parameters["realm"].required)
        self.assertEqual(root.groups["format"].default, "text")

    def testActionsAreBoundByDottedId(self):
        action = mock.Mock()
        root = build(DOCUMENT, {"cloud.login": action})
        Engine(root, mock.Mock(spec=View)).execute(["login", "-u", "alice"])
        action.assert_called_once()
        options, _ = action.call_args.args
        self.assertEqual(options["user"].parameters["name"].data, "alice")

    def testUnknownActionRejected(self):
        with self.assertRaises(LoaderError):
            build(DOCUMENT, {"cloud.missing": mock.Mock()})

    def testDocumentMustBeAList(self):
        with self.assertRaises(LoaderError):
            build({"id": "cloud"})

    def testExactlyOneRoot(self):
        with self.assertRaises(LoaderError):
            build(DOCUMENT + [{"id": "other", "description": "second root"}])
        with self.assertRaises(LoaderError):
            build(DOCUMENT[1:])

    def testUnknownParent(self):
        with self.assertRaises(LoaderError):
            build(DOCUMENT + [{"id": "cloud.admin.purge", "description": "orphan"}])

    def testDuplicateId(self):
        with self.assertRaises(LoaderError):
            build(DOCUMENT + [{"id": "cloud.logout", "description": "again"}])

    def testMissingKeys(self):
        with self.assertRaises(LoaderError):
            build([{"description": "no id"}])
        with self.assertRaises(LoaderError):
            build([{"id": "cloud"}])

    def testWrongTypes(self):
        for changes in ({"description": 3}, {"requireSubcommand": "yes"}, {"options": {}}):
            with self.subTest(changes=changes), self.assertRaises(LoaderError):
                build(document(**changes))

    def testBooleanOrderRejected(self):
        with self.assertRaises(LoaderError):
            build([{"id": "cloud", "description": "x", "options": [
                {"id": "user", "parameters": [{"id": "name", "order": True}]},
            ]}])

    def testRootFlagMustMatch(self):
        with self.assertRaises(LoaderError):
            build(document(root=True))

    def testBuilderErrorsPropagate(self):
        with self.assertRaises(InvalidOptionError):
            build([{"id": "cloud", "description": "x", "options": [{"id": "-bad"}]}])
        with self.assertRaises(InvalidCommandError):
            build([{"id": "cloud", "description": "x", "options": [{"id": "json"}, {"id": "json"}]}])


class TestLoad(TestCase):
    """Behavioral tests for load()."""

    def setUp(self):
        self.directory = tempfile.TemporaryDirectory()
        self.addCleanup(self.directory.cleanup)
        self.path = pathlib.Path(self.directory.name)

    def write(self, name, content):
        path = self.path / name
        path.write_text(content, encoding="utf-8")
        return path

    def testLoadJson(self):
        root = load(self.write("commands.json", json.dumps(DOCUMENT)))
        self.assertEqual(list(root.children), ["login", "logout"])

    def testLoadYaml(self):
        for name in ("commands.yaml", "commands.yml"):
            with self.subTest(name=name):
                root = load(self.write(name, YAML))
                self.assertEqual(root.children["login"].option("user").parameters["name"].maximum, 10)

    def testLoadAcceptsStringPaths(self):
        root = load(str(self.write("commands.json", json.dumps(DOCUMENT))))
        self.assertEqual(root.id, "cloud")

    def testUnsupportedSuffix(self):
        with self.assertRaises(LoaderError):
            load(self.write("commands.toml", ""))

    def testMalformedDocuments(self):
        with self.assertRaises(LoaderError) as context:
            load(self.write("commands.json", "[{"))
        self.assertIsInstance(context.exception.__cause__, json.JSONDecodeError)
        with self.assertRaises(LoaderError):
            load(self.write("commands.yaml", "- id: [unclosed"))

    def testLoaderErrorIsValueError(self):
        self.assertTrue(issubclass(LoaderError, ValueError))


if __name__ == "__main__":
    unittest.main()
