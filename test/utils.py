"""
Utility tests (Unset, coalesce, rename, mirror).

Conventions
- Test method names follow CamelCase per project convention.
"""
import unittest
from unittest import TestCase

from pennant.utils import *


class TestUnset(TestCase):

    def testSingleton(self):
        self.assertIs(UnsetType(), Unset)
        self.assertFalse(Unset)
        self.assertEqual(repr(Unset), "Unset")

    def testSealed(self):
        with self.assertRaises(TypeError):
            type("Subclass", (UnsetType,), {})

    def testUnion(self):
        self.assertIsInstance("text", str | Unset)
        self.assertIsInstance(Unset, str | Unset)
        self.assertNotIsInstance(1, str | Unset)


class TestCoalesce(TestCase):

    def testOnlyUnsetIsReplaced(self):
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(Unset))
        for value in (None, 0, "", []):
            with self.subTest(value=value):
                self.assertIs(coalesce(value, "fallback"), value)


class TestRename(TestCase):

    def testDirectForm(self):
        function = rename(lambda: None, "named")
        self.assertEqual((function.__name__, function.__qualname__), ("named", "named"))

    def testDecoratorForm(self):
        @rename("other")
        def function():
            pass
        self.assertEqual(function.__name__, "other")

    def testInvalidArguments(self):
        with self.assertRaises(TypeError):
            rename(1, "name")
        with self.assertRaises(TypeError):
            rename(lambda: None, 1)
        with self.assertRaises(TypeError):
            rename()
        with self.assertRaises(TypeError):
            rename(len, "length")


class TestMirror(TestCase):

    def testReadOnlyCopies(self):
        class Holder:
            items = mirror("items")
            table = mirror("table")
            missing = mirror("missing")

            def __init__(self):
                self._items = ["a", ["b"]]
                self._table = {"k": {"v"}}
                self._missing = Unset

        holder = Holder()
        holder.items.append("c")
        holder.items[1].append("d")
        holder.table["k"].add("w")
        self.assertEqual(holder.items, ["a", ["b"]])
        self.assertEqual(holder.table, {"k": {"v"}})
        self.assertIsNone(holder.missing)
        with self.assertRaises(AttributeError):
            holder.items = []

    def testRequiresString(self):
        with self.assertRaises(TypeError):
            mirror(1)


if __name__ == "__main__":
    unittest.main()
