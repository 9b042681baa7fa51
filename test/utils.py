"""
Tests for the internal utilities.

This module verifies:
- Unset sentinel semantics (singleton identity, falsy, repr, finality, copy).
- coalesce() only replaces Unset.
- rename() in its function and decorator forms.
- mirror() hands out copies of mutable containers.
- pluralize()/ordinal() phrasing helpers used by faults.
"""
import copy
import unittest
from unittest import TestCase

from argtree.utils import *


class UnsetTest(TestCase):
    """
    Test suite for the `Unset` singleton.
    """

    def testSingleton(self) -> None:
        """
        The constructor returns the same object reference on every call.
        """
        self.assertIs(UnsetType(), Unset)
        self.assertIs(UnsetType(), UnsetType())

    def testFalsely(self) -> None:
        self.assertFalse(bool(Unset))

    def testNotEqualToNoneOrFalse(self) -> None:
        """
        Falsy does not imply equality with other falsy values (None/False).
        """
        self.assertNotEqual(Unset, None)
        self.assertNotEqual(Unset, False)  # noqa: E712

    def testRepr(self) -> None:
        self.assertEqual(repr(Unset), "Unset")

    def testUnionForIsinstance(self) -> None:
        """
        `str | Unset` builds a union usable by isinstance().
        """
        self.assertTrue(isinstance(Unset, str | Unset))
        self.assertTrue(isinstance("x", str | Unset))
        self.assertFalse(isinstance(1, str | Unset))

    def testCopyDeepcopyPreserveSingleton(self) -> None:
        self.assertIs(copy.copy(Unset), Unset)
        self.assertIs(copy.deepcopy(Unset), Unset)

    def testFinalClass(self) -> None:
        """
        The class is final: attempts to subclass must fail with TypeError.
        """
        with self.assertRaises(TypeError):
            type("subtype", (UnsetType,), {})


class CoalesceTest(TestCase):

    def testReplacesUnset(self) -> None:
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")

    def testDefaultsToNone(self) -> None:
        self.assertIsNone(coalesce(Unset))

    def testPreservesFalseyValues(self) -> None:
        for value in (None, 0, "", []):
            with self.subTest(value=value):
                self.assertEqual(coalesce(value, "fallback"), value)


class RenameTest(TestCase):

    def testFunctionForm(self) -> None:
        def work():
            pass

        self.assertIs(rename(work, "do_work"), work)
        self.assertEqual(work.__name__, "do_work")
        self.assertEqual(work.__qualname__, "do_work")

    def testDecoratorForm(self) -> None:
        @rename("do_work")
        def work():
            pass

        self.assertEqual(work.__name__, "do_work")

    def testRejectsNonCallable(self) -> None:
        with self.assertRaises(TypeError):
            rename(1, "name")

    def testRejectsWrongArity(self) -> None:
        with self.assertRaises(TypeError):
            rename()


class MirrorTest(TestCase):

    def testHandsOutCopies(self) -> None:
        class Holder:
            items = mirror("items")

            def __init__(self):
                self._items = [1, 2]

        holder = Holder()
        holder.items.append(3)
        self.assertEqual(holder.items, [1, 2])

    def testTuplesAreKept(self) -> None:
        class Holder:
            pair = mirror("pair")
            _pair = ("a", "b")

        self.assertIsInstance(Holder().pair, tuple)

    def testReadOnly(self) -> None:
        class Holder:
            items = mirror("items")
            _items = []

        with self.assertRaises(AttributeError):
            Holder().items = [1]


class PhrasingTest(TestCase):

    def testPluralize(self) -> None:
        self.assertEqual(pluralize("parameter"), "parameters")
        self.assertEqual(pluralize("alias"), "aliases")
        self.assertEqual(pluralize("dependency"), "dependencies")
        self.assertEqual(pluralize("required option"), "required options")
        self.assertEqual(pluralize("Flag"), "Flags")
        self.assertEqual(pluralize("FLAG"), "FLAGS")

    def testOrdinalWords(self) -> None:
        self.assertEqual(ordinal(1), "first")
        self.assertEqual(ordinal(3), "third")
        self.assertEqual(ordinal(10), "tenth")

    def testOrdinalSuffixes(self) -> None:
        self.assertEqual(ordinal(11), "11th")
        self.assertEqual(ordinal(21), "21st")
        self.assertEqual(ordinal(22), "22nd")
        self.assertEqual(ordinal(23), "23rd")
        self.assertEqual(ordinal(112), "112th")


class IntrospectableTypeTest(TestCase):

    def testDefaultsToIntrospectableFields(self) -> None:
        """
        Without __displayable__, repr falls back to the __introspectable__ names.
        """
        self.assertIs(IntrospectableType.__displayable__, Unset)

        class Plain(metaclass=IntrospectableType):
            __introspectable__ = ("size", "label")

            def __init__(self):
                self._size = 3
                self._label = "x"

        self.assertIs(Plain.__displayable__, Unset)
        self.assertEqual(repr(Plain()), "plain(size=3, label='x')")

    def testTypenameAndRepr(self) -> None:
        class SampleSpec(metaclass=IntrospectableType):
            __introspectable__ = ("label",)

            def __init__(self):
                self._label = "x"

        sample = SampleSpec()
        self.assertEqual(SampleSpec.__typename__, "sample-spec")
        self.assertEqual(sample.label, "x")
        self.assertEqual(repr(sample), "sample-spec(label='x')")
        self.assertEqual(list(sample.__rich_repr__()), [("label", "x")])


class PackageMetadataTest(TestCase):

    def testVersionInfoMatchesVersion(self) -> None:
        import argtree

        self.assertEqual(argtree.__title__, "argtree")
        self.assertEqual(argtree.__version__, "%d.%d.%d" % argtree.version_info[:3])
        self.assertFalse(hasattr(argtree, "__author__"))
        self.assertNotIn("__author__", argtree.__all__)


if __name__ == '__main__':
    unittest.main()
