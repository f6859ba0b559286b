"""Tests for :mod:`intake.identity`."""

from unittest import TestCase, mock

from intake import identity


class TestGenerateId(TestCase):
    """Generate submission identifiers."""

    def test_is_path_safe(self):
        """Identifiers are usable as path segments and lookup tokens."""
        for _ in range(50):
            self.assertTrue(identity.is_valid_id(identity.generate_id()))

    def test_unique(self):
        """Identifiers generated in the same millisecond still differ."""
        with mock.patch(f'{identity.__name__}.time.time',
                        return_value=1700000000.0):
            ids = {identity.generate_id() for _ in range(1000)}
        self.assertEqual(len(ids), 1000)

    def test_later_sorts_later(self):
        """The time component leads the identifier."""
        with mock.patch(f'{identity.__name__}.time.time',
                        return_value=1700000000.0):
            earlier = identity.generate_id()
        with mock.patch(f'{identity.__name__}.time.time',
                        return_value=1800000000.0):
            later = identity.generate_id()
        self.assertLess(earlier, later)


class TestIsValidId(TestCase):
    """Check identifiers against the path-safe token pattern."""

    def test_valid(self):
        """Letters, digits, underscores and hyphens are allowed."""
        self.assertTrue(identity.is_valid_id('abc_DEF-123'))

    def test_invalid(self):
        """Anything else is rejected."""
        for value in ['', '../etc', 'a/b', 'a b', 'abc\n', 'résumé', None]:
            self.assertFalse(identity.is_valid_id(value), repr(value))
