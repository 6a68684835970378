"""Tests for the freezable dataclass decorator"""
import unittest
from dataclasses import dataclass

from hyperpool import types


@types.freezable(frozen=False, no_new_attribs=True)
@dataclass
class Settings:
    """A small freezable dataclass"""

    name: str = "pool"
    value: int = 1


class TestFreezable(unittest.TestCase):
    """Unit tests for types.freezable"""

    def test_change_until_frozen(self):
        """Existing attributes can change until freeze is called"""
        settings = Settings()
        settings.value = 2
        self.assertEqual(settings.value, 2)
        settings.freeze()  # type: ignore
        with self.assertRaises(AttributeError):
            settings.value = 3
        self.assertEqual(settings.value, 2)

    def test_no_new_attribs(self):
        """New attributes are refused when no_new_attribs is set"""
        settings = Settings()
        with self.assertRaises(AttributeError):
            settings.unknown = 5  # type: ignore  # pylint: disable=attribute-defined-outside-init

    def test_disable_new_attribs(self):
        """disable_new_attribs turns the check on after construction"""

        @types.freezable()
        @dataclass
        class Open:
            """Accepts new attributes by default"""

            value: int = 0

        instance = Open()
        instance.extra = 1  # type: ignore  # pylint: disable=attribute-defined-outside-init
        instance.disable_new_attribs()  # type: ignore
        with self.assertRaises(AttributeError):
            instance.another = 2  # type: ignore  # pylint: disable=attribute-defined-outside-init

    def test_frozen_on_construction(self):
        """frozen=True locks the instance once __init__ returns"""

        @types.freezable(frozen=True)
        @dataclass
        class Locked:
            """Frozen from the start"""

            value: int = 0

        locked = Locked(value=4)
        self.assertEqual(locked.value, 4)
        with self.assertRaises(AttributeError):
            locked.value = 5

    def test_to_dict(self):
        """to_dict returns the dataclass fields"""
        self.assertEqual(Settings(name="a", value=7).to_dict(), {"name": "a", "value": 7})  # type: ignore

    def test_requires_dataclass(self):
        """Decorating a plain class fails"""
        with self.assertRaises(TypeError):

            @types.freezable()
            class NotADataclass:  # pylint: disable=unused-variable
                """Plain class"""
