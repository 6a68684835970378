"""Core types used across the repo"""
from __future__ import annotations  # types will be strings by default in 3.11

from dataclasses import asdict, is_dataclass
from functools import wraps
from typing import Any, Type


def freezable(frozen: bool = False, no_new_attribs: bool = False) -> Type:
    r"""A wrapper that allows classes to be frozen, such that existing member attributes cannot be changed"""

    def decorator(cls):
        if not is_dataclass(cls):
            raise TypeError("The class must be a data class.")

        @wraps(wrapped=cls, updated=())
        class FrozenClass(cls):
            """Subclass cls to enable freezing of attributes"""

            def __init__(self, *args, frozen=frozen, no_new_attribs=no_new_attribs, **kwargs) -> None:
                super().__setattr__("frozen", False)
                super().__setattr__("no_new_attribs", False)
                super().__init__(*args, **kwargs)
                super().__setattr__("frozen", frozen)
                super().__setattr__("no_new_attribs", no_new_attribs)

            def __setattr__(self, attrib: str, value: Any) -> None:
                if hasattr(self, attrib) and getattr(self, "frozen", False):
                    raise AttributeError(f"{self.__class__.__name__} is frozen, cannot change attribute '{attrib}'.")
                if not hasattr(self, attrib) and getattr(self, "no_new_attribs", False):
                    raise AttributeError(
                        f"{self.__class__.__name__} has no_new_attribs set, cannot add attribute '{attrib}'."
                    )
                super().__setattr__(attrib, value)

            def freeze(self) -> None:
                """disallows changing existing members"""
                super().__setattr__("frozen", True)

            def disable_new_attribs(self) -> None:
                """disallows adding new members"""
                super().__setattr__("no_new_attribs", True)

            def to_dict(self) -> dict[str, Any]:
                """Return the dataclass fields as a dict"""
                return asdict(self)

        return FrozenClass

    return decorator
