"""Tests for canopy.__init__: every public name resolves lazily."""

import pytest

import canopy


@pytest.mark.parametrize("name", canopy.__all__)
def test_all_names_resolve(name: str) -> None:
    """Every name in __all__ must resolve via __getattr__ without error."""
    obj = getattr(canopy, name)
    assert obj is not None, f"canopy.{name} resolved to None"


def test_resolved_names_are_the_real_objects() -> None:
    from canopy.app import App
    from canopy.http.response import redirect

    assert canopy.App is App
    assert canopy.redirect is redirect


def test_unknown_name_raises_attribute_error() -> None:
    """Accessing an unregistered name raises AttributeError."""
    with pytest.raises(AttributeError, match="no attribute"):
        canopy.__getattr__("ThisDoesNotExist")
