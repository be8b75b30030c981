"""Tests for nestling.__init__ — lazy imports cover all public names."""

import pytest

import nestling


@pytest.mark.parametrize("name", nestling.__all__)
def test_all_names_resolve(name: str) -> None:
    """Every name in __all__ must resolve via __getattr__ without error."""
    obj = getattr(nestling, name)
    assert obj is not None, f"nestling.{name} resolved to None"


def test_unknown_name_raises_attribute_error() -> None:
    with pytest.raises(AttributeError, match="no attribute"):
        nestling.__getattr__("ThisDoesNotExist")


def test_version() -> None:
    assert nestling.__version__
