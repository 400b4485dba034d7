"""Shared builders for snapshot-based tests."""

from __future__ import annotations

import pytest

from api_review.config.loader import clear_cache
from api_review.domain.models import (
    InterfaceItem,
    ItemKind,
    Parameter,
    Signature,
    Snapshot,
    Visibility,
)

LIBRARY = "pkg"


def item(path: str, kind: ItemKind = ItemKind.FUNCTION, **kwargs) -> InterfaceItem:
    """Build an item; functions get an empty signature unless one is given."""
    if kind is ItemKind.FUNCTION:
        kwargs.setdefault("signature", Signature())
    kwargs.setdefault("has_documented_contract", True)
    return InterfaceItem(path=path, kind=kind, **kwargs)


def module(path: str, **kwargs) -> InterfaceItem:
    return item(path, ItemKind.MODULE, **kwargs)


def private(path: str, kind: ItemKind = ItemKind.FUNCTION, **kwargs) -> InterfaceItem:
    return item(path, kind, visibility=Visibility.PRIVATE, **kwargs)


def params(*specs: tuple[str, str]) -> Signature:
    return Signature(parameters=tuple(Parameter(name=n, type_tag=t) for n, t in specs))


def snapshot(*items: InterfaceItem, version: str = "1.0.0", features=None) -> Snapshot:
    return Snapshot(library=LIBRARY, version=version, items=items, features=features or {})


@pytest.fixture(autouse=True)
def _fresh_config_cache():
    """Every test starts from an empty config cache."""
    clear_cache()
    yield
    clear_cache()
