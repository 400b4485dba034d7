"""Snapshot Model — one versioned public-interface surface.

A ``Snapshot`` is built once by a front end (compiler, doc extractor, or
``JsonSnapshotSource``) and is immutable afterwards. Construction checks
the structural invariants:

* item paths are unique,
* every parent path exists as a container item (the library root is
  implicit),
* every feature gate parses.

These are Pydantic models (frozen). Structural violations raise
``SnapshotParseError`` directly from the model validator.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from api_review.domain.errors import SnapshotParseError
from api_review.domain.features import FeatureExpr, parse_feature_expression
from api_review.domain.models.enums import ItemKind, Visibility

PATH_SEPARATOR = "."


def parent_path(path: str) -> Optional[str]:
    """Return the containing path of *path*, or ``None`` for a root segment."""
    head, sep, _leaf = path.rpartition(PATH_SEPARATOR)
    return head if sep else None


def leaf_name(path: str) -> str:
    return path.rpartition(PATH_SEPARATOR)[2]


# ---------------------------------------------------------------------------
# Signatures
# ---------------------------------------------------------------------------


class Parameter(BaseModel):
    """One positional parameter of a callable."""

    model_config = ConfigDict(frozen=True)

    name: str
    type_tag: str = Field(..., description="Type descriptor, e.g. 'bool' or 'Vec<u8>'")
    has_default: bool = False
    borrowed: bool = Field(False, description="Borrow-scoped reference")
    lifetime: Optional[str] = None


class GenericParameter(BaseModel):
    """A generic type parameter and its bound set."""

    model_config = ConfigDict(frozen=True)

    name: str
    bounds: tuple[str, ...] = ()

    @property
    def bound_set(self) -> frozenset[str]:
        return frozenset(self.bounds)


class Signature(BaseModel):
    """Callable or type signature.

    ``error`` is the error descriptor of a fallible operation; ``None``
    means the operation cannot fail.
    """

    model_config = ConfigDict(frozen=True)

    parameters: tuple[Parameter, ...] = ()
    generics: tuple[GenericParameter, ...] = ()
    returns: Optional[str] = None
    returns_borrowed: bool = False
    error: Optional[str] = None
    borrow_justification: Optional[str] = None

    @property
    def is_fallible(self) -> bool:
        return self.error is not None

    @property
    def exposes_borrow(self) -> bool:
        return self.returns_borrowed or any(p.borrowed for p in self.parameters)

    @property
    def bound_count(self) -> int:
        return sum(len(g.bounds) for g in self.generics)


class Deprecation(BaseModel):
    """Deprecation marker."""

    model_config = ConfigDict(frozen=True)

    since: str
    message: str = ""


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


class InterfaceItem(BaseModel):
    """One exported (or potentially exported) element of a library surface."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., min_length=1)
    kind: ItemKind
    visibility: Visibility = Visibility.PUBLIC
    signature: Optional[Signature] = None
    deprecated: Optional[Deprecation] = None
    feature_gate: Optional[str] = None
    has_documented_contract: bool = False
    uses_low_level_escape: bool = False
    escape_justification: Optional[str] = None

    @property
    def parent(self) -> Optional[str]:
        return parent_path(self.path)

    @property
    def name(self) -> str:
        return leaf_name(self.path)

    @property
    def gate(self) -> Optional[FeatureExpr]:
        """Parsed feature gate, or ``None`` for an unconditional item."""
        if self.feature_gate is None:
            return None
        return parse_feature_expression(self.feature_gate)


class Snapshot(BaseModel):
    """Immutable capture of one library version's exported surface."""

    model_config = ConfigDict(frozen=True)

    library: str = Field(..., min_length=1, description="Library name, also the root path")
    version: str
    items: tuple[InterfaceItem, ...] = ()
    features: dict[str, bool] = Field(
        default_factory=dict,
        description="Optional capability name -> default-on",
    )

    _index: Optional[dict[str, InterfaceItem]] = PrivateAttr(default=None)
    _closure: Optional[dict[str, bool]] = PrivateAttr(default=None)

    @model_validator(mode="after")
    def _check_structure(self) -> "Snapshot":
        index: dict[str, InterfaceItem] = {}
        for item in self.items:
            if item.path in index:
                raise SnapshotParseError(
                    f"Duplicate item path '{item.path}' in {self.library} {self.version}",
                    path=item.path,
                )
            index[item.path] = item

        root_prefix = self.library + PATH_SEPARATOR
        for item in self.items:
            if item.path == self.library:
                continue
            if not item.path.startswith(root_prefix):
                raise SnapshotParseError(
                    f"Item '{item.path}' is outside library root '{self.library}'",
                    path=item.path,
                )
            parent = item.parent
            if parent == self.library and parent not in index:
                continue
            container = index.get(parent)
            if container is None:
                raise SnapshotParseError(
                    f"Item '{item.path}' references missing parent module '{parent}'",
                    path=item.path,
                )
            if not container.kind.is_container:
                raise SnapshotParseError(
                    f"Item '{item.path}' is nested under '{parent}', "
                    f"which is a {container.kind.value}, not a container",
                    path=item.path,
                )
        for item in self.items:
            if item.feature_gate is not None:
                try:
                    parse_feature_expression(item.feature_gate)
                except SnapshotParseError as exc:
                    raise type(exc)(str(exc), path=item.path) from exc

        return self

    # -- Lookup --------------------------------------------------------------

    @property
    def paths(self) -> list[str]:
        return [item.path for item in self.items]

    def _lookup(self) -> dict[str, InterfaceItem]:
        if self._index is None:
            self._index = {item.path: item for item in self.items}
        return self._index

    def item(self, path: str) -> Optional[InterfaceItem]:
        return self._lookup().get(path)

    def __contains__(self, path: object) -> bool:
        return path in self._lookup()

    def __len__(self) -> int:
        return len(self.items)

    @property
    def default_features(self) -> frozenset[str]:
        return frozenset(name for name, on in self.features.items() if on)

    # -- Effective visibility ------------------------------------------------

    @property
    def effective_visibility(self) -> dict[str, bool]:
        """Path -> effectively public, computed on first use and cached."""
        if self._closure is None:
            self._closure = _compute_closure(self)
        return self._closure

    def is_public(self, path: str) -> bool:
        return self.effective_visibility.get(path, False)

    def public_items(self) -> list[InterfaceItem]:
        closure = self.effective_visibility
        return [item for item in self.items if closure[item.path]]


def _compute_closure(snapshot: Snapshot) -> dict[str, bool]:
    """Reachability from the root over module-containment edges.

    Containment is a tree, so a breadth-first walk from the root visits
    every container exactly once. A non-public container cuts off its whole
    subtree.
    """
    children: dict[str, list[InterfaceItem]] = {}
    for item in snapshot.items:
        if item.path == snapshot.library:
            continue
        children.setdefault(item.parent, []).append(item)

    root = snapshot.item(snapshot.library)
    root_public = root is None or root.visibility is Visibility.PUBLIC

    closure = {item.path: False for item in snapshot.items}
    if root is not None:
        closure[root.path] = root_public

    queue: list[tuple[str, bool]] = [(snapshot.library, root_public)]
    while queue:
        container, reachable = queue.pop(0)
        for child in children.get(container, ()):
            public = reachable and child.visibility is Visibility.PUBLIC
            closure[child.path] = public
            if child.kind.is_container:
                queue.append((child.path, public))
    return closure


def effective_visibility_closure(snapshot: Snapshot) -> dict[str, bool]:
    """Return the cached path -> effectively-public mapping of *snapshot*."""
    return snapshot.effective_visibility
