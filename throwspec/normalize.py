"""Reduce collected exception sets to what a throws clause must declare."""

from collections.abc import Iterable

from throwspec.classifier import is_checked_exception
from throwspec.hierarchy import TypeRef
from throwspec.protocols import TypeSystem


def filter_checked(exceptions: Iterable[TypeRef], types: TypeSystem) -> list[TypeRef]:
    """Drop unchecked exceptions; they never need declaring."""
    return [t for t in exceptions if is_checked_exception(t, types)]


def flatten_for_declaration(exceptions: Iterable[TypeRef], types: TypeSystem) -> list[TypeRef]:
    """Remove every type already covered by another type in the set.

    The result is an antichain under subtyping, kept in first-seen order.
    Unrelated siblings are never merged into a common ancestor that is not
    already present.
    """
    unique: list[TypeRef] = []
    for t in exceptions:
        if not any(types.is_same_type(t, seen) for seen in unique):
            unique.append(t)

    return [
        a
        for a in unique
        if not any(not types.is_same_type(a, b) and types.is_subtype(a, b) for b in unique)
    ]


def normalize_thrown_exceptions(
    exceptions: Iterable[TypeRef], types: TypeSystem
) -> list[TypeRef]:
    """Checked filter followed by antichain reduction."""
    return flatten_for_declaration(filter_checked(exceptions, types), types)
