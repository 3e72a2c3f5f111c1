"""Predicates classifying exception types."""

from collections.abc import Iterable

from throwspec.hierarchy import ERROR, EXCEPTION, RUNTIME_EXCEPTION, THROWABLE, TypeRef
from throwspec.protocols import TypeSystem

UNCHECKED_ROOTS = (RUNTIME_EXCEPTION, ERROR)
BROAD_EXCEPTIONS = (EXCEPTION, THROWABLE)


def is_checked_exception(t: TypeRef, types: TypeSystem) -> bool:
    """Check if t is outside both unchecked roots (RuntimeException and Error)."""
    for root_name in UNCHECKED_ROOTS:
        root = types.resolve(root_name)
        if root is not None and types.is_subtype(t, root):
            return False
    return True


def is_broad_exception(t: TypeRef, types: TypeSystem) -> bool:
    """Check if t is exactly Exception or Throwable.

    Subclasses never count, however they are named.
    """
    for broad_name in BROAD_EXCEPTIONS:
        broad = types.resolve(broad_name)
        if broad is not None and types.is_same_type(broad, t):
            return True
    return False


def contains_broad_exception(exceptions: Iterable[TypeRef], types: TypeSystem) -> bool:
    return any(is_broad_exception(t, types) for t in exceptions)
