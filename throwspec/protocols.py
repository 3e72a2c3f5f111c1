"""Protocol definitions for the services the check depends on.

The check never builds types itself. It receives `TypeRef` handles from a
type system and asks that system every question about them, so any front end
that can answer these queries can drive it.

Example usage with a hand-built hierarchy:

    from throwspec.analyzer import ThrowSpecificityCheck
    from throwspec.hierarchy import ClassHierarchy

    check = ThrowSpecificityCheck(ClassHierarchy())
    verdict = check.analyze(method)
"""

from typing import Protocol

from throwspec.hierarchy import TypeRef


class TypeSystem(Protocol):
    """Protocol for querying a resolved type hierarchy.

    Implementations hand out `TypeRef` handles from `resolve` and answer
    subtype and identity questions about them. `hierarchy.ClassHierarchy` is
    the built-in implementation.
    """

    def resolve(self, name: str) -> TypeRef | None:
        """Look up a type by its fully qualified name.

        Returns:
            The type handle, or None when the name cannot be resolved.
        """
        ...

    def is_subtype(self, a: TypeRef, b: TypeRef) -> bool:
        """Check whether a is b or a (transitive) subtype of b."""
        ...

    def is_same_type(self, a: TypeRef, b: TypeRef) -> bool:
        """Check whether a and b denote the same type."""
        ...

    def render(self, t: TypeRef) -> str:
        """Render a type back to source-like text (its qualified name)."""
        ...
