"""Gates deciding whether a method's throws clause may be rewritten."""

from throwspec.classifier import is_broad_exception
from throwspec.enums import Modifier, SkipReason
from throwspec.hierarchy import TypeRef
from throwspec.models import MethodDeclaration
from throwspec.protocols import TypeSystem


def safe_to_modify_throws_clause(method: MethodDeclaration) -> bool:
    """Avoid modifying methods which may be overridden and public API."""
    if method.has_modifier(Modifier.PRIVATE):
        return True
    return (
        not method.has_modifier(Modifier.ABSTRACT)
        and not method.has_modifier(Modifier.PUBLIC)
        and (
            method.has_modifier(Modifier.STATIC)
            or method.has_modifier(Modifier.FINAL)
            or method.enclosing_final
        )
    )


def is_test_code(method: MethodDeclaration) -> bool:
    return method.unit is not None and method.unit.is_test


def check_eligibility(method: MethodDeclaration, types: TypeSystem) -> SkipReason | TypeRef:
    """Run the eligibility gates in order.

    Returns the reason of the first failing gate, or the declared broad type
    when the throws clause is a candidate for narrowing.
    """
    if len(method.throws) != 1:
        return SkipReason.NOT_SINGLE_THROWS
    if method.overrides:
        return SkipReason.OVERRIDES_SUPERTYPE
    if not safe_to_modify_throws_clause(method):
        return SkipReason.UNSAFE_TO_MODIFY

    declared = method.throws[0].type
    if declared is None:
        return SkipReason.UNRESOLVED_DECLARED_TYPE
    if not is_broad_exception(declared, types):
        return SkipReason.NOT_BROAD

    # Test fixtures often declare broad signatures on purpose.
    if is_test_code(method):
        return SkipReason.TEST_CODE
    return declared
