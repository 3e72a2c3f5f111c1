"""Fix synthesis: turning a target exception list into a text edit."""

import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from throwspec.classifier import contains_broad_exception
from throwspec.enums import FixKind, SkipReason
from throwspec.hierarchy import TypeRef
from throwspec.models import MethodDeclaration, SourceUnit, Span
from throwspec.protocols import TypeSystem

# Maximum of three checked exception types to avoid unreadable long catch statements.
MAX_CHECKED_EXCEPTIONS = 3

_IMPORT_LINE = re.compile(r"^[ \t]*import[ \t]+(static[ \t]+)?[\w.*]+[ \t]*;[ \t]*$", re.MULTILINE)
_PACKAGE_LINE = re.compile(r"^[ \t]*package[ \t]+[\w.]+[ \t]*;[ \t]*$", re.MULTILINE)


@dataclass
class TextEdit:
    """A machine-applicable rewrite of one throws clause."""

    kind: FixKind
    replacement: str
    span: Span | None = None
    imports: list[str] = field(default_factory=list)


def check_fix_target(exceptions: Sequence[TypeRef], types: TypeSystem) -> SkipReason | None:
    """Reject target lists that would not make the signature more specific."""
    if len(exceptions) > MAX_CHECKED_EXCEPTIONS:
        return SkipReason.TOO_MANY_EXCEPTIONS
    if contains_broad_exception(exceptions, types):
        return SkipReason.BROAD_EXCEPTION_THROWN
    return None


def pretty_type(
    t: TypeRef,
    unit: SourceUnit | None,
    imports_to_add: list[str],
    types: TypeSystem | None = None,
) -> str:
    """Render a type the way it should appear in the unit's source.

    Uses the simple name whenever the unit can see it, recording an import in
    imports_to_add when one is needed. Falls back to the qualified name when
    the simple name is already taken by a different import, or by a class of
    the unit's own package (known through types) that would hide java.lang,
    on-demand imports and the new import alike.
    """
    qualified = t.qualified_name
    simple = t.simple_name
    package = t.package

    if unit is None:
        return simple if package == "java.lang" else qualified

    single_imports = [imp for imp in unit.imports if not imp.endswith(".*")] + imports_to_add
    if qualified in single_imports:
        return simple
    if any(imp.rsplit(".", 1)[-1] == simple for imp in single_imports):
        return qualified
    if package == unit.package:
        return simple

    local = f"{unit.package}.{simple}" if unit.package else simple
    if types is not None and types.resolve(local) is not None:
        return qualified
    if f"{package}.*" in unit.imports or package == "java.lang":
        return simple

    imports_to_add.append(qualified)
    return simple


def render_text_edit(
    method: MethodDeclaration, exceptions: Sequence[TypeRef], types: TypeSystem
) -> TextEdit:
    """Build the edit replacing the method's single throws entry.

    An empty exception list deletes the whole clause, keyword included.
    """
    if not exceptions:
        return TextEdit(kind=FixKind.DELETE, replacement="", span=method.throws_span)

    imports_to_add: list[str] = []
    rendered = [pretty_type(t, method.unit, imports_to_add, types) for t in exceptions]
    entry_span = method.throws[0].span if method.throws else None
    return TextEdit(
        kind=FixKind.REPLACE,
        replacement=", ".join(rendered),
        span=entry_span,
        imports=imports_to_add,
    )


def _add_imports(source: str, imports: Sequence[str]) -> str:
    present = {
        m.group(0).strip().removeprefix("import").strip().rstrip(";").strip()
        for m in _IMPORT_LINE.finditer(source)
    }
    missing = [imp for imp in dict.fromkeys(imports) if imp not in present]
    if not missing:
        return source

    lines = "".join(f"import {imp};\n" for imp in missing)
    if not source.endswith("\n"):
        source += "\n"

    existing = list(_IMPORT_LINE.finditer(source))
    if existing:
        insert_at = existing[-1].end() + 1
        return source[:insert_at] + lines + source[insert_at:]

    package = _PACKAGE_LINE.search(source)
    if package is not None:
        insert_at = package.end() + 1
        return source[:insert_at] + "\n" + lines + source[insert_at:]

    return lines + "\n" + source


def apply_text_edits(source: str, edits: Sequence[TextEdit]) -> str:
    """Apply several edits to one source text.

    Raises:
        ValueError: if an edit has no span or two spans overlap.
    """
    spans = []
    for edit in edits:
        if edit.span is None:
            raise ValueError("edit has no source span")
        spans.append((edit.span, edit.replacement))

    previous_start = len(source)
    result = source
    for span, replacement in sorted(spans, key=lambda item: item[0].start, reverse=True):
        if span.end > previous_start or span.start > span.end or span.end > len(source):
            raise ValueError(f"invalid or overlapping span {span.start}-{span.end}")
        result = result[: span.start] + replacement + result[span.end :]
        previous_start = span.start

    imports = [imp for edit in edits for imp in edit.imports]
    return _add_imports(result, imports)


def apply_text_edit(source: str, edit: TextEdit) -> str:
    return apply_text_edits(source, [edit])
