"""Query functions behind the CLI commands.

Each function takes a ProgramModel and returns a result dataclass; no output
happens here.
"""

from __future__ import annotations

import difflib
import logging
from collections import defaultdict
from pathlib import Path

from throwspec import timing
from throwspec.analyzer import Finding, NoFinding, ThrowSpecificityCheck, Verdict, describe
from throwspec.classifier import is_broad_exception, is_checked_exception
from throwspec.config import ThrowspecConfig
from throwspec.enums import SkipReason
from throwspec.fixes import apply_text_edits
from throwspec.hierarchy import TypeRef
from throwspec.models import MethodDeclaration, ProgramModel
from throwspec.results import (
    CheckResult,
    ExceptionsResult,
    ExceptionTypeInfo,
    ExplainResult,
    FixResult,
    MethodReport,
)

log = logging.getLogger("throwspec")


def _analyze_isolated(check: ThrowSpecificityCheck, method: MethodDeclaration) -> Verdict:
    """Analyze one method; a failure here must not affect any other method."""
    try:
        return check.analyze(method)
    except Exception:
        log.exception("analysis of %s failed", method.signature)
        return NoFinding(SkipReason.ANALYSIS_ERROR)


def check_program(model: ProgramModel, config: ThrowspecConfig | None = None) -> CheckResult:
    """Run the throws-clause check over every method in the program."""
    config = config or ThrowspecConfig()
    check = ThrowSpecificityCheck(model.hierarchy)
    result = CheckResult()

    with timing.timed("check_program"):
        for method in model.methods:
            unit_path = method.unit.path if method.unit else None
            if config.is_excluded(method.qualified_name, unit_path):
                result.reports.append(MethodReport(method, NoFinding(SkipReason.EXCLUDED)))
                continue

            verdict = _analyze_isolated(check, method)
            report = MethodReport(method=method, verdict=verdict)
            if isinstance(verdict, Finding):
                report.edit = check.render_fix(verdict)
                report.message = describe(verdict, model.hierarchy)
            result.reports.append(report)

    timing.record_count("findings", len(result.findings))
    return result


def explain_method(model: ProgramModel, method_name: str) -> ExplainResult:
    """Trace the verdict of every method matching a name."""
    check = ThrowSpecificityCheck(model.hierarchy)
    matches = model.find_method(method_name)
    traces = [check.trace(method) for method in matches]

    suggestions: list[str] = []
    if not matches:
        known = sorted({m.qualified_name for m in model.methods})
        suggestions = difflib.get_close_matches(method_name, known, n=5, cutoff=0.5)
        if not suggestions:
            simple = [name for name in known if method_name.lower() in name.lower()]
            suggestions = simple[:5]

    return ExplainResult(method_name=method_name, traces=traces, suggestions=suggestions)


def find_exceptions(model: ProgramModel) -> ExceptionsResult:
    """List every throwable type the check knows about."""
    hierarchy = model.hierarchy
    types = []
    for name in hierarchy.throwable_types():
        t = TypeRef(name)
        types.append(
            ExceptionTypeInfo(
                name=name,
                supertypes=list(hierarchy.parent_map.get(name, [])),
                checked=is_checked_exception(t, hierarchy),
                broad=is_broad_exception(t, hierarchy),
                declared_in_model=name in model.classes,
            )
        )
    return ExceptionsResult(types=types)


def apply_fixes(result: CheckResult, dry_run: bool = False) -> FixResult:
    """Write every applicable finding's edit into its source file."""
    fix_result = FixResult(dry_run=dry_run)
    by_file: dict[Path, list[MethodReport]] = defaultdict(list)

    for report in result.findings:
        unit = report.method.unit
        if (
            report.edit is None
            or report.edit.span is None
            or unit is None
            or unit.source_path is None
        ):
            fix_result.not_applicable.append(report)
            continue
        by_file[unit.source_path].append(report)

    for source_path, reports in sorted(by_file.items()):
        try:
            source = source_path.read_text()
            updated = apply_text_edits(source, [r.edit for r in reports if r.edit is not None])
        except (OSError, ValueError) as e:
            log.warning("cannot apply fixes to %s: %s", source_path, e)
            fix_result.not_applicable.extend(reports)
            continue

        if not dry_run:
            source_path.write_text(updated)
        fix_result.edits_by_file[str(source_path)] = reports

    return fix_result
