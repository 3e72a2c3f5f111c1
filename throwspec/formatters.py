"""Output formatters for CLI results.

Each formatter takes a result dataclass and renders it as text or JSON.
All Rich console output is contained here.
"""

import json
from pathlib import Path

from rich.console import Console
from rich.tree import Tree

from throwspec.analyzer import SUMMARY, AnalysisTrace, Finding, NoFinding
from throwspec.enums import FixKind
from throwspec.fixes import TextEdit
from throwspec.hierarchy import TypeRef
from throwspec.results import (
    CheckResult,
    ExceptionsResult,
    ExplainResult,
    FixResult,
    MethodReport,
)

SKIP_REASON_LABELS = {
    "not_single_throws": "does not declare exactly one exception",
    "overrides_supertype": "overrides or implements a supertype method",
    "unsafe_to_modify": "may be overridden or is public API",
    "unresolved_declared_type": "declared exception type could not be resolved",
    "not_broad": "declared exception is already specific",
    "test_code": "test code",
    "too_many_exceptions": "would need more than 3 exception types",
    "broad_exception_thrown": "body itself throws a broad exception",
    "excluded": "excluded by configuration",
    "analysis_error": "analysis failed",
}


def _rel_path(file: str, directory: Path) -> str:
    """Get relative path for display."""
    if file.startswith(str(directory)):
        return str(Path(file).relative_to(directory))
    return file


def _names(types: list[TypeRef]) -> list[str]:
    return [t.qualified_name for t in types]


def _edit_json(edit: TextEdit | None) -> dict | None:
    if edit is None:
        return None
    return {
        "kind": edit.kind.value,
        "replacement": edit.replacement,
        "span": [edit.span.start, edit.span.end] if edit.span else None,
        "imports": edit.imports,
    }


def _location(report: MethodReport, directory: Path) -> str:
    unit = report.method.unit
    path = _rel_path(unit.path, directory) if unit else "?"
    return f"{path}:{report.method.line}"


def _report_json(report: MethodReport) -> dict:
    method = report.method
    data: dict = {
        "method": method.signature,
        "file": method.unit.path if method.unit else None,
        "line": method.line,
    }
    if isinstance(report.verdict, Finding):
        data["declared"] = report.verdict.declared.qualified_name
        data["target"] = _names(report.verdict.target)
        data["message"] = report.message
        data["fix"] = _edit_json(report.edit)
    else:
        data["reason"] = report.verdict.reason.value
    return data


def _describe_edit(edit: TextEdit | None) -> str:
    if edit is None or edit.kind == FixKind.DELETE:
        return "remove the throws clause"
    return f"throws {edit.replacement}"


def check(
    result: CheckResult,
    output_format: str,
    directory: Path,
    console: Console,
    show_skipped: bool = False,
) -> None:
    """Format check result."""
    findings = result.findings
    if output_format == "json":
        data = {
            "query": "check",
            "methods": len(result.reports),
            "findings": len(findings),
            "results": [_report_json(r) for r in findings],
        }
        if show_skipped:
            data["skipped"] = [_report_json(r) for r in result.skipped]
        console.print_json(json.dumps(data, indent=2))
        return

    if not result.reports:
        console.print("[yellow]No methods found in program models[/yellow]")
        return

    console.print(f"\n[bold]Checked {len(result.reports)} methods[/bold]\n")

    if findings:
        console.print(f"[red bold]✗ {len(findings)} methods declare broad exceptions:[/red bold]\n")
        for report in findings:
            loc = _location(report, directory)
            console.print(
                f"  [cyan]{loc}[/cyan]  [green]{report.method.signature}[/green]"
            )
            console.print(f"    {report.message}")
            console.print(f"    [dim]fix:[/dim] [bold]{_describe_edit(report.edit)}[/bold]")
            if report.edit and report.edit.imports:
                console.print(f"    [dim]imports: {', '.join(report.edit.imports)}[/dim]")
            console.print()
        console.print(f"[dim]{SUMMARY}[/dim]\n")
    else:
        console.print("[green bold]✓ No broad throws clauses to narrow[/green bold]\n")

    if show_skipped:
        console.print("[bold]Skipped:[/bold]\n")
        for report in result.reports:
            verdict = report.verdict
            if not isinstance(verdict, NoFinding):
                continue
            label = SKIP_REASON_LABELS.get(verdict.reason.value, verdict.reason.value)
            console.print(f"  [dim]{report.method.signature}[/dim]  {label}")
        console.print()


def _trace_tree(trace: AnalysisTrace, directory: Path) -> Tree:
    method = trace.method
    tree = Tree(f"[bold]{method.signature}[/bold]")
    if method.unit:
        tree.add(f"[dim]{_rel_path(method.unit.path, directory)}:{method.line}[/dim]")

    declared = ", ".join(entry.name for entry in method.throws) or "(none)"
    tree.add(f"declared: [cyan]throws {declared}[/cyan]")

    verdict = trace.verdict
    if isinstance(verdict, NoFinding) and not trace.collected and not trace.normalized:
        label = SKIP_REASON_LABELS.get(verdict.reason.value, verdict.reason.value)
        tree.add(f"[yellow]stopped:[/yellow] {label}")
        return tree

    tree.add(f"collected: {', '.join(_names(trace.collected)) or '(nothing)'}")
    tree.add(f"checked: {', '.join(_names(trace.checked)) or '(nothing)'}")
    tree.add(f"minimal: {', '.join(_names(trace.normalized)) or '(nothing)'}")

    if isinstance(verdict, Finding):
        target = ", ".join(t.simple_name for t in verdict.target)
        fix = f"throws {target}" if target else "remove the throws clause"
        tree.add(f"[red]finding:[/red] {fix}")
    else:
        label = SKIP_REASON_LABELS.get(verdict.reason.value, verdict.reason.value)
        tree.add(f"[yellow]stopped:[/yellow] {label}")
    return tree


def explain(result: ExplainResult, output_format: str, directory: Path, console: Console) -> None:
    """Format explain result."""
    if output_format == "json":
        data = {
            "query": "explain",
            "method": result.method_name,
            "suggestions": result.suggestions,
            "results": [
                {
                    "method": trace.method.signature,
                    "collected": _names(trace.collected),
                    "checked": _names(trace.checked),
                    "normalized": _names(trace.normalized),
                    "verdict": (
                        {"finding": True, "target": _names(trace.verdict.target)}
                        if isinstance(trace.verdict, Finding)
                        else {"finding": False, "reason": trace.verdict.reason.value}
                    ),
                }
                for trace in result.traces
            ],
        }
        console.print_json(json.dumps(data, indent=2))
        return

    if not result.traces:
        console.print(f"[yellow]No method named {result.method_name}[/yellow]")
        if result.suggestions:
            console.print("[dim]Did you mean:[/dim]")
            for suggestion in result.suggestions:
                console.print(f"  {suggestion}")
        return

    for trace in result.traces:
        console.print(_trace_tree(trace, directory))
        console.print()


def exceptions(result: ExceptionsResult, output_format: str, console: Console) -> None:
    """Format exceptions result."""
    if output_format == "json":
        data = {
            "query": "exceptions",
            "results": [
                {
                    "name": info.name,
                    "supertypes": info.supertypes,
                    "checked": info.checked,
                    "broad": info.broad,
                    "declared_in_model": info.declared_in_model,
                }
                for info in result.types
            ],
        }
        console.print_json(json.dumps(data, indent=2))
        return

    console.print(f"\n[bold]{len(result.types)} throwable types:[/bold]\n")
    for info in result.types:
        if info.broad:
            tag = "[red]broad[/red]"
        elif info.checked:
            tag = "[green]checked[/green]"
        else:
            tag = "[dim]unchecked[/dim]"
        origin = " [magenta](model)[/magenta]" if info.declared_in_model else ""
        parent = info.supertypes[0] if info.supertypes else ""
        console.print(f"  {info.name}{origin}  {tag}  [dim]extends {parent}[/dim]")
    console.print()


def fixes(result: FixResult, output_format: str, directory: Path, console: Console) -> None:
    """Format fix result."""
    if output_format == "json":
        data = {
            "query": "fix",
            "dry_run": result.dry_run,
            "files": {
                path: [_report_json(r) for r in reports]
                for path, reports in result.edits_by_file.items()
            },
            "not_applicable": [_report_json(r) for r in result.not_applicable],
        }
        console.print_json(json.dumps(data, indent=2))
        return

    if not result.edits_by_file and not result.not_applicable:
        console.print("[green]Nothing to fix[/green]")
        return

    verb = "Would update" if result.dry_run else "Updated"
    for path, reports in result.edits_by_file.items():
        console.print(f"[green]{verb}[/green] {_rel_path(path, directory)}")
        for report in reports:
            console.print(
                f"  [dim]{report.method.signature}:[/dim] {_describe_edit(report.edit)}"
            )

    if result.not_applicable:
        console.print(
            f"\n[yellow]{len(result.not_applicable)} findings have no locatable source:[/yellow]"
        )
        for report in result.not_applicable:
            console.print(f"  {report.method.signature}")
