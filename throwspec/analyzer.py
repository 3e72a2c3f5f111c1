"""The throws-clause specificity check.

Sequences the eligibility gates, flow collection, normalization and fix
synthesis into a single short-circuiting decision for one method.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from throwspec import timing
from throwspec.eligibility import check_eligibility
from throwspec.enums import SkipReason
from throwspec.fixes import TextEdit, check_fix_target, render_text_edit
from throwspec.hierarchy import TypeRef
from throwspec.models import MethodDeclaration
from throwspec.normalize import filter_checked, flatten_for_declaration
from throwspec.propagation import collect_thrown_exceptions
from throwspec.protocols import TypeSystem

CHECK_NAME = "ThrowSpecificity"

SUMMARY = (
    "Prefer to declare more specific throws types than Exception and Throwable. When methods are "
    "updated to throw new checked exceptions they expect callers to handle failure types explicitly. "
    "Throwing broad types defeats the type system. By throwing the most specific types possible we "
    "leverage existing compiler functionality to detect unreachable code."
)


@dataclass(frozen=True)
class NoFinding:
    """The method is left alone; reason names the gate that stopped it."""

    reason: SkipReason


@dataclass
class Finding:
    """The method's broad throws clause can be narrowed to target."""

    method: MethodDeclaration
    declared: TypeRef
    target: list[TypeRef] = field(default_factory=list)


Verdict = Union[NoFinding, Finding]


@dataclass
class AnalysisTrace:
    """Every intermediate set computed for one method, for explaining verdicts."""

    method: MethodDeclaration
    verdict: Verdict
    collected: list[TypeRef] = field(default_factory=list)
    checked: list[TypeRef] = field(default_factory=list)
    normalized: list[TypeRef] = field(default_factory=list)


class ThrowSpecificityCheck:
    """Flags methods declaring `throws Exception` or `throws Throwable` needlessly."""

    def __init__(self, types: TypeSystem) -> None:
        self.types = types

    def analyze(self, method: MethodDeclaration) -> Verdict:
        return self.trace(method).verdict

    def trace(self, method: MethodDeclaration) -> AnalysisTrace:
        """Analyze a method, keeping the intermediate exception sets."""
        with timing.timed("analysis_eligibility"):
            declared = check_eligibility(method, self.types)
        if isinstance(declared, SkipReason):
            return AnalysisTrace(method=method, verdict=NoFinding(declared))

        with timing.timed("analysis_flow"):
            collected = collect_thrown_exceptions(method.body, self.types)
        with timing.timed("analysis_normalize"):
            checked = filter_checked(collected, self.types)
            normalized = flatten_for_declaration(checked, self.types)

        reason = check_fix_target(normalized, self.types)
        verdict: Verdict
        if reason is not None:
            verdict = NoFinding(reason)
        else:
            verdict = Finding(method=method, declared=declared, target=normalized)

        return AnalysisTrace(
            method=method,
            verdict=verdict,
            collected=collected,
            checked=checked,
            normalized=normalized,
        )

    def render_fix(self, finding: Finding) -> TextEdit:
        """Build the edit that rewrites the finding's throws clause."""
        return render_text_edit(finding.method, finding.target, self.types)


def describe(finding: Finding, types: TypeSystem) -> str:
    """One-line message for a finding."""
    declared = types.render(finding.declared).rsplit(".", 1)[-1]
    if not finding.target:
        return f"Method declares 'throws {declared}' but throws no checked exceptions"
    names = ", ".join(types.render(t).rsplit(".", 1)[-1] for t in finding.target)
    return f"Method declares 'throws {declared}' but only throws {names}"
