"""Result dataclasses for query functions.

These define the contract between queries and formatters.
All query functions return one of these typed results.
"""

from dataclasses import dataclass, field

from throwspec.analyzer import AnalysisTrace, Finding, NoFinding, Verdict
from throwspec.fixes import TextEdit
from throwspec.models import MethodDeclaration


@dataclass
class MethodReport:
    """The verdict for one method, with its edit when there is a finding."""

    method: MethodDeclaration
    verdict: Verdict
    edit: TextEdit | None = None
    message: str = ""

    @property
    def is_finding(self) -> bool:
        return isinstance(self.verdict, Finding)


@dataclass
class CheckResult:
    """Result of checking every method in a program."""

    reports: list[MethodReport] = field(default_factory=list)

    @property
    def findings(self) -> list[MethodReport]:
        return [r for r in self.reports if r.is_finding]

    @property
    def skipped(self) -> list[MethodReport]:
        return [r for r in self.reports if isinstance(r.verdict, NoFinding)]


@dataclass
class ExplainResult:
    """Result of explaining the verdict for one method name."""

    method_name: str
    traces: list[AnalysisTrace]
    suggestions: list[str] = field(default_factory=list)


@dataclass
class ExceptionTypeInfo:
    """Info about one throwable type."""

    name: str
    supertypes: list[str]
    checked: bool
    broad: bool
    declared_in_model: bool


@dataclass
class ExceptionsResult:
    """Result of listing the throwable hierarchy."""

    types: list[ExceptionTypeInfo]


@dataclass
class FixResult:
    """Result of applying findings' edits to source files."""

    dry_run: bool
    edits_by_file: dict[str, list[MethodReport]] = field(default_factory=dict)
    not_applicable: list[MethodReport] = field(default_factory=list)
