"""Data models for throws-clause analysis."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

from throwspec.enums import Modifier
from throwspec.hierarchy import ClassHierarchy, TypeRef

__all__ = [
    "Span",
    "Block",
    "Throw",
    "Rethrow",
    "Invoke",
    "Resource",
    "CatchClause",
    "Try",
    "Lambda",
    "Unresolved",
    "Node",
    "ThrowsEntry",
    "SourceUnit",
    "MethodDeclaration",
    "ClassDef",
    "ProgramModel",
]


@dataclass(frozen=True)
class Span:
    """Character offsets [start, end) into a source file."""

    start: int
    end: int


@dataclass
class Block:
    """A structured statement: branch, loop body, switch arm or plain block."""

    statements: list["Node"] = field(default_factory=list)
    line: int | None = None


@dataclass
class Throw:
    """An explicit throw of an expression with a known static type.

    exception is None when the thrown type could not be resolved.
    """

    exception: TypeRef | None
    line: int | None = None


@dataclass
class Rethrow:
    """A throw of a catch parameter."""

    param: str
    line: int | None = None


@dataclass
class Invoke:
    """A method or constructor call.

    throws holds the callee's declared exceptions, or None when the callee
    could not be resolved. Arguments are evaluated before the call.
    """

    target: str
    throws: list[TypeRef] | None = None
    arguments: list["Node"] = field(default_factory=list)
    line: int | None = None


@dataclass
class Resource:
    """A try-with-resources declaration."""

    type_name: str
    init: list["Node"] = field(default_factory=list)
    close_throws: list[TypeRef] | None = None
    line: int | None = None


@dataclass
class CatchClause:
    """One catch clause; several types for a multi-catch."""

    types: list[TypeRef] = field(default_factory=list)
    param: str | None = None
    body: list["Node"] = field(default_factory=list)
    reassigned: bool = False
    line: int | None = None


@dataclass
class Try:
    """A try statement, with or without resources."""

    body: list["Node"] = field(default_factory=list)
    catches: list[CatchClause] = field(default_factory=list)
    resources: list[Resource] = field(default_factory=list)
    finally_body: list["Node"] = field(default_factory=list)
    line: int | None = None


@dataclass
class Lambda:
    """A lambda or anonymous class body; analyzed on its own."""

    body: list["Node"] = field(default_factory=list)
    line: int | None = None


@dataclass
class Unresolved:
    """A body fragment the front end could not resolve."""

    reason: str = ""
    line: int | None = None


Node = Union[Block, Throw, Rethrow, Invoke, Try, Lambda, Unresolved]


@dataclass
class ThrowsEntry:
    """One type in a declared throws clause, as written."""

    name: str
    type: TypeRef | None = None
    span: Span | None = None


@dataclass
class SourceUnit:
    """A compilation unit described by one program model document."""

    path: str
    package: str = ""
    imports: list[str] = field(default_factory=list)
    source_path: Path | None = None
    is_test: bool = False


@dataclass
class MethodDeclaration:
    """A method declaration under analysis."""

    name: str
    owner: str
    line: int = 0
    params: list[str] = field(default_factory=list)
    modifiers: set[Modifier] = field(default_factory=set)
    annotations: list[str] = field(default_factory=list)
    throws: list[ThrowsEntry] = field(default_factory=list)
    throws_span: Span | None = None
    body: list[Node] = field(default_factory=list)
    enclosing_final: bool = False
    overrides: bool = False
    unit: SourceUnit | None = None

    @property
    def qualified_name(self) -> str:
        return f"{self.owner}.{self.name}"

    @property
    def signature(self) -> str:
        return f"{self.qualified_name}({', '.join(self.params)})"

    def has_modifier(self, modifier: Modifier) -> bool:
        return modifier in self.modifiers


@dataclass
class ClassDef:
    """A class or interface definition."""

    name: str
    supertypes: list[str] = field(default_factory=list)
    modifiers: set[Modifier] = field(default_factory=set)
    is_interface: bool = False
    methods: list[MethodDeclaration] = field(default_factory=list)
    line: int = 0

    @property
    def is_final(self) -> bool:
        return Modifier.FINAL in self.modifiers

    def find_methods(self, name: str, params: list[str] | None = None) -> list[MethodDeclaration]:
        """Find methods by name, optionally narrowed to exact parameter types."""
        return [
            m for m in self.methods if m.name == name and (params is None or m.params == params)
        ]


@dataclass
class ProgramModel:
    """The complete resolved model of a program for analysis."""

    hierarchy: ClassHierarchy = field(default_factory=ClassHierarchy)
    classes: dict[str, ClassDef] = field(default_factory=dict)
    units: list[SourceUnit] = field(default_factory=list)

    @property
    def methods(self) -> list[MethodDeclaration]:
        return [m for cls in self.classes.values() for m in cls.methods]

    def find_method(self, name: str) -> list[MethodDeclaration]:
        """Find methods by simple name, qualified name or full signature."""
        return [
            m
            for m in self.methods
            if name in (m.name, m.qualified_name, m.signature)
            or m.qualified_name.endswith(f".{name}")
        ]
