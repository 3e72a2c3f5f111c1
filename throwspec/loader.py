"""Load program model documents and link them into a resolved ProgramModel.

Each YAML document describes one compilation unit as a compiler front end
resolved it. Loading happens in two steps: documents are read and validated
(concurrently, one task per file), then linked together: class names are
qualified, the type hierarchy is built, call sites are matched to declared
signatures of program methods or library stubs, and override and test-code
metadata is computed.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from throwspec import timing
from throwspec.config import CONFIG_DIR, ThrowspecConfig
from throwspec.enums import Modifier
from throwspec.hierarchy import OBJECT, TypeRef
from throwspec.models import (
    Block,
    CatchClause,
    ClassDef,
    Invoke,
    Lambda,
    MethodDeclaration,
    Node,
    ProgramModel,
    Resource,
    Rethrow,
    SourceUnit,
    Span,
    Throw,
    ThrowsEntry,
    Try,
    Unresolved,
)
from throwspec.source import locate_throws_clause
from throwspec.stubs import StubLibrary, load_stubs

log = logging.getLogger("throwspec")

CONSTRUCTOR = "<init>"
PRIMITIVES = frozenset(
    {"boolean", "byte", "char", "short", "int", "long", "float", "double", "void"}
)
NODE_KEYS = ("block", "throw", "rethrow", "call", "new", "try", "lambda", "unresolved")
MODIFIER_VALUES = {m.value for m in Modifier}

_CALL_TARGET = re.compile(r"^(?P<path>[\w$.<>]+?)(?:\((?P<params>[^)]*)\))?$")


@dataclass
class ModelDocument:
    """A parsed program model document."""

    path: str
    data: dict[str, Any]
    base_dir: Path | None = None


def _is_str_list(value: object) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


def _validate_nodes(nodes: object, where: str, errors: list[str]) -> None:
    if nodes is None:
        return
    if not isinstance(nodes, list):
        errors.append(f"{where}: body must be a list")
        return

    for index, node in enumerate(nodes):
        at = f"{where}[{index}]"
        if not isinstance(node, dict):
            errors.append(f"{at}: node must be a dictionary")
            continue
        kinds = [k for k in NODE_KEYS if k in node]
        if len(kinds) != 1:
            errors.append(f"{at}: node must have exactly one of {', '.join(NODE_KEYS)}")
            continue
        kind = kinds[0]
        value = node[kind]
        if kind in ("block", "lambda"):
            _validate_nodes(value, at, errors)
        elif kind in ("throw", "rethrow", "new", "call") and not isinstance(value, str):
            errors.append(f"{at}: '{kind}' must be a string")
        elif kind == "try":
            _validate_try(value, at, errors)
        if "throws" in node and not _is_str_list(node["throws"]):
            errors.append(f"{at}: 'throws' must be a list of strings")
        if "args" in node:
            _validate_nodes(node["args"], f"{at}.args", errors)


def _validate_try(value: object, at: str, errors: list[str]) -> None:
    if not isinstance(value, dict):
        errors.append(f"{at}: 'try' must be a dictionary")
        return
    _validate_nodes(value.get("body"), f"{at}.body", errors)
    _validate_nodes(value.get("finally"), f"{at}.finally", errors)
    for r_index, resource in enumerate(value.get("resources") or []):
        if not isinstance(resource, dict) or not isinstance(resource.get("type"), str):
            errors.append(f"{at}.resources[{r_index}]: resource needs a 'type'")
            continue
        _validate_nodes(resource.get("init"), f"{at}.resources[{r_index}].init", errors)
    for c_index, clause in enumerate(value.get("catch") or []):
        if not isinstance(clause, dict):
            errors.append(f"{at}.catch[{c_index}]: catch clause must be a dictionary")
            continue
        caught = clause.get("types", clause.get("type"))
        if not (isinstance(caught, str) or _is_str_list(caught)) or not caught:
            errors.append(f"{at}.catch[{c_index}]: catch clause needs 'types'")
        _validate_nodes(clause.get("body"), f"{at}.catch[{c_index}].body", errors)


def validate_model_document(data: object) -> list[str]:
    """Validate a program model document and return any errors."""
    errors: list[str] = []

    if not isinstance(data, dict):
        errors.append("Root must be a dictionary")
        return errors

    if "package" in data and not isinstance(data["package"], str):
        errors.append("'package' must be a string")
    if "imports" in data and not _is_str_list(data["imports"]):
        errors.append("'imports' must be a list of strings")

    classes = data.get("classes")
    if not isinstance(classes, list):
        errors.append("'classes' must be a list")
        return errors

    for c_index, cls in enumerate(classes):
        if not isinstance(cls, dict) or not isinstance(cls.get("name"), str):
            errors.append(f"classes[{c_index}]: class needs a 'name'")
            continue
        class_name = cls["name"]
        for key in ("modifiers", "implements"):
            if key in cls and not _is_str_list(cls[key]):
                errors.append(f"{class_name}: '{key}' must be a list of strings")
        for modifier in cls.get("modifiers") or []:
            if modifier not in MODIFIER_VALUES:
                errors.append(f"{class_name}: unknown modifier '{modifier}'")
        for m_index, method in enumerate(cls.get("methods") or []):
            if not isinstance(method, dict) or not isinstance(method.get("name"), str):
                errors.append(f"{class_name}.methods[{m_index}]: method needs a 'name'")
                continue
            where = f"{class_name}.{method['name']}"
            for key in ("modifiers", "params", "throws", "annotations"):
                if key in method and not _is_str_list(method[key]):
                    errors.append(f"{where}: '{key}' must be a list of strings")
            for modifier in method.get("modifiers") or []:
                if modifier not in MODIFIER_VALUES:
                    errors.append(f"{where}: unknown modifier '{modifier}'")
            _validate_nodes(method.get("body"), where, errors)

    return errors


def read_model_document(file_path: Path, relative_path: str) -> ModelDocument | None:
    """Read one YAML document; None when it is not a valid program model."""
    try:
        with open(file_path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        log.warning("skipping %s: %s", relative_path, e)
        return None

    if not isinstance(data, dict) or "classes" not in data:
        log.debug("skipping %s: not a program model", relative_path)
        return None

    errors = validate_model_document(data)
    if errors:
        for error in errors:
            log.warning("%s: %s", relative_path, error)
        return None

    return ModelDocument(path=relative_path, data=data, base_dir=file_path.parent)


def _should_exclude(path_str: str) -> bool:
    parts = path_str.replace("\\", "/").split("/")
    return any(part == CONFIG_DIR or (part.startswith(".") and part != ".") for part in parts)


def find_model_files(directory: Path) -> list[tuple[Path, str]]:
    """Find candidate YAML documents under a directory."""
    work_items: list[tuple[Path, str]] = []
    for pattern in ("*.yaml", "*.yml"):
        for file_path in directory.rglob(pattern):
            relative_path = str(file_path.relative_to(directory))
            if not _should_exclude(relative_path):
                work_items.append((file_path, relative_path))
    return sorted(work_items, key=lambda item: item[1])


def read_documents(path: Path) -> list[ModelDocument]:
    """Read every program model document at path (a file or a directory)."""
    if path.is_file():
        document = read_model_document(path, path.name)
        return [document] if document else []

    work_items = find_model_files(path)
    documents: list[ModelDocument] = []
    max_workers = min(32, (os.cpu_count() or 1) + 4)

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {
            executor.submit(read_model_document, fp, rp): rp for fp, rp in work_items
        }
        for future in as_completed(futures):
            document = future.result()
            if document is not None:
                documents.append(document)

    return sorted(documents, key=lambda d: d.path)


def _clean_type_name(name: str) -> str:
    name = re.sub(r"<.*>", "", name)
    name = name.replace("[]", "").replace("...", "")
    return re.sub(r"\s+", "", name)


def _as_list(value: object) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]  # type: ignore[union-attr]


class ModelLinker:
    """Links parsed documents into a ProgramModel."""

    def __init__(self, config: ThrowspecConfig, stubs: StubLibrary) -> None:
        self.config = config
        self.stubs = stubs
        self.model = ProgramModel()
        self._source_cache: dict[Path, str | None] = {}
        self._claimed_spans: dict[Path, dict[Span, str]] = {}

    def link(self, documents: Sequence[ModelDocument]) -> ProgramModel:
        units = [(self._build_unit(doc), doc) for doc in documents]
        self.model.units = [unit for unit, _ in units]

        declared: list[tuple[SourceUnit, dict[str, Any], str]] = []
        for unit, doc in units:
            for cls in doc.data.get("classes") or []:
                qualified = f"{unit.package}.{cls['name']}" if unit.package else cls["name"]
                if qualified in self.model.classes:
                    log.warning("%s: duplicate class %s ignored", unit.path, qualified)
                    continue
                self.model.classes[qualified] = ClassDef(name=qualified, line=cls.get("line", 0))
                declared.append((unit, cls, qualified))

        for owner, supertypes in self.stubs.supertypes.items():
            if not self.model.hierarchy.is_known(owner):
                self.model.hierarchy.add_type(owner, supertypes)

        for unit, cls, qualified in declared:
            self._register_class(unit, cls, qualified)

        for unit, cls, qualified in declared:
            self._build_methods(unit, cls, qualified)

        for unit, cls, qualified in declared:
            class_def = self.model.classes[qualified]
            for method, raw in zip(class_def.methods, cls.get("methods") or []):
                method.body = self._build_nodes(raw.get("body"), unit, qualified)
                method.overrides = self._compute_overrides(method, raw)
                self._locate_spans(method)

        return self.model

    def _build_unit(self, doc: ModelDocument) -> SourceUnit:
        data = doc.data
        imports = [imp.removeprefix("static ").strip() for imp in _as_list(data.get("imports"))]
        source_path = None
        if data.get("source") and doc.base_dir is not None:
            source_path = doc.base_dir / str(data["source"])

        if data.get("source"):
            unit_path = os.path.normpath(os.path.join(os.path.dirname(doc.path), str(data["source"])))
        else:
            unit_path = doc.path
        unit_path = unit_path.replace("\\", "/")
        if "test" in data:
            is_test = bool(data["test"])
        else:
            is_test = self.config.is_test_path(self._location(doc, unit_path)) or any(
                self.config.is_test_import(imp) for imp in imports
            )

        return SourceUnit(
            path=unit_path,
            package=str(data.get("package") or ""),
            imports=imports,
            source_path=source_path,
            is_test=is_test,
        )

    @staticmethod
    def _location(doc: ModelDocument, unit_path: str) -> str:
        """Where the unit lives on disk, independent of the directory that was scanned.

        Documents built in memory have no base directory; their unit path is used as is.
        """
        if doc.base_dir is None:
            return unit_path
        name = str(doc.data.get("source") or os.path.basename(doc.path))
        return (doc.base_dir / name).resolve().as_posix()

    def _is_known(self, name: str) -> bool:
        return (
            name in self.model.classes
            or self.model.hierarchy.is_known(name)
            or name in self.stubs.stubs
        )

    def resolve_name(self, raw: str, unit: SourceUnit) -> str:
        """Qualify a type name as written in a unit."""
        name = _clean_type_name(raw)
        if not name or name in PRIMITIVES:
            return name
        if "." in name and self._is_known(name):
            return name

        head, _, rest = name.partition(".")
        suffix = f".{rest}" if rest else ""

        for imp in unit.imports:
            if not imp.endswith(".*") and imp.rsplit(".", 1)[-1] == head:
                return imp + suffix

        candidates = []
        if unit.package:
            candidates.append(f"{unit.package}.{name}")
        candidates.append(f"java.lang.{name}")
        candidates.extend(imp[:-1] + name for imp in unit.imports if imp.endswith(".*"))
        for candidate in candidates:
            if self._is_known(candidate):
                return candidate

        if "." in name:
            return name
        return f"{unit.package}.{name}" if unit.package else name

    def resolve_type(self, raw: str, unit: SourceUnit) -> TypeRef | None:
        qualified = self.resolve_name(raw, unit)
        t = self.model.hierarchy.resolve(qualified)
        if t is None:
            log.warning("%s: cannot resolve type %r", unit.path, raw)
        return t

    def _register_class(self, unit: SourceUnit, cls: dict[str, Any], qualified: str) -> None:
        class_def = self.model.classes[qualified]
        class_def.modifiers = {Modifier(m) for m in cls.get("modifiers") or []}
        class_def.is_interface = bool(cls.get("interface", False))

        supertypes = [self.resolve_name(s, unit) for s in _as_list(cls.get("extends"))]
        supertypes += [self.resolve_name(s, unit) for s in _as_list(cls.get("implements"))]
        if not class_def.is_interface and not _as_list(cls.get("extends")):
            supertypes.insert(0, OBJECT)

        class_def.supertypes = supertypes
        self.model.hierarchy.add_type(qualified, supertypes)

    def _build_methods(self, unit: SourceUnit, cls: dict[str, Any], qualified: str) -> None:
        class_def = self.model.classes[qualified]
        for raw in cls.get("methods") or []:
            modifiers = {Modifier(m) for m in raw.get("modifiers") or []}
            if class_def.is_interface and Modifier.PRIVATE not in modifiers:
                modifiers.add(Modifier.PUBLIC)
                if not ({Modifier.DEFAULT, Modifier.STATIC} & modifiers) and "body" not in raw:
                    modifiers.add(Modifier.ABSTRACT)

            throws = [
                ThrowsEntry(name=name, type=self.resolve_type(name, unit))
                for name in _as_list(raw.get("throws"))
            ]
            class_def.methods.append(
                MethodDeclaration(
                    name=raw["name"],
                    owner=qualified,
                    line=int(raw.get("line", 0)),
                    params=[self.resolve_name(p, unit) for p in _as_list(raw.get("params"))],
                    modifiers=modifiers,
                    annotations=[a.lstrip("@") for a in _as_list(raw.get("annotations"))],
                    throws=throws,
                    enclosing_final=class_def.is_final,
                    unit=unit,
                )
            )

    def _build_nodes(self, raw_nodes: object, unit: SourceUnit, owner: str) -> list[Node]:
        return [self._build_node(raw, unit, owner) for raw in raw_nodes or []]  # type: ignore[attr-defined]

    def _build_node(self, raw: dict[str, Any], unit: SourceUnit, owner: str) -> Node:
        line = raw.get("line")
        if "block" in raw:
            return Block(statements=self._build_nodes(raw["block"], unit, owner), line=line)
        if "lambda" in raw:
            return Lambda(body=self._build_nodes(raw["lambda"], unit, owner), line=line)
        if "throw" in raw:
            return Throw(exception=self.resolve_type(raw["throw"], unit), line=line)
        if "rethrow" in raw:
            return Rethrow(param=raw["rethrow"], line=line)
        if "call" in raw or "new" in raw:
            return self._build_invoke(raw, unit, owner)
        if "try" in raw:
            return self._build_try(raw["try"], unit, owner, line)
        return Unresolved(reason=str(raw.get("unresolved", "")), line=line)

    def _build_invoke(self, raw: dict[str, Any], unit: SourceUnit, owner: str) -> Invoke:
        arguments = self._build_nodes(raw.get("args"), unit, owner)
        if "new" in raw:
            callee_owner = self.resolve_name(raw["new"], unit)
            target = f"{callee_owner}.{CONSTRUCTOR}"
            params = None
            method_name = CONSTRUCTOR
        else:
            match = _CALL_TARGET.match(raw["call"].replace(" ", ""))
            path = match.group("path") if match else raw["call"]
            callee_owner, _, method_name = path.rpartition(".")
            callee_owner = self.resolve_name(callee_owner, unit) if callee_owner else owner
            params = None
            if match and match.group("params") is not None:
                params = [
                    self.resolve_name(p, unit) for p in match.group("params").split(",") if p
                ]
            target = f"{callee_owner}.{method_name}"

        if "throws" in raw:
            declared = self._resolve_types(raw["throws"], unit)
        else:
            declared = self.lookup_throws(callee_owner, method_name, params)
            if declared is None:
                log.debug("%s: unresolved call %s", unit.path, target)

        return Invoke(target=target, throws=declared, arguments=arguments, line=raw.get("line"))

    def _build_try(
        self, raw: dict[str, Any], unit: SourceUnit, owner: str, line: int | None
    ) -> Try:
        resources = []
        for raw_resource in raw.get("resources") or []:
            type_name = self.resolve_name(raw_resource["type"], unit)
            resources.append(
                Resource(
                    type_name=type_name,
                    init=self._build_nodes(raw_resource.get("init"), unit, owner),
                    close_throws=self.lookup_throws(type_name, "close", []),
                    line=raw_resource.get("line"),
                )
            )

        catches = []
        for raw_clause in raw.get("catch") or []:
            caught = _as_list(raw_clause.get("types", raw_clause.get("type")))
            catches.append(
                CatchClause(
                    types=self._resolve_types(caught, unit),
                    param=raw_clause.get("param"),
                    body=self._build_nodes(raw_clause.get("body"), unit, owner),
                    reassigned=bool(raw_clause.get("reassigned", False)),
                    line=raw_clause.get("line"),
                )
            )

        return Try(
            body=self._build_nodes(raw.get("body"), unit, owner),
            catches=catches,
            resources=resources,
            finally_body=self._build_nodes(raw.get("finally"), unit, owner),
            line=line,
        )

    def _resolve_types(self, names: Sequence[str], unit: SourceUnit) -> list[TypeRef]:
        resolved = [self.resolve_type(name, unit) for name in names]
        return [t for t in resolved if t is not None]

    def _declared_throws(self, method: MethodDeclaration) -> list[TypeRef]:
        return [entry.type for entry in method.throws if entry.type is not None]

    def lookup_throws(
        self, owner: str, method_name: str, params: list[str] | None
    ) -> list[TypeRef] | None:
        """Find the declared throws of a callee, walking supertypes for inherited methods.

        Returns None when the callee cannot be resolved unambiguously.
        """
        search = [owner]
        if method_name != CONSTRUCTOR:
            search += self.model.hierarchy.get_supertypes(owner)

        for candidate in search:
            class_def = self.model.classes.get(candidate)
            if class_def is not None:
                matches = class_def.find_methods(method_name, params)
                if not matches and method_name == CONSTRUCTOR:
                    return []
                if len(matches) == 1:
                    return self._declared_throws(matches[0])
                if matches:
                    signatures = {frozenset(self._declared_throws(m)) for m in matches}
                    if len(signatures) == 1:
                        return self._declared_throws(matches[0])
                    log.debug("ambiguous call to %s.%s", candidate, method_name)
                    return None
                continue

            stubbed = self.stubs.get_throws(candidate, method_name)
            if stubbed is not None:
                return [
                    t for t in (self.model.hierarchy.resolve(name) for name in stubbed) if t
                ]

        return None

    def _compute_overrides(self, method: MethodDeclaration, raw: dict[str, Any]) -> bool:
        if "overrides" in raw:
            return bool(raw["overrides"])
        if "Override" in method.annotations:
            return True
        if method.name == CONSTRUCTOR or method.has_modifier(Modifier.PRIVATE):
            return False
        if method.has_modifier(Modifier.STATIC):
            return False

        for supertype in self.model.hierarchy.get_supertypes(method.owner):
            class_def = self.model.classes.get(supertype)
            if class_def is not None:
                for candidate in class_def.find_methods(method.name, method.params):
                    if not (
                        candidate.has_modifier(Modifier.PRIVATE)
                        or candidate.has_modifier(Modifier.STATIC)
                    ):
                        return True
            elif self.stubs.get_throws(supertype, method.name) is not None:
                return True
        return False

    def _read_source(self, path: Path) -> str | None:
        if path not in self._source_cache:
            try:
                self._source_cache[path] = path.read_text()
            except OSError as e:
                log.warning("cannot read source %s: %s", path, e)
                self._source_cache[path] = None
        return self._source_cache[path]

    def _locate_spans(self, method: MethodDeclaration) -> None:
        if method.unit is None or method.unit.source_path is None or not method.throws:
            return
        source = self._read_source(method.unit.source_path)
        if source is None:
            return

        if not method.line:
            siblings = self.model.classes[method.owner].find_methods(method.name, None)
            if len(siblings) > 1:
                log.debug("%s is overloaded and has no line; clause not located", method.signature)
                return

        name = method.name
        if name == CONSTRUCTOR:
            name = method.owner.rsplit(".", 1)[-1]
        located = locate_throws_clause(source, name, method.line)
        if located is None or len(located.entries) != len(method.throws):
            log.debug("no throws clause found for %s in %s", method.signature, method.unit.path)
            return

        claimed = self._claimed_spans.setdefault(method.unit.source_path, {})
        if located.clause in claimed:
            log.debug(
                "throws clause for %s already belongs to %s", method.signature, claimed[located.clause]
            )
            return
        claimed[located.clause] = method.signature

        method.throws_span = Span(located.clause.start, located.clause.end)
        for entry, (_, span) in zip(method.throws, located.entries):
            entry.span = span


def link_documents(
    documents: Sequence[ModelDocument],
    config: ThrowspecConfig | None = None,
    stubs: StubLibrary | None = None,
) -> ProgramModel:
    """Link already-parsed documents into a ProgramModel."""
    linker = ModelLinker(config or ThrowspecConfig(), stubs if stubs is not None else load_stubs())
    return linker.link(documents)


def load_program(
    path: Path,
    config: ThrowspecConfig | None = None,
    stubs: StubLibrary | None = None,
) -> ProgramModel:
    """Load and link every program model document at path."""
    with timing.timed("load_documents"):
        documents = read_documents(path)
    with timing.timed("link_documents"):
        model = link_documents(documents, config, stubs)
    timing.record_count("documents", len(documents))
    timing.record_count("methods", len(model.methods))
    return model
