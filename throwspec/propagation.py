"""Exception flow collection.

Computes which exception types can escape a method body, taking into account
what the body catches and what its catch blocks rethrow.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from throwspec.hierarchy import TypeRef
from throwspec.models import (
    Block,
    CatchClause,
    Invoke,
    Lambda,
    Node,
    Rethrow,
    Throw,
    Try,
    Unresolved,
)
from throwspec.protocols import TypeSystem

log = logging.getLogger("throwspec")


def add_unique(exceptions: list[TypeRef], t: TypeRef, types: TypeSystem) -> bool:
    """Append t unless an identical type is already present."""
    if any(types.is_same_type(existing, t) for existing in exceptions):
        return False
    exceptions.append(t)
    return True


@dataclass
class CatchFrame:
    """The catch clauses of one enclosing try region.

    captured[i] collects every type that reached clause i, which is what a
    rethrow of that clause's parameter can deliver.
    """

    clauses: list[CatchClause]
    captured: list[list[TypeRef]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.captured:
            self.captured = [[] for _ in self.clauses]

    def offer(self, t: TypeRef, types: TypeSystem) -> bool:
        """Route a thrown type through the clauses in order.

        Returns True when some clause catches every instance of t. A clause
        whose caught type is a strict subtype of t catches only part of it,
        so t keeps travelling outward.
        """
        for index, clause in enumerate(self.clauses):
            for caught in clause.types:
                if types.is_subtype(t, caught):
                    add_unique(self.captured[index], t, types)
                    return True
                if types.is_subtype(caught, t):
                    add_unique(self.captured[index], caught, types)
        return False


class ExceptionFlowCollector:
    """Walks a body with an explicit stack of active catch frames."""

    def __init__(self, types: TypeSystem) -> None:
        self.types = types
        self._escaping: list[TypeRef] = []
        self._catch_stack: list[CatchFrame] = []
        self._param_scopes: list[dict[str, list[TypeRef]]] = []

    def collect(self, body: list[Node]) -> list[TypeRef]:
        """Return the exception types that escape body, in discovery order."""
        self._escaping = []
        self._catch_stack = []
        self._param_scopes = []
        self._walk_all(body)
        return list(self._escaping)

    def _walk_all(self, nodes: list[Node]) -> None:
        for node in nodes:
            self._walk(node)

    def _walk(self, node: Node) -> None:
        if isinstance(node, Block):
            self._walk_all(node.statements)
        elif isinstance(node, Throw):
            if node.exception is None:
                log.debug("skipping throw with unresolved type at line %s", node.line)
                return
            self._throw(node.exception)
        elif isinstance(node, Rethrow):
            for t in self._rethrown_types(node.param):
                self._throw(t)
        elif isinstance(node, Invoke):
            self._walk_all(node.arguments)
            if node.throws is None:
                log.debug("skipping unresolved call %s at line %s", node.target, node.line)
                return
            for t in node.throws:
                self._throw(t)
        elif isinstance(node, Try):
            self._walk_try(node)
        elif isinstance(node, Lambda):
            # Exceptions belong to the functional interface, not to this method.
            return
        elif isinstance(node, Unresolved):
            log.debug("skipping unresolved fragment at line %s: %s", node.line, node.reason)

    def _walk_try(self, node: Try) -> None:
        frame = CatchFrame(node.catches)
        self._catch_stack.append(frame)
        try:
            for resource in node.resources:
                self._walk_all(resource.init)
            self._walk_all(node.body)
            for resource in reversed(node.resources):
                if resource.close_throws is None:
                    log.debug("skipping unresolved close() of %s", resource.type_name)
                    continue
                for t in resource.close_throws:
                    self._throw(t)
        finally:
            self._catch_stack.pop()

        for index, clause in enumerate(node.catches):
            scope: dict[str, list[TypeRef]] = {}
            if clause.param:
                scope[clause.param] = (
                    list(clause.types) if clause.reassigned else list(frame.captured[index])
                )
            self._param_scopes.append(scope)
            try:
                self._walk_all(clause.body)
            finally:
                self._param_scopes.pop()

        self._walk_all(node.finally_body)

    def _rethrown_types(self, param: str) -> list[TypeRef]:
        for scope in reversed(self._param_scopes):
            if param in scope:
                return scope[param]
        log.debug("rethrow of unknown catch parameter %r", param)
        return []

    def _throw(self, t: TypeRef) -> None:
        for frame in reversed(self._catch_stack):
            if frame.offer(t, self.types):
                return
        add_unique(self._escaping, t, self.types)


def collect_thrown_exceptions(body: list[Node], types: TypeSystem) -> list[TypeRef]:
    """Compute the exception types that can escape a method body."""
    return ExceptionFlowCollector(types).collect(body)
