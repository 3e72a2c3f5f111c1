import json
import shutil
import subprocess
import sys
import tempfile
from pathlib import Path

import pytest

from throwspec import timing
from throwspec.enums import Modifier
from throwspec.hierarchy import ClassHierarchy, TypeRef
from throwspec.loader import ModelDocument, link_documents, load_program
from throwspec.models import MethodDeclaration, ProgramModel, SourceUnit, ThrowsEntry
from throwspec.stubs import load_stubs

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def _reset_timing() -> None:
    """Timing stats are process-global; keep tests independent of each other."""
    timing.disable()


@pytest.fixture
def hierarchy() -> ClassHierarchy:
    """Built-in JDK hierarchy plus a few application exceptions."""
    h = ClassHierarchy()
    h.add_type("com.acme.AppException", ["java.lang.Exception"])
    h.add_type("com.acme.ValidationException", ["com.acme.AppException"])
    h.add_type("com.acme.StorageException", ["com.acme.AppException"])
    h.add_type("com.acme.ThrowableRuntime", ["java.lang.RuntimeException"])
    return h


@pytest.fixture
def shop_model() -> ProgramModel:
    """Pre-built model for the shop fixture."""
    return load_program(FIXTURES / "shop", stubs=load_stubs())


@pytest.fixture
def temp_project():
    """Create a temporary project directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def shop_copy(temp_project: Path) -> Path:
    """A writable copy of the shop fixture, for commands that edit sources."""
    target = temp_project / "shop"
    shutil.copytree(FIXTURES / "shop", target)
    return target


def t(name: str) -> TypeRef:
    return TypeRef(name)


def _entry(name: str | None) -> ThrowsEntry:
    if name is None:
        return ThrowsEntry(name="Unknown")
    return ThrowsEntry(name=name.rsplit(".", 1)[-1], type=TypeRef(name))


def make_method(
    throws: list[str | None],
    modifiers: tuple[Modifier, ...] = (Modifier.PRIVATE,),
    body: list | None = None,
    enclosing_final: bool = False,
    overrides: bool = False,
    is_test: bool = False,
) -> MethodDeclaration:
    """Build a MethodDeclaration directly, bypassing the loader."""
    unit = SourceUnit(path="src/main/java/com/acme/Svc.java", package="com.acme", is_test=is_test)
    return MethodDeclaration(
        name="work",
        owner="com.acme.Svc",
        line=3,
        modifiers=set(modifiers),
        throws=[_entry(name) for name in throws],
        body=body or [],
        enclosing_final=enclosing_final,
        overrides=overrides,
        unit=unit,
    )


def link(*documents: dict, base_dir: Path | None = None) -> ProgramModel:
    """Link in-memory model documents with the built-in stubs."""
    docs = [
        ModelDocument(path=f"doc{i}.yaml", data=data, base_dir=base_dir)
        for i, data in enumerate(documents)
    ]
    return link_documents(docs, stubs=load_stubs())


def run_cli(*args: str, fixture: str | Path | None = "shop") -> subprocess.CompletedProcess[str]:
    """Run throwspec CLI command via subprocess (for smoke tests only)."""
    cmd = [sys.executable, "-m", "throwspec.cli", *args]
    if fixture is not None:
        directory = fixture if isinstance(fixture, Path) else FIXTURES / fixture
        cmd.extend(["-d", str(directory)])
    return subprocess.run(cmd, capture_output=True, text=True)


def run_cli_json(*args: str, fixture: str | Path | None = "shop") -> dict:
    """Run throwspec CLI and parse JSON output."""
    result = run_cli(*args, "-f", "json", fixture=fixture)
    assert result.returncode == 0, f"CLI failed: {result.stderr}"
    return json.loads(result.stdout)
