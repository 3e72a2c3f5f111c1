"""Checked-exception stubs for library methods."""

from dataclasses import dataclass, field
from pathlib import Path

import yaml

BUILTIN_STUB_DIR = Path(__file__).parent / "stubs"


@dataclass
class StubLibrary:
    """Declared throws of library methods, keyed by owner class and method name."""

    stubs: dict[str, dict[str, list[str]]] = field(default_factory=dict)
    supertypes: dict[str, list[str]] = field(default_factory=dict)

    def get_throws(self, owner: str, method: str) -> list[str] | None:
        """Get the exceptions a library method declares; None when it is not stubbed."""
        owner_stubs = self.stubs.get(owner)
        if owner_stubs is None:
            return None
        return owner_stubs.get(method)

    def add_stub(self, owner: str, method: str, exceptions: list[str]) -> None:
        if owner not in self.stubs:
            self.stubs[owner] = {}
        self.stubs[owner][method] = exceptions

    def add_class(self, owner: str, supertypes: list[str]) -> None:
        self.supertypes[owner] = supertypes
        if owner not in self.stubs:
            self.stubs[owner] = {}


def _as_list(value: object) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [str(v) for v in value]
    return []


def _load_stub_file(library: StubLibrary, yaml_file: Path) -> None:
    """Load stubs from a YAML file into the library."""
    with open(yaml_file) as f:
        data = yaml.safe_load(f)

    if not data:
        return

    package = data.get("package", yaml_file.stem)
    classes = data.get("classes", {}) or {}

    for class_name, class_data in classes.items():
        owner = f"{package}.{class_name}" if package else class_name
        class_data = class_data or {}
        supertypes = _as_list(class_data.get("extends")) + _as_list(class_data.get("implements"))
        library.add_class(owner, supertypes)
        for method_name, exceptions in (class_data.get("methods") or {}).items():
            library.add_stub(owner, method_name, _as_list(exceptions))


def load_stubs(directory: Path | None = None) -> StubLibrary:
    """Load all stub files from built-in and project directories."""
    library = StubLibrary()

    stub_dirs = [BUILTIN_STUB_DIR]
    if directory is not None:
        stub_dirs.append(directory / ".throwspec" / "stubs")

    for stub_dir in stub_dirs:
        if stub_dir.exists():
            for yaml_file in sorted(stub_dir.glob("*.yaml")):
                _load_stub_file(library, yaml_file)

    return library


def validate_stub_file(yaml_file: Path) -> list[str]:
    """Validate a stub file and return any errors."""
    errors: list[str] = []

    try:
        with open(yaml_file) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        errors.append(f"YAML syntax error: {e}")
        return errors

    if not isinstance(data, dict):
        errors.append("Root must be a dictionary")
        return errors

    if "package" not in data:
        errors.append("Missing 'package' key")

    if "classes" not in data:
        errors.append("Missing 'classes' key")
        return errors
    if not isinstance(data["classes"], dict):
        errors.append("'classes' must be a dictionary")
        return errors

    for class_name, class_data in data["classes"].items():
        if class_data is None:
            continue
        if not isinstance(class_data, dict):
            errors.append(f"'{class_name}' must be a dictionary")
            continue
        methods = class_data.get("methods", {})
        if methods is None:
            continue
        if not isinstance(methods, dict):
            errors.append(f"'{class_name}.methods' must be a dictionary")
            continue
        for method_name, exceptions in methods.items():
            if exceptions is None:
                continue
            if not isinstance(exceptions, list):
                errors.append(f"'{class_name}.{method_name}' must map to a list of exceptions")
            else:
                for exc in exceptions:
                    if not isinstance(exc, str):
                        errors.append(
                            f"Exception in '{class_name}.{method_name}' must be a string"
                        )

    return errors
