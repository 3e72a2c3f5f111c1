"""Configuration loading for throws-clause analysis."""

import fnmatch
from dataclasses import dataclass, field
from pathlib import Path

import yaml

CONFIG_DIR = ".throwspec"
CONFIG_FILE = "config.yaml"

DEFAULT_TEST_PATTERNS = [
    "*/src/test/*",
    "*/src/testFixtures/*",
    "*/src/integrationTest/*",
    "*Test.java",
    "*Tests.java",
]
DEFAULT_TEST_IMPORTS = ["org.junit", "org.testng"]


@dataclass
class ThrowspecConfig:
    """Configuration for throws-clause analysis."""

    exclude: list[str] = field(default_factory=list)
    test_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_TEST_PATTERNS))
    test_imports: list[str] = field(default_factory=lambda: list(DEFAULT_TEST_IMPORTS))

    def is_excluded(self, qualified_name: str, unit_path: str | None = None) -> bool:
        """Check if a method or its unit matches an exclude pattern."""
        for pattern in self.exclude:
            if fnmatch.fnmatch(qualified_name, pattern):
                return True
            if unit_path and fnmatch.fnmatch(unit_path, pattern):
                return True
        return False

    def is_test_path(self, path: str) -> bool:
        normalized = "/" + path.replace("\\", "/").lstrip("/")
        return any(fnmatch.fnmatch(normalized, pattern) for pattern in self.test_patterns)

    def is_test_import(self, imported: str) -> bool:
        return any(
            imported == prefix or imported.startswith(f"{prefix}.") for prefix in self.test_imports
        )


def _string_list(value: object, default: list[str]) -> list[str]:
    if value is None:
        return list(default)
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [str(v) for v in value]
    return list(default)


def load_config(directory: Path) -> ThrowspecConfig:
    """Load configuration from .throwspec/config.yaml if it exists."""
    config_path = directory / CONFIG_DIR / CONFIG_FILE
    if not config_path.exists():
        return ThrowspecConfig()

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        return ThrowspecConfig()

    return ThrowspecConfig(
        exclude=_string_list(data.get("exclude"), []),
        test_patterns=_string_list(data.get("test_patterns"), DEFAULT_TEST_PATTERNS),
        test_imports=_string_list(data.get("test_imports"), DEFAULT_TEST_IMPORTS),
    )
