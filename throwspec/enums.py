"""Typed enums for throws-clause analysis.

Centralizes all enum types to prevent magic string comparisons throughout the codebase.
All enums inherit from (str, Enum) to support JSON serialization and string comparison.
"""

from enum import Enum


class OutputFormat(str, Enum):
    """Output format for CLI commands."""

    JSON = "json"
    TEXT = "text"


class Modifier(str, Enum):
    """Declaration modifiers that matter to signature rewriting."""

    PUBLIC = "public"
    PROTECTED = "protected"
    PRIVATE = "private"
    STATIC = "static"
    FINAL = "final"
    ABSTRACT = "abstract"
    DEFAULT = "default"
    SYNCHRONIZED = "synchronized"
    NATIVE = "native"


class FixKind(str, Enum):
    """Shape of the rewrite proposed for a throws clause."""

    DELETE = "delete"
    REPLACE = "replace"


class SkipReason(str, Enum):
    """Gate at which a method left the pipeline without a finding."""

    NOT_SINGLE_THROWS = "not_single_throws"
    OVERRIDES_SUPERTYPE = "overrides_supertype"
    UNSAFE_TO_MODIFY = "unsafe_to_modify"
    UNRESOLVED_DECLARED_TYPE = "unresolved_declared_type"
    NOT_BROAD = "not_broad"
    TEST_CODE = "test_code"
    TOO_MANY_EXCEPTIONS = "too_many_exceptions"
    BROAD_EXCEPTION_THROWN = "broad_exception_thrown"
    EXCLUDED = "excluded"
    ANALYSIS_ERROR = "analysis_error"
