"""Type handles and the in-memory type hierarchy service."""

from dataclasses import dataclass, field

__all__ = [
    "OBJECT",
    "THROWABLE",
    "EXCEPTION",
    "RUNTIME_EXCEPTION",
    "ERROR",
    "BUILTIN_THROWABLE_HIERARCHY",
    "TypeRef",
    "ClassHierarchy",
]

OBJECT = "java.lang.Object"
THROWABLE = "java.lang.Throwable"
EXCEPTION = "java.lang.Exception"
RUNTIME_EXCEPTION = "java.lang.RuntimeException"
ERROR = "java.lang.Error"

BUILTIN_THROWABLE_HIERARCHY: dict[str, str] = {
    THROWABLE: OBJECT,
    EXCEPTION: THROWABLE,
    ERROR: THROWABLE,
    RUNTIME_EXCEPTION: EXCEPTION,
    # java.lang unchecked
    "java.lang.IllegalStateException": RUNTIME_EXCEPTION,
    "java.lang.IllegalArgumentException": RUNTIME_EXCEPTION,
    "java.lang.NumberFormatException": "java.lang.IllegalArgumentException",
    "java.lang.NullPointerException": RUNTIME_EXCEPTION,
    "java.lang.UnsupportedOperationException": RUNTIME_EXCEPTION,
    "java.lang.IndexOutOfBoundsException": RUNTIME_EXCEPTION,
    "java.lang.ArrayIndexOutOfBoundsException": "java.lang.IndexOutOfBoundsException",
    "java.lang.StringIndexOutOfBoundsException": "java.lang.IndexOutOfBoundsException",
    "java.lang.ClassCastException": RUNTIME_EXCEPTION,
    "java.lang.ArithmeticException": RUNTIME_EXCEPTION,
    "java.lang.SecurityException": RUNTIME_EXCEPTION,
    "java.util.NoSuchElementException": RUNTIME_EXCEPTION,
    "java.util.ConcurrentModificationException": RUNTIME_EXCEPTION,
    "java.io.UncheckedIOException": RUNTIME_EXCEPTION,
    "java.util.concurrent.CompletionException": RUNTIME_EXCEPTION,
    "java.util.concurrent.CancellationException": "java.lang.IllegalStateException",
    # java.lang checked
    "java.lang.InterruptedException": EXCEPTION,
    "java.lang.CloneNotSupportedException": EXCEPTION,
    "java.lang.ReflectiveOperationException": EXCEPTION,
    "java.lang.ClassNotFoundException": "java.lang.ReflectiveOperationException",
    "java.lang.NoSuchMethodException": "java.lang.ReflectiveOperationException",
    "java.lang.NoSuchFieldException": "java.lang.ReflectiveOperationException",
    "java.lang.IllegalAccessException": "java.lang.ReflectiveOperationException",
    "java.lang.InstantiationException": "java.lang.ReflectiveOperationException",
    "java.lang.reflect.InvocationTargetException": "java.lang.ReflectiveOperationException",
    # java.io / java.nio
    "java.io.IOException": EXCEPTION,
    "java.io.FileNotFoundException": "java.io.IOException",
    "java.io.EOFException": "java.io.IOException",
    "java.io.UnsupportedEncodingException": "java.io.IOException",
    "java.io.InterruptedIOException": "java.io.IOException",
    "java.net.MalformedURLException": "java.io.IOException",
    "java.net.SocketException": "java.io.IOException",
    "java.net.UnknownHostException": "java.io.IOException",
    "java.net.SocketTimeoutException": "java.io.InterruptedIOException",
    "java.nio.file.FileSystemException": "java.io.IOException",
    "java.nio.file.NoSuchFileException": "java.nio.file.FileSystemException",
    "java.nio.file.AccessDeniedException": "java.nio.file.FileSystemException",
    "java.nio.file.FileAlreadyExistsException": "java.nio.file.FileSystemException",
    "java.nio.charset.CharacterCodingException": "java.io.IOException",
    "java.net.URISyntaxException": EXCEPTION,
    # java.sql / java.text / java.security / concurrency
    "java.sql.SQLException": EXCEPTION,
    "java.sql.SQLTimeoutException": "java.sql.SQLException",
    "java.text.ParseException": EXCEPTION,
    "java.security.GeneralSecurityException": EXCEPTION,
    "java.security.NoSuchAlgorithmException": "java.security.GeneralSecurityException",
    "java.security.InvalidKeyException": "java.security.GeneralSecurityException",
    "java.util.concurrent.ExecutionException": EXCEPTION,
    "java.util.concurrent.TimeoutException": EXCEPTION,
    "java.util.concurrent.BrokenBarrierException": EXCEPTION,
    # errors
    "java.lang.AssertionError": ERROR,
    "java.lang.LinkageError": ERROR,
    "java.lang.NoClassDefFoundError": "java.lang.LinkageError",
    "java.lang.VirtualMachineError": ERROR,
    "java.lang.OutOfMemoryError": "java.lang.VirtualMachineError",
    "java.lang.StackOverflowError": "java.lang.VirtualMachineError",
}


@dataclass(frozen=True)
class TypeRef:
    """Handle to a resolved type, identified by its fully qualified name."""

    qualified_name: str

    @property
    def simple_name(self) -> str:
        return self.qualified_name.rsplit(".", 1)[-1]

    @property
    def package(self) -> str:
        if "." not in self.qualified_name:
            return ""
        return self.qualified_name.rsplit(".", 1)[0]

    def __str__(self) -> str:
        return self.qualified_name


@dataclass
class ClassHierarchy:
    """Complete type hierarchy with supertype relationships.

    Keys are fully qualified names. Every type records its direct supertypes
    (superclass and implemented interfaces). The JDK throwable hierarchy is
    present from construction.
    """

    parent_map: dict[str, list[str]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.parent_map.setdefault(OBJECT, [])
        for name, parent in BUILTIN_THROWABLE_HIERARCHY.items():
            self.add_type(name, [parent])

    def add_type(self, name: str, supertypes: list[str]) -> None:
        """Add a type to the hierarchy, replacing any earlier supertypes."""
        parents = [s for s in supertypes if s != name] or ([OBJECT] if name != OBJECT else [])
        self.parent_map[name] = parents

    def is_known(self, name: str) -> bool:
        return name in self.parent_map

    def resolve(self, name: str) -> TypeRef | None:
        """Look up a type by fully qualified name; None when it is unknown."""
        if name in self.parent_map:
            return TypeRef(name)
        return None

    def is_same_type(self, a: TypeRef, b: TypeRef) -> bool:
        return a.qualified_name == b.qualified_name

    def is_subtype(self, a: TypeRef, b: TypeRef) -> bool:
        """Check if a is b or (transitively) extends or implements b."""
        return self.is_subclass_of(a.qualified_name, b.qualified_name)

    def is_subclass_of(self, child: str, parent: str) -> bool:
        """Check if child is parent or one of its descendants."""
        if child == parent:
            return True

        visited: set[str] = set()
        to_check = [child]

        while to_check:
            current = to_check.pop()
            if current in visited:
                continue
            visited.add(current)

            parents = self.parent_map.get(current, [])
            if parent in parents:
                return True
            to_check.extend(parents)

        return False

    def render(self, t: TypeRef) -> str:
        return t.qualified_name

    def get_supertypes(self, name: str) -> list[str]:
        """Get all supertypes of a type (direct and indirect), nearest first."""
        result: list[str] = []
        to_visit = list(self.parent_map.get(name, []))

        while to_visit:
            current = to_visit.pop(0)
            if current in result:
                continue
            result.append(current)
            to_visit.extend(self.parent_map.get(current, []))

        return result

    def throwable_types(self) -> list[str]:
        """All known throwable types, sorted by name."""
        return sorted(name for name in self.parent_map if self.is_subclass_of(name, THROWABLE))
