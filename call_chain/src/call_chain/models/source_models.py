# --- Data models for the Java source index -----------------------------------
from dataclasses import dataclass, field


@dataclass
class SourceMethod:
    """A method or constructor declared in a .java file."""
    class_name: str  # binary-style FQCN, nested classes joined with '$'
    name: str  # "<init>" for constructors, as in bytecode
    params: list[str]  # declared parameter types as written, e.g. ["List<String>", "int[]"]
    start_line: int  # 1-based, inclusive
    end_line: int  # 1-based, inclusive

    def overlaps(self, lines: set[int]) -> bool:
        return any(self.start_line <= n <= self.end_line for n in lines)


@dataclass
class SourceClass:
    """A class, interface, enum or record declared in a .java file."""
    simple_name: str  # e.g. "UserService"
    fqcn: str  # e.g. "com.acme.UserService", "com.acme.Outer$Inner"
    line: int  # 1-based
    methods: list[SourceMethod] = field(default_factory=list)
