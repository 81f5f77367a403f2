# --- Data models for call chains ---------------------------------------------
from dataclasses import dataclass, field, replace
from enum import Enum


class EntryKind(str, Enum):
    """How a method can be reached from outside the process."""
    HTTP = "HTTP"
    RPC = "RPC"
    NONE = "NONE"


@dataclass(frozen=True)
class ClassDescriptor:
    """One compiled class."""
    name: str  # dotted FQCN, e.g. "com.acme.UserController"
    super_name: str = ""  # empty for java.lang.Object or no superclass
    interfaces: tuple[str, ...] = ()
    request_path: str = ""  # class-level web mapping, controllers only


@dataclass
class MethodRecord:
    """
    One method of one class.

    `callees` holds the raw call sites seen in the method body as stubs.
    `children` is only ever filled by the assembler, on copies, and holds the
    resolved call tree below this node.
    """
    signature: str  # "<owner>#<name>(<param descriptors>)"
    name: str
    descriptor: str  # full JVM method descriptor
    parameters: list[str]  # Java type names, e.g. ["java.lang.String", "int[]"]
    owner: ClassDescriptor
    is_abstract: bool = False
    entry_kind: EntryKind = EntryKind.NONE
    mapping_path: str = ""
    callees: list["MethodRecord"] = field(default_factory=list)
    children: list["MethodRecord"] = field(default_factory=list)

    def as_tree_node(self) -> "MethodRecord":
        """Fresh copy for placement in a tree: no raw edges, no children."""
        return replace(self, callees=[], children=[])

    def walk(self):
        """Yields this node and every node below it, depth-first."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))
