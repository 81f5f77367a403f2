from typing import Optional

import tree_sitter_java
from tree_sitter import Language, Node, Parser

from call_chain.src.call_chain.models.source_models import SourceClass, SourceMethod
from call_chain.src.call_chain.tree_sitter_helpers import first_child_of_type, node_lines, node_text

CLASS_LIKE = ("class_declaration", "interface_declaration", "enum_declaration", "record_declaration")
METHOD_LIKE = ("method_declaration", "constructor_declaration")
CONSTRUCTOR = "<init>"


# --- Tree-sitter language loading -------------------------------------------

_JAVA_LANGUAGE: Optional[Language] = None


def load_java_language() -> Language:
    """Loads the Tree-sitter Java grammar once per process."""
    global _JAVA_LANGUAGE
    if _JAVA_LANGUAGE is None:
        _JAVA_LANGUAGE = Language(tree_sitter_java.language())
    return _JAVA_LANGUAGE


# --- The Indexer -------------------------------------------------------------

class JavaSourceIndexer:
    """
    Walks a Tree-sitter Java AST to list the classes of a source file and the
    methods each declares, with the line ranges they span. Used to map the
    changed lines of a diff onto methods.
    """

    def __init__(self):
        self.parser = Parser(load_java_language())

    def index_source(self, source: str) -> list[SourceClass]:
        """
        Parses one Java source file and returns its classes, outer first.
        """
        source_bytes = source.encode("utf-8")
        root: Node = self.parser.parse(source_bytes).root_node

        package = self._find_package(source_bytes, root)
        classes: list[SourceClass] = []
        # DFS over the AST with a stack of enclosing class names for nested classes
        self._walk(source_bytes, root, package, [], classes)
        return classes

    def index_methods(self, source: str) -> list[SourceMethod]:
        return [m for c in self.index_source(source) for m in c.methods]

    # -- AST helpers ----------------------------------------------------------

    def _find_package(self, source_bytes: bytes, root: Node) -> Optional[str]:
        for child in root.children:
            if child.type == "package_declaration":
                name_node = first_child_of_type(child, "scoped_identifier", "identifier")
                if name_node is not None:
                    return node_text(source_bytes, name_node)
        return None

    def _fqcn(self, pkg: Optional[str], class_names: list[str]) -> str:
        """Binary-style name: package + Outer$Inner, matching compiled class names."""
        left = pkg + "." if pkg else ""
        return left + "$".join(class_names)

    def _walk(self, source_bytes: bytes, node: Node, pkg: Optional[str],
              class_stack: list[str], classes: list[SourceClass]):
        if node.type in CLASS_LIKE:
            name_node = node.child_by_field_name("name")
            if name_node is not None:
                simple = node_text(source_bytes, name_node)
                class_stack.append(simple)
                current = SourceClass(
                    simple_name=simple,
                    fqcn=self._fqcn(pkg, class_stack),
                    line=node_lines(node)[0],
                )
                classes.append(current)
                body = node.child_by_field_name("body")
                if body is not None:
                    for member in body.children:
                        if member.type in METHOD_LIKE:
                            current.methods.append(self._method(source_bytes, member, current.fqcn))
                        elif member.type == "enum_body_declarations":
                            for inner in member.children:
                                if inner.type in METHOD_LIKE:
                                    current.methods.append(self._method(source_bytes, inner, current.fqcn))
                                else:
                                    self._walk(source_bytes, inner, pkg, class_stack, classes)
                        else:
                            self._walk(source_bytes, member, pkg, class_stack, classes)
                class_stack.pop()
                return

        # Method bodies hold only local and anonymous classes, which compile to $1-style names
        if node.type in METHOD_LIKE:
            return
        for child in node.children:
            self._walk(source_bytes, child, pkg, class_stack, classes)

    def _method(self, source_bytes: bytes, node: Node, fqcn: str) -> SourceMethod:
        if node.type == "constructor_declaration":
            name = CONSTRUCTOR
        else:
            name_node = node.child_by_field_name("name")
            name = node_text(source_bytes, name_node) if name_node else "<anonymous>"

        params = []
        params_node = node.child_by_field_name("parameters")
        if params_node is not None:
            for p in params_node.children:
                if p.type == "formal_parameter":
                    type_node = p.child_by_field_name("type")
                    p_type = node_text(source_bytes, type_node) if type_node else "?"
                    dims = p.child_by_field_name("dimensions")  # "String args[]"
                    if dims is not None:
                        p_type += node_text(source_bytes, dims)
                    params.append(p_type)
                elif p.type == "spread_parameter":
                    type_node = next((c for c in p.children
                                      if c.is_named and c.type not in ("modifiers", "variable_declarator")), None)
                    params.append((node_text(source_bytes, type_node) if type_node else "?") + "[]")

        start, end = node_lines(node)
        return SourceMethod(class_name=fqcn, name=name, params=params, start_line=start, end_line=end)
