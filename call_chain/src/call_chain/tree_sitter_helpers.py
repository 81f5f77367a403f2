# --- Tree-sitter plumbing ----------------------------------------------------

def node_text(source_bytes: bytes, node) -> str:
    """
    Source text a node covers. Nodes carry byte offsets into the UTF-8
    source, not characters.
    """
    return source_bytes[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def node_lines(node) -> tuple[int, int]:
    """
    Returns the 1-based (first line, last line) a node spans, the numbering
    diff hunks use.
    """
    return node.start_point[0] + 1, node.end_point[0] + 1


def first_child_of_type(node, *types: str):
    for child in node.children:
        if child.type in types:
            return child
    return None
