import json

from call_chain.src.call_chain.models.chain_models import EntryKind, MethodRecord


# --- Serialization -----------------------------------------------------------

def node_to_dict(node: MethodRecord, with_children: bool = True) -> dict:
    """
    Plain-dict form of a tree node. This is also the textual form the
    containment cycle guard searches, so keep the signature in it.
    """
    out = {
        "signature": node.signature,
        "className": node.owner.name,
        "methodName": node.name,
        "params": node.parameters,
        "entryKind": node.entry_kind.value,
    }
    if node.mapping_path:
        out["mappingPath"] = node.mapping_path
    if with_children:
        out["children"] = [node_to_dict(c) for c in node.children]
    return out


def forest_to_dict(forest: dict[EntryKind, list[MethodRecord]]) -> dict:
    return {kind.value: [node_to_dict(root) for root in roots] for kind, roots in forest.items()}


def to_json(forest: dict[EntryKind, list[MethodRecord]]) -> str:
    """Serializes the call-tree forest to JSON."""
    return json.dumps(forest_to_dict(forest), indent=2)


# --- Pretty printing ---------------------------------------------------------

def _print_tree(node: MethodRecord, depth: int):
    print(f"{'    ' * depth}- {node.owner.name}.{node.name}({', '.join(node.parameters)})")
    for child in node.children:
        _print_tree(child, depth + 1)


def print_summary(forest: dict[EntryKind, list[MethodRecord]]):
    """
    Human-friendly printout of the entry points and what they reach.
    """
    for kind in (EntryKind.HTTP, EntryKind.RPC):
        roots = forest.get(kind, [])
        print(f"\n=== {kind.value} ENTRY POINTS ({len(roots)}) ===")
        for root in roots:
            where = f"  [{root.mapping_path}]" if root.mapping_path else ""
            print(f"\n{root.signature}{where}")
            for child in root.children:
                _print_tree(child, 1)
