# --- Cycle guards for tree expansion -----------------------------------------
import json
from typing import Any, Optional

from call_chain.src.call_chain.models.chain_models import MethodRecord
from call_chain.src.call_chain.outputs.output import node_to_dict


class CycleGuard:
    """
    Decides which callees may be placed under a node. Each node carries a
    trail that summarizes the path from the tree root down to it: `extend`
    derives a child's trail from its parent's (None for a root) and `admit`
    filters a node's candidates against the node's trail. Trails are built
    once per node, so expanding a path of depth n costs n extensions.
    """
    name = ""

    def extend(self, trail: Optional[Any], node: MethodRecord) -> Any:
        raise NotImplementedError

    def admit(self, trail: Any, candidates: list[MethodRecord]) -> list[MethodRecord]:
        raise NotImplementedError


class ContainmentGuard(CycleGuard):
    """
    Rejects a callee whose signature occurs anywhere in the JSON dump of the
    node being expanded and its ancestors. Textual: a signature that happens
    to be a substring of another node's text is rejected too.

    The trail is the dump text itself; a child appends its own node to the
    parent's text, so no ancestor is serialized twice.
    """
    name = "containment"

    def extend(self, trail, node):
        text = json.dumps(node_to_dict(node, with_children=False), ensure_ascii=False)
        return text if trail is None else trail + "," + text

    def admit(self, trail, candidates):
        return [c for c in candidates if c.signature not in trail]


class AncestorPathGuard(CycleGuard):
    """Rejects a callee only when it is exactly the node or one of its ancestors."""
    name = "ancestor_path"

    def extend(self, trail, node):
        return (trail or frozenset()) | {node.signature}

    def admit(self, trail, candidates):
        return [c for c in candidates if c.signature not in trail]


CYCLE_GUARDS = {guard.name: guard for guard in (ContainmentGuard, AncestorPathGuard)}


def get_cycle_guard(name: str) -> CycleGuard:
    try:
        return CYCLE_GUARDS[name]()
    except KeyError:
        raise ValueError(f"Unknown cycle guard '{name}'. Choose one of: {sorted(CYCLE_GUARDS)}") from None
