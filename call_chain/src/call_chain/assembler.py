"""
Call tree assembly.

From the flat list of scanned methods, builds one call tree per HTTP or RPC
entry point. Calls to abstract or interface methods fan out to every
implementation with the same name and parameter list; a cycle guard keeps
recursive call chains finite. Trees are never shared: a method reached from
two parents appears twice.
"""
import logging
from collections import defaultdict
from typing import Optional

from call_chain.src.call_chain.config import settings
from call_chain.src.call_chain.cycle_guards import CycleGuard, get_cycle_guard
from call_chain.src.call_chain.models.chain_models import EntryKind, MethodRecord

logger = logging.getLogger(__name__)

URL_SEPARATOR = "/"
ENTRY_KINDS = (EntryKind.HTTP, EntryKind.RPC)


def join_mapping_path(base: str, path: str) -> str:
    """Joins controller and method paths with exactly one separator between them."""
    base = base or ""
    path = path or ""
    if not base:
        return path
    if not path:
        return base
    return base.rstrip(URL_SEPARATOR) + URL_SEPARATOR + path.lstrip(URL_SEPARATOR)


class CallGraphAssembler:

    def __init__(self, cycle_guard: Optional[CycleGuard] = None):
        self.cycle_guard = cycle_guard or get_cycle_guard(settings.CYCLE_GUARD)
        self.calls: dict[str, list[MethodRecord]] = {}
        self.records: dict[str, MethodRecord] = {}
        self.implementations: dict[str, list[MethodRecord]] = {}
        self.abstract_signatures: set[str] = set()

    def assemble(self, all_methods: list[MethodRecord]) -> dict[EntryKind, list[MethodRecord]]:
        """
        Returns {HTTP: roots, RPC: roots}, each root carrying its call tree in
        `children`. The input records are not modified.
        """
        if not all_methods:
            return {}
        self._build_indexes(all_methods)

        forest: dict[EntryKind, list[MethodRecord]] = {kind: [] for kind in ENTRY_KINDS}
        for record in self.records.values():
            if record.entry_kind not in forest:
                continue
            root = self._place(record)
            forest[root.entry_kind].append(root)

        if not any(forest.values()):
            logger.info("No HTTP or RPC entry points found")
            return {}

        for roots in forest.values():
            for root in roots:
                self._expand(root)
        logger.info(f"Built call trees for {len(forest[EntryKind.HTTP])} HTTP "
                    f"and {len(forest[EntryKind.RPC])} RPC entry points")
        return forest

    # -- Indexes -------------------------------------------------------------

    def _build_indexes(self, all_methods: list[MethodRecord]):
        # Later records win on duplicate signatures
        self.calls = {m.signature: m.callees for m in all_methods}
        self.records = {m.signature: m for m in all_methods}

        by_superclass: dict[str, list[MethodRecord]] = defaultdict(list)
        by_interface: dict[str, list[MethodRecord]] = defaultdict(list)
        for m in all_methods:
            if m.owner.super_name:
                by_superclass[m.owner.super_name].append(m)
            for interface in m.owner.interfaces:
                by_interface[interface].append(m)
        self.implementations = {**by_superclass, **by_interface}

        self.abstract_signatures = {m.signature for m in all_methods if m.is_abstract}

    # -- Expansion -----------------------------------------------------------

    def _expand(self, root: MethodRecord):
        """Depth-first materialization of the tree below root."""
        guard = self.cycle_guard
        stack = [(root, guard.extend(None, root))]
        while stack:
            node, trail = stack.pop()
            node.children = self._resolve_children(node, trail)
            for child in reversed(node.children):
                stack.append((child, guard.extend(trail, child)))

    def _resolve_children(self, node: MethodRecord, trail) -> list[MethodRecord]:
        if node.signature in self.abstract_signatures:
            return [
                self._place(impl)
                for impl in self.implementations.get(node.owner.name, [])
                if impl.name == node.name and impl.parameters == node.parameters
            ]

        candidates = []
        seen = set()
        for stub in self.calls.get(node.signature, []):
            if stub.signature in seen:
                continue
            seen.add(stub.signature)
            # Prefer the scanned record over the call-site stub when we have it
            candidates.append(self.records.get(stub.signature, stub))
        return [self._place(c) for c in self.cycle_guard.admit(trail, candidates)]

    @staticmethod
    def _place(record: MethodRecord) -> MethodRecord:
        """A fresh tree node for record. HTTP handlers carry their full path."""
        node = record.as_tree_node()
        if node.entry_kind is EntryKind.HTTP:
            node.mapping_path = join_mapping_path(node.owner.request_path, node.mapping_path)
        return node


def build_method_link(all_methods: list[MethodRecord],
                      cycle_guard: Optional[CycleGuard] = None) -> dict[EntryKind, list[MethodRecord]]:
    return CallGraphAssembler(cycle_guard).assemble(all_methods)
