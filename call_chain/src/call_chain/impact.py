"""
Which entry points reach a changed method.

Source methods and compiled methods are matched by class name, method name
and the simple names of their parameter types, generics and packages
stripped. Type variables erase to their bound in bytecode, so a method taking
`T` only matches when the bound is spelled the same way.
"""
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

from call_chain.src.call_chain.models.chain_models import EntryKind, MethodRecord
from call_chain.src.call_chain.models.source_models import SourceMethod
from call_chain.src.call_chain.source_indexer import JavaSourceIndexer
from call_chain.src.call_chain.vcs.git_diff import ChangedFile

_GENERIC_ARGS = re.compile(r"<[^<>]*>")


def simple_type(type_name: str) -> str:
    """'java.util.List<String>' -> 'List', 'Outer.Inner[]' -> 'Inner[]', 'a.B$C' -> 'C'"""
    t = type_name
    while "<" in t:
        stripped = _GENERIC_ARGS.sub("", t)
        if stripped == t:
            break
        t = stripped
    t = t.replace("...", "[]")
    # Drop type annotations such as "@NonNull String"
    t = t.split()[-1] if t.split() else t
    dims = t.count("[]")
    base = t.replace("[]", "").strip()
    base = base.rsplit(".", 1)[-1].rsplit("$", 1)[-1]
    return base + "[]" * dims


@dataclass(frozen=True)
class MethodKey:
    class_name: str
    name: str
    params: tuple[str, ...]

    @classmethod
    def of_source(cls, method: SourceMethod) -> "MethodKey":
        return cls(method.class_name, method.name, tuple(simple_type(p) for p in method.params))

    @classmethod
    def of_record(cls, record: MethodRecord) -> "MethodKey":
        return cls(record.owner.name, record.name, tuple(simple_type(p) for p in record.parameters))


@dataclass
class ImpactedEntry:
    kind: EntryKind
    signature: str
    mapping_path: str
    reached: list[str] = field(default_factory=list)  # signatures of changed methods in the tree


def changed_methods(changed: ChangedFile, source: str,
                    indexer: Optional[JavaSourceIndexer] = None) -> list[SourceMethod]:
    """Methods of the new source whose lines the change touches."""
    if changed.change_type == "D" or not changed.is_java_source:
        return []
    methods = (indexer or JavaSourceIndexer()).index_methods(source)
    if changed.change_type == "A":
        return methods
    return [m for m in methods if m.overlaps(changed.changed_lines)]


def impacted_entries(forest: dict[EntryKind, list[MethodRecord]],
                     changed: Iterable[MethodKey]) -> dict[EntryKind, list[ImpactedEntry]]:
    """Per entry kind, the roots whose call tree contains a changed method."""
    keys = set(changed)
    result: dict[EntryKind, list[ImpactedEntry]] = {}
    for kind, roots in forest.items():
        hits = []
        for root in roots:
            reached = sorted({n.signature for n in root.walk() if MethodKey.of_record(n) in keys})
            if reached:
                hits.append(ImpactedEntry(kind, root.signature, root.mapping_path, reached))
        result[kind] = hits
    return result
