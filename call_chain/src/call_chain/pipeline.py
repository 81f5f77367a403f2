import logging
from typing import Iterable, Optional

from call_chain.src.call_chain.assembler import CallGraphAssembler
from call_chain.src.call_chain.cycle_guards import CycleGuard
from call_chain.src.call_chain.impact import ImpactedEntry, MethodKey, changed_methods, impacted_entries
from call_chain.src.call_chain.models.chain_models import EntryKind, MethodRecord
from call_chain.src.call_chain.scanner import ClassScanner
from call_chain.src.call_chain.source_indexer import JavaSourceIndexer
from call_chain.src.call_chain.vcs.git_diff import GitDiffProvider

logger = logging.getLogger(__name__)


def get_methods_invoke_link(class_dirs: Iterable[str], exclude_patterns: Iterable[str] = (),
                            scanner: Optional[ClassScanner] = None,
                            cycle_guard: Optional[CycleGuard] = None) -> dict[EntryKind, list[MethodRecord]]:
    """
    Scans the class directories and builds the call tree of every HTTP and
    RPC entry point.

    Raises:
        ChainBuildError: if a class directory cannot be scanned.
    """
    logger.info("Building method invoke links")
    all_methods = (scanner or ClassScanner()).scan(class_dirs, exclude_patterns)
    forest = CallGraphAssembler(cycle_guard).assemble(all_methods)
    logger.info("Method invoke links built")
    return forest


def analyze_change_impact(repo_path: str, base_rev: str, head_rev: str, class_dirs: Iterable[str],
                          exclude_patterns: Iterable[str] = (),
                          provider: Optional[GitDiffProvider] = None) -> dict[EntryKind, list[ImpactedEntry]]:
    """
    Entry points whose call trees reach a method changed between base_rev and
    head_rev. class_dirs must hold the classes compiled from head_rev.
    """
    provider = provider or GitDiffProvider()
    indexer = JavaSourceIndexer()

    keys: set[MethodKey] = set()
    for changed in provider.changed_files(repo_path, base_rev, head_rev):
        if changed.change_type == "D" or not changed.is_java_source:
            continue
        source = provider.read_file(repo_path, head_rev, changed.path)
        keys.update(MethodKey.of_source(m) for m in changed_methods(changed, source, indexer))
    logger.info(f"{len(keys)} changed methods between {base_rev} and {head_rev}")

    if not keys:
        return {}
    return impacted_entries(get_methods_invoke_link(class_dirs, exclude_patterns), keys)
