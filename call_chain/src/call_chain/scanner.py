"""
Concurrent scan of compiled class directories.

Each root is scanned in turn: its namespace filter is derived from the build
descriptor, its class files are read on a bounded process pool, and the
records are merged only after every file of the root has been read. Failures
reading a single file are absorbed by the reader; anything else going wrong
while scanning a root aborts the whole run.
"""
import logging
from concurrent.futures import ProcessPoolExecutor
from functools import partial
from typing import Iterable, Optional

from call_chain.src.call_chain.config import settings
from call_chain.src.call_chain.errors import ChainBuildError, ErrorCode
from call_chain.src.call_chain.inputs.build_descriptor import namespace_prefix
from call_chain.src.call_chain.inputs.directory_scanning import find_class_files
from call_chain.src.call_chain.method_extractor import ScanContext, read_class_methods
from call_chain.src.call_chain.models.chain_models import MethodRecord

logger = logging.getLogger(__name__)


class ClassScanner:
    """Reads every class file under a set of roots into one flat record list."""

    def __init__(self, max_workers: Optional[int] = None, min_files_for_parallel: Optional[int] = None):
        self.max_workers = max_workers or settings.MAX_WORKERS
        self.min_files_for_parallel = (
            settings.MIN_FILES_FOR_PARALLEL if min_files_for_parallel is None else min_files_for_parallel
        )

    def scan(self, class_dirs: Iterable[str], exclude_patterns: Iterable[str] = ()) -> list[MethodRecord]:
        """
        Returns the records of all roots: roots in the given order, files in
        path order within a root.

        Raises:
            ChainBuildError: if scanning any root fails outside the per-file reader.
        """
        class_dirs = list(class_dirs or [])
        exclude_patterns = list(exclude_patterns or [])
        if not class_dirs:
            logger.info("No class directories given, nothing to scan")
            return []

        all_methods: list[MethodRecord] = []
        for root in class_dirs:
            try:
                methods = self._scan_root(root, exclude_patterns)
            except Exception as e:
                logger.error(f"Scanning {root} failed: {e}")
                raise ChainBuildError(ErrorCode.GET_METHOD_INVOKE_LINK_FAIL, f"{root}: {e}") from e
            # Single writer: only the orchestrating thread appends, after the join
            all_methods.extend(methods)
        logger.info(f"Scanned {len(class_dirs)} class directories, {len(all_methods)} methods")
        return all_methods

    def _scan_root(self, root: str, exclude_patterns: list[str]) -> list[MethodRecord]:
        context = ScanContext(base_package=namespace_prefix(root))
        files = find_class_files(root)
        if not files:
            logger.info(f"No class files under {root}")
            return []
        logger.info(f"Reading {len(files)} class files under {root} (namespace '{context.base_package}')")

        read = partial(read_class_methods, exclude_patterns=exclude_patterns, context=context)
        if len(files) >= self.min_files_for_parallel and self.max_workers > 1:
            # Leaving the with-block waits for every file of this root
            with ProcessPoolExecutor(max_workers=self.max_workers) as executor:
                per_file = list(executor.map(read, files))
        else:
            per_file = [read(f) for f in files]

        return [m for records in per_file for m in records]
