import logging

import pytest

from call_chain.src.call_chain.source_indexer import JavaSourceIndexer


@pytest.fixture(scope="session")
def indexer():
    """One parser for the whole run; loading the grammar is the slow part."""
    return JavaSourceIndexer()


@pytest.fixture(autouse=True)
def restore_root_logger():
    # main() reconfigures logging onto the captured stderr of the running test
    root = logging.getLogger()
    handlers, level, propagate = root.handlers[:], root.level, root.propagate
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    root.propagate = propagate
