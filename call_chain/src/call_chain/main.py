#!/usr/bin/env python3
"""
Call chain builder
------------------
Reads compiled Java classes and prints, for every HTTP endpoint and RPC
service method, the tree of methods it can reach:
- controller and service classes, their superclasses and interfaces
- methods in each class, classified as HTTP / RPC / plain
- call sites found in each method's bytecode, resolved through interfaces

USAGE EXAMPLES
--------------
# Summary and JSON for one module's compiled classes:
python -m call_chain.src.call_chain.main /path/to/module/target/classes

# Several modules at once (each may carry its own pom.xml):
python -m call_chain.src.call_chain.main api/target/classes service/target/classes

ENVIRONMENT
-----------
CALL_CHAIN_EXCLUDE      comma-separated ant patterns of class files to skip
CALL_CHAIN_CYCLE_GUARD  "containment" (default) or "ancestor_path"
CALL_CHAIN_MAX_WORKERS  size of the reader pool
"""

import sys

from call_chain.src.call_chain.config import settings
from call_chain.src.call_chain.errors import ChainBuildError
from call_chain.src.call_chain.logging_config import setup_logging
from call_chain.src.call_chain.outputs.output import print_summary, to_json
from call_chain.src.call_chain.pipeline import get_methods_invoke_link


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print(__doc__, file=sys.stderr)
        return 2

    setup_logging()
    try:
        forest = get_methods_invoke_link(args, settings.EXCLUDE_PATTERNS)
    except ChainBuildError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    # Concise human-readable summary
    print_summary(forest)

    # Also print JSON (easy to persist)
    print("\n=== JSON ===")
    print(to_json(forest))
    return 0


if __name__ == "__main__":
    sys.exit(main())
