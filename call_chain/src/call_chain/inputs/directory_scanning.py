# --- Directory scanning ------------------------------------------------------
import logging
import os

logger = logging.getLogger(__name__)

CLASS_SUFFIX = ".class"


def _raise(error: OSError):
    raise error


def find_class_files(root_dir: str) -> list[str]:
    """
    Recursively lists every .class file under root_dir, sorted by path.
    A missing root yields nothing; an unreadable directory below it raises.
    """
    if not os.path.isdir(root_dir):
        logger.warning(f"Class directory {root_dir} does not exist")
        return []

    found = []
    for dirpath, _, filenames in os.walk(root_dir, onerror=_raise):
        for fn in filenames:
            if fn.endswith(CLASS_SUFFIX):
                found.append(os.path.join(dirpath, fn))
    found.sort()
    return found


def read_bytes(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()
