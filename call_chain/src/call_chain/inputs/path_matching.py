# --- Ant-style path patterns -------------------------------------------------
import re
from functools import lru_cache


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern:
    """
    Translates an ant pattern into a regex:
      ?   one character other than '/'
      *   zero or more characters other than '/'
      **  zero or more whole directories
    Whether the pattern starts with '/' is checked separately in ant_match.
    """
    segments = pattern.replace("\\", "/").split("/")
    out = []
    for i, seg in enumerate(segments):
        last = i == len(segments) - 1
        if seg == "**":
            out.append(".*" if last else "(?:[^/]*/)*")
            continue
        for ch in seg:
            if ch == "*":
                out.append("[^/]*")
            elif ch == "?":
                out.append("[^/]")
            else:
                out.append(re.escape(ch))
        if not last:
            out.append("/")
    return re.compile("".join(out))


def ant_match(pattern: str, path: str) -> bool:
    """
    Matches like Spring's AntPathMatcher: a pattern and a path that disagree
    on a leading '/' never match, so absolute paths need patterns such as
    '/**/dto/**'.
    """
    pattern = pattern.replace("\\", "/")
    path = path.replace("\\", "/")
    if pattern.startswith("/") != path.startswith("/"):
        return False
    return _compile(pattern).fullmatch(path) is not None


def is_excluded(path: str, patterns) -> bool:
    """An artifact is skipped only when it matches every exclusion pattern."""
    return bool(patterns) and all(ant_match(p, path) for p in patterns)
