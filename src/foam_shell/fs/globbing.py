"""Glob pattern compilation.

Converts a shell-style wildcard pattern into an anchored regular
expression over ``/``-separated relative paths:

- ``*``  — any run of characters inside one path segment.
- ``**`` — any run of characters across segments.  ``**/`` may also match
  *zero* segments, so ``**/*.txt`` matches ``a.txt`` as well as
  ``x/y/a.txt``.
- ``?``  — exactly one character other than ``/``.

Everything else is matched literally.
"""

import re
from functools import lru_cache


@lru_cache(maxsize=128)
def compile_glob(pattern: str) -> re.Pattern[str]:
    """Compile *pattern* into an anchored regex (cached)."""
    out: list[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        ch = pattern[i]
        if ch == "*":
            if pattern.startswith("**", i):
                i += 2
                if i < n and pattern[i] == "/":
                    out.append("(?:.*/)?")
                    i += 1
                else:
                    out.append(".*")
                continue
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        else:
            out.append(re.escape(ch))
        i += 1
    return re.compile("^" + "".join(out) + "$")


def glob_match(pattern: str, relative_path: str) -> bool:
    """Return True if *relative_path* matches the glob *pattern*."""
    return compile_glob(pattern).match(relative_path) is not None
