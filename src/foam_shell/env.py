"""Environment variables — session configuration via key-value pairs.

Every shell session has an environment: a set of ``KEY=VALUE`` string
pairs consulted by variable expansion (``$HOME``), by ``cd`` (``HOME``,
``PWD``, ``OLDPWD``) and by commands such as ``env`` and ``printenv``.

Key design properties:
    - **Copy on construction** — a new session gets a *copy* of the
      defaults; changes in one session never leak into another.
    - **Strings only** — both keys and values are strings (no types).
    - **Identifier names** — assignments and ``export`` only accept
      names matching ``[A-Za-z_][A-Za-z0-9_]*``.
"""

from __future__ import annotations

import re

NAME_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

DEFAULT_ENV: dict[str, str] = {
    "HOME": "/home/user",
    "USER": "user",
    "PATH": "/usr/bin:/bin",
    "PWD": "/home/user",
    "SHELL": "/bin/sh",
    "TERM": "xterm-256color",
    "LANG": "en_US.UTF-8",
}


def is_valid_name(name: str) -> bool:
    """Return True if *name* is a legal variable identifier."""
    return NAME_PATTERN.fullmatch(name) is not None


class Environment:
    """A key-value store for environment variables.

    Each instance is an independent copy — modifying one does not
    affect any other.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        """Create an environment, optionally pre-populated.

        Args:
            initial: Starting variables (copied, not referenced).

        """
        self._vars: dict[str, str] = dict(initial) if initial else {}

    @classmethod
    def defaults(cls) -> Environment:
        """Return a fresh environment holding ``DEFAULT_ENV``."""
        return cls(initial=DEFAULT_ENV)

    def get(self, key: str, default: str | None = None) -> str | None:
        """Return the value for *key*, or *default* if not set."""
        return self._vars.get(key, default)

    def set(self, key: str, value: str) -> None:
        """Set *key* to *value* (creates or overwrites)."""
        self._vars[key] = value

    def delete(self, key: str) -> None:
        """Remove *key* from the environment.

        Raises:
            KeyError: If *key* does not exist.

        """
        del self._vars[key]

    def discard(self, key: str) -> None:
        """Remove *key* if present; do nothing otherwise."""
        self._vars.pop(key, None)

    def items(self) -> list[tuple[str, str]]:
        """Return all (key, value) pairs."""
        return list(self._vars.items())

    def as_dict(self) -> dict[str, str]:
        """Return a plain-dict snapshot."""
        return dict(self._vars)

    def copy(self) -> Environment:
        """Return an independent copy of this environment."""
        return Environment(initial=self._vars)

    def __contains__(self, key: object) -> bool:
        """Return True if *key* is set."""
        return key in self._vars

    def __len__(self) -> int:
        """Return the number of variables."""
        return len(self._vars)
