"""Session state — everything one shell user carries between commands.

A session bundles the per-user, non-persistent state the interpreter
mutates: working directory, environment, aliases, last exit code,
history and the job table.  It holds a *reference* to a filesystem but
never owns inode records; several sessions can share one filesystem.

The session is passed explicitly to every executor and command — there
is no module-level "current session".
"""

from __future__ import annotations

from foam_shell.env import Environment
from foam_shell.fs.errors import NotADirectory, NotFound
from foam_shell.fs.filesystem import FileSystem
from foam_shell.fs.paths import ROOT, resolve_path
from foam_shell.jobs import JobManager


class Session:
    """Working directory, environment and bookkeeping for one shell user."""

    def __init__(
        self,
        fs: FileSystem | None = None,
        *,
        env: Environment | None = None,
        cwd: str | None = None,
    ) -> None:
        """Create a session.

        Args:
            fs: The filesystem to operate on (a fresh in-memory one by
                default).
            env: Starting environment (``Environment.defaults()`` if None).
            cwd: Starting directory; defaults to ``$HOME``, falling back
                to ``/`` if that directory does not exist.

        Raises:
            NotFound: If an explicit *cwd* does not exist.
            NotADirectory: If an explicit *cwd* is not a directory.

        """
        self.fs: FileSystem = fs if fs is not None else FileSystem()
        self.env: Environment = env if env is not None else Environment.defaults()
        self.aliases: dict[str, str] = {}
        self.history: list[str] = []
        self.jobs = JobManager()
        self.last_exit_code: int = 0
        self._cwd: str = ROOT

        if cwd is not None:
            self.chdir(cwd)
        else:
            home = self.home
            self._cwd = home if self.fs.is_dir(home) else ROOT
            self.env.set("PWD", self._cwd)

    @property
    def cwd(self) -> str:
        """Return the current working directory (always an existing dir)."""
        return self._cwd

    @property
    def home(self) -> str:
        """Return ``$HOME`` canonicalized (``/`` if unset)."""
        return resolve_path(self.env.get("HOME") or ROOT)

    def resolve_path(self, raw: str, base: str | None = None) -> str:
        """Canonicalize *raw* against *base* (default: the cwd).

        ``~`` expands to ``$HOME``.  Idempotent.
        """
        return resolve_path(raw, cwd=base if base is not None else self._cwd, home=self.home)

    def chdir(self, raw: str) -> str:
        """Change the working directory after validating the target.

        Updates ``PWD`` and ``OLDPWD``.

        Returns:
            The new canonical working directory.

        Raises:
            NotFound: If the target does not exist.
            NotADirectory: If the target is not a directory.

        """
        path = self.resolve_path(raw)
        if not self.fs.exists(path):
            raise NotFound(path, op="cd")
        if not self.fs.is_dir(path):
            raise NotADirectory(path, op="cd")
        previous = self._cwd
        self._cwd = path
        self.env.set("OLDPWD", previous)
        self.env.set("PWD", path)
        return path
