"""Path canonicalization for the virtual filesystem.

Every inode is keyed by its *canonical* path: absolute, no ``.`` or ``..``
components, no duplicate separators and no trailing slash (except the
root itself, ``/``).  All helpers here are pure string functions so the
filesystem, the session and the commands agree on one definition.

Examples::

    resolve_path("docs/../a.txt", cwd="/home/user")  → "/home/user/a.txt"
    resolve_path("~/notes", cwd="/", home="/home/user") → "/home/user/notes"
    resolve_path("/../../etc//hostname", cwd="/")     → "/etc/hostname"
"""

ROOT = "/"


def resolve_path(raw: str, *, cwd: str = ROOT, home: str = ROOT) -> str:
    """Turn *raw* into a canonical absolute path.

    ``~`` and ``~/...`` expand to *home*.  Relative paths are joined onto
    *cwd*.  ``..`` at the root stays at the root.  An empty *raw* returns
    the canonical form of *cwd*.  The function is idempotent:
    ``resolve_path(resolve_path(p)) == resolve_path(p)``.

    Args:
        raw: The user-supplied path.
        cwd: Base directory for relative paths.
        home: Value substituted for a leading ``~``.

    Returns:
        The canonical absolute path.

    """
    if not raw:
        raw = cwd
    if raw == "~" or raw.startswith("~/"):
        raw = home + raw[1:]
    if not raw.startswith("/"):
        raw = f"{cwd}/{raw}"

    resolved: list[str] = []
    for part in raw.split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            if resolved:
                resolved.pop()
            continue
        resolved.append(part)
    return "/" + "/".join(resolved)


def parent_of(path: str) -> str:
    """Return the parent of a canonical path (the root is its own parent)."""
    if path == ROOT:
        return ROOT
    head = path.rsplit("/", 1)[0]
    return head or ROOT


def basename(path: str) -> str:
    """Return the final component of a canonical path ("" for the root)."""
    if path == ROOT:
        return ""
    return path.rsplit("/", 1)[1]


def join(directory: str, name: str) -> str:
    """Join a canonical directory and a single child name."""
    if directory == ROOT:
        return f"/{name}"
    return f"{directory}/{name}"


def is_within(path: str, ancestor: str) -> bool:
    """Return True if *path* is *ancestor* or lives somewhere below it."""
    if ancestor == ROOT:
        return True
    return path == ancestor or path.startswith(ancestor + "/")


def ancestors(path: str) -> list[str]:
    """Return every proper ancestor of *path*, root first.

    Examples::

        "/a/b/c" → ["/", "/a", "/a/b"]
        "/"      → []

    """
    if path == ROOT:
        return []
    parts = path.strip("/").split("/")
    chain = [ROOT]
    for i in range(1, len(parts)):
        chain.append("/" + "/".join(parts[:i]))
    return chain
