"""Standard command set.

Commands are grouped by what they touch:

- ``builtins`` — shell state (cwd, environment, aliases, jobs, control flow)
- ``files``    — the virtual filesystem
- ``text``     — stdin/stdout filters

``default_registry()`` assembles all three into one read-only table.
"""

from foam_shell.commands import builtins, files, text
from foam_shell.registry import CommandRegistry


def default_registry() -> CommandRegistry:
    """Return the standard command table."""
    return CommandRegistry([*builtins.COMMANDS, *files.COMMANDS, *text.COMMANDS])


__all__ = ["default_registry"]
