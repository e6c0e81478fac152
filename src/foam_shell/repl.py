"""Interactive REPL (Read-Eval-Print Loop) for the foam shell.

The REPL is the terminal interface:

    1. **Read** — display a prompt and read user input.
    2. **Eval** — pass the line to ``executor.execute_live()``.
    3. **Print** — output streams straight to the terminal.
    4. **Loop** — repeat until ``exit`` or Ctrl+D.

This module keeps the I/O loop separate from the interpreter.  The
executor is fully testable (captures output, no terminal); the REPL is
the thin I/O wrapper that connects it to ``stdin``/``stdout``.

The helper functions (``build_prompt``, ``format_banner``,
``create_executor``) are pure or nearly so and testable.  ``run()`` is
the I/O loop and ``main()`` the console entry point.
"""

import argparse
import readline
import sys
from pathlib import Path

from foam_shell.completer import Completer
from foam_shell.executor import Executor
from foam_shell.fs.filesystem import FileSystem
from foam_shell.fs.persistence import JsonFileStore, load_filesystem
from foam_shell.session import Session

_BANNER_WIDTH = 38


def format_banner(state_path: Path | None = None) -> str:
    """Return the start-up banner.

    Args:
        state_path: Where the filesystem is persisted, if anywhere.

    """
    border = "=" * _BANNER_WIDTH
    storage = f"state: {state_path}" if state_path is not None else "state: in memory"
    return (
        f"\n  {border}\n            foam-shell\n     A shell over a virtual filesystem\n"
        f"  {border}\n\n  {storage}\n\nType 'help' for commands, 'exit' to quit.\n"
    )


def build_prompt(session: Session) -> str:
    """Build the prompt, e.g. ``user@foam:/home/user$ ``."""
    user = session.env.get("USER") or "user"
    return f"{user}@foam:{session.cwd}$ "


def create_executor(state_path: Path | None = None) -> Executor:
    """Create an executor over a fresh or persisted filesystem.

    Args:
        state_path: JSON state file.  Loaded if it exists, created (with
            the default tree) if it does not.  None keeps everything in
            memory.

    """
    if state_path is None:
        fs = FileSystem()
    elif state_path.exists():
        fs = load_filesystem(state_path)
    else:
        fs = FileSystem(store=JsonFileStore(state_path))
    return Executor(Session(fs))


def build_parser() -> argparse.ArgumentParser:
    """Return the command-line parser for ``foam-shell``."""
    parser = argparse.ArgumentParser(
        prog="foam-shell", description="Interactive shell over a virtual filesystem."
    )
    parser.add_argument(
        "--state",
        type=Path,
        default=None,
        metavar="PATH",
        help="persist the filesystem to this JSON file",
    )
    parser.add_argument(
        "-c",
        dest="command",
        default=None,
        metavar="LINE",
        help="run one command line and exit with its status",
    )
    return parser


def run(executor: Executor) -> int:
    """Run the interactive loop until ``exit`` or end of input.

    Ctrl+C at the prompt discards the line; during a command it cancels
    the remaining statements.

    Returns:
        The session's last exit code.

    """
    completer = Completer(executor)
    readline.set_completer(completer.complete)
    readline.set_completer_delims(" \t;|&<>")
    readline.parse_and_bind("tab: complete")

    while not executor.exit_requested:
        try:
            line = input(build_prompt(executor.session))
        except EOFError:
            # Ctrl+D ends the session
            print()  # noqa: T201
            break
        except KeyboardInterrupt:
            print("^C")  # noqa: T201
            continue

        try:
            executor.execute_live(line, stdout=sys.stdout.write, stderr=sys.stderr.write)
        except KeyboardInterrupt:
            executor.cancel()
            executor.session.last_exit_code = 130
            print()  # noqa: T201
        sys.stdout.flush()
    return executor.session.last_exit_code


def main(argv: list[str] | None = None) -> int:
    """Entry point for the ``foam-shell`` console script."""
    args = build_parser().parse_args(argv)
    try:
        executor = create_executor(args.state)
    except (OSError, ValueError) as exc:
        print(f"foam-shell: cannot load state: {exc}", file=sys.stderr)  # noqa: T201
        return 1
    if args.command is not None:
        return executor.execute_live(
            args.command, stdout=sys.stdout.write, stderr=sys.stderr.write
        )
    print(format_banner(args.state))  # noqa: T201
    return run(executor)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
