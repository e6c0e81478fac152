"""Flask application factory for the foam-shell JSON API.

The ``create_app`` function builds an executor (over an in-memory or a
JSON-persisted filesystem) and returns a Flask app with two endpoints:

- ``POST /api/exec`` — execute a command line and return JSON.
- ``GET /api/status`` — return the session's cwd, last exit code and jobs.
"""

from __future__ import annotations

from pathlib import Path

from flask import Flask, Response, jsonify, request

from foam_shell.repl import create_executor

_HTTP_BAD_REQUEST = 400


def create_app(state_path: Path | str | None = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        state_path: Optional JSON file the filesystem is persisted to.

    Returns:
        A configured Flask application ready to serve.

    """
    executor = create_executor(Path(state_path) if state_path is not None else None)
    session = executor.session

    app = Flask(__name__)
    app.config["FOAM_EXECUTOR"] = executor

    @app.route("/api/exec", methods=["POST"])
    def execute() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Execute a command line and return its captured output.

        Expects JSON body: ``{"command": "..."}``

        Returns:
            JSON with ``stdout``, ``stderr``, ``exit_code`` and ``cwd``.

        """
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or not isinstance(data.get("command"), str):
            return jsonify({"error": "Missing 'command' field"}), _HTTP_BAD_REQUEST

        result = executor.execute(data["command"])
        return jsonify(
            {
                "stdout": result.stdout,
                "stderr": result.stderr,
                "exit_code": result.exit_code,
                "cwd": session.cwd,
            }
        )

    @app.route("/api/status")
    def status() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return session status for polling.

        Returns:
            JSON with ``cwd``, ``last_exit_code`` and ``jobs``.

        """
        jobs = [
            {"id": job.job_id, "command": job.command, "status": str(job.status)}
            for job in session.jobs.list_jobs()
        ]
        return jsonify(
            {"cwd": session.cwd, "last_exit_code": session.last_exit_code, "jobs": jobs}
        )

    return app


def main() -> None:
    """Run the development server.

    This is the ``foam-shell-web`` console entry point.
    """
    app = create_app()
    app.run(debug=True, port=8080)
