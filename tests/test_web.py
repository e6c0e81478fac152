"""Tests for the JSON web API.

The web layer exposes one executor over HTTP: ``POST /api/exec`` runs a
command line and ``GET /api/status`` reports the session.  Tests use
``pytest.importorskip`` so they are skipped gracefully when Flask is not
installed.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

flask = pytest.importorskip("flask")

from foam_shell.web.app import create_app  # noqa: E402

HTTP_OK = 200
HTTP_BAD_REQUEST = 400


def _create_client(state_path: Path | None = None) -> Any:
    """Create a test client from a fresh app."""
    app = create_app(state_path)
    app.config["TESTING"] = True
    return app.test_client()


# -- Cycle 1: App creation ---------------------------------------------------


class TestAppCreation:
    """Verify the app factory."""

    def test_create_app_returns_flask(self) -> None:
        """create_app should return a Flask application."""
        assert isinstance(create_app(), flask.Flask)

    def test_executor_is_exposed(self) -> None:
        """The executor is reachable through the app config."""
        app = create_app()
        assert app.config["FOAM_EXECUTOR"].session.cwd == "/home/user"


# -- Cycle 2: Executing commands ---------------------------------------------


class TestExecEndpoint:
    """Verify POST /api/exec."""

    def test_echo(self) -> None:
        """Output, exit code and cwd come back as JSON."""
        response = _create_client().post("/api/exec", json={"command": "echo hello"})
        assert response.status_code == HTTP_OK
        assert response.get_json() == {
            "stdout": "hello\n",
            "stderr": "",
            "exit_code": 0,
            "cwd": "/home/user",
        }

    def test_failure(self) -> None:
        """A failing command still returns 200 with its exit code."""
        response = _create_client().post("/api/exec", json={"command": "nosuch"})
        data = response.get_json()
        assert response.status_code == HTTP_OK
        assert data["exit_code"] == 127  # noqa: PLR2004
        assert data["stderr"] == "nosuch: command not found\n"

    def test_state_persists_between_requests(self) -> None:
        """The session is shared by every request to the same app."""
        client = _create_client()
        client.post("/api/exec", json={"command": "cd /tmp; export X=1"})
        data = client.post("/api/exec", json={"command": "echo $X"}).get_json()
        assert data["stdout"] == "1\n"
        assert data["cwd"] == "/tmp"

    def test_missing_command(self) -> None:
        """A body without 'command' is rejected."""
        response = _create_client().post("/api/exec", json={"cmd": "ls"})
        assert response.status_code == HTTP_BAD_REQUEST
        assert response.get_json() == {"error": "Missing 'command' field"}

    def test_non_json_body(self) -> None:
        """A non-JSON body is rejected."""
        response = _create_client().post("/api/exec", data="echo hi")
        assert response.status_code == HTTP_BAD_REQUEST

    def test_state_file(self, tmp_path: Path) -> None:
        """With a state path, changes reach a fresh app on the same file."""
        path = tmp_path / "fs.json"
        _create_client(path).post("/api/exec", json={"command": "mkdir /tmp/saved"})
        data = _create_client(path).post("/api/exec", json={"command": "ls /tmp"}).get_json()
        assert data["stdout"] == "saved\n"


# -- Cycle 3: Status ---------------------------------------------------------


class TestStatusEndpoint:
    """Verify GET /api/status."""

    def test_initial(self) -> None:
        """A fresh session has no jobs and exit code 0."""
        response = _create_client().get("/api/status")
        assert response.status_code == HTTP_OK
        assert response.get_json() == {"cwd": "/home/user", "last_exit_code": 0, "jobs": []}

    def test_reports_last_exit_code(self) -> None:
        """The exit code of the latest request is reported."""
        client = _create_client()
        client.post("/api/exec", json={"command": "false"})
        assert client.get("/api/status").get_json()["last_exit_code"] == 1

    def test_lists_jobs(self) -> None:
        """Background jobs appear with id, command and status."""
        client = _create_client()
        client.post("/api/exec", json={"command": "echo bg &"})
        jobs = client.get("/api/status").get_json()["jobs"]
        assert jobs == [{"id": 1, "command": "echo bg", "status": "done"}]
