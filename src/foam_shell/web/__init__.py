"""HTTP front end for foam-shell.

This package provides a Flask application that exposes the interpreter
as a small JSON API.  It is an **optional** extra — install with::

    pip install foam-shell[web]

The ``create_app`` factory in ``app.py`` creates one session and serves
two endpoints:

- ``POST /api/exec`` — run a command line and return its output as JSON.
- ``GET /api/status`` — cwd, last exit code and the job table.
"""
