"""Browser-based web UI for py-sh.

This package provides a Flask application that exposes the shell
through a web browser.  It is an **optional** extra — install with::

    pip install py-sh[web]

The ``create_app`` factory in ``app.py`` boots a shell and serves three
endpoints:

- ``GET /`` — HTML terminal page.
- ``POST /api/execute`` — run a command line and return JSON.
- ``POST /api/complete`` — tab completion for the input so far.
"""
