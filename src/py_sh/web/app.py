"""Flask application factory for the py-sh web UI.

The ``create_app`` function boots a shell and returns a Flask app with
three endpoints:

- ``GET /`` — render the terminal HTML page with the boot log.
- ``POST /api/execute`` — run a command line and return JSON.
- ``POST /api/complete`` — complete the input typed so far.

The development server handles requests on several threads while the
shell and its filesystem expect one caller at a time, so every request
that touches the shell holds a single lock.
"""

from __future__ import annotations

import threading

from flask import Flask, Response, jsonify, render_template, request

from py_sh.bootloader import Bootloader
from py_sh.completer import Complete, Completer, Suggestions
from py_sh.config import ShellConfig

_HTTP_BAD_REQUEST = 400


def create_app(config: ShellConfig | None = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        config: Session settings; read from ``PY_SH_*`` variables if None.

    Returns:
        A configured Flask application ready to serve.

    """
    bootloader = Bootloader(config if config is not None else ShellConfig.from_environ())
    cleared: list[bool] = []
    shell = bootloader.boot(on_clear=lambda _data: cleared.append(True))
    completer = Completer(shell)
    lock = threading.Lock()

    boot_log = "\n".join(bootloader.boot_log)

    app = Flask(__name__)

    @app.route("/")
    def index() -> str:  # pyright: ignore[reportUnusedFunction]
        """Render the terminal HTML page."""
        with lock:
            prompt = shell.prompt
        return render_template("index.html", boot_log=boot_log, prompt=prompt)

    @app.route("/api/execute", methods=["POST"])
    def execute() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Run a command line and return its output as JSON.

        Expects JSON body: ``{"command": "..."}``

        Returns:
            JSON with ``output``, ``errors``, ``exit_code``, ``prompt``
            and ``clear`` fields.

        """
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or not isinstance(data.get("command"), str):
            return jsonify({"error": "Missing 'command' field"}), _HTTP_BAD_REQUEST

        with lock:
            cleared.clear()
            result = shell.run(data["command"])
            return jsonify(
                {
                    "output": result.stdout,
                    "errors": result.stderr,
                    "exit_code": result.exit_code,
                    "prompt": shell.prompt,
                    "clear": bool(cleared),
                }
            )

    @app.route("/api/complete", methods=["POST"])
    def complete() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Complete the input typed so far.

        Expects JSON body: ``{"input": "..."}``

        Returns:
            ``{"type": "complete", "value": ...}``,
            ``{"type": "suggestions", "suggestions": [...], "base": ...}``,
            or ``{"type": null}``.

        """
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or not isinstance(data.get("input"), str):
            return jsonify({"error": "Missing 'input' field"}), _HTTP_BAD_REQUEST

        with lock:
            result = completer.complete(data["input"])
        if isinstance(result, Complete):
            return jsonify({"type": "complete", "value": result.value})
        if isinstance(result, Suggestions):
            return jsonify(
                {"type": "suggestions", "suggestions": list(result.names), "base": result.base}
            )
        return jsonify({"type": None})

    return app


def main() -> None:
    """Run the web UI development server.

    This is the ``py-sh-web`` console entry point.
    """
    app = create_app()
    app.run(debug=True, port=8080)
