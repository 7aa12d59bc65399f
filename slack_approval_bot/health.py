"""Flask health endpoint exposing the bot's connection and worker state."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from flask import Flask, jsonify

from . import __version__

if TYPE_CHECKING:  # pragma: no cover
    from .bot import ApprovalBot


def create_health_app(bot: "ApprovalBot") -> Flask:
    """Create the Flask application serving ``/healthz``."""

    flask_app = Flask(__name__)
    flask_app.config["APP_VERSION"] = __version__

    @flask_app.route("/healthz", methods=["GET"])
    def healthz():
        health: dict[str, object] = {"version": flask_app.config.get("APP_VERSION", "unknown")}
        health.update(bot.health())
        status = 200 if health["ok"] else 503
        return jsonify(health), status

    return flask_app


def serve_health(bot: "ApprovalBot", *, port: int, host: str = "0.0.0.0") -> threading.Thread:
    """Serve the health app from a daemon thread so the main thread stays free."""

    flask_app = create_health_app(bot)
    thread = threading.Thread(
        target=flask_app.run,
        kwargs={"host": host, "port": port, "debug": False, "use_reloader": False},
        name="health-server",
        daemon=True,
    )
    thread.start()
    return thread
