#!/usr/bin/env python3
"""
recimport - Batch record import service
=======================================

Single-command run:  python main.py

See config.py for all environment-variable tunables.
"""

import logging
from typing import Optional

from flask import Flask, jsonify

import config
import schema
from db import init_db, get_session
from api import api_bp

logger = logging.getLogger(__name__)


def setup_logging():
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)


def init_storage(db_url: Optional[str] = None) -> dict:
    """Initialise the database and make sure every known property has a row."""
    stats = schema.load(config.VOCAB_PATH)
    init_db(db_url or config.DB_URL)
    session = get_session()
    try:
        stats["added"] = schema.seed_properties(session)
        session.commit()
    finally:
        session.close()
    return stats


def create_app(db_url: Optional[str] = None) -> Flask:
    """Flask application factory."""

    app = Flask(__name__)
    app.secret_key = config.SECRET
    app.config["MAX_CONTENT_LENGTH"] = config.MAX_UPLOAD_BYTES

    # ── Vocabulary + database ───────────────────────────────────────
    stats = init_storage(db_url)
    logger.info(f"Vocabulary: {stats['terms']} terms ({stats['added']} new)")
    logger.info(f"Database: {db_url or config.DB_URL}")

    # ── Register blueprints ─────────────────────────────────────────
    app.register_blueprint(api_bp)

    @app.route("/health")
    def health():
        return jsonify({"ok": True})

    # ── Error handlers ──────────────────────────────────────────────
    @app.errorhandler(404)
    def _404(e):
        return jsonify({"error": "not found"}), 404

    @app.errorhandler(500)
    def _500(e):
        return jsonify({"error": "internal server error"}), 500

    return app


def main():
    setup_logging()
    print("=" * 56)
    print("  recimport - Batch record import service")
    print("=" * 56)

    app = create_app()

    print(f"\n  http://{config.HOST}:{config.PORT}/api/v1/imports")
    print("=" * 56)

    app.run(host=config.HOST, port=config.PORT, debug=config.DEBUG)


if __name__ == "__main__":
    main()
