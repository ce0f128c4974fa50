"""Flask application factory for CropForge web UI."""

import tempfile
from pathlib import Path
from typing import Callable

from flask import Flask, jsonify

from cropforge.engine import FFmpegEngine, TranscodeEngine
from cropforge.manifest import SessionConfig


def create_app(
    work_dir: Path | None = None,
    engine_factory: Callable[[Path], TranscodeEngine] | None = None,
    config: SessionConfig | None = None,
) -> Flask:
    app = Flask(__name__)
    app.config["WORK_DIR"] = work_dir or Path(tempfile.mkdtemp(prefix="cropforge_"))
    app.config["MAX_CONTENT_LENGTH"] = 10 * 1024 * 1024 * 1024  # 10 GB
    app.config["SESSION_CONFIG"] = config or SessionConfig()

    if engine_factory is None:
        encode_args = app.config["SESSION_CONFIG"].encode.to_args()

        def engine_factory(session_dir: Path) -> TranscodeEngine:
            return FFmpegEngine(work_dir=session_dir, encode_args=encode_args)

    app.config["ENGINE_FACTORY"] = engine_factory

    from cropforge.web.routes import bp
    app.register_blueprint(bp)

    @app.errorhandler(413)
    def request_entity_too_large(error):
        return jsonify({"error": "File too large"}), 413

    return app
