"""Web UI routes for CropForge."""

import io
import json
import logging
import queue
import subprocess
import threading
import uuid
from pathlib import Path

from flask import (
    Blueprint,
    Response,
    current_app,
    jsonify,
    render_template,
    request,
    send_file,
)

from cropforge.engine import EngineInitError, EngineRunError
from cropforge.models import JobStatus
from cropforge.session import CropSession

logger = logging.getLogger(__name__)

bp = Blueprint("web", __name__, template_folder="templates", static_folder="static")

# In-memory session store: session_id -> entry dict
_sessions: dict[str, dict] = {}


def _get(session_id: str) -> dict | None:
    return _sessions.get(session_id)


def _not_found():
    return jsonify({"error": "Session not found"}), 404


def _point(data: dict) -> tuple[float, float]:
    return float(data["x"]), float(data["y"])


@bp.route("/")
def index():
    return render_template("index.html")


@bp.route("/api/upload", methods=["POST"])
def upload():
    if "file" not in request.files:
        return jsonify({"error": "No file provided"}), 400

    f = request.files["file"]
    if not f.filename:
        return jsonify({"error": "Empty filename"}), 400

    session_id = request.form.get("session_id")
    entry = _get(session_id) if session_id else None
    if entry is None:
        session_id = uuid.uuid4().hex[:12]
        session_dir = Path(current_app.config["WORK_DIR"]) / session_id
        engine = current_app.config["ENGINE_FACTORY"](session_dir)
        entry = {
            "session": CropSession(engine=engine, config=current_app.config["SESSION_CONFIG"]),
            "error": None,
        }
        _sessions[session_id] = entry

    session: CropSession = entry["session"]
    entry["error"] = None
    entry.pop("progress_queue", None)
    try:
        metadata = session.load_source(
            f.read(), Path(f.filename).name, f.mimetype or "application/octet-stream"
        )
    except EngineInitError as e:
        return jsonify({"error": str(e), "session_id": session_id}), 500

    resp = {"session_id": session_id, **session.snapshot()}
    if metadata is None:
        resp["error"] = "Could not read video metadata"
        return jsonify(resp), 422
    return jsonify(resp)


@bp.route("/api/sessions/<session_id>/status")
def session_status(session_id: str):
    entry = _get(session_id)
    if entry is None:
        return _not_found()
    resp = entry["session"].snapshot()
    if entry.get("error"):
        resp["error"] = entry["error"]
    return jsonify(resp)


@bp.route("/api/sessions/<session_id>/board", methods=["POST"])
def board(session_id: str):
    entry = _get(session_id)
    if entry is None:
        return _not_found()

    data = request.get_json() or {}
    try:
        entry["session"].resize(int(data["width"]), int(data["height"]))
    except (KeyError, TypeError, ValueError):
        return jsonify({"error": "Board needs integer 'width' and 'height'"}), 400
    return jsonify(entry["session"].snapshot())


@bp.route("/api/sessions/<session_id>/selection", methods=["POST"])
def selection(session_id: str):
    entry = _get(session_id)
    if entry is None:
        return _not_found()

    session: CropSession = entry["session"]
    data = request.get_json() or {}
    phase = data.get("phase")
    try:
        if phase == "press":
            session.press(*_point(data))
        elif phase == "move":
            session.move(*_point(data))
        elif phase == "release":
            session.release(*_point(data))
        elif phase == "clear":
            session.selection.clear()
        else:
            return jsonify({"error": f"Unknown phase {phase!r}"}), 400
    except (KeyError, TypeError, ValueError):
        return jsonify({"error": "Selection needs numeric 'x' and 'y'"}), 400
    return jsonify(session.snapshot())


@bp.route("/api/sessions/<session_id>/seek", methods=["POST"])
def seek(session_id: str):
    entry = _get(session_id)
    if entry is None:
        return _not_found()

    data = request.get_json() or {}
    try:
        current = entry["session"].seek(float(data["time"]))
    except (KeyError, TypeError, ValueError):
        return jsonify({"error": "Seek needs a numeric 'time'"}), 400
    if current is None:
        return jsonify({"error": "No video loaded"}), 409
    return jsonify({"current_time": current})


@bp.route("/api/sessions/<session_id>/frame")
def frame(session_id: str):
    entry = _get(session_id)
    if entry is None:
        return _not_found()

    frame_path = entry["session"].frame_path
    if frame_path is None or not frame_path.exists():
        return jsonify({"error": "No frame rendered yet"}), 409
    return send_file(frame_path, mimetype="image/jpeg", max_age=0)


@bp.route("/api/sessions/<session_id>/process", methods=["POST"])
def start_process(session_id: str):
    entry = _get(session_id)
    if entry is None:
        return _not_found()

    session: CropSession = entry["session"]
    status = session.orchestrator.status
    if status is not JobStatus.IDLE:
        return jsonify({"error": f"Job is already {status.value}"}), 409
    if session.orchestrator.input is None:
        return jsonify({"error": "No video loaded"}), 409
    if session.rect is None:
        return jsonify({"error": "No crop region selected"}), 400

    progress_queue: queue.Queue = queue.Queue()
    entry["progress_queue"] = progress_queue
    entry["error"] = None

    def run():
        try:
            def on_progress(frac: float):
                progress_queue.put({"stage": "cropping", "progress": round(frac, 3)})

            session.execute(on_progress=on_progress)
        except EngineRunError as e:
            cause = e.__cause__
            if isinstance(cause, subprocess.CalledProcessError) and cause.stderr:
                entry["error"] = f"ffmpeg failed: {cause.stderr[-500:]}"
            else:
                entry["error"] = str(e)
            logger.error("Session %s: %s", session_id, entry["error"])
        except ValueError as e:
            entry["error"] = str(e)
        finally:
            progress_queue.put(None)  # sentinel

    threading.Thread(target=run, daemon=True).start()
    return jsonify({"status": "started"})


@bp.route("/api/sessions/<session_id>/progress")
def progress_stream(session_id: str):
    entry = _get(session_id)
    if entry is None:
        return _not_found()

    q = entry.get("progress_queue")
    if q is None:
        return jsonify({"error": "No processing in progress"}), 409

    session: CropSession = entry["session"]

    def generate():
        while True:
            try:
                msg = q.get(timeout=120)
            except queue.Empty:
                yield "data: {\"error\": \"timeout\"}\n\n"
                break
            if msg is None:
                if entry.get("error"):
                    data = json.dumps({"error": entry["error"]})
                else:
                    snapshot = session.snapshot()
                    data = json.dumps({
                        "stage": snapshot["status"],
                        "progress": snapshot["progress"],
                        "output": snapshot["output"],
                    })
                yield f"data: {data}\n\n"
                break
            yield f"data: {json.dumps(msg)}\n\n"

    return Response(generate(), mimetype="text/event-stream")


@bp.route("/api/sessions/<session_id>/cancel", methods=["POST"])
def cancel(session_id: str):
    entry = _get(session_id)
    if entry is None:
        return _not_found()

    session: CropSession = entry["session"]
    session.cancel()
    return jsonify({"status": session.orchestrator.status.value})


@bp.route("/api/sessions/<session_id>/artifacts/<locator>")
def download_artifact(session_id: str, locator: str):
    entry = _get(session_id)
    if entry is None:
        return _not_found()

    session: CropSession = entry["session"]
    output = session.orchestrator.output
    if output is None or output.locator != locator:
        return jsonify({"error": "Artifact not found"}), 404
    try:
        data = session.orchestrator.store.read(locator)
    except KeyError:
        return jsonify({"error": "Artifact not found"}), 404

    return send_file(
        io.BytesIO(data),
        mimetype=output.mime_type,
        as_attachment=request.args.get("download") == "1",
        download_name=output.name,
    )
