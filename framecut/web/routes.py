"""Web API routes for framecut."""

import logging
import uuid
from pathlib import Path

from flask import Blueprint, current_app, jsonify, request, send_file

from framecut.ffutil import FramecutError, RenderFailedError
from framecut.manifest import apply_plan, parse_plan
from framecut.video import Video, load

logger = logging.getLogger(__name__)

bp = Blueprint("web", __name__)

# In-memory job store: job_id -> job dict
_jobs: dict[str, dict] = {}


def _describe(video: Video) -> dict:
    return {
        "width": video.width,
        "height": video.height,
        "fps": video.fps,
        "duration": video.duration.total_seconds(),
        "start": video.start.total_seconds(),
        "end": video.end.total_seconds(),
        "filters": list(video.filters),
    }


def _load_video(job: dict) -> Video:
    return load(job["input_path"], toolchain=current_app.config["TOOLCHAIN"])


def _build_video(job: dict, plan: dict) -> Video:
    trim, operations, fps = parse_plan(plan)
    return apply_plan(_load_video(job), trim, operations, fps)


@bp.route("/")
def index():
    return jsonify({
        "service": "framecut",
        "endpoints": [
            "POST /api/upload",
            "GET /api/jobs/<job_id>/probe",
            "POST /api/jobs/<job_id>/plan",
            "POST /api/jobs/<job_id>/render",
            "GET /api/jobs/<job_id>/status",
            "GET /api/jobs/<job_id>/result",
        ],
    })


@bp.route("/api/upload", methods=["POST"])
def upload():
    if "file" not in request.files:
        return jsonify({"error": "No file provided"}), 400

    f = request.files["file"]
    if not f.filename:
        return jsonify({"error": "Empty filename"}), 400

    job_id = uuid.uuid4().hex[:12]
    job_dir = Path(current_app.config["WORK_DIR"]) / job_id
    job_dir.mkdir(parents=True, exist_ok=True)

    ext = Path(f.filename).suffix or ".mp4"
    input_path = job_dir / f"input{ext}"
    f.save(input_path)

    _jobs[job_id] = {
        "dir": job_dir,
        "input_path": input_path,
        "filename": f.filename,
        "status": "uploaded",
    }

    return jsonify({"job_id": job_id, "filename": f.filename})


@bp.route("/api/jobs/<job_id>/probe")
def probe_job(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    try:
        video = _load_video(_jobs[job_id])
    except FramecutError as e:
        return jsonify({"error": str(e)}), 422
    return jsonify(_describe(video))


@bp.route("/api/jobs/<job_id>/plan", methods=["POST"])
def plan_job(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    try:
        video = _build_video(job, request.get_json(silent=True) or {})
    except FramecutError as e:
        return jsonify({"error": str(e)}), 422
    except (TypeError, ValueError) as e:
        return jsonify({"error": f"Invalid plan: {e}"}), 400

    output_path = job["dir"] / f"output{job['input_path'].suffix}"
    resp = _describe(video)
    resp["command"] = video.command_line(output_path)
    return jsonify(resp)


@bp.route("/api/jobs/<job_id>/render", methods=["POST"])
def render_job(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    if job["status"] == "rendering":
        return jsonify({"error": "Job is already rendering"}), 409

    try:
        video = _build_video(job, request.get_json(silent=True) or {})
    except FramecutError as e:
        return jsonify({"error": str(e)}), 422
    except (TypeError, ValueError) as e:
        return jsonify({"error": f"Invalid plan: {e}"}), 400

    output_path = job["dir"] / f"output{job['input_path'].suffix}"
    job["status"] = "rendering"
    job["error"] = None
    try:
        video.render(output_path)
    except RenderFailedError as e:
        logger.error("Render failed for job %s: %s", job_id, e)
        job["status"] = "error"
        job["error"] = str(e)
        return jsonify({"error": job["error"]}), 500

    job["status"] = "done"
    job["result"] = {"output_path": str(output_path), **_describe(video)}
    return jsonify({"status": "done", "result": job["result"]})


@bp.route("/api/jobs/<job_id>/result")
def download_result(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    if job["status"] != "done":
        return jsonify({"error": "Job not complete"}), 409

    output_path = Path(job["result"]["output_path"])
    return send_file(output_path, as_attachment=False)


@bp.route("/api/jobs/<job_id>/status")
def job_status(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    resp = {"status": job["status"], "filename": job.get("filename")}
    if job["status"] == "done":
        resp["result"] = job.get("result")
    if job["status"] == "error":
        resp["error"] = job.get("error")
    return jsonify(resp)
