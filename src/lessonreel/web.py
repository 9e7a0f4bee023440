"""HTTP API over the gateway (Flask).

Routes:
  POST /render          submit a payload      -> {"renderId": id}
  GET  /render/<id>     job status            -> {"status": ..., ...}
  GET  /download/<id>   finished mp4          -> video/mp4 attachment
  GET  /health          liveness              -> {"status": "healthy", ...}
"""

import logging
from datetime import datetime, timezone

from flask import Flask, jsonify, request, send_file

from .gateway import NOT_FOUND, ArtifactNotReadyError, EnqueueError, Gateway
from .payload import SubmissionError

logger = logging.getLogger(__name__)

SERVICE_NAME = "lessonreel"
SERVICE_VERSION = "0.1.0"


def create_app(gateway: Gateway) -> Flask:
    app = Flask(__name__)

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    @app.route("/render", methods=["POST"])
    def start_render():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "Request body must be a JSON object"}), 400
        payload = dict(data)
        job_id = payload.pop("renderId", None)
        try:
            render_id = gateway.submit(payload, job_id=job_id)
        except EnqueueError as e:
            logger.error("Submission failed: %s", e)
            return jsonify({"error": str(e)}), 500
        except SubmissionError as e:
            return jsonify({"error": str(e)}), 400
        return jsonify({"renderId": render_id})

    @app.route("/render/<render_id>", methods=["GET"])
    def render_status(render_id):
        doc = gateway.status(render_id)
        if doc["status"] == NOT_FOUND:
            return jsonify(doc), 404
        return jsonify(doc)

    @app.route("/download/<render_id>", methods=["GET"])
    def download(render_id):
        try:
            path = gateway.artifact_path(render_id)
        except ArtifactNotReadyError:
            return "Not ready", 404
        return send_file(
            path.resolve(),
            mimetype="video/mp4",
            as_attachment=True,
            download_name=f"{render_id}.mp4",
        )

    return app
