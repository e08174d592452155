from flask import (
    Blueprint,
    current_app,
    jsonify,
    request,
    send_from_directory,
)
from flask_login import current_user
import os

# Create a blueprint for main routes
bp = Blueprint("main", __name__)


@bp.route("/")
def index():
    return jsonify(
        {
            "name": "ContentWell",
            "authenticated": current_user.is_authenticated,
            "poll_interval_ms": current_app.config.get("POLL_INTERVAL_MS", 5000),
        }
    )


@bp.route("/generated/<path:filename>")
def generated_image(filename):
    """Serve a stored generated image."""
    directory = os.path.abspath(current_app.config["GENERATED_IMAGES_DIR"])
    return send_from_directory(directory, filename, mimetype="image/png")


@bp.route("/oauth/complete")
def oauth_complete():
    """Landing page for finished connect flows."""
    error = request.args.get("error")
    if error:
        return jsonify(
            {
                "success": False,
                "error": error,
                "message": request.args.get("message"),
            }
        )
    return jsonify(
        {
            "success": True,
            "result": request.args.get("success"),
            "name": request.args.get("name"),
        }
    )
