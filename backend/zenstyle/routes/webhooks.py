# Overview: Flask API routes for inbound chat-platform webhooks; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..services import messaging_service
from ..services.messaging_service import MessagingError
from zenstyle.time_utils import utcnow


webhooks_bp = Blueprint("webhooks", __name__, url_prefix="/api/webhooks")


@webhooks_bp.get("/messages")
def messages_liveness():
    return jsonify({"status": "ok", "server_time": utcnow().isoformat() + "Z"})


@webhooks_bp.post("/messages")
def receive_messages_route():
    payload = request.get_json(silent=True)
    try:
        result = messaging_service.receive_messages(payload)
    except MessagingError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(result), 200
