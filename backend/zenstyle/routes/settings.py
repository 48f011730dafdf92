# Overview: Flask API routes for salon settings; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..services import settings_service
from ..services.settings_service import WORKING_HOURS_KEY, SettingsValidationError


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("/working-hours")
def get_working_hours_route():
    hours = settings_service.get_working_hours()
    return jsonify({"working_hours": settings_service.working_hours_as_dict(hours)})


@settings_bp.put("/working-hours")
def update_working_hours_route():
    """Body: {"working_hours": {"monday": {"open": "08:00", "close": "19:00", "isOpen": true}, ...}}"""
    data = request.get_json(silent=True) or {}
    try:
        hours = settings_service.update_working_hours(data.get("working_hours"))
    except SettingsValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"working_hours": hours})


@settings_bp.get("/<key>")
def get_setting_route(key: str):
    if key == WORKING_HOURS_KEY:
        return get_working_hours_route()
    return jsonify({"key": key, "value": settings_service.get_setting(key)})


@settings_bp.put("/<key>")
def set_setting_route(key: str):
    """Body: {"value": <any JSON>}"""
    data = request.get_json(silent=True) or {}
    if "value" not in data:
        return jsonify({"error": "value is required"}), 400
    try:
        if key == WORKING_HOURS_KEY:
            value = settings_service.update_working_hours(data["value"])
        else:
            value = settings_service.set_setting(key, data["value"]).value
    except SettingsValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"key": key, "value": value})
