from flask import Blueprint, jsonify, request

from zenstyle.services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/financial")
def financial_report():
    try:
        report = reporting_service.financial_report(start=request.args.get("start"), end=request.args.get("end"))
        return jsonify(report), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400


@reports_bp.get("/services")
def service_distribution_report():
    try:
        report = reporting_service.service_distribution(start=request.args.get("start"), end=request.args.get("end"))
        return jsonify(report), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400


@reports_bp.get("/staff")
def staff_performance_report():
    try:
        report = reporting_service.staff_performance(start=request.args.get("start"), end=request.args.get("end"))
        return jsonify(report), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400


@reports_bp.get("/inventory")
def inventory_report():
    return jsonify(reporting_service.inventory_report()), 200


@reports_bp.get("/dashboard")
def dashboard_report():
    try:
        stats = reporting_service.dashboard_stats(request.args.get("date"))
        return jsonify(stats), 200
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400
