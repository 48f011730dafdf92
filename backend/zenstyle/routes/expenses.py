# Overview: Flask API routes for expenses; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..models import Expense
from ..services import expense_service
from ..services.expense_service import EXPENSE_POLICY, ExpenseError, ExpenseNotFoundError
from ..validation import ValidationError, validate_payload


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.get("")
def list_expenses_route():
    """Query parameters: start, end (YYYY-MM-DD), category"""
    try:
        expenses = expense_service.list_expenses(
            start=request.args.get("start"),
            end=request.args.get("end"),
            category=request.args.get("category"),
        )
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({
        "items": [e.to_dict() for e in expenses],
        "count": len(expenses),
        "total_cents": sum(e.amount_cents for e in expenses),
    })


@expenses_bp.post("")
def create_expense_route():
    payload = request.get_json(silent=True)
    try:
        patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=False)
        expense = expense_service.create_expense(patch)
        return jsonify(expense.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ExpenseError as e:
        return jsonify({"error": str(e), "details": e.details}), 400


@expenses_bp.delete("/<int:expense_id>")
def delete_expense_route(expense_id: int):
    try:
        expense_service.delete_expense(expense_id)
        return jsonify({"deleted": True, "id": expense_id})
    except ExpenseNotFoundError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
