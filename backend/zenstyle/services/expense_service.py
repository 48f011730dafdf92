# Overview: Service-layer operations for expenses; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import Expense
from ..models.expenses import EXPENSE_CATEGORIES
from ..validation import ModelValidationPolicy
from zenstyle.time_utils import parse_date


EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"category", "amount_cents", "date", "description"},
    required_on_create={"category", "amount_cents", "date"},
)


class ExpenseError(Exception):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ExpenseNotFoundError(ExpenseError):
    pass


def create_expense(patch: dict) -> Expense:
    if patch.get("category") not in EXPENSE_CATEGORIES:
        raise ExpenseError(f"category must be one of: {', '.join(EXPENSE_CATEGORIES)}")
    if patch.get("amount_cents") is None or patch["amount_cents"] <= 0:
        raise ExpenseError("amount_cents must be > 0")
    if patch.get("date") is None:
        raise ExpenseError("date is required")

    expense = Expense(**patch)
    db.session.add(expense)
    db.session.commit()
    return expense


def list_expenses(*, start=None, end=None, category: str | None = None) -> list[Expense]:
    query = db.session.query(Expense)
    if start is not None:
        query = query.filter(Expense.date >= parse_date(start))
    if end is not None:
        query = query.filter(Expense.date <= parse_date(end))
    if category:
        query = query.filter(Expense.category == category)
    return query.order_by(Expense.date.desc(), Expense.id.desc()).all()


def delete_expense(expense_id: int) -> None:
    expense = db.session.query(Expense).filter_by(id=expense_id).first()
    if expense is None:
        raise ExpenseNotFoundError("Expense not found", {"expense_id": expense_id})
    db.session.delete(expense)
    db.session.commit()
