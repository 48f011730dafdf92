from __future__ import annotations

from ..extensions import db
from zenstyle.time_utils import to_utc_z, to_iso_date


EXPENSE_CATEGORIES = ("rent", "salaries", "supplies", "utilities", "marketing", "maintenance", "other")


class Expense(db.Model):
    """Operating expense; feeds the financial report's expense and profit figures."""
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_date", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    category = db.Column(db.String(32), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    date = db.Column(db.Date, nullable=False)
    description = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category,
            "amount_cents": self.amount_cents,
            "date": to_iso_date(self.date),
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }
