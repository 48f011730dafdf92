# Overview: Service-layer operations for reporting; read-only aggregation over sales, expenses, staff and stock.

from __future__ import annotations

from datetime import date, datetime, time, timedelta

from sqlalchemy import func

from zenstyle.extensions import db
from zenstyle.models import (
    Appointment,
    Client,
    Expense,
    Product,
    Staff,
    StaffPayment,
    Transaction,
    TransactionItem,
)
from zenstyle.models.appointments import APPOINTMENT_CANCELLED
from zenstyle.models.sales import ITEM_TYPE_SERVICE
from zenstyle.models.staff import STAFF_PAYMENT_COMMISSION
from zenstyle.services import settings_service
from zenstyle.time_utils import hhmm_to_minutes, parse_date, to_iso_date, utcnow, weekday_key


TOP_SERVICES = 8


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


def _parse_range(start, end) -> tuple[date | None, date | None]:
    try:
        start_day = parse_date(start) if start else None
        end_day = parse_date(end) if end else None
    except ValueError as exc:
        raise ReportError(str(exc)) from exc
    if start_day and end_day and start_day > end_day:
        raise ReportError("start must be on or before end")
    return start_day, end_day


def _filter_created(query, column, start_day: date | None, end_day: date | None):
    """Inclusive calendar-date range on a timestamp column."""
    if start_day:
        query = query.filter(column >= datetime.combine(start_day, time.min))
    if end_day:
        query = query.filter(column < datetime.combine(end_day + timedelta(days=1), time.min))
    return query


def _percent(part: int, whole: int) -> float:
    if not whole:
        return 0.0
    return round(part * 100.0 / whole, 1)


def financial_report(*, start=None, end=None) -> dict:
    """Monthly revenue, expenses and profit, plus revenue by payment method."""
    start_day, end_day = _parse_range(start, end)

    month_expr = func.strftime("%Y-%m", Transaction.created_at)
    revenue_query = db.session.query(
        month_expr.label("period"),
        func.count(Transaction.id).label("transaction_count"),
        func.coalesce(func.sum(Transaction.total_cents), 0).label("revenue_cents"),
    )
    revenue_query = _filter_created(revenue_query, Transaction.created_at, start_day, end_day)
    revenue_rows = revenue_query.group_by("period").order_by("period").all()

    expense_month = func.strftime("%Y-%m", Expense.date)
    expense_query = db.session.query(
        expense_month.label("period"),
        func.coalesce(func.sum(Expense.amount_cents), 0).label("expenses_cents"),
    )
    if start_day:
        expense_query = expense_query.filter(Expense.date >= start_day)
    if end_day:
        expense_query = expense_query.filter(Expense.date <= end_day)
    expense_rows = expense_query.group_by("period").order_by("period").all()

    months: dict[str, dict] = {}
    for row in revenue_rows:
        months.setdefault(row.period, {"period": row.period, "revenue_cents": 0, "expenses_cents": 0, "transaction_count": 0})
        months[row.period]["revenue_cents"] = int(row.revenue_cents or 0)
        months[row.period]["transaction_count"] = int(row.transaction_count or 0)
    for row in expense_rows:
        months.setdefault(row.period, {"period": row.period, "revenue_cents": 0, "expenses_cents": 0, "transaction_count": 0})
        months[row.period]["expenses_cents"] = int(row.expenses_cents or 0)

    rows = []
    for period in sorted(months):
        entry = months[period]
        entry["profit_cents"] = entry["revenue_cents"] - entry["expenses_cents"]
        rows.append(entry)

    method_query = db.session.query(
        Transaction.payment_method,
        func.coalesce(func.sum(Transaction.total_cents), 0),
    )
    method_query = _filter_created(method_query, Transaction.created_at, start_day, end_day)
    by_method = {method: int(total or 0) for method, total in method_query.group_by(Transaction.payment_method).all()}

    total_revenue = sum(r["revenue_cents"] for r in rows)
    total_expenses = sum(r["expenses_cents"] for r in rows)
    return {
        "start": to_iso_date(start_day),
        "end": to_iso_date(end_day),
        "rows": rows,
        "by_payment_method": by_method,
        "totals": {
            "revenue_cents": total_revenue,
            "expenses_cents": total_expenses,
            "profit_cents": total_revenue - total_expenses,
            "transaction_count": sum(r["transaction_count"] for r in rows),
        },
    }


def service_distribution(*, start=None, end=None, limit: int = TOP_SERVICES) -> dict:
    """Service revenue grouped by service name, top `limit`, with percentage share."""
    start_day, end_day = _parse_range(start, end)

    query = db.session.query(
        TransactionItem.name_fr.label("name_fr"),
        func.max(TransactionItem.name_ar).label("name_ar"),
        func.coalesce(func.sum(TransactionItem.quantity), 0).label("count"),
        func.coalesce(func.sum(TransactionItem.total_cents), 0).label("revenue_cents"),
    ).join(Transaction, Transaction.id == TransactionItem.transaction_id).filter(
        TransactionItem.item_type == ITEM_TYPE_SERVICE,
    )
    query = _filter_created(query, Transaction.created_at, start_day, end_day)
    rows = query.group_by(TransactionItem.name_fr).order_by(func.sum(TransactionItem.total_cents).desc()).all()

    grand_total = sum(int(r.revenue_cents or 0) for r in rows)
    return {
        "start": to_iso_date(start_day),
        "end": to_iso_date(end_day),
        "total_revenue_cents": grand_total,
        "rows": [
            {
                "name_fr": r.name_fr,
                "name_ar": r.name_ar,
                "count": int(r.count or 0),
                "revenue_cents": int(r.revenue_cents or 0),
                "percentage": _percent(int(r.revenue_cents or 0), grand_total),
            }
            for r in rows[:limit]
        ],
    }


def staff_performance(*, start=None, end=None) -> dict:
    """Per active staff member: revenue, unique clients, transactions and commission."""
    start_day, end_day = _parse_range(start, end)

    sales_query = db.session.query(
        Transaction.staff_id,
        func.count(Transaction.id).label("transaction_count"),
        func.count(func.distinct(Transaction.client_id)).label("unique_clients"),
        func.coalesce(func.sum(Transaction.total_cents), 0).label("revenue_cents"),
    ).filter(Transaction.staff_id.isnot(None))
    sales_query = _filter_created(sales_query, Transaction.created_at, start_day, end_day)
    sales = {row.staff_id: row for row in sales_query.group_by(Transaction.staff_id).all()}

    commission_query = db.session.query(
        StaffPayment.staff_id,
        func.coalesce(func.sum(StaffPayment.amount_cents), 0),
    ).filter(StaffPayment.type == STAFF_PAYMENT_COMMISSION)
    commission_query = _filter_created(commission_query, StaffPayment.created_at, start_day, end_day)
    commissions = dict(commission_query.group_by(StaffPayment.staff_id).all())

    rows = []
    for staff in db.session.query(Staff).filter(Staff.is_active.is_(True)).order_by(Staff.first_name.asc()).all():
        row = sales.get(staff.id)
        rows.append({
            "staff_id": staff.id,
            "name": staff.full_name,
            "salary_type": staff.salary_type,
            "commission_rate": float(staff.commission_rate or 0),
            "revenue_cents": int(row.revenue_cents) if row else 0,
            "unique_clients": int(row.unique_clients) if row else 0,
            "transaction_count": int(row.transaction_count) if row else 0,
            "commission_cents": int(commissions.get(staff.id, 0) or 0),
        })
    rows.sort(key=lambda r: r["revenue_cents"], reverse=True)
    return {"start": to_iso_date(start_day), "end": to_iso_date(end_day), "rows": rows}


def inventory_report() -> dict:
    products = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .order_by(Product.stock.asc(), Product.name_fr.asc())
        .all()
    )
    rows = []
    stock_value = 0
    retail_value = 0
    for product in products:
        if product.unit_cost_cents is not None:
            stock_value += product.stock * product.unit_cost_cents
        retail_value += product.stock * product.price_cents
        rows.append({
            "product_id": product.id,
            "name_fr": product.name_fr,
            "name_ar": product.name_ar,
            "stock": product.stock,
            "min_stock": product.min_stock,
            "low_stock": product.is_low_stock,
            "price_cents": product.price_cents,
            "unit_cost_cents": product.unit_cost_cents,
        })
    return {
        "rows": rows,
        "totals": {
            "product_count": len(rows),
            "low_stock_count": sum(1 for r in rows if r["low_stock"]),
            "stock_cost_value_cents": stock_value,
            "stock_retail_value_cents": retail_value,
        },
    }


def dashboard_stats(today=None, *, hours=None) -> dict:
    """
    Figures for the dashboard of one day.

    occupancy_percent = booked staff minutes / (open minutes * active staff)
    """
    day = parse_date(today) if today is not None else utcnow().date()
    hours = hours if hours is not None else settings_service.get_working_hours()

    appointments = (
        db.session.query(Appointment)
        .filter(Appointment.date == day, Appointment.status != APPOINTMENT_CANCELLED)
        .order_by(Appointment.start_time.asc())
        .all()
    )
    appointments_value = sum(a.total_amount_cents or 0 for a in appointments)

    tx_query = db.session.query(func.coalesce(func.sum(Transaction.amount_paid_cents), 0))
    tx_revenue = int(_filter_created(tx_query, Transaction.created_at, day, day).scalar() or 0)

    active_staff = db.session.query(func.count(Staff.id)).filter(Staff.is_active.is_(True)).scalar() or 0
    info = hours.get(weekday_key(day)) if hours else None
    open_minutes = 0
    if info and info.get("isOpen"):
        open_minutes = max(0, hhmm_to_minutes(info["close"]) - hhmm_to_minutes(info["open"]))
    booked_minutes = sum(
        hhmm_to_minutes(a.end_time) - hhmm_to_minutes(a.start_time)
        for a in appointments
        if a.staff_id is not None
    )
    capacity = open_minutes * active_staff

    low_stock = (
        db.session.query(func.count(Product.id))
        .filter(Product.is_active.is_(True), Product.stock <= Product.min_stock)
        .scalar()
        or 0
    )

    return {
        "date": to_iso_date(day),
        "appointments_count": len(appointments),
        "appointments": [a.to_dict() for a in appointments],
        "clients_count": db.session.query(func.count(Client.id)).scalar() or 0,
        "appointments_value_cents": appointments_value,
        "transactions_revenue_cents": tx_revenue,
        "revenue_cents": appointments_value + tx_revenue,
        "active_staff_count": active_staff,
        "booked_minutes": booked_minutes,
        "open_minutes": open_minutes,
        "occupancy_percent": _percent(booked_minutes, capacity),
        "low_stock_count": low_stock,
    }
