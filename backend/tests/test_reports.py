"""
Reporting tests: financial summary, service mix, staff performance,
inventory valuation and the dashboard occupancy figure.

Sales are back-dated so the month grouping does not depend on today's date.
"""

from datetime import date, datetime

import pytest

from zenstyle.models import Product
from zenstyle.services import appointment_service, checkout_service, expense_service, reporting_service
from zenstyle.services.checkout_service import ProductLine, ServiceLine
from zenstyle.services.reporting_service import ReportError


@pytest.fixture
def sale_at(db_session):
    def _sale(when, cart, payment_method="cash", **kwargs):
        transaction = checkout_service.post_sale(cart=cart, payment_method=payment_method, **kwargs)
        transaction.created_at = when
        db_session.commit()
        return transaction
    return _sale


@pytest.fixture
def june_activity(sale_at, haircut, manicure, shampoo):
    sale_at(datetime(2024, 6, 10, 12, 0), [ServiceLine(haircut.id, 1)])
    sale_at(datetime(2024, 6, 12, 15, 30), [ProductLine(shampoo.id, 2), ServiceLine(manicure.id, 1)], "card")
    sale_at(datetime(2024, 5, 20, 10, 0), [ServiceLine(haircut.id, 1)])
    expense_service.create_expense({"category": "rent", "amount_cents": 1000, "date": date(2024, 6, 5)})
    expense_service.create_expense({"category": "supplies", "amount_cents": 300, "date": date(2024, 5, 2)})


class TestFinancialReport:
    def test_monthly_rows_and_totals(self, june_activity):
        report = reporting_service.financial_report()

        assert report["rows"] == [
            {"period": "2024-05", "revenue_cents": 1500, "expenses_cents": 300, "profit_cents": 1200, "transaction_count": 1},
            {"period": "2024-06", "revenue_cents": 4300, "expenses_cents": 1000, "profit_cents": 3300, "transaction_count": 2},
        ]
        assert report["by_payment_method"] == {"cash": 3000, "card": 2800}
        assert report["totals"]["profit_cents"] == 4500

    def test_range_is_inclusive(self, june_activity):
        report = reporting_service.financial_report(start="2024-06-01", end="2024-06-12")

        assert [r["period"] for r in report["rows"]] == ["2024-06"]
        assert report["totals"]["revenue_cents"] == 4300
        assert report["start"] == "2024-06-01"

    def test_month_with_expenses_only(self, db_session):
        expense_service.create_expense({"category": "utilities", "amount_cents": 450, "date": date(2024, 3, 15)})
        report = reporting_service.financial_report()
        assert report["rows"] == [
            {"period": "2024-03", "revenue_cents": 0, "expenses_cents": 450, "profit_cents": -450, "transaction_count": 0},
        ]

    @pytest.mark.parametrize("start,end", [("2024-06-30", "2024-06-01"), ("June", None)])
    def test_bad_range(self, db_session, start, end):
        with pytest.raises(ReportError):
            reporting_service.financial_report(start=start, end=end)


class TestServiceDistribution:
    def test_grouped_by_service_with_share(self, june_activity):
        report = reporting_service.service_distribution(start="2024-06-01", end="2024-06-30")

        assert report["total_revenue_cents"] == 2300
        assert [(r["name_fr"], r["count"], r["revenue_cents"]) for r in report["rows"]] == [
            ("Coupe", 1, 1500),
            ("Manucure", 1, 800),
        ]
        assert report["rows"][0]["percentage"] == 65.2
        assert report["rows"][1]["percentage"] == 34.8

    def test_products_are_excluded_and_limit_applies(self, june_activity):
        report = reporting_service.service_distribution(limit=1)
        assert [r["name_fr"] for r in report["rows"]] == ["Coupe"]
        assert report["rows"][0]["count"] == 2

    def test_empty(self, db_session):
        assert reporting_service.service_distribution() == {
            "start": None,
            "end": None,
            "total_revenue_cents": 0,
            "rows": [],
        }


class TestStaffPerformance:
    def test_revenue_clients_and_commission(self, sarah, yasmine, haircut, amina):
        checkout_service.post_sale(
            cart=[ServiceLine(haircut.id, 2)], payment_method="cash", staff_id=sarah.id, client_id=amina.id
        )

        rows = reporting_service.staff_performance()["rows"]

        assert [r["staff_id"] for r in rows] == [sarah.id, yasmine.id]
        assert rows[0]["revenue_cents"] == 3000
        assert rows[0]["unique_clients"] == 1
        assert rows[0]["transaction_count"] == 1
        assert rows[0]["commission_cents"] == 300
        assert rows[1]["revenue_cents"] == 0
        assert rows[1]["commission_cents"] == 0

    def test_inactive_staff_omitted(self, db_session, sarah, yasmine):
        yasmine.is_active = False
        db_session.commit()
        assert [r["staff_id"] for r in reporting_service.staff_performance()["rows"]] == [sarah.id]


class TestInventoryReport:
    def test_low_stock_first_with_valuation(self, db_session, shampoo):
        serum = Product(name_ar="سيروم", name_fr="Sérum", price_cents=2500, stock=2, min_stock=5)
        db_session.add(serum)
        db_session.commit()

        report = reporting_service.inventory_report()

        assert [r["product_id"] for r in report["rows"]] == [serum.id, shampoo.id]
        assert report["rows"][0]["low_stock"] is True
        assert report["rows"][1]["low_stock"] is False
        assert report["totals"] == {
            "product_count": 2,
            "low_stock_count": 1,
            "stock_cost_value_cents": 6000,
            "stock_retail_value_cents": 10 * 1000 + 2 * 2500,
        }


class TestDashboard:
    def test_occupancy_and_revenue(self, working_hours, sarah, yasmine, amina, haircut, manicure, monday, sale_at):
        appointment_service.create_appointment(
            client_id=amina.id, staff_id=sarah.id, service_ids=[haircut.id], date=monday, start_time="10:00"
        )
        appointment_service.create_appointment(
            client_id=amina.id, staff_id=yasmine.id, service_ids=[manicure.id], date=monday, start_time="11:00"
        )
        appointment_service.create_appointment(
            client_id=amina.id, service_ids=[haircut.id], date=monday, start_time="12:00"
        )
        cancelled = appointment_service.create_appointment(
            client_id=amina.id, staff_id=sarah.id, service_ids=[haircut.id], date=monday, start_time="15:00"
        )
        appointment_service.cancel_appointment(cancelled.id)
        sale_at(datetime(2024, 6, 10, 9, 0), [ServiceLine(manicure.id, 1)])

        stats = reporting_service.dashboard_stats(monday)

        assert stats["appointments_count"] == 3
        assert [a["start_time"] for a in stats["appointments"]] == ["10:00", "11:00", "12:00"]
        assert stats["appointments_value_cents"] == 3800
        assert stats["transactions_revenue_cents"] == 800
        assert stats["revenue_cents"] == 4600
        assert stats["active_staff_count"] == 2
        assert stats["open_minutes"] == 660
        assert stats["booked_minutes"] == 90
        assert stats["occupancy_percent"] == 6.8
        assert stats["clients_count"] == 1

    def test_closed_day_has_no_capacity(self, working_hours, sarah, friday):
        stats = reporting_service.dashboard_stats(friday)
        assert stats["open_minutes"] == 0
        assert stats["occupancy_percent"] == 0.0

    def test_low_stock_count(self, working_hours, db_session, shampoo, monday):
        shampoo.stock = 5
        db_session.commit()
        assert reporting_service.dashboard_stats(monday)["low_stock_count"] == 1
