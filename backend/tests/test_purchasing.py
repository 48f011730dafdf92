"""
Purchasing / accounts-payable tests.

The supplier balance must always equal the order totals minus the payments.
"""

import pytest
from sqlalchemy import func

from zenstyle.extensions import db
from zenstyle.models import Product, PurchaseOrder, PurchaseOrderItem, Supplier, SupplierPayment
from zenstyle.services import purchasing_service
from zenstyle.services.purchasing_service import (
    ExistingProductLine,
    NewProductLine,
    PurchaseError,
    SupplierNotFoundError,
)


def _ledger_balance(supplier_id):
    ordered = db.session.query(func.coalesce(func.sum(PurchaseOrder.total_cents), 0)).filter_by(supplier_id=supplier_id).scalar()
    paid = db.session.query(func.coalesce(func.sum(SupplierPayment.amount_cents), 0)).filter_by(supplier_id=supplier_id).scalar()
    return ordered - paid


def _new_line(quantity=10, unit=500):
    return NewProductLine(name_ar="كريم", name_fr="Crème", category="skincare", quantity=quantity, unit_price_cents=unit)


class TestPostPurchase:
    def test_new_product_on_credit(self, supplier, reload):
        order = purchasing_service.post_purchase(
            supplier_id=supplier.id,
            lines=[_new_line()],
            payment_status="credit",
        )

        assert order.subtotal_cents == 5000
        assert order.tax_cents == 950
        assert order.total_cents == 5950
        assert order.status == "received"

        product = db.session.query(Product).filter_by(name_fr="Crème").one()
        assert product.stock == 10
        assert product.price_cents == 750
        assert product.unit_cost_cents == 500
        assert product.min_stock == 5
        assert product.supplier_id == supplier.id

        assert reload(Supplier, supplier.id).balance_cents == 5950
        assert db.session.query(SupplierPayment).count() == 0

    def test_existing_product_restock_overwrites_cost(self, supplier, shampoo, reload):
        order = purchasing_service.post_purchase(
            supplier_id=supplier.id,
            lines=[ExistingProductLine(product_id=shampoo.id, quantity=5, unit_price_cents=700)],
            payment_status="credit",
        )

        product = reload(Product, shampoo.id)
        assert product.stock == 15
        assert product.unit_cost_cents == 700
        assert product.price_cents == 1000
        assert [(i.product_id, i.quantity, i.total_cents) for i in order.items] == [(shampoo.id, 5, 3500)]

    def test_paid_order_posts_full_payment(self, supplier, reload):
        order = purchasing_service.post_purchase(supplier_id=supplier.id, lines=[_new_line()], payment_status="paid")

        payments = db.session.query(SupplierPayment).filter_by(supplier_id=supplier.id).all()
        assert [(p.amount_cents, p.purchase_order_id) for p in payments] == [(5950, order.id)]
        assert reload(Supplier, supplier.id).balance_cents == 0

    def test_partial_order_posts_partial_payment(self, supplier, reload):
        purchasing_service.post_purchase(
            supplier_id=supplier.id, lines=[_new_line()], payment_status="partial", partial_amount=2000
        )
        assert reload(Supplier, supplier.id).balance_cents == 3950
        assert _ledger_balance(supplier.id) == 3950

    @pytest.mark.parametrize("partial", [None, 0, -10, 5951])
    def test_partial_amount_must_be_within_total(self, supplier, partial, reload):
        with pytest.raises(PurchaseError):
            purchasing_service.post_purchase(
                supplier_id=supplier.id, lines=[_new_line()], payment_status="partial", partial_amount=partial
            )
        assert db.session.query(PurchaseOrder).count() == 0
        assert db.session.query(Product).count() == 0
        assert reload(Supplier, supplier.id).balance_cents == 0

    def test_unknown_product_rolls_back_whole_order(self, supplier, reload):
        with pytest.raises(PurchaseError):
            purchasing_service.post_purchase(
                supplier_id=supplier.id,
                lines=[_new_line(), ExistingProductLine(product_id=9999, quantity=1, unit_price_cents=100)],
                payment_status="paid",
            )
        assert db.session.query(PurchaseOrder).count() == 0
        assert db.session.query(PurchaseOrderItem).count() == 0
        assert db.session.query(Product).count() == 0
        assert db.session.query(SupplierPayment).count() == 0
        assert reload(Supplier, supplier.id).balance_cents == 0

    def test_unknown_supplier_and_status(self, supplier):
        with pytest.raises(SupplierNotFoundError):
            purchasing_service.post_purchase(supplier_id=9999, lines=[_new_line()], payment_status="credit")
        with pytest.raises(PurchaseError):
            purchasing_service.post_purchase(supplier_id=supplier.id, lines=[_new_line()], payment_status="later")

    def test_tax_rate_and_markup_come_from_config(self, app, supplier):
        app.config.update(PURCHASE_TAX_RATE=0.1, RETAIL_MARKUP=2)
        try:
            order = purchasing_service.post_purchase(
                supplier_id=supplier.id, lines=[_new_line(quantity=3, unit=333)], payment_status="credit"
            )
        finally:
            app.config.update(PURCHASE_TAX_RATE=0.19, RETAIL_MARKUP=1.5)
        assert order.subtotal_cents == 999
        assert order.tax_cents == 100
        assert db.session.query(Product).filter_by(name_fr="Crème").one().price_cents == 666


class TestParseLines:
    def test_mixed_lines(self):
        lines = purchasing_service.parse_purchase_lines([
            {"product_id": 4, "quantity": 2, "unit_price_cents": 100},
            {"name_fr": "Gel", "quantity": 1, "unit_price_cents": 50},
        ])
        assert lines[0] == ExistingProductLine(product_id=4, quantity=2, unit_price_cents=100)
        assert lines[1].name_fr == "Gel"
        assert lines[1].name_ar == "Gel"

    @pytest.mark.parametrize(
        "raw",
        [
            [],
            [{"name_fr": "Gel", "quantity": 0, "unit_price_cents": 50}],
            [{"name_fr": "Gel", "quantity": 1, "unit_price_cents": -1}],
            [{"quantity": 1, "unit_price_cents": 50}],
            [{"name_fr": "Gel", "quantity": "2", "unit_price_cents": 50}],
        ],
    )
    def test_invalid_lines(self, raw):
        with pytest.raises(PurchaseError):
            purchasing_service.parse_purchase_lines(raw)


class TestSupplierPayments:
    def test_standalone_payment_reduces_balance(self, supplier, reload):
        purchasing_service.post_purchase(supplier_id=supplier.id, lines=[_new_line()], payment_status="credit")
        purchasing_service.post_supplier_payment(supplier_id=supplier.id, amount_cents=950, notes="Virement")

        assert reload(Supplier, supplier.id).balance_cents == 5000
        assert _ledger_balance(supplier.id) == 5000

    def test_invalid_payment_amount(self, supplier):
        for amount in (0, -5, 12.5, True):
            with pytest.raises(PurchaseError):
                purchasing_service.post_supplier_payment(supplier_id=supplier.id, amount_cents=amount)

    def test_payment_to_unknown_supplier(self, db_session):
        with pytest.raises(SupplierNotFoundError):
            purchasing_service.post_supplier_payment(supplier_id=9999, amount_cents=100)

    def test_balance_matches_ledger_after_mixed_activity(self, supplier, reload):
        purchasing_service.post_purchase(supplier_id=supplier.id, lines=[_new_line()], payment_status="credit")
        purchasing_service.post_purchase(
            supplier_id=supplier.id, lines=[_new_line(quantity=2, unit=1000)], payment_status="partial", partial_amount=1
        )
        purchasing_service.post_purchase(supplier_id=supplier.id, lines=[_new_line(quantity=1)], payment_status="paid")
        purchasing_service.post_supplier_payment(supplier_id=supplier.id, amount_cents=3000)

        assert reload(Supplier, supplier.id).balance_cents == _ledger_balance(supplier.id)

    def test_history_newest_first(self, supplier):
        order = purchasing_service.post_purchase(supplier_id=supplier.id, lines=[_new_line()], payment_status="paid")
        history = purchasing_service.supplier_history(supplier.id)

        assert [entry["kind"] for entry in history] == ["payment", "order"]
        assert history[1]["id"] == order.id
        assert history[1]["amount_cents"] == 5950

    def test_history_unknown_supplier(self, db_session):
        with pytest.raises(SupplierNotFoundError):
            purchasing_service.supplier_history(9999)


class TestSupplierRecords:
    def test_create_update_list(self, db_session):
        created = purchasing_service.create_supplier(name="  Cosmetica  ", city="Oran")
        assert created.name == "Cosmetica"
        assert created.balance_cents == 0

        updated = purchasing_service.update_supplier(created.id, {"phone": "0410000000", "is_active": False})
        assert updated.phone == "0410000000"
        assert purchasing_service.list_suppliers() == []
        assert [s.id for s in purchasing_service.list_suppliers(include_inactive=True)] == [created.id]

    def test_empty_name_rejected(self, supplier):
        with pytest.raises(PurchaseError):
            purchasing_service.create_supplier(name="  ")
        with pytest.raises(PurchaseError):
            purchasing_service.update_supplier(supplier.id, {"name": ""})
        assert purchasing_service.get_supplier(supplier.id).name == "Beauty Supply"

    def test_inactive_supplier_cannot_receive_orders(self, db_session, supplier):
        supplier.is_active = False
        db_session.commit()
        with pytest.raises(PurchaseError):
            purchasing_service.post_purchase(supplier_id=supplier.id, lines=[_new_line()], payment_status="credit")
