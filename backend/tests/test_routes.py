"""
HTTP API tests: status codes, error mapping and response shapes.

Business rules are covered by the service tests; these check that each
route passes input through and maps failures to the right status.
"""

from zenstyle.models import Product


class TestSystem:
    def test_health_degraded_without_saved_hours(self, client, db_session):
        response = client.get("/health")
        body = response.get_json()

        assert response.status_code == 200
        assert body["status"] == "degraded"
        assert body["checks"]["database"]["status"] == "healthy"
        assert body["checks"]["configuration"]["status"] == "degraded"

    def test_health_ok(self, client, working_hours, sarah, haircut):
        body = client.get("/health").get_json()
        assert body["status"] == "healthy"
        assert body["checks"]["database"]["details"] == {"clients": 0, "active_staff": 1, "active_services": 1}

    def test_version(self, client):
        body = client.get("/version").get_json()
        assert body["api_version"] == "1.0.0"
        assert body["server_time"].endswith("Z")

    def test_cors_allowed_origin(self, client, db_session):
        response = client.get("/version", headers={"Origin": "http://localhost:5173"})
        assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

        response = client.get("/version", headers={"Origin": "http://evil.test"})
        assert "Access-Control-Allow-Origin" not in response.headers


class TestAppointmentRoutes:
    def _book(self, client, **overrides):
        body = {"client_id": None, "service_ids": [], "date": "2024-06-10", "start_time": "10:00"}
        body.update(overrides)
        return client.post("/api/appointments", json=body)

    def test_create_and_conflict(self, client, working_hours, amina, sarah, haircut):
        first = self._book(client, client_id=amina.id, staff_id=sarah.id, service_ids=[haircut.id])
        assert first.status_code == 201
        assert first.get_json()["end_time"] == "11:00"

        second = self._book(client, client_id=amina.id, staff_id=sarah.id, service_ids=[haircut.id], start_time="10:30")
        assert second.status_code == 409
        assert second.get_json()["code"] == "SLOT_CONFLICT"
        assert second.get_json()["details"]["conflicting_appointment_ids"] == [first.get_json()["id"]]

    def test_closed_day(self, client, working_hours, amina, haircut):
        response = self._book(client, client_id=amina.id, service_ids=[haircut.id], date="2024-06-14")
        assert response.status_code == 400
        assert response.get_json()["code"] == "CLOSED_DAY"

    def test_missing_fields(self, client, working_hours):
        response = self._book(client)
        assert response.status_code == 400
        assert "client_id" in response.get_json()["error"]

    def test_list_by_date(self, client, working_hours, amina, sarah, haircut):
        self._book(client, client_id=amina.id, staff_id=sarah.id, service_ids=[haircut.id])

        body = client.get("/api/appointments?date=2024-06-10").get_json()
        assert body["count"] == 1
        assert client.get("/api/appointments").status_code == 400

    def test_status_transitions(self, client, working_hours, amina, haircut):
        created = self._book(client, client_id=amina.id, service_ids=[haircut.id]).get_json()
        url = f"/api/appointments/{created['id']}/status"

        assert client.post(url, json={"status": "completed"}).status_code == 200
        response = client.post(url, json={"status": "cancelled"})
        assert response.status_code == 409
        assert response.get_json()["code"] == "INVALID_TRANSITION"
        assert client.post(url, json={}).status_code == 400

    def test_not_found(self, client, db_session):
        assert client.get("/api/appointments/9999").status_code == 404
        assert client.delete("/api/appointments/9999").status_code == 404

    def test_slots_and_availability(self, client, working_hours, sarah):
        slots = client.get("/api/appointments/slots?date=2024-06-10").get_json()["slots"]
        assert slots[0] == "08:00"
        assert slots[-1] == "18:30"

        body = client.get(
            f"/api/appointments/availability?staff_id={sarah.id}&date=2024-06-10&start_time=18:30&end_time=19:30"
        ).get_json()
        assert body == {
            "available": False,
            "code": "EXCEEDS_CLOSING",
            "error": body["error"],
            "details": body["details"],
        }


class TestCheckoutRoutes:
    def test_sale(self, client, amina, sarah, haircut, shampoo):
        response = client.post("/api/checkout", json={
            "items": [{"type": "service", "id": haircut.id, "quantity": 1}, {"type": "product", "id": shampoo.id, "quantity": 1}],
            "payment_method": "card",
            "client_id": amina.id,
            "staff_id": sarah.id,
        })
        body = response.get_json()

        assert response.status_code == 201
        assert body["total_cents"] == 2500
        assert len(body["items"]) == 2

        listing = client.get("/api/transactions?period=today").get_json()
        assert [t["id"] for t in listing["items"]] == [body["id"]]
        assert client.get(f"/api/transactions/{body['id']}").status_code == 200

    def test_error_mapping(self, client, shampoo):
        too_many = client.post("/api/checkout", json={
            "items": [{"type": "product", "id": shampoo.id, "quantity": 11}],
            "payment_method": "cash",
        })
        assert too_many.status_code == 409
        assert too_many.get_json()["code"] == "INSUFFICIENT_STOCK"

        unknown_client = client.post("/api/checkout", json={
            "items": [{"type": "product", "id": shampoo.id, "quantity": 1}],
            "payment_method": "credit",
            "client_id": 9999,
        })
        assert unknown_client.status_code == 404

        empty = client.post("/api/checkout", json={"items": [], "payment_method": "cash"})
        assert empty.status_code == 400

        assert client.get("/api/transactions?period=year").status_code == 400
        assert client.get("/api/transactions/9999").status_code == 404


class TestSupplierRoutes:
    def test_purchase_payment_and_history(self, client, supplier):
        order = client.post("/api/purchase-orders", json={
            "supplier_id": supplier.id,
            "items": [{"name_fr": "Crème", "name_ar": "كريم", "quantity": 10, "unit_price_cents": 500}],
            "payment_status": "credit",
        })
        assert order.status_code == 201
        assert order.get_json()["total_cents"] == 5950

        payment = client.post(f"/api/suppliers/{supplier.id}/payments", json={"amount_cents": 950})
        assert payment.status_code == 201

        assert client.get(f"/api/suppliers/{supplier.id}").get_json()["balance_cents"] == 5000
        history = client.get(f"/api/suppliers/{supplier.id}/history").get_json()
        assert [entry["kind"] for entry in history["items"]] == ["payment", "order"]

    def test_balance_not_writable(self, client, supplier):
        response = client.patch(f"/api/suppliers/{supplier.id}", json={"balance_cents": 0})
        assert response.status_code == 400

    def test_create_and_errors(self, client, db_session):
        created = client.post("/api/suppliers", json={"name": "Cosmetica", "city": "Oran"})
        assert created.status_code == 201
        assert client.post("/api/suppliers", json={"name": ""}).status_code == 400
        assert client.get("/api/suppliers/9999").status_code == 404
        assert client.post("/api/suppliers/9999/payments", json={"amount_cents": 10}).status_code == 404
        assert client.post("/api/purchase-orders", json={"items": []}).status_code == 400


class TestClientRoutes:
    def test_create_and_repay(self, client, db_session):
        created = client.post("/api/clients", json={"first_name": "Nadia", "phone": "0666"})
        assert created.status_code == 201
        client_id = created.get_json()["id"]

        repaid = client.post(f"/api/clients/{client_id}/payments", json={"amount_cents": 500})
        assert repaid.status_code == 201
        assert repaid.get_json()["client"]["credit_balance_cents"] == -500

        payments = client.get(f"/api/clients/{client_id}/payments").get_json()
        assert payments["count"] == 1

    def test_validation(self, client, amina):
        assert client.post("/api/clients", json={"last_name": "X"}).status_code == 400
        assert client.patch(f"/api/clients/{amina.id}", json={"tier": "platinum"}).status_code == 400
        assert client.patch(f"/api/clients/{amina.id}", json={"credit_balance_cents": 0}).status_code == 400
        assert client.post(f"/api/clients/{amina.id}/payments", json={"amount_cents": 0}).status_code == 400
        assert client.get("/api/clients/9999").status_code == 404

    def test_search(self, client, amina):
        body = client.get("/api/clients?search=Kaci").get_json()
        assert [c["id"] for c in body["items"]] == [amina.id]


class TestStaffRoutes:
    def test_create_pay_and_balance(self, client, db_session):
        created = client.post("/api/staff", json={
            "first_name": "Rym",
            "salary_type": "monthly",
            "base_salary_cents": 3000000,
            "specialties": ["hair", "makeup"],
        })
        assert created.status_code == 201
        staff_id = created.get_json()["id"]

        assert client.post(f"/api/staff/{staff_id}/payments", json={"type": "salary", "amount_cents": 3000000}).status_code == 201
        assert client.post(f"/api/staff/{staff_id}/payments", json={"type": "advance", "amount_cents": 500000}).status_code == 201

        balance = client.get(f"/api/staff/{staff_id}/balance").get_json()
        assert balance["balance_cents"] == 2500000

    def test_validation(self, client, sarah):
        assert client.post("/api/staff", json={"first_name": "Rym", "salary_type": "hourly"}).status_code == 400
        assert client.patch(f"/api/staff/{sarah.id}", json={"commission_rate": 150}).status_code == 400
        assert client.post(f"/api/staff/{sarah.id}/active", json={"is_active": "no"}).status_code == 400
        assert client.get("/api/staff/9999/balance").status_code == 404

    def test_deactivate(self, client, sarah):
        response = client.post(f"/api/staff/{sarah.id}/active", json={"is_active": False})
        assert response.get_json()["is_active"] is False
        assert client.get("/api/staff?active=true").get_json()["count"] == 0


class TestCatalogRoutes:
    def test_service_validation(self, client, db_session):
        body = {"name_ar": "حمام", "name_fr": "Hammam", "category": "hammam", "price_cents": 2000, "duration": 45}
        assert client.post("/api/services", json=body).status_code == 201
        assert client.post("/api/services", json={**body, "category": "tattoo"}).status_code == 400
        assert client.post("/api/services", json={**body, "duration": 0}).status_code == 400

    def test_stock_only_moves_through_adjust(self, client, shampoo, reload):
        assert client.patch(f"/api/products/{shampoo.id}", json={"stock": 50}).status_code == 400

        adjusted = client.post(f"/api/products/{shampoo.id}/adjust", json={"delta": -3})
        assert adjusted.status_code == 200
        assert adjusted.get_json()["stock"] == 7

        assert client.post(f"/api/products/{shampoo.id}/adjust", json={"delta": -8}).status_code == 400
        assert reload(Product, shampoo.id).stock == 7

    def test_delete_deactivates(self, client, shampoo):
        response = client.delete(f"/api/products/{shampoo.id}")
        assert response.get_json()["is_active"] is False
        assert client.get("/api/products").get_json()["count"] == 0
        assert client.get("/api/products?include_inactive=true").get_json()["count"] == 1

    def test_low_stock_listing(self, client, db_session, shampoo):
        shampoo.stock = 4
        db_session.commit()
        body = client.get("/api/products?low_stock=true").get_json()
        assert [p["id"] for p in body["items"]] == [shampoo.id]


class TestExpenseRoutes:
    def test_create_list_delete(self, client, db_session):
        created = client.post("/api/expenses", json={"category": "rent", "amount_cents": 80000, "date": "2024-06-01"})
        assert created.status_code == 201

        listing = client.get("/api/expenses?start=2024-06-01&end=2024-06-30").get_json()
        assert listing["count"] == 1
        assert listing["total_cents"] == 80000

        expense_id = created.get_json()["id"]
        assert client.delete(f"/api/expenses/{expense_id}").status_code == 200
        assert client.delete(f"/api/expenses/{expense_id}").status_code == 404

    def test_validation(self, client, db_session):
        assert client.post("/api/expenses", json={"category": "party", "amount_cents": 100, "date": "2024-06-01"}).status_code == 400
        assert client.post("/api/expenses", json={"category": "rent", "amount_cents": 0, "date": "2024-06-01"}).status_code == 400
        assert client.post("/api/expenses", json={"category": "rent", "amount_cents": 100}).status_code == 400


class TestReportRoutes:
    def test_reports_respond(self, client, working_hours):
        assert client.get("/api/reports/financial?start=2024-01-01&end=2024-12-31").status_code == 200
        assert client.get("/api/reports/services").status_code == 200
        assert client.get("/api/reports/staff").status_code == 200
        assert client.get("/api/reports/inventory").status_code == 200
        assert client.get("/api/reports/dashboard?date=2024-06-10").get_json()["open_minutes"] == 660

    def test_bad_dates(self, client, working_hours):
        assert client.get("/api/reports/financial?start=2024-12-31&end=2024-01-01").status_code == 400
        assert client.get("/api/reports/dashboard?date=tomorrow").status_code == 400


class TestSettingsRoutes:
    def test_working_hours_round_trip(self, client, working_hours):
        hours = client.get("/api/settings/working-hours").get_json()["working_hours"]
        hours["friday"] = {"open": "14:00", "close": "19:00", "isOpen": True}

        response = client.put("/api/settings/working-hours", json={"working_hours": hours})
        assert response.status_code == 200
        assert client.get("/api/settings/working_hours").get_json()["working_hours"]["friday"]["isOpen"] is True

    def test_invalid_hours(self, client, working_hours):
        response = client.put(
            "/api/settings/working-hours",
            json={"working_hours": {"monday": {"open": "20:00", "close": "08:00", "isOpen": True}}},
        )
        assert response.status_code == 400

    def test_generic_key(self, client, db_session):
        assert client.put("/api/settings/salon_name", json={}).status_code == 400
        assert client.put("/api/settings/salon_name", json={"value": "ZenStyle"}).status_code == 200
        assert client.get("/api/settings/salon_name").get_json() == {"key": "salon_name", "value": "ZenStyle"}


class TestPublicRoutes:
    def test_book_and_times(self, client, working_hours, haircut, sarah):
        times = client.get(f"/api/public/booking/times?date=2024-06-10&staff_id={sarah.id}&service_id={haircut.id}")
        assert times.status_code == 200
        assert "10:00" in times.get_json()["times"]

        booked = client.post("/api/public/booking", json={
            "name": "Lina",
            "phone": "0550111222",
            "service_id": haircut.id,
            "staff_id": sarah.id,
            "date": "2024-06-10",
            "time": "10:00",
        })
        assert booked.status_code == 201
        assert booked.get_json()["client_phone"] == "0550111222"

        times = client.get(f"/api/public/booking/times?date=2024-06-10&staff_id={sarah.id}&service_id={haircut.id}")
        assert "10:00" not in times.get_json()["times"]

    def test_errors(self, client, working_hours, haircut):
        assert client.get("/api/public/booking/times").status_code == 400
        assert client.post("/api/public/booking", json={"phone": "1", "service_id": haircut.id}).status_code == 400
        closed = client.post("/api/public/booking", json={
            "name": "Lina", "phone": "1", "service_id": haircut.id, "date": "2024-06-14", "time": "10:00",
        })
        assert closed.status_code == 400
        assert closed.get_json()["code"] == "CLOSED_DAY"

    def test_catalogue(self, client, working_hours, haircut, sarah):
        services = client.get("/api/public/booking/services").get_json()["items"]
        staff = client.get("/api/public/booking/staff").get_json()["items"]
        assert [s["id"] for s in services] == [haircut.id]
        assert staff == [{"id": sarah.id, "first_name": "Sarah", "last_name": "Benali", "specialties": ["hair"]}]
