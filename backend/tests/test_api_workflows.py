"""
End-to-end API tests for the shop workflows.

Each test drives the HTTP routes the way the front end does and checks the
resulting rows.
"""

import io
import os

import pytest

from furnishop.extensions import db
from furnishop.models import BranchExpense, CashSale, CustomerImage, HirePurchaseContract, InstallmentPayment, Product
from furnishop.routes import customers as customer_routes
from furnishop.services import storage_service
from furnishop.services.inventory_service import get_quantity_on_hand

from conftest import add_stock, login, make_product


PRODUCT_PAYLOAD = {
    "code": "SOFA-3S",
    "name": "Three-seat sofa",
    "category": "sofa",
    "price_cents": 1599000,
    "min_stock_level": 2,
}


class TestSystem:

    def test_health(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"]["status"] == "healthy"

    def test_missing_media_is_404(self, client, db_session):
        assert client.get("/media/products/1/nothing.png").status_code == 404
        assert client.get("/media/secrets/x.png").status_code == 404


class TestProductsApi:

    def test_create_product_starts_with_zero_stock(self, client, warehouse_a, branch_a):
        resp = client.post("/api/products", headers=login(client, warehouse_a), json=PRODUCT_PAYLOAD)
        assert resp.status_code == 201
        data = resp.get_json()
        assert data["stock_quantity"] == 0
        assert data["branch_id"] == branch_a.id
        assert data["is_low_stock"] is True

    def test_duplicate_code_conflict(self, client, warehouse_a):
        headers = login(client, warehouse_a)
        assert client.post("/api/products", headers=headers, json=PRODUCT_PAYLOAD).status_code == 201
        assert client.post("/api/products", headers=headers, json=PRODUCT_PAYLOAD).status_code == 409

    @pytest.mark.parametrize(
        "override",
        [
            {"price_cents": -1},
            {"price_cents": "12.50"},
            {"code": ""},
            {"stock_quantity": 5},
        ],
    )
    def test_invalid_payload(self, client, warehouse_a, override):
        resp = client.post(
            "/api/products", headers=login(client, warehouse_a), json={**PRODUCT_PAYLOAD, **override}
        )
        assert resp.status_code == 400

    def test_receive_then_read_stock(self, client, warehouse_a, branch_a):
        headers = login(client, warehouse_a)
        product_id = client.post("/api/products", headers=headers, json=PRODUCT_PAYLOAD).get_json()["id"]

        resp = client.post("/api/inventory/receive", headers=headers, json={
            "product_id": product_id, "quantity": 4, "unit_cost_cents": 900000,
        })
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["total_cost_cents"] == 3600000
        assert body["expense"]["category"] == "cost_of_goods"
        assert body["product"]["stock_quantity"] == 4

        detail = client.get(f"/api/products/{product_id}", headers=headers).get_json()
        assert detail["stock_quantity"] == 4
        assert detail["stock_by_branch"] == [{"branch_id": branch_a.id, "quantity": 4}]

        stock = client.get(f"/api/inventory/stock/{product_id}", headers=headers).get_json()
        assert stock["total"] == 4

        movements = client.get(f"/api/inventory/movements?product_id={product_id}", headers=headers)
        assert movements.status_code == 200

    def test_receive_goes_to_the_users_branch(self, client, warehouse_b, admin_user, branch_a, branch_b):
        product = make_product(branch_a.id, "CHR-2")

        resp = client.post("/api/inventory/receive", headers=login(client, warehouse_b), json={
            "product_id": product.id, "quantity": 4, "unit_cost_cents": 500,
        })
        assert resp.status_code == 201
        assert resp.get_json()["movement"]["branch_id"] == branch_b.id

        db.session.expire_all()
        assert get_quantity_on_hand(product.id, branch_b.id) == 4
        assert get_quantity_on_hand(product.id, branch_a.id) == 0
        expense = db.session.query(BranchExpense).filter_by(product_id=product.id).one()
        assert expense.branch_id == branch_b.id

        # head-office users without a branch fall back to the product's home branch
        resp = client.post("/api/inventory/receive", headers=login(client, admin_user), json={
            "product_id": product.id, "quantity": 1, "unit_cost_cents": 500,
        })
        assert resp.status_code == 201
        db.session.expire_all()
        assert get_quantity_on_hand(product.id, branch_a.id) == 1

    def test_receive_rejects_zero_quantity(self, client, warehouse_a, branch_a):
        product = make_product(branch_a.id, "CHR-1")
        resp = client.post("/api/inventory/receive", headers=login(client, warehouse_a), json={
            "product_id": product.id, "quantity": 0, "unit_cost_cents": 100,
        })
        assert resp.status_code == 400

    def test_upload_product_image(self, client, warehouse_a, branch_a):
        product = make_product(branch_a.id, "CHR-1")
        headers = login(client, warehouse_a)
        resp = client.post(
            f"/api/products/{product.id}/image",
            headers=headers,
            data={"image": (io.BytesIO(b"\x89PNGfake"), "chair.png")},
            content_type="multipart/form-data",
        )
        assert resp.status_code == 200
        url = resp.get_json()["image_url"]
        assert url.startswith("/media/products/")
        assert client.get(url).status_code == 200

    def test_remove_product(self, client, manager_a, branch_a):
        product = make_product(branch_a.id, "CHR-1", stock=2)
        headers = login(client, manager_a)

        assert client.delete(f"/api/products/{product.id}", headers=headers, json={}).status_code == 400

        resp = client.delete(f"/api/products/{product.id}", headers=headers, json={"reason": "Damaged"})
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["ok"] is True
        assert body["product"]["last_stock_quantity"] == 2

        db.session.expire_all()
        assert db.session.get(Product, product.id) is None
        assert client.delete(f"/api/products/{product.id}", headers=headers, json={"reason": "x"}).status_code == 404


class TestSalesApi:

    def test_commit_sale(self, client, cashier_a, branch_a, customer):
        sofa = make_product(branch_a.id, "SOFA-1", price_cents=250000, stock=3)
        headers = login(client, cashier_a)

        preview = client.post("/api/sales/cart", headers=headers, json={
            "items": [{"product_id": sofa.id, "quantity": 2}],
        })
        assert preview.status_code == 200
        assert preview.get_json()["subtotal_cents"] == 500000

        resp = client.post("/api/sales", headers=headers, json={
            "items": [{"product_id": sofa.id, "quantity": 2}],
            "payment_method": "cash",
            "customer_id": customer.id,
        })
        assert resp.status_code == 201
        receipt = resp.get_json()
        assert receipt["sale_number"] == f"CS-{branch_a.id:03d}-0001"
        assert receipt["total_amount_cents"] == 500000
        assert receipt["customer"]["id"] == customer.id

        db.session.expire_all()
        assert get_quantity_on_hand(sofa.id, branch_a.id) == 1

        listing = client.get("/api/sales", headers=headers).get_json()
        assert listing["count"] == 1
        assert client.get(f"/api/sales/{receipt['id']}", headers=headers).status_code == 200

    def test_insufficient_stock(self, client, cashier_a, branch_a):
        sofa = make_product(branch_a.id, "SOFA-1", stock=1)
        resp = client.post("/api/sales", headers=login(client, cashier_a), json={
            "items": [{"product_id": sofa.id, "quantity": 5}],
        })
        assert resp.status_code == 400
        assert "Insufficient stock" in resp.get_json()["error"]

        db.session.expire_all()
        assert db.session.query(CashSale).count() == 0

    def test_head_office_user_must_name_branch(self, client, admin_user, branch_a):
        sofa = make_product(branch_a.id, "SOFA-1", stock=1)
        headers = login(client, admin_user)
        items = [{"product_id": sofa.id, "quantity": 1}]

        assert client.post("/api/sales", headers=headers, json={"items": items}).status_code == 400
        resp = client.post("/api/sales", headers=headers, json={"items": items, "branch_id": branch_a.id})
        assert resp.status_code == 201

    def test_empty_cart(self, client, cashier_a):
        resp = client.post("/api/sales", headers=login(client, cashier_a), json={"items": []})
        assert resp.status_code == 400


class TestHirePurchaseApi:

    def test_quote_create_and_pay(self, client, sales_a, cashier_a, branch_a, customer):
        bed = make_product(branch_a.id, "BED-1", price_cents=200000, stock=2)
        sales_headers = login(client, sales_a)
        body = {
            "customer_id": customer.id,
            "items": [{"product_id": bed.id, "quantity": 1}],
            "down_payment_cents": 50000,
            "installment_months": 12,
            "interest_rate_bps": 1200,
            "first_payment_date": "2026-02-15",
        }

        quote = client.post("/api/hire-purchase/quote", headers=sales_headers, json=body)
        assert quote.status_code == 200
        assert quote.get_json()["terms"]["monthly_payment_cents"] == 14000
        assert len(quote.get_json()["schedule"]) == 12

        created = client.post("/api/hire-purchase/contracts", headers=sales_headers, json=body)
        assert created.status_code == 201
        contract = created.get_json()
        assert contract["contract_number"] == f"HP-{branch_a.id:03d}-0001"
        assert contract["remaining_amount_cents"] == 168000
        assert len(contract["installments"]) == 12

        first_id = contract["installments"][0]["id"]
        cashier_headers = login(client, cashier_a)
        paid = client.post(
            f"/api/hire-purchase/installments/{first_id}/payments",
            headers=cashier_headers,
            json={"amount_cents": 10000, "payment_method": "transfer"},
        )
        assert paid.status_code == 201
        assert paid.get_json()["installment"]["status"] == "partial"
        assert paid.get_json()["contract"]["remaining_amount_cents"] == 158000

        db.session.expire_all()
        assert db.session.get(InstallmentPayment, first_id).amount_paid_cents == 10000
        assert get_quantity_on_hand(bed.id, branch_a.id) == 1

    def test_defaults_from_config(self, client, sales_a, app):
        data = client.get("/api/hire-purchase/defaults", headers=login(client, sales_a)).get_json()
        assert data["interest_rate_bps"] == app.config["DEFAULT_INTEREST_RATE_BPS"]
        assert data["installment_months"] == app.config["DEFAULT_INSTALLMENT_MONTHS"]
        assert data["supported_terms"] == [6, 12, 18, 24, 36]

    def test_contract_requires_customer(self, client, sales_a, branch_a):
        bed = make_product(branch_a.id, "BED-1", price_cents=200000, stock=2)
        resp = client.post("/api/hire-purchase/contracts", headers=login(client, sales_a), json={
            "items": [{"product_id": bed.id, "quantity": 1}],
            "down_payment_cents": 0,
            "first_payment_date": "2026-02-15",
        })
        assert resp.status_code == 400
        db.session.expire_all()
        assert db.session.query(HirePurchaseContract).count() == 0

    @pytest.mark.parametrize("override", [
        {"down_payment_cents": 500.5},
        {"down_payment_cents": "5e4"},
        {"interest_rate_bps": "twelve"},
        {"installment_months": True},
        {"branch_id": "main"},
        {"first_payment_date": 20260215},
    ])
    def test_contract_inputs_must_be_integers(self, client, sales_a, branch_a, customer, override):
        bed = make_product(branch_a.id, "BED-1", price_cents=200000, stock=2)
        body = {
            "customer_id": customer.id,
            "items": [{"product_id": bed.id, "quantity": 1}],
            "down_payment_cents": 50000,
            "first_payment_date": "2026-02-15",
        }
        body.update(override)
        headers = login(client, sales_a)

        quote = client.post("/api/hire-purchase/quote", headers=headers, json=body)
        assert quote.status_code == 400
        created = client.post("/api/hire-purchase/contracts", headers=headers, json=body)
        assert created.status_code == 400

        db.session.expire_all()
        assert db.session.query(HirePurchaseContract).count() == 0

    def test_numeric_strings_are_stored_as_integers(self, client, sales_a, branch_a, customer):
        bed = make_product(branch_a.id, "BED-1", price_cents=200000, stock=2)
        headers = login(client, sales_a)

        bad_customer = client.post("/api/hire-purchase/contracts", headers=headers, json={
            "customer_id": "abc", "items": [{"product_id": bed.id, "quantity": 1}],
            "down_payment_cents": 50000, "first_payment_date": "2026-02-15",
        })
        assert bad_customer.status_code == 400

        created = client.post("/api/hire-purchase/contracts", headers=headers, json={
            "customer_id": str(customer.id), "items": [{"product_id": bed.id, "quantity": 1}],
            "down_payment_cents": "50000", "interest_rate_bps": "1200", "installment_months": "12",
            "first_payment_date": "2026-02-15",
        })
        assert created.status_code == 201
        assert created.get_json()["down_payment_cents"] == 50000

        db.session.expire_all()
        contract = db.session.query(HirePurchaseContract).one()
        assert contract.down_payment_cents == 50000
        assert contract.monthly_payment_cents == 14000

    def test_quote_requires_down_payment(self, client, sales_a, branch_a):
        bed = make_product(branch_a.id, "BED-1", price_cents=200000, stock=2)
        resp = client.post("/api/hire-purchase/quote", headers=login(client, sales_a), json={
            "items": [{"product_id": bed.id, "quantity": 1}],
        })
        assert resp.status_code == 400
        assert "down_payment_cents is required" in resp.get_json()["error"]

    def test_payment_on_unknown_installment(self, client, cashier_a):
        resp = client.post(
            "/api/hire-purchase/installments/999/payments",
            headers=login(client, cashier_a),
            json={"amount_cents": 100},
        )
        assert resp.status_code == 404


class TestTransfersApi:

    def test_send_and_receive(self, client, warehouse_a, warehouse_b, branch_a, branch_b):
        product = make_product(branch_a.id, "WRD-1", stock=10)
        add_stock(product.id, branch_b.id, 3)

        sent = client.post("/api/transfers", headers=login(client, warehouse_a), json={
            "product_id": product.id, "quantity": 5, "to_branch_id": branch_b.id,
        })
        assert sent.status_code == 201
        transfer_id = sent.get_json()["id"]

        headers_a = login(client, warehouse_a)
        wrong_side = client.post(f"/api/transfers/{transfer_id}/complete", headers=headers_a)
        assert wrong_side.status_code == 400

        headers_b = login(client, warehouse_b)
        incoming = client.get("/api/transfers?direction=incoming&status=pending", headers=headers_b).get_json()
        assert [t["id"] for t in incoming["transfers"]] == [transfer_id]

        done = client.post(f"/api/transfers/{transfer_id}/complete", headers=headers_b)
        assert done.status_code == 200
        assert done.get_json()["status"] == "completed"

        db.session.expire_all()
        assert get_quantity_on_hand(product.id, branch_a.id) == 5
        assert get_quantity_on_hand(product.id, branch_b.id) == 8

    def test_missing_field(self, client, warehouse_a):
        resp = client.post("/api/transfers", headers=login(client, warehouse_a), json={"quantity": 1})
        assert resp.status_code == 400


class TestCustomersApi:

    def test_create_and_upload_images(self, client, sales_a):
        headers = login(client, sales_a)
        created = client.post("/api/customers", headers=headers, json={
            "name": "Malee", "phone": "0861234567", "customer_type": "hire-purchase",
        })
        assert created.status_code == 201
        customer_id = created.get_json()["id"]

        first = client.post(
            f"/api/customers/{customer_id}/images",
            headers=headers,
            data={"image": (io.BytesIO(b"\x89PNGfake"), "id-card.png")},
            content_type="multipart/form-data",
        )
        assert first.status_code == 201
        assert first.get_json()["is_primary"] is True

        second = client.post(
            f"/api/customers/{customer_id}/images",
            headers=headers,
            data={"image": (io.BytesIO(b"\x89PNGfake"), "house.jpg"), "primary": "true"},
            content_type="multipart/form-data",
        )
        assert second.get_json()["is_primary"] is True

        images = client.get(f"/api/customers/{customer_id}/images", headers=headers).get_json()["images"]
        assert [img["is_primary"] for img in images] == [True, False]

        detail = client.get(f"/api/customers/{customer_id}", headers=headers).get_json()
        assert detail["primary_image_url"] == second.get_json()["url"]

    def test_failed_commit_discards_uploaded_file(self, client, sales_a, customer, app, monkeypatch):
        folder = os.path.join(app.config["MEDIA_ROOT"], storage_service.CUSTOMER_BUCKET, str(customer.id))
        before = set(os.listdir(folder)) if os.path.isdir(folder) else set()

        def fail_commit():
            raise RuntimeError("database is locked")

        monkeypatch.setattr(customer_routes, "commit_with_retry", fail_commit)

        resp = client.post(
            f"/api/customers/{customer.id}/images",
            headers=login(client, sales_a),
            data={"image": (io.BytesIO(b"\x89PNGfake"), "id-card.png")},
            content_type="multipart/form-data",
        )
        assert resp.status_code == 500

        db.session.expire_all()
        assert db.session.query(CustomerImage).count() == 0
        after = set(os.listdir(folder)) if os.path.isdir(folder) else set()
        assert after == before

    def test_invalid_customer_type(self, client, sales_a):
        resp = client.post("/api/customers", headers=login(client, sales_a), json={
            "name": "X", "phone": "1", "customer_type": "vip",
        })
        assert resp.status_code == 400


class TestReportingApi:

    def test_reports_and_accounting(self, client, manager_a, cashier_a, branch_a):
        sofa = make_product(branch_a.id, "SOFA-1", price_cents=1000, stock=5, unit_cost_cents=100)
        client.post("/api/sales", headers=login(client, cashier_a), json={
            "items": [{"product_id": sofa.id, "quantity": 2}],
        })
        headers = login(client, manager_a)

        dashboard = client.get("/api/reports/dashboard", headers=headers).get_json()
        assert dashboard["today_sales_cents"] == 2000

        sales = client.get("/api/reports/sales?period=today", headers=headers)
        assert sales.status_code == 200
        assert sales.get_json()["data"][0]["total_amount_cents"] == 2000

        assert client.get("/api/reports/inventory", headers=headers).status_code == 404
        assert client.get("/api/reports/sales?period=decade", headers=headers).status_code == 400

        summary = client.get("/api/accounting/summary?period=today", headers=headers).get_json()
        assert summary["sales_income_cents"] == 2000
        assert summary["total_expense_cents"] == 500
        assert summary["net_profit_cents"] == 1500

    def test_record_expense(self, client, manager_a, branch_a):
        headers = login(client, manager_a)
        resp = client.post("/api/expenses", headers=headers, json={
            "amount_cents": 12000, "description": "Delivery truck fuel", "category": "transport",
        })
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["branch_id"] == branch_a.id

        listing = client.get("/api/expenses", headers=headers).get_json()
        assert listing["count"] == 1
