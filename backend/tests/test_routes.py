"""
API tests through the Flask test client.

Amounts that depend on wall-clock elapsed time are avoided; FIXED sessions
give deterministic totals.
"""

from decimal import Decimal

from cyberpos.extensions import db
from cyberpos.models import Product, Station


class TestSystemRoutes:
    def test_health(self, client, db_session):
        response = client.get('/health')
        assert response.status_code == 200
        assert response.json["status"] == "healthy"

    def test_cors_for_dev_ui(self, client, db_session):
        response = client.get('/health', headers={'Origin': 'http://localhost:5173'})
        assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

        response = client.get('/health', headers={'Origin': 'http://evil.example'})
        assert "Access-Control-Allow-Origin" not in response.headers


class TestStationRoutes:
    def test_create_and_list(self, client, db_session, pc_tariff):
        response = client.post('/api/stations', json={"name": "PC-05", "device_type": "pc", "id": "pc5"})
        assert response.status_code == 201
        assert response.json["station"]["device_type"] == "PC"

        response = client.get('/api/stations')
        assert [s["id"] for s in response.json["stations"]] == ["pc5"]

    def test_duplicate_id_conflicts(self, client, db_session, pc_station):
        response = client.post('/api/stations', json={"name": "Otra", "device_type": "PC", "id": "pc1"})
        assert response.status_code == 409

    def test_unknown_station_is_404(self, client, db_session):
        assert client.get('/api/stations/nope').status_code == 404
        assert client.get('/api/stations/nope/estimate').status_code == 404
        assert client.post('/api/stations/nope/sessions', json={"session_type": "OPEN"}).status_code == 404

    def test_fixed_session_checkout_flow(self, client, db_session, pc_station, soda):
        response = client.post('/api/stations/pc1/sessions', json={"session_type": "FIXED", "prepaid_minutes": 60})
        assert response.status_code == 201
        assert Decimal(response.json["session"]["total_amount"]) == Decimal("20")

        response = client.post('/api/stations/pc1/items', json={"product_id": "p1", "quantity": 2})
        assert response.status_code == 201

        response = client.post('/api/stations/pc1/items', json={"name": "Impresión", "price": "3"})
        assert response.status_code == 201
        assert response.json["item"]["kind"] == "CUSTOM"

        estimate = client.get('/api/stations/pc1/estimate').json
        assert estimate["total"] == "73.00"

        response = client.post('/api/stations/pc1/checkout', json={
            "payment_method": "CASH", "amount_received": "100",
        })
        assert response.status_code == 200
        checkout = response.json["checkout"]
        assert checkout["rental_cost"] == "20.00"
        assert checkout["products_total"] == "53.00"
        assert checkout["total"] == "73.00"
        assert Decimal(checkout["sale"]["total"]) == Decimal("73")
        assert response.json["quote"]["change"] == "27.00"

        assert db.session.get(Station, "pc1").status == "AVAILABLE"
        assert db.session.get(Product, "p1").stock == 8

    def test_insufficient_cash_keeps_session_open(self, client, db_session, pc_station):
        client.post('/api/stations/pc1/sessions', json={"session_type": "FIXED", "prepaid_minutes": 60})

        response = client.post('/api/stations/pc1/checkout', json={
            "payment_method": "CASH", "amount_received": "10",
        })
        assert response.status_code == 400
        assert response.json["error"] == "Insufficient payment"
        assert db.session.get(Station, "pc1").status == "OCCUPIED"

    def test_clip_checkout_adds_commission_line(self, client, db_session, pc_station):
        client.post('/api/stations/pc1/sessions', json={"session_type": "FIXED", "prepaid_minutes": 120})

        response = client.post('/api/stations/pc1/checkout', json={
            "payment_method": "CLIP", "clip_term": "CONTADO", "commission_payer": "CLIENT",
        })
        assert response.status_code == 200
        sale = response.json["checkout"]["sale"]
        refs = [i["product_ref"] for i in sale["items"]]
        assert refs == ["RENTAL", "COMMISSION_CLIP"]
        # 40 * 4.176% = 1.6704 -> 1.670
        assert Decimal(sale["items"][1]["price_at_sale"]) == Decimal("1.670")
        assert Decimal(sale["total"]) == Decimal("41.670")

    def test_start_on_maintenance_is_conflict(self, client, db_session, pc_station):
        response = client.post('/api/stations/pc1/maintenance', json={"enabled": True})
        assert response.json["station"]["status"] == "MAINTENANCE"

        response = client.post('/api/stations/pc1/sessions', json={"session_type": "OPEN"})
        assert response.status_code == 409

    def test_checkout_without_session_is_conflict(self, client, db_session, pc_station):
        response = client.post('/api/stations/pc1/checkout', json={"payment_method": "CASH"})
        assert response.status_code == 409

    def test_free_session_without_points(self, client, db_session, pc_station, juan):
        response = client.post('/api/stations/pc1/sessions', json={
            "session_type": "FREE", "customer_id": "c1", "free_hours": 3,
        })
        assert response.status_code == 409
        assert response.json["details"]["available_hours"] == 2

    def test_bad_fixed_minutes_is_400(self, client, db_session, pc_station):
        response = client.post('/api/stations/pc1/sessions', json={"session_type": "FIXED", "prepaid_minutes": 47})
        assert response.status_code == 400


class TestSalesRoutes:
    def test_pos_sale_with_vat(self, client, db_session, soda):
        response = client.post('/api/sales', json={
            "items": [{"product_id": "p1", "product_name": "Coca Cola 600ml", "quantity": 2, "price_at_sale": 25}],
            "payment_method": "CARD",
            "add_vat": True,
        })
        assert response.status_code == 201
        sale = response.json["sale"]
        assert sale["sale_type"] == "POS"
        assert [i["product_ref"] for i in sale["items"]] == ["p1", "TAX_IVA"]
        assert Decimal(sale["total"]) == Decimal("58")
        assert db.session.get(Product, "p1").stock == 8

    def test_pos_sale_insufficient_cash(self, client, db_session, soda):
        response = client.post('/api/sales', json={
            "items": [{"product_id": "p1", "product_name": "Coca Cola 600ml", "quantity": 1, "price_at_sale": 25}],
            "payment_method": "CASH",
            "amount_received": 20,
        })
        assert response.status_code == 400
        assert db.session.get(Product, "p1").stock == 10

    def test_pos_sale_requires_items(self, client, db_session):
        assert client.post('/api/sales', json={"items": []}).status_code == 400

    def test_manual_entry_and_ledger(self, client, db_session):
        response = client.post('/api/sales/manual', json={"category": "CIBER", "amount": 45})
        assert response.status_code == 201
        sale_id = response.json["sale"]["id"]

        response = client.get('/api/sales?sale_type=MANUAL_ENTRY')
        assert [s["id"] for s in response.json["sales"]] == [sale_id]

        response = client.patch(f'/api/sales/{sale_id}', json={"payment_method": "TRANSFER"})
        assert response.json["sale"]["payment_method"] == "TRANSFER"

        assert client.delete(f'/api/sales/{sale_id}').status_code == 200
        assert client.get(f'/api/sales/{sale_id}').status_code == 404

    def test_quote(self, client, db_session):
        response = client.post('/api/sales/quote', json={
            "subtotal": "100", "payment_method": "CLIP", "clip_term": "MSI_3", "commission_payer": "SELLER",
        })
        assert response.status_code == 200
        quote = response.json["quote"]
        assert quote["commission_amount"] == "6.264"
        assert quote["final_total"] == "100.00"
        assert quote["extra_items"] == []


class TestCatalogRoutes:
    def test_tariff_crud_and_quote(self, client, db_session):
        response = client.post('/api/tariffs', json={
            "name": "Xbox", "device_type": "XBOX",
            "ranges": [{"min_minutes": 1, "max_minutes": 30, "price": 20}, {"min_minutes": 31, "max_minutes": 60, "price": 35}],
        })
        assert response.status_code == 201
        tariff_id = response.json["tariff"]["id"]

        response = client.get(f'/api/tariffs/{tariff_id}/quote?minutes=90')
        assert response.json["cost"] == "55.00"

        response = client.put(f'/api/tariffs/{tariff_id}', json={
            "ranges": [{"min_minutes": 1, "max_minutes": 60, "price": 40}],
        })
        assert len(response.json["tariff"]["ranges"]) == 1

        assert client.delete(f'/api/tariffs/{tariff_id}').status_code == 200
        assert client.get(f'/api/tariffs/{tariff_id}').status_code == 404

    def test_tariff_rejects_inverted_range(self, client, db_session):
        response = client.post('/api/tariffs', json={
            "name": "Mal", "device_type": "PC", "ranges": [{"min_minutes": 30, "max_minutes": 10, "price": 5}],
        })
        assert response.status_code == 400

    def test_customer_points(self, client, db_session, juan):
        response = client.get('/api/customers/c1')
        assert response.json["max_free_hours"] == 2

        response = client.post('/api/customers/c1/points', json={"points": -30, "reason": "ajuste"})
        assert response.json["customer"]["points"] == -5

        response = client.get('/api/customers/c1/points')
        assert response.json["transactions"][0]["points"] == -30

    def test_product_stock_adjust(self, client, db_session, soda):
        response = client.post('/api/products/p1/stock', json={"delta": -12})
        assert response.json["product"]["stock"] == -2


class TestRegisterRoutes:
    def test_open_close_cycle(self, client, db_session):
        assert client.post('/api/registers/open', json={"initial_cash": 300}).status_code == 201
        assert client.post('/api/registers/open', json={"initial_cash": 300}).status_code == 409

        client.post('/api/sales/manual', json={"category": "SERVICIOS", "amount": 50})
        client.post('/api/registers/expenses', json={"description": "Papel", "amount": 20})

        summary = client.get('/api/registers/current').json
        assert summary["expected_cash"] == "330.00"

        response = client.post('/api/registers/close', json={"declared_cash": 330})
        assert response.status_code == 200
        assert Decimal(response.json["cash_cut"]["difference"]) == Decimal("0")


class TestCatalogValidation:
    def test_customer_update_rejects_empty_name(self, client, db_session, juan):
        response = client.put('/api/customers/c1', json={"name": None})
        assert response.status_code == 400

        response = client.put('/api/customers/c1', json={"name": "   "})
        assert response.status_code == 400

        response = client.put('/api/customers/c1', json={"name": " Juan P. ", "phone": "5500000000"})
        assert response.status_code == 200
        assert response.json["customer"]["name"] == "Juan P."

    def test_customer_update_unknown(self, client, db_session):
        assert client.put('/api/customers/ghost', json={"name": "x"}).status_code == 404

    def test_points_for_unknown_customer(self, client, db_session):
        response = client.post('/api/customers/ghost/points', json={"points": 5, "reason": "promo"})
        assert response.status_code == 404

    def test_points_need_reason(self, client, db_session, juan):
        response = client.post('/api/customers/c1/points', json={"points": 5})
        assert response.status_code == 400

    def test_product_update_rejects_bad_stock(self, client, db_session, soda):
        response = client.put('/api/products/p1', json={"stock": "abc"})
        assert response.status_code == 400
        assert db.session.get(Product, "p1").stock == 10

    def test_product_update_rejects_empty_name(self, client, db_session, soda):
        assert client.put('/api/products/p1', json={"name": ""}).status_code == 400
        assert client.put('/api/products/p1', json={"track_stock": "yes"}).status_code == 400

    def test_product_create_rejects_bad_stock(self, client, db_session):
        response = client.post('/api/products', json={"name": "Hielo", "price": 20, "stock": "1.5"})
        assert response.status_code == 400

    def test_product_update(self, client, db_session, soda):
        response = client.put('/api/products/p1', json={"stock": "12", "category": None, "track_stock": False})
        assert response.status_code == 200
        product = response.json["product"]
        assert product["stock"] == 12
        assert product["category"] == "General"
        assert product["track_stock"] is False
