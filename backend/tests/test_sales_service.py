from datetime import timedelta
from decimal import Decimal

import pytest

from cyberpos.extensions import db
from cyberpos.models import Product, Sale
from cyberpos.services import sales_service
from cyberpos.services.sales_service import SaleError
from cyberpos.validation import ValidationError

from conftest import T0


def _line(product_ref, name, quantity, price, cost=None):
    item = {"product_ref": product_ref, "product_name": name, "quantity": quantity, "price_at_sale": price}
    if cost is not None:
        item["cost_at_sale"] = cost
    return item


class TestRecordSale:
    def test_total_is_sum_of_lines(self, db_session, soda, chips):
        sale = sales_service.record_sale(
            [_line("p1", "Coca Cola 600ml", 2, 25), _line("p5", "Sabritas", 3, "18.50")],
            "POS",
            "CASH",
            now=T0,
        )
        assert sale.total == Decimal("105.50")
        assert sum(i.price_at_sale * i.quantity for i in sale.items) == sale.total

    def test_pos_sale_decrements_stock(self, db_session, soda):
        sales_service.record_sale([_line("p1", "Coca Cola 600ml", 3, 25)], "POS", "CASH")
        assert db.session.get(Product, "p1").stock == 7

    def test_non_pos_sale_leaves_stock(self, db_session, soda):
        sales_service.record_sale([_line("p1", "Coca Cola 600ml", 3, 25)], "SERVICE", "CASH")
        assert db.session.get(Product, "p1").stock == 10

    def test_cost_snapshot_defaults_to_current_product_cost(self, db_session, soda):
        sale = sales_service.record_sale([_line("p1", "Coca Cola 600ml", 1, 25)], "POS", "CASH")
        assert sale.items[0].cost_at_sale == Decimal("18")

        soda.cost = Decimal("21")
        db.session.commit()
        assert db.session.get(Sale, sale.id).items[0].cost_at_sale == Decimal("18")

    def test_synthetic_lines_have_zero_cost(self, db_session):
        sale = sales_service.record_sale([_line("TAX_IVA", "IVA (16%)", 1, "4.00")], "POS", "CASH")
        assert sale.items[0].cost_at_sale == Decimal("0")

    def test_three_decimal_lines_are_kept(self, db_session):
        sale = sales_service.record_sale(
            [_line("RENTAL", "Renta", 1, 100, 0), _line("COMMISSION_CLIP", "Comisión CLIP", 1, "4.176", 0)],
            "RENTAL",
            "CLIP",
        )
        assert sale.total == Decimal("104.176")

    def test_rejects_empty_sale(self, db_session):
        with pytest.raises(SaleError):
            sales_service.record_sale([], "POS", "CASH")

    def test_empty_rental_sale_is_allowed(self, db_session):
        sale = sales_service.record_sale([], "RENTAL", "CASH")
        assert sale.items == []
        assert sale.total == Decimal("0")

    def test_rejects_unknown_payment_method(self, db_session):
        with pytest.raises(SaleError):
            sales_service.record_sale([_line("p1", "x", 1, 1)], "POS", "CRYPTO")

    def test_rejects_unknown_customer(self, db_session):
        with pytest.raises(SaleError):
            sales_service.record_sale([_line("p1", "x", 1, 1)], "POS", "CASH", "ghost")

    def test_rejects_bad_quantity(self, db_session):
        with pytest.raises(ValidationError):
            sales_service.record_sale([_line("p1", "x", 0, 1)], "POS", "CASH")


class TestManualEntry:
    def test_manual_entry_is_cash(self, db_session):
        sale = sales_service.record_manual_entry("recargas", "150")
        assert sale.sale_type == "MANUAL_ENTRY"
        assert sale.payment_method == "CASH"
        assert sale.customer_id == "public"
        assert sale.items[0].product_ref == "MANUAL_ENTRY"
        assert sale.items[0].product_name == "Entrada Manual: Recargas Electrónicas"
        assert sale.total == Decimal("150")

    def test_unknown_category(self, db_session):
        with pytest.raises(SaleError):
            sales_service.record_manual_entry("LOTERIA", 10)

    def test_zero_amount_rejected(self, db_session):
        with pytest.raises(ValidationError):
            sales_service.record_manual_entry("CIBER", 0)


class TestLedger:
    def test_list_filters(self, db_session):
        sales_service.record_manual_entry("CIBER", 10, now=T0)
        sales_service.record_manual_entry("SERVICIOS", 20, now=T0 + timedelta(hours=1))
        sales_service.record_sale([_line("CUSTOM", "Copias", 1, 5)], "POS", "CARD", now=T0 + timedelta(hours=2))

        assert len(sales_service.list_sales()) == 3
        assert [s.total for s in sales_service.list_sales(sale_type="MANUAL_ENTRY")] == [Decimal("20"), Decimal("10")]
        assert len(sales_service.list_sales(payment_method="CARD")) == 1
        assert len(sales_service.list_sales(start=T0 + timedelta(minutes=30))) == 2

    def test_admin_update_changes_only_payment_and_customer(self, db_session, juan):
        sale = sales_service.record_manual_entry("CIBER", 10)
        updated = sales_service.update_sale(sale.id, {"payment_method": "TRANSFER", "customer_id": "c1", "total": 999})
        assert updated.payment_method == "TRANSFER"
        assert updated.customer_id == "c1"
        assert updated.total == Decimal("10")

    def test_admin_delete(self, db_session):
        sale = sales_service.record_manual_entry("CIBER", 10)
        sales_service.delete_sale(sale.id)
        with pytest.raises(SaleError):
            sales_service.get_sale(sale.id)
