from datetime import timedelta
from decimal import Decimal

import pytest

from cyberpos.services import register_service, sales_service
from cyberpos.services.register_service import RegisterError
from cyberpos.validation import ValidationError

from conftest import T0


def _sale(method: str, amount, when):
    return sales_service.record_sale(
        [{"product_ref": "CUSTOM", "product_name": "Venta", "quantity": 1, "price_at_sale": amount, "cost_at_sale": 0}],
        "POS",
        method,
        now=when,
    )


class TestCashCut:
    def test_only_one_open_cut(self, db_session):
        register_service.open_register("500", now=T0)
        with pytest.raises(RegisterError):
            register_service.open_register("100", now=T0)

    def test_close_without_open_cut(self, db_session):
        with pytest.raises(RegisterError):
            register_service.close_register("0")

    def test_close_reconciles_drawer(self, db_session):
        register_service.open_register("500", now=T0)

        _sale("CASH", 100, T0 + timedelta(hours=1))
        _sale("CARD", 80, T0 + timedelta(hours=2))
        _sale("CLIP", 20, T0 + timedelta(hours=2))
        _sale("TRANSFER", 40, T0 + timedelta(hours=3))
        register_service.add_expense({"description": "Garrafón", "amount": 50}, now=T0 + timedelta(hours=4))
        register_service.add_expense(
            {"description": "Retiro socio", "amount": 300, "source": "PROFIT"}, now=T0 + timedelta(hours=4)
        )

        cut = register_service.close_register("540", "faltan 10", now=T0 + timedelta(hours=8))

        assert cut.status == "CLOSED"
        assert cut.total_sales_cash == Decimal("100")
        assert cut.total_sales_card == Decimal("100")
        assert cut.total_sales_transfer == Decimal("40")
        assert cut.total_expenses == Decimal("50")
        assert cut.final_cash_system == Decimal("550")
        assert cut.difference == Decimal("-10")
        assert register_service.get_open_cut() is None

    def test_sales_outside_window_are_ignored(self, db_session):
        _sale("CASH", 70, T0 - timedelta(hours=1))
        register_service.open_register("0", now=T0)
        cut = register_service.close_register("0", now=T0 + timedelta(hours=1))
        assert cut.total_sales_cash == Decimal("0")
        assert cut.difference == Decimal("0")

    def test_include_orphaned_sales(self, db_session):
        _sale("CASH", 70, T0 - timedelta(hours=2))
        _sale("CASH", 30, T0 - timedelta(hours=1))
        _sale("CASH", 999, T0 - timedelta(days=1))
        register_service.open_register("100", now=T0)

        now = T0 + timedelta(hours=1)
        assert len(register_service.orphaned_sales(now=now)) == 2

        cut = register_service.include_orphaned_sales(now=now)
        assert cut.started_at == T0 - timedelta(hours=2)
        assert register_service.orphaned_sales(now=now) == []

        summary = register_service.register_summary(now=now)
        assert summary["cash_sales"] == "100.00"
        assert summary["expected_cash"] == "200.00"

    def test_summary_reports_profit(self, db_session, soda):
        register_service.open_register("200", now=T0)
        sales_service.record_sale(
            [{"product_ref": "p1", "product_name": "Coca Cola 600ml", "quantity": 2, "price_at_sale": 25}],
            "POS",
            "CASH",
            now=T0 + timedelta(minutes=5),
        )
        register_service.add_expense({"description": "Hielo", "amount": "12.50"}, now=T0 + timedelta(minutes=10))

        summary = register_service.register_summary(now=T0 + timedelta(hours=1))
        assert summary["total_revenue"] == "50.00"
        assert summary["total_cogs"] == "36.00"
        assert summary["total_expenses"] == "12.50"
        assert summary["net_profit"] == "1.50"
        assert summary["expected_cash"] == "237.50"

    def test_summary_without_open_cut(self, db_session):
        assert register_service.register_summary() == {"cash_cut": None}


class TestExpenses:
    def test_profit_expenses_skip_drawer_by_default(self, db_session):
        expense = register_service.add_expense({"description": "Retiro", "amount": 100, "source": "PROFIT"})
        assert expense.affects_cash_box is False

    def test_update_and_delete(self, db_session):
        expense = register_service.add_expense({"description": "Luz", "amount": 500})
        updated = register_service.update_expense(expense.id, {"amount": "450", "category": "Servicios"})
        assert updated.amount == Decimal("450")
        assert updated.category == "Servicios"

        register_service.delete_expense(expense.id)
        assert register_service.list_expenses() == []

    def test_invalid_source(self, db_session):
        with pytest.raises(ValidationError):
            register_service.add_expense({"description": "x", "amount": 1, "source": "WALLET"})
