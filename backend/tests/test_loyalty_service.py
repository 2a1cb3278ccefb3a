import pytest

from cyberpos.extensions import db
from cyberpos.models import Customer, LoyaltyTransaction
from cyberpos.services import customer_service, loyalty_service
from cyberpos.services.loyalty_service import LoyaltyError


class TestLoyalty:
    def test_accrue_one_point_per_hour(self, db_session, juan):
        assert loyalty_service.accrue("c1", 3) == 3
        assert db.session.get(Customer, "c1").points == 28

        txn = db.session.query(LoyaltyTransaction).filter_by(customer_id="c1").one()
        assert txn.transaction_type == "EARN"
        assert txn.points == 3

    def test_walk_in_never_earns(self, db_session):
        assert loyalty_service.accrue("public", 5) == 0
        assert db.session.get(Customer, "public").points == 0
        assert db.session.query(LoyaltyTransaction).count() == 0

    def test_zero_hours_writes_nothing(self, db_session, juan):
        assert loyalty_service.accrue("c1", 0) == 0
        assert db.session.query(LoyaltyTransaction).count() == 0

    def test_redeem_ten_points_per_hour(self, db_session, juan):
        assert loyalty_service.redeem("c1", 2) == -20
        assert db.session.get(Customer, "c1").points == 5

    def test_balance_has_no_floor(self, db_session, juan):
        loyalty_service.redeem("c1", 5)
        assert db.session.get(Customer, "c1").points == -25

    def test_max_free_hours(self, db_session, juan):
        assert loyalty_service.max_free_hours(juan) == 2
        assert loyalty_service.max_free_hours(customer_service.get_customer("public")) == 0

        loyalty_service.adjust("c1", -20, "corrección")
        assert loyalty_service.max_free_hours(db.session.get(Customer, "c1")) == 0

    def test_adjust_requires_reason(self, db_session, juan):
        with pytest.raises(LoyaltyError):
            loyalty_service.adjust("c1", 10, "")

    def test_unknown_customer(self, db_session):
        with pytest.raises(LoyaltyError):
            loyalty_service.accrue("ghost", 2)

    def test_ledger_sums_to_balance_change(self, db_session, juan):
        loyalty_service.accrue("c1", 4)
        loyalty_service.redeem("c1", 1)
        loyalty_service.adjust("c1", 7, "promo")

        txns = loyalty_service.list_transactions("c1")
        assert len(txns) == 3
        assert sum(t.points for t in txns) == db.session.get(Customer, "c1").points - 25
