import unittest
from datetime import timedelta
from decimal import Decimal

import pytest

from cyberpos.models import Tariff, TariffRange
from cyberpos.services import pricing_service, station_service, tariff_service
from cyberpos.services.pricing_service import (
    calculate_cost,
    calculate_fixed_price,
    find_hourly_rule,
    minutes_from_elapsed,
)

from conftest import T0


def make_tariff(*ranges) -> Tariff:
    """Transient tariff; nothing is persisted."""
    return Tariff(
        name="test",
        device_type="PC",
        ranges=[TariffRange(min_minutes=lo, max_minutes=hi, price=Decimal(str(price))) for lo, hi, price in ranges],
    )


STANDARD = ((1, 15, 5), (16, 30, 10), (31, 60, 20))


class CalculatorTests(unittest.TestCase):
    def test_single_hourly_range_multiplies(self):
        tariff = make_tariff((0, 60, 30))
        self.assertEqual(calculate_cost(60, tariff), Decimal("30"))
        self.assertEqual(calculate_cost(120, tariff), Decimal("60"))

    def test_seventy_five_minutes_is_hour_plus_first_tier(self):
        self.assertEqual(calculate_cost(75, make_tariff(*STANDARD)), Decimal("25"))

    def test_fixed_price_for_two_hours(self):
        self.assertEqual(calculate_fixed_price(120, make_tariff(*STANDARD)), Decimal("40"))

    def test_first_partial_hour_uses_lookup(self):
        tariff = make_tariff(*STANDARD)
        self.assertEqual(calculate_cost(1, tariff), Decimal("5"))
        self.assertEqual(calculate_cost(15, tariff), Decimal("5"))
        self.assertEqual(calculate_cost(16, tariff), Decimal("10"))
        self.assertEqual(calculate_cost(45, tariff), Decimal("20"))

    def test_zero_minutes_costs_nothing(self):
        self.assertEqual(calculate_cost(0, make_tariff(*STANDARD)), Decimal("0"))

    def test_empty_tariff_is_free(self):
        self.assertEqual(calculate_cost(90, make_tariff()), Decimal("0"))
        self.assertEqual(calculate_cost(90, None), Decimal("0"))

    def test_gap_falls_back_to_first_covering_range(self):
        tariff = make_tariff((1, 10, 5), (20, 60, 20))
        # 15 is in no range; 20-60 is the first one reaching it
        self.assertEqual(calculate_cost(15, tariff), Decimal("20"))

    def test_uncovered_remainder_is_prorated_from_last_range(self):
        tariff = make_tariff((1, 15, 5), (16, 30, 10))
        # No max == 60 range, so the last range ($10) is the hourly rule
        self.assertEqual(calculate_cost(45, tariff), Decimal("7.5"))
        self.assertEqual(calculate_cost(105, tariff), Decimal("17.5"))

    def test_hourly_rule_lookup(self):
        self.assertEqual(find_hourly_rule(make_tariff(*STANDARD)).price, Decimal("20"))
        self.assertEqual(find_hourly_rule(make_tariff((1, 30, 15), (31, 90, 25))).price, Decimal("25"))
        self.assertIsNone(find_hourly_rule(make_tariff()))

    def test_cost_never_negative(self):
        tariffs = [
            make_tariff(*STANDARD),
            make_tariff((1, 10, 5), (20, 60, 20)),
            make_tariff((1, 15, 5), (16, 30, 10)),
            make_tariff((0, 60, 0)),
            make_tariff(),
        ]
        for tariff in tariffs:
            for minutes in range(0, 400, 7):
                cost = calculate_cost(minutes, tariff)
                self.assertFalse(cost.is_nan())
                self.assertGreaterEqual(cost, 0)


class BilledMinutesTests(unittest.TestCase):
    def test_partial_minutes_round_up(self):
        self.assertEqual(minutes_from_elapsed(1), 1)
        self.assertEqual(minutes_from_elapsed(60_000), 1)
        self.assertEqual(minutes_from_elapsed(60_001), 2)

    def test_zero_and_negative(self):
        self.assertEqual(minutes_from_elapsed(0), 0)
        self.assertEqual(minutes_from_elapsed(-5_000), 0)

    def test_timedelta_input(self):
        self.assertEqual(minutes_from_elapsed(timedelta(minutes=75)), 75)
        self.assertEqual(minutes_from_elapsed(timedelta(minutes=74, seconds=1)), 75)


class TestTariffResolution:
    def test_station_override_wins(self, db_session, pc_tariff):
        special = tariff_service.create_tariff("Torneo", "PC", [{"min_minutes": 1, "max_minutes": 60, "price": 50}])
        station = station_service.create_station("PC-09", "PC", tariff_id=special.id)

        resolution = pricing_service.resolve_tariff(station)
        assert resolution.source == "STATION"
        assert resolution.tariff.id == special.id

    def test_device_type_then_first_available(self, db_session, pc_tariff, pc_station, xbox_station):
        assert pricing_service.resolve_tariff(pc_station).source == "DEVICE_TYPE"

        resolution = pricing_service.resolve_tariff(xbox_station)
        assert resolution.source == "FIRST_AVAILABLE"
        assert resolution.tariff.id == pc_tariff.id

    def test_no_tariff_is_first_class_outcome(self, db_session, xbox_station):
        resolution = pricing_service.resolve_tariff(xbox_station)
        assert resolution.source == "NONE"
        assert not resolution.found

    def test_first_device_tariff_follows_creation_order(self, db_session, pc_tariff):
        tariff_service.create_tariff("PC Nocturno", "PC", [{"min_minutes": 1, "max_minutes": 60, "price": 12}])
        station = station_service.create_station("PC-02", "PC")
        assert pricing_service.resolve_tariff(station).tariff.id == pc_tariff.id


class TestEstimate:
    def test_idle_station(self, db_session, pc_station):
        estimate = pricing_service.estimate_station(pc_station, T0)
        assert estimate["rental_cost"] == "0.00"
        assert estimate["remaining_ms"] is None
        assert estimate["tariff_warning"] is False

    def test_open_session_estimate(self, db_session, pc_station, soda):
        station_service.start_session("pc1", "OPEN", now=T0)
        station_service.add_catalog_item("pc1", "p1", 2, now=T0)

        estimate = pricing_service.estimate_station(pc_station, T0 + timedelta(minutes=74, seconds=30))
        assert estimate["billed_minutes"] == 75
        assert estimate["rental_cost"] == "25.00"
        assert estimate["products_total"] == "50.00"
        assert estimate["total"] == "75.00"

    def test_fixed_countdown_floors_at_zero(self, db_session, pc_station):
        station_service.start_session("pc1", "FIXED", prepaid_minutes=30, now=T0)

        estimate = pricing_service.estimate_station(pc_station, T0 + timedelta(minutes=10))
        assert estimate["remaining_ms"] == 20 * 60_000

        estimate = pricing_service.estimate_station(pc_station, T0 + timedelta(minutes=45))
        assert estimate["remaining_ms"] == 0
        assert estimate["rental_cost"] == "10.00"

    def test_missing_tariff_warns(self, db_session, xbox_station):
        station_service.start_session("xb1", "OPEN", now=T0)
        estimate = pricing_service.estimate_station(xbox_station, T0 + timedelta(minutes=40))
        assert estimate["tariff_warning"] is True
        assert estimate["rental_cost"] == "0.00"


@pytest.mark.parametrize("minutes,expected", [(30, "10"), (60, "20"), (120, "40"), (180, "60"), (300, "100")])
def test_fixed_menu_prices(minutes, expected):
    assert minutes in pricing_service.FIXED_MENU_MINUTES
    assert calculate_fixed_price(minutes, make_tariff(*STANDARD)) == Decimal(expected)
