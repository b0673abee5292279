# tests/test_occupancy_service.py
"""Unit tests for occupancy, dashboard figures and central tariff upserts."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import timedelta
from unittest.mock import patch

import pytest
from conftest import T0
from porteria.exceptions import NotFoundError
from porteria.models.category import Category
from porteria.services import occupancy_service, record_service


class TestOccupancy:
    def test_counts_follow_active_records(self, db, shift):
        record_service.check_in(db, "AAA111", "liviano", "Rojo", shift.id)
        gone = record_service.check_in(db, "BBB222", "liviano", "Rojo", shift.id)
        record_service.settle_payment(db, gone.id, 100, "efectivo")

        assert occupancy_service.active_counts(db) == {"moto": 0, "liviano": 1, "otros": 0}
        assert occupancy_service.check_capacity(db, "liviano") == {
            "categoria_id": "liviano", "capacidad_max": 30, "ocupados": 1, "disponible": 29,
        }

    def test_unknown_category(self, db):
        with pytest.raises(NotFoundError):
            occupancy_service.check_capacity(db, "camion")

    def test_revenue_counts_exits_of_the_day(self, db, shift):
        with patch("porteria.utils.clock.now", return_value=T0):
            a = record_service.check_in(db, "AAA111", "liviano", "Rojo", shift.id)
            b = record_service.check_in(db, "BBB222", "moto", "Rojo", shift.id)
            record_service.settle_payment(db, a.id, 4000, "efectivo")
        with patch("porteria.utils.clock.now", return_value=T0 + timedelta(days=1)):
            record_service.settle_payment(db, b.id, 9000, "nequi")

        assert occupancy_service.revenue_for_day(db, T0.date()) == 4000
        with patch("porteria.utils.clock.now", return_value=T0 + timedelta(days=1)):
            stats = occupancy_service.dashboard_stats(db)
        assert stats["ingresosHoy"] == 9000
        assert stats["vehiculosActivos"] == 0


class TestApplyTariffs:
    def test_invalid_values_are_skipped(self, db):
        updated = occupancy_service.apply_tariffs(db, {
            "Livianos": {"minuto": "abc", "hora": 1, "capacidad": 1},
            "Otros": {"minuto": 10, "hora": 100, "capacidad": 0},
            "Moto": {"minuto": 70, "hora": 3200, "capacidad": 45},
        })
        assert updated == 1
        assert db.get(Category, "liviano").tarifa_minuto == 100
        assert db.get(Category, "otros").capacidad_max == 10
        assert db.get(Category, "moto").capacidad_max == 45
