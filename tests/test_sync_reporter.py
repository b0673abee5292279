# tests/test_sync_reporter.py
"""Master sync reporter: pushes through a mock transport, startup pull with patched requests."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import itertools
from datetime import timedelta
from unittest.mock import MagicMock, patch

import httpx
import pytest
import requests
from conftest import T0, PushRecorder
from porteria.models.category import Category
from porteria.models.user import User
from porteria.models.vehicle_record import VehicleRecord
from porteria.services import auth_service, record_service
from porteria.services.sync_reporter import (CLOSURE_PATH, LIVE_STATUS_PATH, MOVEMENT_PATH,
                                             DeliveryOutbox, MasterSyncReporter, closure_payload,
                                             movement_payload)

CENTRAL = "http://central.test/api/admin"
MASTER = "http://master.test/api/maestra"


def make_reporter(handler, outbox=None):
    return MasterSyncReporter(CENTRAL, MASTER, "Porteria_Norte", outbox=outbox,
                              transport=httpx.MockTransport(handler))


def json_response(payload):
    resp = MagicMock()
    resp.json.return_value = payload
    resp.raise_for_status.return_value = None
    return resp


class TestPayloads:
    def test_entry_movement(self, db, shift):
        with patch("porteria.utils.clock.now", return_value=T0):
            record = record_service.check_in(db, "ABC123", "liviano", "Rojo", shift.id)
        payload = movement_payload(record, "Ana Caja", "Porteria_Norte")
        assert payload["placa"] == "ABC123"
        assert payload["tipo_vehiculo"] == "liviano"
        assert payload["porteria_id"] == "Porteria_Norte"
        assert payload["entrada"] == T0
        assert "salida" not in payload

    def test_exit_movement_carries_duration(self, db, shift):
        with patch("porteria.utils.clock.now", return_value=T0):
            record = record_service.check_in(db, "ABC123", "liviano", "Rojo", shift.id)
        with patch("porteria.utils.clock.now", return_value=T0 + timedelta(minutes=90)):
            record = record_service.settle_payment(db, record.id, 8000, "efectivo")
        payload = movement_payload(record, "Ana Caja", "Porteria_Norte")
        assert payload["total_pagado"] == 8000
        assert payload["metodo_pago"] == "efectivo"
        assert payload["duracion_minutos"] == 90

    def test_closure(self, db, shift):
        summary = {"total_efectivo": 8000, "total_digital": 2000,
                   "vehiculos_ingresados": 3, "vehiculos_salidos": 2}
        payload = closure_payload(shift, summary, "Ana Caja")
        assert payload["porteria_turno_id"] == shift.id
        assert payload["total_efectivo_sistema"] == 8000
        assert payload["total_digital_reportado"] == 2000
        assert payload["base_inicial"] == 50000


class TestPush:
    @pytest.mark.asyncio
    async def test_movement_delivered_marks_record_synced(self, session_factory, db, shift):
        record = record_service.check_in(db, "ABC123", "liviano", "Rojo", shift.id)
        recorder = PushRecorder()
        reporter = make_reporter(recorder)

        delivered = await reporter.push_movement(movement_payload(record, "Ana", "P1"), session_factory)
        await reporter.aclose()

        assert delivered is True
        assert recorder.bodies(MOVEMENT_PATH)[0]["placa"] == "ABC123"
        db.expire_all()
        assert db.get(VehicleRecord, record.id).estado_sincro == 1

    @pytest.mark.asyncio
    async def test_rejected_push_goes_to_outbox(self, session_factory, db, shift):
        record = record_service.check_in(db, "ABC123", "liviano", "Rojo", shift.id)
        outbox = MagicMock()
        reporter = make_reporter(PushRecorder(status_code=500), outbox=outbox)

        delivered = await reporter.push_movement(movement_payload(record, "Ana", "P1"), session_factory)
        await reporter.aclose()

        assert delivered is False
        outbox.record_failure.assert_called_once()
        path, body, error = outbox.record_failure.call_args.args
        assert path == MOVEMENT_PATH
        assert body["placa"] == "ABC123"
        assert "500" in error
        db.expire_all()
        assert db.get(VehicleRecord, record.id).estado_sincro == 0

    @pytest.mark.asyncio
    async def test_unreachable_master_never_raises(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        outbox = MagicMock()
        reporter = make_reporter(refuse, outbox=outbox)
        assert await reporter.report_shift_closure({"porteria_turno_id": 1}) is False
        await reporter.aclose()
        assert outbox.record_failure.call_args.args[0] == CLOSURE_PATH

    @pytest.mark.asyncio
    async def test_live_status_snapshot(self, session_factory, db, shift):
        record_service.check_in(db, "ABC123", "liviano", "Rojo", shift.id)
        record_service.check_in(db, "MOT001", "moto", "Negro", shift.id)
        recorder = PushRecorder()
        reporter = make_reporter(recorder)

        await reporter.push_live_status(session_factory)
        await reporter.aclose()

        body = recorder.bodies(LIVE_STATUS_PATH)[0]
        assert body["porteria_id"] == "Porteria_Norte"
        assert body["ocupacion_total"] == 2
        assert body["detalle_ocupacion"] == {"Motos": 1, "Livianos": 1, "Otros": 0}
        assert "timestamp" in body


class TestPullFromCentral:
    def test_tariffs_and_users_are_applied(self, session_factory, db):
        prehashed = auth_service.hash_password("ya-hasheada")
        tariffs = {"Motos": {"minuto": 60, "hora": 3500, "capacidad": 40},
                   "Carro": {"minuto": 120, "hora": 6000, "capacidad": 25},
                   "Bicicleta": {"minuto": 10, "hora": 100, "capacidad": 5}}
        users = [{"id": 1, "usuario": "caja1", "password": "plano", "rol": "operador", "nombre": "Ana"},
                 {"id": 2, "usuario": "admin", "password": prehashed, "rol": "admin", "nombre": "Jefe"},
                 {"id": 3, "usuario": "incompleto"}]
        reporter = MasterSyncReporter(CENTRAL, MASTER, "P1")

        with patch("porteria.services.sync_reporter.requests.get",
                   side_effect=[json_response(tariffs), json_response(users)]) as mock_get:
            assert reporter.pull_from_central(session_factory) is True

        assert mock_get.call_args_list[0].args[0] == f"{CENTRAL}/tarifas"
        assert 0 < mock_get.call_args_list[0].kwargs["timeout"] <= 3.0
        moto = db.get(Category, "moto")
        assert (moto.tarifa_minuto, moto.tarifa_hora, moto.capacidad_max) == (60, 3500, 40)
        assert db.get(Category, "liviano").tarifa_hora == 6000
        assert db.get(Category, "otros").tarifa_hora == 7000

        caja = db.get(User, "1")
        assert auth_service.is_hashed(caja.password)
        assert auth_service.verify_password("plano", caja.password)
        assert db.get(User, "2").password == prehashed
        assert db.get(User, "3") is None

    def test_central_down_keeps_local_data(self, session_factory, db):
        reporter = MasterSyncReporter(CENTRAL, MASTER, "P1")
        with patch("porteria.services.sync_reporter.requests.get",
                   side_effect=requests.exceptions.ConnectTimeout("timeout")):
            assert reporter.pull_from_central(session_factory) is False
        assert db.get(Category, "liviano").tarifa_hora == 5000

    def test_garbage_response_is_ignored(self, session_factory, db):
        bad = MagicMock()
        bad.raise_for_status.return_value = None
        bad.json.side_effect = ValueError("not json")
        reporter = MasterSyncReporter(CENTRAL, MASTER, "P1")
        with patch("porteria.services.sync_reporter.requests.get", return_value=bad):
            assert reporter.pull_from_central(session_factory) is False
        assert db.get(Category, "moto").tarifa_minuto == 50

    def test_both_requests_share_one_time_budget(self, session_factory, db):
        tariffs = {"Motos": {"minuto": 60, "hora": 3500, "capacidad": 40}}
        reporter = MasterSyncReporter(CENTRAL, MASTER, "P1")
        # Budget starts at 0s, tariffs are fetched at 0s, users would start at 10s
        clock = itertools.chain([0.0, 0.0], itertools.repeat(10.0))

        with patch("porteria.services.sync_reporter.time.monotonic", side_effect=clock), \
             patch("porteria.services.sync_reporter.requests.get",
                   return_value=json_response(tariffs)) as mock_get:
            assert reporter.pull_from_central(session_factory) is False

        mock_get.assert_called_once()
        assert mock_get.call_args.args[0] == f"{CENTRAL}/tarifas"
        db.expire_all()
        assert db.get(Category, "moto").tarifa_hora == 3500


class TestDeliveryOutbox:
    def test_outbox_must_implement_record_failure(self):
        with pytest.raises(TypeError):
            DeliveryOutbox()

    @pytest.mark.asyncio
    async def test_custom_outbox_receives_failed_push(self):
        class KeepForRetry(DeliveryOutbox):
            def __init__(self):
                self.pending = []

            def record_failure(self, path, payload, error):
                self.pending.append((path, payload))

        outbox = KeepForRetry()
        reporter = make_reporter(PushRecorder(status_code=503), outbox=outbox)
        assert await reporter.report_shift_closure({"porteria_turno_id": 7}) is False
        await reporter.aclose()
        assert outbox.pending == [(CLOSURE_PATH, {"porteria_turno_id": 7})]
