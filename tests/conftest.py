# tests/conftest.py
"""Shared fixtures: in-memory local store, SQLite stand-in for `reservas`, push recorder."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import json
from datetime import datetime

import httpx
import pytest
from fastapi.testclient import TestClient

from porteria.config import Settings
from porteria.context import AppContext
from porteria.database import (build_local_engine, build_reservation_engine,
                               build_session_factory, create_tables, seed_categories)
from porteria.main import create_app
from porteria.services import auth_service, shift_service
from porteria.services.reservation_bridge import ReservationState, foreign_metadata, reservas

T0 = datetime(2026, 3, 2, 8, 0, 0)


def make_settings(**overrides) -> Settings:
    values = dict(
        DATABASE_URL="sqlite://",
        RESERVATIONS_DATABASE_URL=None,
        API_KEY=None,
        ENABLE_BACKGROUND_JOBS=False,
        CENTRAL_SYNC_ON_STARTUP=False,
    )
    values.update(overrides)
    return Settings(**values)


class PushRecorder:
    """httpx.MockTransport handler standing in for the master server."""

    def __init__(self, status_code: int = 200):
        self.status_code = status_code
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json={"ok": self.status_code < 400})

    def bodies(self, path: str) -> list:
        return [json.loads(r.content) for r in self.requests if r.url.path.endswith("/" + path)]


def add_operator(db, id="u1", usuario="caja1", password="secreto", nombre="Ana Caja"):
    user = auth_service.upsert_user(db, id, usuario, password, rol="operador", nombre=nombre)
    db.commit()
    return user


def add_reservation(engine, id_reserva, placa, tipo="Automóvil", estado=ReservationState.PENDING,
                    fecha_registro=None, fecha_expiracion=None, color="Azul"):
    with engine.begin() as conn:
        conn.execute(reservas.insert().values(
            id_reserva=id_reserva, placa=placa, tipo_vehiculo=tipo, color=color,
            fecha_registro=fecha_registro or datetime.now(),
            fecha_expiracion=fecha_expiracion, estado=estado, total_pagado=None,
        ))


def reservation_state(engine, id_reserva):
    with engine.connect() as conn:
        row = conn.execute(
            reservas.select().where(reservas.c.id_reserva == id_reserva)
        ).first()
    return row.estado, row.total_pagado


@pytest.fixture
def session_factory():
    engine = build_local_engine("sqlite://")
    create_tables(engine)
    factory = build_session_factory(engine)
    seed_categories(factory)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def operator(db):
    return add_operator(db)


@pytest.fixture
def shift(db, operator):
    return shift_service.open_shift(db, operator.id, 50000)


@pytest.fixture
def reservations_engine():
    engine = build_reservation_engine("sqlite://")
    foreign_metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def recorder():
    return PushRecorder()


@pytest.fixture
def context(recorder, reservations_engine):
    return AppContext.build(make_settings(), reservation_engine=reservations_engine,
                            transport=httpx.MockTransport(recorder))


@pytest.fixture
def client(context):
    with TestClient(create_app(context)) as c:
        yield c
