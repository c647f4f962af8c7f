from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from ecoh import create_app
from ecoh.core.config import Config
from ecoh.core.extensions import db
from ecoh.core.models import Causa, TipoActividad, Usuario, seed_demo_data


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SECRET_KEY = "test-secret"
    LOG_LEVEL = "WARNING"


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        seed_demo_data(db.session)
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def _login(client, email: str, password: str):
    return client.post("/auth/login", json={"email": email, "password": password})


@pytest.fixture
def login_admin(client):
    def _login_admin():
        return _login(client, "admin@ecoh.local", "admin123")

    return _login_admin


@pytest.fixture
def login_writer(client):
    def _login_writer():
        return _login(client, "analista@ecoh.local", "analista123")

    return _login_writer


@pytest.fixture
def login_reader(client):
    def _login_reader():
        return _login(client, "consulta@ecoh.local", "consulta123")

    return _login_reader


@pytest.fixture
def demo_ids(app):
    """Ids de registros sembrados que los tests usan a menudo."""
    with app.app_context():
        return {
            "admin": Usuario.query.filter_by(email="admin@ecoh.local").one().id,
            "analista": Usuario.query.filter_by(email="analista@ecoh.local").one().id,
            "causa_homicidio": Causa.query.filter_by(ruc="2300123456-7").one().id,
            "causa_robo": Causa.query.filter_by(ruc="2300654321-K").one().id,
            "causa_trafico": Causa.query.filter_by(ruc="2400111222-3").one().id,
            "causa_sin_fiscal": Causa.query.filter_by(ruc="2400333444-5").one().id,
            "tipo_informe": TipoActividad.query.filter_by(siglainf="INF").one().id,
            "tipo_sin_sigla": TipoActividad.query.filter_by(nombre="Reunión de coordinación").one().id,
        }
