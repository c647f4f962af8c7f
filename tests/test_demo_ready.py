from __future__ import annotations

from ecoh.core.demo_people import es_nombre_generico
from ecoh.core.extensions import db
from ecoh.core.models import (
    Causa,
    CausaImputado,
    CorrelativoTipoActividad,
    Imputado,
    RolUsuario,
    TipoActividad,
    Usuario,
    Victima,
)
from ecoh.core.utils import validar_rut


def test_seed_demo_data_is_consistent(app):
    with app.app_context():
        assert Causa.query.count() == 4
        assert Usuario.query.count() == 3
        assert {user.rol for user in Usuario.query.all()} == {RolUsuario.ADMIN, RolUsuario.WRITE, RolUsuario.READ}

        for imputado in Imputado.query.all():
            assert not es_nombre_generico(imputado.nombre_sujeto)
            if imputado.doc_id[0].isdigit():
                assert validar_rut(imputado.doc_id)

        for link in CausaImputado.query.all():
            assert link.esimputado or link.essujeto_interes

        victimas = Victima.query.all()
        assert len(victimas) == 2
        assert all(validar_rut(victima.doc_id) for victima in victimas)
        assert all(not es_nombre_generico(victima.nombre_victima) for victima in victimas)
        assert all(len(victima.causas) == 1 for victima in victimas)

        informe = TipoActividad.query.filter_by(siglainf="INF").one()
        correlativo = CorrelativoTipoActividad.query.filter_by(tipo_actividad_id=informe.id).one()
        assert correlativo.correlativo_completo == "INF-001"


def test_cli_seed_demo_skips_when_users_exist(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["seed-demo"])
    assert result.exit_code == 0
    assert "Seed skipped" in result.output


def test_cli_seed_demo_reset_rebuilds_data(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["seed-demo", "--reset"])
    assert result.exit_code == 0
    assert "Demo data seeded." in result.output
    with app.app_context():
        db.session.expire_all()
        assert Causa.query.count() == 4


def test_cli_create_user_and_login(app, client):
    runner = app.test_cli_runner()
    result = runner.invoke(
        args=[
            "create-user",
            "--email",
            "Fiscal.Nuevo@ecoh.local",
            "--nombre",
            "Fiscal Nuevo",
            "--password",
            "clave-segura",
            "--rol",
            "WRITE",
        ]
    )
    assert result.exit_code == 0
    assert "fiscal.nuevo@ecoh.local" in result.output

    response = client.post("/auth/login", json={"email": "fiscal.nuevo@ecoh.local", "password": "clave-segura"})
    assert response.status_code == 200
    assert response.get_json()["rol"] == "WRITE"

    duplicate = runner.invoke(
        args=["create-user", "--email", "fiscal.nuevo@ecoh.local", "--nombre", "X", "--password", "y"]
    )
    assert duplicate.exit_code != 0
    assert "already exists" in duplicate.output

    invalid_role = runner.invoke(
        args=["create-user", "--email", "otro@ecoh.local", "--nombre", "X", "--password", "y", "--rol", "ROOT"]
    )
    assert invalid_role.exit_code != 0
