from __future__ import annotations

import csv
from datetime import date, timedelta
from io import BytesIO, StringIO

from openpyxl import load_workbook

from ecoh.causas import actividades
from ecoh.causas.actividades import generar_correlativo
from ecoh.causas.reportes import reporte_actividades
from ecoh.core.models import (
    Actividad,
    CorrelativoTipoActividad,
    Delito,
    EstadoActividad,
    Fiscal,
    Imputado,
    Usuario,
)


def _actividad_en(app, estado: EstadoActividad) -> int:
    with app.app_context():
        return Actividad.query.filter_by(estado=estado).one().id


def _imputado_id(app, doc_id: str) -> int:
    with app.app_context():
        return Imputado.query.filter_by(doc_id=doc_id).one().id


def test_login_and_current_user(app, client, login_admin):
    response = login_admin()
    assert response.status_code == 200
    assert response.get_json()["rol"] == "ADMIN"

    me = client.get("/api/usuarios/me")
    assert me.status_code == 200
    assert me.get_json()["email"] == "admin@ecoh.local"

    assert client.post("/auth/logout").status_code == 200
    assert client.get("/api/usuarios/me").status_code == 401


def test_login_rejects_bad_password(app, client):
    response = client.post("/auth/login", json={"email": "admin@ecoh.local", "password": "nope"})
    assert response.status_code == 401
    assert response.get_json()["error"] == "Credenciales inválidas"


def test_api_requires_authentication(app, client):
    response = client.get("/api/causas")
    assert response.status_code == 401
    assert response.get_json() == {"error": "Autenticación requerida"}


def test_reader_cannot_write_and_writer_cannot_delete_causa(app, client, login_reader, login_writer, demo_ids):
    login_reader()
    assert client.get("/api/causas").status_code == 200
    response = client.post("/api/causas", json={"denominacionCausa": "X"})
    assert response.status_code == 403
    assert response.get_json()["error"] == "Permisos insuficientes"

    client.post("/auth/logout")
    login_writer()
    assert client.delete(f"/api/causas/{demo_ids['causa_robo']}").status_code == 403


def test_catalogos_list_and_admin_create(app, client, login_admin, login_writer):
    login_writer()
    delitos = client.get("/api/catalogos/delitos").get_json()
    assert [item["nombre"] for item in delitos] == ["Homicidio", "Robo con violencia", "Tráfico de drogas"]
    assert client.get("/api/catalogos/desconocido").status_code == 404
    assert client.post("/api/catalogos/delitos", json={"nombre": "Secuestro"}).status_code == 403

    client.post("/auth/logout")
    login_admin()
    created = client.post("/api/catalogos/delitos", json={"nombre": "Secuestro"})
    assert created.status_code == 201
    assert created.get_json()["nombre"] == "Secuestro"
    assert client.post("/api/catalogos/delitos", json={"nombre": "Secuestro"}).status_code == 400
    assert client.post("/api/catalogos/origenes", json={"nombre": "Otra"}).status_code == 400

    tipos = client.get("/api/catalogos/tipos-actividad").get_json()
    informe = next(item for item in tipos if item["nombre"] == "Informe policial")
    assert informe["siglainf"] == "INF"
    assert informe["area"] == "Investigación"


def test_causas_list_filters_and_pagination(app, client, login_reader):
    login_reader()
    everything = client.get("/api/causas").get_json()
    assert everything["metadata"]["total"] == 4

    # "all" y vacio se comportan igual que no enviar el filtro
    cleared = client.get("/api/causas?fiscalId=all&delitoId=&esCrimenOrganizado=all").get_json()
    assert cleared["metadata"]["total"] == 4

    with app.app_context():
        soto_id = Fiscal.query.filter_by(nombre="Andrea Soto").one().id
        homicidio_id = Delito.query.filter_by(nombre="Homicidio").one().id
    assert client.get(f"/api/causas?fiscalId={soto_id}").get_json()["metadata"]["total"] == 2
    assert client.get(f"/api/causas?delitoId={homicidio_id}").get_json()["metadata"]["total"] == 2
    assert client.get("/api/causas?causaEcoh=true").get_json()["metadata"]["total"] == 2
    assert client.get("/api/causas?esCrimenOrganizado=0").get_json()["metadata"]["total"] == 2
    assert client.get("/api/causas?q=Maipú").get_json()["data"][0]["ruc"] == "2300654321-K"

    page_1 = client.get("/api/causas?limit=3").get_json()
    assert len(page_1["data"]) == 3
    assert page_1["metadata"]["hasMore"] is True
    page_2 = client.get("/api/causas?limit=3&page=2").get_json()
    assert len(page_2["data"]) == 1
    assert page_2["metadata"]["hasMore"] is False

    search = client.get("/api/causas/search?q=2400").get_json()
    assert [row["ruc"] for row in search] == ["2400111222-3", "2400333444-5"]
    assert set(search[0]) == {"id", "ruc", "denominacionCausa"}


def test_causa_detail_includes_links(app, client, login_reader, demo_ids):
    login_reader()
    detail = client.get(f"/api/causas/{demo_ids['causa_homicidio']}").get_json()
    assert detail["fiscal"]["nombre"] == "Andrea Soto"
    assert len(detail["imputados"]) == 3
    assert {row["estadoPlazo"] for row in detail["imputados"]} == {"proximo", "vencido", "ninguna"}
    assert len(detail["causasArista"]) == 2
    assert detail["causasMadre"] == []
    assert len(detail["telefonos"]) == 1
    assert detail["totalActividades"] == 2

    assert client.get("/api/causas/9999").status_code == 404


def test_causa_create_update_and_validation(app, client, login_writer):
    login_writer()
    with app.app_context():
        delito_id = Delito.query.filter_by(nombre="Robo con violencia").one().id
        fiscal_id = Fiscal.query.filter_by(nombre="Valentina Muñoz").one().id

    payload = {
        "ruc": "2500111000-1",
        "denominacionCausa": "Robo en Ñuñoa",
        "fechaDelHecho": "2025-01-10",
        "fechaHoraTomaConocimiento": "2025-01-11T09:30:00",
        "delitoId": delito_id,
        "fiscalId": fiscal_id,
        "causaEcoh": True,
        "esCrimenOrganizado": 1,
    }
    created = client.post("/api/causas", json=payload)
    assert created.status_code == 201
    body = created.get_json()
    assert body["fiscal"]["nombre"] == "Valentina Muñoz"
    assert body["esCrimenOrganizado"] == 1
    assert body["homicidioConsumado"] is None

    assert client.post("/api/causas", json=payload).status_code == 400
    assert client.post("/api/causas", json={**payload, "ruc": "", "esCrimenOrganizado": 5}).status_code == 400
    assert client.post("/api/causas", json={**payload, "ruc": "", "delitoId": 9999}).status_code == 400
    assert client.post("/api/causas", json={**payload, "ruc": "", "fechaDelHecho": "10-01-2025"}).status_code == 400

    updated = client.put(f"/api/causas/{body['id']}", json={"fiscalId": "", "observacion": "Reasignar"})
    assert updated.status_code == 200
    assert updated.get_json()["fiscal"] is None
    assert updated.get_json()["observacion"] == "Reasignar"
    assert updated.get_json()["denominacionCausa"] == "Robo en Ñuñoa"


def test_admin_deletes_causa_with_relations(app, client, login_admin, demo_ids):
    login_admin()
    response = client.delete(f"/api/causas/{demo_ids['causa_homicidio']}")
    assert response.status_code == 204

    assert client.get(f"/api/causas/{demo_ids['causa_homicidio']}").status_code == 404
    relaciones = client.get("/api/causas-relacionadas").get_json()
    assert relaciones["metadata"]["total"] == 0
    actividades = client.get("/api/actividades").get_json()
    assert actividades["metadata"]["total"] == 1


def test_imputados_doc_id_rules(app, client, login_writer):
    login_writer()
    created = client.post("/api/imputados", json={"nombreSujeto": "Pedro Lagos", "docId": "7654321-6"})
    assert created.status_code == 201
    assert created.get_json()["docId"] == "7.654.321-6"

    passport = client.post("/api/imputados", json={"nombreSujeto": "Luis Mora", "docId": "ab123456"})
    assert passport.status_code == 201
    assert passport.get_json()["docId"] == "AB123456"

    invalid = client.post("/api/imputados", json={"nombreSujeto": "Otro", "docId": "12.345.678-9"})
    assert invalid.status_code == 400
    assert "RUT inválido" in invalid.get_json()["error"]

    duplicate = client.post("/api/imputados", json={"nombreSujeto": "Copia", "docId": "123456785"})
    assert duplicate.status_code == 400

    listed = client.get("/api/imputados?q=Flaco").get_json()
    assert listed["metadata"]["total"] == 1


def test_causa_imputado_link_rules(app, client, login_writer, demo_ids):
    login_writer()
    causa_id = demo_ids["causa_sin_fiscal"]
    imputado_id = _imputado_id(app, "V-20456789")

    neither = client.post(
        f"/api/causas/{causa_id}/imputados",
        json={"imputadoId": imputado_id, "esimputado": False, "essujetoInteres": False},
    )
    assert neither.status_code == 400

    negative = client.post(
        f"/api/causas/{causa_id}/imputados",
        json={"imputadoId": imputado_id, "esimputado": True, "plazo": -1},
    )
    assert negative.status_code == 400

    formalizado = (date.today() - timedelta(days=95)).isoformat()
    created = client.post(
        f"/api/causas/{causa_id}/imputados",
        json={
            "imputadoId": imputado_id,
            "esimputado": True,
            "formalizado": True,
            "fechaFormalizacion": formalizado,
            "plazo": 90,
        },
    )
    assert created.status_code == 201
    assert created.get_json()["diasRestantes"] == -5
    assert created.get_json()["estadoPlazo"] == "vencido"

    again = client.post(f"/api/causas/{causa_id}/imputados", json={"imputadoId": imputado_id, "esimputado": True})
    assert again.status_code == 400

    extended = client.put(f"/api/causas/{causa_id}/imputados/{imputado_id}", json={"plazo": 120})
    assert extended.status_code == 200
    assert extended.get_json()["diasRestantes"] == 25
    assert extended.get_json()["estadoPlazo"] == "normal"

    sin_plazo = client.put(f"/api/causas/{causa_id}/imputados/{imputado_id}", json={"plazo": 0})
    assert sin_plazo.status_code == 200
    assert sin_plazo.get_json()["diasRestantes"] is None
    assert sin_plazo.get_json()["estadoPlazo"] == "ninguna"

    cleared = client.put(f"/api/causas/{causa_id}/imputados/{imputado_id}", json={"esimputado": False})
    assert cleared.status_code == 400

    assert client.delete(f"/api/causas/{causa_id}/imputados/{imputado_id}").status_code == 204
    assert client.delete(f"/api/causas/{causa_id}/imputados/{imputado_id}").status_code == 404


def test_actividad_create_validates_dates_and_assignment(app, client, login_admin, demo_ids):
    login_admin()
    base = {
        "causaId": demo_ids["causa_robo"],
        "tipoActividadId": demo_ids["tipo_informe"],
        "fechaInicio": "2025-03-10",
        "fechaTermino": "2025-03-20",
    }

    backwards = client.post("/api/actividades", json={**base, "fechaTermino": "2025-03-01"})
    assert backwards.status_code == 400
    assert backwards.get_json()["error"] == "La fecha de término debe ser posterior a la fecha de inicio"

    same_day = client.post("/api/actividades", json={**base, "fechaTermino": "2025-03-10"})
    assert same_day.status_code == 201

    delegated = client.post("/api/actividades", json={**base, "usuarioAsignadoId": demo_ids["analista"]})
    assert delegated.status_code == 201
    assert delegated.get_json()["delegada"] is True
    assert delegated.get_json()["responsable"] == "Camila Rojas"

    unknown = client.post("/api/actividades", json={**base, "usuarioAsignadoId": 9999})
    assert unknown.status_code == 201
    assert unknown.get_json()["usuarioAsignadoId"] == demo_ids["admin"]
    assert unknown.get_json()["delegada"] is False

    closed_without_note = client.post("/api/actividades", json={**base, "estado": "terminado"})
    assert closed_without_note.status_code == 400

    assert client.post("/api/actividades", json={**base, "causaId": 9999}).status_code == 404


def test_actividad_update_keeps_dates_consistent(app, client, login_admin):
    login_admin()
    actividad_id = _actividad_en(app, EstadoActividad.INICIO)
    moved = client.put(
        f"/api/actividades/{actividad_id}",
        json={"fechaInicio": "2030-01-01", "fechaTermino": "2030-02-01", "observacion": "Reprogramada"},
    )
    assert moved.status_code == 200
    assert moved.get_json()["fechaInicio"] == "2030-01-01"
    assert moved.get_json()["observacion"] == "Reprogramada"

    invalid = client.put(f"/api/actividades/{actividad_id}", json={"fechaTermino": "2029-12-31"})
    assert invalid.status_code == 400
    assert client.get(f"/api/actividades/{actividad_id}").get_json()["fechaTermino"] == "2030-02-01"


def test_kanban_lanes_partition_activities(app, client, login_admin, login_writer):
    login_admin()
    board = client.get("/api/actividades/kanban").get_json()
    assert [col["estado"] for col in board["columnas"]] == ["inicio", "en_proceso", "terminado"]
    assert [col["label"] for col in board["columnas"]] == ["Inicio", "En proceso", "Terminado"]
    assert [col["total"] for col in board["columnas"]] == [1, 1, 1]
    assert sum(col["total"] for col in board["columnas"]) == board["total"] == 3

    mine = client.get("/api/actividades/kanban?soloMias=true").get_json()
    assert mine["total"] == 1

    client.post("/auth/logout")
    login_writer()
    mine = client.get("/api/actividades/kanban?soloMias=true").get_json()
    assert mine["total"] == 2
    assert client.get("/api/actividades/usuario").get_json()["metadata"]["total"] == 2

    assert client.post("/auth/lang", json={"lang": "en"}).get_json() == {"lang": "en"}
    board = client.get("/api/actividades/kanban").get_json()
    assert board["columnas"][0]["label"] == "To do"


def test_mover_actividad_requires_closing_note(app, client, login_writer):
    login_writer()
    actividad_id = _actividad_en(app, EstadoActividad.INICIO)

    rejected = client.put(f"/api/actividades/{actividad_id}/estado", json={"estado": "terminado"})
    assert rejected.status_code == 400
    assert rejected.get_json()["error"] == "Debe ingresar una glosa de cierre para terminar la actividad"
    assert client.get(f"/api/actividades/{actividad_id}").get_json()["estado"] == "inicio"

    blank = client.put(f"/api/actividades/{actividad_id}/estado", json={"estado": "terminado", "glosaCierre": "  "})
    assert blank.status_code == 400

    done = client.put(
        f"/api/actividades/{actividad_id}/estado",
        json={"estado": "terminado", "glosaCierre": "Informe recibido"},
    )
    assert done.status_code == 200
    assert done.get_json()["estado"] == "terminado"
    assert done.get_json()["glosaCierre"] == "Informe recibido"

    reopened = client.put(f"/api/actividades/{actividad_id}/estado", json={"estado": "In Progress"})
    assert reopened.status_code == 200
    assert reopened.get_json()["estado"] == "en_proceso"
    assert reopened.get_json()["glosaCierre"] == "Informe recibido"

    lanes = client.get("/api/actividades/kanban").get_json()["columnas"]
    assert [col["total"] for col in lanes] == [0, 2, 1]


def test_correlativos_preview_generate_and_history(app, client, login_writer, demo_ids):
    login_writer()
    preview = client.get("/api/correlativos").get_json()
    assert [row["sigla"] for row in preview] == ["ANT", "DIL", "INF"]
    informe = next(row for row in preview if row["sigla"] == "INF")
    assert informe["siguienteCorrelativo"] == "INF-002"
    assert informe["anio"] == date.today().year

    first = client.post("/api/correlativos", json={"tipoActividadId": demo_ids["tipo_informe"]})
    assert first.status_code == 201
    assert first.get_json()["correlativoCompleto"] == "INF-002"
    second = client.post("/api/correlativos", json={"tipoActividadId": demo_ids["tipo_informe"]})
    assert second.get_json()["correlativoCompleto"] == "INF-003"
    assert second.get_json()["usuario"] == "Camila Rojas"

    sin_sigla = client.post("/api/correlativos", json={"tipoActividadId": demo_ids["tipo_sin_sigla"]})
    assert sin_sigla.status_code == 400
    assert client.post("/api/correlativos", json={"tipoActividadId": 9999}).status_code == 404

    historial = client.get(
        f"/api/correlativos/historial?tipoActividadId={demo_ids['tipo_informe']}&anio={date.today().year}"
    ).get_json()
    assert historial["metadata"]["total"] == 3
    assert historial["data"][0]["correlativoCompleto"] == "INF-003"


def test_correlativo_numbering_restarts_each_year(app, demo_ids):
    with app.app_context():
        user = Usuario.query.filter_by(email="analista@ecoh.local").one()
        payload = {"tipoActividadId": demo_ids["tipo_informe"]}
        primero = generar_correlativo(payload, user, anio=2031)
        segundo = generar_correlativo(payload, user, anio=2031)
        siguiente_anio = generar_correlativo(payload, user, anio=2032)
        assert (primero.correlativo_completo, primero.anio) == ("INF-001", 2031)
        assert segundo.correlativo_completo == "INF-002"
        assert (siguiente_anio.correlativo_completo, siguiente_anio.anio) == ("INF-001", 2032)
        # el año en curso sigue su propia serie
        assert generar_correlativo(payload, user).correlativo_completo == "INF-002"


def test_correlativo_retries_once_after_collision(app, client, login_writer, demo_ids, monkeypatch):
    login_writer()
    real = actividades.siguiente_numero
    llamadas = []

    def colisiona_una_vez(tipo_id, anio):
        llamadas.append(anio)
        # el 1 ya existe en la semilla del año en curso
        return 1 if len(llamadas) == 1 else real(tipo_id, anio)

    monkeypatch.setattr(actividades, "siguiente_numero", colisiona_una_vez)
    response = client.post("/api/correlativos", json={"tipoActividadId": demo_ids["tipo_informe"]})
    assert response.status_code == 201
    assert response.get_json()["correlativoCompleto"] == "INF-002"
    assert len(llamadas) == 2


def test_correlativo_second_collision_is_a_conflict(app, client, login_writer, demo_ids, monkeypatch):
    login_writer()
    monkeypatch.setattr(actividades, "siguiente_numero", lambda tipo_id, anio: 1)
    response = client.post("/api/correlativos", json={"tipoActividadId": demo_ids["tipo_informe"]})
    assert response.status_code == 409

    with app.app_context():
        assert CorrelativoTipoActividad.query.filter_by(tipo_actividad_id=demo_ids["tipo_informe"]).count() == 1


def test_formalizaciones_panel_metrics(app, client, login_reader, demo_ids):
    login_reader()
    panel = client.get("/api/formalizaciones-panel").get_json()

    metricas = panel["metricas"]
    assert metricas["totalCausas"] == 3
    assert metricas["causasConFormalizados"] == 2
    assert metricas["causasSinFormalizados"] == 1
    assert metricas["totalImputados"] == 4
    assert metricas["totalFormalizados"] == 3
    assert metricas["totalNoFormalizados"] == 1
    assert metricas["porcentajeFormalizados"] == 75.0
    assert metricas["alertas"] == {"vencidos": 1, "porVencer": 1, "enPlazo": 1}
    assert metricas["promedioDiasFormalizacion"] == 118.3

    for causa in panel["causas"]:
        stats = causa["estadisticas"]
        assert stats["formalizados"] + stats["noFormalizados"] == stats["totalImputados"]

    first = panel["causas"][0]
    assert first["causaId"] == demo_ids["causa_homicidio"]
    assert first["alertaGeneral"] == "vencido"
    assert first["alertaGeneralLabel"] == "Vencido"
    assert first["estadisticas"]["vencidos"] == 1
    assert first["estadisticas"]["porVencer"] == 1

    trafico = next(item for item in panel["causas"] if item["causaId"] == demo_ids["causa_trafico"])
    assert trafico["alertaGeneral"] == "normal"
    assert trafico["imputados"][0]["estadoPlazo"] == "ninguna"

    distribucion = {row["delito"]: row for row in panel["distribucionPorDelito"]}
    assert set(distribucion) == {"Homicidio", "Robo con violencia", "Tráfico de drogas"}
    homicidio = distribucion["Homicidio"]
    assert homicidio["delitoId"] == first["delitoId"]
    assert (homicidio["causas"], homicidio["imputados"], homicidio["formalizados"]) == (1, 2, 2)
    assert homicidio["porcentaje"] == 100.0
    trafico_row = distribucion["Tráfico de drogas"]
    assert (trafico_row["causas"], trafico_row["imputados"], trafico_row["formalizados"]) == (1, 1, 0)
    assert trafico_row["porcentaje"] == 0.0


def test_formalizaciones_panel_filters(app, client, login_reader):
    login_reader()
    formalizados = client.get("/api/formalizaciones-panel?estadoId=formalizados").get_json()
    assert formalizados["metricas"]["totalImputados"] == 3
    assert formalizados["metricas"]["totalNoFormalizados"] == 0

    pendientes = client.get("/api/formalizaciones-panel?estadoId=no_formalizados").get_json()
    assert pendientes["metricas"]["totalCausas"] == 1
    assert pendientes["causas"][0]["ruc"] == "2400111222-3"

    assert client.get("/api/formalizaciones-panel?estadoId=all").get_json()["metricas"]["totalCausas"] == 3
    assert client.get("/api/formalizaciones-panel?ruc=2300654321").get_json()["metricas"]["totalCausas"] == 1
    assert client.get("/api/formalizaciones-panel?estadoId=otro").status_code == 400


def test_formalizaciones_alertas(app, client, login_reader):
    login_reader()
    alertas = client.get("/api/formalizaciones-panel/alertas").get_json()
    assert alertas["total"] == 2
    assert alertas["vencidos"] == 1
    assert alertas["porVencer"] == 1
    assert alertas["data"][0]["estadoPlazo"] == "vencido"
    assert alertas["data"][0]["diasRestantes"] == -10
    assert alertas["data"][1]["diasRestantes"] == 5


def test_causas_relacionadas_rules(app, client, login_writer, demo_ids):
    login_writer()
    madre, arista = demo_ids["causa_homicidio"], demo_ids["causa_robo"]

    same = client.post("/api/causas-relacionadas", json={"causaMadreId": madre, "causaAristaId": madre})
    assert same.status_code == 400
    assert same.get_json()["error"] == "Una causa no puede relacionarse consigo misma"

    duplicate = client.post("/api/causas-relacionadas", json={"causaMadreId": madre, "causaAristaId": arista})
    assert duplicate.status_code == 400

    created = client.post(
        "/api/causas-relacionadas",
        json={"causaMadreId": arista, "causaAristaId": demo_ids["causa_trafico"], "tipoRelacion": "Misma banda"},
    )
    assert created.status_code == 201
    relacion_id = created.get_json()["id"]

    by_causa = client.get(f"/api/causas-relacionadas?causaId={arista}").get_json()
    assert by_causa["metadata"]["total"] == 2

    graph = client.get("/api/grafo/causas").get_json()
    tipos = {node["id"]: node["tipo"] for node in graph["nodes"]}
    assert tipos[arista] == "ambas"
    assert tipos[madre] == "madre"
    assert tipos[demo_ids["causa_trafico"]] == "arista"

    assert client.delete("/api/causas-relacionadas").status_code == 400
    assert client.delete(f"/api/causas-relacionadas?id={relacion_id}").status_code == 204
    assert client.delete(f"/api/causas-relacionadas?id={relacion_id}").status_code == 404


def test_grafo_causas_nodes_are_unique(app, client, login_reader, demo_ids):
    login_reader()
    graph = client.get("/api/grafo/causas").get_json()
    ids = [node["id"] for node in graph["nodes"]]
    assert len(ids) == len(set(ids)) == 3
    assert len(graph["edges"]) == 2
    madre = next(node for node in graph["nodes"] if node["id"] == demo_ids["causa_homicidio"])
    assert madre["tipo"] == "madre"
    assert madre["tipoLabel"] == "Causa madre"

    sector = client.get("/api/grafo/causas?tipoRelacion=Mismo sector").get_json()
    assert {node["id"] for node in sector["nodes"]} == {demo_ids["causa_homicidio"], demo_ids["causa_sin_fiscal"]}

    aislada = client.get(f"/api/grafo/causas?causaId={demo_ids['causa_trafico']}").get_json()
    assert aislada == {"nodes": [], "edges": []}

    componente = client.get(f"/api/grafo/causas?causaId={demo_ids['causa_robo']}").get_json()
    assert len(componente["nodes"]) == 3


def test_reporte_fiscales(app, client, login_reader):
    login_reader()
    report = client.get("/api/reportes/fiscales").get_json()

    resumen = report["resumenPorFiscal"]
    assert [row["fiscalNombre"] for row in resumen] == ["Andrea Soto", "Rodrigo Pérez", "Sin fiscal asignado"]
    soto = resumen[0]
    assert soto["totalCausas"] == 2
    assert soto["causasEcoh"] == 2
    assert soto["causasLegadas"] == 1
    assert soto["causasConSS"] == 1
    assert soto["causasHomicidio"] == 1
    assert soto["causasCrimenOrg"] == 1
    assert soto["porcentajeDelTotal"] == 50.0
    assert resumen[2]["fiscalId"] is None

    generales = report["estadisticasGenerales"]
    assert generales == {
        "totalCausas": 4,
        "fiscalesConCausas": 2,
        "fiscalesSinCausas": 1,
        "causasSinFiscal": 1,
        "promedioCausasPorFiscal": 1.5,
    }
    sin_fiscal = next(row for row in report["detallesCausas"] if row["RUC"] == "2400333444-5")
    assert sin_fiscal["Fiscal"] == "Sin Asignar"
    assert sin_fiscal["Homicidio Consumado"] == "No"

    ecoh = client.get("/api/reportes/fiscales?causaEcoh=true").get_json()
    assert ecoh["estadisticasGenerales"]["totalCausas"] == 2


def test_reporte_fiscales_export_csv(app, client, login_reader):
    login_reader()
    response = client.get("/api/reportes/fiscales/export?formato=csv")
    assert response.status_code == 200
    assert response.mimetype == "text/csv"
    assert "attachment" in response.headers["Content-Disposition"]
    assert ".csv" in response.headers["Content-Disposition"]

    rows = list(csv.reader(StringIO(response.data.decode("utf-8"))))
    assert rows[0][:5] == ["ID", "RUC", "Denominación", "Fiscal", "Fecha del Hecho"]
    assert len(rows) == 5


def test_reporte_fiscales_export_xlsx(app, client, login_reader):
    login_reader()
    response = client.get("/api/reportes/fiscales/export?formato=xlsx")
    assert response.status_code == 200
    assert response.mimetype == "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

    workbook = load_workbook(BytesIO(response.data))
    assert workbook.sheetnames == ["Resumen por Fiscal", "Detalle de Causas", "Info del Reporte"]
    resumen = workbook["Resumen por Fiscal"]
    assert resumen.cell(row=1, column=2).value == "Nombre Fiscal"
    assert resumen.cell(row=2, column=2).value == "Andrea Soto"
    assert resumen.cell(row=2, column=9).value == "50.00%"
    assert workbook["Detalle de Causas"].max_row == 5

    assert client.get("/api/reportes/fiscales/export?formato=pdf").status_code == 400


def test_reporte_fiscal_causas(app, client, login_reader):
    login_reader()
    report = client.get("/api/reportes/fiscal-causas").get_json()
    assert [row["nombre"] for row in report["fiscales"]] == ["Andrea Soto", "Rodrigo Pérez", "Valentina Muñoz"]
    assert report["estadisticas"] == {
        "totalFiscales": 3,
        "totalCausas": 3,
        "totalImputados": 5,
        "imputadosFormalizados": 3,
        "conPrisionPreventiva": 1,
        "conInternacionProvisoria": 1,
    }
    homicidio = next(c for c in report["fiscales"][0]["causas"] if c["ruc"] == "2300123456-7")
    flags = {(row["tienePrisionPreventiva"], row["tieneInternacionProvisoria"]) for row in homicidio["imputados"]}
    assert flags == {(True, False), (False, True), (False, False)}


def test_reporte_causas_relacionadas(app, client, login_reader, demo_ids):
    login_reader()
    detallado = client.get("/api/reportes/causas-relacionadas").get_json()
    assert detallado["formato"] == "detallado"
    assert detallado["total"] == 2

    resumen = client.get("/api/reportes/causas-relacionadas?formato=resumen").get_json()
    assert resumen["resumen"] == {
        "totalRelaciones": 2,
        "totalCausasConRelaciones": 3,
        "causasMadre": 1,
        "causasArista": 2,
    }
    assert resumen["topCausasMadre"][0]["id"] == demo_ids["causa_homicidio"]
    assert resumen["topCausasMadre"][0]["totalRelaciones"] == 2
    assert {row["tipo"] for row in resumen["tiposRelacionMasComunes"]} == {"Mismo imputado", "Mismo sector"}

    assert client.get("/api/reportes/causas-relacionadas?formato=grafico").status_code == 400


def test_reporte_actividades(app, client, login_reader, demo_ids):
    login_reader()
    report = client.get("/api/reportes/actividades").get_json()
    assert report["totalActividades"] == 3
    assert [(row["estado"], row["total"]) for row in report["porEstado"]] == [
        ("inicio", 1),
        ("en_proceso", 1),
        ("terminado", 1),
    ]
    assert report["porArea"][0] == {"area": "Investigación", "total": 2, "porcentaje": 66.67}
    analisis = next(row for row in report["porTipo"] if row["tipoActividad"] == "Análisis de tráfico")
    assert analisis["porEstado"]["terminado"] == 1
    assert report["actividadesVencidas"] == 0
    assert report["porcentajeCompletado"] == 33.33
    assert report["porUsuario"][0] == {"usuarioId": demo_ids["analista"], "nombre": "Camila Rojas", "total": 2}

    por_causa = report["porCausa"]
    assert [row["causaId"] for row in por_causa] == [demo_ids["causa_homicidio"], demo_ids["causa_trafico"]]
    homicidio = por_causa[0]["estadisticas"]
    assert (homicidio["total"], homicidio["iniciadas"], homicidio["enProceso"], homicidio["terminadas"]) == (2, 1, 1, 0)
    assert homicidio["porcentajeCompletado"] == 0.0
    assert por_causa[1]["estadisticas"]["porcentajeCompletado"] == 100.0
    assert por_causa[1]["diasPromedio"] == 35.0


def test_reporte_actividades_filters(app, client, login_reader, demo_ids):
    login_reader()
    mias = client.get(f"/api/reportes/actividades?usuarioId={demo_ids['analista']}").get_json()
    assert mias["totalActividades"] == 2
    admin = client.get(f"/api/reportes/actividades?usuarioId={demo_ids['admin']}").get_json()
    assert admin["totalActividades"] == 1

    trafico = client.get("/api/reportes/actividades?ruc=2400111222").get_json()
    assert trafico["totalActividades"] == 1
    assert trafico["porCausa"][0]["ruc"] == "2400111222-3"

    informes = client.get(f"/api/reportes/actividades?tipoActividadId={demo_ids['tipo_informe']}").get_json()
    assert informes["totalActividades"] == 1

    assert client.get("/api/reportes/actividades?usuarioId=all&ruc=").get_json()["totalActividades"] == 3
    assert client.get("/api/reportes/actividades?usuarioId=abc").status_code == 400


def test_reporte_actividades_marks_overdue(app):
    with app.app_context():
        report = reporte_actividades({}, hoy=date.today() + timedelta(days=7))
        assert report["actividadesVencidas"] == 1
        homicidio = report["porCausa"][0]
        assert homicidio["estadisticas"]["vencidas"] == 1
        vencidas = {row["estado"]: row["vencida"] for row in homicidio["actividades"]}
        assert vencidas == {"inicio": False, "en_proceso": True}
        # una actividad terminada nunca esta vencida
        assert report["porCausa"][1]["actividades"][0]["vencida"] is False
