from __future__ import annotations

from datetime import date, timedelta

from ecoh.core.models import CausaVictima, Delito, Nacionalidad, Victima


def _victima_de(app, causa_id: int) -> dict[str, object]:
    with app.app_context():
        link = CausaVictima.query.filter_by(causa_id=causa_id).one()
        return {"id": link.victima_id, "docId": link.victima.doc_id}


def _chilena(app) -> int:
    with app.app_context():
        return Nacionalidad.query.filter_by(nombre="Chilena").one().id


def test_victimas_list_and_detail(app, client, login_reader, demo_ids):
    login_reader()
    listed = client.get("/api/victimas").get_json()
    assert listed["metadata"]["total"] == 2
    assert all(row["totalCausas"] == 1 for row in listed["data"])
    assert {row["nacionalidad"]["nombre"] for row in listed["data"]} == {"Chilena"}

    victima = _victima_de(app, demo_ids["causa_homicidio"])
    by_doc = client.get(f"/api/victimas?q={victima['docId']}").get_json()
    assert [row["id"] for row in by_doc["data"]] == [victima["id"]]
    by_causa = client.get(f"/api/victimas?causaId={demo_ids['causa_homicidio']}").get_json()
    assert [row["id"] for row in by_causa["data"]] == [victima["id"]]
    assert client.get("/api/victimas?causaId=abc").status_code == 400

    detail = client.get(f"/api/victimas/{victima['id']}").get_json()
    assert detail["causas"][0]["ruc"] == "2300123456-7"
    assert detail["causas"][0]["delito"]["nombre"] == "Homicidio"
    assert client.get("/api/victimas/9999").status_code == 404

    causa = client.get(f"/api/causas/{demo_ids['causa_homicidio']}").get_json()
    assert [row["id"] for row in causa["victimas"]] == [victima["id"]]

    assert client.post("/api/victimas", json={"nombreVictima": "X", "docId": "9876543-3"}).status_code == 403


def test_victima_create_update_and_delete(app, client, login_writer, demo_ids):
    login_writer()
    payload = {"nombreVictima": "Rosa Valdés Araya", "docId": "9876543-3", "nacionalidadId": _chilena(app)}
    created = client.post("/api/victimas", json=payload)
    assert created.status_code == 201
    body = created.get_json()
    assert body["docId"] == "9.876.543-3"
    assert body["totalCausas"] == 0

    duplicate = client.post("/api/victimas", json={**payload, "docId": "9.876.543-3"})
    assert duplicate.status_code == 400
    assert "Ya existe una víctima" in duplicate.get_json()["error"]
    assert client.post("/api/victimas", json={**payload, "docId": "9.876.543-1"}).status_code == 400
    assert client.post("/api/victimas", json={**payload, "nombreVictima": " "}).status_code == 400
    assert client.post("/api/victimas", json={**payload, "docId": ""}).status_code == 400

    otra = _victima_de(app, demo_ids["causa_robo"])
    assert client.put(f"/api/victimas/{body['id']}", json={"docId": otra["docId"]}).status_code == 400
    updated = client.put(f"/api/victimas/{body['id']}", json={"nombreVictima": "Rosa Valdés Soto"})
    assert updated.status_code == 200
    assert updated.get_json()["nombreVictima"] == "Rosa Valdés Soto"
    assert updated.get_json()["docId"] == "9.876.543-3"

    assert client.delete(f"/api/victimas/{body['id']}").status_code == 204
    assert client.get(f"/api/victimas/{body['id']}").status_code == 404
    assert client.get("/api/victimas").get_json()["metadata"]["total"] == 2


def test_victima_links_to_causas(app, client, login_writer, demo_ids):
    login_writer()
    victima = _victima_de(app, demo_ids["causa_homicidio"])
    causa_id = demo_ids["causa_robo"]

    linked = client.post(f"/api/causas/{causa_id}/victimas", json={"victimaId": victima["id"]})
    assert linked.status_code == 201
    assert linked.get_json()["causa"]["ruc"] == "2300654321-K"
    assert linked.get_json()["victima"]["docId"] == victima["docId"]

    duplicate = client.post(f"/api/causas/{causa_id}/victimas", json={"victimaId": victima["id"]})
    assert duplicate.status_code == 400
    assert client.post(f"/api/causas/{causa_id}/victimas", json={"victimaId": 9999}).status_code == 404
    assert client.post(f"/api/causas/{causa_id}/victimas", json={}).status_code == 400

    detail = client.get(f"/api/victimas/{victima['id']}").get_json()
    assert {row["id"] for row in detail["causas"]} == {demo_ids["causa_homicidio"], causa_id}
    assert len(client.get(f"/api/causas/{causa_id}").get_json()["victimas"]) == 2

    assert client.delete(f"/api/causas/{causa_id}/victimas/{victima['id']}").status_code == 204
    missing = client.delete(f"/api/causas/{causa_id}/victimas/{victima['id']}")
    assert missing.status_code == 404

    # borrar la victima arrastra sus vinculos
    assert client.delete(f"/api/victimas/{victima['id']}").status_code == 204
    with app.app_context():
        assert CausaVictima.query.filter_by(victima_id=victima["id"]).count() == 0
        assert Victima.query.count() == 1


def test_causas_por_responsable(client, login_reader):
    login_reader()
    abogados = client.get("/api/analytics/causas-abogado").get_json()
    assert [(row["nombre"], row["total"]) for row in abogados] == [("Sin asignar", 3), ("Ignacio Fuentes", 1)]
    assert abogados[0]["id"] is None

    analistas = client.get("/api/analytics/causas-analista").get_json()
    assert [(row["nombre"], row["total"]) for row in analistas] == [("Sin asignar", 3), ("Camila Rojas", 1)]

    atvt = client.get("/api/analytics/causas-atvt").get_json()
    assert [(row["nombre"], row["total"]) for row in atvt] == [("Unidad ATVT Centro", 1)]

    assert client.get("/api/analytics/causas-abogado?year=1990").get_json() == []
    assert client.get("/api/analytics/causas-abogado?year=todos").get_json() == abogados
    assert client.get("/api/analytics/causas-fiscal").status_code == 400
    assert client.get("/api/analytics/causas-abogado?year=abc").status_code == 400


def test_crimen_organizado(client, login_reader):
    login_reader()
    data = client.get("/api/analytics/crimen-organizado").get_json()
    assert data["totalCausas"] == 4
    assert data["causasCrimenOrganizado"] == 2
    assert data["porcentaje"] == 50.0
    assert data["resumenPorDelito"] == [
        {"delito": "Homicidio", "cantidad": 1},
        {"delito": "Tráfico de drogas", "cantidad": 1},
    ]

    today = date.today()
    anio = (today - timedelta(days=200)).year
    en_anio = [dias for dias in (200, 150, 120, 60) if (today - timedelta(days=dias)).year == anio]
    by_year = client.get(f"/api/analytics/crimen-organizado?year={anio}").get_json()
    assert by_year["totalCausas"] == len(en_anio)

    empty = client.get("/api/analytics/crimen-organizado?year=1990").get_json()
    assert (empty["totalCausas"], empty["porcentaje"], empty["resumenPorDelito"]) == (0, 0.0, [])


def test_crimen_organizado_by_delito(app, client, login_reader):
    login_reader()
    with app.app_context():
        robo_id = Delito.query.filter_by(nombre="Robo con violencia").one().id
    data = client.get(f"/api/analytics/crimen-organizado?delitoId={robo_id}").get_json()
    assert (data["totalCausas"], data["causasCrimenOrganizado"], data["porcentaje"]) == (1, 0, 0.0)
    assert client.get("/api/analytics/crimen-organizado?delitoId=todos").get_json()["totalCausas"] == 4


def test_nationality_distribution(client, login_reader):
    login_reader()
    data = client.get("/api/analytics/nationality-distribution").get_json()
    assert data == [{"nacionalidad": "Chilena", "total": 4}, {"nacionalidad": "Venezolana", "total": 1}]
    assert client.get("/api/analytics/nationality-distribution?year=1990").get_json() == []


def test_imputados_flow(client, login_reader):
    login_reader()
    data = client.get("/api/analytics/imputados-flow").get_json()
    assert [node["id"] for node in data["nodes"]] == [
        "Imputados",
        "Formalizados",
        "No formalizados",
        "Arresto domiciliario total",
        "Internación provisoria",
        "Prisión preventiva",
    ]
    links = {(link["source"], link["target"]): link["value"] for link in data["links"]}
    assert links[("Imputados", "Formalizados")] == 3
    assert links[("Imputados", "No formalizados")] == 1
    assert links[("Formalizados", "Prisión preventiva")] == 1
    assert links[("Formalizados", "Internación provisoria")] == 1
    assert links[("Formalizados", "Arresto domiciliario total")] == 1


def test_causas_por_fecha(client, login_reader):
    login_reader()
    today = date.today()
    desde = (today - timedelta(days=210)).isoformat()
    hasta = (today - timedelta(days=130)).isoformat()
    data = client.get(f"/api/causas-por-fecha?fechaInicio={desde}&fechaFin={hasta}").get_json()
    assert [row["ruc"] for row in data] == ["2300123456-7", "2300654321-K"]
    assert len(data[0]["imputados"]) == 3
    assert {row["cautelar"] for row in data[0]["imputados"]} == {"Prisión preventiva", "Internación provisoria", None}
    assert data[1]["imputados"][0]["nacionalidad"] == "Venezolana"

    assert client.get(f"/api/causas-por-fecha?fechaInicio={desde}").status_code == 400
    assert client.get(f"/api/causas-por-fecha?fechaInicio={hasta}&fechaFin={desde}").status_code == 400
    assert client.get("/api/causas-por-fecha?fechaInicio=ayer&fechaFin=hoy").status_code == 400
