"""Agregados para los graficos del tablero de analitica.

Cada funcion devuelve datos listos para serializar; el filtro ``year``
acota por fecha del hecho y acepta ``todos``/``all`` como sin filtro.
"""

from __future__ import annotations

from collections import Counter
from datetime import date

from sqlalchemy.orm import joinedload

from ecoh.core.models import (
    Causa,
    CausaImputado,
    CrimenOrganizado,
    Imputado,
)
from ecoh.core.utils import filter_value, parse_int, parse_iso_date, porcentaje

SIN_ASIGNAR = "Sin asignar"

RESPONSABLES = {
    "abogado": ("abogado_id", "abogado"),
    "analista": ("analista_id", "analista"),
    "atvt": ("atvt_id", "atvt"),
}


def _anio(filters: dict[str, object]) -> int | None:
    raw = filter_value(filters, "year")
    if not raw or raw.lower() == "todos":
        return None
    return parse_int(raw, "año")


def _causas_query(filters: dict[str, object]):
    query = Causa.query
    anio = _anio(filters)
    if anio is not None:
        query = query.filter(Causa.fecha_del_hecho >= date(anio, 1, 1), Causa.fecha_del_hecho <= date(anio, 12, 31))
    return query


def causas_por_responsable(tipo: str, filters: dict[str, object]) -> list[dict[str, object]]:
    if tipo not in RESPONSABLES:
        raise ValueError("Tipo de responsable inválido. Use abogado, analista o atvt")
    columna, relacion = RESPONSABLES[tipo]
    causas = _causas_query(filters).options(joinedload(getattr(Causa, relacion))).all()
    conteo = Counter()
    for causa in causas:
        responsable = getattr(causa, relacion)
        # las causas sin ATVT no se informan
        if responsable is None and tipo == "atvt":
            continue
        key = (getattr(causa, columna), responsable.nombre if responsable else SIN_ASIGNAR)
        conteo[key] += 1
    return [
        {"id": key[0], "nombre": key[1], "total": total}
        for key, total in sorted(conteo.items(), key=lambda item: (-item[1], item[0][1]))
    ]


def crimen_organizado(filters: dict[str, object]) -> dict[str, object]:
    query = _causas_query(filters).options(joinedload(Causa.delito))
    delito_id = filter_value(filters, "delitoId")
    if delito_id and delito_id.lower() != "todos":
        query = query.filter(Causa.delito_id == parse_int(delito_id, "delito"))
    causas = query.all()
    organizadas = [causa for causa in causas if causa.es_crimen_organizado == CrimenOrganizado.SI.value]
    por_delito = Counter(causa.delito.nombre if causa.delito else "Sin delito" for causa in organizadas)
    return {
        "totalCausas": len(causas),
        "causasCrimenOrganizado": len(organizadas),
        "porcentaje": porcentaje(len(organizadas), len(causas)),
        "resumenPorDelito": [
            {"delito": nombre, "cantidad": cantidad}
            for nombre, cantidad in sorted(por_delito.items(), key=lambda item: (-item[1], item[0]))
        ],
    }


def distribucion_nacionalidades(filters: dict[str, object]) -> list[dict[str, object]]:
    query = Imputado.query.options(joinedload(Imputado.nacionalidad))
    anio = _anio(filters)
    if anio is not None:
        causa_ids = [causa.id for causa in _causas_query(filters).all()]
        query = query.join(CausaImputado, CausaImputado.imputado_id == Imputado.id).filter(
            CausaImputado.causa_id.in_(causa_ids)
        )
    # un imputado en dos causas del periodo cuenta una vez
    imputados = {imputado.id: imputado for imputado in query.all()}.values()
    conteo = Counter(imputado.nacionalidad.nombre if imputado.nacionalidad else "Desconocida" for imputado in imputados)
    return [
        {"nacionalidad": nombre, "total": total}
        for nombre, total in sorted(conteo.items(), key=lambda item: (-item[1], item[0]))
    ]


def flujo_imputados(filters: dict[str, object]) -> dict[str, object]:
    """Nodos y enlaces para el diagrama imputados -> formalizacion -> cautelar."""
    query = (
        CausaImputado.query.join(Causa, Causa.id == CausaImputado.causa_id)
        .options(joinedload(CausaImputado.cautelar))
        .filter(CausaImputado.esimputado.is_(True))
    )
    anio = _anio(filters)
    if anio is not None:
        query = query.filter(Causa.fecha_del_hecho >= date(anio, 1, 1), Causa.fecha_del_hecho <= date(anio, 12, 31))
    links = query.all()

    formalizados = [link for link in links if link.formalizado]
    cautelares = Counter(link.cautelar.nombre for link in formalizados if link.cautelar)
    nodes = [{"id": "Imputados"}, {"id": "Formalizados"}, {"id": "No formalizados"}]
    nodes.extend({"id": nombre} for nombre in sorted(cautelares))
    edges = [
        {"source": "Imputados", "target": "Formalizados", "value": len(formalizados)},
        {"source": "Imputados", "target": "No formalizados", "value": len(links) - len(formalizados)},
    ]
    edges.extend(
        {"source": "Formalizados", "target": nombre, "value": cautelares[nombre]} for nombre in sorted(cautelares)
    )
    return {"nodes": nodes, "links": edges}


def causas_por_fecha(filters: dict[str, object]) -> list[dict[str, object]]:
    if not filter_value(filters, "fechaInicio") or not filter_value(filters, "fechaFin"):
        raise ValueError("Los parámetros fechaInicio y fechaFin son requeridos")
    desde = parse_iso_date(filters["fechaInicio"], "fecha de inicio")
    hasta = parse_iso_date(filters["fechaFin"], "fecha de fin")
    if hasta < desde:
        raise ValueError("La fecha de fin no puede ser anterior a la fecha de inicio")
    causas = (
        Causa.query.options(
            joinedload(Causa.delito),
            joinedload(Causa.imputados).joinedload(CausaImputado.imputado).joinedload(Imputado.nacionalidad),
            joinedload(Causa.imputados).joinedload(CausaImputado.cautelar),
        )
        .filter(Causa.fecha_del_hecho >= desde, Causa.fecha_del_hecho <= hasta)
        .order_by(Causa.fecha_del_hecho.asc(), Causa.id.asc())
        .all()
    )
    return [
        {
            "id": causa.id,
            "ruc": causa.ruc,
            "denominacionCausa": causa.denominacion_causa,
            "fechaDelHecho": causa.fecha_del_hecho.isoformat(),
            "delito": causa.delito.nombre if causa.delito else None,
            "imputados": [
                {
                    "id": link.imputado.id,
                    "nombreSujeto": link.imputado.nombre_sujeto,
                    "docId": link.imputado.doc_id,
                    "alias": link.imputado.alias,
                    "nacionalidad": link.imputado.nacionalidad.nombre if link.imputado.nacionalidad else None,
                    "formalizado": link.formalizado,
                    "fechaFormalizacion": link.fecha_formalizacion.isoformat() if link.fecha_formalizacion else None,
                    "cautelar": link.cautelar.nombre if link.cautelar else None,
                }
                for link in causa.imputados
            ],
        }
        for causa in causas
    ]
