"""Seguimiento de plazos de formalizacion.

Un imputado formalizado con plazo de investigacion tiene
``dias_restantes = plazo - (hoy - fecha_formalizacion)``. El resultado se
clasifica en ``vencido`` (<= 0), ``proximo`` (<= umbral, 10 dias por defecto)
o ``normal``; sin formalizacion, fecha o plazo (o con plazo 0) la
clasificacion es ``ninguna``.
"""

from __future__ import annotations

from collections import Counter
from datetime import date

from flask import current_app, has_app_context
from sqlalchemy.orm import joinedload

from ecoh.core.i18n import translate
from ecoh.core.models import Causa, CausaImputado
from ecoh.core.utils import filter_value, parse_int, porcentaje

PLAZO_ALERTA_DIAS_DEFAULT = 10
ALERTA_PRIORIDAD = {"vencido": 0, "proximo": 1, "normal": 2, "ninguna": 3}


def dias_restantes(fecha_formalizacion: date | None, plazo: int | None, hoy: date | None = None) -> int | None:
    # plazo 0 means no deadline was set
    if fecha_formalizacion is None or not plazo:
        return None
    hoy = hoy or date.today()
    return plazo - (hoy - fecha_formalizacion).days


def _umbral_alerta() -> int:
    if has_app_context():
        return int(current_app.config.get("PLAZO_ALERTA_DIAS", PLAZO_ALERTA_DIAS_DEFAULT))
    return PLAZO_ALERTA_DIAS_DEFAULT


def clasificar_plazo(dias: int | None, umbral: int | None = None) -> str:
    if dias is None:
        return "ninguna"
    if dias <= 0:
        return "vencido"
    if dias <= (umbral if umbral is not None else _umbral_alerta()):
        return "proximo"
    return "normal"


def alerta_label(estado: str) -> str:
    return translate(f"alerta.{estado}")


def _plazo_link(link: CausaImputado, hoy: date) -> tuple[int | None, str]:
    fecha = link.fecha_formalizacion if link.formalizado else None
    dias = dias_restantes(fecha, link.plazo, hoy)
    return dias, clasificar_plazo(dias)


def _imputado_row(link: CausaImputado, hoy: date) -> dict[str, object]:
    dias, estado = _plazo_link(link, hoy)
    return {
        "id": link.id,
        "imputadoId": link.imputado_id,
        "nombreSujeto": link.imputado.nombre_sujeto,
        "docId": link.imputado.doc_id,
        "formalizado": link.formalizado,
        "fechaFormalizacion": link.fecha_formalizacion.isoformat() if link.fecha_formalizacion else None,
        "plazo": link.plazo,
        "cautelar": link.cautelar.nombre if link.cautelar else None,
        "diasRestantes": dias,
        "estadoPlazo": estado,
        "estadoPlazoLabel": alerta_label(estado),
    }


def _panel_query(filters: dict[str, object]):
    query = (
        CausaImputado.query.join(Causa, Causa.id == CausaImputado.causa_id)
        .options(
            joinedload(CausaImputado.causa).joinedload(Causa.delito),
            joinedload(CausaImputado.imputado),
            joinedload(CausaImputado.cautelar),
        )
        .filter(CausaImputado.esimputado.is_(True))
        .order_by(Causa.id.asc(), CausaImputado.id.asc())
    )
    delito_id = filter_value(filters, "delitoId")
    if delito_id:
        query = query.filter(Causa.delito_id == parse_int(delito_id, "delito"))
    fiscal_id = filter_value(filters, "fiscalId")
    if fiscal_id:
        query = query.filter(Causa.fiscal_id == parse_int(fiscal_id, "fiscal"))
    estado = filter_value(filters, "estadoId")
    if estado == "formalizados":
        query = query.filter(CausaImputado.formalizado.is_(True))
    elif estado == "no_formalizados":
        query = query.filter(CausaImputado.formalizado.is_(False))
    elif estado:
        raise ValueError("Estado de formalización inválido")
    ruc = filter_value(filters, "ruc")
    if ruc:
        query = query.filter(Causa.ruc.ilike(f"%{ruc}%"))
    return query


def _alerta_general(rows: list[dict[str, object]]) -> str:
    estados = {row["estadoPlazo"] for row in rows}
    if "vencido" in estados:
        return "vencido"
    if "proximo" in estados:
        return "proximo"
    return "normal"


def formalizaciones_panel(filters: dict[str, object], hoy: date | None = None) -> dict[str, object]:
    hoy = hoy or date.today()
    links = _panel_query(filters).all()

    grouped: dict[int, dict[str, object]] = {}
    dias_hasta_formalizacion: list[int] = []
    for link in links:
        causa = link.causa
        entry = grouped.get(causa.id)
        if entry is None:
            entry = {
                "causaId": causa.id,
                "ruc": causa.ruc,
                "denominacionCausa": causa.denominacion_causa,
                "fechaDelHecho": causa.fecha_del_hecho.isoformat(),
                "delitoId": causa.delito_id,
                "delito": causa.delito.nombre if causa.delito else None,
                "fiscal": causa.fiscal.nombre if causa.fiscal else None,
                "imputados": [],
            }
            grouped[causa.id] = entry
        entry["imputados"].append(_imputado_row(link, hoy))
        if link.formalizado and link.fecha_formalizacion:
            gap = (link.fecha_formalizacion - causa.fecha_del_hecho).days
            if gap >= 0:
                dias_hasta_formalizacion.append(gap)

    causas = []
    for entry in grouped.values():
        rows = entry["imputados"]
        total = len(rows)
        formalizados = sum(1 for row in rows if row["formalizado"])
        alerta = _alerta_general(rows)
        entry["estadisticas"] = {
            "totalImputados": total,
            "formalizados": formalizados,
            "noFormalizados": total - formalizados,
            "porcentajeFormalizados": porcentaje(formalizados, total),
            "porVencer": sum(1 for row in rows if row["estadoPlazo"] == "proximo"),
            "vencidos": sum(1 for row in rows if row["estadoPlazo"] == "vencido"),
        }
        entry["alertaGeneral"] = alerta
        entry["alertaGeneralLabel"] = alerta_label(alerta)
        causas.append(entry)
    causas.sort(key=lambda item: (ALERTA_PRIORIDAD[item["alertaGeneral"]], item["ruc"] or ""))

    total_imputados = sum(item["estadisticas"]["totalImputados"] for item in causas)
    total_formalizados = sum(item["estadisticas"]["formalizados"] for item in causas)
    estados = Counter(row["estadoPlazo"] for item in causas for row in item["imputados"])
    causas_con_formalizados = sum(1 for item in causas if item["estadisticas"]["formalizados"] > 0)
    promedio = round(sum(dias_hasta_formalizacion) / len(dias_hasta_formalizacion), 1) if dias_hasta_formalizacion else 0

    return {
        "causas": causas,
        "metricas": {
            "totalCausas": len(causas),
            "causasConFormalizados": causas_con_formalizados,
            "causasSinFormalizados": len(causas) - causas_con_formalizados,
            "totalImputados": total_imputados,
            "totalFormalizados": total_formalizados,
            "totalNoFormalizados": total_imputados - total_formalizados,
            "porcentajeFormalizados": porcentaje(total_formalizados, total_imputados),
            "alertas": {
                "vencidos": estados["vencido"],
                "porVencer": estados["proximo"],
                "enPlazo": estados["normal"],
            },
            "promedioDiasFormalizacion": promedio,
        },
        "distribucionPorDelito": _distribucion_por_delito(causas),
    }


def _distribucion_por_delito(causas: list[dict[str, object]]) -> list[dict[str, object]]:
    por_delito: dict[int | None, dict[str, object]] = {}
    for item in causas:
        entry = por_delito.setdefault(
            item["delitoId"],
            {
                "delitoId": item["delitoId"],
                "delito": item["delito"] or "Sin delito",
                "causas": 0,
                "imputados": 0,
                "formalizados": 0,
            },
        )
        entry["causas"] += 1
        entry["imputados"] += item["estadisticas"]["totalImputados"]
        entry["formalizados"] += item["estadisticas"]["formalizados"]
    distribucion = sorted(por_delito.values(), key=lambda entry: entry["delito"])
    for entry in distribucion:
        entry["porcentaje"] = porcentaje(entry["formalizados"], entry["imputados"])
    return distribucion


def alertas_formalizacion(hoy: date | None = None) -> dict[str, object]:
    """Imputados con medida cautelar cuyo plazo esta vencido o por vencer."""
    hoy = hoy or date.today()
    links = (
        CausaImputado.query.options(joinedload(CausaImputado.causa), joinedload(CausaImputado.imputado))
        .filter(CausaImputado.formalizado.is_(True))
        .filter(CausaImputado.cautelar_id.isnot(None))
        .all()
    )
    alertas = []
    for link in links:
        row = _imputado_row(link, hoy)
        if row["estadoPlazo"] not in {"vencido", "proximo"}:
            continue
        row["causaId"] = link.causa_id
        row["ruc"] = link.causa.ruc
        alertas.append(row)
    alertas.sort(key=lambda row: (ALERTA_PRIORIDAD[row["estadoPlazo"]], row["diasRestantes"]))
    return {
        "data": alertas,
        "total": len(alertas),
        "vencidos": sum(1 for row in alertas if row["estadoPlazo"] == "vencido"),
        "porVencer": sum(1 for row in alertas if row["estadoPlazo"] == "proximo"),
    }
