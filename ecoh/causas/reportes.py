from __future__ import annotations

import csv
import logging
import unicodedata
from collections import Counter
from datetime import date, datetime
from io import BytesIO, StringIO

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from sqlalchemy import and_, or_
from sqlalchemy.orm import joinedload

from ecoh.causas.actividades import ESTADOS_ACTIVIDAD
from ecoh.causas.services import relacion_dto, telefono_dto
from ecoh.core.i18n import translate
from ecoh.core.models import (
    Actividad,
    Causa,
    CausaImputado,
    CausaRelacionada,
    Fiscal,
    Telefono,
    TelefonoCausa,
    TipoActividad,
)
from ecoh.core.utils import (
    filter_value,
    paginate_rows,
    parse_bool,
    parse_int,
    parse_optional_iso_date,
    porcentaje,
)

logger = logging.getLogger(__name__)

CSV_MIMETYPE = "text/csv; charset=utf-8"
XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

CRIMEN_ORGANIZADO_LABELS = {0: "Sí", 1: "No", 2: "Desconocido"}

RESUMEN_HEADERS = [
    "ID Fiscal",
    "Nombre Fiscal",
    "Total Causas",
    "Causas ECOH",
    "Causas Legadas",
    "Causas con SS",
    "Homicidios",
    "Crimen Organizado",
    "Porcentaje del Total",
]

DETALLE_HEADERS = [
    "ID",
    "RUC",
    "Denominación",
    "Fiscal",
    "Fecha del Hecho",
    "Fecha Toma Conocimiento",
    "RIT",
    "Delito",
    "Foco",
    "Tribunal",
    "Es ECOH",
    "Es Legada",
    "Constituye SS",
    "Homicidio Consumado",
    "Crimen Organizado",
    "Cant. Imputados",
    "Observación",
]

SOLICITUDES_TELEFONO = {
    "trafico": Telefono.solicita_trafico,
    "imei": Telefono.solicita_imei,
    "forense": Telefono.extraccion_forense,
    "custodia": Telefono.enviar_custodia,
}


def _si_no(value: bool | None) -> str:
    if value is None:
        return "N/A"
    return "Sí" if value else "No"


def _sin_tildes(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value or "")
    return "".join(ch for ch in normalized if not unicodedata.combining(ch)).lower()


# Reporte por fiscal


def _causas_fiscales(filters: dict[str, object]) -> list[Causa]:
    query = Causa.query.outerjoin(Fiscal, Fiscal.id == Causa.fiscal_id).options(
        joinedload(Causa.fiscal),
        joinedload(Causa.delito),
        joinedload(Causa.foco),
        joinedload(Causa.tribunal),
        joinedload(Causa.imputados),
    )
    fecha_inicio = parse_optional_iso_date(filter_value(filters, "fechaInicio"), "fecha de inicio")
    if fecha_inicio:
        query = query.filter(Causa.fecha_del_hecho >= fecha_inicio)
    fecha_fin = parse_optional_iso_date(filter_value(filters, "fechaFin"), "fecha de fin")
    if fecha_fin:
        query = query.filter(Causa.fecha_del_hecho <= fecha_fin)
    fiscal_id = filter_value(filters, "fiscalId")
    if fiscal_id:
        query = query.filter(Causa.fiscal_id == parse_int(fiscal_id, "fiscal"))
    if filter_value(filters, "causaEcoh"):
        query = query.filter(Causa.causa_ecoh.is_(parse_bool(filters.get("causaEcoh"))))
    if filter_value(filters, "causaLegada"):
        query = query.filter(Causa.causa_legada.is_(parse_bool(filters.get("causaLegada"))))
    crimen = filter_value(filters, "esCrimenOrganizado")
    if crimen:
        query = query.filter(Causa.es_crimen_organizado == parse_int(crimen, "crimen organizado"))
    return query.order_by(Fiscal.nombre.asc(), Causa.denominacion_causa.asc()).all()


def _detalle_causa(causa: Causa) -> dict[str, object]:
    return {
        "ID": causa.id,
        "RUC": causa.ruc or "N/A",
        "Denominación": causa.denominacion_causa,
        "Fiscal": causa.fiscal.nombre if causa.fiscal else "Sin Asignar",
        "Fecha del Hecho": causa.fecha_del_hecho.isoformat(),
        "Fecha Toma Conocimiento": causa.fecha_hora_toma_conocimiento.date().isoformat(),
        "RIT": causa.rit or "N/A",
        "Delito": causa.delito.nombre if causa.delito else "N/A",
        "Foco": causa.foco.nombre if causa.foco else "N/A",
        "Tribunal": causa.tribunal.nombre if causa.tribunal else "N/A",
        "Es ECOH": _si_no(causa.causa_ecoh),
        "Es Legada": _si_no(causa.causa_legada),
        "Constituye SS": _si_no(causa.constituye_ss),
        "Homicidio Consumado": _si_no(causa.homicidio_consumado),
        "Crimen Organizado": CRIMEN_ORGANIZADO_LABELS.get(causa.es_crimen_organizado, "Desconocido"),
        "Cant. Imputados": len(causa.imputados),
        "Observación": causa.observacion or "",
    }


def reporte_fiscales(filters: dict[str, object]) -> dict[str, object]:
    causas = _causas_fiscales(filters)
    fiscales = Fiscal.query.order_by(Fiscal.nombre.asc()).all()

    stats: dict[int | None, dict[str, object]] = {}
    for fiscal in fiscales:
        stats[fiscal.id] = {"fiscalId": fiscal.id, "fiscalNombre": fiscal.nombre}
    stats[None] = {"fiscalId": None, "fiscalNombre": translate("fiscal.sin_asignar")}
    for entry in stats.values():
        entry.update(
            {
                "totalCausas": 0,
                "causasEcoh": 0,
                "causasLegadas": 0,
                "causasConSS": 0,
                "causasHomicidio": 0,
                "causasCrimenOrg": 0,
            }
        )

    for causa in causas:
        entry = stats[causa.fiscal_id]
        entry["totalCausas"] += 1
        entry["causasEcoh"] += int(causa.causa_ecoh)
        entry["causasLegadas"] += int(causa.causa_legada)
        entry["causasConSS"] += int(causa.constituye_ss)
        entry["causasHomicidio"] += int(bool(causa.homicidio_consumado))
        entry["causasCrimenOrg"] += int(causa.es_crimen_organizado == 0)

    total = len(causas)
    resumen = []
    for entry in stats.values():
        if not entry["totalCausas"]:
            continue
        entry["porcentajeDelTotal"] = porcentaje(entry["totalCausas"], total)
        resumen.append(entry)
    resumen.sort(key=lambda item: (-item["totalCausas"], item["fiscalNombre"]))

    con_causas = sum(1 for item in resumen if item["fiscalId"] is not None)
    sin_fiscal = stats[None]["totalCausas"]
    return {
        "resumenPorFiscal": resumen,
        "detallesCausas": [_detalle_causa(causa) for causa in causas],
        "estadisticasGenerales": {
            "totalCausas": total,
            "fiscalesConCausas": con_causas,
            "fiscalesSinCausas": len(fiscales) - con_causas,
            "causasSinFiscal": sin_fiscal,
            "promedioCausasPorFiscal": round((total - sin_fiscal) / con_causas, 2) if con_causas else 0,
        },
    }


def _resumen_row(entry: dict[str, object]) -> dict[str, object]:
    return {
        "ID Fiscal": entry["fiscalId"] or "N/A",
        "Nombre Fiscal": entry["fiscalNombre"],
        "Total Causas": entry["totalCausas"],
        "Causas ECOH": entry["causasEcoh"],
        "Causas Legadas": entry["causasLegadas"],
        "Causas con SS": entry["causasConSS"],
        "Homicidios": entry["causasHomicidio"],
        "Crimen Organizado": entry["causasCrimenOrg"],
        "Porcentaje del Total": f"{entry['porcentajeDelTotal']:.2f}%",
    }


def _csv_bytes(headers: list[str], rows: list[dict[str, object]]) -> bytes:
    stream = StringIO()
    writer = csv.DictWriter(stream, fieldnames=headers)
    writer.writeheader()
    for row in rows:
        writer.writerow({key: row.get(key, "") for key in headers})
    return stream.getvalue().encode("utf-8")


def _write_sheet(worksheet, headers: list[str], rows: list[dict[str, object]]) -> None:
    header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
    header_font = Font(bold=True, color="FFFFFF")
    for col_idx, header in enumerate(headers, 1):
        cell = worksheet.cell(row=1, column=col_idx, value=header)
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = Alignment(horizontal="center", vertical="center")
    for row_idx, row in enumerate(rows, 2):
        for col_idx, header in enumerate(headers, 1):
            worksheet.cell(row=row_idx, column=col_idx, value=row.get(header, ""))
    for col_idx, header in enumerate(headers, 1):
        widest = max([len(str(row.get(header, ""))) for row in rows] + [len(header)])
        worksheet.column_dimensions[get_column_letter(col_idx)].width = min(widest + 2, 60)
    worksheet.freeze_panes = "A2"


def _info_rows(filters: dict[str, object], total: int, fiscales: int) -> list[dict[str, object]]:
    def aplicado(key: str, default: str) -> str:
        return filter_value(filters, key) or default

    crimen = filter_value(filters, "esCrimenOrganizado")
    return [
        {"Campo": "Fecha de Generación", "Valor": datetime.now().strftime("%Y-%m-%d %H:%M")},
        {"Campo": "Total de Causas", "Valor": total},
        {"Campo": "Fiscales con Causas", "Valor": fiscales},
        {"Campo": "Fecha Inicio", "Valor": aplicado("fechaInicio", "No aplicado")},
        {"Campo": "Fecha Fin", "Valor": aplicado("fechaFin", "No aplicado")},
        {"Campo": "Fiscal Específico", "Valor": aplicado("fiscalId", "Todos")},
        {"Campo": "Solo ECOH", "Valor": aplicado("causaEcoh", "Todos")},
        {"Campo": "Solo Legadas", "Valor": aplicado("causaLegada", "Todos")},
        {
            "Campo": "Crimen Organizado",
            "Valor": CRIMEN_ORGANIZADO_LABELS.get(parse_int(crimen, "crimen organizado"), "Todos")
            if crimen
            else "Todos",
        },
    ]


def fiscales_export(filters: dict[str, object], formato: str, export_limit: int = 5000) -> tuple[bytes, str, str]:
    """Devuelve (contenido, mimetype, nombre de archivo) del reporte por fiscal."""
    key = (formato or "").strip().lower()
    if key not in {"csv", "xlsx"}:
        raise ValueError("Formato no soportado. Use csv o xlsx")
    reporte = reporte_fiscales(filters)
    detalle = reporte["detallesCausas"][: max(1, export_limit)]
    filename = f"reporte-fiscales-{date.today().isoformat()}.{key}"

    if key == "csv":
        return _csv_bytes(DETALLE_HEADERS, detalle), CSV_MIMETYPE, filename

    resumen = [_resumen_row(entry) for entry in reporte["resumenPorFiscal"]]
    workbook = Workbook()
    ws_resumen = workbook.active
    ws_resumen.title = "Resumen por Fiscal"
    _write_sheet(ws_resumen, RESUMEN_HEADERS, resumen)
    _write_sheet(workbook.create_sheet("Detalle de Causas"), DETALLE_HEADERS, detalle)
    _write_sheet(
        workbook.create_sheet("Info del Reporte"),
        ["Campo", "Valor"],
        _info_rows(filters, len(reporte["detallesCausas"]), len(resumen)),
    )
    stream = BytesIO()
    workbook.save(stream)
    logger.info("Exportado reporte de fiscales (%d causas, xlsx)", len(detalle))
    return stream.getvalue(), XLSX_MIMETYPE, filename


# Reporte fiscal / causas / imputados


def reporte_fiscal_causas(filters: dict[str, object]) -> dict[str, object]:
    query = Fiscal.query.order_by(Fiscal.nombre.asc())
    fiscal_id = filter_value(filters, "fiscalId")
    if fiscal_id:
        query = query.filter(Fiscal.id == parse_int(fiscal_id, "fiscal"))

    fiscales = []
    totales = Counter()
    for fiscal in query.all():
        causas = []
        for causa in sorted(fiscal.causas, key=lambda item: item.fecha_del_hecho, reverse=True):
            imputados = [_imputado_cautelar(link) for link in causa.imputados]
            totales["causas"] += 1
            totales["imputados"] += len(imputados)
            totales["formalizados"] += sum(1 for row in imputados if row["formalizado"])
            totales["prision"] += sum(1 for row in imputados if row["tienePrisionPreventiva"])
            totales["internacion"] += sum(1 for row in imputados if row["tieneInternacionProvisoria"])
            causas.append(
                {
                    "id": causa.id,
                    "ruc": causa.ruc,
                    "rit": causa.rit,
                    "denominacionCausa": causa.denominacion_causa,
                    "fechaDelHecho": causa.fecha_del_hecho.isoformat(),
                    "numeroIta": causa.numero_ita,
                    "numeroPpp": causa.numero_ppp,
                    "observacion": causa.observacion,
                    "imputados": imputados,
                }
            )
        fiscales.append({"id": fiscal.id, "nombre": fiscal.nombre, "causas": causas})

    return {
        "fiscales": fiscales,
        "estadisticas": {
            "totalFiscales": len(fiscales),
            "totalCausas": totales["causas"],
            "totalImputados": totales["imputados"],
            "imputadosFormalizados": totales["formalizados"],
            "conPrisionPreventiva": totales["prision"],
            "conInternacionProvisoria": totales["internacion"],
        },
    }


def _imputado_cautelar(link: CausaImputado) -> dict[str, object]:
    cautelar = _sin_tildes(link.cautelar.nombre) if link.cautelar else ""
    return {
        "id": link.imputado.id,
        "nombreSujeto": link.imputado.nombre_sujeto,
        "docId": link.imputado.doc_id,
        "formalizado": link.formalizado,
        "fechaFormalizacion": link.fecha_formalizacion.isoformat() if link.fecha_formalizacion else None,
        "cautelar": {"id": link.cautelar.id, "nombre": link.cautelar.nombre} if link.cautelar else None,
        "tienePrisionPreventiva": "prision preventiva" in cautelar,
        "tieneInternacionProvisoria": "internacion provisoria" in cautelar,
    }


# Panel de telefonos


def telefonos_panel(filters: dict[str, object], page: int = 1, limit: int = 10, max_limit: int = 100) -> dict[str, object]:
    query = Telefono.query.options(joinedload(Telefono.proveedor), joinedload(Telefono.ubicacion)).order_by(
        Telefono.created_at.desc(), Telefono.id.desc()
    )
    ruc = filter_value(filters, "ruc")
    if ruc:
        query = (
            query.join(TelefonoCausa, TelefonoCausa.telefono_id == Telefono.id)
            .join(Causa, Causa.id == TelefonoCausa.causa_id)
            .filter(Causa.ruc.ilike(f"%{ruc}%"))
            .distinct()
        )
    proveedor_id = filter_value(filters, "proveedorId")
    if proveedor_id:
        query = query.filter(Telefono.proveedor_id == parse_int(proveedor_id, "proveedor"))
    ubicacion_id = filter_value(filters, "ubicacionId")
    if ubicacion_id:
        query = query.filter(Telefono.ubicacion_id == parse_int(ubicacion_id, "ubicación"))
    solicitud = filter_value(filters, "solicitud").lower()
    if solicitud:
        column = SOLICITUDES_TELEFONO.get(solicitud)
        if column is None:
            raise ValueError("Tipo de solicitud inválido")
        query = query.filter(column.is_(True))

    telefonos = query.all()
    por_proveedor = Counter((tel.proveedor_id, tel.proveedor.nombre) for tel in telefonos)
    por_ubicacion = Counter((tel.ubicacion_id, tel.ubicacion.nombre) for tel in telefonos)
    result = paginate_rows([telefono_dto(tel) for tel in telefonos], page, limit, max_limit)
    result["estadisticas"] = {
        "totalTelefonos": len(telefonos),
        "porProveedor": [
            {"proveedorId": key[0], "proveedor": key[1], "total": total} for key, total in por_proveedor.most_common()
        ],
        "porUbicacion": [
            {"ubicacionId": key[0], "ubicacion": key[1], "total": total} for key, total in por_ubicacion.most_common()
        ],
        "solicitudes": {
            "trafico": sum(1 for tel in telefonos if tel.solicita_trafico),
            "imei": sum(1 for tel in telefonos if tel.solicita_imei),
            "forense": sum(1 for tel in telefonos if tel.extraccion_forense),
            "custodia": sum(1 for tel in telefonos if tel.enviar_custodia),
        },
    }
    return result


# Reporte de actividades


def _actividades_query(filters: dict[str, object]):
    query = (
        Actividad.query.join(Causa, Causa.id == Actividad.causa_id)
        .options(
            joinedload(Actividad.tipo_actividad).joinedload(TipoActividad.area),
            joinedload(Actividad.causa).joinedload(Causa.delito),
            joinedload(Actividad.usuario),
            joinedload(Actividad.usuario_asignado),
        )
        .order_by(Actividad.fecha_termino.asc(), Actividad.id.asc())
    )
    desde = parse_optional_iso_date(filter_value(filters, "fechaDesde"), "fecha desde")
    if desde:
        query = query.filter(Actividad.fecha_inicio >= desde)
    hasta = parse_optional_iso_date(filter_value(filters, "fechaHasta"), "fecha hasta")
    if hasta:
        query = query.filter(Actividad.fecha_inicio <= hasta)
    usuario_id = filter_value(filters, "usuarioId")
    if usuario_id:
        # responsable: asignado o, sin asignacion, el creador
        usuario_id = parse_int(usuario_id, "usuario")
        query = query.filter(
            or_(
                Actividad.usuario_asignado_id == usuario_id,
                and_(Actividad.usuario_asignado_id.is_(None), Actividad.usuario_id == usuario_id),
            )
        )
    tipo_id = filter_value(filters, "tipoActividadId")
    if tipo_id:
        query = query.filter(Actividad.tipo_actividad_id == parse_int(tipo_id, "tipo de actividad"))
    ruc = filter_value(filters, "ruc")
    if ruc:
        query = query.filter(Causa.ruc.ilike(f"%{ruc}%"))
    return query


def _vencida(actividad: Actividad, hoy: date) -> bool:
    return actividad.fecha_termino < hoy and actividad.estado.value != "terminado"


def _seguimiento_por_causa(actividades: list[Actividad], hoy: date) -> list[dict[str, object]]:
    grouped: dict[int, list[Actividad]] = {}
    for actividad in actividades:
        grouped.setdefault(actividad.causa_id, []).append(actividad)

    causas = []
    for causa_id, items in grouped.items():
        causa = items[0].causa
        estados = Counter(item.estado.value for item in items)
        terminadas = [item for item in items if item.estado.value == "terminado"]
        dias = [(item.fecha_termino - item.fecha_inicio).days for item in terminadas]
        causas.append(
            {
                "causaId": causa_id,
                "ruc": causa.ruc,
                "denominacionCausa": causa.denominacion_causa,
                "delito": causa.delito.nombre if causa.delito else None,
                "estadisticas": {
                    "total": len(items),
                    "iniciadas": estados["inicio"],
                    "enProceso": estados["en_proceso"],
                    "terminadas": estados["terminado"],
                    "vencidas": sum(1 for item in items if _vencida(item, hoy)),
                    "porcentajeCompletado": porcentaje(estados["terminado"], len(items)),
                },
                "diasPromedio": round(sum(dias) / len(dias), 1) if dias else 0,
                "actividades": [
                    {
                        "id": item.id,
                        "tipoActividad": item.tipo_actividad.nombre,
                        "fechaInicio": item.fecha_inicio.isoformat(),
                        "fechaTermino": item.fecha_termino.isoformat(),
                        "estado": item.estado.value,
                        "responsable": item.responsable.nombre if item.responsable else None,
                        "vencida": _vencida(item, hoy),
                    }
                    for item in items
                ],
            }
        )
    # las causas menos avanzadas primero
    causas.sort(key=lambda item: (item["estadisticas"]["porcentajeCompletado"], item["causaId"]))
    return causas


def reporte_actividades(filters: dict[str, object], hoy: date | None = None) -> dict[str, object]:
    hoy = hoy or date.today()
    actividades = _actividades_query(filters).all()
    total = len(actividades)

    por_area = Counter()
    por_tipo: dict[int, dict[str, object]] = {}
    por_estado = Counter()
    for actividad in actividades:
        tipo = actividad.tipo_actividad
        area = tipo.area.nombre if tipo.area else "Sin área"
        estado = actividad.estado.value
        por_area[area] += 1
        por_estado[estado] += 1
        entry = por_tipo.setdefault(
            tipo.id,
            {
                "tipoActividadId": tipo.id,
                "tipoActividad": tipo.nombre,
                "area": area,
                "total": 0,
                "porEstado": {key: 0 for key in ESTADOS_ACTIVIDAD},
            },
        )
        entry["total"] += 1
        entry["porEstado"][estado] += 1

    tipos = sorted(por_tipo.values(), key=lambda item: (-item["total"], item["tipoActividad"]))
    for entry in tipos:
        entry["porcentaje"] = porcentaje(entry["total"], total)
    por_usuario = Counter(
        (actividad.responsable.id, actividad.responsable.nombre) for actividad in actividades if actividad.responsable
    )
    return {
        "totalActividades": total,
        "actividadesVencidas": sum(1 for actividad in actividades if _vencida(actividad, hoy)),
        "porcentajeCompletado": porcentaje(por_estado["terminado"], total),
        "porUsuario": [
            {"usuarioId": key[0], "nombre": key[1], "total": count} for key, count in por_usuario.most_common()
        ],
        "porCausa": _seguimiento_por_causa(actividades, hoy),
        "porArea": [
            {"area": area, "total": count, "porcentaje": porcentaje(count, total)}
            for area, count in por_area.most_common()
        ],
        "porTipo": tipos,
        "porEstado": [
            {
                "estado": estado,
                "label": translate(f"estado.{estado}"),
                "total": por_estado[estado],
                "porcentaje": porcentaje(por_estado[estado], total),
            }
            for estado in ESTADOS_ACTIVIDAD
        ],
    }


# Reporte de causas relacionadas


def reporte_causas_relacionadas(filters: dict[str, object]) -> dict[str, object]:
    formato = filter_value(filters, "formato").lower() or "detallado"
    if formato not in {"resumen", "detallado"}:
        raise ValueError("Formato inválido. Use resumen o detallado")
    query = CausaRelacionada.query.options(
        joinedload(CausaRelacionada.causa_madre),
        joinedload(CausaRelacionada.causa_arista),
    ).order_by(CausaRelacionada.fecha_relacion.desc(), CausaRelacionada.id.desc())
    tipo = filter_value(filters, "tipoRelacion")
    if tipo:
        query = query.filter(CausaRelacionada.tipo_relacion == tipo)
    desde = parse_optional_iso_date(filter_value(filters, "fechaDesde"), "fecha desde")
    if desde:
        query = query.filter(CausaRelacionada.fecha_relacion >= desde)
    hasta = parse_optional_iso_date(filter_value(filters, "fechaHasta"), "fecha hasta")
    if hasta:
        query = query.filter(CausaRelacionada.fecha_relacion <= hasta)
    relaciones = query.all()

    if formato == "detallado":
        return {"formato": formato, "total": len(relaciones), "relaciones": [relacion_dto(rel) for rel in relaciones]}

    madres = Counter(rel.causa_madre_id for rel in relaciones)
    causas_madre = {rel.causa_madre_id: rel.causa_madre for rel in relaciones}
    involucradas = set(madres) | {rel.causa_arista_id for rel in relaciones}
    tipos = Counter(rel.tipo_relacion for rel in relaciones if rel.tipo_relacion)
    return {
        "formato": formato,
        "resumen": {
            "totalRelaciones": len(relaciones),
            "totalCausasConRelaciones": len(involucradas),
            "causasMadre": len(madres),
            "causasArista": len({rel.causa_arista_id for rel in relaciones}),
        },
        "topCausasMadre": [
            {
                "id": causa_id,
                "ruc": causas_madre[causa_id].ruc,
                "denominacionCausa": causas_madre[causa_id].denominacion_causa,
                "totalRelaciones": count,
            }
            for causa_id, count in madres.most_common(5)
        ],
        "tiposRelacionMasComunes": [{"tipo": nombre, "total": count} for nombre, count in tipos.most_common()],
    }
