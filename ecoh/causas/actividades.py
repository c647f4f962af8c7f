from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import date

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from ecoh.causas.services import causa_resumen, get_or_404
from ecoh.core.extensions import db
from ecoh.core.i18n import translate
from ecoh.core.models import (
    Actividad,
    Causa,
    CorrelativoTipoActividad,
    EstadoActividad,
    TipoActividad,
    Usuario,
    format_correlativo,
)
from ecoh.core.utils import (
    NotFoundError,
    filter_value,
    parse_bool,
    parse_int,
    parse_iso_date,
    parse_optional_int,
    parse_optional_iso_date,
    text,
)

logger = logging.getLogger(__name__)

ESTADOS_ACTIVIDAD: tuple[str, ...] = tuple(estado.value for estado in EstadoActividad)


def normalizar_estado(raw: object) -> str:
    """Lleva cualquier etiqueta de estado a uno de los tres carriles del tablero.

    Acepta variantes en ingles y espanol ("In Progress", "EN_PROCESO",
    "completed", "Done"...). Lo que no se reconoce cae en ``inicio``.
    """
    value = raw.value if isinstance(raw, EstadoActividad) else str(raw or "")
    value = value.strip().lower()
    if "proceso" in value or "progress" in value:
        return EstadoActividad.EN_PROCESO.value
    if "terminado" in value or "complete" in value or "done" in value:
        return EstadoActividad.TERMINADO.value
    return EstadoActividad.INICIO.value


def _estado_de(item: object) -> object:
    if isinstance(item, Mapping):
        return item.get("estado")
    return getattr(item, "estado", None)


def actividades_por_estado(actividades: Iterable[object], estado: str) -> list[object]:
    carril = normalizar_estado(estado)
    return [item for item in actividades if normalizar_estado(_estado_de(item)) == carril]


def actividad_dto(actividad: Actividad) -> dict[str, object]:
    responsable = actividad.responsable
    return {
        "id": actividad.id,
        "causaId": actividad.causa_id,
        "causa": causa_resumen(actividad.causa),
        "tipoActividad": {
            "id": actividad.tipo_actividad.id,
            "nombre": actividad.tipo_actividad.nombre,
            "area": actividad.tipo_actividad.area.nombre if actividad.tipo_actividad.area else None,
        },
        "fechaInicio": actividad.fecha_inicio.isoformat(),
        "fechaTermino": actividad.fecha_termino.isoformat(),
        "estado": actividad.estado.value,
        "observacion": actividad.observacion,
        "glosaCierre": actividad.glosa_cierre,
        "usuarioId": actividad.usuario_id,
        "usuarioAsignadoId": actividad.usuario_asignado_id,
        "creador": actividad.usuario.nombre if actividad.usuario else None,
        "responsable": responsable.nombre if responsable else None,
        "delegada": actividad.delegada,
    }


def _base_query():
    return Actividad.query.options(
        joinedload(Actividad.causa),
        joinedload(Actividad.tipo_actividad).joinedload(TipoActividad.area),
        joinedload(Actividad.usuario),
        joinedload(Actividad.usuario_asignado),
    ).order_by(Actividad.fecha_termino.asc(), Actividad.id.asc())


def _apply_filters(query, filters: dict[str, object]):
    causa_id = filter_value(filters, "causaId")
    if causa_id:
        query = query.filter(Actividad.causa_id == parse_int(causa_id, "causa"))
    tipo_id = filter_value(filters, "tipoActividadId")
    if tipo_id:
        query = query.filter(Actividad.tipo_actividad_id == parse_int(tipo_id, "tipo de actividad"))
    estado = filter_value(filters, "estado")
    if estado:
        query = query.filter(Actividad.estado == EstadoActividad(normalizar_estado(estado)))
    asignado = filter_value(filters, "usuarioAsignadoId")
    if asignado:
        query = query.filter(Actividad.usuario_asignado_id == parse_int(asignado, "usuario asignado"))
    desde = parse_optional_iso_date(filter_value(filters, "fechaDesde"), "fecha desde")
    if desde:
        query = query.filter(Actividad.fecha_inicio >= desde)
    hasta = parse_optional_iso_date(filter_value(filters, "fechaHasta"), "fecha hasta")
    if hasta:
        query = query.filter(Actividad.fecha_inicio <= hasta)
    return query


def list_actividades(filters: dict[str, object]) -> list[Actividad]:
    return _apply_filters(_base_query(), filters).all()


def _de_usuario(query, user: Usuario):
    # Asignadas al usuario, o creadas por el sin delegar
    return query.filter(
        or_(
            Actividad.usuario_asignado_id == user.id,
            (Actividad.usuario_id == user.id) & Actividad.usuario_asignado_id.is_(None),
        )
    )


def actividades_usuario(user: Usuario, filters: dict[str, object]) -> list[Actividad]:
    return _de_usuario(_apply_filters(_base_query(), filters), user).all()


def kanban_board(filters: dict[str, object], user: Usuario | None = None) -> dict[str, object]:
    query = _apply_filters(_base_query(), {k: v for k, v in filters.items() if k != "estado"})
    if user is not None and parse_bool(filters.get("soloMias")):
        query = _de_usuario(query, user)
    actividades = [actividad_dto(item) for item in query.all()]
    columnas = []
    for estado in ESTADOS_ACTIVIDAD:
        carril = actividades_por_estado(actividades, estado)
        columnas.append(
            {
                "estado": estado,
                "label": translate(f"estado.{estado}"),
                "total": len(carril),
                "actividades": carril,
            }
        )
    return {"columnas": columnas, "total": len(actividades)}


def actividad_by_id(actividad_id: int) -> Actividad:
    return get_or_404(Actividad, actividad_id, "Actividad")


def _resolver_asignado(raw: object, user: Usuario) -> int:
    asignado_id = parse_optional_int(raw, "usuario asignado")
    if asignado_id is None or asignado_id == user.id:
        return user.id
    asignado = Usuario.query.filter_by(id=asignado_id, activo=True).first()
    if not asignado:
        # Usuario desconocido: la actividad queda autoasignada
        logger.warning("Usuario asignado %s inexistente; se asigna a %s", asignado_id, user.email)
        return user.id
    logger.info("Actividad delegada por %s a %s", user.email, asignado.email)
    return asignado.id


def _validar_cierre(estado: str, glosa: str | None) -> None:
    if estado == EstadoActividad.TERMINADO.value and not (glosa or "").strip():
        raise ValueError("Debe ingresar una glosa de cierre para terminar la actividad")


def create_actividad(payload: dict[str, object], user: Usuario) -> Actividad:
    causa = get_or_404(Causa, parse_int(payload.get("causaId"), "causa"), "Causa")
    tipo_id = parse_int(payload.get("tipoActividadId"), "tipo de actividad")
    if not TipoActividad.query.filter_by(id=tipo_id).first():
        raise ValueError("Tipo de actividad no existe")
    fecha_inicio = parse_iso_date(payload.get("fechaInicio"), "fecha de inicio")
    fecha_termino = parse_iso_date(payload.get("fechaTermino"), "fecha de término")
    if fecha_termino < fecha_inicio:
        raise ValueError("La fecha de término debe ser posterior a la fecha de inicio")
    estado = normalizar_estado(payload.get("estado"))
    glosa = text(payload.get("glosaCierre")) or None
    _validar_cierre(estado, glosa)

    actividad = Actividad(
        causa_id=causa.id,
        tipo_actividad_id=tipo_id,
        usuario_id=user.id,
        usuario_asignado_id=_resolver_asignado(payload.get("usuarioAsignadoId"), user),
        fecha_inicio=fecha_inicio,
        fecha_termino=fecha_termino,
        estado=EstadoActividad(estado),
        observacion=text(payload.get("observacion")),
        glosa_cierre=glosa,
    )
    db.session.add(actividad)
    db.session.commit()
    logger.info("Actividad %s creada en causa %s (%s)", actividad.id, causa.label, estado)
    return actividad


def update_actividad(actividad_id: int, payload: dict[str, object], user: Usuario) -> Actividad:
    actividad = actividad_by_id(actividad_id)
    fecha_inicio = (
        parse_iso_date(payload.get("fechaInicio"), "fecha de inicio")
        if "fechaInicio" in payload
        else actividad.fecha_inicio
    )
    fecha_termino = (
        parse_iso_date(payload.get("fechaTermino"), "fecha de término")
        if "fechaTermino" in payload
        else actividad.fecha_termino
    )
    if fecha_termino < fecha_inicio:
        raise ValueError("La fecha de término debe ser posterior a la fecha de inicio")
    estado = normalizar_estado(payload["estado"]) if "estado" in payload else actividad.estado.value
    glosa = (text(payload.get("glosaCierre")) or None) if "glosaCierre" in payload else actividad.glosa_cierre
    _validar_cierre(estado, glosa)

    with db.session.no_autoflush:
        if "tipoActividadId" in payload:
            tipo_id = parse_int(payload.get("tipoActividadId"), "tipo de actividad")
            if not TipoActividad.query.filter_by(id=tipo_id).first():
                raise ValueError("Tipo de actividad no existe")
            actividad.tipo_actividad_id = tipo_id
        if "usuarioAsignadoId" in payload:
            actividad.usuario_asignado_id = _resolver_asignado(payload.get("usuarioAsignadoId"), user)
        # El orden evita que el validador compare contra la fecha anterior
        if fecha_inicio <= actividad.fecha_termino:
            actividad.fecha_inicio = fecha_inicio
            actividad.fecha_termino = fecha_termino
        else:
            actividad.fecha_termino = fecha_termino
            actividad.fecha_inicio = fecha_inicio
        if "observacion" in payload:
            actividad.observacion = text(payload.get("observacion"))
        actividad.estado = EstadoActividad(estado)
        actividad.glosa_cierre = glosa
    db.session.commit()
    return actividad


def mover_actividad(actividad_id: int, estado: object, glosa_cierre: object, user: Usuario) -> Actividad:
    """Mueve una tarjeta del tablero a otro carril.

    Terminar exige glosa de cierre no vacia; si falta, no se persiste nada.
    Al salir de ``terminado`` la glosa se conserva.
    """
    actividad = actividad_by_id(actividad_id)
    raw = text(estado)
    if not raw:
        raise ValueError("Estado obligatorio")
    destino = normalizar_estado(raw)
    glosa = text(glosa_cierre) or None
    if destino == EstadoActividad.TERMINADO.value:
        _validar_cierre(destino, glosa)
        actividad.glosa_cierre = glosa
    origen = actividad.estado.value
    actividad.estado = EstadoActividad(destino)
    db.session.commit()
    logger.info("Actividad %s: %s -> %s por %s", actividad.id, origen, destino, user.email)
    return actividad


def delete_actividad(actividad_id: int) -> None:
    actividad = actividad_by_id(actividad_id)
    db.session.delete(actividad)
    db.session.commit()


# Correlativos de informes


def correlativo_dto(correlativo: CorrelativoTipoActividad) -> dict[str, object]:
    return {
        "id": correlativo.id,
        "tipoActividadId": correlativo.tipo_actividad_id,
        "tipoActividad": correlativo.tipo_actividad.nombre if correlativo.tipo_actividad else None,
        "numero": correlativo.numero,
        "sigla": correlativo.sigla,
        "anio": correlativo.anio,
        "correlativoCompleto": correlativo.correlativo_completo,
        "usuario": correlativo.usuario.nombre if correlativo.usuario else None,
        "createdAt": correlativo.created_at.isoformat(),
    }


def _tipo_con_sigla(tipo_id: int) -> TipoActividad:
    tipo = TipoActividad.query.filter_by(id=tipo_id).first()
    if not tipo:
        raise NotFoundError("Tipo de actividad no encontrado")
    if not (tipo.siglainf or "").strip():
        raise ValueError(f"El tipo de actividad '{tipo.nombre}' no tiene sigla de informe")
    return tipo


def siguiente_numero(tipo_id: int, anio: int) -> int:
    current = (
        db.session.query(func.max(CorrelativoTipoActividad.numero))
        .filter(CorrelativoTipoActividad.tipo_actividad_id == tipo_id)
        .filter(CorrelativoTipoActividad.anio == anio)
        .scalar()
    )
    return (current or 0) + 1


def preview_correlativos(filters: dict[str, object], anio: int | None = None) -> list[dict[str, object]]:
    anio = anio or date.today().year
    query = TipoActividad.query.filter(TipoActividad.siglainf.isnot(None)).order_by(TipoActividad.nombre.asc())
    tipo_id = filter_value(filters, "tipoActividadId")
    if tipo_id:
        query = query.filter(TipoActividad.id == parse_int(tipo_id, "tipo de actividad"))
    rows = []
    for tipo in query.all():
        if not tipo.siglainf.strip():
            continue
        numero = siguiente_numero(tipo.id, anio)
        rows.append(
            {
                "tipoActividadId": tipo.id,
                "tipoActividad": tipo.nombre,
                "sigla": tipo.siglainf,
                "anio": anio,
                "siguienteNumero": numero,
                "siguienteCorrelativo": format_correlativo(tipo.siglainf, numero),
            }
        )
    return rows


def _insert_correlativo(tipo: TipoActividad, anio: int, user: Usuario) -> CorrelativoTipoActividad:
    correlativo = CorrelativoTipoActividad(
        tipo_actividad_id=tipo.id,
        numero=siguiente_numero(tipo.id, anio),
        sigla=tipo.siglainf,
        anio=anio,
        usuario_id=user.id,
    )
    db.session.add(correlativo)
    db.session.commit()
    return correlativo


def generar_correlativo(payload: dict[str, object], user: Usuario, anio: int | None = None) -> CorrelativoTipoActividad:
    tipo = _tipo_con_sigla(parse_int(payload.get("tipoActividadId"), "tipo de actividad"))
    anio = anio or date.today().year
    try:
        correlativo = _insert_correlativo(tipo, anio, user)
    except IntegrityError:
        # Un alta concurrente tomo el mismo numero; un solo reintento
        db.session.rollback()
        logger.warning("Colisión de correlativo %s/%s; reintentando", tipo.siglainf, anio)
        correlativo = _insert_correlativo(tipo, anio, user)
    logger.info("Correlativo %s generado por %s", correlativo.correlativo_completo, user.email)
    return correlativo


def historial_correlativos(filters: dict[str, object]) -> list[CorrelativoTipoActividad]:
    query = CorrelativoTipoActividad.query.options(
        joinedload(CorrelativoTipoActividad.tipo_actividad),
        joinedload(CorrelativoTipoActividad.usuario),
    ).order_by(CorrelativoTipoActividad.created_at.desc(), CorrelativoTipoActividad.id.desc())
    anio = filter_value(filters, "anio")
    if anio:
        query = query.filter(CorrelativoTipoActividad.anio == parse_int(anio, "año"))
    tipo_id = filter_value(filters, "tipoActividadId")
    if tipo_id:
        query = query.filter(CorrelativoTipoActividad.tipo_actividad_id == parse_int(tipo_id, "tipo de actividad"))
    return query.all()
