from __future__ import annotations

import logging
import re
from datetime import date

from sqlalchemy import or_
from sqlalchemy.orm import joinedload

from ecoh.causas.plazos import clasificar_plazo, dias_restantes
from ecoh.core.extensions import db
from ecoh.core.models import (
    Abogado,
    Analista,
    Area,
    Atvt,
    Causa,
    CausaImputado,
    CausaRelacionada,
    CausaVictima,
    Cautelar,
    CrimenOrganizado,
    Delito,
    Fiscal,
    Foco,
    Imputado,
    MedidaIntrusiva,
    MiembroOrganizacion,
    Nacionalidad,
    OrganizacionCausa,
    OrganizacionDelictual,
    OrigenCausa,
    Proveedor,
    ResolucionMedida,
    Telefono,
    TelefonoCausa,
    TipoActividad,
    TipoOrganizacion,
    Tribunal,
    UbicacionTelefono,
    UnidadPolicial,
    Usuario,
    Victima,
)
from ecoh.core.utils import (
    NotFoundError,
    filter_value,
    formatear_rut,
    parse_bool,
    parse_int,
    parse_iso_date,
    parse_iso_datetime,
    parse_list,
    parse_optional_int,
    parse_optional_iso_date,
    text,
    validar_rut,
)

logger = logging.getLogger(__name__)

CATALOGOS: dict[str, type] = {
    "delitos": Delito,
    "focos": Foco,
    "fiscales": Fiscal,
    "abogados": Abogado,
    "analistas": Analista,
    "atvts": Atvt,
    "tribunales": Tribunal,
    "nacionalidades": Nacionalidad,
    "cautelares": Cautelar,
    "origenes": OrigenCausa,
    "areas": Area,
    "tipos-actividad": TipoActividad,
    "proveedores": Proveedor,
    "ubicaciones": UbicacionTelefono,
    "unidades-policiales": UnidadPolicial,
    "tipos-organizacion": TipoOrganizacion,
}

_RUT_LIKE = re.compile(r"[\d.\-kK]+")


def ref(item) -> dict[str, object] | None:
    if item is None:
        return None
    return {"id": item.id, "nombre": item.nombre}


def get_or_404(model, record_id: int, label: str):
    item = model.query.filter_by(id=record_id).first()
    if not item:
        raise NotFoundError(f"{label} no encontrado")
    return item


def _optional_fk(payload: dict[str, object], key: str, model, label: str) -> int | None:
    record_id = parse_optional_int(payload.get(key), key)
    if record_id is None:
        return None
    if not model.query.filter_by(id=record_id).first():
        raise ValueError(f"{label} no existe")
    return record_id


def _required_fk(payload: dict[str, object], key: str, model, label: str) -> int:
    record_id = _optional_fk(payload, key, model, label)
    if record_id is None:
        raise ValueError(f"{label} es obligatorio")
    return record_id


# Catalogos


def catalogo_model(nombre: str):
    model = CATALOGOS.get((nombre or "").strip().lower())
    if model is None:
        raise NotFoundError("Catálogo no encontrado")
    return model


def catalogo_dto(item) -> dict[str, object]:
    row = {"id": item.id, "nombre": item.nombre}
    if isinstance(item, TipoActividad):
        row.update(
            {
                "siglainf": item.siglainf,
                "areaId": item.area_id,
                "area": item.area.nombre if item.area else None,
                "activo": item.activo,
            }
        )
    elif isinstance(item, OrigenCausa):
        row.update({"codigo": item.codigo, "activo": item.activo})
    return row


def list_catalogo(nombre: str) -> list[dict[str, object]]:
    model = catalogo_model(nombre)
    return [catalogo_dto(item) for item in model.query.order_by(model.nombre.asc()).all()]


def create_catalogo_item(nombre: str, payload: dict[str, object]):
    model = catalogo_model(nombre)
    item_nombre = text(payload.get("nombre"))
    if not item_nombre:
        raise ValueError("El nombre es obligatorio")
    if model.query.filter(model.nombre == item_nombre).first():
        raise ValueError(f"Ya existe '{item_nombre}' en el catálogo")

    item = model(nombre=item_nombre)
    if model is TipoActividad:
        item.siglainf = text(payload.get("siglainf")).upper() or None
        item.area_id = _optional_fk(payload, "areaId", Area, "Área")
    elif model is OrigenCausa:
        codigo = text(payload.get("codigo")).upper()
        if not codigo:
            raise ValueError("El código es obligatorio")
        item.codigo = codigo
    db.session.add(item)
    db.session.commit()
    logger.info("Catálogo %s: alta de '%s'", nombre, item_nombre)
    return item


def list_usuarios() -> list[Usuario]:
    return Usuario.query.filter_by(activo=True).order_by(Usuario.nombre.asc()).all()


# Causas

CAUSA_TEXT_FIELDS = {
    "rit": "rit",
    "folioBw": "folio_bw",
    "coordenadasSs": "coordenadas_ss",
    "numeroIta": "numero_ita",
    "numeroPpp": "numero_ppp",
    "observacion": "observacion",
}
CAUSA_BOOL_FIELDS = {
    "causaEcoh": "causa_ecoh",
    "causaSacfi": "causa_sacfi",
    "causaLegada": "causa_legada",
    "constituyeSs": "constituye_ss",
}
CAUSA_OPTIONAL_DATE_FIELDS = {"fechaIta": "fecha_ita", "fechaPpp": "fecha_ppp"}
CAUSA_FK_FIELDS = {
    "focoId": ("foco_id", Foco, "Foco"),
    "tribunalId": ("tribunal_id", Tribunal, "Tribunal"),
    "fiscalId": ("fiscal_id", Fiscal, "Fiscal"),
    "abogadoId": ("abogado_id", Abogado, "Abogado"),
    "analistaId": ("analista_id", Analista, "Analista"),
    "atvtId": ("atvt_id", Atvt, "ATVT"),
    "origenId": ("origen_id", OrigenCausa, "Origen"),
}


def causa_dto(causa: Causa) -> dict[str, object]:
    return {
        "id": causa.id,
        "ruc": causa.ruc,
        "rit": causa.rit,
        "denominacionCausa": causa.denominacion_causa,
        "fechaDelHecho": causa.fecha_del_hecho.isoformat(),
        "fechaHoraTomaConocimiento": causa.fecha_hora_toma_conocimiento.isoformat(),
        "causaEcoh": causa.causa_ecoh,
        "causaSacfi": causa.causa_sacfi,
        "causaLegada": causa.causa_legada,
        "constituyeSs": causa.constituye_ss,
        "homicidioConsumado": causa.homicidio_consumado,
        "esCrimenOrganizado": causa.es_crimen_organizado,
        "folioBw": causa.folio_bw,
        "coordenadasSs": causa.coordenadas_ss,
        "numeroIta": causa.numero_ita,
        "fechaIta": causa.fecha_ita.isoformat() if causa.fecha_ita else None,
        "numeroPpp": causa.numero_ppp,
        "fechaPpp": causa.fecha_ppp.isoformat() if causa.fecha_ppp else None,
        "observacion": causa.observacion,
        "delito": ref(causa.delito),
        "foco": ref(causa.foco),
        "tribunal": ref(causa.tribunal),
        "fiscal": ref(causa.fiscal),
        "abogado": ref(causa.abogado),
        "analista": ref(causa.analista),
        "atvt": ref(causa.atvt),
        "origen": ref(causa.origen),
        "totalImputados": len(causa.imputados),
    }


def causa_resumen(causa: Causa | None) -> dict[str, object] | None:
    if causa is None:
        return None
    return {"id": causa.id, "ruc": causa.ruc, "denominacionCausa": causa.denominacion_causa}


def _apply_causa_payload(causa: Causa, payload: dict[str, object], creating: bool) -> None:
    def present(key: str) -> bool:
        return creating or key in payload

    if present("ruc"):
        ruc = text(payload.get("ruc")) or None
        if ruc:
            existing = Causa.query.filter_by(ruc=ruc).first()
            if existing and existing.id != causa.id:
                raise ValueError(f"Ya existe una causa con RUC {ruc}")
        causa.ruc = ruc
    if present("denominacionCausa"):
        denominacion = text(payload.get("denominacionCausa"))
        if not denominacion:
            raise ValueError("La denominación de la causa es obligatoria")
        causa.denominacion_causa = denominacion
    if present("fechaDelHecho"):
        causa.fecha_del_hecho = parse_iso_date(payload.get("fechaDelHecho"), "fecha del hecho")
    if present("fechaHoraTomaConocimiento"):
        causa.fecha_hora_toma_conocimiento = parse_iso_datetime(
            payload.get("fechaHoraTomaConocimiento"),
            "fecha de toma de conocimiento",
        )
    if present("delitoId"):
        causa.delito_id = _required_fk(payload, "delitoId", Delito, "Delito")

    for key, attr in CAUSA_TEXT_FIELDS.items():
        if present(key):
            setattr(causa, attr, text(payload.get(key)))
    for key, attr in CAUSA_BOOL_FIELDS.items():
        if present(key):
            setattr(causa, attr, parse_bool(payload.get(key)))
    for key, attr in CAUSA_OPTIONAL_DATE_FIELDS.items():
        if present(key):
            setattr(causa, attr, parse_optional_iso_date(payload.get(key), key))
    for key, (attr, model, label) in CAUSA_FK_FIELDS.items():
        if present(key):
            setattr(causa, attr, _optional_fk(payload, key, model, label))

    if present("homicidioConsumado"):
        raw = payload.get("homicidioConsumado")
        causa.homicidio_consumado = None if text(raw) == "" else parse_bool(raw)
    if present("esCrimenOrganizado"):
        raw = payload.get("esCrimenOrganizado")
        value = CrimenOrganizado.DESCONOCIDO.value if text(raw) == "" else parse_int(raw, "crimen organizado")
        if value not in {item.value for item in CrimenOrganizado}:
            raise ValueError("Valor de crimen organizado inválido (0 = sí, 1 = no, 2 = desconocido)")
        causa.es_crimen_organizado = value


def list_causas(filters: dict[str, object]) -> list[Causa]:
    query = Causa.query.options(joinedload(Causa.delito), joinedload(Causa.fiscal)).order_by(
        Causa.fecha_del_hecho.desc(), Causa.id.desc()
    )
    search = filter_value(filters, "q")
    if search:
        like = f"%{search}%"
        query = query.filter(or_(Causa.ruc.ilike(like), Causa.denominacion_causa.ilike(like), Causa.rit.ilike(like)))
    delito_id = filter_value(filters, "delitoId")
    if delito_id:
        query = query.filter(Causa.delito_id == parse_int(delito_id, "delito"))
    fiscal_id = filter_value(filters, "fiscalId")
    if fiscal_id:
        query = query.filter(Causa.fiscal_id == parse_int(fiscal_id, "fiscal"))
    if filter_value(filters, "causaEcoh"):
        query = query.filter(Causa.causa_ecoh.is_(parse_bool(filters.get("causaEcoh"))))
    crimen = filter_value(filters, "esCrimenOrganizado")
    if crimen:
        query = query.filter(Causa.es_crimen_organizado == parse_int(crimen, "crimen organizado"))
    return query.all()


def search_causas(search_text: str, limit: int = 20) -> list[Causa]:
    raw = (search_text or "").strip()
    if not raw:
        return []
    like = f"%{raw}%"
    return (
        Causa.query.filter(or_(Causa.ruc.ilike(like), Causa.denominacion_causa.ilike(like)))
        .order_by(Causa.ruc.asc())
        .limit(limit)
        .all()
    )


def causa_by_id(causa_id: int) -> Causa:
    return get_or_404(Causa, causa_id, "Causa")


def causa_detail(causa_id: int) -> dict[str, object]:
    causa = causa_by_id(causa_id)
    data = causa_dto(causa)
    madre_de = CausaRelacionada.query.filter_by(causa_madre_id=causa.id).all()
    arista_de = CausaRelacionada.query.filter_by(causa_arista_id=causa.id).all()
    data.update(
        {
            "imputados": [causa_imputado_dto(link) for link in causa.imputados],
            "victimas": [
                {"id": link.victima.id, "nombreVictima": link.victima.nombre_victima, "docId": link.victima.doc_id}
                for link in causa.victimas
            ],
            "totalActividades": len(causa.actividades),
            "causasArista": [relacion_dto(rel) for rel in madre_de],
            "causasMadre": [relacion_dto(rel) for rel in arista_de],
            "telefonos": [
                {"id": link.telefono.id, "numeroTelefonico": link.telefono.numero_telefonico, "imei": link.telefono.imei}
                for link in TelefonoCausa.query.filter_by(causa_id=causa.id).all()
            ],
            "organizaciones": [
                {"id": link.organizacion.id, "nombre": link.organizacion.nombre}
                for link in OrganizacionCausa.query.filter_by(causa_id=causa.id).all()
            ],
        }
    )
    return data


def create_causa(payload: dict[str, object]) -> Causa:
    causa = Causa()
    _apply_causa_payload(causa, payload, creating=True)
    db.session.add(causa)
    db.session.commit()
    logger.info("Causa %s creada", causa.label)
    return causa


def update_causa(causa_id: int, payload: dict[str, object]) -> Causa:
    causa = causa_by_id(causa_id)
    _apply_causa_payload(causa, payload, creating=False)
    db.session.commit()
    return causa


def delete_causa(causa_id: int) -> None:
    causa = causa_by_id(causa_id)
    label = causa.label
    CausaRelacionada.query.filter(
        or_(CausaRelacionada.causa_madre_id == causa.id, CausaRelacionada.causa_arista_id == causa.id)
    ).delete(synchronize_session=False)
    TelefonoCausa.query.filter_by(causa_id=causa.id).delete(synchronize_session=False)
    OrganizacionCausa.query.filter_by(causa_id=causa.id).delete(synchronize_session=False)
    MedidaIntrusiva.query.filter_by(causa_id=causa.id).delete(synchronize_session=False)
    db.session.delete(causa)
    db.session.commit()
    logger.info("Causa %s eliminada", label)


# Imputados


def _normalizar_doc_id(value: object) -> str:
    raw = text(value)
    if not raw:
        raise ValueError("El documento de identidad es obligatorio")
    # Documentos con forma de RUT se validan y se guardan formateados
    if _RUT_LIKE.fullmatch(raw):
        if not validar_rut(raw):
            raise ValueError(f"RUT inválido: {raw}")
        return formatear_rut(raw)
    return raw.upper()


def imputado_dto(imputado: Imputado) -> dict[str, object]:
    return {
        "id": imputado.id,
        "nombreSujeto": imputado.nombre_sujeto,
        "docId": imputado.doc_id,
        "alias": imputado.alias,
        "nacionalidad": ref(imputado.nacionalidad),
        "totalCausas": len(imputado.causas),
    }


def list_imputados(filters: dict[str, object]) -> list[Imputado]:
    query = Imputado.query.order_by(Imputado.nombre_sujeto.asc())
    search = filter_value(filters, "q")
    if search:
        like = f"%{search}%"
        query = query.filter(
            or_(Imputado.nombre_sujeto.ilike(like), Imputado.doc_id.ilike(like), Imputado.alias.ilike(like))
        )
    nacionalidad_id = filter_value(filters, "nacionalidadId")
    if nacionalidad_id:
        query = query.filter(Imputado.nacionalidad_id == parse_int(nacionalidad_id, "nacionalidad"))
    return query.all()


def imputado_by_id(imputado_id: int) -> Imputado:
    return get_or_404(Imputado, imputado_id, "Imputado")


def imputado_detail(imputado_id: int) -> dict[str, object]:
    imputado = imputado_by_id(imputado_id)
    data = imputado_dto(imputado)
    data["causas"] = [
        {**causa_imputado_dto(link), "causa": causa_resumen(link.causa)} for link in imputado.causas
    ]
    return data


def _apply_imputado_payload(imputado: Imputado, payload: dict[str, object], creating: bool) -> None:
    if creating or "nombreSujeto" in payload:
        nombre = text(payload.get("nombreSujeto"))
        if not nombre:
            raise ValueError("El nombre del sujeto es obligatorio")
        imputado.nombre_sujeto = nombre
    if creating or "docId" in payload:
        doc_id = _normalizar_doc_id(payload.get("docId"))
        existing = Imputado.query.filter_by(doc_id=doc_id).first()
        if existing and existing.id != imputado.id:
            raise ValueError(f"Ya existe un sujeto con documento {doc_id}")
        imputado.doc_id = doc_id
    if creating or "alias" in payload:
        imputado.alias = text(payload.get("alias"))
    if creating or "nacionalidadId" in payload:
        imputado.nacionalidad_id = _optional_fk(payload, "nacionalidadId", Nacionalidad, "Nacionalidad")


def create_imputado(payload: dict[str, object]) -> Imputado:
    imputado = Imputado()
    _apply_imputado_payload(imputado, payload, creating=True)
    db.session.add(imputado)
    db.session.commit()
    logger.info("Imputado %s creado", imputado.doc_id)
    return imputado


def update_imputado(imputado_id: int, payload: dict[str, object]) -> Imputado:
    imputado = imputado_by_id(imputado_id)
    _apply_imputado_payload(imputado, payload, creating=False)
    db.session.commit()
    return imputado


def causa_imputado_dto(link: CausaImputado, hoy: date | None = None) -> dict[str, object]:
    dias = dias_restantes(link.fecha_formalizacion if link.formalizado else None, link.plazo, hoy)
    return {
        "id": link.id,
        "causaId": link.causa_id,
        "imputadoId": link.imputado_id,
        "nombreSujeto": link.imputado.nombre_sujeto,
        "docId": link.imputado.doc_id,
        "alias": link.imputado.alias,
        "esimputado": link.esimputado,
        "essujetoInteres": link.essujeto_interes,
        "formalizado": link.formalizado,
        "fechaFormalizacion": link.fecha_formalizacion.isoformat() if link.fecha_formalizacion else None,
        "cautelar": ref(link.cautelar),
        "plazo": link.plazo,
        "diasRestantes": dias,
        "estadoPlazo": clasificar_plazo(dias),
    }


def _apply_causa_imputado_payload(link: CausaImputado, payload: dict[str, object], creating: bool) -> None:
    def present(key: str) -> bool:
        return creating or key in payload

    if present("esimputado"):
        link.esimputado = parse_bool(payload.get("esimputado"))
    if present("essujetoInteres"):
        link.essujeto_interes = parse_bool(payload.get("essujetoInteres"))
    if not (link.esimputado or link.essujeto_interes):
        raise ValueError("Debe marcar al sujeto como imputado o como sujeto de interés")
    if present("formalizado"):
        link.formalizado = parse_bool(payload.get("formalizado"))
    if present("fechaFormalizacion"):
        link.fecha_formalizacion = parse_optional_iso_date(payload.get("fechaFormalizacion"), "fecha de formalización")
    if present("cautelarId"):
        link.cautelar_id = _optional_fk(payload, "cautelarId", Cautelar, "Cautelar")
    if present("plazo"):
        plazo = parse_optional_int(payload.get("plazo"), "plazo")
        if plazo is not None and plazo < 0:
            raise ValueError("El plazo no puede ser negativo")
        link.plazo = plazo


def add_imputado_to_causa(causa_id: int, payload: dict[str, object]) -> CausaImputado:
    causa = causa_by_id(causa_id)
    imputado_id = parse_int(payload.get("imputadoId"), "imputado")
    imputado = imputado_by_id(imputado_id)
    if CausaImputado.query.filter_by(causa_id=causa.id, imputado_id=imputado.id).first():
        raise ValueError("El sujeto ya está asociado a la causa")
    link = CausaImputado(causa_id=causa.id, imputado_id=imputado.id)
    _apply_causa_imputado_payload(link, payload, creating=True)
    db.session.add(link)
    db.session.commit()
    logger.info("Sujeto %s asociado a causa %s", imputado.doc_id, causa.label)
    return link


def causa_imputado_by_ids(causa_id: int, imputado_id: int) -> CausaImputado:
    link = CausaImputado.query.filter_by(causa_id=causa_id, imputado_id=imputado_id).first()
    if not link:
        raise NotFoundError("El sujeto no está asociado a la causa")
    return link


def update_causa_imputado(causa_id: int, imputado_id: int, payload: dict[str, object]) -> CausaImputado:
    link = causa_imputado_by_ids(causa_id, imputado_id)
    with db.session.no_autoflush:
        _apply_causa_imputado_payload(link, payload, creating=False)
    db.session.commit()
    return link


def remove_imputado_from_causa(causa_id: int, imputado_id: int) -> None:
    link = causa_imputado_by_ids(causa_id, imputado_id)
    db.session.delete(link)
    db.session.commit()


# Victimas


def victima_dto(victima: Victima) -> dict[str, object]:
    return {
        "id": victima.id,
        "nombreVictima": victima.nombre_victima,
        "docId": victima.doc_id,
        "nacionalidad": ref(victima.nacionalidad),
        "totalCausas": len(victima.causas),
    }


def list_victimas(filters: dict[str, object]) -> list[Victima]:
    query = Victima.query.order_by(Victima.nombre_victima.asc())
    search = filter_value(filters, "q")
    if search:
        like = f"%{search}%"
        query = query.filter(or_(Victima.nombre_victima.ilike(like), Victima.doc_id.ilike(like)))
    causa_id = filter_value(filters, "causaId")
    if causa_id:
        query = query.join(CausaVictima, CausaVictima.victima_id == Victima.id).filter(
            CausaVictima.causa_id == parse_int(causa_id, "causa")
        )
    return query.all()


def victima_by_id(victima_id: int) -> Victima:
    return get_or_404(Victima, victima_id, "Víctima")


def victima_detail(victima_id: int) -> dict[str, object]:
    victima = victima_by_id(victima_id)
    data = victima_dto(victima)
    data["causas"] = [
        {
            **causa_resumen(link.causa),
            "delito": ref(link.causa.delito),
            "tribunal": ref(link.causa.tribunal),
        }
        for link in victima.causas
    ]
    return data


def _apply_victima_payload(victima: Victima, payload: dict[str, object], creating: bool) -> None:
    if creating or "nombreVictima" in payload:
        nombre = text(payload.get("nombreVictima"))
        if not nombre:
            raise ValueError("El nombre de la víctima es obligatorio")
        victima.nombre_victima = nombre
    if creating or "docId" in payload:
        doc_id = _normalizar_doc_id(payload.get("docId"))
        existing = Victima.query.filter_by(doc_id=doc_id).first()
        if existing and existing.id != victima.id:
            raise ValueError(f"Ya existe una víctima con documento {doc_id}")
        victima.doc_id = doc_id
    if creating or "nacionalidadId" in payload:
        victima.nacionalidad_id = _optional_fk(payload, "nacionalidadId", Nacionalidad, "Nacionalidad")


def create_victima(payload: dict[str, object]) -> Victima:
    victima = Victima()
    _apply_victima_payload(victima, payload, creating=True)
    db.session.add(victima)
    db.session.commit()
    logger.info("Víctima %s registrada", victima.doc_id)
    return victima


def update_victima(victima_id: int, payload: dict[str, object]) -> Victima:
    victima = victima_by_id(victima_id)
    _apply_victima_payload(victima, payload, creating=False)
    db.session.commit()
    return victima


def delete_victima(victima_id: int) -> None:
    victima = victima_by_id(victima_id)
    doc_id = victima.doc_id
    db.session.delete(victima)
    db.session.commit()
    logger.info("Víctima %s eliminada", doc_id)


def add_victima_to_causa(causa_id: int, payload: dict[str, object]) -> CausaVictima:
    causa = causa_by_id(causa_id)
    victima = victima_by_id(parse_int(payload.get("victimaId"), "víctima"))
    if db.session.get(CausaVictima, (causa.id, victima.id)):
        raise ValueError("La víctima ya está asociada a la causa")
    link = CausaVictima(causa_id=causa.id, victima_id=victima.id)
    db.session.add(link)
    db.session.commit()
    logger.info("Víctima %s asociada a causa %s", victima.doc_id, causa.label)
    return link


def remove_victima_from_causa(causa_id: int, victima_id: int) -> None:
    link = db.session.get(CausaVictima, (causa_id, victima_id))
    if not link:
        raise NotFoundError("La víctima no está asociada a la causa")
    db.session.delete(link)
    db.session.commit()


def causa_victima_dto(link: CausaVictima) -> dict[str, object]:
    return {
        "causaId": link.causa_id,
        "victimaId": link.victima_id,
        "causa": causa_resumen(link.causa),
        "victima": {
            "id": link.victima.id,
            "nombreVictima": link.victima.nombre_victima,
            "docId": link.victima.doc_id,
        },
    }


# Causas relacionadas


def relacion_dto(rel: CausaRelacionada) -> dict[str, object]:
    return {
        "id": rel.id,
        "causaMadreId": rel.causa_madre_id,
        "causaAristaId": rel.causa_arista_id,
        "causaMadre": causa_resumen(rel.causa_madre),
        "causaArista": causa_resumen(rel.causa_arista),
        "tipoRelacion": rel.tipo_relacion,
        "fechaRelacion": rel.fecha_relacion.isoformat(),
        "observacion": rel.observacion,
    }


def list_relaciones(filters: dict[str, object]) -> list[CausaRelacionada]:
    query = CausaRelacionada.query.order_by(CausaRelacionada.fecha_relacion.desc(), CausaRelacionada.id.desc())
    causa_id = filter_value(filters, "causaId")
    if causa_id:
        value = parse_int(causa_id, "causa")
        query = query.filter(
            or_(CausaRelacionada.causa_madre_id == value, CausaRelacionada.causa_arista_id == value)
        )
    tipo = filter_value(filters, "tipoRelacion")
    if tipo:
        query = query.filter(CausaRelacionada.tipo_relacion == tipo)
    return query.all()


def create_relacion(payload: dict[str, object]) -> CausaRelacionada:
    madre_id = parse_int(payload.get("causaMadreId"), "causa madre")
    arista_id = parse_int(payload.get("causaAristaId"), "causa arista")
    if madre_id == arista_id:
        raise ValueError("Una causa no puede relacionarse consigo misma")
    causa_by_id(madre_id)
    causa_by_id(arista_id)
    if CausaRelacionada.query.filter_by(causa_madre_id=madre_id, causa_arista_id=arista_id).first():
        raise ValueError("La relación entre estas causas ya existe")
    rel = CausaRelacionada(
        causa_madre_id=madre_id,
        causa_arista_id=arista_id,
        tipo_relacion=text(payload.get("tipoRelacion")),
        fecha_relacion=parse_optional_iso_date(payload.get("fechaRelacion"), "fecha de relación") or date.today(),
        observacion=text(payload.get("observacion")),
    )
    db.session.add(rel)
    db.session.commit()
    logger.info("Relación causa %s -> %s registrada", madre_id, arista_id)
    return rel


def delete_relacion(relacion_id: int) -> None:
    rel = get_or_404(CausaRelacionada, relacion_id, "Relación")
    db.session.delete(rel)
    db.session.commit()


# Telefonos


def telefono_dto(telefono: Telefono) -> dict[str, object]:
    return {
        "id": telefono.id,
        "numeroTelefonico": telefono.numero_telefonico,
        "imei": telefono.imei,
        "abonado": telefono.abonado,
        "nue": telefono.nue,
        "proveedor": ref(telefono.proveedor),
        "ubicacion": ref(telefono.ubicacion),
        "solicitaTrafico": telefono.solicita_trafico,
        "solicitaImei": telefono.solicita_imei,
        "extraccionForense": telefono.extraccion_forense,
        "enviarCustodia": telefono.enviar_custodia,
        "observacion": telefono.observacion,
        "causas": [causa_resumen(link.causa) for link in telefono.causas],
    }


TELEFONO_FLAGS = {
    "solicitaTrafico": "solicita_trafico",
    "solicitaImei": "solicita_imei",
    "extraccionForense": "extraccion_forense",
    "enviarCustodia": "enviar_custodia",
}


def _apply_telefono_payload(telefono: Telefono, payload: dict[str, object], creating: bool) -> None:
    def present(key: str) -> bool:
        return creating or key in payload

    if present("proveedorId"):
        telefono.proveedor_id = _required_fk(payload, "proveedorId", Proveedor, "Proveedor")
    if present("ubicacionId"):
        telefono.ubicacion_id = _required_fk(payload, "ubicacionId", UbicacionTelefono, "Ubicación")
    if present("imei"):
        imei = text(payload.get("imei"))
        if not imei:
            raise ValueError("El IMEI es obligatorio")
        telefono.imei = imei
    if present("abonado"):
        abonado = text(payload.get("abonado"))
        if not abonado:
            raise ValueError("El abonado es obligatorio")
        telefono.abonado = abonado
    if present("numeroTelefonico"):
        telefono.numero_telefonico = text(payload.get("numeroTelefonico")) or "no definido"
    if present("nue"):
        telefono.nue = text(payload.get("nue")) or None
    if present("observacion"):
        telefono.observacion = text(payload.get("observacion"))
    for key, attr in TELEFONO_FLAGS.items():
        if present(key):
            setattr(telefono, attr, parse_bool(payload.get(key)))


def list_telefonos(filters: dict[str, object]) -> list[Telefono]:
    query = Telefono.query.order_by(Telefono.created_at.desc(), Telefono.id.desc())
    causa_id = filter_value(filters, "causaId")
    if causa_id:
        query = query.join(TelefonoCausa, TelefonoCausa.telefono_id == Telefono.id).filter(
            TelefonoCausa.causa_id == parse_int(causa_id, "causa")
        )
    return query.all()


def telefono_by_id(telefono_id: int) -> Telefono:
    return get_or_404(Telefono, telefono_id, "Teléfono")


def create_telefono(payload: dict[str, object]) -> Telefono:
    causa_ids = parse_list(payload.get("causaIds"), "causaIds")
    telefono = Telefono()
    _apply_telefono_payload(telefono, payload, creating=True)
    db.session.add(telefono)
    db.session.flush()
    for raw_id in causa_ids:
        causa = causa_by_id(parse_int(raw_id, "causa"))
        db.session.add(TelefonoCausa(telefono_id=telefono.id, causa_id=causa.id))
    db.session.commit()
    logger.info("Teléfono IMEI %s registrado", telefono.imei)
    return telefono


def update_telefono(telefono_id: int, payload: dict[str, object]) -> Telefono:
    telefono = telefono_by_id(telefono_id)
    _apply_telefono_payload(telefono, payload, creating=False)
    db.session.commit()
    return telefono


def delete_telefono(telefono_id: int) -> None:
    telefono = telefono_by_id(telefono_id)
    db.session.delete(telefono)
    db.session.commit()


def telefono_causa_dto(link: TelefonoCausa) -> dict[str, object]:
    return {
        "id": link.id,
        "telefonoId": link.telefono_id,
        "causaId": link.causa_id,
        "causa": causa_resumen(link.causa),
    }


def link_telefono_causa(telefono_id: int, payload: dict[str, object]) -> TelefonoCausa:
    telefono = telefono_by_id(telefono_id)
    causa = causa_by_id(parse_int(payload.get("causaId"), "causa"))
    if TelefonoCausa.query.filter_by(telefono_id=telefono.id, causa_id=causa.id).first():
        raise ValueError("El teléfono ya está asociado a la causa")
    link = TelefonoCausa(telefono_id=telefono.id, causa_id=causa.id)
    db.session.add(link)
    db.session.commit()
    return link


# Medidas intrusivas


def medida_dto(medida: MedidaIntrusiva) -> dict[str, object]:
    return {
        "id": medida.id,
        "causa": causa_resumen(medida.causa),
        "fiscal": ref(medida.fiscal),
        "fechaSolicitud": medida.fecha_solicitud.isoformat(),
        "tribunal": ref(medida.tribunal),
        "nombreJuez": medida.nombre_juez,
        "unidadPolicial": ref(medida.unidad_policial),
        "resolucion": medida.resolucion.value,
        "numDomiciliosSolicitud": medida.num_domicilios_solicitud,
        "numDomiciliosAprobados": medida.num_domicilios_aprobados,
        "numDetenidos": medida.num_detenidos,
        "hallazgos": medida.hallazgos,
        "observaciones": medida.observaciones,
    }


def list_medidas(filters: dict[str, object]) -> list[MedidaIntrusiva]:
    query = MedidaIntrusiva.query.order_by(MedidaIntrusiva.fecha_solicitud.desc(), MedidaIntrusiva.id.desc())
    causa_id = filter_value(filters, "causaId")
    if causa_id:
        query = query.filter(MedidaIntrusiva.causa_id == parse_int(causa_id, "causa"))
    resolucion = filter_value(filters, "resolucion")
    if resolucion:
        query = query.filter(MedidaIntrusiva.resolucion == _parse_resolucion(resolucion))
    return query.all()


def _parse_resolucion(value: object) -> ResolucionMedida:
    raw = text(value).lower()
    if not raw:
        raise ValueError("La resolución es obligatoria")
    try:
        return ResolucionMedida(raw)
    except ValueError as exc:
        raise ValueError(f"Resolución inválida: {raw}") from exc


def _contador(payload: dict[str, object], key: str, label: str) -> int:
    value = parse_optional_int(payload.get(key), label) or 0
    if value < 0:
        raise ValueError(f"{label} no puede ser negativo")
    return value


def create_medida(payload: dict[str, object]) -> MedidaIntrusiva:
    nombre_juez = text(payload.get("nombreJuez"))
    if not nombre_juez:
        raise ValueError("El nombre del juez es obligatorio")
    solicitados = _contador(payload, "numDomiciliosSolicitud", "Domicilios solicitados")
    aprobados = _contador(payload, "numDomiciliosAprobados", "Domicilios aprobados")
    if aprobados > solicitados:
        raise ValueError("Los domicilios aprobados no pueden superar a los solicitados")
    medida = MedidaIntrusiva(
        causa_id=_required_fk(payload, "causaId", Causa, "Causa"),
        fiscal_id=_required_fk(payload, "fiscalId", Fiscal, "Fiscal"),
        fecha_solicitud=parse_iso_date(payload.get("fechaSolicitud"), "fecha de solicitud"),
        tribunal_id=_required_fk(payload, "tribunalId", Tribunal, "Tribunal"),
        nombre_juez=nombre_juez,
        unidad_policial_id=_required_fk(payload, "unidadPolicialId", UnidadPolicial, "Unidad policial"),
        resolucion=_parse_resolucion(payload.get("resolucion")),
        num_domicilios_solicitud=solicitados,
        num_domicilios_aprobados=aprobados,
        num_detenidos=_contador(payload, "numDetenidos", "Detenidos"),
        hallazgos=text(payload.get("hallazgos")),
        observaciones=text(payload.get("observaciones")),
    )
    db.session.add(medida)
    db.session.commit()
    logger.info("Medida intrusiva registrada para causa %s (%s)", medida.causa_id, medida.resolucion.value)
    return medida


# Organizaciones delictuales


def miembro_dto(miembro: MiembroOrganizacion) -> dict[str, object]:
    return {
        "id": miembro.id,
        "imputadoId": miembro.imputado_id,
        "nombreSujeto": miembro.imputado.nombre_sujeto,
        "alias": miembro.imputado.alias,
        "rol": miembro.rol,
        "orden": miembro.orden,
        "fechaIngreso": miembro.fecha_ingreso.isoformat(),
        "fechaSalida": miembro.fecha_salida.isoformat() if miembro.fecha_salida else None,
        "activo": miembro.activo,
    }


def organizacion_dto(org: OrganizacionDelictual) -> dict[str, object]:
    return {
        "id": org.id,
        "nombre": org.nombre,
        "descripcion": org.descripcion,
        "fechaIdentificacion": org.fecha_identificacion.isoformat(),
        "activa": org.activa,
        "tipoOrganizacion": ref(org.tipo_organizacion),
        "totalMiembros": len(org.miembros),
        "miembrosActivos": sum(1 for miembro in org.miembros if miembro.activo),
        "totalCausas": len(org.causas),
    }


def list_organizaciones(filters: dict[str, object]) -> list[OrganizacionDelictual]:
    query = OrganizacionDelictual.query.order_by(OrganizacionDelictual.nombre.asc())
    search = filter_value(filters, "search")
    if search:
        like = f"%{search}%"
        query = query.filter(
            or_(OrganizacionDelictual.nombre.ilike(like), OrganizacionDelictual.descripcion.ilike(like))
        )
    if filter_value(filters, "activa"):
        query = query.filter(OrganizacionDelictual.activa.is_(parse_bool(filters.get("activa"))))
    tipo_id = filter_value(filters, "tipoOrganizacionId")
    if tipo_id:
        query = query.filter(OrganizacionDelictual.tipo_organizacion_id == parse_int(tipo_id, "tipo"))
    return query.all()


def organizacion_by_id(org_id: int) -> OrganizacionDelictual:
    return get_or_404(OrganizacionDelictual, org_id, "Organización")


def organizacion_detail(org_id: int) -> dict[str, object]:
    org = organizacion_by_id(org_id)
    data = organizacion_dto(org)
    data["miembros"] = [miembro_dto(miembro) for miembro in org.miembros]
    data["causas"] = [
        {
            **causa_resumen(link.causa),
            "fechaAsociacion": link.fecha_asociacion.isoformat(),
            "observacion": link.observacion,
        }
        for link in org.causas
    ]
    return data


def _apply_organizacion_payload(org: OrganizacionDelictual, payload: dict[str, object], creating: bool) -> None:
    def present(key: str) -> bool:
        return creating or key in payload

    if present("nombre"):
        nombre = text(payload.get("nombre"))
        if not nombre:
            raise ValueError("El nombre de la organización es obligatorio")
        org.nombre = nombre
    if present("fechaIdentificacion"):
        org.fecha_identificacion = parse_iso_date(payload.get("fechaIdentificacion"), "fecha de identificación")
    if present("tipoOrganizacionId"):
        org.tipo_organizacion_id = _required_fk(payload, "tipoOrganizacionId", TipoOrganizacion, "Tipo de organización")
    if present("descripcion"):
        org.descripcion = text(payload.get("descripcion"))
    if "activa" in payload:
        org.activa = parse_bool(payload.get("activa"))
    elif creating:
        org.activa = True


def _build_miembro(payload: dict[str, object]) -> MiembroOrganizacion:
    if not isinstance(payload, dict):
        raise ValueError("Cada miembro debe ser un objeto")
    imputado = imputado_by_id(parse_int(payload.get("imputadoId"), "imputado"))
    orden = parse_optional_int(payload.get("orden"), "orden") or 0
    if orden < 0:
        raise ValueError("El orden debe ser mayor o igual a 0")
    fecha_ingreso = parse_optional_iso_date(payload.get("fechaIngreso"), "fecha de ingreso") or date.today()
    fecha_salida = parse_optional_iso_date(payload.get("fechaSalida"), "fecha de salida")
    if fecha_salida and fecha_salida < fecha_ingreso:
        raise ValueError("La fecha de salida no puede ser anterior a la fecha de ingreso")
    activo = parse_bool(payload["activo"]) if "activo" in payload else fecha_salida is None
    return MiembroOrganizacion(
        imputado_id=imputado.id,
        rol=text(payload.get("rol")),
        orden=orden,
        fecha_ingreso=fecha_ingreso,
        fecha_salida=fecha_salida,
        activo=activo,
    )


def create_organizacion(payload: dict[str, object]) -> OrganizacionDelictual:
    items = parse_list(payload.get("miembros"), "miembros")
    org = OrganizacionDelictual()
    _apply_organizacion_payload(org, payload, creating=True)
    miembros = [_build_miembro(item) for item in items]
    imputado_ids = [miembro.imputado_id for miembro in miembros]
    if len(imputado_ids) != len(set(imputado_ids)):
        raise ValueError("Un sujeto no puede figurar dos veces en la organización")
    org.miembros = miembros
    db.session.add(org)
    db.session.commit()
    logger.info("Organización '%s' creada con %d miembros", org.nombre, len(miembros))
    return org


def update_organizacion(org_id: int, payload: dict[str, object]) -> OrganizacionDelictual:
    org = organizacion_by_id(org_id)
    _apply_organizacion_payload(org, payload, creating=False)
    db.session.commit()
    return org


def delete_organizacion(org_id: int) -> None:
    org = organizacion_by_id(org_id)
    nombre = org.nombre
    db.session.delete(org)
    db.session.commit()
    logger.info("Organización '%s' eliminada", nombre)


def add_miembro(org_id: int, payload: dict[str, object]) -> MiembroOrganizacion:
    org = organizacion_by_id(org_id)
    miembro = _build_miembro(payload)
    if any(existing.imputado_id == miembro.imputado_id for existing in org.miembros):
        raise ValueError("El sujeto ya es miembro de la organización")
    miembro.organizacion_id = org.id
    db.session.add(miembro)
    db.session.commit()
    return miembro


def remove_miembro(org_id: int, miembro_id: int) -> None:
    miembro = MiembroOrganizacion.query.filter_by(id=miembro_id, organizacion_id=org_id).first()
    if not miembro:
        raise NotFoundError("Miembro no encontrado")
    db.session.delete(miembro)
    db.session.commit()


def organizacion_causa_dto(link: OrganizacionCausa) -> dict[str, object]:
    return {
        "id": link.id,
        "organizacionId": link.organizacion_id,
        "causaId": link.causa_id,
        "causa": causa_resumen(link.causa),
        "fechaAsociacion": link.fecha_asociacion.isoformat(),
        "observacion": link.observacion,
    }


def link_organizacion_causa(org_id: int, payload: dict[str, object]) -> OrganizacionCausa:
    org = organizacion_by_id(org_id)
    causa = causa_by_id(parse_int(payload.get("causaId"), "causa"))
    if OrganizacionCausa.query.filter_by(organizacion_id=org.id, causa_id=causa.id).first():
        raise ValueError("La causa ya está asociada a la organización")
    link = OrganizacionCausa(
        organizacion_id=org.id,
        causa_id=causa.id,
        fecha_asociacion=parse_optional_iso_date(payload.get("fechaAsociacion"), "fecha de asociación")
        or date.today(),
        observacion=text(payload.get("observacion")),
    )
    db.session.add(link)
    db.session.commit()
    return link
