from __future__ import annotations

import logging

from flask import current_app, jsonify, make_response, request
from flask_login import current_user
from sqlalchemy.exc import IntegrityError

from ecoh.causas import api_bp
from ecoh.causas.actividades import (
    actividad_by_id,
    actividad_dto,
    actividades_usuario,
    correlativo_dto,
    create_actividad,
    delete_actividad,
    generar_correlativo,
    historial_correlativos,
    kanban_board,
    list_actividades,
    mover_actividad,
    preview_correlativos,
    update_actividad,
)
from ecoh.causas.analitica import (
    causas_por_fecha,
    causas_por_responsable,
    crimen_organizado,
    distribucion_nacionalidades,
    flujo_imputados,
)
from ecoh.causas.grafo import grafo_causas, grafo_organizacion
from ecoh.causas.plazos import alertas_formalizacion, formalizaciones_panel
from ecoh.causas.reportes import (
    fiscales_export,
    reporte_actividades,
    reporte_causas_relacionadas,
    reporte_fiscal_causas,
    reporte_fiscales,
    telefonos_panel,
)
from ecoh.causas.services import (
    add_imputado_to_causa,
    add_miembro,
    add_victima_to_causa,
    catalogo_dto,
    causa_detail,
    causa_dto,
    causa_imputado_dto,
    causa_resumen,
    causa_victima_dto,
    create_catalogo_item,
    create_causa,
    create_imputado,
    create_medida,
    create_organizacion,
    create_relacion,
    create_telefono,
    create_victima,
    delete_causa,
    delete_organizacion,
    delete_relacion,
    delete_telefono,
    delete_victima,
    imputado_detail,
    imputado_dto,
    link_organizacion_causa,
    link_telefono_causa,
    list_catalogo,
    list_causas,
    list_imputados,
    list_medidas,
    list_organizaciones,
    list_relaciones,
    list_telefonos,
    list_usuarios,
    list_victimas,
    medida_dto,
    miembro_dto,
    organizacion_causa_dto,
    organizacion_detail,
    organizacion_dto,
    relacion_dto,
    remove_imputado_from_causa,
    remove_miembro,
    remove_victima_from_causa,
    search_causas,
    telefono_causa_dto,
    telefono_dto,
    update_causa,
    update_causa_imputado,
    update_imputado,
    update_organizacion,
    update_telefono,
    update_victima,
    victima_detail,
    victima_dto,
)
from ecoh.core.auth import usuario_dto
from ecoh.core.extensions import db
from ecoh.core.models import RolUsuario
from ecoh.core.permissions import require_role
from ecoh.core.utils import NotFoundError, formatear_rut, paginate_rows, validar_rut

logger = logging.getLogger(__name__)


@api_bp.errorhandler(ValueError)
def handle_validation_error(exc: ValueError):
    db.session.rollback()
    logger.warning("%s %s rechazado: %s", request.method, request.path, exc)
    return jsonify({"error": str(exc)}), 400


@api_bp.errorhandler(NotFoundError)
def handle_not_found(exc: NotFoundError):
    db.session.rollback()
    return jsonify({"error": str(exc)}), 404


@api_bp.errorhandler(IntegrityError)
def handle_integrity_error(exc: IntegrityError):
    db.session.rollback()
    logger.warning("%s %s conflicto de integridad: %s", request.method, request.path, exc.orig)
    return jsonify({"error": "El registro entra en conflicto con datos existentes"}), 409


def _payload() -> dict[str, object]:
    data = request.get_json(silent=True)
    if data is None:
        return request.form.to_dict()
    if not isinstance(data, dict):
        raise ValueError("El cuerpo de la solicitud debe ser un objeto JSON")
    return data


def _filters() -> dict[str, object]:
    return request.args.to_dict()


def _paginated(rows: list[dict[str, object]]):
    page = request.args.get("page", 1, type=int)
    limit = request.args.get("limit", current_app.config["PAGE_SIZE_DEFAULT"], type=int)
    return jsonify(paginate_rows(rows, page, limit, current_app.config["PAGE_SIZE_MAX"]))


# Usuarios y catalogos


@api_bp.get("/usuarios/me")
@require_role(RolUsuario.READ)
def usuario_actual():
    return jsonify(usuario_dto(current_user))


@api_bp.get("/usuarios")
@require_role(RolUsuario.READ)
def usuarios():
    return jsonify([usuario_dto(user) for user in list_usuarios()])


@api_bp.get("/catalogos/<nombre>")
@require_role(RolUsuario.READ)
def catalogo(nombre: str):
    return jsonify(list_catalogo(nombre))


@api_bp.post("/catalogos/<nombre>")
@require_role(RolUsuario.ADMIN)
def catalogo_create(nombre: str):
    item = create_catalogo_item(nombre, _payload())
    return jsonify(catalogo_dto(item)), 201


@api_bp.get("/validar-rut")
@require_role(RolUsuario.READ)
def rut_validate():
    rut = request.args.get("rut", "")
    valido = validar_rut(rut)
    return jsonify({"rut": rut, "valido": valido, "formateado": formatear_rut(rut) if valido else None})


# Causas


@api_bp.get("/causas")
@require_role(RolUsuario.READ)
def causas():
    return _paginated([causa_dto(causa) for causa in list_causas(_filters())])


@api_bp.post("/causas")
@require_role(RolUsuario.WRITE)
def causa_create():
    causa = create_causa(_payload())
    return jsonify(causa_dto(causa)), 201


@api_bp.get("/causas/search")
@require_role(RolUsuario.READ)
def causa_search():
    rows = search_causas(request.args.get("q", ""))
    return jsonify([causa_resumen(causa) for causa in rows])


@api_bp.get("/causas/<int:causa_id>")
@require_role(RolUsuario.READ)
def causa_get(causa_id: int):
    return jsonify(causa_detail(causa_id))


@api_bp.put("/causas/<int:causa_id>")
@require_role(RolUsuario.WRITE)
def causa_update(causa_id: int):
    return jsonify(causa_dto(update_causa(causa_id, _payload())))


@api_bp.delete("/causas/<int:causa_id>")
@require_role(RolUsuario.ADMIN)
def causa_delete(causa_id: int):
    delete_causa(causa_id)
    return "", 204


@api_bp.post("/causas/<int:causa_id>/imputados")
@require_role(RolUsuario.WRITE)
def causa_imputado_add(causa_id: int):
    link = add_imputado_to_causa(causa_id, _payload())
    return jsonify(causa_imputado_dto(link)), 201


@api_bp.put("/causas/<int:causa_id>/imputados/<int:imputado_id>")
@require_role(RolUsuario.WRITE)
def causa_imputado_update(causa_id: int, imputado_id: int):
    return jsonify(causa_imputado_dto(update_causa_imputado(causa_id, imputado_id, _payload())))


@api_bp.delete("/causas/<int:causa_id>/imputados/<int:imputado_id>")
@require_role(RolUsuario.WRITE)
def causa_imputado_remove(causa_id: int, imputado_id: int):
    remove_imputado_from_causa(causa_id, imputado_id)
    return "", 204


@api_bp.post("/causas/<int:causa_id>/victimas")
@require_role(RolUsuario.WRITE)
def causa_victima_add(causa_id: int):
    return jsonify(causa_victima_dto(add_victima_to_causa(causa_id, _payload()))), 201


@api_bp.delete("/causas/<int:causa_id>/victimas/<int:victima_id>")
@require_role(RolUsuario.WRITE)
def causa_victima_remove(causa_id: int, victima_id: int):
    remove_victima_from_causa(causa_id, victima_id)
    return "", 204


# Imputados


@api_bp.get("/imputados")
@require_role(RolUsuario.READ)
def imputados():
    return _paginated([imputado_dto(item) for item in list_imputados(_filters())])


@api_bp.post("/imputados")
@require_role(RolUsuario.WRITE)
def imputado_create():
    return jsonify(imputado_dto(create_imputado(_payload()))), 201


@api_bp.get("/imputados/<int:imputado_id>")
@require_role(RolUsuario.READ)
def imputado_get(imputado_id: int):
    return jsonify(imputado_detail(imputado_id))


@api_bp.put("/imputados/<int:imputado_id>")
@require_role(RolUsuario.WRITE)
def imputado_update(imputado_id: int):
    return jsonify(imputado_dto(update_imputado(imputado_id, _payload())))


# Victimas


@api_bp.get("/victimas")
@require_role(RolUsuario.READ)
def victimas():
    return _paginated([victima_dto(item) for item in list_victimas(_filters())])


@api_bp.post("/victimas")
@require_role(RolUsuario.WRITE)
def victima_create():
    return jsonify(victima_dto(create_victima(_payload()))), 201


@api_bp.get("/victimas/<int:victima_id>")
@require_role(RolUsuario.READ)
def victima_get(victima_id: int):
    return jsonify(victima_detail(victima_id))


@api_bp.put("/victimas/<int:victima_id>")
@require_role(RolUsuario.WRITE)
def victima_update(victima_id: int):
    return jsonify(victima_dto(update_victima(victima_id, _payload())))


@api_bp.delete("/victimas/<int:victima_id>")
@require_role(RolUsuario.WRITE)
def victima_delete(victima_id: int):
    delete_victima(victima_id)
    return "", 204


# Actividades


@api_bp.get("/actividades")
@require_role(RolUsuario.READ)
def actividades():
    return _paginated([actividad_dto(item) for item in list_actividades(_filters())])


@api_bp.post("/actividades")
@require_role(RolUsuario.WRITE)
def actividad_create():
    actividad = create_actividad(_payload(), current_user)
    return jsonify(actividad_dto(actividad)), 201


@api_bp.get("/actividades/usuario")
@require_role(RolUsuario.READ)
def actividades_mias():
    return _paginated([actividad_dto(item) for item in actividades_usuario(current_user, _filters())])


@api_bp.get("/actividades/kanban")
@require_role(RolUsuario.READ)
def actividades_kanban():
    return jsonify(kanban_board(_filters(), current_user))


@api_bp.get("/actividades/<int:actividad_id>")
@require_role(RolUsuario.READ)
def actividad_get(actividad_id: int):
    return jsonify(actividad_dto(actividad_by_id(actividad_id)))


@api_bp.put("/actividades/<int:actividad_id>")
@require_role(RolUsuario.WRITE)
def actividad_update(actividad_id: int):
    return jsonify(actividad_dto(update_actividad(actividad_id, _payload(), current_user)))


@api_bp.put("/actividades/<int:actividad_id>/estado")
@require_role(RolUsuario.WRITE)
def actividad_mover(actividad_id: int):
    payload = _payload()
    actividad = mover_actividad(actividad_id, payload.get("estado"), payload.get("glosaCierre"), current_user)
    return jsonify(actividad_dto(actividad))


@api_bp.delete("/actividades/<int:actividad_id>")
@require_role(RolUsuario.WRITE)
def actividad_delete(actividad_id: int):
    delete_actividad(actividad_id)
    return "", 204


# Correlativos


@api_bp.get("/correlativos")
@require_role(RolUsuario.READ)
def correlativos():
    return jsonify(preview_correlativos(_filters()))


@api_bp.post("/correlativos")
@require_role(RolUsuario.WRITE)
def correlativo_create():
    return jsonify(correlativo_dto(generar_correlativo(_payload(), current_user))), 201


@api_bp.get("/correlativos/historial")
@require_role(RolUsuario.READ)
def correlativos_historial():
    return _paginated([correlativo_dto(item) for item in historial_correlativos(_filters())])


# Formalizaciones


@api_bp.get("/formalizaciones-panel")
@require_role(RolUsuario.READ)
def formalizaciones():
    return jsonify(formalizaciones_panel(_filters()))


@api_bp.get("/formalizaciones-panel/alertas")
@require_role(RolUsuario.READ)
def formalizaciones_alertas():
    return jsonify(alertas_formalizacion())


# Causas relacionadas y grafos


@api_bp.get("/causas-relacionadas")
@require_role(RolUsuario.READ)
def relaciones():
    return _paginated([relacion_dto(rel) for rel in list_relaciones(_filters())])


@api_bp.post("/causas-relacionadas")
@require_role(RolUsuario.WRITE)
def relacion_create():
    return jsonify(relacion_dto(create_relacion(_payload()))), 201


@api_bp.delete("/causas-relacionadas")
@require_role(RolUsuario.WRITE)
def relacion_delete():
    relacion_id = request.args.get("id", type=int)
    if not relacion_id:
        raise ValueError("Falta el id de la relación")
    delete_relacion(relacion_id)
    return "", 204


@api_bp.get("/grafo/causas")
@require_role(RolUsuario.READ)
def grafo_de_causas():
    return jsonify(grafo_causas(_filters()))


@api_bp.get("/grafo/organizaciones/<int:org_id>")
@require_role(RolUsuario.READ)
def grafo_de_organizacion(org_id: int):
    return jsonify(grafo_organizacion(org_id))


# Organizaciones


@api_bp.get("/organizaciones")
@require_role(RolUsuario.READ)
def organizaciones():
    return _paginated([organizacion_dto(org) for org in list_organizaciones(_filters())])


@api_bp.post("/organizaciones")
@require_role(RolUsuario.WRITE)
def organizacion_create():
    org = create_organizacion(_payload())
    return jsonify(organizacion_detail(org.id)), 201


@api_bp.get("/organizaciones/<int:org_id>")
@require_role(RolUsuario.READ)
def organizacion_get(org_id: int):
    return jsonify(organizacion_detail(org_id))


@api_bp.put("/organizaciones/<int:org_id>")
@require_role(RolUsuario.WRITE)
def organizacion_update(org_id: int):
    org = update_organizacion(org_id, _payload())
    return jsonify(organizacion_dto(org))


@api_bp.delete("/organizaciones/<int:org_id>")
@require_role(RolUsuario.WRITE)
def organizacion_delete(org_id: int):
    delete_organizacion(org_id)
    return "", 204


@api_bp.post("/organizaciones/<int:org_id>/miembros")
@require_role(RolUsuario.WRITE)
def organizacion_miembro_add(org_id: int):
    return jsonify(miembro_dto(add_miembro(org_id, _payload()))), 201


@api_bp.delete("/organizaciones/<int:org_id>/miembros/<int:miembro_id>")
@require_role(RolUsuario.WRITE)
def organizacion_miembro_remove(org_id: int, miembro_id: int):
    remove_miembro(org_id, miembro_id)
    return "", 204


@api_bp.post("/organizaciones/<int:org_id>/causas")
@require_role(RolUsuario.WRITE)
def organizacion_causa_add(org_id: int):
    link = link_organizacion_causa(org_id, _payload())
    return jsonify(organizacion_causa_dto(link)), 201


# Telefonos y medidas intrusivas


@api_bp.get("/telefonos")
@require_role(RolUsuario.READ)
def telefonos():
    return _paginated([telefono_dto(tel) for tel in list_telefonos(_filters())])


@api_bp.post("/telefonos")
@require_role(RolUsuario.WRITE)
def telefono_create():
    return jsonify(telefono_dto(create_telefono(_payload()))), 201


@api_bp.put("/telefonos/<int:telefono_id>")
@require_role(RolUsuario.WRITE)
def telefono_update(telefono_id: int):
    return jsonify(telefono_dto(update_telefono(telefono_id, _payload())))


@api_bp.delete("/telefonos/<int:telefono_id>")
@require_role(RolUsuario.WRITE)
def telefono_delete(telefono_id: int):
    delete_telefono(telefono_id)
    return "", 204


@api_bp.post("/telefonos/<int:telefono_id>/causas")
@require_role(RolUsuario.WRITE)
def telefono_causa_add(telefono_id: int):
    link = link_telefono_causa(telefono_id, _payload())
    return jsonify(telefono_causa_dto(link)), 201


@api_bp.get("/medidas-intrusivas")
@require_role(RolUsuario.READ)
def medidas():
    return _paginated([medida_dto(item) for item in list_medidas(_filters())])


@api_bp.post("/medidas-intrusivas")
@require_role(RolUsuario.WRITE)
def medida_create():
    return jsonify(medida_dto(create_medida(_payload()))), 201


# Reportes


@api_bp.get("/reportes/fiscales")
@require_role(RolUsuario.READ)
def reportes_fiscales():
    return jsonify(reporte_fiscales(_filters()))


@api_bp.get("/reportes/fiscales/export")
@require_role(RolUsuario.READ)
def reportes_fiscales_export():
    content, mimetype, filename = fiscales_export(
        _filters(),
        request.args.get("formato", "csv"),
        export_limit=current_app.config["EXPORT_LIMIT"],
    )
    response = make_response(content)
    response.headers["Content-Type"] = mimetype
    response.headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response


@api_bp.get("/reportes/fiscal-causas")
@require_role(RolUsuario.READ)
def reportes_fiscal_causas():
    return jsonify(reporte_fiscal_causas(_filters()))


@api_bp.get("/reportes/actividades")
@require_role(RolUsuario.READ)
def reportes_actividades():
    return jsonify(reporte_actividades(_filters()))


@api_bp.get("/reportes/causas-relacionadas")
@require_role(RolUsuario.READ)
def reportes_causas_relacionadas():
    return jsonify(reporte_causas_relacionadas(_filters()))


@api_bp.get("/telefonos-panel")
@require_role(RolUsuario.READ)
def panel_telefonos():
    page = request.args.get("page", 1, type=int)
    limit = request.args.get("limit", current_app.config["PAGE_SIZE_DEFAULT"], type=int)
    return jsonify(telefonos_panel(_filters(), page, limit, current_app.config["PAGE_SIZE_MAX"]))


# Analitica


@api_bp.get("/analytics/causas-<tipo>")
@require_role(RolUsuario.READ)
def analitica_causas_responsable(tipo: str):
    return jsonify(causas_por_responsable(tipo, _filters()))


@api_bp.get("/analytics/crimen-organizado")
@require_role(RolUsuario.READ)
def analitica_crimen_organizado():
    return jsonify(crimen_organizado(_filters()))


@api_bp.get("/analytics/nationality-distribution")
@require_role(RolUsuario.READ)
def analitica_nacionalidades():
    return jsonify(distribucion_nacionalidades(_filters()))


@api_bp.get("/analytics/imputados-flow")
@require_role(RolUsuario.READ)
def analitica_flujo_imputados():
    return jsonify(flujo_imputados(_filters()))


@api_bp.get("/causas-por-fecha")
@require_role(RolUsuario.READ)
def causas_fecha():
    return jsonify(causas_por_fecha(_filters()))
