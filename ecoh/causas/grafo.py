from __future__ import annotations

from collections import defaultdict

from sqlalchemy.orm import joinedload

from ecoh.causas.services import organizacion_by_id
from ecoh.core.i18n import translate
from ecoh.core.models import CausaRelacionada
from ecoh.core.utils import filter_value, parse_int


def _componente(causa_id: int, relaciones: list[CausaRelacionada]) -> set[int]:
    vecinos: dict[int, set[int]] = defaultdict(set)
    for rel in relaciones:
        vecinos[rel.causa_madre_id].add(rel.causa_arista_id)
        vecinos[rel.causa_arista_id].add(rel.causa_madre_id)
    visitados = {causa_id}
    pendientes = [causa_id]
    while pendientes:
        actual = pendientes.pop()
        for vecino in vecinos[actual] - visitados:
            visitados.add(vecino)
            pendientes.append(vecino)
    return visitados


def grafo_causas(filters: dict[str, object]) -> dict[str, list[dict[str, object]]]:
    """Nodos y aristas del grafo de causas relacionadas.

    Cada causa participante aparece una sola vez; su ``tipo`` es ``madre``,
    ``arista`` o ``ambas`` segun el lado de las relaciones en que figura.
    Con ``causaId`` el grafo se limita a la componente conexa de esa causa.
    """
    query = CausaRelacionada.query.options(
        joinedload(CausaRelacionada.causa_madre),
        joinedload(CausaRelacionada.causa_arista),
    ).order_by(CausaRelacionada.id.asc())
    tipo = filter_value(filters, "tipoRelacion")
    if tipo:
        query = query.filter(CausaRelacionada.tipo_relacion == tipo)
    relaciones = query.all()

    causa_id = filter_value(filters, "causaId")
    if causa_id:
        componente = _componente(parse_int(causa_id, "causa"), relaciones)
        relaciones = [rel for rel in relaciones if rel.causa_madre_id in componente]

    roles: dict[int, set[str]] = defaultdict(set)
    causas = {}
    for rel in relaciones:
        roles[rel.causa_madre_id].add("madre")
        roles[rel.causa_arista_id].add("arista")
        causas[rel.causa_madre_id] = rel.causa_madre
        causas[rel.causa_arista_id] = rel.causa_arista

    nodes = []
    for node_id, causa in causas.items():
        node_roles = roles[node_id]
        tipo_nodo = "ambas" if len(node_roles) > 1 else next(iter(node_roles))
        nodes.append(
            {
                "id": node_id,
                "ruc": causa.ruc,
                "label": causa.ruc or causa.denominacion_causa,
                "denominacionCausa": causa.denominacion_causa,
                "tipo": tipo_nodo,
                "tipoLabel": translate(f"nodo.{tipo_nodo}"),
            }
        )
    edges = [
        {
            "id": rel.id,
            "source": rel.causa_madre_id,
            "target": rel.causa_arista_id,
            "tipoRelacion": rel.tipo_relacion,
            "fechaRelacion": rel.fecha_relacion.isoformat(),
        }
        for rel in relaciones
    ]
    return {"nodes": nodes, "edges": edges}


def grafo_organizacion(org_id: int) -> dict[str, list[dict[str, object]]]:
    org = organizacion_by_id(org_id)
    org_node_id = f"org-{org.id}"
    nodes = [
        {
            "id": org_node_id,
            "label": org.nombre,
            "tipo": "organizacion",
            "activo": org.activa,
        }
    ]
    edges = []
    for miembro in org.miembros:
        member_node_id = f"imp-{miembro.imputado_id}"
        nodes.append(
            {
                "id": member_node_id,
                "label": miembro.imputado.alias or miembro.imputado.nombre_sujeto,
                "nombreSujeto": miembro.imputado.nombre_sujeto,
                "tipo": "imputado",
                "rol": miembro.rol,
                "orden": miembro.orden,
                "activo": miembro.activo,
            }
        )
        edges.append(
            {
                "id": miembro.id,
                "source": org_node_id,
                "target": member_node_id,
                "label": miembro.rol,
                "activo": miembro.activo,
            }
        )
    return {"nodes": nodes, "edges": edges}
