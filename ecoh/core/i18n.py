from __future__ import annotations

from flask import has_request_context, session

SUPPORTED_LANGS = {"es", "en"}

I18N: dict[str, dict[str, str]] = {
    "estado.inicio": {"es": "Inicio", "en": "To do"},
    "estado.en_proceso": {"es": "En proceso", "en": "In progress"},
    "estado.terminado": {"es": "Terminado", "en": "Done"},
    "alerta.vencido": {"es": "Vencido", "en": "Overdue"},
    "alerta.proximo": {"es": "Por vencer", "en": "Due soon"},
    "alerta.normal": {"es": "En plazo", "en": "On time"},
    "alerta.ninguna": {"es": "Sin formalizar", "en": "Not charged"},
    "nodo.madre": {"es": "Causa madre", "en": "Parent case"},
    "nodo.arista": {"es": "Causa arista", "en": "Related case"},
    "nodo.ambas": {"es": "Madre y arista", "en": "Parent and related"},
    "fiscal.sin_asignar": {"es": "Sin fiscal asignado", "en": "No prosecutor assigned"},
}


def get_locale() -> str:
    if not has_request_context():
        return "es"
    lang = session.get("lang", "es")
    if lang not in SUPPORTED_LANGS:
        return "es"
    return lang


def translate(key: str) -> str:
    lang = get_locale()
    return I18N.get(key, {}).get(lang, key)
