from __future__ import annotations

from datetime import date, datetime


class NotFoundError(LookupError):
    """Registro inexistente; las rutas lo traducen a 404."""


TRUE_VALUES = {"1", "true", "on", "si", "sí", "yes"}
IGNORED_FILTER_VALUES = {"", "all"}


def text(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def filter_value(filters: dict[str, object], key: str) -> str:
    # "all" y cadena vacia equivalen a no filtrar
    raw = text(filters.get(key))
    if raw.lower() in IGNORED_FILTER_VALUES:
        return ""
    return raw


def parse_iso_date(value: object, field_name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = text(value)
    if not raw:
        raise ValueError(f"Falta {field_name}")
    try:
        return date.fromisoformat(raw[:10])
    except ValueError as exc:
        raise ValueError(f"Formato de fecha invalido para {field_name}") from exc


def parse_optional_iso_date(value: object, field_name: str = "fecha") -> date | None:
    if not text(value):
        return None
    return parse_iso_date(value, field_name)


def parse_iso_datetime(value: object, field_name: str) -> datetime:
    if isinstance(value, datetime):
        return value
    raw = text(value)
    if not raw:
        raise ValueError(f"Falta {field_name}")
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError as exc:
        raise ValueError(f"Formato de fecha invalido para {field_name}") from exc


def parse_int(value: object, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Valor invalido para {field_name}")
    if isinstance(value, int):
        return value
    raw = text(value)
    if not raw:
        raise ValueError(f"Falta {field_name}")
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Valor invalido para {field_name}") from exc


def parse_optional_int(value: object, field_name: str = "valor") -> int | None:
    if not text(value):
        return None
    return parse_int(value, field_name)


def parse_list(value: object, field_name: str) -> list:
    if value is None or value == "":
        return []
    # a string is iterable but never a valid id list
    if not isinstance(value, list):
        raise ValueError(f"{field_name} debe ser una lista")
    return value


def parse_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    return text(value).lower() in TRUE_VALUES


def porcentaje(parte: int | float, total: int | float) -> float:
    if not total:
        return 0.0
    return round(parte * 100 / total, 2)


def paginate_rows(rows: list[dict[str, object]], page: int, limit: int, max_limit: int = 100) -> dict[str, object]:
    safe_page = page if page > 0 else 1
    safe_limit = max(1, min(limit, max_limit))
    total = len(rows)
    start = (safe_page - 1) * safe_limit
    chunk = rows[start : start + safe_limit]
    return {
        "data": chunk,
        "metadata": {
            "total": total,
            "page": safe_page,
            "limit": safe_limit,
            "hasMore": start + len(chunk) < total,
        },
    }


# RUT chileno: cuerpo numerico + digito verificador modulo 11


def limpiar_rut(value: object) -> str:
    return text(value).replace(".", "").replace("-", "").replace(" ", "").upper()


def calcular_dv(cuerpo: str) -> str:
    suma = 0
    multiplicador = 2
    for digito in reversed(cuerpo):
        suma += int(digito) * multiplicador
        multiplicador = 2 if multiplicador == 7 else multiplicador + 1
    resto = 11 - (suma % 11)
    if resto == 11:
        return "0"
    if resto == 10:
        return "K"
    return str(resto)


def validar_rut(value: object) -> bool:
    rut = limpiar_rut(value)
    if len(rut) < 7 or len(rut) > 9:
        return False
    cuerpo, dv = rut[:-1], rut[-1]
    if not cuerpo.isdigit():
        return False
    return calcular_dv(cuerpo) == dv


def formatear_rut(value: object) -> str:
    rut = limpiar_rut(value)
    if len(rut) < 2:
        return rut
    cuerpo, dv = rut[:-1], rut[-1]
    grupos = []
    while cuerpo:
        grupos.insert(0, cuerpo[-3:])
        cuerpo = cuerpo[:-3]
    return f"{'.'.join(grupos)}-{dv}"
