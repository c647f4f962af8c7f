from __future__ import annotations

import re
from dataclasses import dataclass

from ecoh.core.utils import calcular_dv, formatear_rut

NOMBRES_CL: tuple[str, ...] = (
    "Matías",
    "Benjamín",
    "Cristóbal",
    "Felipe",
    "Sebastián",
    "Nicolás",
    "Diego",
    "Vicente",
    "Tomás",
    "Joaquín",
    "Javiera",
    "Constanza",
    "Catalina",
    "Fernanda",
    "Daniela",
    "Francisca",
    "Valentina",
    "Antonia",
    "Josefa",
    "Camila",
)

APELLIDOS_CL: tuple[str, ...] = (
    "González",
    "Muñoz",
    "Rojas",
    "Díaz",
    "Pérez",
    "Soto",
    "Contreras",
    "Silva",
    "Martínez",
    "Sepúlveda",
    "Morales",
    "Rodríguez",
    "López",
    "Fuentes",
    "Hernández",
    "Torres",
    "Araya",
    "Flores",
    "Espinoza",
    "Valenzuela",
)

# Nombres que delatan un registro de relleno en un expediente real
NOMBRES_GENERICOS: tuple[str, ...] = (
    "DEMO",
    "N.N.",
    "SIN NOMBRE",
    "IMPUTADO",
    "VICTIMA",
    "VÍCTIMA",
)

_DIGITOS = re.compile(r"\d{2,}")

# cuerpos de RUT de personas naturales vigentes
RUT_MIN = 5_000_000
RUT_MAX = 26_000_000


@dataclass(frozen=True)
class PersonaDemo:
    nombre: str
    apellidos: str
    rut: str

    @property
    def nombre_completo(self) -> str:
        return f"{self.nombre} {self.apellidos}"


def es_nombre_generico(nombre_completo: str) -> bool:
    valor = (nombre_completo or "").strip()
    if not valor:
        return True
    if any(token in valor.upper() for token in NOMBRES_GENERICOS):
        return True
    return bool(_DIGITOS.search(valor))


def rut_demo(indice: int) -> str:
    """RUT formateado y con digito verificador correcto, estable para cada indice."""
    cuerpo = RUT_MIN + (indice * 7_919_311) % (RUT_MAX - RUT_MIN)
    return formatear_rut(f"{cuerpo}{calcular_dv(str(cuerpo))}")


def generar_personas(total: int, desde: int = 0) -> list[PersonaDemo]:
    """Personas chilenas verosimiles para sembrar imputados y victimas.

    ``desde`` desplaza la secuencia, de modo que dos llamadas con rangos
    distintos no repiten RUT.
    """
    if total < 0:
        raise ValueError("total debe ser mayor o igual a 0")

    personas: list[PersonaDemo] = []
    for indice in range(desde, desde + total):
        nombre = NOMBRES_CL[indice % len(NOMBRES_CL)]
        apellidos = f"{APELLIDOS_CL[indice % len(APELLIDOS_CL)]} {APELLIDOS_CL[(indice + 7) % len(APELLIDOS_CL)]}"
        persona = PersonaDemo(nombre=nombre, apellidos=apellidos, rut=rut_demo(indice + 1))
        if es_nombre_generico(persona.nombre_completo):
            raise ValueError(f"Nombre de prueba no permitido: {persona.nombre_completo}")
        personas.append(persona)
    return personas
