from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from enum import Enum

from flask_login import UserMixin
from sqlalchemy import CheckConstraint, Enum as SAEnum, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from werkzeug.security import generate_password_hash

from ecoh.core.demo_people import generar_personas
from ecoh.core.extensions import db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class RolUsuario(str, Enum):
    ADMIN = "ADMIN"
    WRITE = "WRITE"
    READ = "READ"


class EstadoActividad(str, Enum):
    # Carriles del tablero kanban
    INICIO = "inicio"
    EN_PROCESO = "en_proceso"
    TERMINADO = "terminado"


class ResolucionMedida(str, Enum):
    APRUEBA_TOTALIDAD = "aprueba_totalidad"
    APRUEBA_PARCIALMENTE = "aprueba_parcialmente"
    PREVIO_RESOLVER = "previo_resolver"
    RECHAZA = "rechaza"


class CrimenOrganizado(int, Enum):
    SI = 0
    NO = 1
    DESCONOCIDO = 2


class Usuario(UserMixin, db.Model):
    __tablename__ = "usuario"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(db.String(255), unique=True, nullable=False)
    nombre: Mapped[str] = mapped_column(db.String(120), nullable=False)
    password_hash: Mapped[str] = mapped_column(db.String(255), nullable=False)
    rol: Mapped[RolUsuario] = mapped_column(
        SAEnum(RolUsuario, name="rol_usuario"),
        nullable=False,
        default=RolUsuario.READ,
    )
    activo: Mapped[bool] = mapped_column(default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    @property
    def is_active(self) -> bool:
        return bool(self.activo)


# Catalogos de referencia: id + nombre unico.


class Delito(db.Model):
    __tablename__ = "delito"

    id: Mapped[int] = mapped_column(primary_key=True)
    nombre: Mapped[str] = mapped_column(db.String(160), unique=True, nullable=False)


class Foco(db.Model):
    __tablename__ = "foco"

    id: Mapped[int] = mapped_column(primary_key=True)
    nombre: Mapped[str] = mapped_column(db.String(160), unique=True, nullable=False)


class Fiscal(db.Model):
    __tablename__ = "fiscal"

    id: Mapped[int] = mapped_column(primary_key=True)
    nombre: Mapped[str] = mapped_column(db.String(160), unique=True, nullable=False)

    causas = relationship("Causa", back_populates="fiscal")


class Abogado(db.Model):
    __tablename__ = "abogado"

    id: Mapped[int] = mapped_column(primary_key=True)
    nombre: Mapped[str] = mapped_column(db.String(160), unique=True, nullable=False)


class Analista(db.Model):
    __tablename__ = "analista"

    id: Mapped[int] = mapped_column(primary_key=True)
    nombre: Mapped[str] = mapped_column(db.String(160), unique=True, nullable=False)


class Atvt(db.Model):
    __tablename__ = "atvt"

    id: Mapped[int] = mapped_column(primary_key=True)
    nombre: Mapped[str] = mapped_column(db.String(160), unique=True, nullable=False)


class Tribunal(db.Model):
    __tablename__ = "tribunal"

    id: Mapped[int] = mapped_column(primary_key=True)
    nombre: Mapped[str] = mapped_column(db.String(160), unique=True, nullable=False)


class Nacionalidad(db.Model):
    __tablename__ = "nacionalidad"

    id: Mapped[int] = mapped_column(primary_key=True)
    nombre: Mapped[str] = mapped_column(db.String(120), unique=True, nullable=False)


class Cautelar(db.Model):
    # Medida cautelar (prision preventiva, internacion provisoria, ...)
    __tablename__ = "cautelar"

    id: Mapped[int] = mapped_column(primary_key=True)
    nombre: Mapped[str] = mapped_column(db.String(160), unique=True, nullable=False)


class OrigenCausa(db.Model):
    __tablename__ = "origen_causa"

    id: Mapped[int] = mapped_column(primary_key=True)
    codigo: Mapped[str] = mapped_column(db.String(30), unique=True, nullable=False)
    nombre: Mapped[str] = mapped_column(db.String(120), unique=True, nullable=False)
    activo: Mapped[bool] = mapped_column(default=True, nullable=False)


class Area(db.Model):
    __tablename__ = "area"

    id: Mapped[int] = mapped_column(primary_key=True)
    nombre: Mapped[str] = mapped_column(db.String(120), unique=True, nullable=False)

    tipos_actividad = relationship("TipoActividad", back_populates="area")


class TipoActividad(db.Model):
    __tablename__ = "tipo_actividad"

    id: Mapped[int] = mapped_column(primary_key=True)
    nombre: Mapped[str] = mapped_column(db.String(160), unique=True, nullable=False)
    siglainf: Mapped[str | None] = mapped_column(db.String(20), nullable=True)
    area_id: Mapped[int | None] = mapped_column(ForeignKey("area.id"), nullable=True)
    activo: Mapped[bool] = mapped_column(default=True, nullable=False)

    area = relationship("Area", back_populates="tipos_actividad")


class Proveedor(db.Model):
    __tablename__ = "proveedor"

    id: Mapped[int] = mapped_column(primary_key=True)
    nombre: Mapped[str] = mapped_column(db.String(120), unique=True, nullable=False)


class UbicacionTelefono(db.Model):
    __tablename__ = "ubicacion_telefono"

    id: Mapped[int] = mapped_column(primary_key=True)
    nombre: Mapped[str] = mapped_column(db.String(120), unique=True, nullable=False)


class UnidadPolicial(db.Model):
    __tablename__ = "unidad_policial"

    id: Mapped[int] = mapped_column(primary_key=True)
    nombre: Mapped[str] = mapped_column(db.String(160), unique=True, nullable=False)


class TipoOrganizacion(db.Model):
    __tablename__ = "tipo_organizacion"

    id: Mapped[int] = mapped_column(primary_key=True)
    nombre: Mapped[str] = mapped_column(db.String(120), unique=True, nullable=False)


class Causa(db.Model):
    __tablename__ = "causa"
    __table_args__ = (
        CheckConstraint("es_crimen_organizado IN (0, 1, 2)", name="ck_causa_crimen_organizado"),
        Index("ix_causa_fiscal_fecha", "fiscal_id", "fecha_del_hecho"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    ruc: Mapped[str | None] = mapped_column(db.String(30), unique=True, nullable=True)
    rit: Mapped[str | None] = mapped_column(db.String(30), nullable=True)
    denominacion_causa: Mapped[str] = mapped_column(db.String(255), nullable=False)
    fecha_del_hecho: Mapped[date] = mapped_column(nullable=False)
    fecha_hora_toma_conocimiento: Mapped[datetime] = mapped_column(nullable=False)
    causa_ecoh: Mapped[bool] = mapped_column(nullable=False, default=False)
    causa_sacfi: Mapped[bool] = mapped_column(nullable=False, default=False)
    causa_legada: Mapped[bool] = mapped_column(nullable=False, default=False)
    constituye_ss: Mapped[bool] = mapped_column(nullable=False, default=False)
    homicidio_consumado: Mapped[bool | None] = mapped_column(nullable=True)
    es_crimen_organizado: Mapped[int] = mapped_column(
        nullable=False,
        default=CrimenOrganizado.DESCONOCIDO.value,
    )
    folio_bw: Mapped[str] = mapped_column(db.String(60), nullable=False, default="")
    coordenadas_ss: Mapped[str] = mapped_column(db.String(120), nullable=False, default="")
    numero_ita: Mapped[str] = mapped_column(db.String(60), nullable=False, default="")
    fecha_ita: Mapped[date | None] = mapped_column(nullable=True)
    numero_ppp: Mapped[str] = mapped_column(db.String(60), nullable=False, default="")
    fecha_ppp: Mapped[date | None] = mapped_column(nullable=True)
    observacion: Mapped[str] = mapped_column(db.Text, nullable=False, default="")
    delito_id: Mapped[int] = mapped_column(ForeignKey("delito.id"), nullable=False)
    foco_id: Mapped[int | None] = mapped_column(ForeignKey("foco.id"), nullable=True)
    tribunal_id: Mapped[int | None] = mapped_column(ForeignKey("tribunal.id"), nullable=True)
    fiscal_id: Mapped[int | None] = mapped_column(ForeignKey("fiscal.id"), nullable=True, index=True)
    abogado_id: Mapped[int | None] = mapped_column(ForeignKey("abogado.id"), nullable=True)
    analista_id: Mapped[int | None] = mapped_column(ForeignKey("analista.id"), nullable=True)
    atvt_id: Mapped[int | None] = mapped_column(ForeignKey("atvt.id"), nullable=True)
    origen_id: Mapped[int | None] = mapped_column(ForeignKey("origen_causa.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)

    delito = relationship("Delito")
    foco = relationship("Foco")
    tribunal = relationship("Tribunal")
    fiscal = relationship("Fiscal", back_populates="causas")
    abogado = relationship("Abogado")
    analista = relationship("Analista")
    atvt = relationship("Atvt")
    origen = relationship("OrigenCausa")
    imputados = relationship("CausaImputado", back_populates="causa", cascade="all, delete-orphan")
    victimas = relationship("CausaVictima", back_populates="causa", cascade="all, delete-orphan")
    actividades = relationship("Actividad", back_populates="causa", cascade="all, delete-orphan")

    @property
    def label(self) -> str:
        return self.ruc or f"Causa #{self.id}"


class Imputado(db.Model):
    __tablename__ = "imputado"

    id: Mapped[int] = mapped_column(primary_key=True)
    nombre_sujeto: Mapped[str] = mapped_column(db.String(160), nullable=False)
    doc_id: Mapped[str] = mapped_column(db.String(30), unique=True, nullable=False)
    alias: Mapped[str] = mapped_column(db.String(120), nullable=False, default="")
    nacionalidad_id: Mapped[int | None] = mapped_column(ForeignKey("nacionalidad.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)

    nacionalidad = relationship("Nacionalidad")
    causas = relationship("CausaImputado", back_populates="imputado", cascade="all, delete-orphan")


class CausaImputado(db.Model):
    __tablename__ = "causa_imputado"
    __table_args__ = (
        UniqueConstraint("causa_id", "imputado_id", name="uq_causa_imputado"),
        CheckConstraint("esimputado OR essujeto_interes", name="ck_causa_imputado_calidad"),
        CheckConstraint("plazo IS NULL OR plazo >= 0", name="ck_causa_imputado_plazo"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    causa_id: Mapped[int] = mapped_column(ForeignKey("causa.id"), nullable=False, index=True)
    imputado_id: Mapped[int] = mapped_column(ForeignKey("imputado.id"), nullable=False, index=True)
    esimputado: Mapped[bool] = mapped_column(nullable=False, default=False)
    essujeto_interes: Mapped[bool] = mapped_column(nullable=False, default=False)
    formalizado: Mapped[bool] = mapped_column(nullable=False, default=False)
    fecha_formalizacion: Mapped[date | None] = mapped_column(nullable=True)
    cautelar_id: Mapped[int | None] = mapped_column(ForeignKey("cautelar.id"), nullable=True)
    plazo: Mapped[int | None] = mapped_column(nullable=True)

    causa = relationship("Causa", back_populates="imputados")
    imputado = relationship("Imputado", back_populates="causas")
    cautelar = relationship("Cautelar")


class Victima(db.Model):
    __tablename__ = "victima"

    id: Mapped[int] = mapped_column(primary_key=True)
    nombre_victima: Mapped[str] = mapped_column(db.String(160), nullable=False)
    doc_id: Mapped[str] = mapped_column(db.String(30), unique=True, nullable=False)
    nacionalidad_id: Mapped[int | None] = mapped_column(ForeignKey("nacionalidad.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    nacionalidad = relationship("Nacionalidad")
    causas = relationship("CausaVictima", back_populates="victima", cascade="all, delete-orphan")


class CausaVictima(db.Model):
    # clave compuesta: una victima figura una sola vez por causa
    __tablename__ = "causa_victima"

    causa_id: Mapped[int] = mapped_column(ForeignKey("causa.id"), primary_key=True)
    victima_id: Mapped[int] = mapped_column(ForeignKey("victima.id"), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    causa = relationship("Causa", back_populates="victimas")
    victima = relationship("Victima", back_populates="causas")


class Actividad(db.Model):
    __tablename__ = "actividad"
    __table_args__ = (
        CheckConstraint("fecha_termino >= fecha_inicio", name="ck_actividad_fechas"),
        Index("ix_actividad_estado_asignado", "estado", "usuario_asignado_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    causa_id: Mapped[int] = mapped_column(ForeignKey("causa.id"), nullable=False, index=True)
    tipo_actividad_id: Mapped[int] = mapped_column(ForeignKey("tipo_actividad.id"), nullable=False)
    usuario_id: Mapped[int] = mapped_column(ForeignKey("usuario.id"), nullable=False)
    usuario_asignado_id: Mapped[int | None] = mapped_column(ForeignKey("usuario.id"), nullable=True)
    fecha_inicio: Mapped[date] = mapped_column(nullable=False)
    fecha_termino: Mapped[date] = mapped_column(nullable=False)
    estado: Mapped[EstadoActividad] = mapped_column(
        SAEnum(EstadoActividad, name="estado_actividad", values_callable=_enum_values),
        nullable=False,
        default=EstadoActividad.INICIO,
    )
    observacion: Mapped[str] = mapped_column(db.Text, nullable=False, default="")
    glosa_cierre: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)

    causa = relationship("Causa", back_populates="actividades")
    tipo_actividad = relationship("TipoActividad")
    usuario = relationship("Usuario", foreign_keys=[usuario_id])
    usuario_asignado = relationship("Usuario", foreign_keys=[usuario_asignado_id])

    @property
    def responsable(self) -> Usuario | None:
        return self.usuario_asignado or self.usuario

    @property
    def delegada(self) -> bool:
        return bool(self.usuario_asignado_id and self.usuario_asignado_id != self.usuario_id)

    @validates("fecha_inicio", "fecha_termino")
    def validate_fechas(self, _key, value):
        fecha_inicio = value if _key == "fecha_inicio" else self.fecha_inicio
        fecha_termino = value if _key == "fecha_termino" else self.fecha_termino
        if fecha_inicio and fecha_termino and fecha_termino < fecha_inicio:
            raise ValueError("La fecha de término debe ser posterior a la fecha de inicio")
        return value


class CorrelativoTipoActividad(db.Model):
    # Numeracion de informes por tipo de actividad, reinicia cada ano
    __tablename__ = "correlativo_tipo_actividad"
    __table_args__ = (
        UniqueConstraint("tipo_actividad_id", "anio", "numero", name="uq_correlativo_tipo_anio_numero"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    tipo_actividad_id: Mapped[int] = mapped_column(ForeignKey("tipo_actividad.id"), nullable=False)
    numero: Mapped[int] = mapped_column(nullable=False)
    sigla: Mapped[str] = mapped_column(db.String(20), nullable=False)
    anio: Mapped[int] = mapped_column(nullable=False)
    usuario_id: Mapped[int | None] = mapped_column(ForeignKey("usuario.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    tipo_actividad = relationship("TipoActividad")
    usuario = relationship("Usuario")

    @property
    def correlativo_completo(self) -> str:
        return format_correlativo(self.sigla, self.numero)


def format_correlativo(sigla: str, numero: int) -> str:
    return f"{sigla}-{numero:03d}"


class OrganizacionDelictual(db.Model):
    __tablename__ = "organizacion_delictual"

    id: Mapped[int] = mapped_column(primary_key=True)
    nombre: Mapped[str] = mapped_column(db.String(160), nullable=False)
    descripcion: Mapped[str] = mapped_column(db.Text, nullable=False, default="")
    fecha_identificacion: Mapped[date] = mapped_column(nullable=False)
    activa: Mapped[bool] = mapped_column(nullable=False, default=True)
    tipo_organizacion_id: Mapped[int] = mapped_column(ForeignKey("tipo_organizacion.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    tipo_organizacion = relationship("TipoOrganizacion")
    miembros = relationship(
        "MiembroOrganizacion",
        back_populates="organizacion",
        cascade="all, delete-orphan",
        order_by="MiembroOrganizacion.orden",
    )
    causas = relationship("OrganizacionCausa", back_populates="organizacion", cascade="all, delete-orphan")


class MiembroOrganizacion(db.Model):
    __tablename__ = "miembro_organizacion"
    __table_args__ = (
        CheckConstraint("fecha_salida IS NULL OR fecha_salida >= fecha_ingreso", name="ck_miembro_fechas"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    organizacion_id: Mapped[int] = mapped_column(ForeignKey("organizacion_delictual.id"), nullable=False)
    imputado_id: Mapped[int] = mapped_column(ForeignKey("imputado.id"), nullable=False)
    rol: Mapped[str] = mapped_column(db.String(120), nullable=False, default="")
    orden: Mapped[int] = mapped_column(nullable=False, default=0)
    fecha_ingreso: Mapped[date] = mapped_column(nullable=False)
    fecha_salida: Mapped[date | None] = mapped_column(nullable=True)
    activo: Mapped[bool] = mapped_column(nullable=False, default=True)

    organizacion = relationship("OrganizacionDelictual", back_populates="miembros")
    imputado = relationship("Imputado")


class OrganizacionCausa(db.Model):
    __tablename__ = "organizacion_causa"
    __table_args__ = (UniqueConstraint("organizacion_id", "causa_id", name="uq_organizacion_causa"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    organizacion_id: Mapped[int] = mapped_column(ForeignKey("organizacion_delictual.id"), nullable=False)
    causa_id: Mapped[int] = mapped_column(ForeignKey("causa.id"), nullable=False)
    fecha_asociacion: Mapped[date] = mapped_column(nullable=False)
    observacion: Mapped[str] = mapped_column(db.Text, nullable=False, default="")

    organizacion = relationship("OrganizacionDelictual", back_populates="causas")
    causa = relationship("Causa")


class CausaRelacionada(db.Model):
    __tablename__ = "causa_relacionada"
    __table_args__ = (
        UniqueConstraint("causa_madre_id", "causa_arista_id", name="uq_causa_relacionada"),
        CheckConstraint("causa_madre_id <> causa_arista_id", name="ck_causa_relacionada_distintas"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    causa_madre_id: Mapped[int] = mapped_column(ForeignKey("causa.id"), nullable=False, index=True)
    causa_arista_id: Mapped[int] = mapped_column(ForeignKey("causa.id"), nullable=False, index=True)
    tipo_relacion: Mapped[str] = mapped_column(db.String(60), nullable=False, default="")
    fecha_relacion: Mapped[date] = mapped_column(nullable=False, default=date.today)
    observacion: Mapped[str] = mapped_column(db.Text, nullable=False, default="")

    causa_madre = relationship("Causa", foreign_keys=[causa_madre_id])
    causa_arista = relationship("Causa", foreign_keys=[causa_arista_id])


class Telefono(db.Model):
    __tablename__ = "telefono"

    id: Mapped[int] = mapped_column(primary_key=True)
    numero_telefonico: Mapped[str] = mapped_column(db.String(30), nullable=False, default="no definido")
    imei: Mapped[str] = mapped_column(db.String(30), nullable=False)
    abonado: Mapped[str] = mapped_column(db.String(160), nullable=False)
    nue: Mapped[str | None] = mapped_column(db.String(60), nullable=True)
    proveedor_id: Mapped[int] = mapped_column(ForeignKey("proveedor.id"), nullable=False)
    ubicacion_id: Mapped[int] = mapped_column(ForeignKey("ubicacion_telefono.id"), nullable=False)
    solicita_trafico: Mapped[bool] = mapped_column(nullable=False, default=False)
    solicita_imei: Mapped[bool] = mapped_column(nullable=False, default=False)
    extraccion_forense: Mapped[bool] = mapped_column(nullable=False, default=False)
    enviar_custodia: Mapped[bool] = mapped_column(nullable=False, default=False)
    observacion: Mapped[str] = mapped_column(db.Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    proveedor = relationship("Proveedor")
    ubicacion = relationship("UbicacionTelefono")
    causas = relationship("TelefonoCausa", back_populates="telefono", cascade="all, delete-orphan")


class TelefonoCausa(db.Model):
    __tablename__ = "telefono_causa"
    __table_args__ = (UniqueConstraint("telefono_id", "causa_id", name="uq_telefono_causa"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    telefono_id: Mapped[int] = mapped_column(ForeignKey("telefono.id"), nullable=False)
    causa_id: Mapped[int] = mapped_column(ForeignKey("causa.id"), nullable=False)

    telefono = relationship("Telefono", back_populates="causas")
    causa = relationship("Causa")


class MedidaIntrusiva(db.Model):
    __tablename__ = "medida_intrusiva"

    id: Mapped[int] = mapped_column(primary_key=True)
    causa_id: Mapped[int] = mapped_column(ForeignKey("causa.id"), nullable=False, index=True)
    fiscal_id: Mapped[int] = mapped_column(ForeignKey("fiscal.id"), nullable=False)
    fecha_solicitud: Mapped[date] = mapped_column(nullable=False)
    tribunal_id: Mapped[int] = mapped_column(ForeignKey("tribunal.id"), nullable=False)
    nombre_juez: Mapped[str] = mapped_column(db.String(160), nullable=False)
    unidad_policial_id: Mapped[int] = mapped_column(ForeignKey("unidad_policial.id"), nullable=False)
    resolucion: Mapped[ResolucionMedida] = mapped_column(
        SAEnum(ResolucionMedida, name="resolucion_medida", values_callable=_enum_values),
        nullable=False,
    )
    num_domicilios_solicitud: Mapped[int] = mapped_column(nullable=False, default=0)
    num_domicilios_aprobados: Mapped[int] = mapped_column(nullable=False, default=0)
    num_detenidos: Mapped[int] = mapped_column(nullable=False, default=0)
    hallazgos: Mapped[str] = mapped_column(db.Text, nullable=False, default="")
    observaciones: Mapped[str] = mapped_column(db.Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    causa = relationship("Causa")
    fiscal = relationship("Fiscal")
    tribunal = relationship("Tribunal")
    unidad_policial = relationship("UnidadPolicial")


def seed_demo_data(session) -> None:
    admin = Usuario(
        email="admin@ecoh.local",
        nombre="Administrador ECOH",
        password_hash=generate_password_hash("admin123"),
        rol=RolUsuario.ADMIN,
    )
    analista_user = Usuario(
        email="analista@ecoh.local",
        nombre="Camila Rojas",
        password_hash=generate_password_hash("analista123"),
        rol=RolUsuario.WRITE,
    )
    consulta = Usuario(
        email="consulta@ecoh.local",
        nombre="Usuario Consulta",
        password_hash=generate_password_hash("consulta123"),
        rol=RolUsuario.READ,
    )
    session.add_all([admin, analista_user, consulta])

    homicidio = Delito(nombre="Homicidio")
    robo = Delito(nombre="Robo con violencia")
    trafico = Delito(nombre="Tráfico de drogas")
    foco = Foco(nombre="Sector norte")
    fiscal_1 = Fiscal(nombre="Andrea Soto")
    fiscal_2 = Fiscal(nombre="Rodrigo Pérez")
    fiscal_3 = Fiscal(nombre="Valentina Muñoz")
    tribunal = Tribunal(nombre="7° Juzgado de Garantía de Santiago")
    abogado = Abogado(nombre="Ignacio Fuentes")
    analista = Analista(nombre="Camila Rojas")
    atvt = Atvt(nombre="Unidad ATVT Centro")
    chilena = Nacionalidad(nombre="Chilena")
    venezolana = Nacionalidad(nombre="Venezolana")
    prision = Cautelar(nombre="Prisión preventiva")
    internacion = Cautelar(nombre="Internación provisoria")
    arresto = Cautelar(nombre="Arresto domiciliario total")
    ecoh = OrigenCausa(codigo="ECOH", nombre="ECOH")
    sacfi = OrigenCausa(codigo="SACFI", nombre="SACFI")
    legada = OrigenCausa(codigo="LEGADA", nombre="Legada")
    area_inv = Area(nombre="Investigación")
    area_analisis = Area(nombre="Análisis criminal")
    tipo_informe = TipoActividad(nombre="Informe policial", siglainf="INF", area=area_inv)
    tipo_diligencia = TipoActividad(nombre="Diligencia en terreno", siglainf="DIL", area=area_inv)
    tipo_analisis = TipoActividad(nombre="Análisis de tráfico", siglainf="ANT", area=area_analisis)
    tipo_reunion = TipoActividad(nombre="Reunión de coordinación", siglainf=None, area=area_analisis)
    entel = Proveedor(nombre="Entel")
    movistar = Proveedor(nombre="Movistar")
    bodega = UbicacionTelefono(nombre="Bodega fiscalía")
    custodia = UbicacionTelefono(nombre="Custodia policial")
    bh = UnidadPolicial(nombre="Brigada de Homicidios")
    os9 = UnidadPolicial(nombre="OS-9")
    clan = TipoOrganizacion(nombre="Clan familiar")
    banda = TipoOrganizacion(nombre="Banda")
    session.add_all(
        [
            homicidio, robo, trafico, foco, fiscal_1, fiscal_2, fiscal_3, tribunal, abogado, analista,
            atvt, chilena, venezolana, prision, internacion, arresto, ecoh, sacfi, legada, area_inv,
            area_analisis, tipo_informe, tipo_diligencia, tipo_analisis, tipo_reunion, entel, movistar,
            bodega, custodia, bh, os9, clan, banda,
        ]
    )
    session.flush()

    today = date.today()
    causa_1 = Causa(
        ruc="2300123456-7",
        rit="1234-2023",
        denominacion_causa="Homicidio en Pudahuel",
        fecha_del_hecho=today - timedelta(days=200),
        fecha_hora_toma_conocimiento=datetime.combine(today - timedelta(days=200), datetime.min.time()),
        causa_ecoh=True,
        constituye_ss=True,
        homicidio_consumado=True,
        es_crimen_organizado=CrimenOrganizado.SI.value,
        delito_id=homicidio.id,
        foco_id=foco.id,
        tribunal_id=tribunal.id,
        fiscal_id=fiscal_1.id,
        abogado_id=abogado.id,
        analista_id=analista.id,
        atvt_id=atvt.id,
        origen_id=ecoh.id,
    )
    causa_2 = Causa(
        ruc="2300654321-K",
        rit="2001-2023",
        denominacion_causa="Robo con violencia en Maipú",
        fecha_del_hecho=today - timedelta(days=150),
        fecha_hora_toma_conocimiento=datetime.combine(today - timedelta(days=149), datetime.min.time()),
        causa_ecoh=True,
        causa_legada=True,
        es_crimen_organizado=CrimenOrganizado.NO.value,
        delito_id=robo.id,
        fiscal_id=fiscal_1.id,
        origen_id=ecoh.id,
    )
    causa_3 = Causa(
        ruc="2400111222-3",
        denominacion_causa="Tráfico en Bajos de Mena",
        fecha_del_hecho=today - timedelta(days=120),
        fecha_hora_toma_conocimiento=datetime.combine(today - timedelta(days=118), datetime.min.time()),
        causa_sacfi=True,
        es_crimen_organizado=CrimenOrganizado.SI.value,
        delito_id=trafico.id,
        fiscal_id=fiscal_2.id,
        origen_id=sacfi.id,
    )
    causa_4 = Causa(
        ruc="2400333444-5",
        denominacion_causa="Homicidio frustrado en La Granja",
        fecha_del_hecho=today - timedelta(days=60),
        fecha_hora_toma_conocimiento=datetime.combine(today - timedelta(days=60), datetime.min.time()),
        homicidio_consumado=False,
        delito_id=homicidio.id,
        fiscal_id=None,
        origen_id=legada.id,
    )
    session.add_all([causa_1, causa_2, causa_3, causa_4])
    session.flush()

    personas = generar_personas(5)
    imputados = [
        Imputado(
            nombre_sujeto=persona.nombre_completo,
            doc_id=doc_id,
            alias=alias,
            nacionalidad_id=nacionalidad.id,
        )
        for persona, doc_id, alias, nacionalidad in zip(
            personas,
            ["12.345.678-5", "11.111.111-1", "22.222.222-2", "V-20456789", "15.678.432-K"],
            ["El Flaco", "", "Chino", "", "Pato"],
            [chilena, chilena, chilena, venezolana, chilena],
        )
    ]
    victimas = [
        Victima(nombre_victima=persona.nombre_completo, doc_id=persona.rut, nacionalidad_id=chilena.id)
        for persona in generar_personas(2, desde=len(personas))
    ]
    session.add_all(victimas)
    session.add_all(imputados)
    session.flush()

    session.add_all(
        [
            # 5 dias restantes -> proximo
            CausaImputado(
                causa_id=causa_1.id,
                imputado_id=imputados[0].id,
                esimputado=True,
                formalizado=True,
                fecha_formalizacion=today - timedelta(days=85),
                cautelar_id=prision.id,
                plazo=90,
            ),
            # vencido hace 10 dias
            CausaImputado(
                causa_id=causa_1.id,
                imputado_id=imputados[1].id,
                esimputado=True,
                formalizado=True,
                fecha_formalizacion=today - timedelta(days=100),
                cautelar_id=internacion.id,
                plazo=90,
            ),
            CausaImputado(
                causa_id=causa_1.id,
                imputado_id=imputados[2].id,
                essujeto_interes=True,
            ),
            # 110 dias restantes -> normal
            CausaImputado(
                causa_id=causa_2.id,
                imputado_id=imputados[3].id,
                esimputado=True,
                formalizado=True,
                fecha_formalizacion=today - timedelta(days=10),
                cautelar_id=arresto.id,
                plazo=120,
            ),
            CausaImputado(
                causa_id=causa_3.id,
                imputado_id=imputados[4].id,
                esimputado=True,
                essujeto_interes=True,
            ),
        ]
    )

    session.add_all(
        [
            Actividad(
                causa_id=causa_1.id,
                tipo_actividad_id=tipo_informe.id,
                usuario_id=admin.id,
                usuario_asignado_id=admin.id,
                fecha_inicio=today - timedelta(days=20),
                fecha_termino=today + timedelta(days=10),
                estado=EstadoActividad.INICIO,
                observacion="Solicitar informe a la BH",
            ),
            Actividad(
                causa_id=causa_1.id,
                tipo_actividad_id=tipo_diligencia.id,
                usuario_id=admin.id,
                usuario_asignado_id=analista_user.id,
                fecha_inicio=today - timedelta(days=15),
                fecha_termino=today + timedelta(days=5),
                estado=EstadoActividad.EN_PROCESO,
                observacion="Empadronamiento de testigos",
            ),
            Actividad(
                causa_id=causa_3.id,
                tipo_actividad_id=tipo_analisis.id,
                usuario_id=analista_user.id,
                usuario_asignado_id=analista_user.id,
                fecha_inicio=today - timedelta(days=40),
                fecha_termino=today - timedelta(days=5),
                estado=EstadoActividad.TERMINADO,
                observacion="Análisis de tráfico de llamadas",
                glosa_cierre="Informe remitido al fiscal",
            ),
        ]
    )

    session.add_all(
        [
            CausaRelacionada(
                causa_madre_id=causa_1.id,
                causa_arista_id=causa_2.id,
                tipo_relacion="Mismo imputado",
                fecha_relacion=today - timedelta(days=30),
            ),
            CausaRelacionada(
                causa_madre_id=causa_1.id,
                causa_arista_id=causa_4.id,
                tipo_relacion="Mismo sector",
                fecha_relacion=today - timedelta(days=20),
            ),
        ]
    )

    organizacion = OrganizacionDelictual(
        nombre="Clan Los Pinos",
        descripcion="Organización dedicada al tráfico en la zona sur",
        fecha_identificacion=today - timedelta(days=90),
        activa=True,
        tipo_organizacion_id=clan.id,
    )
    session.add(organizacion)
    session.flush()
    session.add_all(
        [
            MiembroOrganizacion(
                organizacion_id=organizacion.id,
                imputado_id=imputados[0].id,
                rol="Líder",
                orden=0,
                fecha_ingreso=today - timedelta(days=90),
            ),
            MiembroOrganizacion(
                organizacion_id=organizacion.id,
                imputado_id=imputados[4].id,
                rol="Soldado",
                orden=1,
                fecha_ingreso=today - timedelta(days=80),
            ),
            OrganizacionCausa(
                organizacion_id=organizacion.id,
                causa_id=causa_3.id,
                fecha_asociacion=today - timedelta(days=70),
            ),
        ]
    )

    telefono_1 = Telefono(
        numero_telefonico="+56911112222",
        imei="356938035643809",
        abonado="Juan Pérez",
        proveedor_id=entel.id,
        ubicacion_id=bodega.id,
        solicita_trafico=True,
        extraccion_forense=True,
    )
    telefono_2 = Telefono(
        imei="490154203237518",
        abonado="Desconocido",
        proveedor_id=movistar.id,
        ubicacion_id=custodia.id,
        solicita_imei=True,
        enviar_custodia=True,
    )
    session.add_all([telefono_1, telefono_2])
    session.flush()
    session.add_all(
        [
            TelefonoCausa(telefono_id=telefono_1.id, causa_id=causa_1.id),
            CausaVictima(causa_id=causa_1.id, victima_id=victimas[0].id),
            CausaVictima(causa_id=causa_2.id, victima_id=victimas[1].id),
            TelefonoCausa(telefono_id=telefono_2.id, causa_id=causa_3.id),
            MedidaIntrusiva(
                causa_id=causa_1.id,
                fiscal_id=fiscal_1.id,
                fecha_solicitud=today - timedelta(days=45),
                tribunal_id=tribunal.id,
                nombre_juez="Marcela Araya",
                unidad_policial_id=bh.id,
                resolucion=ResolucionMedida.APRUEBA_TOTALIDAD,
                num_domicilios_solicitud=3,
                num_domicilios_aprobados=3,
                num_detenidos=2,
                hallazgos="Armas, Droga",
            ),
            CorrelativoTipoActividad(
                tipo_actividad_id=tipo_informe.id,
                numero=1,
                sigla="INF",
                anio=today.year,
                usuario_id=admin.id,
            ),
        ]
    )
    session.commit()
