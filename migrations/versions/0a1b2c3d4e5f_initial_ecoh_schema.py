"""initial ecoh schema

Revision ID: 0a1b2c3d4e5f
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0a1b2c3d4e5f"
down_revision = None
branch_labels = None
depends_on = None

CATALOG_TABLES = (
    ("delito", 160),
    ("foco", 160),
    ("fiscal", 160),
    ("abogado", 160),
    ("analista", 160),
    ("atvt", 160),
    ("tribunal", 160),
    ("nacionalidad", 120),
    ("cautelar", 160),
    ("area", 120),
    ("proveedor", 120),
    ("ubicacion_telefono", 120),
    ("unidad_policial", 160),
    ("tipo_organizacion", 120),
)


def upgrade():
    op.create_table(
        "usuario",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("nombre", sa.String(length=120), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("rol", sa.Enum("ADMIN", "WRITE", "READ", name="rol_usuario"), nullable=False),
        sa.Column("activo", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    for table_name, length in CATALOG_TABLES:
        op.create_table(
            table_name,
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("nombre", sa.String(length=length), nullable=False, unique=True),
        )

    op.create_table(
        "origen_causa",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("codigo", sa.String(length=30), nullable=False, unique=True),
        sa.Column("nombre", sa.String(length=120), nullable=False, unique=True),
        sa.Column("activo", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_table(
        "tipo_actividad",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("nombre", sa.String(length=160), nullable=False, unique=True),
        sa.Column("siglainf", sa.String(length=20), nullable=True),
        sa.Column("area_id", sa.Integer(), sa.ForeignKey("area.id"), nullable=True),
        sa.Column("activo", sa.Boolean(), nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "causa",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("ruc", sa.String(length=30), nullable=True, unique=True),
        sa.Column("rit", sa.String(length=30), nullable=True),
        sa.Column("denominacion_causa", sa.String(length=255), nullable=False),
        sa.Column("fecha_del_hecho", sa.Date(), nullable=False),
        sa.Column("fecha_hora_toma_conocimiento", sa.DateTime(), nullable=False),
        sa.Column("causa_ecoh", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("causa_sacfi", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("causa_legada", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("constituye_ss", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("homicidio_consumado", sa.Boolean(), nullable=True),
        sa.Column("es_crimen_organizado", sa.Integer(), nullable=False, server_default="2"),
        sa.Column("folio_bw", sa.String(length=60), nullable=False, server_default=""),
        sa.Column("coordenadas_ss", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("numero_ita", sa.String(length=60), nullable=False, server_default=""),
        sa.Column("fecha_ita", sa.Date(), nullable=True),
        sa.Column("numero_ppp", sa.String(length=60), nullable=False, server_default=""),
        sa.Column("fecha_ppp", sa.Date(), nullable=True),
        sa.Column("observacion", sa.Text(), nullable=False, server_default=""),
        sa.Column("delito_id", sa.Integer(), sa.ForeignKey("delito.id"), nullable=False),
        sa.Column("foco_id", sa.Integer(), sa.ForeignKey("foco.id"), nullable=True),
        sa.Column("tribunal_id", sa.Integer(), sa.ForeignKey("tribunal.id"), nullable=True),
        sa.Column("fiscal_id", sa.Integer(), sa.ForeignKey("fiscal.id"), nullable=True),
        sa.Column("abogado_id", sa.Integer(), sa.ForeignKey("abogado.id"), nullable=True),
        sa.Column("analista_id", sa.Integer(), sa.ForeignKey("analista.id"), nullable=True),
        sa.Column("atvt_id", sa.Integer(), sa.ForeignKey("atvt.id"), nullable=True),
        sa.Column("origen_id", sa.Integer(), sa.ForeignKey("origen_causa.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("es_crimen_organizado IN (0, 1, 2)", name="ck_causa_crimen_organizado"),
    )
    op.create_index("ix_causa_fiscal_id", "causa", ["fiscal_id"])
    op.create_index("ix_causa_fiscal_fecha", "causa", ["fiscal_id", "fecha_del_hecho"])

    op.create_table(
        "imputado",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("nombre_sujeto", sa.String(length=160), nullable=False),
        sa.Column("doc_id", sa.String(length=30), nullable=False, unique=True),
        sa.Column("alias", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("nacionalidad_id", sa.Integer(), sa.ForeignKey("nacionalidad.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "causa_imputado",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("causa_id", sa.Integer(), sa.ForeignKey("causa.id"), nullable=False),
        sa.Column("imputado_id", sa.Integer(), sa.ForeignKey("imputado.id"), nullable=False),
        sa.Column("esimputado", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("essujeto_interes", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("formalizado", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("fecha_formalizacion", sa.Date(), nullable=True),
        sa.Column("cautelar_id", sa.Integer(), sa.ForeignKey("cautelar.id"), nullable=True),
        sa.Column("plazo", sa.Integer(), nullable=True),
        sa.UniqueConstraint("causa_id", "imputado_id", name="uq_causa_imputado"),
        sa.CheckConstraint("esimputado OR essujeto_interes", name="ck_causa_imputado_calidad"),
        sa.CheckConstraint("plazo IS NULL OR plazo >= 0", name="ck_causa_imputado_plazo"),
    )
    op.create_index("ix_causa_imputado_causa_id", "causa_imputado", ["causa_id"])
    op.create_index("ix_causa_imputado_imputado_id", "causa_imputado", ["imputado_id"])

    op.create_table(
        "actividad",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("causa_id", sa.Integer(), sa.ForeignKey("causa.id"), nullable=False),
        sa.Column("tipo_actividad_id", sa.Integer(), sa.ForeignKey("tipo_actividad.id"), nullable=False),
        sa.Column("usuario_id", sa.Integer(), sa.ForeignKey("usuario.id"), nullable=False),
        sa.Column("usuario_asignado_id", sa.Integer(), sa.ForeignKey("usuario.id"), nullable=True),
        sa.Column("fecha_inicio", sa.Date(), nullable=False),
        sa.Column("fecha_termino", sa.Date(), nullable=False),
        sa.Column(
            "estado",
            sa.Enum("inicio", "en_proceso", "terminado", name="estado_actividad"),
            nullable=False,
            server_default="inicio",
        ),
        sa.Column("observacion", sa.Text(), nullable=False, server_default=""),
        sa.Column("glosa_cierre", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("fecha_termino >= fecha_inicio", name="ck_actividad_fechas"),
    )
    op.create_index("ix_actividad_causa_id", "actividad", ["causa_id"])
    op.create_index("ix_actividad_estado_asignado", "actividad", ["estado", "usuario_asignado_id"])

    op.create_table(
        "correlativo_tipo_actividad",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tipo_actividad_id", sa.Integer(), sa.ForeignKey("tipo_actividad.id"), nullable=False),
        sa.Column("numero", sa.Integer(), nullable=False),
        sa.Column("sigla", sa.String(length=20), nullable=False),
        sa.Column("anio", sa.Integer(), nullable=False),
        sa.Column("usuario_id", sa.Integer(), sa.ForeignKey("usuario.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("tipo_actividad_id", "anio", "numero", name="uq_correlativo_tipo_anio_numero"),
    )

    op.create_table(
        "organizacion_delictual",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("nombre", sa.String(length=160), nullable=False),
        sa.Column("descripcion", sa.Text(), nullable=False, server_default=""),
        sa.Column("fecha_identificacion", sa.Date(), nullable=False),
        sa.Column("activa", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("tipo_organizacion_id", sa.Integer(), sa.ForeignKey("tipo_organizacion.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "miembro_organizacion",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organizacion_id", sa.Integer(), sa.ForeignKey("organizacion_delictual.id"), nullable=False),
        sa.Column("imputado_id", sa.Integer(), sa.ForeignKey("imputado.id"), nullable=False),
        sa.Column("rol", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("orden", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("fecha_ingreso", sa.Date(), nullable=False),
        sa.Column("fecha_salida", sa.Date(), nullable=True),
        sa.Column("activo", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.CheckConstraint("fecha_salida IS NULL OR fecha_salida >= fecha_ingreso", name="ck_miembro_fechas"),
    )
    op.create_table(
        "organizacion_causa",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organizacion_id", sa.Integer(), sa.ForeignKey("organizacion_delictual.id"), nullable=False),
        sa.Column("causa_id", sa.Integer(), sa.ForeignKey("causa.id"), nullable=False),
        sa.Column("fecha_asociacion", sa.Date(), nullable=False),
        sa.Column("observacion", sa.Text(), nullable=False, server_default=""),
        sa.UniqueConstraint("organizacion_id", "causa_id", name="uq_organizacion_causa"),
    )

    op.create_table(
        "causa_relacionada",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("causa_madre_id", sa.Integer(), sa.ForeignKey("causa.id"), nullable=False),
        sa.Column("causa_arista_id", sa.Integer(), sa.ForeignKey("causa.id"), nullable=False),
        sa.Column("tipo_relacion", sa.String(length=60), nullable=False, server_default=""),
        sa.Column("fecha_relacion", sa.Date(), nullable=False),
        sa.Column("observacion", sa.Text(), nullable=False, server_default=""),
        sa.UniqueConstraint("causa_madre_id", "causa_arista_id", name="uq_causa_relacionada"),
        sa.CheckConstraint("causa_madre_id <> causa_arista_id", name="ck_causa_relacionada_distintas"),
    )
    op.create_index("ix_causa_relacionada_causa_madre_id", "causa_relacionada", ["causa_madre_id"])
    op.create_index("ix_causa_relacionada_causa_arista_id", "causa_relacionada", ["causa_arista_id"])

    op.create_table(
        "telefono",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("numero_telefonico", sa.String(length=30), nullable=False, server_default="no definido"),
        sa.Column("imei", sa.String(length=30), nullable=False),
        sa.Column("abonado", sa.String(length=160), nullable=False),
        sa.Column("nue", sa.String(length=60), nullable=True),
        sa.Column("proveedor_id", sa.Integer(), sa.ForeignKey("proveedor.id"), nullable=False),
        sa.Column("ubicacion_id", sa.Integer(), sa.ForeignKey("ubicacion_telefono.id"), nullable=False),
        sa.Column("solicita_trafico", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("solicita_imei", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("extraccion_forense", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("enviar_custodia", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("observacion", sa.Text(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "telefono_causa",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("telefono_id", sa.Integer(), sa.ForeignKey("telefono.id"), nullable=False),
        sa.Column("causa_id", sa.Integer(), sa.ForeignKey("causa.id"), nullable=False),
        sa.UniqueConstraint("telefono_id", "causa_id", name="uq_telefono_causa"),
    )

    op.create_table(
        "medida_intrusiva",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("causa_id", sa.Integer(), sa.ForeignKey("causa.id"), nullable=False),
        sa.Column("fiscal_id", sa.Integer(), sa.ForeignKey("fiscal.id"), nullable=False),
        sa.Column("fecha_solicitud", sa.Date(), nullable=False),
        sa.Column("tribunal_id", sa.Integer(), sa.ForeignKey("tribunal.id"), nullable=False),
        sa.Column("nombre_juez", sa.String(length=160), nullable=False),
        sa.Column("unidad_policial_id", sa.Integer(), sa.ForeignKey("unidad_policial.id"), nullable=False),
        sa.Column(
            "resolucion",
            sa.Enum(
                "aprueba_totalidad",
                "aprueba_parcialmente",
                "previo_resolver",
                "rechaza",
                name="resolucion_medida",
            ),
            nullable=False,
        ),
        sa.Column("num_domicilios_solicitud", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("num_domicilios_aprobados", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("num_detenidos", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("hallazgos", sa.Text(), nullable=False, server_default=""),
        sa.Column("observaciones", sa.Text(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_medida_intrusiva_causa_id", "medida_intrusiva", ["causa_id"])


def downgrade():
    op.drop_index("ix_medida_intrusiva_causa_id", table_name="medida_intrusiva")
    op.drop_table("medida_intrusiva")
    op.drop_table("telefono_causa")
    op.drop_table("telefono")
    op.drop_index("ix_causa_relacionada_causa_arista_id", table_name="causa_relacionada")
    op.drop_index("ix_causa_relacionada_causa_madre_id", table_name="causa_relacionada")
    op.drop_table("causa_relacionada")
    op.drop_table("organizacion_causa")
    op.drop_table("miembro_organizacion")
    op.drop_table("organizacion_delictual")
    op.drop_table("correlativo_tipo_actividad")
    op.drop_index("ix_actividad_estado_asignado", table_name="actividad")
    op.drop_index("ix_actividad_causa_id", table_name="actividad")
    op.drop_table("actividad")
    op.drop_index("ix_causa_imputado_imputado_id", table_name="causa_imputado")
    op.drop_index("ix_causa_imputado_causa_id", table_name="causa_imputado")
    op.drop_table("causa_imputado")
    op.drop_table("imputado")
    op.drop_index("ix_causa_fiscal_fecha", table_name="causa")
    op.drop_index("ix_causa_fiscal_id", table_name="causa")
    op.drop_table("causa")
    op.drop_table("tipo_actividad")
    op.drop_table("origen_causa")
    for table_name, _length in reversed(CATALOG_TABLES):
        op.drop_table(table_name)
    op.drop_table("usuario")
    sa.Enum(name="resolucion_medida").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="estado_actividad").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="rol_usuario").drop(op.get_bind(), checkfirst=True)
