"""Herbarium schema

Revision ID: 001_herbario_schema
Create Date: 2025-06-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_herbario_schema'
down_revision = None
branch_labels = None
depends_on = None

estado_paquete = sa.Enum('recibido', 'en_proceso', 'completo', name='estado_paquete')
estado_clasificacion = sa.Enum(
    'borrador', 'en_analisis', 'firmado', 'completado', 'clasificado', name='estado_clasificacion'
)
estado_reproductivo = sa.Enum(
    'Vegetativo', 'Floración', 'Fructificación', 'Floración y Fructificación', 'Estéril',
    name='estado_reproductivo'
)
tipo_amenaza = sa.Enum('CR', 'EN', 'VU', 'NT', 'LC', 'NN', name='tipo_amenaza')


def upgrade() -> None:
    # Geography
    op.create_table(
        'region',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nombre', sa.String(100), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('nombre')
    )
    op.create_index('ix_region_id', 'region', ['id'])

    op.create_table(
        'departamento',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nombre', sa.String(100), nullable=False),
        sa.Column('id_region', sa.Integer(), sa.ForeignKey('region.id', ondelete='SET NULL'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('nombre')
    )
    op.create_index('ix_departamento_id', 'departamento', ['id'])
    op.create_index('ix_departamento_id_region', 'departamento', ['id_region'])

    op.create_table(
        'municipio',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nombre', sa.String(150), nullable=False),
        sa.Column('id_departamento', sa.Integer(),
                  sa.ForeignKey('departamento.id', ondelete='CASCADE'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_municipio_id', 'municipio', ['id'])
    op.create_index('ix_municipio_id_departamento', 'municipio', ['id_departamento'])

    op.create_table(
        'conglomerado',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('codigo', sa.String(50), nullable=False),
        sa.Column('latitud_dec', sa.Float(), nullable=True),
        sa.Column('longitud_dec', sa.Float(), nullable=True),
        sa.Column('id_municipio', sa.Integer(), sa.ForeignKey('municipio.id', ondelete='SET NULL'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_conglomerado_id', 'conglomerado', ['id'])
    op.create_index('ix_conglomerado_codigo', 'conglomerado', ['codigo'], unique=True)
    op.create_index('ix_conglomerado_id_municipio', 'conglomerado', ['id_municipio'])

    # Taxonomy
    op.create_table(
        'familia',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nombre', sa.String(100), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_familia_id', 'familia', ['id'])
    op.create_index('ix_familia_nombre', 'familia', ['nombre'], unique=True)

    op.create_table(
        'genero',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nombre', sa.String(100), nullable=False),
        sa.Column('id_familia', sa.Integer(), sa.ForeignKey('familia.id', ondelete='CASCADE'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_genero_id', 'genero', ['id'])
    op.create_index('ix_genero_nombre', 'genero', ['nombre'])
    op.create_index('ix_genero_id_familia', 'genero', ['id_familia'])

    op.create_table(
        'especie',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nombre', sa.String(150), nullable=False),
        sa.Column('nombre_comun', sa.String(150), nullable=True),
        sa.Column('tipo_amenaza', tipo_amenaza, nullable=True),
        sa.Column('id_genero', sa.Integer(), sa.ForeignKey('genero.id', ondelete='CASCADE'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_especie_id', 'especie', ['id'])
    op.create_index('ix_especie_nombre', 'especie', ['nombre'])
    op.create_index('ix_especie_id_genero', 'especie', ['id_genero'])

    # Herbarium workflow
    op.create_table(
        'paquete',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('num_paquete', sa.String(50), nullable=False),
        sa.Column('fecha_recibido_herbario', sa.Date(), nullable=True),
        sa.Column('id_conglomerado', sa.Integer(),
                  sa.ForeignKey('conglomerado.id', ondelete='SET NULL'), nullable=True),
        sa.Column('estado', estado_paquete, nullable=False, server_default='recibido'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_paquete_id', 'paquete', ['id'])
    op.create_index('ix_paquete_id_conglomerado', 'paquete', ['id_conglomerado'])

    op.create_table(
        'muestra_botanica',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('num_coleccion', sa.String(50), nullable=True),
        sa.Column('num_individuo', sa.String(50), nullable=True),
        sa.Column('colector', sa.String(200), nullable=True),
        sa.Column('observaciones', sa.Text(), nullable=True),
        sa.Column('fecha_coleccion', sa.Date(), nullable=True),
        sa.Column('familia_identificada', sa.String(100), nullable=True),
        sa.Column('genero_identificado', sa.String(100), nullable=True),
        sa.Column('id_paquete', sa.Integer(), sa.ForeignKey('paquete.id', ondelete='SET NULL'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_muestra_botanica_id', 'muestra_botanica', ['id'])
    op.create_index('ix_muestra_botanica_id_paquete', 'muestra_botanica', ['id_paquete'])

    op.create_table(
        'archivos',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bucket_id', sa.String(100), nullable=False),
        sa.Column('path', sa.String(500), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('mime', sa.String(100), nullable=True),
        sa.Column('size', sa.Integer(), nullable=True),
        sa.Column('user_id', sa.String(36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_archivos_id', 'archivos', ['id'])

    op.create_table(
        'clasificacion_herbario',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('id_muestra', sa.Integer(),
                  sa.ForeignKey('muestra_botanica.id', ondelete='CASCADE'), nullable=False),
        sa.Column('id_especie', sa.Integer(), sa.ForeignKey('especie.id', ondelete='SET NULL'), nullable=True),
        sa.Column('estado', estado_clasificacion, nullable=False, server_default='borrador'),
        sa.Column('estado_reproductivo', estado_reproductivo, nullable=True),
        sa.Column('id_foto', sa.Integer(), sa.ForeignKey('archivos.id', ondelete='SET NULL'), nullable=True),
        sa.Column('id_determinador', sa.String(36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_clasificacion_herbario_id', 'clasificacion_herbario', ['id'])
    op.create_index('ix_clasificacion_herbario_id_muestra', 'clasificacion_herbario', ['id_muestra'])
    op.create_index('ix_clasificacion_herbario_id_especie', 'clasificacion_herbario', ['id_especie'])
    op.create_index('ix_clasificacion_herbario_estado', 'clasificacion_herbario', ['estado'])
    # at most one borrador/en_analisis classification per sample
    op.create_index(
        'uq_clasificacion_en_proceso', 'clasificacion_herbario', ['id_muestra'], unique=True,
        postgresql_where=sa.text("estado IN ('borrador', 'en_analisis')")
    )


def downgrade() -> None:
    op.drop_table('clasificacion_herbario')
    op.drop_table('archivos')
    op.drop_table('muestra_botanica')
    op.drop_table('paquete')
    op.drop_table('especie')
    op.drop_table('genero')
    op.drop_table('familia')
    op.drop_table('conglomerado')
    op.drop_table('municipio')
    op.drop_table('departamento')
    op.drop_table('region')

    bind = op.get_bind()
    for enum_type in (estado_clasificacion, estado_reproductivo, estado_paquete, tipo_amenaza):
        enum_type.drop(bind, checkfirst=True)
