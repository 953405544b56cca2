"""Initial schema: locales, usuarios, insumo catalog and stock ledger

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

Creates:
1. locales (tenant root)
2. usuarios (staff accounts, optionally bound to a local)
3. insumo_categorias, insumos (catalog, stock_total cache)
4. insumo_lotes, insumo_movimientos (append-only stock ledger)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. LOCALES
    # ==========================================================================
    op.create_table('locales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nombre', sa.String(length=80), nullable=False),
        sa.Column('direccion', sa.String(length=160), nullable=True),
        sa.Column('telefono', sa.String(length=40), nullable=True),
        sa.Column('correo', sa.String(length=120), nullable=True),
        sa.Column('creado_en', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('nombre'),
        sqlite_autoincrement=True
    )

    # ==========================================================================
    # 2. USUARIOS
    # ==========================================================================
    op.create_table('usuarios',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nombre', sa.String(length=120), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('rol', sa.String(length=32), nullable=False),
        sa.Column('local_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['local_id'], ['locales.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('usuarios', schema=None) as batch_op:
        batch_op.create_index('ix_usuarios_local_id', ['local_id'], unique=False)

    # ==========================================================================
    # 3. INSUMO CATALOG
    # ==========================================================================
    op.create_table('insumo_categorias',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('local_id', sa.Integer(), nullable=False),
        sa.Column('nombre', sa.String(length=80), nullable=False),
        sa.Column('orden', sa.Integer(), nullable=False),
        sa.Column('creado_en', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['local_id'], ['locales.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('local_id', 'nombre', name='uq_insumo_categorias_local_nombre'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('insumo_categorias', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_insumo_categorias_local_id'), ['local_id'], unique=False)

    op.create_table('insumos',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('local_id', sa.Integer(), nullable=False),
        sa.Column('categoria_id', sa.Integer(), nullable=True),
        sa.Column('nombre', sa.String(length=120), nullable=False),
        sa.Column('descripcion', sa.String(length=300), nullable=True),
        sa.Column('unidad', sa.String(length=20), nullable=False),
        sa.Column('stock_total', sa.Numeric(precision=14, scale=3), nullable=False),
        sa.Column('stock_minimo', sa.Numeric(precision=14, scale=3), nullable=False),
        sa.Column('alerta_vencimiento_dias', sa.Integer(), nullable=False),
        sa.Column('orden', sa.Integer(), nullable=False),
        sa.Column('activo', sa.Boolean(), nullable=False),
        sa.Column('creado_en', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('actualizado_en', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['categoria_id'], ['insumo_categorias.id'], ),
        sa.ForeignKeyConstraint(['local_id'], ['locales.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('local_id', 'nombre', name='uq_insumos_local_nombre'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('insumos', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_insumos_local_id'), ['local_id'], unique=False)
        batch_op.create_index('ix_insumos_local_orden', ['local_id', 'orden'], unique=False)

    # ==========================================================================
    # 4. STOCK LEDGER
    # ==========================================================================
    op.create_table('insumo_lotes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('insumo_id', sa.Integer(), nullable=False),
        sa.Column('local_id', sa.Integer(), nullable=False),
        sa.Column('lote', sa.String(length=80), nullable=True),
        sa.Column('fecha_vencimiento', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cantidad', sa.Numeric(precision=14, scale=3), nullable=False),
        sa.Column('fecha_ingreso', sa.DateTime(timezone=True), nullable=False),
        sa.Column('activo', sa.Boolean(), nullable=False),
        sa.CheckConstraint('cantidad >= 0', name='ck_insumo_lotes_cantidad_non_negative'),
        sa.ForeignKeyConstraint(['insumo_id'], ['insumos.id'], ),
        sa.ForeignKeyConstraint(['local_id'], ['locales.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('insumo_lotes', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_insumo_lotes_insumo_id'), ['insumo_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_insumo_lotes_local_id'), ['local_id'], unique=False)
        batch_op.create_index('ix_insumo_lotes_fifo', ['insumo_id', 'local_id', 'fecha_ingreso'], unique=False)

    op.create_table('insumo_movimientos',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('insumo_id', sa.Integer(), nullable=False),
        sa.Column('local_id', sa.Integer(), nullable=False),
        sa.Column('lote_id', sa.Integer(), nullable=True),
        sa.Column('tipo', sa.String(length=10), nullable=False),
        sa.Column('cantidad', sa.Numeric(precision=14, scale=3), nullable=False),
        sa.Column('motivo', sa.String(length=200), nullable=True),
        sa.Column('nota', sa.String(length=300), nullable=True),
        sa.Column('usuario_id', sa.Integer(), nullable=True),
        sa.Column('fecha', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('cantidad > 0', name='ck_insumo_movimientos_cantidad_positive'),
        sa.ForeignKeyConstraint(['insumo_id'], ['insumos.id'], ),
        sa.ForeignKeyConstraint(['local_id'], ['locales.id'], ),
        sa.ForeignKeyConstraint(['lote_id'], ['insumo_lotes.id'], ),
        sa.ForeignKeyConstraint(['usuario_id'], ['usuarios.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('insumo_movimientos', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_insumo_movimientos_local_id'), ['local_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_insumo_movimientos_lote_id'), ['lote_id'], unique=False)
        batch_op.create_index('ix_insumo_movimientos_local_fecha', ['local_id', 'fecha'], unique=False)
        batch_op.create_index('ix_insumo_movimientos_insumo_fecha', ['insumo_id', 'fecha'], unique=False)


def downgrade():
    op.drop_table('insumo_movimientos')
    op.drop_table('insumo_lotes')
    op.drop_table('insumos')
    op.drop_table('insumo_categorias')
    op.drop_table('usuarios')
    op.drop_table('locales')
