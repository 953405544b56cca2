"""Insumo alert recipients per local

Revision ID: 20261019_alert_recipients
Revises: 20261019_initial
Create Date: 2026-10-19

Creates:
1. insumo_alerta_destinatarios (staff members that receive a local's alert digest)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_alert_recipients'
down_revision = '20261019_initial'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('insumo_alerta_destinatarios',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('local_id', sa.Integer(), nullable=False),
        sa.Column('usuario_id', sa.Integer(), nullable=False),
        sa.Column('creado_en', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['local_id'], ['locales.id'], ),
        sa.ForeignKeyConstraint(['usuario_id'], ['usuarios.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('local_id', 'usuario_id', name='uq_insumo_alerta_destinatarios_local_usuario'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('insumo_alerta_destinatarios', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_insumo_alerta_destinatarios_local_id'), ['local_id'], unique=False)


def downgrade():
    op.drop_table('insumo_alerta_destinatarios')
