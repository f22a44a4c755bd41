"""create roles, usuarios, modulos, pestanas, rol_accesos and auditorias

Revision ID: 20261001_01
Revises:
Create Date: 2026-10-01
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261001_01'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'roles',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('nombre', sa.Text(), nullable=False, unique=True),
        sa.Column('abreviatura', sa.Text(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'usuarios',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('numero_documento', sa.String(15), nullable=False, unique=True),
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('password_hash', sa.Text(), nullable=True),
        sa.Column('rol_id', sa.Integer(), sa.ForeignKey('roles.id'), nullable=False),
        sa.Column('intentos_fallidos', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('bloqueado_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'modulos',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('nombre', sa.Text(), nullable=False, unique=True),
        sa.Column('icono', sa.Text(), nullable=False),
        sa.Column('ruta', sa.Text(), nullable=False, unique=True),
        sa.Column('es_padre', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('modulo_padre_id', sa.Integer(), sa.ForeignKey('modulos.id'), nullable=True),
        sa.Column('permisos_extra', sa.JSON(), nullable=False),
        sa.Column('orden', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('idx_modulos_padre', 'modulos', ['modulo_padre_id'])

    op.create_table(
        'pestanas',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('modulo_id', sa.Integer(), sa.ForeignKey('modulos.id'), nullable=False),
        sa.Column('nombre', sa.Text(), nullable=False),
        sa.Column('icono', sa.Text(), nullable=True),
        sa.Column('ruta', sa.Text(), nullable=False),
        sa.Column('permisos_extra', sa.JSON(), nullable=False),
        sa.Column('orden', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('idx_pestanas_modulo', 'pestanas', ['modulo_id'])

    # Los accesos apuntan a un nodo polimórfico: sin FK sobre nodo_id
    op.create_table(
        'rol_accesos',
        sa.Column('rol_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('tipo_nodo', sa.Text(), primary_key=True),
        sa.Column('nodo_id', sa.Integer(), primary_key=True),
        sa.Column('permisos', sa.JSON(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("tipo_nodo IN ('modulo', 'pestana')", name='ck_rol_accesos_tipo'),
    )
    op.create_index('idx_rol_accesos_nodo', 'rol_accesos', ['tipo_nodo', 'nodo_id'])

    op.create_table(
        'auditorias',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('tabla_afectada', sa.String(100), nullable=False),
        sa.Column('id_registro_afectado', sa.String(100), nullable=False),
        sa.Column('accion', sa.String(10), nullable=False),
        sa.Column('usuario_id', sa.Integer(), sa.ForeignKey('usuarios.id', ondelete='SET NULL'), nullable=True),
        sa.Column('cambios', sa.JSON(), nullable=False),
        sa.Column('fecha_creacion', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("accion IN ('INSERT', 'UPDATE', 'DELETE')", name='ck_auditorias_accion'),
    )
    op.create_index('idx_auditorias_registro', 'auditorias', ['tabla_afectada', 'id_registro_afectado'])


def downgrade() -> None:
    op.drop_index('idx_auditorias_registro', table_name='auditorias')
    op.drop_table('auditorias')
    op.drop_index('idx_rol_accesos_nodo', table_name='rol_accesos')
    op.drop_table('rol_accesos')
    op.drop_index('idx_pestanas_modulo', table_name='pestanas')
    op.drop_table('pestanas')
    op.drop_index('idx_modulos_padre', table_name='modulos')
    op.drop_table('modulos')
    op.drop_table('usuarios')
    op.drop_table('roles')
