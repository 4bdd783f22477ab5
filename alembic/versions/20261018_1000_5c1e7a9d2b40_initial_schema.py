"""initial_schema

Revision ID: 5c1e7a9d2b40
Revises:
Create Date: 2026-10-18 10:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# Revision identifiers, used by Alembic
revision: str = '5c1e7a9d2b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

AUDIT_INDEXED_COLUMNS = ('usuario', 'accion', 'modulo', 'resultado', 'fecha')


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('usuario', sa.String(length=100), nullable=False),
        sa.Column('accion', sa.String(length=50), nullable=False),
        sa.Column('modulo', sa.String(length=50), nullable=False),
        sa.Column('descripcion', sa.String(length=1000), nullable=False),
        sa.Column('ip', sa.String(length=45), nullable=True),
        sa.Column('resultado', sa.String(length=50), nullable=False),
        sa.Column('detalles', sa.Text(), nullable=True),
        sa.Column('fecha', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    """Apply migration: initial_schema"""
    # Catalogues
    op.create_table('roles',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('nombre', sa.String(length=100), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('nombre')
    )
    op.create_table('areas',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('nombre', sa.String(length=100), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('nombre')
    )
    op.create_table('cargos',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('nombre', sa.String(length=100), nullable=False),
        sa.Column('area_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['area_id'], ['areas.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_cargos_area_id', 'cargos', ['area_id'], unique=False)

    estado = op.create_table('estado',
        sa.Column('id_estado', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('nombre_estado', sa.String(length=50), nullable=False),
        sa.PrimaryKeyConstraint('id_estado'),
        sa.UniqueConstraint('nombre_estado')
    )
    op.bulk_insert(estado, [
        {'id_estado': 1, 'nombre_estado': 'activo'},
        {'id_estado': 2, 'nombre_estado': 'suspendido'},
    ])

    # Accounts
    op.create_table('users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('nombres', sa.String(length=100), nullable=False),
        sa.Column('apellidos', sa.String(length=100), nullable=False),
        sa.Column('dni', sa.String(length=20), nullable=False),
        sa.Column('email', sa.String(length=100), nullable=False),
        sa.Column('telefono', sa.String(length=20), nullable=True),
        sa.Column('password', sa.String(length=255), nullable=False),
        sa.Column('cargo_id', sa.Integer(), nullable=True),
        sa.Column('area_id', sa.Integer(), nullable=True),
        sa.Column('rol_id', sa.Integer(), nullable=True),
        sa.Column('estado_id', sa.Integer(), nullable=False),
        sa.Column('ultimo_acceso', sa.DateTime(timezone=True), nullable=True),
        sa.Column('session_token', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['cargo_id'], ['cargos.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['area_id'], ['areas.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['rol_id'], ['roles.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['estado_id'], ['estado.id_estado']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_dni', 'users', ['dni'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_estado', 'users', ['estado_id'], unique=False)

    # Audit trail
    op.create_table('audit_logs',
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id')
    )
    for column in AUDIT_INDEXED_COLUMNS:
        op.create_index(f'ix_audit_logs_{column}', 'audit_logs', [column], unique=False)

    op.create_table('audit_logs_user',
        *_audit_columns(),
        sa.Column('user_id', sa.String(length=50), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    for column in AUDIT_INDEXED_COLUMNS:
        op.create_index(f'ix_audit_logs_user_{column}', 'audit_logs_user', [column], unique=False)
    op.create_index('ix_audit_logs_user_user_fecha', 'audit_logs_user', ['user_id', 'fecha'], unique=False)


def downgrade() -> None:
    """Revert migration: initial_schema"""
    op.drop_index('ix_audit_logs_user_user_fecha', table_name='audit_logs_user')
    for column in AUDIT_INDEXED_COLUMNS:
        op.drop_index(f'ix_audit_logs_user_{column}', table_name='audit_logs_user')
    op.drop_table('audit_logs_user')

    for column in AUDIT_INDEXED_COLUMNS:
        op.drop_index(f'ix_audit_logs_{column}', table_name='audit_logs')
    op.drop_table('audit_logs')

    op.drop_index('ix_users_estado', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_dni', table_name='users')
    op.drop_table('users')

    op.drop_table('estado')
    op.drop_index('ix_cargos_area_id', table_name='cargos')
    op.drop_table('cargos')
    op.drop_table('areas')
    op.drop_table('roles')
