"""initial dosing schema

Revision ID: c7d1e2f3a4b5
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'c7d1e2f3a4b5'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

system_type = sa.Enum('COOLING', 'BOILER', 'DENOX', 'OTHER', name='systemtype')
shape_type = sa.Enum('VERTICAL_CYLINDER', 'HORIZONTAL_CYLINDER', 'RECTANGULAR', name='shapetype')
head_type = sa.Enum('FLAT', 'HEMISPHERICAL', 'SEMI_ELLIPTICAL_2_1', name='headtype')
input_unit = sa.Enum('CM', 'PERCENT', name='inputunit')
calculation_method = sa.Enum('NONE', 'CWS_BLOWDOWN', 'BWS_STEAM', name='calculationmethod')


def upgrade() -> None:
    op.create_table(
        'tanks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('system', system_type, nullable=False),
        sa.Column('capacity_liters', sa.Float(), nullable=True),
        sa.Column('factor', sa.Float(), nullable=True),
        sa.Column('shape_type', shape_type, nullable=True),
        sa.Column('diameter_cm', sa.Float(), nullable=True),
        sa.Column('length_cm', sa.Float(), nullable=True),
        sa.Column('width_cm', sa.Float(), nullable=True),
        sa.Column('height_cm', sa.Float(), nullable=True),
        sa.Column('sensor_offset_cm', sa.Float(), nullable=True),
        sa.Column('head_type', head_type, nullable=True),
        sa.Column('input_unit', input_unit, nullable=False),
        sa.Column('safe_min_level', sa.Float(), nullable=True),
        sa.Column('validation_threshold', sa.Float(), nullable=True),
        sa.Column('sg_range_min', sa.Float(), nullable=True),
        sa.Column('sg_range_max', sa.Float(), nullable=True),
        sa.Column('calculation_method', calculation_method, nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_tanks_id'), 'tanks', ['id'], unique=False)
    op.create_index(op.f('ix_tanks_name'), 'tanks', ['name'], unique=True)

    op.create_table(
        'readings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tank_id', sa.Integer(), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('level_cm', sa.Float(), nullable=False),
        sa.Column('calculated_volume', sa.Float(), nullable=False),
        sa.Column('calculated_weight_kg', sa.Float(), nullable=False),
        sa.Column('applied_specific_gravity', sa.Float(), nullable=False),
        sa.Column('supply_id', sa.Integer(), nullable=True),
        sa.Column('added_amount_liters', sa.Float(), nullable=False),
        sa.Column('operator_name', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_readings_id'), 'readings', ['id'], unique=False)
    op.create_index(op.f('ix_readings_tank_id'), 'readings', ['tank_id'], unique=False)
    op.create_index(op.f('ix_readings_timestamp'), 'readings', ['timestamp'], unique=False)
    op.create_index('ix_readings_tank_timestamp', 'readings', ['tank_id', 'timestamp'], unique=False)

    op.create_table(
        'chemical_supplies',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tank_id', sa.Integer(), nullable=False),
        sa.Column('supplier_name', sa.String(length=255), nullable=False),
        sa.Column('chemical_name', sa.String(length=255), nullable=True),
        sa.Column('specific_gravity', sa.Float(), nullable=False),
        sa.Column('price', sa.Float(), nullable=True),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('target_ppm', sa.Float(), nullable=True),
        sa.Column('notes', sa.String(length=1000), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('specific_gravity > 0', name='check_sg_positive'),
        sa.ForeignKeyConstraint(['tank_id'], ['tanks.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tank_id', 'start_date', name='uq_supply_tank_start'),
    )
    op.create_index(op.f('ix_chemical_supplies_id'), 'chemical_supplies', ['id'], unique=False)
    op.create_index(op.f('ix_chemical_supplies_tank_id'), 'chemical_supplies', ['tank_id'], unique=False)
    op.create_index(op.f('ix_chemical_supplies_start_date'), 'chemical_supplies', ['start_date'], unique=False)

    op.create_table(
        'cws_parameters',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tank_id', sa.Integer(), nullable=False),
        sa.Column('week_start', sa.DateTime(), nullable=False),
        sa.Column('circulation_rate', sa.Float(), nullable=True),
        sa.Column('temp_outlet', sa.Float(), nullable=True),
        sa.Column('temp_return', sa.Float(), nullable=True),
        sa.Column('temp_diff', sa.Float(), nullable=True),
        sa.Column('cws_hardness', sa.Float(), nullable=True),
        sa.Column('makeup_hardness', sa.Float(), nullable=True),
        sa.Column('concentration_cycles', sa.Float(), nullable=True),
        sa.Column('target_ppm', sa.Float(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['tank_id'], ['tanks.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tank_id', 'week_start', name='uq_cws_tank_week'),
    )
    op.create_index(op.f('ix_cws_parameters_id'), 'cws_parameters', ['id'], unique=False)
    op.create_index(op.f('ix_cws_parameters_tank_id'), 'cws_parameters', ['tank_id'], unique=False)
    op.create_index(op.f('ix_cws_parameters_week_start'), 'cws_parameters', ['week_start'], unique=False)

    op.create_table(
        'bws_parameters',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tank_id', sa.Integer(), nullable=False),
        sa.Column('week_start', sa.DateTime(), nullable=False),
        sa.Column('steam_production', sa.Float(), nullable=True),
        sa.Column('target_ppm', sa.Float(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['tank_id'], ['tanks.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tank_id', 'week_start', name='uq_bws_tank_week'),
    )
    op.create_index(op.f('ix_bws_parameters_id'), 'bws_parameters', ['id'], unique=False)
    op.create_index(op.f('ix_bws_parameters_tank_id'), 'bws_parameters', ['tank_id'], unique=False)
    op.create_index(op.f('ix_bws_parameters_week_start'), 'bws_parameters', ['week_start'], unique=False)

    op.create_table(
        'fluctuation_alerts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tank_id', sa.Integer(), nullable=False),
        sa.Column('tank_name', sa.String(length=255), nullable=True),
        sa.Column('date_str', sa.String(length=20), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('current_value', sa.Float(), nullable=True),
        sa.Column('prev_value', sa.Float(), nullable=True),
        sa.Column('next_value', sa.Float(), nullable=True),
        sa.Column('is_possible_refill', sa.Boolean(), nullable=True),
        sa.Column('source', sa.String(length=20), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_fluctuation_alerts_id'), 'fluctuation_alerts', ['id'], unique=False)
    op.create_index(op.f('ix_fluctuation_alerts_tank_id'), 'fluctuation_alerts', ['tank_id'], unique=False)

    op.create_table(
        'important_notes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('date_str', sa.String(length=20), nullable=False),
        sa.Column('area', sa.String(length=255), nullable=True),
        sa.Column('chemical_name', sa.String(length=255), nullable=True),
        sa.Column('note', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_important_notes_id'), 'important_notes', ['id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_important_notes_id'), table_name='important_notes')
    op.drop_table('important_notes')
    op.drop_index(op.f('ix_fluctuation_alerts_tank_id'), table_name='fluctuation_alerts')
    op.drop_index(op.f('ix_fluctuation_alerts_id'), table_name='fluctuation_alerts')
    op.drop_table('fluctuation_alerts')
    op.drop_table('bws_parameters')
    op.drop_table('cws_parameters')
    op.drop_table('chemical_supplies')
    op.drop_index('ix_readings_tank_timestamp', table_name='readings')
    op.drop_table('readings')
    op.drop_table('tanks')
    for enum_type in (calculation_method, input_unit, head_type, shape_type, system_type):
        enum_type.drop(op.get_bind(), checkfirst=True)
