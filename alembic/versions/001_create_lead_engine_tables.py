"""Create lead engine tables

Revision ID: 001_create_lead_engine_tables
Revises:
Create Date: 2026-10-19 09:00:00

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = '001_create_lead_engine_tables'
down_revision = None
branch_labels = None
depends_on = None

LEAD_STATUSES = ('pending', 'in_progress', 'contacted', 'appointment', 'not_interested', 'callback', 'won')
POTENTIAL_LEVELS = ('high', 'medium', 'low', 'not_assessed')
SALE_STATUSES = ('pending', 'approved', 'rejected')


def upgrade():
    lead_status_enum = postgresql.ENUM(*LEAD_STATUSES, name='lead_status', create_type=False)
    lead_status_enum.create(op.get_bind(), checkfirst=True)

    potential_level_enum = postgresql.ENUM(*POTENTIAL_LEVELS, name='potential_level', create_type=False)
    potential_level_enum.create(op.get_bind(), checkfirst=True)

    sale_status_enum = postgresql.ENUM(*SALE_STATUSES, name='sale_status', create_type=False)
    sale_status_enum.create(op.get_bind(), checkfirst=True)

    op.create_table(
        'profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('full_name', sa.String(), nullable=True),
        sa.Column('role', sa.String(), nullable=False, server_default='agent'),
        sa.Column('commission_rate', sa.Numeric(5, 2), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_profiles_email'), 'profiles', ['email'], unique=True)

    op.create_table(
        'upload_batches',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('filename', sa.String(), nullable=False),
        sa.Column('uploaded_by', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('total_leads', sa.Integer(), nullable=False),
        sa.Column('duplicate_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('invalid_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('import_key', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['uploaded_by'], ['profiles.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('import_key')
    )
    op.create_index(op.f('ix_upload_batches_uploaded_by'), 'upload_batches', ['uploaded_by'], unique=False)

    op.create_table(
        'leads',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('business_name', sa.String(length=255), nullable=False),
        sa.Column('phone_number', sa.String(length=50), nullable=False),
        sa.Column('address', sa.String(length=500), nullable=True),
        sa.Column('category', sa.String(length=255), nullable=True),
        sa.Column('website', sa.String(length=500), nullable=True),
        sa.Column('rating', sa.Float(), nullable=True),
        sa.Column('status', lead_status_enum, nullable=False),
        sa.Column('potential_level', potential_level_enum, nullable=False),
        sa.Column('assigned_to', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('appointment_date', sa.DateTime(), nullable=True),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
        sa.Column('batch_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['assigned_to'], ['profiles.id'], ),
        sa.ForeignKeyConstraint(['batch_id'], ['upload_batches.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_leads_phone_number'), 'leads', ['phone_number'], unique=False)
    op.create_index(op.f('ix_leads_status'), 'leads', ['status'], unique=False)
    op.create_index(op.f('ix_leads_assigned_to'), 'leads', ['assigned_to'], unique=False)
    op.create_index(op.f('ix_leads_batch_id'), 'leads', ['batch_id'], unique=False)

    op.create_table(
        'lead_activity_log',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('lead_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('agent_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['lead_id'], ['leads.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['agent_id'], ['profiles.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_lead_activity_log_lead_id'), 'lead_activity_log', ['lead_id'], unique=False)
    op.create_index(op.f('ix_lead_activity_log_agent_id'), 'lead_activity_log', ['agent_id'], unique=False)
    op.create_index(op.f('ix_lead_activity_log_action'), 'lead_activity_log', ['action'], unique=False)
    op.create_index(op.f('ix_lead_activity_log_created_at'), 'lead_activity_log', ['created_at'], unique=False)

    op.create_table(
        'lead_notes',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('lead_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('agent_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('note', sa.Text(), nullable=False),
        sa.Column('action_taken', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['lead_id'], ['leads.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['agent_id'], ['profiles.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_lead_notes_lead_id'), 'lead_notes', ['lead_id'], unique=False)

    op.create_table(
        'sales',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('lead_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('agent_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('status', sale_status_enum, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['lead_id'], ['leads.id'], ),
        sa.ForeignKeyConstraint(['agent_id'], ['profiles.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_sales_lead_id'), 'sales', ['lead_id'], unique=False)
    op.create_index(op.f('ix_sales_agent_id'), 'sales', ['agent_id'], unique=False)
    op.create_index(op.f('ix_sales_status'), 'sales', ['status'], unique=False)

    op.create_table(
        'agent_progress',
        sa.Column('agent_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('total_xp', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('current_level', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('current_streak', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_activity_date', sa.Date(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['agent_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('agent_id')
    )

    op.create_table(
        'distribution_runs',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('batch_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('idempotency_key', sa.String(), nullable=True),
        sa.Column('requested_by', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('mode', sa.String(), nullable=False),
        sa.Column('total_assigned', sa.Integer(), nullable=False),
        sa.Column('result', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['batch_id'], ['upload_batches.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['requested_by'], ['profiles.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('idempotency_key')
    )
    op.create_index(op.f('ix_distribution_runs_batch_id'), 'distribution_runs', ['batch_id'], unique=False)


def downgrade():
    op.drop_index(op.f('ix_distribution_runs_batch_id'), table_name='distribution_runs')
    op.drop_table('distribution_runs')
    op.drop_table('agent_progress')
    op.drop_index(op.f('ix_sales_status'), table_name='sales')
    op.drop_index(op.f('ix_sales_agent_id'), table_name='sales')
    op.drop_index(op.f('ix_sales_lead_id'), table_name='sales')
    op.drop_table('sales')
    op.drop_index(op.f('ix_lead_notes_lead_id'), table_name='lead_notes')
    op.drop_table('lead_notes')
    op.drop_index(op.f('ix_lead_activity_log_created_at'), table_name='lead_activity_log')
    op.drop_index(op.f('ix_lead_activity_log_action'), table_name='lead_activity_log')
    op.drop_index(op.f('ix_lead_activity_log_agent_id'), table_name='lead_activity_log')
    op.drop_index(op.f('ix_lead_activity_log_lead_id'), table_name='lead_activity_log')
    op.drop_table('lead_activity_log')
    op.drop_index(op.f('ix_leads_batch_id'), table_name='leads')
    op.drop_index(op.f('ix_leads_assigned_to'), table_name='leads')
    op.drop_index(op.f('ix_leads_status'), table_name='leads')
    op.drop_index(op.f('ix_leads_phone_number'), table_name='leads')
    op.drop_table('leads')
    op.drop_index(op.f('ix_upload_batches_uploaded_by'), table_name='upload_batches')
    op.drop_table('upload_batches')
    op.drop_index(op.f('ix_profiles_email'), table_name='profiles')
    op.drop_table('profiles')

    # Drop enums
    for name in ('sale_status', 'potential_level', 'lead_status'):
        postgresql.ENUM(name=name).drop(op.get_bind(), checkfirst=True)
