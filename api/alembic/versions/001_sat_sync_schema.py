"""sat_sync_schema

Revision ID: 001_sat_sync_schema
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_sat_sync_schema'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MONEY = sa.Numeric(18, 2)


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table('sat_requests'):
        op.create_table('sat_requests',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('subject_id', sa.String(length=13), nullable=False),
        sa.Column('direction', sa.String(length=20), nullable=False),
        sa.Column('date_from', sa.Date(), nullable=False),
        sa.Column('date_to', sa.Date(), nullable=False),
        sa.Column('external_job_id', sa.String(length=255), nullable=True),
        sa.Column('raw_status', sa.String(length=50), nullable=False),
        sa.Column('package_ids', sa.JSON(), nullable=True),
        sa.Column('completed', sa.Boolean(), nullable=False),
        sa.Column('packages_downloaded', sa.Boolean(), nullable=False),
        sa.Column('packages_processed', sa.Boolean(), nullable=False),
        sa.Column('processed_with_errors', sa.Boolean(), nullable=False),
        sa.Column('request_error', sa.Text(), nullable=True),
        sa.Column('verify_error', sa.Text(), nullable=True),
        sa.Column('download_error', sa.Text(), nullable=True),
        sa.Column('processing_error', sa.Text(), nullable=True),
        sa.Column('processed_count', sa.Integer(), nullable=False),
        sa.Column('existing_count', sa.Integer(), nullable=False),
        sa.Column('total_errors', sa.Integer(), nullable=False),
        sa.Column('created_by', sa.String(length=255), nullable=False),
        sa.Column('schema_version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('downloaded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_sat_requests_subject_id'), 'sat_requests', ['subject_id'], unique=False)
        op.create_index(op.f('ix_sat_requests_external_job_id'), 'sat_requests', ['external_job_id'], unique=False)
        op.create_index('ix_sat_requests_subject_direction', 'sat_requests', ['subject_id', 'direction'], unique=False)

    if not inspector.has_table('sat_packages'):
        op.create_table('sat_packages',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('request_id', sa.String(length=36), nullable=False),
        sa.Column('package_id', sa.String(length=255), nullable=False),
        sa.Column('content', sa.LargeBinary(), nullable=False),
        sa.Column('size_bytes', sa.Integer(), nullable=False),
        sa.Column('downloaded_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['request_id'], ['sat_requests.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('request_id', 'package_id', name='uq_sat_packages_request_package')
        )
        op.create_index(op.f('ix_sat_packages_request_id'), 'sat_packages', ['request_id'], unique=False)

    if not inspector.has_table('cfdi_invoices'):
        op.create_table('cfdi_invoices',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('subject_id', sa.String(length=13), nullable=False),
        sa.Column('uuid', sa.String(length=36), nullable=False),
        sa.Column('direction', sa.String(length=20), nullable=False),
        sa.Column('version', sa.String(length=5), nullable=False),
        sa.Column('invoice_type', sa.String(length=2), nullable=False),
        sa.Column('issued_at', sa.DateTime(timezone=False), nullable=False),
        sa.Column('issuer_rfc', sa.String(length=13), nullable=False),
        sa.Column('issuer_name', sa.String(length=255), nullable=True),
        sa.Column('receiver_rfc', sa.String(length=13), nullable=False),
        sa.Column('receiver_name', sa.String(length=255), nullable=True),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('exchange_rate', sa.Numeric(18, 6), nullable=True),
        sa.Column('subtotal', MONEY, nullable=False),
        sa.Column('discount', MONEY, nullable=False),
        sa.Column('total', MONEY, nullable=False),
        sa.Column('transferred_iva', MONEY, nullable=False),
        sa.Column('transferred_ieps', MONEY, nullable=False),
        sa.Column('withheld_iva', MONEY, nullable=False),
        sa.Column('withheld_isr', MONEY, nullable=False),
        sa.Column('iva_base_16', MONEY, nullable=False),
        sa.Column('iva_base_8', MONEY, nullable=False),
        sa.Column('iva_base_0', MONEY, nullable=False),
        sa.Column('iva_exempt', MONEY, nullable=False),
        sa.Column('payment_method', sa.String(length=3), nullable=True),
        sa.Column('payment_form', sa.String(length=3), nullable=True),
        sa.Column('cfdi_use', sa.String(length=4), nullable=True),
        sa.Column('taxable_isr', MONEY, nullable=False),
        sa.Column('taxable_iva', MONEY, nullable=False),
        sa.Column('manually_modified', sa.Boolean(), nullable=False),
        sa.Column('request_id', sa.String(length=36), nullable=True),
        sa.Column('package_id', sa.String(length=255), nullable=True),
        sa.Column('xml', sa.Text(), nullable=True),
        sa.Column('extra', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('subject_id', 'uuid', name='uq_cfdi_invoices_subject_uuid')
        )
        op.create_index(op.f('ix_cfdi_invoices_subject_id'), 'cfdi_invoices', ['subject_id'], unique=False)
        op.create_index(op.f('ix_cfdi_invoices_uuid'), 'cfdi_invoices', ['uuid'], unique=False)
        op.create_index(op.f('ix_cfdi_invoices_request_id'), 'cfdi_invoices', ['request_id'], unique=False)

    if not inspector.has_table('sat_sync_watermarks'):
        op.create_table('sat_sync_watermarks',
        sa.Column('subject_id', sa.String(length=13), nullable=False),
        sa.Column('direction', sa.String(length=20), nullable=False),
        sa.Column('last_synced_date', sa.Date(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('subject_id', 'direction')
        )

    if not inspector.has_table('sat_audit_log'):
        op.create_table('sat_audit_log',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('subject_id', sa.String(length=13), nullable=False),
        sa.Column('job_id', sa.String(length=36), nullable=True),
        sa.Column('stage', sa.String(length=30), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('level', sa.String(length=10), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('created_by', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_sat_audit_log_subject_id'), 'sat_audit_log', ['subject_id'], unique=False)
        op.create_index(op.f('ix_sat_audit_log_job_id'), 'sat_audit_log', ['job_id'], unique=False)
        op.create_index(op.f('ix_sat_audit_log_created_at'), 'sat_audit_log', ['created_at'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    for table in ('sat_audit_log', 'sat_sync_watermarks', 'cfdi_invoices', 'sat_packages', 'sat_requests'):
        if inspector.has_table(table):
            op.drop_table(table)
