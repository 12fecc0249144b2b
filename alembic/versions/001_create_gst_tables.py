"""Create GST tables

Revision ID: 001_gst_tables
Revises:
Create Date: 2026-10-17

Tables:
- gst_settings: per-business GST configuration and encrypted GSP credentials
- gst_reports: cached GSTR-1 / GSTR-3B / GSTR-4 payloads
- gstr2a_imports, gstr2a_reconciliations: supplier statements and line matches
- einvoice_requests, ewaybill_requests: registration attempts
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_gst_tables'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # ==================== gst_settings ====================
    op.create_table(
        'gst_settings',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), nullable=False),
        sa.Column('gst_type', sa.String(20), nullable=False, server_default='regular',
                  comment='regular, composition'),
        sa.Column('annual_turnover', sa.Numeric(16, 2), nullable=True),
        sa.Column('filing_frequency', sa.String(20), nullable=False, server_default='monthly',
                  comment='monthly, quarterly'),
        sa.Column('composition_rate', sa.Numeric(5, 2), nullable=True),
        sa.Column('gsp_provider', sa.String(50), nullable=True),
        sa.Column('gsp_credentials', sa.Text(), nullable=True, comment='Encrypted GSP credentials'),
        sa.Column('einvoice_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('ewaybill_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_gst_settings_business_id', 'gst_settings', ['business_id'], unique=True)

    # ==================== gst_reports ====================
    op.create_table(
        'gst_reports',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), nullable=False),
        sa.Column('report_type', sa.String(20), nullable=False, comment='gstr1, gstr3b, gstr4'),
        sa.Column('period', sa.String(10), nullable=False, comment='MMYYYY or Q[1-4]-YYYY'),
        sa.Column('report_data', sa.JSON(), nullable=False),
        sa.Column('generated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('generated_by', sa.String(100), nullable=True),
        sa.UniqueConstraint('business_id', 'report_type', 'period', name='uq_gst_report_key'),
    )
    op.create_index('ix_gst_reports_business_id', 'gst_reports', ['business_id'])

    # ==================== gstr2a_imports ====================
    op.create_table(
        'gstr2a_imports',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), nullable=False),
        sa.Column('period', sa.String(10), nullable=False),
        sa.Column('import_type', sa.String(10), nullable=False, server_default='gstr2a'),
        sa.Column('import_data', sa.JSON(), nullable=False),
        sa.Column('total_invoices', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('matched_invoices', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('missing_invoices', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('mismatched_invoices', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('imported_by', sa.String(100), nullable=True),
        sa.Column('imported_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('business_id', 'period', name='uq_gstr2a_import_period'),
    )
    op.create_index('ix_gstr2a_imports_business_id', 'gstr2a_imports', ['business_id'])

    # ==================== gstr2a_reconciliations ====================
    op.create_table(
        'gstr2a_reconciliations',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('import_id', sa.Uuid(), sa.ForeignKey('gstr2a_imports.id', ondelete='CASCADE'), nullable=False),
        sa.Column('business_id', sa.Uuid(), nullable=False),
        sa.Column('supplier_gstin', sa.String(15), nullable=False),
        sa.Column('supplier_name', sa.String(255), nullable=True),
        sa.Column('invoice_number', sa.String(50), nullable=False),
        sa.Column('invoice_date', sa.Date(), nullable=True),
        sa.Column('document_type', sa.String(10), nullable=False, server_default='invoice'),
        sa.Column('taxable_value', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('igst_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('cgst_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('sgst_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('cess_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('invoice_id', sa.Uuid(), nullable=True),
        sa.Column('match_status', sa.String(20), nullable=False, server_default='missing',
                  comment='matched, missing, mismatched'),
        sa.Column('match_details', sa.JSON(), nullable=True),
        sa.Column('auto_match_status', sa.String(20), nullable=True),
        sa.Column('auto_match_details', sa.JSON(), nullable=True),
        sa.Column('auto_invoice_id', sa.Uuid(), nullable=True),
        sa.Column('is_manual_match', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('matched_by', sa.String(100), nullable=True),
        sa.Column('manual_matched_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_gstr2a_reconciliations_import_id', 'gstr2a_reconciliations', ['import_id'])
    op.create_index('ix_gstr2a_reconciliations_business_id', 'gstr2a_reconciliations', ['business_id'])
    op.create_index('ix_gstr2a_reconciliations_invoice_id', 'gstr2a_reconciliations', ['invoice_id'])
    op.create_index('ix_gstr2a_recon_business_status', 'gstr2a_reconciliations', ['business_id', 'match_status'])

    # ==================== einvoice_requests ====================
    op.create_table(
        'einvoice_requests',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), nullable=False),
        sa.Column('invoice_id', sa.Uuid(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending',
                  comment='pending, success, failed, cancelled'),
        sa.Column('gsp_provider', sa.String(50), nullable=True),
        sa.Column('request_payload', sa.JSON(), nullable=True),
        sa.Column('response_payload', sa.JSON(), nullable=True),
        sa.Column('irn', sa.String(64), nullable=True),
        sa.Column('ack_number', sa.String(30), nullable=True),
        sa.Column('ack_date', sa.String(30), nullable=True),
        sa.Column('qr_code', sa.Text(), nullable=True),
        sa.Column('signed_invoice', sa.Text(), nullable=True),
        sa.Column('generated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('error_code', sa.String(50), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancel_reason', sa.String(255), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_einvoice_requests_business_id', 'einvoice_requests', ['business_id'])
    op.create_index('ix_einvoice_requests_invoice_id', 'einvoice_requests', ['invoice_id'])
    op.create_index('ix_einvoice_requests_irn', 'einvoice_requests', ['irn'])
    op.create_index('ix_einvoice_requests_invoice_status', 'einvoice_requests', ['invoice_id', 'status'])

    # ==================== ewaybill_requests ====================
    op.create_table(
        'ewaybill_requests',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), nullable=False),
        sa.Column('invoice_id', sa.Uuid(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending',
                  comment='pending, generated, failed, cancelled'),
        sa.Column('gsp_provider', sa.String(50), nullable=True),
        sa.Column('request_payload', sa.JSON(), nullable=True),
        sa.Column('response_payload', sa.JSON(), nullable=True),
        sa.Column('ewaybill_number', sa.String(20), nullable=True),
        sa.Column('ewaybill_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('valid_until', sa.DateTime(timezone=True), nullable=True),
        sa.Column('vehicle_number', sa.String(20), nullable=True),
        sa.Column('transporter_id', sa.String(20), nullable=True),
        sa.Column('transport_mode', sa.String(2), nullable=True),
        sa.Column('error_code', sa.String(50), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancel_reason', sa.String(255), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_ewaybill_requests_business_id', 'ewaybill_requests', ['business_id'])
    op.create_index('ix_ewaybill_requests_invoice_id', 'ewaybill_requests', ['invoice_id'])
    op.create_index('ix_ewaybill_requests_ewaybill_number', 'ewaybill_requests', ['ewaybill_number'])
    op.create_index('ix_ewaybill_requests_invoice_status', 'ewaybill_requests', ['invoice_id', 'status'])


def downgrade() -> None:
    op.drop_table('ewaybill_requests')
    op.drop_table('einvoice_requests')
    op.drop_table('gstr2a_reconciliations')
    op.drop_table('gstr2a_imports')
    op.drop_table('gst_reports')
    op.drop_table('gst_settings')
