"""Create documents, signature_requests, signatures and audit_log_entries.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'documents',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('storage_key', sa.String(length=512), nullable=False),
        sa.Column('sealed_storage_key', sa.String(length=512), nullable=True),
        sa.Column('original_hash', sa.String(length=64), nullable=False),
        sa.Column('content_hash', sa.String(length=64), nullable=True),
        sa.Column('content_type', sa.String(length=100), nullable=False),
        sa.Column('size_bytes', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('owner_id', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_documents_owner_id', 'documents', ['owner_id'])
    op.create_index('ix_documents_status', 'documents', ['status'])

    # document_id is a plain reference: requests outlive deleted documents
    op.create_table(
        'signature_requests',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('document_id', sa.String(length=36), nullable=False),
        sa.Column('requester_id', sa.String(length=255), nullable=False),
        sa.Column('requester_email', sa.String(length=255), nullable=True),
        sa.Column('signer_id', sa.String(length=255), nullable=True),
        sa.Column('signer_email', sa.String(length=255), nullable=False),
        sa.Column('message', sa.String(length=500), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('signed_at', sa.DateTime(), nullable=True),
        sa.Column('declined_at', sa.DateTime(), nullable=True),
        sa.Column('decline_reason', sa.String(length=500), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_signature_requests_document_id', 'signature_requests', ['document_id'])
    op.create_index('ix_signature_requests_requester_id', 'signature_requests', ['requester_id'])
    op.create_index('ix_signature_requests_signer_email', 'signature_requests', ['signer_email'])
    op.create_index('ix_signature_requests_status', 'signature_requests', ['status'])
    op.create_index('ix_signature_requests_expires_at', 'signature_requests', ['expires_at'])

    op.create_table(
        'signatures',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('signature_request_id', sa.String(length=36), nullable=False),
        sa.Column('signer_id', sa.String(length=255), nullable=True),
        sa.Column('signer_email', sa.String(length=255), nullable=False),
        sa.Column('mark_data', sa.Text(), nullable=False),
        sa.Column('mark_type', sa.String(length=20), nullable=False),
        sa.Column('mark_hash', sa.String(length=64), nullable=False),
        sa.Column('ip_address', sa.String(length=45), nullable=False),
        sa.Column('user_agent', sa.String(length=500), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['signature_request_id'], ['signature_requests.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_signatures_signature_request_id', 'signatures', ['signature_request_id'], unique=True)

    op.create_table(
        'audit_log_entries',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('document_id', sa.String(length=36), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=True),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=500), nullable=True),
        sa.Column('previous_hash', sa.String(length=64), nullable=True),
        sa.Column('entry_hash', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_id', 'sequence', name='uq_audit_document_sequence'),
        sa.UniqueConstraint('entry_hash')
    )
    op.create_index('ix_audit_log_entries_document_id', 'audit_log_entries', ['document_id'])
    op.create_index('ix_audit_log_entries_action', 'audit_log_entries', ['action'])
    op.create_index('ix_audit_log_entries_created_at', 'audit_log_entries', ['created_at'])


def downgrade() -> None:
    op.drop_index('ix_audit_log_entries_created_at', table_name='audit_log_entries')
    op.drop_index('ix_audit_log_entries_action', table_name='audit_log_entries')
    op.drop_index('ix_audit_log_entries_document_id', table_name='audit_log_entries')
    op.drop_table('audit_log_entries')
    op.drop_index('ix_signatures_signature_request_id', table_name='signatures')
    op.drop_table('signatures')
    op.drop_index('ix_signature_requests_expires_at', table_name='signature_requests')
    op.drop_index('ix_signature_requests_status', table_name='signature_requests')
    op.drop_index('ix_signature_requests_signer_email', table_name='signature_requests')
    op.drop_index('ix_signature_requests_requester_id', table_name='signature_requests')
    op.drop_index('ix_signature_requests_document_id', table_name='signature_requests')
    op.drop_table('signature_requests')
    op.drop_index('ix_documents_status', table_name='documents')
    op.drop_index('ix_documents_owner_id', table_name='documents')
    op.drop_table('documents')
