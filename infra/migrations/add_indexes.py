"""Add performance indexes to database."""

# Reference SQL for production (PostgreSQL); Alembic 001 creates the
# single-column indexes, these cover the hot list/audit queries.

INDEXES = [
    # Documents: owner listing, newest first
    "CREATE INDEX IF NOT EXISTS idx_documents_owner_created ON documents(owner_id, created_at DESC);",

    # Signature requests: sent/received listings and pending lookups
    "CREATE INDEX IF NOT EXISTS idx_signature_requests_requester_created ON signature_requests(requester_id, created_at DESC);",
    "CREATE INDEX IF NOT EXISTS idx_signature_requests_signer_created ON signature_requests(signer_email, created_at DESC);",
    "CREATE INDEX IF NOT EXISTS idx_signature_requests_document_pending ON signature_requests(document_id) WHERE status = 'PENDING';",

    # Audit trail: newest first per document
    "CREATE INDEX IF NOT EXISTS idx_audit_log_entries_document_created ON audit_log_entries(document_id, created_at DESC, id DESC);",
]
