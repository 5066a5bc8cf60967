"""CLI commands for SealSign API."""

import sys

import click

from sealsign_api.db.session import SessionLocal, engine
from sealsign_api.documents.service import DocumentRegistry
from sealsign_api.errors import SealSignError
from sealsign_api.ledger.service import AuditLedger
from sealsign_api.storage.service import get_blob_store


@click.group()
def cli():
    """SealSign API CLI."""
    pass


@cli.command("init-db")
def init_db():
    """Create tables directly (development only; use Alembic elsewhere)."""
    from sealsign_api.db.base import Base
    from sealsign_api import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    click.echo("✓ Tables created.")


@cli.command("verify-audit")
@click.argument("document_id")
def verify_audit(document_id: str):
    """Check the audit hash chain of a document."""
    db = SessionLocal()
    try:
        ledger = AuditLedger(db)
        entries = ledger.list_by_document(document_id)
        if not entries:
            click.echo(f"✗ No audit entries for {document_id}", err=True)
            sys.exit(1)
        valid, error = ledger.verify_chain(document_id)
    finally:
        db.close()

    if not valid:
        click.echo(f"✗ Audit chain broken: {error}", err=True)
        sys.exit(1)
    click.echo(f"✓ Audit chain intact ({len(entries)} entries).")


@cli.command("verify-seal")
@click.argument("document_id")
def verify_seal(document_id: str):
    """Re-hash the stored sealed artifact of a document."""
    db = SessionLocal()
    try:
        valid, detail = DocumentRegistry(db, get_blob_store()).verify_seal(document_id)
    except SealSignError as e:
        click.echo(f"✗ {e.message}", err=True)
        sys.exit(1)
    finally:
        db.close()

    if not valid:
        click.echo(f"✗ {detail}", err=True)
        sys.exit(1)
    click.echo(f"✓ Sealed artifact matches recorded hash {detail}.")


if __name__ == "__main__":
    cli()
