"""SealSign Python SDK."""

__version__ = "0.1.0"

from sealsign_sdk.client import SealSignClient, SignerClient
from sealsign_sdk.verify import verify_sealed_document

__all__ = ["SealSignClient", "SignerClient", "verify_sealed_document"]
