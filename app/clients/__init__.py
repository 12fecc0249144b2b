"""Clients for the invoice, party and business stores."""
from app.clients.base import BusinessStore, InvoiceStore, PartyStore, ServiceHttpClient
from app.clients.business_client import BusinessServiceClient
from app.clients.invoice_client import InvoiceServiceClient
from app.clients.party_client import PartyServiceClient

__all__ = [
    "BusinessStore",
    "InvoiceStore",
    "PartyStore",
    "ServiceHttpClient",
    "BusinessServiceClient",
    "InvoiceServiceClient",
    "PartyServiceClient",
]
