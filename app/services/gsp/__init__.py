"""GSP (GST Suvidha Provider) gateway abstraction."""
from app.services.gsp.base import GSPProvider
from app.services.gsp.cleartax import ClearTaxProvider
from app.services.gsp.credential_store import CredentialStore
from app.services.gsp.registry import GSPProviderRegistry, build_default_registry, get_provider_registry
from app.services.gsp.sandbox import SandboxProvider

__all__ = [
    "GSPProvider",
    "ClearTaxProvider",
    "SandboxProvider",
    "CredentialStore",
    "GSPProviderRegistry",
    "build_default_registry",
    "get_provider_registry",
]
