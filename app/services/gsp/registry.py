"""Name -> constructor registry for GSP adapters."""
import logging
from typing import Callable, Dict, List, Optional

from app.config import settings
from app.core.exceptions import GSTValidationError
from app.schemas.gsp import GSPCredentials
from app.services.gsp.base import GSPProvider
from app.services.gsp.cleartax import ClearTaxProvider
from app.services.gsp.sandbox import SandboxProvider


logger = logging.getLogger(__name__)

ProviderFactory = Callable[[GSPCredentials, Optional[str]], GSPProvider]


class GSPProviderRegistry:
    """
    Resolves a provider by name (case-insensitive).

    A fresh instance is built for every resolution, initialised with the
    business's decrypted credentials and optional base URL.
    """

    def __init__(self, default_provider: Optional[str] = None):
        self.default_provider = (default_provider or settings.GSP_DEFAULT_PROVIDER).lower()
        self._factories: Dict[str, ProviderFactory] = {}

    def register(self, name: str, factory: ProviderFactory) -> None:
        self._factories[name.lower()] = factory

    def available(self) -> List[str]:
        return sorted(self._factories)

    def resolve_name(self, name: Optional[str]) -> str:
        """Registered key for ``name`` (default provider when empty)."""
        key = (name or self.default_provider).strip().lower()
        if key not in self._factories:
            raise GSTValidationError(
                f"GSP provider '{key}' not found. Available providers: {', '.join(self.available())}",
                error_code="UNKNOWN_GSP_PROVIDER",
                details={"provider": key, "available": self.available()},
            )
        return key

    def create(
        self,
        name: Optional[str],
        credentials: GSPCredentials,
        base_url: Optional[str] = None,
    ) -> GSPProvider:
        key = self.resolve_name(name)
        factory = self._factories[key]
        logger.debug(f"Resolved GSP provider {key}")
        return factory(credentials, base_url)


def build_default_registry() -> GSPProviderRegistry:
    registry = GSPProviderRegistry()
    registry.register(ClearTaxProvider.name, lambda creds, url: ClearTaxProvider(creds, url))
    registry.register(SandboxProvider.name, lambda creds, url: SandboxProvider(creds, url))
    return registry


_registry: Optional[GSPProviderRegistry] = None


def get_provider_registry() -> GSPProviderRegistry:
    """Get or create the global provider registry."""
    global _registry
    if _registry is None:
        _registry = build_default_registry()
    return _registry
