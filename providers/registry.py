# ============================================================================
# PROVIDER REGISTRY
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core - Provider registration and instantiation
# PURPOSE: Map provider ids to factories, build configured instances
# CREATED: 08 OCT 2026
# ============================================================================
"""
Provider Registry

Registry of capability provider factories keyed by provider id.

Design:
- Factories are registered explicitly or via the @register_provider decorator
- Fail-fast on duplicate registration
- create() instantiates with credentials from CredentialDefaults and
  validates the configuration before handing the provider out
- The registry is an instance; get_registry() returns the process default
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from core.config import CredentialDefaults, get_defaults
from core.errors import ProviderError, ProviderNotRegisteredError
from providers.base import CapabilityProvider

logger = logging.getLogger(__name__)


ProviderFactory = Callable[..., CapabilityProvider]


class DuplicateProviderError(ValueError):
    """Raised when a provider id is already registered."""
    def __init__(self, provider_id: str):
        self.provider_id = provider_id
        super().__init__(f"Provider '{provider_id}' is already registered")


class ProviderRegistry:
    """Provider id -> factory, with metadata for listing."""

    def __init__(self, credentials: Optional[CredentialDefaults] = None):
        self._factories: Dict[str, ProviderFactory] = {}
        self._metadata: Dict[str, Dict[str, Any]] = {}
        self._credentials = credentials

    @property
    def credentials(self) -> CredentialDefaults:
        return self._credentials or get_defaults().credentials

    def register(
        self,
        provider_id: str,
        factory: ProviderFactory,
        *,
        description: str = "",
    ) -> None:
        """
        Register a provider factory.

        Raises:
            DuplicateProviderError: provider_id already registered
        """
        if provider_id in self._factories:
            raise DuplicateProviderError(provider_id)

        self._factories[provider_id] = factory
        self._metadata[provider_id] = {
            "provider_id": provider_id,
            "description": description,
            "factory": getattr(factory, "__name__", repr(factory)),
            "registered_at": datetime.utcnow().isoformat(),
        }
        logger.debug(f"Registered provider: {provider_id}")

    def unregister(self, provider_id: str) -> None:
        self._factories.pop(provider_id, None)
        self._metadata.pop(provider_id, None)

    def has_provider(self, provider_id: str) -> bool:
        return provider_id in self._factories

    def list_providers(self) -> List[str]:
        return list(self._factories)

    def get_metadata(self, provider_id: str) -> Optional[Dict[str, Any]]:
        return self._metadata.get(provider_id)

    async def create(
        self,
        provider_id: str,
        model_id: str,
        config: Optional[Dict[str, Any]] = None,
        credentials: Optional[Dict[str, Any]] = None,
    ) -> CapabilityProvider:
        """
        Instantiate and validate a provider.

        Args:
            provider_id: Registered provider id
            model_id: Model the instance should use
            config: Model options (temperature, max_tokens, ...)
            credentials: Explicit credentials; defaults to the environment

        Raises:
            ProviderNotRegisteredError: provider_id unknown
            ProviderError: construction or config validation failed
        """
        factory = self._factories.get(provider_id)
        if factory is None:
            raise ProviderNotRegisteredError(provider_id, self.list_providers())

        if credentials is None:
            credentials = self.credentials.for_provider(provider_id)

        try:
            provider = factory(model_id=model_id, config=config or {}, credentials=credentials)
            await provider.validate_config()
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(
                f"Failed to initialize provider '{provider_id}' with model '{model_id}': {e}"
            ) from e

        return provider

    async def list_available(self, model_ids: Optional[Dict[str, str]] = None) -> List[Dict[str, Any]]:
        """
        Health-check every registered provider.

        Args:
            model_ids: provider id -> model to health-check with (defaults to "default")

        Returns:
            One dict per provider: {provider_id, available, error}
        """
        async def check(provider_id: str) -> Dict[str, Any]:
            model_id = (model_ids or {}).get(provider_id, "default")
            try:
                provider = await self.create(provider_id, model_id)
                healthy = await provider.health_check()
                return {"provider_id": provider_id, "available": bool(healthy), "error": None}
            except Exception as e:
                logger.warning(f"Provider {provider_id} unavailable: {e}")
                return {"provider_id": provider_id, "available": False, "error": str(e)}

        return list(await asyncio.gather(*(check(pid) for pid in self.list_providers())))

    def clear(self) -> None:
        """Remove all registrations. Primarily for testing."""
        self._factories.clear()
        self._metadata.clear()


# ============================================================================
# DEFAULT REGISTRY
# ============================================================================

_registry: Optional[ProviderRegistry] = None


def get_registry() -> ProviderRegistry:
    """Get the process-wide provider registry."""
    global _registry
    if _registry is None:
        _registry = ProviderRegistry()
    return _registry


def register_provider(provider_id: str, *, description: str = "") -> Callable:
    """
    Class decorator registering a provider with the default registry.

    Example:
        @register_provider("echo")
        class EchoProvider(CapabilityProvider):
            ...
    """
    def decorator(cls):
        get_registry().register(provider_id, cls, description=description)
        if not getattr(cls, "provider_id", ""):
            cls.provider_id = provider_id
        return cls

    return decorator


__all__ = [
    "ProviderRegistry",
    "ProviderFactory",
    "DuplicateProviderError",
    "get_registry",
    "register_provider",
]
