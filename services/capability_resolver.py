# ============================================================================
# CAPABILITY RESOLVER
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Service - Provider selection with layered fallback
# PURPOSE: Decide which provider/model serves a capability for a node
# CREATED: 08 OCT 2026
# ============================================================================
"""
Capability Resolver

Resolves (project, stage, capability) to a provider/model pair.
First tier that yields a value wins:

    1. project override   store.get_capability_override(project, stage, cap)
    2. project default    store.get_project_default(project, cap)
    3. stage default      store.get_stage_default(stage, cap)
    4. node hint          the node's capability_config
    5. global default     CapabilityDefaults (DEFAULT_AI_PROVIDER / DEFAULT_AI_MODEL)

The store tiers are cached per (project, stage, capability), misses included.
The cache belongs to the resolver instance; every override written through
the resolver invalidates the affected keys. Two concurrent resolves of the
same key may both hit the store; the cache is only written under its lock.

A resolution that came from a project tier uses the credentials that project
stores for the provider, when it has any. Every other resolution (and a
project without stored credentials) leaves credentials to the provider
registry, which reads them from the environment.
"""

import logging
import threading
from typing import Any, Dict, Optional, Tuple, Union

from core.config import CapabilityDefaults, get_defaults
from core.contracts import Capability, CapabilitySource
from core.errors import NoCapabilityConfiguredError
from core.models import CapabilityConfig, CapabilityResolution
from repositories.base import RecipeStore

logger = logging.getLogger(__name__)

CacheKey = Tuple[Optional[str], Optional[str], str]
CapabilityLike = Union[Capability, str]
HintLike = Union[CapabilityConfig, Dict[str, Any], None]

_PROJECT_SOURCES = (CapabilitySource.PROJECT_OVERRIDE, CapabilitySource.PROJECT_DEFAULT)


def _capability_value(capability: CapabilityLike) -> str:
    return capability.value if isinstance(capability, Capability) else str(capability)


class CapabilityResolver:
    """Layered provider resolution with an explicit, instance-owned cache."""

    def __init__(
        self,
        store: RecipeStore,
        defaults: Optional[CapabilityDefaults] = None,
    ):
        self.store = store
        self._defaults = defaults
        self._cache: Dict[CacheKey, Optional[CapabilityResolution]] = {}
        self._lock = threading.Lock()

    @property
    def defaults(self) -> CapabilityDefaults:
        return self._defaults or get_defaults().capabilities

    async def resolve(
        self,
        project_id: Optional[str],
        stage: Optional[str],
        capability: CapabilityLike,
        hint: HintLike = None,
    ) -> CapabilityResolution:
        """
        Resolve the provider for a capability.

        Args:
            project_id: Project the run belongs to (None skips tiers 1 and 2)
            stage: Recipe stage (None skips tiers 1 and 3)
            capability: Capability the node needs
            hint: The node's capability_config

        Raises:
            NoCapabilityConfiguredError: No tier yields a provider
        """
        cap = _capability_value(capability)

        resolution = await self._resolve_from_store(project_id, stage, cap)
        if resolution is None:
            resolution = self._from_hint(hint)
        if resolution is None:
            resolution = self._from_global_default(cap)
        if resolution is None:
            raise NoCapabilityConfiguredError(project_id, stage, cap)

        logger.debug(
            f"Resolved {cap} for project={project_id} stage={stage}: "
            f"{resolution.provider}/{resolution.model_id} ({resolution.source.value})"
        )
        return resolution

    async def _resolve_from_store(
        self,
        project_id: Optional[str],
        stage: Optional[str],
        cap: str,
    ) -> Optional[CapabilityResolution]:
        key: CacheKey = (project_id, stage, cap)
        with self._lock:
            if key in self._cache:
                return self._cache[key]

        resolution = None
        if project_id and stage:
            resolution = CapabilityResolution.from_document(
                await self.store.get_capability_override(project_id, stage, cap),
                CapabilitySource.PROJECT_OVERRIDE,
            )
        if resolution is None and project_id:
            resolution = CapabilityResolution.from_document(
                await self.store.get_project_default(project_id, cap),
                CapabilitySource.PROJECT_DEFAULT,
            )
        if resolution is None and stage:
            resolution = CapabilityResolution.from_document(
                await self.store.get_stage_default(stage, cap),
                CapabilitySource.STAGE_DEFAULT,
            )

        with self._lock:
            self._cache[key] = resolution
        return resolution

    @staticmethod
    def _from_hint(hint: HintLike) -> Optional[CapabilityResolution]:
        if hint is None:
            return None
        if isinstance(hint, CapabilityConfig):
            hint = {"provider": hint.provider, "model": hint.model, "options": hint.options}
        return CapabilityResolution.from_document(hint, CapabilitySource.NODE_HINT)

    def _from_global_default(self, cap: str) -> Optional[CapabilityResolution]:
        try:
            capability = Capability(cap)
        except ValueError:
            return None
        return CapabilityResolution.from_document(
            self.defaults.for_capability(capability),
            CapabilitySource.GLOBAL_DEFAULT,
        )

    # ------------------------------------------------------------------
    # CACHE / WRITES
    # ------------------------------------------------------------------

    def invalidate(
        self,
        project_id: Optional[str] = None,
        stage: Optional[str] = None,
        capability: Optional[CapabilityLike] = None,
    ) -> int:
        """
        Drop cached entries matching every given filter.

        With no filters the whole cache is cleared.

        Returns:
            Number of entries removed
        """
        cap = _capability_value(capability) if capability is not None else None
        with self._lock:
            doomed = [
                key for key in self._cache
                if (project_id is None or key[0] == project_id)
                and (stage is None or key[1] == stage)
                and (cap is None or key[2] == cap)
            ]
            for key in doomed:
                del self._cache[key]
        if doomed:
            logger.debug(f"Invalidated {len(doomed)} capability cache entries")
        return len(doomed)

    async def set_project_override(
        self,
        project_id: str,
        stage: str,
        capability: CapabilityLike,
        config: Optional[Dict[str, Any]],
    ) -> None:
        """Write (or with None, remove) a project override and invalidate."""
        cap = _capability_value(capability)
        await self.store.set_capability_override(project_id, stage, cap, config)
        self.invalidate(project_id=project_id, stage=stage, capability=cap)

    async def set_project_default(
        self,
        project_id: str,
        capability: CapabilityLike,
        config: Optional[Dict[str, Any]],
    ) -> None:
        """Write (or with None, remove) a project-wide default and invalidate."""
        cap = _capability_value(capability)
        await self.store.set_project_default(project_id, cap, config)
        self.invalidate(project_id=project_id, capability=cap)

    async def set_stage_default(
        self,
        stage: str,
        capability: CapabilityLike,
        config: Optional[Dict[str, Any]],
    ) -> None:
        """Write (or with None, remove) a stage default and invalidate."""
        cap = _capability_value(capability)
        await self.store.set_stage_default(stage, cap, config)
        self.invalidate(stage=stage, capability=cap)

    # ------------------------------------------------------------------
    # CREDENTIALS
    # ------------------------------------------------------------------

    async def credentials_for(
        self,
        project_id: Optional[str],
        resolution: CapabilityResolution,
    ) -> Optional[Dict[str, Any]]:
        """
        Project credentials for a resolved provider.

        Returns None unless the resolution came from a project tier and the
        project stores credentials for that provider; the caller then falls
        back to the global (environment) credentials.
        """
        if not project_id or resolution.source not in _PROJECT_SOURCES:
            return None
        credentials = await self.store.get_project_credentials(project_id, resolution.provider)
        if credentials:
            logger.debug(f"Using project credentials for {project_id}/{resolution.provider}")
            return credentials
        return None

    @property
    def cache_size(self) -> int:
        with self._lock:
            return len(self._cache)


__all__ = ["CapabilityResolver"]
