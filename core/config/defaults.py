# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core - Default configuration values
# PURPOSE: Centralized defaults for capability fallback, retries, timeouts
# CREATED: 07 OCT 2026
# ============================================================================
"""
Configuration Defaults

Provides sensible defaults for recipe execution.
These can be overridden via environment variables or per-node recipe settings.

Design:
- Immutable dataclasses for defaults
- Environment variable overrides
- Type-safe access
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from core.contracts import Capability


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class CapabilityDefaults:
    """
    Global fallback provider/model per capability.

    The last tier of capability resolution, used when neither the project,
    the stage nor the node names a provider.
    """
    text_provider: str = "gemini"
    text_model: str = "gemini-2.0-flash"
    image_provider: str = "gemini"
    image_model: str = "imagen-3.0-generate-002"
    video_provider: str = "gemini"
    video_model: str = "veo-2.0-generate-001"

    def for_capability(self, capability: Capability) -> Optional[Dict[str, str]]:
        """Provider/model document for a capability, None if unset."""
        pairs = {
            Capability.TEXT_GENERATION: (self.text_provider, self.text_model),
            Capability.IMAGE_GENERATION: (self.image_provider, self.image_model),
            Capability.VIDEO_GENERATION: (self.video_provider, self.video_model),
        }
        provider, model = pairs.get(capability, (None, None))
        if not provider or not model:
            return None
        return {"provider": provider, "model": model}

    @classmethod
    def from_env(cls) -> "CapabilityDefaults":
        """Create from environment variables."""
        provider = os.getenv("DEFAULT_AI_PROVIDER", "gemini")
        return cls(
            text_provider=provider,
            text_model=os.getenv("DEFAULT_AI_MODEL", "gemini-2.0-flash"),
            image_provider=os.getenv("DEFAULT_IMAGE_PROVIDER", provider),
            image_model=os.getenv("DEFAULT_IMAGE_MODEL", "imagen-3.0-generate-002"),
            video_provider=os.getenv("DEFAULT_VIDEO_PROVIDER", provider),
            video_model=os.getenv("DEFAULT_VIDEO_MODEL", "veo-2.0-generate-001"),
        )


@dataclass(frozen=True)
class RetryDefaults:
    """Defaults for nodes running under the retry policy without a retry block."""
    max_attempts: int = 3
    backoff: str = "exponential"
    initial_delay_seconds: float = 1.0
    max_delay_seconds: float = 30.0

    @classmethod
    def from_env(cls) -> "RetryDefaults":
        """Create from environment variables."""
        return cls(
            max_attempts=int(os.getenv("RETRY_MAX_ATTEMPTS", 3)),
            backoff=os.getenv("RETRY_BACKOFF", "exponential"),
            initial_delay_seconds=float(os.getenv("RETRY_INITIAL_DELAY_SECONDS", 1.0)),
            max_delay_seconds=float(os.getenv("RETRY_MAX_DELAY_SECONDS", 30.0)),
        )


@dataclass(frozen=True)
class TimeoutDefaults:
    """
    Defaults for provider call timeouts.

    Per-node-type timeout settings; a node's timeout_seconds wins.
    """
    # Default timeout (seconds)
    default_timeout: float = 120.0

    node_type_timeouts: Dict[str, float] = field(default_factory=lambda: {
        "text_generation": 120.0,
        "image_generation": 180.0,
        "video_generation": 600.0,  # 10 min
        "data_processing": 60.0,
    })

    def get_timeout(self, node_type: str, override: Optional[float] = None) -> float:
        """Timeout for a node type, honoring the node's own setting."""
        if override:
            return override
        return self.node_type_timeouts.get(node_type, self.default_timeout)

    @classmethod
    def from_env(cls) -> "TimeoutDefaults":
        """Create from environment variables."""
        return cls(
            default_timeout=float(os.getenv("DEFAULT_TIMEOUT_SECONDS", 120.0)),
        )


@dataclass(frozen=True)
class StreamingDefaults:
    """Defaults for incremental record decoding."""
    # Progress band reported while records stream in (percent)
    progress_start: int = 10
    progress_end: int = 90

    # Use the provider's streaming channel when it offers one
    prefer_streaming: bool = True

    @classmethod
    def from_env(cls) -> "StreamingDefaults":
        """Create from environment variables."""
        return cls(
            progress_start=int(os.getenv("STREAM_PROGRESS_START", 10)),
            progress_end=int(os.getenv("STREAM_PROGRESS_END", 90)),
            prefer_streaming=_env_bool("STREAM_PREFER_STREAMING", True),
        )


@dataclass(frozen=True)
class ExecutionDefaults:
    """Defaults for how the orchestrator schedules a run."""
    # Run independent nodes of the same level concurrently
    parallel_branches: bool = False
    max_concurrency: int = 4

    # Raise on unresolved input references instead of warning
    strict_inputs: bool = False

    @classmethod
    def from_env(cls) -> "ExecutionDefaults":
        """Create from environment variables."""
        return cls(
            parallel_branches=_env_bool("RECIPE_PARALLEL_BRANCHES", False),
            max_concurrency=int(os.getenv("RECIPE_MAX_CONCURRENCY", 4)),
            strict_inputs=_env_bool("RECIPE_STRICT_INPUTS", False),
        )


@dataclass(frozen=True)
class CredentialDefaults:
    """
    Provider credentials read from the environment.

    Handed to provider factories by the ProviderRegistry.
    """
    gemini_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    openai_org_id: Optional[str] = None
    anthropic_api_key: Optional[str] = None

    def for_provider(self, provider_id: str) -> Dict[str, str]:
        """Credentials dict for a provider id (empty when none configured)."""
        table = {
            "gemini": {"api_key": self.gemini_api_key},
            "openai": {"api_key": self.openai_api_key, "organization": self.openai_org_id},
            "anthropic": {"api_key": self.anthropic_api_key},
        }
        return {k: v for k, v in table.get(provider_id, {}).items() if v}

    @classmethod
    def from_env(cls) -> "CredentialDefaults":
        """Create from environment variables."""
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY"),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            openai_org_id=os.getenv("OPENAI_ORG_ID"),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
        )


# ============================================================================
# GLOBAL DEFAULTS INSTANCE
# ============================================================================

@dataclass
class Defaults:
    """Container for all default configurations."""
    capabilities: CapabilityDefaults = field(default_factory=CapabilityDefaults)
    retry: RetryDefaults = field(default_factory=RetryDefaults)
    timeouts: TimeoutDefaults = field(default_factory=TimeoutDefaults)
    streaming: StreamingDefaults = field(default_factory=StreamingDefaults)
    execution: ExecutionDefaults = field(default_factory=ExecutionDefaults)
    credentials: CredentialDefaults = field(default_factory=CredentialDefaults)

    @classmethod
    def from_env(cls) -> "Defaults":
        """Create all defaults from environment variables."""
        return cls(
            capabilities=CapabilityDefaults.from_env(),
            retry=RetryDefaults.from_env(),
            timeouts=TimeoutDefaults.from_env(),
            streaming=StreamingDefaults.from_env(),
            execution=ExecutionDefaults.from_env(),
            credentials=CredentialDefaults.from_env(),
        )


_defaults: Optional[Defaults] = None


def get_defaults() -> Defaults:
    """Get global defaults instance."""
    global _defaults
    if _defaults is None:
        _defaults = Defaults.from_env()
    return _defaults


def reset_defaults() -> None:
    """Reset defaults (for testing)."""
    global _defaults
    _defaults = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "CapabilityDefaults",
    "RetryDefaults",
    "TimeoutDefaults",
    "StreamingDefaults",
    "ExecutionDefaults",
    "CredentialDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]
