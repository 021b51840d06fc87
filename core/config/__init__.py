# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# CREATED: 07 OCT 2026
# ============================================================================
"""
Configuration Module

Provides centralized configuration and defaults for the recipe engine.
"""

from core.config.defaults import (
    CapabilityDefaults,
    RetryDefaults,
    TimeoutDefaults,
    StreamingDefaults,
    ExecutionDefaults,
    CredentialDefaults,
    Defaults,
    get_defaults,
    reset_defaults,
)

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
