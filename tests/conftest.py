# ============================================================================
# SHARED TEST FIXTURES
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Tests - Shared fixtures
# PURPOSE: In-memory store, isolated provider registry and recipe builders
# CREATED: 12 OCT 2026
# ============================================================================
"""
Shared fixtures.

Every test gets a fresh InMemoryStore and a private ProviderRegistry with the
echo provider registered, so no test touches process-wide state.
"""

import pytest

from core.config import reset_defaults
from providers.examples import EchoProvider, ScriptedProvider
from providers.registry import ProviderRegistry
from repositories.memory import InMemoryStore


def make_node(node_id, node_type="text_generation", output_key=None, **kwargs):
    """Build a raw node document (editor spelling accepted by the models)."""
    node = {
        "id": node_id,
        "name": node_id.replace("_", " ").title(),
        "type": node_type,
        "output_key": output_key or f"{node_id}_out",
    }
    if node_type != "data_processing" and "capability_config" not in kwargs:
        node["capability_config"] = {"provider": "echo", "model": "echo-1"}
    node.update(kwargs)
    return node


def make_recipe(nodes, edges, recipe_id="test_recipe", **kwargs):
    recipe = {
        "recipe_id": recipe_id,
        "name": recipe_id.replace("_", " ").title(),
        "nodes": nodes,
        "edges": [{"from": source, "to": target} for source, target in edges],
    }
    recipe.update(kwargs)
    return recipe


def scripted_factory(instance):
    """Registry factory that always hands out the same ScriptedProvider."""
    def factory(model_id, config, credentials):
        return instance
    return factory


@pytest.fixture(autouse=True)
def _fresh_defaults():
    reset_defaults()
    yield
    reset_defaults()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def registry():
    registry = ProviderRegistry()
    registry.register("echo", EchoProvider, description="echo")
    return registry


@pytest.fixture
def scripted(registry):
    """Register a shared ScriptedProvider under 'scripted'; configure it per test."""
    provider = ScriptedProvider(config={"responses": ["ok"]})
    registry.register("scripted", scripted_factory(provider), description="scripted")
    return provider
