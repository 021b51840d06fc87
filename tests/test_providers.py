# ============================================================================
# PROVIDER REGISTRY TESTS
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Tests - Provider plugin registry
# PURPOSE: Verify registration, instantiation and the offline providers
# CREATED: 12 OCT 2026
# ============================================================================
"""
Provider Registry Tests

Run with:
    pytest tests/test_providers.py -v
"""

import asyncio
import subprocess
import sys
from pathlib import Path

import pytest

from core.config import CredentialDefaults
from core.errors import (
    ProviderError,
    ProviderNotRegisteredError,
    ResolutionError,
    UnsupportedCapabilityError,
)
from providers import get_registry
from providers.base import CapabilityProvider, GenerationResult
from providers.examples import EchoProvider, ScriptedProvider
from providers.registry import DuplicateProviderError, ProviderRegistry


class TextOnlyProvider(CapabilityProvider):
    provider_id = "text_only"

    async def validate_config(self) -> None:
        if not self.credentials.get("api_key"):
            raise ValueError("api_key missing")

    async def generate_text(self, prompt, options):
        return GenerationResult(text=prompt.upper())


# ============================================================================
# REGISTRY
# ============================================================================

class TestRegistry:

    def test_register_and_list(self, registry):
        registry.register("text_only", TextOnlyProvider, description="upper-cases")
        assert registry.has_provider("text_only")
        assert sorted(registry.list_providers()) == ["echo", "text_only"]
        assert registry.get_metadata("text_only")["description"] == "upper-cases"

    def test_duplicate_fails_fast(self, registry):
        with pytest.raises(DuplicateProviderError):
            registry.register("echo", EchoProvider)

    def test_unknown_provider(self, registry):
        with pytest.raises(ProviderNotRegisteredError) as exc:
            asyncio.run(registry.create("nope", "m"))
        assert isinstance(exc.value, ResolutionError)
        assert "nope" in str(exc.value)

    def test_create_passes_model_and_config(self, registry):
        provider = asyncio.run(registry.create("echo", "echo-2", {"temperature": 0.1}))
        assert isinstance(provider, EchoProvider)
        assert provider.model_id == "echo-2"
        assert provider.config == {"temperature": 0.1}

    def test_credentials_from_defaults(self):
        registry = ProviderRegistry(credentials=CredentialDefaults(openai_api_key="sk-test"))
        registry.register("openai", TextOnlyProvider)
        provider = asyncio.run(registry.create("openai", "gpt-4o"))
        assert provider.credentials == {"api_key": "sk-test"}

    def test_config_validation_failure_wrapped(self, registry):
        registry.register("text_only", TextOnlyProvider)
        with pytest.raises(ProviderError, match="Failed to initialize provider 'text_only'"):
            asyncio.run(registry.create("text_only", "m", credentials={}))

    def test_list_available(self, registry):
        registry.register("text_only", TextOnlyProvider)
        reports = {p["provider_id"]: p for p in asyncio.run(registry.list_available())}
        assert reports["echo"]["available"] is True
        assert reports["text_only"]["available"] is False

    def test_unregister_and_clear(self, registry):
        registry.unregister("echo")
        assert not registry.has_provider("echo")
        registry.register("echo", EchoProvider)
        registry.clear()
        assert registry.list_providers() == []

    def test_echo_registered_globally_by_decorator(self):
        assert get_registry().has_provider("echo")

    def test_package_import_registers_echo(self):
        # Fresh interpreter: only the package itself is imported
        code = "import providers; print(providers.get_registry().has_provider('echo'))"
        completed = subprocess.run(
            [sys.executable, "-c", code],
            cwd=Path(__file__).parent.parent,
            capture_output=True,
            text=True,
            check=True,
        )
        assert completed.stdout.strip() == "True"


# ============================================================================
# PROVIDERS
# ============================================================================

class TestProviders:

    def test_unsupported_capability(self):
        provider = TextOnlyProvider("m", credentials={"api_key": "k"})
        with pytest.raises(UnsupportedCapabilityError):
            asyncio.run(provider.generate_image("cat", {}))
        assert provider.supports_streaming() is False

    def test_echo_is_deterministic(self):
        provider = EchoProvider("echo-1")
        first = asyncio.run(provider.generate_image("a cat", {}))
        second = asyncio.run(provider.generate_image("a cat", {}))
        assert first.image_url == second.image_url
        assert first.image_url.endswith(".png")
        assert asyncio.run(provider.generate_text("hi", {})).text == "hi"

    def test_scripted_fails_then_answers(self):
        provider = ScriptedProvider(config={"responses": ["one", "two"], "fail_times": 1})
        with pytest.raises(ProviderError):
            asyncio.run(provider.generate_text("p", {}))
        assert asyncio.run(provider.generate_text("p", {})).text == "one"
        assert asyncio.run(provider.generate_text("p", {})).text == "two"
        assert asyncio.run(provider.generate_text("p", {})).text == "two"

    def test_scripted_stream_chunks(self):
        provider = ScriptedProvider(config={"responses": ["abcdefghij"], "stream": True, "chunk_size": 4})
        chunks = []
        result = asyncio.run(provider.generate_text_stream("p", {}, chunks.append))
        assert provider.supports_streaming()
        assert chunks == ["abcd", "efgh", "ij"]
        assert result.text == "abcdefghij"
