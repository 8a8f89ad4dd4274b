"""Shared fixtures."""

from __future__ import annotations

import pytest

from sitegen_stream.config import GenerationSpec, ProviderSpec


@pytest.fixture
def provider_spec() -> ProviderSpec:
    return ProviderSpec(
        url="http://provider.test/v1",
        api_key="test-key",
        model="big-model",
        note_model="small-model",
    )


@pytest.fixture
def generation_spec() -> GenerationSpec:
    return GenerationSpec()
