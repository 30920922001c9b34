"""
Tests for the model catalog and selector resolution.
"""

from chatrelay.catalog import (
    DEFAULT_MODEL_ID,
    MODELS,
    Provider,
    get_model,
    list_models,
    resolve_model,
)


def test_catalog_ids_are_provider_qualified():
    """Every id is '<provider>:<model>' and the provider matches."""
    for m in MODELS:
        provider_key, _, model_id = m.id.partition(":")
        assert provider_key == m.provider.value
        assert model_id == m.model


def test_catalog_ids_unique():
    ids = [m.id for m in MODELS]
    assert len(ids) == len(set(ids))


def test_list_models_order_and_default():
    models, default = list_models()
    assert models[0].id == "anthropic:claude-opus-4-1"
    assert models[-1].id == "mistral:ministral-8b-latest"
    assert default == DEFAULT_MODEL_ID == "openai:gpt-4.1-nano"


def test_list_models_configured_default():
    _, default = list_models("groq:gemma2-9b-it")
    assert default == "groq:gemma2-9b-it"


def test_list_models_bad_configured_default_ignored():
    _, default = list_models("nope:nothing")
    assert default == DEFAULT_MODEL_ID


def test_descriptor_to_dict():
    m = get_model("google:gemini-2.5-flash")
    assert m.to_dict() == {
        "id": "google:gemini-2.5-flash",
        "name": "Gemini 2.5 Flash",
        "provider": "google",
    }
    assert m.provider_token == "SERVICE_PROVIDER_GOOGLE"


# ---------------------------------------------------------------------------
# resolve_model
# ---------------------------------------------------------------------------

def test_resolve_known_passes_through():
    m = resolve_model("anthropic:claude-sonnet-4-0")
    assert m.id == "anthropic:claude-sonnet-4-0"
    assert m.provider is Provider.ANTHROPIC
    assert m.model == "claude-sonnet-4-0"


def test_resolve_model_id_with_slashes():
    m = resolve_model("fireworks:accounts/fireworks/models/deepseek-v3-0324")
    assert m.model == "accounts/fireworks/models/deepseek-v3-0324"
    assert m.provider_token == "SERVICE_PROVIDER_FIREWORKS"


def test_resolve_unknown_provider_falls_back():
    assert resolve_model("cohere:command-r").id == DEFAULT_MODEL_ID


def test_resolve_unknown_model_falls_back():
    assert resolve_model("openai:gpt-9").id == DEFAULT_MODEL_ID


def test_resolve_missing_or_malformed_falls_back():
    assert resolve_model(None).id == DEFAULT_MODEL_ID
    assert resolve_model("").id == DEFAULT_MODEL_ID
    assert resolve_model("openai").id == DEFAULT_MODEL_ID
    assert resolve_model(42).id == DEFAULT_MODEL_ID


def test_resolve_splits_on_first_separator_only():
    """Extra colons stay in the model half and must match exactly."""
    assert resolve_model("openai:gpt-4.1:extra").id == DEFAULT_MODEL_ID


def test_resolve_uses_configured_default():
    assert resolve_model("bogus", "mistral:mistral-small-latest").id == "mistral:mistral-small-latest"
