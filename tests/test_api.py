# tests/test_api.py
"""
Tests for the LLMAdapt facade, wired with in-process fakes.
"""

from unittest.mock import AsyncMock, patch

import pytest

from llmadapt import LLMAdapt
from llmadapt.chat.retry import RetryPolicy
from llmadapt.exceptions import ConfigError
from llmadapt.models import Document
from llmadapt.providers.client import ChatClient
from llmadapt.providers.openai_provider import OpenAIProvider
from llmadapt.storage.memory_vector import InMemoryVectorStorage

OVERRIDES = {
    "vector_store.embedding_dimension": 2,
    "vector_store.default_top_k": 2,
}


async def create_facade(provider, embedding_model, overrides=None):
    storage = InMemoryVectorStorage()
    await storage.initialize({})
    return await LLMAdapt.create(
        config_overrides={**OVERRIDES, **(overrides or {})},
        env_prefix=None,
        embedding_model=embedding_model,
        vector_storage=storage,
        chat_client=ChatClient(provider, retry_policy=RetryPolicy.none()),
    )


@pytest.mark.asyncio
async def test_chat(provider_factory, embedding_model):
    provider = provider_factory(completions=[{
        "id": "cmpl-1",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": "Hi!"}, "finish_reason": "stop"}],
    }])
    llm = await create_facade(provider, embedding_model)

    assert await llm.chat("Hello") == "Hi!"
    assert llm.config.vector_store.embedding_dimension == 2


@pytest.mark.asyncio
async def test_stream_chat(provider_factory, make_chunk, embedding_model):
    provider = provider_factory(streams=[[
        make_chunk("s-1", content="Hi", role="assistant"),
        make_chunk("s-1", content="!", finish_reason="stop"),
    ]])
    llm = await create_facade(provider, embedding_model)

    chunks = [response.content async for response in llm.stream_chat("Hello")]
    assert chunks == ["Hi", "!"]


@pytest.mark.asyncio
async def test_documents_round_trip(provider_factory, embedding_model):
    embedding_model.vectors = {
        "cats": [1.0, 0.0],
        "dogs": [0.0, 1.0],
        "kittens": [0.9, 0.1],
    }
    llm = await create_facade(provider_factory(), embedding_model)

    ids = await llm.add_documents([
        Document(id="1", content="cats", metadata={"kind": "feline"}),
        {"id": "2", "content": "dogs", "metadata": {"kind": "canine"}},
        {"id": "3", "content": "kittens", "metadata": {"kind": "feline"}},
    ])
    assert ids == ["1", "2", "3"]

    results = await llm.search("cats")
    assert [d.id for d in results] == ["1", "3"]

    filtered = await llm.search("cats", top_k=5, filter_metadata={"kind": "canine"})
    assert [d.id for d in filtered] == ["2"]

    assert await llm.delete_documents(["1", "missing"]) == 1
    assert [d.id for d in await llm.search("cats", top_k=5)] == ["3", "2"]


@pytest.mark.asyncio
async def test_configured_similarity_threshold(provider_factory, embedding_model):
    embedding_model.vectors = {"near": [1.0, 0.0], "far": [0.0, 1.0]}
    llm = await create_facade(provider_factory(), embedding_model,
                              {"vector_store.default_similarity_threshold": 0.9})
    await llm.add_documents([Document(id="n", content="near"), Document(id="f", content="far")])

    assert [d.id for d in await llm.search("near")] == ["n"]
    assert len(await llm.search("near", similarity_threshold=0.0)) == 2


@pytest.mark.asyncio
async def test_context_manager_closes_everything(provider_factory, embedding_model):
    provider = provider_factory()
    async with await create_facade(provider, embedding_model) as llm:
        await llm.add_documents([Document(id="a", content="text")])

    assert provider.closed
    assert embedding_model.closed


@pytest.mark.asyncio
async def test_invalid_configuration(provider_factory, embedding_model):
    with pytest.raises(ConfigError):
        await create_facade(provider_factory(), embedding_model, {"vector_store.type": "nope", "chat.retry.max_attempts": 0})


@pytest.mark.asyncio
async def test_builds_components_from_configuration():
    with patch("llmadapt.providers.openai_provider.AsyncOpenAI"), \
         patch("llmadapt.embedding.openai.AsyncOpenAI") as embedding_sdk:
        embedding_sdk.return_value.close = AsyncMock()
        llm = await LLMAdapt.create(
            config_overrides={"chat.api_key": "sk-test", "embedding.api_key": "sk-test"},
            env_prefix=None,
        )

        assert isinstance(llm.chat_client.provider, OpenAIProvider)
        assert llm.chat_client.default_options.model == "gpt-4o"
        assert llm.vector_store.dimension == 1536
        assert isinstance(llm.vector_store.storage, InMemoryVectorStorage)
        await llm.vector_store.close()


@pytest.mark.asyncio
async def test_unknown_storage_type(provider_factory, embedding_model):
    with pytest.raises(ConfigError):
        await LLMAdapt.create(
            config_overrides={"vector_store.type": "nope"},
            env_prefix=None,
            embedding_model=embedding_model,
            chat_client=ChatClient(provider_factory()),
        )
