"""Unit tests for EmbeddingService."""

import httpx
import openai
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from tenacity import wait_none

from config.errors import EmbeddingError
from services.embedding_service import EmbeddingService


@pytest.fixture
def embeddings_client():
    client = MagicMock()
    client.aembed_query = AsyncMock(return_value=[0.1, 0.2, 0.3])
    client.aembed_documents = AsyncMock(return_value=[[0.1, 0.2], [0.3, 0.4]])
    return client


@pytest.fixture
def service(embeddings_client):
    return EmbeddingService(model="text-embedding-3-small", dimensions=3, client=embeddings_client)


def connection_error():
    return openai.APIConnectionError(
        request=httpx.Request("POST", "https://api.openai.com/v1/embeddings")
    )


class TestEmbeddingService:

    def test_client_is_created_lazily(self):
        with patch('services.embedding_service.OpenAIEmbeddings') as mock_embeddings:
            service = EmbeddingService(model="m", dimensions=8, api_key="test-key")
            mock_embeddings.assert_not_called()

            service.client

            mock_embeddings.assert_called_once_with(model="m", dimensions=8, api_key="test-key")

    @pytest.mark.asyncio
    async def test_embed_query(self, service, embeddings_client):
        vector = await service.embed_query("hello")

        assert vector == [0.1, 0.2, 0.3]
        embeddings_client.aembed_query.assert_awaited_once_with("hello")

    @pytest.mark.asyncio
    async def test_embed_query_empty_result(self, service, embeddings_client):
        embeddings_client.aembed_query.return_value = []

        with pytest.raises(EmbeddingError):
            await service.embed_query("hello")

    @pytest.mark.asyncio
    async def test_embed_query_provider_error(self, service, embeddings_client):
        embeddings_client.aembed_query.side_effect = ValueError("bad input")

        with pytest.raises(EmbeddingError) as exc_info:
            await service.embed_query("hello")

        assert exc_info.value.code == "EMBEDDING_ERROR"
        embeddings_client.aembed_query.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_transient_errors_are_retried(self, service, embeddings_client):
        embeddings_client.aembed_query.side_effect = [connection_error(), [0.5, 0.5, 0.5]]

        with patch.object(EmbeddingService._embed_query.retry, "wait", wait_none()):
            vector = await service.embed_query("hello")

        assert vector == [0.5, 0.5, 0.5]
        assert embeddings_client.aembed_query.await_count == 2

    @pytest.mark.asyncio
    async def test_embed_documents(self, service):
        vectors = await service.embed_documents(["a", "b"])

        assert vectors == [[0.1, 0.2], [0.3, 0.4]]

    @pytest.mark.asyncio
    async def test_embed_documents_empty_input(self, service, embeddings_client):
        assert await service.embed_documents([]) == []
        embeddings_client.aembed_documents.assert_not_called()

    @pytest.mark.asyncio
    async def test_embed_documents_count_mismatch(self, service):
        with pytest.raises(EmbeddingError) as exc_info:
            await service.embed_documents(["a", "b", "c"])

        assert exc_info.value.details == {"expected": 3, "received": 2}
