"""Embedding service for the estimate agent.

Wraps LangChain's OpenAIEmbeddings with retry on transient provider errors.
"""

from typing import List, Optional

import openai
import structlog
from langchain_openai import OpenAIEmbeddings
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config.settings import settings
from config.errors import EmbeddingError

logger = structlog.get_logger()

TRANSIENT_ERRORS = (
    openai.APIConnectionError,
    openai.APITimeoutError,
    openai.RateLimitError,
    openai.InternalServerError,
)


class EmbeddingService:
    """Turns text into vectors for the document store."""

    def __init__(
        self,
        model: Optional[str] = None,
        dimensions: Optional[int] = None,
        api_key: Optional[str] = None,
        client: Optional[OpenAIEmbeddings] = None,
    ):
        self.model = model or settings.embedding_model
        self.dimensions = dimensions or settings.embedding_dimension
        self._api_key = api_key
        self._client = client

    @property
    def client(self) -> OpenAIEmbeddings:
        """Get the OpenAIEmbeddings client (lazy initialization)."""
        if self._client is None:
            self._client = OpenAIEmbeddings(
                model=self.model,
                dimensions=self.dimensions,
                api_key=self._api_key or settings.openai_api_key,
            )
        return self._client

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        reraise=True,
    )
    async def _embed_documents(self, texts: List[str]) -> List[List[float]]:
        return await self.client.aembed_documents(texts)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        reraise=True,
    )
    async def _embed_query(self, text: str) -> List[float]:
        return await self.client.aembed_query(text)

    async def embed_query(self, text: str) -> List[float]:
        """Embed a single query string.

        Raises:
            EmbeddingError: If the provider fails after retries or returns nothing.
        """
        try:
            vector = await self._embed_query(text)
        except Exception as e:
            logger.error("embedding_failed", model=self.model, error=str(e))
            raise EmbeddingError(f"Failed to generate embedding: {str(e)}", details={"model": self.model})

        if not vector:
            raise EmbeddingError("Embedding generation returned an empty result", details={"model": self.model})
        return list(vector)

    async def embed_documents(self, texts: List[str]) -> List[List[float]]:
        """Embed a batch of texts, one vector per input."""
        if not texts:
            return []
        try:
            vectors = await self._embed_documents(texts)
        except Exception as e:
            logger.error("embedding_failed", model=self.model, count=len(texts), error=str(e))
            raise EmbeddingError(f"Failed to generate embeddings: {str(e)}", details={"model": self.model})

        if len(vectors) != len(texts):
            raise EmbeddingError(
                "Embedding count does not match input count",
                details={"expected": len(texts), "received": len(vectors)},
            )
        logger.info("embeddings_generated", model=self.model, count=len(vectors))
        return [list(v) for v in vectors]
