"""Retrieval-augmented answers over ingested requirement documents."""

from typing import Dict, Any, Optional, List

import structlog

from config.settings import settings
from services.document_chunker import chunk_document
from services.embedding_service import EmbeddingService
from services.llm_service import LLMService
from services.vector_store import PgVectorStore

logger = structlog.get_logger()

NO_CONTEXT_MESSAGE = "No relevant information was found."

RAG_SYSTEM_PROMPT = """You are an assistant answering questions about system requirements and estimates.
Answer using ONLY the context below. Be concise and accurate.
If the context does not contain the answer, say so honestly.

Context:
{context}"""


class RagService:
    """Ingests documents into the vector store and answers questions from them."""

    def __init__(
        self,
        vector_store: PgVectorStore,
        embedding_service: EmbeddingService,
        llm_service: LLMService,
        default_index: Optional[str] = None,
        default_top_k: Optional[int] = None,
    ):
        self.vector_store = vector_store
        self.embedding_service = embedding_service
        self.llm_service = llm_service
        self.default_index = default_index or settings.rag_index_name
        self.default_top_k = default_top_k or settings.rag_top_k

    async def process_and_store_document(
        self,
        content: str,
        doc_type: str = "text",
        metadata: Optional[Dict[str, Any]] = None,
        index_name: Optional[str] = None,
    ) -> int:
        """Chunk, embed and store a document. Returns the number of chunks stored."""
        index_name = index_name or self.default_index
        self.vector_store.ensure_index(index_name)

        chunks = chunk_document(content, doc_type)
        if not chunks:
            logger.info("document_empty_after_chunking", index_name=index_name)
            return 0

        vectors = await self.embedding_service.embed_documents([chunk.text for chunk in chunks])
        chunk_metadata = [
            {"text": chunk.text, **chunk.metadata, **(metadata or {})}
            for chunk in chunks
        ]
        self.vector_store.upsert(index_name, vectors, chunk_metadata)

        logger.info("document_stored", index_name=index_name, doc_type=doc_type, chunks=len(chunks))
        return len(chunks)

    async def search_similar_chunks(
        self,
        query: str,
        top_k: Optional[int] = None,
        filter: Optional[Dict[str, Any]] = None,
        index_name: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        query_vector = await self.embedding_service.embed_query(query)
        results = self.vector_store.query(
            index_name or self.default_index,
            query_vector,
            top_k=top_k or self.default_top_k,
            filter=filter or {},
        )
        return [
            {
                "text": result["metadata"].get("text") or result.get("text", ""),
                "score": result["score"],
                "metadata": result["metadata"],
            }
            for result in results
        ]

    async def get_relevant_context(
        self,
        query: str,
        top_k: Optional[int] = None,
        filter: Optional[Dict[str, Any]] = None,
        index_name: Optional[str] = None,
    ) -> str:
        results = await self.search_similar_chunks(query, top_k, filter, index_name)
        texts = [result["text"] for result in results if result["text"]]
        if not texts:
            return NO_CONTEXT_MESSAGE
        return "\n\n".join(texts)

    async def generate_rag_response(
        self,
        query: str,
        filter: Optional[Dict[str, Any]] = None,
        index_name: Optional[str] = None,
    ) -> str:
        """Answer a question from the most similar stored chunks."""
        context = await self.get_relevant_context(query, filter=filter, index_name=index_name)
        result = await self.llm_service.generate_with_system_prompt(
            RAG_SYSTEM_PROMPT.format(context=context),
            query,
        )
        logger.info(
            "rag_response_generated",
            index_name=index_name or self.default_index,
            context_found=context != NO_CONTEXT_MESSAGE,
            tokens_used=result["tokens_used"],
        )
        return result["content"]
