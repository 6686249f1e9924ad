"""Split documents into chunks for embedding.

Uses the LangChain text splitters; the strategy depends on the document type.
"""

import json
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional

import structlog
from langchain_text_splitters import (
    Language,
    MarkdownHeaderTextSplitter,
    RecursiveCharacterTextSplitter,
    RecursiveJsonSplitter,
)

from config.settings import settings
from config.errors import ValidationError
from models.schemas import DocumentType

logger = structlog.get_logger()

MARKDOWN_HEADERS = [
    ("#", "title"),
    ("##", "section"),
]


@dataclass
class Chunk:
    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)


def _chunk_text(content: str, size: int, overlap: int) -> List[Chunk]:
    splitter = RecursiveCharacterTextSplitter(chunk_size=size, chunk_overlap=overlap)
    return [Chunk(text=text) for text in splitter.split_text(content)]


def _chunk_markdown(content: str, size: int, overlap: int) -> List[Chunk]:
    header_splitter = MarkdownHeaderTextSplitter(
        headers_to_split_on=MARKDOWN_HEADERS,
        strip_headers=False,
    )
    sections = header_splitter.split_text(content)
    splitter = RecursiveCharacterTextSplitter(chunk_size=size, chunk_overlap=overlap)
    return [
        Chunk(text=doc.page_content, metadata=dict(doc.metadata))
        for doc in splitter.split_documents(sections)
    ]


def _chunk_html(content: str, size: int, overlap: int) -> List[Chunk]:
    splitter = RecursiveCharacterTextSplitter.from_language(
        Language.HTML,
        chunk_size=size,
        chunk_overlap=overlap,
    )
    return [Chunk(text=text) for text in splitter.split_text(content)]


def _chunk_json(content: str, size: int) -> List[Chunk]:
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON document: {str(e)}", field="content")

    if not isinstance(data, dict):
        data = {"data": data}

    splitter = RecursiveJsonSplitter(max_chunk_size=size)
    return [
        Chunk(text=text)
        for text in splitter.split_text(json_data=data, convert_lists=True, ensure_ascii=False)
    ]


def chunk_document(
    content: str,
    doc_type: str = DocumentType.TEXT.value,
    size: Optional[int] = None,
    overlap: Optional[int] = None,
) -> List[Chunk]:
    """Split a document into chunks.

    Args:
        content: Document body.
        doc_type: One of ``text``, ``markdown``, ``html`` or ``json``.
        size: Maximum chunk size in characters (default from settings).
        overlap: Overlap between neighbouring chunks (default from settings).

    Returns:
        Non-empty chunks in document order.

    Raises:
        ValidationError: If a JSON document cannot be parsed.
    """
    size = size or settings.chunk_size
    overlap = settings.chunk_overlap if overlap is None else overlap
    doc_type = DocumentType(doc_type).value

    if doc_type == DocumentType.MARKDOWN.value:
        chunks = _chunk_markdown(content, size, overlap)
    elif doc_type == DocumentType.HTML.value:
        chunks = _chunk_html(content, size, overlap)
    elif doc_type == DocumentType.JSON.value:
        chunks = _chunk_json(content, size)
    else:
        chunks = _chunk_text(content, size, overlap)

    chunks = [chunk for chunk in chunks if chunk.text.strip()]
    logger.info("document_chunked", doc_type=doc_type, chunks=len(chunks), size=size)
    return chunks
