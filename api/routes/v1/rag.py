"""Retrieval endpoints: ingest documents and answer questions from them."""

import asyncio

import structlog

from api.container import get_services
from api.responses import success_response, json_response
from api.routes.helpers import parse_body
from api.routes.v1 import v1
from models.schemas import DocumentIngestRequest, RagQueryRequest

logger = structlog.get_logger()


@v1.route("/rag/documents", methods=["POST"])
def ingest_document():
    body = parse_body(DocumentIngestRequest)
    services = get_services()
    chunk_count = asyncio.run(services.rag_service.process_and_store_document(
        body.content,
        body.type,
        body.metadata,
        body.index_name,
    ))
    return json_response(
        success_response({"chunks": chunk_count}, message="Document registered"),
        status=201,
    )


@v1.route("/rag/query", methods=["POST"])
def query_documents():
    body = parse_body(RagQueryRequest)
    services = get_services()
    response = asyncio.run(services.rag_service.generate_rag_response(
        body.query,
        filter=body.filter,
        index_name=body.index_name,
    ))
    return json_response(success_response({"query": body.query, "response": response}))
