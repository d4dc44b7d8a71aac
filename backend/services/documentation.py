"""Static description of the RAG pipeline served at /api/documentation."""
from typing import Any, Dict

from config import CHUNK_SIZE, CHUNKS_TABLE, EMBEDDING_DIMENSIONS, EMBEDDING_MODEL, MATCH_CHUNKS_RPC, TOP_K

PIPELINE_DOCUMENTATION: Dict[str, Any] = {
    "title": "VO2Max Assistant RAG Pipeline Documentation",
    "description": (
        "This documentation describes the Retrieval-Augmented Generation (RAG) pipeline "
        "of the VO2Max assistant, including design, endpoints, PDF ingestion, chunking, "
        "embedding, uploading, and future considerations."
    ),
    "pipeline": {
        "overview": (
            "The RAG pipeline lets users query research PDFs using OpenAI models with "
            "context retrieved from a Supabase vector store."
        ),
        "flow": [
            "User submits a query from the assistant page",
            "Frontend sends POST to /api/rag-chat with { query }",
            f"The query is embedded with OpenAI and the top {TOP_K} chunks are fetched from Supabase",
            f"Similarity search runs server-side in the {MATCH_CHUNKS_RPC} function",
            "The chunks are folded into a context-augmented prompt",
            "The OpenAI answer is streamed back to the frontend as plain text",
        ],
        "endpoints": {
            "rag_chat": {
                "path": "/api/rag-chat",
                "method": "POST",
                "payload": {"query": "string"},
                "description": "Main RAG chat endpoint. Retrieves relevant chunks and streams an OpenAI answer.",
            },
            "rag_retrieve": {
                "path": "/api/rag-retrieve",
                "method": "POST",
                "payload": {"query": "string"},
                "description": "Retrieves top-k relevant chunks from Supabase using OpenAI embeddings.",
            },
        },
        "pdf_ingestion": {
            "steps": [
                "Place new PDFs in the pdfs/ directory.",
                "Run `vo2max-ingest extract` to extract text from the PDFs into pdfs-output/.",
                f"Run `vo2max-ingest upload` to chunk the text, embed it with OpenAI, and upload it to Supabase ({CHUNKS_TABLE} table).",
                "Run `vo2max-ingest verify` to find chunks missing from Supabase and re-upload them.",
                "Each chunk is stored with its embedding, filename, chunk index, and text.",
            ],
            "notes": [
                "You must have your Supabase and OpenAI API keys set in your environment.",
                f"Chunks target {CHUNK_SIZE} characters and end on a sentence boundary where possible.",
                f"Embeddings use OpenAI's {EMBEDDING_MODEL} model ({EMBEDDING_DIMENSIONS} dims).",
            ],
        },
        "supabase": {
            "table": CHUNKS_TABLE,
            "function": f"{MATCH_CHUNKS_RPC}(query_embedding vector, match_count int)",
            "description": (
                "Stores all document chunks and their embeddings. The match function "
                "performs a pgvector similarity search."
            ),
        },
        "future_considerations": [
            "Add support for document metadata (author, year, tags) in the chunks table.",
            "Implement chunk deduplication and overlapping chunks.",
            "Add user-specific document upload and access control.",
            "Support for re-embedding with new models as they become available.",
            "Add admin UI for PDF/document management.",
            "Add analytics for query usage and retrieval quality.",
        ],
    },
}


def get_documentation() -> Dict[str, Any]:
    return PIPELINE_DOCUMENTATION
