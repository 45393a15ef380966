"""Command-line entry point: index local documents and run a RAG search."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from ragcore.config import config
from ragcore.document_processing import DocumentLoader
from ragcore.exceptions import RAGCoreError
from ragcore.models import RAGDocument
from ragcore.pipeline import build_rag_orchestrator

if TYPE_CHECKING:
    from collections.abc import Sequence
    from logging import Logger

    from ragcore.orchestrator import RAGOrchestrator


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Build the CLI parser and read command-line arguments."""  # noqa: DOC201
    parser = argparse.ArgumentParser(
        description="Index text/PDF documents and search them with ragcore.",
    )
    parser.add_argument(
        "paths",
        nargs="+",
        type=Path,
        help="Documents to index (.txt, .md or .pdf). The file stem is the source.",
    )
    parser.add_argument("--query", "-q", required=True, help="Query to search for.")
    parser.add_argument(
        "--top-k",
        type=int,
        default=None,
        help=f"Maximum chunks to return (default: {config.RAG_TOP_K}).",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help=(
            "Minimum cosine similarity "
            f"(default: {config.RAG_SIMILARITY_THRESHOLD})."
        ),
    )
    parser.add_argument("--source", default=None, help="Only search this source.")
    parser.add_argument(
        "--no-cache",
        dest="use_cache",
        action="store_false",
        help="Always embed the query instead of using the embedding cache.",
    )
    parser.add_argument(
        "--backup",
        choices=["none", "sqlite"],
        default=None,
        help=f"Embedding cache backup (default: {config.CACHE_BACKUP}).",
    )
    parser.set_defaults(use_cache=None)
    return parser.parse_args(argv)


def load_documents(paths: Sequence[Path], logger: Logger) -> list[RAGDocument] | None:
    """Load every path into a RAGDocument, or return None if any fails."""  # noqa: DOC201
    documents = []
    for path in paths:
        if not path.exists():
            logger.error("Document not found: %s", path)
            return None
        try:
            content = DocumentLoader.load_document(path)
        except (OSError, ValueError):
            logger.exception("Unable to load %s", path)
            return None
        documents.append(RAGDocument(id=path.name, content=content, source=path.stem))
    return documents


def run_search(
    orchestrator: RAGOrchestrator,
    documents: list[RAGDocument],
    args: argparse.Namespace,
) -> str:
    """Index the documents and return the rendered context for the query."""  # noqa: DOC201
    orchestrator.index_documents(documents)
    return orchestrator.get_context(
        args.query,
        top_k=args.top_k,
        similarity_threshold=args.threshold,
        use_cache=args.use_cache,
        source=args.source,
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Validate configuration, index the documents and print the context."""  # noqa: DOC201
    args = parse_args(argv)

    config.setup_logging()
    logger = config.get_logger(__name__)

    try:
        config.validate()
    except ValueError:
        logger.exception("Configuration invalid")
        return 1

    documents = load_documents(args.paths, logger)
    if documents is None:
        return 1

    orchestrator = build_rag_orchestrator(cache_backup=args.backup)

    try:
        context = run_search(orchestrator, documents, args)
    except RAGCoreError:
        logger.exception("Search failed")
        return 1

    print(context)  # noqa: T201
    stats = orchestrator.get_cache_stats()
    logger.info(
        "Cache: %d entries, hit rate %.2f",
        stats.total_entries,
        stats.hit_rate,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
