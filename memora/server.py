"""
Memora MCP Server.

Transport: stdio.

Expected MCP Tool Return Format:
{
    "ok": bool,
    "results": Any,          # Present if ok is True
    "error": str            # Present if ok is False
}
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Annotated, Any, Dict, List, Optional, Union

from dotenv import load_dotenv
from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from .common.config import LOGS_DIR, MemoraConfig, ensure_directories, load_config
from .common.embedding_service import EmbeddingService
from .common.llm_client import LLMClient
from .common.schemas import MemoryRecord, QueryResponse, ScoredRecord, render_display_text
from .retriever.orchestrator import RetrievalOrchestrator
from .retriever.query_expander import QueryExpander
from .retriever.synthesizer import Synthesizer
from .scribe.classifier import ClassificationError, MemoryClassifier
from .scribe.record_builder import RecordBuilder
from .scribe.vault_store import VaultStore

logger = logging.getLogger("memora.server")

LOG_FILE_NAME = "memora.log"


def record_to_dict(record: MemoryRecord) -> Dict[str, Any]:
    """Tool-facing view of a record (vectors are not returned)"""
    return record.model_dump(mode="json", exclude={"embedding"})


def source_to_dict(source: Union[MemoryRecord, ScoredRecord]) -> Dict[str, Any]:
    if isinstance(source, ScoredRecord):
        data = record_to_dict(source.record)
        data["score"] = round(source.score, 4)
        return data
    return record_to_dict(source)


def response_to_dict(response: QueryResponse) -> Dict[str, Any]:
    return {
        "answer": response.answer,
        "confidence": response.confidence,
        "sources": [source_to_dict(s) for s in response.sources],
    }


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_log_handlers(log_file: Optional[Path] = None) -> List[logging.Handler]:
    """
    Handlers for the server process.

    stdout carries the MCP transport, so console output goes to stderr.
    When `log_file` is given, records are also appended to it.
    """
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


class MemoraServerApp:
    """
    Main application class for the MCP server.

    Wiring:
    - remember: RecordBuilder -> VaultStore
    - recall: RetrievalOrchestrator over the VaultStore collection
    """

    def __init__(
        self,
        store: VaultStore,
        record_builder: RecordBuilder,
        orchestrator: RetrievalOrchestrator,
        mcp_server_name: str = "memora",
        llm_client: Optional[LLMClient] = None,
        embedding_service: Optional[EmbeddingService] = None,
    ) -> None:
        """
        Args:
            store: Durable record collection
            record_builder: Ingestion pipeline for new memories
            orchestrator: Retrieval pipeline
            mcp_server_name: Advertised MCP server name
            llm_client: Shared LLM client (reported by vault_status)
            embedding_service: Shared embedder (reported by vault_status)
        """
        self.store = store
        self.builder = record_builder
        self.orchestrator = orchestrator
        self.llm = llm_client
        self.embedding = embedding_service
        self.orchestrator.set_records(self.store.records)

        self.mcp = FastMCP(name=mcp_server_name)

        # ---------- MCP Tools: Remember ---------- #
        @self.mcp.tool(
            name="remember",
            description="Store a new memory. PII is masked before analysis and storage.",
            annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False)
        )
        async def tool_remember(
            text: Annotated[str, Field(description="memory text to store")] = "",
            image_b64: Annotated[Optional[str], Field(description="optional base64-encoded JPEG attached to the memory")] = None,
        ) -> Dict[str, Any]:
            """
            Ingest a memory: mask PII, classify, embed, store.

            Returns:
                Dict[str, Any]: The stored record on success.
            """
            try:
                record = await asyncio.to_thread(self.builder.build, text, image_b64)
                self.store.add(record)
            except (ClassificationError, ValueError) as e:
                return {"ok": False, "error": str(e)}
            except Exception as e:
                logger.error("remember failed: %s", e, exc_info=True)
                return {"ok": False, "error": str(e)}

            self.orchestrator.set_records(self.store.records)
            return {"ok": True, "results": record_to_dict(record)}

        # ---------- MCP Tools: Recall ---------- #
        @self.mcp.tool(
            name="recall",
            description=(
                "Answer a question from stored memories. Conversational phrasing is bridged "
                "to stored concepts (e.g. 'cut the cake' finds a birthday). "
                "An empty query lists every memory."
            ),
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_recall(
            query: Annotated[str, Field(description="natural language question")] = "",
        ) -> Dict[str, Any]:
            """
            Run one retrieval cycle immediately.

            Returns:
                Dict[str, Any]: answer, confidence and ranked sources.
            """
            response = await self.orchestrator.run_cycle(query)
            self._persist_computed_embeddings()
            return {"ok": True, "results": response_to_dict(response)}

        # ---------- MCP Tools: Forget ---------- #
        @self.mcp.tool(
            name="forget",
            description="Delete a stored memory by id.",
            annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=True)
        )
        async def tool_forget(
            record_id: Annotated[str, Field(description="id of the memory to delete")],
        ) -> Dict[str, Any]:
            if not self.store.delete(record_id):
                return {"ok": False, "error": f"Memory not found: {record_id}"}
            self.orchestrator.embedding_cache.invalidate(record_id)
            self.orchestrator.set_records(self.store.records)
            return {"ok": True, "results": {"deleted": record_id}}

        # ---------- MCP Tools: List Memories ---------- #
        @self.mcp.tool(
            name="list_memories",
            description="List stored memories, newest first, optionally filtered by category.",
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_list_memories(
            category: Annotated[Optional[str], Field(
                description="Business, Personal, Finance, Health, Technical, Other or All"
            )] = None,
        ) -> Dict[str, Any]:
            records = self.store.list_records(category)
            return {
                "ok": True,
                "results": [record_to_dict(r) for r in records],
                "text": "\n".join(render_display_text(r) for r in records),
            }

        # ---------- MCP Tools: Vault Status ---------- #
        @self.mcp.tool(
            name="vault_status",
            description="Vault statistics and availability of the analysis and embedding engines.",
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_vault_status() -> Dict[str, Any]:
            stats = self.store.stats()
            stats.update({
                "llm_available": bool(self.llm is not None and self.llm.is_available),
                "embeddings_available": bool(self.embedding is not None and self.embedding.is_available),
                "cached_embeddings": len(self.orchestrator.embedding_cache),
            })
            return {"ok": True, "results": stats}

    def _persist_computed_embeddings(self) -> None:
        """Write vectors computed during recall back onto stored records"""
        cache = self.orchestrator.embedding_cache
        pending = {}
        for record in self.store.records:
            if record.has_embedding:
                continue
            vector = cache.get(record.id)
            if vector:
                pending[record.id] = vector
        if pending:
            updated = self.store.update_embeddings(pending)
            logger.debug("Persisted %d computed embeddings", updated)

    def run(self) -> None:
        """Runs the MCP server using stdio transport."""
        self.mcp.run(transport="stdio")


def build_app(config: MemoraConfig, mcp_server_name: str = "memora") -> MemoraServerApp:
    """Construct every component from configuration"""
    llm_client = LLMClient.from_config(config.llm)
    embedding_service = EmbeddingService(
        mode=config.embedding.mode,
        model=config.embedding.model,
        api_key=config.llm.google_api_key or None,
        max_chars=config.embedding.max_chars,
    )
    store = VaultStore(config.vault.store_path)
    builder = RecordBuilder(MemoryClassifier(llm_client), embedding_service)
    orchestrator = RetrievalOrchestrator.from_config(
        config.retriever,
        QueryExpander(llm_client),
        embedding_service,
        Synthesizer(llm_client),
        records=store.records,
    )
    return MemoraServerApp(
        store=store,
        record_builder=builder,
        orchestrator=orchestrator,
        mcp_server_name=mcp_server_name,
        llm_client=llm_client,
        embedding_service=embedding_service,
    )


def main(argv: Optional[List[str]] = None) -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(description="Run the Memora MCP server (stdio).")
    parser.add_argument(
        "--server-name",
        default=os.getenv("MCP_SERVER_NAME", "memora"),
        help="Advertised MCP server name.",
    )
    parser.add_argument(
        "--store-path",
        default=None,
        help="Path to the JSON record store (overrides config).",
    )
    parser.add_argument(
        "--embedding-mode",
        default=None,
        choices=("google", "femb"),
        help="Embedding backend (overrides config).",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("MEMORA_LOG_LEVEL", "INFO"),
        help="Logging level.",
    )
    parser.add_argument(
        "--no-log-file",
        action="store_true",
        help="Log to stderr only (default also writes ~/.memora/logs/memora.log).",
    )
    args = parser.parse_args(argv)

    ensure_directories()
    logging.basicConfig(
        level=args.log_level.upper(),
        handlers=build_log_handlers(None if args.no_log_file else LOGS_DIR / LOG_FILE_NAME),
    )

    config = load_config()
    if args.store_path:
        config.vault.store_path = args.store_path
    if args.embedding_mode:
        config.embedding.mode = args.embedding_mode

    app = build_app(config, mcp_server_name=args.server_name)
    logger.info("Memora server ready with %d memories", len(app.store))

    def _handle_shutdown(signum, frame):
        raise SystemExit(0)
    for sig in (signal.SIGINT, getattr(signal, "SIGTERM", None)):
        if sig is not None:
            signal.signal(sig, _handle_shutdown)

    app.run()


if __name__ == "__main__":
    main()
