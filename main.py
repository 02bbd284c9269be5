"""Command-line entry point for the F1GPT API server, chat UI and ingestion."""

from __future__ import annotations

import argparse
import asyncio
import subprocess
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from f1gpt.config import config

if TYPE_CHECKING:
    from collections.abc import Sequence
    from logging import Logger

PROJECT_ROOT = Path(__file__).resolve().parent
DEFAULT_APP = PROJECT_ROOT / "app.py"


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Build the CLI parser and read command-line arguments."""  # noqa: DOC201
    parser = argparse.ArgumentParser(
        description="Run the F1GPT chat service, its web UI or the ingestion job.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the streaming chat API.")
    serve.add_argument(
        "--host",
        default="127.0.0.1",
        help="Bind address for the API server (default: 127.0.0.1).",
    )
    serve.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for the API server (default: 8000).",
    )
    serve.add_argument(
        "--reload",
        action="store_true",
        help="Restart the server when source files change.",
    )

    ui = subparsers.add_parser("ui", help="Launch the Streamlit chat UI.")
    ui.add_argument(
        "--app",
        type=Path,
        default=DEFAULT_APP,
        help="Path to the Streamlit script (default: app.py).",
    )
    ui.add_argument(
        "--port",
        type=int,
        default=8501,
        help="Port for the Streamlit server (default: 8501).",
    )
    ui.add_argument(
        "--address",
        default="localhost",
        help="Bind address for the Streamlit server (default: localhost).",
    )
    ui.add_argument(
        "--show",
        dest="headless",
        action="store_false",
        help="Open Streamlit in a browser window instead of headless mode.",
    )
    ui.set_defaults(headless=True)

    ingest = subparsers.add_parser("ingest", help="Scrape and index source pages.")
    ingest.add_argument(
        "--sources",
        type=Path,
        default=None,
        help="File with one URL per line (default: INGEST_SOURCES_FILE).",
    )
    ingest.add_argument(
        "urls",
        nargs="*",
        help="URLs to ingest instead of the sources file.",
    )
    return parser.parse_args(argv)


def build_streamlit_command(
    script_path: Path,
    *,
    port: int,
    headless: bool,
    address: str,
) -> list[str]:
    """Construct the streamlit CLI invocation."""  # noqa: DOC201
    return [
        sys.executable,
        "-m",
        "streamlit",
        "run",
        str(script_path),
        "--server.port",
        str(port),
        "--server.address",
        address,
        "--server.headless",
        "true" if headless else "false",
    ]


def run_streamlit(command: Sequence[str], logger: Logger) -> int:
    """Execute the configured streamlit command and return its exit code."""  # noqa: DOC201
    try:
        result = subprocess.run(
            command,
            check=False,
            cwd=PROJECT_ROOT,
        )
    except KeyboardInterrupt:
        logger.info("F1GPT UI stopped by user")
        return 0
    except OSError:
        logger.exception("Unable to launch Streamlit")
        return 1
    return result.returncode


def run_ui(args: argparse.Namespace, logger: Logger) -> int:
    """Launch the Streamlit UI against the configured chat endpoint."""  # noqa: DOC201
    script_path = (
        args.app if args.app.is_absolute() else (PROJECT_ROOT / args.app)
    ).resolve()
    if not script_path.exists():
        logger.error("Streamlit script not found: %s", script_path)
        return 1

    logger.info(
        "Starting F1GPT Streamlit app at http://%s:%s (headless=%s), chat API %s",
        args.address,
        args.port,
        args.headless,
        config.CHAT_API_URL,
    )
    command = build_streamlit_command(
        script_path,
        port=args.port,
        headless=args.headless,
        address=args.address,
    )

    return_code = run_streamlit(command, logger)
    if return_code != 0:
        logger.error("Streamlit exited with status %s", return_code)
    return return_code


def run_server(args: argparse.Namespace, logger: Logger) -> int:
    """Serve the chat API with uvicorn."""  # noqa: DOC201
    import uvicorn

    logger.info("Starting F1GPT API at http://%s:%s", args.host, args.port)
    uvicorn.run(
        "f1gpt.api:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=config.LOG_LEVEL.lower(),
    )
    return 0


async def _ingest(urls: list[str]) -> int:
    from f1gpt.embeddings import EmbeddingService
    from f1gpt.ingestion import Ingestor
    from f1gpt.vector_store import get_vector_store

    embedding_service = EmbeddingService()
    try:
        store = await asyncio.to_thread(get_vector_store)
        report = await Ingestor(embedding_service, store).run(urls)
    finally:
        await embedding_service.client.close()
    return 1 if report.failed and not report.processed and not report.skipped else 0


def run_ingest(args: argparse.Namespace, logger: Logger) -> int:
    """Scrape, embed and store the requested source pages."""  # noqa: DOC201
    from f1gpt.ingestion import load_sources

    urls = list(args.urls)
    if not urls:
        sources = args.sources or config.INGEST_SOURCES_FILE
        if not sources.is_absolute():
            sources = PROJECT_ROOT / sources
        try:
            urls = load_sources(sources)
        except OSError:
            logger.exception("Unable to read sources file %s", sources)
            return 1

    if not urls:
        logger.error("No URLs to ingest")
        return 1

    logger.info("Ingesting %d URLs", len(urls))
    return asyncio.run(_ingest(urls))


def main(argv: Sequence[str] | None = None) -> int:
    """Validate configuration and run the requested command."""  # noqa: DOC201
    args = parse_args(argv)

    config.setup_logging()
    logger = config.get_logger(__name__)

    if args.command == "ui":
        return run_ui(args, logger)

    try:
        config.validate()
    except ValueError:
        logger.exception("Configuration invalid")
        return 1

    if args.command == "serve":
        return run_server(args, logger)
    return run_ingest(args, logger)


if __name__ == "__main__":
    sys.exit(main())
