"""Server entry point for running the FastAPI application."""

import asyncio
import os
import signal

import structlog
import uvicorn
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = structlog.get_logger(__name__)


class Server:
    """Custom server wrapper with proper signal handling."""

    def __init__(self, config: uvicorn.Config):
        self.server = uvicorn.Server(config)

    def handle_exit(self, sig, _frame):
        """Handle exit signals."""
        logger.info("shutdown_signal_received", signal=signal.Signals(sig).name)
        # Let uvicorn run the lifespan shutdown so the pending push is flushed
        self.server.should_exit = True

    async def serve(self):
        """Run the server with proper signal handling."""
        # Install signal handlers
        signal.signal(signal.SIGINT, self.handle_exit)
        signal.signal(signal.SIGTERM, self.handle_exit)

        await self.server.serve()


def run_server(
    host: str | None = None, port: int | None = None, reload: bool = False
):
    """Run the FastAPI server."""
    host = host or os.getenv("HOST", "127.0.0.1")
    port = port or int(os.getenv("PORT", "8000"))

    if reload:
        # For reload mode, use the simple uvicorn.run() approach
        # Note: Ctrl-C handling may be degraded in reload mode due to subprocess
        uvicorn.run(
            "api.app:app",
            host=host,
            port=port,
            reload=reload,
            log_level="info",
            access_log=False,
        )
    else:
        config = uvicorn.Config(
            "api.app:app",
            host=host,
            port=port,
            log_level="info",
            access_log=False,
        )
        server = Server(config)
        asyncio.run(server.serve())


if __name__ == "__main__":
    run_server(reload=True)
