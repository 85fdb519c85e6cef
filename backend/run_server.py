"""Run the agent API with uvicorn (HOST / PORT from the environment)."""
import os
import signal
import sys

import uvicorn

from vendi.core.config import settings


def handle_signal(sig, frame):
    print(f"\nReceived signal {sig}, shutting down...")
    sys.exit(0)


signal.signal(signal.SIGINT, handle_signal)
signal.signal(signal.SIGTERM, handle_signal)

if __name__ == "__main__":
    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", "8000"))
    print("=" * 50)
    print(f"  Vendi Agent Backend on {host}:{port} ({settings.ENVIRONMENT})")
    print(f"  Agent enabled: {settings.AGENT_ENABLED}")
    print("=" * 50)
    uvicorn.run(
        "vendi.main:app",
        host=host,
        port=port,
        log_level=settings.LOG_LEVEL.lower(),
        reload=settings.DEBUG,
    )
