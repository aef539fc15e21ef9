import os
import sys
from pathlib import Path

import uvicorn

# Add project root to path
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from momentum.logger import setup_logging


def main():
    """Main entry point for the Persona Momentum web service."""
    setup_logging()

    reload_enabled = os.getenv("PERSONA_MOMENTUM_RELOAD", "0").lower() in {"1", "true", "yes"}
    host = os.getenv("PERSONA_MOMENTUM_HOST", "0.0.0.0")
    port = int(os.getenv("PERSONA_MOMENTUM_PORT", "8010"))

    uvicorn.run(
        "web.backend.app:app",
        host=host,
        port=port,
        reload=reload_enabled,
        reload_dirs=["web", "momentum"] if reload_enabled else None,
    )


if __name__ == "__main__":
    main()
