"""postgate entrypoint.

Run with:
  python -m postgate
"""

import logging
import os

import uvicorn


def main() -> None:
    logging.basicConfig(
        level=os.getenv("POSTGATE_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    host = os.getenv("POSTGATE_HOST", "0.0.0.0")
    port = int(os.getenv("POSTGATE_PORT", "8000"))
    reload = os.getenv("POSTGATE_RELOAD", "false").lower() in {"1", "true", "yes", "y"}
    uvicorn.run("postgate.app:app", host=host, port=port, reload=reload)

if __name__ == "__main__":
    main()
