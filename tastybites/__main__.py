"""
Run the API server with uvicorn.

Example:
    python -m tastybites
"""

import uvicorn

from tastybites.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "tastybites.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
