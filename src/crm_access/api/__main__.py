"""
crm_access.api.__main__

Entrypoint for running the service via `python -m crm_access.api`.

Responsibilities:
- Load settings, create the app, and serve it with uvicorn.
"""

from __future__ import annotations

import uvicorn

from crm_access.api.app import create_app
from crm_access.settings import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        create_app(settings=settings),
        host=settings.api_host,
        port=settings.api_port,
        proxy_headers=True,
        log_config=None,  # structlog owns log formatting
    )


if __name__ == "__main__":
    main()


# --- Module Notes -----------------------------------------------------------
# Run a single worker per process; rotation fairness across processes relies on the
# store's compare-and-set, not on in-process state.
