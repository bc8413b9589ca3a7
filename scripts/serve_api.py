from __future__ import annotations

import uvicorn

from sheetdash.core.config import get_settings


def main() -> None:
    # Serve the API with env-driven host/port; startup creates missing tables.
    settings = get_settings()
    uvicorn.run("sheetdash.apps.api.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
