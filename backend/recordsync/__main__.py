"""Run the records service with uvicorn: ``python -m recordsync``."""

import uvicorn

from recordsync.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "recordsync.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
