"""Run the API server: ``python -m signal_service``."""

import uvicorn

from signal_service.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "signal_service.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
