"""Run the proxy with ``python -m andreani_proxy``."""

import uvicorn

from andreani_proxy.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "andreani_proxy.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":  # pragma: no cover - script entry point
    main()
