from __future__ import annotations

import uvicorn

from .config import settings
from .logging_setup import configure_logging


def main() -> None:
    configure_logging(settings.log_dir, settings.log_level.upper())
    uvicorn.run("hourglass.main:app", host=settings.host, port=settings.port, reload=False, log_config=None)


if __name__ == "__main__":
    main()
