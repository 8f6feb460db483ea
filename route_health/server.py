from __future__ import annotations

import uvicorn

from route_health.app import create_app
from route_health.logs import configure_logging
from route_health.settings import CheckerSettings


def main() -> None:
    settings = CheckerSettings()
    configure_logging(settings.log_level)
    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level="info")


if __name__ == "__main__":
    main()
