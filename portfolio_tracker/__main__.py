# portfolio_tracker/__main__.py
"""
Run the API with uvicorn: `python -m portfolio_tracker` or `portfolio-tracker`.

HOST and PORT come from the environment (defaults 127.0.0.1:8000).
"""

import uvicorn

from portfolio_tracker.config import settings


def main() -> None:
    uvicorn.run(
        "portfolio_tracker.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development" and settings.debug,
        log_config=None,  # keep the handlers installed by setup_logging()
    )


if __name__ == "__main__":
    main()
