import uvicorn

from core.config import settings
from core.logger import setup_logging, logger


def main():
    # Setup structured logging
    setup_logging()

    # For scaling, run `uvicorn api.main:app --workers N` directly.
    # Each worker keeps its own rate limit quota.
    logger.info("Starting Voice Quiz API", env=settings.ENV, host=settings.API_HOST, port=settings.API_PORT)
    uvicorn.run(
        "api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        proxy_headers=settings.PROXY_HEADERS,
        forwarded_allow_ips=settings.FORWARDED_ALLOW_IPS,
        log_level=settings.LOG_LEVEL.lower(),
        reload=settings.ENV == "development",
    )


if __name__ == "__main__":
    main()
