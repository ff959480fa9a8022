import uvicorn

from hotpath_agent.core.config import settings


def main():
    uvicorn.run(
        "hotpath_agent.main:app",
        host=settings.bind_host,
        port=settings.PORT,
        log_config=None,  # loguru owns logging, see configure_logging
    )


if __name__ == "__main__":
    main()
