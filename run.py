import os

from auditor.config import parse_bool
from auditor.logger import get_logger


def main() -> None:
    host = os.getenv("APP_HOST", "0.0.0.0")
    port = int(os.getenv("APP_PORT", "8000"))
    reload = parse_bool(os.getenv("APP_RELOAD"), default=False)
    display_url = f"http://localhost:{port}"

    get_logger().info(
        f"Starting Solidity Auditor API on {display_url} (binding to {host}:{port})"
    )

    import uvicorn

    uvicorn.run(
        app="auditor.main:app",
        host=host,
        port=port,
        reload=reload,
        workers=1,
        log_level=os.getenv("APP_LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
