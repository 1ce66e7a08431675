import uvicorn

from cardclash.core.config import settings
from cardclash.utils.logging import setup_logging

if __name__ == "__main__":
    setup_logging("cardclash.log")
    uvicorn.run(
        "cardclash.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
        log_level=None,
    )
