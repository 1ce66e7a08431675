from typing import Literal

from dotenv import load_dotenv
from pydantic_settings import BaseSettings


class Config(BaseSettings):
    db_url: str
    env: Literal["prod", "dev"] = "prod"
    api_host: str = "127.0.0.1"
    api_port: int = 3011

    # JWT verification, tokens are issued by the identity provider
    # IMPORTANT: set in environment for production
    jwt_secret: str | None = None
    jwt_algorithm: str = "HS256"

    # Card authoring limits
    card_stat_budget: int = 200
    card_default_hp: int = 500

    # Matchmaking
    matchmaking_search_limit: int = 10
    matchmaking_max_attempts: int = 5

    # Session synchronizer
    sync_poll_interval_seconds: float = 3.0

    @property
    def is_dev(self) -> bool:
        return self.env == "dev"


load_dotenv()
settings = Config()  # pyright: ignore[reportCallIssue]
