import urllib.parse
from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class PostgresConfig:
    host: str
    port: int
    username: str
    password: str
    database: str = "postgres"
    application_name: str = "hotel-concierge"
    # Pool sizing for a single API worker; live-update streams do not hold connections.
    pool_size: int = 10
    max_overflow: int = 5
    pool_timeout: int = 30
    pool_recycle: int = 1800
    connect_timeout: float = 15.0
    command_timeout: float = 15.0
    extra_server_settings: Dict[str, str] = field(default_factory=dict)

    def async_url(self) -> str:
        """asyncpg URL; the password is percent-encoded."""
        if not self.host:
            raise ValueError("Database host configuration is missing.")
        password = urllib.parse.quote_plus(self.password) if self.password else ""
        return f"postgresql+asyncpg://{self.username}:{password}@{self.host}:{self.port}/{self.database}"

    def connect_args(self) -> Dict[str, Any]:
        return {
            "timeout": self.connect_timeout,
            "command_timeout": self.command_timeout,
            "server_settings": {"application_name": self.application_name, **self.extra_server_settings},
        }

    def pool_options(self) -> Dict[str, Any]:
        return {
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_timeout": self.pool_timeout,
            "pool_recycle": self.pool_recycle,
            "pool_pre_ping": True,
        }
