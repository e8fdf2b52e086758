# src/config/settings.py

from pathlib import Path

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

from src.core.exceptions import ConfigurationError

DEFAULT_SOCKET_DIR = "/cloudsql"
DEFAULT_SCHEMA = "cryptopump"


class DatabaseConfig(BaseSettings):
    """
    Database connection settings.

    If DB_TCP_HOST is set the pool connects over TCP to host:port, otherwise
    it connects through the unix socket <DB_SOCKET_DIR>/<INSTANCE_CONNECTION_NAME>
    (the Cloud SQL proxy layout).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
        populate_by_name=True,
    )

    tcp_host: str | None = Field(None, alias="DB_TCP_HOST")
    port: int | None = Field(None, alias="DB_PORT")
    user: str | None = Field(None, alias="DB_USER")
    password: str | None = Field(None, alias="DB_PASS")
    name: str | None = Field(None, alias="DB_NAME")
    instance_connection_name: str | None = Field(None, alias="INSTANCE_CONNECTION_NAME")
    socket_dir: str = Field(DEFAULT_SOCKET_DIR, alias="DB_SOCKET_DIR")

    # Schema holding the stored procedures. Point this at an isolated copy for tests.
    schema_name: str = Field(DEFAULT_SCHEMA, alias="DB_SCHEMA")

    @property
    def use_tcp(self) -> bool:
        return bool(self.tcp_host)

    @property
    def socket_path(self) -> str:
        return f"/{self.socket_dir.strip('/')}/{self.instance_connection_name}"

    def missing_values(self) -> list[str]:
        """Return the env names of required values that are unset or empty."""
        required = {
            "DB_USER": self.user,
            "DB_PASS": self.password,
            "DB_NAME": self.name,
        }
        if self.use_tcp:
            required["DB_TCP_HOST"] = self.tcp_host
            required["DB_PORT"] = self.port
        else:
            required["INSTANCE_CONNECTION_NAME"] = self.instance_connection_name
        return [env_name for env_name, value in required.items() if value in (None, "")]

    @property
    def dsn(self) -> str:
        """Go-driver style data source name, kept for log and tooling compatibility."""
        return self._dsn(self.password)

    @property
    def masked_dsn(self) -> str:
        """Generate a DSN safe for logging."""
        return self._dsn("***")

    def _dsn(self, password: str | None) -> str:
        if self.use_tcp:
            address = f"tcp({self.tcp_host}:{self.port})"
        else:
            address = f"unix({self.socket_path})"
        return f"{self.user}:{password}@{address}/{self.name}?parseTime=true"

    @property
    def url(self) -> URL:
        """SQLAlchemy URL for the PyMySQL driver."""
        if self.use_tcp:
            return URL.create(
                "mysql+pymysql",
                username=self.user,
                password=self.password,
                host=self.tcp_host,
                port=self.port,
                database=self.name,
            )
        return URL.create(
            "mysql+pymysql",
            username=self.user,
            password=self.password,
            database=self.name,
            query={"unix_socket": self.socket_path},
        )


def load_database_config(**overrides) -> DatabaseConfig:
    """
    Read DatabaseConfig from the environment and check the required values.

    Raises ConfigurationError listing every missing value, so a partial
    configuration never reaches the pool.
    """
    try:
        config = DatabaseConfig(**overrides)
    except ValidationError as e:
        invalid = [str(error["loc"][0]) for error in e.errors() if error.get("loc")]
        raise ConfigurationError(invalid, detail=str(e)) from e

    missing = config.missing_values()
    if missing:
        raise ConfigurationError(missing)
    return config


class Settings(BaseSettings):
    """
    Process settings that are not database credentials.

    Everything here has a default, so the module-level instance below can be
    imported anywhere without the environment being prepared.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging Configuration
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_file: Path = Field(Path("./logs/cryptopump.log"), alias="LOG_FILE")

    # Directory probed for <ThreadID>.lock files
    lock_dir: Path = Field(Path("."), alias="LOCK_DIR")

    # Procedure calls slower than this (seconds) are logged as warnings
    slow_call_threshold: float = Field(0.1, alias="SLOW_CALL_THRESHOLD")


# Global settings instance, ready to be imported across the application
settings = Settings()
