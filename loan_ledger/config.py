"""Configuration management for loan-ledger."""

from dataclasses import dataclass, field

from loan_ledger.exceptions import ConfigurationError
from loan_ledger.models.enums import PurgeScope


@dataclass
class PostgresConfig:
    """PostgreSQL connection configuration."""

    host: str = "localhost"
    port: int = 5432
    database: str = "ledger"
    user: str = "postgres"
    password: str = "postgres"

    @property
    def connection_string(self) -> str:
        """Get connection string."""
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


@dataclass
class LedgerConfig:
    """Main configuration for loan-ledger."""

    postgres: PostgresConfig = field(default_factory=PostgresConfig)
    log_level: str = "INFO"
    log_format: str = "standard"
    purge_scope: PurgeScope = PurgeScope.CURRENT_YEAR
    default_user_id: str = "demo-user"
    demo_locale: str = "ko_KR"
    seed: int | None = None

    @classmethod
    def from_env(cls) -> "LedgerConfig":
        """Create config from environment variables."""
        import os

        postgres = PostgresConfig(
            host=os.getenv("POSTGRES_HOST", "localhost"),
            port=int(os.getenv("POSTGRES_PORT", "5432")),
            database=os.getenv("POSTGRES_DB", "ledger"),
            user=os.getenv("POSTGRES_USER", "postgres"),
            password=os.getenv("POSTGRES_PASSWORD", "postgres"),
        )

        return cls(
            postgres=postgres,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "standard"),
            purge_scope=parse_purge_scope(os.getenv("LEDGER_PURGE_SCOPE", PurgeScope.CURRENT_YEAR.value)),
            default_user_id=os.getenv("LEDGER_USER_ID", "demo-user"),
            demo_locale=os.getenv("DEMO_LOCALE", "ko_KR"),
            seed=int(os.getenv("SEED")) if os.getenv("SEED") else None,
        )


def parse_purge_scope(value: str) -> PurgeScope:
    """Parse a purge scope name, rejecting unknown values."""
    try:
        return PurgeScope(value.strip().lower())
    except ValueError:
        allowed = ", ".join(scope.value for scope in PurgeScope)
        raise ConfigurationError(f"Unknown purge scope {value!r} (expected one of: {allowed})") from None
