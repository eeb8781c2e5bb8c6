"""Configuration management for schemasync."""

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional

from schemasync.models.ddl import Dialect, GenerateOptions


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # DDL generation defaults
    default_dialect: str = "mysql"
    include_drops: bool = False
    include_comments: bool = True
    generator_name: str = Field(
        default="schemasync",
        description="Name written into the generated DDL header"
    )

    # DDL import
    parse_dialect: Optional[str] = Field(
        default=None,
        description="Dialect forced on import; sniffed from the input when unset"
    )

    # Caching and observability
    export_cache_enabled: bool = True
    metrics_enabled: bool = True
    log_level: str = "INFO"

    # MCP configuration
    mcp_host: str = "0.0.0.0"
    mcp_port: int = 8990
    mcp_transport: str = "stdio"

    class Config:
        env_prefix = "SCHEMASYNC_"

    def get_default_dialect(self) -> Dialect:
        """Get the export dialect.

        Returns:
            The configured default dialect.

        Raises:
            UnsupportedDialectError: If the configured name is unknown.
        """
        return Dialect.parse(self.default_dialect)

    def get_parse_dialect(self) -> Optional[Dialect]:
        """Get the dialect forced on import, if any."""
        if not self.parse_dialect:
            return None
        return Dialect.parse(self.parse_dialect)

    def get_generate_options(self) -> GenerateOptions:
        """Build the default generation options."""
        return GenerateOptions(
            include_drops=self.include_drops,
            include_comments=self.include_comments
        )
