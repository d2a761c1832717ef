"""
Configuration management using Pydantic Settings.
Loads configuration from environment variables and .env files.
"""
import sys
from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional
from functools import lru_cache
from loguru import logger


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = Field(default="Causal DAG Toolkit", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment (development, production)")

    # API Gateway
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    enable_cors: bool = Field(default=True, description="Enable CORS")

    # Solver
    max_adjustment_set_size: Optional[int] = Field(
        default=8,
        ge=0,
        description="Largest adjustment set the solver will try (None = unbounded)"
    )
    max_paths: Optional[int] = Field(
        default=10000,
        ge=1,
        description="Most exposure-outcome paths enumerated per request (None = unbounded)"
    )
    max_graph_nodes: int = Field(
        default=30,
        ge=2,
        description="Largest graph accepted by the API"
    )

    # Monitoring
    enable_metrics: bool = Field(default=True, description="Enable Prometheus metrics")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        description="Log format"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


def configure_logging(settings: Optional[Settings] = None):
    """Replace loguru's default sink with one using the configured level/format"""
    settings = settings or get_settings()
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level.upper(), format=settings.log_format)
