"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    app_name: str = "Form Runtime Service"
    
    # CORS
    cors_origins: str = "http://localhost:5173,http://localhost:3000"
    
    # Logging
    log_level: str = "INFO"
    
    # Runtime delays (milliseconds)
    auto_navigate_delay_ms: int = 300
    auto_advance_delay_ms: int = 400
    transition_out_ms: int = 150
    transition_in_ms: int = 150
    submit_delay_ms: int = 1500
    
    # Preview sessions kept in memory
    max_preview_sessions: int = 100
    
    # Debug mode
    debug: bool = False
    
    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]
    
    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
