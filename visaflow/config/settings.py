"""Application Settings - Central Configuration"""
from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )
    
    # MongoDB
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "visa_tracker_dev"
    
    # Artifact uploads
    uploads_base_path: str = "./storage/uploads"
    uploads_max_mb: int = 10
    allowed_mime_types: str = "application/pdf,image/*"
    
    # Workflow
    workflow_template_path: str = ""  # Empty uses the built-in visa checklist
    workflow_conflict_retries: int = 3
    
    # Logging
    logs_path: str = "./logs"
    log_level: str = "INFO"
    
    # CORS - set to "*" to allow all origins
    cors_origins: str = "*"
    
    # Environment
    environment: str = "development"
    debug: bool = True
    
    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins string to list"""
        return [origin.strip() for origin in self.cors_origins.split(",")]
    
    @property
    def allowed_mime_types_list(self) -> List[str]:
        """Parse allowed mime types string to list"""
        return [mime.strip() for mime in self.allowed_mime_types.split(",") if mime.strip()]
    
    @property
    def uploads_max_bytes(self) -> int:
        """Max upload size in bytes"""
        return self.uploads_max_mb * 1024 * 1024
    
    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.environment.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
