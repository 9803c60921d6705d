"""
Configuration management for the timetable generator API.
"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings."""
    
    # Application
    app_name: str = "Timetable Generator API"
    app_version: str = "1.0.0"
    debug: bool = False
    
    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    reload: bool = False
    
    # Solver
    solver_version: str = "backtracking-1.2"
    solver_max_backtracks: Optional[int] = None  # None searches until exhausted or cancelled
    solver_progress_interval: int = 500  # search steps between progress callbacks
    
    # History
    history_limit: int = 10
    
    # Logging
    log_level: str = "INFO"
    
    # CORS
    cors_origins: List[str] = ["http://localhost:3000"]
    
    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
