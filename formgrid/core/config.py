from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "Form Grid Engine"
    VERSION: str = "1.0.0"
    DESCRIPTION: str = "Grid layout engine and runtime interpreter for dynamic forms"

    # Layout defaults
    DEFAULT_FIELD_SPAN: int = 4
    DUPLICATE_GUARD_MS: int = 400

    # Repeater defaults applied when a section is switched to a repeater
    DEFAULT_REPEATER_MIN_ROWS: int = 1
    DEFAULT_REPEATER_MAX_ROWS: int = 10
    DEFAULT_REPEATER_ADD_LABEL: str = "Add New"
    DEFAULT_REPEATER_REMOVE_LABEL: str = "Remove"

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Optional[str] = None

    class Config:
        env_file = ".env"
        env_prefix = "FORMGRID_"
        case_sensitive = True
        extra = "ignore"

settings = Settings()
