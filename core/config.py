import logging
import logging.config
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Slot ids offered by the texture panel and the material name fragments that
# identify them on assets following the configurator naming convention
DEFAULT_SLOT_MAP: Dict[str, List[str]] = {
    "logo_1": ["logo.001", "logo_1", "logo_front", "decals_1"],
    "logo_2": ["logo.002", "logo_2", "logo_back", "decals_2"],
    "logo_3": ["logo.003", "logo_3", "logo_sleeve", "decals_3"],
}

DEFAULT_SLOT_LABELS: Dict[str, str] = {
    "logo_1": "Logo 1",
    "logo_2": "Logo 2",
    "logo_3": "Logo 3",
}

DEFAULT_CONVENTION_KEYWORDS: List[str] = ["logo", "front", "back", "sleeve", "decals"]


class LoggingConfig(BaseSettings):
    """Enhanced logging configuration that supports both simple and dictConfig formats"""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None
    # For dictConfig support
    use_dict_config: bool = False
    dict_config_path: Optional[str] = None
    dict_config: Optional[Dict] = None


class SecurityConfig(BaseSettings):
    cors_origins: List[str] = ["*"]


class IngestionConfig(BaseSettings):
    """Asset ingestion and customization settings"""

    # Rejected at the HTTP boundary only; the core itself enforces no limit
    max_upload_size_mb: int = 200
    slot_map: Dict[str, List[str]] = DEFAULT_SLOT_MAP
    slot_labels: Dict[str, str] = DEFAULT_SLOT_LABELS
    convention_keywords: List[str] = DEFAULT_CONVENTION_KEYWORDS
    legacy_default_roughness: float = 0.5
    legacy_default_metallic: float = 0.0
    # Object URLs are minted as <prefix><blob id>; the HTTP app serves them under /api/v1/blobs/
    object_url_prefix: str = "/api/v1/blobs/"

    @field_validator("slot_map")
    def validate_slot_map(cls, v):
        """Every slot needs at least one candidate fragment"""
        for slot, fragments in v.items():
            if not fragments:
                raise ValueError(f"Slot '{slot}' has no candidate material names")
        return v

    @field_validator("object_url_prefix")
    def validate_object_url_prefix(cls, v):
        if not (v.endswith("/") or v.endswith(":")):
            raise ValueError("Object URL prefix must end with '/' or ':'")
        return v

    @field_validator("legacy_default_roughness", "legacy_default_metallic")
    def validate_unit_interval(cls, v):
        if not 0.0 <= v <= 1.0:
            raise ValueError("Material factors must lie in [0, 1]")
        return v


class Settings(BaseSettings):
    """Main settings class

    Environment variables:
        CFG_DEBUG: Enable debug mode (default: False)
        CFG_ENVIRONMENT: Deployment environment name (default: development)
    """

    logging: LoggingConfig = LoggingConfig()
    security: SecurityConfig = SecurityConfig()
    ingestion: IngestionConfig = IngestionConfig()

    # Environment
    environment: str = "development"
    debug: bool = False

    model_config = SettingsConfigDict(env_prefix="CFG_", case_sensitive=False)


def load_config_from_file(config_path: str) -> Settings:
    """Load configuration from YAML file"""
    config_file = Path(config_path)

    if not config_file.exists():
        logger.warning(f"Config file {config_path} not found, using defaults")
        return Settings()

    try:
        with open(config_file, "r") as f:
            config_data = yaml.safe_load(f) or {}

        settings = Settings()

        if "logging" in config_data:
            settings.logging = LoggingConfig(**config_data["logging"])
        if "security" in config_data:
            settings.security = SecurityConfig(**config_data["security"])
        if "ingestion" in config_data:
            settings.ingestion = IngestionConfig(**config_data["ingestion"])

        if "environment" in config_data:
            settings.environment = config_data["environment"]
        if "debug" in config_data:
            settings.debug = config_data["debug"]

        logger.info(f"Successfully loaded configuration from {config_path}")
        return settings

    except Exception as e:
        logger.error(f"Error loading config from {config_path}: {str(e)}")
        logger.info("Using default configuration")
        return Settings()


def load_logging_dict_config(config_path: str) -> Optional[Dict]:
    """Load logging configuration from YAML file in dictConfig format"""
    config_file = Path(config_path)

    if not config_file.exists():
        logger.warning(f"Logging config file {config_path} not found")
        return None

    try:
        with open(config_file, "r") as f:
            return yaml.safe_load(f)
    except Exception as e:
        logger.error(f"Error loading logging config from {config_path}: {str(e)}")
        return None


# Global settings instance
settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get global settings instance"""
    global settings
    if settings is None:
        config_dir = Path(__file__).parent.parent / "config"
        settings = load_config_from_file(str(config_dir / "system.yaml"))
    return settings


def setup_logging(config: LoggingConfig):
    """Setup logging configuration with support for both simple and dictConfig formats"""

    config_dir = Path(__file__).parent.parent / "config"
    logging_yaml_path = Path(config.dict_config_path) if config.dict_config_path else config_dir / "logging.yaml"

    if config.use_dict_config and config.dict_config:
        logging.config.dictConfig(config.dict_config)
        logger.info("Logging configured from inline dictConfig")
        return

    if logging_yaml_path.exists():
        dict_config = load_logging_dict_config(str(logging_yaml_path))
        if dict_config:
            try:
                logging.config.dictConfig(dict_config)
                logger.info(f"Logging configured from YAML: {logging_yaml_path}")
                return
            except Exception as e:
                logger.error(f"Failed to configure logging from YAML: {str(e)}")
                logger.info("Falling back to simple logging configuration")

    # Fallback to simple configuration
    level = getattr(logging, config.level.upper())

    handlers: List[logging.Handler] = [logging.StreamHandler()]

    if config.file:
        file_path = Path(config.file)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(config.file))

    logging.basicConfig(
        level=level,
        format=config.format,
        handlers=handlers,
        force=True,  # Override any existing configuration
    )

    uvicorn_logger = logging.getLogger("uvicorn")
    uvicorn_logger.setLevel(level)

    logger.info(f"Logging configured: level={config.level}, file={config.file or 'stderr only'}")
