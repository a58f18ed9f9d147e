"""
settings_loader.py

Settings for the clusterlab engine: pydantic models holding each algorithm's
defaults, read from YAML with ${VAR:default} environment references and
cached per process by ConfigManager.
"""

import os
import re
import yaml
import logging
from typing import Any, Optional
from pydantic import BaseModel, Field, ValidationError, field_validator
from pathlib import Path

from clusterlab.utils.error_handling import ConfigurationError

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models (Pydantic)
# =============================================================================

class KMeansSettings(BaseModel):
    """K-Means clustering algorithm settings."""
    n_clusters: int = Field(default=3, ge=1, description="Number of clusters")
    init: str = Field(default="random_assignment", description="Initializer (random_assignment, random_centroids, kmeans++)")
    reassign: str = Field(default="plain", description="Reassigner (plain, plain_random, hartigan_wong, hartigan, lloyd)")
    post_swap: bool = Field(default=False, description="Run the post-process swap phase")
    immediate: bool = Field(default=False, description="Recompute centroids after the first move of a pass")
    max_iter: int = Field(default=1000, ge=1, description="Maximum iterations")
    restart_check: int = Field(default=3, ge=1, description="Repeats of the minimum sse before restarts stop")
    restart_streams: int = Field(default=1000, ge=1, description="Streams tried by the restart factory")

    @field_validator("init")
    @classmethod
    def validate_init(cls, v: str) -> str:
        allowed = {"random_assignment", "random_centroids", "kmeans++"}
        if v not in allowed:
            raise ValueError(f"init must be one of {sorted(allowed)}")
        return v

    @field_validator("reassign")
    @classmethod
    def validate_reassign(cls, v: str) -> str:
        allowed = {"plain", "plain_random", "hartigan_wong", "hartigan", "lloyd"}
        if v not in allowed:
            raise ValueError(f"reassign must be one of {sorted(allowed)}")
        return v


class HierarchicalSettings(BaseModel):
    """Single-linkage hierarchical clustering settings."""
    n_clusters: int = Field(default=2, ge=1, description="Number of clusters")


class MarkovSettings(BaseModel):
    """Markov clustering (MCL) settings."""
    expansion: int = Field(default=2, ge=1, description="Expansion power k")
    inflation: float = Field(default=2.0, gt=0.0, description="Inflation exponent r")
    max_iter: int = Field(default=200, ge=1, description="Maximum expand/inflate rounds")
    epsilon: float = Field(default=1e-7, gt=0.0, description="Pruning and convergence threshold")
    self_loop_weight: float = Field(default=1.0, ge=0.0, description="Diagonal weight added before normalizing")


class GapStatisticSettings(BaseModel):
    """Gap statistic settings."""
    k_max: int = Field(default=10, ge=1, description="Largest candidate k")
    algorithm: str = Field(default="hartigan", description="K-Means++ variant (hartigan or lloyd)")
    b: int = Field(default=1, ge=1, description="Reference datasets per candidate k")
    use_svd: bool = Field(default=True, description="Draw reference data on principal axes")
    tolerance: float = Field(default=0.1, ge=0.0, description="Relative gap tolerance")
    rule: str = Field(default="relative", description="Selection rule (relative or standard_error)")
    restarts: int = Field(default=20, ge=1, description="Restart streams per k-means fit")

    @field_validator("rule")
    @classmethod
    def validate_rule(cls, v: str) -> str:
        if v not in ("relative", "standard_error"):
            raise ValueError("rule must be 'relative' or 'standard_error'")
        return v


class TightClusteringSettings(BaseModel):
    """Tight clustering settings."""
    ratio: float = Field(default=0.7, gt=0.0, le=1.0, description="Subsample fraction")
    alpha: float = Field(default=0.5, ge=0.0, le=1.0, description="Co-membership threshold is 1 - alpha")
    beta: float = Field(default=0.7, ge=0.0, le=1.0, description="Stability (Jaccard) threshold")
    b: int = Field(default=10, ge=1, description="Subsamples per level")
    q: int = Field(default=7, ge=1, description="Top candidate clubs compared")
    levels: int = Field(default=2, ge=2, description="Consecutive levels compared")


class ClusteringSettings(BaseModel):
    """Main clustering configuration."""
    default_algorithm: str = Field(default="kmeans", description="Default clustering algorithm")
    default_stream: int = Field(default=0, ge=0, description="Default random stream")
    kmeans: KMeansSettings = Field(default_factory=KMeansSettings)
    hierarchical: HierarchicalSettings = Field(default_factory=HierarchicalSettings)
    markov: MarkovSettings = Field(default_factory=MarkovSettings)
    gap_statistic: GapStatisticSettings = Field(default_factory=GapStatisticSettings)
    tight: TightClusteringSettings = Field(default_factory=TightClusteringSettings)


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="console", description="Log format (json or console)")
    file: Optional[str] = Field(default=None, description="Optional rotating log file path")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return v


class Settings(BaseModel):
    """Root configuration model."""
    clustering: ClusteringSettings = Field(default_factory=ClusteringSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# =============================================================================
# Loading
# =============================================================================

DEFAULT_CONFIG_PATH = "config/settings.yaml"
CONFIG_ENV_VAR = "CLUSTERLAB_CONFIG"

# ${NAME} or ${NAME:fallback}
_ENV_REFERENCE = re.compile(r"\$\{([^}:]+)(?::([^}]*))?\}")


def expand_env(value: Any) -> Any:
    """
    Replace ${NAME} and ${NAME:fallback} in every string of a parsed YAML tree.

    Unset variables without a fallback become empty strings.
    """
    if isinstance(value, dict):
        return {key: expand_env(item) for key, item in value.items()}
    if isinstance(value, list):
        return [expand_env(item) for item in value]
    if isinstance(value, str):
        return _ENV_REFERENCE.sub(lambda m: os.getenv(m.group(1), m.group(2) or ""), value)
    return value


def _find_config_file() -> Optional[Path]:
    candidates = [Path(os.getenv(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH)), Path(DEFAULT_CONFIG_PATH)]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    logger.warning(f"No settings file at {[str(c) for c in candidates]}; using defaults")
    return None


def parse_settings(path: Path) -> Settings:
    """
    Read one YAML settings file.

    Raises:
        ConfigurationError: INVALID_YAML if the file does not parse,
            INVALID_SETTINGS if a value fails validation
    """
    try:
        raw = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML configuration: {e}",
            error_code="INVALID_YAML",
            details={"path": str(path)},
        )

    try:
        return Settings(**expand_env(raw))
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration: {e}",
            error_code="INVALID_SETTINGS",
            details={"path": str(path), "errors": e.error_count()},
        )


class ConfigManager:
    """
    Process-wide holder of the loaded Settings.

    The first load wins until reload_config() drops the cache. Without an
    explicit path the file named by $CLUSTERLAB_CONFIG is tried, then
    config/settings.yaml; when neither exists the model defaults apply.
    """

    _instance: Optional["ConfigManager"] = None
    _settings: Optional[Settings] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @classmethod
    def load_config(cls, config_path: Optional[str] = None) -> Settings:
        """
        Return the cached settings, loading them on first use.

        Args:
            config_path: Explicit settings file; must exist

        Raises:
            FileNotFoundError: If config_path is given but missing
            ConfigurationError: If the file is malformed or invalid
        """
        if cls._settings is not None:
            return cls._settings

        if config_path is not None:
            path = Path(config_path)
            if not path.exists():
                raise FileNotFoundError(f"Configuration file not found: {config_path}")
        else:
            path = _find_config_file()

        if path is None:
            cls._settings = Settings()
        else:
            logger.info(f"Loading configuration from: {path}")
            cls._settings = parse_settings(path)
        return cls._settings

    @classmethod
    def get_settings(cls) -> Settings:
        return cls._settings if cls._settings is not None else cls.load_config()

    @classmethod
    def reload_config(cls, config_path: Optional[str] = None) -> Settings:
        cls._settings = None
        return cls.load_config(config_path)


def get_settings() -> Settings:
    """Settings for this process (loaded on first call)."""
    return ConfigManager.get_settings()


def reload_config(config_path: Optional[str] = None) -> Settings:
    """Drop cached settings and load them again."""
    return ConfigManager.reload_config(config_path)
