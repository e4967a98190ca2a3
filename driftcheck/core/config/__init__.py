"""Configuration models for driftcheck."""

from driftcheck.core.config.cache_config import CacheConfig
from driftcheck.core.config.config import (
    CONFIG_FILENAME,
    AnalysisConfig,
    Config,
    DiffConfig,
    GeneralConfig,
    PromptsConfig,
    TuiConfig,
)
from driftcheck.core.config.docs_config import DocsConfig, SearchConfig
from driftcheck.core.config.llm_config import LLMConfig

__all__ = [
    "CONFIG_FILENAME",
    "AnalysisConfig",
    "CacheConfig",
    "Config",
    "DiffConfig",
    "DocsConfig",
    "GeneralConfig",
    "LLMConfig",
    "PromptsConfig",
    "SearchConfig",
    "TuiConfig",
]
