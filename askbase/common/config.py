"""
Configuration Management for Askbase

Loads configuration from ~/.askbase/config.json and environment variables.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import asdict, dataclass, field, fields

logger = logging.getLogger("askbase.common.config")

# Default config paths
CONFIG_DIR = Path.home() / ".askbase"
CONFIG_PATH = CONFIG_DIR / "config.json"

# Project paths (relative to this file)
PROJECT_ROOT = Path(__file__).parent.parent.parent
DEFAULT_EMBEDDINGS_PATH = PROJECT_ROOT / "data" / "embeddings.json"

DEFAULT_FALLBACK_MESSAGE = (
    "I don't have that information in my data. "
    "Please visit https://montforticse.in/ or contact the school office for official details."
)


@dataclass
class LLMConfig:
    """LLM provider configuration"""
    provider: str = "google"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-haiku-4-5-20251001"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    google_api_key: str = ""
    google_model: str = "gemini-2.0-flash"


@dataclass
class EmbeddingConfig:
    """Embedding model configuration"""
    mode: str = "google"  # must match the model the knowledge base was embedded with
    model: str = "models/text-embedding-004"


@dataclass
class KnowledgeConfig:
    """Knowledge store location"""
    embeddings_path: str = str(DEFAULT_EMBEDDINGS_PATH)


@dataclass
class ResolverConfig:
    """Answer resolution thresholds and limits"""
    min_score: float = 0.11
    gap: float = 0.06
    trust_score: float = 0.55
    multi_match_score: float = 0.08
    short_utterance_chars: int = 4
    top_k: int = 5
    embedding_cache_size: int = 1024
    call_timeout: float = 15.0
    max_retries: int = 2
    retry_initial_delay: float = 0.5
    session_ttl: float = 1800.0
    max_sessions: int = 10000
    fallback_message: str = DEFAULT_FALLBACK_MESSAGE


@dataclass
class ServerConfig:
    """HTTP server configuration"""
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False


@dataclass
class AskbaseConfig:
    """Main Askbase configuration"""
    llm: LLMConfig = field(default_factory=LLMConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    knowledge: KnowledgeConfig = field(default_factory=KnowledgeConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    _env_sourced_keys: set = field(default_factory=set, repr=False)


def _parse_section(section_cls, data: dict, name: str):
    """Build a config section from its JSON object.

    Missing keys keep their defaults; unknown keys are ignored so older
    config files keep loading.
    """
    raw = data.get(name) or {}
    section = section_cls()
    if not isinstance(raw, dict):
        logger.warning("Config section %r is not an object, using defaults", name)
        return section
    for key in fields(section_cls):
        if key.name in raw:
            setattr(section, key.name, raw[key.name])
    return section


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config() -> AskbaseConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (~/.askbase/config.json)
    3. Default values
    """
    config = AskbaseConfig()

    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("top-level value must be an object")

            config.llm = _parse_section(LLMConfig, data, "llm")
            config.embedding = _parse_section(EmbeddingConfig, data, "embedding")
            config.knowledge = _parse_section(KnowledgeConfig, data, "knowledge")
            config.resolver = _parse_section(ResolverConfig, data, "resolver")
            config.server = _parse_section(ServerConfig, data, "server")
        except (ValueError, OSError) as e:
            logger.warning("Failed to load config file %s: %s", CONFIG_PATH, e)

    # LLM env var overrides (track env-sourced keys so they are never saved)
    _env_llm_map = {
        "ANTHROPIC_API_KEY": "anthropic_api_key",
        "ANTHROPIC_MODEL": "anthropic_model",
        "OPENAI_API_KEY": "openai_api_key",
        "OPENAI_MODEL": "openai_model",
        "GOOGLE_API_KEY": "google_api_key",
        "GEMINI_API_KEY": "google_api_key",
        "GOOGLE_MODEL": "google_model",
        "ASKBASE_LLM_PROVIDER": "provider",
    }
    for env_var, attr in _env_llm_map.items():
        val = os.getenv(env_var)
        if val:
            setattr(config.llm, attr, val)
            config._env_sourced_keys.add(attr)

    if os.getenv("EMBEDDING_MODE"):
        config.embedding.mode = os.getenv("EMBEDDING_MODE")
    if os.getenv("EMBEDDING_MODEL"):
        config.embedding.model = os.getenv("EMBEDDING_MODEL")

    if os.getenv("ASKBASE_EMBEDDINGS_PATH"):
        config.knowledge.embeddings_path = os.getenv("ASKBASE_EMBEDDINGS_PATH")

    _env_resolver_map = {
        "ASKBASE_MIN_SCORE": ("min_score", float),
        "ASKBASE_GAP": ("gap", float),
        "ASKBASE_TRUST_SCORE": ("trust_score", float),
        "ASKBASE_TOP_K": ("top_k", int),
        "ASKBASE_CACHE_SIZE": ("embedding_cache_size", int),
        "ASKBASE_CALL_TIMEOUT": ("call_timeout", float),
        "ASKBASE_MAX_RETRIES": ("max_retries", int),
        "ASKBASE_SESSION_TTL": ("session_ttl", float),
        "ASKBASE_FALLBACK_MESSAGE": ("fallback_message", str),
    }
    for env_var, (attr, cast) in _env_resolver_map.items():
        val = os.getenv(env_var)
        if val:
            try:
                setattr(config.resolver, attr, cast(val))
            except ValueError:
                logger.warning("Ignoring invalid %s=%r", env_var, val)

    if os.getenv("ASKBASE_HOST"):
        config.server.host = os.getenv("ASKBASE_HOST")
    if os.getenv("ASKBASE_PORT"):
        try:
            config.server.port = int(os.getenv("ASKBASE_PORT"))
        except ValueError:
            logger.warning("Ignoring invalid ASKBASE_PORT=%r", os.getenv("ASKBASE_PORT"))
    if os.getenv("ASKBASE_DEBUG"):
        config.server.debug = _env_bool(os.getenv("ASKBASE_DEBUG"))

    return config


def save_config(config: AskbaseConfig) -> None:
    """Save configuration to file.

    API keys that came from environment variables are written as empty
    strings so secrets never reach disk.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    data = {
        "llm": asdict(config.llm),
        "embedding": asdict(config.embedding),
        "knowledge": asdict(config.knowledge),
        "resolver": asdict(config.resolver),
        "server": asdict(config.server),
    }
    for key in ("anthropic_api_key", "openai_api_key", "google_api_key"):
        if key in config._env_sourced_keys:
            data["llm"][key] = ""

    with open(CONFIG_PATH, "w") as f:
        json.dump(data, f, indent=2)
    CONFIG_PATH.chmod(0o600)
