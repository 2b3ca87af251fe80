"""
Configuration settings for the SkillMatch assistant.

This file contains configuration for the LLM providers, the streaming proxy
and the local data directory.  You can switch providers by changing the
settings here or by exporting the matching environment variables.
"""

from dotenv import load_dotenv
load_dotenv()          # ← must be before os.getenv(...)
import os
from pathlib import Path

# LLM Provider Configuration
# Set to "proxy", "openai" or "ollama"
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "proxy").lower()

# Model Configuration
# The proxy forwards the model hint to Gemini; the others call the model directly.
DEFAULT_MODEL = {
    "proxy": "gemini-2.0-flash",
    "openai": "gpt-4o-mini",
    "ollama": "llama3.1:8b",
}

# Proxy Configuration
# The streaming endpoint is the same service with the transport upgraded.
PROXY_HTTP_URL = os.getenv(
    "PROXY_HTTP_URL", "http://localhost:3000/api/gemini-proxy"
)
PROXY_WS_URL = os.getenv("PROXY_WS_URL", "")

STREAM_TIMEOUT_S = float(os.getenv("STREAM_TIMEOUT_S", "120"))
HTTP_TIMEOUT_S = float(os.getenv("HTTP_TIMEOUT_S", "60"))

# OpenAI Configuration (key is checked when the client is built)
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL_PARAMS = {
    "temperature": 0.7,
    "max_tokens": 4096
}

# Ollama Configuration
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")

# Local state
DATA_DIR = Path(os.getenv("DATA_DIR", ".skillmatch"))
CACHE_DIR = Path(os.getenv("CACHE_DIR", str(DATA_DIR / "cache")))
CATALOG_PATH = os.getenv("CATALOG_PATH", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def get_model_for_provider(provider: str = None) -> str:
    """Get the default model for the specified provider."""
    provider = provider or LLM_PROVIDER
    return DEFAULT_MODEL.get(provider, DEFAULT_MODEL["proxy"])


def get_stream_url(http_url: str = None) -> str:
    """Streaming address for the proxy, derived from the HTTP one unless set."""
    if PROXY_WS_URL and http_url is None:
        return PROXY_WS_URL
    http_url = http_url or PROXY_HTTP_URL
    if http_url.startswith("https://"):
        return "wss://" + http_url[len("https://"):]
    if http_url.startswith("http://"):
        return "ws://" + http_url[len("http://"):]
    return http_url
