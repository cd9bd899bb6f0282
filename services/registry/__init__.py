# services/registry/__init__.py
"""
Registry port wiring. ``build_registry`` is called once at process start;
nothing below the routers branches on the registry mode.
"""
from typing import Optional

from config import (
     ADAPTER_API_URL,
     REGISTRY_API_TOKEN,
     REGISTRY_API_URL,
     REGISTRY_MODE,
     REGISTRY_TIMEOUT_SECONDS,
)
from .adapter import AdapterClient
from .base import RegistryPort
from .fixture import InMemoryRegistry
from .http_client import HttpRegistry


def build_registry(mode: str = REGISTRY_MODE) -> RegistryPort:
     if mode == "fixture":
          return InMemoryRegistry()
     if mode == "http":
          return HttpRegistry(
               REGISTRY_API_URL,
               timeout=REGISTRY_TIMEOUT_SECONDS,
               api_token=REGISTRY_API_TOKEN,
          )
     raise ValueError(f"Unknown REGISTRY_MODE: {mode!r} (expected 'fixture' or 'http')")


def build_adapter(mode: str = REGISTRY_MODE) -> Optional[AdapterClient]:
     """The fixture registry has no adapter behind it."""
     if mode == "http":
          return AdapterClient(ADAPTER_API_URL, timeout=REGISTRY_TIMEOUT_SECONDS)
     return None


__all__ = [
     "RegistryPort",
     "HttpRegistry",
     "InMemoryRegistry",
     "AdapterClient",
     "build_registry",
     "build_adapter",
]
