"""Metadata providers and module loaders for apicat."""

from apicat.providers.base import MetadataProvider, ModuleLoader, ProviderResponse
from apicat.providers.python import PythonLoader, PythonProvider

__all__ = ["MetadataProvider", "ModuleLoader", "ProviderResponse", "PythonLoader", "PythonProvider"]
