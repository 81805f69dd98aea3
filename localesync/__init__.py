"""Keeps locale JSON files in sync with the translation keys used in a codebase."""
from .config import SyncConfig, load_config
from .errors import LocaleSyncError
from .reconciler import Edit, Reconciler

__version__ = "0.1.0"

__all__ = ["Edit", "LocaleSyncError", "Reconciler", "SyncConfig", "load_config", "__version__"]
