# Settings shared by the CLI and the server bootstrap
from .config import Config, ServerSettings

__all__ = [
    "Config",
    "ServerSettings",
]
