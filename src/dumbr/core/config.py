"""
Environment defaults for the command line flags.

Every flag can also be supplied through the environment (or a ``.env``
file in the working directory). Flags given on the command line win.
"""
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


class Config:
    """Defaults loaded from environment variables."""

    # Templates
    TEMPLATES = os.getenv("DUMBR_TEMPLATES", "./templates")
    TEMPLATE_EXTENSION = os.getenv("DUMBR_TEMPLATE_EXTENSION", ".template")

    # Listener
    HOST = os.getenv("DUMBR_HOST", "0.0.0.0")
    PORT = os.getenv("DUMBR_PORT", "")

    # TLS
    SERVER_KEY = os.getenv("DUMBR_SERVER_KEY", "")
    SERVER_CRT = os.getenv("DUMBR_SERVER_CRT", "")

    # Route table and logging
    CONFIGURATION = os.getenv("DUMBR_CONFIGURATION", "")
    LOG_CONFIG = os.getenv("DUMBR_LOG_CONFIG", "")


@dataclass(frozen=True)
class ServerSettings:
    """Resolved startup parameters, one per command line flag."""
    port: str
    configuration: str
    templates: str = "./templates"
    host: str = "0.0.0.0"
    server_key: str = ""
    server_crt: str = ""
    log_config: Optional[str] = None
    template_extension: str = ".template"

    @property
    def is_complete(self) -> bool:
        """True when every parameter needed to start serving is non-empty."""
        return bool(self.templates and self.port and self.configuration)

    @property
    def use_tls(self) -> bool:
        """TLS is only used when both the key and the certificate are set."""
        return bool(self.server_key and self.server_crt)
