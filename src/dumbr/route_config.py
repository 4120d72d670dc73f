"""
Route configuration loader.

The route table is a JSON document of the form:

{
  "requestConfig": [
    {"responseTemplateName": "hello.template", "resource": "/hi", "method": "GET"}
  ]
}

Only the JSON structure is checked. A missing field decodes to an empty
string, which later produces a route on the empty path or an entry with
an unsupported method.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Tuple

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteSpec:
    """One configured mapping of (method, path) to a response template."""
    template_name: str = ""
    resource: str = ""
    method: str = ""

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "RouteSpec":
        def text(key: str) -> str:
            value = raw.get(key)
            return "" if value is None else str(value)

        return cls(
            template_name=text("responseTemplateName"),
            resource=text("resource"),
            method=text("method"),
        )


@dataclass(frozen=True)
class Configuration:
    """Ordered route entries, exactly as listed in the file."""
    request_config: Tuple[RouteSpec, ...] = ()

    def __iter__(self) -> Iterator[RouteSpec]:
        return iter(self.request_config)

    def __len__(self) -> int:
        return len(self.request_config)

    @classmethod
    def from_json(cls, raw: Any) -> "Configuration":
        """
        Build a Configuration from a decoded JSON value.

        Raises:
            ConfigurationError: If the value does not have the expected shape
        """
        if not isinstance(raw, dict):
            raise ConfigurationError("configuration must be a JSON object")

        entries = raw.get("requestConfig")
        if entries is None:
            return cls()
        if not isinstance(entries, list):
            raise ConfigurationError("'requestConfig' must be a list")

        specs = []
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict):
                raise ConfigurationError(f"requestConfig[{index}] must be an object")
            specs.append(RouteSpec.from_dict(entry))
        return cls(request_config=tuple(specs))


def load_configuration(path: str, log: Optional[logging.Logger] = None) -> Configuration:
    """
    Read a JSON route configuration file.

    Args:
        path: Path to the configuration file
        log: Logger (defaults to the module logger)

    Returns:
        Parsed Configuration

    Raises:
        ConfigurationError: If the file cannot be read or decoded
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except OSError as e:
        raise ConfigurationError(f"cannot read configuration file {path}: {e}") from e
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"invalid JSON in configuration file {path}: {e}") from e

    configuration = Configuration.from_json(raw)
    log = log or logger
    log.info(f"Loaded {len(configuration)} route entries from {path}")
    return configuration
