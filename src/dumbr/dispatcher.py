"""
Request Dispatcher

Compiles the route configuration into a lookup table keyed by
(method, exact path). Each value is a BoundRoute record naming the
template to render; a single generic endpoint looks the record up per
request instead of one handler being created per route.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional, Tuple

from .methods import HttpMethod
from .route_config import Configuration

logger = logging.getLogger(__name__)

RouteKey = Tuple[HttpMethod, str]


@dataclass(frozen=True)
class BoundRoute:
    """A registered route: requests matching method and path render template_name."""
    method: HttpMethod
    path: str
    template_name: str


class RouteTable:
    """Immutable (method, path) → BoundRoute mapping."""

    def __init__(self, routes: Mapping[RouteKey, BoundRoute]):
        self._routes: Mapping[RouteKey, BoundRoute] = MappingProxyType(dict(routes))

    @classmethod
    def build(cls, configuration: Configuration, log: Optional[logging.Logger] = None) -> "RouteTable":
        """
        Register one route per supported entry, in configuration order.

        A later entry for the same method and path replaces the earlier one.
        Entries with a method outside HttpMethod.supported() are logged and
        skipped.

        Args:
            configuration: Parsed route configuration
            log: Logger (defaults to the module logger)

        Returns:
            RouteTable ready for lookups
        """
        log = log or logger
        routes: Dict[RouteKey, BoundRoute] = {}

        for spec in configuration:
            method = HttpMethod.parse(spec.method)
            if not method.is_supported:
                log.warning(
                    f"Skipping request handler for resource:{spec.resource}, "
                    f"unsupported method:{spec.method!r}, templateName:{spec.template_name}, "
                    f"expected one of:{', '.join(m.value for m in HttpMethod.supported())}"
                )
                continue

            key = (method, spec.resource)
            if key in routes:
                log.warning(
                    f"Replacing request handler for resource:{spec.resource}, method:{method.value}, "
                    f"previous templateName:{routes[key].template_name}"
                )
            routes[key] = BoundRoute(method=method, path=spec.resource, template_name=spec.template_name)
            log.info(
                f"Adding request handler for resource:{spec.resource}, "
                f"method:{method.value}, templateName:{spec.template_name}"
            )

        return cls(routes)

    def resolve(self, method: str, path: str) -> Optional[BoundRoute]:
        """Return the route bound to exactly this method and path, if any.

        Request methods are matched case-sensitively, as HTTP defines them.
        """
        try:
            parsed = HttpMethod(method)
        except ValueError:
            return None
        if not parsed.is_supported:
            return None
        return self._routes.get((parsed, path))

    def __iter__(self) -> Iterator[BoundRoute]:
        return iter(self._routes.values())

    def __len__(self) -> int:
        return len(self._routes)
