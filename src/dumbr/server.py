"""
Server bootstrap.

Startup is strictly sequential: build the logger, load templates, load the
route configuration, register routes, then hand the application to uvicorn.
A failure at any step is logged and returns before a listener is opened.
"""

import logging
import sys

import uvicorn
from fastapi import FastAPI

from .app import create_app
from .core.config import ServerSettings
from .dispatcher import RouteTable
from .errors import ConfigurationError, LogConfigError, TemplateDirectoryError
from .logging_config import logger_from_file
from .route_config import load_configuration
from .template_store import TemplateStore

EXIT_OK = 0
EXIT_STARTUP_FAILED = 1


def build_app(settings: ServerSettings, log: logging.Logger) -> FastAPI:
    """
    Load templates and routes and build the application.

    Raises:
        TemplateDirectoryError: If the template directory cannot be walked
        ConfigurationError: If the route configuration cannot be loaded
    """
    templates = TemplateStore.load(settings.templates, settings.template_extension, log)
    log.info(f"Parsed templates in folder:{settings.templates}")

    configuration = load_configuration(settings.configuration, log)
    route_table = RouteTable.build(configuration, log)
    log.info(f"Registered {len(route_table)} of {len(configuration)} configured routes")

    return create_app(templates, route_table, log)


def serve(app: FastAPI, settings: ServerSettings, log: logging.Logger) -> None:
    """Run uvicorn until it exits, with TLS when both key and certificate are set."""
    port = int(settings.port)
    options = {
        "host": settings.host,
        "port": port,
        "log_level": log.getEffectiveLevel(),
        "access_log": False,
    }

    if settings.use_tls:
        log.info("Starting ssl/tls enabled server..")
        options["ssl_keyfile"] = settings.server_key
        options["ssl_certfile"] = settings.server_crt
    else:
        if settings.server_key or settings.server_crt:
            log.warning("Only one of serverKey and serverCrt is set, TLS needs both")
        log.info("Starting normal http server..")

    uvicorn.run(app, **options)


def start_server(settings: ServerSettings) -> int:
    """
    Run the full startup sequence and serve until shutdown.

    Args:
        settings: Resolved command line parameters

    Returns:
        Process exit status
    """
    try:
        log = logger_from_file(settings.log_config)
    except LogConfigError as e:
        print(f"Failed in building logger: {e}", file=sys.stderr)
        return EXIT_STARTUP_FAILED

    log.info(f"Starting server listening on port:{settings.port}")

    try:
        int(settings.port)
    except ValueError:
        log.error(f"Invalid port:{settings.port!r}, expected a number")
        return EXIT_STARTUP_FAILED

    try:
        app = build_app(settings, log)
    except TemplateDirectoryError as e:
        log.error(f"Failed in reading templates, error:{e}")
        return EXIT_STARTUP_FAILED
    except ConfigurationError as e:
        log.error(f"Failed in reading config file:{e}")
        return EXIT_STARTUP_FAILED

    serve(app, settings, log)
    return EXIT_OK
