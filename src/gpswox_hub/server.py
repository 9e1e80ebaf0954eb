# gpswox_hub/server.py
"""
HTTP entry points of the tracking hub.

Routes:
    GET|POST /gpswox            normalized vehicles and drivers
    GET|POST /gpswox-reports    fleet report, history or daily stats
    GET|POST /gpswox-alerts     provider events or device-derived alerts
    GET|POST /gpswox-geofences  geofence list
    GET|POST /gpswox-map        signed URL of the provider web map
    GET      /health            liveness probe

Every data route always answers HTTP 200. Failures, including a missing
configuration, are reported in the body as {"success": false, "error": ...}
so browser clients can read the message.

Usage:
------
    gpswox-hub --config config/gpswox_config.yaml

    # or under any ASGI server
    uvicorn --factory gpswox_hub.server:create_app
"""

import argparse
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from gpswox_hub import __version__
from gpswox_hub.common import setup_logger
from gpswox_hub.config import ConfigurationError, TrackingConfig, load_config
from gpswox_hub.models import ErrorResponse, ReportRequest
from gpswox_hub.service import TrackingService

__all__: list[str] = ['create_app', 'main']

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_CORS_ORIGINS: list[str] = ['*']
CORS_ALLOW_HEADERS: list[str] = ['authorization', 'x-client-info', 'apikey', 'content-type']
REPORT_PARAMETERS: tuple[str, ...] = ('type', 'device_id', 'date_from', 'date_to')


def _json(model: BaseModel) -> JSONResponse:
    return JSONResponse(content=model.model_dump(mode='json', by_alias=True))


def _error_response(message: str) -> JSONResponse:
    return _json(ErrorResponse(error=message))


def _validation_message(error: ValidationError) -> str:
    """Flatten a pydantic error into one readable line."""
    return '; '.join(
        str(detail['msg']).removeprefix('Value error, ') for detail in error.errors()
    )


async def _report_parameters(request: Request) -> dict[str, Any]:
    """
    Merge report parameters from the query string and a JSON body.

    Body values override query values. A missing or non-JSON body is ignored.
    """
    parameters: dict[str, Any] = {
        name: request.query_params[name]
        for name in REPORT_PARAMETERS
        if request.query_params.get(name)
    }

    if request.method == 'POST':
        try:
            body: Any = await request.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            parameters.update(
                {name: body[name] for name in REPORT_PARAMETERS if body.get(name)}
            )

    return parameters


def create_app(
    config: TrackingConfig | None = None,
    config_path: Path | str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Configuration errors do not prevent the app from starting; each data
    route then answers with the configuration error in the failure envelope.

    Args:
        config: Validated configuration. Loaded with load_config() when None.
        config_path: YAML file passed to load_config().
        transport: Custom httpx transport for the provider client (tests).

    Returns:
        The application. The provider client is closed on shutdown.
    """
    config_error: str | None = None
    if config is None:
        try:
            config = load_config(config_path)
        except (ConfigurationError, FileNotFoundError) as error:
            logger.error('GPSwox configuration unavailable: %s', error)
            config_error = str(error)

    service: TrackingService | None = (
        TrackingService.from_config(config, transport=transport) if config is not None else None
    )

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        logger.info('Starting GPSwox tracking hub %s', __version__)
        yield
        if service is not None:
            await service.aclose()
        logger.info('GPSwox tracking hub stopped')

    app = FastAPI(
        title='GPSwox Tracking Hub',
        description='Normalized vehicles, fleet reports and alerts from a GPSwox server',
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins if config is not None else DEFAULT_CORS_ORIGINS,
        allow_methods=['GET', 'POST', 'OPTIONS'],
        allow_headers=CORS_ALLOW_HEADERS,
    )

    async def respond(
        fetch: Callable[[TrackingService], Awaitable[BaseModel]],
        log_message: str,
        fallback_error: str,
    ) -> JSONResponse:
        """Run one service call and wrap its result or failure in an envelope."""
        if service is None:
            return _error_response(config_error or 'GPSwox credentials not configured')

        try:
            return _json(await fetch(service))
        except Exception as error:
            logger.exception(log_message)
            return _error_response(str(error) or fallback_error)

    @app.api_route('/gpswox', methods=['GET', 'POST'])
    async def vehicles() -> JSONResponse:
        return await respond(
            lambda active: active.fetch_vehicles(),
            'GPSwox API error',
            'Failed to fetch vehicle data',
        )

    @app.api_route('/gpswox-reports', methods=['GET', 'POST'])
    async def reports(request: Request) -> JSONResponse:
        if service is None:
            return _error_response(config_error or 'GPSwox credentials not configured')

        try:
            report_request = ReportRequest.model_validate(await _report_parameters(request))
        except ValidationError as error:
            return _error_response(_validation_message(error))

        return await respond(
            lambda active: active.fetch_reports(report_request),
            'GPSwox reports error',
            'Failed to build reports',
        )

    @app.api_route('/gpswox-alerts', methods=['GET', 'POST'])
    async def alerts() -> JSONResponse:
        return await respond(
            lambda active: active.fetch_alerts(),
            'GPSwox alerts error',
            'Failed to fetch alerts',
        )

    @app.api_route('/gpswox-geofences', methods=['GET', 'POST'])
    async def geofences() -> JSONResponse:
        return await respond(
            lambda active: active.fetch_geofences(),
            'GPSwox geofences error',
            'Failed to fetch geofences',
        )

    @app.api_route('/gpswox-map', methods=['GET', 'POST'])
    async def map_url() -> JSONResponse:
        return await respond(
            lambda active: active.fetch_map_url(),
            'GPSwox map error',
            'Failed to build map URL',
        )

    @app.get('/health')
    async def health() -> dict[str, str]:
        return {'status': 'ok'}

    return app


def main() -> None:
    """Console entry point: load configuration and serve with uvicorn."""
    parser = argparse.ArgumentParser(description='Serve the GPSwox tracking hub.')
    parser.add_argument('--config', type=Path, default=None, help='YAML configuration file')
    parser.add_argument('--host', default=None, help='Bind address (overrides config)')
    parser.add_argument('--port', type=int, default=None, help='Bind port (overrides config)')
    arguments = parser.parse_args()

    config: TrackingConfig = load_config(arguments.config)
    setup_logger(config=config.logging)

    uvicorn.run(
        create_app(config=config),
        host=arguments.host or config.server.host,
        port=arguments.port or config.server.port,
        log_config=None,
    )


if __name__ == '__main__':
    main()
