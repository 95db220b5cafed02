"""
REST and WebSocket front end for the CEC controller.

Both transports are thin: each request maps to exactly one controller
operation and the ``CecResult`` is sent back as a JSON envelope. The app's
lifespan holds a controller session, so the adapter is registered before the
first request is served and unregistered before the server exits.
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import uvicorn
from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .cec_types import CecResult, FailureKind, VolumeDirection
from .constants import DEFAULT_HTTP_HOST, DEFAULT_HTTP_PORT, WEBSOCKET_PATH
from .controller import CecController, parse_mute_value

_LOGGER = logging.getLogger(__name__)


def _invalid(message: str) -> CecResult:
    return CecResult.failed(FailureKind.INVALID_ARGUMENT, message)


def status_code_for(result: CecResult) -> int:
    """HTTP status for a controller result."""
    if result.succeeded:
        return 200
    if result.failure is FailureKind.INVALID_ARGUMENT:
        return 400
    return 500


def parse_integer(value: Any) -> Optional[int]:
    """
    Read a whole number sent by a client.

    Integers and decimal strings are accepted, as are floats with no
    fractional part. Anything else, including 30.9 or "30.9", gives None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


async def volume_relative(controller: CecController, device_id: Any, offset: Any) -> CecResult:
    """Positive offsets pulse up, others pulse down, once per unit of offset."""
    value = parse_integer(offset)
    if value is None:
        return _invalid(f"Volume offset must be an integer, got {offset!r}")
    return await controller.adjust_volume_relative(
        device_id, VolumeDirection.from_offset(value), steps=max(abs(value), 1)
    )


async def volume_absolute(controller: CecController, device_id: Any, volume: Any) -> CecResult:
    value = parse_integer(volume)
    if value is None:
        return _invalid(f"Volume must be an integer, got {volume!r}")
    return await controller.set_volume_absolute(device_id, value)


async def mute(controller: CecController, device_id: Any, value: Any) -> CecResult:
    muted = parse_mute_value(value)
    if muted is None:
        return _invalid(f"Mute must be one of 1/0, true/false or on/off, got {value!r}")
    return await controller.set_mute(device_id, muted)


async def dispatch_message(controller: CecController, data: str) -> Dict[str, Any]:
    """
    Handle one WebSocket message.

    Messages look like ``{"command": "set-mute", "params": {"logicalDeviceId": 5, "mute": 1}}``.

    Args:
        controller: Controller to run the command on
        data: Raw message text

    Returns:
        Dict[str, Any]: Result envelope, tagged with the command name
    """
    try:
        message = json.loads(data)
        command = message["command"]
        params = message.get("params") or {}
        if not isinstance(params, dict):
            raise TypeError("params must be an object")
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        return {"error": True, "message": f"Failed to parse data: {e}"}

    device_id = params.get("logicalDeviceId")
    if device_id is None:
        device_id = ""

    if command == "get-cec-version":
        result = await controller.get_cec_version(device_id)
    elif command == "get-audio-status":
        result = await controller.get_audio_status(device_id)
    elif command == "set-volume-relative":
        result = await volume_relative(controller, device_id, params.get("volume"))
    elif command == "set-volume-absolute":
        result = await volume_absolute(controller, device_id, params.get("volume"))
    elif command == "set-mute":
        result = await mute(controller, device_id, params.get("mute"))
    elif command == "set-active-source":
        result = await controller.set_active_source(params.get("address", ""))
    elif command == "set-image-view-on":
        result = await controller.set_image_view_on(device_id)
    elif command == "set-standby":
        result = await controller.set_standby(device_id)
    elif command == "user-control-pressed":
        result = await controller.send_user_control(device_id, params.get("control", ""))
    else:
        return {"command": command, "error": True, "message": f"Unknown command: {command}"}

    reply = result.to_dict()
    reply["command"] = command
    return reply


def create_app(controller: CecController) -> FastAPI:
    """
    Build the FastAPI application around a controller.

    Args:
        controller: Controller that owns the CEC bus

    Returns:
        FastAPI: Application with the REST routes and the WebSocket endpoint
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        async with controller.session():
            _LOGGER.info("CEC adapter ready, accepting requests")
            yield
        _LOGGER.info("CEC adapter released")

    app = FastAPI(title="pycecctl", lifespan=lifespan)
    app.state.controller = controller

    def render(result: CecResult) -> JSONResponse:
        return JSONResponse(result.to_dict(), status_code=status_code_for(result))

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = "Unknown endpoint." if exc.status_code == 404 else str(exc.detail)
        return JSONResponse({"error": True, "message": message}, status_code=exc.status_code)

    @app.get("/get-cec-version/{device_id}")
    async def get_cec_version(device_id: str) -> JSONResponse:
        return render(await controller.get_cec_version(device_id))

    @app.get("/give-audio-status/{device_id}")
    async def give_audio_status(device_id: str) -> JSONResponse:
        return render(await controller.get_audio_status(device_id))

    @app.get("/set-volume-relative/{device_id}/{volume}")
    async def set_volume_relative(device_id: str, volume: str) -> JSONResponse:
        return render(await volume_relative(controller, device_id, volume))

    @app.get("/set-volume-absolute/{device_id}/{volume}")
    async def set_volume_absolute(device_id: str, volume: str) -> JSONResponse:
        return render(await volume_absolute(controller, device_id, volume))

    @app.get("/set-mute/{device_id}/{value}")
    async def set_mute(device_id: str, value: str) -> JSONResponse:
        return render(await mute(controller, device_id, value))

    @app.get("/set-active-source/{address}")
    async def set_active_source(address: str) -> JSONResponse:
        return render(await controller.set_active_source(address))

    @app.get("/image-view-on/{device_id}")
    async def image_view_on(device_id: str) -> JSONResponse:
        return render(await controller.set_image_view_on(device_id))

    @app.get("/standby/{device_id}")
    async def standby(device_id: str) -> JSONResponse:
        return render(await controller.set_standby(device_id))

    @app.get("/user-control-pressed/{device_id}/{control}")
    async def user_control_pressed(device_id: str, control: str) -> JSONResponse:
        return render(await controller.send_user_control(device_id, control))

    @app.websocket(WEBSOCKET_PATH)
    async def socket(ws: WebSocket) -> None:
        await ws.accept()
        try:
            while True:
                data = await ws.receive_text()
                await ws.send_json(await dispatch_message(controller, data))
        except WebSocketDisconnect:
            _LOGGER.debug("WebSocket client disconnected")

    return app


def serve(controller: CecController, host: str = DEFAULT_HTTP_HOST, port: int = DEFAULT_HTTP_PORT) -> None:
    """Run the HTTP server until it receives SIGINT or SIGTERM."""
    _LOGGER.info("Starting server on %s:%d", host, port)
    uvicorn.run(create_app(controller), host=host, port=port)
