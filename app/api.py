"""HTTP route definitions for the service."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response, status

from app.errors import NO_CACHE_HEADERS, ApiError
from app.schemas import ErrorResponse, SensorUpdateRequest, SessionResponse
from services.sensors import InvalidSensorValue, SensorStoreError, UnknownSensor
from services.server import SpaceapiServer, build_default_server
from services.sessions import (
    MalformedSignature,
    SessionError,
    SessionStoreError,
    parse_signature,
)

logger = logging.getLogger(__name__)

router = APIRouter()

_ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


def get_server() -> SpaceapiServer:
    return build_default_server()


@router.get(
    "/",
    summary="Current status document.",
    response_class=Response,
    responses={200: {"content": {"application/json": {}}}},
)
def read_status(server: SpaceapiServer = Depends(get_server)) -> Response:
    body = server.assembler.build()
    return Response(content=body, media_type="application/json", headers=NO_CACHE_HEADERS)


@router.post(
    "/sensors/{sensor}/sessions",
    status_code=status.HTTP_201_CREATED,
    response_model=SessionResponse,
    responses=_ERROR_RESPONSES,
    summary="Open a single-use session authorizing one update of a sensor.",
)
def create_session(
    sensor: str,
    response: Response,
    server: SpaceapiServer = Depends(get_server),
) -> SessionResponse:
    try:
        token = server.sessions.create_session(sensor)
    except UnknownSensor as exc:
        raise ApiError(status.HTTP_400_BAD_REQUEST, str(exc)) from exc
    except SessionStoreError as exc:
        logger.error("Creating update session failed", extra={"sensor": sensor}, exc_info=exc)
        raise ApiError(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Creating session in datastore failed"
        ) from exc
    response.headers.update(NO_CACHE_HEADERS)
    return SessionResponse(session_id=token.session_id, secret=token.secret)


@router.put(
    "/sensors/{sensor}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=_ERROR_RESPONSES,
    summary="Update a sensor value with a signed session.",
)
@router.put("/sensors/{sensor}/", include_in_schema=False, status_code=status.HTTP_204_NO_CONTENT)
def update_sensor(
    sensor: str,
    payload: SensorUpdateRequest,
    server: SpaceapiServer = Depends(get_server),
) -> Response:
    try:
        # Input checks first: nothing is consumed or written for a bad request.
        server.sensors.validate(sensor, payload.value)
        parse_signature(payload.signature)

        server.sessions.verify_and_consume(
            payload.session_id, payload.signature, sensor, payload.value
        )
        server.sensors.update(sensor, payload.value)
    except UnknownSensor as exc:
        raise ApiError(status.HTTP_400_BAD_REQUEST, str(exc)) from exc
    except InvalidSensorValue as exc:
        raise ApiError(status.HTTP_400_BAD_REQUEST, f"Invalid value: {exc}") from exc
    except MalformedSignature as exc:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "Malformed signature") from exc
    except (SessionStoreError, SensorStoreError) as exc:
        logger.error("Updating sensor value failed", extra={"sensor": sensor}, exc_info=exc)
        raise ApiError(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Updating values in datastore failed"
        ) from exc
    except SessionError as exc:
        # Not found, expired and mismatch share one answer.
        logger.warning(
            "Sensor update rejected",
            extra={"sensor": sensor, "reason": type(exc).__name__},
        )
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Invalid or expired session") from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=NO_CACHE_HEADERS)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
