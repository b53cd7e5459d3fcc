"""
server.py - HTTP boundary for the password generator

Exposes POST /api/password and serves the browser client from the static directory.
Run with `securepass serve` or `uvicorn securepass.server:app`.
"""
import json
import logging
import os
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse, Response

from . import __version__
from .config import Settings, load_settings
from .generator import ConfigurationError, InternalInvariantError, generate, normalize_config

logger = logging.getLogger(__name__)

API_PATH = "/api/password"
INDEX_DOCUMENT = "index.html"

# Generated passwords must not end up in shared caches
NO_STORE = {"Cache-Control": "no-store"}


class RequestBodyTooLarge(Exception):
    """The request body went over the configured ceiling"""


async def read_limited_body(request: Request, limit: int) -> bytes:
    """
    Read the request body, stopping as soon as it passes `limit` bytes.

    A declared Content-Length above the limit is refused before reading anything.
    """
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        raise RequestBodyTooLarge(declared)

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise RequestBodyTooLarge(len(body))
    return bytes(body)


def parse_payload(body: bytes) -> Dict[str, Any]:
    """
    Decode a JSON request body into a key/value mapping.

    Empty bodies and JSON values that are not objects yield an empty mapping.

    Raises:
        ValueError: If the body is not valid JSON
    """
    if not body.strip():
        return {}
    payload = json.loads(body)
    return payload if isinstance(payload, dict) else {}


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code, headers=NO_STORE)


def resolve_static_path(root: str, request_path: str) -> Optional[str]:
    """
    Map a URL path onto a file under `root`.

    Directories map to their index document and unknown paths fall back to the
    root index. Returns None when the path escapes `root` or cannot name a file.
    """
    if "\x00" in request_path:
        return None

    root = os.path.realpath(root)
    target = os.path.realpath(os.path.join(root, request_path.lstrip("/\\")))

    if target != root and not target.startswith(root + os.sep):
        return None

    if os.path.isdir(target):
        return os.path.join(target, INDEX_DOCUMENT)
    if os.path.isfile(target):
        return target
    return os.path.join(root, INDEX_DOCUMENT)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application for the given settings."""
    settings = settings or load_settings()

    app = FastAPI(
        title="SecurePass",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.post(API_PATH)
    async def create_password(request: Request):
        try:
            body = await read_limited_body(request, settings.max_body_bytes)
        except RequestBodyTooLarge as e:
            logger.warning("Rejected request body over %d bytes (%s)", settings.max_body_bytes, e)
            return error_response("Request body too large.", 413)

        try:
            payload = parse_payload(body)
        except ValueError:
            return error_response("Request body must be valid JSON.", 400)

        config = normalize_config(payload)
        try:
            password = generate(config)
        except ConfigurationError as e:
            logger.info("Rejected generation request: %s", e)
            return error_response(str(e), 400)
        except InternalInvariantError:
            logger.exception("Password generation failed for length=%d", config.length)
            return error_response("Unable to generate password.", 500)

        logger.debug(
            "Generated password: length=%d classes=%d exclude_similar=%s",
            config.length, config.selected_classes, config.exclude_similar,
        )
        return JSONResponse({"password": password}, headers=NO_STORE)

    @app.options(API_PATH)
    async def password_options():
        # Preflight requests are answered by the CORS middleware before this
        return Response(status_code=204)

    @app.api_route(API_PATH, methods=["GET", "HEAD", "PUT", "PATCH", "DELETE"])
    async def password_method_not_allowed():
        return JSONResponse(
            {"error": "Method not allowed."},
            status_code=405,
            headers={"Allow": "POST, OPTIONS"},
        )

    @app.api_route("/{path:path}", methods=["GET", "HEAD"])
    async def static_asset(path: str):
        file_path = resolve_static_path(settings.static_dir, path)
        if file_path is None:
            logger.warning("Blocked static path: %r", path)
            return PlainTextResponse("403 Forbidden", status_code=403)
        if not os.path.isfile(file_path):
            return PlainTextResponse("404 Not Found", status_code=404)
        return FileResponse(file_path)

    return app


app = create_app()
