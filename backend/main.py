"""
YouTube/TikTok to streaming catalog converter backend

This FastAPI application exposes a single conversion endpoint
(``POST /api/convert``) that accepts a YouTube or TikTok link, reads the
video's title through the platform's oEmbed endpoint, cleans it into a search
query and looks the track up on Spotify and Apple Music (iTunes). The response
carries the best link per service, a SoundCloud search link and a 0-100
confidence score. When the confidence is low, search-page links are returned
instead of direct track links.

Request body::

    {"youtubeUrl": "https://www.youtube.com/watch?v=..."}

The field keeps its historical name for TikTok links too.

Configuration is read from the environment (and an optional ``.env`` file),
see :mod:`config`.

To run the development server locally:

    uvicorn main:app --reload --port 5000
"""

from __future__ import annotations

import logging
from typing import Optional

import anyio
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from config import configure_logging, load_settings
from converter import build_converter
from errors import UnsupportedSource, ValidationError

logger = logging.getLogger(__name__)

SERVICE_NAME = "yt-to-spotify"

settings = load_settings()
configure_logging(settings.log_level)

app = FastAPI(title="YT to Spotify Converter")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
)

app.state.converter = build_converter(settings)


class ConvertRequest(BaseModel):
    youtubeUrl: Optional[str] = None


@app.exception_handler(RequestValidationError)
async def invalid_body_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "Request body must be a JSON object with a 'youtubeUrl' string"})


@app.get("/")
async def root():
    return {"message": "YT to Spotify backend is running."}


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": SERVICE_NAME}


@app.post("/api/convert")
async def convert(body: ConvertRequest, request: Request) -> JSONResponse:
    """Convert a media link into Spotify, Apple Music and SoundCloud links."""
    if not body.youtubeUrl or not body.youtubeUrl.strip():
        return JSONResponse(status_code=400, content={"error": "Missing 'youtubeUrl' in request body"})

    converter = request.app.state.converter
    try:
        result = await anyio.to_thread.run_sync(converter.convert, body.youtubeUrl)
    except (ValidationError, UnsupportedSource) as exc:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})
    except Exception:
        logger.exception("[convert] failed for %s", body.youtubeUrl)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
    return JSONResponse(content=result.to_dict())


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)
