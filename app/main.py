"""
FastAPI URL Shortener Service

HTTP front end for the short-link core. Clients submit long URLs and receive
short codes; visiting a short code redirects to the registered URL.

Key Features:
    - Idempotent shortening: the same normalized URL always gets the same code,
      including under concurrent submissions
    - Time-ordered Snowflake IDs rendered as Base62 short codes
    - Pluggable persistent store (Cassandra, Redis, or in-memory)

Error Mapping:
    - Invalid input                         -> 400
    - Unknown short code                    -> 404
    - Clock out of range or regressed, or
      store contradiction                   -> 500 (logged as errors)
    - Store unavailable or timed out        -> 503
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Path, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from core.config import settings
from core.exceptions import (
    ClockMovedBackwardsError,
    ClockOutOfRangeError,
    InvalidInputError,
    InvariantViolationError,
    SequenceExhaustedTimeoutError,
    ShortCodeNotFoundError,
)
from database import STORE_ERRORS, build_store
from database.schema import ErrorResponse, ShortenRequest, ShortenResponse
from services.logger import setup_logger
from services.shortener import UrlShortener
from utils.snowflake import SnowflakeIDGenerator

logger = setup_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build the store, the Snowflake generator and the shortener on startup, and
    release store connections on shutdown.

    Raises:
        RuntimeError: If the configured store cannot be reached.
    """
    logger.info(
        "Starting application with %s store (node ID %d)...",
        settings.STORE_BACKEND,
        settings.NODE_ID,
    )

    try:
        store = build_store()
    except RuntimeError as e:
        logger.error("Store initialization failed: %s", e)
        raise

    generator = SnowflakeIDGenerator(
        node_id=settings.NODE_ID,
        epoch=settings.EPOCH,
        max_wait_ms=settings.SEQUENCE_WAIT_TIMEOUT_MS,
    )
    app.state.shortener = UrlShortener(
        store,
        generator,
        base_url=settings.DOMAIN,
        store_timeout=settings.STORE_TIMEOUT,
    )

    yield

    logger.info("Application is shutting down.")
    await store.close()


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_shortener(request: Request) -> UrlShortener:
    return request.app.state.shortener


def _error_response(status_code: int, error: str, message: str) -> JSONResponse:
    body = ErrorResponse(
        error=error,
        message=message,
        timestamp=datetime.now(timezone.utc),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@app.get("/health", summary="Liveness check")
async def health():
    return {"status": "ok"}


@app.post(
    "/api/shorten",
    status_code=status.HTTP_200_OK,
    response_model=ShortenResponse,
    summary="Create a shortened URL",
    description="""
    Return the short code for a URL, creating it on first submission.

    URLs are normalized before registration: surrounding whitespace is removed
    and the scheme and host are lower-cased, while path, query and fragment
    keep their case. Submitting an equivalent URL again, even concurrently,
    returns the code that was registered first.
    """,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid URL"},
        500: {"model": ErrorResponse, "description": "Short code generation failed"},
        503: {"model": ErrorResponse, "description": "Store unavailable"},
    },
)
async def create_url(
    url_data: ShortenRequest,
    shortener: UrlShortener = Depends(get_shortener),
):
    """Create or look up the shortened URL for a single original URL.

    Args:
        url_data (ShortenRequest): The request body containing the URL.
        shortener (UrlShortener): The registration service.

    Returns:
        ShortenResponse | JSONResponse: The short code and URL, or an error body.
    """
    try:
        result = await shortener.shorten(url_data.url)
        return ShortenResponse(short_code=result.short_code, short_url=result.short_url)
    except InvalidInputError as e:
        logger.warning("Invalid argument: %s", e)
        return _error_response(status.HTTP_400_BAD_REQUEST, "Invalid Request", str(e))
    except ClockOutOfRangeError as e:
        logger.error("Short URL generation failed, clock out of range: %s", e)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal Server Error",
            "Short URL generation failed",
        )
    except ClockMovedBackwardsError as e:
        logger.error("Short URL generation failed, clock moved backwards: %s", e)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal Server Error",
            "Short URL generation failed",
        )
    except InvariantViolationError as e:
        logger.error("Store returned contradictory results: %s", e)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal Server Error",
            "Short URL generation failed",
        )
    except SequenceExhaustedTimeoutError as e:
        logger.error("Short URL generation stalled: %s", e)
        return _error_response(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "Service Unavailable",
            "Short URL generation is temporarily unavailable",
        )
    except STORE_ERRORS as e:
        logger.error("Short URL generation failed: %r", e)
        return _error_response(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "Service Unavailable",
            "Store is temporarily unavailable, please retry",
        )


@app.get(
    "/{short_code}",
    summary="Redirect to original URL",
    description="""
    Resolve a short code and redirect to the registered URL with
    HTTP 301 (Moved Permanently). Codes never change target, so clients may
    cache the redirect.
    """,
    responses={
        301: {"description": "Permanent redirect to the original URL"},
        404: {"model": ErrorResponse, "description": "Short code not found"},
        503: {"model": ErrorResponse, "description": "Store unavailable"},
    },
)
async def get_url(
    short_code: str = Path(
        ...,
        description="The Base62 short code of the shortened URL",
        examples=["2bNq8xKa0"],
    ),
    shortener: UrlShortener = Depends(get_shortener),
):
    """Redirect to the original URL for a given short code.

    Args:
        short_code (str): The short code to resolve.
        shortener (UrlShortener): The registration service.

    Returns:
        RedirectResponse: HTTP 301 redirect to the original URL.
    """
    try:
        original_url = await shortener.resolve(short_code)
        return RedirectResponse(url=original_url, status_code=status.HTTP_301_MOVED_PERMANENTLY)
    except (InvalidInputError, ShortCodeNotFoundError) as e:
        logger.info("Short code not found: %s", e)
        return _error_response(
            status.HTTP_404_NOT_FOUND,
            "Not Found",
            f"Short code not found: {short_code}",
        )
    except STORE_ERRORS as e:
        logger.error("Error retrieving original URL: %r", e)
        return _error_response(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "Service Unavailable",
            "Error retrieving original URL",
        )
