"""Main application entry point for the persona chat relay."""

from fastapi import FastAPI, Request
from fastapi import HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from persona_chat.core.config import settings
from persona_chat.core.logger import setup_logger
from persona_chat.relay.routes import router

logger = setup_logger("persona_chat.main", settings.LOG_LEVEL)

app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
)
app.include_router(router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Flat {"error": "..."} envelopes, same shape the relay returns
@app.exception_handler(HTTPException)
async def http_exception_handler(
    request: Request, exc: HTTPException
):  # pylint: disable=unused-argument
    """Handle HTTP exceptions with the relay's error envelope."""
    detail = exc.detail
    if isinstance(detail, dict) and "error" in detail:
        content = detail
    else:
        content = {"error": str(detail)}
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def unhandled_exception_handler(
    request: Request, exc: Exception
):  # pylint: disable=unused-argument
    """Handle unhandled exceptions."""
    logger.exception("Unhandled server error: %s", exc)
    return JSONResponse(status_code=500, content={"error": str(exc)})


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8080, log_level=settings.LOG_LEVEL.lower())
