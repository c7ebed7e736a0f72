"""FastAPI application instance for the cscompare API."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..logging_utils import configure_logging
from ..serialize import DeterministicSerializer
from . import __version__
from .routes import router as api_router

configure_logging()

app = FastAPI(
    title="cscompare API",
    description="Compare Git change-sets through synthetic merge trees",
    version=__version__,
)

app.include_router(api_router)


@app.get("/", include_in_schema=False)
def root() -> dict:
    return {
        "name": "cscompare API",
        "version": __version__,
        "endpoints": sorted(
            f"{method} {route.path}"
            for route in app.routes
            if getattr(route, "include_in_schema", False)
            for method in sorted(route.methods - {"HEAD"})
        ),
    }


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Uncaught exceptions use the same envelope as the CLI."""
    envelope = DeterministicSerializer().create_error_envelope(
        "INTERNAL_ERROR",
        f"Internal server error: {exc}",
        {"exception_type": type(exc).__name__, "path": request.url.path},
    )
    return JSONResponse(status_code=500, content=envelope)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8000)
