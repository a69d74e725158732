"""FastAPI application exposing the public JSON API."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from ..config import CONFIG, reload_config
from .routes import jobs, keys, me, profiles, scrape, state


load_dotenv()
reload_config()

app = FastAPI(
    title=CONFIG.api_title,
    version=CONFIG.api_version,
    description=(
        "JSON API for managing LinkedIn scraping jobs. "
        "Authenticate using a Supabase JWT in the Authorization header."
    ),
)


def _configure_cors(api_app: FastAPI) -> None:
    origins = list(CONFIG.api_cors_origins)
    if not origins:
        return

    api_app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


_configure_cors(app)


@app.get("/health", tags=["health"])  # pragma: no cover - trivial fast check
def healthcheck() -> dict[str, str]:
    """Simple health endpoint for load balancers and smoke tests."""

    return {"status": "ok"}


app.include_router(me.router, prefix="/v1", tags=["profile"])
app.include_router(keys.router, prefix="/v1", tags=["keys"])
app.include_router(scrape.router, prefix="/v1", tags=["scrape"])
app.include_router(profiles.router, prefix="/v1", tags=["profiles"])
app.include_router(jobs.router, prefix="/v1", tags=["jobs"])
app.include_router(state.router, prefix="/v1", tags=["state"])
