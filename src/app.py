"""Production lifecycle FastAPI application.

Processes commands synchronously over HTTP. Every request runs inside the
production domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from production.domain import production
from production.utils.logging import add_context, clear_context, configure_logging

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# PROTEAN_ENV selects the domain.toml overlay ("test", "production").
configure_logging()
production.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Production Lifecycle API",
    description="Custom-service production orders with proofing, escrow and refunds",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the production domain context and bind the actor into log lines."""
    actor_id = request.headers.get("x-actor-id")
    if actor_id:
        add_context(actor_id=actor_id)
    try:
        with production.domain_context():
            return await call_next(request)
    finally:
        clear_context()


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from production.api.routes import order_router, provider_router, refund_router  # noqa: E402

app.include_router(order_router)
app.include_router(refund_router)
app.include_router(provider_router)


@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": production.name})
