"""Warehouse FastAPI application.

Web server that processes warehouse commands synchronously via HTTP. Each
request is wrapped in the warehouse domain context.

Usage:
    uvicorn app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay ("test" in the test suite).
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers
from warehouse.domain import warehouse

warehouse.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Warehouse API",
    description="Inventory ledger and job fulfillment",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

_DOMAIN_PREFIXES = ("/inventory", "/locations", "/jobs", "/activity")


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the warehouse domain context for domain routes."""
    if request.url.path.startswith(_DOMAIN_PREFIXES):
        with warehouse.domain_context():
            response = await call_next(request)
        return response
    # Health check, docs, etc.
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from warehouse.api import activity_router, inventory_router, job_router, location_router  # noqa: E402

app.include_router(inventory_router)
app.include_router(location_router)
app.include_router(job_router)
app.include_router(activity_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": {"name": warehouse.name}})
