"""Storefront FastAPI application.

Serves the shop's order form, the admin order views and actions, and the
admin live order feed. Every request runs inside the storefront domain
context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 3000

Set STOREFRONT_SEED=1 to load the opening catalogue on start-up (handy with
the in-memory database).
"""

import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from storefront.domain import logger, storefront

storefront.init()

if os.getenv("STOREFRONT_SEED", "").lower() in ("1", "true", "yes"):
    from storefront.catalogue.seed import seed_products

    with storefront.domain_context():
        seeded = seed_products()
    logger.info("Opening catalogue loaded", products=len(seeded))

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Storefront API",
    description="Catalogue, order placement and live order feed",
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
    """Push the storefront domain context for each request."""
    with storefront.domain_context():
        response = await call_next(request)
    return response


register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from storefront.api import catalogue_router, feed_router, order_router  # noqa: E402

app.include_router(order_router)
app.include_router(catalogue_router)
app.include_router(feed_router)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": storefront.name})
