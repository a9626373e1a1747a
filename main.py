import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

import blogs
import cart
import content
import dashboard
import orders
import payments
import products
import users
import wishlist
from config import Settings, load_settings, setup_logging
from database import Database
from errors import register_error_handlers
from storage import BlobStore

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    storage: Optional[BlobStore] = None,
) -> FastAPI:
    settings = settings or load_settings()
    setup_logging(settings.log_level)
    database = database or Database(url=settings.database_url, name=settings.database_name)
    storage = storage or BlobStore(settings.uploads_dir, settings.public_base_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.database.connect()
        yield
        app.state.database.disconnect()

    app = FastAPI(title="Gymwear Backend", lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database
    app.state.storage = storage

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    app.include_router(users.router)
    app.include_router(products.router)
    app.include_router(products.public_router)
    app.include_router(cart.router)
    app.include_router(wishlist.router)
    app.include_router(orders.router)
    app.include_router(payments.router)
    app.include_router(dashboard.router)
    app.include_router(blogs.router)
    app.include_router(content.router)
    app.mount("/uploads", StaticFiles(directory=storage.root), name="uploads")

    # ----------------------- Health -----------------------
    @app.get("/")
    def root():
        return {"message": "Gymwear API running"}

    @app.get("/test")
    def test_database(request: Request):
        db = request.app.state.database
        response = {
            "backend": "✅ Running",
            "database": "❌ Not Available",
            "database_url": "✅ Set" if settings.database_url else "❌ Not Set",
            "database_name": "✅ Set" if settings.database_name else "❌ Not Set",
            "stripe": "✅ Configured" if settings.stripe_secret_key else "❌ Not Configured",
            "connection_status": "Not Connected",
            "collections": [],
        }
        if db.health_check():
            response["database"] = "✅ Connected & Working"
            response["connection_status"] = "Connected"
            response["collections"] = db.list_collection_names()[:10]
        return response

    @app.get("/health")
    def health(request: Request):
        healthy = request.app.state.database.health_check()
        body = {"status": "ok" if healthy else "unavailable", "database": healthy}
        return JSONResponse(status_code=200 if healthy else 503, content=body)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
