"""
Storefront API

FastAPI application entry point: books, products, categories and users over MongoDB.
"""

import os
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from fastapi.staticfiles import StaticFiles
from loguru import logger
from pymongo import MongoClient

import routes_books
import routes_categories
import routes_products
import routes_users
from auth import require_secret
from config import Settings, get_settings
from errors import setup_exception_handlers
from mailer import configure_mailer
from models_mongo import get_mongo_client, init_collections


# ------------------------------------------------------------
# Application Lifespan
# ------------------------------------------------------------

def setup_logging(settings: Settings) -> None:
    # replaces the default sink, only for the server process
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)


def make_lifespan(settings: Settings, client: MongoClient | None = None):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # refuse to boot without a signing secret
        require_secret(settings)
        os.makedirs(settings.static_dir, exist_ok=True)
        if not configure_mailer(settings):
            logger.info("RESEND_API_KEY is not set, outgoing email is disabled")

        mongo = client
        try:
            if mongo is None:
                mongo = get_mongo_client(settings)
                mongo.admin.command("ping")
            app.state.mongo = mongo
            app.state.db = mongo[settings.mongo_db]
            init_collections(app.state.db)
        except Exception as e:
            logger.error(f"Could not connect to MongoDB at {settings.mongo_url}: {e}")
            raise

        logger.info(f"Connected to MongoDB database '{settings.mongo_db}'")
        yield

        logger.info("Shutting down storefront")
        if client is None:
            mongo.close()

    return lifespan


# ------------------------------------------------------------
# Application Factory
# ------------------------------------------------------------

def create_app(settings: Settings | None = None, client: MongoClient | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings. If None, loads from environment.
        client: An already open MongoDB client. If None, one is opened at startup.
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(title="Storefront", version="1.0.0", lifespan=make_lifespan(settings, client))
    app.dependency_overrides[get_settings] = lambda: settings

    setup_exception_handlers(app)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(routes_books.router)
    app.include_router(routes_products.router)
    app.include_router(routes_categories.router)
    app.include_router(routes_users.router)

    # uploaded images and other public assets, the directory is created at startup
    app.mount("/static", StaticFiles(directory=settings.static_dir, check_dir=False), name="static")

    @app.get("/new", response_class=PlainTextResponse)
    async def new(request: Request):
        logger.debug(f"GET /new from {request.client.host if request.client else 'unknown'}")
        return "success"

    return app


app = create_app()


if __name__ == "__main__":
    setup_logging(get_settings())
    uvicorn.run("app:app", host="0.0.0.0", port=get_settings().port)
