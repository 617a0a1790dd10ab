"""FastAPI entrypoint serving resolved chain versions keyed by pretty name."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from chainparse.config import get_settings, validate_settings
from chainparse.fetcher import retrieve_chain_data
from chainparse.logging import configure_logging
from chainparse.registry.types import ChainSchema

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    validate_settings(settings)
    configure_logging(settings.log_level)
    logger.info("Serving chain data from %s", settings.registry_zip_url)
    yield


app = FastAPI(title="chainparse", lifespan=lifespan)


def by_pretty_name(chains: list[ChainSchema]) -> dict[str, dict[str, object]]:
    return {chain.pretty_name: chain.to_dict() for chain in chains}


@app.get("/healthz")
async def healthz() -> dict[str, bool]:
    return {"ok": True}


@app.get("/")
async def fetch_data() -> JSONResponse:
    try:
        chains = await retrieve_chain_data()
    except Exception as exc:
        logger.exception("Failed to retrieve all chain schema")
        return JSONResponse(status_code=500, content={"error": str(exc)})
    return JSONResponse(content=by_pretty_name(chains))
