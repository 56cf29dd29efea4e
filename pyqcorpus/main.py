from contextlib import asynccontextmanager

from fastapi import FastAPI

from pyqcorpus.config import load_env_file
from pyqcorpus.db.neo4j_connector import close_driver
from pyqcorpus.api.routers.pyq import router as pyq_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Ensure resources (like the Neo4j driver) are closed on shutdown."""
    load_env_file()
    try:
        yield
    finally:
        close_driver()


app = FastAPI(title="PYQ Corpus", version="0.1", lifespan=lifespan)

app.include_router(pyq_router)
