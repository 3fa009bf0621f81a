import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import fastapi
import uvicorn

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from auditor.queue import configure_audit_handler, shutdown_queue
from auditor.routes.audits import router as audits_router
from auditor.routes.models import router as models_router
from auditor.routes.repository import router as repository_router
from auditor.services.repository_job import RepositoryAuditProcessor


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    configure_audit_handler(RepositoryAuditProcessor())
    yield
    await shutdown_queue()


app = FastAPI(title="Solidity Auditor", lifespan=lifespan)

app.include_router(repository_router, tags=["repository"])
app.include_router(audits_router, tags=["audits"])
app.include_router(models_router, tags=["models"])


@app.get("/", response_class=PlainTextResponse)
def root() -> str:
    return "pong"


@app.get("/health")
def health() -> dict[str, Any]:
    return {
        "status": "The Solidity Auditor is operational and ready to audit your contracts.",
        "environment": {
            "python version": sys.version,
            "fastapi version": fastapi.__version__,
            "uvicorn version": uvicorn.__version__,
        },
    }
