from fastapi import FastAPI, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import Any, Optional
import logging
import os

from config.settings import IngestSettings
from observability.logging import setup_logging
from pipelines.errors import IngestError
from pipelines.ingest import IngestionService

logger = logging.getLogger(__name__)

app = FastAPI(title="SiteFoundry Ingestion API", version="0.1.0")

# Created on first use so importing the app needs no credentials
_service: Optional[IngestionService] = None


def get_service() -> IngestionService:
    global _service
    if _service is None:
        settings = IngestSettings.from_env()
        setup_logging(level=settings.log_level, use_json=settings.log_json)
        _service = IngestionService(settings)
    return _service


def ok(data: dict) -> dict:
    return {"ok": True, **data}


@app.exception_handler(IngestError)
async def ingest_error_handler(request: Request, exc: IngestError):
    if exc.status_code >= 500:
        logger.error(f"[{request.url.path}] {exc.code}: {exc.message}")
    else:
        logger.info(f"[{request.url.path}] rejected ({exc.code}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"[{request.url.path}] unhandled error: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": {"code": "server_error", "message": "Request failed. Please try again."}},
    )


class ScrapeRequest(BaseModel):
    url: Any = None


class IngestOneRequest(BaseModel):
    url: Any = None
    text: Any = None
    title: Any = ""
    namespace: Optional[str] = None


class IngestChunksRequest(BaseModel):
    url: Any = None
    title: Any = ""
    namespace: Optional[str] = None


class CrawlRequest(BaseModel):
    # Loosely typed on purpose: defaults and clamping happen in CrawlOptions.build
    start_url: Any = None
    namespace: Optional[str] = None
    path_prefix: Any = None
    max_depth: Any = None
    max_pages: Any = None
    delay_ms: Any = None
    title: Any = None


class QueryRequest(BaseModel):
    question: Any = None
    top_k: Any = None
    namespace: Optional[str] = None


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/scrape")
async def scrape(req: ScrapeRequest, service: IngestionService = Depends(get_service)):
    """Scrape a page and return a short preview of its text."""
    preview = await service.scrape_preview(req.url)
    return ok(preview.to_dict())


@app.post("/ingest-one")
async def ingest_one(req: IngestOneRequest, service: IngestionService = Depends(get_service)):
    """Store caller-provided text for a URL as one vector."""
    result = await service.ingest_text(req.url, req.text, title=req.title, namespace=req.namespace)
    return ok(result.to_dict())


@app.post("/ingest-url-chunks")
async def ingest_url_chunks(req: IngestChunksRequest, service: IngestionService = Depends(get_service)):
    """Scrape, chunk, embed and upsert one page."""
    result = await service.ingest_url_chunks(req.url, title=req.title, namespace=req.namespace)
    return ok(result.to_dict())


@app.post("/ingest-crawl")
async def ingest_crawl(req: CrawlRequest, service: IngestionService = Depends(get_service)):
    """Crawl a site breadth-first and index every readable page."""
    result = await service.crawl(
        start_url=req.start_url,
        namespace=req.namespace,
        path_prefix=req.path_prefix,
        max_depth=req.max_depth,
        max_pages=req.max_pages,
        delay_ms=req.delay_ms,
        title=req.title,
    )
    return ok(result.to_dict())


@app.post("/query")
async def query(req: QueryRequest, service: IngestionService = Depends(get_service)):
    """Return the stored snippets closest to a question."""
    result = await service.query(req.question, top_k=req.top_k, namespace=req.namespace)
    return ok(result.to_dict())


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=os.getenv("API_HOST", "0.0.0.0"), port=int(os.getenv("API_PORT", "8080")))
