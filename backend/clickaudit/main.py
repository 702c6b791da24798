import asyncio
import logging
import os
import time
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from clickaudit.config import get_settings
from clickaudit.errors import ClickAuditError, InvalidUrlError, NavigationError
from clickaudit.models import ExtractionResult, SvgInventory
from clickaudit.scraper import extract_interactive_elements, extract_page_svgs

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

_STARTED = time.monotonic()

app = FastAPI(title="Click Audit API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class WebsiteAuditRequest(BaseModel):
    url: str
    handle_cookies: bool = False
    cookie_selector: str = ""  # custom consent button text, tried first


class ExtractSvgsRequest(BaseModel):
    url: str


class WebsiteAuditResponse(BaseModel):
    success: bool
    data: ExtractionResult


class ExtractSvgsResponse(BaseModel):
    success: bool
    data: SvgInventory


def _to_http_error(e: Exception, what: str) -> HTTPException:
    if isinstance(e, InvalidUrlError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, asyncio.TimeoutError):
        return HTTPException(status_code=504, detail=f"{what} timed out. Try a simpler page.")
    if isinstance(e, NavigationError):
        return HTTPException(status_code=502, detail=str(e))
    if isinstance(e, ClickAuditError):
        return HTTPException(status_code=500, detail=str(e))
    return HTTPException(status_code=500, detail=f"{what} failed: {str(e)}")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.get("/")
def root():
    return {"message": "Click audit backend is running"}


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/api/status")
async def status():
    return {
        "status": "success",
        "message": "Server is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/api/health")
async def api_health():
    return {"status": "healthy", "uptime": round(time.monotonic() - _STARTED, 3)}


@app.post("/api/test-website", response_model=WebsiteAuditResponse)
async def audit_website(request: WebsiteAuditRequest):
    """Inventory every link and button on the requested page."""
    settings = get_settings()
    try:
        result = await asyncio.wait_for(
            extract_interactive_elements(
                request.url,
                handle_cookies=request.handle_cookies,
                cookie_text=request.cookie_selector,
                settings=settings,
            ),
            timeout=settings.request_timeout,
        )
    except Exception as e:
        logger.error(f"[api] test-website failed for {request.url}: {e}")
        raise _to_http_error(e, "Extraction")
    return {"success": True, "data": result}


@app.post("/api/extract-svgs", response_model=ExtractSvgsResponse)
async def extract_svgs(request: ExtractSvgsRequest):
    settings = get_settings()
    try:
        inventory = await asyncio.wait_for(
            extract_page_svgs(request.url, settings=settings),
            timeout=settings.request_timeout,
        )
    except Exception as e:
        logger.error(f"[api] extract-svgs failed for {request.url}: {e}")
        raise _to_http_error(e, "SVG extraction")
    return {"success": True, "data": inventory}
