"""Browser pages.

The UI is a single static page; `/login` serves the same page so that
`/login?error=...` redirects from the OAuth flow land somewhere that can show
the message.
"""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter
from fastapi.responses import FileResponse

STATIC_DIR = Path(__file__).resolve().parent.parent.parent / "static"
INDEX_FILE = STATIC_DIR / "index.html"

router = APIRouter()


@router.get("/", include_in_schema=False)
async def index() -> FileResponse:
    return FileResponse(INDEX_FILE, media_type="text/html")


@router.get("/login", include_in_schema=False)
async def login_page() -> FileResponse:
    return FileResponse(INDEX_FILE, media_type="text/html")
