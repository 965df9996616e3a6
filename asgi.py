"""
asgi.py -- Application assembly for Mailgate.

Joins the API app with the static passthrough for stored attachments.
/uploads/<storage name> serves blobs as-is; there is no logic behind it.

Run with:  uvicorn asgi:app --reload
"""

from fastapi.staticfiles import StaticFiles

from api.main import app
from core.config import get_settings

_upload_dir = get_settings().upload_dir
# StaticFiles checks the directory at construction; the lifespan would create
# it too late for that check.
_upload_dir.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=_upload_dir), name="uploads")
