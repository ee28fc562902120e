# sdk/server.py
"""
Uvicorn entry point for the recording control API:
    uvicorn sdk.server:app
The real app lives in apps.ui_api.main; CHANREC_UI_MODULE points elsewhere if needed.
"""

from importlib import import_module
import os

UI_API_MODULE = os.environ.get("CHANREC_UI_MODULE", "apps.ui_api.main")

try:
    app = getattr(import_module(UI_API_MODULE), "app")
except (ImportError, AttributeError) as exc:
    raise RuntimeError(
        f"Failed to import FastAPI app from '{UI_API_MODULE}'. "
        "The module must export `app` (FastAPI instance)."
    ) from exc
