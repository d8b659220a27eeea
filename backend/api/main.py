# backend/api/main.py
from __future__ import annotations

import os
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import RedirectResponse


log = logging.getLogger("uvicorn.error")

# --- Load .env early so os.getenv works everywhere ---
from dotenv import load_dotenv
load_dotenv()  # loads backend/api/.env if present

# Global API prefix; the dashboard talks to /api/...
_API_PREFIX = os.getenv("API_PREFIX", "/api").strip()
if _API_PREFIX:
    if not _API_PREFIX.startswith("/"):
        _API_PREFIX = "/" + _API_PREFIX
    # avoid trailing slash so paths look like /api/incidents (not //incidents)
    _API_PREFIX = _API_PREFIX.rstrip("/")

app = FastAPI(
    title="ETraffic API",
    version="1.0.0",
    description="Backend for ETraffic (incident intake, coins, admin, live feed).",
)

# ---------------- CORS (Next.js dashboard) ----------------
# Prefer explicit origins via CORS_ORIGINS="https://etraffic.example.com,https://staging.example.com"
# For local dev we allow any localhost/127.0.0.1 on any port.
cors_env = os.getenv("CORS_ORIGINS")
cors_kwargs = dict(allow_methods=["*"], allow_headers=["*"])

if cors_env:
    allow_origins = [o.strip() for o in cors_env.split(",") if o.strip()]
    cors_kwargs.update(
        allow_origins=allow_origins,
        allow_credentials=True,
    )
else:
    cors_kwargs.update(
        allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
        allow_credentials=True,
    )

app.add_middleware(CORSMiddleware, **cors_kwargs)
log.info("CORS configured: %s", cors_kwargs)

# ---------------- Routers ----------------
# Each router carries its own paths (/incidents, /reports, /coins, /admin, /me);
# _API_PREFIX is prepended to all of them. The websocket lives at the root.
from routes.incident import router as incident_router
from routes.report import router as report_router
from routes.coins import router as coins_router
from routes.admin import router as admin_router
from routes.live import router as live_router
from routes.user import router as user_router

app.include_router(incident_router, prefix=_API_PREFIX)
app.include_router(report_router, prefix=_API_PREFIX)
app.include_router(coins_router, prefix=_API_PREFIX)
app.include_router(admin_router, prefix=_API_PREFIX)
app.include_router(user_router, prefix=_API_PREFIX)
app.include_router(live_router)

# ---------------- Meta/utility ----------------
@app.get("/", include_in_schema=False)
def root() -> RedirectResponse:
    # Visiting the root opens Swagger UI
    return RedirectResponse(url="/docs")

@app.get(f"{_API_PREFIX or ''}/health", tags=["meta"])
def health():
    return {"status": "ok", "prefix": _API_PREFIX or ""}

# ---------------- Local dev entrypoint ----------------
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
