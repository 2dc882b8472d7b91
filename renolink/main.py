from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from sqlalchemy.exc import OperationalError

from renolink.api.deps import get_page_user
from renolink.api.middleware import RequestLogMiddleware
from renolink.api.v1.auth import dashboard_route
from renolink.api.v1.router import v1_router
from renolink.api.v1.ws import router as ws_router
from renolink.common.enums import UserRole
from renolink.common.exceptions import NotFoundError
from renolink.common.logging import get_logger, setup_logging
from renolink.config import settings
from renolink.db.models.user import User

BASE_DIR = Path(__file__).resolve().parent

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("RenoLink starting (env=%s)", settings.APP_ENV)
    yield


app = FastAPI(
    title="RenoLink API",
    description="Renovation marketplace: homeowners post projects, contractors unlock them with credits",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
origins = settings.ALLOWED_ORIGINS.split(",") if settings.ALLOWED_ORIGINS != "*" else ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLogMiddleware)

# Static files & templates
app.mount("/static", StaticFiles(directory=BASE_DIR / "static"), name="static")
templates = Jinja2Templates(directory=BASE_DIR / "templates")

# API routes
app.include_router(v1_router, prefix="/api/v1")
app.include_router(ws_router, prefix="/api/v1")


@app.exception_handler(OperationalError)
async def store_unavailable_handler(request: Request, exc: OperationalError):
    logger.error("Database unavailable on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Service temporarily unavailable, please retry"})


# --- Page routes ---

DASHBOARD_SECTIONS: dict[str, list[str]] = {
    UserRole.HOMEOWNER.value: ["overview", "projects", "post-project", "bids", "messages"],
    UserRole.CONTRACTOR.value: ["overview", "marketplace", "unlocked", "bids", "messages", "credits"],
    UserRole.ADMIN.value: ["overview", "contractors", "users", "ledger"],
}


@app.get("/", response_class=HTMLResponse)
async def landing_page(request: Request):
    return templates.TemplateResponse(request, "index.html")


@app.get("/login", response_class=HTMLResponse)
async def login_page(request: Request, user: User | None = Depends(get_page_user)):
    if user is not None:
        return RedirectResponse(dashboard_route(user.role), status_code=303)
    return templates.TemplateResponse(request, "login.html")


@app.get("/register", response_class=HTMLResponse)
async def register_page(request: Request, kind: str = "homeowner"):
    if kind not in (UserRole.HOMEOWNER.value, UserRole.CONTRACTOR.value):
        kind = UserRole.HOMEOWNER.value
    return templates.TemplateResponse(request, "register.html", {"kind": kind})


@app.get("/dashboard")
async def dashboard_redirect(user: User | None = Depends(get_page_user)):
    if user is None:
        return RedirectResponse("/login", status_code=303)
    return RedirectResponse(dashboard_route(user.role), status_code=303)


@app.get("/dashboard/{role}", response_class=HTMLResponse)
@app.get("/dashboard/{role}/{section}", response_class=HTMLResponse)
async def dashboard_page(
    request: Request,
    role: str,
    section: str = "overview",
    user: User | None = Depends(get_page_user),
):
    if user is None or user.role != role:
        return RedirectResponse("/login", status_code=303)
    sections = DASHBOARD_SECTIONS[role]
    if section not in sections:
        raise NotFoundError("Page", section)
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {"user": user, "role": role, "section": section, "sections": sections},
    )


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": "renolink",
        "version": "1.0.0",
        "env": settings.APP_ENV,
    }
