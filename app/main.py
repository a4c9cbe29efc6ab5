import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.database import init_db
from app.deps import build_auth_service
from app.routers import auth, health
from app.services.principals import principal_store

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
LOGGER = logging.getLogger(__name__)

app = FastAPI(title="License Portal Auth")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix="/api")
app.include_router(auth.router, prefix="/api")


def _seed_principals() -> None:
    if settings.seed_admin_username and settings.seed_admin_password:
        try:
            principal_store.ensure_principal(
                settings.seed_admin_username,
                settings.seed_admin_password,
                "admin",
                email=settings.seed_admin_email,
            )
        except ValueError as exc:
            LOGGER.warning("Skipping admin seed: %s", exc)
    if settings.seed_reseller_username and settings.seed_reseller_password:
        principal_store.ensure_principal(
            settings.seed_reseller_username,
            settings.seed_reseller_password,
            "reseller",
        )


@app.on_event("startup")
def startup() -> None:
    init_db()
    _seed_principals()
    if getattr(app.state, "auth_service", None) is None:
        app.state.auth_service = build_auth_service(settings)
    LOGGER.info("Auth service ready (email backend: %s)", settings.email_backend)
    # A failed check is logged only; logins report delivery errors per request.
    app.state.auth_service.check_email_delivery()


@app.get("/")
def root():
    return {"status": "Backend running"}
