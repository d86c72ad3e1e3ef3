import logging

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront_auth.config import settings
from storefront_auth.database import init_db
from storefront_auth.dependencies import get_auth_gateway
from storefront_auth.routers import auth, users
from storefront_auth.services.auth import AuthGateway

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Storefront Auth")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router, prefix="/api")
app.include_router(users.router, prefix="/api")
app.include_router(auth.router)  # Compatibility for clients calling /auth/* without /api.


@app.on_event("startup")
def startup() -> None:
    init_db()
    # Fail fast on bad auth configuration instead of on the first request.
    get_auth_gateway()


@app.get("/health")
def health(gateway: AuthGateway = Depends(get_auth_gateway)) -> dict:
    return {"status": "ok", "sms_mode": gateway.sms.mode, "auth_mode": gateway.mode.value}
