"""Main FastAPI application"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException

from htpasswd_gate.config import Settings, settings
from htpasswd_gate.errors import StoreError
from htpasswd_gate.policy import AnyLoggedUser, Anyone, AuthResult, LoggedUser, OnlyUsers
from htpasswd_gate.security import BasicAuthMiddleware, require
from htpasswd_gate.store import HtpasswdStore, StoreHandle

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def load_store(app_settings: Settings) -> StoreHandle:
    """Build the credential store the app serves, refusing to start on a bad file."""
    if not app_settings.htpasswd_file:
        logger.warning("No HTPASSWD_FILE configured; only anonymous access will succeed")
        return StoreHandle(HtpasswdStore())

    try:
        return StoreHandle.from_path(app_settings.htpasswd_file)
    except StoreError as e:
        logger.error(f"Cannot load htpasswd store: {e}")
        raise RuntimeError(f"HTPASSWD_FILE is unusable: {e}") from e


def _describe(auth: AuthResult) -> dict:
    if isinstance(auth, LoggedUser):
        return {"authenticated": True, "user": auth.user}
    return {"authenticated": False, "user": None}


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Build the application around one shared credential store."""
    app_settings = app_settings or settings
    handle = load_store(app_settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events"""
        logger.info(f"Starting htpasswd gate with {len(handle.current)} registered users")
        yield
        logger.info("Stopping htpasswd gate")

    app = FastAPI(
        title="htpasswd gate",
        description="HTTP Basic auth against an htpasswd file with per-route policies",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.htpasswd = handle
    app.state.auth_realm = app_settings.auth_realm

    if app_settings.auth_protect_all:
        app.add_middleware(
            BasicAuthMiddleware,
            store=handle,
            policy=AnyLoggedUser(),
            allow_paths=app_settings.public_path_set(),
            realm=app_settings.auth_realm,
        )

    admins = OnlyUsers(*app_settings.admin_user_list())

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "service": "htpasswd gate"}

    @app.get("/api/whoami")
    def whoami(auth: AuthResult = Depends(require(Anyone()))):
        """Report who the caller is, anonymous included"""
        return _describe(auth)

    @app.get("/api/private")
    def private(auth: AuthResult = Depends(require(AnyLoggedUser()))):
        """Any logged user"""
        return {"message": f"Hello {auth.user}", **_describe(auth)}

    @app.get("/api/admin/users")
    def list_users(auth: AuthResult = Depends(require(admins))):
        """List registered usernames"""
        return {"users": handle.current.usernames()}

    @app.post("/api/admin/reload")
    def reload_store(auth: AuthResult = Depends(require(admins))):
        """Reload the htpasswd file; the previous store stays active on failure"""
        if handle.path is None:
            raise HTTPException(status_code=409, detail="No htpasswd file configured")
        try:
            store = handle.reload()
        except StoreError as e:
            raise HTTPException(status_code=500, detail=str(e))
        return {"message": "Store reloaded", "users": len(store)}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "htpasswd_gate.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
    )
