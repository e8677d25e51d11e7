import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from firebase_admin import App, auth, credentials, initialize_app

from chuka_market.core.config import Settings

logger = logging.getLogger(__name__)

MUTATING_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


def init_firebase(settings: Settings) -> App:
    cred = (
        credentials.Certificate(settings.firebase_credentials_path)
        if settings.firebase_credentials_path
        else credentials.ApplicationDefault()
    )
    options = {}
    if settings.firebase_storage_bucket:
        options["storageBucket"] = settings.firebase_storage_bucket
    return initialize_app(cred, options, name=settings.app_name)


async def authenticate_request(request: Request, call_next):
    """Requires a Firebase ID token on writes under /api when auth is enabled."""
    settings: Settings = request.app.state.settings
    if (
        not settings.auth_required
        or request.method not in MUTATING_METHODS
        or not request.url.path.startswith("/api/")
    ):
        return await call_next(request)

    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"error": "Authorization header is missing"},
        )

    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"error": "Invalid or missing authentication token"},
        )

    try:
        user = auth.verify_id_token(token, request.app.state.firebase_app)
    except (ValueError, auth.InvalidIdTokenError, auth.CertificateFetchError) as e:
        logger.info("Rejected token on %s %s: %s", request.method, request.url.path, e)
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"error": "Invalid authentication token"},
        )

    request.state.user = user
    return await call_next(request)
