#run it with uvicorn webinar_signup.main:app --reload
from contextlib import asynccontextmanager
from typing import Optional
import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from webinar_signup.api.v1.api_router import api_router
from webinar_signup.core.config import Settings, get_settings, resolve_config_backend
from webinar_signup.core.cors import NoContentPreflightCORSMiddleware
from webinar_signup.core.errors import RegistrationError

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

REQUIRED_CREDENTIALS = (
    "zoom_account_id",
    "zoom_client_id",
    "zoom_client_secret",
    "mailchimp_api_key",
    "mailchimp_server_prefix",
    "mailchimp_list_id",
)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def credential_status(settings: Settings) -> dict:
    names = list(REQUIRED_CREDENTIALS)
    if settings.is_extended:
        names.append("mailchimp_secondary_list_id")
    return {name: bool(getattr(settings, name)) for name in names}


async def registration_error_handler(request: Request, exc: RegistrationError) -> JSONResponse:
    logger.error(f"Error At: {exc.error_at} - {exc.text}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_response_body())


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unexpected error on {request.url.path}: {str(exc)}")
    return JSONResponse(
        status_code=500,
        content={"message": "Internal Server Error", "info": str(exc), "errorAt": None},
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)
    config_backend = resolve_config_backend()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """One-time startup: report the resolved configuration. Nothing is mutated afterwards."""
        logger.info(
            f"🚀 Starting registration service (config: {config_backend}, "
            f"variant: {settings.registration_variant}, list sync: {settings.list_sync_mode})"
        )
        for name, present in credential_status(settings).items():
            if not present:
                logger.warning(f"⚠️ {name.upper()} is not configured")
        yield
        logger.info("Registration service shut down")

    app = FastAPI(title="Webinar Signup", version="1.0.0", lifespan=lifespan)
    # Routes resolve settings through get_settings; keep them on the same object
    app.dependency_overrides[get_settings] = lambda: settings

    if settings.cors_enabled:
        app.add_middleware(
            NoContentPreflightCORSMiddleware,
            allow_origins=settings.cors_allowed_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(RegistrationError, registration_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
    app.include_router(api_router)

    @app.get("/api/health")
    def health_check():
        """
        Health check endpoint.

        Reports which credentials are present, never their values.
        """
        return {
            "status": "ok",
            "config_backend": config_backend,
            "registration_variant": settings.registration_variant,
            "list_sync_mode": settings.list_sync_mode,
            "env_vars": credential_status(settings),
        }

    return app


app = create_app()
