import sys

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from loguru import logger

from sniket.core.config import settings
from sniket.domains.fcm.router.fcm_router import router as fcm_router
from sniket.domains.notifications.router.notification_router import router as notifications_router


def configure_logging() -> None:
    logger.remove()
    logger.add(sys.stderr, level=settings.LOG_LEVEL.upper())


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="Sniket Notification API",
        version="1.0.0",
        description="Push token registry and notification routing for Sniket",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        openapi_tags=[
            {"name": "FCM", "description": "Device token registration and push delivery"},
            {"name": "Notifications", "description": "In-app notification feed"},
        ]
    )

    # FCM registry + delivery
    app.include_router(fcm_router)

    # Notifications
    app.include_router(notifications_router)

    @app.get("/")
    def root():
        return {"message": "Sniket notification API is running"}

    def custom_openapi():
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title="Sniket Notification API",
            version="1.0.0",
            description="""
            ## Sniket Notification API

            Routes push notifications to customers, providers and admins that may
            share one browser (and therefore one FCM token).

            ### Authentication
            `POST /api/v1/fcm/send` and `POST /api/v1/notifications` expect
            `Authorization: Bearer <INTERNAL_API_KEY>` when the key is configured.
            """,
            routes=app.routes,
        )

        openapi_schema.setdefault("components", {})["securitySchemes"] = {
            "BearerAuth": {
                "type": "http",
                "scheme": "bearer",
                "description": "Internal API key for server-to-server routes",
            }
        }

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi
    return app


app = create_app()

# local entry point
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "sniket.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
