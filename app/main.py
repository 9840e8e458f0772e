import logging

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

# Import models for table creation
from app.core import models  # noqa: F401
from app.core.config import settings
from app.core.errors import DomainError
from app.core.logging_config import configure_logging
from app.domains.creators.router import router as creators_router
from app.domains.learn.router import router as learn_router
from app.domains.submissions.router import router as submissions_router
from app.domains.uploads.router import router as uploads_router
from app.shared.database.connection import Base, engine, get_db
from app.shared.utils.response import ErrorResponse

logger = logging.getLogger(__name__)


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    body = ErrorResponse(message=str(exc.detail), error=exc.code)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


def create_app() -> FastAPI:
    configure_logging(settings.log_level)

    # Create database tables
    Base.metadata.create_all(bind=engine)

    application = FastAPI(
        title=settings.app_name,
        description=settings.app_description,
        version=settings.app_version,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        allow_credentials=True,
    )
    application.add_exception_handler(DomainError, domain_error_handler)

    # Include routers
    application.include_router(uploads_router, prefix="/api")
    application.include_router(submissions_router, prefix="/api")
    application.include_router(learn_router, prefix="/api")
    application.include_router(creators_router, prefix="/api")

    @application.get("/")
    async def root() -> dict[str, str]:
        return {"message": "CFC NFT Creator Backend"}

    @application.get("/health")
    def health_check(db: Session = Depends(get_db)) -> dict[str, str]:
        try:
            db.execute(text("SELECT 1"))
            return {"status": "healthy", "database": "connected"}
        except SQLAlchemyError as e:
            logger.error("Health check failed: %s", e)
            return {"status": "unhealthy", "database": "disconnected", "error": str(e)}

    return application


app = create_app()
