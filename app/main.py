from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from app.core.config import settings
from app.core.errors import ServiceError, StorageError
from app.routes.routes import include_app_routes
from app.schemas import ErrorResponse
import logging

# Setup logging
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Tourism Platform API", version="1.0.0")

app.add_middleware(
	CORSMiddleware,
	allow_origins=settings.cors_origins,
	allow_methods=["*"],
	allow_headers=["*"],
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
	if exc.status_code >= 500:
		logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
	body = ErrorResponse(message=exc.message, error_code=exc.error_code, details=exc.details)
	return JSONResponse(status_code=exc.status_code, content=body.model_dump())


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
	logger.exception(f"{request.method} {request.url.path} hit a storage failure", exc_info=exc)
	error = StorageError()
	body = ErrorResponse(message=error.message, error_code=error.error_code)
	return JSONResponse(status_code=error.status_code, content=body.model_dump())


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
	body = ErrorResponse(
		message="Invalid input",
		error_code="validation_error",
		details={"errors": jsonable_encoder(exc.errors())},
	)
	return JSONResponse(status_code=400, content=body.model_dump())


# Test database connection on startup
@app.on_event("startup")
async def startup_event():
    try:
        from app.db.session import engine
        from sqlalchemy import text
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection successful")
    except Exception as e:
        logger.warning(f"Database connection failed: {e}")
        logger.warning("Application will continue without database connection")

include_app_routes(app)

@app.get("/health")
def health_check():
	return {"status": "ok"}
