from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import uvicorn
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import exc as sa_exc
from contextlib import asynccontextmanager

from core.config import settings
from core.errors import StocktakeError, StorageError, StorageUnavailable
from core.logger import configure_logging, get_logger
from db.database import async_session_maker, create_db_and_tables
from routers.users import router as users_router
from routers.stocktakings import router as stocktakings_router
from routers.records import router as records_router
from routers.masters import router as masters_router
from services.bootstrap import seed_defaults

logger = get_logger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    await create_db_and_tables()
    async with async_session_maker() as session:
        await seed_defaults(session)
    logger.info("Database ready")
    yield


app = FastAPI(
    title="Stocktake API",
    description="API for stockpile records organized into stocktaking snapshots",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StocktakeError)
async def stocktake_error_handler(request: Request, exc: StocktakeError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ())[1:]) or "body"
        problems.append(f"{field}: {err.get('msg')}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "; ".join(problems) or "Invalid request"},
    )


@app.exception_handler(sa_exc.SQLAlchemyError)
async def storage_error_handler(request: Request, exc: sa_exc.SQLAlchemyError):
    # Anything a service did not classify; the request session is rolled back on close
    logger.error("Unhandled storage error on %s %s", request.method, request.url.path, exc_info=exc)
    error = StorageUnavailable() if isinstance(exc, sa_exc.TimeoutError) else StorageError()
    return JSONResponse(status_code=error.status_code, content={"message": error.message})


# Authentication and user routes
app.include_router(users_router, prefix="/api", tags=["auth"])

# Stocktaking snapshots and their records
app.include_router(stocktakings_router, prefix="/api/stocktakings", tags=["stocktakings"])
app.include_router(records_router, prefix="/api/records", tags=["records"])

# Master data (locations, units, item catalog)
app.include_router(masters_router, prefix="/api", tags=["masters"])

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
