"""FastAPI application for the athletics result record keeper"""
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from recordkeeper.config import settings
from recordkeeper.database import (
    check_database_connection,
    close_db,
    get_db_context,
    init_db,
)
from recordkeeper.models import (
    DeleteResponse,
    DisciplineResponse,
    HealthResponse,
    RecalculateRequest,
    RecalculationListResponse,
    RecalculationResponse,
    RecordCheckResponse,
    ResultCreate,
    ResultResponse,
    ResultUpdate,
)
from recordkeeper.records.types import current_year
from recordkeeper.repositories.base import NotFoundError, StoreConnectionError, StoreError
from recordkeeper.seed import seed_disciplines
from recordkeeper.services.results import ResultService

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

_result_service: Optional[ResultService] = None


def get_result_service() -> ResultService:
    """Dependency returning the process-wide ResultService."""
    global _result_service
    if _result_service is None:
        _result_service = ResultService()
    return _result_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    if settings.seed_disciplines:
        async with get_db_context() as session:
            await seed_disciplines(session)
    logger.info("Record keeper API started")
    yield
    await close_db()
    logger.info("Record keeper API stopped")


# Initialize FastAPI app
app = FastAPI(
    title="Record Keeper API",
    description="Athletics results with consistent personal and season bests",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": exc.message})


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error(f"Store error on {request.method} {request.url.path}: {exc}")
    if isinstance(exc, StoreConnectionError):
        return JSONResponse(status_code=503, content={"detail": "Result store unavailable"})
    return JSONResponse(status_code=500, content={"detail": "Result store error"})


@app.get("/")
async def root():
    return {
        "message": "Record Keeper API",
        "docs": "/docs",
        "health": "/api/health"
    }


@app.get("/api/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    database_connected = await check_database_connection()
    return HealthResponse(
        status="healthy" if database_connected else "degraded",
        database_connected=database_connected,
        partition_locking_enabled=settings.partition_locking_enabled,
    )


@app.get("/api/disciplines", response_model=List[DisciplineResponse])
async def list_disciplines(service: ResultService = Depends(get_result_service)):
    """List the discipline catalog"""
    return await service.list_disciplines()


@app.get("/api/results", response_model=List[ResultResponse])
async def list_results(
    athlete_id: Optional[int] = None,
    discipline_id: Optional[int] = None,
    service: ResultService = Depends(get_result_service),
):
    """List results, newest first"""
    return await service.list_results(athlete_id=athlete_id, discipline_id=discipline_id)


@app.get("/api/results/{result_id}", response_model=ResultResponse)
async def get_result(result_id: int, service: ResultService = Depends(get_result_service)):
    result = await service.get_result(result_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Result not found")
    return result


@app.post("/api/results", response_model=ResultResponse, status_code=201)
async def create_result(data: ResultCreate, service: ResultService = Depends(get_result_service)):
    """Record a result; PB/SB flags are assigned automatically"""
    return await service.create_result(data)


@app.put("/api/results/{result_id}", response_model=ResultResponse)
async def update_result(
    result_id: int,
    changes: ResultUpdate,
    service: ResultService = Depends(get_result_service),
):
    """Edit a result and rebuild the records it affects"""
    return await service.update_result(result_id, changes)


@app.delete("/api/results/{result_id}", response_model=DeleteResponse)
async def delete_result(result_id: int, service: ResultService = Depends(get_result_service)):
    deleted = await service.delete_result(result_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Result not found")
    return DeleteResponse(deleted=True)


@app.get("/api/records/personal-best/check", response_model=RecordCheckResponse)
async def check_personal_best(
    athlete_id: int,
    discipline_id: int,
    value: float,
    service: ResultService = Depends(get_result_service),
):
    """Would the value beat the athlete's current best?"""
    is_record = await service.check_personal_best(athlete_id, discipline_id, value)
    return RecordCheckResponse(
        athlete_id=athlete_id, discipline_id=discipline_id, value=value, is_record=is_record
    )


@app.get("/api/records/season-best/check", response_model=RecordCheckResponse)
async def check_season_best(
    athlete_id: int,
    discipline_id: int,
    value: float,
    year: Optional[int] = Query(None, description="Season year, defaults to the current year"),
    service: ResultService = Depends(get_result_service),
):
    """Would the value beat the athlete's best of the season?"""
    year = year or current_year()
    is_record = await service.check_season_best(athlete_id, discipline_id, value, year)
    return RecordCheckResponse(
        athlete_id=athlete_id, discipline_id=discipline_id, value=value, year=year, is_record=is_record
    )


@app.post("/api/records/recalculate", response_model=RecalculationListResponse)
async def recalculate_records(
    request: RecalculateRequest,
    service: ResultService = Depends(get_result_service),
):
    """Rebuild PB/SB flags for one partition, or every partition of an athlete"""
    if request.discipline_id is None:
        summaries = await service.recalculate_athlete(request.athlete_id)
    else:
        summaries = [await service.recalculate_partition(
            request.athlete_id,
            request.discipline_id,
            request.equipment_weight,
            request.hurdle_height,
        )]
    return RecalculationListResponse(
        partitions=[RecalculationResponse(**summary.to_dict()) for summary in summaries]
    )


@app.get("/metrics")
async def metrics():
    """Prometheus metrics"""
    if not settings.enable_prometheus_metrics:
        raise HTTPException(status_code=404, detail="Metrics disabled")
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_level=settings.log_level)
