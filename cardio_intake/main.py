import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, load_settings
from .decode import decode_spreadsheet
from .errors import (
    DecodeError,
    EmptyDatasetError,
    OracleError,
    OracleUnavailableError,
    PersistenceError,
    UnsupportedFileError,
)
from .log import configure_logging
from .models import AnalysisRequest, AnalysisResult, ClearResponse, HealthResponse, RecordView
from .normalize import normalize_rows
from .oracle import RiskOracle
from .presentation import to_view
from .store import RecordStore

logger = logging.getLogger(__name__)


def get_store(request: Request) -> RecordStore:
    return request.app.state.store


def get_oracle(request: Request) -> RiskOracle:
    oracle = request.app.state.oracle
    if oracle is None:
        raise OracleUnavailableError("risk analysis is not configured")
    return oracle


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[RecordStore] = None,
    oracle: Optional[RiskOracle] = None,
) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    store = store or RecordStore.from_settings(settings)
    if oracle is None:
        oracle = RiskOracle.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store.create_schema()
        yield

    app = FastAPI(
        title="cardio-intake",
        description="Patient ECG/TMT spreadsheet ingestion and AI risk analysis",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.oracle = oracle

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(OracleUnavailableError)
    async def oracle_unavailable(request: Request, exc: OracleUnavailableError):
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.get("/health", response_model=HealthResponse)
    def health():
        return {"ok": True}

    @app.post("/upload", response_model=List[RecordView])
    async def upload(
        file: Optional[UploadFile] = File(None),
        store: RecordStore = Depends(get_store),
    ):
        if file is None:
            raise HTTPException(status_code=400, detail="No file uploaded")

        raw = await file.read()
        try:
            rows = decode_spreadsheet(file.filename or "", raw)
            records = normalize_rows(rows)
        except (UnsupportedFileError, DecodeError) as e:
            logger.warning("rejected upload %s: %s", file.filename, e)
            raise HTTPException(status_code=422, detail=str(e))
        except EmptyDatasetError:
            raise HTTPException(status_code=400, detail="Empty file")

        try:
            stored = store.insert_batch(records)
        except PersistenceError:
            logger.exception("failed to save upload %s", file.filename)
            raise HTTPException(status_code=500, detail="Failed to process and save file data")

        return [to_view(row) for row in stored]

    @app.get("/records", response_model=List[RecordView])
    def list_records(store: RecordStore = Depends(get_store)):
        try:
            rows = store.list_records()
        except PersistenceError:
            logger.exception("failed to fetch records")
            raise HTTPException(status_code=500, detail="Failed to fetch records")
        return [to_view(row) for row in rows]

    @app.delete("/records", response_model=ClearResponse)
    def clear_records(store: RecordStore = Depends(get_store)):
        try:
            deleted = store.clear()
        except PersistenceError:
            logger.exception("failed to clear records")
            raise HTTPException(status_code=500, detail="Failed to clear records")
        return ClearResponse(deleted=deleted)

    @app.post("/analyze", response_model=AnalysisResult)
    def analyze(payload: AnalysisRequest, oracle: RiskOracle = Depends(get_oracle)):
        try:
            return oracle.analyze(payload)
        except OracleError as e:
            logger.error("risk analysis failed: %s", e)
            raise HTTPException(status_code=502, detail="Failed to analyze patient data")

    return app


app = create_app()
