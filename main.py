import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, field_validator

from config import settings
from core.ideals.manager import FeatureManager
from core.ideals.models import ConvergenceScore, Fingerprint, Flag, PossibleIdeal, fingerprints_by_name
from core.ideals.scoring import ideal_convergence_scorer
from core.ideals.store import IdealStore, IdealStoreWriteError
from feature_registry import build_feature_manager, build_storage

# -------------------------------------------------------------------
# Logging
# -------------------------------------------------------------------

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger("ideals")

logger.info("Ideal storage backend: %s", settings.IDEALS_BACKEND)

# -------------------------------------------------------------------
# FastAPI App
# -------------------------------------------------------------------

class ASCIIJSONResponse(JSONResponse):
    # fingerprint data may hold lone surrogates, which utf-8 cannot encode
    def render(self, content: Any) -> bytes:
        return json.dumps(content, allow_nan=False, separators=(",", ":")).encode("utf-8")


app = FastAPI(
    default_response_class=ASCIIJSONResponse,
    title="Ideal Convergence API",
    version="0.1.0",
    description="Resolve fingerprint ideals, evaluate policy flags and score convergence.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_ORIGIN],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -------------------------------------------------------------------
# Models
# -------------------------------------------------------------------

class ProjectFingerprints(BaseModel):
    fingerprints: List[Fingerprint]
    include_derived: bool = True


class IdealRequest(BaseModel):
    ideal: Optional[Fingerprint] = None
    reason: str

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("An ideal needs a reason")
        if len(v) > 500:
            raise ValueError("Reason too long")
        return v


class DeleteResponse(BaseModel):
    fingerprint_name: str
    deleted: bool

# -------------------------------------------------------------------
# Feature manager (one per process)
# -------------------------------------------------------------------

_manager: Optional[FeatureManager] = None


def init_feature_manager() -> FeatureManager:
    global _manager
    if _manager is None:
        store = IdealStore(build_storage(settings))
        store.load()
        _manager = build_feature_manager(store, settings)
    return _manager


def set_feature_manager(manager: Optional[FeatureManager]) -> None:
    global _manager
    _manager = manager


def get_feature_manager() -> FeatureManager:
    if _manager is None:
        raise HTTPException(status_code=503, detail="Feature manager not initialized")
    return _manager

# -------------------------------------------------------------------
# Startup / Shutdown
# -------------------------------------------------------------------

@app.on_event("startup")
def on_startup():
    logger.info("Ideal convergence API starting up...")
    init_feature_manager()
    logger.info("Startup complete")


@app.on_event("shutdown")
def on_shutdown():
    logger.info("Ideal convergence API shutting down...")
    if _manager is not None:
        _manager.store.close()

# -------------------------------------------------------------------
# Routes
# -------------------------------------------------------------------

@app.get("/")
def root():
    return {"status": "ok", "service": "Ideal Convergence API", "version": "0.1.0"}


@app.get("/health")
def health():
    manager = _manager
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "api": "operational",
            "ideal_store": settings.IDEALS_BACKEND if manager else "not_initialized",
        },
        "ideals": len(manager.store.all()) if manager else 0,
        "features": len(manager.features) if manager else 0,
    }


@app.get("/ideals", response_model=Dict[str, PossibleIdeal])
def list_ideals():
    return get_feature_manager().store.all()


@app.get("/ideals/{fingerprint_name}", response_model=PossibleIdeal)
async def get_ideal(fingerprint_name: str):
    ideal = await get_feature_manager().ideal_resolver(fingerprint_name)
    if ideal is None:
        raise HTTPException(status_code=404, detail=f"No ideal for {fingerprint_name}")
    return ideal


@app.put("/ideals/{fingerprint_name}", response_model=PossibleIdeal)
def put_ideal(fingerprint_name: str, payload: IdealRequest):
    manager = get_feature_manager()
    if payload.ideal is not None and payload.ideal.name != fingerprint_name:
        raise HTTPException(status_code=422, detail="Ideal fingerprint name does not match path")

    ideal = PossibleIdeal(fingerprint_name=fingerprint_name, ideal=payload.ideal, reason=payload.reason)
    try:
        manager.set_ideal(fingerprint_name, ideal)
    except IdealStoreWriteError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return ideal


@app.delete("/ideals/{fingerprint_name}", response_model=DeleteResponse)
def delete_ideal(fingerprint_name: str):
    manager = get_feature_manager()
    try:
        deleted = manager.store.delete(fingerprint_name)
    except IdealStoreWriteError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return DeleteResponse(fingerprint_name=fingerprint_name, deleted=deleted)


@app.post("/suggested-ideals", response_model=List[PossibleIdeal])
async def suggested_ideals(fp: Fingerprint):
    return await get_feature_manager().suggested_ideals(fp)


@app.post("/flags", response_model=List[Flag])
async def evaluate_flags(fp: Fingerprint):
    return await get_feature_manager().evaluate_flags(fp)


@app.post("/derive", response_model=List[Fingerprint])
async def derive(payload: ProjectFingerprints):
    return await get_feature_manager().derive(payload.fingerprints)


@app.post("/score", response_model=ConvergenceScore)
async def score(payload: ProjectFingerprints):
    manager = get_feature_manager()
    fingerprints = list(payload.fingerprints)
    if payload.include_derived:
        fingerprints += await manager.derive(payload.fingerprints)

    result = await ideal_convergence_scorer(manager)(fingerprints_by_name(fingerprints))
    logger.info("Scored %d fingerprints: %s/5 (%s of %s ideals met)", len(fingerprints), result.score, result.correct, result.has_ideal)
    return result


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "status_code": exc.status_code, "path": str(request.url)},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})
