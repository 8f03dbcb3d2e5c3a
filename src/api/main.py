"""
FastAPI application - Main entry point
"""

from dotenv import load_dotenv

load_dotenv()

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from src.error_handler import ErrorHandler
from src.integrations import build_backend
from src.matrix.catalogue import CodeCatalogue
from src.matrix.orchestrator import SelectionOrchestrator
from src.utils.config_loader import MatrixConfig, load_matrix_config

# Setup logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

error_handler = ErrorHandler()


# ============================================================================
# REQUEST MODELS
# ============================================================================

class SelectRequest(BaseModel):
    code: str = Field(..., min_length=1)


class AgeRequest(BaseModel):
    age: int = Field(..., ge=0, le=120)


class BaseAmountRequest(BaseModel):
    amount: int = Field(..., ge=1)


class RefreshRequest(BaseModel):
    suppress: bool = False


# ============================================================================
# DEPENDENCIES
# ============================================================================

def get_orchestrator(request: Request) -> SelectionOrchestrator:
    """Dependency for the selection orchestrator"""
    return request.app.state.orchestrator


def get_catalogue(request: Request) -> CodeCatalogue:
    """Dependency for the code catalogue"""
    return request.app.state.catalogue


# ============================================================================
# ENDPOINTS
# ============================================================================

api_router = APIRouter()


@api_router.post("/matrix/select", tags=["Matrix"])
async def select_primary_code(body: SelectRequest, orchestrator: SelectionOrchestrator = Depends(get_orchestrator)):
    """Select a primary code and return the settled matrix."""
    try:
        snapshot = await orchestrator.select_primary_code(body.code)
        return snapshot.to_dict()
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        payload = error_handler.handle_exception(e, {"endpoint": "select", "code": body.code})
        raise HTTPException(status_code=500, detail=payload)


@api_router.get("/matrix", tags=["Matrix"])
async def get_matrix(orchestrator: SelectionOrchestrator = Depends(get_orchestrator)):
    """Current matrix and selection state."""
    return orchestrator.snapshot().to_dict()


@api_router.post("/matrix/age", tags=["Matrix"])
async def change_age(body: AgeRequest, orchestrator: SelectionOrchestrator = Depends(get_orchestrator)):
    """Change the insured age and re-enrich every row."""
    try:
        failed = await orchestrator.set_age(body.age)
    except Exception as e:
        payload = error_handler.handle_exception(e, {"endpoint": "age", "age": body.age})
        raise HTTPException(status_code=500, detail=payload)
    return {"failed_rows": failed, **orchestrator.snapshot().to_dict()}


@api_router.post("/matrix/base-amount", tags=["Matrix"])
async def change_base_amount(body: BaseAmountRequest, orchestrator: SelectionOrchestrator = Depends(get_orchestrator)):
    """Change the base amount and recalculate premiums."""
    try:
        failed = await orchestrator.set_base_amount(body.amount)
    except Exception as e:
        payload = error_handler.handle_exception(e, {"endpoint": "base-amount", "amount": body.amount})
        raise HTTPException(status_code=500, detail=payload)
    return {"failed_rows": failed, **orchestrator.snapshot().to_dict()}


@api_router.post("/matrix/refresh", tags=["Matrix"])
async def refresh_matrix(body: RefreshRequest, orchestrator: SelectionOrchestrator = Depends(get_orchestrator)):
    """Refresh now and schedule the delayed follow-up refreshes."""
    suppress = (lambda: True) if body.suppress else None
    try:
        failed = await orchestrator.refresh_after_update(suppress)
    except Exception as e:
        payload = error_handler.handle_exception(e, {"endpoint": "refresh"})
        raise HTTPException(status_code=500, detail=payload)
    return {"failed_rows": failed, "follow_up_pending": orchestrator.refresher.pending}


@api_router.get("/catalogue/pdfs", tags=["Catalogue"])
async def list_pdfs(catalogue: CodeCatalogue = Depends(get_catalogue)):
    """Product documents known to the backend."""
    try:
        pdfs = await catalogue.list_pdfs()
    except Exception as e:
        payload = error_handler.handle_exception(e, {"endpoint": "pdfs"})
        raise HTTPException(status_code=502, detail=payload)
    return {"pdfs": [p.model_dump() for p in pdfs]}


@api_router.get("/catalogue/codes", tags=["Catalogue"])
async def list_codes(file: str = Query(..., min_length=1), catalogue: CodeCatalogue = Depends(get_catalogue)):
    """Primary codes defined in one product document."""
    listing = await catalogue.list_codes(file)
    return {
        "file": listing.file,
        "codes": [c.model_dump() for c in listing.codes],
        "diagnostic": listing.diagnostic,
    }


@api_router.get("/catalogue/codes/{code}", tags=["Catalogue"])
async def inspect_code(
    code: str,
    age: int = Query(15, ge=0, le=120),
    catalogue: CodeCatalogue = Depends(get_catalogue),
):
    """Everything known about one code at the given age."""
    try:
        inspection = await catalogue.inspect_code(code, age)
    except Exception as e:
        payload = error_handler.handle_exception(e, {"endpoint": "inspect", "code": code})
        raise HTTPException(status_code=500, detail=payload)
    return inspection.to_dict()


# ============================================================================
# APPLICATION
# ============================================================================

def create_app(
    orchestrator: Optional[SelectionOrchestrator] = None,
    catalogue: Optional[CodeCatalogue] = None,
    config: Optional[MatrixConfig] = None,
) -> FastAPI:
    if orchestrator is None or catalogue is None:
        config = config or load_matrix_config()
        backend = orchestrator.backend if orchestrator is not None else build_backend(config)
        orchestrator = orchestrator or SelectionOrchestrator(backend, config)
        catalogue = catalogue or CodeCatalogue(backend)

    app = FastAPI(
        title="Premium Matrix API",
        description="Premium matrix orchestration over the product pricing backend",
        version="1.0.0",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.orchestrator = orchestrator
    app.state.catalogue = catalogue

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Service health, current selection phase and lookups still in flight."""
        orchestrator = app.state.orchestrator
        state = orchestrator.snapshot().state
        return {
            "status": "healthy",
            "phase": state.phase.value,
            "pending_lookups": orchestrator.fanout.pending(),
            "timestamp": datetime.now().isoformat(),
        }

    app.include_router(api_router, prefix="/api/v1")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Cleanup on shutdown"""
        logger.info("Shutting down premium matrix API")
        await app.state.orchestrator.aclose()
        gateway = getattr(app.state.orchestrator.backend, "gateway", None)
        if gateway is not None:
            await gateway.aclose()

    return app


app = create_app()
