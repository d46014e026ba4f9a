"""API routes for the complaint engine."""

from typing import Any

from fastapi import APIRouter, Body, Depends, Query, Request
from pydantic import BaseModel, Field

from complaint_engine.api.middleware import verify_api_key
from complaint_engine.config import get_settings
from complaint_engine.engine import ComplaintPipeline
from complaint_engine.exceptions import EngineNotReadyError, ResourceNotFoundError
from complaint_engine.models.branch import BranchResolution
from complaint_engine.models.catalog import CategoryMatch
from complaint_engine.models.complaint import (
    ComplaintAnalysis,
    EnrichedComplaint,
    NormalizedComplaint,
    SentimentLabel,
    SentimentResult,
)
from complaint_engine.storage.complaint_store import DEFAULT_LIST_LIMIT

router = APIRouter()

SUBMISSION_EXAMPLE = {
    "Nombre": "Ana López",
    "Telefono": "+52 55 1234 5678",
    "Descripción": "El pollo estaba horrible y frío, el servicio fue pésimo",
    "Sucursal": "Monterrey",
    "Created on": "2024-03-15 13:45",
}


def get_pipeline(request: Request) -> ComplaintPipeline:
    """Get the pipeline attached to the application state."""
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise EngineNotReadyError()
    return pipeline


class AnalysisSummary(BaseModel):
    """Short analysis summary returned after a submission."""

    sentiment: str
    category: str
    subcategory: str | None = None
    urgency: int
    branch: str | None = None
    branch_confidence: float = 0.0
    keywords: list[str] = Field(default_factory=list)

    @classmethod
    def from_analysis(cls, analysis: ComplaintAnalysis) -> "AnalysisSummary":
        return cls(
            sentiment=analysis.sentiment.label.value,
            category=analysis.category.category_name,
            subcategory=analysis.category.subcategory_name,
            urgency=analysis.urgency,
            branch=analysis.branch.branch_name,
            branch_confidence=analysis.branch.confidence,
            keywords=list(analysis.keywords),
        )


class SubmissionResponse(BaseModel):
    """Response for an accepted complaint."""

    success: bool = True
    complaint_id: int
    customer_id: int
    analysis: AnalysisSummary


class AnalyzeResponse(BaseModel):
    """Full analysis preview; nothing is stored."""

    complaint: NormalizedComplaint
    sentiment: SentimentResult
    category: CategoryMatch
    branch: BranchResolution
    urgency: int
    keywords: list[str]


class ComplaintListResponse(BaseModel):
    """Stored complaints, newest first."""

    complaints: list[EnrichedComplaint]
    total: int


class CatalogReloadResponse(BaseModel):
    """Counts after a catalog reload."""

    categories: int
    keywords: int
    branches: int
    loaded_at: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    catalog: dict[str, Any] | None = None
    complaints: dict[str, int] | None = None


@router.post(
    "/webhook/complaints",
    response_model=SubmissionResponse,
    summary="Submit a complaint",
    description="Classify, resolve and store a complaint from any upstream form or sheet.",
)
async def submit_complaint(
    request: Request,
    raw: dict[str, Any] = Body(..., examples=[SUBMISSION_EXAMPLE]),
    channel: str | None = Query(default=None, description="Origin channel of the complaint"),
    _api_key: str = Depends(verify_api_key),
    pipeline: ComplaintPipeline = Depends(get_pipeline),
) -> SubmissionResponse:
    """
    Submit a complaint.

    Field names are matched loosely ("Descripción", "descripcion", "description").
    Storage failures return 500 with the failing stage; nothing is kept.
    """
    complaint, analysis = await pipeline.process(
        raw,
        channel=channel,
        request_id=getattr(request.state, "request_id", None),
    )
    return SubmissionResponse(
        complaint_id=complaint.complaint_id,
        customer_id=complaint.customer_id,
        analysis=AnalysisSummary.from_analysis(analysis),
    )


@router.post(
    "/v1/complaints/analyze",
    response_model=AnalyzeResponse,
    summary="Preview complaint analysis",
    description="Run classification and branch resolution without storing anything.",
)
async def analyze_complaint(
    request: Request,
    raw: dict[str, Any] = Body(..., examples=[SUBMISSION_EXAMPLE]),
    _api_key: str = Depends(verify_api_key),
    pipeline: ComplaintPipeline = Depends(get_pipeline),
) -> AnalyzeResponse:
    normalized, analysis = pipeline.analyze(
        raw, request_id=getattr(request.state, "request_id", None)
    )
    return AnalyzeResponse(
        complaint=normalized,
        sentiment=analysis.sentiment,
        category=analysis.category,
        branch=analysis.branch,
        urgency=analysis.urgency,
        keywords=analysis.keywords,
    )


@router.get(
    "/v1/complaints",
    response_model=ComplaintListResponse,
    summary="List stored complaints",
    description="Newest first, optionally filtered by sentiment, category and minimum urgency.",
)
async def list_complaints(
    sentiment: SentimentLabel | None = Query(default=None),
    category_id: int | None = Query(default=None, ge=1),
    min_urgency: int | None = Query(default=None, ge=1, le=5),
    limit: int = Query(default=DEFAULT_LIST_LIMIT, ge=1, le=200),
    _api_key: str = Depends(verify_api_key),
    pipeline: ComplaintPipeline = Depends(get_pipeline),
) -> ComplaintListResponse:
    complaints = await pipeline.list_complaints(
        sentiment=sentiment,
        category_id=category_id,
        min_urgency=min_urgency,
        limit=limit,
    )
    return ComplaintListResponse(complaints=complaints, total=len(complaints))


@router.get(
    "/v1/complaints/{complaint_id}",
    response_model=EnrichedComplaint,
    summary="Get a stored complaint",
)
async def get_complaint(
    complaint_id: int,
    _api_key: str = Depends(verify_api_key),
    pipeline: ComplaintPipeline = Depends(get_pipeline),
) -> EnrichedComplaint:
    complaint = await pipeline.get_complaint(complaint_id)
    if complaint is None:
        raise ResourceNotFoundError(f"Complaint {complaint_id} not found")
    return complaint


@router.post(
    "/v1/catalog/reload",
    response_model=CatalogReloadResponse,
    summary="Reload the catalog",
    description="Re-read categories, keywords and branches from the catalog source.",
)
async def reload_catalog(
    _api_key: str = Depends(verify_api_key),
    pipeline: ComplaintPipeline = Depends(get_pipeline),
) -> CatalogReloadResponse:
    snapshot = await pipeline.reload_catalog()
    return CatalogReloadResponse(
        categories=len(snapshot.categories),
        keywords=snapshot.keyword_count,
        branches=len(snapshot.active_branches),
        loaded_at=snapshot.loaded_at.isoformat(),
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check if the service is up; reports catalog cache status and complaint totals.",
)
async def health_check(
    pipeline: ComplaintPipeline = Depends(get_pipeline),
) -> HealthResponse:
    settings = get_settings()
    return HealthResponse(
        status="healthy",
        version=settings.api_version,
        catalog=pipeline.catalog.status(),
        complaints=await pipeline.complaint_counts(),
    )
