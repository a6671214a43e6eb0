"""
Routes du panneau astrologique: thème natal, analyses de destinée et relecture de vie.

Les analyses passent toujours par le cache; `refresh: true` invalide l'entrée puis recalcule.
"""

from typing import Literal

from fastapi import APIRouter, HTTPException

from backend.api.schemas import AnalysisBatchResponse, AnalysisRequest, AnalysisResponse
from backend.core.constants import HTTP_STATUS_NO_CONTENT, HTTP_STATUS_NOT_FOUND
from backend.core.container import container
from backend.domain.astrology_panel import PanelAnalysis
from backend.domain.entities import ChartSnapshot

router = APIRouter(tags=["astrology"])

FateKind = Literal["past", "next7days", "monthly", "yearly"]


def _response(analysis: PanelAnalysis) -> AnalysisResponse:
    return AnalysisResponse(
        kind=analysis.kind,
        cached=analysis.cached,
        updated_at=analysis.updated_at,
        result=analysis.payload,
    )


@router.get("/astrology/{user_id}/chart", response_model=ChartSnapshot)
def get_chart(user_id: str):
    """Thème natal calculé depuis le profil, sinon 404."""
    try:
        return container.panel.chart_for(user_id)
    except KeyError as err:
        raise HTTPException(status_code=HTTP_STATUS_NOT_FOUND, detail="Profile not found") from err


@router.post("/astrology/{user_id}/analysis/{kind}", response_model=AnalysisResponse)
async def analyze(user_id: str, kind: FateKind, payload: AnalysisRequest):
    """Analyse d'un horizon (cache d'abord, sauf rafraîchissement)."""
    try:
        analysis = await container.panel.get_analysis(
            user_id, kind, payload.records, force=payload.refresh
        )
    except KeyError as err:
        raise HTTPException(status_code=HTTP_STATUS_NOT_FOUND, detail="Profile not found") from err
    return _response(analysis)


@router.post("/astrology/{user_id}/analysis", response_model=AnalysisBatchResponse)
async def analyze_all(user_id: str, payload: AnalysisRequest):
    """Les quatre horizons, lancés en parallèle."""
    try:
        analyses = await container.panel.analyze_all(
            user_id, payload.records, force=payload.refresh
        )
    except KeyError as err:
        raise HTTPException(status_code=HTTP_STATUS_NOT_FOUND, detail="Profile not found") from err
    return AnalysisBatchResponse(
        analyses={kind: _response(item) for kind, item in analyses.items()}
    )


@router.delete("/astrology/{user_id}/analysis/{kind}", status_code=HTTP_STATUS_NO_CONTENT)
def invalidate(user_id: str, kind: FateKind):
    """Supprime l'analyse en cache d'un horizon."""
    container.cache.invalidate(user_id, kind)


@router.post("/insight/{user_id}", response_model=AnalysisResponse)
async def insight(user_id: str, payload: AnalysisRequest):
    """Relecture de vie des souvenirs fournis."""
    analysis = await container.panel.get_insight(user_id, payload.records, force=payload.refresh)
    return _response(analysis)
