"""
Learning API endpoints: recommendations and history statistics
"""

from fastapi import APIRouter, Query, Request
from typing import Dict, List, Optional
import logging

from .models import BestConfigurations
from ..learning.recommender import ConfigurationRecommender, Recommendation
from ..learning.store import LearningRecord

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/learning", tags=["learning"])


@router.get("/recommendations", response_model=Recommendation)
async def recommend(
    request: Request,
    question: str = Query(..., min_length=1),
    domain: Optional[str] = None,
):
    """Recommend run options for a question"""
    recommender = ConfigurationRecommender(request.app.state.engine.store)
    return recommender.recommend(question, domain)


@router.get("/best", response_model=BestConfigurations)
async def best_configurations(request: Request, domain: str = Query(..., min_length=1), limit: int = Query(3, ge=1, le=20)):
    """Best recorded configurations for a domain"""
    store = request.app.state.engine.store
    return BestConfigurations(domain=domain, configurations=store.query_best_configurations(domain, limit))


@router.get("/stats")
async def learning_stats(request: Request) -> Dict:
    """Learning history statistics"""
    return request.app.state.engine.store.learning_stats()


@router.get("/similar", response_model=List[LearningRecord])
async def similar_questions(request: Request, question: str = Query(..., min_length=1), limit: int = Query(5, ge=1, le=50)):
    """Earlier runs on questions sharing keywords with this one"""
    return request.app.state.engine.store.find_similar_questions(question, limit)
