"""
Credscore — Score API

    GET /v1/score/{userkey}            - Latest score (computed when stale or missing)
    GET /v1/score/{userkey}/elements   - Credibility factors, largest swing first, with running total
    GET /v1/score/{userkey}/simulate   - What-if score from provisional reviews, stake, backers, social account

User keys: address:0x..., profileId:42, service:x.com:123, service:x.com:username:someone
"""
import math
from datetime import datetime, timezone
from typing import Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from credscore.errors import NotFoundError, TargetParseError
from credscore.pipeline import get_service
from credscore.score.convert import convert_score_to_level
from credscore.service import ScoreService
from credscore.targets import Target, from_user_key

logger = structlog.get_logger()


# =============================================
# RESPONSE MODELS
# =============================================

class SignalResponse(BaseModel):
    name: str
    raw: Optional[float] = None
    weighted: float
    failed: bool = False


class ScoreResponse(BaseModel):
    userkey: str
    score: int
    level: str
    dirty: bool
    errors: List[str]
    calculated_at: str
    signals: Dict[str, SignalResponse]


class RangeResponse(BaseModel):
    min: float
    max: float


class FactorResponse(BaseModel):
    name: str
    value: Optional[float] = None
    weighted: float
    range: RangeResponse
    error: bool = False


class BreakdownRowResponse(BaseModel):
    name: str
    delta: float
    total: float


class ElementsResponse(BaseModel):
    userkey: str
    score: int
    factors: List[FactorResponse]
    breakdown: List[BreakdownRowResponse]
    errors: List[str]


class SimulationResponse(BaseModel):
    value: int
    impact: str
    relative_value: int
    adjusted_score: int


class SimulateResponse(BaseModel):
    userkey: str
    simulation: SimulationResponse
    score: int
    level: str
    signals: Dict[str, SignalResponse]
    errors: List[str]


def parse_userkey(userkey: str) -> Target:
    try:
        return from_user_key(userkey)
    except TargetParseError as e:
        raise HTTPException(status_code=400, detail=str(e))


# =============================================
# ROUTES
# =============================================

router = APIRouter(prefix="/v1/score", tags=["score"])


@router.get("/{userkey}", response_model=ScoreResponse)
async def get_score(userkey: str, service: ScoreService = Depends(get_service)):
    target = parse_userkey(userkey)
    stored = await service.get_latest_or_calculate(target)

    return ScoreResponse(
        userkey=userkey,
        score=stored.score,
        level=convert_score_to_level(stored.score).value,
        dirty=stored.dirty,
        errors=stored.errors,
        calculated_at=datetime.fromtimestamp(stored.calculated_at, tz=timezone.utc).isoformat(),
        signals={name: SignalResponse(**s) for name, s in stored.signals.items()},
    )


@router.get("/{userkey}/elements", response_model=ElementsResponse)
async def get_score_elements(userkey: str, service: ScoreService = Depends(get_service)):
    target = parse_userkey(userkey)
    factors = await service.credibility_factors(target)

    return ElementsResponse(
        userkey=userkey,
        score=factors.score,
        factors=[FactorResponse(**f.to_dict()) for f in factors.factors],
        breakdown=[BreakdownRowResponse(name=r.name, delta=r.delta, total=r.total) for r in factors.breakdown],
        errors=factors.errors,
    )


@router.get("/{userkey}/simulate", response_model=SimulateResponse)
async def simulate_score(
    userkey: str,
    positive_reviews: Optional[int] = Query(None, ge=0),
    negative_reviews: Optional[int] = Query(None, ge=0),
    neutral_reviews: Optional[int] = Query(None, ge=0),
    stake_eth: Optional[float] = Query(None, gt=0),
    backers: Optional[int] = Query(None, gt=0),
    social_account_id: Optional[str] = Query(None),
    service: ScoreService = Depends(get_service),
):
    target = parse_userkey(userkey)
    if stake_eth is not None and not math.isfinite(stake_eth):
        raise HTTPException(status_code=422, detail="stake_eth must be a finite number")
    try:
        outcome = await service.simulate(
            target,
            positive_reviews=positive_reviews,
            negative_reviews=negative_reviews,
            neutral_reviews=neutral_reviews,
            stake_eth=stake_eth,
            backers=backers,
            social_account_id=social_account_id,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    logger.info("score_simulation",
                userkey=userkey,
                score=outcome.result.score,
                impact=outcome.simulation.impact.value)

    return SimulateResponse(
        userkey=userkey,
        simulation=SimulationResponse(**outcome.simulation.to_dict()),
        score=outcome.result.score,
        level=convert_score_to_level(outcome.result.score).value,
        signals={name: SignalResponse(**s.to_dict()) for name, s in outcome.result.signals.items()},
        errors=outcome.result.errors,
    )
