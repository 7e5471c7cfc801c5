"""Static reference data endpoints."""

from typing import List, Literal, Optional

from fastapi import APIRouter

from crisisfeed.models.financial import LegalDisclaimer, MarketSector
from crisisfeed.services.reference import MARKET_SECTORS, get_disclaimers

router = APIRouter()


@router.get("/disclaimers", response_model=List[LegalDisclaimer], response_model_by_alias=True)
async def list_disclaimers(category: Optional[Literal["general", "trading", "predictions", "risk"]] = None):
    """Legal disclaimers, optionally filtered by category."""
    return get_disclaimers(category)


@router.get("/sectors", response_model=List[MarketSector], response_model_by_alias=True)
async def list_sectors():
    """Crisis exposure of the tracked market sectors."""
    return MARKET_SECTORS
