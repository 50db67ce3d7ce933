"""
Search Router

Endpoints:
- GET /candidates - Companies browse verified student profiles
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from career_findr.core.auth import CurrentUser, get_current_company
from career_findr.core.database import get_db
from career_findr.modules.search import service
from career_findr.modules.users.schemas import CandidateListResponse, CandidateOut

router = APIRouter()


@router.get("/candidates", response_model=CandidateListResponse, summary="Search Candidates")
async def search_candidates(
    skills: list[str] | None = Query(None),
    location: str | None = Query(None, max_length=200),
    education: str | None = Query(None, max_length=200),
    company: CurrentUser = Depends(get_current_company),
    db: AsyncSession = Depends(get_db),
) -> CandidateListResponse:
    """
    Verified students matching every filter. A candidate matches ``skills``
    when they list at least one of them.
    """
    students = await service.search_candidates(
        db, skills=skills, location=location, education=education
    )
    return CandidateListResponse(
        candidates=[CandidateOut.model_validate(s) for s in students],
        total=len(students),
    )
