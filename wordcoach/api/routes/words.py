import logging
from fastapi import APIRouter, Depends, HTTPException, status

from wordcoach.api.dependencies import AppServices, get_services
from wordcoach.api.schemas.word_schemas import (
    FamiliarWordListResponse, FamiliarWordRequest, FamiliarWordResponse
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/familiar", response_model=FamiliarWordResponse)
async def mark_familiar(request: FamiliarWordRequest, services: AppServices = Depends(get_services)):
    """标记熟词，学习中时同步上报"""
    if not request.word.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="单词不能为空"
        )
    reported = services.familiar_words_service.mark_familiar(request.word)
    return {"word": request.word.strip().lower(), "reported": reported}


@router.get("/familiar", response_model=FamiliarWordListResponse)
async def list_familiar_words(services: AppServices = Depends(get_services)):
    words = services.familiar_words_service.list_words()
    return {"words": words, "total": len(words)}
