import logging
from fastapi import APIRouter, Depends, HTTPException, status

from wordcoach.api.dependencies import AppServices, get_services
from wordcoach.api.schemas.dictionary_schemas import (
    DictionaryLookupResponse, DictionarySearchResponse, DictionaryStatusResponse
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/status", response_model=DictionaryStatusResponse)
async def get_dictionary_status(services: AppServices = Depends(get_services)):
    """词典加载状态"""
    return services.dictionary_service.get_status()


@router.get("/lookup/{word}", response_model=DictionaryLookupResponse)
async def lookup_word(word: str, services: AppServices = Depends(get_services)):
    """
    查询单词，支持通过变形词查到原形
    """
    dictionary = services.dictionary_service
    entry = dictionary.lookup(word)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"词典中没有该单词: {word}"
        )

    return {
        "word": entry.word,
        "definition": entry.definition,
        "extracted_definition": dictionary.get_extracted_definition(entry.word),
        "simplified_definition": dictionary.get_simplified_definition(entry.word),
        "ultra_simplified_definition": dictionary.get_ultra_simplified_definition(entry.word),
        "example_sentence": entry.example_sentences_raw,
        "related_words": sorted(entry.related_words_variants)
    }


@router.get("/search", response_model=DictionarySearchResponse)
async def search_words(q: str, limit: int = 10, services: AppServices = Depends(get_services)):
    """
    搜索单词：英文按前缀联想，中文按释义关键词
    """
    results = services.dictionary_service.search(q, limit)
    return {
        "query": q,
        "results": [{"word": word, "definition": definition} for word, definition in results],
        "total": len(results)
    }
