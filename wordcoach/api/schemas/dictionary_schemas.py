from pydantic import BaseModel
from typing import List, Optional


class DictionaryLookupResponse(BaseModel):
    word: str
    definition: str
    extracted_definition: Optional[str] = None
    simplified_definition: Optional[str] = None
    ultra_simplified_definition: Optional[str] = None
    example_sentence: Optional[str] = None
    related_words: List[str] = []


class SearchResult(BaseModel):
    word: str
    definition: str


class DictionarySearchResponse(BaseModel):
    query: str
    results: List[SearchResult]
    total: int


class DictionaryStatusResponse(BaseModel):
    is_loading: bool
    is_loaded: bool
    load_failed: bool
    word_count: int
