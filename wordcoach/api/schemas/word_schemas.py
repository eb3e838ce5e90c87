from pydantic import BaseModel
from typing import List


class FamiliarWordRequest(BaseModel):
    word: str


class FamiliarWordResponse(BaseModel):
    word: str
    reported: bool


class FamiliarWordListResponse(BaseModel):
    words: List[str]
    total: int
