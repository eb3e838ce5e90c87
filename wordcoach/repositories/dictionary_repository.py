from typing import List
from sqlalchemy.orm import Session

from wordcoach.models.dictionary_entry import DictionaryEntry
from wordcoach.repositories.base import BaseRepository


class DictionaryRepository(BaseRepository[DictionaryEntry]):
    """本地词典库的只读访问"""

    def __init__(self, db: Session):
        super().__init__(db, DictionaryEntry)

    def get_all_entries(self) -> List[DictionaryEntry]:
        """一次性读取全部词条"""
        return self.db.query(DictionaryEntry).all()

