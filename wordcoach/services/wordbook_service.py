import json
import logging
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from wordcoach.config.settings import settings

logger = logging.getLogger(__name__)


class Wordbook(BaseModel):
    book_name: str = Field(alias="bookName")
    db_file_name: str = Field(alias="dbFileName")

    model_config = ConfigDict(populate_by_name=True)


class WordbookCategory(BaseModel):
    category_name: str = Field(alias="categoryName")
    wordbooks: List[Wordbook]

    model_config = ConfigDict(populate_by_name=True)


class WordbookService:
    """词本清单服务，从 Wordbooks.json 读取词本分类与对应的数据库文件"""

    def __init__(self, manifest_path: str = None):
        self.manifest_path = Path(manifest_path or settings.WORDBOOK_MANIFEST_PATH)
        self._manifest: Optional[List[WordbookCategory]] = None

    def load_manifest(self) -> List[WordbookCategory]:
        """加载词本清单，读取或解析失败时返回空清单"""
        if self._manifest is not None:
            return self._manifest

        try:
            raw = json.loads(self.manifest_path.read_text(encoding="utf-8"))
            self._manifest = [WordbookCategory.model_validate(item) for item in raw]
            logger.info(f"词本清单加载完成: {len(self._manifest)} 个分类")
        except (OSError, json.JSONDecodeError, ValidationError, TypeError) as e:
            logger.error(f"词本清单加载失败 {self.manifest_path}: {e}")
            return []
        return self._manifest

    def find_db_file_name(self, book_name: str) -> Optional[str]:
        """根据词本名称查找数据库文件名"""
        for category in self.load_manifest():
            for wordbook in category.wordbooks:
                if wordbook.book_name == book_name:
                    return wordbook.db_file_name
        return None
