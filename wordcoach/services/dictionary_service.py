import random
import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from wordcoach.repositories.dictionary_repository import DictionaryRepository
from wordcoach.utils.database import open_dictionary_session
from wordcoach.utils.definition_simplifier import DefinitionSimplifier
from wordcoach.utils.helpers import safe_json_loads, contains_chinese

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WordEntry:
    """词典词条，加载后不可变"""
    word: str
    definition: str
    related_words_variants: FrozenSet[str] = field(default_factory=frozenset)
    example_sentences_raw: Optional[str] = None


def parse_related_words(raw: Optional[str]) -> FrozenSet[str]:
    """解析JSON数组字符串形式的变形词，非法内容视为空"""
    if not raw:
        return frozenset()
    variants = safe_json_loads(raw, default=[])
    if not isinstance(variants, list):
        return frozenset()
    return frozenset(
        v.strip().lower() for v in variants
        if isinstance(v, str) and v.strip()
    )


class DictionaryService:
    """词典服务，启动时一次性把词典库加载到内存并提供查询"""

    def __init__(self, simplifier: DefinitionSimplifier = None, rng: random.Random = None):
        self.simplifier = simplifier or DefinitionSimplifier()
        self.rng = rng or random.Random()

        # 小写单词 -> 词条
        self.word_map: Dict[str, WordEntry] = {}
        # 小写变形词 -> 小写原形
        self.related_word_map: Dict[str, str] = {}

        self.is_loading = False
        self.is_loaded = False
        self.load_failed = False
        logger.info("词典服务初始化完成")

    def load(self, db_path: str = None) -> bool:
        """
        从本地词典库加载全部词条

        Args:
            db_path: 词典库路径，默认取配置

        Returns:
            bool: 是否加载成功；失败时查询表保持为空
        """
        if self.is_loaded:
            return True

        self.is_loading = True
        logger.info("开始加载词典...")
        try:
            db = open_dictionary_session(db_path)
            try:
                entries = DictionaryRepository(db).get_all_entries()
            finally:
                db.close()
                # 只加载一次，释放词典库连接
                db.get_bind().dispose()
        except (FileNotFoundError, SQLAlchemyError) as e:
            self.is_loading = False
            self.load_failed = True
            logger.error(f"词典加载失败: {e}")
            return False

        word_map = {}
        related_map = {}
        for row in entries:
            if not row.word:
                continue
            key = row.word.strip().lower()
            variants = parse_related_words(row.related_words)
            word_map[key] = WordEntry(
                word=row.word,
                definition=row.definition or "",
                related_words_variants=variants,
                example_sentences_raw=row.sentence,
            )
            for variant in variants:
                related_map[variant] = key

        self.word_map = word_map
        self.related_word_map = related_map
        self.is_loading = False
        self.is_loaded = True
        self.load_failed = False
        logger.info(f"词典加载完成: {len(self.word_map)} 个主词条, {len(self.related_word_map)} 个变形词")
        return True

    def lookup(self, word: str) -> Optional[WordEntry]:
        """
        查询词条：先查原形，未命中再通过变形词映射到原形

        Args:
            word: 待查单词（不区分大小写，忽略首尾空白）

        Returns:
            Optional[WordEntry]: 词条，未找到时为None
        """
        if not word:
            return None
        key = word.strip().lower()
        if not key:
            return None

        entry = self.word_map.get(key)
        if entry is not None:
            return entry

        root = self.related_word_map.get(key)
        if root is not None:
            return self.word_map.get(root)
        return None

    def get_definition(self, word: str) -> Optional[str]:
        entry = self.lookup(word)
        return entry.definition if entry else None

    def get_extracted_definition(self, word: str) -> Optional[str]:
        return self.simplifier.extract(self.get_definition(word))

    def get_simplified_definition(self, word: str) -> Optional[str]:
        return self.simplifier.simplify(self.get_definition(word))

    def get_ultra_simplified_definition(self, word: str) -> Optional[str]:
        return self.simplifier.ultra_simplify(self.get_simplified_definition(word))

    def get_example_sentence(self, word: str) -> Optional[str]:
        entry = self.lookup(word)
        return entry.example_sentences_raw if entry else None

    def search(self, text: str, limit: int = 10) -> List[Tuple[str, str]]:
        """搜索入口：含中文时按释义搜索，否则按英文前缀搜索"""
        if not text or not text.strip():
            return []
        if contains_chinese(text):
            return self.query_by_chinese_keyword(text.strip(), limit)
        return self.get_suggestions(text.strip(), limit)

    def get_suggestions(self, keyword: str, limit: int = 10) -> List[Tuple[str, str]]:
        """英文前缀联想"""
        prefix = keyword.lower()
        suggestions = []
        for key in sorted(self.word_map):
            if not key.startswith(prefix):
                continue
            entry = self.word_map[key]
            suggestions.append((entry.word, self.simplifier.simplify(entry.definition) or "..."))
            if len(suggestions) >= limit:
                break
        return suggestions

    def query_by_chinese_keyword(self, keyword: str, limit: int = 10) -> List[Tuple[str, str]]:
        """在原始释义中按中文关键词搜索"""
        matches = []
        for entry in self.word_map.values():
            if keyword in entry.definition:
                matches.append((entry.word, self.simplifier.simplify(entry.definition) or "..."))
                if len(matches) >= limit:
                    break
        return matches

    def get_random_distractor_words(self, correct_word: str, count: int = 3) -> List[str]:
        """为选择题随机挑选干扰单词"""
        target = correct_word.strip().lower()
        candidates = [w for w in self.word_map if w != target]
        return self.rng.sample(candidates, min(count, len(candidates)))

    def get_random_distractor_definitions(self, word: str, count: int = 3) -> List[str]:
        """为选择题随机挑选干扰释义"""
        correct = self.get_definition(word)
        candidates = [e.definition for e in self.word_map.values() if e.definition != correct]
        return self.rng.sample(candidates, min(count, len(candidates)))

    def get_status(self):
        return {
            "is_loading": self.is_loading,
            "is_loaded": self.is_loaded,
            "load_failed": self.load_failed,
            "word_count": len(self.word_map),
            "variant_count": len(self.related_word_map)
        }
