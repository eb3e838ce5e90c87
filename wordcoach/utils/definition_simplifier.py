import re
import random
import logging
from typing import Optional

logger = logging.getLogger(__name__)

CHINESE_PREFIX = "中文释义："
POS_MARKER = "词性："

# 换行或编号（1. 2. 或 1、2、）
_SEGMENT_SPLIT = re.compile(r"\n|\r|\d+[.、]")
# 全角与半角括号及其内容
_PARENTHESES = re.compile(r"（.*?）|\(.*?\)")
# 逗号、分号（全角与半角）
_CLAUSE_SPLIT = re.compile(r"[,，；;]")
# 词性缩写前缀
_POS_PREFIX = re.compile(r"^(n|v|adj|adv|prep|pron|conj|interj|int)\.\s*")

FULLWIDTH_SEMICOLON = "；"


class DefinitionSimplifier:
    """
    中文释义精简器

    原始释义为中英混排文本，其中中文部分以"中文释义："开头，
    可能以"词性："结束。三个阶段分别给出不同粒度的中文释义：
    extract 保留完整中文部分，simplify 每个义项只保留第一个分句，
    ultra_simplify 随机给出一个去掉词性标记的义项。
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def extract(self, definition: Optional[str]) -> Optional[str]:
        """提取"中文释义："与"词性："之间的文本"""
        if not definition:
            return None

        start = definition.find(CHINESE_PREFIX)
        if start < 0:
            return None
        start += len(CHINESE_PREFIX)

        end = definition.find(POS_MARKER, start)
        if end < 0:
            return definition[start:].strip()
        return definition[start:end].strip()

    def simplify(self, definition: Optional[str]) -> Optional[str]:
        """
        精简中文释义

        Args:
            definition: 原始完整释义

        Returns:
            Optional[str]: 以全角分号连接的各义项首个分句，无结果时为None
        """
        raw = self.extract(definition)
        if raw is None:
            return None

        clauses = []
        for segment in _SEGMENT_SPLIT.split(raw):
            segment = _PARENTHESES.sub("", segment.strip())
            # 分隔符两侧的空片段不算分句
            first = next((p.strip() for p in _CLAUSE_SPLIT.split(segment) if p.strip()), None)
            if first:
                clauses.append(first)

        if not clauses:
            return None
        return FULLWIDTH_SEMICOLON.join(clauses)

    def ultra_simplify(self, simplified_definition: Optional[str]) -> Optional[str]:
        """从精简释义中随机取一个去掉词性前缀的义项，每次调用重新随机"""
        if not simplified_definition:
            return None

        parts = [p.strip() for p in simplified_definition.split(FULLWIDTH_SEMICOLON)]
        cleaned = [_POS_PREFIX.sub("", p).strip() for p in parts if p]
        cleaned = [p for p in cleaned if p]

        if not cleaned:
            return simplified_definition
        return self.rng.choice(cleaned)
