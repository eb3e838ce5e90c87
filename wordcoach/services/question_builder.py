import random
import logging
from typing import List, Optional

from wordcoach.coordinator.test_types import TestType, TestQuestion
from wordcoach.services.dictionary_service import DictionaryService

logger = logging.getLogger(__name__)

# 使用精简释义的题型
SIMPLIFIED_TYPES = {TestType.WORD_TO_MEANING_SELECT, TestType.SPEECH_RECOGNITION_TEST}
# 使用极简释义的题型
ULTRA_SIMPLIFIED_TYPES = {TestType.WORD_MEANING_MATCH}


class TestQuestionBuilder:
    """根据题型为单词列表生成题目"""
    __test__ = False

    def __init__(self, dictionary_service: DictionaryService, rng: random.Random = None):
        self.dictionary_service = dictionary_service
        self.rng = rng or random.Random()

    def chinese_for(self, word: str, test_type: TestType) -> Optional[str]:
        """按题型选择中文释义的精简程度"""
        if test_type in SIMPLIFIED_TYPES:
            return self.dictionary_service.get_simplified_definition(word)
        if test_type in ULTRA_SIMPLIFIED_TYPES:
            return self.dictionary_service.get_ultra_simplified_definition(word)
        return self.dictionary_service.get_extracted_definition(word)

    def create_question(self, word: str, test_type: TestType) -> Optional[TestQuestion]:
        chinese = self.chinese_for(word, test_type)
        if not chinese:
            logger.warning(f"单词没有可用的中文释义，跳过: {word} ({test_type.display_name})")
            return None

        return TestQuestion(
            word=word,
            chinese_text=chinese,
            full_definition=self.dictionary_service.get_definition(word),
        )

    def build(self, words: List[str], test_type: TestType) -> List[TestQuestion]:
        """
        为一个题型生成题目

        Args:
            words: 本轮单词
            test_type: 题型

        Returns:
            List[TestQuestion]: 随机顺序的题目，无法出题的单词被跳过
        """
        questions = []
        for word in words:
            question = self.create_question(word, test_type)
            if question is not None:
                questions.append(question)

        self.rng.shuffle(questions)
        logger.info(f"{test_type.display_name} 题目准备完成: {len(questions)}/{len(words)}")
        return questions
