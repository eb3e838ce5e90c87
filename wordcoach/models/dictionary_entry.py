from sqlalchemy import Column, String, Text

from .base import DictionaryBase
from wordcoach.config.settings import settings

"""
词典词条模型
映射本地嵌入式词典库的词条表：单词、中英释义、变形词（JSON数组字符串）、例句。
"""
class DictionaryEntry(DictionaryBase):
    __tablename__ = settings.DICTIONARY_TABLE

    word = Column(String, primary_key=True)
    definition = Column(Text, nullable=False)
    related_words = Column(Text)
    sentence = Column(Text)

