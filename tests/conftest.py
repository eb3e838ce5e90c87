import json
import random

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker

from wordcoach.models.base import Base, DictionaryBase
from wordcoach.models.dictionary_entry import DictionaryEntry
from wordcoach.models.test_session_record import TestSessionRecord
from wordcoach.services.dictionary_service import DictionaryService

DICTIONARY_ROWS = [
    {
        "word": "cat",
        "definition": "英文释义：a small animal 中文释义：n. 猫；猫科动物（总称） 词性：n.",
        "related_words": json.dumps(["cats"]),
        "sentence": "The cat is sleeping.",
    },
    {
        "word": "dog",
        "definition": "中文释义：n. 狗（宠物）\nv. 跟踪",
        "related_words": json.dumps(["dogs", "dogged"]),
        "sentence": "I walk my dog every day.",
    },
    {
        "word": "run",
        "definition": "中文释义：v. 跑，奔跑",
        "related_words": "not json",
        "sentence": None,
    },
    {
        "word": "apple",
        "definition": "中文释义：n. 苹果",
        "related_words": None,
        "sentence": "An apple a day.",
    },
    {
        # 没有中文释义，无法出题
        "word": "xyz",
        "definition": "no chinese here",
        "related_words": None,
        "sentence": None,
    },
]


@pytest.fixture
def dictionary_db(tmp_path):
    """在临时目录中创建词典库"""
    path = tmp_path / "dictionary.db"
    engine = create_engine(f"sqlite:///{path}")
    DictionaryBase.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine)()
    for row in DICTIONARY_ROWS:
        session.add(DictionaryEntry(**row))
    session.commit()
    session.close()
    engine.dispose()
    return str(path)


@pytest.fixture
def dictionary_service(dictionary_db):
    service = DictionaryService(rng=random.Random(0))
    assert service.load(dictionary_db)
    return service


@pytest.fixture
def history_db(tmp_path):
    """测试会话历史库"""
    engine = create_engine(f"sqlite:///{tmp_path / 'history.db'}",
                           connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine, tables=[TestSessionRecord.__table__])
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def wordbook_files(tmp_path):
    """词本清单与词本数据库"""
    wordbook_dir = tmp_path / "wordbooks"
    wordbook_dir.mkdir()
    manifest = tmp_path / "Wordbooks.json"
    manifest.write_text(json.dumps([
        {
            "categoryName": "小学",
            "wordbooks": [{"bookName": "小学核心词", "dbFileName": "primary.db"}]
        }
    ], ensure_ascii=False), encoding="utf-8")

    engine = create_engine(f"sqlite:///{wordbook_dir / 'primary.db'}")
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE plan_words (word TEXT PRIMARY KEY)"))
        for word in ["cat", "dog", "run", "apple", "pear"]:
            conn.execute(text("INSERT INTO plan_words (word) VALUES (:word)"), {"word": word})
    engine.dispose()
    return str(manifest), str(wordbook_dir)
