from pathlib import Path
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
import logging

from wordcoach.config.settings import settings

logger = logging.getLogger(__name__)


def _build_engine(database_url: str) -> Engine:
    """创建数据库引擎，SQLite需要关闭同线程检查"""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        _ensure_sqlite_dir(database_url)
    return create_engine(
        database_url,
        echo=settings.DEBUG,  # 在DEBUG模式下输出SQL语句
        pool_pre_ping=True,
        connect_args=connect_args,
    )


def _ensure_sqlite_dir(database_url: str):
    """确保SQLite文件所在目录存在"""
    path = database_url.split("///", 1)[-1]
    if path and path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)


# 测试会话历史数据库
engine = _build_engine(settings.DATABASE_URL)

# 创建SessionLocal类
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """获取数据库会话"""
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"数据库会话错误: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def get_db_session() -> Session:
    """
    直接获取数据库会话
    在服务层中使用
    """
    return SessionLocal()


def check_db_connection() -> bool:
    """检查数据库连接是否正常"""
    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
        return True
    except Exception as e:
        logger.error(f"数据库连接检查失败: {e}")
        return False


def init_db():
    """初始化数据库表"""
    try:
        from wordcoach.models.base import Base
        from wordcoach.models.test_session_record import TestSessionRecord

        # 创建所有表
        Base.metadata.create_all(bind=engine)
        logger.info("数据库表初始化完成")

    except Exception as e:
        logger.error(f"数据库初始化失败: {e}")
        raise


def open_dictionary_session(db_path: str = None) -> Session:
    """
    打开本地词典库的只读会话

    Args:
        db_path: 词典库文件路径，默认取配置

    Returns:
        Session: SQLAlchemy会话

    Raises:
        FileNotFoundError: 词典库文件不存在
    """
    path = Path(db_path or settings.DICTIONARY_DB_PATH)
    if not path.exists():
        raise FileNotFoundError(f"词典库文件不存在: {path}")

    dictionary_engine = create_engine(
        f"sqlite:///{path}",
        echo=settings.DEBUG,
        connect_args={"check_same_thread": False},
    )
    return sessionmaker(autocommit=False, autoflush=False, bind=dictionary_engine)()
