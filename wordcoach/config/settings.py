from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional

class Settings(BaseSettings):
    """应用配置"""

    # 应用配置
    APP_NAME: str = "单词学习核心服务"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # 本地词典数据库（只读，启动时整体加载）
    DICTIONARY_DB_PATH: str = "data/dictionary.db"
    DICTIONARY_TABLE: str = "dictionary"

    # 测试会话历史数据库
    DATABASE_URL: str = "sqlite:///./data/wordcoach.db"

    # 词本配置
    WORDBOOK_MANIFEST_PATH: str = "data/Wordbooks.json"
    WORDBOOK_DIR: str = "data/wordbooks"

    # 远程计划/状态服务配置
    API_BASE_URL: str = "https://api.savanalearns.cc/"
    API_TOKEN: Optional[str] = None
    REQUEST_TIMEOUT: int = 15
    USE_MOCK_REMOTE: bool = False

    # 单词状态上报类型
    ROUND_END_TEST_TYPE: str = "round_end_assessment"
    FAMILIAR_TEST_TYPE: str = "familiar"

    # WebSocket配置
    WEBSOCKET_HOST: str = "0.0.0.0"
    WEBSOCKET_PORT: int = 8000
    WEBSOCKET_PING_INTERVAL: int = 20
    WEBSOCKET_PING_TIMEOUT: int = 20

    # 日志配置
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
    LOG_DIR: str = "logs"
    LOG_FILE: str = "wordcoach.log"

    model_config = ConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

# 创建全局配置实例
settings = Settings()
