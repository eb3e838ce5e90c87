import json
import re
from datetime import datetime, timezone
from typing import Any, Iterable, List

_CJK = re.compile(r"[一-鿿]")

def format_timestamp(dt: datetime = None) -> str:
    """格式化时间戳"""
    if not dt:
        dt = datetime.now(timezone.utc)
    return dt.isoformat()

def safe_json_loads(json_str: str, default: Any = None) -> Any:
    """安全的JSON解析"""
    try:
        return json.loads(json_str)
    except (json.JSONDecodeError, TypeError):
        return default

def contains_chinese(text: str) -> bool:
    """判断文本是否包含中文字符"""
    return bool(text and _CJK.search(text))

def uniqued(items: Iterable[str]) -> List[str]:
    """去重并保持首次出现的顺序"""
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result
