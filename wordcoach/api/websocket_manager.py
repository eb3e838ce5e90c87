import asyncio
import logging
import json
from typing import Any, Dict, List, Set
from fastapi import WebSocket

logger = logging.getLogger(__name__)


class WebSocketManager:
    """WebSocket连接管理器，把协调器事件推送给所有订阅的界面"""

    def __init__(self):
        # 存储活跃连接: connection_id -> WebSocket
        self.active_connections: Dict[str, WebSocket] = {}
        self._pending: Set[asyncio.Task] = set()
        logger.info("WebSocket管理器初始化完成")

    async def connect(self, websocket: WebSocket, connection_id: str):
        """
        保存WebSocket连接到管理器

        Args:
            websocket: 已accept的WebSocket连接
            connection_id: 连接ID
        """
        self.active_connections[connection_id] = websocket
        logger.info(f"WebSocket连接已建立: {connection_id}")

    def disconnect(self, connection_id: str):
        if connection_id in self.active_connections:
            del self.active_connections[connection_id]
            logger.info(f"WebSocket连接已断开: {connection_id}")

    async def send_message(self, connection_id: str, message: Dict[str, Any]):
        """向指定连接发送消息"""
        websocket = self.active_connections.get(connection_id)
        if not websocket:
            logger.warning(f"尝试向不存在的连接发送消息: {connection_id}")
            return
        try:
            await websocket.send_text(json.dumps(message, ensure_ascii=False))
            logger.debug(f"消息已发送到 {connection_id}: {message.get('type', 'unknown')}")
        except Exception as e:
            logger.error(f"发送消息到 {connection_id} 失败: {e}")
            self.disconnect(connection_id)

    async def broadcast(self, message: Dict[str, Any]):
        """广播消息到所有连接，发送失败的连接会被移除"""
        disconnected = []
        for connection_id, websocket in list(self.active_connections.items()):
            try:
                await websocket.send_text(json.dumps(message, ensure_ascii=False))
            except Exception as e:
                logger.error(f"广播消息到 {connection_id} 失败: {e}")
                disconnected.append(connection_id)

        for connection_id in disconnected:
            self.disconnect(connection_id)

    def publish_nowait(self, event: Dict[str, Any]):
        """
        协调器事件监听器

        在同步的状态转换中被调用，只负责安排一次广播
        """
        if not self.active_connections:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"没有运行中的事件循环，跳过广播: {event.get('type')}")
            return
        task = loop.create_task(self.broadcast(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def get_connection_count(self) -> int:
        return len(self.active_connections)

    async def close_all(self):
        for connection_id, websocket in list(self.active_connections.items()):
            try:
                await websocket.close()
            except Exception as e:
                logger.warning(f"关闭连接 {connection_id} 失败: {e}")
            self.disconnect(connection_id)


# 创建全局WebSocket管理器实例
websocket_manager = WebSocketManager()
