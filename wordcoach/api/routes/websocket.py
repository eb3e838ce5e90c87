import json
import logging
import uuid
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from wordcoach.api.websocket_manager import websocket_manager
from wordcoach.utils.helpers import format_timestamp

logger = logging.getLogger(__name__)
router = APIRouter()


@router.websocket("/ws/coordinator")
async def coordinator_websocket_endpoint(websocket: WebSocket):
    """
    协调器事件推送
    - 连接后先收到一次当前状态
    - 之后每次状态转换都会推送一个事件
    """
    await websocket.accept()
    connection_id = str(uuid.uuid4())
    await websocket_manager.connect(websocket, connection_id)

    try:
        coordinator = websocket.app.state.services.coordinator
        await websocket_manager.send_message(connection_id, {
            "type": "snapshot",
            "state": coordinator.snapshot(),
            "timestamp": format_timestamp()
        })

        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.error(f"消息JSON解析失败: {data}")
                continue

            if message.get("type") == "heartbeat":
                await websocket_manager.send_message(connection_id, {
                    "type": "heartbeat_ack",
                    "timestamp": format_timestamp()
                })
            else:
                await websocket_manager.send_message(connection_id, {
                    "type": "error",
                    "message": f"未知的消息类型: {message.get('type')}",
                    "timestamp": format_timestamp()
                })
    except WebSocketDisconnect:
        logger.info(f"WebSocket连接正常断开: {connection_id}")
    finally:
        websocket_manager.disconnect(connection_id)
