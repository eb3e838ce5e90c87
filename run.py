import uvicorn
from wordcoach.main import app
from wordcoach.config.settings import settings

if __name__ == "__main__":
    uvicorn.run(
        "wordcoach.main:app",
        host=settings.WEBSOCKET_HOST,
        port=settings.WEBSOCKET_PORT,
        reload=False,
        ws_ping_interval=settings.WEBSOCKET_PING_INTERVAL,
        ws_ping_timeout=settings.WEBSOCKET_PING_TIMEOUT
    )
