# eventhub/main.py
import uvicorn
from eventhub.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "eventhub.server.server:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        workers=settings.WORKERS,
        log_level=settings.LOG_LEVEL.lower()
    )
