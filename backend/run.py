import os

import uvicorn

from meetbook.core.config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "meetbook.main:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", 8000)),
        log_level=settings.log_level.lower(),
        # Auto-reload only while developing
        reload=settings.app_env == "development",
    )
