import uvicorn

from .config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "batepapo.main:app",
        host=settings.host,
        port=settings.port,
    )
