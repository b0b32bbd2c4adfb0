"""Development server: ``python run.py``; reloads on change when DEBUG is set."""
import uvicorn
from tunevault.core.config import settings


def main() -> None:
    uvicorn.run(
        "tunevault.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info",
    )


if __name__ == "__main__":
    main()
