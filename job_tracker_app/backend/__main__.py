"""
Run the API server: ``python -m job_tracker_app.backend``.
"""
import uvicorn

from .config.settings import get_settings


def main():
    settings = get_settings()
    uvicorn.run(
        "job_tracker_app.backend.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload_on_change,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
