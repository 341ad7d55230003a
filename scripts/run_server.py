"""Run the RunCoach API with uvicorn using configured host and port."""
import uvicorn

from runcoach.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "runcoach.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
