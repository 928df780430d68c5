import uvicorn

from c6os.core.app_factory import create_app
from c6os.core.config import settings

app = create_app(settings)


def run() -> None:
    """Local development server."""
    uvicorn.run(
        "c6os.main:app",
        host=settings.app.host,
        port=settings.app.port,
        log_config=None,
    )


if __name__ == "__main__":
    run()
