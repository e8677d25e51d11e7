import uvicorn

from chuka_market.api.main import create_asgi_app
from chuka_market.core.config import get_settings

settings = get_settings()
app = create_asgi_app(settings)


def run() -> None:
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
