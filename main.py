import uvicorn

from relay.config import Settings
from relay.main import create_app

settings = Settings.from_env()

app = create_app(settings)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
