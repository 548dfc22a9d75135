"""Thin API launcher.

This is the uvicorn entrypoint. All application logic lives in the mindflow package.
Run with: uvicorn main:app --reload  (or: python main.py)

Note: The app instance is created here (not in mindflow.app) to avoid import-time
side effects. This allows tests to import create_app without requiring all
environment variables to be configured.
"""

import uvicorn

from mindflow.app import add_request_id_middleware, create_app
from mindflow.config import get_settings

app = create_app()
# Add request-id middleware LAST so it runs FIRST (outermost)
add_request_id_middleware(app)

__all__ = ["app"]


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
