"""
python -m api: development server.
Production runs create_app() under a WSGI server instead.
"""
import logging
import os

from . import create_app

logger = logging.getLogger("api")

app = create_app()

if __name__ == "__main__":
    host = os.getenv("FLASK_RUN_HOST", "127.0.0.1")
    port = int(os.getenv("FLASK_RUN_PORT", "8000"))
    if app.config.get("IS_PRODUCTION"):
        logger.warning("built-in server started with production config; use a WSGI server")
    logger.info("serving lodge members API on %s:%s (APP_ENV=%s)", host, port, app.config.get("APP_ENV"))
    app.run(host=host, port=port, debug=bool(app.config.get("DEBUG")))
