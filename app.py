"""Flask web app for the long-form story generator."""

# Load environment variables from .env file before other imports
from dotenv import load_dotenv  # type: ignore[import-untyped]

load_dotenv()  # noqa: E402

import os  # noqa: E402
import logging  # noqa: E402
from typing import Any, Callable, Dict, Optional  # noqa: E402
from flask import Flask  # noqa: E402
from flask_cors import CORS  # type: ignore[import-untyped]  # noqa: E402
from flask_limiter import Limiter  # type: ignore[import-untyped]  # noqa: E402
from flask_limiter.util import get_remote_address  # type: ignore[import-untyped]  # noqa: E402
from src.longstory.api.routes import register_routes  # noqa: E402
from src.longstory.config import load_config  # noqa: E402
from src.longstory.credentials import CredentialPool  # noqa: E402
from src.longstory.providers.factory import create_executor  # noqa: E402
from src.longstory.utils.errors import register_error_handlers  # noqa: E402

# Configure logging
logging.basicConfig(
    level=logging.INFO if os.getenv('FLASK_ENV') != 'development' else logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Request bodies carry long style examples
MAX_CONTENT_LENGTH = 10 * 1024 * 1024


def create_app(
    config: Optional[Dict[str, Any]] = None,
    pool: Optional[CredentialPool] = None,
    transport: Optional[Any] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        config: Overrides applied on top of the environment configuration
        pool: Credential pool (default: loaded from GEMINI_KEY_* slots)
        transport: Generation transport (default: GeminiProvider)
        sleep: Backoff sleep function (default: time.sleep)

    Returns:
        Configured Flask app
    """
    flask_app = Flask(__name__)
    flask_app.config.update(load_config())
    flask_app.config["MAX_CONTENT_LENGTH"] = MAX_CONTENT_LENGTH
    if config:
        flask_app.config.update(config)

    CORS(flask_app)

    limiter = Limiter(
        app=flask_app,
        key_func=get_remote_address,
        storage_uri=flask_app.config["RATELIMIT_STORAGE_URL"],
        headers_enabled=True
    )

    if pool is None:
        pool = CredentialPool.load()
    executor = create_executor(
        pool,
        config=flask_app.config,
        transport=transport,
        sleep=sleep,
    )
    flask_app.extensions["longstory"] = {"pool": pool, "executor": executor}

    register_error_handlers(flask_app, debug=os.getenv('FLASK_ENV') == 'development')
    register_routes(flask_app, limiter)

    logger.info(f"Story generator ready: {len(pool)} keys loaded")
    return flask_app


app = create_app()


if __name__ == '__main__':
    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', '3000')),
        debug=os.getenv('FLASK_ENV') == 'development',
        threaded=True,
    )
