"""
Flask route handlers for the long-form story API.

Routes reach the shared credential pool and call executor through
current_app.extensions["longstory"], which create_app() populates.
"""

import json
import logging
from typing import TYPE_CHECKING, Any, Dict, Iterator, Type, TypeVar

if TYPE_CHECKING:
    from flask import Flask
    from flask_limiter import Limiter

from flask import Response, current_app, jsonify, request, stream_with_context
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from src.longstory import __version__
from src.longstory.models import AutoGenerateRequest, GenerateRequest
from src.longstory.session import GenerationSession
from src.longstory.setup_generator import generate_story_setup
from src.longstory.utils.errors import ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _services() -> Dict[str, Any]:
    return current_app.extensions["longstory"]


def parse_request(model: Type[ModelT]) -> ModelT:
    """
    Validate the JSON request body against a model.

    Raises:
        ValidationError: If the body is missing or fails validation
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        fields = [".".join(str(part) for part in error["loc"]) for error in e.errors()]
        raise ValidationError(
            f"Missing or invalid fields: {', '.join(fields)}",
            details={"fields": fields, "errors": [error["msg"] for error in e.errors()]},
        ) from e


def _new_session(body: GenerateRequest) -> GenerationSession:
    return GenerationSession(
        params=body.to_story_params(),
        target_length=body.target_length,
        executor=_services()["executor"],
        context_chars=current_app.config["CONTEXT_CHARS"],
    )


def format_sse(event: Dict[str, Any]) -> str:
    """Encode one event as a Server-Sent Events frame."""
    return f"data: {json.dumps(event)}\n\n"


def register_routes(flask_app: 'Flask', limiter_instance: 'Limiter') -> None:
    """
    Register all application routes.

    Args:
        flask_app: Flask application instance
        limiter_instance: Limiter instance for rate limiting
    """

    @flask_app.route('/')
    def index():
        """Service status with the number of loaded keys."""
        return jsonify({
            "status": "online",
            "message": "Story Generator API",
            "version": __version__,
            "keys": len(_services()["pool"]),
        })

    @flask_app.route('/api/health')
    def health():
        """Health check with key availability (never key values)."""
        status = _services()["pool"].status()
        return jsonify({
            "status": "online",
            "keys": status["total"],
            "available_keys": status["available"],
        })

    @flask_app.route('/api/generate', methods=['POST'])
    @limiter_instance.limit(lambda: current_app.config["GENERATE_RATE_LIMIT"])
    def generate_story():
        """
        Generate a full story in one response.

        Returns:
            JSON response:
            {
                "success": true,
                "script": str,
                "stats": {"totalChars", "totalWords", "targetLength", "achieved", "chunks"}
            }

        Raises:
            ValidationError: If required fields are missing
            ConfigurationError, ExhaustedError, ServiceError, RetryExhaustedError:
                If generation fails (rendered by the error handlers)
        """
        body = parse_request(GenerateRequest)
        logger.info(f"Generating: \"{body.title}\"")
        result = _new_session(body).run()
        return jsonify({
            "success": True,
            "script": result.script,
            "stats": result.stats(),
        })

    @flask_app.route('/api/generate/stream', methods=['POST'])
    @limiter_instance.limit(lambda: current_app.config["GENERATE_RATE_LIMIT"])
    def generate_story_stream():
        """
        Generate a story as a Server-Sent Events stream.

        Events: init, progress, chunk, error, complete (see GenerationSession.stream).
        """
        body = parse_request(GenerateRequest)
        session = _new_session(body)
        logger.info(f"Streaming: \"{body.title}\" ({session.plan.count} parts)")

        def events() -> Iterator[str]:
            try:
                for event in session.stream():
                    yield format_sse(event)
            finally:
                # Client went away: stop before the next chunk
                session.cancel()

        return Response(
            stream_with_context(events()),
            mimetype='text/event-stream',
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    @flask_app.route('/api/auto-generate', methods=['POST'])
    @limiter_instance.limit(lambda: current_app.config["AUTO_GENERATE_RATE_LIMIT"])
    def auto_generate():
        """
        Suggest characters, location and concept for a title.

        Returns:
            JSON response: {"success": true, "setup": {...}}
        """
        body = parse_request(AutoGenerateRequest)
        setup = generate_story_setup(body.title, body.niche, body.tone, _services()["executor"])
        return jsonify({"success": True, "setup": setup.model_dump()})
