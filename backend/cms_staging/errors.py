from flask import current_app, jsonify
from pydantic import ValidationError
from cms_staging.domain.exceptions import StagingError


def register_error_handlers(app):
    @app.errorhandler(StagingError)
    def handle_staging_error(error):
        if error.status_code >= 500:
            current_app.logger.error(f"{type(error).__name__}: {error}")

        response = jsonify({
            "error": type(error).__name__,
            "message": str(error)
        })
        response.status_code = error.status_code
        return response

    @app.errorhandler(ValidationError)
    def handle_validation_error(error):
        response = jsonify({
            "error": "ValidationError",
            "message": "Invalid entity payload",
            "details": error.errors(include_url=False, include_context=False)
        })
        response.status_code = 400
        return response
