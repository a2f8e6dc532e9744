from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from transcript_config import TranscriptConfig
from transcript_service import TranscriptService


def create_app(service: TranscriptService = None, config: TranscriptConfig = None) -> Flask:
    """Build the Flask app serving the transcript endpoint."""
    app = Flask(__name__)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)

    if service is None:
        service = TranscriptService(config=config or TranscriptConfig.from_env())
    app.extensions["transcript_service"] = service

    from routes import transcript_routes
    app.register_blueprint(transcript_routes)

    return app
