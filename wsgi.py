"""
WSGI entrypoint for the transcript service (gunicorn wsgi:app)
"""

import logging

from app import create_app
from logging_setup import configure_logging
from transcript_config import TranscriptConfig

config = TranscriptConfig.from_env()

# Align with gunicorn handlers if present
_guni = logging.getLogger('gunicorn.error')
if _guni.handlers:
    logging.root.handlers = _guni.handlers
    logging.root.setLevel(_guni.level)
else:
    configure_logging(log_level=config.log_level, use_json=config.log_format == "json")

app = create_app(config=config)
