"""
Local runner for the transcript web service.
"""

import os

from app import create_app
from logging_setup import configure_logging
from transcript_config import TranscriptConfig


def run():
    config = TranscriptConfig.from_env()
    configure_logging(log_level=config.log_level, use_json=config.log_format == "json")

    app = create_app(config=config)
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port, debug=False)


if __name__ == "__main__":
    run()
