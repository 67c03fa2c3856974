#!/usr/bin/env python3
"""
Run Pet It or Cook It locally

Usage:
    python3 server.py

Then open: http://localhost:8000
"""

import logging
import webbrowser

from api_proxy import create_app
from settings import Settings


def configure_logging(level):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


def main():
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    app = create_app(settings)

    url = f'http://localhost:{settings.port}'
    print(f'🚀 Pet It or Cook It running at {url}')
    if not settings.vision_api_key:
        print('⚠️  GOOGLE_VISION_API_KEY not set, classifications will be random')
    print('⏹️  Press Ctrl+C to stop the server\n')

    # Try to open browser automatically
    try:
        webbrowser.open(url)
    except webbrowser.Error:
        pass

    app.run(host=settings.host, port=settings.port, debug=settings.debug)


if __name__ == '__main__':
    main()
