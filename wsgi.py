"""
WSGI entry point for the SignalFriend API
"""
from dotenv import load_dotenv

load_dotenv()

from signalfriend.factory import create_app  # noqa: E402

# Gunicorn/uWSGI compatibility
application = create_app()
app = application

if __name__ == "__main__":
    cfg = app.config["APP_CONFIG"]
    app.run(host=cfg["APP_HOST"], port=cfg["APP_PORT"], debug=False)
