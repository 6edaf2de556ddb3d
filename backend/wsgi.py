try:
    from backend.sketchbluff.config import Config
    from backend.sketchbluff.server import create_app
    from backend.sketchbluff.utils.log import setup_logging
except ImportError:  # pragma: no cover
    from sketchbluff.config import Config
    from sketchbluff.server import create_app
    from sketchbluff.utils.log import setup_logging

setup_logging(Config.LOG_LEVEL)

app, socketio = create_app()
