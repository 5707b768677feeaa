try:
    from backend.wordguess.server import create_app
except ImportError:  # pragma: no cover
    from wordguess.server import create_app

app, socketio = create_app()
