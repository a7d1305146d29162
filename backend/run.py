import logging

from gridduel import create_app, socketio

app = create_app()

if __name__ == '__main__':
    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    app.logger.info(f"Server listening on {app.config['HOST']}:{app.config['PORT']}")
    # Werkzeug serves the websocket transport when no eventlet/gevent is installed
    socketio.run(
        app,
        host=app.config['HOST'],
        port=app.config['PORT'],
        debug=app.config['DEBUG'],
        allow_unsafe_werkzeug=True,
    )
