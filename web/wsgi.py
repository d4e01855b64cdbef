"""
WSGI entrypoint. In production, point your server (gunicorn/uwsgi) here:

    gunicorn 'wsgi:app' --bind 0.0.0.0:8443 --worker-class gthread --threads 16

Run a single worker: collectors, the sequence counter and the stream hub are
per-process state. `python wsgi.py` starts the development server, with TLS
when FLUIDITY_TLS_CERT/FLUIDITY_TLS_KEY are set.
"""

from fluidity import create_app

app = create_app()


if __name__ == "__main__":
    ssl_context = None
    if app.config["TLS_CERT"] and app.config["TLS_KEY"]:
        ssl_context = (app.config["TLS_CERT"], app.config["TLS_KEY"])
    app.run(host="0.0.0.0", port=app.config["PORT"], ssl_context=ssl_context, threaded=True)
