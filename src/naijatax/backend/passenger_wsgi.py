"""WSGI entrypoint for serving the NaijaTax backend behind Passenger or gunicorn."""

from naijatax.backend.app import create_app

application = create_app()
