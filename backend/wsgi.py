# backend/wsgi.py
# FLASK_APP entry point: `python -m flask --app wsgi <group> <command>`
from loko import create_app

app = create_app()
