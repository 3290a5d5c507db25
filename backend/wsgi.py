# backend/wsgi.py
from stocktrack import create_app

app = create_app()
