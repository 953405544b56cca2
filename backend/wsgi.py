# backend/wsgi.py
from posail import create_app

app = create_app()
