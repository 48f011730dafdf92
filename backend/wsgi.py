# backend/wsgi.py
from zenstyle import create_app

app = create_app()
