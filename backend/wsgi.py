# backend/wsgi.py
from binaudit import create_app

app = create_app()
