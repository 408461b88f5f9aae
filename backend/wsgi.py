# backend/wsgi.py
from cardledger import create_app

app = create_app()
