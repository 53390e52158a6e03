"""
WSGI entry point.

    gunicorn app:app
    python app.py
"""
import os

from marketmetric import create_app

app = create_app(os.getenv('FLASK_ENV', 'development'))

if __name__ == '__main__':
    app.run(host=os.getenv('HOST', '127.0.0.1'), port=int(os.getenv('PORT', '5000')))
