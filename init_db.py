"""
Initialize database tables.
Run this on first deploy.

Set RESET_DB=1 environment variable to drop and recreate all tables.
"""
import os

from marketmetric import create_app, db


def init_db():
    """Create all database tables and the storage bucket."""
    app = create_app(os.getenv('FLASK_ENV', 'production'))

    with app.app_context():
        if os.getenv('RESET_DB', '').strip() in ('1', 'true', 'yes'):
            print("RESET_DB is set - dropping all tables...")
            db.drop_all()
            print("Tables dropped.")

        print("Creating database tables...")
        db.create_all()
        print("Database tables created successfully!")

        try:
            created = app.extensions['storage'].ensure_bucket()
            print("Storage bucket created." if created else "Storage bucket already exists.")
        except Exception as e:
            print(f"Storage bucket check failed: {e}")


if __name__ == '__main__':
    init_db()
