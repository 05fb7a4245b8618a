"""
Initialize database tables.
Run this on first deploy instead of flask db upgrade.

Set RESET_DB=1 environment variable to drop and recreate all tables.
Set SEED_COURSES=1 to insert the sample catalogue when the courses table is empty.
"""
import os

from app import create_app, db
from app.models import Course

SAMPLE_COURSES = [
    {
        'title': 'Cooking Fundamentals',
        'description': 'Knife skills, heat control and the five mother sauces.',
        'image_url': 'https://images.masterclass.test/courses/cooking.jpg',
        'price': '49.99',
    },
    {
        'title': 'Creative Writing',
        'description': 'From first draft to finished manuscript.',
        'image_url': 'https://images.masterclass.test/courses/writing.jpg',
        'price': '39.00',
    },
    {
        'title': 'Photography Essentials',
        'description': 'Light, composition and editing for any camera.',
        'image_url': 'https://images.masterclass.test/courses/photography.jpg',
        'price': '59.50',
    },
]


def seed_courses():
    """Insert sample courses if none exist."""
    if Course.query.first() is not None:
        print("Courses already present, skipping seed.")
        return
    for data in SAMPLE_COURSES:
        db.session.add(Course(**data))
    db.session.commit()
    print(f"Seeded {len(SAMPLE_COURSES)} courses.")


def init_db():
    """Create all database tables."""
    app = create_app(os.getenv('FLASK_ENV', 'production'))

    with app.app_context():
        if os.getenv('RESET_DB', '').strip() in ('1', 'true', 'yes'):
            print("RESET_DB is set - dropping all tables...")
            db.drop_all()
            print("Tables dropped.")

        print("Creating database tables...")
        db.create_all()
        print("Database tables created successfully!")

        if os.getenv('SEED_COURSES', '').strip() in ('1', 'true', 'yes'):
            seed_courses()


if __name__ == '__main__':
    init_db()
