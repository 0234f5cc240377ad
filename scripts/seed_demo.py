# scripts/seed_demo.py
"""Creates the schema and a small demo assessment for local runs (no LLM needed).

Run with: python -m scripts.seed_demo
"""
import os

from sqlmodel import Session, select

from app.core.db import get_engine, init_db
from app.models.db_models import (
    Assessment,
    Question,
    User,
    QTYPE_MCQ,
    QTYPE_TEXT,
    QTYPE_VOICE,
    ROLE_ADMIN,
)

ADMIN_ID = os.getenv("SEED_ADMIN_ID", "admin-1")


def main():
    engine = get_engine()
    init_db(engine)
    with Session(engine) as session:
        if session.get(User, ADMIN_ID) is None:
            session.add(User(id=ADMIN_ID, email="admin@example.com", role=ROLE_ADMIN))

        existing = session.exec(select(Assessment).where(Assessment.title == "Python Basics")).first()
        if existing is not None:
            session.commit()
            print(f"Demo assessment already present (id={existing.id}).")
            return

        a = Assessment(
            title="Python Basics",
            description="Short demo covering core Python.",
            category="Programming",
            difficulty="beginner",
            duration=15,
            has_voice=True,
        )
        session.add(a)
        session.flush()

        qs = [
            Question(assessment_id=a.id, type=QTYPE_MCQ, order=1, points=1,
                     question="Which keyword defines a function?",
                     options=["func", "def", "lambda", "fn"], correct_answer="B"),
            Question(assessment_id=a.id, type=QTYPE_MCQ, order=2, points=1,
                     question="What does len([1, 2, 3]) return?",
                     options=["2", "3", "4", "None"], correct_answer="B"),
            Question(assessment_id=a.id, type=QTYPE_TEXT, order=3, points=5,
                     question="Explain the difference between a list and a tuple.",
                     rubric="Mentions mutability, typical use cases and hashability."),
            Question(assessment_id=a.id, type=QTYPE_VOICE, order=4, points=5,
                     question="Walk us through how you would debug a failing unit test."),
        ]
        session.add_all(qs)
        a.total_questions = len(qs)
        session.add(a)
        session.commit()
        print(f"Seeded assessment id={a.id} with {len(qs)} questions; admin user '{ADMIN_ID}'.")


if __name__ == "__main__":
    main()
