"""
Sample Data Seed Script

Recreates the three tables and loads the sample rows:
- Two Sales records (High 1200.5, Low 300.0) on 2025-03-15
- Users Asha (Analyst) and Vikram (Admin)
- One analysis log entry by Asha
"""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from dataset_analytics.database import SessionLocal, engine, Base
from dataset_analytics.models import AnalysisLog, DatasetRecord, User, UserRole
from dataset_analytics.orchestrators import ReportOrchestrator
from dataset_analytics.utils.log_setup import configure_logging

logger = logging.getLogger("seed_sample_data")


def reset_schema():
    """Drop and recreate all tables (for demo purposes only)"""
    logger.info("Recreating tables...")
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


def seed(db: Session):
    """Insert the sample dataset, users and log entry"""
    db.add_all([
        DatasetRecord(
            record_id=1,
            category='Sales',
            value=1200.5,
            timestamp=datetime(2025, 3, 15, 10, 0, 0),
            label='High',
        ),
        DatasetRecord(
            record_id=2,
            category='Sales',
            value=300.0,
            timestamp=datetime(2025, 3, 15, 10, 5, 0),
            label='Low',
        ),
    ])
    db.add_all([
        User(user_id=1, name='Asha', role=UserRole.ANALYST),
        User(user_id=2, name='Vikram', role=UserRole.ADMIN),
    ])
    db.flush()
    db.add(AnalysisLog(
        log_id=1,
        user_id=1,
        operation='Average Value Computation',
        log_time=datetime(2025, 4, 1, 8, 30, 0),
    ))
    db.commit()
    logger.info("Seeded 2 records, 2 users, 1 log entry")


def main():
    """Seed the database and print a summary report"""
    configure_logging()
    reset_schema()

    db = SessionLocal()
    try:
        seed(db)
        report = ReportOrchestrator(db).run()
    finally:
        db.close()

    for summary in report["category_summary"]:
        logger.info(
            "%s: count=%d mean=%.2f std=%.2f",
            summary["category"], summary["count"],
            summary["mean"], summary["standard_deviation"]
        )
    logger.info("Outliers: %s", [r["id"] for r in report["outliers"]["records"]])


if __name__ == '__main__':
    main()
