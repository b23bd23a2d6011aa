import sys
import os
import logging
from sqlalchemy.orm import Session

# Ensure we can import app modules
sys.path.append(os.getcwd())

from app.core.exceptions import AppException
from app.database import SessionLocal, init_db
from app.services.performance_service import PerformanceScoreService

# Configure logging
logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)

def recompute_period(review_period_id: int) -> int:
    """Recompute and store every score of a review period. Returns a process exit code."""
    init_db()
    db: Session = SessionLocal()
    try:
        result = PerformanceScoreService(db).recompute_period(review_period_id)
    except AppException as e:
        logger.error(f"Recompute of review period {review_period_id} failed [{e.error_code}]: {e.message}")
        return 1
    finally:
        db.close()

    logger.info(f"Scored {len(result.staff_scores)} staff, {len(result.unit_summaries)} units")
    for failure in result.staff_failures:
        logger.warning(f"Staff {failure.staff_id} excluded [{failure.error_code}]: {failure.message}")
    for failure in result.unit_failures:
        logger.warning(f"{failure.level.value} unit {failure.unit_id} excluded [{failure.error_code}]: {failure.message}")
    return 0

if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python scripts/recompute_period.py <review_period_id>")
        sys.exit(2)
    sys.exit(recompute_period(int(sys.argv[1])))
