"""
Recompute guide tour counters and ratings from booking rows
Usage: python reconcile_guide_stats.py [guide_id]
"""

import logging
import sys

from visit_dzaleka.database import SessionLocal
from visit_dzaleka.domain.guides.stats import reconcile_guide_stats

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)


def main():
    guide_id = int(sys.argv[1]) if len(sys.argv) > 1 else None
    db = SessionLocal()
    try:
        corrections = reconcile_guide_stats(db, guide_id)
    finally:
        db.close()

    if not corrections:
        logger.info("✅ All guide stats already match their bookings")
        return
    for entry in corrections:
        for field, values in entry["drift"].items():
            logger.info(
                f"🔧 Guide {entry['guideId']} {field}: {values['stored']} -> {values['computed']}"
            )
    logger.info(f"✅ Corrected {len(corrections)} guides")


if __name__ == "__main__":
    main()
