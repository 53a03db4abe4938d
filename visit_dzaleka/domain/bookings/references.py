"""Human-readable booking references: DVS-{year}-{6 hex chars}"""

import logging
import re
import secrets
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Booking

logger = logging.getLogger(__name__)

REFERENCE_PATTERN = re.compile(r"^DVS-\d{4}-[0-9A-F]{6}$")
MAX_ATTEMPTS = 10


def generate_reference(year: Optional[int] = None) -> str:
    year = year or datetime.utcnow().year
    return f"DVS-{year}-{secrets.token_hex(3).upper()}"


def generate_unique_reference(db: Session) -> str:
    """Generate a reference not yet used by any booking"""
    for _ in range(MAX_ATTEMPTS):
        reference = generate_reference()
        exists = db.query(Booking.id).filter(Booking.booking_reference == reference).first()
        if not exists:
            return reference
        logger.warning(f"⚠️ Booking reference collision on {reference}, regenerating")
    raise RuntimeError("Could not generate a unique booking reference")
