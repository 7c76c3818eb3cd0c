#!/usr/bin/env python3
"""
Resource usage samples (CPU / RAM / storage percentages per user).
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List

from sqlalchemy import func

from vmguardian.exceptions import ValidationError
from vmguardian.models import db, ResourceUsage

logger = logging.getLogger(__name__)

METRICS = ('cpu_usage', 'ram_usage', 'storage_usage')
DEFAULT_WINDOW_HOURS = 24
MAX_WINDOW_HOURS = 24 * 90


def _percentage(data: Dict[str, Any], key: str) -> float:
    value = data.get(key, 0)
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be a number")
    if not 0 <= value <= 100:
        raise ValidationError(f"{key} must be between 0 and 100")
    return value


def window_hours(value) -> int:
    if value in (None, ''):
        return DEFAULT_WINDOW_HOURS
    try:
        hours = int(value)
    except (TypeError, ValueError):
        raise ValidationError("hours must be a whole number")
    if hours < 1 or hours > MAX_WINDOW_HOURS:
        raise ValidationError(f"hours must be between 1 and {MAX_WINDOW_HOURS}")
    return hours


def record_usage(user_id: int, data: Dict[str, Any]) -> ResourceUsage:
    sample = ResourceUsage(user_id=user_id, **{m: _percentage(data, m) for m in METRICS})
    try:
        db.session.add(sample)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Failed to record usage for user %s", user_id)
        raise
    return sample


def timeline(user_id: int, hours: int = DEFAULT_WINDOW_HOURS) -> List[ResourceUsage]:
    """Samples in the last `hours`, oldest first."""
    since = datetime.utcnow() - timedelta(hours=hours)
    return (ResourceUsage.query
            .filter(ResourceUsage.user_id == user_id, ResourceUsage.timestamp >= since)
            .order_by(ResourceUsage.timestamp)
            .all())


def summary(user_id: int, hours: int = DEFAULT_WINDOW_HOURS) -> Dict[str, Any]:
    """Average and maximum of each metric over the window."""
    since = datetime.utcnow() - timedelta(hours=hours)
    columns = []
    for metric in METRICS:
        column = getattr(ResourceUsage, metric)
        columns += [func.avg(column), func.max(column)]

    row = (db.session.query(func.count(ResourceUsage.id), *columns)
           .filter(ResourceUsage.user_id == user_id, ResourceUsage.timestamp >= since)
           .one())

    result = {'samples': row[0], 'hours': hours}
    for i, metric in enumerate(METRICS):
        avg_value, max_value = row[1 + 2 * i], row[2 + 2 * i]
        result[metric] = {
            'avg': round(float(avg_value), 2) if avg_value is not None else 0.0,
            'max': round(float(max_value), 2) if max_value is not None else 0.0,
        }
    return result
