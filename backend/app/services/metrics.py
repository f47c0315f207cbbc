"""
API metrics tracking and cleanup.
"""

from datetime import datetime, timezone, timedelta
from typing import Optional

from pymongo.errors import PyMongoError

from app.config import logger

METRICS_RETENTION_DAYS = 365


async def log_api_metric(db, endpoint: str, method: str, response_time_ms: int,
                         status_code: int, error_type: Optional[str],
                         user_id: Optional[str], ip_address: Optional[str]):
    """Log API metrics to database"""
    try:
        await db.api_metrics.insert_one({
            "endpoint": endpoint,
            "method": method,
            "response_time_ms": response_time_ms,
            "status_code": status_code,
            "error_type": error_type,
            "user_id": user_id,
            "ip_address": ip_address,
            "timestamp": datetime.now(timezone.utc).isoformat()
        })
    except PyMongoError as e:
        logger.error(f"Failed to log API metric: {e}")


async def cleanup_old_metrics(db):
    """Delete API metrics older than the retention period"""
    try:
        cutoff = (datetime.now(timezone.utc) - timedelta(days=METRICS_RETENTION_DAYS)).isoformat()
        result = await db.api_metrics.delete_many({"timestamp": {"$lt": cutoff}})
        logger.info(f"Deleted {result.deleted_count} old api_metrics records")
    except PyMongoError as e:
        logger.error(f"Error during metrics cleanup: {e}", exc_info=True)
