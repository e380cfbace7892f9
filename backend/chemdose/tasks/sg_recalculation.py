import logging
from chemdose.database import SessionLocal
from chemdose.services.reading_service import ReadingService
from chemdose.services.storage import StorageService

logger = logging.getLogger(__name__)


def recalculate_specific_gravity_job():
    """
    Scheduled job re-snapshotting the SG and weight of every reading
    against the contract timeline, one tank at a time.
    """
    logger.info("Starting scheduled specific-gravity recalculation")
    session = SessionLocal()
    try:
        storage = StorageService(session)
        service = ReadingService(storage)
        total = 0
        for tank in storage.get_tanks():
            try:
                total += service.recalculate_specific_gravity(tank_id=tank.id)
                storage.commit()
            except Exception as e:
                logger.error(f"Error recalculating SG for tank {tank.name} (ID: {tank.id}): {e}")
                storage.rollback()
        logger.info(f"Specific-gravity recalculation updated {total} readings")
    except Exception as e:
        logger.error(f"Scheduler job failed: {e}")
    finally:
        session.close()
