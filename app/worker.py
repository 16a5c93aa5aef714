# app/worker.py

import os
import time
import signal

from app import create_app
from app.extensions import db
from app.services.orphan_sweep import sweep_orphans
from app.services.storage import get_storage
from app.utils.logging import get_logger

logger = get_logger("worker")

STOP = False


def _handle_stop(signum, frame):
    global STOP
    STOP = True
    logger.info(f"Señal recibida ({signum}). Cerrando worker con gracia...")


def main():
    # Señales típicas en Render al detener/redeploy
    signal.signal(signal.SIGTERM, _handle_stop)
    signal.signal(signal.SIGINT, _handle_stop)

    app = create_app()

    poll_seconds = int(os.getenv("SWEEP_POLL_SECONDS", str(app.config.get("SWEEP_POLL_SECONDS", 3600))))
    dry_run = os.getenv("SWEEP_DRY_RUN", "0") == "1"
    min_age = int(os.getenv("SWEEP_MIN_AGE_SECONDS", str(app.config.get("SWEEP_MIN_AGE_SECONDS", 3600))))

    logger.info(f"Worker iniciado. poll={poll_seconds}s min_age={min_age}s dry_run={dry_run}")

    with app.app_context():
        storage = get_storage()
        next_run = 0.0

        while not STOP:
            if time.time() < next_run:
                # dormir en pasos cortos para responder rápido a SIGTERM
                time.sleep(1)
                continue

            try:
                result = sweep_orphans(storage, dry_run=dry_run, min_age_seconds=min_age)
                logger.info(f"Sweep OK orphans={len(result['orphans'])} removed={len(result['removed'])}")
            except Exception as e:
                logger.error(f"Error en worker: {type(e).__name__}: {e}")
                try:
                    db.session.rollback()
                except Exception:
                    pass
            finally:
                # limpiar sesión al final de cada vuelta
                try:
                    db.session.remove()
                except Exception:
                    pass

            next_run = time.time() + poll_seconds

    logger.info("Worker detenido.")


if __name__ == "__main__":
    main()
