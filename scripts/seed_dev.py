# scripts/seed_dev.py

import sys

from app import create_app
from app.extensions import db
from app.services.job_store import JobStore
from app.services.storage import get_storage

owner = sys.argv[1] if len(sys.argv) > 1 else "dev-owner"

app = create_app()

with app.app_context():
    db.create_all()

    store = JobStore(owner, storage=get_storage())
    store.load_all()

    for values in (
        {"consignee": "ABC Corp", "bl_number": "BL123456", "container_size": "20ft", "terminal": "Apapa"},
        {"consignee": "XYZ Ltd", "bl_number": "BL789012", "container_size": "40ft", "terminal": "TICT", "status": "done"},
        {"consignee": "DEF Inc", "bl_number": "BL345678", "container_size": "20ft", "terminal": "Sifax terminal"},
    ):
        job = store.create(values)
        print("Job creado:", job.serial if job else None)
