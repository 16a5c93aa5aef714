# app/services/orphan_sweep.py

import time
from typing import Dict, List, Set

from app.models import Job, Document, CompanyFile
from app.services.job_store import job_path
from app.services.storage import ObjectStorage, StorageError
from app.utils.logging import get_logger

logger = get_logger("orphan_sweep")


def referenced_paths() -> Set[str]:
    """
    Todos los paths del bucket que alguna fila referencia (cualquier owner).
    """
    paths: Set[str] = set()

    for serial, files in Job.query.with_entities(Job.serial, Job.files).all():
        for f in files or []:
            if f.get("storage_name"):
                paths.add(job_path(serial, f["storage_name"]))

    for model in (Document, CompanyFile):
        for (path,) in model.query.with_entities(model.path).all():
            paths.add(path)

    return paths


def find_orphans(storage: ObjectStorage, min_age_seconds: int = 0) -> List[str]:
    """
    Paths sin fila que los referencie. Los más nuevos que `min_age_seconds`
    se saltan: el objeto se sube antes de escribir el descriptor.
    """
    known = referenced_paths()
    cutoff = time.time() - max(0, min_age_seconds)
    orphans: List[str] = []
    for p in storage.list_paths():
        if p in known:
            continue
        if min_age_seconds > 0:
            try:
                if storage.modified_at(p) > cutoff:
                    continue
            except StorageError:
                # borrado entre el listado y el stat
                continue
        orphans.append(p)
    return orphans


def sweep_orphans(storage: ObjectStorage, dry_run: bool = False, min_age_seconds: int = 0) -> Dict:
    orphans = find_orphans(storage, min_age_seconds=min_age_seconds)
    removed: List[str] = []
    failed: List[str] = []

    if not dry_run:
        for p in orphans:
            try:
                removed.extend(storage.remove([p]))
            except StorageError as e:
                logger.warning(f"Orphan remove failed path={p} error={e}")
                failed.append(p)

    logger.info(f"Orphan sweep found={len(orphans)} removed={len(removed)} failed={len(failed)} dry_run={dry_run}")
    return {"orphans": orphans, "removed": removed, "failed": failed, "dry_run": dry_run}
