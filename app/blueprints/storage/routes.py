# app/blueprints/storage/routes.py

import os

from flask import Blueprint, abort, send_file

from app.services.storage import StorageError, get_storage
from app.utils.logging import get_logger

logger = get_logger("storage_routes")

storage_bp = Blueprint("storage", __name__)


@storage_bp.route("/<path:token>")
def signed_object(token: str):
    """
    Sirve un objeto del bucket privado a partir de una URL firmada.
    Token inválido o vencido -> 403.
    """
    storage = get_storage()
    try:
        path = storage.resolve_signed_token(token)
    except StorageError as e:
        logger.warning(f"Signed URL rejected reason={e}")
        abort(403)

    if not storage.exists(path):
        abort(404)

    return send_file(storage.disk_path(path), download_name=os.path.basename(path))
