from flask import Blueprint, jsonify

from flagmirror.services.store_service import get_feature_store

health_bp = Blueprint("health_bp", __name__, url_prefix="/health")

@health_bp.get("/")
def health() -> jsonify:
    """
    Health probe.

    Does not touch the backend; ``initialized`` tells whether this
    process has completed a full synchronization.

    Returns:
        {"status": "ok", "initialized": bool}
    """
    store = get_feature_store()
    return jsonify({"status": "ok", "initialized": store.initialized()})
