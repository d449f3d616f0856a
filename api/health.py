import logging

from flask import Blueprint, current_app

logger = logging.getLogger(__name__)

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    """
    Liveness and database reachability
    ---
    tags:
      - Health
    responses:
      200:
        description: API is up and the database answers
        schema:
          type: object
          properties:
            status:
              type: string
              example: ok
            database:
              type: string
              example: ok
      503:
        description: The database did not answer
    """
    storage = current_app.extensions["services"].storage
    if not storage.ping():
        return {"status": "unhealthy", "database": "unreachable"}, 503
    return {"status": "ok", "database": "ok"}, 200
