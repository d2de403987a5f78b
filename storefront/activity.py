from . import models


def record(db, actor: models.User, action: str, entity: str, entity_id=None, details=None):
    """Stage an admin audit row; it is committed with the caller's transaction."""
    db.add(models.ActivityLog(
        actor_id=actor.id if actor else None,
        action=action,
        entity=entity,
        entity_id=entity_id,
        details=details,
    ))
