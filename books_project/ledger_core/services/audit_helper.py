from ..models import AuditLog


def log_action(
    *,
    action: str,
    instance,
    user=None,
    object_id=None,
    changes: dict | None = None,
):
    """
    Central audit logger.
    Pass object_id when logging a row that is about to be (or was) deleted.
    """
    AuditLog.objects.create(
        user=user,
        action=action,
        object_type=instance.__class__.__name__,
        object_id=str(object_id if object_id is not None else instance.pk),
        changes=changes,
    )
