import logging
from typing import Optional, Any, Dict

from django.contrib.auth import get_user_model
from django.db import DatabaseError

from incidents.models import AuditEvent

User = get_user_model()
logger = logging.getLogger(__name__)


def _user_id(user: Any) -> Optional[int]:
    # accepts a User or an incidents.session.Identity
    if isinstance(user, User):
        return user.pk
    return getattr(user, 'user_id', None)


def log_action(*, user: Any, action: str, object_type: Optional[str]=None, object_id: Optional[Any]=None, detail: Optional[Dict[str, Any]]=None) -> Optional[AuditEvent]:
    """Persist an audit row; a failing audit write never fails the action itself."""
    try:
        return AuditEvent.objects.create(
            user_id=_user_id(user),
            action=action,
            object_type=object_type,
            object_id=str(object_id) if object_id is not None else None,
            detail=detail or {},
        )
    except DatabaseError:
        logger.warning("audit write failed for %s on %s:%s", action, object_type, object_id, exc_info=True)
        return None
