"""
Per-request authorization context types.

Implements:
- Identity: verified caller as handed over by the authentication layer
- BusinessContext: resolved (business, user, role, permissions) for one request
- Decision: outcome of a single authorization check
- extract_business_id(): locate the target business id in a request
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from django.http.request import RawPostDataException

logger = logging.getLogger(__name__)


# Extraction sources, in precedence order
SOURCE_HEADER = 'header'
SOURCE_PATH = 'path'
SOURCE_BODY = 'body'
SOURCE_QUERY = 'query'

BODY_FIELD = 'businessId'
PATH_KWARGS = ('business_id', 'businessId')


@dataclass(frozen=True)
class Identity:
    """Verified caller. Produced by authentication, never by this core."""
    user_id: str
    is_superadmin: bool = False

    @classmethod
    def from_user(cls, user):
        """
        Build an identity from a Django user.

        Anonymous or missing users yield None.
        """
        if user is None or not getattr(user, 'is_authenticated', False):
            return None
        return cls(
            user_id=str(user.pk),
            is_superadmin=bool(getattr(user, 'is_superuser', False)),
        )


@dataclass(frozen=True)
class BusinessContext:
    """
    Authorization context for one request.

    Built once per request by BusinessContextService and never cached.
    """
    business_id: str
    user_id: str
    role: str
    is_owner: bool = False
    is_superadmin: bool = False
    permissions: FrozenSet[str] = field(default_factory=frozenset)
    membership_id: Optional[str] = None
    source: Optional[str] = None

    def has_permission(self, permission) -> bool:
        return str(permission) in self.permissions

    def to_dict(self) -> Dict[str, Any]:
        return {
            'businessId': self.business_id,
            'userId': self.user_id,
            'role': self.role,
            'isOwner': self.is_owner,
            'isSuperadmin': self.is_superadmin,
            'permissions': sorted(self.permissions),
            'membershipId': self.membership_id,
        }


@dataclass(frozen=True)
class Decision:
    """Outcome of an authorization check."""
    allowed: bool
    required: Optional[str] = None
    reason: Optional[str] = None

    def __bool__(self):
        return self.allowed


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def parse_json_body(request) -> Mapping:
    """
    Best-effort JSON body parse for business id extraction.

    Non-JSON or malformed bodies are treated as empty.
    """
    content_type = request.META.get('CONTENT_TYPE', '')
    if 'application/json' not in content_type:
        return {}
    try:
        raw = request.body
    except RawPostDataException:
        # Body already consumed as a stream
        logger.debug("Request body unavailable for business id extraction")
        return {}
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def extract_business_id(
    header: Optional[str] = None,
    path_kwargs: Optional[Mapping] = None,
    body: Optional[Mapping] = None,
    query: Optional[Mapping] = None,
) -> Tuple[Optional[str], Optional[str]]:
    """
    Locate the target business id.

    Precedence: header, then path parameter, then JSON body ``businessId``,
    then query ``businessId``. Blank values are skipped.

    Returns:
        Tuple of (business_id, source); (None, None) when absent everywhere
    """
    value = _clean(header)
    if value:
        return value, SOURCE_HEADER

    for key in PATH_KWARGS:
        value = _clean((path_kwargs or {}).get(key))
        if value:
            return value, SOURCE_PATH

    value = _clean((body or {}).get(BODY_FIELD))
    if value:
        return value, SOURCE_BODY

    value = _clean((query or {}).get(BODY_FIELD))
    if value:
        return value, SOURCE_QUERY

    return None, None
