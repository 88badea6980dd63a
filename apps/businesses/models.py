"""
Business registry.

Only the fields the authorization core needs: a business is owned by
exactly one user id, and that owner always has full access.
"""
import uuid

from django.db import models
from apps.core.models import BaseModel


class BusinessManager(models.Manager):
    """Manager for business lookups."""

    def by_id(self, business_id):
        """
        Find a business by id.

        Malformed ids return None instead of raising, so callers can treat
        them the same as unknown businesses.
        """
        try:
            business_uuid = uuid.UUID(str(business_id))
        except (TypeError, ValueError, AttributeError):
            return None
        return self.filter(id=business_uuid).first()

    def owned_by(self, user_id):
        """Businesses owned by a user."""
        return self.filter(owner_id=str(user_id))


class Business(BaseModel):
    """
    Business (tenant) whose data is protected by the access core.

    Users reach a business through a Membership; the owner is recorded
    here so ownership survives membership edits.
    """

    name = models.CharField(
        max_length=255,
        help_text="Business name"
    )
    owner_id = models.CharField(
        max_length=64,
        db_index=True,
        help_text="User id of the business owner (from the identity provider)"
    )

    objects = BusinessManager()

    class Meta:
        db_table = 'businesses'
        ordering = ['-created_at']
        verbose_name_plural = 'businesses'

    def __str__(self):
        return self.name

    def is_owned_by(self, user_id):
        return bool(user_id) and self.owner_id == str(user_id)
