"""
Entity store used by the consultation workflow.

A ``Repository`` wraps one model's default manager and turns a missing row
into ``NotFoundError``. Writes go through ``add`` / ``update`` so every
persisted mutation is explicit.
"""
from django.core.exceptions import ValidationError as DjangoValidationError

from .exceptions import NotFoundError


class Repository:

    def __init__(self, model, entity_name=None):
        self.model = model
        self.entity_name = entity_name or model.__name__

    def _queryset(self, for_update=False):
        qs = self.model.objects.all()
        if for_update:
            qs = qs.select_for_update()
        return qs

    def get_by_id(self, entity_id, *, for_update=False):
        """
        Fetch by primary key.

        Raises:
            NotFoundError: no row with this id (malformed ids included)
        """
        if entity_id is None:
            raise NotFoundError(self.entity_name, entity_id)
        try:
            return self._queryset(for_update).get(pk=entity_id)
        except (self.model.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError(self.entity_name, entity_id)

    def find_one(self, *, for_update=False, order_by=None, **filters):
        qs = self._queryset(for_update).filter(**filters)
        if order_by:
            qs = qs.order_by(*order_by)
        return qs.first()

    def exists(self, **filters):
        return self._queryset().filter(**filters).exists()

    def add(self, instance):
        instance.save(force_insert=True)
        return instance

    def update(self, instance, fields=None):
        if fields and hasattr(instance, 'updated_at'):
            fields = [*fields, 'updated_at']
        instance.save(update_fields=fields)
        return instance
