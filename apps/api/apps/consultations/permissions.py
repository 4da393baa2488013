"""
Consultation permissions.

- Admin: Full access
- Practitioner: Full access (complete, quick, clinical update, summary, slip)
- Reception: Read only (summary and printable slip)
- Accounting: NO ACCESS
"""
from rest_framework import permissions

from apps.authz.models import RoleChoices


class ConsultationPermission(permissions.BasePermission):

    message = 'Consultation operations require the Practitioner or Admin role.'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        user_roles = request.user.role_names

        if user_roles & {RoleChoices.ADMIN, RoleChoices.PRACTITIONER}:
            return True

        # Reception prints slips and summaries at the front desk
        if request.method in permissions.SAFE_METHODS:
            return RoleChoices.RECEPTION in user_roles

        return False
