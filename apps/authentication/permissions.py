from rest_framework import permissions


def has_role(user, role: str) -> bool:
    return bool(user and user.is_authenticated and getattr(user, "role", None) == role)


class IsAdmin(permissions.BasePermission):
    """Ledger operators: payouts, delivery updates and affiliate management."""

    message = "Operator access required."

    def has_permission(self, request, view):
        return has_role(request.user, "admin")


class IsAffiliate(permissions.BasePermission):
    """Affiliate self-service; whether the profile is active is checked by the view."""

    message = "Affiliate access required."

    def has_permission(self, request, view):
        return has_role(request.user, "affiliate")
