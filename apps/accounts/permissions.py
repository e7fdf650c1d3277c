from rest_framework.permissions import BasePermission
from .models import Role


class IsAdminOrEmployee(BasePermission):
    """
    Back-office actions: delivery-fee settlement, delivery rule management.
    """
    def has_permission(self, request, view):
        user = request.user
        return bool(
            user and user.is_authenticated and
            (user.has_role(Role.ADMIN) or user.has_role(Role.EMPLOYEE))
        )


class IsShopStaff(BasePermission):
    """
    Object-level: the order's shop must be run by this user (owner/employee),
    or the user is an admin.
    """
    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        shop = getattr(obj, "seller", obj)
        return request.user.has_role(Role.ADMIN) or shop.is_staff_member(request.user)
