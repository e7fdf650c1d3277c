import uuid
from django.db import models
from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.utils import timezone
from .managers import UserManager


class Role(models.TextChoices):
    USER = "user", "Customer"
    SELLER = "seller", "Seller"
    EMPLOYEE = "employee", "Employee"
    ADMIN = "admin", "Admin"


class User(AbstractBaseUser, PermissionsMixin):
    """
    Core Identity Model.
    Phone number is the primary identifier.
    One User can hold multiple roles (see UserRole).
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    phone = models.CharField(max_length=15, unique=True, db_index=True)
    email = models.EmailField(blank=True, null=True)
    full_name = models.CharField(max_length=255, blank=True)

    is_staff = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    date_joined = models.DateTimeField(default=timezone.now)

    objects = UserManager()

    USERNAME_FIELD = 'phone'
    REQUIRED_FIELDS = []

    class Meta:
        verbose_name = 'User'
        verbose_name_plural = 'Users'

    def __str__(self):
        return self.phone

    def has_role(self, role) -> bool:
        if role == Role.ADMIN and self.is_superuser:
            return True
        return self.roles.filter(role=role).exists()

    @property
    def is_admin(self) -> bool:
        return self.has_role(Role.ADMIN)


class UserRole(models.Model):
    """
    Intersection table defining which roles a specific identity holds.
    """
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='roles')
    role = models.CharField(max_length=20, choices=Role.choices)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ('user', 'role')

    def __str__(self):
        return f"{self.user.phone} - {self.role}"
