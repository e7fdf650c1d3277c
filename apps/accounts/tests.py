from types import SimpleNamespace

from django.contrib.auth.models import AnonymousUser
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from apps.accounts.models import Role, User
from apps.accounts.permissions import IsAdminOrEmployee, IsShopStaff
from apps.shops.models import Shop


class UserRoleTests(TestCase):

    def test_new_user_is_customer(self):
        user = User.objects.create_user(phone="+919876543210", password="pass12345")
        self.assertTrue(user.has_role(Role.USER))
        self.assertFalse(user.has_role(Role.SELLER))
        self.assertFalse(user.is_admin)

    def test_multiple_roles(self):
        user = User.objects.create_user(phone="+919876543210", roles=["user", "seller"])
        self.assertTrue(user.has_role(Role.SELLER))
        self.assertFalse(user.has_usable_password())

    def test_superuser_is_admin(self):
        admin = User.objects.create_superuser(phone="+910000000000", password="pass12345")
        self.assertTrue(admin.is_admin)
        self.assertTrue(admin.is_staff)

    def test_phone_required(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(phone="", password="x")


class PermissionTests(TestCase):
    def setUp(self):
        self.owner = User.objects.create_user(phone="+919000000001", roles=["seller"])
        self.employee = User.objects.create_user(phone="+919000000002", roles=["employee"])
        self.customer = User.objects.create_user(phone="+919876543210")
        self.admin = User.objects.create_superuser(phone="+910000000000", password="pass12345")
        self.shop = Shop.objects.create(name="Campus Store", services=["stationary"])
        self.shop.owners.add(self.owner)

    def request(self, user):
        return SimpleNamespace(user=user)

    def test_back_office_permission(self):
        perm = IsAdminOrEmployee()
        self.assertTrue(perm.has_permission(self.request(self.admin), None))
        self.assertTrue(perm.has_permission(self.request(self.employee), None))
        self.assertFalse(perm.has_permission(self.request(self.customer), None))
        self.assertFalse(perm.has_permission(self.request(AnonymousUser()), None))

    def test_shop_staff_object_permission(self):
        perm = IsShopStaff()
        order = SimpleNamespace(seller=self.shop)
        self.assertTrue(perm.has_object_permission(self.request(self.owner), None, order))
        self.assertTrue(perm.has_object_permission(self.request(self.admin), None, order))
        # employee role alone is not enough, must be attached to the shop
        self.assertFalse(perm.has_object_permission(self.request(self.employee), None, order))

        self.shop.employees.add(self.employee)
        self.assertTrue(perm.has_object_permission(self.request(self.employee), None, order))

    def test_shop_helpers(self):
        self.assertTrue(self.shop.offers("stationary"))
        self.assertFalse(self.shop.offers("xerox"))
        self.assertTrue(self.shop.is_staff_member(self.owner))
        self.assertFalse(self.shop.is_staff_member(self.customer))
        self.assertFalse(self.shop.is_staff_member(AnonymousUser()))


class TokenAuthTests(TestCase):

    def test_phone_password_login(self):
        User.objects.create_user(phone="+919876543210", password="pass12345")
        client = APIClient()

        response = client.post("/api/v1/auth/token/", {"phone": "+919876543210", "password": "pass12345"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn("access", response.data)

        response = client.post("/api/v1/auth/token/", {"phone": "+919876543210", "password": "wrong"})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
