import time
from datetime import timedelta

from rest_framework import status
from rest_framework.test import APITestCase
from rest_framework_simplejwt.tokens import AccessToken

from .models import User
from .tokens import issue_token

REGISTER_URL = "/api/auth/register/"
LOGIN_URL = "/api/auth/login/"
ME_URL = "/api/auth/me/"


class RegisterTests(APITestCase):
    def payload(self, **overrides):
        data = {
            "email": "b1@example.com",
            "password": "pw123456",
            "name": "Buyer One",
            "role": "buyer",
        }
        data.update(overrides)
        return data

    def test_register_buyer_returns_token_and_user(self):
        res = self.client.post(REGISTER_URL, self.payload(), format="json")

        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertTrue(res.data["token"])
        self.assertEqual(res.data["user"]["email"], "b1@example.com")
        self.assertEqual(res.data["user"]["role"], "buyer")
        self.assertIsNone(res.data["user"]["store_info"])
        self.assertNotIn("password", res.data["user"])

        user = User.objects.get(email="b1@example.com")
        self.assertNotEqual(user.password, "pw123456")
        self.assertTrue(user.check_password("pw123456"))

    def test_register_seller_keeps_store_profile(self):
        res = self.client.post(
            REGISTER_URL,
            self.payload(email="s1@example.com", role="seller", store_info={"name": "Mugs & Co", "description": "mugs"}),
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["user"]["store_info"], {"name": "Mugs & Co", "description": "mugs"})

    def test_buyer_store_info_is_ignored(self):
        res = self.client.post(REGISTER_URL, self.payload(store_info={"name": "Nope"}), format="json")

        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(User.objects.get(email="b1@example.com").store_name, "")

    def test_email_is_lower_cased(self):
        res = self.client.post(REGISTER_URL, self.payload(email="  B1@Example.COM "), format="json")

        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["user"]["email"], "b1@example.com")

    def test_second_registration_with_same_email_conflicts(self):
        first = self.client.post(REGISTER_URL, self.payload(), format="json")
        second = self.client.post(REGISTER_URL, self.payload(email="B1@example.com", name="Other"), format="json")

        self.assertEqual(first.status_code, status.HTTP_201_CREATED)
        self.assertEqual(second.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(second.data["message"], "User already exists")
        self.assertEqual(User.objects.count(), 1)

    def test_missing_fields_rejected(self):
        res = self.client.post(REGISTER_URL, {"email": "b1@example.com"}, format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["message"], "Please provide all required fields")
        self.assertIn("password", res.data["errors"])

    def test_malformed_email_rejected(self):
        res = self.client.post(REGISTER_URL, self.payload(email="not-an-email"), format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["message"], "Please provide a valid email address")

    def test_short_password_rejected(self):
        res = self.client.post(REGISTER_URL, self.payload(password="12345"), format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["message"], "Password must be at least 6 characters long")

    def test_unknown_role_rejected(self):
        res = self.client.post(REGISTER_URL, self.payload(role="admin"), format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["message"], "Invalid role specified")

    def test_seller_without_store_name_rejected(self):
        res = self.client.post(REGISTER_URL, self.payload(role="seller", store_info={"name": "  "}), format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["message"], "Store information is required for sellers")
        self.assertFalse(User.objects.exists())


class LoginTests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(email="b1@example.com", name="Buyer One", password="pw123456")

    def test_login_returns_token_for_correct_password(self):
        res = self.client.post(LOGIN_URL, {"email": "B1@example.com", "password": "pw123456"}, format="json")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["user"]["id"], self.user.id)
        self.assertEqual(str(AccessToken(res.data["token"])["user_id"]), str(self.user.id))

    def test_login_email_is_normalized_like_registration(self):
        res = self.client.post(LOGIN_URL, {"email": "  B1@Example.COM ", "password": "pw123456"}, format="json")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["user"]["id"], self.user.id)

    def test_wrong_password_and_unknown_email_look_the_same(self):
        wrong_password = self.client.post(LOGIN_URL, {"email": "b1@example.com", "password": "nope1234"}, format="json")
        unknown_email = self.client.post(LOGIN_URL, {"email": "ghost@example.com", "password": "pw123456"}, format="json")

        self.assertEqual(wrong_password.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(unknown_email.status_code, wrong_password.status_code)
        self.assertEqual(wrong_password.json(), {"message": "Invalid credentials"})
        self.assertEqual(unknown_email.json(), wrong_password.json())

    def test_missing_credentials_rejected(self):
        res = self.client.post(LOGIN_URL, {"email": "b1@example.com"}, format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["message"], "Please provide email and password")


class CurrentUserTests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(email="b1@example.com", name="Buyer One", password="pw123456")

    def test_me_returns_identity_without_password(self):
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_token(self.user)}")
        res = self.client.get(ME_URL)

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["email"], "b1@example.com")
        self.assertNotIn("password", res.data)

    def test_me_requires_token(self):
        res = self.client.get(ME_URL)

        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertIn("message", res.data)

    def test_token_lives_thirty_days(self):
        token = AccessToken(issue_token(self.user))
        remaining = token["exp"] - time.time()

        self.assertGreater(remaining, timedelta(days=29, hours=23).total_seconds())
        self.assertLessEqual(remaining, timedelta(days=30).total_seconds())

    def test_bad_tokens_fail_with_one_message(self):
        expired = AccessToken.for_user(self.user)
        expired.set_exp(lifetime=-timedelta(seconds=1))

        gone = User.objects.create_user(email="gone@example.com", name="Gone", password="pw123456")
        gone_token = issue_token(gone)
        gone.delete()

        messages = set()
        for token in ("garbage", str(expired), gone_token):
            self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
            res = self.client.get(ME_URL)
            self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)
            messages.add(res.data["message"])

        self.assertEqual(messages, {"Token is invalid or expired"})
