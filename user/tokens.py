from rest_framework_simplejwt.tokens import AccessToken


def issue_token(user):
    """Signed access token for `user`; lifetime comes from SIMPLE_JWT (30 days)."""
    return str(AccessToken.for_user(user))
