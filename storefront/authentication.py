import logging

from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication

logger = logging.getLogger(__name__)

TOKEN_ERROR = "Token is invalid or expired"


class BearerTokenAuthentication(JWTAuthentication):
    """
    Reads `Authorization: Bearer <token>`.

    Expired, malformed and badly signed tokens, and tokens whose user is gone
    or inactive, all fail with the same message so callers cannot tell them apart.
    """

    def authenticate(self, request):
        try:
            return super().authenticate(request)
        except AuthenticationFailed as exc:
            logger.debug("Rejected bearer token: %s", exc.detail)
            raise AuthenticationFailed(TOKEN_ERROR, code="token_not_valid")
