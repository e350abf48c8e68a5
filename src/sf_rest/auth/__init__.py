from .authenticator import Authenticator, run_login
from .httpx import SalesforceAuth
from .login_oauth import (
    access_token_login,
    client_credentials_login,
    lazy_oauth_login,
    password_login,
)
from .types import (
    Credentials,
    GrantType,
    SalesforceLogin,
    SalesforceSession,
    TokenRefreshCallback,
)


__all__ = [
    "Authenticator",
    "Credentials",
    "GrantType",
    "SalesforceAuth",
    "SalesforceLogin",
    "SalesforceSession",
    "TokenRefreshCallback",
    "access_token_login",
    "client_credentials_login",
    "lazy_oauth_login",
    "password_login",
    "run_login",
]
