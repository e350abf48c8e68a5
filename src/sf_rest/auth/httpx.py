import typing

import httpx

from .authenticator import Authenticator


class SalesforceAuth(httpx.Auth):
    """httpx auth hook adding the session bearer token to every request.

    A request answered with 401 is replayed once after the authenticator
    refreshed the session. A second 401 is returned to the caller as is.
    """

    authenticator: Authenticator

    def __init__(self, authenticator: Authenticator):
        self.authenticator = authenticator

    def auth_flow(
        self, request: httpx.Request
    ) -> typing.Generator[httpx.Request, httpx.Response, None]:
        session = self.authenticator.session or self.authenticator.authenticate()
        sent_token = session.access_token
        request.headers["Authorization"] = session.auth_header
        response = yield request

        if response.status_code == 401:
            session = self.authenticator.refresh(stale_token=sent_token)
            request.headers["Authorization"] = session.auth_header
            yield request
