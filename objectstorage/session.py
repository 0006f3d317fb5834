# Copyright (c) 2010-2012 OpenStack, LLC.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or
# implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Token acquisition and the authenticate-then-request gate.

A :class:`Session` authenticates against the region's identity service
using keystone v3 password authentication scoped to a project::

   > POST /v3/auth/tokens HTTP/1.1
   > Content-Type: application/json
   >
   > {"auth": {"identity": {"methods": ["password"],
   >                        "password": {"user": {"id": <user id>,
   >                                              "password": <password>}}},
   >           "scope": {"project": {"id": <project id>}}}}
   >
   < HTTP/1.1 201 Created
   < X-Subject-Token: <token>
   <
   < {"token": {"expires_at": "2024-01-01T00:00:00Z", ...}}

Every resource request goes through :meth:`Session.request`, which makes
sure the token is fresh first and reauthenticates with the stored
credentials when it is not.
"""
import enum
import json
import logging
import threading
from concurrent.futures import Future
from functools import partial
from time import time

from objectstorage.exceptions import (
    AuthenticationError, NotAuthenticatedError, TransportError
)
from objectstorage.utils import (
    chain_future, completed_future, copy_future, failed_future,
    parse_iso8601
)

logger = logging.getLogger("objectstorage.session")

SUBJECT_TOKEN_HEADER = 'X-Subject-Token'


class SessionState(enum.Enum):
    UNAUTHENTICATED = 'unauthenticated'
    AUTHENTICATING = 'authenticating'
    AUTHENTICATED = 'authenticated'
    EXPIRED = 'expired'


def get_auth_request_body(project_id, user_id, password):
    return {
        'auth': {
            'identity': {
                'methods': ['password'],
                'password': {
                    'user': {
                        'id': user_id,
                        'password': password,
                    },
                },
            },
            'scope': {
                'project': {
                    'id': project_id,
                },
            },
        },
    }


def parse_auth_response(resp):
    """
    Extract the token and its expiry from an identity response.

    :returns: a tuple of (token, expiry as POSIX seconds)
    :raises AuthenticationError: if the token header is missing, the body
                                 is not JSON or it has no usable
                                 ``token.expires_at``
    """
    token = resp.getheader(SUBJECT_TOKEN_HEADER)
    if not token:
        raise AuthenticationError(
            'Failed to authenticate with Object Storage: the response has '
            'no %s header.' % SUBJECT_TOKEN_HEADER, response=resp)
    try:
        body = json.loads(resp.text)
    except ValueError as err:
        raise AuthenticationError(
            'Failed to authenticate with Object Storage: the response body '
            'is not valid JSON.', response=resp, cause=err)
    token_info = body.get('token') if isinstance(body, dict) else None
    expires_at = None
    if isinstance(token_info, dict):
        expires_at = token_info.get('expires_at')
    try:
        expiry = parse_iso8601(expires_at)
    except ValueError as err:
        raise AuthenticationError(
            'Failed to authenticate with Object Storage: no valid '
            'token.expires_at in the response (got %r).' % (expires_at,),
            response=resp, cause=err)
    return token, expiry


class Session:

    """
    Owns the credentials, the bearer token and the account URL of one
    identity.

    ``token`` and ``token_expiry`` are only ever written together, and
    ``account_url`` stays ``None`` until an authentication succeeds. A
    failed authentication leaves all three as they were.

    At most one authentication request is in flight at a time: callers of
    :meth:`ensure_fresh_token` that find one running wait for its outcome.
    """

    def __init__(self, region, transport, clock=None):
        """
        :param region: the :class:`~objectstorage.config.Region` to use
        :param transport: sends the HTTP requests, see
                          :class:`~objectstorage.transport.HTTPTransport`
        :param clock: returns the current time in POSIX seconds, defaults
                      to :func:`time.time`
        """
        self.region = region
        self.transport = transport
        self.clock = clock or time
        self.project_id = None
        self.user_id = None
        self.password = None
        self.token = None
        self.token_expiry = None
        self.account_url = None
        self._lock = threading.Lock()
        self._in_flight = None

    @property
    def state(self):
        with self._lock:
            if self._in_flight is not None and not self._in_flight.done():
                return SessionState.AUTHENTICATING
            if self.token is None:
                return SessionState.UNAUTHENTICATED
            if self._is_expired():
                return SessionState.EXPIRED
            return SessionState.AUTHENTICATED

    def _is_expired(self):
        if self.token is None or self.token_expiry is None:
            return True
        return not self.clock() < self.token_expiry

    def is_token_expired(self):
        with self._lock:
            return self._is_expired()

    def connect(self, project_id, user_id, password):
        """
        Store the credentials and authenticate with them.

        :returns: a future resolving to the new token
        """
        refresh = Future()
        with self._lock:
            self.project_id = project_id
            self.user_id = user_id
            self.password = password
            self._in_flight = refresh
        waiter = copy_future(refresh, Future())
        self._authenticate(refresh, project_id, user_id, password)
        return waiter

    def ensure_fresh_token(self):
        """
        Return the stored token if it is still valid, otherwise
        reauthenticate with the stored credentials.

        Callers arriving while an authentication is in flight share its
        outcome. Each gets its own future, so cancelling one does not affect
        the others.

        :returns: a future resolving to a valid token
        """
        with self._lock:
            if not self._is_expired():
                return completed_future(self.token)
            if self._in_flight is not None and not self._in_flight.done():
                logger.debug('Joining the authentication already in flight.')
                return copy_future(self._in_flight, Future())
            refresh = Future()
            self._in_flight = refresh
            credentials = (self.project_id, self.user_id, self.password)
        waiter = copy_future(refresh, Future())
        logger.debug('Token missing or expired; reauthenticating.')
        self._authenticate(refresh, *credentials)
        return waiter

    def invalidate(self):
        """Forget the token so that the next request reauthenticates."""
        with self._lock:
            self.token = None
            self.token_expiry = None

    def _authenticate(self, refresh, project_id, user_id, password):
        if user_id is None or password is None or project_id is None:
            logger.debug('Authentication failed because the project ID, '
                         'user ID or password was None.')
            refresh.set_exception(AuthenticationError(
                'Project ID, user ID and password cannot be None.'))
            return
        body = json.dumps(get_auth_request_body(project_id, user_id,
                                                password))
        try:
            sent = self.transport.request(
                'POST', self.region.identity_url, data=body,
                headers={'Content-Type': 'application/json'})
        except Exception as err:
            refresh.set_exception(err)
            return
        refresh.add_done_callback(self._log_auth_outcome)
        chain_future(sent, partial(self._store_token, project_id), refresh)

    def _store_token(self, project_id, resp):
        token, expiry = parse_auth_response(resp)
        account_url = self.region.account_url(project_id)
        with self._lock:
            self.token = token
            self.token_expiry = expiry
            self.account_url = account_url
        return token

    @staticmethod
    def _log_auth_outcome(f):
        if f.cancelled():
            return
        err = f.exception()
        if err is None:
            logger.debug('Authenticated with Object Storage.')
        else:
            logger.error('Failed to authenticate with Object Storage: %s',
                         err)

    def request(self, func, *args, **kwargs):
        """
        Call ``func(account_url, token, transport, *args, **kwargs)`` once
        a fresh token is available.

        ``func`` must return a future. If reauthentication fails the call
        is abandoned and the returned future carries the authentication
        error. A 401 from ``func`` drops the token it was sent with, unless
        a newer one has been stored since, so that the next call
        reauthenticates; the call itself is not retried.

        :returns: a future with the outcome of ``func``
        """
        if self.account_url is None:
            return failed_future(NotAuthenticatedError(
                'You have not yet authenticated with Object Storage. '
                'Call connect() first.'))

        def _call(token):
            sent = func(self.account_url, token, self.transport,
                        *args, **kwargs)
            sent.add_done_callback(partial(self._check_unauthorized, token))
            return sent

        fresh = self.ensure_fresh_token()
        fresh.add_done_callback(self._log_gate_failure)
        return chain_future(fresh, _call)

    @staticmethod
    def _log_gate_failure(f):
        if not f.cancelled() and f.exception() is not None:
            logger.error('Could not authenticate with Object Storage. '
                         'Call connect() in order to do so.')

    def _check_unauthorized(self, token, f):
        if f.cancelled():
            return
        err = f.exception()
        if not (isinstance(err, TransportError) and err.http_status == 401):
            return
        with self._lock:
            if self.token != token:
                logger.debug('Ignoring 401 for a token already replaced.')
                return
            self.token = None
            self.token_expiry = None
        logger.info('Request was unauthorized; dropping the token.')
