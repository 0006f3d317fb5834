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
Object Storage client library
"""
import logging
from urllib.parse import quote

from objectstorage.config import get_options, get_region, get_transport
from objectstorage.exceptions import (
    ConfigurationError, NotAuthenticatedError, ObjectStorageException
)
from objectstorage.listener import deliver
from objectstorage.session import Session
from objectstorage.utils import (
    chain_future, failed_future, parse_listing, split_request_headers
)

logger = logging.getLogger("objectstorage")
logger.addHandler(logging.NullHandler())

AUTH_HEADER = 'X-Auth-Token'


def _path(url, *names):
    for name in names:
        url = '%s/%s' % (url, quote(name, safe=''))
    return url


def _log_outcome(future, success_msg, failure_msg, *args):
    def _log(f):
        if f.cancelled():
            return
        err = f.exception()
        if err is None:
            logger.debug(success_msg, *args)
        else:
            logger.error(failure_msg + ': %s', *(args + (err,)))
    future.add_done_callback(_log)
    return future


def _listing(resp):
    if resp.status == 204:
        return []
    return parse_listing(resp.text)


def get_account(url, token, transport):
    """
    Get a listing of container names for the account.

    :param url: account URL
    :param token: auth token
    :param transport: an :class:`~objectstorage.transport.HTTPTransport`
    :returns: a future resolving to a list of container names
    """
    resp = transport.request('GET', url, headers={AUTH_HEADER: token})
    return _log_outcome(chain_future(resp, _listing),
                        'Retrieved container list.',
                        'Failed to retrieve container list')


def head_account(url, token, transport):
    """
    Get account metadata.

    :returns: a future resolving to the response's header map, each name
              mapped to the list of its values
    """
    resp = transport.request('HEAD', url, headers={AUTH_HEADER: token})
    return _log_outcome(chain_future(resp, lambda r: r.headers),
                        'Retrieved account metadata.',
                        'Failed to retrieve account metadata')


def post_account(url, token, transport, headers):
    """
    Update an account's metadata.

    :param headers: headers to send as they are; metadata names should
                    start with ``X-Account-Meta-``
    :returns: a future resolving to None
    """
    req_headers = dict(headers)
    req_headers[AUTH_HEADER] = token
    resp = transport.request('POST', url, data='', headers=req_headers)
    return _log_outcome(chain_future(resp, lambda r: None),
                        'Account metadata successfully updated.',
                        'Failed to update account metadata')


def put_container(url, token, transport, container):
    """
    Create a container; succeeds whether or not it already existed.

    :returns: a future resolving to None
    """
    resp = transport.request('PUT', _path(url, container), data='',
                             headers={AUTH_HEADER: token})
    return _log_outcome(chain_future(resp, lambda r: None),
                        'Created container %s.',
                        'Failed to create container %s', container)


def get_container(url, token, transport, container):
    """
    Get a listing of object names in a container.

    :returns: a future resolving to a list of object names
    """
    resp = transport.request('GET', _path(url, container),
                             headers={AUTH_HEADER: token})
    return _log_outcome(chain_future(resp, _listing),
                        'Retrieved object list for %s.',
                        'Failed to retrieve object list for container %s',
                        container)


def head_container(url, token, transport, container):
    """
    :returns: a future resolving to the container's response header map
    """
    resp = transport.request('HEAD', _path(url, container),
                             headers={AUTH_HEADER: token})
    return _log_outcome(chain_future(resp, lambda r: r.headers),
                        'Retrieved container metadata for %s.',
                        'Failed to retrieve container metadata for %s',
                        container)


def post_container(url, token, transport, container, headers):
    req_headers = dict(headers)
    req_headers[AUTH_HEADER] = token
    resp = transport.request('POST', _path(url, container), data='',
                             headers=req_headers)
    return _log_outcome(chain_future(resp, lambda r: None),
                        'Container metadata for %s successfully updated.',
                        'Failed to update container metadata for %s',
                        container)


def delete_container(url, token, transport, container):
    """
    Delete a container. The server refuses to delete a container that
    still holds objects.
    """
    resp = transport.request('DELETE', _path(url, container),
                             headers={AUTH_HEADER: token})
    return _log_outcome(chain_future(resp, lambda r: None),
                        'Successfully deleted container: %s',
                        'Failed to delete container: %s', container)


def put_object(url, token, transport, container, name, contents):
    """
    Upload an object.

    :param contents: the object's bytes; text is sent encoded as UTF-8
    :returns: a future resolving to None
    """
    if isinstance(contents, str):
        contents = contents.encode('utf8')
    headers = {
        AUTH_HEADER: token,
        'Content-Type': 'application/octet-stream',
        'Content-Length': str(len(contents)),
    }
    resp = transport.request('PUT', _path(url, container, name),
                             data=contents, headers=headers)
    return _log_outcome(chain_future(resp, lambda r: None),
                        'Successfully stored object: %s/%s',
                        'Failed to store object: %s/%s', container, name)


def get_object(url, token, transport, container, name):
    """
    :returns: a future resolving to the object's bytes
    """
    resp = transport.request('GET', _path(url, container, name),
                             headers={AUTH_HEADER: token})
    return _log_outcome(chain_future(resp, lambda r: r.content),
                        'Successfully retrieved object: %s/%s',
                        'Failed to retrieve object: %s/%s', container, name)


def head_object(url, token, transport, container, name):
    resp = transport.request('HEAD', _path(url, container, name),
                             headers={AUTH_HEADER: token})
    return _log_outcome(chain_future(resp, lambda r: r.headers),
                        'Retrieved object metadata for %s/%s.',
                        'Failed to retrieve object metadata for %s/%s',
                        container, name)


def post_object(url, token, transport, container, name, headers):
    req_headers = dict(headers)
    req_headers[AUTH_HEADER] = token
    resp = transport.request('POST', _path(url, container, name), data='',
                             headers=req_headers)
    return _log_outcome(chain_future(resp, lambda r: None),
                        'Object metadata for %s/%s successfully updated.',
                        'Failed to update object metadata for %s/%s',
                        container, name)


def delete_object(url, token, transport, container, name):
    resp = transport.request('DELETE', _path(url, container, name),
                             headers={AUTH_HEADER: token})
    return _log_outcome(chain_future(resp, lambda r: None),
                        'Successfully deleted object: %s/%s',
                        'Failed to delete object: %s/%s', container, name)


class ObjectStorage:

    """
    Entry point for account level operations.

    Call :meth:`initialize` (or pass ``region`` to the constructor), then
    :meth:`connect`. Every operation returns a
    :class:`concurrent.futures.Future`; pass a
    :class:`~objectstorage.listener.ResponseListener` as ``listener`` to be
    called back as well. Each operation first makes sure the session holds
    an unexpired token, reauthenticating if it does not.

    Metadata updates send the given header names unchanged. Use
    :meth:`metadata_headers` to add the ``X-Account-Meta-`` prefix.
    """

    METADATA_PREFIX = 'X-Account-Meta-'
    AUTH_HEADER = AUTH_HEADER

    def __init__(self, region=None, options=None, transport=None,
                 clock=None):
        """
        :param region: a :class:`~objectstorage.config.Region` or region
                       name; falls back to ``OBJECTSTORAGE_REGION``
        :param options: a dict overriding the environment defaults, see
                        :func:`objectstorage.config.get_options`
        :param transport: sends the HTTP requests; built from the options
                          when not given
        :param clock: returns the current time in POSIX seconds
        """
        self.options = get_options(options)
        self._transport = transport
        self._clock = clock
        self.session = None
        region = region or self.options.get('region')
        if region is not None:
            self.initialize(region)

    @property
    def transport(self):
        if self._transport is None:
            self._transport = get_transport(self.options)
        return self._transport

    def initialize(self, region):
        """
        Select the region. No network traffic happens here.

        Initializing again starts a new, unauthenticated session.

        :raises ConfigurationError: for an unknown region
        """
        self.session = Session(get_region(region), self.transport,
                               clock=self._clock)

    def _submit(self, func, *args):
        if self.session is None:
            return failed_future(ConfigurationError(
                'ObjectStorage has no region; call initialize() first.'))
        return self.session.request(func, *args)

    @property
    def account_url(self):
        """
        :raises NotAuthenticatedError: before any successful connect
        """
        if self.session is None or self.session.account_url is None:
            raise NotAuthenticatedError(
                'You have not yet authenticated with Object Storage. '
                'Call connect() first.')
        return self.session.account_url

    def connect(self, project_id=None, user_id=None, password=None,
                listener=None):
        """
        Authenticate, scoped to a project.

        Arguments left as ``None`` are read from ``OS_PROJECT_ID``,
        ``OS_USER_ID`` and ``OS_PASSWORD``.

        :returns: a future resolving to the token
        """
        if self.session is None:
            future = failed_future(ConfigurationError(
                'ObjectStorage has no region; call initialize() first.'))
        else:
            future = self.session.connect(
                project_id or self.options['project_id'],
                user_id or self.options['user_id'],
                password or self.options['password'])
        return deliver(future, listener)

    def create_container(self, name, listener=None):
        """:returns: a future resolving to a :class:`Container`"""
        future = chain_future(self._submit(put_container, name),
                              lambda _: Container(name, self))
        return deliver(future, listener)

    def get_container(self, name, listener=None):
        """
        Check that a container exists.

        :returns: a future resolving to a :class:`Container`; a missing
                  container fails with a 404
                  :class:`~objectstorage.exceptions.TransportError`
        """
        future = chain_future(self._submit(get_container, name),
                              lambda _: Container(name, self))
        return deliver(future, listener)

    def list_containers(self, listener=None):
        """:returns: a future resolving to a list of :class:`Container`"""
        future = chain_future(
            self._submit(get_account),
            lambda names: [Container(n, self) for n in names])
        return deliver(future, listener)

    def delete_container(self, name, listener=None):
        return deliver(self._submit(delete_container, name), listener)

    def get_account_metadata(self, listener=None):
        """
        :returns: a future resolving to every response header (not only the
                  metadata ones), each name mapped to a list of values
        """
        return deliver(self._submit(head_account), listener)

    def update_account_metadata(self, metadata, listener=None):
        return deliver(self._submit(post_account, metadata), listener)

    @classmethod
    def metadata_headers(cls, metadata):
        """
        Prefix metadata names for an update, e.g. ``{'color': 'blue'}``
        becomes ``{'X-Account-Meta-Color': 'blue'}``.
        """
        return split_request_headers(metadata, cls.METADATA_PREFIX)

    def close(self):
        if self._transport is not None:
            self._transport.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()


class Container:

    """
    A handle on a container: its name, and the client it belongs to.

    Handles are not invalidated when the remote container is deleted.
    """

    METADATA_PREFIX = 'X-Container-Meta-'

    def __init__(self, name, storage):
        self.name = name
        self.storage = storage

    @property
    def url(self):
        """
        :raises NotAuthenticatedError: before any successful connect
        """
        return _path(self.storage.account_url, self.name)

    def store_object(self, name, data, listener=None):
        """
        Upload ``data`` as object ``name``.

        :returns: a future resolving to a :class:`StorageObject` holding
                  ``data``
        """
        future = chain_future(
            self.storage._submit(put_object, self.name, name, data),
            lambda _: StorageObject(name, self, data))
        return deliver(future, listener)

    def get_object(self, name, listener=None):
        """
        Download an object.

        :returns: a future resolving to a :class:`StorageObject` whose cached
                  data is the downloaded bytes
        """
        if name is None:
            logger.error('Object name cannot be None.')
            future = failed_future(ObjectStorageException(
                'Failed to get object. Object name cannot be None.'))
        else:
            future = chain_future(
                self.storage._submit(get_object, self.name, name),
                lambda data: StorageObject(name, self, data))
        return deliver(future, listener)

    def list_objects(self, listener=None):
        """
        :returns: a future resolving to a list of :class:`StorageObject`
                  without cached data
        """
        future = chain_future(
            self.storage._submit(get_container, self.name),
            lambda names: [StorageObject(n, self) for n in names])
        return deliver(future, listener)

    def delete_object(self, name, listener=None):
        return deliver(
            self.storage._submit(delete_object, self.name, name), listener)

    def delete(self, listener=None):
        """Delete this container; it must be empty."""
        return self.storage.delete_container(self.name, listener=listener)

    def get_metadata(self, listener=None):
        return deliver(
            self.storage._submit(head_container, self.name), listener)

    def update_metadata(self, metadata, listener=None):
        return deliver(
            self.storage._submit(post_container, self.name, metadata),
            listener)

    @classmethod
    def metadata_headers(cls, metadata):
        return split_request_headers(metadata, cls.METADATA_PREFIX)

    def __repr__(self):
        return '<Container %r>' % self.name

    def __str__(self):
        return self.name


class StorageObject:

    """
    A handle on an object, optionally holding its data.

    Data is present when the object was stored or fetched through its
    container, or after ``load(should_cache=True)``; listings produce
    handles without data.
    """

    METADATA_PREFIX = 'X-Object-Meta-'

    def __init__(self, name, container, data=None):
        self.name = name
        self.container = container
        self._data = data

    @property
    def url(self):
        """
        :raises NotAuthenticatedError: before any successful connect
        """
        return _path(self.container.url, self.name)

    def _submit(self, func, *args):
        return self.container.storage._submit(
            func, self.container.name, self.name, *args)

    def load(self, should_cache=False, listener=None):
        """
        Download the object's data.

        :param should_cache: keep the downloaded bytes for
                             :meth:`get_cached_data`; otherwise the cached
                             data is left untouched
        :returns: a future resolving to the downloaded bytes
        """
        logger.debug('Loading object: %s', self.name)

        def _cache(data):
            if should_cache:
                self._data = data
            return data

        future = chain_future(self._submit(get_object), _cache)
        return deliver(future, listener)

    def delete(self, listener=None):
        return self.container.delete_object(self.name, listener=listener)

    def get_metadata(self, listener=None):
        return deliver(self._submit(head_object), listener)

    def update_metadata(self, metadata, listener=None):
        return deliver(self._submit(post_object, metadata), listener)

    def get_cached_data(self):
        return self._data

    @classmethod
    def metadata_headers(cls, metadata):
        return split_request_headers(metadata, cls.METADATA_PREFIX)

    def __repr__(self):
        return '<StorageObject %r in %r>' % (self.name, self.container.name)

    def __str__(self):
        return self.name
