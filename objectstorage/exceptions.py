# Copyright (c) 2010-2013 OpenStack, LLC.
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

import json
from urllib.parse import urlparse


class ObjectStorageException(Exception):

    def __init__(self, msg):
        super(ObjectStorageException, self).__init__(msg)
        self.msg = msg


class ConfigurationError(ObjectStorageException):
    """
    Raised when an operation is attempted before the client has been
    initialized with a region.
    """


class NotAuthenticatedError(ConfigurationError):
    """
    Raised when a resource operation is attempted before any successful
    authentication, i.e. while no account URL is known.
    """


class AuthenticationError(ObjectStorageException):

    def __init__(self, msg, response=None, cause=None):
        super(AuthenticationError, self).__init__(msg)
        self.response = response
        self.cause = cause
        self.extended_info = None


def _structured_detail(response):
    content_type = response.getheader('content-type') or ''
    if not content_type.startswith('application/json'):
        return None
    try:
        return json.loads(response.text)
    except ValueError:
        return None


class TransportError(ObjectStorageException):

    def __init__(self, msg, http_scheme='', http_host='', http_port='',
                 http_path='', http_query='', http_status=None, http_reason='',
                 http_response_content='', http_response_headers=None,
                 response=None, cause=None, extended_info=None):
        super(TransportError, self).__init__(msg)
        self.http_scheme = http_scheme
        self.http_host = http_host
        self.http_port = http_port
        self.http_path = http_path
        self.http_query = http_query
        self.http_status = http_status
        self.http_reason = http_reason
        self.http_response_content = http_response_content
        self.http_response_headers = http_response_headers
        self.response = response
        self.cause = cause
        self.extended_info = extended_info

        self.transaction_id = None
        if self.http_response_headers:
            for header in ('X-Trans-Id', 'X-Openstack-Request-Id'):
                if header in self.http_response_headers:
                    value = self.http_response_headers[header]
                    if isinstance(value, list):
                        value = value[0] if value else None
                    self.transaction_id = value
                    break

    @classmethod
    def from_response(cls, resp, msg=None, cause=None):
        msg = msg or '%s %s' % (resp.status, resp.reason)
        parsed_url = urlparse(resp.url or '')
        return cls(msg, parsed_url.scheme, parsed_url.hostname,
                   parsed_url.port, parsed_url.path, parsed_url.query,
                   resp.status, resp.reason, resp.content, resp.headers,
                   response=resp, cause=cause,
                   extended_info=_structured_detail(resp))

    def __str__(self):
        a = self.msg
        b = ''
        if self.http_scheme:
            b += '%s://' % self.http_scheme
        if self.http_host:
            b += self.http_host
        if self.http_port:
            b += ':%s' % self.http_port
        if self.http_path:
            b += self.http_path
        if self.http_query:
            b += '?%s' % self.http_query
        if self.http_status:
            if b:
                b = '%s %s' % (b, self.http_status)
            else:
                b = str(self.http_status)
        if self.http_reason:
            if b:
                b = '%s %s' % (b, self.http_reason)
            else:
                b = '- %s' % self.http_reason
        if self.http_response_content:
            if len(self.http_response_content) <= 60:
                b += '   %s' % self.http_response_content
            else:
                b += '  [first 60 chars of response] %s' \
                    % self.http_response_content[:60]
        c = ''
        if self.transaction_id:
            c = ' (txn: %s)' % self.transaction_id
        if not b and self.cause is not None:
            b = repr(self.cause)
        return b and '%s: %s%s' % (a, b, c) or (a + c)
