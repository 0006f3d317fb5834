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

import json
import unittest
from concurrent.futures import Future

from objectstorage.transport import Response, check_status

FUTURE_EXPIRY = '2030-01-01T00:00:00Z'
FUTURE_EXPIRY_TS = 1893456000.0
NOW = 1700000000.0


class StubResponse(object):
    """
    Placeholder structure for use with FakeTransport to describe one
    response (status, body, headers).
    """

    def __init__(self, status=200, body=b'', headers=None):
        self.status = status
        self.body = body if isinstance(body, bytes) else body.encode('utf8')
        self.headers = headers or {}

    def to_response(self, url):
        return Response(self.status, 'Fake', self.headers, self.body,
                        url=url)

    def __repr__(self):
        return '%s(%r, %r, %r)' % (self.__class__.__name__, self.status,
                                   self.body, self.headers)


def auth_response(token='tok123', expires_at=FUTURE_EXPIRY, status=201):
    body = {'token': {'expires_at': expires_at, 'methods': ['password']}}
    return StubResponse(status, json.dumps(body),
                        {'X-Subject-Token': token,
                         'Content-Type': 'application/json'})


class FakeTransport(object):
    """
    Stands in for HTTPTransport. Each request consumes the next queued
    item: a StubResponse is turned into a completed future (failed with a
    TransportError for non-2xx statuses), an exception fails the future and
    a Future is handed back as is, so tests can complete it later.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.request_log = []
        self.closed = False

    def queue(self, *responses):
        self.responses.extend(responses)

    def request(self, method, url, data=None, headers=None):
        self.request_log.append({
            'method': method,
            'url': url,
            'data': data,
            'headers': dict(headers or {}),
        })
        if not self.responses:
            raise AssertionError('Unexpected %s request for %s'
                                 % (method, url))
        item = self.responses.pop(0)
        if isinstance(item, Future):
            return item
        f = Future()
        if isinstance(item, Exception):
            f.set_exception(item)
            return f
        try:
            f.set_result(check_status(method, item.to_response(url)))
        except Exception as err:
            f.set_exception(err)
        return f

    def close(self):
        self.closed = True

    @property
    def methods(self):
        return [r['method'] for r in self.request_log]

    @property
    def urls(self):
        return [r['url'] for r in self.request_log]


class MockClock(object):
    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now


class RecordingListener(object):
    def __init__(self):
        self.successes = []
        self.failures = []

    def on_success(self, value):
        self.successes.append(value)

    def on_failure(self, response, cause, extended_info):
        self.failures.append((response, cause, extended_info))


class FakeTransportTest(unittest.TestCase):

    def setUp(self):
        super(FakeTransportTest, self).setUp()
        self.transport = FakeTransport()
        self.clock = MockClock()

    def tearDown(self):
        super(FakeTransportTest, self).tearDown()
        self.assertEqual([], self.transport.responses,
                         'Queued responses were not consumed')
