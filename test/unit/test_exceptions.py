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

import unittest

from objectstorage import exceptions as e
from objectstorage.transport import Response


class TestHierarchy(unittest.TestCase):

    def test_subclasses(self):
        for cls in (e.ConfigurationError, e.NotAuthenticatedError,
                    e.AuthenticationError, e.TransportError):
            self.assertTrue(issubclass(cls, e.ObjectStorageException))
        self.assertTrue(issubclass(e.NotAuthenticatedError,
                                   e.ConfigurationError))
        self.assertTrue(issubclass(e.ObjectStorageException, Exception))

    def test_authentication_error(self):
        cause = ValueError('bad json')
        exc = e.AuthenticationError('no token', response='r', cause=cause)
        self.assertEqual('no token', exc.msg)
        self.assertEqual('no token', str(exc))
        self.assertEqual('r', exc.response)
        self.assertIs(cause, exc.cause)
        self.assertIsNone(exc.extended_info)


class TestTransportError(unittest.TestCase):

    def test_format(self):
        exc = e.TransportError('something failed')
        self.assertIn('something failed', str(exc))
        test_kwargs = (
            'scheme',
            'host',
            'port',
            'path',
            'query',
            'status',
            'reason',
            'response_content',
        )
        for value in test_kwargs:
            kwargs = {
                'http_%s' % value: value,
            }
            exc = e.TransportError('test', **kwargs)
            self.assertIn(value, str(exc))

    def test_attrs(self):
        test_kwargs = (
            'scheme',
            'host',
            'port',
            'path',
            'query',
            'status',
            'reason',
            'response_content',
            'response_headers',
        )
        for value in test_kwargs:
            key = 'http_%s' % value
            kwargs = {key: value}
            exc = e.TransportError('test', **kwargs)
            self.assertIs(True, hasattr(exc, key))
            self.assertEqual(getattr(exc, key), value)

    def test_long_content_is_truncated(self):
        exc = e.TransportError('test', http_response_content='x' * 100)
        self.assertIn('[first 60 chars of response] ' + 'x' * 60, str(exc))
        self.assertNotIn('x' * 61, str(exc))

    def test_cause_shown_without_http_details(self):
        exc = e.TransportError('test', cause=IOError('reset'))
        self.assertIn('reset', str(exc))

    def test_transaction_id_from_headers(self):
        exc = e.TransportError('test')
        self.assertIsNone(exc.transaction_id)

        exc = e.TransportError('test', http_response_headers={})
        self.assertIsNone(exc.transaction_id)

        exc = e.TransportError('test', http_response_headers={
            'X-Trans-Id': 'some-id'})
        self.assertEqual(exc.transaction_id, 'some-id')
        self.assertIn('(txn: some-id)', str(exc))

        exc = e.TransportError('test', http_response_headers={
            'X-Openstack-Request-Id': 'some-other-id'})
        self.assertEqual(exc.transaction_id, 'some-other-id')

        exc = e.TransportError('test', http_response_headers={
            'X-Trans-Id': ['first', 'second']})
        self.assertEqual(exc.transaction_id, 'first')

    def test_from_response(self):
        resp = Response(409, 'Conflict', {'X-Trans-Id': 'tx9'},
                        b'There was a conflict',
                        url='https://host:443/v1/AUTH_p/c?format=plain')
        exc = e.TransportError.from_response(resp)
        self.assertEqual('409 Conflict', exc.msg)
        self.assertEqual('https', exc.http_scheme)
        self.assertEqual('host', exc.http_host)
        self.assertEqual(443, exc.http_port)
        self.assertEqual('/v1/AUTH_p/c', exc.http_path)
        self.assertEqual('format=plain', exc.http_query)
        self.assertEqual(409, exc.http_status)
        self.assertEqual(b'There was a conflict', exc.http_response_content)
        self.assertIs(resp, exc.response)
        self.assertEqual('tx9', exc.transaction_id)
        self.assertIsNone(exc.extended_info)

    def test_from_response_json_detail(self):
        resp = Response(400, 'Bad Request',
                        {'Content-Type': 'application/json'},
                        b'{"error": {"message": "bad"}}')
        exc = e.TransportError.from_response(resp, 'nope')
        self.assertEqual('nope', exc.msg)
        self.assertEqual({'error': {'message': 'bad'}}, exc.extended_info)

    def test_from_response_bad_json_detail(self):
        resp = Response(400, 'Bad Request',
                        {'Content-Type': 'application/json'}, b'{')
        self.assertIsNone(
            e.TransportError.from_response(resp).extended_info)


if __name__ == '__main__':
    unittest.main()
