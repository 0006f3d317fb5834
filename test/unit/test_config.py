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
from unittest import mock

from objectstorage import config
from objectstorage.exceptions import ConfigurationError


class TestRegion(unittest.TestCase):

    def test_urls(self):
        self.assertEqual('https://identity.open.softlayer.com/v3/auth/tokens',
                         config.Region.DALLAS.identity_url)
        self.assertEqual(config.Region.DALLAS.identity_url,
                         config.Region.LONDON.identity_url)
        self.assertEqual(
            'https://dal.objectstorage.open.softlayer.com/v1/AUTH_abc',
            config.Region.DALLAS.account_url('abc'))
        self.assertEqual(
            'https://lon.objectstorage.open.softlayer.com/v1/AUTH_abc',
            config.Region.LONDON.account_url('abc'))

    def test_get_region(self):
        self.assertIs(config.Region.LONDON,
                      config.get_region(config.Region.LONDON))
        for name in ('dallas', 'DALLAS', ' Dallas '):
            self.assertIs(config.Region.DALLAS, config.get_region(name))
        for bad in ('mars', '', None, 3):
            self.assertRaises(ConfigurationError, config.get_region, bad)


class TestGetOptions(unittest.TestCase):

    def test_environment(self):
        env = {
            'OBJECTSTORAGE_REGION': 'london',
            'OS_PROJECT_ID': 'p',
            'OS_USER_ID': 'u',
            'OS_PASSWORD': 'pw',
            'OS_CACERT': '/ca',
            'OBJECTSTORAGE_INSECURE': 'yes',
            'OBJECTSTORAGE_TIMEOUT': '2.5',
        }
        with mock.patch.dict('os.environ', env, clear=True):
            options = config.get_options()
        self.assertEqual('london', options['region'])
        self.assertEqual(('p', 'u', 'pw'), (options['project_id'],
                                            options['user_id'],
                                            options['password']))
        self.assertEqual('/ca', options['os_cacert'])
        self.assertIs(True, options['insecure'])
        self.assertEqual(2.5, options['timeout'])
        self.assertIsNone(options['proxy'])
        self.assertEqual(10, options['threads'])

    def test_explicit_options_win(self):
        with mock.patch.dict('os.environ', {'OS_USER_ID': 'env'},
                             clear=True):
            options = config.get_options({'user_id': 'given',
                                          'password': None,
                                          'threads': 2})
        self.assertEqual('given', options['user_id'])
        self.assertIsNone(options['password'])
        self.assertEqual(2, options['threads'])
        self.assertIs(False, options['insecure'])
        self.assertIsNone(options['timeout'])

    def test_bad_timeout(self):
        with mock.patch.dict('os.environ', {}, clear=True):
            self.assertRaises(ConfigurationError, config.get_options,
                              {'timeout': 'soon'})

    def test_get_transport(self):
        with mock.patch.dict('os.environ', {}, clear=True), \
                mock.patch.object(config, 'HTTPTransport') as transport:
            rv = config.get_transport({'threads': '4', 'timeout': 7,
                                       'proxy': 'http://p:1'})
        self.assertIs(transport.return_value, rv)
        transport.assert_called_once_with(
            max_workers=4, timeout=7.0, insecure=False, cacert=None,
            cert=None, cert_key=None, proxy='http://p:1')


if __name__ == '__main__':
    unittest.main()
