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

import enum
from os import environ

from objectstorage.exceptions import ConfigurationError
from objectstorage.transport import HTTPTransport
from objectstorage.utils import config_true_value

IDENTITY_URL = 'https://identity.open.softlayer.com/v3/auth/tokens'
DALLAS_API_URL = 'https://dal.objectstorage.open.softlayer.com/v1/AUTH_'
LONDON_API_URL = 'https://lon.objectstorage.open.softlayer.com/v1/AUTH_'


class Region(enum.Enum):
    """
    A deployment region: where to authenticate and where the account API
    lives. The account URL is the region's prefix followed by the project
    id.
    """
    DALLAS = (IDENTITY_URL, DALLAS_API_URL)
    LONDON = (IDENTITY_URL, LONDON_API_URL)

    def __init__(self, identity_url, account_url_prefix):
        self.identity_url = identity_url
        self.account_url_prefix = account_url_prefix

    def account_url(self, project_id):
        return self.account_url_prefix + project_id


def get_region(value):
    """
    :param value: a :class:`Region` or a region name such as ``'dallas'``
    :raises ConfigurationError: for an unknown region
    """
    if isinstance(value, Region):
        return value
    if isinstance(value, str):
        try:
            return Region[value.strip().upper()]
        except KeyError:
            pass
    raise ConfigurationError(
        'Unknown region %r; expected one of %s' % (
            value, ', '.join(r.name.lower() for r in Region)))


def _build_default_options():
    return {
        "region": environ.get('OBJECTSTORAGE_REGION'),
        "project_id": environ.get('OS_PROJECT_ID'),
        "user_id": environ.get('OS_USER_ID'),
        "password": environ.get('OS_PASSWORD'),
        "os_cacert": environ.get('OS_CACERT'),
        "os_cert": environ.get('OS_CERT'),
        "os_key": environ.get('OS_KEY'),
        "insecure": config_true_value(environ.get('OBJECTSTORAGE_INSECURE')),
        "timeout": environ.get('OBJECTSTORAGE_TIMEOUT'),
        "proxy": environ.get('OBJECTSTORAGE_PROXY'),
        "threads": 10,
    }


def get_options(options=None):
    """
    Merge explicitly given options over the environment defaults.

    Options whose value is ``None`` do not override the environment.
    """
    merged = _build_default_options()
    for key, value in (options or {}).items():
        if value is not None:
            merged[key] = value
    if merged['timeout'] is not None:
        try:
            merged['timeout'] = float(merged['timeout'])
        except ValueError:
            raise ConfigurationError(
                'Invalid timeout %r' % (merged['timeout'],))
    return merged


def get_transport(options):
    """
    Return a transport building it from the options.
    """
    options = get_options(options)
    return HTTPTransport(max_workers=int(options['threads']),
                         timeout=options['timeout'],
                         insecure=options['insecure'],
                         cacert=options['os_cacert'],
                         cert=options['os_cert'],
                         cert_key=options['os_key'],
                         proxy=options['proxy'])
