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
HTTP transport used by the session and the resource clients.

Every request is sent from a worker thread and handed back to the caller
as a :class:`concurrent.futures.Future` resolving to a :class:`Response`.
"""
import logging
from urllib.parse import quote, unquote, urlparse

import requests
from requests.exceptions import RequestException
from requests.sessions import merge_hooks, merge_setting
from requests.structures import CaseInsensitiveDict

from objectstorage import version as objectstorage_version
from objectstorage.exceptions import TransportError
from objectstorage.multithreading import ConnectionThreadPoolExecutor

logger = logging.getLogger("objectstorage.transport")

SUPPORTED_METHODS = ('GET', 'PUT', 'POST', 'DELETE', 'HEAD')
USER_METADATA_TYPE = tuple('x-%s-meta-' % type_ for type_ in
                           ('container', 'account', 'object'))

#: Default behaviour is to redact header values known to contain secrets,
#: such as ``X-Auth-Token`` and ``X-Subject-Token``. Up to the first 16
#: chars may be revealed.
#:
#: To disable, set the value of ``redact_sensitive_headers`` to ``False``.
logger_settings = {
    'redact_sensitive_headers': True,
    'reveal_sensitive_prefix': 16
}
#: A list of sensitive headers to redact in logs. Note that when extending this
#: list, the header names must be added in all lower case.
LOGGER_SENSITIVE_HEADERS = [
    'x-auth-token', 'x-subject-token', 'x-service-token',
    'x-account-meta-temp-url-key', 'x-account-meta-temp-url-key-2',
    'x-container-meta-temp-url-key', 'x-container-meta-temp-url-key-2',
    'set-cookie'
]


def safe_value(name, value):
    """
    Only show up to logger_settings['reveal_sensitive_prefix'] characters
    from a sensitive header.
    """
    if name.lower() in LOGGER_SENSITIVE_HEADERS:
        prefix_length = logger_settings.get('reveal_sensitive_prefix', 16)
        prefix_length = int(
            min(prefix_length, (len(value) ** 2) / 32, len(value) / 2)
        )
        redacted_value = value[0:prefix_length]
        return redacted_value + '...'
    return value


def parse_header_string(data):
    if not isinstance(data, (str, bytes)):
        data = str(data)
    if isinstance(data, bytes):
        try:
            data = data.decode('ascii')
        except UnicodeDecodeError:
            data = quote(data)
    try:
        unquoted = unquote(data, errors='strict')
    except UnicodeDecodeError:
        return data
    return unquoted


def scrub_headers(headers):
    """
    Redact header values that can contain sensitive information that
    should not be logged.

    :param headers: a mapping of header name to a value or a list of values
    :return: Safe dictionary of headers with sensitive information removed
    """
    scrubbed = {}
    redact = logger_settings.get('redact_sensitive_headers', True)
    if logger_settings.get('reveal_sensitive_prefix', 16) < 0:
        logger_settings['reveal_sensitive_prefix'] = 16
    for key, val in headers.items():
        key = parse_header_string(key)
        if isinstance(val, list):
            val = ', '.join(parse_header_string(v) for v in val)
        else:
            val = parse_header_string(val)
        scrubbed[key] = safe_value(key, val) if redact else val
    return scrubbed


def http_log(method, url, req_headers, resp):
    if not logger.isEnabledFor(logging.INFO):
        return

    # create and log equivalent curl command
    string_parts = ['curl -i']
    if method == 'HEAD':
        string_parts.append(' -I')
    else:
        string_parts.append(' -X %s' % method)
    string_parts.append(' %s' % url)
    headers = scrub_headers(req_headers or {})
    for element in headers:
        string_parts.append(' -H "%s: %s"' % (element, headers[element]))

    # log response as debug if good, or info if error
    if resp.status < 300:
        log_method = logger.debug
    else:
        log_method = logger.info

    log_method("REQ: %s", "".join(string_parts))
    log_method("RESP STATUS: %s %s", resp.status, resp.reason)
    log_method("RESP HEADERS: %s", scrub_headers(resp.headers))
    if resp.content and method != 'GET':
        log_method("RESP BODY: %s", resp.content)


def encode_utf8(value):
    if type(value) in (int, float, bool):
        # requests only accepts byte- or unicode-string header values
        value = str(value)
    if isinstance(value, str):
        value = value.encode('utf8')
    return value


def encode_meta_headers(headers):
    """Encode metadata header names and every header value as UTF-8"""
    ret = {}
    for header, value in headers.items():
        value = encode_utf8(value)
        if _is_metadata_header(header):
            header = encode_utf8(header)
        ret[header] = value
    return ret


def _decode_header(string):
    if string is None:
        return string
    try:
        return string.encode('iso-8859-1').decode('utf-8')
    except UnicodeError:
        return string


def _is_ascii(value):
    if isinstance(value, str):
        value = value.encode('utf8')
    return isinstance(value, bytes) and value.isascii()


def _is_metadata_header(name):
    if isinstance(name, bytes):
        name = name.decode('utf8', 'replace')
    return name.lower().startswith(USER_METADATA_TYPE)


class MetadataPreparedRequest(requests.PreparedRequest):
    def prepare_headers(self, headers):
        try:
            return super().prepare_headers(headers)
        except UnicodeError:
            # Metadata headers may carry UTF-8; pass them through as they
            # are. Non-ASCII in any other header is still an error.
            for name, value in (headers or {}).items():
                if _is_metadata_header(name):
                    continue
                if not (_is_ascii(name) and _is_ascii(value)):
                    raise
            self.headers = CaseInsensitiveDict(headers or {})


class ObjectStorageRequestsSession(requests.Session):
    """
    A requests session without cookie handling, .netrc lookups or default
    headers, preparing requests that tolerate UTF-8 metadata headers.
    """

    def __init__(self):
        super(ObjectStorageRequestsSession, self).__init__()
        self.headers = None

    def prepare_request(self, request):
        p = MetadataPreparedRequest()
        p.prepare(
            method=request.method.upper(),
            url=request.url,
            data=request.data,
            headers=merge_setting(request.headers, self.headers,
                                  dict_class=CaseInsensitiveDict),
            params=merge_setting(request.params, self.params),
            auth=merge_setting(request.auth, self.auth),
            cookies=None,
            hooks=merge_hooks(request.hooks, self.hooks),
        )
        return p


class Response:
    """
    A completed HTTP exchange.

    ``headers`` maps each (case-insensitive) header name to the list of its
    values in the order the server sent them.
    """

    def __init__(self, status, reason='', headers=None, content=b'',
                 url=None):
        self.status = status
        self.reason = reason
        self.url = url
        self.content = content or b''
        self.headers = CaseInsensitiveDict()
        for name, value in (headers or {}).items():
            if isinstance(value, (list, tuple)):
                self.headers[name] = list(value)
            else:
                self.headers[name] = [value]

    @property
    def text(self):
        charset = 'utf-8'
        content_type = self.getheader('content-type') or ''
        if '; charset=' in content_type:
            charset = content_type.split('; charset=', 1)[1].split(';', 1)[0]
        try:
            return self.content.decode(charset, 'replace')
        except LookupError:
            logger.debug('Unknown charset %r; decoding as UTF-8', charset)
            return self.content.decode('utf-8', 'replace')

    def getheader(self, name, default=None):
        values = self.headers.get(name)
        if not values:
            return default
        return values[0]

    @classmethod
    def from_requests(cls, resp):
        headers = {}
        raw_headers = getattr(resp.raw, 'headers', None)
        for name in resp.headers:
            if raw_headers is not None and hasattr(raw_headers, 'getlist'):
                values = raw_headers.getlist(name)
            else:
                values = [resp.headers[name]]
            headers[_decode_header(name)] = [_decode_header(v)
                                             for v in values]
        return cls(resp.status_code, resp.reason, headers, resp.content,
                   url=resp.url)

    def __repr__(self):
        return '<%s %s %s>' % (self.__class__.__name__, self.status,
                               self.url)


def check_status(method, resp):
    """
    :raises TransportError: if the response status is not 2xx
    """
    if resp.status < 200 or resp.status >= 300:
        raise TransportError.from_response(
            resp, '%s %s failed' % (method, resp.url))
    return resp


class HTTPTransport:
    def __init__(self, max_workers=10, timeout=None, insecure=False,
                 cacert=None, cert=None, cert_key=None, proxy=None,
                 default_user_agent=None):
        """
        Send HTTP requests asynchronously on a pool of worker threads.

        :param max_workers: number of worker threads, each of which keeps
                            its own requests session
        :param timeout: socket timeout, passed directly to requests
        :param insecure: Allow to access servers without checking SSL certs.
        :param cacert: A CA bundle file to use in verifying a TLS server
                       certificate.
        :param cert: Client certificate file to connect on SSL server
                     requiring SSL client certificate.
        :param cert_key: Client certificate private key file.
        :param proxy: proxy to connect through, e.g. 'http://127.0.0.1:8888'
        :param default_user_agent: Set the User-Agent header on every request.
                                   Defaults to
                                   "python-objectstorage-<version>".
        :raises TransportError: if the proxy URL has no scheme
        """
        self.requests_args = {}
        self.requests_args['verify'] = not insecure
        if cacert and not insecure:
            self.requests_args['verify'] = cacert
        if cert:
            if cert_key:
                self.requests_args['cert'] = cert, cert_key
            else:
                self.requests_args['cert'] = cert
        if proxy:
            proxy_parsed = urlparse(proxy)
            if not proxy_parsed.scheme:
                raise TransportError("Proxy's missing scheme")
            self.requests_args['proxies'] = {
                proxy_parsed.scheme: '%s://%s' % (
                    proxy_parsed.scheme, proxy_parsed.netloc
                )
            }
        if timeout:
            self.requests_args['timeout'] = timeout
        if default_user_agent is None:
            default_user_agent = 'python-objectstorage-%s' % (
                objectstorage_version.version_string)
        self.default_user_agent = default_user_agent
        self.pool = ConnectionThreadPoolExecutor(
            ObjectStorageRequestsSession, max_workers=max_workers)

    def _request(self, session, *arg, **kwarg):
        """Final wrapper before requests call, to be patched in tests"""
        return session.request(*arg, **kwarg)

    def _send(self, session, method, url, data, headers):
        try:
            resp = self._request(session, method, url, headers=headers,
                                 data=data, **self.requests_args)
        except RequestException as err:
            logger.info('%s %s failed: %s', method, url, err)
            raise TransportError('%s %s failed' % (method, url), cause=err)
        response = Response.from_requests(resp)
        http_log(method, url, headers, response)
        return check_status(method, response)

    def request(self, method, url, data=None, headers=None):
        """
        Send a request without waiting for the response.

        :param method: one of GET, PUT, POST, DELETE or HEAD
        :param url: absolute URL
        :param data: optional body, text or bytes
        :param headers: optional mapping of request headers
        :returns: a future resolving to a :class:`Response`, or failing with
                  :class:`TransportError`
        :raises ValueError: for an unsupported method
        """
        method = method.upper()
        if method not in SUPPORTED_METHODS:
            raise ValueError('Unsupported method %r' % method)
        if headers is None:
            headers = {}
        else:
            headers = encode_meta_headers(headers)
        if 'user-agent' not in (
                h.lower() if isinstance(h, str) else h.decode('utf8').lower()
                for h in headers):
            headers['User-Agent'] = self.default_user_agent
        return self.pool.submit(self._send, method, url, data, headers)

    def close(self):
        self.pool.shutdown(wait=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
