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
"""Miscellaneous utility functions for use with Object Storage."""
from calendar import timegm
from collections.abc import Mapping
from concurrent.futures import Future
import time

TRUE_VALUES = set(('true', '1', 'yes', 'on', 't', 'y'))
EXPIRES_ISO8601_FORMAT = '%Y-%m-%dT%H:%M:%SZ'
EXPIRES_ISO8601_USEC_FORMAT = '%Y-%m-%dT%H:%M:%S.%fZ'
TIME_ERRMSG = ('expiry must be an ISO 8601 UTC timestamp such as '
               '2024-01-01T00:00:00Z.')


def config_true_value(value):
    """
    Returns True if the value is either True or a string in TRUE_VALUES.
    Returns False otherwise.
    """
    return value is True or \
        (isinstance(value, str) and value.lower() in TRUE_VALUES)


def parse_iso8601(value):
    """
    Convert an ISO 8601 UTC timestamp into POSIX seconds.

    Keystone documents second precision with a literal ``Z`` suffix, but
    some deployments send microseconds too; both are accepted.

    :param value: timestamp string, e.g. ``2024-01-01T00:00:00Z``
    :raises ValueError: if the value is not a string in either format.
    :return: seconds since the epoch, as a float
    """
    if not isinstance(value, str):
        raise ValueError(TIME_ERRMSG)
    try:
        return float(timegm(time.strptime(value, EXPIRES_ISO8601_FORMAT)))
    except ValueError:
        pass
    _, _, fraction = value.rstrip('Z').partition('.')
    try:
        t = time.strptime(value, EXPIRES_ISO8601_USEC_FORMAT)
        return timegm(t) + float('0.' + fraction)
    except ValueError:
        raise ValueError(TIME_ERRMSG)


def parse_listing(body):
    """
    Split a plain-text listing body into names, one per line.

    Blank lines (including the one left by a trailing newline) are
    dropped; order is preserved.
    """
    if not body:
        return []
    return [name for name in body.splitlines() if name]


def split_request_headers(options, prefix=''):
    headers = {}
    if isinstance(options, Mapping):
        options = options.items()
    for item in options:
        if isinstance(item, str):
            if ':' not in item:
                raise ValueError(
                    "Metadata parameter %s must contain a ':'.\n"
                    "Example: 'Color:Blue' or 'Size:Large'"
                    % item
                )
            item = item.split(':', 1)
        if len(item) != 2:
            raise ValueError(
                "Metadata parameter %r must have exactly two items.\n"
                "Example: ('Color', 'Blue') or ['Size', 'Large']"
                % (item, )
            )
        headers[(prefix + item[0]).title()] = item[1].strip()
    return headers


def completed_future(value):
    f = Future()
    f.set_result(value)
    return f


def failed_future(exc):
    f = Future()
    f.set_exception(exc)
    return f


def _claim(target):
    # a cancelled target is left alone; a claimed one can no longer be
    # cancelled
    return target.set_running_or_notify_cancel()


def copy_future(source, target):
    """
    Resolve ``target`` with the outcome of ``source`` once it is done.

    Nothing happens if ``target`` was cancelled in the meantime.
    """
    def _copy(f):
        if f.cancelled():
            target.cancel()
            return
        exc = f.exception()
        if not _claim(target):
            return
        if exc is not None:
            target.set_exception(exc)
        else:
            target.set_result(f.result())
    source.add_done_callback(_copy)
    return target


def chain_future(future, fn, chained=None):
    """
    Return a future resolved from ``fn(result)`` once ``future`` succeeds.

    ``fn`` may return a plain value or another future, in which case the
    chained future follows that one. If ``future`` fails, or ``fn`` raises,
    the chained future fails with the same exception and ``fn`` is not
    called (or its outcome is discarded). If the chained future is
    cancelled first, ``fn`` is not called.

    :param future: the future to wait on
    :param fn: called with the result of ``future``
    :param chained: an optional, not yet resolved future to resolve instead
                    of creating a new one
    """
    if chained is None:
        chained = Future()

    def _done(f):
        if chained.cancelled():
            return
        try:
            rv = fn(f.result())
        except Exception as err:
            if _claim(chained):
                chained.set_exception(err)
            return
        if isinstance(rv, Future):
            copy_future(rv, chained)
        elif _claim(chained):
            chained.set_result(rv)

    future.add_done_callback(_done)
    return chained
