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
Result delivery for asynchronous operations.

Every operation returns a :class:`concurrent.futures.Future`. Callers who
prefer callbacks can also pass a :class:`ResponseListener`, and callers
who want a value they can inspect without try/except can turn a future
into a :class:`Result`.
"""
from concurrent.futures import CancelledError


class ResponseListener:
    """
    Callback interface used by every operation.

    Subclass and override both methods. The meaning of ``value`` depends
    on the operation; on failure any of the three arguments may be
    ``None``.
    """

    def on_success(self, value):
        pass

    def on_failure(self, response, cause, extended_info):
        """
        :param response: the :class:`~objectstorage.transport.Response` the
                         server sent, if an HTTP exchange took place
        :param cause: the exception describing the failure
        :param extended_info: structured detail from the server, if any
        """
        pass


def failure_details(err):
    """Split an exception into ``(response, cause, extended_info)``."""
    response = getattr(err, 'response', None)
    cause = getattr(err, 'cause', None) or err
    extended_info = getattr(err, 'extended_info', None)
    return response, cause, extended_info


def deliver(future, listener=None):
    """
    Notify ``listener`` once ``future`` completes, and return ``future``.
    """
    if listener is None:
        return future

    def _notify(f):
        if f.cancelled():
            listener.on_failure(None, CancelledError(), None)
            return
        err = f.exception()
        if err is None:
            listener.on_success(f.result())
        else:
            listener.on_failure(*failure_details(err))

    future.add_done_callback(_notify)
    return future


class Result:
    """Either the value of a completed operation, or the error it raised."""

    def __init__(self, value=None, error=None):
        self.value = value
        self.error = error

    @property
    def ok(self):
        return self.error is None

    @classmethod
    def success(cls, value):
        return cls(value=value)

    @classmethod
    def failure(cls, error):
        return cls(error=error)

    @classmethod
    def from_future(cls, future, timeout=None):
        """
        Wait for ``future`` and wrap its outcome.

        :raises concurrent.futures.TimeoutError: if ``timeout`` elapses
        """
        try:
            err = future.exception(timeout=timeout)
        except CancelledError as cancelled:
            err = cancelled
        if err is not None:
            return cls.failure(err)
        return cls.success(future.result())

    def unwrap(self):
        """Return the value, or raise the error."""
        if self.error is not None:
            raise self.error
        return self.value

    def __repr__(self):
        if self.ok:
            return 'Result.success(%r)' % (self.value,)
        return 'Result.failure(%r)' % (self.error,)
