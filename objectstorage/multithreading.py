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

import logging

from concurrent.futures import ThreadPoolExecutor
from queue import PriorityQueue, Empty

logger = logging.getLogger("objectstorage.multithreading")


class ConnectionThreadPoolExecutor(ThreadPoolExecutor):
    """
    A thread pool whose jobs each borrow a connection for their duration.

    Connections are created lazily through ``create_connection`` and kept in
    a priority queue, so no more are created than the number of jobs that
    actually run at the same time. Each submitted callable receives the
    borrowed connection as its first argument; the connection goes back
    into the queue when the callable returns or raises.

    Shutting the pool down closes every connection it created.
    """
    def __init__(self, create_connection, max_workers):
        self._connections = PriorityQueue()
        self._create_connection = create_connection
        for p in range(0, max_workers):
            self._connections.put((p, None))
        super(ConnectionThreadPoolExecutor, self).__init__(max_workers)

    def submit(self, fn, *args, **kwargs):
        def conn_fn():
            priority = None
            conn = None
            try:
                (priority, conn) = self._connections.get()
                if conn is None:
                    conn = self._create_connection()
                return fn(conn, *args, **kwargs)
            finally:
                if priority is not None:
                    self._connections.put((priority, conn))

        return super(ConnectionThreadPoolExecutor, self).submit(conn_fn)

    def shutdown(self, wait=True, **kwargs):
        super(ConnectionThreadPoolExecutor, self).shutdown(wait, **kwargs)
        while True:
            try:
                _priority, conn = self._connections.get_nowait()
            except Empty:
                break
            if conn is not None:
                logger.debug('Closing pooled connection %r', conn)
                conn.close()
