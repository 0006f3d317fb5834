# -*- encoding: utf-8 -*-
"""
Client binding for Swift-compatible Object Storage behind keystone v3.
"""
from .client import ObjectStorage, Container, StorageObject  # noqa
from .config import Region  # noqa
from .exceptions import (  # noqa
    AuthenticationError, ConfigurationError, NotAuthenticatedError,
    ObjectStorageException, TransportError
)
from .listener import ResponseListener, Result  # noqa
from .session import Session, SessionState  # noqa
from .version import version_string as __version__  # noqa
