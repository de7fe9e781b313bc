"""Connectivity probe for remote locations."""

import logging
from typing import Callable, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool

from ...database.models import RemoteLocation

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 5

EngineFactory = Callable[[RemoteLocation], Engine]


def create_remote_engine(
    location: RemoteLocation, connect_timeout: int = DEFAULT_CONNECT_TIMEOUT
) -> Engine:
    """Create an unpooled engine for one remote location.

    Args:
        location: Remote location descriptor
        connect_timeout: Seconds to wait for the server before giving up

    Returns:
        SQLAlchemy Engine; the caller disposes it
    """
    return create_engine(
        location.connection_url(),
        poolclass=NullPool,
        connect_args={"connect_timeout": connect_timeout},
    )


def remote_engine_factory(connect_timeout: int = DEFAULT_CONNECT_TIMEOUT) -> EngineFactory:
    """Bind a connect timeout into an engine factory."""

    def factory(location: RemoteLocation) -> Engine:
        return create_remote_engine(location, connect_timeout)

    return factory


class ConnectivityProbe:
    """Fast reachability check run before detection."""

    def __init__(self, engine_factory: Optional[EngineFactory] = None) -> None:
        """Initialize the probe.

        Args:
            engine_factory: Builds an engine for a location. Defaults to
                ``create_remote_engine`` with the default timeout.
        """
        self.engine_factory = engine_factory or remote_engine_factory()

    def test_connection(self, location: RemoteLocation) -> bool:
        """Open a connection and run ``SELECT 1``.

        Never raises; any connection, authentication or query failure maps to
        False.

        Args:
            location: Remote location to probe

        Returns:
            True if the location answered
        """
        engine: Optional[Engine] = None
        try:
            engine = self.engine_factory(location)
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.debug("Connection to %s succeeded", location.location_name)
            return True
        except Exception as e:
            logger.warning(
                "Connection to %s (%s:%s) failed: %s",
                location.location_name,
                location.host,
                location.port,
                e,
            )
            return False
        finally:
            if engine is not None:
                engine.dispose()
