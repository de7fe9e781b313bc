"""Tests for the connectivity probe."""

from unittest.mock import Mock

from sqlalchemy import create_engine
from sqlalchemy.pool import NullPool

from attendance_sync.core.sync.probe import (
    ConnectivityProbe,
    create_remote_engine,
    remote_engine_factory,
)


class TestConnectivityProbe:
    """Test reachability checks."""

    def test_reachable_location(self, probe, location):
        """Test that a working database answers True."""
        assert probe.test_connection(location) is True

    def test_factory_error_returns_false(self, location):
        """Test that engine construction errors never escape."""
        factory = Mock(side_effect=RuntimeError("bad driver"))
        probe = ConnectivityProbe(factory)

        assert probe.test_connection(location) is False
        factory.assert_called_once_with(location)

    def test_unreachable_database_returns_false(self, tmp_path, location):
        """Test that a connection failure answers False."""
        missing = tmp_path / "missing" / "nested" / "remote.db"
        probe = ConnectivityProbe(lambda loc: create_engine(f"sqlite:///{missing}"))

        assert probe.test_connection(location) is False

    def test_engine_is_disposed(self, remote_url, location):
        """Test that the probe releases its engine."""
        engine = create_engine(remote_url)
        engine.dispose = Mock()
        probe = ConnectivityProbe(lambda loc: engine)

        probe.test_connection(location)

        engine.dispose.assert_called_once()


class TestRemoteEngine:
    """Test engines built from location descriptors."""

    def test_engine_url(self, location):
        """Test that the engine targets the location's Postgres server."""
        engine = create_remote_engine(location, connect_timeout=3)
        try:
            url = engine.url
            assert url.drivername == "postgresql+psycopg2"
            assert url.host == "10.0.0.5"
            assert url.port == 5432
            assert url.database == "attendance"
            assert url.username == "sync"
            assert url.password == "secret"
            assert isinstance(engine.pool, NullPool)
        finally:
            engine.dispose()

    def test_factory_binds_timeout(self, location):
        """Test that the factory builds engines for any location."""
        engine = remote_engine_factory(7)(location)
        try:
            assert engine.url.host == location.host
        finally:
            engine.dispose()
