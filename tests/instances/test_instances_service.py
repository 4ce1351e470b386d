"""
Tests for Instance Registry & Leader Election.

============================================================
PURPOSE
============================================================
- Registration writes a row and elects a lone instance
- The oldest live instance becomes primary
- Stale instances are reaped by the primary only
- Demoted primaries step down on their own next check
- Store failures are logged, never raised

============================================================
"""

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio

from core.config import InstancesConfig
from database.models import InstanceModel
from instances.repository import InstanceRepository
from instances.service import InstancesService


HEARTBEAT = 180
STALE = HEARTBEAT * 3


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture(autouse=True)
def fixed_host():
    """Stable host lookups."""
    with patch("instances.service.get_ip_address", return_value="192.168.1.2"), \
         patch("instances.service.get_hostname", return_value="test-host"), \
         patch("instances.service.get_metadata", return_value={"version": "test"}):
        yield


@pytest.fixture
def instances_config():
    return InstancesConfig(enabled=True, heartbeat_interval=HEARTBEAT)


@pytest.fixture
def repository(database):
    return InstanceRepository(database.session_factory)


@pytest_asyncio.fixture
async def make_service(instances_config, repository, clock):
    """Factory for registered services sharing one store and clock."""
    created = []

    async def factory(port=8787):
        service = InstancesService(
            instances_config, repository, clock=clock, port=port, version="test"
        )
        await service.register_instance()
        created.append(service)
        return service

    yield factory

    for service in created:
        await service.stop()


# ============================================================
# REGISTRATION
# ============================================================

class TestRegistration:

    @pytest.mark.asyncio
    async def test_start_registers_and_claims_primary(
        self, instances_config, repository, clock
    ):
        service = InstancesService(instances_config, repository, clock=clock, port=8080)
        await service.start()
        try:
            rows = await repository.list_all()
            assert len(rows) == 1
            row = rows[0]
            assert row.instance_id == service.instance_id
            assert row.ip_address == "192.168.1.2"
            assert row.hostname == "test-host"
            assert row.port == 8080
            assert row.start_time == clock.now()
            assert row.is_primary is True

            assert service.is_primary_instance() is True
            health = service.get_health_status()
            assert health["heartbeat_timer"] is True
            assert health["primary_check_timer"] is True
        finally:
            await service.stop()

    @pytest.mark.asyncio
    async def test_stop_deregisters(self, instances_config, repository, clock):
        service = InstancesService(instances_config, repository, clock=clock)
        await service.start()
        await service.stop()

        assert await repository.list_all() == []
        assert service.is_primary_instance() is False
        assert service.get_health_status()["heartbeat_timer"] is False

    @pytest.mark.asyncio
    async def test_heartbeat_refreshes_row(self, make_service, repository, clock):
        service = await make_service()
        clock.advance(seconds=HEARTBEAT)

        await service.update_heartbeat()

        row = await repository.get(service.instance_id)
        assert row.last_heartbeat == clock.now()
        assert row.instance_metadata == {"version": "test"}

    def test_short_instance_id(self, instances_config):
        service = InstancesService(instances_config, MagicMock(spec=InstanceRepository))
        assert service.short_instance_id == "n/a"

        service.instance_id = "0123456789abcdef"
        assert service.short_instance_id == "01234567"


# ============================================================
# ELECTION
# ============================================================

class TestElection:

    @pytest.mark.asyncio
    async def test_oldest_instance_wins(self, make_service, clock):
        services = []
        for _ in range(4):
            services.append(await make_service())
            clock.advance(seconds=5)

        for service in services:
            await service.run_primary_check()

        primaries = [s for s in services if s.is_primary_instance()]
        assert primaries == [services[0]]

    @pytest.mark.asyncio
    async def test_stale_primary_is_replaced_and_reaped(self, make_service, repository, clock):
        first = await make_service()          # T0
        clock.advance(seconds=5)
        second = await make_service()         # T0 + 5s

        await first.run_primary_check()
        await second.run_primary_check()
        assert first.is_primary_instance()
        assert not second.is_primary_instance()

        # first stops heartbeating for 3H
        clock.advance(seconds=STALE + 1)
        await second.update_heartbeat()
        await second.run_primary_check()

        assert second.is_primary_instance()
        rows = await repository.list_all()
        assert [row.instance_id for row in rows] == [second.instance_id]

        # The demoted process steps down on its own next check
        await first.run_primary_check()
        assert not first.is_primary_instance()

    @pytest.mark.asyncio
    async def test_non_primary_never_deletes(self, make_service, repository, clock):
        primary = await make_service()
        clock.advance(seconds=5)
        follower = await make_service()

        stale = await repository.create(
            start_time=clock.ago(STALE * 2),
            last_heartbeat=clock.ago(STALE * 2),
            hostname="dead-host",
        )

        await follower.run_primary_check()
        assert not follower.is_primary_instance()
        assert await repository.get(stale.instance_id) is not None

        await primary.run_primary_check()
        assert await repository.get(stale.instance_id) is None

    @pytest.mark.asyncio
    async def test_primary_flag_written_to_store(self, make_service, repository):
        service = await make_service()

        row = await repository.get(service.instance_id)
        assert row.is_primary is True


# ============================================================
# FAILURE SEMANTICS
# ============================================================

class TestFailureSemantics:

    @pytest.fixture
    def failing_repository(self):
        repository = MagicMock(spec=InstanceRepository)
        repository.create = AsyncMock(return_value=InstanceModel(instance_id="abcdef0123456789"))
        repository.list_live = AsyncMock(side_effect=RuntimeError("connection refused"))
        repository.update_heartbeat = AsyncMock(side_effect=RuntimeError("connection refused"))
        repository.delete = AsyncMock(side_effect=RuntimeError("connection refused"))
        repository.delete_stale = AsyncMock(side_effect=RuntimeError("connection refused"))
        repository.set_primary = AsyncMock(return_value=1)
        return repository

    @pytest.mark.asyncio
    async def test_store_errors_are_logged(self, instances_config, failing_repository, clock, caplog):
        caplog.set_level(logging.ERROR)
        service = InstancesService(instances_config, failing_repository, clock=clock)

        await service.register_instance()
        await service.update_heartbeat()
        await service.run_primary_check()
        await service.deregister_instance()

        assert "Error when checking primary status" in caplog.text
        assert "Failed to update heartbeat" in caplog.text
        assert "Failed to deregister instance" in caplog.text
        assert service.is_primary_instance() is False

    @pytest.mark.asyncio
    async def test_registration_failure_is_logged(self, instances_config, clock, caplog):
        caplog.set_level(logging.ERROR)
        repository = MagicMock(spec=InstanceRepository)
        repository.create = AsyncMock(side_effect=RuntimeError("connection refused"))

        service = InstancesService(instances_config, repository, clock=clock)
        await service.register_instance()

        assert service.instance_id is None
        assert "Failed to register instance" in caplog.text

    @pytest.mark.asyncio
    async def test_no_visible_instances_logs_warning(self, instances_config, clock, caplog):
        caplog.set_level(logging.WARNING)
        repository = MagicMock(spec=InstanceRepository)
        repository.create = AsyncMock(return_value=InstanceModel(instance_id="abcdef0123456789"))
        repository.list_live = AsyncMock(return_value=[])
        repository.set_primary = AsyncMock(return_value=1)

        service = InstancesService(instances_config, repository, clock=clock)
        await service.register_instance()

        assert "No active instances found" in caplog.text
        assert "abcdef01" in caplog.text
        repository.set_primary.assert_not_called()
        assert service.is_primary_instance() is False

    @pytest.mark.asyncio
    async def test_primary_keeps_role_on_empty_read(self, instances_config, clock, caplog):
        own = InstanceModel(instance_id="abcdef0123456789")
        repository = MagicMock(spec=InstanceRepository)
        repository.create = AsyncMock(return_value=own)
        repository.list_live = AsyncMock(return_value=[own])
        repository.set_primary = AsyncMock(return_value=1)

        service = InstancesService(instances_config, repository, clock=clock)
        await service.register_instance()
        assert service.is_primary_instance() is True
        repository.set_primary.reset_mock()

        caplog.set_level(logging.WARNING)
        repository.list_live = AsyncMock(return_value=[])
        await service.check_primary_status()

        assert "No active instances found" in caplog.text
        repository.set_primary.assert_not_called()
        assert service.is_primary_instance() is True

    @pytest.mark.asyncio
    async def test_failed_claim_keeps_flag_unset(self, instances_config, clock):
        own = InstanceModel(instance_id="abcdef0123456789")
        repository = MagicMock(spec=InstanceRepository)
        repository.create = AsyncMock(return_value=own)
        repository.list_live = AsyncMock(return_value=[own])
        repository.set_primary = AsyncMock(side_effect=RuntimeError("connection refused"))

        service = InstancesService(instances_config, repository, clock=clock)
        await service.register_instance()

        assert service.is_primary_instance() is False
