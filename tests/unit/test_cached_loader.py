"""Unit tests for the read-through cached loader."""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from kql_symbols.loaders.cached import CachedSymbolLoader
from kql_symbols.models.errors import RemoteCommandError

HELP_CONNECTION = "https://help.kusto.windows.net;Fed=true"


class TestCachedSymbolLoader:
    """Test suite for CachedSymbolLoader."""

    @pytest.fixture
    def loader(self, tmp_path: Path, client_factory) -> CachedSymbolLoader:
        """Create a cached loader over a temporary cache directory."""
        return CachedSymbolLoader.from_connection(
            HELP_CONNECTION, tmp_path, client_factory=client_factory
        )

    def test_halves_target_same_cluster(self, loader: CachedSymbolLoader):
        """Test that file and remote loaders share the default cluster."""
        assert loader.default_cluster == "help.kusto.windows.net"
        assert loader.file_loader.default_cluster == loader.remote_loader.default_cluster

    @pytest.mark.asyncio
    async def test_remote_hit_is_written_back(self, loader: CachedSymbolLoader, fake_client):
        """Test read-through: remote on miss, then served from disk."""
        first = await loader.load_database("Samples")
        second = await loader.load_database("Samples")

        assert first is not None
        assert second == first
        assert fake_client.count(".show database Samples schema") == 1
        assert loader.file_loader.get_database_cache_path("Samples").exists()

    @pytest.mark.asyncio
    async def test_file_hit_skips_remote(
        self, loader: CachedSymbolLoader, fake_client, samples_database
    ):
        """Test that a cached database never reaches the cluster."""
        await loader.file_loader.save_database(samples_database)

        assert await loader.load_database("samples") == samples_database
        assert fake_client.calls == []

    @pytest.mark.asyncio
    async def test_write_failure_still_returns_value(
        self, loader: CachedSymbolLoader, fake_client
    ):
        """Test that a cache write failure does not fail the load."""
        with patch("anyio.Path.write_text", side_effect=PermissionError("read-only")):
            database = await loader.load_database("Samples", throw_on_error=True)

        assert database is not None
        assert database.name == "Samples"
        assert not loader.file_loader.get_database_cache_path("Samples").exists()

    @pytest.mark.asyncio
    async def test_remote_miss(self, loader: CachedSymbolLoader):
        """Test that a database missing everywhere loads as None."""
        assert await loader.load_database("Missing") is None

        with pytest.raises(RemoteCommandError):
            await loader.load_database("Other", throw_on_error=True)

    @pytest.mark.asyncio
    async def test_database_names_read_through(self, loader: CachedSymbolLoader, fake_client):
        """Test that enumeration is cached in the index file."""
        assert await loader.get_database_names() == ["Samples", "Other"]
        assert await loader.get_database_names() == ["Samples", "Other"]

        assert fake_client.count(".show databases") == 1
        assert loader.file_loader.get_database_names_path().exists()

    @pytest.mark.asyncio
    async def test_generate_cache(self, loader: CachedSymbolLoader, fake_client):
        """Test bulk generation caches every loadable database."""
        result = await loader.generate_cache()

        assert result.cluster == "help.kusto.windows.net"
        assert result.databases_found == 2
        assert result.databases_saved == 1
        assert result.failed == ["Other"]
        assert not result.succeeded
        assert await loader.file_loader.load_database("Samples") is not None
        assert await loader.file_loader.get_database_names() == ["Samples", "Other"]

    @pytest.mark.asyncio
    async def test_generate_cache_bypasses_file(
        self, loader: CachedSymbolLoader, fake_client, samples_database
    ):
        """Test that generation reloads databases already on disk."""
        await loader.file_loader.save_database(samples_database)
        fake_client.responses[".show databases"] = [{"DatabaseName": "Samples"}]

        result = await loader.generate_cache()

        assert result.succeeded
        assert fake_client.count(".show database Samples schema") == 1
        reloaded = await loader.file_loader.load_database("Samples")
        assert reloaded.get_member("StormEvents").get_column("DamageProperty") is not None

    @pytest.mark.asyncio
    async def test_generate_cache_enumeration_failure(
        self, loader: CachedSymbolLoader, fake_client
    ):
        """Test that a failed enumeration reports nothing found."""
        fake_client.errors[".show databases"] = ConnectionError("unreachable")

        result = await loader.generate_cache()

        assert result.databases_found == 0
        assert not result.succeeded

    @pytest.mark.asyncio
    async def test_save_failure_is_listed(self, loader: CachedSymbolLoader):
        """Test that databases that cannot be saved are reported."""
        loader.file_loader.save_database = AsyncMock(return_value=False)

        result = await loader.generate_cache()

        assert result.databases_saved == 0
        assert result.failed == ["Samples", "Other"]
