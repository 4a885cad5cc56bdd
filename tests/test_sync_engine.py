"""Tests for publishing collections to Postman."""

import json
from unittest.mock import Mock

import pytest

from pyportman.api import PostmanClient
from pyportman.collection import Collection
from pyportman.exceptions import PostmanNetworkError, SyncError
from pyportman.models import CollectionResponse, RemoteCollection, RemoteWorkspace
from pyportman.output import OutputFormatter
from pyportman.sync import CollectionSync, PushMode, SyncCache, WorkspaceRecord
from pyportman.sync.state import WORKSPACE_KEY


def success(uid, name="Orders API"):
    return CollectionResponse.success(
        {"collection": {"id": uid.split("-")[-1], "name": name, "uid": uid}}
    )


def failure(name="instanceNotFoundError", message="not found"):
    return CollectionResponse.fail({"error": {"name": name, "message": message}})


def remote_calls(client):
    """Names of the client methods that were called, in order."""
    return [c[0] for c in client.method_calls]


class TestCollectionSync:
    """Tests for the sync state machine."""

    @pytest.fixture
    def mock_client(self):
        """Create a mock Postman client with an empty remote store."""
        client = Mock(spec=PostmanClient)
        client.find_workspace_by_name.return_value = None
        client.find_collection_by_name.return_value = None
        client.find_workspace_collection_by_name.return_value = None
        return client

    @pytest.fixture
    def mock_output(self):
        """Create a mock output formatter."""
        output = Mock(spec=OutputFormatter)
        output.quiet = True
        return output

    @pytest.fixture
    def cache_file(self, tmp_path):
        return tmp_path / ".portman.cache"

    @pytest.fixture
    def collection(self):
        return Collection.from_dict(
            {"info": {"name": "Orders API"}, "item": [{"id": "a", "name": "A"}]}
        )

    def make_sync(self, client, cache_file, output, **kwargs):
        return CollectionSync(client, SyncCache(cache_file), output, **kwargs)

    def write_cache(self, cache_file, data):
        cache_file.write_text(json.dumps(data))

    def read_cache(self, cache_file):
        return json.loads(cache_file.read_text())

    def test_create_when_not_found(
        self, mock_client, mock_output, cache_file, collection
    ):
        """Test an unknown collection is created and cached."""
        mock_client.create_collection.return_value = success("abc123")

        remote = self.make_sync(mock_client, cache_file, mock_output).sync(collection)

        assert remote.uid == "abc123"
        mock_client.find_collection_by_name.assert_called_once_with("Orders API")
        mock_client.create_collection.assert_called_once_with(
            collection.to_dict(), None
        )
        mock_client.update_collection.assert_not_called()
        assert self.read_cache(cache_file) == {
            "Orders API": {"name": "Orders API", "uid": "abc123"}
        }
        mock_output.key_value.assert_any_call("   -> Postman UID", "abc123")

    def test_update_when_found_by_name(
        self, mock_client, mock_output, cache_file, collection
    ):
        """Test a collection found by name is updated."""
        mock_client.find_collection_by_name.return_value = RemoteCollection(
            uid="u-7", name="Orders API"
        )
        mock_client.update_collection.return_value = success("u-7")

        self.make_sync(mock_client, cache_file, mock_output).sync(collection)

        mock_client.update_collection.assert_called_once_with(
            collection.to_dict(), "u-7", None
        )
        mock_client.create_collection.assert_not_called()
        assert self.read_cache(cache_file)["Orders API"]["uid"] == "u-7"

    def test_cache_hit_skips_lookup(
        self, mock_client, mock_output, cache_file, collection
    ):
        """Test a warm cache issues exactly one remote call."""
        self.write_cache(cache_file, {"Orders API": {"name": "Orders API", "uid": "u-1"}})
        mock_client.update_collection.return_value = success("u-1")

        self.make_sync(mock_client, cache_file, mock_output).sync(collection)

        assert remote_calls(mock_client) == ["update_collection"]
        assert self.read_cache(cache_file) == {
            "Orders API": {"name": "Orders API", "uid": "u-1"}
        }

    def test_second_run_is_idempotent(
        self, mock_client, mock_output, cache_file, collection
    ):
        """Test the second of two runs only updates."""
        mock_client.create_collection.return_value = success("abc123")
        mock_client.update_collection.return_value = success("abc123")

        self.make_sync(mock_client, cache_file, mock_output).sync(collection)
        first_cache = self.read_cache(cache_file)
        mock_client.reset_mock()

        self.make_sync(mock_client, cache_file, mock_output).sync(collection)

        assert remote_calls(mock_client) == ["update_collection"]
        mock_client.update_collection.assert_called_once_with(
            collection.to_dict(), "abc123", None
        )
        assert self.read_cache(cache_file) == first_cache

    def test_stale_uid_invalidated_then_created(
        self, mock_client, mock_output, cache_file, collection
    ):
        """Test a cached uid rejected by Postman is replaced by a new collection."""
        self.write_cache(cache_file, {"Orders API": {"uid": "old1"}})
        mock_client.update_collection.return_value = failure()
        mock_client.create_collection.return_value = success("new1")

        remote = self.make_sync(mock_client, cache_file, mock_output).sync(collection)

        assert remote.uid == "new1"
        assert remote_calls(mock_client) == [
            "update_collection",
            "find_collection_by_name",
            "create_collection",
        ]
        assert self.read_cache(cache_file) == {
            "Orders API": {"name": "Orders API", "uid": "new1"}
        }

    def test_retry_update_succeeds(
        self, mock_client, mock_output, cache_file, collection
    ):
        """Test fail then success on the retried update reports success."""
        self.write_cache(cache_file, {"Orders API": {"uid": "old1"}})
        mock_client.find_collection_by_name.return_value = RemoteCollection(
            uid="u-2", name="Orders API"
        )
        mock_client.update_collection.side_effect = [failure(), success("u-2")]

        remote = self.make_sync(mock_client, cache_file, mock_output).sync(collection)

        assert remote.uid == "u-2"
        assert [c.args[1] for c in mock_client.update_collection.call_args_list] == [
            "old1",
            "u-2",
        ]
        assert self.read_cache(cache_file)["Orders API"]["uid"] == "u-2"

    def test_update_fails_twice(
        self, mock_client, mock_output, cache_file, collection
    ):
        """Test a second consecutive update failure is fatal without a third try."""
        self.write_cache(cache_file, {"Orders API": {"uid": "old1"}})
        mock_client.find_collection_by_name.return_value = RemoteCollection(
            uid="u-2", name="Orders API"
        )
        mock_client.update_collection.return_value = failure(
            "forbiddenError", "You are not permitted"
        )

        with pytest.raises(SyncError) as exc_info:
            self.make_sync(mock_client, cache_file, mock_output).sync(collection)

        assert mock_client.update_collection.call_count == 2
        mock_client.create_collection.assert_not_called()
        error = exc_info.value
        assert error.reason == "You are not permitted"
        assert error.collection_name == "Orders API"
        assert error.collection_uid == "u-2"
        assert error.error == {
            "name": "forbiddenError",
            "message": "You are not permitted",
        }
        # The stale entry stays invalidated
        assert "Orders API" not in self.read_cache(cache_file)

    def test_create_failure_is_fatal(
        self, mock_client, mock_output, cache_file, collection
    ):
        """Test a rejected create is not retried."""
        mock_client.create_collection.return_value = failure(
            "malformedRequestError", "Invalid collection"
        )

        with pytest.raises(SyncError, match="Invalid collection"):
            self.make_sync(mock_client, cache_file, mock_output).sync(collection)

        assert mock_client.create_collection.call_count == 1
        assert not cache_file.exists()

    def test_override_uid_used_directly(
        self, mock_client, mock_output, cache_file, collection
    ):
        """Test a fixed uid skips cache and lookups."""
        self.write_cache(cache_file, {"Orders API": {"uid": "cached"}})
        mock_client.update_collection.return_value = success("fixed-1")

        self.make_sync(
            mock_client, cache_file, mock_output, collection_uid="fixed-1"
        ).sync(collection)

        assert remote_calls(mock_client) == ["update_collection"]
        mock_client.update_collection.assert_called_once_with(
            collection.to_dict(), "fixed-1", None
        )

    def test_override_not_found(
        self, mock_client, mock_output, cache_file, collection
    ):
        """Test a missing fixed uid is explained and not retried."""
        mock_client.update_collection.return_value = failure(
            message="We could not find the collection you are looking for"
        )

        with pytest.raises(SyncError) as exc_info:
            self.make_sync(
                mock_client, cache_file, mock_output, collection_uid="fixed-1"
            ).sync(collection)

        assert mock_client.update_collection.call_count == 1
        error = exc_info.value
        assert error.reason == (
            "We could not find the collection you are looking for "
            "Targeted Postman collection ID fixed-1 does not exist."
        )
        assert "postmanUid" in error.solution
        assert error.collection_uid == "fixed-1"

    def test_override_failure_without_message(
        self, mock_client, mock_output, cache_file, collection
    ):
        """Test the default explanation when Postman gives no message."""
        mock_client.update_collection.return_value = CollectionResponse.fail({})

        with pytest.raises(SyncError) as exc_info:
            self.make_sync(
                mock_client, cache_file, mock_output, collection_uid="fixed-1"
            ).sync(collection)

        assert exc_info.value.reason == (
            "Targeted Postman collection ID fixed-1 does not exist."
        )

    def test_workspace_resolved_and_cached(
        self, mock_client, mock_output, cache_file, collection
    ):
        """Test a named workspace scopes lookup and create."""
        mock_client.find_workspace_by_name.return_value = RemoteWorkspace(
            id="w-1", name="Team", type="team"
        )
        mock_client.create_collection.return_value = success("abc123")

        self.make_sync(
            mock_client, cache_file, mock_output, workspace_name="Team"
        ).sync(collection)

        mock_client.find_workspace_collection_by_name.assert_called_once_with(
            "w-1", "Orders API"
        )
        mock_client.find_collection_by_name.assert_not_called()
        mock_client.create_collection.assert_called_once_with(
            collection.to_dict(), "w-1"
        )
        assert self.read_cache(cache_file)[WORKSPACE_KEY] == {
            "id": "w-1",
            "name": "Team",
            "type": "team",
        }

    def test_cached_workspace_reused(
        self, mock_client, mock_output, cache_file, collection
    ):
        """Test a cached workspace with the same name needs no lookup."""
        self.write_cache(
            cache_file,
            {
                WORKSPACE_KEY: {"id": "w-1", "name": "Team", "type": "team"},
                "Orders API": {"name": "Orders API", "uid": "u-1"},
            },
        )
        mock_client.update_collection.return_value = success("u-1")

        self.make_sync(
            mock_client, cache_file, mock_output, workspace_name="Team"
        ).sync(collection)

        assert remote_calls(mock_client) == ["update_collection"]
        mock_client.update_collection.assert_called_once_with(
            collection.to_dict(), "u-1", "w-1"
        )

    def test_cached_workspace_with_other_name(
        self, mock_client, mock_output, cache_file, collection
    ):
        """Test a cached workspace for another name is looked up again."""
        self.write_cache(
            cache_file, {WORKSPACE_KEY: {"id": "w-1", "name": "Old", "type": "team"}}
        )
        mock_client.find_workspace_by_name.return_value = RemoteWorkspace(
            id="w-2", name="Team", type="team"
        )
        mock_client.create_collection.return_value = success("abc123")

        self.make_sync(
            mock_client, cache_file, mock_output, workspace_name="Team"
        ).sync(collection)

        mock_client.find_workspace_by_name.assert_called_once_with("Team")
        assert self.read_cache(cache_file)[WORKSPACE_KEY]["id"] == "w-2"

    def test_unknown_workspace_falls_back(
        self, mock_client, mock_output, cache_file, collection
    ):
        """Test a workspace that does not exist is not fatal."""
        mock_client.create_collection.return_value = success("abc123")

        self.make_sync(
            mock_client, cache_file, mock_output, workspace_name="Nope"
        ).sync(collection)

        mock_client.find_collection_by_name.assert_called_once_with("Orders API")
        mock_client.create_collection.assert_called_once_with(
            collection.to_dict(), None
        )
        assert WORKSPACE_KEY not in self.read_cache(cache_file)

    def test_workspace_dropped_when_not_configured(
        self, mock_client, mock_output, cache_file, collection
    ):
        """Test a cached workspace is ignored without a workspace name."""
        self.write_cache(
            cache_file,
            {
                WORKSPACE_KEY: {"id": "w-1", "name": "Team", "type": "team"},
                "Orders API": {"name": "Orders API", "uid": "u-1"},
            },
        )
        mock_client.update_collection.return_value = success("u-1")

        self.make_sync(mock_client, cache_file, mock_output).sync(collection)

        mock_client.update_collection.assert_called_once_with(
            collection.to_dict(), "u-1", None
        )
        assert WORKSPACE_KEY not in self.read_cache(cache_file)

    def test_cache_write_failure_still_succeeds(
        self, mock_client, mock_output, tmp_path, collection
    ):
        """Test an unwritable cache does not fail the sync."""
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        mock_client.create_collection.return_value = success("abc123")

        sync = self.make_sync(mock_client, blocker / ".portman.cache", mock_output)
        remote = sync.sync(collection)

        assert remote.uid == "abc123"
        assert sync.cache.get_collection("Orders API").uid == "abc123"

    def test_transport_errors_propagate(
        self, mock_client, mock_output, cache_file, collection
    ):
        """Test network errors are raised, not retried by the protocol."""
        self.write_cache(cache_file, {"Orders API": {"uid": "u-1"}})
        mock_client.update_collection.side_effect = PostmanNetworkError("down")

        with pytest.raises(PostmanNetworkError):
            self.make_sync(mock_client, cache_file, mock_output).sync(collection)

        assert mock_client.update_collection.call_count == 1
        assert self.read_cache(cache_file) == {"Orders API": {"uid": "u-1"}}


class TestResolveCollection:
    """Tests for resolving the push target."""

    def test_create_target(self, tmp_path):
        """Test a miss selects create mode."""
        client = Mock(spec=PostmanClient)
        client.find_collection_by_name.return_value = None
        sync = CollectionSync(client, SyncCache(tmp_path / "c"), Mock())

        target = sync.resolve_collection("Orders API")

        assert target.mode is PushMode.CREATE
        assert target.uid is None

    def test_workspace_record_is_not_a_collection(self, tmp_path):
        """Test the workspace entry never shadows a collection lookup."""
        client = Mock(spec=PostmanClient)
        client.find_collection_by_name.return_value = None
        cache = SyncCache(tmp_path / "c")
        cache.put_workspace(WorkspaceRecord(id="w-1", name="Team"))
        sync = CollectionSync(client, cache, Mock())

        target = sync.resolve_collection(WORKSPACE_KEY)

        assert target.mode is PushMode.CREATE
