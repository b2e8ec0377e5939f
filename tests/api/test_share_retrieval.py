"""Tests for resolving shared notes."""

import pytest
import pytest_asyncio

from api.services.background_tasks import BackgroundTaskQueue
from api.services.share_retrieval import ShareRetrievalService
from api.services.share_tokens import ShareTokenManager
from api.services.sync_adapter import RemoteSyncAdapter

GIST_ID = "notesgist0001"
TEST_TOKEN = "ghp_test_credential"


@pytest.fixture
def notes_adapter(connector, storage):
    return RemoteSyncAdapter(
        connector, storage, document_id=GIST_ID, write_credential=TEST_TOKEN
    )


@pytest_asyncio.fixture
async def tokens(connector, storage):
    adapter = RemoteSyncAdapter(
        connector,
        storage,
        filename="share-tokens.json",
        collection="tokens",
        document_id=GIST_ID,
        write_credential=TEST_TOKEN,
    )
    manager = ShareTokenManager(adapter)
    await manager.initialize()
    return manager


@pytest_asyncio.fixture
async def queue():
    queue = BackgroundTaskQueue()
    await queue.start_worker()
    yield queue
    await queue.stop_worker()


@pytest.fixture
def service(tokens, notes_adapter, queue):
    return ShareRetrievalService(tokens, notes_adapter, queue)


@pytest.mark.asyncio
class TestShareRetrieval:
    """Token validation composed with note lookup."""

    async def test_resolves_shared_note(self, service, tokens, notes_adapter, queue):
        await notes_adapter.save(
            [{"id": "n1", "title": "Groceries", "content": "<p>milk</p>", "updatedAt": 0}]
        )
        record = await tokens.create_token("n1", "Groceries")

        validation, view = await service.resolve(record.token)

        assert validation.valid is True
        assert view.placeholder is False
        assert view.title == "Groceries"
        assert "milk" in view.content

        await queue.wait_for_completion()
        assert tokens.list_tokens()[0].view_count == 1

    async def test_invalid_token_has_no_view(self, service, queue, tokens):
        validation, view = await service.resolve("nope")

        assert validation.valid is False
        assert view is None
        await queue.wait_for_completion()
        assert tokens.list_tokens() == []

    async def test_deleted_note_gives_placeholder(self, service, tokens, notes_adapter):
        await notes_adapter.save([])
        record = await tokens.create_token("gone", "Old title")

        validation, view = await service.resolve(record.token)

        assert validation.valid is True
        assert view.placeholder is True
        assert view.title == "Old title"
        assert "deleted" in view.content

    async def test_unreadable_document_gives_placeholder(
        self, service, tokens, fake_gist, notes_adapter
    ):
        record = await tokens.create_token("n1", "Title")
        notes_adapter.cache_ttl_seconds = 0
        fake_gist.fail_with = 500

        validation, view = await service.resolve(record.token)

        assert validation.valid is True
        assert view.placeholder is True
        assert "Unable to load" in view.content

    async def test_unconfigured_notes_document(self, tokens, queue, connector, storage):
        service = ShareRetrievalService(tokens, RemoteSyncAdapter(connector, storage), queue)
        record = await tokens.create_token("n1", "Title")

        _, view = await service.resolve(record.token)

        assert view.placeholder is True
        assert view.title == "Title"
        assert "not available" in view.content

    @pytest.mark.parametrize(
        "record",
        [
            {"id": "n1", "title": "Groceries", "updatedAt": "yesterday"},
            {"id": "n1", "title": ["not", "a", "string"]},
            {"id": "n1", "tags": "home"},
        ],
    )
    async def test_invalid_note_record_gives_placeholder(
        self, service, tokens, notes_adapter, record
    ):
        await notes_adapter.save([record])
        token = await tokens.create_token("n1", "Shared title")

        validation, view = await service.resolve(token.token)

        assert validation.valid is True
        assert view.placeholder is True
        assert view.title == "Shared title"
        assert "Unable to load" in view.content

    async def test_null_fields_fall_back_to_defaults(self, service, tokens, notes_adapter):
        await notes_adapter.save([{"id": "n1", "title": None, "content": None}])
        record = await tokens.create_token("n1", "Shared title")

        _, view = await service.resolve(record.token)

        assert view.placeholder is False
        assert view.title == "Shared title"
        assert view.content == ""
        assert view.updated_at is None
