"""
Tests for the document staging engine.
"""

import asyncio
import uuid
from typing import Optional

import pytest

from legalworkflow.config import WorkflowConfig
from legalworkflow.documents import DocumentStagingEngine, LoadRegistry
from legalworkflow.exceptions import RemoteStoreError
from legalworkflow.models import (
    Document,
    DocumentType,
    FileOperationStatus,
    UploadFile,
)
from legalworkflow.validation import InputValidationError

ITEM_ID = 42


def make_doc(name: str, document_type: DocumentType = DocumentType.REVIEW) -> Document:
    return Document(
        unique_id=uuid.uuid4().hex,
        item_id=ITEM_ID,
        name=name,
        document_type=document_type,
    )


class FakeStore:
    """In-memory document store with controllable failures and read lag."""

    def __init__(self, documents: Optional[list[Document]] = None):
        self.documents = {d.unique_id: d for d in documents or []}
        self.list_calls = 0
        self.list_gate: Optional[asyncio.Event] = None
        self.list_error: Optional[Exception] = None
        self.upload_attempts: dict[str, int] = {}
        self.upload_failures: dict[str, int] = {}
        self.fail_deletes: set[str] = set()
        self.fail_renames: set[str] = set()
        # Number of listings that still show the state from before a mutation.
        self.lag = 0
        self._pending: list = []

    async def list_documents(self, item_id: int) -> list[Document]:
        self.list_calls += 1
        if self.list_gate is not None:
            await self.list_gate.wait()
        if self.list_error is not None:
            raise self.list_error
        if self.lag > 0:
            self.lag -= 1
        else:
            for apply in self._pending:
                apply()
            self._pending = []
        return list(self.documents.values())

    def _mutate(self, apply) -> None:
        if self.lag > 0:
            self._pending.append(apply)
        else:
            apply()

    async def upload_file(self, item_id, file, document_type):
        self.upload_attempts[file.name] = self.upload_attempts.get(file.name, 0) + 1
        remaining = self.upload_failures.get(file.name, 0)
        if remaining:
            self.upload_failures[file.name] = remaining - 1
            raise RemoteStoreError("upload failed", item_id=item_id, operation="upload")
        document = Document(
            unique_id=uuid.uuid4().hex,
            item_id=item_id,
            name=file.name,
            document_type=document_type,
            size=file.size,
        )
        self.documents[document.unique_id] = document
        return document

    async def delete_file(self, document):
        if document.name in self.fail_deletes:
            raise RemoteStoreError("delete failed", operation="delete")
        self._mutate(lambda: self.documents.pop(document.unique_id, None))

    async def rename_file(self, document, new_name):
        if document.name in self.fail_renames:
            raise RemoteStoreError("rename failed", operation="rename")
        renamed = Document(
            unique_id=document.unique_id,
            item_id=document.item_id,
            name=new_name,
            document_type=document.document_type,
        )
        self._mutate(lambda: self.documents.__setitem__(document.unique_id, renamed))
        return renamed

    async def change_document_type(self, item_id, document, new_type):
        changed = Document(
            unique_id=document.unique_id,
            item_id=item_id,
            name=document.name,
            document_type=new_type,
        )
        self._mutate(lambda: self.documents.__setitem__(document.unique_id, changed))
        return changed


def fast_config(**overrides) -> WorkflowConfig:
    values = dict(upload_backoff_seconds=0, settle_delay_seconds=0, settle_poll_attempts=3)
    values.update(overrides)
    return WorkflowConfig(**values)


def make_engine(store, registry=None, **overrides) -> DocumentStagingEngine:
    return DocumentStagingEngine(store, fast_config(**overrides), registry=registry)


class TestLoad:
    @pytest.mark.asyncio
    async def test_load(self):
        draft = make_doc("draft.pdf")
        engine = make_engine(FakeStore([draft]))
        documents = await engine.load(ITEM_ID)
        assert documents == [draft]
        assert engine.item_id == ITEM_ID
        assert engine.error is None

    @pytest.mark.asyncio
    async def test_concurrent_loads_share_one_fetch(self):
        store = FakeStore([make_doc("draft.pdf")])
        store.list_gate = asyncio.Event()
        engine = make_engine(store)

        first = asyncio.create_task(engine.load(ITEM_ID))
        second = asyncio.create_task(engine.load(ITEM_ID))
        await asyncio.sleep(0)
        assert engine.is_loading
        store.list_gate.set()
        results = await asyncio.gather(first, second)

        assert store.list_calls == 1
        assert results[0] == results[1]
        assert not engine.is_loading

    @pytest.mark.asyncio
    async def test_shared_registry_across_engines(self):
        store = FakeStore([make_doc("draft.pdf")])
        store.list_gate = asyncio.Event()
        registry = LoadRegistry()
        one = make_engine(store, registry)
        two = make_engine(store, registry)

        tasks = [asyncio.create_task(one.load(ITEM_ID)), asyncio.create_task(two.load(ITEM_ID))]
        await asyncio.sleep(0)
        store.list_gate.set()
        await asyncio.gather(*tasks)

        assert store.list_calls == 1
        assert len(one.get_documents()) == len(two.get_documents()) == 1

    @pytest.mark.asyncio
    async def test_separate_registries_do_not_share(self):
        store = FakeStore([make_doc("draft.pdf")])
        store.list_gate = asyncio.Event()
        tasks = [
            asyncio.create_task(make_engine(store).load(ITEM_ID)),
            asyncio.create_task(make_engine(store).load(ITEM_ID)),
        ]
        await asyncio.sleep(0)
        store.list_gate.set()
        await asyncio.gather(*tasks)
        assert store.list_calls == 2

    @pytest.mark.asyncio
    async def test_loaded_item_is_not_fetched_again(self):
        store = FakeStore([make_doc("draft.pdf")])
        engine = make_engine(store)
        await engine.load(ITEM_ID)
        documents = await engine.load(ITEM_ID)

        assert len(documents) == 1
        assert store.list_calls == 1

        await engine.load(ITEM_ID, force_reload=True)
        assert store.list_calls == 2
        await engine.load(ITEM_ID + 1)
        assert store.list_calls == 3

    @pytest.mark.asyncio
    async def test_load_after_failure_fetches_again(self):
        store = FakeStore([make_doc("draft.pdf")])
        engine = make_engine(store)
        await engine.load(ITEM_ID)
        store.list_error = RemoteStoreError("store offline", item_id=ITEM_ID, operation="load")
        await engine.load(ITEM_ID, force_reload=True)

        store.list_error = None
        await engine.load(ITEM_ID)
        assert store.list_calls == 3
        assert engine.error is None

    @pytest.mark.asyncio
    async def test_forced_reload_waits_then_fetches_again(self):
        store = FakeStore([make_doc("draft.pdf")])
        store.list_gate = asyncio.Event()
        engine = make_engine(store)

        first = asyncio.create_task(engine.load(ITEM_ID))
        await asyncio.sleep(0)
        forced = asyncio.create_task(engine.load(ITEM_ID, force_reload=True))
        await asyncio.sleep(0)
        store.list_gate.set()
        await asyncio.gather(first, forced)

        assert store.list_calls == 2

    @pytest.mark.asyncio
    async def test_forced_reloads_join_newer_load(self):
        store = FakeStore([make_doc("draft.pdf")])
        store.list_gate = asyncio.Event()
        engine = make_engine(store)

        first = asyncio.create_task(engine.load(ITEM_ID))
        await asyncio.sleep(0)
        forced = [
            asyncio.create_task(engine.load(ITEM_ID, force_reload=True)),
            asyncio.create_task(engine.load(ITEM_ID, force_reload=True)),
        ]
        await asyncio.sleep(0)
        store.list_gate.set()
        await asyncio.gather(first, *forced)

        assert store.list_calls == 2

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_documents(self):
        draft = make_doc("draft.pdf")
        store = FakeStore([draft])
        engine = make_engine(store)
        await engine.load(ITEM_ID)

        store.list_error = RemoteStoreError("store offline", item_id=ITEM_ID, operation="load")
        documents = await engine.load(ITEM_ID, force_reload=True)

        assert documents == [draft]
        assert engine.error == "store offline"
        assert engine.last_failure.item_id == ITEM_ID
        assert engine.last_failure.operation == "load"

        engine.clear_error()
        assert engine.error is None
        assert engine.last_failure is None

    @pytest.mark.asyncio
    async def test_unexpected_failure_wrapped(self):
        store = FakeStore()
        store.list_error = RuntimeError("socket closed")
        engine = make_engine(store)
        await engine.load(ITEM_ID)
        assert isinstance(engine.last_failure, RemoteStoreError)
        assert "socket closed" in engine.error

    @pytest.mark.asyncio
    async def test_cancelled_awaiter_does_not_cancel_shared_load(self):
        store = FakeStore([make_doc("draft.pdf")])
        store.list_gate = asyncio.Event()
        engine = make_engine(store)

        first = asyncio.create_task(engine.load(ITEM_ID))
        second = asyncio.create_task(engine.load(ITEM_ID))
        await asyncio.sleep(0)
        second.cancel()
        with pytest.raises(asyncio.CancelledError):
            await second

        store.list_gate.set()
        documents = await first
        assert len(documents) == 1
        assert store.list_calls == 1


class TestStaging:
    def test_stage_validates_all_names_first(self):
        engine = make_engine(FakeStore())
        files = [UploadFile("good.pdf", b"x"), UploadFile("bad#name.pdf", b"x")]
        with pytest.raises(InputValidationError):
            engine.stage(files, DocumentType.REVIEW)
        assert engine.get_staged() == []

    def test_stage_and_remove(self):
        engine = make_engine(FakeStore())
        staged = engine.stage([UploadFile("a.pdf", b"x")], DocumentType.SUPPLEMENTAL)
        assert engine.has_pending_operations()
        assert engine.remove_staged(staged[0].id)
        assert not engine.has_pending_operations()
        assert not engine.remove_staged("missing")

    @pytest.mark.asyncio
    async def test_check_duplicates(self):
        engine = make_engine(FakeStore([make_doc("Draft.pdf")]))
        await engine.load(ITEM_ID)
        files = [UploadFile("draft.PDF"), UploadFile("new.pdf")]
        duplicates = engine.check_duplicates(files, DocumentType.REVIEW)
        assert duplicates == ["draft.PDF"]
        assert engine.check_duplicates(files, DocumentType.SUPPLEMENTAL) == []
        assert engine.get_staged() == []

    @pytest.mark.asyncio
    async def test_rename_must_be_unique_within_type(self):
        first, second = make_doc("one.pdf"), make_doc("two.pdf")
        engine = make_engine(FakeStore([first, second]))
        await engine.load(ITEM_ID)

        with pytest.raises(InputValidationError):
            engine.mark_for_rename(first, "TWO.pdf")
        with pytest.raises(InputValidationError):
            engine.mark_for_rename(first, "bad:name.pdf")

        engine.stage([UploadFile("three.pdf")], DocumentType.REVIEW)
        with pytest.raises(InputValidationError):
            engine.mark_for_rename(first, "three.pdf")

        engine.mark_for_rename(first, "uno.pdf")
        assert engine.get_pending_counts().modified_count == 1
        assert engine.cancel_rename(first.unique_id)

    @pytest.mark.asyncio
    async def test_rename_keeps_extension(self):
        doc = make_doc("draft.pdf")
        engine = make_engine(FakeStore([doc]))
        await engine.load(ITEM_ID)
        assert engine.mark_for_rename(doc, "final") == "final.pdf"

    @pytest.mark.asyncio
    async def test_deletion_drops_pending_rename(self):
        draft = make_doc("draft.pdf")
        engine = make_engine(FakeStore([draft]))
        await engine.load(ITEM_ID)
        engine.mark_for_rename(draft, "final.pdf")
        engine.mark_for_deletion(draft)
        counts = engine.get_pending_counts()
        assert counts.modified_count == 0
        assert counts.deleted_count == 1
        assert engine.undo_delete(draft.unique_id)
        assert not engine.has_pending_operations()

    @pytest.mark.asyncio
    async def test_document_facts(self):
        review = make_doc("draft.pdf")
        approval = make_doc("approval.msg", DocumentType.COMMUNICATION_APPROVAL)
        supplemental = make_doc("data.xlsx", DocumentType.SUPPLEMENTAL)
        engine = make_engine(FakeStore([review, approval, supplemental]))
        await engine.load(ITEM_ID)

        engine.stage([UploadFile("final.pdf")], DocumentType.REVIEW_FINAL)
        engine.mark_for_deletion(approval)
        engine.mark_for_type_change([supplemental], DocumentType.REVIEW)

        facts = engine.document_facts()
        assert facts.count(DocumentType.REVIEW) == 2
        assert facts.count(DocumentType.REVIEW_FINAL) == 1
        assert not facts.has(DocumentType.COMMUNICATION_APPROVAL)
        assert not facts.has(DocumentType.SUPPLEMENTAL)

    @pytest.mark.asyncio
    async def test_pending_counts_by_type(self):
        review = make_doc("draft.pdf")
        engine = make_engine(FakeStore([review]))
        await engine.load(ITEM_ID)
        engine.stage([UploadFile("a.pdf"), UploadFile("b.pdf")], DocumentType.SUPPLEMENTAL)
        engine.mark_for_type_change([review], DocumentType.SUPPLEMENTAL)

        supplemental = engine.get_pending_counts(DocumentType.SUPPLEMENTAL)
        assert supplemental.new_count == 2
        assert supplemental.modified_count == 1
        assert engine.get_pending_counts(DocumentType.REVIEW).new_count == 0

    @pytest.mark.asyncio
    async def test_type_change_for_several_documents(self):
        first, second = make_doc("one.pdf"), make_doc("two.pdf")
        engine = make_engine(FakeStore([first, second]))
        await engine.load(ITEM_ID)

        engine.mark_for_type_change([first, second], DocumentType.SUPPLEMENTAL)

        assert engine.get_pending_counts(DocumentType.SUPPLEMENTAL).modified_count == 2
        assert not engine.document_facts().has(DocumentType.REVIEW)

    def test_type_change_to_same_type_is_noop(self):
        engine = make_engine(FakeStore())
        draft = make_doc("draft.pdf")
        engine.mark_for_type_change([draft], DocumentType.REVIEW)
        assert not engine.has_pending_operations()

    @pytest.mark.asyncio
    async def test_clear_and_reset(self):
        engine = make_engine(FakeStore([make_doc("draft.pdf")]))
        await engine.load(ITEM_ID)
        engine.stage([UploadFile("a.pdf")], DocumentType.REVIEW)
        engine.clear_pending_operations()
        assert not engine.has_pending_operations()
        assert len(engine.get_documents()) == 1

        engine.reset()
        assert engine.get_documents() == []
        assert engine.item_id is None


class TestUploads:
    @pytest.mark.asyncio
    async def test_commit_uploads(self):
        store = FakeStore()
        engine = make_engine(store)
        engine.stage([UploadFile("a.pdf", b"abc")], DocumentType.REVIEW)
        seen = []

        progress = await engine.commit_uploads(ITEM_ID, on_progress=lambda p: seen.append(p.status))

        (result,) = progress.values()
        assert result.status == FileOperationStatus.SUCCESS
        assert result.progress == 100
        assert seen == [
            FileOperationStatus.PENDING,
            FileOperationStatus.UPLOADING,
            FileOperationStatus.SUCCESS,
        ]
        assert engine.get_staged() == []
        assert [d.name for d in engine.get_documents(DocumentType.REVIEW)] == ["a.pdf"]

    @pytest.mark.asyncio
    async def test_retry_bound(self):
        store = FakeStore()
        store.upload_failures["a.pdf"] = 10
        engine = make_engine(store)
        staged = engine.stage([UploadFile("a.pdf")], DocumentType.REVIEW)[0]

        progress = (await engine.commit_uploads(ITEM_ID))[staged.id]

        assert progress.status == FileOperationStatus.ERROR
        assert progress.retry_count == 2
        assert progress.is_retry_exhausted
        assert store.upload_attempts["a.pdf"] == 3
        assert engine.get_staged() == [staged]

    @pytest.mark.asyncio
    async def test_commit_again_does_not_reset_exhausted_retries(self):
        store = FakeStore()
        store.upload_failures["a.pdf"] = 10
        engine = make_engine(store)
        staged = engine.stage([UploadFile("a.pdf")], DocumentType.REVIEW)[0]
        await engine.commit_uploads(ITEM_ID)

        await engine.commit_uploads(ITEM_ID)

        progress = engine.upload_progress[staged.id]
        assert progress.is_retry_exhausted
        assert progress.retry_count == 2
        assert store.upload_attempts["a.pdf"] == 3

        engine.skip_upload(staged.id)
        restaged = engine.stage([UploadFile("a.pdf")], DocumentType.REVIEW)[0]
        await engine.commit_uploads(ITEM_ID)
        assert engine.upload_progress[restaged.id].retry_count == 2
        assert store.upload_attempts["a.pdf"] == 6

    @pytest.mark.asyncio
    async def test_commit_again_keeps_retry_count(self):
        store = FakeStore()
        store.upload_failures["a.pdf"] = 10
        engine = make_engine(store, auto_retry_uploads=False)
        staged = engine.stage([UploadFile("a.pdf")], DocumentType.REVIEW)[0]

        for _ in range(4):
            await engine.commit_uploads(ITEM_ID)

        assert engine.upload_progress[staged.id].is_retry_exhausted
        assert store.upload_attempts["a.pdf"] == 3

    @pytest.mark.asyncio
    async def test_retry_succeeds(self):
        store = FakeStore()
        store.upload_failures["a.pdf"] = 1
        engine = make_engine(store)
        staged = engine.stage([UploadFile("a.pdf")], DocumentType.REVIEW)[0]

        progress = (await engine.commit_uploads(ITEM_ID))[staged.id]
        assert progress.status == FileOperationStatus.SUCCESS
        assert progress.retry_count == 1
        assert progress.error is None

    @pytest.mark.asyncio
    async def test_failure_does_not_abort_batch(self):
        store = FakeStore()
        store.upload_failures["bad.pdf"] = 10
        engine = make_engine(store)
        engine.stage([UploadFile("bad.pdf"), UploadFile("good.pdf")], DocumentType.REVIEW)

        progress = await engine.commit_uploads(ITEM_ID)
        statuses = {p.file_name: p.status for p in progress.values()}
        assert statuses == {
            "bad.pdf": FileOperationStatus.ERROR,
            "good.pdf": FileOperationStatus.SUCCESS,
        }
        assert [s.file.name for s in engine.get_staged()] == ["bad.pdf"]

    @pytest.mark.asyncio
    async def test_manual_retry_is_bounded(self):
        store = FakeStore()
        store.upload_failures["a.pdf"] = 10
        engine = make_engine(store, auto_retry_uploads=False)
        staged = engine.stage([UploadFile("a.pdf")], DocumentType.REVIEW)[0]

        progress = (await engine.commit_uploads(ITEM_ID))[staged.id]
        assert progress.status == FileOperationStatus.ERROR
        assert progress.retry_count == 0
        assert not progress.is_retry_exhausted

        await engine.retry_upload(staged.id)
        await engine.retry_upload(staged.id)
        assert progress.is_retry_exhausted
        assert store.upload_attempts["a.pdf"] == 3

        again = await engine.retry_upload(staged.id)
        assert again is progress
        assert store.upload_attempts["a.pdf"] == 3

    @pytest.mark.asyncio
    async def test_manual_retry_succeeds(self):
        store = FakeStore()
        store.upload_failures["a.pdf"] = 1
        engine = make_engine(store, auto_retry_uploads=False)
        staged = engine.stage([UploadFile("a.pdf")], DocumentType.REVIEW)[0]
        await engine.commit_uploads(ITEM_ID)

        progress = await engine.retry_upload(staged.id)
        assert progress.status == FileOperationStatus.SUCCESS
        assert engine.get_staged() == []

    @pytest.mark.asyncio
    async def test_skip_upload(self):
        store = FakeStore()
        store.upload_failures["a.pdf"] = 10
        engine = make_engine(store)
        staged = engine.stage([UploadFile("a.pdf")], DocumentType.REVIEW)[0]
        await engine.commit_uploads(ITEM_ID)

        progress = engine.skip_upload(staged.id)
        assert progress.status == FileOperationStatus.SKIPPED
        assert engine.get_staged() == []


class TestCommits:
    @pytest.mark.asyncio
    async def test_commit_deletes(self):
        keep, remove = make_doc("keep.pdf"), make_doc("remove.pdf")
        store = FakeStore([keep, remove])
        engine = make_engine(store)
        await engine.load(ITEM_ID)
        engine.mark_for_deletion(remove)

        result = await engine.commit_deletes()

        assert result.ok
        assert result.succeeded == ["remove.pdf"]
        assert [d.name for d in engine.get_documents()] == ["keep.pdf"]
        assert not engine.has_pending_operations()

    @pytest.mark.asyncio
    async def test_failed_delete_stays_queued(self):
        doc = make_doc("locked.pdf")
        store = FakeStore([doc])
        store.fail_deletes.add("locked.pdf")
        engine = make_engine(store)
        await engine.load(ITEM_ID)
        engine.mark_for_deletion(doc)

        result = await engine.commit_deletes()

        assert not result.ok
        assert "locked.pdf" in result.failed
        assert engine.get_pending_counts().deleted_count == 1
        assert store.list_calls == 1

    @pytest.mark.asyncio
    async def test_reload_polls_until_visible(self):
        doc = make_doc("remove.pdf")
        store = FakeStore([doc])
        engine = make_engine(store, settle_poll_attempts=3)
        await engine.load(ITEM_ID)
        engine.mark_for_deletion(doc)

        store.lag = 2
        await engine.commit_deletes()

        assert engine.get_documents() == []
        assert store.list_calls == 1 + 3

    @pytest.mark.asyncio
    async def test_commit_renames(self):
        doc = make_doc("draft.pdf")
        store = FakeStore([doc])
        engine = make_engine(store)
        await engine.load(ITEM_ID)
        engine.mark_for_rename(doc, "final.pdf")

        result = await engine.commit_renames()

        assert result.succeeded == ["final.pdf"]
        assert [d.name for d in engine.get_documents()] == ["final.pdf"]
        assert not engine.has_pending_operations()

    @pytest.mark.asyncio
    async def test_failed_rename_records_error(self):
        doc = make_doc("draft.pdf")
        store = FakeStore([doc])
        store.fail_renames.add("draft.pdf")
        engine = make_engine(store)
        await engine.load(ITEM_ID)
        engine.mark_for_rename(doc, "final.pdf")

        result = await engine.commit_renames()

        assert result.failed == {"draft.pdf": "rename failed"}
        assert engine.has_pending_operations()

    @pytest.mark.asyncio
    async def test_commit_type_changes(self):
        doc = make_doc("data.xlsx", DocumentType.SUPPLEMENTAL)
        store = FakeStore([doc])
        engine = make_engine(store)
        await engine.load(ITEM_ID)
        engine.mark_for_type_change([doc], DocumentType.REVIEW)

        result = await engine.commit_type_changes(ITEM_ID)

        assert result.ok
        assert engine.get_documents(DocumentType.SUPPLEMENTAL) == []
        assert [d.name for d in engine.get_documents(DocumentType.REVIEW)] == ["data.xlsx"]
