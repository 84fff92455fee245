"""
Legal Workflow SDK - Staged document operations against a remote document store.

Uploads, deletes, renames and type changes are queued locally and only sent
to the store when committed. Loads are de-duplicated per item so that
concurrent callers share one remote fetch.
"""

import asyncio
import logging
import uuid
from typing import Awaitable, Callable, Optional, Protocol

from .config import WorkflowConfig
from .exceptions import RemoteStoreError
from .models import (
    CommitResult,
    Document,
    DocumentFacts,
    DocumentType,
    FileOperationStatus,
    PendingCounts,
    PendingDelete,
    PendingRename,
    PendingTypeChange,
    StagedUpload,
    UploadFile,
    UploadProgress,
)
from .validation import split_extension, validate_filename, validate_unique_name

logger = logging.getLogger("legalworkflow.documents")

ProgressCallback = Callable[[UploadProgress], None]


class DocumentStore(Protocol):
    """Remote store holding the committed documents of each request item."""

    async def list_documents(self, item_id: int) -> list[Document]: ...

    async def upload_file(
        self, item_id: int, file: UploadFile, document_type: DocumentType
    ) -> Document: ...

    async def delete_file(self, document: Document) -> None: ...

    async def rename_file(self, document: Document, new_name: str) -> Document: ...

    async def change_document_type(
        self, item_id: int, document: Document, new_type: DocumentType
    ) -> Document: ...


class LoadRegistry:
    """
    Tracks the in-flight document load for each item id.

    One registry is owned by each staging engine; pass the same registry to
    several engines to share loads between them.
    """

    def __init__(self):
        self._inflight: dict[int, asyncio.Task] = {}

    def get(self, item_id: int) -> Optional[asyncio.Task]:
        task = self._inflight.get(item_id)
        if task is not None and task.done():
            return None
        return task

    def start(
        self, item_id: int, fetch: Callable[[], Awaitable[list[Document]]]
    ) -> asyncio.Task:
        task = asyncio.ensure_future(fetch())
        self._inflight[item_id] = task

        def _forget(done: asyncio.Task) -> None:
            if self._inflight.get(item_id) is done:
                del self._inflight[item_id]

        task.add_done_callback(_forget)
        return task

    def __len__(self) -> int:
        return sum(1 for task in self._inflight.values() if not task.done())


class DocumentStagingEngine:
    """
    Queues document operations for one request item and commits them to a store.

    Example:
        ```python
        async with AsyncLegalWorkflowClient(url, api_key="...") as client:
            staging = DocumentStagingEngine(client, WorkflowConfig())
            await staging.load(42)

            staging.stage([UploadFile("draft.pdf", data)], DocumentType.REVIEW)
            progress = await staging.commit_uploads(42, on_progress=print)

            facts = staging.document_facts()
        ```
    """

    def __init__(
        self,
        store: DocumentStore,
        config: Optional[WorkflowConfig] = None,
        registry: Optional[LoadRegistry] = None,
    ):
        self.store = store
        self.config = config or WorkflowConfig()
        self.registry = registry or LoadRegistry()

        self.item_id: Optional[int] = None
        self.error: Optional[str] = None
        self.last_failure: Optional[RemoteStoreError] = None
        self.upload_progress: dict[str, UploadProgress] = {}

        self._documents: list[Document] = []
        self._staged: list[StagedUpload] = []
        self._pending_deletes: list[PendingDelete] = []
        self._pending_renames: list[PendingRename] = []
        self._pending_type_changes: list[PendingTypeChange] = []
        self._loading = 0
        self._loaded = False

    @property
    def is_loading(self) -> bool:
        return self._loading > 0

    # ==================== Loading ====================

    async def _fetch(self, item_id: int) -> list[Document]:
        try:
            return await self.store.list_documents(item_id)
        except RemoteStoreError:
            raise
        except Exception as e:
            raise RemoteStoreError(
                f"Failed to load documents: {e}", item_id=item_id, operation="load"
            ) from e

    async def load(self, item_id: int, force_reload: bool = False) -> list[Document]:
        """
        Load the committed document set for ``item_id``.

        An item that is already loaded without error is returned from memory
        unless ``force_reload`` is set. Concurrent calls share one in-flight
        fetch. With ``force_reload`` the
        call first waits for any in-flight fetch, then joins a fetch started
        after it began waiting or starts a fresh one. Failures keep the
        previous documents and are recorded in ``error`` and ``last_failure``.

        Returns:
            The documents held after the load
        """
        if not force_reload and self._loaded and item_id == self.item_id and self.error is None:
            logger.debug(f"Documents for item {item_id} already loaded, skipping reload")
            return list(self._documents)

        self._loading += 1
        try:
            if force_reload:
                existing = self.registry.get(item_id)
                if existing is not None:
                    await asyncio.wait([existing])
                task = self.registry.get(item_id)
                if task is None or task is existing:
                    task = self.registry.start(item_id, lambda: self._fetch(item_id))
            else:
                task = self.registry.get(item_id)
                if task is None:
                    task = self.registry.start(item_id, lambda: self._fetch(item_id))

            try:
                documents = await asyncio.shield(task)
            except RemoteStoreError as e:
                self.error = e.message
                self.last_failure = e
                logger.warning(f"Document load failed for item {item_id}: {e.message}")
                return list(self._documents)

            self.item_id = item_id
            self._loaded = True
            self._documents = list(documents)
            self.error = None
            self.last_failure = None
            logger.debug(f"Loaded {len(documents)} documents for item {item_id}")
            return list(self._documents)
        finally:
            self._loading -= 1

    # ==================== Staging ====================

    def stage(
        self,
        files: list[UploadFile],
        document_type: DocumentType,
        item_id: Optional[int] = None,
    ) -> list[StagedUpload]:
        """Queue files for upload. All names are validated before any is queued."""
        for file in files:
            validate_filename(file.name)

        staged = [
            StagedUpload(
                id=uuid.uuid4().hex,
                file=file,
                document_type=document_type,
                item_id=item_id if item_id is not None else self.item_id,
            )
            for file in files
        ]
        self._staged.extend(staged)
        return staged

    def remove_staged(self, staged_id: str) -> bool:
        for index, staged in enumerate(self._staged):
            if staged.id == staged_id:
                del self._staged[index]
                self.upload_progress.pop(staged_id, None)
                return True
        return False

    def mark_for_deletion(self, document: Document) -> None:
        if any(p.document.unique_id == document.unique_id for p in self._pending_deletes):
            return
        # A deleted document cannot also be renamed or retyped.
        self.cancel_rename(document.unique_id)
        self.cancel_type_change(document.unique_id)
        self._pending_deletes.append(PendingDelete(document=document))

    def undo_delete(self, unique_id: str) -> bool:
        before = len(self._pending_deletes)
        self._pending_deletes = [
            p for p in self._pending_deletes if p.document.unique_id != unique_id
        ]
        return len(self._pending_deletes) != before

    def _effective_type(self, document: Document) -> DocumentType:
        for change in self._pending_type_changes:
            if change.document.unique_id == document.unique_id:
                return change.new_type
        return document.document_type

    def _names_of_type(self, document_type: DocumentType, exclude_id: Optional[str] = None) -> list[str]:
        renamed = {r.document.unique_id: r.new_name for r in self._pending_renames}
        names = [
            renamed.get(d.unique_id, d.name)
            for d in self._documents
            if d.unique_id != exclude_id and self._effective_type(d) == document_type
        ]
        names.extend(s.file.name for s in self._staged if s.document_type == document_type)
        return names

    def mark_for_rename(self, document: Document, new_name: str) -> str:
        """
        Queue a rename after validating the name and its uniqueness within the type.

        A new name without an extension keeps the document's current one.

        Returns:
            The name the document will be renamed to
        """
        _, extension = split_extension(document.name)
        if extension and not split_extension(new_name)[1]:
            new_name = f"{new_name}{extension}"
        validate_filename(new_name, "new_name")
        if new_name != document.name:
            validate_unique_name(
                new_name,
                self._names_of_type(self._effective_type(document), exclude_id=document.unique_id),
                "new_name",
            )

        self.cancel_rename(document.unique_id)
        if new_name != document.name:
            self._pending_renames.append(PendingRename(document=document, new_name=new_name))
        return new_name

    def cancel_rename(self, unique_id: str) -> bool:
        before = len(self._pending_renames)
        self._pending_renames = [
            r for r in self._pending_renames if r.document.unique_id != unique_id
        ]
        return len(self._pending_renames) != before

    def mark_for_type_change(self, documents: list[Document], new_type: DocumentType) -> None:
        """Queue a type change for each document; documents already of ``new_type`` are unqueued."""
        for document in documents:
            self.cancel_type_change(document.unique_id)
            if new_type != document.document_type:
                self._pending_type_changes.append(
                    PendingTypeChange(document=document, new_type=new_type)
                )

    def cancel_type_change(self, unique_id: str) -> bool:
        before = len(self._pending_type_changes)
        self._pending_type_changes = [
            c for c in self._pending_type_changes if c.document.unique_id != unique_id
        ]
        return len(self._pending_type_changes) != before

    def check_duplicates(self, files: list[UploadFile], document_type: DocumentType) -> list[str]:
        """Names that already exist (case-insensitively) among committed documents of the type."""
        existing = {d.name.lower() for d in self._documents if d.document_type == document_type}
        return [f.name for f in files if f.name.lower() in existing]

    # ==================== Uploads ====================

    @staticmethod
    def _notify(progress: UploadProgress, on_progress: Optional[ProgressCallback]) -> None:
        if on_progress is not None:
            on_progress(progress)

    def _find_staged(self, staged_id: str) -> Optional[StagedUpload]:
        for staged in self._staged:
            if staged.id == staged_id:
                return staged
        return None

    async def _attempt_upload(
        self,
        staged: StagedUpload,
        progress: UploadProgress,
        on_progress: Optional[ProgressCallback],
    ) -> bool:
        progress.status = FileOperationStatus.UPLOADING
        progress.progress = 0
        progress.error = None
        self._notify(progress, on_progress)

        try:
            document = await self.store.upload_file(staged.item_id, staged.file, staged.document_type)
        except Exception as e:
            progress.status = FileOperationStatus.ERROR
            progress.error = str(e)
            logger.warning(
                f"Upload attempt {progress.retry_count + 1} failed for {staged.file.name}: {e}"
            )
            self._notify(progress, on_progress)
            return False

        progress.status = FileOperationStatus.SUCCESS
        progress.progress = 100
        self._staged = [s for s in self._staged if s.id != staged.id]
        self._documents.append(document)
        self._notify(progress, on_progress)
        return True

    async def _upload_with_retry(
        self,
        staged: StagedUpload,
        progress: UploadProgress,
        on_progress: Optional[ProgressCallback],
    ) -> None:
        while True:
            if await self._attempt_upload(staged, progress, on_progress):
                return
            if not self.config.auto_retry_uploads:
                return
            if progress.retry_count >= progress.max_retries:
                logger.error(
                    f"Upload of {staged.file.name} failed after {progress.retry_count + 1} attempts"
                )
                return
            progress.retry_count += 1
            await asyncio.sleep(self.config.upload_backoff(progress.retry_count))

    async def commit_uploads(
        self,
        item_id: int,
        on_progress: Optional[ProgressCallback] = None,
    ) -> dict[str, UploadProgress]:
        """
        Upload every staged file, one at a time.

        A failed file never aborts the batch; its state is reported through
        ``on_progress`` and the returned progress map. Successful files leave
        the queue and join the committed set. Files that have used up their
        retries are left as they are until skipped or staged again; a failed
        file with retries left keeps its retry count.
        """
        queue = []
        retrying = set()
        for staged in self._staged:
            progress = self.upload_progress.get(staged.id)
            if progress is not None and progress.is_retry_exhausted:
                continue
            staged.item_id = item_id
            if progress is not None and progress.status == FileOperationStatus.ERROR:
                retrying.add(staged.id)
            else:
                self.upload_progress[staged.id] = UploadProgress(
                    staged_id=staged.id,
                    file_name=staged.file.name,
                    max_retries=self.config.max_upload_retries,
                )
                self._notify(self.upload_progress[staged.id], on_progress)
            queue.append(staged)

        for staged in queue:
            progress = self.upload_progress[staged.id]
            if staged.id in retrying:
                progress.retry_count += 1
            await self._upload_with_retry(staged, progress, on_progress)

        succeeded = sum(
            1 for s in queue if self.upload_progress[s.id].status == FileOperationStatus.SUCCESS
        )
        logger.info(f"Committed {succeeded}/{len(queue)} uploads for item {item_id}")
        return {s.id: self.upload_progress[s.id] for s in queue}

    async def retry_upload(
        self,
        staged_id: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Optional[UploadProgress]:
        """Retry one failed upload. Exhausted files are returned unchanged."""
        progress = self.upload_progress.get(staged_id)
        staged = self._find_staged(staged_id)
        if progress is None or staged is None:
            return progress

        if progress.is_retry_exhausted:
            logger.warning(
                f"Upload of {progress.file_name} has used all {progress.max_retries} retries"
            )
            return progress
        if progress.status != FileOperationStatus.ERROR:
            return progress

        progress.retry_count += 1
        uploaded = await self._attempt_upload(staged, progress, on_progress)
        if not uploaded and progress.is_retry_exhausted:
            logger.error(f"Upload of {progress.file_name} failed after all retries")
        return progress

    def skip_upload(self, staged_id: str) -> Optional[UploadProgress]:
        """Mark a file skipped and drop it from the upload queue."""
        progress = self.upload_progress.get(staged_id)
        staged = self._find_staged(staged_id)
        if staged is not None:
            self._staged = [s for s in self._staged if s.id != staged_id]
        if progress is None and staged is not None:
            progress = UploadProgress(
                staged_id=staged_id,
                file_name=staged.file.name,
                max_retries=self.config.max_upload_retries,
            )
            self.upload_progress[staged_id] = progress
        if progress is not None:
            progress.status = FileOperationStatus.SKIPPED
        return progress

    # ==================== Deletes, renames, type changes ====================

    async def _settle(self, item_id: Optional[int], visible: Callable[[list[Document]], bool]) -> None:
        """Wait for committed changes to show up in the store's listing."""
        if item_id is None:
            return
        attempts = max(1, self.config.settle_poll_attempts)
        for attempt in range(attempts):
            await asyncio.sleep(self.config.settle_delay_seconds)
            await self.load(item_id, force_reload=True)
            if self.error is None and visible(self._documents):
                return
        logger.warning(f"Changes to item {item_id} not visible after {attempts} reloads")

    async def commit_deletes(self) -> CommitResult:
        result = CommitResult()
        deleted_ids = set()
        for pending in list(self._pending_deletes):
            document = pending.document
            try:
                await self.store.delete_file(document)
            except Exception as e:
                pending.status = FileOperationStatus.ERROR
                pending.error = str(e)
                result.failed[document.name] = str(e)
                logger.warning(f"Delete of {document.name} failed: {e}")
                continue
            deleted_ids.add(document.unique_id)
            result.succeeded.append(document.name)

        if deleted_ids:
            self._pending_deletes = [
                p for p in self._pending_deletes if p.document.unique_id not in deleted_ids
            ]
            self._documents = [d for d in self._documents if d.unique_id not in deleted_ids]
            await self._settle(
                self.item_id,
                lambda docs: not any(d.unique_id in deleted_ids for d in docs),
            )
        return result

    def _replace_document(self, document: Document) -> None:
        self._documents = [
            document if d.unique_id == document.unique_id else d for d in self._documents
        ]

    async def commit_renames(self) -> CommitResult:
        result = CommitResult()
        expected: dict[str, str] = {}
        for pending in list(self._pending_renames):
            document = pending.document
            try:
                renamed = await self.store.rename_file(document, pending.new_name)
            except Exception as e:
                pending.status = FileOperationStatus.ERROR
                pending.error = str(e)
                result.failed[document.name] = str(e)
                logger.warning(f"Rename of {document.name} failed: {e}")
                continue
            expected[document.unique_id] = pending.new_name
            result.succeeded.append(pending.new_name)
            self._replace_document(renamed)

        if expected:
            self._pending_renames = [
                r for r in self._pending_renames if r.document.unique_id not in expected
            ]
            await self._settle(
                self.item_id,
                lambda docs: all(
                    d.name == expected[d.unique_id] for d in docs if d.unique_id in expected
                ),
            )
        return result

    async def commit_type_changes(self, item_id: int) -> CommitResult:
        result = CommitResult()
        expected: dict[str, DocumentType] = {}
        for pending in list(self._pending_type_changes):
            document = pending.document
            try:
                changed = await self.store.change_document_type(item_id, document, pending.new_type)
            except Exception as e:
                pending.status = FileOperationStatus.ERROR
                pending.error = str(e)
                result.failed[document.name] = str(e)
                logger.warning(f"Type change of {document.name} failed: {e}")
                continue
            expected[document.unique_id] = pending.new_type
            result.succeeded.append(document.name)
            self._replace_document(changed)

        if expected:
            self._pending_type_changes = [
                c for c in self._pending_type_changes if c.document.unique_id not in expected
            ]
            await self._settle(
                item_id,
                lambda docs: all(
                    d.document_type == expected[d.unique_id]
                    for d in docs
                    if d.unique_id in expected
                ),
            )
        return result

    # ==================== Queries ====================

    def get_documents(self, document_type: Optional[DocumentType] = None) -> list[Document]:
        if document_type is None:
            return list(self._documents)
        return [d for d in self._documents if d.document_type == document_type]

    def get_documents_by_type(self) -> dict[DocumentType, list[Document]]:
        grouped: dict[DocumentType, list[Document]] = {}
        for document in self._documents:
            grouped.setdefault(document.document_type, []).append(document)
        return grouped

    def get_staged(self, document_type: Optional[DocumentType] = None) -> list[StagedUpload]:
        if document_type is None:
            return list(self._staged)
        return [s for s in self._staged if s.document_type == document_type]

    def get_pending_counts(self, document_type: Optional[DocumentType] = None) -> PendingCounts:
        def matches(value: DocumentType) -> bool:
            return document_type is None or value == document_type

        modified_ids = {
            r.document.unique_id for r in self._pending_renames if matches(r.document.document_type)
        }
        modified_ids.update(
            c.document.unique_id
            for c in self._pending_type_changes
            if matches(c.document.document_type) or matches(c.new_type)
        )
        return PendingCounts(
            new_count=sum(1 for s in self._staged if matches(s.document_type)),
            modified_count=len(modified_ids),
            deleted_count=sum(
                1 for p in self._pending_deletes if matches(p.document.document_type)
            ),
        )

    def has_pending_operations(self) -> bool:
        return bool(
            self._staged
            or self._pending_deletes
            or self._pending_renames
            or self._pending_type_changes
        )

    def document_facts(self) -> DocumentFacts:
        """
        Per-type counts of committed plus staged documents.

        Documents marked for deletion are left out and pending type changes
        are counted under their new type.
        """
        deleting = {p.document.unique_id for p in self._pending_deletes}
        counts: dict[DocumentType, int] = {}
        for document in self._documents:
            if document.unique_id in deleting:
                continue
            document_type = self._effective_type(document)
            counts[document_type] = counts.get(document_type, 0) + 1
        for staged in self._staged:
            counts[staged.document_type] = counts.get(staged.document_type, 0) + 1
        return DocumentFacts(counts=counts)

    # ==================== Utilities ====================

    def clear_pending_operations(self) -> None:
        self._staged = []
        self._pending_deletes = []
        self._pending_renames = []
        self._pending_type_changes = []
        self.upload_progress = {}

    def clear_error(self) -> None:
        self.error = None
        self.last_failure = None

    def reset(self) -> None:
        self.clear_pending_operations()
        self.clear_error()
        self._documents = []
        self._loaded = False
        self.item_id = None
