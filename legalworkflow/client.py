"""
Legal Workflow SDK - Async HTTP client for the request and document store.
"""

import logging
from typing import Any, Optional

import httpx

from .exceptions import (
    AuthenticationError,
    ConflictError,
    LegalWorkflowError,
    NotFoundError,
    RemoteStoreError,
    ValidationError,
)
from .models import Document, DocumentType, Request, SubmissionItem, UploadFile

logger = logging.getLogger("legalworkflow.client")


class AsyncLegalWorkflowClient:
    """
    Asynchronous client for the remote request and document store.

    Implements the :class:`~legalworkflow.documents.DocumentStore` protocol,
    so it can be handed straight to a staging engine.

    Example:
        ```python
        async with AsyncLegalWorkflowClient(
            base_url="https://legal.example.com",
            api_key="your-api-key",
            actor_id="jane"
        ) as client:
            request = await client.get_request(42)
            result = engine.hold(request, roles, "jane", reason="Awaiting data")
            saved = await client.save_request(result.request)
        ```
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        actor_id: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.actor_id = actor_id

        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["X-API-Key"] = api_key
        if actor_id:
            headers["X-Actor-ID"] = actor_id

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def _handle_response(self, response: httpx.Response) -> dict:
        """Handle HTTP response and raise appropriate exceptions."""
        if response.status_code == 404:
            raise NotFoundError(
                "Resource not found",
                status_code=404,
                response=response.json() if response.content else None,
            )
        elif response.status_code == 409:
            data = response.json() if response.content else {}
            raise ConflictError(
                data.get("message", "Version conflict"),
                current_version=data.get("current_version"),
                status_code=409,
                response=data,
            )
        elif response.status_code == 400:
            data = response.json() if response.content else {}
            raise ValidationError(
                data.get("message", "Validation error"),
                errors=data.get("errors", []),
                status_code=400,
                response=data,
            )
        elif response.status_code in (401, 403):
            raise AuthenticationError(
                "Authentication failed",
                status_code=response.status_code,
                response=response.json() if response.content else None,
            )
        elif response.status_code >= 400:
            raise LegalWorkflowError(
                f"Request failed with status {response.status_code}",
                status_code=response.status_code,
                response=response.json() if response.content else None,
            )

        return response.json() if response.content else {}

    async def _request(
        self,
        method: str,
        url: str,
        operation: str,
        item_id: Optional[int] = None,
        **kwargs: Any,
    ) -> dict:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            logger.warning(f"{operation} failed for item {item_id}: {e}")
            raise RemoteStoreError(
                f"{operation} failed: {e}", item_id=item_id, operation=operation
            ) from e
        return self._handle_response(response)

    # ==================== Requests ====================

    async def get_request(self, item_id: int) -> Request:
        """Retrieve a request by its store item id."""
        data = await self._request("GET", f"/api/v1/requests/{item_id}", "get_request", item_id)
        return Request.from_dict(data)

    async def save_request(self, request: Request) -> Request:
        """Save a request with optimistic concurrency control.

        Raises:
            ConflictError: The stored version no longer matches ``request.version``
        """
        data = await self._request(
            "PUT",
            f"/api/v1/requests/{request.item_id}",
            "save_request",
            request.item_id,
            json=request.to_dict(),
            headers={"If-Match": str(request.version)},
        )
        return Request.from_dict(data)

    async def get_submission_item(self, submission_item_id: int) -> SubmissionItem:
        data = await self._request(
            "GET", f"/api/v1/submission-items/{submission_item_id}", "get_submission_item"
        )
        return SubmissionItem.from_dict(data)

    async def get_last_sequence(self, prefix: str, year: int) -> int:
        """Highest request-ID sequence already issued for ``prefix`` in ``year``."""
        data = await self._request(
            "GET",
            "/api/v1/requests/sequence",
            "get_last_sequence",
            params={"prefix": prefix, "year": year},
        )
        return int(data.get("last_sequence", 0))

    # ==================== Documents ====================

    async def list_documents(self, item_id: int) -> list[Document]:
        """All documents of an item, across every folder."""
        data = await self._request(
            "GET",
            f"/api/v1/requests/{item_id}/documents",
            "load",
            item_id,
            params={"recursive": "true"},
        )
        items = data.get("documents", []) if isinstance(data, dict) else data
        return [Document.from_dict(d) for d in items]

    async def upload_file(
        self, item_id: int, file: UploadFile, document_type: DocumentType
    ) -> Document:
        data = await self._request(
            "POST",
            f"/api/v1/requests/{item_id}/documents",
            "upload",
            item_id,
            params={"name": file.name, "document_type": document_type.value},
            content=file.content,
            headers={"Content-Type": file.content_type or "application/octet-stream"},
        )
        return Document.from_dict(data)

    async def delete_file(self, document: Document) -> None:
        await self._request(
            "DELETE", f"/api/v1/documents/{document.unique_id}", "delete", document.item_id
        )

    async def rename_file(self, document: Document, new_name: str) -> Document:
        data = await self._request(
            "PATCH",
            f"/api/v1/documents/{document.unique_id}",
            "rename",
            document.item_id,
            json={"name": new_name},
        )
        return Document.from_dict(data)

    async def change_document_type(
        self, item_id: int, document: Document, new_type: DocumentType
    ) -> Document:
        data = await self._request(
            "PATCH",
            f"/api/v1/documents/{document.unique_id}",
            "change_type",
            item_id,
            json={"item_id": item_id, "document_type": new_type.value},
        )
        return Document.from_dict(data)

    async def close(self) -> None:
        """Close the HTTP client connection."""
        await self._client.aclose()

    async def __aenter__(self) -> "AsyncLegalWorkflowClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
