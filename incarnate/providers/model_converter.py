"""Model Converter - Tripo3D image-to-3D client."""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import BaseModel

from incarnate.common.models import (
    GeneratedImage,
    ModelConversionOptions,
    TaskSnapshot,
    TaskStatus,
)
from incarnate.providers.base import (
    BaseProvider,
    NoContentError,
    ProviderConfig,
    ProviderError,
    classify_message,
    normalize_error,
)


class ModelConversionInput(BaseModel):
    """Input for starting an image-to-model task."""

    image_token: str
    options: ModelConversionOptions = ModelConversionOptions()
    file_type: str = "png"


def file_type_for(mime_type: str) -> str:
    """Tripo file type (and upload suffix) for an image mime type."""
    subtype = mime_type.split("/")[-1].lower()
    return "jpg" if subtype == "jpeg" else subtype or "png"


class ModelConverter(BaseProvider[ModelConversionInput, str]):
    """
    Two-phase Tripo3D adapter: ``upload`` an image for a token, then
    ``invoke`` to start the conversion task and ``get_status`` to follow it.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        api_key: str,
        base_url: str = "https://api.tripo3d.ai/v2/openapi",
        model_version: str = "v2.5-20250123",
    ):
        super().__init__(ProviderConfig(name="ModelConverter", model=model_version))
        self.http = http
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    @property
    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _unwrap(self, response: httpx.Response, action: str) -> dict[str, Any]:
        """Check status and envelope code, returning the ``data`` object."""
        if response.is_error:
            message = f"{action} failed: {response.status_code} - {response.text[:500]}"
            retryable = response.status_code >= 500 or classify_message(message)
            raise ProviderError(message, retryable=retryable)

        try:
            body = response.json()
        except ValueError as e:
            raise ProviderError(f"{action} returned malformed JSON") from e

        code = body.get("code")
        if code != 0:
            raise ProviderError(f"{action} error: code {code}")

        data = body.get("data")
        if not isinstance(data, dict):
            raise NoContentError(f"{action} response has no data")
        return data

    async def upload(self, image: GeneratedImage) -> str:
        """Upload image bytes and return Tripo's image token."""
        extension = file_type_for(image.mime_type)
        self.logger.info("tripo_upload_start", size_bytes=image.size_bytes)
        try:
            response = await self.http.post(
                self._url("upload"),
                headers=self._auth_headers,
                files={"file": (f"avatar.{extension}", image.data, image.mime_type)},
            )
            data = self._unwrap(response, "Upload")
        except Exception as e:
            raise normalize_error(e) from e

        token = data.get("image_token")
        if not token:
            raise NoContentError("Upload response has no image token")
        return token

    async def execute(self, request: ModelConversionInput) -> str:
        options = request.options
        body = {
            "type": "image_to_model",
            "model_version": options.model_version or self.config.model,
            "file": {"type": request.file_type, "file_token": request.image_token},
            "texture": options.textured,
            "pbr": options.pbr,
            "auto_size": options.auto_size,
        }
        response = await self.http.post(
            self._url("task"),
            headers=self._auth_headers,
            json=body,
        )
        data = self._unwrap(response, "Task creation")

        task_id = data.get("task_id")
        if not task_id:
            raise NoContentError("Task creation response has no task id")
        return task_id

    async def get_status(self, task_id: str) -> TaskSnapshot:
        """Fetch task status and progress."""
        try:
            response = await self.http.get(
                self._url(f"task/{task_id}"),
                headers=self._auth_headers,
            )
            data = self._unwrap(response, "Get task")
        except Exception as e:
            raise normalize_error(e) from e

        raw_status = data.get("status")
        self.logger.debug(
            "tripo_task_status",
            task_id=task_id,
            status=raw_status,
            progress=data.get("progress"),
        )
        progress = float(data.get("progress") or 0)
        return TaskSnapshot(
            task_id=task_id,
            status=TaskStatus.parse(raw_status),
            progress=max(0.0, min(100.0, progress)),
            output=data.get("output") or {},
        )
