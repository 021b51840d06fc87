# ============================================================================
# DATA PROCESSING ACTION
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Core - Local (non-provider) node operations
# PURPOSE: Reshape upstream outputs and persist generated media
# CREATED: 09 OCT 2026
# ============================================================================
"""
Data Processing Action

Runs locally, never calls a capability provider. The operation is chosen by
the node's config["operation"]:

    passthrough  (default) the resolved input, or input[config.source]
    merge        shallow-merge dict inputs in mapping order; non-dict values
                 land under their own input name
    combine      zip a primary record list with parallel lists:
                     config.primary: input name of the record list
                     config.fields:  {output field: input name of a list}
    upload       persist media to the blob store:
                     config.source:        input name (default "media")
                     config.container:     blob container (default "generated")
                     config.path_template: Jinja2 path, variables project_id,
                                           execution_id, node_id, index, ext, item

upload accepts bytes, http(s) URLs (fetched with httpx) and dicts carrying
data / image_url / video_url / url. Under the skip policy a failed element
becomes {index, error} and the rest are still uploaded.
"""

import logging
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import httpx

from core.contracts import ErrorPolicy, NodeType
from core.errors import InputResolutionError, ProviderError
from handlers.registry import ActionContext, ActionHandler, ActionOutput, register_action
from infrastructure.storage import detect_content_type

logger = logging.getLogger(__name__)

DEFAULT_CONTAINER = "generated"
DEFAULT_PATH_TEMPLATE = "{{ project_id or 'shared' }}/{{ execution_id or 'adhoc' }}/{{ node_id }}_{{ index }}{{ ext }}"
HTTP_TIMEOUT_SECONDS = 60.0


@register_action(NodeType.DATA_PROCESSING, description="passthrough, merge, combine, upload")
class DataProcessingAction(ActionHandler):

    async def run(self, ctx: ActionContext) -> ActionOutput:
        operation = ctx.node.config.get("operation", "passthrough")
        method = getattr(self, f"_op_{operation}", None)
        if method is None:
            raise InputResolutionError(
                f"Node {ctx.node.id} has unknown data_processing operation: {operation}",
                node_id=ctx.node.id,
            )
        logger.debug(f"Node {ctx.node.id}: data_processing.{operation}")
        return ActionOutput(output=await method(ctx))

    # ------------------------------------------------------------------
    # OPERATIONS
    # ------------------------------------------------------------------

    async def _op_passthrough(self, ctx: ActionContext) -> Any:
        source = ctx.node.config.get("source")
        if source:
            return ctx.input.get(source)
        return dict(ctx.input)

    async def _op_merge(self, ctx: ActionContext) -> Dict[str, Any]:
        merged: Dict[str, Any] = {}
        for name, value in ctx.input.items():
            if isinstance(value, dict):
                merged.update(value)
            else:
                merged[name] = value
        return merged

    async def _op_combine(self, ctx: ActionContext) -> List[Dict[str, Any]]:
        primary_name = ctx.node.config.get("primary")
        primary = ctx.input.get(primary_name) if primary_name else None
        if not isinstance(primary, list):
            raise InputResolutionError(
                f"Node {ctx.node.id} combine needs a list input '{primary_name}'",
                node_id=ctx.node.id,
            )

        fields: Dict[str, str] = ctx.node.config.get("fields") or {}
        parallel = {out: ctx.input.get(name) or [] for out, name in fields.items()}

        combined = []
        for index, record in enumerate(primary):
            row = dict(record) if isinstance(record, dict) else {"value": record}
            for out, values in parallel.items():
                row[out] = values[index] if isinstance(values, list) and index < len(values) else None
            combined.append(row)
        return combined

    async def _op_upload(self, ctx: ActionContext) -> List[Dict[str, Any]]:
        if ctx.blob_store is None:
            raise InputResolutionError(
                f"Node {ctx.node.id} upload requires a blob store", node_id=ctx.node.id
            )

        source = ctx.node.config.get("source", "media")
        items = ctx.input.get(source)
        if items is None:
            raise InputResolutionError(
                f"Node {ctx.node.id} upload input '{source}' is missing", node_id=ctx.node.id
            )
        if not isinstance(items, list):
            items = [items]

        container = ctx.node.config.get("container", DEFAULT_CONTAINER)
        path_template = ctx.node.config.get("path_template", DEFAULT_PATH_TEMPLATE)

        if ctx.http_client is not None:
            return await self._upload_all(ctx, items, container, path_template, ctx.http_client)
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS) as client:
            return await self._upload_all(ctx, items, container, path_template, client)

    # ------------------------------------------------------------------
    # UPLOAD HELPERS
    # ------------------------------------------------------------------

    async def _upload_all(
        self,
        ctx: ActionContext,
        items: List[Any],
        container: str,
        path_template: str,
        client: httpx.AsyncClient,
    ) -> List[Dict[str, Any]]:
        uploaded: List[Dict[str, Any]] = []
        for index, item in enumerate(items):
            try:
                data, content_type, ext = await self._read_media(item, client)
                path = ctx.renderer.render(path_template, {
                    "project_id": ctx.project_id,
                    "execution_id": ctx.execution_id,
                    "node_id": ctx.node.id,
                    "index": index,
                    "ext": ext,
                    "item": item if isinstance(item, dict) else {},
                })
                descriptor = await ctx.blob_store.upload(container, path, data, content_type)
            except Exception as e:
                if ctx.node.error_policy != ErrorPolicy.SKIP:
                    raise
                logger.warning(f"Node {ctx.node.id}: upload of element {index} failed: {e}")
                uploaded.append({"index": index, "error": str(e)})
                continue

            entry = dict(item) if isinstance(item, dict) else {}
            entry.pop("data", None)
            entry.update({
                "index": index,
                "blob_path": descriptor["path"],
                "blob_url": descriptor["url"],
                "content_type": descriptor["content_type"],
                "size": descriptor["size"],
            })
            uploaded.append(entry)

        logger.info(f"Node {ctx.node.id}: uploaded {len(uploaded)} of {len(items)} items to {container}")
        return uploaded

    async def _read_media(
        self,
        item: Any,
        client: httpx.AsyncClient,
    ) -> Tuple[bytes, Optional[str], str]:
        """Return (bytes, content_type, extension) for an upload element."""
        if isinstance(item, (bytes, bytearray)):
            return bytes(item), None, ".bin"

        if isinstance(item, dict):
            if isinstance(item.get("data"), (bytes, bytearray)):
                ext = item.get("ext") or ".bin"
                return bytes(item["data"]), item.get("content_type"), ext
            url = item.get("image_url") or item.get("video_url") or item.get("url")
        else:
            url = item

        if not isinstance(url, str) or urlparse(url).scheme not in ("http", "https"):
            raise InputResolutionError(f"Unsupported media reference: {str(url)[:120]}")

        response = await client.get(url)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ProviderError(f"Fetching {url} failed with HTTP {response.status_code}") from e

        ext = PurePosixPath(urlparse(url).path).suffix or ".bin"
        content_type = response.headers.get("content-type") or detect_content_type(f"media{ext}")
        return response.content, content_type.split(";")[0].strip(), ext


__all__ = ["DataProcessingAction"]
