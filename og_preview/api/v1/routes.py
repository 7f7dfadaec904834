import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from starlette.concurrency import run_in_threadpool

from og_preview.api.v1.schemas import (
    LayoutVariant,
    LegacyPreviewRequest,
    PreviewPublishResponse,
    PreviewRequest,
)
from og_preview.models.preview import RenderRequest, RenderResult
from og_preview.services.errors import EncodeError, InvalidVariant, StorageError
from og_preview.services.renderer import render_preview
from og_preview.services.storage import PreviewStore, get_preview_store, preview_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1")
legacy_router = APIRouter()

CACHE_CONTROL = "s-maxage=31536000, public"
PNG_RESPONSES = {200: {"content": {"image/png": {}}, "description": "Rendered PNG preview."}}


def _to_render_request(payload: PreviewRequest) -> RenderRequest:
    return RenderRequest(
        title=payload.title,
        content=payload.content,
        variant=payload.variant,
        source_image=str(payload.source_image) if payload.source_image else None,
    )


async def _render(request: RenderRequest) -> RenderResult:
    """
    Run the CPU-bound render in the threadpool and translate core failures.

    Fetch and decode problems never reach this point; the renderer already
    fell back to a text-only preview.
    """
    try:
        return await run_in_threadpool(render_preview, request)
    except InvalidVariant as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except EncodeError as exc:
        logger.error("Failed to encode preview: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate preview image.",
        ) from exc


def _png_response(result: RenderResult) -> Response:
    return Response(
        content=result.content,
        media_type=result.content_type,
        headers={"Cache-Control": CACHE_CONTROL},
    )


@router.get("/health", tags=["health"])
async def health_check() -> dict:
    """API v1 health check endpoint."""
    return {"status": "ok", "api_version": "v1"}


@router.get("/variants", tags=["previews"], summary="List layout variants")
async def list_variants() -> list[str]:
    """Names accepted by the `variant` field of a preview request."""
    return [variant.value for variant in LayoutVariant]


@router.post(
    "/previews",
    response_class=Response,
    responses=PNG_RESPONSES,
    tags=["previews"],
    summary="Render a social preview image",
)
async def create_preview(payload: PreviewRequest) -> Response:
    """
    Render a 1200x630 PNG and return it in the response body.

    If `sourceImage` cannot be fetched or decoded the preview is still
    rendered, just without the photo.
    """
    result = await _render(_to_render_request(payload))
    return _png_response(result)


@router.post(
    "/previews/publish",
    response_model=PreviewPublishResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["previews"],
    summary="Render a social preview and store it",
)
async def publish_preview(
    payload: PreviewRequest,
    store: PreviewStore = Depends(get_preview_store),
) -> PreviewPublishResponse:
    """
    Render a preview and persist it through the configured store.

    Returns the public URL of the stored PNG. The storage backend (local
    static directory or S3) is chosen by `OG_STORAGE_MODE`.
    """
    request = _to_render_request(payload)
    result = await _render(request)

    try:
        url = await run_in_threadpool(store.save, result, preview_key(request))
    except StorageError as exc:
        logger.error("Failed to store preview: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to store preview image.",
        ) from exc

    return PreviewPublishResponse(
        url=url,
        variant=result.variant,
        has_photo=result.has_photo,
        width=result.width,
        height=result.height,
    )


@legacy_router.post(
    "/generate-og-image",
    response_class=Response,
    responses=PNG_RESPONSES,
    tags=["legacy"],
    summary="Render a preview (legacy payload)",
)
async def generate_og_image(payload: LegacyPreviewRequest) -> Response:
    """
    Backwards-compatible endpoint taking `title`, `content` and `imageUrl`.

    A present `imageUrl` is drawn full-bleed behind the text.
    """
    variant = LayoutVariant.IMAGE_BACKGROUND if payload.image_url else LayoutVariant.DEFAULT
    request = RenderRequest(
        title=payload.title,
        content=payload.content,
        variant=variant,
        source_image=str(payload.image_url) if payload.image_url else None,
    )
    result = await _render(request)
    return _png_response(result)
