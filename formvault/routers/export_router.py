"""Export and media access endpoints.

Routers handle HTTP concerns only - no business logic.
Exports are delegated to ExportService, URL issuance to SignedUrlCache.
"""

from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import Response

from formvault.errors import NotFoundError, ResolutionFailure, TotalFailure
from formvault.models.domain import SignedUrl
from formvault.models.exports import ExportArtifact
from formvault.storage.paths import DEFAULT_BUCKET, resolve

if TYPE_CHECKING:
    from formvault.services.export_service import ExportService
    from formvault.services.signed_url_cache import SignedUrlCache


def _download_response(artifact: ExportArtifact) -> Response:
    headers = {"Content-Disposition": artifact.content_disposition}
    if artifact.skipped:
        headers["X-Skipped-Files"] = str(len(artifact.skipped))
    return Response(content=artifact.content, media_type=artifact.media_type, headers=headers)


def create_export_router(
    export_service: "ExportService",
    signed_url_cache: "SignedUrlCache",
    *,
    interactive_ttl_seconds: int = 3600,
    bucket: str = DEFAULT_BUCKET,
) -> APIRouter:
    """Create export router with injected services.

    Args:
        export_service: ExportService for CSV and ZIP exports.
        signed_url_cache: Shared cache used for on-demand media URLs.
        interactive_ttl_seconds: TTL for URLs handed to the admin UI.
        bucket: Bucket embedded in historical storage URLs.

    Returns:
        APIRouter with export endpoints configured
    """
    router = APIRouter(prefix="/api", tags=["exports"])

    @router.get("/forms/{form_id}/export.csv")
    async def export_form_csv(form_id: str) -> Response:
        """Download all submissions of a form as CSV.

        Raises:
            HTTPException: 404 if the form does not exist, 503 if the
                submissions could not be read.
        """
        try:
            artifact = await export_service.export_form_csv(form_id)
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except TotalFailure as e:
            raise HTTPException(status_code=503, detail=str(e))
        return _download_response(artifact)

    @router.get("/submissions/{submission_id}/archive.zip")
    async def export_submission_archive(submission_id: str) -> Response:
        """Download one submission's files as a ZIP archive."""
        try:
            artifact = await export_service.export_submission_archive(submission_id)
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except TotalFailure as e:
            raise HTTPException(status_code=503, detail=str(e))
        return _download_response(artifact)

    @router.get("/media/signed-url", response_model=SignedUrl)
    async def get_signed_url(
        reference: str = Query(..., description="Stored file reference (path or storage URL)"),
    ) -> SignedUrl:
        """Issue (or reuse) an access URL for display.

        Raises:
            HTTPException: 404 if the reference is unresolvable, 502 if the
                storage service did not issue a URL.
        """
        try:
            path = resolve(reference, bucket=bucket)
        except ResolutionFailure as e:
            raise HTTPException(status_code=404, detail=str(e))

        url = await signed_url_cache.get_or_issue(path, interactive_ttl_seconds)
        if not url:
            raise HTTPException(status_code=502, detail="Could not generate access URL")
        return SignedUrl(path=path, url=url, expires_in_seconds=interactive_ttl_seconds)

    return router
