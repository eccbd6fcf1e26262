"""
Asset Caching and Render Preparation
====================================

Copies ephemeral provider URLs and inline data URIs into durable object
storage, then checks that a project can be handed to the renderer.

Render preparation works on a deep copy; the caller's project is never
modified. Assets that cannot be made durable have their feature disabled
and an issue recorded.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Tuple

import httpx

from ..core.config import StorageConfig
from ..core.exceptions import CacheError, SecurityError, ValidationError
from ..core.security import decode_data_uri, is_data_uri, is_durable_url, redact_api_key, validate_url
from ..project.models import AssetReference, FailureLedger, Scene, VideoProject
from ..utils.storage import ObjectStore
from .composition import camera_motion

logger = logging.getLogger(__name__)


class AssetFetcher:
    """Downloads asset bytes from provider URLs or inline data URIs."""

    def __init__(self, timeout: float = 60.0, client: Optional[httpx.AsyncClient] = None):
        self.timeout = timeout
        self._client = client

    async def fetch(self, url: str) -> Tuple[bytes, str]:
        """
        Fetch an asset.

        Returns:
            Tuple of (bytes, content type)

        Raises:
            CacheError: If the asset cannot be read or the URL is not allowed
        """
        if is_data_uri(url):
            try:
                return decode_data_uri(url)
            except ValidationError as e:
                raise CacheError(f"Invalid inline asset: {e}", asset_url=url)

        try:
            url = validate_url(url)
        except SecurityError as e:
            raise CacheError(f"Refused to fetch asset: {e.message}", asset_url=url)

        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout), follow_redirects=True)

        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise CacheError(f"Download failed: {e}", asset_url=url)

        content_type = response.headers.get("content-type", "application/octet-stream").split(";")[0]
        return response.content, content_type

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class DurabilityService:
    """
    Makes individual URLs durable.

    Usage:
        service = DurabilityService(store, config.storage)
        url = await service.make_durable(asset.url, project.id, "scene-1-image")
    """

    def __init__(
        self,
        store: Optional[ObjectStore],
        config: Optional[StorageConfig] = None,
        fetcher: Optional[AssetFetcher] = None,
    ):
        self.store = store
        self.config = config or StorageConfig()
        self.fetcher = fetcher or AssetFetcher()

    def is_durable(self, url: Optional[str]) -> bool:
        return is_durable_url(url, self.config.ephemeral_hosts)

    async def make_durable(self, url: str, project_id: str, name: str) -> str:
        """
        Return a durable URL for an asset, uploading it if needed.

        Raises:
            CacheError: If the asset cannot be stored
        """
        if self.is_durable(url):
            return url
        if self.store is None:
            raise CacheError("No object store configured", asset_url=url)

        data, content_type = await self.fetcher.fetch(url)
        stored = await self.store.put(data, self.store.key_for(project_id, name, content_type), content_type)
        if not stored:
            raise CacheError("Object store rejected upload", asset_url=url)
        return stored


# =============================================================================
# Caching Stage
# =============================================================================


@dataclass
class CacheSummary:
    cached: int = 0
    already_durable: int = 0
    issues: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cached": self.cached,
            "already_durable": self.already_durable,
            "issues": self.issues,
        }


async def _cache_reference(
    service: DurabilityService,
    project: VideoProject,
    asset: AssetReference,
    name: str,
    summary: CacheSummary,
    ledger: FailureLedger,
) -> bool:
    """Cache one asset in place. Returns False when it stayed ephemeral."""
    if service.is_durable(asset.url):
        summary.already_durable += 1
        return True
    try:
        asset.url = await service.make_durable(asset.url, project.id, name)
    except CacheError as e:
        issue = f"CacheFailure: {name}: {e.message}"
        summary.issues.append(issue)
        ledger.record("cache", redact_api_key(issue))
        logger.warning(issue)
        return False
    asset.cached = True
    summary.cached += 1
    return True


async def cache_project_assets(
    project: VideoProject,
    service: DurabilityService,
) -> CacheSummary:
    """
    Copy every non-durable asset on the project into object storage.

    A failed copy keeps the ephemeral URL. A scene whose video could not be
    cached switches to its image background.

    Args:
        project: Project whose assets are updated in place
        service: Durability service

    Returns:
        CacheSummary
    """
    summary = CacheSummary()
    ledger = project.progress.service_failures

    for scene in project.scenes:
        background = scene.background
        if background.image is not None:
            await _cache_reference(service, project, background.image, f"scene-{scene.order}-image", summary, ledger)
        if background.video is not None:
            ok = await _cache_reference(service, project, background.video, f"scene-{scene.order}-video", summary, ledger)
            if not ok and background.active == "video" and background.image is not None:
                logger.info(f"Scene {scene.id}: video not cached, switching to image")
                background.use_image()
                if scene.composition is not None:
                    scene.composition.camera_motion = camera_motion(scene)

        if scene.sound is not None:
            for cue in scene.sound.cues():
                if cue.url and not service.is_durable(cue.url):
                    try:
                        cue.url = await service.make_durable(cue.url, project.id, f"scene-{scene.order}-{cue.key}")
                        summary.cached += 1
                    except CacheError as e:
                        issue = f"CacheFailure: sound {cue.key}: {e.message}"
                        summary.issues.append(issue)
                        ledger.record("cache", redact_api_key(issue))
                        logger.warning(issue)

    for name in ("voiceover", "music"):
        asset = getattr(project.assets, name)
        if asset is not None:
            await _cache_reference(service, project, asset, name, summary, ledger)

    logger.info(
        f"Caching: {summary.cached} cached, {summary.already_durable} already durable, "
        f"{len(summary.issues)} issue(s)"
    )
    return summary


# =============================================================================
# Render Preparation
# =============================================================================


@dataclass
class RenderReadiness:
    """Whether a project can be rendered, and the prepared copy to render."""

    valid: bool
    issues: List[str] = field(default_factory=list)
    prepared_project: Optional[VideoProject] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "issues": self.issues,
            "prepared_project": self.prepared_project.to_dict() if self.prepared_project else None,
        }


async def _durable_or_none(
    service: DurabilityService,
    url: Optional[str],
    project_id: str,
    name: str,
    issues: List[str],
) -> Optional[str]:
    if not url:
        return None
    try:
        return await service.make_durable(url, project_id, name)
    except CacheError as e:
        issues.append(f"{name}: {e.message}")
        return None


async def _prepare_background(
    service: DurabilityService,
    scene: Scene,
    project_id: str,
    issues: List[str],
) -> None:
    background = scene.background

    if background.video is not None:
        url = await _durable_or_none(service, background.video.url, project_id, f"scene-{scene.order}-video", issues)
        if url:
            background.video.url = url
        else:
            issues.append(f"Scene {scene.order}: video not durable, using image")
            background.drop_video()

    if background.image is not None:
        url = await _durable_or_none(service, background.image.url, project_id, f"scene-{scene.order}-image", issues)
        if url:
            background.image.url = url
        else:
            issues.append(f"Scene {scene.order}: image not durable")
            background.drop_image()

    if background.active is None and background.image is not None:
        background.use_image()

    if scene.composition is not None:
        scene.composition.camera_motion = camera_motion(scene)


async def prepare_assets_for_render(
    project: VideoProject,
    service: DurabilityService,
) -> RenderReadiness:
    """
    Build a render-ready copy of a project.

    Inline data URIs are decoded and uploaded; other non-durable URLs are
    re-uploaded. Anything that still is not durable has its feature
    disabled: logo off, product overlay off, video falls back to image,
    music or voiceover cleared.

    Args:
        project: Source project (not modified)
        service: Durability service

    Returns:
        RenderReadiness; valid when at least one scene has a durable background
    """
    prepared = copy.deepcopy(project)
    issues: List[str] = []

    for scene in prepared.scenes:
        await _prepare_background(service, scene, prepared.id, issues)

        overlay = scene.product_overlay
        if overlay.enabled:
            url = await _durable_or_none(service, overlay.url, prepared.id, f"scene-{scene.order}-product", issues)
            if url:
                overlay.url = url
            else:
                issues.append(f"Scene {scene.order}: product overlay disabled")
                overlay.enabled = False
                overlay.url = None
                if scene.composition is not None:
                    scene.composition.product_overlay_enabled = False
                    scene.composition.product_overlay_rect = None

        if scene.sound is not None:
            for cue in scene.sound.cues():
                if cue.url and not service.is_durable(cue.url):
                    cue.url = await _durable_or_none(
                        service, cue.url, prepared.id, f"scene-{scene.order}-{cue.key}", issues
                    )

    if prepared.logo.enabled:
        url = await _durable_or_none(service, prepared.logo.url, prepared.id, "logo", issues)
        if url:
            prepared.logo.url = url
        else:
            issues.append("Logo disabled: no durable logo URL")
            prepared.logo.enabled = False
            prepared.logo.url = None
            for scene in prepared.scenes:
                if scene.composition is not None:
                    scene.composition.logo_rect = None

    for name in ("voiceover", "music"):
        asset = getattr(prepared.assets, name)
        if asset is None:
            continue
        url = await _durable_or_none(service, asset.url, prepared.id, name, issues)
        if url:
            asset.url = url
        else:
            issues.append(f"{name.capitalize()} cleared: not durable")
            setattr(prepared.assets, name, None)

    valid = any(
        scene.background.has_asset and service.is_durable(scene.background.active_asset.url)
        for scene in prepared.scenes
    )
    if not valid:
        issues.append("No scene has a durable background")

    logger.info(f"Render prep for {prepared.id}: valid={valid}, {len(issues)} issue(s)")
    return RenderReadiness(valid=valid, issues=issues, prepared_project=prepared)
