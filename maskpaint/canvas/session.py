from __future__ import annotations

import logging
import threading
import time
import uuid
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from functools import lru_cache
from typing import Callable, Sequence

import numpy as np

from maskpaint.canvas.geometry import compute_display_geometry
from maskpaint.canvas.mask import resolve_mask
from maskpaint.canvas.strokes import StrokeSurface
from maskpaint.canvas.types import ImageGeometry, ResolvedMask, Stroke, StrokeMode
from maskpaint.config import settings
from maskpaint.errors import ValidationError


logger = logging.getLogger(__name__)

MaskListener = Callable[[ResolvedMask | None, bool], None]


class MaskSession:
    """Current (live) and saved (snapshot) mask slots of one editing context."""

    def __init__(self, *, min_painted_pixels: int | None = None) -> None:
        self._lock = threading.Lock()
        self._min_painted = (
            settings.mask_min_painted_pixels if min_painted_pixels is None else min_painted_pixels
        )
        self._current: ResolvedMask | None = None
        self._saved: ResolvedMask | None = None
        self._has_content = False
        self._listeners: list[MaskListener] = []

    def subscribe(self, listener: MaskListener) -> None:
        self._listeners.append(listener)

    @property
    def current_mask(self) -> ResolvedMask | None:
        with self._lock:
            return self._current

    @property
    def saved_mask(self) -> ResolvedMask | None:
        with self._lock:
            return self._saved

    @property
    def has_content(self) -> bool:
        with self._lock:
            return self._has_content

    def state(self) -> tuple[ResolvedMask | None, bool]:
        with self._lock:
            return self._current, self._has_content

    def on_stroke_completed(self, raster: np.ndarray, geometry: ImageGeometry) -> ResolvedMask | None:
        mask = resolve_mask(raster, geometry)
        if mask is None:
            return None
        self.publish(mask)
        return mask

    def publish(self, mask: ResolvedMask | None) -> None:
        has_content = mask is not None and mask.has_content(self._min_painted)
        with self._lock:
            self._current = mask
            self._has_content = has_content
        for listener in list(self._listeners):
            listener(mask, has_content)

    def clear_current(self) -> None:
        self.publish(None)

    def save(self) -> ResolvedMask:
        with self._lock:
            if self._current is None:
                raise ValidationError("no mask to save; paint a mask first")
            self._saved = self._current.copy()
            return self._saved

    def reset(self) -> None:
        with self._lock:
            self._saved = None
        self.publish(None)


class MaskResolutionWorker:
    """Resolves masks off the caller's thread, newest submission wins.

    A single worker thread runs resolutions in order. Submitting cancels the
    previous job if it has not started and marks it stale if it has, so a
    stale result is never published.
    """

    def __init__(self, session: MaskSession, executor: Executor | None = None) -> None:
        self._session = session
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix="mask-resolve",
        )
        # Reentrant: listeners run under this lock and may call submit or invalidate.
        self._lock = threading.RLock()
        self._generation = 0
        self._pending: Future | None = None

    def submit(self, raster: np.ndarray, geometry: ImageGeometry) -> Future:
        with self._lock:
            self._generation += 1
            generation = self._generation
            if self._pending is not None:
                self._pending.cancel()
            future = self._executor.submit(self._resolve, generation, raster, geometry)
            self._pending = future
        return future

    def invalidate(self) -> None:
        with self._lock:
            self._generation += 1
            if self._pending is not None:
                self._pending.cancel()
            self._pending = None

    def wait(self, timeout: float | None = None) -> bool:
        with self._lock:
            pending = self._pending
        if pending is None:
            return True
        done, _ = wait([pending], timeout=timeout)
        return bool(done)

    def shutdown(self) -> None:
        self.invalidate()
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def _resolve(self, generation: int, raster: np.ndarray, geometry: ImageGeometry) -> ResolvedMask | None:
        if not self._is_current(generation):
            return None
        try:
            mask = resolve_mask(raster, geometry)
        except Exception:
            logger.exception("background mask resolution failed")
            raise
        if mask is None:
            return None
        # Publish under the lock so invalidate() cannot interleave.
        with self._lock:
            if generation != self._generation:
                logger.debug("dropping stale mask resolution %d", generation)
                return None
            self._session.publish(mask)
        return mask


class EditSession:
    """One editing context: source image, geometry, stroke surface and masks.

    Loading a new image is the only operation that rebuilds all of them; a
    geometry change discards the strokes instead of rescaling them.
    """

    def __init__(
        self,
        source_image_ref: str,
        natural_width: int,
        natural_height: int,
        container_width: int | None = None,
        *,
        resolve_in_background: bool | None = None,
    ) -> None:
        self.id = uuid.uuid4().hex
        # Stroke events on one session are applied one at a time.
        self._edit_lock = threading.RLock()
        self.mask = MaskSession()
        if resolve_in_background is None:
            resolve_in_background = settings.resolve_masks_in_background
        self._worker = MaskResolutionWorker(self.mask) if resolve_in_background else None
        self.source_image_ref = source_image_ref
        self.container_width = container_width
        self.geometry = compute_display_geometry(natural_width, natural_height, container_width)
        self.surface = self._new_surface(self.geometry)
        self._closed = False

    def _new_surface(self, geometry: ImageGeometry) -> StrokeSurface:
        return StrokeSurface(
            geometry.display_width,
            geometry.display_height,
            on_stroke_completed=self._on_stroke_completed,
            on_cleared=self._on_cleared,
        )

    def _on_stroke_completed(self, raster: np.ndarray) -> None:
        if self._worker is not None:
            self._worker.submit(raster, self.geometry)
        else:
            self.mask.on_stroke_completed(raster, self.geometry)

    def _on_cleared(self) -> None:
        if self._worker is not None:
            self._worker.invalidate()
        self.mask.clear_current()

    def load_image(
        self,
        source_image_ref: str,
        natural_width: int,
        natural_height: int,
        container_width: int | None = None,
    ) -> ImageGeometry:
        with self._edit_lock:
            if container_width is not None:
                self.container_width = container_width
            geometry = compute_display_geometry(natural_width, natural_height, self.container_width)
            if self._worker is not None:
                self._worker.invalidate()
            self.source_image_ref = source_image_ref
            self.geometry = geometry
            self.surface = self._new_surface(geometry)
            self.mask.reset()
        logger.info(
            "session %s loaded image %s (%dx%d, display %dx%d)",
            self.id,
            source_image_ref,
            natural_width,
            natural_height,
            geometry.display_width,
            geometry.display_height,
        )
        return geometry

    def resize(self, container_width: int) -> bool:
        """Recompute the display geometry; returns True when strokes were discarded."""
        with self._edit_lock:
            geometry = compute_display_geometry(
                self.geometry.natural_width,
                self.geometry.natural_height,
                container_width,
            )
            self.container_width = container_width
            if geometry == self.geometry:
                return False

            had_strokes = not self.surface.is_empty
            self.geometry = geometry
            if self._worker is not None:
                self._worker.invalidate()
            self.surface = self._new_surface(geometry)
            self.mask.clear_current()
        logger.info(
            "session %s display size changed to %dx%d; %s",
            self.id,
            geometry.display_width,
            geometry.display_height,
            "strokes discarded" if had_strokes else "no strokes to discard",
        )
        return True

    def add_stroke(
        self,
        points: Sequence[Sequence[float]],
        brush_width: int,
        mode: StrokeMode | str = StrokeMode.PAINT,
    ) -> Stroke:
        with self._edit_lock:
            return self.surface.add_stroke(points, brush_width, mode)

    def clear(self) -> None:
        with self._edit_lock:
            self.surface.clear()

    def save_mask(self) -> ResolvedMask:
        self.settle()
        return self.mask.save()

    def settle(self, timeout: float | None = None) -> bool:
        if self._worker is None:
            return True
        if timeout is None:
            timeout = settings.mask_settle_timeout_seconds
        return self._worker.wait(timeout)

    @property
    def is_closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True
        if self._worker is not None:
            self._worker.shutdown()


class SessionRegistry:
    """Live edit sessions, evicted when idle too long or over capacity.

    Lookups refresh a session's last-used time. Evicted sessions are closed.
    """

    def __init__(
        self,
        *,
        idle_ttl_seconds: float | None = None,
        max_sessions: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, EditSession] = {}
        self._last_used: dict[str, float] = {}
        self._idle_ttl = settings.session_idle_ttl_seconds if idle_ttl_seconds is None else idle_ttl_seconds
        self._max_sessions = max(1, settings.max_sessions if max_sessions is None else max_sessions)
        self._clock = clock

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def create(
        self,
        source_image_ref: str,
        natural_width: int,
        natural_height: int,
        container_width: int | None = None,
    ) -> EditSession:
        session = EditSession(source_image_ref, natural_width, natural_height, container_width)
        with self._lock:
            self._sessions[session.id] = session
            self._last_used[session.id] = self._clock()
            evicted = self._collect_evictions()
        self._close_evicted(evicted)
        logger.info("created edit session %s", session.id)
        return session

    def get(self, session_id: str) -> EditSession | None:
        with self._lock:
            evicted = self._collect_evictions()
            session = self._sessions.get(session_id)
            if session is not None:
                self._last_used[session_id] = self._clock()
        self._close_evicted(evicted)
        return session

    def discard(self, session_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(session_id, None)
            self._last_used.pop(session_id, None)
        if session is None:
            return False
        session.close()
        logger.info("closed edit session %s", session_id)
        return True

    def prune(self) -> int:
        with self._lock:
            evicted = self._collect_evictions()
        self._close_evicted(evicted)
        return len(evicted)

    def _collect_evictions(self) -> list[EditSession]:
        # Caller holds self._lock.
        now = self._clock()
        expired = [sid for sid, used in self._last_used.items() if now - used > self._idle_ttl]
        overflow = len(self._sessions) - len(expired) - self._max_sessions
        if overflow > 0:
            remaining = sorted(
                (sid for sid in self._last_used if sid not in expired),
                key=self._last_used.__getitem__,
            )
            expired.extend(remaining[:overflow])

        evicted = []
        for sid in expired:
            self._last_used.pop(sid, None)
            evicted.append(self._sessions.pop(sid))
        return evicted

    def _close_evicted(self, evicted: list[EditSession]) -> None:
        for session in evicted:
            session.close()
            logger.info("evicted edit session %s", session.id)


@lru_cache(maxsize=1)
def get_session_registry() -> SessionRegistry:
    return SessionRegistry()
