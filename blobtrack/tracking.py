"""Blob tracking over time with a trajectory-aware matcher."""

from __future__ import annotations

import dataclasses
import logging
import math
from dataclasses import dataclass
from typing import Iterable, Mapping

from blobtrack.geometry import Blob

logger = logging.getLogger(__name__)

UNMATCHED = -1
_UNKNOWN_ERROR = 1e10
_MIN_HISTORY = 5
_MAX_Z_SCORE = 2.0


@dataclass
class TrackedObjectInformation:
    """When a track was first and last seen, and whether it is active."""

    first_tracked_time_stamp: int = -1
    last_tracked_time_stamp: int = -1
    active: bool = False


class BlobTrajectoryTracker:
    """Keep the blobs of every track at every time instance."""

    def __init__(self):
        self._current_time = 0
        self._next_blob_id = 0
        self._history: list[dict[int, Blob]] = [{}]
        self._tracks_information: dict[int, TrackedObjectInformation] = {}

    @property
    def current_time(self) -> int:
        return self._current_time

    def add_tracks(self, new_blobs: Iterable[Blob]) -> None:
        """Add every blob as a new track, without checking for duplicates."""
        for blob in new_blobs:
            self.add_track(blob)

    def add_track(self, new_blob: Blob) -> int:
        """Start a new track with this blob and return its id."""
        track_id = self._next_blob_id
        self._history[self._current_time][track_id] = new_blob
        self._tracks_information[track_id] = TrackedObjectInformation(
            first_tracked_time_stamp=self._current_time,
            last_tracked_time_stamp=-1,
            active=True,
        )
        self._next_blob_id += 1
        return track_id

    def update_tracks(
        self, tracks_to_update: Mapping[int, Blob], create_unmatched: bool = False
    ) -> None:
        """Replace the current blob of each listed track.

        Ids that do not exist are ignored; the id -1 starts a new track when
        ``create_unmatched`` is true.
        """
        current = self._history[self._current_time]
        for track_id in sorted(tracks_to_update):
            blob = tracks_to_update[track_id]
            if create_unmatched and track_id == UNMATCHED:
                self.add_track(blob)
                continue
            if track_id not in current:
                continue
            current[track_id] = blob
            self._tracks_information[track_id].last_tracked_time_stamp = self._current_time

    def remove_tracks(self, ids_to_remove: Iterable[int]) -> None:
        """Drop the listed tracks from the current time instance; unknown ids are ignored."""
        current = self._history[self._current_time]
        for track_id in ids_to_remove:
            current.pop(track_id, None)

    def is_trajectory_consistent(self, query_blob: Blob, target_track_id: int) -> tuple[bool, float]:
        """Tell whether the blob continues the straight-line motion of a track.

        Returns the verdict and the squared distance between the blob center
        and the position the fitted motion predicts for the current time.
        Tracks seen at five or fewer earlier instances always accept, with an
        error of 1e10.
        """
        track_size = self._current_time - 1
        observed = [
            (time, blobs[target_track_id].bounding_rectangle().center)
            for time, blobs in enumerate(self._history[: max(track_size, 0)])
            if target_track_id in blobs
        ]
        if len(observed) <= _MIN_HISTORY:
            return True, _UNKNOWN_ERROR

        n = track_size
        fit = []
        for axis in (0, 1):
            total = sum(center[axis] for _, center in observed)
            weighted = sum(time * center[axis] for time, center in observed)
            slope = 6 * ((1 - n) * total + 2 * weighted) / (n * (n * n - 1))
            intercept = -2 * ((1 - 2 * n) * total + 3 * weighted) / (n * (n + 1))
            fit.append((slope, intercept))
        (ax, bx), (ay, by) = fit

        residuals = [
            (cx - (ax * step + bx)) ** 2 + (cy - (ay * step + by)) ** 2
            for step, (_, (cx, cy)) in enumerate(observed)
        ]
        count = len(residuals)
        mean = sum(residuals) / count
        spread = math.sqrt(residuals[-1] ** 2 / count + mean ** 2)

        qx, qy = query_blob.bounding_rectangle().center
        t = self._current_time
        error = (qx - (ax * t + bx)) ** 2 + (qy - (ay * t + by)) ** 2

        deviation = error - mean
        if spread > 0:
            z_score = deviation / spread
        elif deviation == 0:
            z_score = math.nan
        else:
            z_score = math.copysign(math.inf, deviation)

        if z_score < -_MAX_Z_SCORE or z_score > _MAX_Z_SCORE:
            return False, error
        return True, error

    def next_time_instance(self) -> None:
        """Advance time; the new instance starts with the blobs of the last one."""
        self._current_time += 1
        self._history.append(dict(self._history[-1]))

    def num_tracks(self) -> int:
        return len(self._history[self._current_time])

    def get_blobs(self, time_stamp: int = -1) -> dict[int, Blob]:
        """Return the blobs by track id at a time instance; -1 means the current one."""
        if time_stamp == -1:
            return dict(self._history[self._current_time])
        if 0 <= time_stamp <= self._current_time:
            return dict(self._history[time_stamp])
        raise IndexError("Given time stamp is out of range")

    def get_track_information(self, track_id: int) -> TrackedObjectInformation:
        """Return a copy of a track's information, or an inactive record for unknown ids."""
        info = self._tracks_information.get(track_id)
        if info is None:
            return TrackedObjectInformation()
        return dataclasses.replace(info)


class BlobMatcherWithTrajectory:
    """Match new blobs to tracks by overlap and trajectory consistency."""

    def __init__(self, trajectory_tracker: BlobTrajectoryTracker):
        self.trajectory_tracker = trajectory_tracker

    def match(self, query_blobs: Iterable[Blob]) -> list[int]:
        """Return, for each query blob, the id of its track or -1 when none fits."""
        targets = self.trajectory_tracker.get_blobs()
        matches = []
        for index, query in enumerate(query_blobs):
            found = UNMATCHED
            for track_id in sorted(targets):
                if not self.is_close(query, targets[track_id]):
                    continue
                consistent, _ = self.trajectory_tracker.is_trajectory_consistent(query, track_id)
                if not consistent:
                    continue
                found = track_id
                logger.debug("found a match %d for %d", track_id, index)
                break
            matches.append(found)
        logger.debug("matches: %s", matches)
        return matches

    def is_close(self, query: Blob, target: Blob) -> bool:
        """Tell whether the upright bounding boxes of two blobs overlap."""
        q = query.bounding_upright_rectangle()
        t = target.bounding_upright_rectangle()
        return not (
            q.x > t.x + t.width
            or q.x + q.width < t.x
            or q.y > t.y + t.height
            or q.y + q.height < t.y
        )