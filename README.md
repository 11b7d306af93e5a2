# blobtrack

A library for finding, describing and tracking foreground blobs in video
frames. Frames and masks are plain `numpy` arrays, so you can read video with
any tool you like. Colours are given in BGR order.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `blobtrack.geometry`
  - `Rect`: an upright integer rectangle. `contains(point)` treats the right
    and bottom edges as outside.
  - `RotatedRect`: a rectangle with a centre, a size and an angle in degrees.
    It has `box_points()`, `bounding_rect()` and an `area` property.
  - `KeyPoint`: a point with a size, an angle and a response.
  - `Blob`: a region given by its contour points. It has `area()`,
    `bounding_rectangle()` (the minimum-area rotated rectangle),
    `bounding_upright_rectangle()`, `to_keypoint()` and
    `draw_to(image, color)`. A `Blob()` with no points has zero area.
  - `convex_hull(points)`, `min_area_rect(points)` and `contour_area(points)`.
    `min_area_rect` reports an angle in [-90, 0) degrees.
- `blobtrack.draw`: drawing helpers that modify an image in place and clip
  anything outside it: `draw_line`, `draw_hull` (a closed loop through the
  points), `draw_rotated_rect`, `polylines` and `draw_circle`.
  `palette_color(index)` returns a colour from a fixed palette and cycles
  through its first twenty entries.
- `blobtrack.distance`
  - `bhattacharyya_distance(descriptor1, descriptor2)` compares the first rows
    of two histograms. Both need the same number of bins and totals that round
    to the same integer; otherwise it raises `ValueError`.
  - `RegionDistance(distance)` averages a distance over several parts, and over
    the channels of each part.
  - `GlobalDistance(distance)` places the parts side by side and measures a
    single distance over the joined descriptor. Channels are averaged.
  - A descriptor with several channels is given as a list or tuple with one
    array per channel. Arrays with three dimensions are treated as histograms
    and compared whole.
- `blobtrack.blob_feature`
  - `BlobDescriptorExtractor.compute(image, keypoints)` takes a 3-channel image
    and returns an `(N, 6)` float32 array. Each row holds the mean colour, x,
    y, and the keypoint's response divided by the sum of all keypoint sizes.
  - `blob_mean_color(image, keypoint)` returns the mean colour alone, or all
    NaN when no pixel falls inside the keypoint.
  - `blob_distance(feature1, feature2)` returns a signed, roughly normalised
    difference between two such rows.
- `blobtrack.blob_detector`
  - `BlobDetector()(foreground_mask, close_holes=1)` treats pixels above 128 as
    foreground. It erodes and then dilates the mask `close_holes` times with a
    3×3 square (0 skips this step) and returns one `Blob` per external contour.
  - `find_external_contours(mask)` returns the outer contours of the nonzero
    regions as lists of corner points, in raster order.
- `blobtrack.tracking`
  - `BlobTrajectoryTracker` keeps the blobs of every track at every time step.
    Its methods are `add_track`, `add_tracks`,
    `update_tracks(tracks, create_unmatched=False)`, `remove_tracks`,
    `next_time_instance`, `num_tracks`, `get_blobs(time_stamp=-1)`,
    `get_track_information(track_id)` and
    `is_trajectory_consistent(blob, track_id)`. The last one returns
    `(consistent, error)`.
  - `get_blobs` raises `IndexError` for a time step that has not been reached
    yet.
  - `get_track_information` returns a `TrackedObjectInformation` record. For an
    unknown id the record is inactive.
  - `BlobMatcherWithTrajectory(tracker)` has `match(query_blobs)`, which
    returns one track id per blob. A track matches when its upright bounding
    box overlaps the blob's (`is_close`) and the blob fits the track's
    trajectory; otherwise the id is `-1`.
- `blobtrack.klt`
  - `calc_optical_flow_pyr_lk(prev_image, next_image, points, window_size=15,
    max_level=3)` runs pyramidal Lucas–Kanade flow. It returns the new
    positions, a found flag for each point and a per-point error.
  - `KLTTracker` stores an image and its points with `add`. `search(test_image)`
    then returns the found positions and the indices of the points that were
    found. `classify` and `match` raise `UnsupportedOperationError`.

`blobtrack.tracking` and `blobtrack.distance` log their intermediate results
at debug level through the standard `logging` module.

## Example

```python
import numpy as np

from blobtrack.blob_detector import BlobDetector
from blobtrack.tracking import BlobTrajectoryTracker, BlobMatcherWithTrajectory

detector = BlobDetector()
tracker = BlobTrajectoryTracker()
matcher = BlobMatcherWithTrajectory(tracker)

first_mask = np.zeros((120, 160), dtype=np.uint8)
first_mask[20:60, 30:70] = 255
tracker.add_tracks(detector(first_mask, 1))
tracker.next_time_instance()

next_mask = np.zeros((120, 160), dtype=np.uint8)
next_mask[22:62, 33:73] = 255
blobs = detector(next_mask, 1)
matches = matcher.match(blobs)
tracker.update_tracks(dict(zip(matches, blobs)), False)
print(tracker.num_tracks(), tracker.get_track_information(0))
```

`update_tracks` ignores ids that do not exist. When `create_unmatched` is
true, a blob under the id `-1` becomes a new track.

## What this package does not do

The package has no command-line program and no display windows. It does not
read or write video files, and it does no background subtraction: you supply
the foreground masks and the frames yourself.